"""
Users Package

Endpoints that require a valid session JWT:

- GET /api/user/me: profile of the signed-in user
- GET /api/passwords: the user's stored password entries
"""
