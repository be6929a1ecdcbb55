"""
passvault API service
=====================

Backend for the password vault web client. Users sign in with Discord,
receive a signed session JWT, and present it on every vault request.

Packages:
    - auth:     Discord OAuth login/callback, session JWT issuance and verification
    - accounts: Account persistence and the login upsert policy
    - users:    Protected endpoints for the signed-in user

Running the service:
    uvicorn passvault.app.main:create_app --factory --host 0.0.0.0 --port 8080
"""
