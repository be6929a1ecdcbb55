"""
Accounts Package

Local user records linked to Discord identities.

Modules:
- database: async key-value Database protocol and the in-memory implementation
- store: AccountStore with the login upsert merge policy
"""

from .database import Database, InMemoryDatabase
from .store import AccountStore

__all__ = [
    "AccountStore",
    "Database",
    "InMemoryDatabase",
]
