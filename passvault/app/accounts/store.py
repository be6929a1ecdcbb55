"""
Account Store
=============

Persists local accounts keyed by Discord user ID and applies the login
merge policy:

- first login inserts a fully default-initialized record
- later logins refresh username and avatar only; createdAt, the two-factor
  settings and the master password are carried forward from the stored
  record, and the password list is never touched

Concurrent logins for the same ID are serialized with a per-ID asyncio
lock, held only while an upsert for that ID is in flight, unless
serialization is switched off, in which case the underlying store decides
(last write wins).
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from ..models import Account, PasswordRecord, utc_now_iso
from .database import Database

logger = logging.getLogger(__name__)

USERS_TABLE = "users"


class AccountStore:
    """Merge policy over a key-value Database collaborator."""

    def __init__(self, database: Database, serialize_upserts: bool = True):
        self._db = database
        self._serialize_upserts = serialize_upserts
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _serialized(self, account_id: str):
        """Hold the per-ID lock; the lock is discarded once nobody holds or awaits it."""
        if not self._serialize_upserts:
            yield
            return

        lock = self._locks.setdefault(account_id, asyncio.Lock())
        self._lock_users[account_id] = self._lock_users.get(account_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[account_id] -= 1
            if not self._lock_users[account_id]:
                del self._lock_users[account_id]
                del self._locks[account_id]

    @property
    def pending_locks(self) -> int:
        """Number of account IDs with an upsert in flight."""
        return len(self._locks)

    async def find_by_id(self, account_id: str) -> Optional[Account]:
        """
        Look up an account by Discord user ID.

        Args:
            account_id: Discord user ID

        Returns:
            The stored Account, or None if this ID has never logged in
        """
        rows = await self._db.query(USERS_TABLE, {"id": account_id})
        if not rows:
            return None
        if len(rows) > 1:
            logger.warning(
                f"Found {len(rows)} records for one account id, using the first",
                extra={"account_id": account_id},
            )
        return Account.model_validate(rows[0])

    async def upsert(self, account: Account) -> Account:
        """
        Insert a new account or refresh an existing one.

        Args:
            account: Candidate record built from the provider profile.
                     Only id, username and avatar are taken from it when
                     a record already exists.

        Returns:
            The account as stored after the merge
        """
        async with self._serialized(account.id):
            existing = await self._db.query(USERS_TABLE, {"id": account.id})

            if not existing:
                await self._db.insert(USERS_TABLE, account.to_record())
                logger.info("Created account", extra={"account_id": account.id})
                return account

            current = existing[0]
            changes = {
                "username": account.username,
                "avatar": account.avatar,
                "createdAt": current.get("createdAt") or utc_now_iso(),
                "twoFactorEnabled": current.get("twoFactorEnabled") or False,
                "twoFactorSecret": current.get("twoFactorSecret") or "",
                "masterPassword": current.get("masterPassword") or "",
            }
            await self._db.update(USERS_TABLE, changes, {"id": account.id})
            logger.info("Updated account profile", extra={"account_id": account.id})

            merged = dict(current)
            merged.update(changes)
            return Account.model_validate(merged)

    async def list_passwords(self, account_id: str) -> Optional[List[PasswordRecord]]:
        """Stored password entries for an account, or None if the account is unknown."""
        account = await self.find_by_id(account_id)
        if account is None:
            return None
        return account.passwords
