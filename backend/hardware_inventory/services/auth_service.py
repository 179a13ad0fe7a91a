# Overview: Caller authentication, role permissions, and password changes.

"""
Authenticator

WHY: Every stock movement names the user who made it, so every request must
be attributable to an active account with a known role.

USER TABLE:
- Read-mostly snapshot (MappingProxyType). verify() reads the current
  snapshot without locking.
- Writers (password change, reload) build a new dict under a single lock and
  swap the reference, so a reader never sees a half-applied change.

SOURCES:
- AUTH_USER_SOURCE=database: accounts come from the app_users table through
  the store; password changes are written back. The table is re-read on the
  first verify() after AUTH_RELOAD_INTERVAL seconds, so `flask users` changes
  reach a running server.
- AUTH_USER_SOURCE=seed, or an empty app_users table while APP_ENV=development:
  the built-in development accounts are installed in memory only.

SECURITY NOTES:
- Passwords are kept as SHA-256 hex digests; comparison uses hmac.compare_digest.
- Usernames are case-insensitive (stored lower-case).
- Unknown operations are denied.
"""

from __future__ import annotations

import hashlib
import hmac
import threading
import time
from dataclasses import replace
from types import MappingProxyType

from flask import current_app

from ..domain import Role, UserAccount
from ..errors import StoreError

SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"
PASSWORD_MIN_LENGTH = 8

# Minimum role per facade operation
OPERATION_ROLES: dict[str, Role] = {
    "insertItem": Role.ADMIN,
    "updateItem": Role.ADMIN,
    "retireItem": Role.ADMIN,
    "listUsers": Role.ADMIN,
    "setStock": Role.OPERATOR,
    "adjustStock": Role.OPERATOR,
    "registerEntry": Role.OPERATOR,
    "registerExit": Role.OPERATOR,
    "getByCode": Role.READONLY,
    "getById": Role.READONLY,
    "searchByName": Role.READONLY,
    "listAll": Role.READONLY,
    "listCategories": Role.READONLY,
    "listSuppliers": Role.READONLY,
    "listLowStock": Role.READONLY,
    "listMovements": Role.READONLY,
    "healthCheck": Role.READONLY,
    "changePassword": Role.READONLY,
}

# Development-only accounts. Never installed when APP_ENV is production and app_users has rows.
DEVELOPMENT_USERS = (
    ("admin", "FerretAdmin2024$", Role.ADMIN),
    ("operador", "StockManager#789", Role.OPERATOR),
    ("consulta", "ReadOnly@456", Role.READONLY),
    ("supervisor", "SuperVisor!321", Role.OPERATOR),
    ("gerente", "Manager$2024", Role.ADMIN),
)


def hash_password(password: str) -> str:
    """SHA-256 hex digest of the UTF-8 password."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def is_strong(password: str | None) -> bool:
    """
    Password strength rule.

    Requirements:
    - At least 8 characters
    - At least one uppercase and one lowercase letter
    - At least one digit
    - At least one character from SPECIAL_CHARACTERS
    """
    if not password or len(password) < PASSWORD_MIN_LENGTH:
        return False
    return (
        any(c.isupper() for c in password)
        and any(c.islower() for c in password)
        and any(c.isdigit() for c in password)
        and any(c in SPECIAL_CHARACTERS for c in password)
    )


def development_accounts() -> list[UserAccount]:
    return [
        UserAccount(username=name, password_hash=hash_password(password), role=role)
        for name, password, role in DEVELOPMENT_USERS
    ]


# Compared against when the username is unknown, so both paths hash and compare once
_UNKNOWN_USER_DIGEST = hash_password("\x00unknown-user\x00")


class Authenticator:
    def __init__(
        self,
        store=None,
        accounts: list[UserAccount] | None = None,
        *,
        persistent: bool = False,
        reload_interval: float = 30,
    ):
        self._store = store
        self._lock = threading.Lock()
        self._persistent = persistent and store is not None
        self._reload_interval = reload_interval
        self._users = MappingProxyType(_index(accounts or []))
        self._loaded_at = time.monotonic()

    @classmethod
    def from_config(cls, config, store) -> "Authenticator":
        """
        Build the authenticator for an application.

        Must run inside an app context when the source is the database.
        """
        source = str(config.get("AUTH_USER_SOURCE", "database")).lower()
        if source == "seed":
            current_app.logger.warning("Using built-in development users (AUTH_USER_SOURCE=seed)")
            return cls(store, development_accounts())

        try:
            accounts = store.list_users()
        except StoreError:
            # Schema not migrated yet (e.g. while running `flask db upgrade`)
            current_app.logger.warning("Could not load app_users; starting with no accounts", exc_info=True)
            accounts = []
        if not accounts and config.get("APP_ENV") == "development":
            current_app.logger.warning(
                "app_users is empty; installing built-in development users (APP_ENV=development)"
            )
            return cls(store, development_accounts())
        if not accounts:
            current_app.logger.warning("app_users is empty; every request will be rejected")
        return cls(
            store,
            accounts,
            persistent=True,
            reload_interval=float(config.get("AUTH_RELOAD_INTERVAL", 30) or 0),
        )

    def verify(self, username: str | None, password: str | None) -> UserAccount | None:
        """Return the account if the credentials match an active user, else None."""
        if not username or password is None:
            return None
        self._reload_if_stale()
        account = self._users.get(username.strip().lower())
        expected = account.password_hash if account is not None else _UNKNOWN_USER_DIGEST
        matches = hmac.compare_digest(hash_password(password), expected)
        if account is None or not matches or not account.active:
            return None
        return account

    def may_perform(self, user: UserAccount | None, operation: str) -> bool:
        required = OPERATION_ROLES.get(operation)
        if user is None or required is None or not user.active:
            return False
        return user.role.rank >= required.rank

    def change_password(self, username: str, current_password: str, new_password: str) -> bool:
        """
        Replace a user's password.

        Returns False when the current password does not verify or the new one
        is not strong. When accounts came from the database the new hash is
        written there before the in-memory table is swapped; a StoreError
        leaves both unchanged.
        """
        if self.verify(username, current_password) is None:
            return False
        if not is_strong(new_password):
            return False

        key = username.strip().lower()
        new_hash = hash_password(new_password)
        with self._lock:
            account = self._users.get(key)
            if account is None:
                return False
            if self._persistent:
                self._store.set_user_password(key, new_hash)
            users = dict(self._users)
            users[key] = replace(account, password_hash=new_hash)
            self._users = MappingProxyType(users)

        current_app.logger.info("Password changed for user %s", key)
        return True

    def list_users(self) -> list[UserAccount]:
        """Active accounts sorted by username."""
        return [self._users[name] for name in sorted(self._users) if self._users[name].active]

    def reload(self) -> None:
        """Re-read accounts from the database (no-op for in-memory sources)."""
        if not self._persistent:
            return
        accounts = self._store.list_users()
        with self._lock:
            self._users = MappingProxyType(_index(accounts))
            self._loaded_at = time.monotonic()

    def _reload_if_stale(self) -> None:
        """Pick up accounts created or changed through the CLI since the last load."""
        if not self._persistent or time.monotonic() - self._loaded_at < self._reload_interval:
            return
        try:
            self.reload()
        except StoreError:
            current_app.logger.warning("Could not reload app_users; keeping the loaded accounts", exc_info=True)
            self._loaded_at = time.monotonic()


def _index(accounts: list[UserAccount]) -> dict[str, UserAccount]:
    return {account.username.lower(): account for account in accounts}
