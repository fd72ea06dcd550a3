"""
Session Store

Holds which account, if any, is logged in.

    ANONYMOUS --login ok--> AUTHENTICATED --logout / account gone--> ANONYMOUS

DESIGN DECISION: The session is a projection, not a source of truth. It
persists the redacted AccountView so a reload stays logged in, but current()
re-derives the view from the account repository every time. If the account
was deleted in the meantime the session is cleared right there; if its role
or department changed, the fresh values are returned.

There is no expiry.
"""

from enum import Enum
from typing import Optional

from pydantic import ValidationError

from docuhub.audit.logger import AuditLogger
from docuhub.models.account import AccountView
from docuhub.repositories.accounts import AccountRepository
from docuhub.services.storage.interface import KeyValueStore, StorageDecodeError


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


class SessionStore:
    """The currently authenticated account, persisted in the key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        accounts: AccountRepository,
        key: str = "docuhub_user",
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._accounts = accounts
        self._key = key
        self._audit_logger = audit_logger

    async def _read(self) -> Optional[AccountView]:
        raw = await self._store.get(self._key)
        if raw is None:
            return None
        try:
            return AccountView.model_validate_json(raw)
        except ValidationError as e:
            raise StorageDecodeError(f"Stored session under {self._key!r} is corrupted") from e

    async def _write(self, view: AccountView) -> None:
        await self._store.set(self._key, view.model_dump_json())

    async def login(self, login_id: str, secret: str) -> Optional[AccountView]:
        """
        Authenticate and start a session.

        Returns:
            The authenticated account, or None if the credentials do not
            match. A failed login leaves the current state untouched.
        """
        view = await self._accounts.find_by_credentials(login_id, secret)
        if view is None:
            if self._audit_logger:
                await self._audit_logger.log_login_failed(login_id)
            return None

        await self._write(view)
        if self._audit_logger:
            await self._audit_logger.log_login_succeeded(view.login_id)
        return view

    async def logout(self) -> None:
        """End the session. Logging out while anonymous is a no-op."""
        view = await self._read_lenient()
        await self._store.delete(self._key)
        if self._audit_logger and view is not None:
            await self._audit_logger.log_logout(view.login_id)

    async def _read_lenient(self) -> Optional[AccountView]:
        # Logout must work even when the stored session is unreadable.
        try:
            return await self._read()
        except StorageDecodeError:
            return None

    async def current(self) -> Optional[AccountView]:
        """
        The authenticated account, freshly derived from the account repository.

        Returns:
            The account view, or None when anonymous. A session whose account
            no longer exists is invalidated and None is returned.
        """
        view = await self._read()
        if view is None:
            return None

        account = await self._accounts.get(view.login_id)
        if account is None:
            await self._store.delete(self._key)
            if self._audit_logger:
                await self._audit_logger.log_session_invalidated(
                    view.login_id,
                    reason="account no longer exists",
                )
            return None

        fresh = account.to_view()
        if fresh != view:
            await self._write(fresh)
        return fresh

    async def state(self) -> SessionState:
        if await self.current() is None:
            return SessionState.ANONYMOUS
        return SessionState.AUTHENTICATED
