"""
Account Repository

Owns the persisted account collection, keyed by login id.

DUPLICATE POLICY: create() refuses an existing login id (DuplicateError),
while bulk_upsert() is LAST-WRITE-WINS - an imported row replaces the stored
account with the same login id. Bulk import is meant to be re-runnable, so
importing the same sheet twice gives the same result.

The root administrator (SeedSettings.root_login_id) can never be deleted,
whatever role the caller or the account has.
"""

from typing import Iterable, Optional

from docuhub.audit.logger import AuditLogger
from docuhub.config.settings import SeedSettings
from docuhub.models.account import (
    Account,
    AccountCreate,
    AccountRole,
    AccountUpdate,
    AccountView,
)
from docuhub.repositories.base import JsonCollection
from docuhub.services.passwords import hash_secret, verify_secret
from docuhub.services.storage.interface import (
    DuplicateError,
    KeyValueStore,
    NotFoundError,
    ProtectedAccountError,
    StorageError,
)


class AccountRepository:
    """CRUD and queries over the account collection."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = "docuhub_users_db",
        root_login_id: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._accounts = JsonCollection(store, key, Account)
        self._root_login_id = root_login_id or SeedSettings().root_login_id
        self._audit_logger = audit_logger

    @property
    def root_login_id(self) -> str:
        return self._root_login_id

    async def _run(self, operation: str, mutate):
        try:
            return await self._accounts.transaction(mutate)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(operation, str(e))
            raise

    async def _load(self, operation: str) -> list[Account]:
        try:
            return await self._accounts.load()
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(operation, str(e))
            raise

    @staticmethod
    def _to_record(account: AccountCreate) -> Account:
        return Account(
            login_id=account.login_id,
            secret_hash=hash_secret(account.secret),
            department=account.department,
            role=account.role,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def bootstrap(self, seed: Optional[SeedSettings] = None) -> bool:
        """
        Seed the root administrator on first-ever startup.

        Only a store where the account collection was never written counts
        as first startup. An existing but empty collection is left alone.

        Args:
            seed: Root account to create (defaults to SeedSettings())

        Returns:
            True if the administrator was seeded

        Raises:
            ValueError: If the seed names a different root than the one
                this repository protects
        """
        seed = seed or SeedSettings()
        if seed.root_login_id != self._root_login_id:
            raise ValueError(
                f"Seed root '{seed.root_login_id}' does not match the protected "
                f"root '{self._root_login_id}'"
            )
        root = self._to_record(AccountCreate(
            login_id=seed.root_login_id,
            secret=seed.root_secret,
            department=seed.root_department,
            role=AccountRole.ADMIN,
        ))

        try:
            seeded = await self._accounts.create_if_absent([root])
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error("bootstrap", str(e))
            raise

        if seeded and self._audit_logger:
            await self._audit_logger.log_accounts_seeded(root.login_id)
        return seeded

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def find_by_credentials(self, login_id: str, secret: str) -> Optional[AccountView]:
        """
        Look up an account by login id and secret.

        Returns:
            The account with its secret redacted, or None if either the
            login id is unknown or the secret does not match
        """
        account = await self.get(login_id)
        if account is None or not verify_secret(account.secret_hash, secret):
            return None
        return account.to_view()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(self, account: AccountCreate) -> AccountView:
        """
        Create a single account.

        Raises:
            DuplicateError: If the login id is already taken
        """
        record = self._to_record(account)

        def mutate(accounts: list[Account]):
            if any(existing.login_id == record.login_id for existing in accounts):
                raise DuplicateError(f"Account already exists: {record.login_id}")
            return accounts + [record], record.to_view()

        view = await self._run("create_account", mutate)
        if self._audit_logger:
            await self._audit_logger.log_account_created(view.login_id, view.role.value)
        return view

    async def bulk_upsert(self, accounts: Iterable[AccountCreate]) -> list[AccountView]:
        """
        Insert or overwrite accounts by login id (last write wins).

        Within one batch a later row for the same login id also wins over an
        earlier one.

        Returns:
            The resulting accounts, one per distinct login id, in batch order
        """
        records: dict[str, Account] = {}
        for account in accounts:
            records.pop(account.login_id, None)
            records[account.login_id] = self._to_record(account)
        if not records:
            return []

        def mutate(existing: list[Account]):
            merged = list(existing)
            positions = {acc.login_id: index for index, acc in enumerate(merged)}
            inserted, overwritten = [], []
            for login_id, record in records.items():
                if login_id in positions:
                    merged[positions[login_id]] = record  # overwrite policy
                    overwritten.append(login_id)
                else:
                    positions[login_id] = len(merged)
                    merged.append(record)
                    inserted.append(login_id)
            return merged, (inserted, overwritten)

        inserted, overwritten = await self._run("bulk_upsert", mutate)
        if self._audit_logger:
            await self._audit_logger.log_accounts_upserted(inserted, overwritten)
        return [record.to_view() for record in records.values()]

    async def update(self, login_id: str, changes: AccountUpdate) -> AccountView:
        """
        Merge the provided fields into an existing account.

        An update with no fields set writes nothing and is not audited.

        Raises:
            NotFoundError: If no account has this login id
        """
        if changes.is_empty():
            account = await self.get(login_id)
            if account is None:
                raise NotFoundError(f"Account not found: {login_id}")
            return account.to_view()

        fields = changes.model_dump(exclude_none=True)
        patch = {k: v for k, v in fields.items() if k != "secret"}
        if "secret" in fields:
            patch["secret_hash"] = hash_secret(fields["secret"])

        def mutate(accounts: list[Account]):
            for index, account in enumerate(accounts):
                if account.login_id == login_id:
                    updated = account.model_copy(update=patch)
                    return accounts[:index] + [updated] + accounts[index + 1:], updated.to_view()
            raise NotFoundError(f"Account not found: {login_id}")

        view = await self._run("update_account", mutate)
        if self._audit_logger:
            await self._audit_logger.log_account_updated(login_id, sorted(fields))
        return view

    async def change_secret(self, login_id: str, new_secret: str) -> AccountView:
        """Self-service secret change."""
        return await self.update(login_id, AccountUpdate(secret=new_secret))

    async def delete(self, login_id: str) -> None:
        """
        Delete an account.

        Raises:
            ProtectedAccountError: If this is the root administrator
            NotFoundError: If no account has this login id
        """
        if login_id == self._root_login_id:
            if self._audit_logger:
                await self._audit_logger.log_account_delete_blocked(login_id)
            raise ProtectedAccountError(
                f"The root administrator '{login_id}' cannot be deleted"
            )

        def mutate(accounts: list[Account]):
            kept = [account for account in accounts if account.login_id != login_id]
            if len(kept) == len(accounts):
                raise NotFoundError(f"Account not found: {login_id}")
            return kept, None

        await self._run("delete_account", mutate)
        if self._audit_logger:
            await self._audit_logger.log_account_deleted(login_id)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, login_id: str) -> Optional[Account]:
        for account in await self._load("get_account"):
            if account.login_id == login_id:
                return account
        return None

    async def list_all(self) -> list[Account]:
        """All accounts, secret hashes included. Internal use only."""
        return await self._load("list_accounts")

    async def list_views(self) -> list[AccountView]:
        """All accounts with secrets redacted, for display."""
        return [account.to_view() for account in await self.list_all()]
