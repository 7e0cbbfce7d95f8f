"""
Main Orchestrator for Shared Ledger

This module ties together all the components and defines the operations
the presentation layer calls:
1. Accounts (bootstrap → register/login → manage managers → change credentials)
2. Ledger (add income/expense → delete → totals → expense report)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every operation takes the caller's Session explicitly; there is no
  global "current user"
- Every operation re-checks that the Session is current and that its role
  grants the capability, before touching a store
- Changing your own credentials ends your session; the user logs in again
"""

from datetime import date, datetime
from typing import Any, Optional, Union
from uuid import UUID

from shared_ledger.accounts import (
    Authenticator,
    Capability,
    CredentialStore,
    require,
    session_is_current,
)
from shared_ledger.activity import ActivityLogger, configure_logging
from shared_ledger.config import get_settings
from shared_ledger.errors import PermissionDeniedError, SessionExpiredError
from shared_ledger.ledger import (
    CredentialView,
    LedgerStore,
    LedgerView,
    filter_by_type,
    totals,
)
from shared_ledger.models.accounts import (
    BootstrapState,
    Manager,
    Principal,
    Role,
    Session,
)
from shared_ledger.models.ledger import (
    ExpenseReport,
    ReportMode,
    Totals,
    Transaction,
    TransactionType,
    TypeFilter,
)
from shared_ledger.reports import select
from shared_ledger.services.storage import (
    DocumentStoreInterface,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
)


class AccountFlow:
    """
    Orchestrates identity: bootstrap, login, managers and credentials.

    Revoked sessions are remembered per flow instance, so a logged-out or
    credential-changed session can't be reused even if its digest would
    still match. An entry is dropped once the stored credentials no longer
    match it, since verification alone rejects it from then on.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        authenticator: Optional[Authenticator] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._activity = activity_logger or ActivityLogger()
        self._credentials = credentials
        self._authenticator = authenticator or Authenticator(credentials, self._activity)
        self._revoked: dict[UUID, Session] = {}

    async def resolve_bootstrap_state(self) -> BootstrapState:
        """Decide between the login and the first-time registration screen."""
        return await self._authenticator.resolve_bootstrap_state()

    async def login(self, username: str, password: str) -> Session:
        return await self._authenticator.login(username, password)

    async def register(self, username: str, password: str) -> Session:
        return await self._authenticator.register(username, password)

    def logout(self, session: Session) -> None:
        self._revoke(session, "logout")

    def is_revoked(self, session: Session) -> bool:
        return session.session_id in self._revoked

    async def authorize(self, session: Session, capability: Capability) -> Principal:
        """
        Check the session is still current and its role grants `capability`.

        Returns:
            The current owner document

        Raises:
            SessionExpiredError: revoked, or credentials changed since login
            PermissionDeniedError: role lacks the capability
        """
        if self.is_revoked(session):
            self._activity.log_session_rejected(session.username, session.session_id)
            raise SessionExpiredError(session.username)

        principal = await self._authenticator.verify_session(session)
        self._forget_stale_revocations(principal)

        try:
            require(session, capability)
        except PermissionDeniedError:
            self._activity.log_permission_denied(
                session.username, session.role.value, capability.value
            )
            raise
        return principal

    async def list_managers(self, session: Session) -> list[Manager]:
        principal = await self.authorize(session, Capability.MANAGE_MANAGERS)
        return list(principal.managers)

    async def add_manager(self, session: Session, username: str, password: str) -> Manager:
        await self.authorize(session, Capability.MANAGE_MANAGERS)
        manager = await self._credentials.add_manager(username, password)
        self._activity.log_manager_added(session.username, manager.username)
        return manager

    async def remove_manager(self, session: Session, username: str) -> bool:
        await self.authorize(session, Capability.MANAGE_MANAGERS)
        removed = await self._credentials.remove_manager(username)
        if removed:
            self._activity.log_manager_removed(session.username, username.strip())
        return removed

    async def change_credentials(
        self,
        session: Session,
        new_username: Optional[str] = None,
        new_password: Optional[str] = None,
    ) -> Principal:
        """
        Change the session's own username and/or password.

        The session is revoked on success: the caller must log in again
        with the new credentials.
        """
        await self.authorize(session, Capability.CHANGE_OWN_CREDENTIALS)

        who: Union[Role, str] = Role.OWNER if session.is_owner else session.username
        principal = await self._credentials.update_credentials(who, new_username, new_password)

        self._activity.log_credentials_changed(
            session.username,
            (new_username or "").strip() or None,
            password_changed=bool((new_password or "").strip()),
        )
        self._revoke(session, "credentials_changed")
        return principal

    async def credential_view(self, session: Session) -> CredentialView:
        """A started live view of the owner document."""
        await self.authorize(session, Capability.VIEW_LEDGER)
        return await CredentialView(self._credentials).start()

    def _revoke(self, session: Session, reason: str) -> None:
        self._revoked[session.session_id] = session
        self._activity.log_session_revoked(session.username, session.session_id, reason)

    def _forget_stale_revocations(self, principal: Principal) -> None:
        # A session whose credentials moved on is rejected without the revocation entry
        self._revoked = {
            session_id: revoked
            for session_id, revoked in self._revoked.items()
            if session_is_current(principal, revoked)
        }


class LedgerFlow:
    """
    Orchestrates the ledger: writes, totals, history and reports.

    Reads go through the same authorization as writes; a stale session
    can't keep reading after its credentials changed.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        accounts: AccountFlow,
        activity_logger: Optional[ActivityLogger] = None,
        report_tz=None,
    ):
        self._ledger = ledger
        self._accounts = accounts
        self._activity = activity_logger or ActivityLogger()
        self._report_tz = report_tz

    async def add_transaction(
        self,
        session: Session,
        type: Union[TransactionType, str],
        amount: Any,
        note: Optional[str] = "",
        receipt: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> Transaction:
        await self._accounts.authorize(session, Capability.ADD_TRANSACTION)
        return await self._ledger.record(
            type=type,
            amount=amount,
            note=note,
            receipt=receipt,
            added_by=session.username,
            date=date,
        )

    async def add_income(self, session: Session, amount: Any, note: Optional[str] = "") -> Transaction:
        return await self.add_transaction(session, TransactionType.INCOME, amount, note)

    async def add_expense(
        self,
        session: Session,
        amount: Any,
        note: Optional[str] = "",
        receipt: Optional[str] = None,
    ) -> Transaction:
        return await self.add_transaction(session, TransactionType.EXPENSE, amount, note, receipt)

    async def delete_transaction(self, session: Session, transaction_id: str) -> bool:
        """Owner only. Deleting an unknown id succeeds and changes nothing."""
        await self._accounts.authorize(session, Capability.DELETE_TRANSACTION)
        removed = await self._ledger.erase(transaction_id)
        if removed:
            self._activity.log_transaction_erased(transaction_id, session.username)
        return removed

    async def transactions(
        self,
        session: Session,
        type_filter: Union[TypeFilter, str] = TypeFilter.ALL,
    ) -> list[Transaction]:
        """History, newest first, optionally limited to one type."""
        await self._accounts.authorize(session, Capability.VIEW_LEDGER)
        return filter_by_type(await self._ledger.snapshot(), type_filter)

    async def totals(self, session: Session) -> Totals:
        await self._accounts.authorize(session, Capability.VIEW_LEDGER)
        return totals(await self._ledger.snapshot())

    async def expense_report(
        self,
        session: Session,
        mode: Union[ReportMode, str] = ReportMode.TODAY,
        date_from: Optional[Union[date, str]] = None,
        date_to: Optional[Union[date, str]] = None,
        today: Optional[date] = None,
    ) -> ExpenseReport:
        """Expense rows and total for today or a custom inclusive date range."""
        await self._accounts.authorize(session, Capability.VIEW_LEDGER)
        report = select(
            await self._ledger.snapshot(),
            mode,
            date_from,
            date_to,
            today=today,
            tz=self._report_tz,
        )
        self._activity.log_report_generated(
            actor=session.username,
            mode=report.mode.value,
            date_from=report.date_from.isoformat(),
            date_to=report.date_to.isoformat(),
            row_count=report.count,
            total=str(report.total),
        )
        return report

    async def live_view(self, session: Session) -> LedgerView:
        """A started live view of the ledger; stop() it when done."""
        await self._accounts.authorize(session, Capability.VIEW_LEDGER)
        return await LedgerView(self._ledger).start()


def create_document_store(activity_logger: Optional[ActivityLogger] = None) -> DocumentStoreInterface:
    """Build the configured document store backend."""
    backend = get_settings().storage.backend
    if backend == "google_sheets":
        return GoogleSheetsDocumentStore(activity_logger=activity_logger)
    return InMemoryDocumentStore(activity_logger=activity_logger)


def create_app_components(
    store: Optional[DocumentStoreInterface] = None,
) -> tuple[AccountFlow, LedgerFlow, DocumentStoreInterface]:
    """
    Factory function to create all application components.

    Args:
        store: Document store to use. If None, the backend named in
               settings is created.

    Returns:
        (account_flow, ledger_flow, store)
    """
    app_settings = get_settings().app
    configure_logging(app_settings.log_level)
    activity_logger = ActivityLogger()

    if store is None:
        try:
            store = create_document_store(activity_logger)
        except Exception as e:
            activity_logger.log_error("storage_not_configured", str(e))
            raise

    credentials = CredentialStore(store, activity_logger)
    account_flow = AccountFlow(credentials, activity_logger=activity_logger)
    ledger_flow = LedgerFlow(
        LedgerStore(store, activity_logger),
        account_flow,
        activity_logger=activity_logger,
        report_tz=app_settings.report_tzinfo,
    )

    return account_flow, ledger_flow, store
