"""
Authenticator

Turns a username/password pair into a role-tagged Session, handles the
one-time owner registration, and checks that a Session still matches the
stored credentials.

Passwords are stored and compared as given (trimmed); see DESIGN.md.
"""

import hmac
from typing import Optional

from shared_ledger.accounts.credentials import CredentialStore, require_fields
from shared_ledger.activity import ActivityLogger
from shared_ledger.errors import (
    InvalidCredentialsError,
    NoPrincipalError,
    PrincipalExistsError,
    SessionExpiredError,
)
from shared_ledger.models.accounts import (
    BootstrapState,
    BootstrapStatus,
    Principal,
    Role,
    Session,
    credential_digest,
)


def _same_secret(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def match_credentials(principal: Principal, username: str, password: str) -> Optional[Role]:
    """
    Role of the account matching the pair, or None.

    The owner is checked first, then managers in list order; the first
    match wins.
    """
    if principal.username == username and _same_secret(principal.password, password):
        return Role.OWNER
    for manager in principal.managers:
        if manager.username == username and _same_secret(manager.password, password):
            return Role.MANAGER
    return None


def session_is_current(principal: Optional[Principal], session: Session) -> bool:
    """False once the session's account is gone, renamed or has a new password."""
    if principal is None:
        return False
    account = principal.find_account(session.username)
    if account is None or account.role is not session.role:
        return False
    return _same_secret(credential_digest(account.password), session.credential_digest)


class Authenticator:
    """Login, registration and session verification."""

    def __init__(
        self,
        credentials: CredentialStore,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._credentials = credentials
        self._activity = activity_logger or ActivityLogger()

    async def resolve_bootstrap_state(self) -> BootstrapState:
        principal = await self._credentials.get_principal()
        if principal is None:
            return BootstrapState(status=BootstrapStatus.NO_PRINCIPAL)
        return BootstrapState(status=BootstrapStatus.HAS_PRINCIPAL, principal=principal)

    async def login(self, username: str, password: str) -> Session:
        """
        Authenticate a username/password pair.

        Raises:
            EmptyFieldError: blank username or password
            NoPrincipalError: nobody has registered yet; route to register()
            InvalidCredentialsError: no account matches
        """
        username, password = require_fields(username=username, password=password)

        principal = await self._credentials.get_principal()
        if principal is None:
            self._activity.log_login_failed(username, "no_principal")
            raise NoPrincipalError()

        role = match_credentials(principal, username, password)
        if role is None:
            self._activity.log_login_failed(username, "invalid_credentials")
            raise InvalidCredentialsError()

        self._activity.log_login_succeeded(username, role.value)
        return self._issue(username, role, password)

    async def register(self, username: str, password: str) -> Session:
        """
        Create the owner account and log it in.

        Only valid while no owner exists.

        Raises:
            EmptyFieldError: blank username or password
            PrincipalExistsError: an owner already exists
        """
        username, password = require_fields(username=username, password=password)

        state = await self.resolve_bootstrap_state()
        if not state.needs_registration:
            raise PrincipalExistsError()

        principal = await self._credentials.create_principal(username, password)
        return self._issue(principal.username, Role.OWNER, principal.password)

    async def verify_session(self, session: Session) -> Principal:
        """
        Confirm the session still matches the stored credentials.

        Returns:
            The current owner document

        Raises:
            SessionExpiredError: the account was removed, renamed or its
                                 password changed since login
        """
        principal = await self._credentials.get_principal()
        if not session_is_current(principal, session):
            self._activity.log_session_rejected(session.username, session.session_id)
            raise SessionExpiredError(session.username)
        return principal

    @staticmethod
    def _issue(username: str, role: Role, password: str) -> Session:
        return Session(
            username=username,
            role=role,
            credential_digest=credential_digest(password),
        )
