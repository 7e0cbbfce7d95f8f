"""
Tests for login, registration and session checks

Test strategy:
1. Owner is matched before managers
2. Stale sessions are rejected once the stored credentials move on
3. The role table is complete and closed
"""

import asyncio

import pytest

from shared_ledger.accounts import (
    ADMINS_COLLECTION,
    CAPABILITIES,
    Capability,
    is_permitted,
    match_credentials,
    permitted_capabilities,
    require,
    session_is_current,
)
from shared_ledger.errors import (
    AlreadyExistsError,
    CredentialDataError,
    EmptyFieldError,
    InvalidCredentialsError,
    LedgerError,
    NoPrincipalError,
    PermissionDeniedError,
    PrincipalExistsError,
    SessionExpiredError,
)
from shared_ledger.models import Manager, Principal, Role, Session, credential_digest


class TestBootstrapState:
    """Tests for first-run detection."""

    def test_no_principal(self, authenticator):
        """Test that an empty store asks for registration."""
        state = asyncio.run(authenticator.resolve_bootstrap_state())
        assert state.needs_registration
        assert state.principal is None

    def test_after_registration(self, authenticator):
        """Test that a registered owner switches to login."""
        async def scenario():
            await authenticator.register("alice", "pw")
            return await authenticator.resolve_bootstrap_state()

        state = asyncio.run(scenario())
        assert not state.needs_registration
        assert state.principal.username == "alice"


class TestRegister:
    """Tests for owner registration."""

    def test_register_logs_in_as_owner(self, authenticator):
        """Test that registration returns an owner session."""
        session = asyncio.run(authenticator.register(" alice ", "pw"))
        assert session.username == "alice"
        assert session.role is Role.OWNER
        assert session.credential_digest == credential_digest("pw")

    def test_register_twice(self, authenticator):
        """Test that a second registration is refused."""
        asyncio.run(authenticator.register("alice", "pw"))
        with pytest.raises(PrincipalExistsError):
            asyncio.run(authenticator.register("bob", "pw"))

    def test_principal_exists_alias(self):
        """Test that both names refer to the same error."""
        assert PrincipalExistsError is AlreadyExistsError


class TestLogin:
    """Tests for login."""

    @pytest.fixture(autouse=True)
    def accounts(self, authenticator, credentials):
        async def setup():
            await authenticator.register("alice", "pw")
            await credentials.add_manager("sara", "x")

        asyncio.run(setup())

    def test_owner_login(self, authenticator):
        """Test owner login."""
        session = asyncio.run(authenticator.login("alice", "pw"))
        assert session.role is Role.OWNER

    def test_manager_login(self, authenticator):
        """Test manager login with trimmed input."""
        session = asyncio.run(authenticator.login("  sara ", " x "))
        assert session.username == "sara"
        assert session.role is Role.MANAGER

    @pytest.mark.parametrize("username,password", [
        ("alice", "wrong"),
        ("sara", "pw"),
        ("ghost", "pw"),
    ])
    def test_invalid_credentials(self, authenticator, username, password):
        """Test that mismatched pairs are refused."""
        with pytest.raises(InvalidCredentialsError):
            asyncio.run(authenticator.login(username, password))

    def test_blank_fields(self, authenticator):
        """Test that blank input is an empty-field error, not a failed login."""
        with pytest.raises(EmptyFieldError):
            asyncio.run(authenticator.login("alice", "   "))

    def test_each_login_is_a_new_session(self, authenticator):
        """Test that sessions are distinct values."""
        first = asyncio.run(authenticator.login("alice", "pw"))
        second = asyncio.run(authenticator.login("alice", "pw"))
        assert first.session_id != second.session_id


def test_login_before_registration(authenticator):
    """Test that login with no owner routes to registration."""
    with pytest.raises(NoPrincipalError):
        asyncio.run(authenticator.login("alice", "pw"))


def test_login_with_damaged_owner_document(authenticator, store):
    """Test that a broken owner record is reported instead of crashing login."""
    asyncio.run(store.insert(ADMINS_COLLECTION, {"username": "", "password": "x"}))

    with pytest.raises(CredentialDataError):
        asyncio.run(authenticator.login("alice", "pw"))
    with pytest.raises(LedgerError):
        asyncio.run(authenticator.resolve_bootstrap_state())


class TestMatchCredentials:
    """Tests for owner-first matching."""

    def test_owner_checked_first(self):
        """Test that an owner match wins over a same-named manager."""
        principal = Principal(
            username="alice",
            password="pw",
            managers=[Manager(username="alice", password="pw")],
        )
        assert match_credentials(principal, "alice", "pw") is Role.OWNER

    def test_managers_in_order(self):
        """Test that the first matching manager decides."""
        principal = Principal(
            username="alice",
            password="pw",
            managers=[
                Manager(username="alice", password="other"),
                Manager(username="sara", password="x"),
            ],
        )
        assert match_credentials(principal, "alice", "other") is Role.MANAGER
        assert match_credentials(principal, "sara", "x") is Role.MANAGER
        assert match_credentials(principal, "sara", "pw") is None


class TestSessionVerification:
    """Tests for stale session detection."""

    @pytest.fixture
    def sessions(self, authenticator, credentials):
        async def setup():
            owner = await authenticator.register("alice", "pw")
            await credentials.add_manager("sara", "x")
            manager = await authenticator.login("sara", "x")
            return owner, manager

        return asyncio.run(setup())

    def test_current_session(self, authenticator, sessions):
        """Test that a fresh session verifies."""
        owner, _ = sessions
        principal = asyncio.run(authenticator.verify_session(owner))
        assert principal.username == "alice"

    def test_password_change_expires_session(self, authenticator, credentials, sessions):
        """Test that a new password invalidates older sessions."""
        owner, manager = sessions
        asyncio.run(credentials.update_credentials(Role.OWNER, None, "new"))

        with pytest.raises(SessionExpiredError):
            asyncio.run(authenticator.verify_session(owner))
        asyncio.run(authenticator.verify_session(manager))

    def test_rename_expires_session(self, authenticator, credentials, sessions):
        """Test that a renamed manager must log in again."""
        _, manager = sessions
        asyncio.run(credentials.update_credentials("sara", "sarah", None))
        with pytest.raises(SessionExpiredError):
            asyncio.run(authenticator.verify_session(manager))

    def test_removed_manager(self, authenticator, credentials, sessions):
        """Test that a removed manager's session is rejected."""
        _, manager = sessions
        asyncio.run(credentials.remove_manager("sara"))
        with pytest.raises(SessionExpiredError):
            asyncio.run(authenticator.verify_session(manager))

    def test_role_must_match(self):
        """Test that a session can't claim a role its account doesn't have."""
        principal = Principal(
            username="alice",
            password="pw",
            managers=[Manager(username="sara", password="x")],
        )
        forged = Session(username="sara", role=Role.OWNER, credential_digest=credential_digest("x"))
        assert not session_is_current(principal, forged)
        assert not session_is_current(None, forged)


class TestAuthorization:
    """Tests for the role/capability table."""

    def test_every_role_has_a_row(self):
        """Test that no role is left out of the table."""
        assert set(CAPABILITIES) == set(Role)

    def test_owner_can_do_everything(self):
        """Test owner capabilities."""
        assert permitted_capabilities(Role.OWNER) == frozenset(Capability)

    @pytest.mark.parametrize("capability,allowed", [
        (Capability.ADD_TRANSACTION, True),
        (Capability.VIEW_LEDGER, True),
        (Capability.CHANGE_OWN_CREDENTIALS, True),
        (Capability.DELETE_TRANSACTION, False),
        (Capability.MANAGE_MANAGERS, False),
    ])
    def test_manager_capabilities(self, capability, allowed):
        """Test the manager row."""
        assert is_permitted(Role.MANAGER, capability) is allowed

    def test_unknown_role_gets_nothing(self):
        """Test that plain strings are not roles."""
        assert permitted_capabilities("owner") == frozenset()
        assert not is_permitted("owner", Capability.VIEW_LEDGER)

    def test_require(self):
        """Test that require raises for a missing capability."""
        session = Session(username="sara", role=Role.MANAGER, credential_digest=credential_digest("x"))
        require(session, Capability.ADD_TRANSACTION)
        with pytest.raises(PermissionDeniedError) as exc:
            require(session, Capability.DELETE_TRANSACTION)
        assert exc.value.capability is Capability.DELETE_TRANSACTION


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
