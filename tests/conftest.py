"""
Shared fixtures.

Every fixture runs against the in-memory document store, so no test talks
to Google Sheets. Async operations are driven with asyncio.run; the
in-memory store holds no loop-bound state, so one store can serve several
runs inside a test.
"""

import asyncio
from datetime import timezone

import pytest

from shared_ledger.accounts import Authenticator, CredentialStore
from shared_ledger.ledger import LedgerStore
from shared_ledger.orchestrator import AccountFlow, LedgerFlow
from shared_ledger.services.storage import InMemoryDocumentStore


OWNER = ("alice", "owner-pass")
MANAGER = ("sara", "manager-pass")


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def credentials(store):
    return CredentialStore(store)


@pytest.fixture
def authenticator(credentials):
    return Authenticator(credentials)


@pytest.fixture
def ledger(store):
    return LedgerStore(store)


@pytest.fixture
def account_flow(credentials):
    return AccountFlow(credentials)


@pytest.fixture
def ledger_flow(ledger, account_flow):
    return LedgerFlow(ledger, account_flow, report_tz=timezone.utc)


@pytest.fixture
def owner_session(account_flow):
    return asyncio.run(account_flow.register(*OWNER))


@pytest.fixture
def manager_session(account_flow, owner_session):
    async def scenario():
        await account_flow.add_manager(owner_session, *MANAGER)
        return await account_flow.login(*MANAGER)

    return asyncio.run(scenario())
