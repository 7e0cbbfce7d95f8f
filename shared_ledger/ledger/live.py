"""
Live Views

DESIGN DECISION: Live data is modelled as a channel of immutable snapshots.
The store's subscription is the producer; each consumer receives whole
values and replaces what it held. There is no diffing and no partial-update
optimization; every snapshot is the truth.

LedgerView keeps the ordered transactions and their totals.
CredentialView keeps the owner document, so a dashboard can notice that its
session's credentials changed and send the user back to login.
"""

import asyncio
from typing import AsyncIterator, Callable, Generic, Optional, TypeVar

from shared_ledger.accounts.authenticator import session_is_current
from shared_ledger.accounts.credentials import CredentialStore
from shared_ledger.ledger.aggregator import totals
from shared_ledger.ledger.store import LedgerStore
from shared_ledger.models.accounts import Principal, Session
from shared_ledger.models.ledger import LedgerState, Totals, Transaction
from shared_ledger.services.storage import Unsubscribe


T = TypeVar("T")

_CLOSED = object()


class SnapshotChannel(Generic[T]):
    """
    Fan-out of immutable values to any number of async consumers.

    A consumer that starts iterating first receives the latest value, then
    every value published afterwards. Closing the channel ends every
    iteration.
    """

    def __init__(self):
        self._latest: Optional[T] = None
        self._queues: list[asyncio.Queue] = []
        self._closed = False

    @property
    def latest(self) -> Optional[T]:
        return self._latest

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, value: T) -> None:
        if self._closed:
            return
        self._latest = value
        for queue in self._queues:
            queue.put_nowait(value)

    def close(self) -> None:
        self._closed = True
        for queue in self._queues:
            queue.put_nowait(_CLOSED)

    async def updates(self) -> AsyncIterator[T]:
        queue: asyncio.Queue = asyncio.Queue()
        if self._latest is not None:
            queue.put_nowait(self._latest)
        if self._closed:
            queue.put_nowait(_CLOSED)
        self._queues.append(queue)
        try:
            while True:
                value = await queue.get()
                if value is _CLOSED:
                    return
                yield value
        finally:
            self._queues.remove(queue)


class LedgerView:
    """
    Live ledger state for one dashboard.

    Usage:
        async with LedgerView(ledger) as view:
            view.totals.balance
            async for state in view.channel.updates():
                render(state)
    """

    def __init__(self, ledger: LedgerStore):
        self._ledger = ledger
        self._state = LedgerState()
        self._unsubscribe: Optional[Unsubscribe] = None
        self._listeners: list[Callable[[LedgerState], None]] = []
        self.channel: SnapshotChannel[LedgerState] = SnapshotChannel()

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._state.transactions

    @property
    def totals(self) -> Totals:
        return self._state.totals

    def add_listener(self, listener: Callable[[LedgerState], None]) -> None:
        self._listeners.append(listener)

    async def start(self) -> "LedgerView":
        if self._unsubscribe is None:
            if self.channel.closed:
                self.channel = SnapshotChannel()
            self._unsubscribe = await self._ledger.observe(self._replace)
        return self

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.channel.close()

    async def __aenter__(self) -> "LedgerView":
        return await self.start()

    async def __aexit__(self, *exc_info) -> None:
        self.stop()

    def _replace(self, transactions: list[Transaction]) -> None:
        self._state = LedgerState(
            transactions=tuple(transactions),
            totals=totals(transactions),
        )
        self.channel.publish(self._state)
        for listener in list(self._listeners):
            listener(self._state)


class CredentialView:
    """Live owner document; answers whether a session is still current."""

    def __init__(self, credentials: CredentialStore):
        self._credentials = credentials
        self._principal: Optional[Principal] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self.channel: SnapshotChannel[Optional[Principal]] = SnapshotChannel()

    @property
    def principal(self) -> Optional[Principal]:
        return self._principal

    @property
    def managers(self) -> list:
        return list(self._principal.managers) if self._principal else []

    def is_current(self, session: Session) -> bool:
        return session_is_current(self._principal, session)

    async def start(self) -> "CredentialView":
        if self._unsubscribe is None:
            if self.channel.closed:
                self.channel = SnapshotChannel()
            self._unsubscribe = await self._credentials.observe(self._replace)
        return self

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.channel.close()

    async def __aenter__(self) -> "CredentialView":
        return await self.start()

    async def __aexit__(self, *exc_info) -> None:
        self.stop()

    def _replace(self, principal: Optional[Principal]) -> None:
        self._principal = principal
        self.channel.publish(principal)
