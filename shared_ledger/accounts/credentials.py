"""
Credential Store

The whole credential graph is one document in the `admins` collection:
the owner's fields plus an embedded `managers` list.

DESIGN DECISION: Every change to that document is an optimistic write.
We read the document with its version, compute the new fields, and patch
with `expected_version`. If another writer got there first the store raises
WriteConflictError and we start again from a fresh read. Two owners adding
managers at the same moment therefore both land; neither silently erases
the other.

Input problems (blank fields, duplicate usernames) are raised from inside
the change function and are never retried.
"""

from typing import Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random,
)

from shared_ledger.activity import ActivityLogger
from shared_ledger.errors import (
    AlreadyExistsError,
    CredentialDataError,
    DuplicateUsernameError,
    EmptyFieldError,
    NoChangeError,
    NoPrincipalError,
    UnknownAccountError,
)
from shared_ledger.models.accounts import Manager, Principal, Role
from shared_ledger.models.documents import Snapshot, StoredDocument
from shared_ledger.services.storage import (
    DocumentStoreInterface,
    Unsubscribe,
    WriteConflictError,
)


ADMINS_COLLECTION = "admins"

# Attempts for one optimistic write before the conflict is reported
MAX_WRITE_ATTEMPTS = 5


def require_fields(**fields: Optional[str]) -> tuple[str, ...]:
    """Trim every field; raise EmptyFieldError naming the blank ones."""
    trimmed = {name: (value or "").strip() for name, value in fields.items()}
    blank = [name for name, value in trimmed.items() if not value]
    if blank:
        raise EmptyFieldError(*blank)
    return tuple(trimmed.values())


def principal_from_snapshot(
    snapshot: Snapshot,
    activity_logger: Optional[ActivityLogger] = None,
) -> Optional[Principal]:
    """
    The owner document in an `admins` snapshot, or None.

    If a registration race left more than one document, the earliest
    (createdAt, then id) is the owner.

    Raises:
        CredentialDataError: a stored document is not a valid owner record
    """
    if snapshot.is_empty:
        return None

    candidates = []
    for document in snapshot.documents:
        try:
            candidates.append(Principal.from_document(document))
        except PydanticValidationError as e:
            (activity_logger or ActivityLogger()).log_error(
                "malformed_principal",
                str(e),
                details={"doc_id": document.id},
            )
            raise CredentialDataError(document.id)

    return min(candidates, key=lambda p: (p.created_at, p.doc_id))


class CredentialStore:
    """Reads and writes the owner document and its embedded managers."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._store = store
        self._activity = activity_logger or ActivityLogger()

    async def get_principal(self) -> Optional[Principal]:
        return principal_from_snapshot(
            await self._store.fetch(ADMINS_COLLECTION), self._activity
        )

    async def observe(self, callback: Callable[[Optional[Principal]], None]) -> Unsubscribe:
        """Receive the current owner document now and after every change."""
        return await self._store.subscribe(
            ADMINS_COLLECTION,
            lambda snapshot: callback(principal_from_snapshot(snapshot, self._activity)),
        )

    async def create_principal(self, username: str, password: str) -> Principal:
        """
        One-time bootstrap of the owner account.

        Raises:
            EmptyFieldError: blank username or password
            AlreadyExistsError: an owner already exists, or another
                                registration won the race
        """
        username, password = require_fields(username=username, password=password)

        if await self.get_principal() is not None:
            raise AlreadyExistsError()

        principal = Principal(username=username, password=password, role=Role.OWNER)
        doc_id = await self._store.insert(ADMINS_COLLECTION, principal.to_document())

        # First writer wins: re-read and back out if someone else is earlier
        winner = await self.get_principal()
        if winner is None or winner.doc_id != doc_id:
            await self._store.remove(ADMINS_COLLECTION, doc_id)
            raise AlreadyExistsError()

        self._activity.log_principal_registered(username)
        return winner

    async def add_manager(self, username: str, password: str) -> Manager:
        """
        Add a manager under the owner.

        Raises:
            EmptyFieldError: blank username or password
            DuplicateUsernameError: username taken by the owner or a manager
        """
        username, password = require_fields(username=username, password=password)
        manager = Manager(username=username, password=password)

        def change(principal: Principal) -> dict:
            if username in principal.usernames:
                raise DuplicateUsernameError(username)
            return {
                "managers": [m.to_document() for m in principal.managers]
                + [manager.to_document()]
            }

        await self._apply(change)
        return manager

    async def remove_manager(self, username: str) -> bool:
        """Remove a manager by username; unknown usernames are a no-op."""
        username = (username or "").strip()
        principal = await self.get_principal()
        if principal is None or principal.find_manager(username) is None:
            return False

        def change(principal: Principal) -> dict:
            return {
                "managers": [
                    m.to_document() for m in principal.managers if m.username != username
                ]
            }

        await self._apply(change)
        return True

    async def update_credentials(
        self,
        who: Union[Role, str],
        new_username: Optional[str] = None,
        new_password: Optional[str] = None,
    ) -> Principal:
        """
        Change the username and/or password of one account.

        Args:
            who: Role.OWNER for the owner, otherwise a manager's username.
                 Only the matching entry is rewritten.
            new_username: Replacement username; blank keeps the current one
            new_password: Replacement password; blank keeps the current one

        Raises:
            NoChangeError: both fields blank
            DuplicateUsernameError: new username belongs to another account
            UnknownAccountError: no manager with that username
        """
        new_username = (new_username or "").strip() or None
        new_password = (new_password or "").strip() or None
        if new_username is None and new_password is None:
            raise NoChangeError()

        def taken(principal: Principal, current: str) -> bool:
            return (
                new_username is not None
                and new_username != current
                and new_username in principal.usernames
            )

        def change(principal: Principal) -> dict:
            if who is Role.OWNER:
                if taken(principal, principal.username):
                    raise DuplicateUsernameError(new_username)
                fields = {}
                if new_username:
                    fields["username"] = new_username
                if new_password:
                    fields["password"] = new_password
                return fields

            manager = principal.find_manager(who)
            if manager is None:
                raise UnknownAccountError(who)
            if taken(principal, manager.username):
                raise DuplicateUsernameError(new_username)

            updates = {}
            if new_username:
                updates["username"] = new_username
            if new_password:
                updates["password"] = new_password
            replacement = manager.model_copy(update=updates)
            return {
                "managers": [
                    (replacement if m.username == manager.username else m).to_document()
                    for m in principal.managers
                ]
            }

        return await self._apply(change)

    @retry(
        retry=retry_if_exception_type(WriteConflictError),
        stop=stop_after_attempt(MAX_WRITE_ATTEMPTS),
        wait=wait_random(min=0, max=0.05),
        reraise=True,
    )
    async def _apply(self, change: Callable[[Principal], dict]) -> Principal:
        """Read, change, and write the owner document if its version is unchanged."""
        principal = await self.get_principal()
        if principal is None:
            raise NoPrincipalError()

        fields = change(principal)
        version = await self._store.patch(
            ADMINS_COLLECTION,
            principal.doc_id,
            fields,
            expected_version=principal.version,
        )
        return Principal.from_document(
            StoredDocument(
                id=principal.doc_id,
                version=version,
                data={**principal.to_document(), **fields},
            )
        )
