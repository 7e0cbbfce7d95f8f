"""
Authorization Gate

A stateless lookup from role to permitted operations. Every flow calls
`require` with the caller's Session before touching a store.

| Capability              | owner | manager          |
|-------------------------|-------|------------------|
| ADD_TRANSACTION         | yes   | yes              |
| DELETE_TRANSACTION      | yes   | no               |
| MANAGE_MANAGERS         | yes   | no               |
| CHANGE_OWN_CREDENTIALS  | yes   | yes (self only)  |
| VIEW_LEDGER             | yes   | yes              |

"Self only" holds because credential changes always target the session's
own account (see AccountFlow.change_credentials).
"""

from enum import Enum

from shared_ledger.errors import PermissionDeniedError
from shared_ledger.models.accounts import Role, Session


class Capability(str, Enum):
    """Operations guarded by the gate."""
    ADD_TRANSACTION = "add_transaction"
    DELETE_TRANSACTION = "delete_transaction"
    MANAGE_MANAGERS = "manage_managers"
    CHANGE_OWN_CREDENTIALS = "change_own_credentials"
    VIEW_LEDGER = "view_ledger"


CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.OWNER: frozenset(Capability),
    Role.MANAGER: frozenset({
        Capability.ADD_TRANSACTION,
        Capability.CHANGE_OWN_CREDENTIALS,
        Capability.VIEW_LEDGER,
    }),
}

# Every role must have an explicit row
_unmapped = set(Role) - set(CAPABILITIES)
if _unmapped:
    raise RuntimeError(f"Roles without a capability row: {sorted(r.value for r in _unmapped)}")


def permitted_capabilities(role: Role) -> frozenset[Capability]:
    """Capabilities granted to a role; unknown roles get none."""
    if not isinstance(role, Role):
        return frozenset()
    return CAPABILITIES[role]


def is_permitted(role: Role, capability: Capability) -> bool:
    return capability in permitted_capabilities(role)


def require(session: Session, capability: Capability) -> None:
    """Raise PermissionDeniedError unless the session's role grants `capability`."""
    if not is_permitted(session.role, capability):
        raise PermissionDeniedError(session.role, capability)
