"""Accounts package: credential store, authenticator and authorization gate."""

from shared_ledger.accounts.authenticator import (
    Authenticator,
    match_credentials,
    session_is_current,
)
from shared_ledger.accounts.authorization import (
    CAPABILITIES,
    Capability,
    is_permitted,
    permitted_capabilities,
    require,
)
from shared_ledger.accounts.credentials import (
    ADMINS_COLLECTION,
    CredentialStore,
    principal_from_snapshot,
    require_fields,
)

__all__ = [
    "ADMINS_COLLECTION",
    "Authenticator",
    "CAPABILITIES",
    "Capability",
    "CredentialStore",
    "is_permitted",
    "match_credentials",
    "permitted_capabilities",
    "principal_from_snapshot",
    "require",
    "require_fields",
    "session_is_current",
]
