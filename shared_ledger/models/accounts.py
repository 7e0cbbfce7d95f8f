"""
Account Models for Shared Ledger

The credential graph is a single owner (Principal) document with the
managers embedded in it. Sessions are the in-memory result of a login and
are passed explicitly to every core operation.

DESIGN DECISION: Roles are a closed enumeration. Authorization looks roles
up in an explicit table (see shared_ledger.accounts.authorization), so a
new role can't slip through a string comparison.
"""

import hashlib
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from shared_ledger.models.documents import StoredDocument


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def credential_digest(password: str) -> str:
    """SHA-256 hex digest of a password, used to pin a session to its credentials."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


class Role(str, Enum):
    """Account roles."""
    OWNER = "owner"
    MANAGER = "manager"


class BootstrapStatus(str, Enum):
    """Whether the one-time owner registration has happened."""
    NO_PRINCIPAL = "no_principal"
    HAS_PRINCIPAL = "has_principal"


# =============================================================================
# CREDENTIAL GRAPH
# =============================================================================

class Manager(BaseModel):
    """
    A delegated account stored inside the Principal's `managers` list.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, repr=False)
    role: Role = Field(default=Role.MANAGER)
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")

    @field_validator("role")
    @classmethod
    def must_be_manager(cls, v: Role) -> Role:
        if v is not Role.MANAGER:
            raise ValueError("Manager records must carry the manager role")
        return v

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Principal(BaseModel):
    """
    The single owner account and root of the credential graph.

    `doc_id` and `version` describe where the record was read from; they are
    not part of the persisted body and are used for optimistic writes.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, repr=False)
    role: Role = Field(default=Role.OWNER)
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    managers: list[Manager] = Field(default_factory=list)

    doc_id: Optional[str] = Field(default=None, exclude=True)
    version: int = Field(default=0, ge=0, exclude=True)

    @field_validator("role")
    @classmethod
    def must_be_owner(cls, v: Role) -> Role:
        if v is not Role.OWNER:
            raise ValueError("The principal must carry the owner role")
        return v

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    @field_validator("managers", mode="before")
    @classmethod
    def none_means_empty(cls, v):
        return v or []

    @property
    def usernames(self) -> list[str]:
        """Every username in the credential graph, owner first."""
        return [self.username] + [m.username for m in self.managers]

    def find_manager(self, username: str) -> Optional[Manager]:
        for manager in self.managers:
            if manager.username == username:
                return manager
        return None

    def find_account(self, username: str) -> Optional[Union["Principal", Manager]]:
        """Owner first, then managers in list order."""
        if self.username == username:
            return self
        return self.find_manager(username)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, document: StoredDocument) -> "Principal":
        return cls.model_validate(
            {**document.data, "doc_id": document.id, "version": document.version}
        )


class BootstrapState(BaseModel):
    """Result of reading the credential store once at startup."""

    status: BootstrapStatus
    principal: Optional[Principal] = None

    @property
    def needs_registration(self) -> bool:
        return self.status is BootstrapStatus.NO_PRINCIPAL


# =============================================================================
# SESSION
# =============================================================================

class Session(BaseModel):
    """
    Result of a successful login or registration.

    Process-local and never persisted. The credential digest lets the
    authenticator reject a session whose account was renamed, had its
    password changed or was removed.
    """
    model_config = ConfigDict(frozen=True)

    session_id: UUID = Field(default_factory=uuid4)
    username: str = Field(..., min_length=1)
    role: Role
    credential_digest: str = Field(..., repr=False)
    issued_at: datetime = Field(default_factory=utc_now)

    @property
    def is_owner(self) -> bool:
        return self.role is Role.OWNER
