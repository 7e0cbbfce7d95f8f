"""
Domain Errors for Shared Ledger

Every failure in the core is an expected, user-correctable input problem.
There is no fatal category: the presentation layer shows the message as a
transient notice and keeps its live views running.

Hierarchy:
    LedgerError
    ├── ValidationError      (bad or missing input, recovered locally)
    └── AuthError            (credentials, roles, sessions)

Storage failures live next to the storage interface
(see shared_ledger.services.storage.interface).
"""

from typing import Any, Optional


class LedgerError(Exception):
    """
    Base class for all Shared Ledger errors.

    Attributes:
        message: Human-readable description, safe to show to the user.
        details: Optional context for logging.
    """

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(LedgerError):
    """Empty or invalid input."""
    pass


class EmptyFieldError(ValidationError):
    """A required field was blank after trimming."""

    def __init__(self, *fields: str):
        names = ", ".join(fields) if fields else "all fields"
        super().__init__(f"Please fill in {names}", details={"fields": list(fields)})
        self.fields = fields


class InvalidAmountError(ValidationError):
    """Amount is not a positive finite number."""

    def __init__(self, raw: Any):
        super().__init__(
            "Please enter a valid amount greater than zero",
            details={"raw_amount": str(raw)},
        )
        self.raw = raw


class MissingDateRangeError(ValidationError):
    """A custom report was requested without both bounds."""

    def __init__(self):
        super().__init__("Please choose both a start and an end date")


class InvalidDateRangeError(ValidationError):
    """Report start date is after the end date."""

    def __init__(self, date_from: Any, date_to: Any):
        super().__init__(
            "The start date must be on or before the end date",
            details={"date_from": str(date_from), "date_to": str(date_to)},
        )


class NoChangeError(ValidationError):
    """A credential update carried neither a new username nor a new password."""

    def __init__(self):
        super().__init__("Enter a new username or a new password")


# =============================================================================
# AUTH ERRORS
# =============================================================================

class AuthError(LedgerError):
    """Authentication, registration or authorization failure."""
    pass


class InvalidCredentialsError(AuthError):
    """Username/password pair matched no account."""

    def __init__(self):
        super().__init__("Incorrect username or password")


class NoPrincipalError(AuthError):
    """Login attempted before the owner account was registered."""

    def __init__(self):
        super().__init__("No account exists yet, please create one first")


class AlreadyExistsError(AuthError):
    """The owner account has already been registered."""

    def __init__(self):
        super().__init__("An owner account already exists, please log in")


PrincipalExistsError = AlreadyExistsError


class DuplicateUsernameError(AuthError):
    """Username is already taken by the owner or a manager."""

    def __init__(self, username: str):
        super().__init__("This username already exists", details={"username": username})
        self.username = username


class UnknownAccountError(AuthError):
    """No account with the given username exists."""

    def __init__(self, username: str):
        super().__init__(f"No account named {username!r}", details={"username": username})
        self.username = username


class CredentialDataError(AuthError):
    """The stored owner document can't be read."""

    def __init__(self, doc_id: str):
        super().__init__(
            "The account data is damaged and can't be read, please contact the owner",
            details={"doc_id": doc_id},
        )
        self.doc_id = doc_id


class PermissionDeniedError(AuthError):
    """The session's role does not allow the requested operation."""

    def __init__(self, role: Any, capability: Any):
        super().__init__(
            "You are not allowed to do this",
            details={"role": str(role), "capability": str(capability)},
        )
        self.role = role
        self.capability = capability


class SessionExpiredError(AuthError):
    """The session no longer matches the stored credentials; log in again."""

    def __init__(self, username: str):
        super().__init__(
            "Your session has ended, please log in again",
            details={"username": username},
        )
        self.username = username
