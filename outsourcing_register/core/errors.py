"""Domain errors raised by the credential, user, and backup services.

Each error carries a human-readable ``message`` that is safe to show to the
operator. Credential failures deliberately share one message so that callers
cannot tell an unknown username from a wrong password.
"""

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"


class RegisterError(Exception):
    """Base class for expected, user-facing failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidCredentialsError(RegisterError):
    """Raised when a login or password check fails."""

    def __init__(self, message: str = INVALID_CREDENTIALS_MESSAGE) -> None:
        super().__init__(message)


class DuplicateUsernameError(RegisterError):
    """Raised when a username already exists (case-insensitive)."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__("Username already exists")


class SystemUserProtectedError(RegisterError):
    """Raised when an operation would change the role of the system account."""

    def __init__(self, message: str = "Cannot change role of system user") -> None:
        super().__init__(message)


class DeletionBlockedError(RegisterError):
    """Raised when a user deletion would violate an account invariant."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class UserNotFoundError(RegisterError):
    """Raised when a user id does not exist."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__("User not found")


class RecordNotFoundError(RegisterError):
    """Raised when an entity record (supplier, event, issue, critical monitor) is missing."""

    def __init__(self, kind: str, key: object) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} '{key}' not found")


class StoreUnavailableError(RegisterError):
    """Raised when the data store is closed for backup/restore or another one is running."""


class ArchiveMalformedError(RegisterError):
    """Raised when a backup archive is unreadable or lacks an expected file."""


class ValidationFailedError(RegisterError):
    """Raised when an input (path, username, password, options) has the wrong shape."""


class LastAdminError(RegisterError):
    """Raised when a change would leave the store without an administrator account."""
