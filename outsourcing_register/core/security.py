"""Password hashing and verification (bcrypt). Hash material never leaves the service layer."""

import bcrypt

from outsourcing_register.core.config import settings
from outsourcing_register.core.errors import ValidationFailedError

# bcrypt only looks at the first 72 bytes of the input.
BCRYPT_MAX_BYTES = 72

# Username and password rules shared by the user schemas and the CLI.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 50
USERNAME_PATTERN = r"^[A-Za-z0-9_]+$"
DISPLAY_NAME_MIN_LEN = 1
DISPLAY_NAME_MAX_LEN = 100
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 100
MASTER_PASSWORD_MIN_LEN = 8

# Factory recovery password seeded by the auth migration; operators are told to rotate it.
DEFAULT_MASTER_PASSWORD = "master123"


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Salted, so two calls never return the same hash."""
    if not plain_password:
        raise ValidationFailedError("Password must not be empty")
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    cost = rounds if rounds is not None else settings.BCRYPT_ROUNDS
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash. Malformed hashes count as a mismatch."""
    if not plain_password or not hashed:
        return False
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False
