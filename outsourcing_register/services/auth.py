"""Auth settings and credential checks: enable/disable auth, login, master password."""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from outsourcing_register.core.errors import INVALID_CREDENTIALS_MESSAGE, ValidationFailedError
from outsourcing_register.core.rbac import Role
from outsourcing_register.core.security import (
    MASTER_PASSWORD_MIN_LEN,
    PASSWORD_MAX_LEN,
    hash_password,
    verify_password,
)
from outsourcing_register.models import AUTH_SETTINGS_ID, AuthSettings, User
from outsourcing_register.schemas.auth import (
    AuthSettingsView,
    EnableAuthResult,
    LoginError,
    LoginResult,
)
from outsourcing_register.schemas.auth import User as UserSchema

logger = logging.getLogger(__name__)

# Bootstrap admin created when auth is enabled and no admin account exists.
DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "admin"
DEFAULT_ADMIN_DISPLAY_NAME = "Administrator"

# Identity shown for a master-override session; id 0 never matches a stored user.
MASTER_OVERRIDE_USER_ID = 0
MASTER_OVERRIDE_USERNAME = "master"
MASTER_OVERRIDE_DISPLAY_NAME = "Master Override"

INVALID_MASTER_PASSWORD_MESSAGE = "Invalid master password"
AUTH_DISABLED_MESSAGE = "Authentication is disabled"
DEFAULT_ADMIN_TAKEN_MESSAGE = (
    "Cannot enable authentication: no administrator exists and the username 'admin' is taken"
)


def _get_settings_row(db: Session) -> AuthSettings | None:
    return db.get(AuthSettings, AUTH_SETTINGS_ID)


def get_auth_settings(db: Session) -> AuthSettingsView:
    """Return the current auth settings. A missing row reads as auth disabled."""
    row = _get_settings_row(db)
    if row is None:
        logger.warning("auth_settings row is missing; treating authentication as disabled")
        return AuthSettingsView(auth_enabled=False, master_password_set=False)
    return AuthSettingsView(
        auth_enabled=bool(row.auth_enabled),
        master_password_set=bool(row.master_password_changed),
    )


def enable_auth(db: Session) -> EnableAuthResult:
    """
    Turn authentication on. If no admin exists, create the default admin (system user).

    The default credentials are well known, so the result tells the operator to change them.
    Raises ValidationFailedError, leaving auth off, when the default admin is needed but a
    non-admin account already holds its username.
    """
    row = _get_settings_row(db)
    if row is None:
        raise RuntimeError("auth_settings row is missing; the store was not migrated")

    admin_count = (
        db.scalar(select(func.count()).select_from(User).where(User.role == Role.ADMIN.value)) or 0
    )
    created = False
    if admin_count == 0:
        taken = db.execute(
            select(User.id).where(User.username == DEFAULT_ADMIN_USERNAME)
        ).scalar_one_or_none()
        if taken is not None:
            raise ValidationFailedError(DEFAULT_ADMIN_TAKEN_MESSAGE)
        db.add(
            User(
                username=DEFAULT_ADMIN_USERNAME,
                password_hash=hash_password(DEFAULT_ADMIN_PASSWORD),
                display_name=DEFAULT_ADMIN_DISPLAY_NAME,
                role=Role.ADMIN.value,
                is_system_user=True,
            )
        )
        created = True

    row.auth_enabled = True
    db.commit()

    if created:
        logger.warning(
            "Created default admin account '%s' with the default password; it must be changed",
            DEFAULT_ADMIN_USERNAME,
        )
    logger.info("Authentication enabled")
    return EnableAuthResult(
        auth_enabled=True,
        default_admin_created=created,
        default_admin_username=DEFAULT_ADMIN_USERNAME if created else None,
        follow_up=(
            f"Sign in as '{DEFAULT_ADMIN_USERNAME}' and change the default password now."
            if created
            else None
        ),
    )


def disable_auth(db: Session) -> None:
    """Turn authentication off. Users and the master password are kept for re-enabling."""
    row = _get_settings_row(db)
    if row is None:
        raise RuntimeError("auth_settings row is missing; the store was not migrated")
    if row.auth_enabled:
        row.auth_enabled = False
        db.commit()
    logger.info("Authentication disabled")


def login_user(db: Session, username: str, password: str) -> LoginResult:
    """
    Check username/password. Unknown user and wrong password give the same result.

    Username lookup is case-insensitive (NOCASE collation on the column).
    """
    user = db.execute(select(User).where(User.username == username)).scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        return LoginResult(
            success=False,
            error=LoginError.INVALID_CREDENTIALS,
            message=INVALID_CREDENTIALS_MESSAGE,
        )
    return LoginResult(success=True, user=UserSchema.model_validate(user))


def master_override_user() -> UserSchema:
    """Synthetic admin identity used for master-password sessions."""
    now = datetime.now(timezone.utc)
    return UserSchema(
        id=MASTER_OVERRIDE_USER_ID,
        username=MASTER_OVERRIDE_USERNAME,
        display_name=MASTER_OVERRIDE_DISPLAY_NAME,
        role=Role.ADMIN,
        is_system_user=True,
        created_at=now,
        updated_at=now,
    )


def login_with_master_password(db: Session, password: str) -> LoginResult:
    """Check the recovery password. Success yields the synthetic admin with is_master_override."""
    row = _get_settings_row(db)
    if row is None or not verify_password(password, row.master_password_hash):
        return LoginResult(
            success=False,
            error=LoginError.INVALID_CREDENTIALS,
            message=INVALID_MASTER_PASSWORD_MESSAGE,
        )
    logger.warning("Master password override used")
    return LoginResult(success=True, user=master_override_user(), is_master_override=True)


def change_master_password(db: Session, current_password: str, new_password: str) -> bool:
    """Rotate the master password. Returns False (no change) if current_password is wrong."""
    if not (MASTER_PASSWORD_MIN_LEN <= len(new_password) <= PASSWORD_MAX_LEN):
        raise ValidationFailedError(
            f"Master password must be {MASTER_PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters"
        )
    row = _get_settings_row(db)
    if row is None:
        return False
    if not verify_password(current_password, row.master_password_hash):
        return False
    row.master_password_hash = hash_password(new_password)
    row.master_password_changed = True
    db.commit()
    logger.info("Master password changed")
    return True
