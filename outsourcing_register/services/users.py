"""User lifecycle: create, update and delete local accounts under the account protection rules."""

import logging
from typing import Any

from pydantic import BaseModel, ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from outsourcing_register.core.config import settings
from outsourcing_register.core.errors import (
    DeletionBlockedError,
    DuplicateUsernameError,
    LastAdminError,
    SystemUserProtectedError,
    UserNotFoundError,
    ValidationFailedError,
)
from outsourcing_register.core.rbac import (
    ROLE_DESCRIPTIONS,
    ROLE_HIERARCHY,
    ROLE_LABELS,
    ROLE_PERMISSIONS,
    Role,
)
from outsourcing_register.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    hash_password,
    verify_password,
)
from outsourcing_register.models import User
from outsourcing_register.schemas.auth import (
    CanDeleteUserResult,
    CreateUserInput,
    RoleInfo,
    UpdateUserInput,
)
from outsourcing_register.schemas.auth import User as UserSchema

logger = logging.getLogger(__name__)

REASON_NOT_FOUND = "User not found"
REASON_SELF = "You cannot delete your own account"
REASON_SYSTEM_USER = "Cannot delete the system administrator account"
REASON_LAST_ADMIN = "Cannot delete the last administrator account"
LAST_ADMIN_ROLE_MESSAGE = "Cannot change the role of the last administrator account"


def _coerce(model: type[BaseModel], data: BaseModel | dict[str, Any]) -> Any:
    """Accept a schema instance or a plain dict; report shape problems as ValidationFailedError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationFailedError(f"{field}: {first.get('msg', 'invalid value')}") from e


def _admin_count(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(User).where(User.role == Role.ADMIN.value)) or 0


def get_all_users(db: Session) -> list[UserSchema]:
    """All users, oldest first. Hashes are never included."""
    rows = db.execute(select(User).order_by(User.created_at, User.id)).scalars().all()
    return [UserSchema.model_validate(u) for u in rows]


def get_user_by_id(db: Session, user_id: int) -> UserSchema | None:
    user = db.get(User, user_id)
    return UserSchema.model_validate(user) if user is not None else None


def get_user_by_username(db: Session, username: str) -> UserSchema | None:
    user = db.execute(select(User).where(User.username == username)).scalar_one_or_none()
    return UserSchema.model_validate(user) if user is not None else None


def create_user(db: Session, data: CreateUserInput | dict[str, Any]) -> UserSchema:
    """Create a regular (non-system) user. Raises DuplicateUsernameError on a case-insensitive clash."""
    payload: CreateUserInput = _coerce(CreateUserInput, data)

    existing = db.execute(
        select(User.id).where(User.username == payload.username)
    ).scalar_one_or_none()
    if existing is not None:
        raise DuplicateUsernameError(payload.username)

    user = User(
        username=payload.username,
        password_hash=hash_password(payload.password),
        display_name=payload.display_name,
        role=payload.role.value,
        is_system_user=False,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        # Unique index caught a concurrent insert between the check and the commit.
        db.rollback()
        raise DuplicateUsernameError(payload.username) from e
    db.refresh(user)
    logger.info("User created: %s (%s)", user.username, user.role)
    return UserSchema.model_validate(user)


def update_user(db: Session, user_id: int, data: UpdateUserInput | dict[str, Any]) -> UserSchema:
    """
    Partially update display name, role and/or password.

    A blank or omitted password keeps the current hash. The system user must stay admin,
    and the last admin cannot be demoted.
    """
    changes: UpdateUserInput = _coerce(UpdateUserInput, data)
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    demoting = changes.role is not None and changes.role != Role.ADMIN and user.role == Role.ADMIN.value
    if demoting and user.is_system_user:
        raise SystemUserProtectedError()
    if demoting and _admin_count(db) <= 1:
        raise LastAdminError(LAST_ADMIN_ROLE_MESSAGE)

    changed = False
    if changes.display_name is not None:
        user.display_name = changes.display_name
        changed = True
    if changes.role is not None:
        user.role = changes.role.value
        changed = True
    if changes.password:
        user.password_hash = hash_password(changes.password)
        changed = True

    if not changed:
        return UserSchema.model_validate(user)

    db.commit()
    db.refresh(user)
    logger.info("User updated: %s", user.username)
    return UserSchema.model_validate(user)


def can_delete_user(
    db: Session,
    user_id: int,
    current_user_id: int | None = None,
    system_user_policy: str | None = None,
) -> CanDeleteUserResult:
    """
    Advisory check before deleting a user. delete_user repeats it at execution time.

    Blocked when the user is missing, is the caller, is the system user (policy "never"),
    or is the last admin.
    """
    policy = system_user_policy or settings.SYSTEM_USER_DELETION_POLICY
    user = db.get(User, user_id)
    if user is None:
        return CanDeleteUserResult(can_delete=False, reason=REASON_NOT_FOUND)
    if current_user_id is not None and user.id == current_user_id:
        return CanDeleteUserResult(can_delete=False, reason=REASON_SELF)
    if user.is_system_user and policy == "never":
        return CanDeleteUserResult(can_delete=False, reason=REASON_SYSTEM_USER)
    if user.role == Role.ADMIN.value and _admin_count(db) <= 1:
        return CanDeleteUserResult(can_delete=False, reason=REASON_LAST_ADMIN)
    return CanDeleteUserResult(can_delete=True)


def delete_user(
    db: Session,
    user_id: int,
    current_user_id: int | None = None,
    system_user_policy: str | None = None,
) -> None:
    """Delete a user after re-checking the protection rules. Raises DeletionBlockedError."""
    check = can_delete_user(db, user_id, current_user_id, system_user_policy)
    if not check.can_delete:
        raise DeletionBlockedError(check.reason or "User cannot be deleted")

    user = db.get(User, user_id)
    username = user.username
    db.delete(user)
    db.commit()
    logger.info("User deleted: %s", username)


def change_user_password(
    db: Session,
    user_id: int,
    current_password: str,
    new_password: str,
) -> bool:
    """Change a user's own password. Returns False if the user is missing or current_password is wrong."""
    if not (PASSWORD_MIN_LEN <= len(new_password) <= PASSWORD_MAX_LEN):
        raise ValidationFailedError(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters")
    user = db.get(User, user_id)
    if user is None:
        return False
    if not verify_password(current_password, user.password_hash):
        return False
    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info("Password changed for user id %s", user_id)
    return True


def list_roles() -> list[RoleInfo]:
    """Roles from most to least access, with their labels and permission sets."""
    roles = sorted(Role, key=ROLE_HIERARCHY.__getitem__, reverse=True)
    return [
        RoleInfo(
            role=role,
            label=ROLE_LABELS[role],
            description=ROLE_DESCRIPTIONS[role],
            permissions=sorted(ROLE_PERMISSIONS[role], key=lambda p: p.value),
        )
        for role in roles
    ]
