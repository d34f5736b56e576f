"""Request/response schemas for authentication, sessions and user management."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from outsourcing_register.core.rbac import Permission, Role
from outsourcing_register.core.security import (
    DISPLAY_NAME_MAX_LEN,
    DISPLAY_NAME_MIN_LEN,
    MASTER_PASSWORD_MIN_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    USERNAME_PATTERN,
)


class User(BaseModel):
    """User account as seen outside the credential store (never carries the hash)."""

    id: int
    username: str
    display_name: str
    role: Role
    is_system_user: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CreateUserInput(BaseModel):
    """Fields required to create a user."""

    username: str = Field(
        ...,
        min_length=USERNAME_MIN_LEN,
        max_length=USERNAME_MAX_LEN,
        pattern=USERNAME_PATTERN,
        description="Letters, numbers and underscores; unique regardless of case",
    )
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    display_name: str = Field(..., min_length=DISPLAY_NAME_MIN_LEN, max_length=DISPLAY_NAME_MAX_LEN)
    role: Role


class UpdateUserInput(BaseModel):
    """Partial update; omitted fields and a blank password are left unchanged."""

    display_name: str | None = Field(
        default=None,
        min_length=DISPLAY_NAME_MIN_LEN,
        max_length=DISPLAY_NAME_MAX_LEN,
    )
    password: str | None = Field(default=None, max_length=PASSWORD_MAX_LEN)
    role: Role | None = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str | None) -> str | None:
        if v and len(v) < PASSWORD_MIN_LEN:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LEN} characters")
        return v


class AuthSettingsView(BaseModel):
    """Public view of the auth_settings row (no hash)."""

    auth_enabled: bool = False
    master_password_set: bool = Field(
        default=False,
        description="True once the master password was changed from the factory default",
    )


class EnableAuthResult(BaseModel):
    """Outcome of enabling auth; reports the bootstrap admin when one was created."""

    auth_enabled: bool = True
    default_admin_created: bool = False
    default_admin_username: str | None = None
    follow_up: str | None = Field(
        default=None,
        description="Action the operator must take (e.g. change the default admin password)",
    )


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., min_length=1, max_length=USERNAME_MAX_LEN)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    remember_me: bool = False


class MasterLoginRequest(BaseModel):
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class LoginError(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    AUTH_DISABLED = "auth_disabled"


class LoginResult(BaseModel):
    """Result of a login attempt. Expected failures are reported here rather than raised."""

    success: bool
    user: User | None = None
    error: LoginError | None = None
    message: str | None = None
    is_master_override: bool = False


class SessionSnapshot(BaseModel):
    """Denormalized session saved for "remember me"; trusted as-is on restore."""

    user: User
    login_time: datetime
    is_master_override: bool = False


class CanDeleteUserResult(BaseModel):
    can_delete: bool
    reason: str | None = None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class ChangeMasterPasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(..., min_length=MASTER_PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class UsersListResponse(BaseModel):
    users: list[User]


class RoleInfo(BaseModel):
    """A role as shown in the user editor: display label, description and granted actions."""

    role: Role
    label: str
    description: str
    permissions: list[Permission]
