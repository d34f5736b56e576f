"""Login, logout, session and authentication settings."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from outsourcing_register.api.deps import (
    get_auth_context,
    get_db,
    http_error,
    require_authenticated,
    require_permission,
)
from outsourcing_register.core.errors import InvalidCredentialsError, RegisterError
from outsourcing_register.core.rbac import Permission
from outsourcing_register.schemas.auth import (
    AuthSettingsView,
    ChangeMasterPasswordRequest,
    ChangePasswordRequest,
    EnableAuthResult,
    LoginError,
    LoginRequest,
    LoginResult,
    MasterLoginRequest,
    SessionSnapshot,
)
from outsourcing_register.services import auth as auth_service
from outsourcing_register.services import users as user_service
from outsourcing_register.services.auth_context import AuthContext

router = APIRouter()

CURRENT_PASSWORD_INCORRECT_MESSAGE = "Current password is incorrect"


def _raise_for_failed_login(result: LoginResult) -> None:
    if result.success:
        return
    if result.error == LoginError.AUTH_DISABLED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)
    raise http_error(InvalidCredentialsError(result.message))


@router.get("/settings", response_model=AuthSettingsView)
def get_settings_view(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthSettingsView:
    """Whether auth is on and whether the master password was changed. Public."""
    auth.refresh_auth_settings()
    return auth.auth_settings


@router.get("/session", response_model=SessionSnapshot | None)
def get_session(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> SessionSnapshot | None:
    """The current session, or null when nobody is logged in."""
    return auth.session


@router.post("/login", response_model=LoginResult)
def login(
    body: LoginRequest,
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> LoginResult:
    """Log in with username and password; 401 on bad credentials, 409 while auth is disabled."""
    result = auth.login(body.username, body.password, remember_me=body.remember_me)
    _raise_for_failed_login(result)
    return result


@router.post("/login/master", response_model=LoginResult)
def login_master(
    body: MasterLoginRequest,
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> LoginResult:
    """Recovery login with the master password. The session is never remembered."""
    result = auth.login_with_master(body.password)
    _raise_for_failed_login(result)
    return result


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(auth: Annotated[AuthContext, Depends(get_auth_context)]) -> Response:
    auth.logout()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/enable", response_model=EnableAuthResult)
def enable(
    auth: Annotated[AuthContext, Depends(require_permission(Permission.MANAGE_AUTH))],
    db: Annotated[Session, Depends(get_db)],
) -> EnableAuthResult:
    """
    Turn authentication on.

    When no admin exists this creates the default admin; the response says so and
    asks for its password to be changed.
    """
    try:
        result = auth_service.enable_auth(db)
    except RegisterError as e:
        raise http_error(e) from e
    auth.refresh_auth_settings()
    return result


@router.post("/disable", response_model=AuthSettingsView)
def disable(
    auth: Annotated[AuthContext, Depends(require_permission(Permission.MANAGE_AUTH))],
    db: Annotated[Session, Depends(get_db)],
) -> AuthSettingsView:
    auth_service.disable_auth(db)
    auth.refresh_auth_settings()
    return auth.auth_settings


@router.post("/master-password", status_code=status.HTTP_204_NO_CONTENT)
def change_master_password(
    body: ChangeMasterPasswordRequest,
    auth: Annotated[AuthContext, Depends(require_permission(Permission.MANAGE_AUTH))],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    try:
        changed = auth_service.change_master_password(db, body.current_password, body.new_password)
    except RegisterError as e:
        raise http_error(e) from e
    if not changed:
        raise http_error(InvalidCredentialsError(auth_service.INVALID_MASTER_PASSWORD_MESSAGE))
    auth.refresh_auth_settings()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/password", status_code=status.HTTP_204_NO_CONTENT)
def change_own_password(
    body: ChangePasswordRequest,
    auth: Annotated[AuthContext, Depends(require_authenticated)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Change the logged-in user's password. Not available to master-override sessions."""
    user = auth.current_user
    if user is None or auth.is_master_override:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="A user session is required to change a password",
        )
    try:
        changed = user_service.change_user_password(db, user.id, body.current_password, body.new_password)
    except RegisterError as e:
        raise http_error(e) from e
    if not changed:
        raise http_error(InvalidCredentialsError(CURRENT_PASSWORD_INCORRECT_MESSAGE))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
