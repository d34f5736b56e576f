"""Shared route dependencies: the store, the auth context and permission checks."""

from collections.abc import Iterator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from outsourcing_register.core.database import STORE_UNAVAILABLE_MESSAGE, Store
from outsourcing_register.core.errors import (
    ArchiveMalformedError,
    DeletionBlockedError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    LastAdminError,
    RecordNotFoundError,
    RegisterError,
    StoreUnavailableError,
    SystemUserProtectedError,
    UserNotFoundError,
    ValidationFailedError,
)
from outsourcing_register.core.rbac import Permission
from outsourcing_register.services.auth_context import AuthContext
from outsourcing_register.services.backup import BackupCoordinator

_STATUS_BY_ERROR: tuple[tuple[type[RegisterError], int], ...] = (
    (InvalidCredentialsError, status.HTTP_401_UNAUTHORIZED),
    (UserNotFoundError, status.HTTP_404_NOT_FOUND),
    (RecordNotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateUsernameError, status.HTTP_409_CONFLICT),
    (SystemUserProtectedError, status.HTTP_409_CONFLICT),
    (DeletionBlockedError, status.HTTP_409_CONFLICT),
    (LastAdminError, status.HTTP_409_CONFLICT),
    (StoreUnavailableError, status.HTTP_409_CONFLICT),
    (ArchiveMalformedError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ValidationFailedError, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


def http_error(e: RegisterError) -> HTTPException:
    """Map a domain error to the HTTP status the UI expects; detail is the error message."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(e, error_type):
            return HTTPException(status_code=status_code, detail=e.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_auth_context(request: Request) -> AuthContext:
    return request.app.state.auth


def get_backup_coordinator(request: Request) -> BackupCoordinator:
    return request.app.state.backup


def get_db(store: Annotated[Store, Depends(get_store)]) -> Iterator[Session]:
    """Yield a session on the store; 409 while a backup or restore holds the file."""
    if not store.is_open:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=STORE_UNAVAILABLE_MESSAGE)
    with store.session() as db:
        yield db


def require_authenticated(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthContext:
    """Dependency: require a session when auth is enabled. Raises 401 otherwise."""
    if auth.auth_enabled and not auth.is_authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return auth


def require_permission(permission: Permission):
    """Build a dependency that allows the request only if the session holds `permission`."""

    def dependency(
        auth: Annotated[AuthContext, Depends(require_authenticated)],
    ) -> AuthContext:
        if not auth.has_permission(permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission required: {permission.value}",
            )
        return auth

    return dependency
