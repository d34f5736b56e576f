"""User management (admin only): list, create, update and delete accounts."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from outsourcing_register.api.deps import get_db, http_error, require_permission
from outsourcing_register.core.errors import RegisterError, UserNotFoundError
from outsourcing_register.core.rbac import Permission
from outsourcing_register.schemas.auth import (
    CanDeleteUserResult,
    CreateUserInput,
    RoleInfo,
    UpdateUserInput,
    User,
    UsersListResponse,
)
from outsourcing_register.services import users as user_service
from outsourcing_register.services.auth_context import AuthContext

router = APIRouter()

ManageUsers = Annotated[AuthContext, Depends(require_permission(Permission.MANAGE_USERS))]


def _caller_id(auth: AuthContext) -> int | None:
    user = auth.current_user
    return user.id if user is not None else None


@router.get("", response_model=UsersListResponse)
def list_users(
    _auth: ManageUsers,
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    return UsersListResponse(users=user_service.get_all_users(db))


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
def create_user(
    body: CreateUserInput,
    _auth: ManageUsers,
    db: Annotated[Session, Depends(get_db)],
) -> User:
    try:
        return user_service.create_user(db, body)
    except RegisterError as e:
        raise http_error(e) from e


@router.get("/roles", response_model=list[RoleInfo])
def list_roles(_auth: ManageUsers) -> list[RoleInfo]:
    """Roles the user editor can assign, with labels and permissions."""
    return user_service.list_roles()


@router.get("/{user_id}", response_model=User)
def get_user(
    user_id: int,
    _auth: ManageUsers,
    db: Annotated[Session, Depends(get_db)],
) -> User:
    user = user_service.get_user_by_id(db, user_id)
    if user is None:
        raise http_error(UserNotFoundError(user_id))
    return user


@router.patch("/{user_id}", response_model=User)
def update_user(
    user_id: int,
    body: UpdateUserInput,
    _auth: ManageUsers,
    db: Annotated[Session, Depends(get_db)],
) -> User:
    try:
        return user_service.update_user(db, user_id, body)
    except RegisterError as e:
        raise http_error(e) from e


@router.get("/{user_id}/can-delete", response_model=CanDeleteUserResult)
def can_delete_user(
    user_id: int,
    auth: ManageUsers,
    db: Annotated[Session, Depends(get_db)],
) -> CanDeleteUserResult:
    """Advisory check for the UI; the delete call repeats it."""
    return user_service.can_delete_user(db, user_id, current_user_id=_caller_id(auth))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    auth: ManageUsers,
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    try:
        user_service.delete_user(db, user_id, current_user_id=_caller_id(auth))
    except RegisterError as e:
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
