"""Tracked issues."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from outsourcing_register.api.deps import get_db, http_error, require_permission
from outsourcing_register.core.errors import RecordNotFoundError, RegisterError
from outsourcing_register.core.rbac import Permission
from outsourcing_register.schemas.records import IssueRecord
from outsourcing_register.services.auth_context import AuthContext
from outsourcing_register.services.records import IssueRepository

router = APIRouter()

ViewIssues = Annotated[AuthContext, Depends(require_permission(Permission.VIEW_SUPPLIERS))]
EditIssues = Annotated[AuthContext, Depends(require_permission(Permission.EDIT_ISSUES))]


@router.get("", response_model=list[IssueRecord])
def list_issues(_auth: ViewIssues, db: Annotated[Session, Depends(get_db)]) -> list[IssueRecord]:
    return IssueRepository(db).list()


@router.post("", response_model=IssueRecord, status_code=status.HTTP_201_CREATED)
def create_issue(
    body: IssueRecord,
    _auth: EditIssues,
    db: Annotated[Session, Depends(get_db)],
) -> IssueRecord:
    created = IssueRepository(db).add(body.model_copy(update={"id": None}))
    db.commit()
    return created


@router.get("/{issue_id}", response_model=IssueRecord)
def get_issue(issue_id: int, _auth: ViewIssues, db: Annotated[Session, Depends(get_db)]) -> IssueRecord:
    issue = IssueRepository(db).get_by_key(issue_id)
    if issue is None:
        raise http_error(RecordNotFoundError("Issue", issue_id))
    return issue


@router.put("/{issue_id}", response_model=IssueRecord)
def update_issue(
    issue_id: int,
    body: IssueRecord,
    _auth: EditIssues,
    db: Annotated[Session, Depends(get_db)],
) -> IssueRecord:
    try:
        updated = IssueRepository(db).update(body.model_copy(update={"id": issue_id}))
        db.commit()
    except RegisterError as e:
        db.rollback()
        raise http_error(e) from e
    return updated


@router.delete("/{issue_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_issue(issue_id: int, _auth: EditIssues, db: Annotated[Session, Depends(get_db)]) -> Response:
    try:
        IssueRepository(db).delete(issue_id)
        db.commit()
    except RegisterError as e:
        db.rollback()
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
