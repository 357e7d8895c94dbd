"""Projects list endpoint targeted by dashboard tile links."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from solar_crm.core.auth import RequestUserContext, get_current_user_context
from solar_crm.db.dependencies import get_db_session
from solar_crm.services.project_service import ProjectListFilters, ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])


def _service(db: Session) -> ProjectService:
    return ProjectService(db)


@router.get("")
def list_projects(
    project_status: list[str] | None = Query(default=None, alias="status"),
    payment_status: list[str] | None = Query(default=None, alias="paymentStatus"),
    fy: list[str] | None = Query(default=None),
    quarter: list[str] | None = Query(default=None),
    month: list[str] | None = Query(default=None),
    search: str | None = None,
    page: int | None = None,
    limit: int | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    filters = ProjectListFilters(
        statuses=project_status or [],
        payment_statuses=payment_status or [],
        financial_years=fy or [],
        quarters=quarter or [],
        months=month or [],
        search=search,
    )
    return _service(db).list_projects(context=context, filters=filters, page=page, limit=limit)
