"""Sales team performance endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from solar_crm.api.routes.dashboard import get_period_filter
from solar_crm.core.auth import RequestUserContext, require_roles
from solar_crm.db.dependencies import get_db_session
from solar_crm.models.entities import UserRole
from solar_crm.services.dashboard_service import DashboardService
from solar_crm.services.period_filter import PeriodFilter

router = APIRouter(prefix="/sales-team-performance", tags=["dashboard"])


@router.get("")
def get_sales_team_performance(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGEMENT)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Revenue per salesperson, highest first."""

    return DashboardService(db, context).sales_team_performance(period)
