"""Role dashboards and per-widget aggregate endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from solar_crm.core.auth import RequestUserContext, get_current_user_context
from solar_crm.db.dependencies import get_db_session
from solar_crm.services.dashboard_composer import DashboardWidget, can_view_widget, parse_dashboard_role
from solar_crm.services.dashboard_service import DashboardService
from solar_crm.services.period_filter import PeriodFilter

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _service(db: Session, context: RequestUserContext) -> DashboardService:
    return DashboardService(db, context)


def get_period_filter(
    fy: list[str] | None = Query(default=None),
    quarter: list[str] | None = Query(default=None),
    month: list[str] | None = Query(default=None),
) -> PeriodFilter:
    """Repeated ``fy``/``quarter``/``month`` keys folded into a period filter."""

    return PeriodFilter.from_query(fy, quarter, month)


@router.get("/financial-years")
def get_financial_years(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db, context).financial_years()


@router.get("/key-metrics")
def get_key_metrics(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, context)
    service.ensure_widget_access(DashboardWidget.KEY_METRICS)
    return service.key_metrics(period)


@router.get("/quick-access")
def get_quick_access(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db, context).quick_access(period)


@router.get("/revenue-by-lead-source")
def get_revenue_by_lead_source(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, context)
    service.ensure_widget_access(DashboardWidget.REVENUE_BY_LEAD_SOURCE)
    return service.revenue_by_lead_source(period)


@router.get("/pipeline-by-lead-source")
def get_pipeline_by_lead_source(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, context)
    service.ensure_widget_access(DashboardWidget.PIPELINE_BY_LEAD_SOURCE)
    return service.pipeline_by_lead_source(period)


@router.get("/segments")
def get_segments(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, context)
    service.ensure_widget_access(DashboardWidget.REVENUE_BY_SEGMENT, DashboardWidget.PIPELINE_BY_SEGMENT)
    # only the halves on the caller's own layout
    payload: dict[str, object] = {}
    if can_view_widget(context, DashboardWidget.REVENUE_BY_SEGMENT):
        payload["revenue"] = service.revenue_by_segment(period)["rows"]
    if can_view_widget(context, DashboardWidget.PIPELINE_BY_SEGMENT):
        payload["pipeline"] = service.pipeline_by_segment(period)["rows"]
    return payload


@router.get("/projects-by-stage")
def get_projects_by_stage(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, context)
    service.ensure_widget_access(DashboardWidget.PROJECTS_BY_STAGE)
    return service.projects_by_stage(period)


@router.get("/value-profit-by-fy")
def get_value_profit_by_fy(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, context)
    service.ensure_widget_access(DashboardWidget.VALUE_PROFIT_BY_FY)
    return service.value_profit_by_fy(period)


@router.get("/payment-status")
def get_payment_status(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, context)
    service.ensure_widget_access(DashboardWidget.PAYMENT_STATUS)
    return service.payment_status(period)


@router.get("/wordcloud")
def get_profitability_wordcloud(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, context)
    service.ensure_widget_access(DashboardWidget.PROFITABILITY_WORDCLOUD)
    return service.profitability_wordcloud(period)


@router.get("/loans-by-bank")
def get_loans_by_bank(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, context)
    service.ensure_widget_access(DashboardWidget.LOANS_BY_BANK)
    return service.loans_by_bank(period)


@router.get("/operations-summary")
def get_operations_summary(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, context)
    service.ensure_widget_access(DashboardWidget.OPERATIONS_SUMMARY)
    return service.operations_summary(period)


@router.get("/finance-totals")
def get_finance_totals(
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, context)
    service.ensure_widget_access(DashboardWidget.FINANCE_TOTALS)
    return service.finance_totals(period)


# Registered last so the fixed widget paths above take precedence.
@router.get("/{role}")
def get_role_dashboard(
    role: str,
    period: PeriodFilter = Depends(get_period_filter),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    dashboard_role = parse_dashboard_role(role)
    if dashboard_role is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dashboard not found.")
    return _service(db, context).dashboard(dashboard_role, period)
