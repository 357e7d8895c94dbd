"""Dashboard widget payloads, role composition and failure isolation."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from solar_crm.core.auth import RequestUserContext, visibility_scope_for
from solar_crm.core.config import get_settings
from solar_crm.core.logging import get_logger
from solar_crm.models.entities import LeadSource, ProjectSegment, ProjectStatus, UserRole
from solar_crm.repositories.dashboard_repository import DashboardRepository
from solar_crm.repositories.project_repository import (
    PAYMENT_BUCKET_FULLY_PAID,
    PAYMENT_BUCKET_NA,
    PAYMENT_BUCKET_PARTIAL,
    PAYMENT_BUCKETS,
    ProjectQuery,
    ProjectRepository,
    payment_bucket,
)
from solar_crm.services.dashboard_composer import (
    DashboardWidget,
    can_view_dashboard,
    can_view_widget,
    compose_dashboard,
)
from solar_crm.services.period_filter import PeriodFilter, financial_year_for
from solar_crm.services.tile_links import QUICK_ACCESS_TILES, MetricParams, build_projects_url

logger = get_logger(__name__)

Q2 = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

UNSPECIFIED = "UNSPECIFIED"
UNSPECIFIED_LABEL = "Not Specified"

LEAD_SOURCE_LABELS: dict[LeadSource, str] = {
    LeadSource.WEBSITE: "Website",
    LeadSource.REFERRAL: "Referral",
    LeadSource.GOOGLE: "Google",
    LeadSource.CHANNEL_PARTNER: "Channel Partner",
    LeadSource.DIGITAL_MARKETING: "Digital Marketing",
    LeadSource.SALES: "Sales",
    LeadSource.MANAGEMENT_CONNECT: "Management Connect",
    LeadSource.OTHER: "Other",
}

SEGMENT_LABELS: dict[ProjectSegment, str] = {
    ProjectSegment.RESIDENTIAL_SUBSIDY: "Residential - Subsidy",
    ProjectSegment.RESIDENTIAL_NON_SUBSIDY: "Residential - Non Subsidy",
    ProjectSegment.COMMERCIAL_INDUSTRIAL: "Commercial / Industrial",
}

STATUS_LABELS: dict[ProjectStatus, str] = {
    ProjectStatus.LEAD: "Lead",
    ProjectStatus.SITE_SURVEY: "Site Survey",
    ProjectStatus.PROPOSAL: "Proposal",
    ProjectStatus.CONFIRMED: "Confirmed",
    ProjectStatus.UNDER_INSTALLATION: "Under Installation",
    ProjectStatus.SUBMITTED_FOR_SUBSIDY: "Submitted for Subsidy",
    ProjectStatus.COMPLETED: "Completed",
    ProjectStatus.COMPLETED_SUBSIDY_CREDITED: "Completed - Subsidy Credited",
    ProjectStatus.LOST: "Lost",
}

PAYMENT_BUCKET_LABELS: dict[str, str] = {
    PAYMENT_BUCKET_FULLY_PAID: "Fully Paid",
    PAYMENT_BUCKET_PARTIAL: "Partial",
    PAYMENT_BUCKET_NA: "N/A",
}

METRIC_KEYS = ("total_capacity", "total_pipeline", "total_revenue", "total_profit")

WIDGET_READY = "ready"
WIDGET_EMPTY = "empty"
WIDGET_ERROR = "error"


def _money(value: Decimal | float | int | None) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(Q2)


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def yoy_change(current: Decimal, previous: Decimal | None) -> str:
    """Year-over-year change label such as "+12.5%", or "N/A" without a usable baseline."""

    if previous is None or previous == ZERO:
        return "N/A"
    change = ((current - previous) * HUNDRED / abs(previous)).quantize(Decimal("0.1"))
    sign = "+" if change >= 0 else ""
    return f"{sign}{change}%"


def _lead_source_key(value: LeadSource | None) -> tuple[str, str]:
    if value is None:
        return UNSPECIFIED, UNSPECIFIED_LABEL
    return value.value, LEAD_SOURCE_LABELS[value]


class DashboardService:
    """Builds dashboard widgets for one request.

    Aggregates are memoised per ``(query, scope, filter)`` for the lifetime of
    the service, so widgets sharing a query (e.g. revenue and pipeline by lead
    source) hit the database once per request.
    """

    def __init__(self, db: Session, context: RequestUserContext) -> None:
        self.db = db
        self.context = context
        self.scope = visibility_scope_for(context)
        self.repo = DashboardRepository(db)
        self.projects = ProjectRepository(db)
        self.settings = get_settings()
        self._cache: dict[tuple[object, ...], Any] = {}

    def _cached(self, name: str, period: PeriodFilter, loader: Callable[[], Any]) -> Any:
        key = (name, self.scope.salesperson_id, period.cache_key())
        if key not in self._cache:
            self._cache[key] = loader()
        return self._cache[key]

    # ---------- Access ----------
    def ensure_widget_access(self, *widgets: DashboardWidget) -> None:
        if not any(can_view_widget(self.context, widget) for widget in widgets):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role permissions for this operation.",
            )

    # ---------- Shared queries ----------
    def _totals(self, period: PeriodFilter):
        return self._cached("totals", period, lambda: self.repo.totals(scope=self.scope, period=period))

    def _lead_source_rows(self, period: PeriodFilter):
        return self._cached("by_lead_source", period, lambda: self.repo.by_lead_source(scope=self.scope, period=period))

    def _segment_rows(self, period: PeriodFilter):
        return self._cached("by_segment", period, lambda: self.repo.by_segment(scope=self.scope, period=period))

    def _count(self, period: PeriodFilter, params: MetricParams) -> int:
        query = ProjectQuery(statuses=params.status, payment_statuses=params.payment_status)
        return self._cached(
            f"count:{params.status}:{params.payment_status}",
            period,
            lambda: self.projects.count_projects(scope=self.scope, period=period, query=query),
        )

    # ---------- Filter options ----------
    def financial_years(self) -> dict[str, object]:
        years = sorted(self.repo.available_financial_years(scope=self.scope), reverse=True)
        return {"financial_years": years, "current": financial_year_for(date.today())}

    # ---------- Widgets ----------
    @staticmethod
    def _metric_values(totals) -> dict[str, Decimal]:
        return {
            "total_capacity": _money(totals.capacity),
            "total_pipeline": _money(totals.pipeline),
            "total_revenue": _money(totals.revenue),
            "total_profit": _money(totals.profit),
        }

    def key_metrics(self, period: PeriodFilter) -> dict[str, object]:
        totals = self._totals(period)
        current = self._metric_values(totals)

        previous_period = period.previous_year()
        previous: dict[str, Decimal] | None = None
        if previous_period is not None:
            previous = self._metric_values(self._totals(previous_period))

        payload: dict[str, object] = {
            "project_count": int(totals.project_count or 0),
            **{key: str(value) for key, value in current.items()},
            "previous_year_same_period": None,
            "yoy": {key: yoy_change(current[key], previous[key] if previous else None) for key in METRIC_KEYS},
        }
        if previous is not None and previous_period is not None:
            payload["previous_year_same_period"] = {
                "fy": previous_period.single_financial_year,
                **{key: str(value) for key, value in previous.items()},
            }
        return payload

    def finance_totals(self, period: PeriodFilter) -> dict[str, object]:
        totals = self._totals(period)
        return {
            "project_count": int(totals.project_count or 0),
            "total_project_value": str(_money(totals.revenue)),
            "amount_received": str(_money(totals.amount_received)),
            "outstanding": str(_money(totals.outstanding)),
            "profit_by_project": [
                {
                    "project_id": str(project.id),
                    "sl_no": project.sl_no,
                    "customer_name": project.customer.customer_name,
                    "project_cost": str(_money(project.project_cost)),
                    "profit": str(_money(project.gross_profit)),
                    "salesperson_name": project.salesperson.name if project.salesperson else None,
                }
                for project in self.repo.profit_by_project(
                    scope=self.scope,
                    period=period,
                    limit=self.settings.dashboard_profit_by_project_limit,
                )
            ],
            "profit_by_salesperson": sorted(
                (
                    {
                        "salesperson_id": str(row.id),
                        "salesperson_name": row.name,
                        "project_count": int(row.project_count),
                        "profit": str(_money(row.profit)),
                    }
                    for row in self.repo.profit_by_salesperson(scope=self.scope, period=period)
                ),
                key=lambda item: (-Decimal(item["profit"]), item["salesperson_name"]),
            ),
        }

    def quick_access(self, period: PeriodFilter, role: UserRole | None = None) -> dict[str, object]:
        layout = compose_dashboard(role or self.context.role, self.context)
        tiles = []
        for key in layout.quick_access:
            tile = QUICK_ACCESS_TILES[key]
            tiles.append(
                {
                    "key": tile.key,
                    "label": tile.label,
                    "count": self._count(period, tile.params),
                    "href": build_projects_url(tile.params, period),
                    "filters": {
                        "status": list(tile.params.status),
                        "paymentStatus": list(tile.params.payment_status),
                    },
                }
            )
        return {"tiles": tiles}

    def _lead_source_chart(self, period: PeriodFilter, *, measure: str) -> dict[str, object]:
        rows = []
        for row in self._lead_source_rows(period):
            count = int(getattr(row, f"{measure}_count") or 0)
            if count == 0:
                continue
            key, label = _lead_source_key(row.lead_source)
            rows.append(
                {
                    "lead_source": key,
                    "lead_source_label": label,
                    measure: str(_money(getattr(row, measure))),
                    "project_count": count,
                }
            )
        rows.sort(key=lambda item: (-Decimal(item[measure]), item["lead_source_label"]))
        return {"rows": rows}

    def revenue_by_lead_source(self, period: PeriodFilter) -> dict[str, object]:
        return self._lead_source_chart(period, measure="revenue")

    def pipeline_by_lead_source(self, period: PeriodFilter) -> dict[str, object]:
        return self._lead_source_chart(period, measure="pipeline")

    def _segment_chart(self, period: PeriodFilter, *, measure: str) -> dict[str, object]:
        rows = []
        for row in self._segment_rows(period):
            count = int(getattr(row, f"{measure}_count") or 0)
            if count == 0:
                continue
            rows.append(
                {
                    "segment": row.segment.value,
                    "segment_label": SEGMENT_LABELS[row.segment],
                    measure: str(_money(getattr(row, measure))),
                    "project_count": count,
                }
            )
        rows.sort(key=lambda item: list(ProjectSegment).index(ProjectSegment(item["segment"])))
        return {"rows": rows}

    def revenue_by_segment(self, period: PeriodFilter) -> dict[str, object]:
        return self._segment_chart(period, measure="revenue")

    def pipeline_by_segment(self, period: PeriodFilter) -> dict[str, object]:
        return self._segment_chart(period, measure="pipeline")

    def projects_by_stage(self, period: PeriodFilter) -> dict[str, object]:
        by_status = {
            row.project_status: row
            for row in self._cached("by_status", period, lambda: self.repo.by_status(scope=self.scope, period=period))
        }
        rows = []
        for project_status in ProjectStatus:
            row = by_status.get(project_status)
            if row is None:
                continue
            rows.append(
                {
                    "status": project_status.value,
                    "status_label": STATUS_LABELS[project_status],
                    "project_count": int(row.project_count),
                    "value": str(_money(row.value)),
                    "href": build_projects_url(MetricParams(status=(project_status.value,)), period),
                }
            )
        return {"rows": rows}

    def value_profit_by_fy(self, period: PeriodFilter) -> dict[str, object]:
        rows = [
            {
                "fy": row.financial_year,
                "total_project_value": str(_money(row.revenue)),
                "total_profit": str(_money(row.profit)),
                "total_capacity": str(_money(row.capacity)),
                "total_pipeline": str(_money(row.pipeline)),
                "project_count": int(row.revenue_count or 0),
            }
            for row in self.repo.by_financial_year(scope=self.scope, period=period)
        ]
        rows.sort(key=lambda item: item["fy"])
        return {"rows": rows}

    def payment_status(self, period: PeriodFilter) -> dict[str, object]:
        buckets = {
            bucket: {"count": 0, "total_value": ZERO, "outstanding": ZERO, "received": ZERO}
            for bucket in PAYMENT_BUCKETS
        }
        for row in self.repo.by_payment_status(scope=self.scope, period=period):
            bucket = buckets[payment_bucket(row.payment_status)]
            bucket["count"] += int(row.project_count)
            bucket["total_value"] += _money(row.total_value)
            bucket["outstanding"] += _money(row.outstanding)
            bucket["received"] += _money(row.amount_received)

        rows = [
            {
                "payment_status": bucket,
                "label": PAYMENT_BUCKET_LABELS[bucket],
                "project_count": values["count"],
                "total_value": str(_money(values["total_value"])),
                "outstanding": str(_money(values["outstanding"])),
                "amount_received": str(_money(values["received"])),
                "href": build_projects_url(MetricParams(payment_status=(bucket,)), period),
            }
            for bucket, values in buckets.items()
        ]
        return {"project_count": sum(item["project_count"] for item in rows), "rows": rows}

    def profitability_wordcloud(self, period: PeriodFilter) -> dict[str, object]:
        rows = self.repo.top_profitability(
            scope=self.scope,
            period=period,
            limit=self.settings.dashboard_wordcloud_limit,
        )
        return {"rows": [{"text": row.customer_name, "value": str(_money(row.profitability))} for row in rows]}

    def loans_by_bank(self, period: PeriodFilter) -> dict[str, object]:
        rows = [
            {
                "bank": row.loan_bank or UNSPECIFIED_LABEL,
                "project_count": int(row.project_count),
                "value": str(_money(row.value)),
            }
            for row in self.repo.loans_by_bank(scope=self.scope, period=period)
        ]
        rows.sort(key=lambda item: (-item["project_count"], item["bank"]))
        return {"rows": rows}

    def sales_team_performance(self, period: PeriodFilter) -> dict[str, object]:
        rows = [
            {
                "salesperson_id": str(row.id),
                "salesperson_name": row.name,
                "project_count": int(row.project_count),
                "revenue": str(_money(row.revenue)),
                "profit": str(_money(row.profit)),
            }
            for row in self.repo.revenue_by_salesperson(scope=self.scope, period=period)
        ]
        rows.sort(key=lambda item: (-Decimal(item["revenue"]), item["salesperson_name"]))
        return {"rows": rows}

    def operations_summary(self, period: PeriodFilter) -> dict[str, object]:
        today = date.today()
        pending = []
        for project in self.repo.pending_subsidy(scope=self.scope, period=period):
            days_pending = None
            if project.subsidy_request_date is not None:
                days_pending = (today - project.subsidy_request_date).days
            pending.append(
                {
                    "project_id": str(project.id),
                    "sl_no": project.sl_no,
                    "customer_name": project.customer.customer_name,
                    "subsidy_request_date": _iso(project.subsidy_request_date),
                    "days_pending": days_pending,
                }
            )

        pending_installation = QUICK_ACCESS_TILES["pending_installation"].params
        submitted = QUICK_ACCESS_TILES["submitted_for_subsidy"].params
        credited = QUICK_ACCESS_TILES["subsidy_credited"].params
        return {
            "project_count": int(self._totals(period).project_count or 0),
            "pending_installation": self._count(period, pending_installation),
            "submitted_for_subsidy": self._count(period, submitted),
            "subsidy_credited": self._count(period, credited),
            "pending_subsidy": pending,
            "kseb_bottlenecks": [
                {
                    **self._milestone_row(project),
                    "feasibility_date": _iso(project.feasibility_date),
                    "registration_date": _iso(project.registration_date),
                }
                for project in self.repo.kseb_bottlenecks(scope=self.scope, period=period)
            ],
            "mnre_bottlenecks": [
                {
                    **self._milestone_row(project),
                    "mnre_registration_date": _iso(project.mnre_registration_date),
                    "installation_completion_date": _iso(project.installation_completion_date),
                }
                for project in self.repo.mnre_bottlenecks(scope=self.scope, period=period)
            ],
        }

    @staticmethod
    def _milestone_row(project) -> dict[str, object]:
        return {
            "project_id": str(project.id),
            "sl_no": project.sl_no,
            "customer_name": project.customer.customer_name,
            "status": project.project_status.value,
        }

    # ---------- Composite ----------
    def build_widget(self, widget: DashboardWidget, period: PeriodFilter, role: UserRole) -> dict[str, object]:
        builders: dict[DashboardWidget, Callable[[PeriodFilter], dict[str, object]]] = {
            DashboardWidget.KEY_METRICS: self.key_metrics,
            DashboardWidget.FINANCE_TOTALS: self.finance_totals,
            DashboardWidget.QUICK_ACCESS: lambda value: self.quick_access(value, role),
            DashboardWidget.PROJECTS_BY_STAGE: self.projects_by_stage,
            DashboardWidget.REVENUE_BY_LEAD_SOURCE: self.revenue_by_lead_source,
            DashboardWidget.PIPELINE_BY_LEAD_SOURCE: self.pipeline_by_lead_source,
            DashboardWidget.REVENUE_BY_SEGMENT: self.revenue_by_segment,
            DashboardWidget.PIPELINE_BY_SEGMENT: self.pipeline_by_segment,
            DashboardWidget.VALUE_PROFIT_BY_FY: self.value_profit_by_fy,
            DashboardWidget.PAYMENT_STATUS: self.payment_status,
            DashboardWidget.PROFITABILITY_WORDCLOUD: self.profitability_wordcloud,
            DashboardWidget.LOANS_BY_BANK: self.loans_by_bank,
            DashboardWidget.SALES_TEAM_PERFORMANCE: self.sales_team_performance,
            DashboardWidget.OPERATIONS_SUMMARY: self.operations_summary,
        }
        return builders[widget](period)

    @staticmethod
    def _is_empty(data: dict[str, object]) -> bool:
        if "project_count" in data:
            return data["project_count"] == 0
        if "rows" in data:
            return not data["rows"]
        return False

    def _evaluate(self, widget: DashboardWidget, period: PeriodFilter, role: UserRole) -> dict[str, object]:
        try:
            data = self.build_widget(widget, period, role)
        except (SQLAlchemyError, LookupError, ArithmeticError):
            logger.exception("Dashboard widget %s failed for %s", widget.value, self.context.email)
            self.db.rollback()
            return {"key": widget.value, "status": WIDGET_ERROR, "data": None, "detail": "Widget data unavailable."}
        return {
            "key": widget.value,
            "status": WIDGET_EMPTY if self._is_empty(data) else WIDGET_READY,
            "data": data,
        }

    def dashboard(self, role: UserRole, period: PeriodFilter) -> dict[str, object]:
        if not can_view_dashboard(self.context, role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role permissions for this dashboard.",
            )

        layout = compose_dashboard(role, self.context)
        logger.debug(
            "Composing %s dashboard for %s (scope=%s, filters=%s)",
            role.value,
            self.context.email,
            layout.scope.label,
            period.to_dict(),
        )
        return {
            "role": role.value,
            "scope": layout.scope.label,
            "filters": period.to_dict(),
            "widgets": [self._evaluate(widget, period, role) for widget in layout.widgets],
        }
