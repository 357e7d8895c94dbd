"""Quick-access tile catalogue and Projects list drill-down URLs."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

from solar_crm.models.entities import ProjectStatus
from solar_crm.repositories.project_repository import (
    PAYMENT_BUCKET_FULLY_PAID,
    PAYMENT_BUCKET_NA,
    PAYMENT_BUCKET_PARTIAL,
    REVENUE_STATUSES,
)
from solar_crm.services.period_filter import FISCAL_MONTH_ORDER, PeriodFilter

PROJECTS_PATH = "/projects"


@dataclass(frozen=True)
class MetricParams:
    """Metric-specific drill-down filters of a tile."""

    status: tuple[str, ...] = ()
    payment_status: tuple[str, ...] = ()


@dataclass(frozen=True)
class QuickAccessTile:
    key: str
    label: str
    params: MetricParams


def _statuses(*statuses: ProjectStatus) -> tuple[str, ...]:
    return tuple(status.value for status in statuses)


QUICK_ACCESS_TILES: dict[str, QuickAccessTile] = {
    tile.key: tile
    for tile in (
        QuickAccessTile("all_projects", "All Projects", MetricParams()),
        QuickAccessTile("leads", "Leads", MetricParams(status=_statuses(ProjectStatus.LEAD))),
        QuickAccessTile(
            "open_deals",
            "Open Deals",
            MetricParams(status=_statuses(ProjectStatus.SITE_SURVEY, ProjectStatus.PROPOSAL)),
        ),
        QuickAccessTile(
            "confirmed_projects",
            "Confirmed Projects",
            MetricParams(status=_statuses(*sorted(REVENUE_STATUSES, key=list(ProjectStatus).index))),
        ),
        QuickAccessTile(
            "pending_installation",
            "Pending Installation",
            MetricParams(status=_statuses(ProjectStatus.CONFIRMED, ProjectStatus.UNDER_INSTALLATION)),
        ),
        QuickAccessTile(
            "submitted_for_subsidy",
            "Submitted for Subsidy",
            MetricParams(status=_statuses(ProjectStatus.SUBMITTED_FOR_SUBSIDY)),
        ),
        QuickAccessTile(
            "subsidy_credited",
            "Subsidy Credited",
            MetricParams(status=_statuses(ProjectStatus.COMPLETED_SUBSIDY_CREDITED)),
        ),
        QuickAccessTile("lost", "Lost", MetricParams(status=_statuses(ProjectStatus.LOST))),
        QuickAccessTile("fully_paid", "Fully Paid", MetricParams(payment_status=(PAYMENT_BUCKET_FULLY_PAID,))),
        QuickAccessTile("partially_paid", "Partially Paid", MetricParams(payment_status=(PAYMENT_BUCKET_PARTIAL,))),
        QuickAccessTile("payment_na", "Payment N/A", MetricParams(payment_status=(PAYMENT_BUCKET_NA,))),
    )
}


def _fiscal_sorted(months: frozenset[str]) -> list[str]:
    order = {month: index for index, month in enumerate(FISCAL_MONTH_ORDER)}
    return sorted(months, key=lambda month: (order.get(month, len(order)), month))


def build_projects_url(params: MetricParams, period: PeriodFilter) -> str:
    """Projects list URL carrying the tile filter plus the active period filter.

    Keys appear as status, paymentStatus, fy, quarter, month with one repeated
    key per value. Quarter and month are only emitted for a single selected
    financial year, mirroring how the filter itself treats them.
    """

    pairs: list[tuple[str, str]] = []
    pairs.extend(("status", value) for value in params.status)
    pairs.extend(("paymentStatus", value) for value in params.payment_status)
    pairs.extend(("fy", value) for value in sorted(period.financial_years))
    if period.single_financial_year is not None:
        pairs.extend(("quarter", value) for value in sorted(period.quarters))
        pairs.extend(("month", value) for value in _fiscal_sorted(period.months))

    if not pairs:
        return PROJECTS_PATH
    return f"{PROJECTS_PATH}?{urlencode(pairs)}"
