"""Role to dashboard layout table."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from solar_crm.core.auth import RequestUserContext, VisibilityScope, visibility_scope_for
from solar_crm.models.entities import UserRole


class DashboardWidget(str, enum.Enum):
    KEY_METRICS = "key_metrics"
    FINANCE_TOTALS = "finance_totals"
    QUICK_ACCESS = "quick_access"
    PROJECTS_BY_STAGE = "projects_by_stage"
    REVENUE_BY_LEAD_SOURCE = "revenue_by_lead_source"
    PIPELINE_BY_LEAD_SOURCE = "pipeline_by_lead_source"
    REVENUE_BY_SEGMENT = "revenue_by_segment"
    PIPELINE_BY_SEGMENT = "pipeline_by_segment"
    VALUE_PROFIT_BY_FY = "value_profit_by_fy"
    PAYMENT_STATUS = "payment_status"
    PROFITABILITY_WORDCLOUD = "profitability_wordcloud"
    LOANS_BY_BANK = "loans_by_bank"
    SALES_TEAM_PERFORMANCE = "sales_team_performance"
    OPERATIONS_SUMMARY = "operations_summary"


_MANAGEMENT_WIDGETS: tuple[DashboardWidget, ...] = (
    DashboardWidget.KEY_METRICS,
    DashboardWidget.FINANCE_TOTALS,
    DashboardWidget.QUICK_ACCESS,
    DashboardWidget.PROJECTS_BY_STAGE,
    DashboardWidget.REVENUE_BY_LEAD_SOURCE,
    DashboardWidget.PIPELINE_BY_LEAD_SOURCE,
    DashboardWidget.REVENUE_BY_SEGMENT,
    DashboardWidget.PIPELINE_BY_SEGMENT,
    DashboardWidget.VALUE_PROFIT_BY_FY,
    DashboardWidget.PAYMENT_STATUS,
    DashboardWidget.PROFITABILITY_WORDCLOUD,
    DashboardWidget.LOANS_BY_BANK,
    DashboardWidget.SALES_TEAM_PERFORMANCE,
    DashboardWidget.OPERATIONS_SUMMARY,
)

ROLE_WIDGETS: dict[UserRole, tuple[DashboardWidget, ...]] = {
    UserRole.ADMIN: _MANAGEMENT_WIDGETS,
    UserRole.MANAGEMENT: _MANAGEMENT_WIDGETS,
    UserRole.SALES: (
        DashboardWidget.KEY_METRICS,
        DashboardWidget.QUICK_ACCESS,
        DashboardWidget.PROJECTS_BY_STAGE,
        DashboardWidget.REVENUE_BY_LEAD_SOURCE,
        DashboardWidget.PIPELINE_BY_LEAD_SOURCE,
        DashboardWidget.PIPELINE_BY_SEGMENT,
        DashboardWidget.VALUE_PROFIT_BY_FY,
        DashboardWidget.LOANS_BY_BANK,
    ),
    UserRole.OPERATIONS: (
        DashboardWidget.QUICK_ACCESS,
        DashboardWidget.PROJECTS_BY_STAGE,
        DashboardWidget.OPERATIONS_SUMMARY,
    ),
    UserRole.FINANCE: (
        DashboardWidget.FINANCE_TOTALS,
        DashboardWidget.KEY_METRICS,
        DashboardWidget.PAYMENT_STATUS,
        DashboardWidget.PROFITABILITY_WORDCLOUD,
        DashboardWidget.LOANS_BY_BANK,
        DashboardWidget.QUICK_ACCESS,
    ),
}

_MANAGEMENT_TILES = (
    "all_projects",
    "leads",
    "open_deals",
    "confirmed_projects",
    "pending_installation",
    "submitted_for_subsidy",
    "subsidy_credited",
    "fully_paid",
    "partially_paid",
    "payment_na",
    "lost",
)

ROLE_QUICK_ACCESS: dict[UserRole, tuple[str, ...]] = {
    UserRole.ADMIN: _MANAGEMENT_TILES,
    UserRole.MANAGEMENT: _MANAGEMENT_TILES,
    UserRole.SALES: ("all_projects", "leads", "open_deals", "confirmed_projects", "lost"),
    UserRole.OPERATIONS: ("pending_installation", "submitted_for_subsidy", "subsidy_credited"),
    UserRole.FINANCE: ("confirmed_projects", "fully_paid", "partially_paid", "payment_na"),
}


@dataclass(frozen=True)
class DashboardLayout:
    role: UserRole
    widgets: tuple[DashboardWidget, ...]
    quick_access: tuple[str, ...]
    scope: VisibilityScope


def parse_dashboard_role(value: str) -> UserRole | None:
    try:
        return UserRole(value.strip().upper())
    except ValueError:
        return None


def can_view_dashboard(context: RequestUserContext, role: UserRole) -> bool:
    """Users see their own role's dashboard; ADMIN and MANAGEMENT see all of them."""

    return context.role is role or context.role in {UserRole.ADMIN, UserRole.MANAGEMENT}


def can_view_widget(context: RequestUserContext, widget: DashboardWidget) -> bool:
    return widget in ROLE_WIDGETS[context.role]


def compose_dashboard(role: UserRole, context: RequestUserContext) -> DashboardLayout:
    """Ordered widgets for ``role``'s dashboard, rows scoped to the requesting user.

    The scope always follows the requester, so an ADMIN opening the SALES
    dashboard still sees company-wide numbers.
    """

    return DashboardLayout(
        role=role,
        widgets=ROLE_WIDGETS[role],
        quick_access=ROLE_QUICK_ACCESS[role],
        scope=visibility_scope_for(context),
    )
