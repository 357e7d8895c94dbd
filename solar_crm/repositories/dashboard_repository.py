"""Grouped aggregate queries behind the dashboard widgets."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Row, case, func, or_, select
from sqlalchemy.orm import Session

from solar_crm.core.auth import VisibilityScope
from solar_crm.models.entities import Customer, Project, ProjectStatus, User
from solar_crm.repositories.project_repository import (
    PIPELINE_STATUSES,
    REVENUE_STATUSES,
    project_conditions,
)
from solar_crm.services.period_filter import PeriodFilter

ZERO = Decimal("0.00")


def _revenue_sum(column):
    revenue_only = case((Project.project_status.in_(sorted(REVENUE_STATUSES)), column), else_=ZERO)
    return func.coalesce(func.sum(revenue_only), ZERO)


def _pipeline_sum(column):
    pipeline_only = case((Project.project_status.in_(sorted(PIPELINE_STATUSES)), column), else_=ZERO)
    return func.coalesce(func.sum(pipeline_only), ZERO)


def _revenue_count():
    return func.coalesce(func.sum(case((Project.project_status.in_(sorted(REVENUE_STATUSES)), 1), else_=0)), 0)


def _pipeline_count():
    return func.coalesce(func.sum(case((Project.project_status.in_(sorted(PIPELINE_STATUSES)), 1), else_=0)), 0)


class DashboardRepository:
    """Read-only aggregates scoped by visibility and reporting period."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Headline totals ----------
    def totals(self, *, scope: VisibilityScope, period: PeriodFilter) -> Row:
        statement = select(
            func.count(Project.id).label("project_count"),
            _revenue_count().label("revenue_count"),
            _pipeline_count().label("pipeline_count"),
            _revenue_sum(Project.project_cost).label("revenue"),
            _pipeline_sum(Project.project_cost).label("pipeline"),
            _revenue_sum(Project.gross_profit).label("profit"),
            _revenue_sum(Project.system_capacity).label("capacity"),
            func.coalesce(func.sum(Project.total_amount_received), ZERO).label("amount_received"),
            func.coalesce(func.sum(Project.balance_amount), ZERO).label("outstanding"),
        ).where(*project_conditions(scope=scope, period=period))
        return self.db.execute(statement).one()

    def count_projects(
        self,
        *,
        scope: VisibilityScope,
        period: PeriodFilter,
        statuses: list[str] | None = None,
        payment_statuses: list[str] | None = None,
    ) -> int:
        statement = select(func.count(Project.id)).where(
            *project_conditions(
                scope=scope,
                period=period,
                statuses=statuses,
                payment_statuses=payment_statuses,
            )
        )
        return self.db.scalar(statement) or 0

    def available_financial_years(self, *, scope: VisibilityScope) -> list[str]:
        statement = (
            select(Project.financial_year)
            .where(*project_conditions(scope=scope, period=PeriodFilter()), Project.financial_year.is_not(None))
            .distinct()
        )
        return [value for value in self.db.scalars(statement).all() if value]

    # ---------- Breakdowns ----------
    def by_lead_source(self, *, scope: VisibilityScope, period: PeriodFilter) -> list[Row]:
        return self.db.execute(
            select(
                Project.lead_source,
                _revenue_count().label("revenue_count"),
                _pipeline_count().label("pipeline_count"),
                _revenue_sum(Project.project_cost).label("revenue"),
                _pipeline_sum(Project.project_cost).label("pipeline"),
            )
            .where(*project_conditions(scope=scope, period=period))
            .group_by(Project.lead_source)
        ).all()

    def by_segment(self, *, scope: VisibilityScope, period: PeriodFilter) -> list[Row]:
        return self.db.execute(
            select(
                Project.segment,
                _revenue_count().label("revenue_count"),
                _pipeline_count().label("pipeline_count"),
                _revenue_sum(Project.project_cost).label("revenue"),
                _pipeline_sum(Project.project_cost).label("pipeline"),
            )
            .where(*project_conditions(scope=scope, period=period))
            .group_by(Project.segment)
        ).all()

    def by_status(self, *, scope: VisibilityScope, period: PeriodFilter) -> list[Row]:
        return self.db.execute(
            select(
                Project.project_status,
                func.count(Project.id).label("project_count"),
                func.coalesce(func.sum(Project.project_cost), ZERO).label("value"),
            )
            .where(*project_conditions(scope=scope, period=period))
            .group_by(Project.project_status)
        ).all()

    def by_financial_year(self, *, scope: VisibilityScope, period: PeriodFilter) -> list[Row]:
        return self.db.execute(
            select(
                Project.financial_year,
                _revenue_count().label("revenue_count"),
                _revenue_sum(Project.project_cost).label("revenue"),
                _revenue_sum(Project.gross_profit).label("profit"),
                _revenue_sum(Project.system_capacity).label("capacity"),
                _pipeline_sum(Project.project_cost).label("pipeline"),
            )
            .where(*project_conditions(scope=scope, period=period), Project.financial_year.is_not(None))
            .group_by(Project.financial_year)
        ).all()

    def by_payment_status(self, *, scope: VisibilityScope, period: PeriodFilter) -> list[Row]:
        # grouped on the raw column; callers fold values into buckets
        return self.db.execute(
            select(
                Project.payment_status,
                func.count(Project.id).label("project_count"),
                func.coalesce(func.sum(Project.balance_amount), ZERO).label("outstanding"),
                func.coalesce(func.sum(Project.project_cost), ZERO).label("total_value"),
                func.coalesce(func.sum(Project.total_amount_received), ZERO).label("amount_received"),
            )
            .where(*project_conditions(scope=scope, period=period))
            .group_by(Project.payment_status)
        ).all()

    def loans_by_bank(self, *, scope: VisibilityScope, period: PeriodFilter) -> list[Row]:
        return self.db.execute(
            select(
                Project.loan_bank,
                func.count(Project.id).label("project_count"),
                func.coalesce(func.sum(Project.project_cost), ZERO).label("value"),
            )
            .where(
                *project_conditions(scope=scope, period=period, statuses=sorted(PIPELINE_STATUSES)),
                Project.loan_availed.is_(True),
            )
            .group_by(Project.loan_bank)
        ).all()

    def top_profitability(self, *, scope: VisibilityScope, period: PeriodFilter, limit: int) -> list[Row]:
        return self.db.execute(
            select(Customer.customer_name, Project.profitability)
            .select_from(Project)
            .join(Customer, Customer.id == Project.customer_id)
            .where(*project_conditions(scope=scope, period=period), Project.profitability.is_not(None))
            .order_by(Project.profitability.desc(), Project.sl_no.asc())
            .limit(limit)
        ).all()

    def revenue_by_salesperson(self, *, scope: VisibilityScope, period: PeriodFilter) -> list[Row]:
        return self.db.execute(
            select(
                User.id,
                User.name,
                func.count(Project.id).label("project_count"),
                func.coalesce(func.sum(Project.project_cost), ZERO).label("revenue"),
                func.coalesce(func.sum(Project.gross_profit), ZERO).label("profit"),
            )
            .select_from(Project)
            .join(User, User.id == Project.salesperson_id)
            .where(*project_conditions(scope=scope, period=period, statuses=sorted(REVENUE_STATUSES)))
            .group_by(User.id, User.name)
        ).all()

    # ---------- Operations ----------
    def pending_subsidy(self, *, scope: VisibilityScope, period: PeriodFilter) -> list[Project]:
        return list(
            self.db.scalars(
                select(Project)
                .where(
                    *project_conditions(
                        scope=scope,
                        period=period,
                        statuses=[ProjectStatus.SUBMITTED_FOR_SUBSIDY],
                    )
                )
                .order_by(Project.subsidy_request_date.asc(), Project.sl_no.asc())
            ).all()
        )

    def _open_projects(self, *, scope: VisibilityScope, period: PeriodFilter) -> list:
        return [
            *project_conditions(scope=scope, period=period),
            Project.project_status.not_in([ProjectStatus.LEAD, ProjectStatus.LOST]),
        ]

    def kseb_bottlenecks(self, *, scope: VisibilityScope, period: PeriodFilter) -> list[Project]:
        """Projects beyond the lead stage still waiting on KSEB feasibility or registration."""

        return list(
            self.db.scalars(
                select(Project)
                .where(
                    *self._open_projects(scope=scope, period=period),
                    or_(Project.feasibility_date.is_(None), Project.registration_date.is_(None)),
                )
                .order_by(Project.sl_no.asc())
            ).all()
        )

    def mnre_bottlenecks(self, *, scope: VisibilityScope, period: PeriodFilter) -> list[Project]:
        """Projects beyond the lead stage missing MNRE portal registration or installation completion."""

        return list(
            self.db.scalars(
                select(Project)
                .where(
                    *self._open_projects(scope=scope, period=period),
                    or_(
                        Project.mnre_registration_date.is_(None),
                        Project.installation_completion_date.is_(None),
                    ),
                )
                .order_by(Project.sl_no.asc())
            ).all()
        )

    # ---------- Finance ----------
    def profit_by_project(self, *, scope: VisibilityScope, period: PeriodFilter, limit: int) -> list[Project]:
        return list(
            self.db.scalars(
                select(Project)
                .where(*project_conditions(scope=scope, period=period), Project.gross_profit.is_not(None))
                .order_by(Project.gross_profit.desc(), Project.sl_no.asc())
                .limit(limit)
            ).all()
        )

    def profit_by_salesperson(self, *, scope: VisibilityScope, period: PeriodFilter) -> list[Row]:
        return self.db.execute(
            select(
                User.id,
                User.name,
                func.count(Project.id).label("project_count"),
                func.coalesce(func.sum(Project.gross_profit), ZERO).label("profit"),
            )
            .select_from(Project)
            .join(User, User.id == Project.salesperson_id)
            .where(*project_conditions(scope=scope, period=period), Project.gross_profit.is_not(None))
            .group_by(User.id, User.name)
        ).all()
