"""Projects list view: the drill-down target of dashboard tiles."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from solar_crm.core.auth import RequestUserContext, visibility_scope_for
from solar_crm.core.config import get_settings
from solar_crm.models.entities import Project
from solar_crm.repositories.project_repository import ProjectQuery, ProjectRepository, payment_bucket
from solar_crm.services.period_filter import PeriodFilter


@dataclass(slots=True)
class ProjectListFilters:
    statuses: list[str]
    payment_statuses: list[str]
    financial_years: list[str]
    quarters: list[str]
    months: list[str]
    search: str | None = None


def _money_or_none(value) -> str | None:
    return str(value) if value is not None else None


class ProjectService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ProjectRepository(db)
        self.settings = get_settings()

    @staticmethod
    def serialize_project(project: Project) -> dict[str, object]:
        return {
            "id": str(project.id),
            "sl_no": project.sl_no,
            "customer_id": str(project.customer_id),
            "customer_name": project.customer.customer_name if project.customer else None,
            "customer_code": project.customer.customer_code if project.customer else None,
            "salesperson_id": str(project.salesperson_id) if project.salesperson_id else None,
            "salesperson_name": project.salesperson.name if project.salesperson else None,
            "segment": project.segment.value,
            "lead_source": project.lead_source.value if project.lead_source else None,
            "project_status": project.project_status.value,
            "financial_year": project.financial_year,
            "confirmation_date": project.confirmation_date.isoformat() if project.confirmation_date else None,
            "system_capacity": _money_or_none(project.system_capacity),
            "project_cost": _money_or_none(project.project_cost),
            "gross_profit": _money_or_none(project.gross_profit),
            "profitability": _money_or_none(project.profitability),
            "total_amount_received": str(project.total_amount_received),
            "balance_amount": str(project.balance_amount),
            "payment_status": project.payment_status,
            "payment_bucket": payment_bucket(project.payment_status),
            "loan_availed": project.loan_availed,
            "loan_bank": project.loan_bank,
            "created_at": project.created_at.isoformat(),
        }

    def _resolve_pagination(self, page: int | None, limit: int | None) -> tuple[int, int]:
        resolved_page = 1 if page is None else page
        resolved_limit = self.settings.projects_page_size_default if limit is None else limit
        if resolved_page < 1:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="page must be greater than or equal to 1.",
            )
        if resolved_limit < 1 or resolved_limit > self.settings.projects_page_size_max:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"limit must be between 1 and {self.settings.projects_page_size_max}.",
            )
        return resolved_page, resolved_limit

    def list_projects(
        self,
        *,
        context: RequestUserContext,
        filters: ProjectListFilters,
        page: int | None,
        limit: int | None,
    ) -> dict[str, object]:
        """Paginated projects matching the same filters the dashboard tiles use.

        No status is excluded implicitly: the query string fully determines
        the result, so a tile link always reproduces the tile's count.
        """

        page, limit = self._resolve_pagination(page, limit)
        scope = visibility_scope_for(context)
        period = PeriodFilter.from_query(filters.financial_years, filters.quarters, filters.months)
        query = ProjectQuery(
            statuses=tuple(value.strip() for value in filters.statuses if value and value.strip()),
            payment_statuses=tuple(value.strip() for value in filters.payment_statuses if value and value.strip()),
            search=filters.search.strip() if filters.search and filters.search.strip() else None,
        )

        total = self.repo.count_projects(scope=scope, period=period, query=query)
        projects = self.repo.list_projects(
            scope=scope,
            period=period,
            query=query,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return {
            "projects": [self.serialize_project(project) for project in projects],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": (total + limit - 1) // limit,
            },
            "filters": {
                "status": list(query.statuses),
                "paymentStatus": list(query.payment_statuses),
                **period.to_dict(),
            },
            "scope": scope.label,
        }
