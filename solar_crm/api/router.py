"""Top-level API router."""

from fastapi import APIRouter

from solar_crm.api.routes.dashboard import router as dashboard_router
from solar_crm.api.routes.health import router as health_router
from solar_crm.api.routes.me import router as me_router
from solar_crm.api.routes.projects import router as projects_router
from solar_crm.api.routes.sales_team import router as sales_team_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(projects_router)
api_router.include_router(sales_team_router)
api_router.include_router(dashboard_router)
