"""Top-level API router."""

from fastapi import APIRouter

from agency.api.routes.exports import router as exports_router
from agency.api.routes.health import router as health_router
from agency.api.routes.me import router as me_router
from agency.api.routes.milestones import router as milestones_router
from agency.api.routes.portal import router as portal_router
from agency.api.routes.projects import router as projects_router
from agency.api.routes.reports import router as reports_router
from agency.api.routes.tasks import router as tasks_router
from agency.api.routes.users import router as users_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(users_router)
api_router.include_router(projects_router)
api_router.include_router(milestones_router)
api_router.include_router(tasks_router)
api_router.include_router(portal_router)
api_router.include_router(reports_router)
api_router.include_router(exports_router)
