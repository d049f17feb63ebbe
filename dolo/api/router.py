"""
API router - aggregates all route modules.
"""
from fastapi import APIRouter
from dolo.api.forms import router as forms_router
from dolo.api.checkout import router as checkout_router
from dolo.api.webhooks import router as webhooks_router
from dolo.api.admin import router as admin_router
from dolo.api.portal import router as portal_router
from dolo.api.health import router as health_router

api_router = APIRouter()
api_router.include_router(forms_router)
api_router.include_router(checkout_router)
api_router.include_router(webhooks_router)
api_router.include_router(admin_router)
api_router.include_router(portal_router)
api_router.include_router(health_router)
