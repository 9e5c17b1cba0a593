"""Central router that includes all sub-routers."""

from fastapi import APIRouter

from roofcheck.api.deficiencies import router as deficiencies_router
from roofcheck.api.inspections import router as inspections_router
from roofcheck.api.workflows import router as workflows_router
from roofcheck.api.websocket import router as websocket_router

api_router = APIRouter()
api_router.include_router(deficiencies_router)
api_router.include_router(inspections_router)
api_router.include_router(workflows_router)
api_router.include_router(websocket_router)
