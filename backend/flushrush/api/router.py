from __future__ import annotations

from fastapi import APIRouter

from flushrush.api.system import router as system_router
from flushrush.api.ws import router as ws_router

api_router = APIRouter()
api_router.include_router(system_router)
api_router.include_router(ws_router)
