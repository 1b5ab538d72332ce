from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["system"])


def _health_payload(request: Request) -> dict[str, object]:
    return {
        "ok": True,
        "status": "healthy",
        **request.app.state.runtime.status(),
    }


@router.get("/api/health")
async def health(request: Request) -> dict[str, object]:
    return _health_payload(request)


@router.get("/health")
async def health_compat(request: Request) -> dict[str, object]:
    return _health_payload(request)


@router.get("/api/ws-stats")
async def websocket_stats(request: Request) -> dict[str, object]:
    return await request.app.state.runtime.get_ws_stats()
