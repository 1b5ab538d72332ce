from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flushrush.api.router import api_router
from flushrush.config import settings
from flushrush.runtime import FlushRushRuntime

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))


def create_app(runtime: FlushRushRuntime | None = None) -> FastAPI:
    app = FastAPI(title="Flush Rush Backend", version="1.0.0")
    app.state.runtime = runtime or FlushRushRuntime()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_origin_regex=settings.allowed_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await app.state.runtime.shutdown()

    return app


app = create_app()
