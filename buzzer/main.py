# buzzer/main.py
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from buzzer.settings import Settings, get_settings
from buzzer.store.room_repo import RoomRepo
from buzzer.transport.admin import router as admin_router
from buzzer.transport.ws import router as ws_router
from buzzer.transport.ws_manager import WSManager
from buzzer.util.log_config import setup_logging

logger = structlog.get_logger()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("app.started", app_name=settings.APP_NAME)
        yield
        await app.state.wsman.close_all()
        logger.info("app.stopped")

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    allowed_origins = [o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials="*" not in allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # single room, process-wide; restarting clears everything
    app.state.settings = settings
    app.state.repo = RoomRepo()
    app.state.wsman = WSManager()
    app.state.room_lock = asyncio.Lock()

    @app.get("/health")
    async def health():
        return {
            "ok": True,
            "connections": app.state.wsman.size(),
            "players": len(app.state.repo.list_players()),
        }

    app.include_router(ws_router)
    app.include_router(admin_router)
    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT, log_config=None)


app = create_app()
