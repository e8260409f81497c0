"""
Signage: Display API Server
===========================

Read-only API exposing what a room screen shows, so any renderer
(browser kiosk, e-paper panel) can draw it.

Endpoints:
- GET /health                          -> Online/offline for the room
- GET /api/v1/schedule                 -> Full time-sorted schedule
- GET /api/v1/upcoming                 -> Current + next two presentations
- GET /api/v1/speakers/{id}/photo      -> Cached speaker photo

Usage:
    SIGNAGE_PROPERTIES=signage.properties SIGNAGE_ROOM=room1 \
        uvicorn signage.api.server:app
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from ..app import RefreshScheduler, SignageApp
from ..config import ROOM_ENV, SignageConfig
from ..observability import setup_logging
from .mapper import ScheduleDTO, UpcomingDTO, map_schedule, map_upcoming


logger = logging.getLogger(__name__)


def create_app(signage: Optional[SignageApp] = None, start_scheduler: bool = True) -> FastAPI:
    """
    Build the API around a SignageApp.

    Without one, the app is created on startup from $SIGNAGE_PROPERTIES
    and $SIGNAGE_ROOM.
    """

    @asynccontextmanager
    async def lifespan(api: FastAPI):
        if api.state.signage is None:
            config = SignageConfig.load()
            setup_logging(config.logging_level)
            api.state.signage = SignageApp.create(config, os.environ.get(ROOM_ENV))
            result = await run_in_threadpool(api.state.signage.start)
            if not result.success:
                logger.error("Error retrieving initial data from server: %s", result.error_message)

        scheduler = None
        if start_scheduler:
            scheduler = RefreshScheduler.for_app(api.state.signage)
            scheduler.start()

        yield

        if scheduler is not None:
            logger.info("Stopping refresh timers")
            scheduler.stop(timeout=5)

    api = FastAPI(
        title="Signage Display API",
        version="0.1.0",
        description="Read-only view of a conference room screen",
        lifespan=lifespan
    )
    api.state.signage = signage

    api.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    def current(request: Request) -> SignageApp:
        signage_app = request.app.state.signage
        if signage_app is None:
            raise HTTPException(status_code=503, detail="Signage not initialized")
        return signage_app

    @api.get("/health")
    async def health(request: Request):
        signage_app = current(request)
        online = signage_app.service.online
        status = "unknown" if online is None else ("online" if online else "offline")
        return {"status": status, "room": signage_app.service.room_id}

    @api.get("/api/v1/schedule", response_model=ScheduleDTO)
    async def schedule(request: Request):
        return map_schedule(current(request).state())

    @api.get("/api/v1/upcoming", response_model=UpcomingDTO)
    async def upcoming(request: Request):
        return map_upcoming(current(request).state())

    @api.get("/api/v1/speakers/{speaker_id}/photo")
    async def speaker_photo(speaker_id: str, request: Request):
        signage_app = current(request)
        scheduled = (
            s for p in signage_app.service.presentations for s in p.speakers if s.uuid == speaker_id
        )
        speaker = next(scheduled, None)
        if speaker is None:
            raise HTTPException(status_code=404, detail="Unknown speaker")
        path = speaker.photo_path
        if path is None or not path.exists():
            raise HTTPException(status_code=404, detail="No cached photo")
        return FileResponse(path, media_type="application/octet-stream")

    return api


app = create_app()
