"""
src/taxgateway/api/main.py
==========================
FastAPI surface for the CIS submission gateway.
  - POST /cis/submissions/create-and-track     → create a tracked submission
  - POST /cis/submissions/{id}/submit-to-chris → submit the nil monthly return
  - POST /cis/submissions/{id}/update          → update the submission record
  - GET  /cis/submissions/poll                 → poll an accepted submission
  - GET  /health
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Query, Request

from taxgateway.api.submission_controller import SubmissionController
from taxgateway.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"

log = logging.getLogger("api")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)


def build_router(controller: SubmissionController) -> APIRouter:
    """
    Description: Bind the submission routes to a controller instance.
    Layer: API
    Input: SubmissionController with its collaborators already injected
    Output: APIRouter mounted under /cis/submissions
    """
    router = APIRouter(prefix="/cis/submissions", tags=["submissions"])

    @router.post("/create-and-track")
    async def create_submission(request: Request):
        return await controller.create_submission(request)

    @router.post("/{submission_id}/submit-to-chris")
    async def submit_to_chris(submission_id: str, request: Request):
        return await controller.submit_to_chris(submission_id, request)

    @router.post("/{submission_id}/update")
    async def update_submission(submission_id: str, request: Request):
        return await controller.update_submission(submission_id, request)

    @router.get("/poll")
    async def poll_submission(
        request: Request,
        poll_url: str = Query(..., alias="pollUrl"),
        correlation_id: str = Query(..., alias="correlationId"),
    ):
        return await controller.poll_submission(poll_url, correlation_id, request)

    return router


def create_app(controller: SubmissionController, settings: Optional[Settings] = None) -> FastAPI:
    """
    Description: Application factory; collaborators arrive through the controller.
    Layer: API
    Input: SubmissionController (+ optional Settings override)
    Output: FastAPI app
    """
    s = settings or get_settings()
    configure_logging(s)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("Submission gateway starting up (environment=%s)…", s.environment)
        yield
        log.info("Submission gateway shutting down…")

    app = FastAPI(
        title=s.api_title,
        version=s.api_version,
        description="CIS monthly nil return submission gateway",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health():
        return {"status": "ok", "environment": s.environment}

    app.include_router(build_router(controller))
    return app
