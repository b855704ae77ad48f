from __future__ import annotations

import logging
from typing import Any, Optional, Union

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .assistant import TriageAssistant
from .config import Settings
from .errors import TriageError
from .gemini_client import GeminiClient
from .models import (
    ConfirmRequest,
    ConfirmResponse,
    ErrorResponse,
    NeedMoreInfoOutcome,
    PlanOutcome,
    PlanRequest,
    TipsRequest,
    TipsResponse,
)
from .prompt_builder import PromptBuilder

logger = logging.getLogger("petpulse.app")

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def create_app(settings: Settings, gateway: Optional[Any] = None) -> FastAPI:
    """Purpose: Build the FastAPI application around one TriageAssistant.
    Inputs/Outputs: Inputs are Settings and an optional gateway (tests inject a fake);
        output is a configured FastAPI app.
    Side Effects / State: Constructs GeminiClient when no gateway is given, which
        configures the SDK and fails fast on a missing API key.
    Dependencies: Uses GeminiClient, PromptBuilder, TriageAssistant.
    Failure Modes: ValueError from GeminiClient on missing configuration.
    If Removed: The triage stages have no HTTP surface.
    Testing Notes: Build with a fake gateway and drive routes with TestClient.
    """
    if gateway is None:
        gateway = GeminiClient(settings)
    assistant = TriageAssistant(gateway, PromptBuilder(settings.prompts_dir))

    app = FastAPI(title="PetPulse API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        """Reject bodies over MAX_BODY_BYTES with 413.

        Content-Length is checked up front. Chunked bodies carry no length, so they
        are read (Starlette caches the bytes for the route) and measured.
        """
        length = request.headers.get("content-length")
        if length is None and request.method in ("POST", "PUT", "PATCH"):
            length = str(len(await request.body()))
        if length and length.isdigit() and int(length) > settings.max_body_bytes:
            logger.warning("path=%s rejected=body_too_large length=%s", request.url.path, length)
            return JSONResponse(status_code=413, content={"error": "Request body too large"})
        return await call_next(request)

    @app.exception_handler(TriageError)
    async def handle_triage_error(request: Request, exc: TriageError) -> JSONResponse:
        level = logging.INFO if exc.status_code < 500 else logging.ERROR
        logger.log(level, "path=%s status=%s error=%s", request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.post("/tips", response_model=TipsResponse, responses=ERROR_RESPONSES)
    def tips(request: TipsRequest) -> TipsResponse:
        """Stage 1: ranked possible issues for the owner's notes."""
        return assistant.tips(request)

    @app.post("/confirm", response_model=ConfirmResponse, responses=ERROR_RESPONSES)
    def confirm(request: ConfirmRequest) -> ConfirmResponse:
        """Stage 2: follow-up questions for the selected issue."""
        return assistant.confirm(request)

    @app.post("/plan", response_model=Union[PlanOutcome, NeedMoreInfoOutcome], responses=ERROR_RESPONSES)
    def plan(request: PlanRequest) -> Union[PlanOutcome, NeedMoreInfoOutcome]:
        """Stage 3: final plan, or one more question round when round is 1."""
        return assistant.plan(request)

    return app
