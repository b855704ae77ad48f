"""Shared stage pipeline: context contract and the base stage handler.

Every stage runs the same four steps over a fresh ``TriageContext``:

    Validate:
        Reads the request payload, rejects missing input with ClientInputError,
        and fills the normalized fields (profile, symptoms, selected issue, round).
    Build Prompt:
        Renders system/user text with the PromptBuilder.
    Request:
        Calls the structured-output gateway with the stage's contract and stores
        the decoded object in ``raw``.
    Enforce:
        Applies the stage's business rules and fallback policy and stores the
        response model in ``result``.

Nothing on the context outlives the request; conversation state comes back
from the caller on every call.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .contracts import OutputContract
from .errors import ClientInputError, TriageError
from .profile import NormalizedProfile, normalize_profile
from .prompt_builder import PromptBuilder, RenderedPrompt
from .stage_runtime import StageRunner, StageStep
from .utils import safe_text

logger = logging.getLogger("petpulse.pipeline")

MISSING_SYMPTOMS = "Missing symptoms"


@dataclass
class TriageContext:
    """Mutable per-request context passed through each stage step."""
    stage: str
    payload: Any
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    today: Optional[date] = None
    profile: NormalizedProfile = field(default_factory=NormalizedProfile)
    symptoms: str = ""
    selected_issue_title: str = ""
    selected_issue_id: str = ""
    round_number: int = 1
    previous_questions: List[Any] = field(default_factory=list)
    previous_answers: Dict[str, Any] = field(default_factory=dict)
    current_answers: Dict[str, Any] = field(default_factory=dict)
    prompt: Optional[RenderedPrompt] = None
    raw: Dict[str, Any] = field(default_factory=dict)
    gateway_error: Optional[TriageError] = None
    result: Optional[BaseModel] = None
    logs: List[Dict[str, str]] = field(default_factory=list)

    def log(self, event: str, detail: str, status: str = "success") -> None:
        """Append a step log entry; StageHandler.handle emits them at DEBUG when the stage ends."""
        self.logs.append({"event": event, "detail": detail, "status": status})


class StageHandler:
    """Base class for the three stages; subclasses supply validate/prompt/enforce."""

    stage = "stage"
    contract: Optional[OutputContract] = None

    def __init__(self, gateway: Any, prompt_builder: PromptBuilder) -> None:
        """Purpose: Wire a stage to the gateway and prompt builder.
        Inputs/Outputs: Inputs are a gateway exposing request(contract, system, user)
            and a PromptBuilder; no return value.
        Side Effects / State: Builds the StageRunner with the four ordered steps.
        Dependencies: Uses StageRunner/StageStep.
        Failure Modes: None at init.
        If Removed: The stage cannot be executed.
        Testing Notes: Pass a fake gateway and assert the step order.
        """
        self._gateway = gateway
        self._prompt_builder = prompt_builder
        self._runner = StageRunner(
            self.stage,
            [
                StageStep("validate", self._step_validate),
                StageStep("build_prompt", self._step_build_prompt),
                StageStep("request", self._step_request),
                StageStep("enforce", self._step_enforce),
            ],
        )

    def handle(self, payload: Any, today: Optional[date] = None) -> BaseModel:
        """Run the stage for one request payload and return its response model."""
        context = TriageContext(stage=self.stage, payload=payload, today=today)
        logger.info("request=%s stage=%s status=start", context.request_id, self.stage)
        try:
            self._runner.run(context)
        finally:
            for entry in context.logs:
                logger.debug(
                    "request=%s stage=%s event=%s status=%s detail=%s",
                    context.request_id,
                    self.stage,
                    entry["event"],
                    entry["status"],
                    entry["detail"],
                )
        logger.info(
            "request=%s stage=%s status=done result=%s",
            context.request_id,
            self.stage,
            getattr(context.result, "result_type", type(context.result).__name__),
        )
        return context.result

    def _validate_common(self, context: TriageContext) -> None:
        # Profile never fails; symptoms are required by every stage.
        context.profile = normalize_profile(getattr(context.payload, "profile", None))
        context.symptoms = safe_text(getattr(context.payload, "symptoms", None))
        if not context.symptoms:
            context.log("Validate", MISSING_SYMPTOMS, status="error")
            raise ClientInputError(MISSING_SYMPTOMS)

    def _step_validate(self, context: TriageContext) -> None:
        self._validate_common(context)

    def _step_build_prompt(self, context: TriageContext) -> None:
        raise NotImplementedError

    def _step_request(self, context: TriageContext) -> None:
        """Call the gateway; errors propagate unless the stage overrides this step."""
        context.raw = self._gateway.request(self.contract, context.prompt.system_text, context.prompt.user_text)
        context.log("Request", f"keys={','.join(sorted(context.raw))}")

    def _step_enforce(self, context: TriageContext) -> None:
        raise NotImplementedError
