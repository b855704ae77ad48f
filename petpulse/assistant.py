from __future__ import annotations

from datetime import date
from typing import Any, Optional

from .confirm_stage import ConfirmStage
from .models import ConfirmRequest, ConfirmResponse, PlanRequest, PlanResult, TipsRequest, TipsResponse
from .plan_stage import PlanStage
from .prompt_builder import PromptBuilder
from .tips_stage import TipsStage


class TriageAssistant:
    """Entry point for the three triage stages; holds no per-conversation state."""

    def __init__(self, gateway: Any, prompt_builder: PromptBuilder) -> None:
        """Purpose: Build the tips, confirm and plan stage handlers.
        Inputs/Outputs: Inputs are the structured-output gateway and a PromptBuilder.
        Side Effects / State: None beyond holding the stage handlers.
        Dependencies: TipsStage, ConfirmStage, PlanStage.
        Failure Modes: None at init.
        If Removed: Routes have nothing to delegate to.
        Testing Notes: Construct with a fake gateway and call each stage.
        """
        self._tips = TipsStage(gateway, prompt_builder)
        self._confirm = ConfirmStage(gateway, prompt_builder)
        self._plan = PlanStage(gateway, prompt_builder)

    def tips(self, request: TipsRequest, today: Optional[date] = None) -> TipsResponse:
        return self._tips.handle(request, today=today)

    def confirm(self, request: ConfirmRequest, today: Optional[date] = None) -> ConfirmResponse:
        return self._confirm.handle(request, today=today)

    def plan(self, request: PlanRequest, today: Optional[date] = None) -> PlanResult:
        return self._plan.handle(request, today=today)
