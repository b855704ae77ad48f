from __future__ import annotations

import logging
from typing import Any, Dict, List

from .contracts import PLAN_CONTRACT
from .decision_enforcer import FINAL_ROUND, enforce_outcome, safe_default_plan
from .errors import ClientInputError, MalformedOutput, UpstreamUnavailable
from .triage_pipeline import StageHandler, TriageContext
from .utils import safe_text, to_int

logger = logging.getLogger("petpulse.plan")

MISSING_SELECTED_ISSUE = "Missing selected_issue_title"
INVALID_ROUND = "round must be 1 or 2"
VALID_ROUNDS = (1, 2)


def parse_round(value: Any) -> int:
    """Parse the caller's round number; absent means round 1, anything but 1 or 2 is rejected."""
    if value is None or value == "":
        return 1
    if isinstance(value, float) and not value.is_integer():
        raise ClientInputError(INVALID_ROUND)
    if isinstance(value, str):
        text = value.strip()
        if not text.isdigit():
            raise ClientInputError(INVALID_ROUND)
        value = text
    number = to_int(value)
    if number not in VALID_ROUNDS:
        raise ClientInputError(INVALID_ROUND)
    return number


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


def _as_dict(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


class PlanStage(StageHandler):
    """Stage 3: round-bounded decision between a final plan and one more question round."""

    stage = "plan"
    contract = PLAN_CONTRACT

    def _step_validate(self, context: TriageContext) -> None:
        """Purpose: Validate plan input and copy the caller-held conversation state.
        Inputs/Outputs: Input is TriageContext with a PlanRequest payload; fills
            selected issue, round, and Q&A history on the context.
        Side Effects / State: Appends a log entry on rejection.
        Dependencies: Uses _validate_common and parse_round.
        Failure Modes: Missing symptoms, missing selected issue, or a round other than
            1 or 2 raise ClientInputError before the gateway is contacted.
        If Removed: Invalid rounds would reach the enforcer and break the two-round cap.
        Testing Notes: round=3, round="abc" and blank issue titles must all be 400s.
        """
        self._validate_common(context)
        payload = context.payload
        context.selected_issue_title = safe_text(getattr(payload, "selected_issue_title", None))
        if not context.selected_issue_title:
            context.log("Validate", MISSING_SELECTED_ISSUE, status="error")
            raise ClientInputError(MISSING_SELECTED_ISSUE)
        context.round_number = parse_round(getattr(payload, "round", None))
        context.previous_questions = _as_list(getattr(payload, "previous_questions", None))
        context.previous_answers = _as_dict(getattr(payload, "previous_answers", None))
        context.current_answers = _as_dict(getattr(payload, "followup_answers", None))

    def _step_build_prompt(self, context: TriageContext) -> None:
        context.prompt = self._prompt_builder.build_plan(
            context.profile,
            context.symptoms,
            context.selected_issue_title,
            context.round_number,
            previous_questions=context.previous_questions,
            previous_answers=context.previous_answers,
            current_answers=context.current_answers,
            today=context.today,
        )

    def _step_request(self, context: TriageContext) -> None:
        # Malformed output is healed; an unreachable service only at the final round.
        try:
            super()._step_request(context)
        except MalformedOutput as exc:
            logger.warning("request=%s plan gateway=malformed round=%s", context.request_id, context.round_number)
            context.gateway_error = exc
            context.raw = {}
        except UpstreamUnavailable as exc:
            if context.round_number < FINAL_ROUND:
                raise
            logger.warning("request=%s plan gateway=unavailable round=%s", context.request_id, context.round_number)
            context.gateway_error = exc
            context.raw = {}

    def _step_enforce(self, context: TriageContext) -> None:
        if isinstance(context.gateway_error, UpstreamUnavailable):
            context.result = safe_default_plan()
            context.log("Enforce", "safe_default", status="fallback")
            return
        context.result = enforce_outcome(
            context.raw,
            context.round_number,
            context.selected_issue_title,
            request_id=context.request_id,
        )
        context.log("Enforce", context.result.result_type)
