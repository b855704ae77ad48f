from __future__ import annotations

import logging

from .contracts import CONFIRM_CONTRACT
from .decision_enforcer import sanitize_questions
from .errors import ClientInputError, MalformedOutput
from .models import ConfirmResponse
from .triage_pipeline import StageHandler, TriageContext
from .utils import safe_text

logger = logging.getLogger("petpulse.confirm")

MIN_QUESTIONS = 2
MAX_QUESTIONS = 4
MISSING_SELECTED_ISSUE = "Missing selected_issue_title"


class ConfirmStage(StageHandler):
    """Stage 2: follow-up questions that narrow urgency for the selected issue."""

    stage = "confirm"
    contract = CONFIRM_CONTRACT

    def _step_validate(self, context: TriageContext) -> None:
        self._validate_common(context)
        context.selected_issue_title = safe_text(getattr(context.payload, "selected_issue_title", None))
        context.selected_issue_id = safe_text(getattr(context.payload, "selected_issue_id", None))
        if not context.selected_issue_title and not context.selected_issue_id:
            context.log("Validate", MISSING_SELECTED_ISSUE, status="error")
            raise ClientInputError(MISSING_SELECTED_ISSUE)

    def _step_build_prompt(self, context: TriageContext) -> None:
        # An id-only reference is passed through as-is; the model sees it next to the notes.
        selected = context.selected_issue_title or f"Issue id: {context.selected_issue_id}"
        context.prompt = self._prompt_builder.build_confirm(
            context.profile, context.symptoms, selected, today=context.today
        )

    def _step_enforce(self, context: TriageContext) -> None:
        """Sanitize questions, require at least two, and cap at four."""
        questions = sanitize_questions(context.raw.get("questions"))
        if len(questions) < MIN_QUESTIONS:
            logger.warning(
                "request=%s confirm malformed=too_few_questions usable=%s", context.request_id, len(questions)
            )
            raise MalformedOutput(
                f"Generative service returned {len(questions)} usable questions; at least {MIN_QUESTIONS} required"
            )
        title = (
            context.selected_issue_title
            or safe_text(context.raw.get("selected_issue_title"))
            or context.selected_issue_id
        )
        context.log("Enforce", f"questions={min(len(questions), MAX_QUESTIONS)}")
        context.result = ConfirmResponse(selected_issue_title=title, questions=questions[:MAX_QUESTIONS])
