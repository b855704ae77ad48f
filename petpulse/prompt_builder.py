from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Optional

from .profile import UNKNOWN, NormalizedProfile, profile_block
from .prompt_loader import fill_template, load_prompt


@dataclass(frozen=True)
class RenderedPrompt:
    """System (instruction) and user (context) text for one gateway call."""
    system_text: str
    user_text: str


def _as_json(value: Any, empty: Any) -> str:
    # Prior Q&A is echoed back verbatim; None becomes an empty container.
    return json.dumps(value if value is not None else empty, ensure_ascii=False, indent=2, default=str)


class PromptBuilder:
    """Renders the instruction and context text for each triage stage."""

    def __init__(self, prompts_dir: Path) -> None:
        """Purpose: Bind the builder to a directory of prompt templates.
        Inputs/Outputs: Input is the prompts directory; no return value.
        Side Effects / State: None until a stage is rendered.
        Dependencies: Uses load_prompt/fill_template and profile_block.
        Failure Modes: Missing template files surface as FileNotFoundError on first use.
        If Removed: Stage handlers have no text to send to the gateway.
        Testing Notes: Render each stage with a fixed date and compare sections.
        """
        self._prompts_dir = prompts_dir

    def _template(self, name: str) -> str:
        return load_prompt(self._prompts_dir / name)

    def _system(self, name: str) -> str:
        # Tone rules go into every stage's instruction text.
        return fill_template(self._template(name), {"TONE_RULES": self._template("tone_rules.txt").strip()})

    def environment_block(self, profile: NormalizedProfile, today: Optional[date] = None) -> str:
        today = today or date.today()
        return fill_template(
            self._template("environment.txt"),
            {
                "CITY": profile.city or f"{UNKNOWN} city",
                "COUNTRY": profile.country or f"{UNKNOWN} country",
                "TODAY": today.isoformat(),
            },
        )

    def _base_values(self, profile: NormalizedProfile, symptoms: str, today: Optional[date]) -> dict:
        return {
            "PROFILE": profile_block(profile),
            "ENVIRONMENT": self.environment_block(profile, today),
            "SYMPTOMS": symptoms,
        }

    def build_tips(self, profile: NormalizedProfile, symptoms: str, today: Optional[date] = None) -> RenderedPrompt:
        return RenderedPrompt(
            system_text=self._system("tips_system.txt"),
            user_text=fill_template(self._template("tips_user.txt"), self._base_values(profile, symptoms, today)),
        )

    def build_confirm(
        self,
        profile: NormalizedProfile,
        symptoms: str,
        selected_issue: str,
        today: Optional[date] = None,
    ) -> RenderedPrompt:
        values = self._base_values(profile, symptoms, today)
        values["SELECTED_ISSUE"] = selected_issue
        return RenderedPrompt(
            system_text=self._system("confirm_system.txt"),
            user_text=fill_template(self._template("confirm_user.txt"), values),
        )

    def build_plan(
        self,
        profile: NormalizedProfile,
        symptoms: str,
        selected_issue: str,
        round_number: int,
        previous_questions: Any = None,
        previous_answers: Any = None,
        current_answers: Any = None,
        today: Optional[date] = None,
    ) -> RenderedPrompt:
        """Purpose: Render the plan-stage prompt including the follow-up history.
        Inputs/Outputs: Inputs are the normalized profile, notes, selected issue,
            round number, and the caller-held Q&A history; output is a RenderedPrompt.
        Side Effects / State: None; history is serialized, never stored.
        Dependencies: Uses _as_json for stable, readable history blocks.
        Failure Modes: Non-JSON-serializable history values are stringified.
        If Removed: The plan stage cannot tell the model which round it is in.
        Testing Notes: Round number and each history block must appear in user text.
        """
        values = self._base_values(profile, symptoms, today)
        values.update(
            {
                "SELECTED_ISSUE": selected_issue,
                "ROUND": str(round_number),
                "PREVIOUS_QUESTIONS": _as_json(previous_questions, []),
                "PREVIOUS_ANSWERS": _as_json(previous_answers, {}),
                "CURRENT_ANSWERS": _as_json(current_answers, {}),
            }
        )
        return RenderedPrompt(
            system_text=self._system("plan_system.txt"),
            user_text=fill_template(self._template("plan_user.txt"), values),
        )
