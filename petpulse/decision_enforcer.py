"""Decision enforcement for the plan stage.

The generator self-selects between a PLAN and a NEED_MORE_INFO outcome and its
output drifts from the contract often enough that nothing it returns is shown
to the owner unchecked. Rules applied here, in order:

    1. Round 1 + NEED_MORE_INFO with at least one usable question: passed
       through after question sanitization (max 3 questions).
    2. Round 2 + anything that is not a complete PLAN: replaced by
       SAFE_DEFAULT_PLAN. There is no round 3.
    3. Everything else is healed into a PLAN: unknown urgency becomes
       MONITOR_24H, and each missing or short field is filled from the default
       table for that urgency. Generator-supplied content is kept.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Tuple

from .contracts import QUESTION_TYPES, URGENCY_LEVELS
from .models import FollowUpQuestion, NeedMoreInfoOutcome, PlanOutcome, PlanResult
from .utils import as_string_list, safe_text

logger = logging.getLogger("petpulse.plan")

PLAN = "PLAN"
NEED_MORE_INFO = "NEED_MORE_INFO"
DEFAULT_URGENCY = "MONITOR_24H"
FINAL_ROUND = 2

MAX_FOLLOWUP_QUESTIONS = 3
MAX_OPTIONS = 6
DEFAULT_QUESTION_TEXT = "Please share a bit more detail."
DEFAULT_REASON = "A bit more detail will help."
DEFAULT_DISCLAIMER = (
    "This is not a diagnosis. If symptoms worsen or red flags appear, contact a veterinarian."
)

# (min, max) item counts per plan list field.
PLAN_LIST_BOUNDS: Dict[str, Tuple[int, int]] = {
    "why": (2, 4),
    "do_now": (3, 6),
    "avoid": (2, 4),
    "red_flags": (3, 6),
}

DEFAULT_PLAN_CONTENT: Dict[str, Dict[str, Any]] = {
    "VET_NOW": {
        "headline": "Seek veterinary care as soon as possible",
        "why": [
            "Some patterns can be more urgent, and it may be safer to have a vet assess your pet.",
            "Getting help sooner can prevent complications if this worsens quickly.",
        ],
        "do_now": [
            "Contact a veterinary clinic or emergency vet now and describe the symptoms clearly.",
            "Keep your pet calm, warm, and supervised while you prepare to go.",
            "If vomiting/diarrhea is present, bring a brief timeline (when started, how often).",
        ],
        "avoid": [
            "Avoid giving human medications unless a veterinarian instructs you.",
            "Avoid forcing food or water if your pet is actively vomiting or struggling to swallow.",
        ],
        "red_flags": [
            "Collapse, severe weakness, or trouble breathing",
            "Repeated vomiting or inability to keep water down",
            "Blood in vomit or stool, or obvious severe pain",
        ],
    },
    "HOME": {
        "headline": "Home care may be appropriate for now",
        "why": [
            "No clear urgent red flags stand out from what you shared.",
            "Supportive care and close observation may help while you monitor for changes.",
        ],
        "do_now": [
            "Ensure fresh water is available; offer small amounts more often if needed.",
            "Provide a quiet, comfortable place to rest and keep activity low.",
            "Track appetite, energy, bathroom changes, and any vomiting/diarrhea.",
        ],
        "avoid": [
            "Avoid rich treats/new foods while symptoms are ongoing.",
            "Avoid human medications unless a veterinarian instructs you.",
        ],
        "red_flags": [
            "Symptoms worsen or new symptoms appear",
            "Your pet becomes very lethargic, painful, or won't drink",
            "Any blood in vomit/stool or repeated vomiting",
        ],
    },
    "MONITOR_24H": {
        "headline": "Monitor closely over the next 24 hours",
        "why": [
            "There don't appear to be urgent red flags right now, but close monitoring is a cautious next step.",
            "If anything worsens or doesn't improve, checking with a vet is the safest move.",
        ],
        "do_now": [
            "Ensure your pet has access to fresh water and a calm resting area.",
            "Monitor appetite, energy, and bathroom habits; note any vomiting/diarrhea.",
            "Reassess within 24 hours (sooner if red flags appear).",
        ],
        "avoid": [
            "Avoid giving human medications unless directed by a veterinarian.",
            "Avoid strenuous activity until your pet seems back to normal.",
        ],
        "red_flags": [
            "Repeated vomiting or inability to keep water down",
            "Blood in vomit or stool",
            "Severe lethargy, collapse, or signs of significant pain",
            "Trouble breathing, bloated abdomen, or repeated unproductive retching",
        ],
    },
}


def normalize_urgency(value: Any) -> str:
    urgency = safe_text(value).upper()
    return urgency if urgency in URGENCY_LEVELS else DEFAULT_URGENCY


def default_plan_content(urgency: Any) -> Dict[str, Any]:
    """Return a copy of the default content table for an urgency (MONITOR_24H if unknown)."""
    table = DEFAULT_PLAN_CONTENT[normalize_urgency(urgency)]
    return {key: list(value) if isinstance(value, list) else value for key, value in table.items()}


def safe_default_plan() -> PlanOutcome:
    """The fixed, hand-authored plan used whenever round 2 cannot produce a usable one."""
    content = default_plan_content(DEFAULT_URGENCY)
    return PlanOutcome(urgency=DEFAULT_URGENCY, disclaimer=DEFAULT_DISCLAIMER, **content)


def sanitize_questions(raw: Any) -> List[FollowUpQuestion]:
    """Purpose: Coerce generator follow-up questions into well-formed FollowUpQuestion models.
    Inputs/Outputs: Input is the raw "questions" value; output is a list (possibly empty).
    Side Effects / State: None; pure function.
    Dependencies: Uses safe_text/as_string_list and QUESTION_TYPES.
    Failure Modes: Never raises; non-list input yields [] and non-object entries are skipped.
    If Removed: Clients could receive questions without ids, text, or a valid type.
    Testing Notes: Blank ids/text get fallbacks; unknown types become short_text.
    """
    if not isinstance(raw, list):
        return []
    questions: List[FollowUpQuestion] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        position = len(questions) + 1
        qtype = safe_text(entry.get("type")).lower()
        if qtype not in QUESTION_TYPES:
            qtype = "short_text"
        options = as_string_list(entry.get("options"))[:MAX_OPTIONS]
        if qtype == "single_choice" and not options:
            qtype = "short_text"
        if qtype != "single_choice":
            options = []
        questions.append(
            FollowUpQuestion(
                id=safe_text(entry.get("id")) or f"q_{position}",
                text=safe_text(entry.get("text")) or DEFAULT_QUESTION_TEXT,
                type=qtype,
                options=options,
            )
        )
    return questions


def _result_type(payload: Mapping[str, Any]) -> str:
    return safe_text(payload.get("result_type")).upper()


def is_complete_plan(payload: Mapping[str, Any]) -> bool:
    """True when the payload is an explicit PLAN with a known urgency and every field filled."""
    if _result_type(payload) != PLAN:
        return False
    if safe_text(payload.get("urgency")).upper() not in URGENCY_LEVELS:
        return False
    if not safe_text(payload.get("headline")) or not safe_text(payload.get("disclaimer")):
        return False
    return all(as_string_list(payload.get(field_name)) for field_name in PLAN_LIST_BOUNDS)


def _top_up(items: List[str], defaults: List[str], minimum: int, maximum: int) -> List[str]:
    # Keep generator items, add defaults not already present until the minimum is met.
    merged = list(items)
    for default in defaults:
        if len(merged) >= minimum:
            break
        if default not in merged:
            merged.append(default)
    return merged[:maximum]


def heal_plan(payload: Mapping[str, Any]) -> Tuple[PlanOutcome, List[str]]:
    """Purpose: Build a complete PlanOutcome from a partial generator payload.
    Inputs/Outputs: Input is the raw payload mapping; output is the healed PlanOutcome
        plus the names of fields that were filled or topped up from defaults.
    Side Effects / State: None; pure function.
    Dependencies: Uses DEFAULT_PLAN_CONTENT keyed by the normalized urgency.
    Failure Modes: Never raises; an empty payload yields the MONITOR_24H defaults.
    If Removed: The owner could be shown a plan with empty sections.
    Testing Notes: Supplied headline survives verbatim while a missing avoid list
        is filled from the table for the payload's urgency.
    """
    urgency = normalize_urgency(payload.get("urgency"))
    defaults = default_plan_content(urgency)
    healed: List[str] = []

    lists: Dict[str, List[str]] = {}
    for field_name, (minimum, maximum) in PLAN_LIST_BOUNDS.items():
        supplied = as_string_list(payload.get(field_name))
        lists[field_name] = _top_up(supplied, defaults[field_name], minimum, maximum)
        if len(supplied) < minimum:
            healed.append(field_name)

    headline = safe_text(payload.get("headline"))
    if not headline:
        headline = defaults["headline"]
        healed.append("headline")
    disclaimer = safe_text(payload.get("disclaimer"))
    if not disclaimer:
        disclaimer = DEFAULT_DISCLAIMER
        healed.append("disclaimer")
    if safe_text(payload.get("urgency")).upper() != urgency:
        healed.append("urgency")

    outcome = PlanOutcome(urgency=urgency, headline=headline, disclaimer=disclaimer, **lists)
    return outcome, healed


def enforce_outcome(
    payload: Mapping[str, Any],
    round_number: int,
    selected_issue_title: str,
    request_id: str = "-",
) -> PlanResult:
    """Purpose: Apply the round rules and healing policy to one plan-stage payload.
    Inputs/Outputs: Inputs are the generator payload (may be empty), the round (1 or 2),
        and the caller's selected issue title; output is a PlanOutcome or, at round 1
        only, a NeedMoreInfoOutcome.
    Side Effects / State: Logs which branch was taken and which fields were healed.
    Dependencies: Uses sanitize_questions, is_complete_plan, heal_plan, safe_default_plan.
    Failure Modes: Never raises for generator defects; every path returns a valid model.
    If Removed: The dialogue could loop past round 2 or end with an empty plan.
    Testing Notes: NEED_MORE_INFO at round 2 must become the safe default plan.
    """
    if not isinstance(payload, Mapping):
        payload = {}
    result_type = _result_type(payload)

    if result_type == NEED_MORE_INFO and round_number < FINAL_ROUND:
        questions = sanitize_questions(payload.get("questions"))
        if questions:
            logger.info("request=%s plan branch=need_more_info questions=%s", request_id, len(questions))
            return NeedMoreInfoOutcome(
                selected_issue_title=selected_issue_title,
                reason=safe_text(payload.get("reason")) or DEFAULT_REASON,
                questions=questions[:MAX_FOLLOWUP_QUESTIONS],
            )
        logger.warning("request=%s plan branch=need_more_info_without_questions", request_id)

    if round_number >= FINAL_ROUND:
        if not is_complete_plan(payload):
            logger.warning(
                "request=%s plan branch=safe_default round=%s result_type=%s",
                request_id,
                round_number,
                result_type or "missing",
            )
            return safe_default_plan()

    outcome, healed = heal_plan(payload)
    if healed:
        logger.info("request=%s plan branch=healed urgency=%s fields=%s", request_id, outcome.urgency, healed)
    else:
        logger.info("request=%s plan branch=plan urgency=%s", request_id, outcome.urgency)
    return outcome
