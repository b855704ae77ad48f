from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Tuple

from .contracts import CONCERN_LEVELS, TIPS_CONTRACT
from .errors import MalformedOutput
from .models import Issue, TipsResponse
from .triage_pipeline import StageHandler, TriageContext
from .utils import as_string_list, safe_text, to_int

logger = logging.getLogger("petpulse.tips")

MIN_ISSUES = 3
MAX_ISSUES = 5
# (min, max) item counts per issue list.
ISSUE_LIST_BOUNDS = {"why": (1, 3), "do_today": (2, 4), "watch": (2, 4)}

DEFAULT_TITLE = "Possible concerns to keep in mind"
DEFAULT_INTRO = "Based on what you shared, here are some possibilities worth considering, most likely first."
DEFAULT_DISCLAIMER = (
    "This is not a diagnosis. If symptoms worsen or you are worried, contact a veterinarian."
)
DEFAULT_LEVEL = "moderate"

POSSIBLE_RE = re.compile(r"\bpossib", re.IGNORECASE)
LEVEL_ALIASES = {
    "somewhat concerning": "somewhat_concerning",
    "somewhat-concerning": "somewhat_concerning",
    "concerning": "somewhat_concerning",
}


def normalize_level(value: Any) -> str:
    """Map a generator concern level onto the ordered tier names."""
    level = safe_text(value).lower()
    level = LEVEL_ALIASES.get(level, level)
    return level if level in CONCERN_LEVELS else DEFAULT_LEVEL


def non_diagnostic_title(title: str) -> str:
    # Titles must read as a possibility, never a diagnosis.
    if POSSIBLE_RE.search(title):
        return title
    # Leave acronyms such as "GI upset" alone.
    if len(title) > 1 and title[1].isupper():
        return f"Possible {title}"
    return f"Possible {title[:1].lower()}{title[1:]}"


def is_usable_issue(entry: Any) -> bool:
    """An issue needs a title and enough items in each advice list."""
    if not isinstance(entry, dict) or not safe_text(entry.get("title")):
        return False
    return all(
        len(as_string_list(entry.get(key))) >= low for key, (low, _) in ISSUE_LIST_BOUNDS.items()
    )


def normalize_issues(raw: Any) -> List[Issue]:
    """Purpose: Turn the generator's issue array into 3-5 ranked, sanitized issues.
    Inputs/Outputs: Input is the raw "issues" value; output is a list of Issue models
        with ranks exactly 1..N in array order.
    Side Effects / State: None; pure function.
    Dependencies: Uses as_string_list/to_int and the concern-level tiers.
    Failure Modes: Raises MalformedOutput when fewer than 3 usable issues remain.
    If Removed: Clients could see duplicate ranks, gaps, or oversized lists.
    Testing Notes: Shuffled, duplicate, and missing ranks must come back 1..N.
    """
    # Drop untitled or thin entries; sorted() is stable for equal ranks.
    if not isinstance(raw, list):
        raise MalformedOutput("Generative service returned no issues")
    usable: List[Dict[str, Any]] = [
        entry for entry in raw if is_usable_issue(entry)
    ]
    if len(usable) < MIN_ISSUES:
        logger.warning("tips malformed=too_few_issues received=%s usable=%s", len(raw), len(usable))
        raise MalformedOutput(f"Generative service returned {len(usable)} usable issues; at least {MIN_ISSUES} required")

    def rank_key(entry: Dict[str, Any]) -> Tuple[bool, int]:
        rank = to_int(entry.get("rank"))
        unranked = rank is None or rank <= 0
        return unranked, 0 if unranked else rank

    ordered = sorted(usable, key=rank_key)[:MAX_ISSUES]
    issues: List[Issue] = []
    for index, entry in enumerate(ordered, start=1):
        lists = {key: as_string_list(entry.get(key))[:high] for key, (_, high) in ISSUE_LIST_BOUNDS.items()}
        issues.append(
            Issue(
                id=safe_text(entry.get("id")) or f"issue_{index}",
                title=non_diagnostic_title(safe_text(entry.get("title"))),
                rank=index,
                level=normalize_level(entry.get("level")),
                **lists,
            )
        )
    return issues


class TipsStage(StageHandler):
    """Stage 1: ranked possible concerns for the owner's notes."""

    stage = "tips"
    contract = TIPS_CONTRACT

    def _step_build_prompt(self, context: TriageContext) -> None:
        context.prompt = self._prompt_builder.build_tips(context.profile, context.symptoms, today=context.today)

    def _step_enforce(self, context: TriageContext) -> None:
        issues = normalize_issues(context.raw.get("issues"))
        context.log("Enforce", f"issues={len(issues)}")
        context.result = TipsResponse(
            title=safe_text(context.raw.get("title")) or DEFAULT_TITLE,
            intro=safe_text(context.raw.get("intro")) or DEFAULT_INTRO,
            issues=issues,
            disclaimer=safe_text(context.raw.get("disclaimer")) or DEFAULT_DISCLAIMER,
        )
