"""Output-shape contracts sent to Gemini as ``response_schema``.

Schemas use the Gemini schema dialect: upper-case type names, ``min_items`` /
``max_items`` for array bounds, and ``format: enum`` for string enums. The
stage handlers still validate everything they get back; the contract only
narrows what the model is likely to produce.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

CONCERN_LEVELS: List[str] = ["mild", "moderate", "somewhat_concerning", "severe", "urgent"]
QUESTION_TYPES: List[str] = ["single_choice", "yes_no", "short_text"]
URGENCY_LEVELS: List[str] = ["HOME", "MONITOR_24H", "VET_NOW"]
RESULT_TYPES: List[str] = ["PLAN", "NEED_MORE_INFO"]


@dataclass(frozen=True)
class OutputContract:
    """Named response schema for one stage."""
    name: str
    schema: Dict[str, Any]


def _string() -> Dict[str, Any]:
    return {"type": "STRING"}


def _enum(values: List[str]) -> Dict[str, Any]:
    return {"type": "STRING", "format": "enum", "enum": list(values)}


def _string_list(min_items: int = 0, max_items: int = 0) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "ARRAY", "items": _string()}
    if min_items:
        schema["min_items"] = min_items
    if max_items:
        schema["max_items"] = max_items
    return schema


def _question(max_options: int = 6) -> Dict[str, Any]:
    return {
        "type": "OBJECT",
        "properties": {
            "id": _string(),
            "text": _string(),
            "type": _enum(QUESTION_TYPES),
            "options": _string_list(max_items=max_options),
        },
        "required": ["id", "text", "type", "options"],
    }


TIPS_CONTRACT = OutputContract(
    name="petpulse_tips",
    schema={
        "type": "OBJECT",
        "properties": {
            "title": _string(),
            "intro": _string(),
            "disclaimer": _string(),
            "issues": {
                "type": "ARRAY",
                "min_items": 3,
                "max_items": 5,
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "id": _string(),
                        "title": _string(),
                        "rank": {"type": "INTEGER"},
                        "level": _enum(CONCERN_LEVELS),
                        "why": _string_list(1, 3),
                        "do_today": _string_list(2, 4),
                        "watch": _string_list(2, 4),
                    },
                    "required": ["id", "title", "rank", "level", "why", "do_today", "watch"],
                },
            },
        },
        "required": ["title", "intro", "issues", "disclaimer"],
    },
)

CONFIRM_CONTRACT = OutputContract(
    name="petpulse_confirm",
    schema={
        "type": "OBJECT",
        "properties": {
            "selected_issue_title": _string(),
            "questions": {"type": "ARRAY", "min_items": 2, "max_items": 4, "items": _question()},
        },
        "required": ["selected_issue_title", "questions"],
    },
)

# Both outcome shapes share one schema; only result_type is mandatory.
PLAN_CONTRACT = OutputContract(
    name="petpulse_plan",
    schema={
        "type": "OBJECT",
        "properties": {
            "result_type": _enum(RESULT_TYPES),
            "urgency": _enum(URGENCY_LEVELS),
            "headline": _string(),
            "why": _string_list(max_items=4),
            "do_now": _string_list(max_items=6),
            "avoid": _string_list(max_items=4),
            "red_flags": _string_list(max_items=6),
            "disclaimer": _string(),
            "reason": _string(),
            "questions": {"type": "ARRAY", "max_items": 3, "items": _question()},
        },
        "required": ["result_type"],
    },
)
