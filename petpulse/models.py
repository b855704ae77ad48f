from __future__ import annotations

from typing import Any, List, Literal, Union

from pydantic import BaseModel, Field

# Request fields are deliberately loose: missing or blank values are rejected by
# the stage handlers with a 400, not by pydantic with a 422.


class TipsRequest(BaseModel):
    """Request payload for the tips stage."""
    profile: Any = None
    symptoms: Any = None


class ConfirmRequest(BaseModel):
    """Request payload for the confirm stage."""
    profile: Any = None
    symptoms: Any = None
    selected_issue_title: Any = None
    selected_issue_id: Any = None


class PlanRequest(BaseModel):
    """Request payload for the plan stage; the caller resends all history each round."""
    profile: Any = None
    symptoms: Any = None
    selected_issue_title: Any = None
    round: Any = None
    previous_questions: Any = None
    previous_answers: Any = None
    followup_answers: Any = None


class Issue(BaseModel):
    """One ranked possible concern returned by the tips stage."""
    id: str
    title: str
    rank: int
    level: str
    why: List[str] = Field(default_factory=list)
    do_today: List[str] = Field(default_factory=list)
    watch: List[str] = Field(default_factory=list)


class TipsResponse(BaseModel):
    title: str
    intro: str
    issues: List[Issue]
    disclaimer: str


class FollowUpQuestion(BaseModel):
    id: str
    text: str
    type: Literal["single_choice", "yes_no", "short_text"]
    options: List[str] = Field(default_factory=list)


class ConfirmResponse(BaseModel):
    selected_issue_title: str
    questions: List[FollowUpQuestion]


class PlanOutcome(BaseModel):
    """Terminal action recommendation."""
    result_type: Literal["PLAN"] = "PLAN"
    urgency: Literal["HOME", "MONITOR_24H", "VET_NOW"]
    headline: str
    why: List[str]
    do_now: List[str]
    avoid: List[str]
    red_flags: List[str]
    disclaimer: str


class NeedMoreInfoOutcome(BaseModel):
    """Request for one more round of answers; only valid at round 1."""
    result_type: Literal["NEED_MORE_INFO"] = "NEED_MORE_INFO"
    selected_issue_title: str
    reason: str
    questions: List[FollowUpQuestion]


PlanResult = Union[PlanOutcome, NeedMoreInfoOutcome]


class ErrorResponse(BaseModel):
    error: str
