from datetime import date
from pathlib import Path

import pytest

from petpulse.assistant import TriageAssistant
from petpulse.config import Settings
from petpulse.prompt_builder import PromptBuilder

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "petpulse" / "prompts"
FIXED_TODAY = date(2024, 7, 15)


class FakeGateway:
    """Stands in for GeminiClient: returns queued payloads or raises queued errors."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, contract, system_text, user_text):
        self.calls.append({"contract": contract, "system_text": system_text, "user_text": user_text})
        if not self.responses:
            raise AssertionError("FakeGateway called more times than expected")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_issue(rank, title="Possible upset stomach", **overrides):
    issue = {
        "id": f"i{rank}",
        "title": title,
        "rank": rank,
        "level": "mild",
        "why": ["Vomiting started recently"],
        "do_today": ["Offer small sips of water", "Withhold rich food"],
        "watch": ["Repeated vomiting", "Lethargy"],
    }
    issue.update(overrides)
    return issue


def make_plan(**overrides):
    plan = {
        "result_type": "PLAN",
        "urgency": "HOME",
        "headline": "Rest and bland food may help",
        "why": ["Only one episode so far", "Energy seems normal"],
        "do_now": ["Offer water", "Feed a bland meal later", "Keep notes"],
        "avoid": ["Treats", "Human medicine"],
        "red_flags": ["Repeated vomiting", "Blood in vomit", "Collapse"],
        "disclaimer": "Not a diagnosis.",
    }
    plan.update(overrides)
    return plan


@pytest.fixture
def prompt_builder():
    return PromptBuilder(PROMPTS_DIR)


@pytest.fixture
def settings():
    return Settings(
        gemini_api_key="test-key",
        gemini_model="gemini-2.5-flash",
        temperature=0.4,
        max_output_tokens=2048,
        request_timeout_sec=30.0,
        prompts_dir=PROMPTS_DIR,
        port=10000,
        cors_origins=("*",),
        max_body_bytes=1024 * 1024,
        log_level="INFO",
    )


@pytest.fixture
def make_assistant(prompt_builder):
    def factory(*responses):
        gateway = FakeGateway(*responses)
        return TriageAssistant(gateway, prompt_builder), gateway

    return factory
