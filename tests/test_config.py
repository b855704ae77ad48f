"""
Tests for environment-driven settings.
"""

import pytest

from petpulse.config import BASE_DIR, load_settings

ENV_KEYS = (
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_TEMPERATURE",
    "GEMINI_MAX_OUTPUT_TOKENS",
    "GEMINI_TIMEOUT_SEC",
    "PROMPTS_DIR",
    "PORT",
    "CORS_ORIGINS",
    "MAX_BODY_BYTES",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    settings = load_settings()
    assert settings.gemini_api_key == ""
    assert settings.gemini_model == "gemini-2.5-flash"
    assert settings.port == 10000
    assert settings.cors_origins == ("*",)
    assert settings.max_body_bytes == 1024 * 1024
    assert settings.prompts_dir == (BASE_DIR / "prompts").resolve()
    assert (settings.prompts_dir / "tone_rules.txt").exists()


def test_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("GEMINI_API_KEY", " abc ")
    monkeypatch.setenv("GEMINI_TIMEOUT_SEC", "12.5")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")
    monkeypatch.setenv("PROMPTS_DIR", str(tmp_path))
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.gemini_api_key == "abc"
    assert settings.request_timeout_sec == 12.5
    assert settings.port == 8080
    assert settings.cors_origins == ("https://a.example", "https://b.example")
    assert settings.prompts_dir == tmp_path.resolve()
    assert settings.log_level == "DEBUG"


def test_invalid_number_raises(monkeypatch):
    monkeypatch.setenv("PORT", "ten thousand")
    with pytest.raises(ValueError):
        load_settings()
