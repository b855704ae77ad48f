from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

BASE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class Settings:
    """Configuration container for the model, prompts, and HTTP limits."""
    gemini_api_key: str
    gemini_model: str
    temperature: float
    max_output_tokens: int
    request_timeout_sec: float
    prompts_dir: Path
    port: int
    cors_origins: Tuple[str, ...]
    max_body_bytes: int
    log_level: str


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for the default prompts directory.
    Failure Modes: Invalid numeric env values raise ValueError. A missing API key is
        not checked here; GeminiClient refuses to start without one.
    If Removed: The app cannot configure the gateway or HTTP limits.
    Testing Notes: Verify defaults and overrides via monkeypatched environment.
    """
    # Resolve the prompts directory, then build Settings.
    prompts_path = os.getenv("PROMPTS_DIR")
    if prompts_path:
        prompts_dir = Path(prompts_path).resolve()
    else:
        prompts_dir = (BASE_DIR / "prompts").resolve()

    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY", "").strip(),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash").strip(),
        temperature=float(os.getenv("GEMINI_TEMPERATURE", "0.4")),
        max_output_tokens=int(os.getenv("GEMINI_MAX_OUTPUT_TOKENS", "4096")),
        request_timeout_sec=float(os.getenv("GEMINI_TIMEOUT_SEC", "45")),
        prompts_dir=prompts_dir,
        port=int(os.getenv("PORT", "10000")),
        cors_origins=_parse_origins(os.getenv("CORS_ORIGINS", "*")),
        max_body_bytes=int(os.getenv("MAX_BODY_BYTES", str(1024 * 1024))),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def _parse_origins(raw: str) -> Tuple[str, ...]:
    # Comma separated; empty input falls back to allowing any origin.
    origins = tuple(part.strip() for part in raw.split(",") if part.strip())
    return origins or ("*",)
