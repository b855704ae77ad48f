from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai import types as genai_types

from .config import Settings
from .contracts import OutputContract
from .errors import MalformedOutput, UpstreamUnavailable

logger = logging.getLogger("petpulse.gateway")

# Symptom notes routinely mention blood, vomit and injuries; the default
# filters would block ordinary triage content.
DEFAULT_SAFETY_SETTINGS = [
    {
        "category": genai_types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        "threshold": genai_types.HarmBlockThreshold.BLOCK_ONLY_HIGH,
    },
    {
        "category": genai_types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        "threshold": genai_types.HarmBlockThreshold.BLOCK_ONLY_HIGH,
    },
    {
        "category": genai_types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        "threshold": genai_types.HarmBlockThreshold.BLOCK_ONLY_HIGH,
    },
    {
        "category": genai_types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
        "threshold": genai_types.HarmBlockThreshold.BLOCK_NONE,
    },
]

TRANSPORT_ERRORS = (google_exceptions.GoogleAPIError, ConnectionError, TimeoutError)


class GeminiClient:
    """Structured-output gateway to Gemini: prompt pair + contract in, JSON object out."""

    def __init__(self, settings: Settings) -> None:
        """Purpose: Configure the Gemini SDK from explicit settings.
        Inputs/Outputs: Input is Settings; no return value.
        Side Effects / State: Configures the SDK global API key.
        Dependencies: Uses google.generativeai and Settings from config.
        Failure Modes: Raises ValueError if API key or model name is missing, so the
            process fails at startup instead of on the first request.
        If Removed: No stage can reach the generative service.
        Testing Notes: Missing key raises ValueError; genai.configure gets the key.
        """
        # Validate configuration before touching the SDK.
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required")
        model_name = _normalize_model_name(settings.gemini_model)
        if not model_name:
            raise ValueError("GEMINI_MODEL is required")
        genai.configure(api_key=settings.gemini_api_key)
        self._settings = settings
        self._model_name = model_name

    @property
    def model_name(self) -> str:
        return self._model_name

    def _generation_config(self, contract: Optional[OutputContract]) -> Dict[str, Any]:
        config: Dict[str, Any] = {
            "temperature": self._settings.temperature,
            "max_output_tokens": self._settings.max_output_tokens,
            "response_mime_type": "application/json",
        }
        if contract is not None:
            config["response_schema"] = contract.schema
        return config

    def request(self, contract: Optional[OutputContract], system_text: str, user_text: str) -> Dict[str, Any]:
        """Purpose: Run one structured-output call and return the parsed JSON object.
        Inputs/Outputs: Inputs are an optional OutputContract, the instruction text, and
            the context text; output is the decoded top-level JSON object.
        Side Effects / State: One outbound call to Gemini; no retries, no caching.
        Dependencies: Uses genai.GenerativeModel.generate_content with a response schema.
        Failure Modes: Transport, auth, quota and timeout errors raise UpstreamUnavailable.
            Blocked or empty responses and non-object JSON raise MalformedOutput.
        If Removed: Stage handlers have no way to obtain generator content.
        Testing Notes: Mock GenerativeModel; cover valid JSON, bad JSON, API errors.
        """
        contract_name = contract.name if contract else "json_object"
        model = genai.GenerativeModel(self._model_name, system_instruction=system_text)
        try:
            response = model.generate_content(
                user_text,
                generation_config=self._generation_config(contract),
                safety_settings=DEFAULT_SAFETY_SETTINGS,
                request_options={"timeout": self._settings.request_timeout_sec},
            )
        except TRANSPORT_ERRORS as exc:
            logger.warning("contract=%s upstream_error=%s", contract_name, type(exc).__name__)
            raise UpstreamUnavailable(f"Generative service unavailable: {exc}") from exc

        return _extract_object(response, contract_name)


def _extract_object(response: Any, contract_name: str) -> Dict[str, Any]:
    """Purpose: Pull the JSON object out of a Gemini response envelope.
    Inputs/Outputs: Input is a GenerateContentResponse; output is a dict.
    Side Effects / State: None.
    Dependencies: Uses response.text and json.loads.
    Failure Modes: Raises MalformedOutput when text is unavailable (blocked, no
        candidates), not JSON, or not a JSON object.
    If Removed: Callers would have to parse the SDK envelope themselves.
    Testing Notes: Feed objects whose .text raises ValueError or returns junk.
    """
    # response.text raises ValueError when the candidate was blocked or empty.
    try:
        text: Optional[str] = response.text
    except (ValueError, AttributeError, IndexError) as exc:
        logger.warning("contract=%s malformed=no_text detail=%s", contract_name, exc)
        raise MalformedOutput("Generative service returned no usable content") from exc

    try:
        data = json.loads((text or "").strip())
    except json.JSONDecodeError as exc:
        logger.warning("contract=%s malformed=invalid_json length=%s", contract_name, len(text or ""))
        raise MalformedOutput("Generative service returned invalid JSON") from exc

    if not isinstance(data, dict):
        logger.warning("contract=%s malformed=not_object type=%s", contract_name, type(data).__name__)
        raise MalformedOutput("Generative service returned JSON that is not an object")
    logger.debug("contract=%s keys=%s", contract_name, sorted(data))
    return data


def _normalize_model_name(name: Optional[str]) -> str:
    """Strip an optional "models/" prefix and whitespace from a model name."""
    if not name:
        return ""
    cleaned = name.strip()
    if cleaned.startswith("models/"):
        return cleaned.split("/", 1)[1]
    return cleaned
