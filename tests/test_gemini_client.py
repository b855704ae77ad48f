"""
Tests for the Gemini structured-output gateway. The SDK is mocked throughout.
"""

from dataclasses import replace
from unittest.mock import MagicMock, PropertyMock, patch

import pytest
from google.api_core import exceptions as google_exceptions

from petpulse.contracts import TIPS_CONTRACT
from petpulse.errors import MalformedOutput, UpstreamUnavailable
from petpulse.gemini_client import GeminiClient, _normalize_model_name


def _response(text):
    response = MagicMock()
    type(response).text = PropertyMock(return_value=text)
    return response


@pytest.fixture
def genai_mock():
    with patch("petpulse.gemini_client.genai") as mocked:
        yield mocked


class TestGeminiClientInit:
    def test_missing_api_key_fails_fast(self, settings, genai_mock):
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            GeminiClient(replace(settings, gemini_api_key=""))
        genai_mock.configure.assert_not_called()

    def test_missing_model_fails_fast(self, settings, genai_mock):
        with pytest.raises(ValueError, match="GEMINI_MODEL"):
            GeminiClient(replace(settings, gemini_model="  "))

    def test_configures_sdk_and_strips_prefix(self, settings, genai_mock):
        client = GeminiClient(replace(settings, gemini_model="models/gemini-2.5-flash"))
        genai_mock.configure.assert_called_once_with(api_key="test-key")
        assert client.model_name == "gemini-2.5-flash"


class TestGeminiClientRequest:
    def test_returns_parsed_object_and_sends_contract(self, settings, genai_mock):
        model = genai_mock.GenerativeModel.return_value
        model.generate_content.return_value = _response('{"issues": []}')

        client = GeminiClient(settings)
        data = client.request(TIPS_CONTRACT, "system text", "user text")

        assert data == {"issues": []}
        genai_mock.GenerativeModel.assert_called_once_with("gemini-2.5-flash", system_instruction="system text")
        args, kwargs = model.generate_content.call_args
        assert args == ("user text",)
        config = kwargs["generation_config"]
        assert config["response_mime_type"] == "application/json"
        assert config["response_schema"] is TIPS_CONTRACT.schema
        assert config["temperature"] == settings.temperature
        assert kwargs["request_options"] == {"timeout": settings.request_timeout_sec}

    def test_no_contract_omits_schema(self, settings, genai_mock):
        model = genai_mock.GenerativeModel.return_value
        model.generate_content.return_value = _response("{}")

        GeminiClient(settings).request(None, "s", "u")

        config = model.generate_content.call_args.kwargs["generation_config"]
        assert "response_schema" not in config

    def test_api_error_is_upstream_unavailable(self, settings, genai_mock):
        model = genai_mock.GenerativeModel.return_value
        model.generate_content.side_effect = google_exceptions.PermissionDenied("bad key")

        with pytest.raises(UpstreamUnavailable):
            GeminiClient(settings).request(TIPS_CONTRACT, "s", "u")

    def test_timeout_is_upstream_unavailable(self, settings, genai_mock):
        model = genai_mock.GenerativeModel.return_value
        model.generate_content.side_effect = google_exceptions.DeadlineExceeded("slow")

        with pytest.raises(UpstreamUnavailable):
            GeminiClient(settings).request(TIPS_CONTRACT, "s", "u")

    def test_invalid_json_is_malformed(self, settings, genai_mock):
        model = genai_mock.GenerativeModel.return_value
        model.generate_content.return_value = _response("Sure! Here are some issues: ...")

        with pytest.raises(MalformedOutput):
            GeminiClient(settings).request(TIPS_CONTRACT, "s", "u")

    def test_non_object_json_is_malformed(self, settings, genai_mock):
        model = genai_mock.GenerativeModel.return_value
        model.generate_content.return_value = _response("[1, 2, 3]")

        with pytest.raises(MalformedOutput):
            GeminiClient(settings).request(TIPS_CONTRACT, "s", "u")

    def test_blocked_response_is_malformed(self, settings, genai_mock):
        response = MagicMock()
        type(response).text = PropertyMock(side_effect=ValueError("no candidates"))
        genai_mock.GenerativeModel.return_value.generate_content.return_value = response

        with pytest.raises(MalformedOutput):
            GeminiClient(settings).request(TIPS_CONTRACT, "s", "u")


def test_normalize_model_name():
    assert _normalize_model_name(" models/gemini-pro ") == "gemini-pro"
    assert _normalize_model_name("gemini-pro") == "gemini-pro"
    assert _normalize_model_name(None) == ""
