"""Tests for the LiteLLM client wrapper."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import litellm
import pytest

from docstage.config import LlmCfg
from docstage.errors import AuthenticationError, ServiceError, TransientServiceError
from docstage.llm_client import LanguageModelClient, validate_api_key
from docstage.retry import RetryPolicy


def _client(**cfg) -> LanguageModelClient:
    return LanguageModelClient(
        LlmCfg(model=cfg.pop("model", "openai/gpt-4o-mini"), **cfg),
        RetryPolicy(max_attempts=3, sleep=lambda _: None),
    )


def _response(content):
    mock_response = MagicMock()
    mock_response.choices[0].message.content = content
    return mock_response


# ------------------------------------------------------------------
# validate_api_key
# ------------------------------------------------------------------


def test_validate_api_key_raises_if_missing(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(AuthenticationError, match="GEMINI_API_KEY"):
        validate_api_key("gemini/gemini-2.0-flash")


def test_validate_api_key_passes_if_set(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    validate_api_key("openai/gpt-4o")


def test_validate_api_key_bare_model_treated_as_openai(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(AuthenticationError, match="OPENAI_API_KEY"):
        validate_api_key("gpt-4o")


def test_validate_api_key_ollama_no_key_required():
    validate_api_key("ollama/llama3")


# ------------------------------------------------------------------
# complete()
# ------------------------------------------------------------------


def test_complete_returns_content():
    with patch("docstage.llm_client.litellm.completion", return_value=_response("{}")):
        assert _client().complete("Hola") == "{}"


def test_complete_none_content_is_empty_string():
    with patch("docstage.llm_client.litellm.completion", return_value=_response(None)):
        assert _client().complete("Hola") == ""


def test_complete_passes_config_to_litellm():
    with patch("docstage.llm_client.litellm.completion", return_value=_response("ok")) as mock_c:
        _client(model="anthropic/claude-3-5-haiku", max_tokens=512, temperature=0.0, timeout=10).complete(
            "prompt text"
        )

    kwargs = mock_c.call_args.kwargs
    assert kwargs["model"] == "anthropic/claude-3-5-haiku"
    assert kwargs["max_tokens"] == 512
    assert kwargs["temperature"] == 0.0
    assert kwargs["timeout"] == 10
    assert kwargs["messages"] == [{"role": "user", "content": "prompt text"}]


def test_rate_limit_retried_then_succeeds():
    rate_limited = litellm.exceptions.RateLimitError(
        message="slow down", llm_provider="openai", model="gpt-4o-mini"
    )
    with patch(
        "docstage.llm_client.litellm.completion",
        side_effect=[rate_limited, _response("ok")],
    ) as mock_c:
        assert _client().complete("x") == "ok"
    assert mock_c.call_count == 2


def test_timeout_exhausts_retries():
    timeout = litellm.exceptions.Timeout(
        message="timed out", model="gpt-4o-mini", llm_provider="openai"
    )
    with patch("docstage.llm_client.litellm.completion", side_effect=timeout) as mock_c:
        with pytest.raises(TransientServiceError):
            _client().complete("x")
    assert mock_c.call_count == 3


def test_authentication_error_not_retried():
    denied = litellm.exceptions.AuthenticationError(
        message="bad key", llm_provider="openai", model="gpt-4o-mini"
    )
    with patch("docstage.llm_client.litellm.completion", side_effect=denied) as mock_c:
        with pytest.raises(AuthenticationError):
            _client().complete("x")
    assert mock_c.call_count == 1


def test_bad_request_is_service_error():
    bad = litellm.exceptions.BadRequestError(
        message="context too long", model="gpt-4o-mini", llm_provider="openai"
    )
    with patch("docstage.llm_client.litellm.completion", side_effect=bad) as mock_c:
        with pytest.raises(ServiceError):
            _client().complete("x")
    assert mock_c.call_count == 1


def test_unknown_model_is_service_error():
    missing = litellm.exceptions.NotFoundError(
        message="model gpt-9 does not exist", model="gpt-9", llm_provider="openai"
    )
    with patch("docstage.llm_client.litellm.completion", side_effect=missing) as mock_c:
        with pytest.raises(ServiceError, match="NotFoundError"):
            _client().complete("x")
    assert mock_c.call_count == 1


def test_permission_denied_is_authentication_error():
    denied = litellm.exceptions.PermissionDeniedError(
        message="project has no access",
        llm_provider="openai",
        model="gpt-4o-mini",
        response=MagicMock(status_code=403, headers={}),
    )
    with patch("docstage.llm_client.litellm.completion", side_effect=denied):
        with pytest.raises(AuthenticationError):
            _client().complete("x")


def test_unexpected_provider_failure_is_service_error():
    with patch(
        "docstage.llm_client.litellm.completion", side_effect=KeyError("choices")
    ) as mock_c:
        with pytest.raises(ServiceError, match="KeyError"):
            _client().complete("x")
    assert mock_c.call_count == 1


def test_raw_connection_error_is_retried():
    with patch(
        "docstage.llm_client.litellm.completion",
        side_effect=[ConnectionError("reset by peer"), _response("ok")],
    ) as mock_c:
        assert _client().complete("x") == "ok"
    assert mock_c.call_count == 2


def test_model_property():
    assert _client(model="groq/llama3").model == "groq/llama3"
