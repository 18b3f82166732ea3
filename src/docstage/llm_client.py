"""LiteLLM client wrapper with retry, error mapping, and API key validation.

All language-model calls in the pipeline (classification and metadata
extraction) route through this module. Retries are driven by the shared
RetryPolicy rather than LiteLLM's own, so transient failures are retried a
bounded number of times and everything else fails fast.
"""

from __future__ import annotations

import os

import litellm
import structlog

from docstage.config import LlmCfg
from docstage.errors import AuthenticationError, ServiceError, TransientServiceError
from docstage.retry import RetryPolicy

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True

log = structlog.get_logger(__name__)


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "google": "GOOGLE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}

# Checked in order; litellm's Timeout subclasses its connection error.
_TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    litellm.exceptions.Timeout,
    litellm.exceptions.RateLimitError,
    litellm.exceptions.APIConnectionError,
    litellm.exceptions.ServiceUnavailableError,
    litellm.exceptions.InternalServerError,
    TimeoutError,
    ConnectionError,
)


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        AuthenticationError: If the required key is missing from environment.
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider)

    if env_var is None:
        return  # No key required (e.g. ollama) or unknown provider

    if not os.getenv(env_var):
        raise AuthenticationError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


class LanguageModelClient:
    """Send a prompt to the configured model and return the raw text response.

    Args:
        cfg:   Model name, sampling and timeout settings.
        retry: Retry policy applied to each completion.
    """

    def __init__(self, cfg: LlmCfg, retry: RetryPolicy | None = None) -> None:
        self._cfg = cfg
        self._retry = retry or RetryPolicy()

    @property
    def model(self) -> str:
        return self._cfg.model

    def complete(self, prompt: str, *, operation: str = "llm.complete") -> str:
        """Return the model's text for *prompt*.

        Raises:
            TransientServiceError: Retries exhausted on timeouts, rate limits or 5xx.
            AuthenticationError: Credentials rejected by the provider.
            ServiceError: Any other provider failure.
        """
        return self._retry.call(self._complete_once, prompt, operation=operation)

    def _complete_once(self, prompt: str) -> str:
        try:
            response = litellm.completion(
                model=self._cfg.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self._cfg.max_tokens,
                temperature=self._cfg.temperature,
                timeout=self._cfg.timeout,
            )
        except _TRANSIENT_ERRORS as exc:
            raise TransientServiceError(f"{self._cfg.model}: {exc}") from exc
        except (
            litellm.exceptions.AuthenticationError,
            litellm.exceptions.PermissionDeniedError,
        ) as exc:
            raise AuthenticationError(f"{self._cfg.model}: {exc}") from exc
        except litellm.exceptions.APIError as exc:
            if (getattr(exc, "status_code", 0) or 0) >= 500:
                raise TransientServiceError(f"{self._cfg.model}: {exc}") from exc
            raise ServiceError(f"{self._cfg.model}: {exc}") from exc
        except litellm.exceptions.BadRequestError as exc:
            raise ServiceError(f"{self._cfg.model}: {exc}") from exc
        except Exception as exc:
            # not-found models, unprocessable input, malformed provider responses
            raise ServiceError(f"{self._cfg.model}: {type(exc).__name__}: {exc}") from exc

        content = response.choices[0].message.content or ""
        log.debug("llm completion", model=self._cfg.model, chars=len(content))
        return content
