"""Chat-completions client used by the summarizer to reach OpenRouter."""
from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

import httpx

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
_COMPLETIONS_PATH = "/chat/completions"


class OpenRouterError(RuntimeError):
    """Base error raised for OpenRouter failures."""


class AuthenticationError(OpenRouterError):
    """Raised when the API key is missing or invalid."""


class RateLimitError(OpenRouterError):
    """Raised when OpenRouter returns HTTP 429 after retries."""


class TransientError(OpenRouterError):
    """Raised for recoverable HTTP 5xx errors exceeding retry limits."""


class ClientConfigurationError(OpenRouterError):
    """Raised when the client receives an unexpected payload."""


@dataclass
class ChatCompletionResult:
    """The first choice of a completion, plus token usage."""

    content: str
    usage: Mapping[str, Any]
    raw: Mapping[str, Any]
    finish_reason: Optional[str] = None


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how long to wait before re-sending a failed request."""

    max_retries: int = 3
    max_backoff: float = 16.0
    min_delay: float = 0.5
    retry_statuses: frozenset = field(
        default_factory=lambda: frozenset({408, 409, 425, 429, 500, 502, 503, 504})
    )

    def delay(self, attempt: int, retry_after: Optional[str] = None) -> float:
        wait = min(2 ** attempt, self.max_backoff) * random.uniform(0.5, 1.5)
        if retry_after:
            try:
                wait += float(retry_after)
            except ValueError:
                pass
        return max(self.min_delay, wait)


class OpenRouterClient:
    """Send summary prompts to an OpenAI-compatible completions endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        referer: Optional[str] = None,
        title: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 3,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not api_key:
            raise AuthenticationError("OpenRouter API key is required")

        self.base_url = base_url.rstrip("/")
        self.retry = RetryPolicy(max_retries=max(0, max_retries))
        self._sleep = sleep

        headers = {"Authorization": f"Bearer {api_key}"}
        if referer:
            headers["HTTP-Referer"] = referer
        if title:
            headers["X-Title"] = title
        self._http = httpx.Client(
            base_url=self.base_url, headers=headers, timeout=timeout, transport=transport
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "OpenRouterClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def generate(
        self,
        model: str,
        messages: Sequence[Mapping[str, Any]],
        *,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        seed: Optional[int] = None,
        extra_payload: Optional[Mapping[str, Any]] = None,
    ) -> ChatCompletionResult:
        payload: Dict[str, Any] = {"model": model, "messages": list(messages), "temperature": temperature}
        optional = {"max_tokens": max_tokens, "seed": seed}
        payload.update({key: value for key, value in optional.items() if value is not None})
        if extra_payload:
            payload.update(extra_payload)
        return _completion_from_payload(self._post(payload))

    def _post(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        network_error: Optional[httpx.HTTPError] = None
        for attempt in range(self.retry.max_retries + 1):
            last_attempt = attempt == self.retry.max_retries
            try:
                response = self._http.post(_COMPLETIONS_PATH, json=payload)
            except httpx.HTTPError as exc:
                network_error = exc
                if not last_attempt:
                    self._sleep(self.retry.delay(attempt))
                continue

            if response.status_code in self.retry.retry_statuses and not last_attempt:
                self._sleep(self.retry.delay(attempt, response.headers.get("Retry-After")))
                continue
            _raise_for_status(response)
            return _json_object(response)

        if isinstance(network_error, httpx.TimeoutException):
            raise TransientError("OpenRouter request timed out after retries") from network_error
        raise TransientError("OpenRouter request failed after retries") from network_error


def _raise_for_status(response: httpx.Response) -> None:
    status = response.status_code
    if status in (401, 403):
        reason = "rejected the API key" if status == 401 else "denied access"
        raise AuthenticationError(f"OpenRouter {reason} ({status})")
    if status < 400:
        return

    detail = _error_detail(response)
    if status == 429:
        raise RateLimitError(detail or "OpenRouter rate limit exceeded (429)")
    if status >= 500:
        raise TransientError(detail or f"OpenRouter server error ({status})")
    raise OpenRouterError(detail or f"OpenRouter request failed ({status})")


def _error_detail(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message")
    return response.text or None


def _json_object(response: httpx.Response) -> Mapping[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise ClientConfigurationError("OpenRouter returned a non-JSON response") from exc
    if not isinstance(data, Mapping):
        raise ClientConfigurationError("OpenRouter response was not a JSON object")
    return data


def _completion_from_payload(data: Mapping[str, Any]) -> ChatCompletionResult:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], Mapping):
        raise ClientConfigurationError("OpenRouter chat response missing choices")

    choice = choices[0]
    message = choice.get("message")
    if not isinstance(message, Mapping) or not isinstance(message.get("content"), str):
        raise ClientConfigurationError("OpenRouter chat response missing text content")

    usage = data.get("usage")
    finish_reason = choice.get("finish_reason")
    return ChatCompletionResult(
        content=message["content"],
        usage=dict(usage) if isinstance(usage, Mapping) else {},
        raw=data,
        finish_reason=finish_reason if isinstance(finish_reason, str) else None,
    )
