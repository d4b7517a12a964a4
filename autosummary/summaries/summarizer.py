"""Adapter that turns file content into a summary via the chat client."""
from __future__ import annotations

import logging
from typing import List, Mapping, Optional

from .openrouter_client import OpenRouterClient, OpenRouterError
from .prompts import PromptDocument


class OracleError(RuntimeError):
    """Raised when no usable summary could be obtained for a file."""

    def __init__(self, file_path: str, message: str) -> None:
        super().__init__(message)
        self.file_path = file_path


class Summarizer:
    """Produce free-text summaries following the five-section outline."""

    def __init__(
        self,
        client: OpenRouterClient,
        prompt: PromptDocument,
        *,
        model: str,
        temperature: float = 0.0,
        max_tokens: Optional[int] = 1000,
        seed: Optional[int] = 42,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self._prompt = prompt
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.seed = seed
        self._logger = logger or logging.getLogger(__name__)

    def summarize(self, file_path: str, content: str) -> str:
        messages = self.build_messages(content)
        try:
            result = self._client.generate(
                self.model,
                messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                seed=self.seed,
            )
        except OpenRouterError as exc:
            raise OracleError(file_path, f"Summary request failed: {exc}") from exc

        summary = result.content.strip()
        if not summary:
            raise OracleError(file_path, "Summary request returned no content")
        self._logger.debug(
            "summarizer",
            extra={"oracle": {"file_path": file_path, "model": self.model, "usage": dict(result.usage)}},
        )
        return summary

    def close(self) -> None:
        self._client.close()

    def build_messages(self, content: str) -> List[Mapping[str, str]]:
        user_message = f"Summarize the following file:\n\n```\n{content}\n```"
        return [
            {"role": "system", "content": self._prompt.content},
            {"role": "user", "content": user_message},
        ]
