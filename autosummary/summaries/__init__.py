"""Shared exports for the annotation engine."""
from __future__ import annotations

from .markers import (
    compose_block,
    extract_block,
    prefix_content,
    remove_block,
    resolve_dialect,
)
from .openrouter_client import (
    AuthenticationError,
    ChatCompletionResult,
    ClientConfigurationError,
    OpenRouterClient,
    OpenRouterError,
    RateLimitError,
    TransientError,
)
from .prompts import PromptDocument, PromptLoader, PromptValidationError
from .service import AnnotationService, FileIOError
from .storage import CacheReadError, CacheStore
from .summarizer import OracleError, Summarizer
from .types import (
    AnnotationResult,
    AnnotatorConfig,
    BatchReport,
    CacheEntry,
    FileFailure,
    MarkerDialect,
)


__all__ = [
    "MarkerDialect",
    "AnnotatorConfig",
    "AnnotationResult",
    "CacheEntry",
    "BatchReport",
    "FileFailure",
    "resolve_dialect",
    "extract_block",
    "remove_block",
    "compose_block",
    "prefix_content",
    "CacheStore",
    "CacheReadError",
    "PromptLoader",
    "PromptDocument",
    "PromptValidationError",
    "OpenRouterClient",
    "ChatCompletionResult",
    "OpenRouterError",
    "AuthenticationError",
    "RateLimitError",
    "TransientError",
    "ClientConfigurationError",
    "Summarizer",
    "OracleError",
    "AnnotationService",
    "FileIOError",
]
