"""Dataclasses shared across the annotation engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

STATUS_GENERATED = "generated"
STATUS_EMBEDDED = "embedded"
STATUS_CACHED = "cached"
STATUS_SKIPPED = "skipped"

DEFAULT_EXTENSIONS: Tuple[str, ...] = (".ts", ".js", ".json", ".tsx", ".jsx", ".yaml", ".yml", ".sh")
DEFAULT_EMBED_EXCLUSIONS: Tuple[str, ...] = (".json",)
DEFAULT_CACHE_PATH = Path(".autosummary") / "summary.json"


@dataclass(frozen=True)
class MarkerDialect:
    """Sentinel lines and body indentation for one family of file extensions."""

    header: str
    footer: str
    line_prefix: str


@dataclass(frozen=True)
class AnnotatorConfig:
    """Run-wide settings handed to the annotation service at construction."""

    project_root: Path = Path(".")
    cache_path: Path = DEFAULT_CACHE_PATH
    force: bool = False
    fail_fast: bool = False
    prune: bool = False
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    embed_exclusions: Tuple[str, ...] = DEFAULT_EMBED_EXCLUSIONS
    model: str = "openai/gpt-4-turbo"
    temperature: float = 0.0
    max_tokens: Optional[int] = 1000
    seed: Optional[int] = 42
    prompt: str = "default"

    def resolved_cache_path(self) -> Path:
        cache_path = Path(self.cache_path).expanduser()
        if cache_path.is_absolute():
            return cache_path
        return Path(self.project_root).expanduser() / cache_path


@dataclass(frozen=True)
class CacheEntry:
    file_path: str
    summary: str

    def to_json(self) -> dict:
        return {"filePath": self.file_path, "summary": self.summary}


@dataclass(frozen=True)
class AnnotationResult:
    """Outcome of annotating a single file."""

    file_path: str
    summary: Optional[str]
    status: str

    @property
    def skipped(self) -> bool:
        return self.status == STATUS_SKIPPED


@dataclass(frozen=True)
class FileFailure:
    file_path: str
    error: Exception

    def describe(self) -> str:
        return f"{self.file_path}: {self.error}"


@dataclass
class BatchReport:
    """Results and per-file failures collected over one batch run."""

    results: List[AnnotationResult] = field(default_factory=list)
    failures: List[FileFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def count(self, status: str) -> int:
        return sum(1 for result in self.results if result.status == status)
