"""Per-file annotation decisions and batch compilation into the cache."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .markers import (
    compose_block,
    extract_block,
    file_extension,
    has_block,
    join_lines,
    prefix_content,
    remove_block,
    resolve_dialect,
    split_lines,
)
from .storage import CacheStore, atomic_write_text
from .summarizer import OracleError, Summarizer
from .types import (
    STATUS_CACHED,
    STATUS_EMBEDDED,
    STATUS_GENERATED,
    STATUS_SKIPPED,
    AnnotationResult,
    AnnotatorConfig,
    BatchReport,
    CacheEntry,
    FileFailure,
)

SummarizerFactory = Callable[[], Summarizer]


class FileIOError(OSError):
    """Raised when a project file cannot be read or rewritten."""

    def __init__(self, file_path: str, message: str) -> None:
        super().__init__(message)
        self.file_path = file_path

    def __str__(self) -> str:
        return self.args[0]


class AnnotationService:
    """Public facade used by the CLI to annotate files and maintain the cache."""

    def __init__(
        self,
        config: AnnotatorConfig,
        *,
        summarizer: Optional[Summarizer] = None,
        summarizer_factory: Optional[SummarizerFactory] = None,
        cache_store: Optional[CacheStore] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self._summarizer = summarizer
        self._summarizer_factory = summarizer_factory
        self._owns_summarizer = False
        self._logger = logger or logging.getLogger(__name__)
        self._store = cache_store or CacheStore(config.resolved_cache_path(), logger=self._logger)

    @property
    def cache_store(self) -> CacheStore:
        return self._store

    # ------------------------------
    # Single file
    # ------------------------------
    def annotate(
        self, file_path: str, cache: Optional[Mapping[str, CacheEntry]] = None
    ) -> AnnotationResult:
        """Return the summary for ``file_path``, generating and embedding it if needed."""

        extension = file_extension(file_path)
        if extension not in self.config.extensions:
            self._logger.info("%s: Skipped. File type not supported.", file_path)
            return AnnotationResult(file_path, None, STATUS_SKIPPED)

        excluded = extension in self.config.embed_exclusions
        cached = cache.get(file_path) if cache else None
        if excluded and cached is not None and cached.summary:
            self._logger.info("%s: Skipped. Summary exists in storage. Filetype excluded.", file_path)
            return AnnotationResult(file_path, cached.summary, STATUS_CACHED)

        source_path = self._source_path(file_path)
        content, newline = self._read(source_path, file_path)
        lines = split_lines(content)
        dialect = resolve_dialect(extension)

        if dialect is not None and not self.config.force:
            body = extract_block(lines, dialect.header, dialect.footer, dialect.line_prefix)
            if body is not None and join_lines(body).strip():
                self._logger.info("%s: Skipped. Summary exists in file. Updating storage.", file_path)
                return AnnotationResult(file_path, join_lines(body), STATUS_EMBEDDED)

        summary = self._require_summarizer().summarize(file_path, content)

        if excluded or dialect is None:
            self._logger.info("%s: Summary generated. Filetype excluded.", file_path)
            return AnnotationResult(file_path, summary, STATUS_GENERATED)

        lines = remove_block(lines, dialect.header, dialect.footer)
        lines = prefix_content(lines, compose_block(summary, dialect))
        self._write(source_path, file_path, join_lines(lines), newline)
        self._logger.info("%s: Summary generated. Prepended to file.", file_path)
        return AnnotationResult(file_path, summary, STATUS_GENERATED)

    def strip(self, file_path: str) -> bool:
        """Remove an embedded summary block; return ``True`` if the file changed."""
        dialect = resolve_dialect(file_extension(file_path))
        if dialect is None:
            return False
        source_path = self._source_path(file_path)
        content, newline = self._read(source_path, file_path)
        lines = split_lines(content)
        if not has_block(lines, dialect.header, dialect.footer):
            return False
        start = lines.index(dialect.header)
        stripped = remove_block(lines, dialect.header, dialect.footer)
        # separator line written after the footer
        if start < len(stripped) and not stripped[start].strip():
            del stripped[start]
        self._write(source_path, file_path, join_lines(stripped), newline)
        self._logger.info("%s: Summary removed from file.", file_path)
        return True

    # ------------------------------
    # Batch
    # ------------------------------
    def annotate_all(
        self, file_paths: Iterable[str], cache: Optional[Mapping[str, CacheEntry]] = None
    ) -> BatchReport:
        """Annotate files one at a time in the given order.

        Per-file failures are collected on the report unless ``fail_fast`` is
        configured, in which case the first one propagates.
        """
        report = BatchReport()
        for file_path in file_paths:
            try:
                result = self.annotate(file_path, cache)
            except (OracleError, FileIOError) as exc:
                if self.config.fail_fast:
                    raise
                self._logger.error("%s: Failed. %s", file_path, exc)
                report.failures.append(FileFailure(file_path, exc))
                continue
            report.results.append(result)
        return report

    def compile(
        self,
        results: Sequence[AnnotationResult],
        existing: Optional[Mapping[str, CacheEntry]] = None,
    ) -> Dict[str, CacheEntry]:
        """Fold results into the cache mapping and persist it as one document.

        Entries follow the order results were produced. Entries from
        ``existing`` that this run did not touch are appended afterwards unless
        ``prune`` is configured.
        """
        merged: Dict[str, CacheEntry] = {}
        for result in results:
            if result.skipped or result.summary is None:
                continue
            merged[result.file_path] = CacheEntry(file_path=result.file_path, summary=result.summary)
        if existing and not self.config.prune:
            for key, entry in existing.items():
                merged.setdefault(key, entry)
        self._store.write(merged.values())
        self._log_debug("compiled", {"entries": len(merged), "cache_path": str(self._store.cache_path)})
        return merged

    def run(self, file_paths: Iterable[str]) -> BatchReport:
        """Load the cache, annotate every file, then rewrite the cache once."""
        cache = self._store.load()
        report = self.annotate_all(file_paths, cache)
        self.compile(report.results, cache)
        return report

    # ------------------------------
    # Helpers
    # ------------------------------
    def _require_summarizer(self) -> Summarizer:
        if self._summarizer is None:
            if self._summarizer_factory is None:
                raise RuntimeError("AnnotationService requires a Summarizer to generate summaries")
            self._summarizer = self._summarizer_factory()
            self._owns_summarizer = True
        return self._summarizer

    def close(self) -> None:
        """Release a summarizer built through the factory; injected ones are left open."""
        if self._owns_summarizer and self._summarizer is not None:
            self._summarizer.close()
            self._summarizer = None
            self._owns_summarizer = False

    def _source_path(self, file_path: str) -> Path:
        path = Path(file_path).expanduser()
        if path.is_absolute():
            return path
        return Path(self.config.project_root).expanduser() / path

    def _read(self, source_path: Path, file_path: str) -> Tuple[str, str]:
        """Return the content with LF line breaks and the file's own line break."""
        try:
            with source_path.open("r", encoding="utf-8", newline="") as handle:
                raw = handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise FileIOError(file_path, f"Could not read {file_path}: {exc}") from exc
        if "\r\n" in raw:
            return raw.replace("\r\n", "\n"), "\r\n"
        return raw, "\n"

    def _write(self, source_path: Path, file_path: str, content: str, newline: str = "\n") -> None:
        if newline != "\n":
            content = content.replace("\n", newline)
        try:
            atomic_write_text(source_path, content)
        except OSError as exc:
            raise FileIOError(file_path, f"Could not write {file_path}: {exc}") from exc

    def _log_debug(self, event: str, extra: Mapping[str, object]) -> None:
        if not self._logger:
            return
        payload: Dict[str, object] = {"event": event}
        payload.update(dict(extra))
        self._logger.debug("annotation-service", extra={"annotation": payload})
