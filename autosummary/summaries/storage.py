"""Filesystem helpers for loading and persisting the summary cache document."""
from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from .types import CacheEntry


class CacheReadError(ValueError):
    """Raised when the cache document exists but cannot be trusted."""

    def __init__(self, cache_path: Path, reason: str) -> None:
        super().__init__(f"Summary cache '{cache_path}' is unreadable: {reason}")
        self.cache_path = cache_path
        self.reason = reason


def atomic_write_text(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` without ever exposing a partial write.

    The data lands in a sibling temp file that is renamed over the target, so
    either the old or the new content is visible. An existing file's mode bits
    are carried over (executable scripts stay executable).
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
        if path.exists():
            shutil.copymode(path, tmp_path)
        else:
            current_umask = os.umask(0)
            os.umask(current_umask)
            os.chmod(tmp_path, 0o666 & ~current_umask)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def validate_cache_document(data: Any, cache_path: Path) -> Dict[str, CacheEntry]:
    """Check the parsed JSON against ``{path: {filePath, summary}}``."""
    if not isinstance(data, dict):
        raise CacheReadError(cache_path, "top-level value must be a JSON object")

    entries: Dict[str, CacheEntry] = {}
    for key, value in data.items():
        if not isinstance(value, dict):
            raise CacheReadError(cache_path, f"entry for '{key}' must be an object")
        file_path = value.get("filePath")
        summary = value.get("summary")
        if not isinstance(file_path, str):
            raise CacheReadError(cache_path, f"entry for '{key}' has no string 'filePath'")
        if not isinstance(summary, str):
            raise CacheReadError(cache_path, f"entry for '{key}' has no string 'summary'")
        if file_path != key:
            raise CacheReadError(cache_path, f"entry key '{key}' does not match filePath '{file_path}'")
        entries[key] = CacheEntry(file_path=file_path, summary=summary)
    return entries


class CacheStore:
    """Serialization boundary for the on-disk summary cache.

    The store holds no state between calls: callers load the mapping once,
    own it for the duration of a run, and hand the merged result back to
    :meth:`write`.
    """

    def __init__(self, cache_path: Path, *, logger: Optional[logging.Logger] = None) -> None:
        self.cache_path = Path(cache_path)
        self._logger = logger or logging.getLogger(__name__)

    def load(self) -> Dict[str, CacheEntry]:
        """Return the cached entries; a missing document is an empty cache."""
        if not self.cache_path.is_file():
            self._logger.debug("Summary cache %s not found; starting empty", self.cache_path)
            return {}
        try:
            raw_text = self.cache_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise CacheReadError(self.cache_path, str(exc)) from exc
        try:
            data = json.loads(raw_text)
        except json.JSONDecodeError as exc:
            raise CacheReadError(self.cache_path, f"invalid JSON ({exc})") from exc
        return validate_cache_document(data, self.cache_path)

    def write(self, entries: Iterable[CacheEntry]) -> Path:
        """Overwrite the cache document with ``entries`` in iteration order."""
        document: Dict[str, Mapping[str, str]] = {}
        for entry in entries:
            document[entry.file_path] = entry.to_json()
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write_text(self.cache_path, json.dumps(document, indent=2, ensure_ascii=False) + "\n")
        self._logger.debug("Wrote %d summaries to %s", len(document), self.cache_path)
        return self.cache_path
