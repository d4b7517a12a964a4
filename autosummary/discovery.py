"""Locate candidate project files for annotation."""
from __future__ import annotations

import fnmatch
import logging
import os
import subprocess
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional, Sequence

from .summaries.types import DEFAULT_EXTENSIONS

IGNORED_DIRS = frozenset({"node_modules", ".git", ".autosummary"})
IGNORED_FILE_PATTERNS = ("package.json", "tsconfig.json", "*-lock.json")

logger = logging.getLogger(__name__)


def is_ignored(relative_path: str) -> bool:
    parts = PurePosixPath(relative_path).parts
    if any(part in IGNORED_DIRS for part in parts[:-1]):
        return True
    name = parts[-1] if parts else relative_path
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in IGNORED_FILE_PATTERNS)


def discover_project_files(
    root: Path, extensions: Sequence[str] = DEFAULT_EXTENSIONS
) -> List[str]:
    """Return sorted POSIX paths relative to ``root`` for allow-listed files.

    Inside a git work tree, at any depth below its top level, the listing
    honours ``.gitignore``; otherwise the directory tree is walked.
    """
    root = Path(root).expanduser()
    candidates = _git_listing(root)
    if candidates is None:
        candidates = _walk_listing(root)

    allowed = tuple(extensions)
    selected = {
        path
        for path in candidates
        if PurePosixPath(path).suffix in allowed and not is_ignored(path) and (root / path).is_file()
    }
    return sorted(selected)


def _git_listing(root: Path) -> Optional[List[str]]:
    try:
        completed = subprocess.run(
            ["git", "ls-files", "--cached", "--others", "--exclude-standard", "-z"],
            cwd=str(root),
            capture_output=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        logger.debug("git ls-files unavailable in %s (%s); walking tree instead", root, exc)
        return None
    output = completed.stdout.decode("utf-8", errors="surrogateescape")
    return [entry for entry in output.split("\0") if entry]


def _walk_listing(root: Path) -> Iterable[str]:
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRS)
        base = Path(dirpath).relative_to(root)
        for filename in filenames:
            yield (base / filename).as_posix()
