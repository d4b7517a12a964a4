from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

import pytest

from autosummary.summaries import AnnotationService, AnnotatorConfig
from autosummary.summaries.summarizer import OracleError


class FakeSummarizer:
    """In-memory stand-in for the chat-backed summarizer."""

    def __init__(self, summary: str = "Purpose: demo\n\nKey Components:\n- thing", fail_on=()) -> None:
        self.summary = summary
        self.fail_on = set(fail_on)
        self.calls: List[Tuple[str, str]] = []
        self.closed = False

    def summarize(self, file_path: str, content: str) -> str:
        self.calls.append((file_path, content))
        if file_path in self.fail_on:
            raise OracleError(file_path, "Summary request returned no content")
        return self.summary

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def make_service(tmp_path: Path, summarizer: FakeSummarizer):
    def _make(**options) -> AnnotationService:
        config = AnnotatorConfig(project_root=tmp_path, **options)
        return AnnotationService(config, summarizer=summarizer)

    return _make
