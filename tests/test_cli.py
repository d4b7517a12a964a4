from __future__ import annotations

import json

import httpx
import pytest

from autosummary import cli
from autosummary.summaries import OpenRouterClient, PromptLoader, Summarizer
from autosummary.summaries.types import CacheEntry
from autosummary.summaries.storage import CacheStore

from .conftest import FakeSummarizer


@pytest.fixture
def project(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.ts").write_text("export {};\n", encoding="utf-8")
    (tmp_path / "deploy.sh").write_text("#!/bin/sh\necho deploy\n", encoding="utf-8")
    (tmp_path / "settings.json").write_text("{}\n", encoding="utf-8")
    return tmp_path


def _run(argv, summarizer=None):
    fake = summarizer or FakeSummarizer(summary="Purpose: cli")
    return cli.main(argv, summarizer_builder=lambda config: fake), fake


def test_run_annotates_discovered_files(project, capsys):
    code, fake = _run(["--root", str(project), "run"])

    assert code == 0
    assert sorted(call[0] for call in fake.calls) == ["deploy.sh", "settings.json", "src/app.ts"]
    document = json.loads((project / ".autosummary" / "summary.json").read_text(encoding="utf-8"))
    assert set(document) == {"deploy.sh", "settings.json", "src/app.ts"}
    assert (project / "deploy.sh").read_text(encoding="utf-8").startswith("#!/bin/sh\n### AUTO-SUMMARY ###\n")
    out = capsys.readouterr().out
    assert "Generated: 3" in out
    assert "Failed: 0" in out


def test_second_run_reuses_summaries(project, capsys):
    _run(["--root", str(project), "run"])
    code, fake = _run(["--root", str(project), "run"])

    assert code == 0
    assert fake.calls == []
    out = capsys.readouterr().out
    assert "From file: 2" in out
    assert "From cache: 1" in out


def test_run_reports_failures(project, capsys):
    code, _ = _run(["--root", str(project), "run", "src/app.ts", "deploy.sh"], FakeSummarizer(fail_on={"deploy.sh"}))

    assert code == 1
    captured = capsys.readouterr()
    assert "Failed: 1" in captured.out
    assert "deploy.sh: Summary request returned no content" in captured.out
    document = json.loads((project / ".autosummary" / "summary.json").read_text(encoding="utf-8"))
    assert list(document) == ["src/app.ts"]


def test_fail_fast_names_the_file(project, capsys):
    code, _ = _run(["--root", str(project), "run", "--fail-fast", "deploy.sh"], FakeSummarizer(fail_on={"deploy.sh"}))
    assert code == 1
    assert "Aborted at deploy.sh" in capsys.readouterr().err


def test_show_and_list(project, capsys):
    CacheStore(project / ".autosummary" / "summary.json").write(
        [CacheEntry("src/app.ts", "Purpose: app"), CacheEntry("deploy.sh", "Purpose: deploy")]
    )

    assert cli.main(["--root", str(project), "show", "src/app.ts"]) == 0
    assert capsys.readouterr().out == "Purpose: app\n"

    assert cli.main(["--root", str(project), "show", "missing.ts"]) == 1

    assert cli.main(["--root", str(project), "list"]) == 0
    assert capsys.readouterr().out.splitlines() == ["src/app.ts", "deploy.sh"]


def test_corrupt_cache_is_reported(project, capsys):
    cache_path = project / ".autosummary" / "summary.json"
    cache_path.parent.mkdir()
    cache_path.write_text("not json", encoding="utf-8")

    code, fake = _run(["--root", str(project), "run"])

    assert code == 1
    assert fake.calls == []
    assert "unreadable" in capsys.readouterr().err


def test_strip_command(project, capsys):
    _run(["--root", str(project), "run", "deploy.sh"])
    assert cli.main(["--root", str(project), "strip", "deploy.sh"]) == 0
    assert (project / "deploy.sh").read_text(encoding="utf-8") == "#!/bin/sh\necho deploy\n"
    assert "Stripped deploy.sh" in capsys.readouterr().out


def test_bad_config_exits_with_usage_error(project):
    (project / ".autosummary").mkdir()
    (project / ".autosummary" / "config.yaml").write_text("nonsense: 1\n", encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        _run(["--root", str(project), "run"])
    assert excinfo.value.code == 2


def test_run_closes_http_client(project, monkeypatch):
    closed = []
    monkeypatch.setattr(OpenRouterClient, "close", lambda self: closed.append(self))

    def handler(request):
        return httpx.Response(200, json={"choices": [{"message": {"content": "Purpose: http"}}]})

    def builder(config):
        client = OpenRouterClient("k", transport=httpx.MockTransport(handler), sleep=lambda s: None)
        return Summarizer(client, PromptLoader().load("default"), model=config.model)

    assert cli.main(["--root", str(project), "run", "src/app.ts"], summarizer_builder=builder) == 0
    assert len(closed) == 1


def test_run_closes_summarizer_after_failures(project):
    fake = FakeSummarizer(fail_on={"deploy.sh"})
    code, _ = _run(["--root", str(project), "run", "--fail-fast", "deploy.sh"], fake)
    assert code == 1
    assert fake.closed


def test_run_without_generation_never_builds_summarizer(project):
    (project / "src" / "app.ts").write_text(
        "/** AUTO-SUMMARY **\n   Purpose: kept\n*** END-SUMMARY **/\n", encoding="utf-8"
    )

    def builder(config):
        raise AssertionError("summarizer should not be built")

    assert cli.main(["--root", str(project), "run", "src/app.ts"], summarizer_builder=builder) == 0
