from __future__ import annotations

import shutil
import subprocess

import pytest

from autosummary.discovery import discover_project_files, is_ignored


def _touch(root, *names):
    for name in names:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("x\n", encoding="utf-8")


def test_walk_filters_extensions_and_ignored_paths(tmp_path):
    _touch(
        tmp_path,
        "src/app.ts",
        "src/view.tsx",
        "README.md",
        "package.json",
        "tsconfig.json",
        "package-lock.json",
        "config/settings.json",
        "node_modules/lib/index.js",
        ".autosummary/summary.json",
        "scripts/deploy.sh",
        ".github/workflows/ci.yml",
    )

    assert discover_project_files(tmp_path) == [
        ".github/workflows/ci.yml",
        "config/settings.json",
        "scripts/deploy.sh",
        "src/app.ts",
        "src/view.tsx",
    ]


def test_custom_extensions(tmp_path):
    _touch(tmp_path, "a.ts", "b.yml")
    assert discover_project_files(tmp_path, (".yml",)) == ["b.yml"]


@pytest.mark.parametrize(
    "path, expected",
    [
        ("node_modules/x/index.js", True),
        ("yarn-lock.json", True),
        ("apps/web/package.json", True),
        ("src/package.ts", False),
        ("src/node_modules.ts", False),
    ],
)
def test_is_ignored(path, expected):
    assert is_ignored(path) is expected


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_git_listing_respects_gitignore(tmp_path):
    subprocess.run(["git", "init", "-q"], cwd=tmp_path, check=True)
    (tmp_path / ".gitignore").write_text("dist/\n", encoding="utf-8")
    _touch(tmp_path, "src/app.ts", "dist/bundle.js")

    assert discover_project_files(tmp_path) == ["src/app.ts"]


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_git_listing_for_root_below_repository_top(tmp_path):
    subprocess.run(["git", "init", "-q"], cwd=tmp_path, check=True)
    app = tmp_path / "app"
    app.mkdir()
    (app / ".gitignore").write_text("dist/\n", encoding="utf-8")
    _touch(app, "src/main.ts", "dist/bundle.js")
    _touch(tmp_path, "other/outside.ts")

    assert discover_project_files(app) == ["src/main.ts"]
