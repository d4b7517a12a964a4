from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from .config import ConfigError, build_openrouter_client, load_config
from .discovery import discover_project_files
from .summaries import (
    AnnotationService,
    AnnotatorConfig,
    AuthenticationError,
    BatchReport,
    CacheReadError,
    FileIOError,
    OracleError,
    PromptLoader,
    PromptValidationError,
    Summarizer,
)
from .summaries.types import STATUS_CACHED, STATUS_EMBEDDED, STATUS_GENERATED, STATUS_SKIPPED

SummarizerBuilder = Callable[[AnnotatorConfig], Summarizer]


def build_summarizer(config: AnnotatorConfig) -> Summarizer:
    prompt = PromptLoader(prompts_dir=Path(config.project_root) / ".autosummary" / "prompts").load(config.prompt)
    return Summarizer(
        build_openrouter_client(),
        prompt,
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        seed=config.seed,
    )


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def create_service(config: AnnotatorConfig, summarizer_builder: SummarizerBuilder) -> AnnotationService:
    return AnnotationService(config, summarizer_factory=lambda: summarizer_builder(config))


def format_report(report: BatchReport) -> list[str]:
    lines = [
        f"Generated: {report.count(STATUS_GENERATED)}",
        f"From file: {report.count(STATUS_EMBEDDED)}",
        f"From cache: {report.count(STATUS_CACHED)}",
        f"Skipped: {report.count(STATUS_SKIPPED)}",
        f"Failed: {len(report.failures)}",
    ]
    for failure in report.failures:
        lines.append(f"  {failure.describe()}")
    return lines


def handle_run(
    args: argparse.Namespace,
    parser: argparse.ArgumentParser,
    config: AnnotatorConfig,
    summarizer_builder: SummarizerBuilder,
) -> int:
    service = create_service(config, summarizer_builder)
    file_paths = list(args.paths) or discover_project_files(config.project_root, config.extensions)
    if not file_paths:
        print(f"No project files found under {config.project_root}")
        return 0

    try:
        report = service.run(file_paths)
    except (OracleError, FileIOError) as exc:
        print(f"Aborted at {exc.file_path}: {exc}", file=sys.stderr)
        return 1
    except (AuthenticationError, PromptValidationError, FileNotFoundError) as exc:
        parser.error(str(exc))
        return 2
    finally:
        service.close()

    for line in format_report(report):
        print(line)
    print(f"Wrote {service.cache_store.cache_path}")
    return 0 if report.ok else 1


def handle_show(args: argparse.Namespace, config: AnnotatorConfig) -> int:
    service = AnnotationService(config)
    entries = service.cache_store.load()
    entry = entries.get(args.path)
    if entry is None:
        print(f"No cached summary for {args.path}", file=sys.stderr)
        return 1
    print(entry.summary)
    return 0


def handle_list(config: AnnotatorConfig) -> int:
    service = AnnotationService(config)
    for file_path in service.cache_store.load():
        print(file_path)
    return 0


def handle_strip(args: argparse.Namespace, config: AnnotatorConfig) -> int:
    service = AnnotationService(config)
    file_paths = list(args.paths) or discover_project_files(config.project_root, config.extensions)
    failed = 0
    for file_path in file_paths:
        try:
            if service.strip(file_path):
                print(f"Stripped {file_path}")
        except FileIOError as exc:
            print(str(exc), file=sys.stderr)
            failed += 1
    return 1 if failed else 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="autosummary",
        description="Embed generated summaries in project files and keep an index of them.",
    )
    p.add_argument(
        "--root",
        type=Path,
        default=Path("."),
        help="Project root to annotate (default: current directory)",
    )
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")

    sub = p.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Summarize project files and rebuild the summary index")
    p_run.add_argument("paths", nargs="*", help="Files to process, relative to --root (default: discover all)")
    p_run.add_argument(
        "-f",
        "--force",
        action="store_true",
        default=None,
        help="Regenerate every summary even when one already exists",
    )
    p_run.add_argument(
        "--fail-fast",
        action="store_true",
        default=None,
        help="Stop at the first file that fails instead of collecting failures",
    )
    p_run.add_argument(
        "--prune",
        action="store_true",
        default=None,
        help="Drop index entries for files not processed in this run",
    )
    p_run.add_argument("--model", help="Model identifier to request (default: openai/gpt-4-turbo)")
    p_run.add_argument("--prompt", help="Prompt name or path for the system instruction (default: default)")
    p_run.add_argument("--max-tokens", type=int, help="Cap for completion tokens (default: 1000)")

    p_show = sub.add_parser("show", help="Print the indexed summary for one file")
    p_show.add_argument("path", help="File path as recorded in the index")

    sub.add_parser("list", help="List every file recorded in the index")

    p_strip = sub.add_parser("strip", help="Remove embedded summary blocks from files")
    p_strip.add_argument("paths", nargs="*", help="Files to strip (default: discover all)")

    return p


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    summarizer_builder: SummarizerBuilder = build_summarizer,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    root: Path = args.root.expanduser()
    if not root.is_dir():
        parser.error(f"Project root does not exist: {root}")

    overrides = {}
    if args.cmd == "run":
        overrides = {
            "force": args.force,
            "fail_fast": args.fail_fast,
            "prune": args.prune,
            "model": args.model,
            "prompt": args.prompt,
            "max_tokens": args.max_tokens,
        }
    try:
        config = load_config(root, overrides)
    except ConfigError as exc:
        parser.error(str(exc))
        return 2

    try:
        if args.cmd == "run":
            return handle_run(args, parser, config, summarizer_builder)
        if args.cmd == "show":
            return handle_show(args, config)
        if args.cmd == "list":
            return handle_list(config)
        if args.cmd == "strip":
            return handle_strip(args, config)
    except CacheReadError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    parser.error("Unknown command")
    return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
