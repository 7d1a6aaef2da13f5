"""Command line entry point for running proofline over files on disk."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .diagnostics.categories import category_label
from .diagnostics.models import ProcessedIssue
from .diagnostics.offsets import offset_to_line_col
from .engine.engine import DiagnosticsEngine
from .engine.state import AnalysisStatus, status_label
from .services.client import CorrectionClient
from .services.dictionary import BUCKETS, CustomDictionary
from .services.documents import FileDocumentProvider, InclusionPolicy
from .services.settings import Settings, SettingsStore, redact_secret
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)

EXIT_CLEAN = 0
EXIT_ISSUES = 1
EXIT_USAGE = 2


@dataclass(slots=True)
class FileReport:
    """Outcome of checking one file from the command line."""

    path: str
    status: AnalysisStatus
    text: str = ""
    issues: list[ProcessedIssue] = field(default_factory=list)
    skipped: str | None = None

    @property
    def label(self) -> str:
        if self.skipped:
            return self.skipped
        return status_label(self.status, len(self.issues))

    def as_dict(self) -> dict[str, Any]:
        entries = []
        for issue in self.issues:
            payload = issue.as_dict()
            position = offset_to_line_col(self.text, issue.start, issue.end)
            if position is not None:
                payload["line"] = position[0].line
                payload["column"] = position[0].column
            payload["label"] = category_label(issue.category)
            entries.append(payload)
        return {
            "path": self.path,
            "status": self.status.value,
            "label": self.label,
            "skipped": self.skipped,
            "issues": entries,
        }


def configure_logging(settings: Settings | None = None, *, debug: bool = False, force: bool = False) -> Path:
    """Configure logging for a CLI run from ``settings``; console output only in debug mode."""

    active = settings or Settings()
    level = logging_utils.resolve_level(active.log_level, debug=debug)
    log_path = logging_utils.setup_logging(level, log_dir=active.log_dir or None, console=debug, force=force)
    _LOGGER.debug("Logging to %s (level=%s)", log_path, logging.getLevelName(level))
    return log_path


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `proofline` console script."""

    args = _parse_cli_args(argv)
    debug = bool(getattr(args, "debug", False)) or _env_flag("PROOFLINE_DEBUG", default=False)

    settings_path = args.settings_path or os.environ.get("PROOFLINE_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return EXIT_USAGE
    settings = load_settings(resolved_path, store=store, overrides=cli_overrides or None)
    configure_logging(settings, debug=debug)

    if args.command == "settings":
        _dump_settings(settings, store, overrides=cli_overrides)
        return EXIT_CLEAN
    if args.command == "dict":
        return asyncio.run(_run_dictionary_command(args, settings, store))

    reports = asyncio.run(check_paths(args.paths, settings, local=args.local))
    if args.json:
        json.dump([report.as_dict() for report in reports], sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")
    else:
        _print_reports(reports)
    return EXIT_ISSUES if any(report.issues for report in reports) else EXIT_CLEAN


async def check_paths(paths: Sequence[str], settings: Settings, *, local: bool = False) -> list[FileReport]:
    """Analyze each path once and collect the visible issues."""

    dictionary = CustomDictionary(settings.custom_dictionary)
    documents = FileDocumentProvider(policy=InclusionPolicy(settings.include_globs))
    engine_settings = settings.snapshot()
    client: CorrectionClient | None = None
    if local:
        engine_settings = replace(engine_settings, has_credentials=False)
    elif engine_settings.has_credentials:
        client = CorrectionClient(settings.client_settings())

    engine = DiagnosticsEngine(
        settings=engine_settings,
        service=client,
        dictionary_lookup=dictionary.lookup,
        documents=documents,
    )
    reports: list[FileReport] = []
    try:
        for path in paths:
            reports.append(await _check_one(engine, documents, path))
    finally:
        await engine.aclose()
        if client is not None:
            await client.aclose()
    return reports


async def _check_one(engine: DiagnosticsEngine, documents: FileDocumentProvider, path: str) -> FileReport:
    if not documents.is_included(path):
        return FileReport(path=path, status=AnalysisStatus.IDLE, skipped="Excluded")
    try:
        text = documents.get_text(path)
    except (OSError, UnicodeDecodeError) as exc:
        _LOGGER.warning("Unable to read %s: %s", path, exc)
        return FileReport(path=path, status=AnalysisStatus.IDLE, skipped="Unreadable")
    if text is None:
        return FileReport(path=path, status=AnalysisStatus.IDLE, skipped="Not found")
    outcome = await engine.analyze(path, text)
    return FileReport(
        path=path,
        status=outcome.status,
        text=text,
        issues=engine.get_visible_issues(path),
    )


def dictionary_sync_problem(settings: Settings) -> str | None:
    """Return why the custom dictionary cannot be uploaded, or ``None`` when it can."""

    if not settings.custom_dict_enabled:
        return "Custom dictionary is disabled"
    if not settings.api_key.strip():
        return "API key required"
    if not settings.custom_dict_domain.strip():
        return "Custom dictionary domain is not set"
    return None


async def sync_dictionary(
    dictionary: CustomDictionary,
    settings: Settings,
    *,
    client: CorrectionClient | None = None,
) -> bool:
    """Upload ``dictionary`` to the custom dictionary endpoint; ``False`` on any failure."""

    problem = dictionary_sync_problem(settings)
    if problem is not None:
        _LOGGER.info("Custom dictionary sync skipped: %s", problem)
        return False
    active = client or CorrectionClient(settings.client_settings())
    try:
        synced = await active.update_custom_dictionary(dictionary.to_payload(settings.custom_dict_domain.strip()))
    finally:
        if client is None:
            await active.aclose()
    if synced:
        dictionary.mark_synced()
    return synced


async def _run_dictionary_command(args: argparse.Namespace, settings: Settings, store: SettingsStore) -> int:
    dictionary = CustomDictionary(settings.custom_dictionary)
    dictionary.on_changed(lambda: store.save_custom_dictionary(dictionary.to_dict()))

    if args.dict_command == "list":
        for bucket in BUCKETS:
            words = dictionary.words(bucket.key)
            print(f"{bucket.key} ({bucket.label}): {', '.join(words) if words else '-'}")
        return EXIT_CLEAN

    if args.dict_command == "sync":
        problem = dictionary_sync_problem(settings)
        if problem is not None:
            print(f"Custom dictionary sync skipped: {problem}", file=sys.stderr)
            return EXIT_ISSUES
        if not await sync_dictionary(dictionary, settings):
            print("Custom dictionary sync failed", file=sys.stderr)
            return EXIT_ISSUES
        print(f"Custom dictionary synced ({len(dictionary)} words)")
        return EXIT_CLEAN

    word = args.word.strip()
    if args.dict_command == "remove":
        if not dictionary.remove(args.bucket, word):
            print(f"'{word}' is not in {args.bucket}", file=sys.stderr)
            return EXIT_ISSUES
        print(f"Removed '{word}' from {args.bucket}")
        return EXIT_CLEAN

    if not dictionary.add(args.bucket, word):
        print(f"'{word}' is empty or already in {args.bucket}", file=sys.stderr)
        return EXIT_ISSUES
    print(f"Added '{word}' to {args.bucket}")
    if dictionary_sync_problem(settings) is None:
        synced = await sync_dictionary(dictionary, settings)
        print("Custom dictionary synced" if synced else "Custom dictionary sync failed")
    return EXIT_CLEAN


def _print_reports(reports: Sequence[FileReport], stream: TextIO | None = None) -> None:
    destination = stream or sys.stdout
    for report in reports:
        for issue in report.issues:
            destination.write(_format_issue(report, issue) + "\n")
        destination.write(f"{report.path}: {report.label}\n")


def _format_issue(report: FileReport, issue: ProcessedIssue) -> str:
    position = offset_to_line_col(report.text, issue.start, issue.end)
    line, column = (position[0].line, position[0].column) if position else (0, 0)
    line_text = f"{report.path}:{line}:{column} [{category_label(issue.category)}] {issue.message}"
    if issue.suggestion:
        line_text += f" -> {issue.suggestion}"
    return line_text


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="proofline",
        description="Check Korean prose for spelling and spacing issues.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.proofline/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Analyze files and print the issues found.")
    check.add_argument("paths", nargs="+", metavar="PATH")
    check.add_argument("--json", action="store_true", help="Emit machine readable JSON.")
    check.add_argument(
        "--local",
        action="store_true",
        help="Skip the correction service and run the local spacing checks only.",
    )
    check.add_argument("--debug", action="store_true", help="Log debug output to the console.")

    subparsers.add_parser("settings", help="Print the effective settings (secrets redacted).")

    dictionary = subparsers.add_parser("dict", help="Manage the custom dictionary.")
    actions = dictionary.add_subparsers(dest="dict_command", required=True)
    actions.add_parser("list", help="Print the words in every bucket.")
    actions.add_parser("sync", help="Upload the dictionary to the custom dictionary service.")
    bucket_keys = [bucket.key for bucket in BUCKETS]
    for name, summary in (("add", "Add a word (syncs automatically when configured)."), ("remove", "Remove a word.")):
        action = actions.add_parser(name, help=summary)
        action.add_argument("bucket", choices=bucket_keys)
        action.add_argument("word")
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target in (list, dict):
        default = "[]" if target is list else "{}"
        try:
            value = json.loads(normalized or default)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Expected a JSON {target.__name__}") from exc
        if not isinstance(value, target):
            raise ValueError(f"Expected a JSON {target.__name__}")
        return value
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, dict}:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    return args[0] if args else origin


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _env_flag(name: str, *, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "log_path": str(logging_utils.get_log_path() or ""),
        "environment_variables": sorted(name for name in os.environ if name.startswith("PROOFLINE_")),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2, ensure_ascii=False)
    destination.write("\n")


__all__ = [
    "FileReport",
    "check_paths",
    "configure_logging",
    "dictionary_sync_problem",
    "load_settings",
    "main",
    "sync_dictionary",
]
