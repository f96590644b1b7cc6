"""Command line entry point: proofread a file or run a single writing tool."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .ai.chat import ChatSession
from .ai.client import AIClient, BackendError
from .ai.gateway import AIWritingGateway, ToolRequest
from .ai.results import ToolName
from .analysis.scheduler import AnalysisScheduler
from .services.settings import Settings, SettingsStore, redact_secret
from .services.telemetry import BackendCallRecorder, InMemoryTelemetrySink
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BACKEND_ERROR = 1
EXIT_USAGE = 2


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    # Console output stays on stdout for results; log records go to the file only.
    logging_utils.setup_logging(level, console=debug, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


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


def build_gateway(settings: Settings, *, recorder: BackendCallRecorder | None = None) -> AIWritingGateway:
    client = AIClient(settings.client_settings())
    search_settings = settings.search_client_settings()
    search_client = AIClient(search_settings) if search_settings is not None else None
    return AIWritingGateway(client, search_client=search_client, recorder=recorder)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``proofline`` console script."""

    args = _parse_cli_args(argv)
    debug = bool(args.debug) or _env_flag("PROOFLINE_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("PROOFLINE_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return EXIT_USAGE
    settings = load_settings(resolved_path, store=store, overrides=cli_overrides or None)

    if args.command == "settings":
        _dump_settings(settings, store, overrides=cli_overrides)
        return EXIT_OK

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    try:
        text = _read_text(args.file)
    except OSError as exc:
        print(f"Unable to read {args.file}: {exc}", file=sys.stderr)
        return EXIT_USAGE
    if not settings.api_key:
        print("No API key configured. Set PROOFLINE_API_KEY or use --set api_key=...", file=sys.stderr)
        return EXIT_USAGE

    if args.command == "check":
        return asyncio.run(_run_check(settings, text, as_json=args.json, strict=args.strict))
    return asyncio.run(_run_tool(settings, args.tool, text, message=args.message))


async def _run_check(
    settings: Settings,
    text: str,
    *,
    as_json: bool = False,
    strict: bool = False,
    stream: TextIO | None = None,
) -> int:
    destination = stream or sys.stdout
    sink = InMemoryTelemetrySink()
    gateway = build_gateway(settings, recorder=BackendCallRecorder(sink))
    scheduler = AnalysisScheduler(gateway, config=settings.analysis_config())
    try:
        scheduler.set_text(text)
        if strict:
            scheduler.state.strictness_level = 1
        scheduler.reanalyze()
        await scheduler.drain()
        snapshot = scheduler.snapshot()
    finally:
        await scheduler.aclose()
        await gateway.aclose()

    if as_json:
        json.dump(snapshot, destination, indent=2, ensure_ascii=False)
        destination.write("\n")
    else:
        _print_report(snapshot, destination)
    if snapshot.get("lastError"):
        print(f"Analysis failed: {snapshot['lastError']}", file=sys.stderr)
        return EXIT_BACKEND_ERROR
    for event in sink.tail():
        _LOGGER.debug("Backend call %s took %.1f ms (%s)", event.tool, event.latency_ms, event.outcome)
    return EXIT_OK


async def _run_tool(
    settings: Settings,
    tool_name: str,
    text: str,
    *,
    message: str | None = None,
    stream: TextIO | None = None,
) -> int:
    destination = stream or sys.stdout
    tool = ToolName.coerce(tool_name)
    gateway = build_gateway(settings)
    try:
        if tool is ToolName.CHAT:
            session = ChatSession(gateway)
            async for chunk in session.stream(message or "", text=text):
                destination.write(chunk)
                destination.flush()
            destination.write("\n")
            return EXIT_OK
        result = await gateway.run_tool(ToolRequest(tool=tool, text=text, message=message))
    except BackendError as exc:
        print(f"{tool.value} failed: {exc}", file=sys.stderr)
        return EXIT_BACKEND_ERROR
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_USAGE
    finally:
        await gateway.aclose()

    payload = {"tool": tool.value, "result": asdict(result)}
    json.dump(payload, destination, indent=2, ensure_ascii=False, default=_json_default)
    destination.write("\n")
    return EXIT_OK


def _print_report(snapshot: Mapping[str, Any], destination: TextIO) -> None:
    stats = snapshot.get("stats", {})
    suggestions = snapshot.get("suggestions", [])
    destination.write(f"Score: {snapshot.get('overallScore')}/100\n")
    destination.write(
        f"Words: {stats.get('word_count', 0)}  Sentences: {stats.get('sentence_count', 0)}  "
        f"Readability: {stats.get('readability_score', 0)}  "
        f"Reading time: {stats.get('reading_time', 0.0):.1f} min\n"
    )
    if not suggestions:
        destination.write("No suggestions.\n")
        return
    for item in suggestions:
        destination.write(
            f"[{item['type']}] {item['startIndex']}-{item['endIndex']}: "
            f"{item['original']!r} -> {item['replacement']!r}  {item['message']}\n"
        )


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).expanduser().read_text(encoding="utf-8")


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="proofline",
        description="Proofread text files and run AI writing tools from the terminal.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging on stderr.")
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
    commands = parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("check", help="Run one proofreading pass and list suggestions.")
    check.add_argument("file", help="Text file to check, or - for stdin.")
    check.add_argument("--json", action="store_true", help="Print the analysis snapshot as JSON.")
    check.add_argument("--strict", action="store_true", help="Only report definite errors.")

    tool = commands.add_parser("tool", help="Run a single writing tool and print its JSON result.")
    tool.add_argument("tool", choices=[item.value for item in ToolName], help="Tool to run.")
    tool.add_argument("file", help="Text file to send, or - for stdin.")
    tool.add_argument("--message", help="Question for the chat tool.")

    commands.add_parser("settings", help="Print the effective settings with secrets redacted.")
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
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
        overrides[key] = _coerce_value(type_hints.get(key, fields[key].type), raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    if target is str or target is Any:
        return raw_value
    if target is bool:
        return _parse_bool(raw_value)
    if target is int:
        return int(raw_value, 10)
    if target is float:
        return float(raw_value)
    if target is type(None) or raw_value.lower() in {"none", "null"}:
        return None
    if target is dict:
        try:
            payload = json.loads(raw_value or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
        if not isinstance(payload, dict):
            raise ValueError("Dict overrides must be valid JSON objects")
        return payload
    return raw_value


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin is dict:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    for secret_field in ("api_key", "search_api_key"):
        payload[secret_field] = redact_secret(payload.get(secret_field))
    meta = {
        "path": str(store.path),
        "secret_backend": store.vault.strategy,
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": sorted(name for name in os.environ if name.startswith("PROOFLINE_")),
    }
    json.dump({"settings": payload, "meta": meta}, destination, indent=2)
    destination.write("\n")
