from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Iterable
from dataclasses import asdict, fields, is_dataclass
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from streamscout.domain.entities.events import RunEvent
from streamscout.domain.entities.media import MediaRequest
from streamscout.domain.exceptions import ConfigError
from streamscout.infrastructure.config import AppConfig, load_config
from streamscout.infrastructure.events import RecordingEventSink
from streamscout.infrastructure.logging.setup import configure_logging
from streamscout.interfaces.composition import build_controls, create_http_client
from streamscout.interfaces.main import build_app

log = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_NO_STREAM = 1
EXIT_CONFIG_ERROR = 2
EXIT_USAGE = 2


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    # Config wiring flags (no business logic)
    parser.add_argument("--config", default=None, help="Path to YAML config file.")
    parser.add_argument("--dotenv", default=None, help="Path to .env file.")
    parser.add_argument(
        "--provider-dir",
        default=None,
        help="Override providers directory.",
    )
    parser.add_argument(
        "--target",
        default=None,
        choices=["browser", "browser-extension", "native", "any"],
        help="Override playback target.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )


def _add_run_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--source-order", default=None, help="Comma-separated source ids.")
    parser.add_argument("--embed-order", default=None, help="Comma-separated embed ids.")
    parser.add_argument("--timeout-ms", default=None, type=int, help="Resolution budget.")
    parser.add_argument(
        "--events",
        action="store_true",
        help="Print the run's progress events before the result.",
    )


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="streamscout")
    commands = parser.add_subparsers(dest="command")

    serve = commands.add_parser("serve", help="Run the HTTP API.")
    _add_config_args(serve)
    serve.add_argument("--host", default=None, help="Bind host (overrides HOST env).")
    serve.add_argument(
        "--port",
        default=None,
        type=int,
        help="Bind port (overrides PORT env).",
    )

    listing = commands.add_parser("list", help="List the selected providers.")
    _add_config_args(listing)

    resolve = commands.add_parser("resolve", help="Resolve one title to a stream.")
    media = resolve.add_subparsers(dest="media_type", required=True)

    movie = media.add_parser("movie", help="Resolve a movie.")
    movie.add_argument("tmdb_id")
    _add_config_args(movie)
    _add_run_args(movie)

    show = media.add_parser("show", help="Resolve a show episode.")
    show.add_argument("tmdb_id")
    show.add_argument("season", type=int)
    show.add_argument("episode", type=int)
    _add_config_args(show)
    _add_run_args(show)

    argv = list(argv) if argv is not None else sys.argv[1:]
    if not argv or (argv[0].startswith("-") and argv[0] not in ("-h", "--help")):
        # Bare invocation keeps the server behaviour.
        argv = ["serve", *argv]
    return parser.parse_args(argv)


def _load(args: argparse.Namespace) -> AppConfig:
    cli_overrides: dict[str, Any] = {}
    if args.provider_dir:
        cli_overrides["provider_dir"] = args.provider_dir
    if args.target:
        cli_overrides["target"] = args.target
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    for name in ("source_order", "embed_order", "timeout_ms"):
        value = getattr(args, name, None)
        if value is not None:
            cli_overrides[f"runner_{name}"] = value

    return load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=cli_overrides,
    )


def _print_json(data: Any) -> None:
    sys.stdout.write(json.dumps(data, indent=2, default=str) + "\n")


def _event_to_dict(event: RunEvent) -> dict[str, Any]:
    """Flatten a run event for JSON output; exceptions become name + message."""
    data: dict[str, Any] = {"event": type(event).__name__}
    for f in fields(event):
        value = getattr(event, f.name)
        if isinstance(value, BaseException):
            data[f.name] = str(value)
            data[f"{f.name}_type"] = type(value).__name__
        elif isinstance(value, tuple):
            data[f.name] = [asdict(v) if is_dataclass(v) else v for v in value]
        else:
            data[f.name] = value
    return data


def _media_request(args: argparse.Namespace) -> MediaRequest:
    if args.media_type == "movie":
        return MediaRequest.movie(args.tmdb_id)
    return MediaRequest.show(args.tmdb_id, args.season, args.episode)


async def _list(config: AppConfig) -> int:
    async with create_http_client(config) as client:
        controls = build_controls(config, client)
        _print_json(
            {
                "sources": [m.to_dict() for m in controls.list_sources()],
                "embeds": [m.to_dict() for m in controls.list_embeds()],
            }
        )
    return EXIT_OK


async def _resolve(config: AppConfig, args: argparse.Namespace) -> int:
    try:
        media = _media_request(args)
    except ValueError as e:
        sys.stderr.write(f"Invalid request: {e}\n")
        return EXIT_USAGE

    recorder = RecordingEventSink()
    async with create_http_client(config) as client:
        controls = build_controls(config, client)
        outcome = await controls.run_all(
            media, config.runner.to_overrides(), events=recorder
        )

    if args.events:
        for event in recorder.events:
            _print_json(_event_to_dict(event))
    if outcome is None:
        _print_json({"error": "no stream available"})
        return EXIT_NO_STREAM
    _print_json(outcome.to_dict())
    return EXIT_OK


def _serve(config: AppConfig, args: argparse.Namespace, log_config: dict[str, Any]) -> int:
    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = int(args.port or os.getenv("PORT", "7980"))
    uvicorn.run(
        build_app(config),
        host=host,
        port=port,
        log_config=log_config,
    )
    return EXIT_OK


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Loads config exactly once, then dispatches to the chosen command.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    try:
        config = _load(args)
    except ValueError as e:
        # pydantic.ValidationError is a ValueError
        sys.stderr.write(f"Invalid configuration:\n{e}\n")
        return EXIT_CONFIG_ERROR

    log_config = configure_logging(config)

    try:
        if args.command == "list":
            return asyncio.run(_list(config))
        if args.command == "resolve":
            return asyncio.run(_resolve(config, args))
        return _serve(config, args, log_config)
    except ConfigError as e:
        log.error("startup_failed", error_type=type(e).__name__, error=str(e))
        sys.stderr.write(f"{e}\n")
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    raise SystemExit(start())
