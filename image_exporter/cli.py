"""Command line interface for image_exporter package."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import httpx
from rich.logging import RichHandler

from . import __version__
from .cli_progress import BatchProgressDisplay, render_batch_summary, render_configuration_summary
from .config import ExportConfig
from .errors import ExportError, ValidationError
from .models import BatchExportResult
from .orchestrator import ExportOrchestrator
from .services.repository import parse_entity_id


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _parse_entity_ids(raw_ids: Sequence[str]) -> List[int]:
    ids: List[int] = []
    for raw in raw_ids:
        for part in raw.split(","):
            if not part.strip():
                continue
            try:
                ids.append(parse_entity_id(part))
            except ValidationError as exc:
                raise CLIError(f"invalid entity id {part!r}: {exc}") from exc
    return ids


def _write_report(path: Path, result: BatchExportResult) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(result.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not write report {path}: {exc}") from exc


async def _run_export(
    config: ExportConfig,
    entity_ids: List[int],
    pending: bool,
    limit: int,
    show_progress: bool,
) -> BatchExportResult:
    display = BatchProgressDisplay() if show_progress else None
    sink = display.on_event if display else None

    try:
        async with ExportOrchestrator(config) as orchestrator:
            if pending:
                return await orchestrator.export_pending(limit, progress_sink=sink)
            return await orchestrator.export_entities(entity_ids, progress_sink=sink)
    finally:
        if display:
            display.stop()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-export",
        description="Upload entity images to the asset store and record their URLs.",
    )
    parser.add_argument(
        "ids",
        nargs="*",
        help="Entity ids to export (space or comma separated)",
    )
    parser.add_argument(
        "-p",
        "--pending",
        action="store_true",
        help="Export entities not yet flagged as exported",
    )
    parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=100,
        help="Maximum entities to fetch with --pending (max 100)",
    )
    parser.add_argument(
        "-r",
        "--storage-root",
        type=Path,
        default=None,
        help="Local folder holding the image files (default from EXPORTER_STORAGE_ROOT or ./uploads)",
    )
    parser.add_argument(
        "-g",
        "--group-size",
        type=int,
        default=None,
        help="Entities exported concurrently per group (default 3)",
    )
    parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Write the batch result as JSON to this file",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"image-export {__version__}",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if not args.ids and not args.pending:
        parser.print_help()
        return 0

    try:
        entity_ids = _parse_entity_ids(args.ids)
        config = ExportConfig.from_env(
            storage_root=args.storage_root.expanduser() if args.storage_root else None,
            group_size=args.group_size,
        )
    except (CLIError, ExportError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if not args.silent:
        render_configuration_summary(
            {
                "Entities": "pending" if args.pending else ", ".join(map(str, entity_ids)),
                "Storage Root": str(config.storage_root),
                "Assets API": config.assets_api_url,
                "API Key": "set" if config.assets_api_key else "(missing)",
                "Entity API": config.entity_api_url or "(missing)",
                "Group Size": config.group_size,
                "Upload Timeout": f"{config.upload_timeout:g}s",
                "Env File": str(used_env_file) if used_env_file else "-",
                "Logging": effective_log_mode,
            }
        )

    try:
        result = asyncio.run(
            _run_export(
                config,
                entity_ids,
                pending=args.pending,
                limit=args.limit,
                show_progress=not args.no_progress and not args.silent,
            )
        )
        if args.report:
            _write_report(args.report, result)
    except (CLIError, ExportError, httpx.HTTPError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130

    if not args.silent:
        render_batch_summary(result)
    return 0 if result.success else 1


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
