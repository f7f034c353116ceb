from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from . import __version__
from .config import LOG_LEVELS, Settings, load_settings
from .display import display_values, remapping_from_series
from .errors import ConfigError, FieldRemapperError, InvalidRemappingTarget
from .io import read_table, write_table
from .remapping import EditBuffer
from .services import YamlMetadataService
from .session import FieldEditingSession

logger = logging.getLogger("field_remapper")


def _path(p: str) -> Path:
    return Path(p).expanduser()


def _setup_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="field-remapper")
    p.add_argument("--version", action="version", version=f"field-remapper {__version__}")
    p.add_argument("--config", type=_path, help="Settings YAML")
    p.add_argument(
        "--metadata",
        type=_path,
        help="Metadata YAML (overrides settings and ENV: FIELD_REMAPPER_METADATA)",
    )
    p.add_argument(
        "--log-level",
        choices=list(LOG_LEVELS),
        help="Set the logging level (default: INFO)",
    )

    sub = p.add_subparsers(dest="cmd")

    show = sub.add_parser("show", help="Show a field's display-value state")
    show.add_argument("--field", type=int, required=True, help="Field id")

    mode = sub.add_parser("set-mode", help="Switch a field's display mode")
    mode.add_argument("--field", type=int, required=True, help="Field id")
    mode.add_argument("mode", help="original, foreign or custom")

    target = sub.add_parser("set-target", help="Choose the foreign display field")
    target.add_argument("--field", type=int, required=True, help="Field id")
    target.add_argument("--target", type=int, required=True, help="Target field id")

    remap = sub.add_parser("remap", help="Edit and save custom display values")
    remap.add_argument("--field", type=int, required=True, help="Field id")
    remap.add_argument(
        "--set",
        dest="assignments",
        action="append",
        default=[],
        metavar="ORIGINAL=DISPLAY",
        help="Display value for one original value (repeatable)",
    )
    remap.add_argument("--from-data", type=_path, help="CSV or Parquet to collect the field's values from")
    remap.add_argument("--column", help="Column of --from-data holding the field's raw values")

    apply = sub.add_parser("apply", help="Write display values of a data column")
    apply.add_argument("--field", type=int, required=True, help="Field id")
    apply.add_argument("--input", type=_path, required=True, help="Input CSV or Parquet")
    apply.add_argument("--column", required=True, help="Column holding the field's raw values")
    apply.add_argument("--output", type=_path, required=True, help="Output CSV or Parquet")
    apply.add_argument(
        "--lookup", type=_path, help="Rows of the FK target table (required in foreign mode)"
    )

    return p


def _resolve_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)
    if args.metadata is not None:
        settings = replace(settings, metadata_path=args.metadata)
    if args.log_level:
        settings = replace(settings, log_level=args.log_level)
    return settings


async def _open_session(settings: Settings, field_id: int) -> FieldEditingSession:
    if settings.metadata_path is None:
        raise ConfigError("No metadata file given (use --metadata or FIELD_REMAPPER_METADATA)")
    logger.debug("Loading metadata from: %s", settings.metadata_path)
    service = YamlMetadataService(settings.metadata_path)
    database_id, table_id = service.locate_field(field_id)
    session = FieldEditingSession(
        service,
        service,
        database_id=database_id,
        table_id=table_id,
        field_id=field_id,
        preserve_explicit_target=settings.preserve_explicit_target,
    )
    await session.load()
    return session


def _print_state(session: FieldEditingSession) -> None:
    json.dump(session.state(), fp=sys.stdout, indent=2, sort_keys=True)
    sys.stdout.write("\n")


def _match_original(buffer: EditBuffer, text: str):
    for original, _ in buffer.entries:
        if str(original) == text:
            return original
    raise InvalidRemappingTarget(f"{text!r} is not a value of field {buffer.field_id}")


async def _cmd_show(args: argparse.Namespace, settings: Settings) -> int:
    session = await _open_session(settings, args.field)
    _print_state(session)
    return 0


async def _cmd_set_mode(args: argparse.Namespace, settings: Settings) -> int:
    session = await _open_session(settings, args.field)
    result = await session.set_mode(args.mode)
    if result.requires_target_choice:
        logger.warning("No default display field found; choose one with set-target")
    _print_state(session)
    return 0


async def _cmd_set_target(args: argparse.Namespace, settings: Settings) -> int:
    session = await _open_session(settings, args.field)
    await session.select_target(args.target)
    _print_state(session)
    return 0


def _read_column(path: Path, column: str):
    logger.debug("Reading input dataset: %s", path)
    df = read_table(path)
    if column not in df.columns:
        raise InvalidRemappingTarget(f"Input has no column {column!r}")
    return df, df[column]


async def _cmd_remap(args: argparse.Namespace, settings: Settings) -> int:
    session = await _open_session(settings, args.field)
    if args.from_data is not None:
        if not args.column:
            raise InvalidRemappingTarget("--from-data needs --column")
        _, series = _read_column(args.from_data, args.column)
        await session.import_values(remapping_from_series(series, existing=session.field.remapping))
    if args.assignments and session.buffer is None:
        raise InvalidRemappingTarget(
            f"Field {args.field} is in {session.mode.value} mode; switch to custom first"
        )
    for assignment in args.assignments:
        original_text, sep, display = assignment.partition("=")
        if not sep:
            raise InvalidRemappingTarget(f"Expected ORIGINAL=DISPLAY, got {assignment!r}")
        session.set_value(_match_original(session.buffer, original_text), display)
    if args.assignments:
        await session.save_remappings()
        logger.info("Saved %d display values for field %s", len(args.assignments), args.field)
    _print_state(session)
    return 0


async def _cmd_apply(args: argparse.Namespace, settings: Settings) -> int:
    session = await _open_session(settings, args.field)
    df, series = _read_column(args.input, args.column)
    lookup = read_table(args.lookup) if args.lookup else None

    df[args.column] = display_values(
        series, session.field, lookup=lookup, database=session.database
    )
    args.output.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Writing output dataset to: %s", args.output)
    write_table(df, args.output)
    return 0


COMMANDS = {
    "show": _cmd_show,
    "set-mode": _cmd_set_mode,
    "set-target": _cmd_set_target,
    "remap": _cmd_remap,
    "apply": _cmd_apply,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = _resolve_settings(args)
    except ConfigError as e:
        _setup_logging(args.log_level or "INFO")
        logger.error("%s", e)
        return 1
    _setup_logging(settings.log_level)

    if args.cmd is None:
        parser.print_help()
        return 0

    try:
        return asyncio.run(COMMANDS[args.cmd](args, settings))
    except FieldRemapperError as e:
        logger.error("%s", e)
        return 1
    except Exception:
        logger.exception("Unexpected error occurred")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
