# File: daogen/cli.py
"""
daogen - Command-Line Interface
=================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # One table
    daogen --table users --database shop --host 127.0.0.1

    # Several tables, custom output directory, verbose
    daogen --table users --table orders -d shop -H db.local -o ./dal -v

    # Every table, settings from a file
    daogen --all --config daogen.yaml

Exit codes:
    0: success
    1: entity validation error
    2: introspection / generation error
    3: file system error
    4: input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from daogen.errors import (
    ConfigurationError,
    DaogenError,
    IOFailure,
    SynthesisError,
)
from daogen.generator import DAOGenerator, GenerationReport, build_config, load_config_file
from daogen.models import BooleanDetection, GenerationConfig

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("daogen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


def exit_code_for(exc: DaogenError) -> int:
    """Map a generation failure onto its exit code."""
    if isinstance(exc, ConfigurationError):
        return EXIT_INPUT_ERROR
    if isinstance(exc, SynthesisError):
        return EXIT_VALIDATION_ERROR
    if isinstance(exc, IOFailure):
        return EXIT_EXPORT_ERROR
    return EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root daogen logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    handler.setFormatter(logging.Formatter(fmt, datefmt="%H:%M:%S"))

    root_logger: logging.Logger = logging.getLogger("daogen")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from daogen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="daogen",
        description=(
            "daogen - typed data-access code generator.\n\n"
            "Inspects MySQL tables and writes one Python package per table "
            "with an entity dataclass and CRUD operations."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s --table users --database shop --host 127.0.0.1\n"
            "  %(prog)s -t users -t orders -d shop -H db.local -o ./dal -v\n"
            "  %(prog)s --all --config daogen.yaml\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"daogen v{__version__}",
    )

    # --- Source ---
    source_group = parser.add_argument_group("schema source")
    source_group.add_argument(
        "-t", "--table",
        dest="tables",
        action="append",
        default=None,
        metavar="TABLE",
        help="Table to generate. Repeat for several tables.",
    )
    source_group.add_argument(
        "--all",
        dest="all_tables",
        action="store_true",
        default=None,
        help="Generate every table of the database.",
    )
    source_group.add_argument(
        "-d", "--database",
        type=str,
        default=None,
        metavar="NAME",
        help="Database (schema) name.",
    )
    source_group.add_argument(
        "-H", "--host",
        type=str,
        default=None,
        metavar="HOST",
        help="Database server host.",
    )
    source_group.add_argument(
        "-P", "--port",
        type=int,
        default=None,
        metavar="PORT",
        help="Database server port (default 3306).",
    )
    source_group.add_argument(
        "-u", "--username",
        type=str,
        default=None,
        metavar="USER",
        help="Login user (default root).",
    )
    source_group.add_argument(
        "-p", "--password",
        type=str,
        default=None,
        metavar="PASSWORD",
        help="Login password (default: read from the password environment variable).",
    )
    source_group.add_argument(
        "--boolean-detection",
        type=str,
        default=None,
        choices=[m.value for m in BooleanDetection],
        help="Classify tinyint columns by sampled data or by declared width.",
    )

    # --- Output ---
    output_group = parser.add_argument_group("output")
    output_group.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="YAML or JSON settings file. Command-line flags take precedence.",
    )
    output_group.add_argument(
        "-o", "--output",
        dest="output_dir",
        type=str,
        default=None,
        metavar="DIR",
        help="Root directory for generated code (default ./generated).",
    )
    output_group.add_argument(
        "--models-package",
        type=str,
        default=None,
        metavar="NAME",
        help="Package holding one sub-package per table (default models).",
    )
    output_group.add_argument(
        "--runtime-package",
        type=str,
        default=None,
        metavar="NAME",
        help="Package holding shared runtime modules (default dbruntime).",
    )
    output_group.add_argument(
        "--no-format",
        dest="format_code",
        action="store_false",
        default=None,
        help="Do not run black over written files.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Config builder
# ---------------------------------------------------------------------------

_OVERRIDE_FIELDS: Sequence[str] = (
    "tables",
    "all_tables",
    "database",
    "host",
    "port",
    "username",
    "password",
    "boolean_detection",
    "output_dir",
    "models_package",
    "runtime_package",
    "format_code",
)


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Collect every flag that was actually given on the command line."""
    overrides: Dict[str, Any] = {}
    for name in _OVERRIDE_FIELDS:
        value: Any = getattr(args, name)
        if value is not None:
            overrides[name] = value
    return overrides


def config_from_args(args: argparse.Namespace) -> GenerationConfig:
    """
    Build the validated configuration from a settings file and flags.

    Raises:
        ConfigurationError: A required setting is missing or invalid.
    """
    raw: Dict[str, Any] = {}
    if args.config is not None:
        raw = load_config_file(Path(args.config))
    return build_config(raw, _build_config_overrides(args))


def _make_generator(config: GenerationConfig) -> DAOGenerator:
    return DAOGenerator(config)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
    else:
        verbosity = args.verbose
    _setup_logging(verbosity)
    if args.quiet:
        logging.getLogger("daogen").setLevel(logging.ERROR)

    try:
        config: GenerationConfig = config_from_args(args)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    logger.info("Database: %s@%s:%d/%s", config.username, config.host, config.port, config.database)
    logger.info("Output:   %s", Path(config.output_dir).resolve())

    try:
        report: GenerationReport = _make_generator(config).run()
    except DaogenError as exc:
        code: int = exit_code_for(exc)
        logger.error("Generation failed: %s", exc)
        sys.exit(code)

    if not args.quiet:
        print(report.summary())
    sys.exit(EXIT_SUCCESS)


def main() -> None:
    """Console-script entry point."""
    cli_main()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "main",
    "config_from_args",
    "exit_code_for",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("daogen.cli loaded.")
