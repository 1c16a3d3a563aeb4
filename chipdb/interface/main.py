#!/usr/bin/env python3
"""
chipdb locator interface

Commands:
  chipdb locate <device>       Print the chipdb file used for a device
  chipdb candidates <device>   Show every search location and whether it exists
  chipdb exe-dir               Print the directory of the running executable
"""

import argparse
import logging
import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from chipdb.config import Config, apply_saved_config, config_bool
from chipdb.locator import ChipDBLocator, file_test_open
from chipdb.runtime import ExecutablePathError


logging.getLogger().setLevel(logging.ERROR)

console = Console()
err_console = Console(stderr=True)

_PRIORITY_LABELS = {
    "home": "home override",
    "prefix": "install prefix",
    "executable": "executable-relative",
}


class ConsoleLogHandler(logging.Handler):
    """Write each record as one unwrapped line on the stderr console."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except Exception:  # noqa: BLE001
            self.handleError(record)
            return
        err_console.print(message, soft_wrap=True, markup=False, highlight=False)


def configure_logging(verbose: bool) -> logging.Logger:
    package_logger = logging.getLogger("chipdb")
    for existing in list(package_logger.handlers):
        if isinstance(existing, ConsoleLogHandler):
            package_logger.removeHandler(existing)

    handler = ConsoleLogHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.INFO if verbose else logging.WARNING)
    package_logger.propagate = False
    return logging.getLogger("chipdb.locator")


def report_fatal(error: ExecutablePathError) -> None:
    err_console.print(f"[bold red]fatal error:[/] {escape(str(error))}", soft_wrap=True)


def cmd_locate(locator: ChipDBLocator, device: str, chipdb: str | None = None) -> int:
    if chipdb:
        if not file_test_open(chipdb):
            err_console.print(f"[red]Can't open chipdb file '{escape(chipdb)}'.[/]", soft_wrap=True)
            return 1
        console.print(chipdb, soft_wrap=True, highlight=False, markup=False)
        return 0

    path = locator.locate(device)
    if not path:
        err_console.print(
            f"[red]Can't find chipdb file for device '{escape(device)}'.[/]", soft_wrap=True
        )
        return 1

    console.print(path, soft_wrap=True, highlight=False, markup=False)
    return 0


def cmd_candidates(locator: ChipDBLocator, device: str) -> int:
    table = Table(title=f"chipdb search for '{escape(device)}'")
    table.add_column("#", justify="right")
    table.add_column("Source")
    table.add_column("Path", overflow="fold")
    table.add_column("Exists", justify="center")

    found = False
    for priority, candidate in enumerate(locator.candidates(device), 1):
        exists = locator.probe(candidate.path)
        found = found or exists
        table.add_row(
            str(priority),
            _PRIORITY_LABELS.get(candidate.source, candidate.source),
            escape(candidate.path),
            "[green]✓[/]" if exists else "[dim]-[/]",
        )

    console.print(table)
    return 0 if found else 1


def cmd_exe_dir(locator: ChipDBLocator) -> int:
    console.print(locator.provider.executable_dir(), soft_wrap=True, highlight=False, markup=False)
    return 0


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v", "--verbose", action="store_true", help="Log every location that is tried"
    )
    common.add_argument("--prefix", type=str, help="Install prefix (default: CHIPDB_PREFIX)")
    common.add_argument("--subdir", type=str, help="Resource subdirectory (default: CHIPDB_SUBDIR)")
    common.add_argument("--config", type=str, help="Path to custom config file")

    parser = argparse.ArgumentParser(
        prog="chipdb",
        description="chipdb - locate device chip database files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Search order:
  1. ~/<prefix>/<subdir>/chipdb-<device>.txt    (only for a home-relative prefix)
  2. <prefix>/share/<subdir>/chipdb-<device>.txt
  3. <exe dir>/../share/<subdir>/chipdb-<device>.txt

Examples:
  chipdb locate hx8k
  chipdb locate 8k --prefix ~/.local -v
  chipdb candidates lp384
  chipdb exe-dir
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    locate_parser = subparsers.add_parser(
        "locate", parents=[common], help="Print the chipdb file used for a device"
    )
    locate_parser.add_argument("device", help="Device name, e.g. hx8k")
    locate_parser.add_argument(
        "-C", "--chipdb", type=str, help="Use this chipdb file instead of searching"
    )

    candidates_parser = subparsers.add_parser(
        "candidates", parents=[common], help="Show every search location"
    )
    candidates_parser.add_argument("device", help="Device name, e.g. hx8k")

    subparsers.add_parser(
        "exe-dir", parents=[common], help="Print the directory of the running executable"
    )

    args = parser.parse_args(argv)
    if args.command is None:
        parser.error("a command is required (locate, candidates, exe-dir)")
    return args


def run_command(args: argparse.Namespace) -> int:
    Config.set_config_file(args.config)
    apply_saved_config()

    verbose = args.verbose or config_bool("chipdb_verbose")
    locator = ChipDBLocator(
        settings=Config.locator_settings(args.prefix, args.subdir),
        logger=configure_logging(verbose),
    )

    if args.command == "locate":
        return cmd_locate(locator, args.device, getattr(args, "chipdb", None))
    if args.command == "candidates":
        return cmd_candidates(locator, args.device)
    return cmd_exe_dir(locator)


def main(argv: list[str] | None = None) -> None:
    args = parse_arguments(argv)
    try:
        exit_code = run_command(args)
    except ExecutablePathError as e:
        report_fatal(e)
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
