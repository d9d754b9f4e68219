#!/usr/bin/env python3
"""
nvim-lsp: query the LSP clients of a running Neovim from the shell.

Results are printed as indented JSON on stdout. When several Neovim
instances are live the user is asked to pick one (unless
NVIM_LISTEN_ADDRESS is set or another --select policy is given).
"""

import argparse
import json
import logging
import sys
import traceback
from typing import List, Optional

from . import config, lsp
from .discovery import (
    create_auto_socket_selector,
    create_interactive_socket_selector,
    create_newest_socket_selector,
    discover_instances,
    format_instance_list,
)

logger = logging.getLogger(__name__)

SELECTORS = {
    "interactive": create_interactive_socket_selector,
    "auto": create_auto_socket_selector,
    "newest": create_newest_socket_selector,
}


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nvim-lsp",
        description="Get LSP information from a running Neovim instance.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--select",
        choices=sorted(SELECTORS),
        default="interactive",
        help="How to choose between several live instances (default: %(default)s)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)
    subparsers.add_parser("list", help="List Neovim instances and sockets")

    diag_parser = subparsers.add_parser("diagnostics", help="Get LSP diagnostics")
    diag_parser.add_argument("file", nargs="?", help="Only report diagnostics for this file")

    helps = {
        "hover": "Get hover/type info",
        "definition": "Go to definition",
        "references": "Find references",
        "completions": "Get completions",
    }
    for name, help_text in helps.items():
        pos_parser = subparsers.add_parser(name, help=help_text)
        pos_parser.add_argument("file", help="Path to the file")
        pos_parser.add_argument("line", type=int, help="Line number (1-based)")
        pos_parser.add_argument("col", type=int, help="Column number (1-based)")

    return parser.parse_args(args)


def list_instances() -> int:
    instances = discover_instances()
    if not instances:
        print("No Neovim instances found.", file=sys.stderr)
        return 1
    sys.stderr.write(f"\nFound {len(instances)} Neovim instance(s):\n\n")
    sys.stderr.write(format_instance_list(instances))
    return 0


def run_command(parsed_args: argparse.Namespace):
    select_socket = SELECTORS[parsed_args.select]()
    if parsed_args.command == "diagnostics":
        return lsp.get_diagnostics(select_socket, parsed_args.file)
    operation = getattr(lsp, f"get_{parsed_args.command}")
    return operation(select_socket, parsed_args.file, parsed_args.line, parsed_args.col)


def write_error_log(err: BaseException) -> None:
    """Keep the last fatal error around for debugging."""
    path = config.error_log_path()
    trace = "".join(traceback.format_exception(type(err), err, err.__traceback__))
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"{err}\n{trace}")
    except OSError as e:
        logger.warning("Could not write error log %s: %s", path, e)


def main(args: Optional[List[str]] = None) -> int:
    parsed_args = parse_args(args)

    log_level = logging.DEBUG if parsed_args.debug or config.debug_enabled() else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if parsed_args.command == "list":
        return list_instances()

    try:
        result = run_command(parsed_args)
    except Exception as e:
        write_error_log(e)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
