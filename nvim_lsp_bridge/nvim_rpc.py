#!/usr/bin/env python3
"""
Minimal Neovim RPC client.

Connects to a Neovim server socket, evaluates one expression and prints the
result. Instance probing runs this in a subprocess so a hung instance can be
killed on timeout.
"""

import argparse
import json
import sys
from typing import List, Optional

import pynvim

from . import config


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Evaluate an expression in a running Neovim.')
    parser.add_argument(
        '--server',
        default=config.listen_address(),
        help='Neovim server socket (default: $NVIM_LISTEN_ADDRESS).',
    )
    parser.add_argument(
        '--remote-expr',
        required=True,
        metavar='EXPR',
        help='Vimscript expression to evaluate, e.g. "getcwd()".',
    )
    return parser.parse_args(argv)


def format_result(result) -> Optional[str]:
    if result is None:
        return None
    if isinstance(result, (dict, list)):
        return json.dumps(result)
    return str(result)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if not args.server:
        print('Error: No Neovim server given', file=sys.stderr)
        return 1

    try:
        nvim = pynvim.attach('socket', path=args.server)
    except Exception as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1

    try:
        output = format_result(nvim.eval(args.remote_expr))
    except pynvim.api.NvimError as e:
        print(f'Nvim error: {e}', file=sys.stderr)
        return 1
    except Exception as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1
    finally:
        nvim.close()

    if output is not None:
        print(output)
    return 0


if __name__ == '__main__':
    sys.exit(main())
