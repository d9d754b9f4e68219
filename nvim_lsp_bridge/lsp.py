"""
Run LSP queries inside a selected Neovim through its built-in LSP client.

Each query opens its own RPC session, optionally syncs the target file into
a buffer, runs one Lua payload from ``lua/`` and closes the session again,
whatever happened. Results come back exactly as the Lua returned them.
"""

import functools
import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import pynvim

from .discovery import SocketSelector

logger = logging.getLogger(__name__)

LUA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "lua")

LUA_SCRIPTS = (
    "sync_buffer",
    "diagnostics",
    "hover",
    "definition",
    "references",
    "completions",
)


@functools.lru_cache(maxsize=None)
def load_lua(name: str) -> str:
    """Return the source of a bundled Lua payload (read once per process)."""
    if name not in LUA_SCRIPTS:
        raise ValueError(f"Unknown Lua script: {name}")
    with open(os.path.join(LUA_DIR, f"{name}.lua"), encoding="utf-8") as f:
        return f.read()


@contextmanager
def connect_to_nvim(select_socket: SocketSelector) -> Iterator[pynvim.Nvim]:
    """Attach to the socket the selector picks; always detach on exit."""
    socket_path = select_socket()
    logger.debug("Connecting to %s", socket_path)
    nvim = pynvim.attach("socket", path=socket_path)
    try:
        yield nvim
    finally:
        nvim.close()


def call_lua(nvim: pynvim.Nvim, name: str, *args) -> Any:
    logger.debug("Running %s.lua with %r", name, args)
    return nvim.exec_lua(load_lua(name), *args)


def get_diagnostics(select_socket: SocketSelector, file: Optional[str] = None) -> Any:
    """Diagnostics for ``file``, or for every loaded buffer when omitted."""
    with connect_to_nvim(select_socket) as nvim:
        if file:
            call_lua(nvim, "sync_buffer", file)
            return call_lua(nvim, "diagnostics", file)
        return call_lua(nvim, "diagnostics")


def _position_query(script: str, select_socket: SocketSelector, file: str, line: int, col: int) -> Any:
    with connect_to_nvim(select_socket) as nvim:
        call_lua(nvim, "sync_buffer", file)
        return call_lua(nvim, script, file, line, col)


def get_hover(select_socket: SocketSelector, file: str, line: int, col: int) -> Any:
    """Hover/type information at a 1-based ``line``/``col``."""
    return _position_query("hover", select_socket, file, line, col)


def get_definition(select_socket: SocketSelector, file: str, line: int, col: int) -> Any:
    return _position_query("definition", select_socket, file, line, col)


def get_references(select_socket: SocketSelector, file: str, line: int, col: int) -> Any:
    return _position_query("references", select_socket, file, line, col)


def get_completions(select_socket: SocketSelector, file: str, line: int, col: int) -> Any:
    return _position_query("completions", select_socket, file, line, col)
