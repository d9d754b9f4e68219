#!/usr/bin/env python3
"""
MCP -> Neovim LSP bridge (nvim-lsp-bridge)

Exposes one MCP tool per LSP query. Every call finds the user's running
Neovim, asks its built-in LSP client and returns the answer as JSON text.

Instance selection never prompts here: if several Neovim instances are live
the call fails and NVIM_LISTEN_ADDRESS has to pick one.
"""

import json
import logging
import os
from typing import Annotated, Any, Callable, Optional

from pydantic import Field

for key in ("FASTMCP_LOG_LEVEL", "LOG_LEVEL"):
    if key in os.environ:
        os.environ[key] = os.environ[key].upper()
    else:
        # Only set a default if nothing supplied
        os.environ[key] = "INFO"

# ---------------------------------------------------------------------------
# MCP setup -----------------------------------------------------------------
# ---------------------------------------------------------------------------
from fastmcp import FastMCP  # noqa: E402
from fastmcp.exceptions import ToolError  # noqa: E402

from . import lsp  # noqa: E402
from .discovery import create_auto_socket_selector  # noqa: E402

logger = logging.getLogger(__name__)

mcp = FastMCP("nvim-lsp-bridge")

select_socket = create_auto_socket_selector()

FilePath = Annotated[str, Field(description="File path")]
Line = Annotated[int, Field(description="Line number (1-based)")]
Column = Annotated[int, Field(description="Column number (1-based)")]


def run_query(query: Callable[..., Any], *args) -> str:
    """Run one LSP query and serialise it; failures become tool errors."""
    try:
        result = query(select_socket, *args)
    except Exception as e:
        logger.warning("%s failed: %s", getattr(query, "__name__", query), e)
        raise ToolError(str(e)) from e
    return json.dumps(result, indent=2)


# ---------------------------------------------------------------------------
# Public MCP tools -----------------------------------------------------------
# ---------------------------------------------------------------------------
@mcp.tool()
def get_diagnostics(
    file: Annotated[Optional[str], Field(description="File path to filter diagnostics")] = None,
) -> str:
    """Get LSP diagnostics from Neovim, optionally filtered to a specific file."""
    return run_query(lsp.get_diagnostics, file)


@mcp.tool()
def get_hover(file: FilePath, line: Line, col: Column) -> str:
    """Get hover/type information at a position in a file."""
    return run_query(lsp.get_hover, file, line, col)


@mcp.tool()
def get_definition(file: FilePath, line: Line, col: Column) -> str:
    """Get the definition location of a symbol at a position."""
    return run_query(lsp.get_definition, file, line, col)


@mcp.tool()
def get_references(file: FilePath, line: Line, col: Column) -> str:
    """Find all references to a symbol at a position."""
    return run_query(lsp.get_references, file, line, col)


@mcp.tool()
def get_completions(file: FilePath, line: Line, col: Column) -> str:
    """Get completion candidates at a position in a file."""
    return run_query(lsp.get_completions, file, line, col)


# ---------------------------------------------------------------------------
# Main ----------------------------------------------------------------------
# ---------------------------------------------------------------------------
def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
