"""Bridge LSP queries from the command line or MCP into a running Neovim."""

__version__ = "1.0.0"
