"""
Environment-driven settings.

Everything is read at call time so a process (or a test) can change the
environment after import.
"""

import logging
import os
import tempfile
from typing import Optional

logger = logging.getLogger(__name__)

LISTEN_ADDRESS_ENV = "NVIM_LISTEN_ADDRESS"
PROBE_TIMEOUT_ENV = "NVIM_LSP_PROBE_TIMEOUT"
ERROR_LOG_ENV = "NVIM_LSP_ERROR_LOG"
DEBUG_ENV = "NVIM_LSP_DEBUG"

DEFAULT_PROBE_TIMEOUT = 1.0
DEFAULT_ERROR_LOG = "/tmp/nvim-bridge-error.log"


def listen_address() -> Optional[str]:
    """Return the socket override, or None when unset or empty."""
    return os.environ.get(LISTEN_ADDRESS_ENV) or None


def socket_root() -> str:
    """Per-user directory Neovim publishes its server sockets under."""
    user = os.environ.get("USER") or "unknown"
    return os.path.join(tempfile.gettempdir(), f"nvim.{user}")


def probe_timeout() -> float:
    raw = os.environ.get(PROBE_TIMEOUT_ENV)
    if not raw:
        return DEFAULT_PROBE_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", PROBE_TIMEOUT_ENV, raw)
        return DEFAULT_PROBE_TIMEOUT
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r", PROBE_TIMEOUT_ENV, raw)
        return DEFAULT_PROBE_TIMEOUT
    return value


def error_log_path() -> str:
    return os.environ.get(ERROR_LOG_ENV) or DEFAULT_ERROR_LOG


def debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV, "").lower() in ("1", "true", "yes", "on")
