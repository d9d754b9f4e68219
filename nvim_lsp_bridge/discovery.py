"""
Neovim instance discovery and socket selection.

Neovim publishes one server socket per instance under
``<tmp>/nvim.<user>/<random>/nvim.<pid>.0``. Picking one goes:

1. ``NVIM_LISTEN_ADDRESS`` wins outright (no filesystem access at all)
2. no candidate sockets -> error
3. exactly one candidate -> use it without probing
4. several -> probe them all in parallel, drop the dead ones, and hand
   any remaining ambiguity to a disambiguation policy
"""

import logging
import os
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, TextIO

from . import config
from .errors import (
    AmbiguousInstanceError,
    InvalidSelectionError,
    NoInstanceError,
    UnreachableInstancesError,
)

logger = logging.getLogger(__name__)

SocketSelector = Callable[[], str]

CYAN = "\x1b[1;36m"
GRAY = "\x1b[38;5;248m"
GREEN = "\x1b[32m"
YELLOW = "\x1b[33m"
MAGENTA = "\x1b[35m"
ORANGE = "\x1b[38;5;214m"
RESET = "\x1b[0m"


@dataclass(frozen=True)
class NvimInstance:
    socket_path: str
    cwd: str


Disambiguator = Callable[[List[NvimInstance]], str]


def find_all_neovim_sockets(root: Optional[str] = None) -> List[str]:
    """List candidate sockets under the per-user Neovim runtime directory.

    Never raises: a missing or unreadable directory just contributes nothing.
    """
    nvim_dir = root or config.socket_root()
    sockets = []
    try:
        subdirs = os.listdir(nvim_dir)
    except OSError:
        return sockets

    for sub in subdirs:
        sub_path = os.path.join(nvim_dir, sub)
        try:
            names = os.listdir(sub_path)
        except OSError:
            continue
        for name in names:
            if name.startswith("nvim.") and name.endswith(".0"):
                sockets.append(os.path.join(sub_path, name))
    return sockets


def sort_by_mtime(paths: Sequence[str]) -> List[str]:
    """Most recently modified first. Paths that vanished are dropped."""
    stamped = []
    for path in paths:
        try:
            stamped.append((os.stat(path).st_mtime, path))
        except OSError:
            continue
    stamped.sort(key=lambda item: item[0], reverse=True)
    return [path for _, path in stamped]


def get_nvim_info(socket_path: str, timeout: Optional[float] = None) -> Optional[NvimInstance]:
    """Probe a socket for liveness and its working directory.

    The probe runs in a subprocess so a wedged instance can be killed once
    the timeout expires. Any failure yields None.
    """
    if timeout is None:
        timeout = config.probe_timeout()
    cmd = [
        sys.executable, "-m", "nvim_lsp_bridge.nvim_rpc",
        "--server", socket_path,
        "--remote-expr", "getcwd()",
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.debug("Probe of %s timed out after %.1fs", socket_path, timeout)
        return None
    except OSError as e:
        logger.debug("Probe of %s could not start: %s", socket_path, e)
        return None

    if result.returncode != 0:
        logger.debug("Probe of %s failed: %s", socket_path, result.stderr.strip())
        return None
    return NvimInstance(socket_path=socket_path, cwd=result.stdout.strip())


def discover_instances(sockets: Optional[Sequence[str]] = None) -> List[NvimInstance]:
    """Probe every candidate concurrently and keep the live ones, in order."""
    if sockets is None:
        sockets = find_all_neovim_sockets()
    if not sockets:
        return []

    with ThreadPoolExecutor(max_workers=len(sockets)) as pool:
        results = list(pool.map(get_nvim_info, sockets))
    return [instance for instance in results if instance is not None]


def format_instance_list(instances: Sequence[NvimInstance]) -> str:
    output = ""
    for i, instance in enumerate(instances, start=1):
        output += (
            f"  {CYAN}{i}) {instance.cwd}{RESET}\n"
            f"     {GRAY}{instance.socket_path}{RESET}\n"
        )
    return output


def select_socket(disambiguate: Disambiguator) -> str:
    """Resolve exactly one socket path or raise a SelectionError."""
    override = config.listen_address()
    if override:
        logger.debug("Using %s=%s", config.LISTEN_ADDRESS_ENV, override)
        return override

    sockets = find_all_neovim_sockets()
    logger.debug("Found %d candidate socket(s): %s", len(sockets), sockets)

    if not sockets:
        raise NoInstanceError(
            "No Neovim instances found. "
            f"Start Neovim or set {config.LISTEN_ADDRESS_ENV}."
        )

    if len(sockets) == 1:
        return sockets[0]

    instances = discover_instances(sockets)

    if not instances:
        raise UnreachableInstancesError(
            f"Found {len(sockets)} Neovim sockets but could not connect to any of them. "
            f"Set {config.LISTEN_ADDRESS_ENV} to a live socket."
        )

    if len(instances) == 1:
        return instances[0].socket_path

    return disambiguate(instances)


def reject_ambiguity(instances: List[NvimInstance]) -> str:
    raise AmbiguousInstanceError(
        f"Multiple Neovim instances found ({len(instances)}). "
        f"Set {config.LISTEN_ADDRESS_ENV} to select one."
    )


def prompt_for_instance(
    instances: List[NvimInstance],
    stdin: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> str:
    """Show the numbered instance list on stderr and read a 1-based choice."""
    stdin = stdin or sys.stdin
    stderr = stderr or sys.stderr
    env = config.LISTEN_ADDRESS_ENV

    stderr.write(f"{ORANGE}Multiple Neovim instances found:{RESET}\n\n")
    stderr.write(format_instance_list(instances))
    stderr.write(
        f"\n{GRAY}Tip: Set {CYAN}{env}{GRAY} to skip this prompt.{RESET}\n"
        f"{GRAY}Example:{RESET} {GREEN}export{RESET} {CYAN}{env}{RESET}"
        f"{YELLOW}={RESET}{MAGENTA}/path/to/nvim/socket{RESET}\n\n"
    )
    stderr.write(f"Select instance (1-{len(instances)}): ")
    stderr.flush()

    answer = stdin.readline().strip()
    if not (answer.isascii() and answer.isdigit()):
        raise InvalidSelectionError(f"Invalid selection: {answer!r} is not a number.")
    idx = int(answer) - 1
    if idx < 0 or idx >= len(instances):
        raise InvalidSelectionError(
            f"Invalid selection: {answer} is not between 1 and {len(instances)}."
        )
    return instances[idx].socket_path


def create_auto_socket_selector() -> SocketSelector:
    """Selector for non-interactive callers: ambiguity is an error."""
    return lambda: select_socket(reject_ambiguity)


def create_interactive_socket_selector(
    stdin: Optional[TextIO] = None, stderr: Optional[TextIO] = None
) -> SocketSelector:
    """Selector that asks the user on the terminal when several instances are live."""

    def disambiguate(instances):
        return prompt_for_instance(instances, stdin=stdin, stderr=stderr)

    return lambda: select_socket(disambiguate)


def create_newest_socket_selector() -> SocketSelector:
    """Selector that takes the most recently started instance, without probing."""

    def select():
        override = config.listen_address()
        if override:
            return override
        sockets = sort_by_mtime(find_all_neovim_sockets())
        if not sockets:
            raise NoInstanceError(
                "No Neovim instances found. "
                f"Start Neovim or set {config.LISTEN_ADDRESS_ENV}."
            )
        return sockets[0]

    return select
