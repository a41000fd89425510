# bikeshare/util/trace.py
from __future__ import annotations

from colorama import Fore, Style


# trace levels
LEVEL_CONFIG = 1    # configuration and initialization
LEVEL_WORKERS = 2   # starting, stopping, and queuing workers
LEVEL_ACTIONS = 3   # worker actions at hubs
LEVEL_TRAFFIC = 4   # bicycle traffic between hubs

_LEVEL_COLOR = {
    LEVEL_CONFIG: Fore.CYAN,
    LEVEL_WORKERS: Fore.GREEN,
    LEVEL_ACTIONS: Fore.YELLOW,
    LEVEL_TRAFFIC: Fore.MAGENTA,
}

_trace_level = 0


def set_trace_level(level: int) -> None:
    """Print trace messages whose level is <= `level` (0 silences tracing)."""
    global _trace_level
    _trace_level = max(0, int(level))


def get_trace_level() -> int:
    return _trace_level


def trace(level: int, time: float, source: str, fmt: str, *args) -> None:
    if level > _trace_level or level <= 0:
        return
    msg = (fmt % args) if args else fmt
    color = _LEVEL_COLOR.get(level, "")
    print(f"{color}[{time:12.2f}] {source}: {msg}{Style.RESET_ALL}")
