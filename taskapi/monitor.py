"""Process and connection monitoring used while load testing."""

from __future__ import annotations

import gc
import os
import subprocess
import sys
import threading
import tracemalloc

try:
    import resource
except ImportError:  # pragma: no cover - not available on every platform
    resource = None  # type: ignore[assignment]


def _run(command: list[str]) -> str | None:
    try:
        completed = subprocess.run(command, capture_output=True, text=True, check=True)
    except (OSError, subprocess.SubprocessError):
        return None
    return completed.stdout


def get_cpu_usage() -> float:
    """CPU usage of this process in percent as reported by ps, or 0.0 if unknown."""
    output = _run(["ps", "-p", str(os.getpid()), "-o", "pcpu"])
    if output is None:
        return 0.0
    lines = output.split("\n")
    if len(lines) < 2:
        return 0.0
    try:
        return float(lines[1].strip())
    except ValueError:
        return 0.0


def get_connection_count(port: int = 8080) -> int:
    """Number of established connections on the given port according to netstat."""
    output = _run(["netstat", "-an"])
    if output is None:
        return 0
    marker = f":{port}"
    return sum(
        1 for line in output.split("\n") if marker in line and "ESTABLISHED" in line
    )


def _max_rss_kb() -> int:
    if resource is None:
        return 0
    rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # macOS reports bytes, other systems kilobytes.
    return rss // 1024 if sys.platform == "darwin" else rss


def get_memory_stats() -> str:
    """One-line summary of memory use, collections run and live threads."""
    allocated = tracemalloc.get_traced_memory()[0] if tracemalloc.is_tracing() else 0
    collections = sum(stat.get("collections", 0) for stat in gc.get_stats())
    return (
        f"Alloc={allocated // 1024}KB, Sys={_max_rss_kb()}KB, "
        f"GC={collections}, Threads={threading.active_count()}"
    )