"""
Output multiplexer for gq

Tags each line of a service's output with a color, a wall-clock timestamp
and the service tag, and writes it to the shared terminal as one write.
At most one line is buffered. Lines from one service keep their order;
lines from different services interleave freely.

Foreground runs pump on an in-process reader thread. Background (full-stack)
runs hand the service's stdout to a forwarder process running main()
below, which keeps tagging after the CLI exits.
"""

import argparse
import os
import subprocess
import sys
import threading
from pathlib import Path
from typing import IO, List, Optional

from .time import wall_clock


RESET = "\033[0m"

COLORS = {
    "cyan": "\033[96m",
    "magenta": "\033[95m",
    "green": "\033[92m",
    "yellow": "\033[93m",
    "blue": "\033[94m",
    "white": "\033[0m",
}

# Service tag → color
SERVICE_COLORS = {
    "ENGINE1": "cyan",
    "ENGINE2": "magenta",
    "API": "green",
    "FRONTEND": "yellow",
}

FORWARDER_BOOTSTRAP = "import sys; from gq.shared.multiplexer import main; sys.exit(main(sys.argv[1:]))"


def colors_enabled() -> bool:
    return "NO_COLOR" not in os.environ


def format_line(tag: str, text: str, color: Optional[str] = None,
                now: Optional[float] = None, use_color: Optional[bool] = None) -> str:
    """
    Render one tagged output line (newline included).

    Args:
        tag: Service tag, e.g. "ENGINE1"
        text: Line content without its trailing newline
        color: Color name; defaults to the tag's color
        now: Epoch seconds for the timestamp; defaults to the current time
        use_color: Force color on/off; defaults to NO_COLOR detection
    """
    if use_color is None:
        use_color = colors_enabled()
    prefix = f"[{wall_clock(now)}] [{tag}]"
    if use_color:
        code = COLORS.get(color or SERVICE_COLORS.get(tag, "white"), RESET)
        prefix = f"{code}{prefix}{RESET}"
    return f"{prefix} {text}\n"


def pump(source: IO[bytes], tag: str, sink: Optional[IO[str]] = None,
         lock: Optional[threading.Lock] = None, color: Optional[str] = None) -> int:
    """
    Copy source to sink line by line, tagging each line.

    Args:
        source: Binary stream from the child process
        tag: Service tag
        sink: Text stream to write to; sys.stdout when None
        lock: Shared lock making each line one atomic write among threads
        color: Color name override

    Returns:
        Number of lines forwarded
    """
    count = 0
    for raw in iter(source.readline, b""):
        text = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        line = format_line(tag, text, color)
        out = sink if sink is not None else sys.stdout
        if lock is not None:
            with lock:
                out.write(line)
                out.flush()
        else:
            out.write(line)
            out.flush()
        count += 1
    return count


def _package_root() -> Path:
    """Directory containing the gq package, for the forwarder's PYTHONPATH"""
    return Path(__file__).resolve().parent.parent.parent


class OutputMultiplexer:
    """Routes several services' output onto one terminal"""

    def __init__(self, sink: Optional[IO[str]] = None):
        self.sink = sink
        self._lock = threading.Lock()
        self._threads: List[threading.Thread] = []

    def attach(self, process: subprocess.Popen, tag: str) -> threading.Thread:
        """
        Forward a child's stdout on a daemon reader thread.

        Args:
            process: Child started with stdout=PIPE (binary)
            tag: Service tag

        Returns:
            The reader thread
        """
        thread = threading.Thread(
            target=pump,
            args=(process.stdout, tag, self.sink, self._lock),
            name=f"gq-mux-{tag.lower()}",
            daemon=True,
        )
        thread.start()
        self._threads.append(thread)
        return thread

    def spawn_forwarder(self, process: subprocess.Popen, tag: str) -> subprocess.Popen:
        """
        Forward a child's stdout through a separate forwarder process.

        The forwarder inherits the terminal and exits at EOF, i.e. when the
        service exits, so it outlives this CLI invocation.

        Args:
            process: Child started with stdout=PIPE
            tag: Service tag

        Returns:
            The forwarder process
        """
        env = os.environ.copy()
        package_root = str(_package_root())
        env["PYTHONPATH"] = os.pathsep.join(
            filter(None, [package_root, env.get("PYTHONPATH")])
        )
        forwarder = subprocess.Popen(
            [sys.executable, "-c", FORWARDER_BOOTSTRAP, tag],
            stdin=process.stdout,
            env=env,
        )
        # The forwarder owns the read end now; it must see EOF when the service exits
        process.stdout.close()
        return forwarder

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for reader threads to drain"""
        for thread in self._threads:
            thread.join(timeout)


def main(argv: Optional[List[str]] = None) -> int:
    """Forwarder entry point: tag stdin lines onto stdout"""
    parser = argparse.ArgumentParser(description="Tag stdin lines with a service prefix")
    parser.add_argument("tag", help="Service tag, e.g. API")
    parser.add_argument("--color", choices=sorted(COLORS), default=None)
    args = parser.parse_args(argv)

    try:
        pump(sys.stdin.buffer, args.tag, sys.stdout, color=args.color)
    except (BrokenPipeError, KeyboardInterrupt):
        return 0
    return 0

