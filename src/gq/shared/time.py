"""
Time utilities for gq

Wall-clock helpers shared by service handles and the output multiplexer.
"""

import time
from datetime import datetime
from typing import Optional


def utc_now_seconds() -> float:
    """
    Get current UTC timestamp in seconds.
    
    Returns:
        float: Current UTC timestamp in seconds
    """
    return time.time()


def wall_clock(now: Optional[float] = None) -> str:
    """Local wall-clock time as HH:MM:SS, used to prefix service output."""
    if now is None:
        now = time.time()
    return datetime.fromtimestamp(now).strftime("%H:%M:%S")

