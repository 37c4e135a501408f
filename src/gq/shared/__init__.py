"""
Shared utilities for gq

Configuration, logging, path resolution, the PID registry,
process helpers and the output multiplexer.
"""

from . import config
from . import logging
from . import paths
from . import processes
from . import registry
from . import multiplexer
from . import time

__all__ = [
    "config",
    "logging",
    "paths",
    "processes",
    "registry",
    "multiplexer",
    "time",
]
