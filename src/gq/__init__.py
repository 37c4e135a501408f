"""
gq - local developer orchestration for the GoTrade platform

Starts, stops and sequences the platform's cooperating services:
- OEMS: the compiled trading engine
- FastAPI: the web API, with its database container
- Frontend: the web UI dev server

The lifecycle engine lives in gq.orchestrator; launchers for each service
live in gq.launchers.
"""

__version__ = "1.0.0"
__author__ = "GoTrade Team"
__description__ = "Local process orchestration CLI for the GoTrade trading platform"

import sys
if sys.version_info < (3, 11):
    raise RuntimeError("gq requires Python 3.11 or higher")

from . import shared
from . import launchers

__all__ = [
    "shared",
    "launchers",
]
