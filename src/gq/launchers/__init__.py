"""
Service launchers for gq

One launcher per service: engine (local and remote), API and frontend.
"""

from typing import Dict, Optional

from gq.launchers.api import ApiLauncher
from gq.launchers.base import ServiceHandle, ServiceLauncher
from gq.launchers.engine import EngineLauncher
from gq.launchers.frontend import FrontendLauncher
from gq.launchers.remote import RemoteEngineLauncher
from gq.shared.config import ConfigManager
from gq.shared.multiplexer import OutputMultiplexer
from gq.shared.processes import CommandRunner


def create_launchers(config: ConfigManager, runner: Optional[CommandRunner] = None,
                     multiplexer: Optional[OutputMultiplexer] = None) -> Dict[str, ServiceLauncher]:
    """
    Build the launcher set keyed by role.

    Returns:
        {"engine", "remote", "api", "frontend"} → launcher
    """
    runner = runner or CommandRunner()
    multiplexer = multiplexer or OutputMultiplexer()
    return {
        "engine": EngineLauncher(config, runner, multiplexer),
        "remote": RemoteEngineLauncher(config, runner, multiplexer),
        "api": ApiLauncher(config, runner, multiplexer),
        "frontend": FrontendLauncher(config, runner, multiplexer),
    }


__all__ = [
    "ApiLauncher",
    "EngineLauncher",
    "FrontendLauncher",
    "RemoteEngineLauncher",
    "ServiceHandle",
    "ServiceLauncher",
    "create_launchers",
]
