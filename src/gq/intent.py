"""
Resolved request types.

An Intent is built once by the command resolver and passed explicitly to
the orchestrator and every launcher; nothing reads toggles from globals.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from gq.errors import PolicyViolation


class Operation(Enum):
    INIT = "init"
    AUTH = "auth"
    SETUP = "setup-gotrade"
    START = "start"
    STOP = "stop"
    RUN_ENGINE = "run-oems"
    STATUS = "status"
    CLONE = "clone"
    HELP = "help"


class Topology(Enum):
    SINGLE_SERVICE = "single-service"
    FULL_STACK = "full-stack"
    REMOTE = "remote"


@dataclass(frozen=True)
class LogToggles:
    """Which services' output is tagged and forwarded. Presentation only."""
    engine1: bool = False
    engine2: bool = False
    api: bool = False
    frontend: bool = False


@dataclass(frozen=True)
class Intent:
    operation: Operation
    dev_mode: Topology = Topology.SINGLE_SERVICE
    compile: bool = False
    build_packages: bool = False
    reset: bool = False
    build_frontend: bool = False
    logs: LogToggles = field(default_factory=LogToggles)
    repos: Tuple[str, ...] = ()

    @property
    def topology(self) -> Topology:
        return self.dev_mode

    def validate(self) -> None:
        """
        Reject toggle/mode combinations that are never allowed.

        Raises:
            PolicyViolation: packages cannot be built for a remote run
        """
        if self.dev_mode is Topology.REMOTE and self.build_packages:
            raise PolicyViolation(
                "--build-gq cannot be combined with --remote-dev: "
                "remote runs use the remote environment's packages"
            )
