"""
Service launcher base for gq

A launcher brings up exactly one service in two phases:

- prepare(intent): toggle-conditional side effects (compile, package build,
  data wipe, container bring-up). Raises before any process exists.
- launch(intent, detached): starts the long-running process and returns a
  ServiceHandle. A missing or non-executable binary raises
  EnvironmentMissing with a hint; launches are never retried.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from gq.errors import EnvironmentMissing
from gq.intent import Intent
from gq.shared.config import ConfigManager
from gq.shared.multiplexer import OutputMultiplexer
from gq.shared.processes import CommandRunner, is_alive
from gq.shared.time import utc_now_seconds


logger = logging.getLogger(__name__)


@dataclass
class ServiceHandle:
    """A running service owned by the orchestrator"""
    name: str
    pid: int
    launched_at: float
    tag: str = ""
    process: Optional[subprocess.Popen] = field(default=None, compare=False, repr=False)
    forwarder: Optional[subprocess.Popen] = field(default=None, compare=False, repr=False)

    def is_alive(self) -> bool:
        if self.process is not None:
            return self.process.poll() is None
        return is_alive(self.pid)

    def wait(self) -> int:
        """Block until the service exits and return its exit code"""
        if self.process is None:
            raise RuntimeError(f"{self.name} (PID {self.pid}) is not a child of this process")
        return self.process.wait()


class ServiceLauncher:
    """Base launcher; subclasses describe their command and prepare steps"""

    name = "service"
    tag = "SERVICE"

    def __init__(self, config: ConfigManager, runner: Optional[CommandRunner] = None,
                 multiplexer: Optional[OutputMultiplexer] = None):
        self.config = config
        self.runner = runner or CommandRunner()
        self.multiplexer = multiplexer or OutputMultiplexer()

    # Hooks

    def prepare(self, intent: Intent) -> None:
        """Run toggle-conditional steps; raise to abort before launch"""

    def log_enabled(self, intent: Intent) -> bool:
        raise NotImplementedError

    def build_command(self, intent: Intent) -> List[str]:
        raise NotImplementedError

    def working_dir(self) -> Path:
        raise NotImplementedError

    def environment(self, intent: Intent) -> Dict[str, str]:
        return {}

    def missing_hint(self) -> str:
        return ""

    # Launch

    def launch(self, intent: Intent, detached: bool = False) -> ServiceHandle:
        """
        Start the service process.

        Args:
            intent: Resolved request
            detached: True when the CLI returns without waiting (full-stack);
                tagged output then goes through a forwarder process

        Returns:
            ServiceHandle for the running process
        """
        argv = self.build_command(intent)
        cwd = self.working_dir()
        self.require_dir(cwd, "working directory")

        env = os.environ.copy()
        env.update(self.environment(intent))

        capture = self.log_enabled(intent)
        logger.info(f"Starting {self.name}: {' '.join(argv)}")
        try:
            process = subprocess.Popen(
                argv,
                cwd=str(cwd),
                env=env,
                stdin=subprocess.DEVNULL if detached else None,
                stdout=subprocess.PIPE if capture else subprocess.DEVNULL,
                stderr=subprocess.STDOUT if capture else subprocess.DEVNULL,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise EnvironmentMissing(self._missing_message(argv[0], e)) from e

        handle = ServiceHandle(
            name=self.name,
            pid=process.pid,
            launched_at=utc_now_seconds(),
            tag=self.tag,
            process=process,
        )

        if capture:
            if detached:
                handle.forwarder = self.multiplexer.spawn_forwarder(process, self.tag)
            else:
                self.multiplexer.attach(process, self.tag)

        logger.info(f"✅ {self.name} started (PID: {process.pid})")
        return handle

    # Helpers

    def require_dir(self, path: Path, what: str) -> None:
        if not path.is_dir():
            hint = self.missing_hint()
            message = f"{self.name} {what} not found: {path}"
            raise EnvironmentMissing(f"{message}; {hint}" if hint else message)

    def require_executable(self, path: Path) -> None:
        if not path.is_file() or not os.access(path, os.X_OK):
            raise EnvironmentMissing(self._missing_message(str(path)))

    def resolve_executable(self, name: str, search_path: Optional[str] = None) -> str:
        """Resolve argv[0] against search_path (PATH by default) or fail with a hint"""
        if os.sep in name:
            candidate = Path(name)
            if not candidate.is_absolute():
                candidate = self.working_dir() / candidate
            self.require_executable(candidate)
            return str(candidate)

        found = shutil.which(name, path=search_path)
        if found is None:
            raise EnvironmentMissing(self._missing_message(name))
        return found

    def _missing_message(self, executable: str, error: Optional[Exception] = None) -> str:
        message = f"{self.name} executable missing or not executable: {executable}"
        if error is not None:
            message = f"{message} ({error.strerror or error})"
        hint = self.missing_hint()
        return f"{message}; {hint}" if hint else message
