"""
Lifecycle engine for gq

Sequences the service launchers for the selected topology, gates each
full-stack step on a readiness window plus a liveness check, persists the
launched process identifiers, and tears everything down on stop.

States: IDLE → VALIDATING → LAUNCHING (step i of N) → RUNNING → STOPPING → STOPPED,
with FAILED reachable from VALIDATING and LAUNCHING.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from gq.errors import GqError, LivenessFailure
from gq.intent import Intent, Topology
from gq.launchers import ServiceHandle, ServiceLauncher, create_launchers
from gq.launchers.api import compose_command
from gq.report import StepOutcome, StopReport
from gq.shared.config import ConfigManager
from gq.shared.processes import (
    CommandRunner,
    find_processes_by_name,
    is_alive,
    terminate_pids,
)
from gq.shared.registry import PidRegistry, create_registry


logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    LAUNCHING = "launching"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class StartResult:
    topology: Topology
    handles: List[ServiceHandle] = field(default_factory=list)
    exit_code: int = 0
    detached: bool = False


class Orchestrator:
    """Starts, tracks and stops the platform's services"""

    # Full-stack launch order; each step waits for the previous one's liveness check
    FULL_STACK_ORDER = ("engine", "api", "frontend")

    def __init__(self, config: ConfigManager,
                 launchers: Optional[Dict[str, ServiceLauncher]] = None,
                 registry: Optional[PidRegistry] = None,
                 runner: Optional[CommandRunner] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        lifecycle = config.get_lifecycle_config()
        self.readiness_delay: float = lifecycle["readiness_delay"]
        self.stop_grace: float = lifecycle["stop_grace"]
        self.orphan_names: List[str] = lifecycle["orphan_names"]
        self.compose_files: List[Path] = lifecycle["compose_files"]

        self.registry = registry or create_registry(lifecycle["pid_file"])
        self.runner = runner or CommandRunner()
        self.launchers = launchers or create_launchers(config, self.runner)
        self._sleep = sleep

        self.state = LifecycleState.IDLE
        self.step: Tuple[int, int] = (0, 0)
        self._owned: List[ServiceHandle] = []

    # State

    def _transition(self, state: LifecycleState, detail: str = "") -> None:
        if state is LifecycleState.LAUNCHING:
            label = f"{state.value} ({self.step[0]}/{self.step[1]})"
        else:
            label = state.value
        logger.debug(f"state {self.state.value} → {label}{' ' + detail if detail else ''}")
        self.state = state

    @property
    def owned_handles(self) -> List[ServiceHandle]:
        return list(self._owned)

    # Start

    def start(self, intent: Intent) -> StartResult:
        """
        Start services for the intent's topology.

        single-service and remote block until the engine exits; full-stack
        returns once all three services pass their liveness checks and the
        registry is written.

        Raises:
            PolicyViolation, EnvironmentMissing, DependencyFailure, LivenessFailure
        """
        self._validate(intent)
        topology = intent.topology
        logger.info(f"🚀 Starting {topology.value} topology")

        try:
            if topology is Topology.FULL_STACK:
                return self._start_full_stack(intent)
            if topology is Topology.REMOTE:
                return self._run_foreground(self.launchers["remote"], intent)
            return self._run_foreground(self.launchers["engine"], intent)
        except GqError:
            self._transition(LifecycleState.FAILED)
            raise

    def run_engine(self, intent: Intent) -> StartResult:
        """Run only the engine in the foreground (remote engine under --remote-dev)"""
        self._validate(intent)
        role = "remote" if intent.dev_mode is Topology.REMOTE else "engine"
        try:
            return self._run_foreground(self.launchers[role], intent)
        except GqError:
            self._transition(LifecycleState.FAILED)
            raise

    def _validate(self, intent: Intent) -> None:
        self._transition(LifecycleState.VALIDATING)
        try:
            intent.validate()
        except GqError:
            self._transition(LifecycleState.FAILED)
            raise

    def _run_foreground(self, launcher: ServiceLauncher, intent: Intent) -> StartResult:
        self.step = (1, 1)
        self._transition(LifecycleState.LAUNCHING, launcher.name)
        launcher.prepare(intent)
        handle = launcher.launch(intent, detached=False)
        self._owned.append(handle)

        self._transition(LifecycleState.RUNNING)
        logger.info(f"Attached to {handle.name} (PID: {handle.pid}); Ctrl+C to stop")
        exit_code = handle.wait()
        launcher.multiplexer.join(timeout=1.0)
        if handle in self._owned:
            self._owned.remove(handle)

        logger.info(f"{handle.name} exited with code {exit_code}")
        self._transition(LifecycleState.STOPPED)
        return StartResult(intent.topology, [handle], exit_code=exit_code)

    def _start_full_stack(self, intent: Intent) -> StartResult:
        handles: List[ServiceHandle] = []
        total = len(self.FULL_STACK_ORDER)

        for index, role in enumerate(self.FULL_STACK_ORDER, 1):
            launcher = self.launchers[role]
            self.step = (index, total)
            self._transition(LifecycleState.LAUNCHING, launcher.name)

            launcher.prepare(intent)
            handle = launcher.launch(intent, detached=True)
            self._owned.append(handle)
            handles.append(handle)
            self._await_ready(handle)

        self.registry.write(handle.pid for handle in handles)
        logger.info(f"📝 PID registry written: {self.registry.path}")

        # Persisted handles are the registry's now
        self._owned.clear()
        self._transition(LifecycleState.RUNNING)
        return StartResult(Topology.FULL_STACK, handles, detached=True)

    def _await_ready(self, handle: ServiceHandle) -> None:
        """Fixed readiness window followed by a single liveness check"""
        logger.info(f"⏳ Waiting {self.readiness_delay:g}s for {handle.name}")
        self._sleep(self.readiness_delay)
        if not handle.is_alive():
            self._owned.remove(handle)
            raise LivenessFailure(
                f"{handle.name} (PID {handle.pid}) exited during its readiness window; "
                "services started before it are still running, use --stop to clean up"
            )
        logger.info(f"✅ {handle.name} alive after readiness window")

    # Stop

    def terminate_owned(self) -> List[StepOutcome]:
        """Terminate handles launched by this invocation and not yet persisted"""
        pids = [handle.pid for handle in self._owned]
        self._owned.clear()
        if not pids:
            return []
        logger.info(f"Terminating owned services: {pids}")
        return terminate_pids(pids, self.stop_grace, step="terminate-owned")

    def stop(self) -> StopReport:
        """
        Tear down everything gq may have started. Idempotent and never fatal.

        Returns:
            StopReport with one outcome per teardown step
        """
        self._transition(LifecycleState.STOPPING)
        report = StopReport()

        try:
            report.registered_pids = self.registry.read()
            if report.registered_pids:
                logger.info(f"🛑 Stopping registered services: {report.registered_pids}")
                report.extend(terminate_pids(report.registered_pids, self.stop_grace))
            else:
                logger.info("No registered services")
        except Exception as e:
            logger.warning(f"⚠️ Registered service teardown failed: {e}")
            report.outcomes.append(StepOutcome("terminate", str(self.registry.path), False, str(e)))

        try:
            orphans = find_processes_by_name(self.orphan_names, exclude=report.registered_pids)
            if orphans:
                logger.info(f"Terminating orphaned service processes: {[p.pid for p in orphans]}")
                report.extend(terminate_pids([proc.pid for proc in orphans], self.stop_grace, step="orphan"))
        except Exception as e:
            logger.warning(f"⚠️ Orphan cleanup failed: {e}")
            report.outcomes.append(StepOutcome("orphan", ",".join(self.orphan_names), False, str(e)))

        for compose_file in self.compose_files:
            report.outcomes.append(self._compose_down(compose_file))

        try:
            self.registry.clear()
            report.registry_cleared = True
        except Exception as e:
            logger.warning(f"⚠️ Could not remove PID registry: {e}")
            report.outcomes.append(StepOutcome("clear-registry", str(self.registry.path), False, str(e)))

        for failure in report.failures:
            logger.warning(f"⚠️ {failure}")
        logger.info(f"✅ Stop complete: {report.summary()}")
        self._transition(LifecycleState.STOPPED)
        return report

    def _compose_down(self, compose_file: Path) -> StepOutcome:
        if not compose_file.exists():
            return StepOutcome("compose-down", compose_file.name, True, "no compose file")
        try:
            returncode = self.runner.run(compose_command(compose_file, "down"),
                                         cwd=self.config.workspace)
        except Exception as e:
            return StepOutcome("compose-down", compose_file.name, False, str(e))
        if returncode != 0:
            return StepOutcome("compose-down", compose_file.name, False, f"exit code {returncode}")
        return StepOutcome("compose-down", compose_file.name, True)

    # Status

    def status(self) -> List[Tuple[int, bool]]:
        """Registered pids in launch order, each with its liveness"""
        return [(pid, is_alive(pid)) for pid in self.registry.read()]
