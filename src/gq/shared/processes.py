"""
Process utilities for gq

Liveness checks, best-effort termination of process trees, orphan
matching by name, and a runner for the opaque external steps
(build scripts, docker compose, git, npm).
"""

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import psutil

from gq.errors import DependencyFailure
from gq.report import StepOutcome


logger = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]


def split_command(command: Command) -> List[str]:
    """Split a configured command string into argv"""
    if isinstance(command, str):
        return shlex.split(command)
    return [str(part) for part in command]


def is_alive(pid: int) -> bool:
    """
    Check if a process is running. Zombies count as exited.

    Args:
        pid: Process ID to check

    Returns:
        True if process is running, False otherwise
    """
    try:
        proc = psutil.Process(pid)
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except (psutil.NoSuchProcess, psutil.ZombieProcess):
        return False
    except psutil.AccessDenied:
        # Exists but belongs to someone else
        return True


def _process_tree(proc: psutil.Process) -> List[psutil.Process]:
    """Process followed by its descendants, children first"""
    try:
        children = proc.children(recursive=True)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        children = []
    return list(reversed(children)) + [proc]


def terminate_processes(procs: Iterable[psutil.Process], grace: float,
                        step: str = "terminate") -> List[StepOutcome]:
    """
    Graceful terminate, wait up to grace seconds, then kill survivors.

    Args:
        procs: Processes to stop (trees are expanded by the caller)
        grace: Seconds between terminate and kill
        step: Step name recorded in the outcomes

    Returns:
        One StepOutcome per process
    """
    outcomes: Dict[int, StepOutcome] = {}
    signalled: List[psutil.Process] = []

    for proc in procs:
        if proc.pid in outcomes or proc.pid == os.getpid():
            continue
        try:
            proc.terminate()
            signalled.append(proc)
        except psutil.NoSuchProcess:
            outcomes[proc.pid] = StepOutcome(step, str(proc.pid), True, "already exited")
        except psutil.AccessDenied as e:
            outcomes[proc.pid] = StepOutcome(step, str(proc.pid), False, f"access denied: {e}")

    if not signalled:
        return list(outcomes.values())

    gone, alive = psutil.wait_procs(signalled, timeout=grace)
    for proc in gone:
        outcomes[proc.pid] = StepOutcome(step, str(proc.pid), True, "terminated")

    for proc in alive:
        # A zombie waiting on a parent other than us has already exited
        if not is_alive(proc.pid):
            outcomes[proc.pid] = StepOutcome(step, str(proc.pid), True, "terminated")
            continue
        try:
            proc.kill()
            proc.wait(timeout=grace or 1)
            outcomes[proc.pid] = StepOutcome(step, str(proc.pid), True, "killed")
        except psutil.NoSuchProcess:
            outcomes[proc.pid] = StepOutcome(step, str(proc.pid), True, "terminated")
        except psutil.TimeoutExpired as e:
            if not is_alive(proc.pid):
                outcomes[proc.pid] = StepOutcome(step, str(proc.pid), True, "killed")
            else:
                logger.warning(f"⚠️ Could not kill PID {proc.pid}: {e}")
                outcomes[proc.pid] = StepOutcome(step, str(proc.pid), False, f"unkillable: {e}")
        except psutil.AccessDenied as e:
            logger.warning(f"⚠️ Could not kill PID {proc.pid}: {e}")
            outcomes[proc.pid] = StepOutcome(step, str(proc.pid), False, f"access denied: {e}")

    return list(outcomes.values())


def terminate_pids(pids: Iterable[int], grace: float,
                   step: str = "terminate") -> List[StepOutcome]:
    """
    Terminate each pid together with its descendants.

    Args:
        pids: Process identifiers
        grace: Seconds between terminate and kill
        step: Step name recorded in the outcomes

    Returns:
        StepOutcomes, one per process touched
    """
    outcomes: List[StepOutcome] = []
    procs: List[psutil.Process] = []

    for pid in pids:
        try:
            proc = psutil.Process(pid)
        except psutil.NoSuchProcess:
            outcomes.append(StepOutcome(step, str(pid), True, "already exited"))
            continue
        procs.extend(_process_tree(proc))

    outcomes.extend(terminate_processes(procs, grace, step))
    return outcomes


SCRIPT_INTERPRETERS = ("sh", "bash", "dash", "zsh", "node", "python")


def _is_interpreter(executable: str) -> bool:
    name = Path(executable).name
    return any(name == interp or (interp == "python" and name.startswith(interp))
               for interp in SCRIPT_INTERPRETERS)


def _candidate_names(name: str, cmdline: List[str]) -> set:
    """Process name, executable basename, and the script basename under an interpreter"""
    candidates = {name}
    if cmdline:
        candidates.add(Path(cmdline[0]).name)
        if len(cmdline) > 1 and _is_interpreter(cmdline[0]):
            candidates.add(Path(cmdline[1]).name)
    return candidates


def find_processes_by_name(names: Iterable[str], exclude: Iterable[int] = ()) -> List[psutil.Process]:
    """
    Find processes whose name or executable basename matches one of names.

    Arguments are only considered when the executable is a script interpreter
    (`sh oems`, `python uvicorn`), never for other programs (`less oems`).

    Args:
        names: Process names (e.g. "oems", "uvicorn")
        exclude: PIDs never to match

    Returns:
        Matching processes
    """
    wanted = {name for name in names if name}
    if not wanted:
        return []

    skip = set(exclude) | {os.getpid()}
    matches = []
    for proc in psutil.process_iter(["pid", "name", "cmdline"]):
        try:
            if proc.info["pid"] in skip:
                continue
            candidates = _candidate_names(proc.info.get("name") or "",
                                          proc.info.get("cmdline") or [])
            if candidates & wanted:
                matches.append(proc)
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
    return matches


class CommandRunner:
    """Runs the opaque external steps gq delegates to"""

    def run(self, command: Command, cwd: Optional[Path] = None,
            env: Optional[Dict[str, str]] = None) -> int:
        """
        Run a command to completion, inheriting the terminal.

        Args:
            command: Command string or argv
            cwd: Working directory
            env: Extra environment variables

        Returns:
            Process return code (127 if the executable is missing)
        """
        argv = split_command(command)
        merged_env = os.environ.copy()
        if env:
            merged_env.update(env)

        logger.debug(f"Running: {' '.join(argv)} (cwd={cwd})")
        try:
            result = subprocess.run(argv, cwd=str(cwd) if cwd else None, env=merged_env)
        except FileNotFoundError:
            logger.error(f"❌ Command not found: {argv[0]}")
            return 127
        except PermissionError:
            logger.error(f"❌ Command not executable: {argv[0]}")
            return 126
        return result.returncode

    def check(self, command: Command, cwd: Optional[Path] = None,
              env: Optional[Dict[str, str]] = None, step: str = "") -> None:
        """
        Run a command and raise DependencyFailure if it fails.

        Args:
            command: Command string or argv
            cwd: Working directory
            env: Extra environment variables
            step: Human-readable name of the step for the error message
        """
        returncode = self.run(command, cwd=cwd, env=env)
        if returncode != 0:
            label = step or " ".join(split_command(command))
            raise DependencyFailure(f"{label} failed with exit code {returncode}")
