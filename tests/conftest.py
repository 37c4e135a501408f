"""
Shared fixtures for the gq test suite

The workspace fixture lays out a fake platform checkout whose services are
small shell scripts, so real child processes are started and stopped
without any engine, uvicorn, npm or docker installed.
"""

import logging
import os
import stat
import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gq.shared.config import ConfigManager
from gq.shared.processes import CommandRunner, split_command, terminate_pids


LONG_RUNNING = "#!/bin/sh\necho \"$0 ready\"\nexec sleep 30\n"


def make_script(path: Path, body: str = LONG_RUNNING) -> Path:
    """Write an executable shell script"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class RecordingRunner(CommandRunner):
    """CommandRunner that records commands instead of running them"""

    def __init__(self, returncodes=None):
        self.calls = []
        self.returncodes = returncodes or {}

    def run(self, command, cwd=None, env=None):
        argv = split_command(command)
        self.calls.append((argv, cwd))
        joined = " ".join(argv)
        for needle, code in self.returncodes.items():
            if needle in joined:
                return code
        return 0

    @property
    def commands(self):
        return [" ".join(argv) for argv, _ in self.calls]


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Fake platform workspace; the invocation directory is the workspace"""
    make_script(tmp_path / "oems" / "build" / "oems")
    make_script(tmp_path / "fastapi" / ".venv" / "bin" / "uvicorn")
    (tmp_path / "fastapi" / "app").mkdir(parents=True)
    frontend_server = make_script(tmp_path / "frontend" / "dev-server")
    (tmp_path / "docker-compose.db.yml").write_text("services: {}\n", encoding="utf-8")

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GQ_WORKSPACE", str(tmp_path))
    monkeypatch.setenv("GQ_READINESS_DELAY", "0.3")
    monkeypatch.setenv("GQ_STOP_GRACE", "2")
    monkeypatch.setenv("GQ_ORPHAN_PROCESS_NAMES", "")
    monkeypatch.setenv("GQ_FRONTEND_COMMAND", str(frontend_server))
    monkeypatch.setenv("NO_COLOR", "1")
    for key in list(os.environ):
        if key.startswith("GQ_") and key not in (
            "GQ_WORKSPACE", "GQ_READINESS_DELAY", "GQ_STOP_GRACE",
            "GQ_ORPHAN_PROCESS_NAMES", "GQ_FRONTEND_COMMAND",
        ):
            monkeypatch.delenv(key)
    return tmp_path


@pytest.fixture
def config(workspace):
    return ConfigManager(workspace)


@pytest.fixture
def runner():
    return RecordingRunner()


@pytest.fixture
def reaper():
    """Collects pids to kill at teardown so failing tests leave nothing running"""
    pids = []
    yield pids
    terminate_pids(pids, grace=1)


@pytest.fixture(autouse=True)
def reset_gq_logger():
    """CLI tests configure the gq logger; hand the next test a clean one"""
    yield
    logger = logging.getLogger("gq")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
