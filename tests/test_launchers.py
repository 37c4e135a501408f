"""
Tests for the service launchers
"""

import io
import time

import pytest

from gq.errors import DependencyFailure, EnvironmentMissing
from gq.intent import Intent, LogToggles, Operation, Topology
from gq.launchers import (
    ApiLauncher,
    EngineLauncher,
    FrontendLauncher,
    RemoteEngineLauncher,
    create_launchers,
)
from gq.shared.multiplexer import OutputMultiplexer

from conftest import RecordingRunner, make_script


def start_intent(**kwargs) -> Intent:
    return Intent(operation=Operation.START, **kwargs)


def test_create_launchers_roles(config, runner):
    launchers = create_launchers(config, runner)
    assert set(launchers) == {"engine", "remote", "api", "frontend"}
    assert [launchers[role].tag for role in ("engine", "remote", "api", "frontend")] == \
        ["ENGINE1", "ENGINE2", "API", "FRONTEND"]


def test_engine_compile_runs_in_engine_dir(config, runner, workspace):
    EngineLauncher(config, runner).prepare(start_intent(compile=True))

    assert runner.commands == ["./build.sh"]
    assert runner.calls[0][1] == config.workspace / "oems"


def test_engine_without_compile_has_no_side_effects(config, runner):
    EngineLauncher(config, runner).prepare(start_intent())
    assert runner.calls == []


def test_engine_compile_failure_is_dependency_failure(config):
    runner = RecordingRunner({"build.sh": 2})
    with pytest.raises(DependencyFailure, match="OEMS compile failed with exit code 2"):
        EngineLauncher(config, runner).prepare(start_intent(compile=True))


def test_engine_missing_binary_hints_compile(config, runner, workspace):
    (workspace / "oems" / "build" / "oems").unlink()

    with pytest.raises(EnvironmentMissing, match="--compile-oems"):
        EngineLauncher(config, runner).launch(start_intent())


def test_engine_missing_directory(config, runner, monkeypatch):
    monkeypatch.setenv("GQ_ENGINE_DIR", "nowhere")
    config.reload()

    with pytest.raises(EnvironmentMissing, match="directory not found"):
        EngineLauncher(config, runner).prepare(start_intent())


def test_foreground_launch_tags_output_when_toggled(config, runner, reaper):
    sink = io.StringIO()
    mux = OutputMultiplexer(sink)
    launcher = EngineLauncher(config, runner, mux)

    handle = launcher.launch(start_intent(logs=LogToggles(engine1=True)))
    reaper.append(handle.pid)
    try:
        assert handle.name == "oems"
        assert handle.tag == "ENGINE1"
        assert handle.is_alive()
        for _ in range(100):
            if sink.getvalue():
                break
            time.sleep(0.05)
    finally:
        handle.process.terminate()
        handle.process.wait(timeout=10)
    mux.join(timeout=10)

    lines = sink.getvalue().splitlines()
    assert len(lines) == 1, lines
    assert "[ENGINE1]" in lines[0]
    assert lines[0].endswith("oems ready")


def test_output_discarded_when_toggle_off(config, runner, reaper):
    sink = io.StringIO()
    # The remote toggle does not affect the local engine
    handle = EngineLauncher(config, runner, OutputMultiplexer(sink)).launch(
        start_intent(logs=LogToggles(engine2=True, api=True, frontend=True))
    )
    reaper.append(handle.pid)

    assert handle.process.stdout is None, "Untoggled output is not captured"
    handle.process.terminate()
    handle.process.wait(timeout=10)
    assert sink.getvalue() == ""


def test_api_prepare_order_with_all_toggles(config, runner, workspace):
    ApiLauncher(config, runner).prepare(start_intent(build_packages=True, reset=True))

    compose = str(workspace.resolve() / "docker-compose.db.yml")
    assert runner.commands == [
        "./scripts/build_packages.sh",
        f"docker compose -f {compose} down -v",
        f"docker compose -f {compose} up -d",
    ]


def test_api_prepare_always_brings_database_up(config, runner):
    ApiLauncher(config, runner).prepare(start_intent())

    assert len(runner.commands) == 1
    assert runner.commands[0].endswith("up -d")


def test_api_missing_venv_fails_before_side_effects(config, runner, workspace):
    (workspace / "fastapi" / ".venv" / "bin" / "uvicorn").unlink()
    (workspace / "fastapi" / ".venv" / "bin").rmdir()
    (workspace / "fastapi" / ".venv").rmdir()

    with pytest.raises(EnvironmentMissing, match="virtual environment"):
        ApiLauncher(config, runner).prepare(start_intent(build_packages=True, reset=True))
    assert runner.calls == [], "Nothing runs when the environment is incomplete"


def test_api_database_failure_is_dependency_failure(config):
    runner = RecordingRunner({"up -d": 1})
    with pytest.raises(DependencyFailure, match="database container bring-up"):
        ApiLauncher(config, runner).prepare(start_intent())


def test_api_command_resolves_from_venv(config, runner, workspace):
    launcher = ApiLauncher(config, runner)
    intent = start_intent()

    argv = launcher.build_command(intent)
    env = launcher.environment(intent)

    assert argv[0] == str(config.workspace / "fastapi" / ".venv" / "bin" / "uvicorn")
    assert argv[1:] == ["app.main:app", "--host", "0.0.0.0", "--port", "8000"]
    assert env["VIRTUAL_ENV"] == str(config.workspace / "fastapi" / ".venv")
    assert env["PATH"].startswith(str(config.workspace / "fastapi" / ".venv" / "bin"))


def test_remote_requires_env_file(config, runner):
    with pytest.raises(EnvironmentMissing, match="--setup-gotrade"):
        RemoteEngineLauncher(config, runner).prepare(start_intent(dev_mode=Topology.REMOTE))


def test_remote_environment_from_env_file(config, runner, workspace):
    (workspace / "oems" / "remote.env").write_text(
        "GOTRADE_DB_HOST=db.remote\nEMPTY\n", encoding="utf-8"
    )
    launcher = RemoteEngineLauncher(config, runner)
    intent = start_intent(dev_mode=Topology.REMOTE)

    launcher.prepare(intent)
    env = launcher.environment(intent)

    assert env == {"GOTRADE_DB_HOST": "db.remote"}
    assert launcher.log_enabled(start_intent(logs=LogToggles(engine2=True)))
    assert not launcher.log_enabled(start_intent(logs=LogToggles(engine1=True)))


def test_remote_compile_builds_and_runs_in_one_step(config, runner, workspace):
    script = make_script(workspace / "oems" / "build.sh")
    launcher = RemoteEngineLauncher(config, runner)

    argv = launcher.build_command(start_intent(dev_mode=Topology.REMOTE, compile=True))
    assert argv == [str(config.workspace / "oems" / "build.sh"), "--remote", "--run"]
    assert script.exists()

    plain = launcher.build_command(start_intent(dev_mode=Topology.REMOTE))
    assert plain == [str(config.workspace / "oems" / "build" / "oems")]


def test_frontend_build_toggle(config, runner):
    launcher = FrontendLauncher(config, runner)

    launcher.prepare(start_intent())
    assert runner.calls == []

    launcher.prepare(start_intent(build_frontend=True))
    assert runner.commands == ["npm install", "npm run build"]


def test_frontend_missing_executable(config, runner, monkeypatch):
    monkeypatch.setenv("GQ_FRONTEND_COMMAND", "gq-no-such-dev-server --port 5173")
    config.reload()

    with pytest.raises(EnvironmentMissing, match="gq-no-such-dev-server"):
        FrontendLauncher(config, runner).build_command(start_intent())
