"""
Tests for ConfigManager precedence, coercion and validation
"""

from gq.shared.config import ConfigManager


def test_defaults(config, workspace):
    lifecycle = config.get_lifecycle_config()

    assert config.get_string("GQ_PID_FILE") == ".gq_pids"
    assert lifecycle["compose_files"] == [config.workspace / "docker-compose.db.yml"]
    assert config.get_engine_config()["bin"] == config.workspace / "oems" / "build" / "oems"
    assert config.get_api_config()["venv"] == config.workspace / "fastapi" / ".venv"


def test_environment_overrides_env_file(workspace, monkeypatch):
    (workspace / "gq.env").write_text(
        "GQ_STOP_GRACE=7\nGQ_API_DIR=backend\nGQ_LOG_TO_FILE=yes\n", encoding="utf-8"
    )
    monkeypatch.setenv("GQ_STOP_GRACE", "9.5")

    config = ConfigManager(workspace)

    assert config.get("GQ_STOP_GRACE") == 9.5, "Environment wins over gq.env"
    assert config.get_api_config()["dir"] == config.workspace / "backend", "gq.env wins over defaults"
    assert config.get_bool("GQ_LOG_TO_FILE") is True


def test_readiness_delay_is_float(config):
    assert config.get_lifecycle_config()["readiness_delay"] == 0.3
    assert isinstance(config.get("GQ_READINESS_DELAY"), float)


def test_lists_are_comma_separated(config, monkeypatch):
    monkeypatch.setenv("GQ_ORPHAN_PROCESS_NAMES", "oems, uvicorn,,vite")
    config.reload()
    assert config.get_lifecycle_config()["orphan_names"] == ["oems", "uvicorn", "vite"]


def test_validation_rejects_bad_values(config, monkeypatch):
    monkeypatch.setenv("GQ_READINESS_DELAY", "soon")
    monkeypatch.setenv("GQ_STOP_GRACE", "-1")
    monkeypatch.setenv("GQ_LOG_LEVEL", "chatty")
    monkeypatch.setenv("GQ_API_COMMAND", " ")
    config.reload()

    assert not config.validate_config()
    errors = config.get_validation_errors()
    assert len(errors) == 4, errors
    assert any("GQ_READINESS_DELAY" in error for error in errors)
    assert any("GQ_LOG_LEVEL" in error for error in errors)


def test_validation_passes_for_defaults(config):
    assert config.validate_config(), config.get_validation_errors()
    assert config.get_config_summary()["validation_errors"] == []


def test_absolute_paths_are_kept(config, monkeypatch, tmp_path_factory):
    elsewhere = tmp_path_factory.mktemp("elsewhere")
    monkeypatch.setenv("GQ_FRONTEND_DIR", str(elsewhere))
    config.reload()
    assert config.get_frontend_config()["dir"] == elsewhere
