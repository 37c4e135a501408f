"""
Configuration Management for gq

Single Source of Truth (SSOT) for all configuration.
Load precedence: environment variables → <workspace>/gq.env → defaults.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import dotenv_values

from gq.shared.paths import get_env_file, get_workspace_root, resolve_under


VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigManager:
    """Centralized configuration management with validation"""

    def __init__(self, workspace: Optional[Path] = None, env_file: Optional[Path] = None):
        self.workspace = (workspace or get_workspace_root()).resolve()
        self.env_file = env_file or get_env_file(self.workspace)
        self._config_cache: Optional[Dict[str, Any]] = None
        self._validation_errors: list[str] = []

    def _load_defaults(self) -> Dict[str, Any]:
        """Load default configuration values"""
        return {
            # Engine (OEMS)
            "GQ_ENGINE_DIR": "oems",
            "GQ_ENGINE_BIN": "build/oems",
            "GQ_ENGINE_COMPILE_CMD": "./build.sh",
            "GQ_REMOTE_COMPILE_RUN_CMD": "./build.sh --remote --run",
            "GQ_REMOTE_ENV_FILE": "remote.env",

            # API (FastAPI)
            "GQ_API_DIR": "fastapi",
            "GQ_API_VENV": ".venv",
            "GQ_API_COMMAND": "uvicorn app.main:app --host 0.0.0.0 --port 8000",
            "GQ_BUILD_PACKAGES_CMD": "./scripts/build_packages.sh",

            # Containers
            "GQ_DB_COMPOSE_FILE": "docker-compose.db.yml",
            "GQ_COMPOSE_FILES": "docker-compose.db.yml",

            # Frontend
            "GQ_FRONTEND_DIR": "frontend",
            "GQ_FRONTEND_COMMAND": "npm run dev",
            "GQ_FRONTEND_INSTALL_CMD": "npm install",
            "GQ_FRONTEND_BUILD_CMD": "npm run build",

            # Lifecycle
            "GQ_READINESS_DELAY": 5.0,
            "GQ_STOP_GRACE": 2.0,
            "GQ_PID_FILE": ".gq_pids",
            "GQ_ORPHAN_PROCESS_NAMES": "oems,uvicorn,vite",

            # One-shot collaborators
            "GQ_INIT_CMD": "./scripts/init.sh",
            "GQ_SETUP_CMD": "./scripts/setup_gotrade.sh",
            "GQ_GIT_BASE_URL": "git@github.com:gotrade",
            "GQ_CLONE_REPOS": "oems,fastapi,frontend",
            "GQ_SSH_KEY_PATH": "~/.ssh/id_ed25519",

            # Logging
            "GQ_LOG_LEVEL": "INFO",
            "GQ_LOG_TO_FILE": False,
        }

    def _load_env_file(self) -> Dict[str, Any]:
        """Load configuration from the workspace dotenv file"""
        if not self.env_file.exists():
            return {}

        try:
            values = dotenv_values(self.env_file)
        except (OSError, UnicodeDecodeError) as e:
            logging.getLogger(__name__).warning(f"Failed to load {self.env_file}: {e}")
            return {}
        return {key: value for key, value in values.items() if value is not None}

    def _coerce(self, key: str, raw: Any, defaults: Dict[str, Any]) -> Any:
        """Type conversion based on default value type"""
        default_value = defaults.get(key)
        if not isinstance(raw, str):
            return raw
        if isinstance(default_value, bool):
            return raw.strip().lower() in ('true', '1', 'yes', 'on')
        if isinstance(default_value, int):
            try:
                return int(raw)
            except ValueError:
                return raw
        if isinstance(default_value, float):
            try:
                return float(raw)
            except ValueError:
                return raw
        return raw

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration with proper precedence"""
        if self._config_cache is not None:
            return self._config_cache

        defaults = self._load_defaults()
        config = dict(defaults)

        for key, value in self._load_env_file().items():
            config[key] = self._coerce(key, value, defaults)

        for key in defaults:
            env_value = os.environ.get(key)
            if env_value is not None:
                config[key] = self._coerce(key, env_value, defaults)

        self._config_cache = config
        return config

    def reload(self) -> None:
        """Drop the cache so the next read sees file and environment changes"""
        self._config_cache = None

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value"""
        config = self._load_config()
        return config.get(key, default)

    def get_string(self, key: str, default: str = "") -> str:
        """Get string configuration value"""
        return str(self.get(key, default))

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get boolean configuration value"""
        value = self.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ('true', '1', 'yes', 'on')
        return bool(value)

    def get_float(self, key: str, default: float = 0.0) -> float:
        """Get float configuration value"""
        value = self.get(key, default)
        try:
            return float(value)
        except (ValueError, TypeError):
            return default

    def get_list(self, key: str, default: Optional[list] = None) -> list:
        """Get list configuration value"""
        if default is None:
            default = []
        value = self.get(key, default)
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            # Split comma-separated string
            return [item.strip() for item in value.split(',') if item.strip()]
        return default

    def path(self, key: str, base: Optional[Path] = None) -> Path:
        """Resolve a path setting against base (the workspace by default)"""
        return resolve_under(base or self.workspace, self.get_string(key))

    def validate_config(self) -> bool:
        """Validate configuration and return True if valid"""
        self._validation_errors = []
        config = self._load_config()

        for key in ("GQ_READINESS_DELAY", "GQ_STOP_GRACE"):
            value = config.get(key)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                self._validation_errors.append(f"{key} must be a number, got {value!r}")
            elif value < 0:
                self._validation_errors.append(f"{key} must not be negative, got {value}")

        for key in ("GQ_ENGINE_BIN", "GQ_API_COMMAND", "GQ_FRONTEND_COMMAND", "GQ_PID_FILE"):
            if not str(config.get(key, "")).strip():
                self._validation_errors.append(f"{key} must not be empty")

        level = str(config.get("GQ_LOG_LEVEL", "")).upper()
        if level not in VALID_LOG_LEVELS:
            self._validation_errors.append(
                f"GQ_LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}, got {level!r}"
            )

        return len(self._validation_errors) == 0

    def get_validation_errors(self) -> list[str]:
        """Get list of validation errors"""
        return self._validation_errors.copy()

    def get_engine_config(self) -> Dict[str, Any]:
        """Get engine-specific configuration"""
        engine_dir = self.path("GQ_ENGINE_DIR")
        return {
            "dir": engine_dir,
            "bin": resolve_under(engine_dir, self.get_string("GQ_ENGINE_BIN")),
            "compile_cmd": self.get_string("GQ_ENGINE_COMPILE_CMD"),
            "remote_compile_run_cmd": self.get_string("GQ_REMOTE_COMPILE_RUN_CMD"),
            "remote_env_file": resolve_under(engine_dir, self.get_string("GQ_REMOTE_ENV_FILE")),
        }

    def get_api_config(self) -> Dict[str, Any]:
        """Get API-specific configuration"""
        api_dir = self.path("GQ_API_DIR")
        return {
            "dir": api_dir,
            "venv": resolve_under(api_dir, self.get_string("GQ_API_VENV")),
            "command": self.get_string("GQ_API_COMMAND"),
            "build_packages_cmd": self.get_string("GQ_BUILD_PACKAGES_CMD"),
            "db_compose_file": self.path("GQ_DB_COMPOSE_FILE"),
        }

    def get_frontend_config(self) -> Dict[str, Any]:
        """Get frontend-specific configuration"""
        return {
            "dir": self.path("GQ_FRONTEND_DIR"),
            "command": self.get_string("GQ_FRONTEND_COMMAND"),
            "install_cmd": self.get_string("GQ_FRONTEND_INSTALL_CMD"),
            "build_cmd": self.get_string("GQ_FRONTEND_BUILD_CMD"),
        }

    def get_lifecycle_config(self) -> Dict[str, Any]:
        """Get orchestrator timing, registry and cleanup configuration"""
        return {
            "readiness_delay": self.get_float("GQ_READINESS_DELAY", 5.0),
            "stop_grace": self.get_float("GQ_STOP_GRACE", 2.0),
            "pid_file": self.get_string("GQ_PID_FILE", ".gq_pids"),
            "orphan_names": self.get_list("GQ_ORPHAN_PROCESS_NAMES"),
            "compose_files": [
                resolve_under(self.workspace, item)
                for item in self.get_list("GQ_COMPOSE_FILES")
            ],
        }

    def get_actions_config(self) -> Dict[str, Any]:
        """Get configuration for the one-shot collaborators"""
        return {
            "init_cmd": self.get_string("GQ_INIT_CMD"),
            "setup_cmd": self.get_string("GQ_SETUP_CMD"),
            "git_base_url": self.get_string("GQ_GIT_BASE_URL").rstrip("/"),
            "clone_repos": self.get_list("GQ_CLONE_REPOS"),
            "ssh_key_path": Path(self.get_string("GQ_SSH_KEY_PATH")).expanduser(),
        }

    def get_config_summary(self) -> Dict[str, Any]:
        """Get configuration summary for startup banners"""
        return {
            "workspace": str(self.workspace),
            "env_file": str(self.env_file) if self.env_file.exists() else None,
            "readiness_delay": self.get_float("GQ_READINESS_DELAY", 5.0),
            "stop_grace": self.get_float("GQ_STOP_GRACE", 2.0),
            "validation_errors": self._validation_errors.copy(),
        }

