"""
FastAPI launcher

Prepare builds the gq packages when asked, optionally wipes the database
volume, and brings the database container group up. Launch runs the API
command from the API's virtual environment.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List

from gq.intent import Intent
from gq.launchers.base import ServiceLauncher
from gq.shared.processes import split_command


logger = logging.getLogger(__name__)


def compose_command(compose_file: Path, *args: str) -> List[str]:
    return ["docker", "compose", "-f", str(compose_file), *args]


class ApiLauncher(ServiceLauncher):
    """Web API process, tagged API"""

    name = "fastapi"
    tag = "API"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.api_config = self.config.get_api_config()

    def working_dir(self) -> Path:
        return self.api_config["dir"]

    def venv_bin(self) -> Path:
        return self.api_config["venv"] / ("Scripts" if os.name == "nt" else "bin")

    def log_enabled(self, intent: Intent) -> bool:
        return intent.logs.api

    def missing_hint(self) -> str:
        return "run --init (-i) to create the virtual environment"

    def prepare(self, intent: Intent) -> None:
        self.require_dir(self.working_dir(), "directory")
        self.require_dir(self.api_config["venv"], "virtual environment")

        if intent.build_packages:
            logger.info("📦 Building gq packages...")
            self.runner.check(
                self.api_config["build_packages_cmd"],
                cwd=self.config.workspace,
                step="package build",
            )

        db_compose = self.api_config["db_compose_file"]
        if intent.reset:
            logger.info("🧹 Resetting database volume...")
            self.runner.check(
                compose_command(db_compose, "down", "-v"),
                cwd=self.config.workspace,
                step="database reset",
            )

        logger.info("🐳 Bringing up database container...")
        self.runner.check(
            compose_command(db_compose, "up", "-d"),
            cwd=self.config.workspace,
            step="database container bring-up",
        )

    def environment(self, intent: Intent) -> Dict[str, str]:
        path = os.pathsep.join(filter(None, [str(self.venv_bin()), os.environ.get("PATH")]))
        return {"VIRTUAL_ENV": str(self.api_config["venv"]), "PATH": path}

    def build_command(self, intent: Intent) -> List[str]:
        argv = split_command(self.api_config["command"])
        argv[0] = self.resolve_executable(argv[0], search_path=self.environment(intent)["PATH"])
        return argv
