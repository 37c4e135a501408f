"""
Frontend launcher
"""

import logging
from pathlib import Path
from typing import List

from gq.intent import Intent
from gq.launchers.base import ServiceLauncher
from gq.shared.processes import split_command


logger = logging.getLogger(__name__)


class FrontendLauncher(ServiceLauncher):
    """Frontend dev server, tagged FRONTEND"""

    name = "frontend"
    tag = "FRONTEND"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.frontend_config = self.config.get_frontend_config()

    def working_dir(self) -> Path:
        return self.frontend_config["dir"]

    def log_enabled(self, intent: Intent) -> bool:
        return intent.logs.frontend

    def missing_hint(self) -> str:
        return "run with --build-frontend (-bf) or --init (-i) first"

    def prepare(self, intent: Intent) -> None:
        self.require_dir(self.working_dir(), "directory")
        if intent.build_frontend:
            logger.info("🔨 Building frontend...")
            self.runner.check(self.frontend_config["install_cmd"], cwd=self.working_dir(),
                              step="frontend install")
            self.runner.check(self.frontend_config["build_cmd"], cwd=self.working_dir(),
                              step="frontend build")

    def build_command(self, intent: Intent) -> List[str]:
        argv = split_command(self.frontend_config["command"])
        argv[0] = self.resolve_executable(argv[0])
        return argv
