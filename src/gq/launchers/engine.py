"""
OEMS engine launcher

Compiles on request, then runs the compiled engine binary.
"""

import logging
from pathlib import Path
from typing import List

from gq.intent import Intent
from gq.launchers.base import ServiceLauncher


logger = logging.getLogger(__name__)


class EngineLauncher(ServiceLauncher):
    """Local engine process, tagged ENGINE1"""

    name = "oems"
    tag = "ENGINE1"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.engine_config = self.config.get_engine_config()

    def working_dir(self) -> Path:
        return self.engine_config["dir"]

    def log_enabled(self, intent: Intent) -> bool:
        return intent.logs.engine1

    def missing_hint(self) -> str:
        return "run with --compile-oems (-c) first"

    def prepare(self, intent: Intent) -> None:
        self.require_dir(self.working_dir(), "directory")
        if intent.compile:
            logger.info("🔨 Compiling OEMS...")
            self.runner.check(
                self.engine_config["compile_cmd"],
                cwd=self.working_dir(),
                step="OEMS compile",
            )
            logger.info("✅ OEMS compiled")

    def build_command(self, intent: Intent) -> List[str]:
        binary = self.engine_config["bin"]
        self.require_executable(binary)
        return [str(binary)]
