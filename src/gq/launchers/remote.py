"""
Remote-dev engine launcher

Runs the engine against a remote backing environment. The remote
environment is a dotenv file merged into the engine's environment.
With --compile-oems the build script compiles and runs in one step.
"""

import logging
from typing import Dict, List

from dotenv import dotenv_values

from gq.errors import EnvironmentMissing
from gq.intent import Intent
from gq.launchers.engine import EngineLauncher
from gq.shared.processes import split_command


logger = logging.getLogger(__name__)


class RemoteEngineLauncher(EngineLauncher):
    """Engine process against the remote environment, tagged ENGINE2"""

    name = "oems-remote"
    tag = "ENGINE2"

    def log_enabled(self, intent: Intent) -> bool:
        return intent.logs.engine2

    def prepare(self, intent: Intent) -> None:
        self.require_dir(self.working_dir(), "directory")
        env_file = self.engine_config["remote_env_file"]
        if not env_file.is_file():
            raise EnvironmentMissing(
                f"remote environment file not found: {env_file}; run --setup-gotrade (-sg) first"
            )

    def environment(self, intent: Intent) -> Dict[str, str]:
        values = dotenv_values(self.engine_config["remote_env_file"])
        return {key: value for key, value in values.items() if value is not None}

    def build_command(self, intent: Intent) -> List[str]:
        if not intent.compile:
            return super().build_command(intent)

        argv = split_command(self.engine_config["remote_compile_run_cmd"])
        if not argv:
            raise EnvironmentMissing("GQ_REMOTE_COMPILE_RUN_CMD is empty")
        argv[0] = self.resolve_executable(argv[0])
        logger.info("🔨 Remote compile and run in one step")
        return argv
