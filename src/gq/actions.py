"""
One-shot collaborators for gq

Dependency bootstrap, SSH key generation, environment setup and repository
cloning. These are pass-through steps: gq runs them and reports their exit
status without managing any lifecycle.
"""

import logging
import socket
from typing import Callable, Dict, Optional

from gq.intent import Intent, Operation
from gq.shared.config import ConfigManager
from gq.shared.processes import CommandRunner


logger = logging.getLogger(__name__)


def run_init(intent: Intent, config: ConfigManager, runner: CommandRunner) -> int:
    """Install dependencies for every checkout"""
    command = config.get_actions_config()["init_cmd"]
    logger.info(f"📦 Bootstrapping dependencies: {command}")
    return runner.run(command, cwd=config.workspace)


def run_setup(intent: Intent, config: ConfigManager, runner: CommandRunner) -> int:
    """Prepare the local environment (package managers, env files)"""
    command = config.get_actions_config()["setup_cmd"]
    logger.info(f"🔧 Setting up environment: {command}")
    return runner.run(command, cwd=config.workspace)


def run_auth(intent: Intent, config: ConfigManager, runner: CommandRunner) -> int:
    """Generate an SSH key for repository access, unless one exists"""
    key_path = config.get_actions_config()["ssh_key_path"]
    public_key = key_path.with_name(key_path.name + ".pub")

    if key_path.exists():
        logger.info(f"SSH key already exists: {key_path}")
    else:
        key_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        returncode = runner.run([
            "ssh-keygen", "-t", "ed25519", "-f", str(key_path), "-N", "",
            "-C", f"gq@{socket.gethostname()}",
        ])
        if returncode != 0:
            logger.error(f"❌ ssh-keygen failed with exit code {returncode}")
            return returncode
        logger.info(f"✅ SSH key generated: {key_path}")

    if public_key.exists():
        print("Add this public key to your Git host:")
        print(public_key.read_text(encoding="utf-8").strip())
    return 0


def run_clone(intent: Intent, config: ConfigManager, runner: CommandRunner) -> int:
    """Clone the requested repositories (the default set when none given)"""
    actions = config.get_actions_config()
    repos = list(intent.repos) or actions["clone_repos"]
    failed = []

    for repo in repos:
        destination = config.workspace / repo
        if destination.exists():
            logger.info(f"{repo} already cloned at {destination}")
            continue
        url = f"{actions['git_base_url']}/{repo}.git"
        logger.info(f"Cloning {url}")
        if runner.run(["git", "clone", url, str(destination)], cwd=config.workspace) != 0:
            logger.error(f"❌ Failed to clone {repo}")
            failed.append(repo)

    if failed:
        logger.error(f"❌ Clone failed for: {', '.join(failed)}")
        return 1
    return 0


ACTIONS: Dict[Operation, Callable[[Intent, ConfigManager, CommandRunner], int]] = {
    Operation.INIT: run_init,
    Operation.AUTH: run_auth,
    Operation.SETUP: run_setup,
    Operation.CLONE: run_clone,
}


def run_action(intent: Intent, config: ConfigManager,
               runner: Optional[CommandRunner] = None) -> int:
    """
    Run the one-shot action for intent.operation.

    Returns:
        Exit code of the action
    """
    action = ACTIONS[intent.operation]
    return action(intent, config, runner or CommandRunner())
