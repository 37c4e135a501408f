"""
Path resolution utilities for gq

Centralized path resolution with environment variable support.
The workspace root holds the service checkouts and the optional gq.env file;
the PID registry lives in the directory gq is invoked from.
"""

import os
from pathlib import Path
from typing import Optional


def get_workspace_root() -> Path:
    """
    Resolve workspace root: GQ_WORKSPACE → current working directory
    
    Returns:
        Path: Resolved workspace root
    """
    workspace = os.environ.get("GQ_WORKSPACE")
    if workspace:
        return Path(workspace).expanduser().resolve()
    return Path.cwd().resolve()


def get_state_dir(workspace: Optional[Path] = None) -> Path:
    """
    Get the per-workspace state directory.
    
    Returns:
        Path: State directory path
    """
    return (workspace or get_workspace_root()) / ".gq"


def get_logs_dir(workspace: Optional[Path] = None) -> Path:
    """
    Get logs directory path.
    
    Returns:
        Path: Logs directory path
    """
    return get_state_dir(workspace) / "logs"


def get_env_file(workspace: Optional[Path] = None) -> Path:
    """Get the dotenv configuration file path."""
    return (workspace or get_workspace_root()) / "gq.env"


def get_pid_registry_path(file_name: str = ".gq_pids") -> Path:
    """
    Get PID registry path, relative to the invocation directory.
    
    Args:
        file_name: Registry file name or path
        
    Returns:
        Path: Registry file path
    """
    path = Path(file_name).expanduser()
    if path.is_absolute():
        return path
    return Path.cwd() / path


def resolve_under(base: Path, value: str) -> Path:
    """Resolve a configured path that may be absolute or relative to base."""
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return base / path
