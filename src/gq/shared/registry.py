"""
PID registry for gq

Durable record of the service processes a start sequence left running.
One process identifier per line, in launch order. The file existing means
"services were started and not yet cleanly stopped".

No locking: at most one orchestrator is assumed to run per host.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Iterable, List, Optional

from gq.errors import GqError

from .paths import get_pid_registry_path


logger = logging.getLogger(__name__)


class RegistryError(GqError):
    """PID registry could not be written or removed"""
    exit_code = 1


class PidRegistry:
    """Ordered on-disk list of process identifiers"""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else get_pid_registry_path()

    def exists(self) -> bool:
        return self.path.exists()

    def write(self, pids: Iterable[int]) -> None:
        """
        Replace the registry with pids, preserving order.

        The new content goes to a sibling temp file that is renamed over the
        registry, so readers see either the old list or the new one.

        Raises:
            RegistryError: the directory or file could not be written
        """
        pids = [int(pid) for pid in pids]
        content = "".join(f"{pid}\n" for pid in pids)
        temp_file = self.path.parent / f".tmp_{os.getpid()}_{uuid.uuid4().hex[:8]}"

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            temp_file.replace(self.path)
        except OSError as e:
            try:
                temp_file.unlink(missing_ok=True)
            except OSError:
                pass
            raise RegistryError(f"Failed to write PID registry {self.path}: {e}") from e
        logger.debug(f"PID registry written: {self.path} {pids}")

    def read(self) -> List[int]:
        """Return recorded pids in launch order; empty if the registry is absent"""
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"⚠️ PID registry {self.path} exists but is unreadable, "
                           f"treating it as empty: {e}")
            return []

        pids = []
        for line_num, line in enumerate(content.splitlines(), 1):
            line = line.strip()
            if not line:
                continue
            try:
                pids.append(int(line))
            except ValueError:
                logger.warning(f"Ignoring invalid PID registry line {line_num}: {line!r}")
        return pids

    def clear(self) -> None:
        """Remove the registry. Safe to call when it does not exist."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise RegistryError(f"Failed to remove PID registry {self.path}: {e}") from e


def create_registry(file_name: str = ".gq_pids") -> PidRegistry:
    """
    Create a registry in the invocation directory.

    Args:
        file_name: Registry file name (or absolute path)

    Returns:
        PidRegistry instance
    """
    return PidRegistry(get_pid_registry_path(file_name))
