"""
Logging utilities for gq

Centralized logging configuration for the orchestrator's own messages.
Service output does not go through here; see gq.shared.multiplexer.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from .paths import get_logs_dir


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class LoggingManager:
    """Logging manager for the gq logger tree"""

    def __init__(self, logs_dir: Optional[Path] = None):
        self.logs_dir = logs_dir or get_logs_dir()
        self._configured_loggers = set()

    def setup_logging(self, name: str = "gq", level: str = "INFO",
                      log_to_file: bool = False, log_to_console: bool = True) -> logging.Logger:
        """
        Setup logging for a logger tree.

        Args:
            name: Logger name; child loggers (gq.orchestrator, ...) inherit handlers
            level: Logging level
            log_to_file: Whether to log to <logs_dir>/<name>.log
            log_to_console: Whether to log to console

        Returns:
            Configured logger
        """
        logger = logging.getLogger(name)

        # Level can change between invocations, handlers are only built once
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        if name in self._configured_loggers:
            return logger

        logger.handlers.clear()

        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        if log_to_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        if log_to_file:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            log_file = self.logs_dir / f"{name}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        # Prevent propagation to root logger
        logger.propagate = False

        self._configured_loggers.add(name)
        return logger


def setup_cli_logging(config) -> logging.Logger:
    """
    Configure the gq logger from a ConfigManager.

    Args:
        config: ConfigManager instance

    Returns:
        Configured logger
    """
    manager = LoggingManager(get_logs_dir(config.workspace))
    return manager.setup_logging(
        name="gq",
        level=config.get_string("GQ_LOG_LEVEL", "INFO"),
        log_to_file=config.get_bool("GQ_LOG_TO_FILE"),
        log_to_console=True,
    )
