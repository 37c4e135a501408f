"""
Signal handling for gq

SIGINT/SIGTERM run the teardown path exactly once: terminate the services
this invocation owns, run the full stop sequence, restore default signal
handling and exit 0. Signals arriving during teardown are ignored.
"""

import logging
import signal
import sys
from typing import Callable

from gq.orchestrator import Orchestrator


logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownHandler:
    """Routes termination signals to the orchestrator's teardown"""

    def __init__(self, orchestrator: Orchestrator, exit_func: Callable[[int], None] = sys.exit):
        self.orchestrator = orchestrator
        self._exit = exit_func
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def install(self) -> None:
        for signum in HANDLED_SIGNALS:
            signal.signal(signum, self._signal_handler)

    def restore(self) -> None:
        for signum in HANDLED_SIGNALS:
            signal.signal(signum, signal.SIG_DFL)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        if self._in_progress:
            logger.debug(f"Signal {signum} during cleanup ignored")
            return
        self._in_progress = True
        logger.info(f"Received signal {signum}, cleaning up...")
        self.shutdown()

    def shutdown(self) -> None:
        """Tear down owned services, run stop, restore signals and exit"""
        try:
            for outcome in self.orchestrator.terminate_owned():
                if not outcome.ok:
                    logger.warning(f"⚠️ {outcome}")
            self.orchestrator.stop()
        finally:
            self.restore()
        self._exit(0)
