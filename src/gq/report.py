"""
Outcome records for best-effort operations.

Teardown never raises; each step records what happened instead, and the
stop path hands the aggregate back to the caller.
"""

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class StepOutcome:
    """Result of one teardown step (terminate a pid, compose down, ...)"""
    step: str
    target: str
    ok: bool
    detail: str = ""

    def __str__(self) -> str:
        status = "ok" if self.ok else "FAILED"
        suffix = f" ({self.detail})" if self.detail else ""
        return f"{self.step} {self.target}: {status}{suffix}"


@dataclass
class StopReport:
    """Aggregated outcome of a stop sequence"""
    registered_pids: List[int] = field(default_factory=list)
    outcomes: List[StepOutcome] = field(default_factory=list)
    registry_cleared: bool = False

    @property
    def ok(self) -> bool:
        # Stop is always a success; failures are reported, not propagated
        return True

    @property
    def failures(self) -> List[StepOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def extend(self, outcomes: List[StepOutcome]) -> None:
        self.outcomes.extend(outcomes)

    def summary(self) -> str:
        return (
            f"{len(self.registered_pids)} registered, "
            f"{len(self.outcomes)} steps, {len(self.failures)} failed"
        )
