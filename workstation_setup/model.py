from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

if TYPE_CHECKING:
    from .context import ProvisionContext
    from .errors import ProvisionError


EXIT_OK = 0
EXIT_FATAL = 1
EXIT_INVALID = 2
EXIT_CANCELLED = 130


Probe = Callable[["ProvisionContext"], bool]
Action = Callable[["ProvisionContext"], None]


class Outcome(str, enum.Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Step:
    """A named, idempotent unit of provisioning work.

    ``probe`` must be free of side effects and safe to call repeatedly.
    ``action`` must be harmless when the step is already satisfied.
    ``condition`` gates the whole step: when it returns False the step is
    skipped without probing.
    """

    name: str
    probe: Probe
    action: Action
    description: str = ""
    depends_on: Tuple[str, ...] = ()
    fatal: bool = True
    condition: Optional[Probe] = None


@dataclass(frozen=True)
class StepResult:
    step_name: str
    started_at: datetime
    ended_at: datetime
    outcome: Outcome
    error: Optional[str] = None
    detail: str = ""

    @property
    def seconds(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        return {
            "step": self.step_name,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
            "outcome": self.outcome.value,
            "error": self.error,
            "detail": self.detail,
        }


@dataclass
class Run:
    results: List[StepResult] = field(default_factory=list)
    order: List[str] = field(default_factory=list)
    # Set when the run was rejected before any step executed.
    error: Optional["ProvisionError"] = None
    fatal_step: Optional[str] = None
    cancelled: bool = False
    dry_run: bool = False

    def _named(self, outcome: Outcome) -> List[str]:
        return [r.step_name for r in self.results if r.outcome is outcome]

    @property
    def succeeded(self) -> List[str]:
        return self._named(Outcome.SUCCEEDED)

    @property
    def skipped(self) -> List[str]:
        return self._named(Outcome.SKIPPED)

    @property
    def failed(self) -> List[str]:
        return self._named(Outcome.FAILED)

    @property
    def ok(self) -> bool:
        """True when the run finished without a rejected graph, fatal stop or cancellation."""
        return self.error is None and self.fatal_step is None and not self.cancelled

    @property
    def exit_code(self) -> int:
        if self.error is not None:
            return EXIT_INVALID
        if self.fatal_step is not None:
            return EXIT_FATAL
        if self.cancelled:
            return EXIT_CANCELLED
        return EXIT_OK

    def result_for(self, step_name: str) -> Optional[StepResult]:
        for r in self.results:
            if r.step_name == step_name:
                return r
        return None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "exit_code": self.exit_code,
            "dry_run": self.dry_run,
            "order": list(self.order),
            "fatal_step": self.fatal_step,
            "cancelled": self.cancelled,
            "error": str(self.error) if self.error else None,
            "results": [r.to_dict() for r in self.results],
        }
