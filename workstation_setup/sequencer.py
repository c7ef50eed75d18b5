from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from .context import ProvisionContext
from .errors import (
    ConvergenceError,
    CycleError,
    DuplicateStepError,
    GraphError,
    ProbeError,
    UnknownDependencyError,
)
from .model import Outcome, Run, Step, StepResult
from .reporter import Reporter

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _find_cycle(by_name: Dict[str, Step], stuck: Sequence[str]) -> List[str]:
    """Walk dependency edges among the stuck steps until a name repeats."""

    stuck_set = set(stuck)
    node = stuck[0]
    path: List[str] = []
    seen: Dict[str, int] = {}
    while node not in seen:
        seen[node] = len(path)
        path.append(node)
        node = next(d for d in by_name[node].depends_on if d in stuck_set)
    return path[seen[node]:] + [node]


def order_steps(steps: Sequence[Step]) -> List[Step]:
    """Topologically order steps by ``depends_on``.

    Ties are broken by input order, so identical input gives identical runs.
    """

    names = [s.name for s in steps]
    if len(set(names)) != len(names):
        raise DuplicateStepError([n for n in names if names.count(n) > 1])

    by_name = {s.name: s for s in steps}
    position = {s.name: i for i, s in enumerate(steps)}
    dependents: Dict[str, List[str]] = {n: [] for n in names}
    indeg: Dict[str, int] = {n: 0 for n in names}

    for s in steps:
        for dep in dict.fromkeys(s.depends_on):
            if dep not in by_name:
                raise UnknownDependencyError(s.name, dep, names)
            dependents[dep].append(s.name)
            indeg[s.name] += 1

    ready = [n for n in names if indeg[n] == 0]
    ordered: List[Step] = []
    while ready:
        ready.sort(key=position.__getitem__)
        name = ready.pop(0)
        ordered.append(by_name[name])
        for child in dependents[name]:
            indeg[child] -= 1
            if indeg[child] == 0:
                ready.append(child)

    if len(ordered) != len(steps):
        stuck = [n for n in names if indeg[n] > 0]
        raise CycleError(_find_cycle(by_name, stuck))

    return ordered


def _probe(step: Step, ctx: ProvisionContext) -> bool:
    """Run a probe; an undecidable probe counts as unsatisfied."""

    try:
        return bool(step.probe(ctx))
    except Exception as e:
        err = e if isinstance(e, ProbeError) else ProbeError(str(e))
        logger.warning("Probe for %s could not decide (treated as unsatisfied): %s", step.name, err)
        return False


class Sequencer:
    """Runs steps one at a time in dependency order."""

    def __init__(
        self,
        ctx: ProvisionContext,
        *,
        reporter: Optional[Reporter] = None,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        self.ctx = ctx
        self.reporter = reporter or Reporter()
        self.cancel = cancel or threading.Event()

    def _record(self, run: Run, result: StepResult) -> None:
        self.reporter.record(result)
        run.results.append(result)

    def _skip_rest(self, run: Run, remaining: Sequence[Step], reason: str) -> None:
        for step in remaining:
            t = _now()
            self._record(run, StepResult(step.name, t, t, Outcome.SKIPPED, detail=f"not attempted: {reason}"))

    def _run_step(self, step: Step) -> StepResult:
        ctx = self.ctx
        started = _now()

        if step.condition is not None:
            try:
                cond = bool(step.condition(ctx))
            except Exception as e:
                logger.warning("Condition for %s could not be evaluated: %s", step.name, e)
                cond = False
            if not cond:
                return StepResult(step.name, started, _now(), Outcome.SKIPPED, detail="condition not met")

        if _probe(step, ctx):
            return StepResult(step.name, started, _now(), Outcome.SKIPPED, detail="already satisfied")

        logger.info("Running step %s%s", step.name, f" ({step.description})" if step.description else "")
        try:
            step.action(ctx)
        except Exception as e:
            logger.debug("Action for %s raised", step.name, exc_info=True)
            return StepResult(step.name, started, _now(), Outcome.FAILED, error=str(e) or type(e).__name__)

        if ctx.dry_run:
            return StepResult(step.name, started, _now(), Outcome.SUCCEEDED, detail="dry run")

        if not _probe(step, ctx):
            err = ConvergenceError(step.name)
            return StepResult(step.name, started, _now(), Outcome.FAILED, error=str(err))

        return StepResult(step.name, started, _now(), Outcome.SUCCEEDED)

    def execute(self, steps: Sequence[Step]) -> Run:
        run = Run(dry_run=self.ctx.dry_run)
        try:
            ordered = order_steps(steps)
        except GraphError as e:
            logger.error("Rejected run before executing any step: %s", e)
            run.error = e
            return run

        run.order = [s.name for s in ordered]
        logger.info("Run order: %s", ", ".join(run.order) or "(empty)")

        for idx, step in enumerate(ordered):
            if self.cancel.is_set():
                logger.warning("Cancelled; not starting %s", step.name)
                run.cancelled = True
                self._skip_rest(run, ordered[idx:], "cancelled")
                break

            result = self._run_step(step)
            self._record(run, result)

            if result.outcome is Outcome.FAILED:
                if step.fatal:
                    logger.error("Fatal step %s failed; halting run", step.name)
                    run.fatal_step = step.name
                    self._skip_rest(run, ordered[idx + 1:], f"halted after fatal failure of '{step.name}'")
                    break
                logger.warning("Non-fatal step %s failed; continuing", step.name)

        return run


def execute(
    steps: Sequence[Step],
    ctx: Optional[ProvisionContext] = None,
    *,
    reporter: Optional[Reporter] = None,
    cancel: Optional[threading.Event] = None,
) -> Run:
    return Sequencer(ctx or ProvisionContext(), reporter=reporter, cancel=cancel).execute(steps)
