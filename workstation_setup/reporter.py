from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Set

import yaml

from .model import Outcome, Run, StepResult

logger = logging.getLogger(__name__)

_MARKS = {
    Outcome.SUCCEEDED: "ok",
    Outcome.SKIPPED: "skip",
    Outcome.FAILED: "FAIL",
}


class Reporter:
    """Append-only record of step results for one run.

    Every record is emitted immediately through logging (console + log file)
    and buffered for the final summary.
    """

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger
        self._records: List[StepResult] = []
        self._seen: Set[str] = set()

    @property
    def records(self) -> List[StepResult]:
        return list(self._records)

    def record(self, result: StepResult) -> None:
        if result.step_name in self._seen:
            raise ValueError(f"Step {result.step_name!r} already recorded for this run")
        self._seen.add(result.step_name)
        self._records.append(result)

        level = logging.ERROR if result.outcome is Outcome.FAILED else logging.INFO
        msg = "[%s] %s (%.1fs)"
        args: list = [_MARKS[result.outcome], result.step_name, result.seconds]
        if result.detail:
            msg += " %s"
            args.append(result.detail)
        if result.error:
            msg += ": %s"
            args.append(result.error)
        self._log.log(level, msg, *args)

    def summarize(self, run: Run) -> str:
        lines: List[str] = []
        if run.error is not None:
            lines.append(f"Run rejected: {run.error}")
            lines.append("No steps were executed.")
            return "\n".join(lines)

        title = "Provisioning summary (dry run)" if run.dry_run else "Provisioning summary"
        lines.append(title)
        lines.append(
            f"  succeeded: {len(run.succeeded)}  skipped: {len(run.skipped)}  failed: {len(run.failed)}"
        )

        for r in run.results:
            if r.outcome is Outcome.SUCCEEDED:
                continue
            line = f"  {_MARKS[r.outcome]:<4} {r.step_name}"
            if r.detail:
                line += f" ({r.detail})"
            if r.error:
                line += f": {r.error}"
            lines.append(line)

        if run.fatal_step:
            lines.append(f"Stopped at fatal step: {run.fatal_step}")
        elif run.cancelled:
            lines.append("Run cancelled before completion.")
        elif run.failed:
            lines.append("Completed with non-fatal failures.")
        else:
            lines.append("Setup complete!")
        return "\n".join(lines)


def write_report(path: str, run: Run) -> None:
    """Dump the run for audit (YAML for .yaml/.yml, JSON otherwise)."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    data = run.to_dict()
    if p.suffix.lower() in {".yaml", ".yml"}:
        p.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    else:
        p.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    logger.info("Wrote run report to %s", p)
