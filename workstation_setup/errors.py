from __future__ import annotations

import shlex
from typing import Sequence


class ProvisionError(Exception):
    """Base class for workstation-setup errors."""


class ProbeError(ProvisionError):
    """A probe could not decide whether its step is satisfied."""


class ActionError(ProvisionError):
    """The effectful part of a step failed."""


class CommandError(ActionError):
    def __init__(self, argv: Sequence[str], returncode: int, stdout: str = "", stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        cmd = " ".join(shlex.quote(a) for a in self.argv)
        msg = f"Command failed ({returncode}): {cmd}"
        if stderr.strip():
            msg += f"\n{stderr.rstrip()}"
        super().__init__(msg)


class VerificationError(ActionError):
    """A downloaded artifact did not match its pinned checksum."""


class ConvergenceError(ProvisionError):
    """The action returned but the probe still reports unsatisfied."""

    def __init__(self, step_name: str) -> None:
        self.step_name = step_name
        super().__init__(f"Step '{step_name}' did not converge: probe still unsatisfied after action")


class DefinitionError(ProvisionError):
    """The step-definition file is malformed."""


class GraphError(ProvisionError):
    """The step dependency graph cannot be executed."""


class DuplicateStepError(GraphError):
    def __init__(self, names: Sequence[str]) -> None:
        self.names = sorted(set(names))
        super().__init__(f"Duplicate step names: {self.names}")


class UnknownDependencyError(GraphError):
    def __init__(self, step_name: str, missing: str, known: Sequence[str]) -> None:
        self.step_name = step_name
        self.missing = missing
        super().__init__(
            f"Step '{step_name}' depends on missing step '{missing}'. Known steps: {sorted(known)}"
        )


class CycleError(GraphError):
    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"Dependency cycle between steps: {' -> '.join(self.cycle)}")
