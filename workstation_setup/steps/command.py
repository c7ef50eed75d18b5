from __future__ import annotations

from ..context import ProvisionContext
from .base import StepKind


class CommandStep(StepKind):
    """Arbitrary shell snippet guarded by a shell probe (exit 0 == satisfied)."""

    kind = "command"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.run = self.require("run")
        self.check = self.require("probe")
        self.shell = str(self.spec.get("shell") or "bash")
        self.sudo = bool(self.spec.get("sudo", False))

    def probe(self, ctx: ProvisionContext) -> bool:
        return ctx.probe_cmd([self.shell, "-c", self.check], sudo=self.sudo)

    def act(self, ctx: ProvisionContext) -> None:
        ctx.run([self.shell, "-c", self.run], sudo=self.sudo)
