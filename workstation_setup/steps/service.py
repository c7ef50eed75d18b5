from __future__ import annotations

from ..context import ProvisionContext
from ..lib import systemd
from .base import StepKind


class ServiceStep(StepKind):
    """Enable (and by default start) a unit shipped by a package."""

    kind = "service"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.unit = self.require("unit")
        self.start = bool(self.spec.get("start", True))

    def probe(self, ctx: ProvisionContext) -> bool:
        if not systemd.is_enabled(ctx, self.unit):
            return False
        return systemd.is_active(ctx, self.unit) if self.start else True

    def act(self, ctx: ProvisionContext) -> None:
        systemd.enable(ctx, self.unit, now=self.start)
