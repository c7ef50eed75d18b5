from __future__ import annotations

import logging

from ..context import ProvisionContext
from ..lib import systemd
from .base import StepKind

logger = logging.getLogger(__name__)


class SystemdUnitStep(StepKind):
    """Write a unit file, then enable it.

    Satisfied when the installed file is byte-identical and the unit is
    enabled. Oneshot units are not expected to stay active, so activity is
    not probed.
    """

    kind = "systemd_unit"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.unit = self.require("unit")
        self.contents = self.require("contents")
        if not self.contents.endswith("\n"):
            self.contents += "\n"
        self.start = bool(self.spec.get("start", True))
        self.unit_dir = str(self.spec.get("unit_dir") or systemd.UNIT_DIR)

    def probe(self, ctx: ProvisionContext) -> bool:
        return systemd.unit_matches(self.unit, self.contents, self.unit_dir) and systemd.is_enabled(ctx, self.unit)

    def act(self, ctx: ProvisionContext) -> None:
        logger.info("Creating systemd unit %s", self.unit)
        systemd.install_unit(ctx, self.unit, self.contents, self.unit_dir)
        systemd.enable(ctx, self.unit, now=self.start)
