from __future__ import annotations

import logging

from ..context import ProvisionContext
from ..lib.pkg import updates_pending, upgrade_system
from .base import StepKind

logger = logging.getLogger(__name__)


class SystemUpgradeStep(StepKind):
    """Full system upgrade (pacman -Syu, dnf upgrade, apt-get upgrade).

    Until the upgrade has run once in this process, pacman's local sync
    database is not trusted to say the system is current.
    """

    kind = "system_upgrade"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._synced = False

    def probe(self, ctx: ProvisionContext) -> bool:
        return not updates_pending(ctx, self.manager(), synced=self._synced)

    def act(self, ctx: ProvisionContext) -> None:
        logger.info("Updating system...")
        upgrade_system(ctx, self.manager())
        if not ctx.dry_run:
            self._synced = True
