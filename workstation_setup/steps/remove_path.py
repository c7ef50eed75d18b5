from __future__ import annotations

import logging
import os
import shutil

from ..context import ProvisionContext
from ..errors import ActionError
from .base import StepKind

logger = logging.getLogger(__name__)


class RemovePathStep(StepKind):
    """Cleanup: make sure a file or directory is gone."""

    kind = "remove_path"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.path = self.require("path")
        self.sudo = bool(self.spec.get("sudo", False))

    def probe(self, ctx: ProvisionContext) -> bool:
        return not os.path.lexists(ctx.expand(self.path))

    def act(self, ctx: ProvisionContext) -> None:
        target = ctx.expand(self.path)
        if os.path.realpath(target) in {"/", os.path.realpath(os.path.expanduser("~"))}:
            raise ActionError(f"Refusing to remove {target}")
        logger.info("Cleaning up %s", target)
        if self.sudo:
            ctx.run(["rm", "-rf", "--", target], sudo=True)
            return
        if ctx.dry_run:
            logger.info("Would remove %s", target)
            return
        try:
            if os.path.isdir(target) and not os.path.islink(target):
                shutil.rmtree(target)
            elif os.path.lexists(target):
                os.remove(target)
        except OSError as e:
            raise ActionError(f"Failed to clean up {target}: {e}") from e
