from __future__ import annotations

import logging
import os
import shutil

from ..context import ProvisionContext
from ..errors import ActionError
from ..lib.pkg import install_packages
from .base import StepKind

logger = logging.getLogger(__name__)

AUR_BASE = "https://aur.archlinux.org"


class AurHelperStep(StepKind):
    """Clone and build an AUR helper (yay by default).

    makepkg runs unprivileged; the built package is installed with
    ``pacman -U`` through the session's sudo.
    """

    kind = "aur_helper"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.helper = str(self.spec.get("helper") or "yay")
        self.repo = str(self.spec.get("repo") or f"{AUR_BASE}/{self.helper}.git")
        self.build_packages = self.str_list("build_packages") or ["base-devel", "git"]

    def probe(self, ctx: ProvisionContext) -> bool:
        return ctx.which(self.helper) is not None

    def act(self, ctx: ProvisionContext) -> None:
        if os.geteuid() == 0 and not ctx.dry_run:
            raise ActionError("makepkg refuses to run as root; run workstation-setup as a regular user")

        install_packages(ctx, "pacman", self.build_packages)

        clone = ctx.work_path / self.helper
        if clone.exists() and not ctx.dry_run:
            shutil.rmtree(clone)
        ctx.work_path.mkdir(parents=True, exist_ok=True)
        try:
            ctx.run(["git", "clone", "--depth", "1", self.repo, str(clone)])
            ctx.run(["makepkg", "--noconfirm", "--force"], cwd=str(clone))
            if ctx.dry_run:
                logger.info("Would install the built %s package with pacman -U", self.helper)
                return
            r = ctx.run(["makepkg", "--packagelist"], cwd=str(clone), mutates=False)
            built = [p for p in r.stdout.split() if os.path.exists(p) and "-debug-" not in os.path.basename(p)]
            if not built:
                raise ActionError(f"makepkg produced no package for {self.helper}")
            ctx.run(["pacman", "-U", "--noconfirm", *built], sudo=True)
        finally:
            if clone.exists() and not ctx.dry_run:
                shutil.rmtree(clone, ignore_errors=True)
