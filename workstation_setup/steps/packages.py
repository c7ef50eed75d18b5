from __future__ import annotations

import logging

from ..context import ProvisionContext
from ..lib.pkg import install_packages, missing_packages, packages_installed
from .base import StepKind

logger = logging.getLogger(__name__)


class PackagesStep(StepKind):
    kind = "packages"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.packages = self.str_list("packages", required=True)

    def probe(self, ctx: ProvisionContext) -> bool:
        return packages_installed(ctx, self.manager(), self.packages)

    def act(self, ctx: ProvisionContext) -> None:
        # Only ask for what is missing; reinstalling is harmless but slow.
        todo = missing_packages(ctx, self.manager(), self.packages) or self.packages
        logger.info("Installing packages: %s", " ".join(todo))
        install_packages(ctx, self.manager(), todo)
