from __future__ import annotations

import getpass

from ..context import ProvisionContext
from .base import StepKind


class GroupMembershipStep(StepKind):
    """Add a user (default: the invoking user) to a supplementary group."""

    kind = "group_membership"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.group = self.require("group")
        self.user = str(self.spec.get("user") or getpass.getuser())

    def probe(self, ctx: ProvisionContext) -> bool:
        r = ctx.run(["id", "-nG", self.user], check=False, mutates=False)
        return r.returncode == 0 and self.group in r.stdout.split()

    def act(self, ctx: ProvisionContext) -> None:
        ctx.run(["usermod", "-aG", self.group, self.user], sudo=True)
