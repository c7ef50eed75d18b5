from __future__ import annotations

from ..context import ProvisionContext
from .base import StepKind


class FlatpakRemoteStep(StepKind):
    kind = "flatpak_remote"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.remote = self.require("remote")
        self.url = self.require("url")

    def probe(self, ctx: ProvisionContext) -> bool:
        r = ctx.run(["flatpak", "remotes", "--system", "--columns=name"], check=False, mutates=False)
        return r.returncode == 0 and self.remote in r.stdout.split()

    def act(self, ctx: ProvisionContext) -> None:
        ctx.run(["flatpak", "remote-add", "--system", "--if-not-exists", self.remote, self.url], sudo=True)
