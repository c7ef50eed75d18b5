from __future__ import annotations

import logging
import os
import shlex

from ..context import ProvisionContext
from ..errors import DefinitionError
from ..lib.download import run_installer
from .base import StepKind

logger = logging.getLogger(__name__)


class ScriptInstallerStep(StepKind):
    """Download an installer script, verify it, run it (nvm, rustup, ...).

    Satisfied when ``creates`` exists (or ``command`` is on PATH) and every
    ``verify`` command succeeds in the step environment.
    """

    kind = "script_installer"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.url = self.require("url")
        self.sha256 = self.spec.get("sha256")
        self.creates = self.spec.get("creates")
        self.command = self.spec.get("command")
        if not self.creates and not self.command:
            raise DefinitionError(f"Step {self.name!r} (script_installer): set 'creates' or 'command'")
        interpreter = self.spec.get("interpreter") or "sh"
        self.interpreter = shlex.split(interpreter) if isinstance(interpreter, str) else list(interpreter)
        self.args = self.str_list("args")
        self.verify = self.str_list("verify")
        self.make_dirs = self.str_list("make_dirs")
        self.sudo = bool(self.spec.get("sudo", False))

    def probe(self, ctx: ProvisionContext) -> bool:
        if self.creates and not os.path.exists(ctx.expand(str(self.creates))):
            return False
        if self.command and ctx.which(str(self.command)) is None:
            return False
        for check in self.verify:
            r = ctx.run(["bash", "-c", check], check=False, mutates=False)
            if r.returncode != 0:
                return False
            if r.stdout.strip():
                logger.info("%s: %s", check, r.stdout.strip())
        return True

    def act(self, ctx: ProvisionContext) -> None:
        logger.info("Installing %s from %s", self.name, self.url)
        for d in self.make_dirs:
            path = ctx.expand(d)
            if ctx.dry_run:
                logger.info("Would create %s", path)
            else:
                os.makedirs(path, exist_ok=True)
        run_installer(
            ctx,
            self.url,
            interpreter=self.interpreter,
            args=self.args,
            sha256=self.sha256,
            sudo=self.sudo,
        )
