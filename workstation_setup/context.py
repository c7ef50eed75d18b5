from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .lib.command import CmdResult, run_cmd
from .lib.sudo import SudoSession


@dataclass(frozen=True)
class ProvisionContext:
    """Scoped configuration handed to every probe and action.

    Replaces ambient shell state: exported variables live in ``env`` and
    ``path_prepend``, elevated privileges in ``sudo``.
    """

    dry_run: bool = False
    env: Mapping[str, str] = field(default_factory=dict)
    path_prepend: Tuple[str, ...] = ()
    work_dir: str = field(default_factory=tempfile.gettempdir)
    sudo: Optional[SudoSession] = None
    distro: Optional[str] = None

    def expand(self, path: str) -> str:
        return os.path.expandvars(os.path.expanduser(path))

    def environ(self) -> Dict[str, str]:
        out = dict(os.environ)
        out.update({k: self.expand(v) for k, v in self.env.items()})
        if self.path_prepend:
            extra = [self.expand(p) for p in self.path_prepend]
            out["PATH"] = os.pathsep.join([*extra, out.get("PATH", "")])
        return out

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name, path=self.environ().get("PATH"))

    @property
    def work_path(self) -> Path:
        return Path(self.expand(self.work_dir))

    def run(
        self,
        argv: Sequence[str],
        *,
        sudo: bool = False,
        check: bool = True,
        cwd: Optional[str] = None,
        mutates: bool = True,
    ) -> CmdResult:
        """Run a command in this context.

        ``mutates=False`` marks read-only commands used by probes; they run
        even in dry-run mode.
        """

        argv_list = list(argv)
        if sudo:
            argv_list = (self.sudo or SudoSession()).wrap(argv_list)
        return run_cmd(
            argv_list,
            check=check,
            env=self.environ(),
            cwd=cwd,
            dry_run=self.dry_run and mutates,
        )

    def probe_cmd(self, argv: Sequence[str], *, sudo: bool = False) -> bool:
        """True when a read-only command exits 0."""

        return self.run(argv, sudo=sudo, check=False, mutates=False).returncode == 0
