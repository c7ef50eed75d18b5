from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..context import ProvisionContext

logger = logging.getLogger(__name__)

UNIT_DIR = "/etc/systemd/system"


def unit_path(unit: str, unit_dir: str = UNIT_DIR) -> Path:
    return Path(unit_dir) / unit


def unit_matches(unit: str, contents: str, unit_dir: str = UNIT_DIR) -> bool:
    p = unit_path(unit, unit_dir)
    try:
        return p.read_text(encoding="utf-8") == contents
    except OSError:
        return False


def install_unit(ctx: "ProvisionContext", unit: str, contents: str, unit_dir: str = UNIT_DIR) -> None:
    """Write a unit file through a scratch copy so sudo never reads it from stdin."""

    dest = unit_path(unit, unit_dir)
    if ctx.dry_run:
        logger.info("Would write %s", dest)
        ctx.run(["systemctl", "daemon-reload"], sudo=True)
        return

    ctx.work_path.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=ctx.work_path, prefix=unit + ".", delete=False
    ) as f:
        f.write(contents)
        scratch = Path(f.name)
    try:
        ctx.run(["install", "-D", "-m", "0644", str(scratch), str(dest)], sudo=True)
    finally:
        scratch.unlink(missing_ok=True)
    ctx.run(["systemctl", "daemon-reload"], sudo=True)


def is_enabled(ctx: "ProvisionContext", unit: str) -> bool:
    return ctx.probe_cmd(["systemctl", "is-enabled", "--quiet", unit])


def is_active(ctx: "ProvisionContext", unit: str) -> bool:
    return ctx.probe_cmd(["systemctl", "is-active", "--quiet", unit])


def enable(ctx: "ProvisionContext", unit: str, *, now: bool = True) -> None:
    argv = ["systemctl", "enable"]
    if now:
        argv.append("--now")
    ctx.run([*argv, unit], sudo=True)
