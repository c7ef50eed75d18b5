from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Sequence

if TYPE_CHECKING:
    from ..context import ProvisionContext

logger = logging.getLogger(__name__)

SUPPORTED = ("pacman", "dnf", "apt")


def _check_manager(manager: str) -> None:
    if manager not in SUPPORTED:
        raise ValueError(f"Unsupported package manager: {manager!r} (expected one of {SUPPORTED})")


def missing_packages(ctx: "ProvisionContext", manager: str, packages: Sequence[str]) -> List[str]:
    """Return the subset of packages that are not installed."""

    _check_manager(manager)
    missing: List[str] = []
    for pkg in packages:
        if manager == "pacman":
            installed = ctx.probe_cmd(["pacman", "-Qq", pkg])
        elif manager == "dnf":
            installed = ctx.probe_cmd(["rpm", "-q", "--whatprovides", pkg])
        else:
            installed = ctx.probe_cmd(["dpkg", "-s", pkg])
        if not installed:
            missing.append(pkg)
    return missing


def packages_installed(ctx: "ProvisionContext", manager: str, packages: Sequence[str]) -> bool:
    missing = missing_packages(ctx, manager, packages)
    if missing:
        logger.debug("Missing packages: %s", " ".join(missing))
    return not missing


def install_packages(ctx: "ProvisionContext", manager: str, packages: Sequence[str]) -> None:
    _check_manager(manager)
    if not packages:
        return
    if manager == "pacman":
        argv = ["pacman", "-S", "--noconfirm", "--needed", *packages]
    elif manager == "dnf":
        argv = ["dnf", "install", "-y", *packages]
    else:
        argv = ["apt-get", "install", "-y", *packages]
    ctx.run(argv, sudo=True)


def _pacman_updates_pending(ctx: "ProvisionContext", synced: bool) -> bool:
    # checkupdates (pacman-contrib) syncs a scratch copy of the databases:
    # exit 0 lists updates, 2 means none, anything else is an error.
    if ctx.which("checkupdates"):
        r = ctx.run(["checkupdates"], check=False, mutates=False)
        if r.returncode == 0:
            return bool(r.stdout.strip())
        if r.returncode == 2:
            return False
        logger.warning("checkupdates failed (%s); falling back to the local sync database", r.returncode)

    # pacman -Qu only sees what the last sync saw.
    if not synced:
        logger.info("pacman sync database not refreshed in this run; treating the system as out of date")
        return True
    # pacman -Qu exits 1 when nothing is upgradable.
    r = ctx.run(["pacman", "-Qu"], check=False, mutates=False)
    return r.returncode == 0 and bool(r.stdout.strip())


def updates_pending(ctx: "ProvisionContext", manager: str, *, synced: bool = False) -> bool:
    """Check for pending upgrades.

    ``synced`` says the package databases were refreshed earlier in this
    run; without it (and without checkupdates) pacman is assumed to be out
    of date. dnf and apt consult their own metadata.
    """

    _check_manager(manager)
    if manager == "pacman":
        return _pacman_updates_pending(ctx, synced)
    if manager == "dnf":
        # dnf check-update exits 100 when updates are available.
        r = ctx.run(["dnf", "check-update", "-q"], check=False, mutates=False)
        return r.returncode == 100
    r = ctx.run(["apt-get", "-s", "upgrade"], check=False, mutates=False)
    return any(line.startswith("Inst ") for line in r.stdout.splitlines())


def upgrade_system(ctx: "ProvisionContext", manager: str) -> None:
    _check_manager(manager)
    if manager == "pacman":
        ctx.run(["pacman", "-Syu", "--noconfirm"], sudo=True)
    elif manager == "dnf":
        ctx.run(["dnf", "upgrade", "-y", "--refresh"], sudo=True)
    else:
        ctx.run(["apt-get", "update"], sudo=True)
        ctx.run(["apt-get", "upgrade", "-y"], sudo=True)
