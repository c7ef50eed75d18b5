from .aur_helper import AurHelperStep
from .base import StepKind
from .command import CommandStep
from .flatpak_remote import FlatpakRemoteStep
from .group_membership import GroupMembershipStep
from .packages import PackagesStep
from .remove_path import RemovePathStep
from .script_installer import ScriptInstallerStep
from .service import ServiceStep
from .system_upgrade import SystemUpgradeStep
from .systemd_unit import SystemdUnitStep

STEP_KINDS = {
    cls.kind: cls
    for cls in (
        SystemUpgradeStep,
        PackagesStep,
        AurHelperStep,
        ScriptInstallerStep,
        CommandStep,
        SystemdUnitStep,
        ServiceStep,
        FlatpakRemoteStep,
        GroupMembershipStep,
        RemovePathStep,
    )
}

__all__ = [
    "STEP_KINDS",
    "StepKind",
    "AurHelperStep",
    "CommandStep",
    "FlatpakRemoteStep",
    "GroupMembershipStep",
    "PackagesStep",
    "RemovePathStep",
    "ScriptInstallerStep",
    "ServiceStep",
    "SystemUpgradeStep",
    "SystemdUnitStep",
]
