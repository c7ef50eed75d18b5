import hashlib
from pathlib import Path

import pytest

from workstation_setup.context import ProvisionContext
from workstation_setup.errors import ActionError, CommandError, DefinitionError
from workstation_setup.lib.command import CmdResult
from workstation_setup.model import Outcome
from workstation_setup.sequencer import execute
from workstation_setup.steps import (
    AurHelperStep,
    CommandStep,
    GroupMembershipStep,
    PackagesStep,
    RemovePathStep,
    ScriptInstallerStep,
    ServiceStep,
    SystemdUnitStep,
)
from workstation_setup.steps import aur_helper as aur_helper_mod
from workstation_setup.steps import systemd_unit as systemd_unit_mod


def test_command_step_converges(tmp_path, ctx):
    marker = tmp_path / "hello"
    step = CommandStep(
        {"name": "hello", "probe": f"test -e {marker}", "run": f"touch {marker}"}
    ).to_step()

    first = execute([step], ctx)
    assert first.result_for("hello").outcome is Outcome.SUCCEEDED
    second = execute([step], ctx)
    assert second.result_for("hello").outcome is Outcome.SKIPPED


def test_command_step_failure_keeps_stderr(ctx):
    step = CommandStep(
        {"name": "bad", "probe": "false", "run": "echo 'nvm: command not found' >&2; exit 127"}
    ).to_step()
    run = execute([step], ctx)
    assert "nvm: command not found" in run.result_for("bad").error


def test_command_step_sees_context_environment(tmp_path):
    marker = tmp_path / "from-env"
    ctx = ProvisionContext(env={"TARGET": str(marker)})
    step = CommandStep({"name": "env", "probe": 'test -e "$TARGET"', "run": 'touch "$TARGET"'}).to_step()
    assert execute([step], ctx).ok
    assert marker.exists()


def test_remove_path_step(tmp_path, ctx):
    victim = tmp_path / "yay"
    (victim / "src").mkdir(parents=True)
    (victim / "src" / "PKGBUILD").write_text("x")
    step = RemovePathStep({"name": "cleanup", "path": str(victim)})

    assert not step.probe(ctx)
    step.act(ctx)
    assert not victim.exists()
    assert step.probe(ctx)
    step.act(ctx)


def test_remove_path_refuses_root(ctx):
    with pytest.raises(ActionError):
        RemovePathStep({"name": "nope", "path": "/"}).act(ctx)


def test_remove_path_dry_run(tmp_path):
    victim = tmp_path / "keep"
    victim.write_text("x")
    RemovePathStep({"name": "c", "path": str(victim)}).act(ProvisionContext(dry_run=True))
    assert victim.exists()


def test_only_if_exists_condition(tmp_path, ctx):
    knob = tmp_path / "charge_control_end_threshold"
    kind = CommandStep(
        {"name": "battery", "probe": "false", "run": "true", "only_if_exists": str(knob)}
    )
    step = kind.to_step()

    run = execute([step], ctx)
    assert run.result_for("battery").detail == "condition not met"

    knob.write_text("100")
    assert step.condition(ctx) is True


def test_script_installer_probe_and_act(tmp_path, ctx):
    creates = tmp_path / "home" / ".cargo" / "bin" / "rustc"
    installer = tmp_path / "rustup.sh"
    installer.write_text('mkdir -p "$(dirname "$1")" && touch "$1"\n')
    step = ScriptInstallerStep(
        {
            "name": "rust",
            "url": installer.as_uri(),
            "sha256": hashlib.sha256(installer.read_bytes()).hexdigest(),
            "interpreter": "sh",
            "args": [str(creates)],
            "creates": str(creates),
            "make_dirs": [str(tmp_path / "home" / ".nvm")],
            "verify": [f"test -e {creates}"],
        }
    )

    assert not step.probe(ctx)
    run = execute([step.to_step()], ctx)
    assert run.result_for("rust").outcome is Outcome.SUCCEEDED
    assert creates.exists()
    assert (tmp_path / "home" / ".nvm").is_dir()


def test_script_installer_verify_failure_means_unsatisfied(tmp_path, ctx):
    present = tmp_path / "nvm.sh"
    present.write_text("")
    step = ScriptInstallerStep(
        {"name": "nvm", "url": "https://example.invalid/install.sh", "creates": str(present), "verify": ["false"]}
    )
    assert not step.probe(ctx)


def test_script_installer_interpreter_list():
    step = ScriptInstallerStep(
        {"name": "x", "url": "https://example.invalid/i.sh", "command": "x", "interpreter": "bash -e"}
    )
    assert step.interpreter == ["bash", "-e"]


def test_packages_step_requires_packages():
    with pytest.raises(DefinitionError):
        PackagesStep({"name": "p", "packages": []}, package_manager="pacman")


def test_packages_step_installs_only_missing(monkeypatch, ctx):
    installed = []
    monkeypatch.setattr(
        "workstation_setup.steps.packages.missing_packages", lambda c, m, pkgs: [p for p in pkgs if p == "fish"]
    )
    monkeypatch.setattr(
        "workstation_setup.steps.packages.install_packages", lambda c, m, pkgs: installed.extend(pkgs)
    )
    PackagesStep({"name": "p", "packages": ["git", "fish"]}, package_manager="dnf").act(ctx)
    assert installed == ["fish"]


def test_package_manager_override_in_step():
    step = PackagesStep({"name": "p", "packages": ["git"], "package_manager": "apt"}, package_manager="pacman")
    assert step.manager() == "apt"


def test_common_fields_are_validated():
    with pytest.raises(DefinitionError):
        CommandStep({"name": "", "probe": "true", "run": "true"})
    with pytest.raises(DefinitionError):
        CommandStep({"name": "x", "probe": "true", "run": "true", "depends_on": [1, 2]})
    step = CommandStep({"name": "x", "probe": "true", "run": "true", "depends_on": "y"}).to_step()
    assert step.depends_on == ("y",)
    assert step.fatal is True


def test_systemd_unit_probe(tmp_path, monkeypatch, ctx):
    contents = "[Unit]\nDescription=x\n"
    step = SystemdUnitStep(
        {"name": "u", "unit": "x.service", "contents": contents, "unit_dir": str(tmp_path)}
    )
    monkeypatch.setattr(systemd_unit_mod.systemd, "is_enabled", lambda c, unit: True)

    assert not step.probe(ctx)
    (tmp_path / "x.service").write_text("[Unit]\nDescription=old\n")
    assert not step.probe(ctx)
    (tmp_path / "x.service").write_text(contents)
    assert step.probe(ctx)


def test_systemd_unit_install(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(systemd_unit_mod.systemd, "enable", lambda c, unit, now: calls.append((unit, now)))
    ctx = ProvisionContext(dry_run=True, work_dir=str(tmp_path))
    step = SystemdUnitStep(
        {"name": "u", "unit": "battery-threshold.service", "contents": "[Unit]", "start": True}
    )
    assert step.contents == "[Unit]\n"
    step.act(ctx)
    assert calls == [("battery-threshold.service", True)]


def test_service_step_probe(monkeypatch, ctx):
    from workstation_setup.steps import service as service_mod

    monkeypatch.setattr(service_mod.systemd, "is_enabled", lambda c, u: True)
    monkeypatch.setattr(service_mod.systemd, "is_active", lambda c, u: False)
    assert not ServiceStep({"name": "bt", "unit": "bluetooth.service"}).probe(ctx)
    assert ServiceStep({"name": "bt", "unit": "bluetooth.service", "start": False}).probe(ctx)


def test_group_membership_defaults_to_current_user(monkeypatch):
    monkeypatch.setattr("workstation_setup.steps.group_membership.getpass.getuser", lambda: "alice")
    step = GroupMembershipStep({"name": "g", "group": "docker"})
    assert step.user == "alice"


def test_aur_helper_probe(tmp_path):
    bindir = tmp_path / "bin"
    bindir.mkdir()
    ctx = ProvisionContext(path_prepend=(str(bindir),))
    step = AurHelperStep({"name": "yay"})
    assert step.repo == "https://aur.archlinux.org/yay.git"
    assert not step.probe(ctx)
    (bindir / "yay").write_text("#!/bin/sh\n")
    (bindir / "yay").chmod(0o755)
    assert step.probe(ctx)


PACKAGE = "yay-12.3.5-1-x86_64.pkg.tar.zst"
DEBUG_PACKAGE = "yay-debug-12.3.5-1-x86_64.pkg.tar.zst"


class AurBuildCtx:
    """Records commands and plays git/makepkg against a scratch work dir."""

    dry_run = False

    def __init__(self, work, *, build_fails=False, built=(PACKAGE, DEBUG_PACKAGE)):
        self.work_path = work
        self.build_fails = build_fails
        self.built = built
        self.ran = []

    def run(self, argv, *, sudo=False, check=True, cwd=None, mutates=True):
        argv = list(argv)
        self.ran.append(("sudo" if sudo else "run", argv))
        if argv[:2] == ["git", "clone"]:
            Path(argv[-1]).mkdir()
            (Path(argv[-1]) / "PKGBUILD").write_text("pkgname=yay\n")
        elif argv[:2] == ["makepkg", "--noconfirm"]:
            if self.build_fails:
                raise CommandError(argv, 4, "", "==> ERROR: A failure occurred in build().\n")
            for name in self.built:
                (Path(cwd) / name).write_text("pkg")
        elif argv == ["makepkg", "--packagelist"]:
            listing = "\n".join(str(Path(cwd) / n) for n in (PACKAGE, DEBUG_PACKAGE))
            return CmdResult(argv, 0, listing + "\n", "")
        return CmdResult(argv, 0, "", "")


@pytest.fixture
def regular_user(monkeypatch):
    monkeypatch.setattr(aur_helper_mod.os, "geteuid", lambda: 1000)


def test_aur_helper_builds_and_installs(tmp_path, regular_user):
    work = tmp_path / "work"
    clone = work / "yay"
    (clone / "src").mkdir(parents=True)
    ctx = AurBuildCtx(work)
    step = AurHelperStep({"name": "yay", "build_packages": ["base-devel", "git", "go"]})

    step.act(ctx)

    assert ctx.ran == [
        ("sudo", ["pacman", "-S", "--noconfirm", "--needed", "base-devel", "git", "go"]),
        ("run", ["git", "clone", "--depth", "1", "https://aur.archlinux.org/yay.git", str(clone)]),
        ("run", ["makepkg", "--noconfirm", "--force"]),
        ("run", ["makepkg", "--packagelist"]),
        ("sudo", ["pacman", "-U", "--noconfirm", str(clone / PACKAGE)]),
    ]
    assert not clone.exists()


def test_aur_helper_removes_clone_after_failed_build(tmp_path, regular_user):
    ctx = AurBuildCtx(tmp_path / "work", build_fails=True)

    with pytest.raises(CommandError, match="failure occurred in build"):
        AurHelperStep({"name": "yay"}).act(ctx)

    assert not (tmp_path / "work" / "yay").exists()
    assert [argv[0] for _, argv in ctx.ran] == ["pacman", "git", "makepkg"]


def test_aur_helper_without_built_package(tmp_path, regular_user):
    ctx = AurBuildCtx(tmp_path / "work", built=(DEBUG_PACKAGE,))

    with pytest.raises(ActionError, match="makepkg produced no package for yay"):
        AurHelperStep({"name": "yay"}).act(ctx)

    assert not (tmp_path / "work" / "yay").exists()
    assert all(argv[:2] != ["pacman", "-U"] for _, argv in ctx.ran)


def test_aur_helper_refuses_root(tmp_path, monkeypatch):
    monkeypatch.setattr(aur_helper_mod.os, "geteuid", lambda: 0)
    ctx = AurBuildCtx(tmp_path / "work")

    with pytest.raises(ActionError, match="refuses to run as root"):
        AurHelperStep({"name": "yay"}).act(ctx)
    assert ctx.ran == []
