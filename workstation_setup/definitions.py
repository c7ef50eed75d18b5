from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import DefinitionError
from .lib.osinfo import PACKAGE_MANAGERS, detect_distro
from .model import Step
from .steps import STEP_KINDS

logger = logging.getLogger(__name__)

PROFILES_DIR = Path(__file__).resolve().parent / "profiles"


@dataclass(frozen=True)
class Definition:
    """A parsed step-definition file: steps plus the context they run in."""

    raw: Dict[str, Any]
    steps: Tuple[Step, ...]
    distro: Optional[str]
    source: str

    @property
    def environment(self) -> Dict[str, str]:
        env = self.raw.get("environment") or {}
        return {str(k): str(v) for k, v in env.items()}

    @property
    def path_prepend(self) -> Tuple[str, ...]:
        return tuple(str(p) for p in (self.raw.get("path_prepend") or []))

    @property
    def work_dir(self) -> Optional[str]:
        v = self.raw.get("work_dir")
        return str(v) if v else None

    @property
    def needs_sudo(self) -> bool:
        return bool(self.raw.get("sudo", True))


def available_profiles() -> List[str]:
    return sorted(p.stem for p in PROFILES_DIR.glob("*.yaml"))


def profile_path(name: str) -> Path:
    p = PROFILES_DIR / f"{name}.yaml"
    if not p.exists():
        raise DefinitionError(f"Unknown profile {name!r}; available: {available_profiles()}")
    return p


def _read_mapping(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise DefinitionError(f"Step definition file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise DefinitionError(f"Cannot parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise DefinitionError(f"Step definition must be a mapping/dict: {path}")
    return data


def build_steps(raw: Dict[str, Any], *, package_manager: Optional[str]) -> List[Step]:
    entries = raw.get("steps")
    if not isinstance(entries, list) or not entries:
        raise DefinitionError("'steps' must be a non-empty list")

    steps: List[Step] = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise DefinitionError(f"steps[{i}] must be a mapping")
        kind = entry.get("kind")
        cls = STEP_KINDS.get(str(kind))
        if cls is None:
            raise DefinitionError(
                f"steps[{i}] ({entry.get('name')!r}): unknown kind {kind!r}; known kinds: {sorted(STEP_KINDS)}"
            )
        steps.append(cls(entry, package_manager=package_manager).to_step())
    return steps


def load_definitions(path: str | Path, *, distro: Optional[str] = None) -> Definition:
    """Load a YAML/JSON step-definition file.

    The distro is taken from the argument, then the file's ``distro`` key,
    then /etc/os-release.
    """

    p = Path(path)
    raw = _read_mapping(p)
    distro = distro or raw.get("distro") or detect_distro()
    pm = raw.get("package_manager") or (PACKAGE_MANAGERS.get(distro) if distro else None)
    steps = build_steps(raw, package_manager=pm)
    logger.info("Loaded %d steps from %s (distro=%s, package_manager=%s)", len(steps), p, distro, pm)
    return Definition(raw=raw, steps=tuple(steps), distro=distro, source=str(p))


def load_profile(name: str) -> Definition:
    return load_definitions(profile_path(name), distro=name if name in PACKAGE_MANAGERS else None)
