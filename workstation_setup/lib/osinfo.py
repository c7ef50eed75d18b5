from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

OS_RELEASE = "/etc/os-release"

_FAMILY_MAP = {
    "arch": "arch",
    "manjaro": "arch",
    "endeavouros": "arch",
    "fedora": "fedora",
    "rhel": "fedora",
    "centos": "fedora",
    "debian": "debian",
    "ubuntu": "debian",
}

PACKAGE_MANAGERS = {
    "arch": "pacman",
    "fedora": "dnf",
    "debian": "apt",
}


def parse_os_release(text: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        k, v = line.split("=", 1)
        out[k.strip()] = v.strip().strip('"').strip("'")
    return out


def detect_distro(path: str = OS_RELEASE) -> Optional[str]:
    """Map /etc/os-release to a distro family (arch|fedora|debian)."""

    try:
        info = parse_os_release(Path(path).read_text(encoding="utf-8", errors="ignore"))
    except OSError:
        logger.warning("Cannot read %s; distro unknown", path)
        return None

    candidates = [info.get("ID", "")] + info.get("ID_LIKE", "").split()
    for c in candidates:
        family = _FAMILY_MAP.get(c.lower())
        if family:
            logger.info("Detected distro %s (ID=%s)", family, info.get("ID"))
            return family
    logger.warning("Unsupported distro ID=%s ID_LIKE=%s", info.get("ID"), info.get("ID_LIKE"))
    return None


def package_manager_for(distro: Optional[str]) -> str:
    if not distro or distro not in PACKAGE_MANAGERS:
        raise ValueError(f"No package manager known for distro {distro!r}")
    return PACKAGE_MANAGERS[distro]
