from __future__ import annotations

import hashlib
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence

from ..errors import ActionError, VerificationError

if TYPE_CHECKING:
    from ..context import ProvisionContext

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = {"https", "file"}
USER_AGENT = "workstation-setup/1.0"


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def fetch(url: str, dest: Path, *, sha256: Optional[str] = None, timeout: float = 60.0) -> Path:
    """Download ``url`` to ``dest`` and verify it before anyone runs it.

    Only https and file URLs are accepted. A pinned SHA-256 is checked and
    a mismatch removes the file and raises VerificationError.
    """

    scheme = urllib.parse.urlparse(url).scheme
    if scheme not in ALLOWED_SCHEMES:
        raise ActionError(f"Refusing to download over {scheme or 'unknown'} scheme: {url}")

    dest.parent.mkdir(parents=True, exist_ok=True)
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    logger.info("Downloading %s -> %s", url, dest)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp, open(dest, "wb") as f:
            while True:
                chunk = resp.read(8192)
                if not chunk:
                    break
                f.write(chunk)
    except (urllib.error.URLError, OSError) as e:
        dest.unlink(missing_ok=True)
        raise ActionError(f"Download failed: {url}: {e}") from e

    if sha256:
        actual = sha256_file(dest)
        if actual.lower() != sha256.lower():
            dest.unlink()
            raise VerificationError(f"Checksum mismatch for {url}: expected {sha256}, got {actual}")
        logger.info("Verified sha256 of %s", dest.name)
    else:
        logger.warning("No checksum pinned for %s; running unverified artifact", url)
    return dest


def run_installer(
    ctx: "ProvisionContext",
    url: str,
    *,
    interpreter: Sequence[str] = ("sh",),
    args: Sequence[str] = (),
    sha256: Optional[str] = None,
    sudo: bool = False,
) -> None:
    """Download an installer script, verify it, then execute it."""

    name = os.path.basename(urllib.parse.urlparse(url).path) or "installer.sh"
    dest = ctx.work_path / "workstation-setup-downloads" / name
    if ctx.dry_run:
        logger.info("Would download %s and run it with %s", url, " ".join(interpreter))
        return
    fetch(url, dest, sha256=sha256)
    try:
        ctx.run([*interpreter, str(dest), *args], sudo=sudo)
    finally:
        dest.unlink(missing_ok=True)
