from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Optional

DEFAULT_LOG_DIR = "logs"
_HANDLER_TAG = "_workstation_setup_handler"


def default_log_path(log_dir: str = DEFAULT_LOG_DIR, now: Optional[float] = None) -> str:
    """One log file per run: logs/workstation-setup-<UTC timestamp>.log"""

    stamp = time.strftime("%Y%m%dT%H%M%S", time.gmtime(now))
    return str(Path(log_dir) / f"workstation-setup-{stamp}.log")


def configure_logging(
    log_path: Optional[str] = None,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure logging.

    Every record goes to an append-only log file and is mirrored to the
    console as it happens.

    Notes:
    - If the requested file cannot be opened we fall back to a file in the
      working directory and keep going.
    - Calling this again replaces the handlers installed by a previous call,
      so repeated runs in one process do not duplicate output.

    Returns the actual file path being used.
    """

    log_path = log_path or default_log_path()
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        if getattr(h, _HANDLER_TAG, False):
            root.removeHandler(h)
            h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    handlers: list[logging.Handler] = []
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler: logging.Handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        chosen_path = log_path
    except OSError:
        fallback = str(Path.cwd() / Path(log_path).name)
        file_handler = logging.FileHandler(fallback, mode="a", encoding="utf-8")
        chosen_path = fallback
    # The file always gets the full detail, including command output.
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(fmt)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(fmt)
        handlers.append(console)

    for h in handlers:
        setattr(h, _HANDLER_TAG, True)
        root.addHandler(h)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
