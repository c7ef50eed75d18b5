from __future__ import annotations

import getpass
import logging
import os
import threading
from typing import Callable, List, Optional

from ..errors import ActionError
from .command import run_cmd

logger = logging.getLogger(__name__)


DEFAULT_KEEPALIVE_INTERVAL_S = 60.0


class SudoSession:
    """Elevated-privilege handle passed to steps through the context.

    The password is asked once and held in memory only. It is written to
    ``sudo -S`` by ``validate``/``refresh`` alone; every other command runs
    with ``sudo -n`` against the cached credentials, so the password never
    reaches a child process's stdin.
    """

    def __init__(self, password: Optional[str] = None, *, is_root: Optional[bool] = None) -> None:
        self._password = password
        self.is_root = (os.geteuid() == 0) if is_root is None else is_root

    @classmethod
    def prompt(cls, prompt: str = "Enter your sudo password: ") -> "SudoSession":
        if os.geteuid() == 0:
            return cls(is_root=True)
        return cls(getpass.getpass(prompt))

    def prefix(self) -> List[str]:
        if self.is_root:
            return []
        return ["sudo", "-n"]

    def wrap(self, argv: List[str]) -> List[str]:
        return [*self.prefix(), *argv]

    def validate(self) -> None:
        """Check the credentials and refresh sudo's timestamp."""

        if self.is_root:
            return
        if self._password is None:
            r = run_cmd(["sudo", "-n", "-v"], check=False)
        else:
            r = run_cmd(["sudo", "-S", "-p", "", "-v"], check=False, input_text=self._password + "\n")
        if r.returncode != 0:
            raise ActionError(f"sudo credential check failed: {r.stderr.strip() or r.returncode}")

    refresh = validate


class KeepAlive:
    """Periodically refresh cached credentials on a background thread.

    The stop event is the only state shared with the main thread. The
    thread is a daemon so it never outlives the process.
    """

    def __init__(
        self,
        refresh: Callable[[], None],
        interval_s: float = DEFAULT_KEEPALIVE_INTERVAL_S,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("keep-alive interval must be positive")
        self._refresh = refresh
        self.interval_s = interval_s
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.refresh_count = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "KeepAlive":
        if self.running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="sudo-keepalive", daemon=True)
        self._thread.start()
        logger.debug("Credential keep-alive started (every %ss)", self.interval_s)
        return self

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.debug("Credential keep-alive stopped after %d refreshes", self.refresh_count)

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_s):
            try:
                self._refresh()
                self.refresh_count += 1
            except Exception as e:
                logger.warning("Credential refresh failed: %s", e)

    def __enter__(self) -> "KeepAlive":
        return self.start()

    def __exit__(self, *exc: object) -> None:
        self.stop()
