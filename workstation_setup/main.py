from __future__ import annotations

import argparse
import logging
import signal
import sys
import tempfile
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from .context import ProvisionContext
from .definitions import Definition, available_profiles, load_definitions, load_profile
from .errors import DefinitionError, ProvisionError
from .lib.osinfo import detect_distro
from .lib.sudo import DEFAULT_KEEPALIVE_INTERVAL_S, KeepAlive, SudoSession
from .logging_utils import configure_logging
from .model import EXIT_FATAL, Run
from .reporter import Reporter, write_report
from .sequencer import Sequencer

logger = logging.getLogger(__name__)


def exit_code_for(run: Run) -> int:
    return run.exit_code


@contextmanager
def interrupt_cancels(cancel: threading.Event) -> Iterator[None]:
    """Turn SIGINT into a request to stop before the next step.

    A second interrupt falls through to the default handler.
    """

    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):
        if cancel.is_set():
            signal.default_int_handler(signum, frame)
        logger.warning("Interrupt received; finishing the current step, then stopping")
        cancel.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _load(definition_path: Optional[str], profile: Optional[str]) -> Definition:
    if definition_path:
        return load_definitions(definition_path)
    name = profile or detect_distro()
    if not name:
        raise DefinitionError(
            f"Cannot pick a built-in profile for this system; pass a definition file or --profile {available_profiles()}"
        )
    return load_profile(name)


def run(
    *,
    definition_path: Optional[str] = None,
    profile: Optional[str] = None,
    log_path: Optional[str] = None,
    report_path: Optional[str] = None,
    dry_run: bool = False,
    use_sudo: bool = True,
    keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL_S,
    verbose: bool = False,
    cancel: Optional[threading.Event] = None,
) -> Run:
    """Load the step definitions and execute one run."""

    actual_log_path = configure_logging(log_path=log_path, level=logging.DEBUG if verbose else logging.INFO)
    logger.info("Run log: %s", actual_log_path)

    try:
        definition = _load(definition_path, profile)
    except DefinitionError as e:
        logger.error("%s", e)
        rejected = Run(dry_run=dry_run, error=e)
        print(Reporter().summarize(rejected))
        return rejected

    sudo: Optional[SudoSession] = None
    keepalive: Optional[KeepAlive] = None
    if use_sudo and definition.needs_sudo and not dry_run:
        sudo = SudoSession.prompt()
        sudo.validate()
        keepalive = KeepAlive(sudo.refresh, interval_s=keepalive_interval)

    ctx = ProvisionContext(
        dry_run=dry_run,
        env=definition.environment,
        path_prepend=definition.path_prepend,
        sudo=sudo,
        distro=definition.distro,
        work_dir=definition.work_dir or tempfile.gettempdir(),
    )

    reporter = Reporter()
    cancel = cancel or threading.Event()
    try:
        if keepalive is not None:
            keepalive.start()
        with interrupt_cancels(cancel):
            result = Sequencer(ctx, reporter=reporter, cancel=cancel).execute(definition.steps)
    finally:
        if keepalive is not None:
            keepalive.stop()

    print(reporter.summarize(result))
    if report_path:
        write_report(report_path, result)
    return result


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="workstation-setup",
        description="Provision a freshly-installed Linux workstation from idempotent steps.",
    )
    p.add_argument("definition", nargs="?", default=None, help="Step definition file (yaml|json)")
    p.add_argument("--profile", default=None, help=f"Built-in profile when no file is given {available_profiles()}")
    p.add_argument("--log", default=None, help="Path to the run log (default: logs/workstation-setup-<timestamp>.log)")
    p.add_argument("--report", default=None, help="Also write the run as json|yaml")
    p.add_argument("--dry-run", action="store_true", help="Probe only; log actions without running them")
    p.add_argument("--no-sudo", action="store_true", help="Do not ask for a sudo password")
    p.add_argument(
        "--keepalive-interval",
        type=float,
        default=DEFAULT_KEEPALIVE_INTERVAL_S,
        help="Seconds between sudo credential refreshes",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Show command output on the console")

    args = p.parse_args(argv)

    try:
        result = run(
            definition_path=args.definition,
            profile=args.profile,
            log_path=args.log,
            report_path=args.report,
            dry_run=bool(args.dry_run),
            use_sudo=not args.no_sudo,
            keepalive_interval=args.keepalive_interval,
            verbose=bool(args.verbose),
        )
    except ProvisionError as e:
        logger.exception("Setup failed")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL
    return exit_code_for(result)


if __name__ == "__main__":
    raise SystemExit(main())
