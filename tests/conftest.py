from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import pytest

from workstation_setup.context import ProvisionContext
from workstation_setup.errors import ActionError
from workstation_setup.model import Step


class World:
    """In-memory stand-in for the live system.

    Each step name maps to a "satisfied" flag; probes read it and actions
    flip it. Every call is logged so tests can assert on side effects.
    """

    def __init__(self) -> None:
        self.satisfied: Dict[str, bool] = {}
        self.calls: List[str] = []

    def step(
        self,
        name: str,
        *,
        depends_on: Sequence[str] = (),
        fatal: bool = True,
        satisfied: bool = False,
        fails: bool = False,
        lies: bool = False,
        condition: Optional[bool] = None,
    ) -> Step:
        self.satisfied[name] = satisfied

        def probe(ctx: ProvisionContext) -> bool:
            self.calls.append(f"probe:{name}")
            return self.satisfied[name]

        def action(ctx: ProvisionContext) -> None:
            self.calls.append(f"act:{name}")
            if fails:
                raise ActionError(f"{name} exploded")
            if not lies:
                self.satisfied[name] = True

        cond = None
        if condition is not None:
            def cond(ctx: ProvisionContext) -> bool:
                self.calls.append(f"cond:{name}")
                return condition

        return Step(
            name=name,
            probe=probe,
            action=action,
            depends_on=tuple(depends_on),
            fatal=fatal,
            condition=cond,
        )

    def acted(self) -> List[str]:
        return [c.split(":", 1)[1] for c in self.calls if c.startswith("act:")]


@pytest.fixture
def world() -> World:
    return World()


@pytest.fixture
def ctx(tmp_path) -> ProvisionContext:
    return ProvisionContext(work_dir=str(tmp_path / "work"))


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root = logging.getLogger()
    for h in list(root.handlers):
        if getattr(h, "_workstation_setup_handler", False):
            root.removeHandler(h)
            h.close()
