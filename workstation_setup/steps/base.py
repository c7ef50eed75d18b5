from __future__ import annotations

import logging
import os
from typing import Any, List, Mapping, Optional

from ..context import ProvisionContext
from ..errors import DefinitionError
from ..model import Step

logger = logging.getLogger(__name__)


class StepKind:
    """Base for declarative step kinds.

    Subclasses set ``kind`` and implement ``probe`` and ``act``. The raw
    mapping comes from the step-definition file; keys shared by every kind
    (name, description, depends_on, fatal, only_if_exists) are parsed here.
    """

    kind: str = ""

    def __init__(self, spec: Mapping[str, Any], *, package_manager: Optional[str] = None) -> None:
        self.spec = dict(spec)
        self.package_manager = package_manager
        self.name = self.require("name")
        self.description = str(self.spec.get("description") or "")
        self.fatal = bool(self.spec.get("fatal", True))
        self.depends_on = tuple(self.str_list("depends_on"))
        self.only_if_exists = self.spec.get("only_if_exists")

    def require(self, key: str) -> str:
        v = self.spec.get(key)
        if not isinstance(v, str) or not v.strip():
            where = self.spec.get("name") or "<unnamed>"
            raise DefinitionError(f"Step {where!r} ({self.kind}): '{key}' must be a non-empty string")
        return v.strip()

    def str_list(self, key: str, *, required: bool = False) -> List[str]:
        v = self.spec.get(key)
        if v is None:
            if required:
                raise DefinitionError(f"Step {self.spec.get('name')!r} ({self.kind}): '{key}' is required")
            return []
        if isinstance(v, str):
            return [v]
        if not isinstance(v, list) or not all(isinstance(x, str) for x in v):
            raise DefinitionError(f"Step {self.spec.get('name')!r} ({self.kind}): '{key}' must be a list of strings")
        if required and not v:
            raise DefinitionError(f"Step {self.spec.get('name')!r} ({self.kind}): '{key}' must not be empty")
        return list(v)

    def manager(self) -> str:
        pm = self.spec.get("package_manager") or self.package_manager
        if not pm:
            raise DefinitionError(f"Step {self.name!r} ({self.kind}) needs a package manager; set 'distro' or 'package_manager'")
        return str(pm)

    def condition(self, ctx: ProvisionContext) -> bool:
        if not self.only_if_exists:
            return True
        path = ctx.expand(str(self.only_if_exists))
        if os.path.exists(path):
            return True
        logger.info("%s: %s does not exist on this system; skipping", self.name, path)
        return False

    def probe(self, ctx: ProvisionContext) -> bool:
        raise NotImplementedError

    def act(self, ctx: ProvisionContext) -> None:
        raise NotImplementedError

    def to_step(self) -> Step:
        return Step(
            name=self.name,
            description=self.description,
            probe=self.probe,
            action=self.act,
            depends_on=self.depends_on,
            fatal=self.fatal,
            condition=self.condition if self.only_if_exists else None,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
