"""Secret scopes.

A secret lives either in the platform-wide namespace (``GLOBAL``) or in the
namespace of one workflow definition (``WorkflowScope("name")``).
"""
from dataclasses import dataclass
from typing import Optional


class Scope:
    """Namespace a secret belongs to."""

    __slots__ = ()

    @property
    def workflow_name(self) -> Optional[str]:
        return None

    @property
    def is_global(self) -> bool:
        return self.workflow_name is None

    @staticmethod
    def of(workflow_name: Optional[str] = None) -> "Scope":
        """Build a scope from an optional workflow name.

        ``None`` selects the global scope; any other value must be a
        non-empty workflow name.
        """
        if workflow_name is None:
            return GLOBAL
        return WorkflowScope(workflow_name)


@dataclass(frozen=True)
class GlobalScope(Scope):
    """Platform-wide scope."""

    def __str__(self) -> str:
        return "global"


@dataclass(frozen=True)
class WorkflowScope(Scope):
    """Scope bound to a single workflow definition."""

    workflow: str

    def __post_init__(self):
        if not isinstance(self.workflow, str) or not self.workflow:
            raise ValueError("Workflow scope requires a non-empty workflow name")

    @property
    def workflow_name(self) -> Optional[str]:
        return self.workflow

    def __str__(self) -> str:
        return f"workflow:{self.workflow}"


GLOBAL = GlobalScope()
