"""Data model shared by the collection and rewrite passes."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

import libcst as cst


class Variant(str, Enum):
    """Which family of context factory a binding or call belongs to."""

    NATIVE = "native"
    SELECTOR = "selector"


@dataclass(frozen=True)
class ImportBinding:
    module_source: str
    local_alias: str
    variant: Variant


@dataclass(frozen=True)
class CallSiteMatch:
    """A detected context-creating call.

    Only matches with a ``bound_name`` are rewritten; the others are kept so
    callers can report what was seen.
    """

    node: cst.Call = field(compare=False)
    bound_name: Optional[str]
    variant: Variant

    @property
    def eligible(self) -> bool:
        return self.bound_name is not None


@dataclass(frozen=True)
class CollectionResult:
    """Immutable outcome of the read-only collection pass over one module."""

    used_modules: Tuple[str, ...] = ()
    bindings: Tuple[ImportBinding, ...] = ()
    matches: Tuple[CallSiteMatch, ...] = ()

    @property
    def uses_configured_module(self) -> bool:
        return bool(self.used_modules)

    def eligible(self, variant: Variant) -> Tuple[CallSiteMatch, ...]:
        return tuple(
            match for match in self.matches
            if match.variant is variant and match.eligible
        )

    @property
    def has_eligible(self) -> bool:
        return any(match.eligible for match in self.matches)
