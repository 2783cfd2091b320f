"""Classification of call expressions that create contexts."""
from dataclasses import dataclass
from typing import Collection, List, Optional, Tuple, Union

import libcst as cst
from libcst.metadata import QualifiedName, QualifiedNameSource

from global_context.analyzer.model import Variant
from global_context.config import ModuleSpec
from global_context.constants import CREATE_CONTEXT_CALL, QUALIFIED_NAMESPACE


@dataclass(frozen=True)
class NameCallee:
    """``create_context(...)`` or an aliased ``make_ctx(...)``."""

    node: cst.Name

    @property
    def name(self) -> str:
        return self.node.value


@dataclass(frozen=True)
class QualifiedCallee:
    """``namespace.attr(...)`` where namespace is a bare name."""

    namespace: str
    attr: str


@dataclass(frozen=True)
class OtherCallee:
    """Anything else: subscripts, calls returning callables, deeper attribute chains."""


CalleeKind = Union[NameCallee, QualifiedCallee, OtherCallee]


def classify_callee(callee: cst.BaseExpression) -> CalleeKind:
    if isinstance(callee, cst.Name):
        return NameCallee(callee)
    if isinstance(callee, cst.Attribute) and isinstance(callee.value, cst.Name):
        return QualifiedCallee(callee.value.value, callee.attr.value)
    return OtherCallee()


def resolves_to_import(qualified_names: Collection[QualifiedName], spec: ModuleSpec) -> bool:
    """True when every binding of a name is the import of ``spec``.

    A name that is also assigned, passed as a parameter, or imported from
    elsewhere in a visible scope resolves to more than one qualified name and
    is rejected.
    """
    if not qualified_names:
        return False
    return all(
        qn.source is QualifiedNameSource.IMPORT and qn.name == spec.qualified_name
        for qn in qualified_names
    )


def match_variant(
    kind: CalleeKind,
    active: List[Tuple[str, ModuleSpec]],
    qualified_names: Collection[QualifiedName] = (),
) -> Optional[Variant]:
    """Decide which factory variant a callee belongs to.

    Args:
        kind: Classified callee
        active: (alias, spec) pairs currently tracked, most recent first
        qualified_names: Static resolution of a NameCallee

    Returns:
        The matched variant, or None if the call is not a context factory
    """
    if isinstance(kind, NameCallee):
        for alias, spec in active:
            if kind.name == alias and resolves_to_import(qualified_names, spec):
                return spec.variant
        return None

    if isinstance(kind, QualifiedCallee):
        # The namespace is matched by name only, never through the import table
        if kind.namespace == QUALIFIED_NAMESPACE and kind.attr == CREATE_CONTEXT_CALL:
            return Variant.NATIVE
    return None


def bound_name(call: cst.Call, parent: Optional[cst.CSTNode]) -> Optional[str]:
    """Name of the variable a call initializes, if the call is a declarator value.

    Accepts ``Foo = call(...)`` and ``Foo: T = call(...)``. Chained or
    unpacking assignments are not declarators.
    """
    if isinstance(parent, cst.Assign) and parent.value is call:
        if len(parent.targets) == 1 and isinstance(parent.targets[0].target, cst.Name):
            return parent.targets[0].target.value
    elif isinstance(parent, cst.AnnAssign) and parent.value is call:
        if isinstance(parent.target, cst.Name):
            return parent.target.value
    return None
