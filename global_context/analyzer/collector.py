"""Read-only collection pass over one module.

Import tracking and call-site classification share a single forward
traversal. Nothing is modified here; the rewriter consumes the resulting
CollectionResult afterwards.
"""
from typing import List, Optional, Tuple

import libcst as cst
from libcst.metadata import MetadataWrapper, ParentNodeProvider, QualifiedNameProvider

from global_context.analyzer.call_sites import (
    NameCallee,
    OtherCallee,
    bound_name,
    classify_callee,
    match_variant,
)
from global_context.analyzer.imports import ImportResolver
from global_context.analyzer.model import CallSiteMatch, CollectionResult
from global_context.config import RewriteOptions


class ContextUsageCollector(cst.CSTVisitor):
    """Collects configured imports and the context-creating calls that use them."""

    METADATA_DEPENDENCIES = (QualifiedNameProvider, ParentNodeProvider)

    def __init__(self, options: Optional[RewriteOptions] = None):
        super().__init__()
        self.imports = ImportResolver(options or RewriteOptions())
        self.matches: List[CallSiteMatch] = []

    def visit_ImportFrom(self, node: cst.ImportFrom) -> None:
        self.imports.visit_import_from(node)

    def visit_Import(self, node: cst.Import) -> None:
        self.imports.visit_import(node)

    def visit_Call(self, node: cst.Call) -> None:
        # Nothing imported yet means nothing can match
        if not self.imports.used_modules:
            return

        kind = classify_callee(node.func)
        if isinstance(kind, OtherCallee):
            return

        qualified_names = ()
        if isinstance(kind, NameCallee):
            qualified_names = self.get_metadata(QualifiedNameProvider, node.func, set())

        variant = match_variant(kind, self.imports.active_specs(), qualified_names)
        if variant is None:
            return

        parent = self.get_metadata(ParentNodeProvider, node, None)
        self.matches.append(CallSiteMatch(node, bound_name(node, parent), variant))

    def result(self) -> CollectionResult:
        return CollectionResult(
            used_modules=tuple(self.imports.used_modules),
            bindings=tuple(self.imports.bindings),
            matches=tuple(self.matches),
        )


def collect(
    module: cst.Module, options: Optional[RewriteOptions] = None
) -> Tuple[CollectionResult, cst.Module]:
    """Run the collection pass.

    Args:
        module: Parsed module
        options: Rewrite options (defaults if omitted)

    Returns:
        Tuple of (result, visited module). Nodes referenced by the result
        belong to the visited module, which is a copy made by MetadataWrapper.
    """
    wrapper = MetadataWrapper(module)
    collector = ContextUsageCollector(options)
    wrapper.visit(collector)
    return collector.result(), wrapper.module
