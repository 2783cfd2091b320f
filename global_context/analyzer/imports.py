"""Tracks which context factories a module imports, and under which names."""
import logging
from typing import Dict, List, Set, Tuple

import libcst as cst
from libcst.helpers import get_full_name_for_node

from global_context.analyzer.model import ImportBinding
from global_context.config import ModuleSpec, RewriteOptions
from global_context.constants import RESERVED_PREFIX

logger = logging.getLogger(__name__)


class ImportResolver:
    """Records configured imports seen during a forward traversal.

    Handles:
        from pkg.context import create_context
        from pkg.context import create_context as make_ctx
        from pkg import context            (namespace use of a configured module)
        import pkg.context as context      (namespace use of a configured module)

    Only the ``from`` form with the configured function name yields an
    ImportBinding. The latest binding per configured module wins.
    """

    def __init__(self, options: RewriteOptions):
        self.options = options
        self.used_modules: List[str] = []
        self.bindings: List[ImportBinding] = []
        # Spec -> local alias, in order of most recent binding
        self._active: Dict[ModuleSpec, str] = {}
        self._sources: Set[str] = {spec.module_source for spec in options.modules}

    def _mark_used(self, module_source: str):
        if module_source not in self.used_modules:
            self.used_modules.append(module_source)

    def visit_import_from(self, node: cst.ImportFrom) -> List[ImportBinding]:
        """Record bindings from a ``from ... import ...`` statement.

        Args:
            node: ImportFrom node

        Returns:
            Bindings created by this statement
        """
        # Relative imports can't name a configured module
        if node.relative or node.module is None:
            return []

        module_source = get_full_name_for_node(node.module)
        if isinstance(node.names, cst.ImportStar):
            if module_source in self._sources:
                self._mark_used(module_source)
            return []

        if module_source not in self._sources:
            # from pkg import context -> namespace use of pkg.context
            for alias in node.names:
                if f"{module_source}.{alias.evaluated_name}" in self._sources:
                    self._mark_used(f"{module_source}.{alias.evaluated_name}")
            return []

        self._mark_used(module_source)
        created = []
        for alias in node.names:
            imported = alias.evaluated_name
            local = alias.evaluated_alias or imported
            if local.startswith(RESERVED_PREFIX):
                continue
            for spec in self.options.specs_for_module(module_source):
                if spec.import_name != imported:
                    continue
                previous = self._active.pop(spec, None)
                if previous is not None and previous != local:
                    logger.debug(
                        "Alias %r replaces %r for %s", local, previous, spec.qualified_name
                    )
                binding = ImportBinding(module_source, local, spec.variant)
                self._active[spec] = local
                self.bindings.append(binding)
                created.append(binding)
        return created

    def visit_import(self, node: cst.Import):
        for alias in node.names:
            if alias.evaluated_name in self._sources:
                self._mark_used(alias.evaluated_name)

    def active_specs(self) -> List[Tuple[str, ModuleSpec]]:
        """Active (alias, spec) pairs, most recently bound first."""
        return [(alias, spec) for spec, alias in reversed(self._active.items())]
