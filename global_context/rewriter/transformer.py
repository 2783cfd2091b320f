"""LibCST transformer that swaps context factories for their global versions."""
import json
from typing import Dict, List, Sequence, Union

import libcst as cst
from libcst import matchers as m

from global_context.analyzer.identity import derive_identity
from global_context.analyzer.model import CallSiteMatch, CollectionResult, Variant
from global_context.analyzer.provenance import Provenance
from global_context.constants import (
    CREATE_CONTEXT_CALL,
    GLOBAL_CONTEXT_CALL,
    GLOBAL_CONTEXT_MODULE,
    GLOBAL_CONTEXT_SELECTOR_CALL,
    GLOBAL_CONTEXT_SELECTOR_MODULE,
)

# Keyword names of the trailing parameters on the global factories
IDENTITY_KEYWORDS = ("name", "package_name", "package_version")

GLOBAL_FACTORIES = {
    Variant.NATIVE: (GLOBAL_CONTEXT_MODULE, GLOBAL_CONTEXT_CALL),
    Variant.SELECTOR: (GLOBAL_CONTEXT_SELECTOR_MODULE, GLOBAL_CONTEXT_SELECTOR_CALL),
}


def create_global_context_import(variant: Variant) -> cst.SimpleStatementLine:
    module_name, local_name = GLOBAL_FACTORIES[variant]
    return cst.parse_statement(
        f"from {module_name} import {CREATE_CONTEXT_CALL} as {local_name}\n"
    )


def _string_literal(value: str) -> cst.SimpleString:
    return cst.SimpleString(json.dumps(value, ensure_ascii=False))


def _is_docstring(statement: cst.CSTNode) -> bool:
    return m.matches(
        statement,
        m.SimpleStatementLine(body=[m.Expr(value=m.SimpleString() | m.ConcatenatedString())]),
    )


def _is_future_import(statement: cst.CSTNode) -> bool:
    return m.matches(
        statement,
        m.SimpleStatementLine(body=[m.AtLeastN(n=1, matcher=m.ImportFrom(module=m.Name("__future__")))]),
    )


class GlobalContextTransformer(cst.CSTTransformer):
    """Apply pass over a module whose usages were already collected.

    Every eligible match is replaced by a call to the global factory of its
    variant with three extra arguments: identity hash, package name and
    package version. Imports for the factories actually used are inserted
    selector first, then native, ahead of the original statements.
    """

    def __init__(self, result: CollectionResult, provenance: Provenance, relative_path: str):
        self.result = result
        self.provenance = provenance
        self.relative_path = relative_path
        self._targets: Dict[cst.Call, CallSiteMatch] = {
            match.node: match for match in result.matches if match.eligible
        }
        self.rewritten_count = 0

    def _identity_args(self, match: CallSiteMatch, as_keywords: bool) -> List[cst.Arg]:
        values = (
            derive_identity(self.relative_path, match.bound_name),
            self.provenance.package_name,
            self.provenance.package_version,
        )
        if as_keywords:
            return [
                cst.Arg(
                    value=_string_literal(value),
                    keyword=cst.Name(keyword),
                    equal=cst.AssignEqual(
                        whitespace_before=cst.SimpleWhitespace(""),
                        whitespace_after=cst.SimpleWhitespace(""),
                    ),
                )
                for keyword, value in zip(IDENTITY_KEYWORDS, values)
            ]
        return [cst.Arg(value=_string_literal(value)) for value in values]

    def leave_Call(self, original_node: cst.Call, updated_node: cst.Call) -> cst.BaseExpression:
        match = self._targets.get(original_node)
        if match is None:
            return updated_node

        # Positional arguments can't follow keyword or ** arguments
        as_keywords = any(arg.keyword is not None or arg.star == "**" for arg in updated_node.args)

        _, local_name = GLOBAL_FACTORIES[match.variant]
        self.rewritten_count += 1
        return updated_node.with_changes(
            func=cst.Name(local_name),
            args=[*updated_node.args, *self._identity_args(match, as_keywords)],
        )

    def _imports_to_inject(self) -> List[cst.SimpleStatementLine]:
        statements = []
        for variant in (Variant.SELECTOR, Variant.NATIVE):
            if self.result.eligible(variant):
                statements.append(create_global_context_import(variant))
        return statements

    def leave_Module(self, original_node: cst.Module, updated_node: cst.Module) -> cst.Module:
        injected = self._imports_to_inject()
        if not injected:
            return updated_node

        body: Sequence[Union[cst.SimpleStatementLine, cst.BaseCompoundStatement]] = updated_node.body
        # Docstring and __future__ imports must stay first
        insert_at = 1 if body and _is_docstring(body[0]) else 0
        while insert_at < len(body) and _is_future_import(body[insert_at]):
            insert_at += 1

        return updated_node.with_changes(
            body=[*body[:insert_at], *injected, *body[insert_at:]]
        )
