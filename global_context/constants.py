"""Module and function names the rewrite pass recognizes and emits."""

CREATE_CONTEXT_CALL = "create_context"

# Modules whose create_context() calls get rewritten by default
NATIVE_CONTEXT_MODULE = "global_context.context"
CONTEXT_SELECTOR_MODULE = "global_context.selector"

# Namespace identifier accepted for the qualified form: context.create_context(...)
QUALIFIED_NAMESPACE = "context"

# Global factories injected into rewritten modules
GLOBAL_CONTEXT_MODULE = "global_context.shared"
GLOBAL_CONTEXT_SELECTOR_MODULE = "global_context.shared_selector"

# Local names are single-underscore so class bodies don't mangle them
RESERVED_PREFIX = "_global_context_"
GLOBAL_CONTEXT_CALL = RESERVED_PREFIX + "create"
GLOBAL_CONTEXT_SELECTOR_CALL = RESERVED_PREFIX + "create_selector"

# Runtime registry namespaces
REGISTRY_NAMESPACE = "global-context"
SELECTOR_REGISTRY_NAMESPACE = "global-context-selector"

MANIFEST_NAMES = ("pyproject.toml", "package.json")
