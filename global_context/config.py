"""Configuration management for global-context.

Environment-backed runtime settings plus the validated option set that
drives the rewrite pass.
"""
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from dotenv import load_dotenv

from global_context.analyzer.model import Variant
from global_context.constants import (
    CONTEXT_SELECTOR_MODULE,
    CREATE_CONTEXT_CALL,
    MANIFEST_NAMES,
    NATIVE_CONTEXT_MODULE,
    REGISTRY_NAMESPACE,
    SELECTOR_REGISTRY_NAMESPACE,
)

__version__ = "1.0.0"


class ConfigurationError(ValueError):
    """Raised when rewrite options are malformed."""


@dataclass(frozen=True)
class ModuleSpec:
    """One module/function pair whose calls get rewritten."""

    module_source: str
    import_name: str
    variant: Variant = Variant.NATIVE

    @property
    def qualified_name(self) -> str:
        return f"{self.module_source}.{self.import_name}"


DEFAULT_MODULES = (
    ModuleSpec(NATIVE_CONTEXT_MODULE, CREATE_CONTEXT_CALL, Variant.NATIVE),
    ModuleSpec(CONTEXT_SELECTOR_MODULE, CREATE_CONTEXT_CALL, Variant.SELECTOR),
)


@dataclass(frozen=True)
class RewriteOptions:
    """Validated options for the rewrite pass.

    Construction fails with ConfigurationError before any file is touched.
    """

    modules: Tuple[ModuleSpec, ...] = DEFAULT_MODULES
    manifest_names: Tuple[str, ...] = field(default=MANIFEST_NAMES)

    def __post_init__(self):
        if not self.modules:
            raise ConfigurationError("At least one module must be configured.")
        for spec in self.modules:
            if not isinstance(spec, ModuleSpec):
                raise ConfigurationError(f"Expected ModuleSpec, got {spec!r}")
            for field_name in ("module_source", "import_name"):
                value = getattr(spec, field_name)
                if not isinstance(value, str) or not value.strip():
                    raise ConfigurationError(
                        f"Module entry {spec!r} has an empty '{field_name}'."
                    )
            if not isinstance(spec.variant, Variant):
                raise ConfigurationError(f"Unknown variant for {spec!r}")
        if not self.manifest_names:
            raise ConfigurationError("At least one manifest name is required.")

    @classmethod
    def from_entries(cls, entries: Iterable[dict], **kwargs) -> "RewriteOptions":
        """Build options from plain mappings.

        Args:
            entries: Mappings with ``module_source`` and ``import_name`` keys and
                an optional ``variant`` ("native" or "selector")

        Returns:
            Validated RewriteOptions

        Raises:
            ConfigurationError: If any entry is malformed
        """
        modules: List[ModuleSpec] = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise ConfigurationError(f"Module entry must be a mapping, got {entry!r}")
            try:
                variant = Variant(entry.get("variant", Variant.NATIVE.value))
            except ValueError:
                raise ConfigurationError(
                    f"Unknown variant {entry.get('variant')!r}; "
                    f"expected one of {[v.value for v in Variant]}"
                )
            modules.append(ModuleSpec(
                module_source=entry.get("module_source", ""),
                import_name=entry.get("import_name", ""),
                variant=variant,
            ))
        return cls(modules=tuple(modules), **kwargs)

    @classmethod
    def from_cli(cls, values: Iterable[str]) -> "RewriteOptions":
        """Parse ``module:name[:variant]`` strings given on the command line."""
        entries = []
        for value in values:
            parts = value.split(":")
            if len(parts) not in (2, 3):
                raise ConfigurationError(
                    f"Invalid module option '{value}'. Use MODULE:NAME[:VARIANT]."
                )
            entry = {"module_source": parts[0], "import_name": parts[1]}
            if len(parts) == 3:
                entry["variant"] = parts[2]
            entries.append(entry)
        return cls.from_entries(entries)

    def specs_for_module(self, module_source: str) -> List[ModuleSpec]:
        return [spec for spec in self.modules if spec.module_source == module_source]


def load_project_options(project_root: str | Path) -> RewriteOptions:
    """Read ``[tool.global-context]`` from a project's pyproject.toml.

    Args:
        project_root: Directory containing pyproject.toml

    Returns:
        Options from the file, or the defaults when the table is absent

    Raises:
        ConfigurationError: If the table exists but is malformed
    """
    pyproject = Path(project_root) / "pyproject.toml"
    if not pyproject.exists():
        return RewriteOptions()

    try:
        with open(pyproject, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Failed to parse {pyproject}: {e}")

    table = data.get("tool", {}).get("global-context")
    if table is None:
        return RewriteOptions()

    kwargs = {}
    if "manifest_names" in table:
        kwargs["manifest_names"] = tuple(table["manifest_names"])
    if "modules" in table:
        return RewriteOptions.from_entries(table["modules"], **kwargs)
    return RewriteOptions(**kwargs)


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_path: Optional[Path] = None):
        """Initialize config by loading a .env file.

        Args:
            env_path: Explicit .env location; defaults to the working directory
        """
        load_dotenv(env_path or Path.cwd() / ".env")

    @property
    def environment(self) -> str:
        """Deployment environment, ``development`` unless told otherwise."""
        return os.getenv("GLOBAL_CONTEXT_ENV", "development").strip().lower()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def namespace(self) -> str:
        """Registry namespace prefix for native contexts."""
        return os.getenv("GLOBAL_CONTEXT_NAMESPACE", REGISTRY_NAMESPACE)

    @property
    def selector_namespace(self) -> str:
        """Registry namespace prefix for selector contexts."""
        return os.getenv("GLOBAL_CONTEXT_SELECTOR_NAMESPACE", SELECTOR_REGISTRY_NAMESPACE)


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config
