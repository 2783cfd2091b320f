"""Package provenance lookup.

Every rewritten call carries the name and version of the package its file
belongs to. The owning package is the nearest manifest found by walking up
from the file's directory: a ``pyproject.toml`` (``[project]`` table, or
``[tool.poetry]`` for Poetry projects) or a ``package.json``.
"""
import json
import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from global_context.constants import MANIFEST_NAMES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Provenance:
    manifest_path: Path
    package_name: str
    package_version: str

    @property
    def root(self) -> Path:
        """Directory holding the manifest."""
        return self.manifest_path.parent

    def relative_path(self, filename: str | Path) -> str:
        """Path of ``filename`` relative to the manifest directory, POSIX style."""
        return Path(filename).resolve().relative_to(self.root.resolve()).as_posix()


def find_manifest(start_dir: str | Path, names: Sequence[str] = MANIFEST_NAMES) -> Optional[Path]:
    """Walk upward from start_dir to the nearest manifest.

    Args:
        start_dir: Directory to start searching from
        names: Manifest file names, in order of preference within a directory

    Returns:
        Path to the manifest, or None if the filesystem root was reached
    """
    current = Path(start_dir).resolve()
    for directory in (current, *current.parents):
        for name in names:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def _extract_fields(manifest_path: Path) -> Optional[dict]:
    if manifest_path.suffix == ".toml":
        with open(manifest_path, "rb") as f:
            data = tomllib.load(f)
        project = data.get("project") or {}
        if "name" in project and "version" in project:
            return project
        # Poetry keeps metadata under tool.poetry
        return data.get("tool", {}).get("poetry") or project

    with open(manifest_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return data if isinstance(data, dict) else None


def read_manifest(manifest_path: str | Path) -> Optional[Provenance]:
    """Parse a manifest into Provenance.

    Args:
        manifest_path: Path to pyproject.toml or package.json

    Returns:
        Provenance, or None if the manifest is unreadable or lacks
        a string name and version
    """
    manifest_path = Path(manifest_path)
    try:
        fields = _extract_fields(manifest_path)
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
        logger.warning("Could not read manifest %s: %s", manifest_path, e)
        return None

    name = fields.get("name") if fields else None
    version = fields.get("version") if fields else None
    if not isinstance(name, str) or not isinstance(version, str) or not name or not version:
        logger.warning("Manifest %s has no static name/version", manifest_path)
        return None

    return Provenance(manifest_path=manifest_path, package_name=name, package_version=version)


def resolve_provenance(
    filename: str | Path, names: Sequence[str] = MANIFEST_NAMES
) -> Optional[Provenance]:
    """Resolve the package a source file belongs to.

    Returns:
        Provenance, or None when no usable manifest encloses the file
    """
    manifest_path = find_manifest(Path(filename).resolve().parent, names)
    if manifest_path is None:
        logger.debug("No manifest found above %s", filename)
        return None
    return read_manifest(manifest_path)
