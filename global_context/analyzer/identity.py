"""Stable identities for context declarations."""
import hashlib
from pathlib import PurePath


def identity_source(relative_path: str | PurePath, bound_name: str) -> str:
    """Build the string that gets hashed: ``<relative path>@<bound name>``.

    Paths are always rendered with forward slashes so the same checkout
    produces the same identity on every platform.
    """
    if not isinstance(relative_path, PurePath):
        relative_path = PurePath(relative_path)
    return f"{relative_path.as_posix()}@{bound_name}"


def derive_identity(relative_path: str | PurePath, bound_name: str) -> str:
    """Hash a file-relative path and binding name to a short fingerprint.

    Args:
        relative_path: Path of the source file relative to its manifest directory
        bound_name: Name of the variable the context is assigned to

    Returns:
        12 character lowercase hex digest
    """
    data = identity_source(relative_path, bound_name).encode("utf-8")
    return hashlib.blake2b(data, digest_size=6).hexdigest()
