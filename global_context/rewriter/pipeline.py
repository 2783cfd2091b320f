"""Per-file rewrite pipeline: parse, collect, resolve provenance, apply."""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

import libcst as cst

from global_context.analyzer.collector import collect
from global_context.analyzer.model import CollectionResult
from global_context.analyzer.provenance import Provenance, resolve_provenance
from global_context.config import RewriteOptions
from global_context.rewriter.transformer import GlobalContextTransformer

logger = logging.getLogger(__name__)

EXCLUDED_DIRS = {
    'venv', '.venv', 'env', '.virtualenv',
    '.tox', '.nox', 'site-packages', 'dist', 'build', '__pycache__',
    'node_modules', '.git', '.mypy_cache', '.pytest_cache',
}


@dataclass(frozen=True)
class RewriteResult:
    filename: Optional[str]
    code: str
    rewritten: int = 0
    provenance: Optional[Provenance] = None
    collection: Optional[CollectionResult] = None
    skipped_reason: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.rewritten > 0


def rewrite_source(
    source: str, filename: Optional[str | Path], options: Optional[RewriteOptions] = None
) -> RewriteResult:
    """Rewrite context factory calls in one module's source.

    Args:
        source: Module source code
        filename: Path of the module on disk, used to find its manifest
        options: Rewrite options (defaults if omitted)

    Returns:
        RewriteResult; ``code`` is ``source`` itself whenever nothing applies

    Raises:
        ValueError: If the source cannot be parsed
    """
    options = options or RewriteOptions()
    name = str(filename) if filename is not None else None

    if filename is None:
        return RewriteResult(name, source, skipped_reason="no filename")

    try:
        module = cst.parse_module(source)
    except cst.ParserSyntaxError as e:
        raise ValueError(f"Failed to parse {filename}: {e}")

    collection, visited = collect(module, options)

    if not collection.uses_configured_module:
        return RewriteResult(name, source, collection=collection, skipped_reason="no configured import")

    if not collection.has_eligible:
        return RewriteResult(name, source, collection=collection, skipped_reason="no bound call site")

    provenance = resolve_provenance(filename, options.manifest_names)
    if provenance is None:
        return RewriteResult(name, source, collection=collection, skipped_reason="no manifest")

    transformer = GlobalContextTransformer(collection, provenance, provenance.relative_path(filename))
    rewritten = visited.visit(transformer)
    logger.debug("Rewrote %d call(s) in %s", transformer.rewritten_count, filename)

    return RewriteResult(
        filename=name,
        code=rewritten.code,
        rewritten=transformer.rewritten_count,
        provenance=provenance,
        collection=collection,
    )


def rewrite_file(
    file_path: str | Path, options: Optional[RewriteOptions] = None, write: bool = False
) -> RewriteResult:
    """Rewrite a Python file, optionally saving the result in place.

    Raises:
        ValueError: If file is not a Python file or fails to parse
        IOError: If file cannot be read or written
    """
    file_path = Path(file_path).resolve()
    if file_path.suffix != '.py':
        raise ValueError(f"Only Python files supported, got: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        source_code = f.read()

    result = rewrite_source(source_code, file_path, options)
    if write and result.changed:
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(result.code)
    return result


def iter_python_files(paths: Iterable[str | Path]) -> Iterator[Path]:
    """Expand files and directories into Python files, skipping tool and env dirs."""
    for path in paths:
        path = Path(path)
        if path.is_dir():
            for file_path in sorted(path.rglob('*.py')):
                if not any(part in EXCLUDED_DIRS for part in file_path.relative_to(path).parts):
                    yield file_path
        else:
            yield path


def rewrite_batch(
    paths: Iterable[str | Path], options: Optional[RewriteOptions] = None, write: bool = False
) -> Dict[Path, RewriteResult]:
    """Rewrite many files; failures are logged and skipped.

    Files are independent, so a failure in one never affects another.

    Returns:
        Dictionary mapping file paths to their results
    """
    options = options or RewriteOptions()
    results: Dict[Path, RewriteResult] = {}
    failures: List[Path] = []

    for file_path in iter_python_files(paths):
        try:
            results[file_path] = rewrite_file(file_path, options, write=write)
        except (ValueError, IOError) as e:
            logger.error("Error rewriting %s: %s", file_path, e)
            failures.append(file_path)

    if failures:
        logger.warning("Skipped %d file(s) that could not be rewritten", len(failures))
    return results
