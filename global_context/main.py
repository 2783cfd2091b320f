"""global-context CLI - rewrite context factories into global, deduplicated ones."""
from pathlib import Path
from typing import List, Optional

import libcst as cst
import typer
from rich.markup import escape
from rich.table import Table

from global_context.analyzer.collector import collect
from global_context.analyzer.identity import derive_identity, identity_source
from global_context.analyzer.provenance import resolve_provenance
from global_context.config import (
    ConfigurationError,
    RewriteOptions,
    __version__,
    get_config,
    load_project_options,
)
from global_context.rewriter.pipeline import rewrite_batch
from global_context.runtime.registry import ContextRegistry
from global_context.utils.logger import configure_logging
from global_context.utils.safe_console import SafeConsole


app = typer.Typer(
    name="global-context",
    help="Rewrite create_context() calls into process-wide deduplicated contexts",
    add_completion=False
)
console = SafeConsole()
err_console = SafeConsole(stderr=True)


def _load_options(modules: Optional[List[str]], project_root: Path) -> RewriteOptions:
    """Options from --module flags, else from the project's pyproject.toml."""
    try:
        if modules:
            return RewriteOptions.from_cli(modules)
        return load_project_options(project_root)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(e))}")
        raise typer.Exit(2)


@app.command()
def rewrite(
    paths: List[Path] = typer.Argument(..., help="Python files or directories to rewrite"),
    write: bool = typer.Option(False, "--write", "-w", help="Save changes in place"),
    check: bool = typer.Option(False, "--check", help="Exit with status 1 if any file would change"),
    module: Optional[List[str]] = typer.Option(
        None, "--module", "-m", help="MODULE:NAME[:VARIANT] to rewrite (repeatable)"
    ),
    project_root: Path = typer.Option(Path("."), "--project", help="Where to read [tool.global-context]"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Rewrite context factory calls in the given files."""
    configure_logging(verbose, err_console)

    for path in paths:
        if not path.exists():
            console.print(f"[bold red]Error:[/bold red] Path does not exist: {escape(str(path))}")
            raise typer.Exit(1)

    options = _load_options(module, project_root)
    results = rewrite_batch(paths, options, write=write and not check)
    changed = {path: result for path, result in results.items() if result.changed}

    if changed:
        table = Table(title="Rewritten files" if write and not check else "Files to rewrite")
        table.add_column("File", style="cyan")
        table.add_column("Calls", justify="right")
        table.add_column("Package", style="green")
        for path, result in changed.items():
            provenance = result.provenance
            table.add_row(
                escape(str(path)),
                str(result.rewritten),
                f"{provenance.package_name} {provenance.package_version}",
            )
        console.print(table)
    else:
        console.print("[bold green]✓ Nothing to rewrite.[/bold green]")

    console.print(f"[dim]{len(results)} file(s) scanned, {len(changed)} changed[/dim]")

    if check and changed:
        raise typer.Exit(1)
    if changed and not write and not check:
        console.print("[dim]Use --write to save changes[/dim]")


@app.command()
def inspect(
    file: Path = typer.Argument(..., help="Python file to inspect"),
    module: Optional[List[str]] = typer.Option(None, "--module", "-m", help="MODULE:NAME[:VARIANT]"),
    project_root: Path = typer.Option(Path("."), "--project", help="Where to read [tool.global-context]"),
):
    """Show the imports, call sites and identities found in one file."""
    if not file.is_file():
        console.print(f"[bold red]Error:[/bold red] Not a file: {escape(str(file))}")
        raise typer.Exit(1)

    options = _load_options(module, project_root)
    try:
        module_node = cst.parse_module(file.read_text(encoding="utf-8"))
    except cst.ParserSyntaxError as e:
        console.print(f"[bold red]Error:[/bold red] Failed to parse {escape(str(file))}: {escape(str(e))}")
        raise typer.Exit(1)

    collection, _ = collect(module_node, options)
    provenance = resolve_provenance(file, options.manifest_names)

    if provenance:
        console.print(
            f"[bold blue]Package:[/bold blue] {escape(provenance.package_name)} "
            f"{escape(provenance.package_version)} ({escape(str(provenance.manifest_path))})"
        )
    else:
        console.print("[bold yellow]No manifest found; file would be left unchanged.[/bold yellow]")

    bindings = Table(title="Imports")
    bindings.add_column("Module")
    bindings.add_column("Alias", style="cyan")
    bindings.add_column("Variant")
    for binding in collection.bindings:
        bindings.add_row(binding.module_source, binding.local_alias, binding.variant.value)
    console.print(bindings)

    calls = Table(title="Call sites")
    calls.add_column("Variable", style="cyan")
    calls.add_column("Variant")
    calls.add_column("Identity")
    for match in collection.matches:
        if not match.eligible:
            calls.add_row("[dim](not assigned)[/dim]", match.variant.value, "[dim]skipped[/dim]")
            continue
        identity = "-"
        if provenance:
            relative = provenance.relative_path(file)
            identity = (
                f"{derive_identity(relative, match.bound_name)} "
                f"[dim]{escape(identity_source(relative, match.bound_name))}[/dim]"
            )
        calls.add_row(match.bound_name, match.variant.value, identity)
    console.print(calls)


@app.command()
def key(
    name: str = typer.Argument(..., help="Context identity"),
    package_name: str = typer.Argument(..., help="Package name"),
    package_version: str = typer.Argument(..., help="Package version"),
    namespace: Optional[str] = typer.Option(None, "--namespace", help="Registry namespace"),
):
    """Print the registry key a context would be stored under."""
    registry = ContextRegistry(namespace or get_config().namespace, factory=lambda value: value)
    try:
        console.print(registry.key_for(name, package_name, package_version), markup=False, highlight=False)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]global-context[/bold] v{__version__}")


if __name__ == "__main__":
    app()
