"""keyscope CLI - Flutter testing key inspection and validation."""
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from .analyzer.context_analyzer import ContextAnalyzer
from .analyzer.dart_parser import key_constants_import, read_package_name
from .analyzer.key_index import KeyIndex
from .analyzer.models import IssueKind, KeyCategory, UsageContext
from .analyzer.source_reader import is_flutter_project, read_file_content
from .analyzer.validation import ValidationEngine, ValidationOptions
from .config import Config, __version__
from .reporting.key_tree import build_key_tree
from .reporting.report import build_report, render_markdown
from .utils.safe_console import SafeConsole

app = typer.Typer(
    name="keyscope",
    help="Index, inspect and validate Flutter testing keys",
    add_completion=False
)
console = SafeConsole()


def load_project(project_path: str, **overrides) -> KeyIndex:
    """Resolve the project path, build its Config and KeyIndex.

    Exits with status 1 when the path is missing or the configuration is
    invalid.
    """
    root = Path(project_path).resolve()

    if not root.exists():
        console.error(f"Project path does not exist: {root}")
        raise typer.Exit(1)

    if not is_flutter_project(root):
        console.warn(f"No Flutter pubspec.yaml found in {root}; scanning anyway")

    try:
        config = Config(root, **overrides)
        return KeyIndex(root, config)
    except ValueError as e:
        console.error(str(e))
        raise typer.Exit(1)


def _relative(file_path: str, root: Path) -> str:
    try:
        return str(Path(file_path).relative_to(root))
    except ValueError:
        return file_path


@app.command()
def scan(
    project_path: str = typer.Argument(".", help="Flutter project root"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Only keys of this category (e.g. Buttons)"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by name or value substring"),
    unused: bool = typer.Option(False, "--unused", help="Only keys that are never used"),
):
    """List testing keys with their usage counts."""
    index = load_project(project_path)
    keys = index.scan(force_refresh=True)

    if category:
        try:
            selected = KeyCategory[category]
        except KeyError:
            console.error(f"Unknown category '{category}'. Choose from: {', '.join(c.name for c in KeyCategory)}")
            raise typer.Exit(1)
        keys = index.keys_by_category(selected)
    if search:
        matches = {key.name for key in index.search(search)}
        keys = [key for key in keys if key.name in matches]
    if unused:
        keys = [key for key in keys if not key.is_used]

    if index.constants_file is None:
        console.warn("No KeyConstants file found")

    table = Table(title=f"🔑 Testing Keys ({len(keys)})", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="cyan")
    table.add_column("Value")
    table.add_column("Category", style="magenta")
    table.add_column("Uses", justify="right", style="green")
    table.add_column("Declared At", style="dim")

    for key in keys:
        uses = str(key.usage_count) if key.is_used else "[red]0[/red]"
        table.add_row(key.name, escape(key.value), key.category.value, uses,
                      f"{_relative(key.file_path, index.project_root)}:{key.line}")

    console.print(table)


@app.command()
def stats(
    project_path: str = typer.Argument(".", help="Flutter project root"),
    limit: int = typer.Option(10, "--limit", help="Number of most used keys to show"),
):
    """Show key totals, category breakdown and most used keys."""
    index = load_project(project_path)
    index.scan(force_refresh=True)
    statistics = index.statistics(limit)

    console.print(Panel(
        f"Total: [bold]{statistics.total_keys}[/bold]   "
        f"Used: [green]{statistics.used_keys}[/green]   "
        f"Unused: [red]{statistics.unused_keys}[/red]   "
        f"References: [cyan]{statistics.total_references}[/cyan]",
        title="📊 Key Statistics",
    ))

    categories = Table(show_header=True, header_style="bold magenta", box=None)
    categories.add_column("Category", style="cyan")
    categories.add_column("Keys", justify="right", style="yellow")
    for key_category, count in sorted(statistics.category_counts.items(), key=lambda item: item[1], reverse=True):
        categories.add_row(key_category.value, str(count))
    console.print(categories)

    if statistics.most_used_keys:
        console.print("\n[bold cyan]Most used keys:[/bold cyan]")
        for key in statistics.most_used_keys:
            console.print(f"  • {key.name} [dim]({key.usage_count} uses in {len(key.usage_files)} files)[/dim]")


def _render_statistics(parent: Tree, node, root: Path):
    stats_ = node.statistics
    parent.add(f"📊 [bold]{stats_.total_keys}[/bold] keys, [green]{stats_.used_keys} used[/green], "
               f"[red]{stats_.unused_keys} unused[/red]")


def _render_category(parent: Tree, node, root: Path):
    branch = parent.add(f"📁 [bold magenta]{node.category.value}[/bold magenta] [dim]({node.count})[/dim]")
    for child in node.children:
        RENDERERS[child.kind](branch, child, root)


def _render_key(parent: Tree, node, root: Path):
    key = node.key
    style = "cyan" if key.is_used else "red"
    branch = parent.add(f"🔑 [{style}]{key.name}[/{style}] = '{escape(key.value)}' [dim]({key.usage_count})[/dim]")
    for child in node.children:
        RENDERERS[child.kind](branch, child, root)


def _render_usage(parent: Tree, node, root: Path):
    usage = node.usage
    parent.add(f"📍 [dim]{_relative(usage.file_path, root)}:{usage.line}:{usage.start_column}[/dim]")


def _render_empty(parent: Tree, node, root: Path):
    parent.add(f"[dim]{node.message}[/dim]")


RENDERERS = {
    'statistics': _render_statistics,
    'category': _render_category,
    'key': _render_key,
    'usage': _render_usage,
    'empty': _render_empty,
}


@app.command()
def tree(
    project_path: str = typer.Argument(".", help="Flutter project root"),
    hide_unused: bool = typer.Option(False, "--hide-unused", help="Leave unused keys out of the tree"),
):
    """Show keys grouped by category with their usage locations."""
    index = load_project(project_path)
    index.scan(force_refresh=True)

    root_tree = Tree(f"[bold blue]{escape(str(index.project_root))}[/bold blue]")
    for node in build_key_tree(index, show_unused=not hide_unused):
        RENDERERS[node.kind](root_tree, node, index.project_root)
    console.print(root_tree)


def _print_context(context: UsageContext, root: Path):
    location = context.location
    lines = [f"📍 {_relative(location.file_path, root)}:{location.line}:{location.start_column}"]
    if context.component_type:
        span = context.component_range
        extent = f" [dim](lines {span.start.line}-{span.end.line})[/dim]" if span else ""
        lines.append(f"🧩 Widget: [bold]{context.component_type}[/bold]{extent}")
    else:
        lines.append("🧩 Widget: [dim]not recognized[/dim]")
    if context.class_name:
        lines.append(f"Class: {context.class_name}")
    if context.method_name:
        lines.append(f"Method: {context.method_name}()")
    if context.ancestor_components:
        lines.append(f"Ancestors: {' → '.join(context.ancestor_components)}")
    if context.scope_description:
        lines.append(f"Scope: {context.scope_description}")
    console.print(Panel("\n".join(lines), title=location.key_name, expand=False))
    if context.code_block and context.code_block.content:
        console.print(escape(context.code_block.content), highlight=False)


@app.command()
def context(
    project_path: str = typer.Argument(..., help="Flutter project root"),
    key_name: str = typer.Argument(..., help="Key constant name, e.g. loginButton"),
):
    """Show the widget, method and scope around every usage of a key."""
    index = load_project(project_path)
    index.scan(force_refresh=True)

    key = index.find_key(key_name)
    if key is None:
        console.error(f"Key '{key_name}' is not declared")
        raise typer.Exit(1)

    console.print(f"[bold blue]🔑 {key.name}[/bold blue] = '{escape(key.value)}' "
                  f"[dim]({_relative(key.file_path, index.project_root)}:{key.line})[/dim]\n")

    if not key.is_used:
        console.warn("Key is declared but never used")
        return

    analyzer = ContextAnalyzer(index.parser)
    for usage_context in analyzer.analyze_key(key, index.reader):
        _print_context(usage_context, index.project_root)


@app.command()
def validate(
    project_path: str = typer.Argument(".", help="Flutter project root"),
    naming_pattern: Optional[str] = typer.Option(None, "--naming-pattern", help="Regex every key name must match"),
    no_unused: bool = typer.Option(False, "--no-unused", help="Do not report unused keys"),
    strict: bool = typer.Option(False, "--strict", help="Exit with status 1 when errors are found"),
):
    """Validate keys and report unused, duplicate, hardcoded and undefined keys."""
    index = load_project(project_path, naming_pattern=naming_pattern)

    try:
        engine = ValidationEngine(index, options=ValidationOptions(include_unused=not no_unused))
    except ValueError as e:
        console.error(str(e))
        raise typer.Exit(1)

    result = engine.validate()

    for issue in result.issues:
        location = ''
        if issue.file_path:
            location = _relative(issue.file_path, index.project_root)
            if issue.line:
                location += f":{issue.line}"
        console.issue(issue.severity, issue.message, location)

    if result.issues_of(IssueKind.HARDCODED):
        package = read_package_name(read_file_content(index.project_root / "pubspec.yaml"))
        import_line = key_constants_import(index.config.key_constants_path, package)
        console.print(f"\n[dim]Hardcoded keys need: {escape(import_line)}[/dim]")

    console.print(
        f"\n[bold]Keys:[/bold] {result.total_keys}  "
        f"[green]used {result.used_keys}[/green]  "
        f"[yellow]unused {result.unused_keys}[/yellow]  "
        f"[red]duplicates {result.duplicate_keys}[/red]  "
        f"[dim]({len(result.issues)} issues in {result.validation_time:.2f}s)[/dim]"
    )

    if not result.issues:
        console.print("[green]✓ No issues found[/green]")

    if strict and result.has_errors:
        raise typer.Exit(1)


@app.command()
def report(
    project_path: str = typer.Argument(".", help="Flutter project root"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the markdown report to this file"),
    naming_pattern: Optional[str] = typer.Option(None, "--naming-pattern", help="Regex every key name must match"),
):
    """Generate a markdown validation report."""
    index = load_project(project_path, naming_pattern=naming_pattern)

    try:
        engine = ValidationEngine(index)
    except ValueError as e:
        console.error(str(e))
        raise typer.Exit(1)

    result = engine.validate()
    markdown = render_markdown(build_report(engine, result), result, index.project_root)

    if output is None:
        console.print(markdown, markup=False, highlight=False)
        return

    output.write_text(markdown, encoding="utf-8")
    console.print(f"[green]✓ Report written to {escape(str(output))}[/green]")


def version_callback(value: bool):
    if value:
        console.print(f"keyscope {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=version_callback, is_eager=True,
                                 help="Show the version and exit"),
):
    """keyscope - Flutter testing key inspector."""
    pass


if __name__ == "__main__":
    app()
