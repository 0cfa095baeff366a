"""defermistake CLI - report functions evaluated too early in Go defer statements."""

import json
import os
import time
from pathlib import Path
from typing import List, Optional

import typer
from rich.table import Table
from rich.markup import escape
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    BarColumn,
    TaskProgressColumn,
    TimeElapsedColumn
)

from .utils.safe_console import SafeConsole
from .utils.logger import log_warning
from .config import Config, get_config, __version__
from .analyzer.analysis import DeferMistakeAnalyzer
from .analyzer.cache import AnalysisCache
from .analyzer.parser import LanguageParser
from .analyzer.detector import Diagnostic
from .analyzer.registry import FlaggedFunctionRegistry

app = typer.Typer(
    name="defermistake",
    help="Report functions evaluated at defer registration instead of defer execution",
    add_completion=False
)
console = SafeConsole()

cache_app = typer.Typer(name="cache", help="Manage the defermistake analysis cache")

# Skipped during discovery unless --include-vendored is given
EXCLUDED_DIRS = {
    'vendor', 'testdata', 'third_party', 'node_modules', '.git',
}

OUTPUT_FORMATS = ('text', 'table', 'json')


def is_ci_environment() -> bool:
    """Detect if running in CI (GitHub Actions, GitLab CI, etc.)."""
    ci_indicators = [
        'GITHUB_ACTIONS',
        'CI',
        'GITLAB_CI',
        'CIRCLECI',
        'JENKINS_HOME',
    ]
    return any(os.getenv(indicator) for indicator in ci_indicators)


def discover_go_files(paths: List[Path], include_vendored: bool = False,
                      cache_dir_name: str = '.defermistake_cache') -> List[Path]:
    """Collect .go files from files and directories, sorted per argument.

    Explicitly named files are always included; directory walks skip
    EXCLUDED_DIRS (unless include_vendored) and the cache directory.
    """
    excluded = {cache_dir_name} if include_vendored else EXCLUDED_DIRS | {cache_dir_name}
    files = []
    seen = set()

    for path in paths:
        if path.is_file():
            candidates = [path] if LanguageParser.is_supported(path) else []
        else:
            candidates = sorted(
                file_path for file_path in path.rglob('*')
                if file_path.is_file() and LanguageParser.is_supported(file_path)
                and not any(part in excluded for part in file_path.relative_to(path).parts[:-1])
            )
        for candidate in candidates:
            resolved = candidate.resolve()
            if resolved not in seen:
                seen.add(resolved)
                files.append(candidate)

    return files


def _load_config() -> Config:
    """Environment configuration; exits on invalid settings."""
    try:
        return get_config()
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


def _resolve_registry(flags: Optional[List[str]]) -> FlaggedFunctionRegistry:
    """Configured registry plus --flag entries; exits on invalid specs."""
    config = _load_config()
    try:
        return config.registry(flags)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


def _cache_root(paths: List[Path]) -> Path:
    """Directory holding the cache: the first directory argument, else cwd."""
    for path in paths:
        if path.is_dir():
            return path
    return Path.cwd()


def run_check(files: List[Path], analyzer: DeferMistakeAnalyzer,
              cache: Optional[AnalysisCache], show_progress: bool) -> List[Diagnostic]:
    """Analyze files (through the cache when given) and concatenate results."""
    registry_key = analyzer.registry.fingerprint()
    diagnostics: List[Diagnostic] = []

    def check_one(file_path: Path):
        cached = cache.get_diagnostics(file_path, registry_key) if cache else None
        if cached is not None:
            diagnostics.extend(cached)
            return

        found = analyzer.analyze_file(file_path)
        if found is None:
            log_warning('Check', f"Skipped unreadable file: {file_path}")
            return
        if cache:
            cache.set_diagnostics(file_path, registry_key, found)
        diagnostics.extend(found)

    if not show_progress:
        for file_path in files:
            check_one(file_path)
        return diagnostics

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True
    ) as progress:
        task = progress.add_task("Checking defer statements...", total=len(files))
        for file_path in files:
            check_one(file_path)
            progress.advance(task)

    return diagnostics


def render_diagnostics(diagnostics: List[Diagnostic], output_format: str, file_count: int):
    """Print diagnostics in the requested format."""
    if output_format == 'json':
        # Plain print keeps the JSON free of Rich markup and wrapping
        print(json.dumps({
            'analyzer': DeferMistakeAnalyzer.NAME,
            'files_checked': file_count,
            'diagnostics': [d.to_dict() for d in diagnostics],
        }, indent=2))
        return

    if output_format == 'table' and diagnostics:
        table = Table(title="Eagerly evaluated defer arguments", show_header=True, header_style="bold magenta")
        table.add_column("File", style="cyan")
        table.add_column("Line", justify="right", style="yellow")
        table.add_column("Col", justify="right", style="yellow")
        table.add_column("Function", style="red")
        table.add_column("Message")
        for d in diagnostics:
            table.add_row(escape(d.file_path), str(d.line), str(d.column), d.function, escape(d.message))
        console.print(table)
    else:
        for d in diagnostics:
            console.print(escape(d.format()), highlight=False, soft_wrap=True)

    if diagnostics:
        console.print(f"\n[bold yellow]Found {len(diagnostics)} problem(s) in {file_count} file(s)[/bold yellow]")
    else:
        console.print(f"[bold green]✓ No deferred eager evaluation found ({file_count} file(s) checked)[/bold green]")


@app.command()
def check(
    paths: List[Path] = typer.Argument(None, help="Go files or directories to check (default: current directory)"),
    output_format: str = typer.Option("text", "--format", help="Output format: text, table, or json"),
    flag: Optional[List[str]] = typer.Option(None, "--flag", "-f", help="Additional function to flag, as <import path>.<Name> (repeatable)"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Analyze every file, ignoring the cache"),
    include_vendored: bool = typer.Option(False, "--include-vendored", help="Also check vendor/ and testdata/ directories"),
    exit_zero: bool = typer.Option(False, "--exit-zero", help="Exit with status 0 even when problems are found"),
):
    """Check Go sources for flagged calls evaluated when a defer is registered."""
    paths = paths or [Path('.')]

    if output_format not in OUTPUT_FORMATS:
        console.print(f"[bold red]Error:[/bold red] Invalid format '{escape(output_format)}'. Use 'text', 'table', or 'json'.")
        raise typer.Exit(1)

    for path in paths:
        if not path.exists():
            console.print(f"[bold red]Error:[/bold red] Path does not exist: {escape(str(path))}")
            raise typer.Exit(1)

    registry = _resolve_registry(flag)
    config = _load_config()
    files = discover_go_files(paths, include_vendored, config.cache_dir_name)

    cache = None
    if config.cache_enabled and not no_cache:
        cache = AnalysisCache(_cache_root(paths), config.cache_dir_name)

    start = time.time()
    show_progress = output_format != 'json' and not is_ci_environment() and len(files) > 1
    try:
        diagnostics = run_check(files, DeferMistakeAnalyzer(registry), cache, show_progress)
    finally:
        if cache:
            cache.close()

    render_diagnostics(diagnostics, output_format, len(files))
    if output_format != 'json':
        console.print(f"[dim]⏱ {time.time() - start:.2f}s[/dim]")

    if diagnostics and not exit_zero:
        raise typer.Exit(1)


@app.command()
def rules(
    flag: Optional[List[str]] = typer.Option(None, "--flag", "-f", help="Additional function to flag, as <import path>.<Name>"),
):
    """List the functions that must not be evaluated in a defer statement."""
    registry = _resolve_registry(flag)

    table = Table(title="Flagged functions", show_header=True, header_style="bold cyan")
    table.add_column("Package", style="cyan")
    table.add_column("Function", style="green")
    for package, name in registry.describe():
        table.add_row(escape(package), escape(name))

    console.print(table)
    console.print(f"[dim]{DeferMistakeAnalyzer.DOC.splitlines()[0]}[/dim]")


@cache_app.command("clear")
def cache_clear(
    project_path: Path = typer.Argument(Path("."), help="Project root path"),
):
    """Clear cached results for a project."""
    if not project_path.exists():
        console.print(f"[bold red]Error:[/bold red] Project path does not exist: {escape(str(project_path))}")
        raise typer.Exit(1)

    cache = AnalysisCache(project_path, _load_config().cache_dir_name)
    cache.clear_cache()
    cache.close()

    console.print(f"[green]✓ Cache cleared for {escape(str(project_path))}[/green]")


@cache_app.command("stats")
def cache_stats(
    project_path: Path = typer.Argument(Path("."), help="Project root path"),
):
    """Display cache statistics for a project."""
    if not project_path.exists():
        console.print(f"[bold red]Error:[/bold red] Project path does not exist: {escape(str(project_path))}")
        raise typer.Exit(1)

    cache = AnalysisCache(project_path, _load_config().cache_dir_name)
    stats = cache.get_cache_stats()
    cache.close()

    table = Table(title=f"Cache Statistics: {escape(str(project_path))}", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")

    table.add_row("Files Cached", str(stats['total_files']))
    table.add_row("Files With Findings", str(stats['files_with_findings']))
    table.add_row("Diagnostics Cached", str(stats['diagnostics_cached']))

    console.print(table)


app.add_typer(cache_app)


def _version_callback(value: bool):
    if value:
        console.print(f"defermistake {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"),
):
    """defermistake - report functions evaluated too early in Go defer statements."""
    pass


if __name__ == "__main__":
    app()
