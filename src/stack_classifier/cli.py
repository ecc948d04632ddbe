"""CLI for the Stack Classifier.

Reads application files from disk, runs the classification engine and
prints the detected frameworks, tools and infrastructure.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .aggregator import PatternAggregator
from .config import find_config_file, get_config, load_config, reset_config, save_default_config
from .schema import AnalysisResult, PatternEvidence, ResultReview, SubmittedFile
from .validator import ResultValidator

console = Console()

# Directories never worth submitting
SKIP_DIRS = {
    '.git', '.hg', '.svn', 'node_modules', 'bower_components', '__pycache__',
    '.venv', 'venv', '.tox', 'dist', 'build', '.next', '.nuxt', 'coverage',
}


def collect_files(paths: tuple[Path, ...], max_files: int) -> tuple[list[SubmittedFile], list[str]]:
    """Read text files from paths, walking directories.

    Returns the submitted files and the names skipped because they are not
    UTF-8 text.
    """
    files: list[SubmittedFile] = []
    skipped: list[str] = []

    def add(path: Path, name: str) -> None:
        data = path.read_bytes()
        try:
            content = data.decode('utf-8')
        except UnicodeDecodeError:
            skipped.append(name)
            return
        files.append(SubmittedFile(name=name, content=content, size=len(data)))

    for root in paths:
        if root.is_file():
            add(root, root.name)
            continue
        for path in sorted(root.rglob('*')):
            if len(files) >= max_files:
                break
            relative = path.relative_to(root)
            if any(part in SKIP_DIRS for part in relative.parts[:-1]):
                continue
            if path.is_file():
                add(path, relative.as_posix())

    return files[:max_files], skipped


@click.group()
@click.version_option(version='1.0.0', prog_name='stack-classifier')
def main():
    """Stack Classifier.

    Detects the frameworks, tooling and infrastructure of an application
    from its files and scores how confident the detection is.
    """
    pass


@main.command(name='analyze')
@click.argument(
    'paths',
    nargs=-1,
    required=True,
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    '--config', '-c',
    type=click.Path(exists=True, path_type=Path),
    help='Path to configuration YAML file'
)
@click.option(
    '--out', '-o',
    type=click.Path(path_type=Path),
    help='Output file for JSON results'
)
@click.option(
    '--json-output', '-j',
    is_flag=True,
    help='Output raw JSON instead of formatted text'
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Show detailed output and debug logging'
)
@click.option(
    '--workers',
    type=click.IntRange(min=1),
    default=1,
    help='Parallel workers for per-file analysis'
)
@click.option(
    '--max-files',
    type=click.IntRange(min=1),
    default=500,
    help='Maximum number of files to read'
)
@click.option(
    '--description', '-d',
    help='Free-text description of the application'
)
def analyze(
    paths: tuple[Path, ...],
    config: Optional[Path],
    out: Optional[Path],
    json_output: bool,
    verbose: bool,
    workers: int,
    max_files: int,
    description: Optional[str],
):
    """Analyze application files and report the detected stack.

    Examples:
        stack-classifier analyze ./my-app
        stack-classifier analyze package.json docker-compose.yml -j
        stack-classifier analyze ./my-app --workers 4 -o result.json
        stack-classifier analyze ./api -d "REST API behind a single page app"
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s %(name)s: %(message)s')

    try:
        if config:
            load_config(config)
        else:
            _load_discovered_config(quiet=json_output)

        files, skipped = collect_files(paths, max_files)
        aggregator = PatternAggregator(max_workers=workers)
        result = aggregator.analyze_files(files, description=description)
        review = ResultValidator().validate(result)

        if json_output:
            output_json(result, out)
        else:
            display_result(result, review, verbose, skipped)
            if out:
                output_json(result, out)
                console.print(f"\n[green]Results saved to {out}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command(name='init-config')
@click.option(
    '--out', '-o',
    type=click.Path(path_type=Path),
    default='stack-classifier.yaml',
    help='Output path for the configuration file'
)
@click.option(
    '--force', '-f',
    is_flag=True,
    help='Overwrite existing config file'
)
def init_config(out: Path, force: bool):
    """Generate a default configuration file.

    Creates a YAML configuration file with all indicator tables and weights.

    Example:
        stack-classifier init-config --out my-config.yaml
    """
    if out.exists() and not force:
        console.print(f"[red]Error:[/red] Config file already exists: {out}")
        console.print("Use --force to overwrite")
        sys.exit(1)

    try:
        save_default_config(out)
        console.print(f"[green]✓[/green] Config file created: {out}")
        console.print("\nEdit this file to customize:")
        console.print("  • file_types.table - File name to category/type mapping")
        console.print("  • indicators - Dependencies that imply frameworks and tools")
        console.print("  • weights - How much each evidence source contributes")
        console.print("  • thresholds - Confidence bands and the review threshold")
        console.print("\nThe classifier will look for config in this order:")
        console.print("  1. STACK_CLASSIFIER_CONFIG environment variable")
        console.print("  2. ./stack-classifier.yaml (current directory)")
        console.print("  3. ~/.config/stack-classifier/config.yaml")
    except Exception as e:
        console.print(f"[red]Error creating config:[/red] {e}")
        sys.exit(1)


@main.command(name='show-config')
@click.option(
    '--config', '-c',
    type=click.Path(exists=True, path_type=Path),
    help='Path to configuration YAML file'
)
def show_config(config: Optional[Path]):
    """Print the effective configuration as YAML."""
    try:
        if config:
            load_config(config)
        else:
            _load_discovered_config(quiet=True)
        data = get_config().model_dump(mode='json')
        click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


def _load_discovered_config(quiet: bool = False) -> None:
    """Load a config file from the standard locations, else use defaults."""
    config_path = find_config_file()
    if not config_path:
        reset_config()
        return
    try:
        load_config(config_path)
        if not quiet:
            console.print(f"Loaded config from: {config_path}")
    except Exception as e:
        console.print(f"[yellow]Warning:[/yellow] Could not load config: {e}")
        reset_config()


def output_json(result: AnalysisResult, out_path: Optional[Path]):
    """Output result as JSON."""
    json_str = result.model_dump_json(indent=2)

    if out_path:
        with open(out_path, 'w', encoding='utf-8') as f:
            f.write(json_str)
    else:
        print(json_str)


def display_result(
    result: AnalysisResult,
    review: ResultReview,
    verbose: bool,
    skipped: Optional[list[str]] = None,
):
    """Display analysis result in formatted text."""
    summary = result.summary
    level_color = {
        'excellent': 'green',
        'good': 'cyan',
        'fair': 'yellow',
        'low': 'red',
    }.get(review.confidence_level.value, 'white')

    categories = ', '.join(
        f"{category.value}: {count}"
        for category, count in summary.category_counts.items()
        if count
    ) or 'none'

    app_type = 'unknown'
    if summary.app_type in result.patterns.app_types:
        indicators = get_config().app_types.types.get(summary.app_type)
        label = (indicators.label if indicators else '') or summary.app_type
        app_type = f"{label} ({result.patterns.app_types[summary.app_type].confidence:.0%})"

    console.print(Panel(
        f"Files analyzed: [bold]{summary.total_files}[/bold] ({categories})\n"
        f"Application type: [bold]{app_type}[/bold]\n"
        f"Confidence: [{level_color}]{summary.confidence:.0%} ({review.confidence_level.value})[/{level_color}]\n"
        f"Manual review: {'[yellow]recommended[/yellow]' if review.needs_review else '[green]not needed[/green]'}",
        title="Stack Analysis",
    ))

    for title, patterns in (
        ('Frameworks', result.patterns.frameworks),
        ('Tools', result.patterns.tools),
        ('Infrastructure', result.patterns.infrastructure),
        ('Application Types', result.patterns.app_types),
    ):
        if patterns:
            console.print(_pattern_table(title, patterns))

    if result.manifest is not None and result.manifest.success and result.manifest.analysis:
        analysis = result.manifest.analysis
        console.print(f"\n[bold]Manifest:[/bold] {result.manifest.file_name}")
        if analysis.name:
            console.print(f"  Package: {analysis.name} {analysis.version or ''}".rstrip())
        console.print(f"  Build tool: {analysis.scripts.build_tool}")
        counts = analysis.dependency_counts
        console.print(
            f"  Dependencies: {counts.total} ({counts.production} production, {counts.development} development)"
        )

    if verbose:
        table = Table(title="Files")
        table.add_column("Name", style="cyan")
        table.add_column("Category")
        table.add_column("Type")
        table.add_column("Size", justify="right")
        for report in result.files:
            table.add_row(
                report.name,
                report.classification.category.value,
                report.classification.type,
                str(report.size),
            )
        console.print(table)

    if review.warnings:
        console.print("\n[bold]Warnings:[/bold]")
        for warning in review.warnings:
            console.print(f"  [yellow]•[/yellow] {warning}")

    if review.suggestions:
        console.print("\n[bold]Suggestions:[/bold]")
        for suggestion in review.suggestions:
            console.print(f"  [dim]• {suggestion}[/dim]")

    if skipped:
        console.print(f"\n[dim]Skipped {len(skipped)} non-text file(s)[/dim]")
        if verbose:
            for name in skipped:
                console.print(f"  [dim]• {name}[/dim]")


def _pattern_table(title: str, patterns: dict[str, PatternEvidence]) -> Table:
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Confidence", justify="right")
    table.add_column("Sources")
    table.add_column("Evidence")

    ranked = sorted(patterns.items(), key=lambda item: (-item[1].confidence, item[0]))
    for name, evidence in ranked:
        table.add_row(
            name,
            f"{evidence.confidence:.0%}",
            ', '.join(evidence.sources),
            ', '.join(evidence.evidence[:3]),
        )
    return table


if __name__ == '__main__':
    main()
