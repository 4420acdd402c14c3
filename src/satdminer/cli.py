"""Command-line interface for the SATD miner."""

import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

import structlog
import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from satdminer import __version__
from satdminer.detector import create_detector
from satdminer.extraction import GitExtractor
from satdminer.mining import HistoryMiner, RepositoryDiffMiner, mine_snapshot
from satdminer.models import Resolution, RepositoryConfig, SATDDifference, Settings
from satdminer.writer import JsonLinesWriter

app = typer.Typer(
    name="satdminer",
    help="Track self-admitted technical debt (SATD) comments across Git history",
    add_completion=False,
)
console = Console()


def _configure_logging(level: str) -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric)
    logging.getLogger().setLevel(numeric)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _setup(repo_path: Path, project_name: Optional[str], verbose: bool):
    settings = Settings()
    _configure_logging("DEBUG" if verbose else settings.log_level)
    config = RepositoryConfig(repo_path=repo_path, project_name=project_name)
    return settings, GitExtractor(config), create_detector(settings.detector)


def _summary_table(diffs: Iterable[SATDDifference]) -> Table:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Old", style="cyan", width=9)
    table.add_column("New", style="cyan", width=9)
    table.add_column("Mode", style="blue")
    table.add_column("Added", justify="right", style="green")
    table.add_column("Removed", justify="right", style="red")
    table.add_column("Changed", justify="right", style="yellow")
    table.add_column("Stay", justify="right")
    table.add_column("Errored", justify="right", style="dim")

    for diff in diffs:
        counts = diff.resolution_counts()
        table.add_row(
            diff.old_commit.short_hash,
            diff.new_commit.short_hash,
            "commit" if diff.direct_parent else "release",
            str(counts[Resolution.ADDED.value]),
            str(counts[Resolution.REMOVED.value]),
            str(counts[Resolution.CHANGED.value]),
            str(counts[Resolution.STAY.value]),
            str(len(diff.errored_files)),
        )
    return table


def _print_instances(diff: SATDDifference) -> None:
    for instance in diff.instances:
        side = instance.new or instance.old
        first_line = side.comment.text.split("\n", 1)[0][:70]
        console.print(
            f"  [yellow]{instance.resolution.value}[/yellow] "
            f"{side.file_path}:{side.comment.start_line} "
            f"[dim]{side.comment.containing_method}[/dim] {first_line}"
        )


def _write_and_summarize(
    diffs: Iterable[SATDDifference],
    output: Optional[Path],
    verbose: bool,
    collected: List[SATDDifference],
) -> List[SATDDifference]:
    writer = JsonLinesWriter(output) if output else None
    try:
        for diff in diffs:
            collected.append(diff)
            if writer:
                writer.write_diff(diff)
            if verbose:
                console.print(
                    f"[cyan]{diff.old_commit.short_hash}[/cyan]..[cyan]{diff.new_commit.short_hash}[/cyan] "
                    f"{len(diff.instances)} instances"
                )
                _print_instances(diff)
    finally:
        if writer:
            writer.close()
    return collected


@app.command()
def diff(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    old_rev: str = typer.Argument(..., help="Older revision (commit, tag or branch)"),
    new_rev: str = typer.Argument(..., help="Newer revision (commit, tag or branch)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory for JSON Lines"),
    project_name: Optional[str] = typer.Option(None, "--project", "-p", help="Project name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Compare the SATD of two revisions."""
    try:
        settings, extractor, detector = _setup(repo_path, project_name, verbose)
        output = output or settings.output_dir
        old = extractor.resolve(old_rev)
        new = extractor.resolve(new_rev)

        console.print(f"[bold green]Mining SATD:[/bold green] {old.short_hash}..{new.short_hash}")
        result = RepositoryDiffMiner(old, new, detector).mine_diff()

        _write_and_summarize([result], output, verbose=True, collected=[])
        console.print(_summary_table([result]))
        if result.errored_files:
            console.print(f"[yellow]Files that failed to parse:[/yellow] {', '.join(result.errored_files)}")
        if output:
            console.print(f"[bold green]✓[/bold green] Saved to {output}")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def history(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    revision: str = typer.Option("HEAD", "--rev", "-r", help="Revision to walk back from"),
    max_commits: Optional[int] = typer.Option(None, "--max-commits", "-n", help="Maximum commits to visit"),
    first_parent: bool = typer.Option(False, "--first-parent", help="Only follow first parents of merges"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Commit pairs mined concurrently"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory for JSON Lines"),
    project_name: Optional[str] = typer.Option(None, "--project", "-p", help="Project name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Mine SATD changes for every commit in a revision's history."""
    try:
        settings, extractor, detector = _setup(repo_path, project_name, verbose)
        output = output or settings.output_dir
        miner = HistoryMiner(extractor, detector, max_workers=workers or settings.max_workers)
        results: List[SATDDifference] = []

        console.print(f"[bold green]Mining SATD history from:[/bold green] {repo_path}")
        console.print(f"[bold blue]Revision:[/bold blue] {revision}")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Mining commit pairs...", total=None)
            try:
                _write_and_summarize(
                    miner.mine_history(revision, max_commits=max_commits, first_parent=first_parent),
                    output,
                    verbose,
                    results,
                )
            except KeyboardInterrupt:
                miner.stop()
                console.print("[yellow]Interrupted; keeping the pairs mined so far.[/yellow]")
            progress.update(task, completed=True)

        changed = [r for r in results if r.instances]
        console.print(f"\n[bold green]✓[/bold green] Mined {len(results)} commit pairs ({len(changed)} with SATD changes)")
        if changed:
            console.print(_summary_table(changed))

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def releases(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    revisions: List[str] = typer.Argument(..., help="Release revisions, oldest first"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Release pairs mined concurrently"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory for JSON Lines"),
    project_name: Optional[str] = typer.Option(None, "--project", "-p", help="Project name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Compare the SATD of consecutive releases."""
    try:
        if len(revisions) < 2:
            raise ValueError("At least two revisions are required")

        settings, extractor, detector = _setup(repo_path, project_name, verbose)
        output = output or settings.output_dir
        miner = HistoryMiner(extractor, detector, max_workers=workers or settings.max_workers)

        console.print(f"[bold green]Comparing releases:[/bold green] {' -> '.join(revisions)}")
        results = _write_and_summarize(miner.mine_releases(revisions), output, verbose, collected=[])
        console.print(_summary_table(results))

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def snapshot(
    repo_path: Path = typer.Argument(..., help="Path to Git repository"),
    revision: str = typer.Argument("HEAD", help="Revision to scan"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory for JSON Lines"),
    project_name: Optional[str] = typer.Option(None, "--project", "-p", help="Project name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """List all SATD present in a single revision."""
    try:
        settings, extractor, detector = _setup(repo_path, project_name, verbose)
        output = output or settings.output_dir
        ref = extractor.resolve(revision)
        result = mine_snapshot(ref, detector)

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("File", style="cyan")
        table.add_column("Line", justify="right")
        table.add_column("Method", style="blue")
        table.add_column("Type", style="yellow")
        table.add_column("Comment", style="white")
        for entry in result.entries:
            table.add_row(
                entry.file_path,
                str(entry.comment.start_line),
                entry.comment.containing_method,
                entry.classification,
                entry.comment.text.split("\n", 1)[0][:60],
            )
        console.print(table)
        console.print(f"\n[bold green]✓[/bold green] {len(result.entries)} SATD comments in {ref.short_hash}")

        if output:
            with JsonLinesWriter(output) as writer:
                writer.write_snapshot(result)
            console.print(f"[bold green]✓[/bold green] Saved to {output}")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"[bold]satdminer[/bold] version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
