"""
CLI entry point for repodump.

Dumps the text files of a directory as one LLM-ready document, or estimates its
token count.
"""

from __future__ import annotations

import time
import traceback
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import OutputFormat, Tokenizer
from .config_loader import load_config, merge_cli_with_config
from .dumper import DumpResult, dump_directory
from .errors import RepodumpError
from .renderer import write_output, write_report

# Initialize CLI app
app = typer.Typer(
    name="repodump",
    help="Extract and format directory contents for LLMs.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

ESTIMATE_LINE = "Estimated token count: {count}"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"repodump version {__version__}")
        raise typer.Exit()


def print_skip(rel_path: str, reason: str) -> None:
    err_console.print(f"[dim]Skipped {escape(rel_path)} ({escape(reason)})[/dim]")


def print_statistics(result: DumpResult) -> None:
    """Print scan statistics to stderr."""
    stats = result.stats
    err_console.print()
    err_console.print("[cyan]Statistics:[/cyan]")
    err_console.print(f"  Files scanned: {stats.files_scanned}")
    err_console.print(f"  Files included: {stats.files_included}")
    err_console.print(f"  Files skipped: {stats.files_skipped}")
    err_console.print(f"  Files dropped (budget): {stats.files_dropped_budget}")
    err_console.print(f"  Total bytes: {stats.total_bytes_included:,}")
    err_console.print(f"  Estimated tokens: {stats.total_tokens_estimated:,}")


def print_token_breakdown(result: DumpResult) -> None:
    """Print per-file token estimates to stderr, largest first."""
    err_console.print("[cyan]Tokens per file:[/cyan]")
    for file_info in sorted(result.files, key=lambda f: (-f.token_estimate, f.relative_path)):
        err_console.print(f"  {file_info.token_estimate:>8,}  {escape(file_info.relative_path)}")


@app.command()
def dump(
    directory: Path = typer.Argument(
        Path("."),
        help="Directory to dump (defaults to the current directory).",
        show_default=False,
    ),
    estimate_tokens: bool = typer.Option(
        False,
        "--estimate-tokens", "-t",
        help="Print the estimated token count instead of the dump (--output still gets the dump).",
    ),
    output_format: Optional[OutputFormat] = typer.Option(
        None,
        "--format", "-f",
        help="Output format: 'text' (default), 'markdown' or 'xml'.",
        case_sensitive=False,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Write the dump to this file instead of stdout (also with --estimate-tokens).",
        dir_okay=False,
    ),
    report: Optional[Path] = typer.Option(
        None,
        "--report",
        help="Write a JSON report of included files and statistics to this file.",
        dir_okay=False,
    ),
    tree: Optional[bool] = typer.Option(
        None,
        "--tree/--no-tree",
        help="Prepend a directory tree of the included files.",
        show_default=False,
    ),
    include_ext: Optional[str] = typer.Option(
        None,
        "--include-ext", "-i",
        help="Comma-separated file extensions to include (e.g., '.py,.md'). Default: all files.",
    ),
    exclude_glob: Optional[str] = typer.Option(
        None,
        "--exclude-glob", "-e",
        help="Comma-separated glob patterns to exclude, in addition to the defaults.",
    ),
    max_file_bytes: Optional[int] = typer.Option(
        None,
        "--max-file-bytes",
        help="Skip files larger than this many bytes (default: 1 MB).",
        min=0,
    ),
    max_total_bytes: Optional[int] = typer.Option(
        None,
        "--max-total-bytes",
        help="Skip files that would push the dump past this many bytes.",
        min=0,
    ),
    hidden: Optional[bool] = typer.Option(
        None,
        "--hidden/--no-hidden",
        help="Include dotfiles and dot-directories.",
        show_default=False,
    ),
    gitignore: Optional[bool] = typer.Option(
        None,
        "--gitignore/--no-gitignore",
        help="Respect .gitignore files (default: on).",
        show_default=False,
    ),
    tokenizer: Optional[Tokenizer] = typer.Option(
        None,
        "--tokenizer",
        help="Token estimator: 'chars' (~4 characters per token, default) or 'tiktoken'.",
        case_sensitive=False,
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Config file to use instead of repodump.toml / .repodump.yml in the directory.",
        dir_okay=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Report skipped files and statistics on stderr.",
    ),
    version: bool = typer.Option(
        False,
        "--version", "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """
    Dump the text files of DIRECTORY as a single document for LLM prompts.

    Examples:

        # Dump the current directory to stdout
        repodump

        # Dump a project as Markdown into a file
        repodump ./project --format markdown -o project.md

        # Only Python and Markdown files, with a directory tree
        repodump ./project -i ".py,.md" --tree

        # How many tokens would the dump cost?
        repodump --estimate-tokens ./project
    """
    start_time = time.time()

    try:
        root = directory.resolve()
        project_config = load_config(root, config_file)
        if verbose and project_config.config_file is not None:
            config_name = escape(str(project_config.config_file))
            err_console.print(f"[dim]Using config {config_name}[/dim]")

        config = merge_cli_with_config(
            project_config,
            root,
            include_ext=include_ext,
            exclude_glob=exclude_glob,
            max_file_bytes=max_file_bytes,
            max_total_bytes=max_total_bytes,
            respect_gitignore=gitignore,
            include_hidden=hidden,
            output_format=output_format,
            show_tree=tree,
            tokenizer=tokenizer,
        )

        # Never dump a previous run's output or report file
        for written_path in (output, report):
            if written_path is not None and written_path.resolve().is_relative_to(root):
                config.exclude_globs.add(written_path.resolve().relative_to(root).as_posix())

        result = dump_directory(config, on_skip=print_skip if verbose else None)

    except RepodumpError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        if verbose:
            err_console.print(traceback.format_exc(), markup=False)
        raise typer.Exit(1)

    if not result.files:
        err_console.print("[yellow]Warning: No files found matching criteria.[/yellow]")

    try:
        if output is not None:
            written = write_output(result.text, output)
            err_console.print(
                f"[green]Wrote {len(result.files)} files "
                f"({result.stats.total_bytes_included:,} bytes, ~{result.token_count:,} tokens) "
                f"to {escape(str(written))}[/green]"
            )
        if report is not None:
            report_written = write_report(
                result.to_dict(config, project_config.to_dict()), report
            )
            if verbose:
                err_console.print(f"[dim]Wrote report to {escape(str(report_written))}[/dim]")
    except OSError as e:
        err_console.print(f"[red]Error: Failed to write output: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if estimate_tokens:
        typer.echo(ESTIMATE_LINE.format(count=result.token_count))
        if verbose:
            print_token_breakdown(result)
    elif output is None and result.text:
        typer.echo(result.text, nl=False)

    if verbose:
        print_statistics(result)
        err_console.print(f"  Processing time: {time.time() - start_time:.2f}s")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
