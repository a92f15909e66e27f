"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from casebook import __version__
from casebook.core.config import AppConfig, get_app_config, init_app_config
from casebook.core.exceptions import CasebookError
from casebook.importer import ImportResult
from casebook.workspace import Workspace

# Initialize console for rich output
console = Console()

# Initialize the CLI app
app = typer.Typer(help="Casebook - test case manager with Allure export")


class StatusChoice(str, Enum):
    ANY = "any"
    PASSED = "passed"
    FAILED = "failed"
    MIXED = "mixed"


class SeverityChoice(str, Enum):
    ANY = "any"
    BLOCKER = "BLOCKER"
    CRITICAL = "CRITICAL"
    NORMAL = "NORMAL"
    MINOR = "MINOR"
    TRIVIAL = "TRIVIAL"


def configure_app(debug: bool = False) -> AppConfig:
    """
    Configure the application with the specified settings.

    Args:
    ----
        debug: Whether to enable debug mode

    """
    config = init_app_config(debug=debug or None, app_version=__version__)
    config.configure_logging()
    return config


@app.callback()
def callback(
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode with verbose logging"),
    version: bool = typer.Option(False, "--version", help="Show the application version and exit"),
):
    """
    Casebook - author test cases as JSON and export them as Allure results.

    Every command loads its input files into a fresh workspace first.
    Use --debug to enable verbose logging.
    """
    if version:
        console.print(f"Casebook version: {__version__}")
        raise typer.Exit()

    configure_app(debug=debug)


def _progress() -> Progress:
    return Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
    )


def _load_workspace(inputs: list[Path], overwrite: bool) -> tuple[Workspace, ImportResult]:
    """Import every input file into a new workspace."""
    workspace = Workspace(get_app_config())
    total = ImportResult()

    with _progress() as progress:
        for path in inputs:
            task = progress.add_task(f"Importing {path.name}", total=1.0)

            def report(fraction: float, task=task) -> None:
                progress.update(task, completed=fraction)

            result = workspace.import_file(path, overwrite=overwrite, progress_callback=report)
            progress.update(task, completed=1.0)
            total.merge(result)

    return workspace, total


def _print_import_summary(result: ImportResult) -> None:
    console.print(
        f"Imported {result.imported} test cases, replaced {result.replaced}, "
        f"skipped {result.skipped_count}",
    )
    if result.skipped_duplicates:
        console.print(
            f"{result.skipped_duplicates} test cases already existed (use --overwrite to replace them)",
            style="yellow",
        )
    if result.skipped_invalid:
        console.print(f"{result.skipped_invalid} test cases were invalid", style="yellow")
    if result.files_skipped:
        console.print(f"{result.files_skipped} archive entries could not be parsed", style="yellow")


INPUTS_ARGUMENT = typer.Argument(..., help="JSON or zip files with test cases or backups")
OVERWRITE_OPTION = typer.Option(
    False, "--overwrite", help="Replace test cases whose name already exists",
)
OUTPUT_DIR_OPTION = typer.Option(
    Path("."), "--output-dir", "-o", help="Directory to write the export into",
)


@app.command("list")
def list_test_cases(
    inputs: list[Path] = INPUTS_ARGUMENT,
    term: str = typer.Option("", help="Search name, description and tags"),
    status: StatusChoice = typer.Option(StatusChoice.ANY, help="Filter by derived status"),
    severity: SeverityChoice = typer.Option(SeverityChoice.ANY, help="Filter by severity"),
    overwrite: bool = OVERWRITE_OPTION,
):
    """
    Show the test cases of the input files, optionally filtered.
    """
    try:
        workspace, _ = _load_workspace(inputs, overwrite)
        view = workspace.view(term, status.value, severity.value)

        if not view.results:
            message = "No test cases match the filters" if view.is_filtered else "No test cases"
            console.print(message, style="yellow")
            return

        table = Table(title=f"Test Cases ({len(view.results)} of {len(workspace.store)})")
        table.add_column("Name")
        table.add_column("Status")
        table.add_column("Severity")
        table.add_column("Priority")
        table.add_column("Steps", justify="right")
        table.add_column("Tags")

        for tc in view.results:
            table.add_row(
                tc.name,
                tc.status.value,
                tc.severity.value,
                tc.priority.value,
                str(len(tc.steps)),
                tc.tags,
            )

        console.print(table)

    except CasebookError as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(code=1)


@app.command("import")
def import_files(
    inputs: list[Path] = INPUTS_ARGUMENT,
    overwrite: bool = OVERWRITE_OPTION,
    backup: Path | None = typer.Option(
        None, "--backup", help="Write the merged test cases as a backup into this directory",
    ),
):
    """
    Import test cases and report what was imported and skipped.
    """
    try:
        workspace, result = _load_workspace(inputs, overwrite)
        _print_import_summary(result)

        if backup:
            path = workspace.export_backup(backup)
            console.print(f"Backup written to {path}", style="green")

    except CasebookError as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(code=1)


@app.command("export")
def export_bundle(
    inputs: list[Path] = INPUTS_ARGUMENT,
    output_dir: Path = OUTPUT_DIR_OPTION,
    overwrite: bool = OVERWRITE_OPTION,
):
    """
    Export every test case as JSON into a zip bundle.
    """
    try:
        workspace, _ = _load_workspace(inputs, overwrite)

        with _progress() as progress:
            task = progress.add_task("Packaging test cases", total=1.0)
            path = workspace.export_bundle(
                output_dir, lambda fraction: progress.update(task, completed=fraction),
            )

        if path is None:
            console.print("No test cases to export", style="yellow")
            return
        console.print(f"Exported {len(workspace.store)} test cases to {path}", style="green")

    except CasebookError as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(code=1)


@app.command("allure")
def export_allure(
    inputs: list[Path] = INPUTS_ARGUMENT,
    output_dir: Path = OUTPUT_DIR_OPTION,
    overwrite: bool = OVERWRITE_OPTION,
):
    """
    Export every test case as an Allure result inside a zip archive.
    """
    try:
        workspace, _ = _load_workspace(inputs, overwrite)

        with _progress() as progress:
            task = progress.add_task("Generating Allure results", total=1.0)
            path = workspace.export_allure(
                output_dir, lambda fraction: progress.update(task, completed=fraction),
            )

        if path is None:
            console.print("No test cases to export", style="yellow")
            return
        console.print(f"Generated {len(workspace.store)} Allure results in {path}", style="green")

    except CasebookError as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(code=1)


@app.command("backup")
def export_backup(
    inputs: list[Path] = INPUTS_ARGUMENT,
    output_dir: Path = OUTPUT_DIR_OPTION,
    overwrite: bool = OVERWRITE_OPTION,
):
    """
    Merge the input files into a single backup file.
    """
    try:
        workspace, _ = _load_workspace(inputs, overwrite)
        path = workspace.export_backup(output_dir)
        console.print(f"Backup of {len(workspace.store)} test cases written to {path}", style="green")

    except CasebookError as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
