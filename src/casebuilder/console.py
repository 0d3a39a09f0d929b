"""Rich console utilities for the casebuilder CLI."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

if TYPE_CHECKING:
    from casebuilder.domain.models import Checkpoint, Field, View, WorkflowModel

# Shared console instances
console = Console()
error_console = Console(stderr=True)


def print_header(title: str, subtitle: str | None = None) -> None:
    """Print a styled header panel."""
    content = Text(title, style="bold blue")
    if subtitle:
        content.append(f"\n{subtitle}", style="dim")
    console.print(Panel(content, expand=False))


def print_error(message: str, hint: str | None = None) -> None:
    """Print formatted error message to stderr."""
    content = Text(f"ERROR: {message}", style="bold red")
    if hint:
        content.append(f"\n\nHint: {hint}", style="yellow")
    error_console.print(Panel(content, title="Error", border_style="red"))


def print_success(message: str) -> None:
    console.print(Panel(message, title="Success", border_style="green"))


def print_workflow(model: WorkflowModel, views: Sequence[View] = ()) -> None:
    """Print the stage/process/step tree with each step's owned view."""
    view_names = {view.id: view.name for view in views}
    root = Tree(Text(model.name or "(unnamed workflow)", style="bold"))
    for stage in model.stages:
        stage_node = root.add(f"[cyan]{stage.name}[/cyan] [dim]#{stage.id}[/dim]")
        for process in stage.processes:
            process_node = stage_node.add(f"[magenta]{process.name}[/magenta] [dim]#{process.id}[/dim]")
            for step in process.steps:
                label = f"{step.name} [dim]({step.type.value}) #{step.id}[/dim]"
                if step.view_id is not None:
                    label += f" [green]view: {view_names.get(step.view_id, step.view_id)}[/green]"
                if step.fields:
                    label += f" [yellow]{len(step.fields)} field(s)[/yellow]"
                process_node.add(label)
    console.print(root)


def print_fields(fields: Sequence[Field]) -> None:
    table = Table(title="Fields", show_header=True)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name")
    table.add_column("Label")
    table.add_column("Type", style="magenta")
    table.add_column("Primary")
    table.add_column("Required")
    for f in fields:
        table.add_row(
            str(f.id),
            f.name,
            f.label,
            f.type,
            "yes" if f.primary else "",
            "yes" if f.required else "",
        )
    console.print(table)


def print_history(checkpoints: Sequence[Checkpoint]) -> None:
    """Print checkpoints newest first."""
    if not checkpoints:
        console.print("[dim]No checkpoints recorded.[/dim]")
        return
    table = Table(title="Checkpoints", show_header=True)
    table.add_column("ID", style="cyan")
    table.add_column("Timestamp", style="dim")
    table.add_column("Description")
    for checkpoint in checkpoints:
        table.add_row(str(checkpoint.id), checkpoint.timestamp, checkpoint.description)
    console.print(table)
