"""Command line interface for editing case workflows.

Usage:
    casebuilder show 12
    casebuilder add-stage 12 "Review"
    casebuilder add-field 12 "Customer Name" --type Text
    casebuilder history 12
    casebuilder restore 12 1712345678901 --yes
    casebuilder chat 12 "Add an approval step to the Review stage"
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack
from dataclasses import dataclass
from typing import TypeVar

import click

from casebuilder.application.chat_session import ChatSession
from casebuilder.application.checkpoint_ledger import CheckpointLedger
from casebuilder.application.editor import WorkflowEditor
from casebuilder.application.stream_reconciler import StreamOutcome, StreamState
from casebuilder.config import EditorConfig, load_config
from casebuilder.console import (
    console,
    print_error,
    print_fields,
    print_header,
    print_history,
    print_success,
    print_workflow,
)
from casebuilder.domain.exceptions import (
    CaseBuilderError,
    ConfigurationError,
    MissingIdentifierError,
    StoreError,
)
from casebuilder.domain.models import FIELD_TYPES
from casebuilder.infrastructure.llm import AIEndpointAssistant, OllamaAssistant
from casebuilder.infrastructure.llm.ollama import OllamaAssistantConfig
from casebuilder.infrastructure.session import FilesystemSessionStore
from casebuilder.infrastructure.store import HttpRemoteStore
from casebuilder.logging_setup import setup_logging

logger = logging.getLogger("casebuilder.cli")

T = TypeVar("T")


@dataclass
class _Context:
    config: EditorConfig


def _build_store(config: EditorConfig) -> HttpRemoteStore:
    return HttpRemoteStore(
        config.base_url,
        config.database_path,
        timeout=config.request_timeout,
        cases_table=config.cases_table,
        fields_table=config.fields_table,
        views_table=config.views_table,
    )


def _build_assistant(config: EditorConfig) -> AIEndpointAssistant | OllamaAssistant:
    if config.provider == "ollama":
        return OllamaAssistant(
            OllamaAssistantConfig(
                model=config.ollama_model,
                base_url=config.ollama_base_url,
                timeout=config.request_timeout,
            )
        )
    return AIEndpointAssistant(
        config.base_url, config.resolved_ai_path, timeout=config.request_timeout
    )


def _build_editor(config: EditorConfig, case_id: int, store: HttpRemoteStore) -> WorkflowEditor:
    ledger = CheckpointLedger(
        case_id,
        FilesystemSessionStore(config.session_dir),
        max_entries=config.max_checkpoints,
    )
    return WorkflowEditor(
        case_id, store, ledger, rollback_on_failure=config.rollback_on_failure
    )


def _run(
    config: EditorConfig,
    case_id: int,
    action: Callable[[WorkflowEditor], Awaitable[T]],
    *,
    load: bool = True,
) -> T:
    """Open a store, load the case and run ``action``; errors exit with status 1."""

    async def main() -> T:
        async with AsyncExitStack() as stack:
            store = await stack.enter_async_context(_build_store(config))
            editor = _build_editor(config, case_id, store)
            if load:
                await editor.load()
            return await action(editor)

    try:
        return asyncio.run(main())
    except MissingIdentifierError as e:
        print_error(str(e), hint="Repair the case model before editing it.")
        raise SystemExit(1) from None
    except StoreError as e:
        print_error(str(e), hint=f"Is the backend reachable at {config.base_url}?")
        raise SystemExit(1) from None
    except CaseBuilderError as e:
        print_error(str(e))
        raise SystemExit(1) from None


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a JSON config file",
)
@click.option("--log-file", default=None, type=click.Path(), help="Path to log file")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose (DEBUG) logging to console")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_file: str | None, verbose: bool) -> None:
    """Edit case workflows: stages, processes, steps, fields and views."""
    setup_logging("casebuilder", log_file=log_file, verbose=verbose)
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        print_error(str(e), hint="Check the config file and CASEBUILDER_* variables.")
        raise SystemExit(1) from None
    ctx.obj = _Context(config=config)


@cli.command()
@click.argument("case_id", type=int)
@click.pass_obj
def show(obj: _Context, case_id: int) -> None:
    """Print the workflow tree and the case's fields."""

    async def action(editor: WorkflowEditor) -> None:
        assert editor.model is not None
        subtitle = editor.case.description if editor.case is not None else None
        print_header(editor.model.name or f"Case {case_id}", subtitle)
        print_workflow(editor.model, editor.views)
        if editor.fields:
            print_fields(editor.fields)

    _run(obj.config, case_id, action)


@cli.command()
@click.argument("case_id", type=int)
@click.pass_obj
def validate(obj: _Context, case_id: int) -> None:
    """Check that every stage, process and step has an id."""

    async def action(editor: WorkflowEditor) -> int:
        assert editor.model is not None
        return sum(1 for _ in editor.model.iter_steps())

    steps = _run(obj.config, case_id, action)
    print_success(f"Case {case_id} is valid ({steps} step(s))")


@cli.command()
@click.argument("case_id", type=int)
@click.pass_obj
def history(obj: _Context, case_id: int) -> None:
    """List checkpoints, newest first."""

    async def action(editor: WorkflowEditor) -> None:
        print_history(editor.ledger.entries)

    _run(obj.config, case_id, action, load=False)


@cli.command()
@click.argument("case_id", type=int)
@click.argument("checkpoint_id", type=int)
@click.option("--yes", is_flag=True, help="Confirm discarding newer checkpoints")
@click.pass_obj
def restore(obj: _Context, case_id: int, checkpoint_id: int, yes: bool) -> None:
    """Restore a checkpoint, discarding every newer one."""

    async def action(editor: WorkflowEditor) -> None:
        checkpoint = editor.ledger.get(checkpoint_id)
        await editor.restore_checkpoint(checkpoint_id, confirmed=yes)
        print_success(f"Restored: {checkpoint.description}")

    _run(obj.config, case_id, action)


@cli.command("add-stage")
@click.argument("case_id", type=int)
@click.argument("name")
@click.pass_obj
def add_stage(obj: _Context, case_id: int, name: str) -> None:
    """Append a stage to the workflow."""

    async def action(editor: WorkflowEditor) -> None:
        stage = await editor.add_stage(name)
        print_success(f"Added stage {stage.name} (#{stage.id})")

    _run(obj.config, case_id, action)


@cli.command("add-field")
@click.argument("case_id", type=int)
@click.argument("label")
@click.option(
    "--type",
    "field_type",
    default="Text",
    type=click.Choice(sorted(FIELD_TYPES)),
    help="Field type (default: Text)",
)
@click.option("--required", is_flag=True, help="Mark the field as required")
@click.option("--primary", is_flag=True, help="Mark the field as primary")
@click.option("--option", "options", multiple=True, help="Choice option (repeatable)")
@click.pass_obj
def add_field(
    obj: _Context,
    case_id: int,
    label: str,
    field_type: str,
    required: bool,
    primary: bool,
    options: tuple[str, ...],
) -> None:
    """Create a field; its name is derived from the label."""

    async def action(editor: WorkflowEditor) -> None:
        name = await editor.add_field(
            label, field_type, options=options, required=required, primary=primary
        )
        print_success(f"Added field {name}")

    _run(obj.config, case_id, action)


@cli.command()
@click.argument("case_id", type=int)
@click.argument("message")
@click.pass_obj
def chat(obj: _Context, case_id: int, message: str) -> None:
    """Send one instruction to the workflow assistant."""
    config = obj.config

    async def action(editor: WorkflowEditor) -> StreamOutcome | None:
        assistant = _build_assistant(config)
        session = ChatSession(editor, assistant, stream_timeout=config.stream_timeout)
        try:
            with console.status("Waiting for the assistant..."):
                outcome = await session.send_message(message)
        finally:
            await assistant.aclose()
        for entry in session.messages[1:]:
            if entry.content:
                console.print(entry.content)
        if outcome is not None and outcome.reloaded and editor.model is not None:
            print_workflow(editor.model, editor.views)
        return outcome

    outcome = _run(config, case_id, action)
    if outcome is not None and outcome.state is StreamState.ERRORED:
        raise SystemExit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
