"""Command line interface for the podai application."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, NoReturn, Optional

import typer

from . import __version__
from . import config as config_mod
from .config import ConfigError
from .gateway import GatewayConfigError, get_gateway
from .models import HistoryItem
from .personas import UnknownPersonaError, get_persona, list_personas
from .state import STAGE_DESCRIPTIONS, AppStage
from .storage import HistoryStore, KeyValueStore, StorageError
from .workflow import AudioValidationError, Workflow, scan_folder

app = typer.Typer(add_completion=False, help="Rewrite audio recordings in the voice of a podcast persona.")
history_app = typer.Typer(add_completion=False, help="Browse and manage past transformations.")
app.add_typer(history_app, name="history")

EXIT_WORDS = {"", "/exit", "/quit"}


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _history_store(cfg: config_mod.Config) -> HistoryStore:
    return HistoryStore(KeyValueStore(), limit=cfg.history_limit)


def _open_workflow(backend: Optional[str], require_gateway: bool = True) -> Workflow:
    """Build a workflow; the AI backend is only resolved when *require_gateway* is set."""

    try:
        cfg = config_mod.load_config()
        gateway = get_gateway(backend, cfg) if require_gateway else None
    except (ConfigError, GatewayConfigError) as exc:
        _fail(str(exc))
    return Workflow(gateway, _history_store(cfg), max_file_bytes=cfg.max_file_bytes)


def _load_history_store() -> HistoryStore:
    try:
        return _history_store(config_mod.load_config())
    except ConfigError as exc:
        _fail(str(exc))


def _format_timestamp(value: int) -> str:
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M")


def _persona_label(persona_id: str) -> str:
    try:
        persona = get_persona(persona_id)
    except UnknownPersonaError:
        return persona_id
    return f"{persona.glyph} {persona.name}"


def _stage(workflow: Workflow) -> None:
    typer.secho(STAGE_DESCRIPTIONS[workflow.stage], fg=typer.colors.CYAN, err=True)


def _choose_persona() -> str:
    personas = list_personas()
    for index, persona in enumerate(personas, start=1):
        typer.echo(f"  {index}. {persona.glyph} {persona.name} ({persona.role}) [{persona.id}]")
    choice = typer.prompt("Choose a persona (number or id)")
    if choice.isdigit() and 1 <= int(choice) <= len(personas):
        return personas[int(choice) - 1].id
    return choice.strip()


def _show_result(workflow: Workflow, save_script: Optional[Path]) -> None:
    state = workflow.state
    typer.secho(f"\n{_persona_label(state.result.selected_persona_id)}:\n", fg=typer.colors.GREEN)
    typer.echo(state.result.transformed_content)
    if save_script is not None:
        destination = workflow.save_script(save_script)
        typer.secho(f"\nScript saved to {destination}.", fg=typer.colors.BLUE)


def _chat_loop(workflow: Workflow) -> None:
    persona = workflow.state.persona
    workflow.chat.activate()
    typer.secho(
        f"\nChat with {persona.name}. Send an empty line or /exit to leave.",
        fg=typer.colors.BLUE,
    )
    while True:
        try:
            text = typer.prompt("You", default="", show_default=False)
        except typer.Abort:
            break
        if text.strip() in EXIT_WORDS:
            break
        reply = workflow.chat.send_message(text)
        typer.secho(f"{persona.name}: ", fg=typer.colors.MAGENTA, nl=False)
        typer.echo(reply.text)


def _process(
    workflow: Workflow,
    audio: Path,
    persona: Optional[str],
    chat: bool,
    save_script: Optional[Path],
) -> None:
    try:
        workflow.upload(audio)
    except AudioValidationError as exc:
        _fail(str(exc))
    if workflow.stage is AppStage.ERROR:
        _fail(f"{STAGE_DESCRIPTIONS[AppStage.ERROR]}: {workflow.state.error}")

    typer.secho("Transcript:\n", fg=typer.colors.BLUE)
    typer.echo(workflow.state.transcript)
    _stage(workflow)

    persona_id = persona or _choose_persona()
    try:
        workflow.select_persona(persona_id)
    except UnknownPersonaError as exc:
        _fail(exc.args[0])

    workflow.generate()
    if workflow.stage is AppStage.ERROR:
        _fail(f"{STAGE_DESCRIPTIONS[AppStage.ERROR]}: {workflow.state.error}")

    _show_result(workflow, save_script)
    if chat:
        _chat_loop(workflow)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if version:
        typer.echo(f"podai v{__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command()
def run(
    audio: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to the audio file."),
    persona: Optional[str] = typer.Option(None, "--persona", "-p", help="Persona id to rewrite with."),
    chat: bool = typer.Option(False, "--chat/--no-chat", help="Chat with the persona after generating."),
    save_script: Optional[Path] = typer.Option(None, "--save-script", help="Directory to write the script to."),
    backend: Optional[str] = typer.Option(None, "--backend", help="Force a specific AI backend."),
) -> None:
    """Transcribe a recording and rewrite it in a persona's voice."""

    workflow = _open_workflow(backend)
    _process(workflow, audio, persona, chat, save_script)


@app.command()
def folder(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Folder to scan for recordings."),
    select: Optional[int] = typer.Option(None, "--select", "-s", help="Process the file with this number."),
    persona: Optional[str] = typer.Option(None, "--persona", "-p", help="Persona id to rewrite with."),
    chat: bool = typer.Option(False, "--chat/--no-chat", help="Chat with the persona after generating."),
    save_script: Optional[Path] = typer.Option(None, "--save-script", help="Directory to write the script to."),
    backend: Optional[str] = typer.Option(None, "--backend", help="Force a specific AI backend."),
) -> None:
    """List the valid recordings in a folder and optionally process one."""

    try:
        max_bytes = config_mod.load_config().max_file_bytes
    except ConfigError as exc:
        _fail(str(exc))
    try:
        files = scan_folder(directory, max_bytes)
    except AudioValidationError as exc:
        _fail(str(exc))

    if select is None:
        typer.secho(f"Folder contents ({len(files)} files)", fg=typer.colors.BLUE)
        for index, path in enumerate(files, start=1):
            size_mb = path.stat().st_size / (1024 * 1024)
            typer.echo(f"{index:>3}. {path.relative_to(directory)}  {size_mb:.2f} MB")
        return

    if not 1 <= select <= len(files):
        _fail(f"Choose a file number between 1 and {len(files)}.")
    workflow = _open_workflow(backend)
    _process(workflow, files[select - 1], persona, chat, save_script)


@app.command()
def personas() -> None:
    """List the available personas."""

    for persona in list_personas():
        typer.secho(f"{persona.glyph} {persona.name} - {persona.role} [{persona.id}]", fg=typer.colors.BLUE)
        typer.echo(f"    {persona.description}")


@history_app.command("list")
def history_list() -> None:
    """List past transformations, newest first."""

    items = _load_history_store().list()
    if not items:
        typer.echo("No history yet. Use `podai run` to create one.")
        return
    header = f"{'ID':<16}  {'Created':<16}  {'Persona':<20}  {'File':<30}"
    typer.echo(header)
    typer.echo("-" * len(header))
    for item in items:
        typer.echo(
            f"{item.id:<16}  {_format_timestamp(item.timestamp):<16}  "
            f"{_persona_label(item.persona_id):<20}  {item.file_name:<30}"
        )


@history_app.command("show")
def history_show(item_id: str = typer.Argument(..., help="Identifier of the history item.")) -> None:
    """Show a stored transformation."""

    try:
        item = _load_history_store().get(item_id)
    except StorageError as exc:
        _fail(str(exc))
    _print_item(item)


def _print_item(item: HistoryItem) -> None:
    typer.secho(f"File: {item.file_name}", fg=typer.colors.BLUE)
    typer.echo(f"Persona: {_persona_label(item.persona_id)}")
    typer.echo(f"Created: {_format_timestamp(item.timestamp)}")
    typer.echo("\nTranscript:\n" + item.full_transcript)
    typer.secho("\nTransformed:\n", fg=typer.colors.GREEN)
    typer.echo(item.transformed_content)


@history_app.command("load")
def history_load(
    item_id: str = typer.Argument(..., help="Identifier of the history item."),
    chat: bool = typer.Option(False, "--chat/--no-chat", help="Chat with the persona about this result."),
    save_script: Optional[Path] = typer.Option(None, "--save-script", help="Directory to write the script to."),
    backend: Optional[str] = typer.Option(None, "--backend", help="Force a specific AI backend."),
) -> None:
    """Restore a past result into a new session."""

    workflow = _open_workflow(backend, require_gateway=chat)
    try:
        workflow.load_from_history(item_id)
    except StorageError as exc:
        _fail(str(exc))
    except UnknownPersonaError as exc:
        _fail(exc.args[0])
    _show_result(workflow, save_script)
    if chat:
        _chat_loop(workflow)


@history_app.command("random")
def history_random(
    chat: bool = typer.Option(False, "--chat/--no-chat", help="Chat with the persona about this result."),
    backend: Optional[str] = typer.Option(None, "--backend", help="Force a specific AI backend."),
) -> None:
    """Restore a random past result."""

    workflow = _open_workflow(backend, require_gateway=chat)
    item = workflow.load_random_history()
    if item is None:
        _fail("No history yet. Use `podai run` to create one.")
    typer.secho(f"Restored {item.file_name} ({item.id}).", fg=typer.colors.BLUE)
    _show_result(workflow, None)
    if chat:
        _chat_loop(workflow)


@history_app.command("delete")
def history_delete(item_id: str = typer.Argument(..., help="Identifier of the history item.")) -> None:
    """Delete a stored transformation."""

    if not _load_history_store().delete(item_id):
        _fail(f"History item with id {item_id} not found")
    typer.secho(f"History item {item_id} deleted.", fg=typer.colors.BLUE)


@history_app.command("export")
def history_export(
    directory: Path = typer.Argument(Path("."), file_okay=False, help="Directory for the JSON archive."),
) -> None:
    """Export the full history as a dated JSON archive."""

    try:
        destination = _load_history_store().export(directory)
    except StorageError as exc:
        _fail(str(exc))
    typer.secho(f"History exported to {destination}.", fg=typer.colors.BLUE)


@history_app.command("clear")
def history_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete every stored transformation."""

    if not yes:
        typer.confirm("Delete the entire history?", abort=True)
    removed = _load_history_store().clear()
    typer.secho(f"Removed {removed} history items.", fg=typer.colors.BLUE)


@app.command()
def config(
    backend: Optional[str] = typer.Option(None, help="Preferred AI backend (auto, gemini, openai)."),
    gemini_api_key: Optional[str] = typer.Option(None, help="API key for the Gemini backend."),
    openai_api_key: Optional[str] = typer.Option(None, help="API key for the OpenAI backend."),
    transcription_model: Optional[str] = typer.Option(None, help="Gemini model used for transcription."),
    transform_model: Optional[str] = typer.Option(None, help="Gemini model used for persona rewrites."),
    chat_model: Optional[str] = typer.Option(None, help="Gemini model used for chat."),
    thinking_budget: Optional[int] = typer.Option(None, help="Thinking token budget for persona rewrites."),
    max_file_size_mb: Optional[int] = typer.Option(None, help="Largest accepted upload in megabytes."),
    history_limit: Optional[int] = typer.Option(None, help="Number of history items to keep."),
    show: bool = typer.Option(False, "--show", help="Display the active configuration."),
) -> None:
    """Update or inspect configuration settings."""

    updates: Dict[str, object] = {
        key: value
        for key, value in {
            "backend": backend,
            "gemini_api_key": gemini_api_key,
            "openai_api_key": openai_api_key,
            "transcription_model": transcription_model,
            "transform_model": transform_model,
            "chat_model": chat_model,
            "thinking_budget": thinking_budget,
            "max_file_size_mb": max_file_size_mb,
            "history_limit": history_limit,
        }.items()
        if value is not None
    }

    if show or not updates:
        try:
            cfg = config_mod.load_config()
        except ConfigError as exc:
            _fail(str(exc))
        typer.echo(json.dumps(asdict(cfg), indent=2, default=str))
        return

    try:
        config_mod.update_config(**updates)
    except ConfigError as exc:
        _fail(str(exc))
    typer.secho("Configuration updated.", fg=typer.colors.BLUE)


if __name__ == "__main__":  # pragma: no cover
    app()
