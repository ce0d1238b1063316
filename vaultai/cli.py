"""Command line interface for VaultAI."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from . import __version__
from .config import (
    DEFAULT_MODEL,
    load_config,
    resolve_api_key,
    set_api_key,
    set_model,
    set_store_display_name,
    set_vault_path,
)
from .documents import FileSystemDocumentStore
from .engine import SyncEngine
from .errors import VaultAIError
from .services.query_service import QueryMode, QueryResult
from .services.upload_service import SyncProgress
from .settings import JsonSettingsStore
from .text import Messages, Styles

LOG_FORMAT = "[%(levelname)s] %(message)s"

console = Console()

app = typer.Typer(
    help=Messages.APP_HELP,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"VaultAI v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.getLogger("vaultai").setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help=Messages.HELP_VERBOSE,
    ),
) -> None:
    """Global Typer callback for shared options."""
    _configure_logging(verbose)


def _open_engine(vault: Path | None) -> SyncEngine:
    config = load_config()
    vault_value = vault if vault is not None else config.vault_path
    if not vault_value:
        console.print(_styled(Messages.ERROR_VAULT_MISSING, Styles.ERROR))
        raise typer.Exit(code=1)
    try:
        documents = FileSystemDocumentStore(
            vault_value,
            exclude_patterns=config.exclude_patterns,
        )
        engine = SyncEngine(
            documents=documents,
            settings=JsonSettingsStore(),
            config=config,
        )
    except (OSError, VaultAIError) as exc:
        console.print(_styled(str(exc), Styles.ERROR))
        raise typer.Exit(code=1)
    engine.start()
    return engine


@app.command()
def sync(
    scope: str | None = typer.Option(
        None,
        "--scope",
        "-s",
        help=Messages.HELP_SYNC_SCOPE,
    ),
    vault: Path | None = typer.Option(
        None,
        "--vault",
        "-p",
        help=Messages.HELP_VAULT_PATH,
    ),
) -> None:
    """Upload new and changed notes to the File Search store."""
    engine = _open_engine(vault)
    target = scope or str(engine.documents.root)
    console.print(_styled(Messages.INFO_SYNC_RUNNING.format(path=target), Styles.INFO))
    try:
        with Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
            transient=True,
        ) as progress:
            task_id = progress.add_task("", total=None)

            def _on_progress(snapshot: SyncProgress) -> None:
                description = ""
                if snapshot.current:
                    description = Messages.INFO_SYNC_UPLOADING.format(name=snapshot.current)
                progress.update(
                    task_id,
                    total=snapshot.total or None,
                    completed=snapshot.processed,
                    description=description,
                )

            summary = engine.sync_vault(scope, on_progress=_on_progress)
    except VaultAIError as exc:
        console.print(_styled(exc.message, Styles.ERROR))
        raise typer.Exit(code=1)
    finally:
        engine.close()

    if engine.progress.total == 0 and not summary.cancelled:
        console.print(_styled(Messages.INFO_SYNC_UP_TO_DATE, Styles.INFO))
        return
    if summary.cancelled:
        console.print(_styled(Messages.INFO_SYNC_CANCELLED, Styles.WARNING))
    style = Styles.WARNING if summary.failed else Styles.SUCCESS
    console.print(
        _styled(
            Messages.INFO_SYNC_SUMMARY.format(
                success=summary.success,
                failed=summary.failed,
                skipped=summary.skipped,
            ),
            style,
        )
    )
    if summary.failed:
        raise typer.Exit(code=1)


@app.command()
def ask(
    text: str = typer.Argument(..., help=Messages.HELP_ASK_TEXT),
    mode: QueryMode = typer.Option(
        QueryMode.PLAIN,
        "--mode",
        "-m",
        case_sensitive=False,
        help=Messages.HELP_ASK_MODE,
    ),
    metadata_filter: str | None = typer.Option(
        None,
        "--filter",
        help=Messages.HELP_ASK_FILTER,
    ),
    vault: Path | None = typer.Option(
        None,
        "--vault",
        "-p",
        help=Messages.HELP_VAULT_PATH,
    ),
) -> None:
    """Ask a question in plain chat or against the synced vault."""
    engine = _open_engine(vault)
    try:
        result = engine.query(text, mode, metadata_filter=metadata_filter)
    finally:
        engine.close()
    _print_result(result)


@app.command()
def summarize(
    note: str = typer.Argument(..., help=Messages.HELP_NOTE),
    vault: Path | None = typer.Option(
        None,
        "--vault",
        "-p",
        help=Messages.HELP_VAULT_PATH,
    ),
) -> None:
    """Summarize one note."""
    engine = _open_engine(vault)
    try:
        result = engine.summarize(note)
    finally:
        engine.close()
    _print_result(result)


@app.command()
def translate(
    note: str = typer.Argument(..., help=Messages.HELP_NOTE),
    language: str = typer.Option(
        "English",
        "--language",
        "-l",
        help=Messages.HELP_LANGUAGE,
    ),
    vault: Path | None = typer.Option(
        None,
        "--vault",
        "-p",
        help=Messages.HELP_VAULT_PATH,
    ),
) -> None:
    """Translate one note."""
    engine = _open_engine(vault)
    try:
        result = engine.translate(note, language)
    finally:
        engine.close()
    _print_result(result)


@app.command()
def actions(
    note: str = typer.Argument(..., help=Messages.HELP_NOTE),
    vault: Path | None = typer.Option(
        None,
        "--vault",
        "-p",
        help=Messages.HELP_VAULT_PATH,
    ),
) -> None:
    """List the action items found in one note."""
    engine = _open_engine(vault)
    try:
        result = engine.find_action_items(note)
    finally:
        engine.close()
    _print_result(result)


@app.command()
def stats(
    vault: Path | None = typer.Option(
        None,
        "--vault",
        "-p",
        help=Messages.HELP_VAULT_PATH,
    ),
) -> None:
    """Show how many notes are tracked and synced."""
    engine = _open_engine(vault)
    try:
        counts = engine.get_sync_stats()
        handle = engine.store_handle
    finally:
        engine.close()
    console.print(
        Messages.INFO_STATS.format(
            total=counts.total,
            synced=counts.synced,
            pending=counts.pending,
            store=handle.name if handle is not None else Messages.INFO_STORE_NONE,
        ),
        markup=False,
    )


@app.command()
def stores(
    vault: Path | None = typer.Option(
        None,
        "--vault",
        "-p",
        help=Messages.HELP_VAULT_PATH,
    ),
) -> None:
    """List the File Search stores visible to the configured API key."""
    engine = _open_engine(vault)
    try:
        handles = engine.list_stores()
        active = engine.store_handle
    except VaultAIError as exc:
        console.print(_styled(exc.message, Styles.ERROR))
        raise typer.Exit(code=1)
    finally:
        engine.close()
    if not handles:
        console.print(_styled(Messages.INFO_STORES_EMPTY, Styles.INFO))
        return
    table = Table(show_header=True, header_style=Styles.TABLE_HEADER, title=Messages.TABLE_TITLE)
    table.add_column(Messages.TABLE_HEADER_INDEX, justify="right")
    table.add_column(Messages.TABLE_HEADER_NAME, overflow="fold")
    table.add_column(Messages.TABLE_HEADER_DISPLAY, overflow="fold")
    table.add_column(Messages.TABLE_HEADER_ACTIVE, justify="center")
    for idx, handle in enumerate(handles, start=1):
        is_active = active is not None and active.name == handle.name
        table.add_row(
            str(idx),
            handle.name,
            handle.display_name or "-",
            "yes" if is_active else "",
        )
    console.print(table)


@app.command("delete-store")
def delete_store(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help=Messages.HELP_DELETE_YES,
    ),
    vault: Path | None = typer.Option(
        None,
        "--vault",
        "-p",
        help=Messages.HELP_VAULT_PATH,
    ),
) -> None:
    """Delete the active File Search store and reset the sync state."""
    engine = _open_engine(vault)
    try:
        handle = engine.store_handle
        if handle is None:
            console.print(_styled(Messages.ERROR_STORE_NONE, Styles.WARNING))
            raise typer.Exit(code=1)
        if not yes and not typer.confirm(Messages.CONFIRM_DELETE_STORE.format(name=handle.name)):
            console.print(_styled(Messages.INFO_DELETE_ABORTED, Styles.INFO))
            raise typer.Exit(code=0)
        try:
            engine.delete_index()
        except VaultAIError as exc:
            console.print(_styled(exc.message, Styles.ERROR))
            raise typer.Exit(code=1)
    finally:
        engine.close()
    console.print(_styled(Messages.INFO_STORE_DELETED.format(name=handle.name), Styles.SUCCESS))


@app.command()
def config(
    set_api_key_option: str | None = typer.Option(
        None,
        "--set-api-key",
        help=Messages.HELP_SET_API_KEY,
    ),
    clear_api_key: bool = typer.Option(
        False,
        "--clear-api-key",
        help=Messages.HELP_CLEAR_API_KEY,
    ),
    set_model_option: str | None = typer.Option(
        None,
        "--set-model",
        help=Messages.HELP_SET_MODEL,
    ),
    set_vault_option: Path | None = typer.Option(
        None,
        "--set-vault",
        help=Messages.HELP_SET_VAULT,
    ),
    set_store_name_option: str | None = typer.Option(
        None,
        "--set-store-name",
        help=Messages.HELP_SET_STORE_NAME,
    ),
    show: bool = typer.Option(
        False,
        "--show",
        help=Messages.HELP_SHOW_CONFIG,
    ),
) -> None:
    """Manage VaultAI configuration stored in ~/.vaultai/config.json."""
    changed = False
    if set_api_key_option is not None:
        set_api_key(set_api_key_option)
        console.print(_styled(Messages.INFO_API_SAVED, Styles.SUCCESS))
        changed = True
    if clear_api_key:
        set_api_key(None)
        console.print(_styled(Messages.INFO_API_CLEARED, Styles.SUCCESS))
        changed = True
    if set_model_option is not None:
        set_model(set_model_option)
        console.print(
            _styled(Messages.INFO_MODEL_SET.format(value=set_model_option), Styles.SUCCESS)
        )
        changed = True
    if set_vault_option is not None:
        vault_value = str(set_vault_option.expanduser().resolve())
        set_vault_path(vault_value)
        console.print(
            _styled(Messages.INFO_VAULT_SET.format(value=vault_value), Styles.SUCCESS)
        )
        changed = True
    if set_store_name_option is not None:
        set_store_display_name(set_store_name_option)
        console.print(
            _styled(
                Messages.INFO_STORE_NAME_SET.format(value=set_store_name_option),
                Styles.SUCCESS,
            )
        )
        changed = True

    if show or not changed:
        cfg = load_config()
        console.print(
            _styled(
                Messages.INFO_CONFIG_SUMMARY.format(
                    api="yes" if resolve_api_key(cfg.api_key) else "no",
                    model=cfg.model or DEFAULT_MODEL,
                    vault=cfg.vault_path or "-",
                    store=cfg.store_display_name,
                    interval=cfg.poll_interval,
                    attempts=cfg.max_poll_attempts,
                ),
                Styles.INFO,
            )
        )


def _print_result(result: QueryResult) -> None:
    if not result.ok:
        console.print(_styled(result.error.message, Styles.ERROR))
        raise typer.Exit(code=1)
    console.print(result.text, markup=False, highlight=False)


def _styled(text: str, style: str) -> str:
    return f"[{style}]{text}[/{style}]"


def run(argv: list[str] | None = None) -> None:
    """Entry point wrapper allowing optional argument override."""
    args = list(argv) if argv is not None else sys.argv[1:]
    logging.basicConfig(format=LOG_FORMAT)
    if argv is None:
        app()
    else:
        app(args=args)
