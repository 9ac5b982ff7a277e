"""Main entry point for the willpower board.

`willpower` with no subcommand starts the interactive board.
"""
import logging
from pathlib import Path
from typing import Optional

import click

import config
from cli import CLI
from session import Session
from storage import BackupImportError, Storage


def _setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group(invoke_without_command=True)
@click.option('--data-file', type=click.Path(dir_okay=False, path_type=Path), default=None,
              help='Snapshot file (defaults to WILLPOWER_DATA_FILE or ~/.willpower/state.json).')
@click.pass_context
def main(ctx: click.Context, data_file: Optional[Path]) -> None:
    _setup_logging()
    ctx.obj = Storage(data_file)
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@main.command()
@click.pass_obj
def run(storage: Storage) -> None:
    """Start the interactive board."""
    CLI(Session(storage)).run()


@main.command('export')
@click.argument('directory', required=False, type=click.Path(file_okay=False, path_type=Path))
@click.pass_obj
def export_cmd(storage: Storage, directory: Optional[Path]) -> None:
    """Write a dated backup of the current snapshot."""
    path = storage.export_backup(storage.load_snapshot(), directory)
    click.echo(f"Backup written to {path}")


@main.command('import')
@click.argument('backup', type=click.File('r', encoding='utf-8'))
@click.pass_obj
def import_cmd(storage: Storage, backup) -> None:
    """Replace the stored snapshot with BACKUP."""
    try:
        state = storage.import_backup(backup.read())
    except BackupImportError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Imported {len(state.history)} day(s) of history.")


@main.command()
@click.pass_obj
def stats(storage: Storage) -> None:
    """Print capacity, heatmap and recent history."""
    for line in Session(storage).render_stats():
        click.echo(line)


if __name__ == "__main__":
    main()
