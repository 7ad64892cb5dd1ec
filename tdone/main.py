import os
import shutil
import signal
import typer
from pathlib import Path
from typing import List, Optional, Tuple
from rich.console import Console
from rich.table import Table

from tdone.config.loader import ConfigurationError, load_config
from tdone.config.environment import InvocationError, resolve_invocation, validate_media_root
from tdone.config.models import AppConfig
from tdone.domain.models import ActionMode, PipelineResult
from tdone.infrastructure.logging import setup_logging
from tdone.infrastructure.filebot import FileBotAdapter, resolve_filebot_binary
from tdone.infrastructure.filebot_output import affected_lines
from tdone.infrastructure.disk_space import MB, has_free_space
from tdone.infrastructure.plex import PlexClient, mask_token
from tdone.pipeline.context import RunContext
from tdone.pipeline.controller import PipelineController

app = typer.Typer(help="transmission-done - organize finished downloads into Plex")
doctor_app = typer.Typer(help="Check transmission-done dependencies and Plex connectivity")

console = Console()


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt(f"signal {signum}")


def _load_config_or_exit(config_path: Optional[Path]) -> AppConfig:
    try:
        return load_config(config_path)
    except ConfigurationError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _print_preview(result: PipelineResult) -> None:
    if result.preview is None:
        return
    table = Table(title=f"Preview: {result.preview.files_affected} files")
    table.add_column("From")
    table.add_column("To")
    for line in affected_lines(result.preview.output, ActionMode.SIMULATE):
        if " from [" in line and " to [" in line:
            source, target = line.split(" from [", 1)[1].split("] to [", 1)
            table.add_row(source, target.rstrip("]"))
        else:
            table.add_row(line, "")
    console.print(table)


@app.command()
def process(
    source_dir: Optional[Path] = typer.Argument(
        None,
        help="Download directory to process (manual mode; ignored when TR_TORRENT_DIR/TR_TORRENT_NAME are set)"
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview the rename without touching any file"),
    stability_seconds: Optional[float] = typer.Option(
        None, "--stability-seconds", help="Override the file size stability window"
    ),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Clean, rename and move a finished download into the Plex library, then rescan."""
    config = _load_config_or_exit(config_path)
    # Apply CLI overrides
    if debug: config.logging.debug = True
    if stability_seconds is not None: config.processing.stability_seconds = stability_seconds

    logger = setup_logging(
        config.log_file(os.environ.get("HOME")),
        debug=config.logging.debug,
        max_size=config.logging.max_size,
    )

    previous_term = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        try:
            invocation = resolve_invocation(source_dir)
            logger.info(f"Detected {invocation.mode.value.upper()} mode")
            validate_media_root(config.media_root)
        except InvocationError as exc:
            logger.error(f"Error: {exc}")
            logger.error("Error: Environment validation failed")
            raise typer.Exit(code=1)

        logger.info(f"Starting post-download processing for {invocation.name}")
        context = RunContext(config=config, logger=logger, name=invocation.name)
        engine = FileBotAdapter(config.processing, config.media_root, logger=context.child("filebot"))
        notifier = None if dry_run else PlexClient(
            config.plex.server,
            config.plex.token,
            rescan=config.rescan,
            logger=context.child("plex"),
        )
        controller = PipelineController(context, engine, notifier=notifier)
        result = controller.run(invocation.source_dir, dry_run=dry_run)

        if dry_run:
            _print_preview(result)
        if not result.succeeded:
            logger.error(f"Error: Media processing failed at {result.stage.value}: {result.message}")
        raise typer.Exit(code=result.exit_code)

    except KeyboardInterrupt:
        logger.error("Processing interrupted")
        typer.secho("\nProcessing interrupted", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)

    except typer.Exit:
        raise

    except Exception as e:
        logger.exception(f"Fatal Error: {e}")
        typer.secho(f"Fatal Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    finally:
        signal.signal(signal.SIGTERM, previous_term)


def run_checks(config: AppConfig, plex: Optional[PlexClient] = None) -> List[Tuple[str, bool, bool, str]]:
    """Returns (check, passed, required, detail) rows."""
    rows = []

    filebot = resolve_filebot_binary(config.processing.filebot_path)
    detail = filebot or "not found (https://www.filebot.net/)"
    if filebot:
        version = FileBotAdapter(config.processing, config.media_root).version()
        if version:
            detail = f"{filebot} ({version})"
    rows.append(("filebot", filebot is not None, True, detail))

    lsof = shutil.which("lsof")
    rows.append(("lsof", lsof is not None, False, lsof or "not found (open-file check disabled)"))

    media_root = config.media_root
    try:
        validate_media_root(media_root)
        rows.append(("media path", True, True, str(media_root)))
        enough, free = has_free_space(media_root, config.processing.min_free_space_mb)
        rows.append((
            "free space",
            enough,
            True,
            f"{free // MB}MB free, need {config.processing.min_free_space_mb}MB",
        ))
    except InvocationError as exc:
        rows.append(("media path", False, True, str(exc)))

    plex = plex or PlexClient(config.plex.server, config.plex.token, rescan=config.rescan)
    rows.append((
        "plex",
        plex.verify_connection(),
        True,
        f"{config.plex.server} (token {mask_token(config.plex.token)})",
    ))
    return rows


@doctor_app.command()
def doctor(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
):
    """Check dependencies, the media path and the Plex server."""
    config = _load_config_or_exit(config_path)
    rows = run_checks(config)

    table = Table(title="transmission-done doctor")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Detail")
    for name, passed, required, detail in rows:
        if passed:
            status = "[green]OK[/green]"
        elif required:
            status = "[red]FAIL[/red]"
        else:
            status = "[yellow]WARN[/yellow]"
        table.add_row(name, status, detail)
    console.print(table)

    if not all(passed for _, passed, required, _ in rows if required):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
