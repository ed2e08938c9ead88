"""Main entry point for the ccrouter command line."""

import asyncio
import json
import sys
from pathlib import Path

import httpx
import structlog
import typer

from ccrouter._version import __version__
from ccrouter.config.settings import Settings
from ccrouter.core.errors import CCRouterError
from ccrouter.core.logging import setup_logging
from ccrouter.http.client import UpstreamClient
from ccrouter.llms.streaming.translator import StreamTranslator, iter_translate

from .helpers import (
    err_console,
    error,
    get_settings_from_context,
    load_request,
    open_source,
    read_chunks,
    render_stats,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"ccrouter {__version__}")
        raise typer.Exit()


app = typer.Typer(
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=False,
    help="Translate OpenAI-compatible chat completion streams into Anthropic Messages streams.",
)

logger = structlog.get_logger(__name__)


@app.callback()
def app_main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Override the logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    json_logs: bool | None = typer.Option(
        None,
        "--json-logs/--rich-logs",
        help="Render logs as JSON lines or rich console output",
    ),
) -> None:
    """ccrouter command line interface."""
    try:
        overrides: dict[str, object] = {}
        if log_level is not None:
            overrides["level"] = log_level
        if json_logs is not None:
            overrides["format"] = "json" if json_logs else "rich"
        settings = Settings.from_config(
            config, **({"logging": overrides} if overrides else {})
        )
    except (CCRouterError, ValueError) as e:
        err_console.print(error(f"Configuration error: {e}"))
        raise typer.Exit(1) from e

    log_format = settings.logging.format
    if log_format == "auto":
        log_format = "rich" if sys.stderr.isatty() else "json"
    setup_logging(json_logs=log_format == "json", log_level_name=settings.logging.level)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["config_path"] = config


@app.command()
def translate(
    path: Path | None = typer.Argument(
        None,
        help="Upstream SSE capture to translate ('-' or omitted reads stdin)",
        dir_okay=False,
    ),
    model: str = typer.Option("", "--model", "-m", help="Model echoed into message_start"),
    message_id: str | None = typer.Option(
        None, "--message-id", help="Message identifier (generated when omitted)"
    ),
    chunk_size: int | None = typer.Option(
        None, "--chunk-size", min=1, help="Read block size in bytes"
    ),
    stats: bool = typer.Option(
        False, "--stats", help="Print a translation summary to stderr"
    ),
) -> None:
    """Translate a captured OpenAI stream into Anthropic SSE on stdout."""
    settings = get_settings_from_context()
    size = chunk_size or settings.translator.read_chunk_size
    translator = StreamTranslator(
        model, message_id=message_id, settings=settings.translator
    )

    try:
        source = open_source(path)
    except OSError as e:
        err_console.print(error(f"Cannot open {path}: {e}"))
        raise typer.Exit(1) from e

    out = sys.stdout.buffer
    try:
        for frame in iter_translate(
            read_chunks(source, size), model, translator=translator
        ):
            out.write(frame)
            out.flush()
    finally:
        if source is not sys.stdin.buffer:
            source.close()

    if stats:
        err_console.print(render_stats(translator.stats, translator.message_id))


@app.command()
def stream(
    request_file: Path = typer.Argument(
        ...,
        help="JSON file holding an OpenAI chat completion request",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Model echoed into message_start (defaults to the request's model)",
    ),
) -> None:
    """Send a request upstream and write the translated stream to stdout."""
    settings = get_settings_from_context()
    try:
        request = load_request(request_file)
    except (OSError, ValueError) as e:
        err_console.print(error(f"Invalid request file: {e}"))
        raise typer.Exit(1) from e

    async def _run() -> None:
        out = sys.stdout.buffer
        async with UpstreamClient(settings) as client:
            async for frame in client.stream_messages(request, model):
                out.write(frame)
                out.flush()

    try:
        asyncio.run(_run())
    except CCRouterError as e:
        err_console.print(error(str(e)))
        raise typer.Exit(1) from e
    except httpx.HTTPError as e:
        logger.error("upstream_transport_error", error=str(e), exc_info=e)
        err_console.print(error(f"Upstream transport error: {e}"))
        raise typer.Exit(1) from e


@app.command("config")
def show_config() -> None:
    """Print the effective configuration as JSON (secrets masked)."""
    settings = get_settings_from_context()
    typer.echo(json.dumps(settings.model_dump_safe(), indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
