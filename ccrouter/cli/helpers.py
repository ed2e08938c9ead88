"""CLI helper utilities for ccrouter."""

import json
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from click import get_current_context
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from ccrouter.config.settings import Settings
from ccrouter.llms.streaming.translator import TranslationStats


CLI_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
    }
)

# stdout carries SSE frames, so human-facing output goes to stderr
err_console = Console(stderr=True, theme=CLI_THEME)


def error(text: str) -> str:
    return f"[error]{escape(text)}[/error]"


def get_settings_from_context() -> Settings:
    """Get the Settings instance stored on the typer context by the callback."""
    ctx = get_current_context()
    if ctx.obj and isinstance(ctx.obj.get("settings"), Settings):
        return ctx.obj["settings"]
    return Settings.from_config()


def read_chunks(source: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    """Yield fixed-size blocks from a binary file until EOF."""
    while chunk := source.read(chunk_size):
        yield chunk


def open_source(path: Path | None) -> BinaryIO:
    if path is None or str(path) == "-":
        return sys.stdin.buffer
    return path.open("rb")


def load_request(path: Path) -> dict[str, object]:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return data


def render_stats(stats: TranslationStats, message_id: str) -> Table:
    table = Table(title=f"Translation {message_id}", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Records", str(stats.records))
    table.add_row("Skipped records", str(stats.skipped_records))
    table.add_row("Content blocks", str(stats.blocks))
    table.add_row("Frames", str(stats.frames))
    return table
