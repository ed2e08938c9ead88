"""Server-Sent Events framing helpers.

Input side: incremental UTF-8 decoding and line splitting of raw network
chunks. Output side: rendering of Anthropic stream events as SSE frames.
"""

import codecs
import json

from pydantic import BaseModel


DONE_SENTINEL = "[DONE]"
DATA_FIELD = "data:"


class SSELineDecoder:
    """Turns arbitrarily split byte chunks into complete text lines.

    Multi-byte characters split across chunk boundaries are reassembled by
    the incremental decoder; the trailing partial line is kept until the next
    chunk (or flush) completes it.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last line terminator."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        """Decode a chunk and return every line it completed."""
        self._buffer += self._decoder.decode(chunk)
        if "\n" not in self._buffer:
            return []
        *lines, self._buffer = self._buffer.split("\n")
        return [line.removesuffix("\r") for line in lines]

    def flush(self) -> list[str]:
        """Return whatever is left once the input is exhausted."""
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer, ""
        return [line.removesuffix("\r") for line in rest.split("\n") if line]

    def reset(self) -> None:
        self._decoder.reset()
        self._buffer = ""


def extract_data(line: str) -> str | None:
    """Return the payload of a ``data:`` line, or None for any other line."""
    if not line.startswith(DATA_FIELD):
        return None
    payload = line[len(DATA_FIELD) :].strip()
    return payload or None


def format_event(event: BaseModel) -> bytes:
    """Render a stream event as ``event: <type>\\ndata: <json>\\n\\n``."""
    data = event.model_dump(mode="json")
    json_data = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    # lone surrogates (an emoji split across deltas) become \uXXXX escapes
    frame = f"event: {data['type']}\ndata: {json_data}\n\n"
    return frame.encode("utf-8", errors="backslashreplace")
