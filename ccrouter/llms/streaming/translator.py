"""OpenAI chat completion stream to Anthropic Messages stream translation.

``StreamTranslator`` is a push-style transducer: ``start()``, then
``feed()`` for every raw network chunk, then ``finish()``. ``translate`` and
``iter_translate`` wrap it as lazy async and sync generators, so each output
frame is handed to the consumer as soon as the input behind it is parsed.
"""

import json
import uuid
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
from dataclasses import dataclass

import structlog
from pydantic import ValidationError

from ccrouter.config.core import TranslatorSettings
from ccrouter.core.errors import TranslatorClosedError
from ccrouter.llms.models import anthropic as anthropic_models
from ccrouter.llms.models import openai as openai_models

from .sse import DONE_SENTINEL, SSELineDecoder, extract_data, format_event
from .state import InputDelta, TranslatorState, delta_from_chunk, finalize, fold


logger = structlog.get_logger(__name__)


@dataclass
class TranslationStats:
    """Counters describing one translation."""

    records: int = 0
    skipped_records: int = 0
    blocks: int = 0
    frames: int = 0


def generate_message_id(prefix: str = "msg_") -> str:
    return f"{prefix}{uuid.uuid4().hex[:24]}"


class StreamTranslator:
    """Translates one upstream stream; create a fresh instance per stream."""

    def __init__(
        self,
        model: str,
        *,
        message_id: str | None = None,
        settings: TranslatorSettings | None = None,
    ) -> None:
        self.settings = settings or TranslatorSettings()
        self.model = model
        self.message_id = message_id or generate_message_id(
            self.settings.message_id_prefix
        )
        self.state = TranslatorState(thinking_signature=self.settings.thinking_signature)
        self.stats = TranslationStats()
        self._decoder = SSELineDecoder()
        self._started = False
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def _render(self, events: list[anthropic_models.MessageStreamEvent]) -> list[bytes]:
        frames = [format_event(event) for event in events]
        self.stats.frames += len(frames)
        return frames

    def _parse_line(self, line: str) -> InputDelta | None:
        payload = extract_data(line)
        if payload is None or payload == DONE_SENTINEL:
            return None
        self.stats.records += 1
        try:
            chunk = openai_models.parse_chunk(json.loads(payload))
            return delta_from_chunk(chunk)
        except (json.JSONDecodeError, RecursionError, ValidationError) as e:
            self.stats.skipped_records += 1
            logger.debug(
                "sse_record_skipped",
                error=str(e),
                payload_preview=payload[:100],
            )
            return None

    def _process_lines(self, lines: list[str]) -> list[bytes]:
        frames: list[bytes] = []
        for line in lines:
            delta = self._parse_line(line)
            if delta is None:
                continue
            _, events = fold(self.state, delta)
            frames.extend(self._render(events))
        return frames

    def start(self) -> list[bytes]:
        """Emit message_start; called once before any input is fed."""
        if self._started:
            return []
        self._started = True
        logger.debug(
            "stream_translation_started",
            message_id=self.message_id,
            model=self.model,
        )
        event = anthropic_models.MessageStartEvent(
            message=anthropic_models.MessageResponse(
                id=self.message_id, model=self.model
            )
        )
        return self._render([event])

    def feed(self, chunk: bytes) -> list[bytes]:
        """Consume one raw chunk and return the frames it completed."""
        if self._finished:
            raise TranslatorClosedError("Cannot feed a finished translator")
        frames = self.start()
        frames.extend(self._process_lines(self._decoder.feed(chunk)))
        return frames

    def finish(self) -> list[bytes]:
        """Flush trailing input, close the open block and end the message."""
        if self._finished:
            raise TranslatorClosedError("Translator already finished")
        frames = self.start()
        frames.extend(self._process_lines(self._decoder.flush()))
        self._finished = True
        frames.extend(self._render(finalize(self.state)))
        self.stats.blocks = self.state.blocks_opened
        logger.debug(
            "stream_translation_completed",
            message_id=self.message_id,
            stop_reason=self.state.stop_reason(),
            records=self.stats.records,
            skipped_records=self.stats.skipped_records,
            blocks=self.stats.blocks,
        )
        return frames

    def abort(self) -> None:
        """Release buffered input when the consumer stops reading."""
        if not self._finished:
            logger.info(
                "stream_translation_cancelled",
                message_id=self.message_id,
                records=self.stats.records,
            )
        self._decoder.reset()
        self._finished = True


async def translate(
    stream: AsyncIterable[bytes],
    model: str,
    *,
    message_id: str | None = None,
    settings: TranslatorSettings | None = None,
    translator: StreamTranslator | None = None,
) -> AsyncIterator[bytes]:
    """Translate an OpenAI SSE byte stream into Anthropic SSE frames.

    Args:
        stream: Raw upstream bytes, e.g. ``httpx.Response.aiter_bytes()``
        model: Model identifier echoed into message_start
        message_id: Message identifier; generated when omitted
        settings: Translator settings
        translator: Pre-built translator, to inspect its stats afterwards

    Yields:
        Encoded SSE frames, one per Anthropic event
    """
    translator = translator or StreamTranslator(
        model, message_id=message_id, settings=settings
    )
    try:
        for frame in translator.start():
            yield frame
        async for chunk in stream:
            for frame in translator.feed(chunk):
                yield frame
        for frame in translator.finish():
            yield frame
    finally:
        if not translator.finished:
            translator.abort()


def iter_translate(
    chunks: Iterable[bytes],
    model: str,
    *,
    message_id: str | None = None,
    settings: TranslatorSettings | None = None,
    translator: StreamTranslator | None = None,
) -> Iterator[bytes]:
    """Synchronous counterpart of ``translate`` for files and other iterables."""
    translator = translator or StreamTranslator(
        model, message_id=message_id, settings=settings
    )
    try:
        yield from translator.start()
        for chunk in chunks:
            yield from translator.feed(chunk)
        yield from translator.finish()
    finally:
        if not translator.finished:
            translator.abort()
