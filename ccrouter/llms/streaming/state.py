"""Content-block state machine for OpenAI to Anthropic stream translation.

``fold`` consumes one ``InputDelta`` and returns the Anthropic events it
produces. At most one content block is open at a time; indices are handed
out from a counter so they stay contiguous from 0 and are never reused.
"""

from dataclasses import dataclass, field

import structlog

from ccrouter.llms.models import anthropic as anthropic_models
from ccrouter.llms.models import openai as openai_models


logger = structlog.get_logger(__name__)


# === Input side ===


@dataclass(frozen=True)
class ToolCallFragment:
    """A piece of a streamed tool call."""

    call_id: str | None = None
    function_name: str | None = None
    arguments: str | None = None


@dataclass(frozen=True)
class InputDelta:
    """Everything the translator needs from one upstream record."""

    text: str | None = None
    reasoning: str | None = None
    tool_calls: tuple[ToolCallFragment, ...] = ()
    usage: anthropic_models.Usage | None = None

    @property
    def is_empty(self) -> bool:
        return (
            not self.text
            and not self.reasoning
            and not self.tool_calls
            and self.usage is None
        )


def _usage_from_openai(
    usage: openai_models.CompletionUsage | None,
) -> anthropic_models.Usage | None:
    if usage is None:
        return None
    return anthropic_models.Usage(
        input_tokens=usage.prompt_tokens or 0,
        output_tokens=usage.completion_tokens or 0,
    )


def delta_from_chunk(chunk: openai_models.ChatCompletionChunk) -> InputDelta:
    """Map a chat.completion.chunk record onto an InputDelta.

    Only the first choice is considered. Usage may sit at the top level of
    the record or inside the delta; the delta's value wins when both exist.
    """
    usage = _usage_from_openai(chunk.usage)
    delta = chunk.first_delta
    if delta is None:
        return InputDelta(usage=usage)

    usage = _usage_from_openai(delta.usage) or usage
    fragments = tuple(
        ToolCallFragment(
            call_id=tc.id,
            function_name=tc.function.name if tc.function else None,
            arguments=tc.function.arguments if tc.function else None,
        )
        for tc in delta.tool_calls or ()
    )
    return InputDelta(
        text=delta.content,
        reasoning=delta.reasoning or delta.reasoning_content,
        tool_calls=fragments,
        usage=usage,
    )


# === Output side ===


@dataclass(frozen=True)
class NoBlock:
    """Nothing open yet, or the previous block was just closed."""


@dataclass(frozen=True)
class TextBlockState:
    index: int


@dataclass(frozen=True)
class ThinkingBlockState:
    index: int


@dataclass(frozen=True)
class ToolUseBlockState:
    index: int
    call_id: str
    function_name: str = ""


ContentBlock = NoBlock | TextBlockState | ThinkingBlockState | ToolUseBlockState


@dataclass
class TranslatorState:
    """Mutable state of one stream translation."""

    thinking_signature: str = ""
    block: ContentBlock = field(default_factory=NoBlock)
    next_index: int = 0
    usage: anthropic_models.Usage | None = None
    # argument text per open tool call, dropped when the call's block closes
    tool_arguments: dict[str, str] = field(default_factory=dict)
    blocks_opened: int = 0

    @property
    def in_tool_call(self) -> bool:
        return isinstance(self.block, ToolUseBlockState)

    @property
    def current_call_id(self) -> str | None:
        if isinstance(self.block, ToolUseBlockState):
            return self.block.call_id
        return None

    def final_usage(self) -> anthropic_models.Usage:
        return self.usage or anthropic_models.Usage()

    def stop_reason(self) -> anthropic_models.StopReason:
        return "tool_use" if self.in_tool_call else "end_turn"

    # -- block bracketing --

    def _allocate_index(self) -> int:
        index = self.next_index
        self.next_index += 1
        self.blocks_opened += 1
        return index

    def close_block(self) -> list[anthropic_models.ContentBlockStopEvent]:
        """Close the open block, if any."""
        block = self.block
        if isinstance(block, NoBlock):
            return []
        if isinstance(block, ToolUseBlockState):
            arguments = self.tool_arguments.pop(block.call_id, "")
            logger.debug(
                "tool_call_closed",
                index=block.index,
                call_id=block.call_id,
                name=block.function_name,
                arguments_length=len(arguments),
            )
        else:
            logger.debug(
                "content_block_closed", index=block.index, kind=type(block).__name__
            )
        self.block = NoBlock()
        return [anthropic_models.ContentBlockStopEvent(index=block.index)]

    def _open_tool_use(
        self, call_id: str, function_name: str | None
    ) -> list[anthropic_models.MessageStreamEvent]:
        events: list[anthropic_models.MessageStreamEvent] = [*self.close_block()]
        index = self._allocate_index()
        name = function_name or ""
        self.block = ToolUseBlockState(index=index, call_id=call_id, function_name=name)
        self.tool_arguments[call_id] = ""
        logger.debug("content_block_opened", index=index, kind="tool_use", name=name)
        events.append(
            anthropic_models.ContentBlockStartEvent(
                index=index,
                content_block=anthropic_models.ToolUseBlock(id=call_id, name=name),
            )
        )
        return events

    def _open(
        self,
        kind: type[TextBlockState] | type[ThinkingBlockState],
        content_block: anthropic_models.TextBlock | anthropic_models.ThinkingBlock,
        events: list[anthropic_models.MessageStreamEvent],
    ) -> int:
        """Open a text or thinking block unless one of that kind is open."""
        if isinstance(self.block, kind):
            return self.block.index
        events.extend(self.close_block())
        index = self._allocate_index()
        self.block = kind(index=index)
        logger.debug("content_block_opened", index=index, kind=content_block.type)
        events.append(
            anthropic_models.ContentBlockStartEvent(
                index=index, content_block=content_block
            )
        )
        return index

    # -- delta handlers --

    def apply_tool_call(
        self, fragment: ToolCallFragment
    ) -> list[anthropic_models.MessageStreamEvent]:
        events: list[anthropic_models.MessageStreamEvent] = []
        if fragment.call_id and fragment.call_id != self.current_call_id:
            events.extend(self._open_tool_use(fragment.call_id, fragment.function_name))

        block = self.block
        if fragment.arguments and isinstance(block, ToolUseBlockState):
            self.tool_arguments[block.call_id] = (
                self.tool_arguments.get(block.call_id, "") + fragment.arguments
            )
            events.append(
                anthropic_models.ContentBlockDeltaEvent(
                    index=block.index,
                    delta=anthropic_models.InputJSONDelta(
                        partial_json=fragment.arguments
                    ),
                )
            )
        return events

    def apply_reasoning(self, text: str) -> list[anthropic_models.MessageStreamEvent]:
        events: list[anthropic_models.MessageStreamEvent] = []
        index = self._open(
            ThinkingBlockState,
            anthropic_models.ThinkingBlock(signature=self.thinking_signature),
            events,
        )
        events.append(
            anthropic_models.ContentBlockDeltaEvent(
                index=index, delta=anthropic_models.ThinkingDelta(thinking=text)
            )
        )
        return events

    def apply_text(self, text: str) -> list[anthropic_models.MessageStreamEvent]:
        events: list[anthropic_models.MessageStreamEvent] = []
        index = self._open(TextBlockState, anthropic_models.TextBlock(), events)
        events.append(
            anthropic_models.ContentBlockDeltaEvent(
                index=index, delta=anthropic_models.TextDelta(text=text)
            )
        )
        return events


def fold(
    state: TranslatorState, delta: InputDelta
) -> tuple[TranslatorState, list[anthropic_models.MessageStreamEvent]]:
    """Fold one input delta into the state.

    The state is updated in place and returned alongside the events the
    delta produced. Tool calls take precedence over reasoning, reasoning over
    text; empty strings count as absent.
    """
    if delta.usage is not None:
        state.usage = delta.usage

    events: list[anthropic_models.MessageStreamEvent] = []
    if delta.tool_calls:
        for fragment in delta.tool_calls:
            events.extend(state.apply_tool_call(fragment))
    elif delta.reasoning:
        events.extend(state.apply_reasoning(delta.reasoning))
    elif delta.text:
        events.extend(state.apply_text(delta.text))
    return state, events


def finalize(
    state: TranslatorState,
) -> list[anthropic_models.MessageStreamEvent]:
    """Close the open block and emit message_delta and message_stop."""
    stop_reason = state.stop_reason()
    events: list[anthropic_models.MessageStreamEvent] = [*state.close_block()]
    events.append(
        anthropic_models.MessageDeltaEvent(
            delta=anthropic_models.MessageDelta(stop_reason=stop_reason),
            usage=state.final_usage(),
        )
    )
    events.append(anthropic_models.MessageStopEvent())
    return events
