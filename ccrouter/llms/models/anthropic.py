"""Anthropic Messages streaming event models."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


StopReason = Literal["end_turn", "tool_use", "max_tokens", "stop_sequence"]


class Usage(BaseModel):
    """Token usage in Anthropic terms."""

    input_tokens: Annotated[int, Field(description="Prompt tokens", ge=0)] = 0
    output_tokens: Annotated[int, Field(description="Completion tokens", ge=0)] = 0


# === Content blocks ===


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str = ""


class ThinkingBlock(BaseModel):
    type: Literal["thinking"] = "thinking"
    thinking: str = ""
    signature: Annotated[str, Field(description="Opaque thinking signature")] = ""


class ToolUseBlock(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    id: Annotated[str, Field(description="Tool call identifier")]
    name: Annotated[str, Field(description="Function name")] = ""
    input: dict[str, Any] = Field(default_factory=dict)


ContentBlock = Annotated[
    TextBlock | ThinkingBlock | ToolUseBlock, Field(discriminator="type")
]


# === Deltas ===


class TextDelta(BaseModel):
    type: Literal["text_delta"] = "text_delta"
    text: str


class ThinkingDelta(BaseModel):
    type: Literal["thinking_delta"] = "thinking_delta"
    thinking: str


class InputJSONDelta(BaseModel):
    type: Literal["input_json_delta"] = "input_json_delta"
    partial_json: str


BlockDelta = Annotated[
    TextDelta | ThinkingDelta | InputJSONDelta, Field(discriminator="type")
]


class MessageDelta(BaseModel):
    """Top-level message changes reported at the end of a stream."""

    stop_reason: StopReason | None = None
    stop_sequence: str | None = None


class MessageResponse(BaseModel):
    """Message skeleton carried by message_start."""

    id: str
    type: Literal["message"] = "message"
    role: Literal["assistant"] = "assistant"
    content: list[ContentBlock] = Field(default_factory=list)
    model: str
    stop_reason: StopReason | None = None
    stop_sequence: str | None = None
    usage: Usage = Field(default_factory=Usage)


# === Stream events ===


class MessageStartEvent(BaseModel):
    type: Literal["message_start"] = "message_start"
    message: MessageResponse


class ContentBlockStartEvent(BaseModel):
    type: Literal["content_block_start"] = "content_block_start"
    index: Annotated[int, Field(ge=0)]
    content_block: ContentBlock


class ContentBlockDeltaEvent(BaseModel):
    type: Literal["content_block_delta"] = "content_block_delta"
    index: Annotated[int, Field(ge=0)]
    delta: BlockDelta


class ContentBlockStopEvent(BaseModel):
    type: Literal["content_block_stop"] = "content_block_stop"
    index: Annotated[int, Field(ge=0)]


class MessageDeltaEvent(BaseModel):
    type: Literal["message_delta"] = "message_delta"
    delta: MessageDelta
    usage: Usage = Field(default_factory=Usage)


class MessageStopEvent(BaseModel):
    type: Literal["message_stop"] = "message_stop"


MessageStreamEvent = Annotated[
    MessageStartEvent
    | ContentBlockStartEvent
    | ContentBlockDeltaEvent
    | ContentBlockStopEvent
    | MessageDeltaEvent
    | MessageStopEvent,
    Field(discriminator="type"),
]
