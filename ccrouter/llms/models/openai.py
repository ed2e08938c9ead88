"""OpenAI chat.completion.chunk models.

Upstream feeds are not trusted to follow the schema exactly, so every field
is optional and unknown fields are kept rather than rejected.
"""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="allow")


class CompletionUsage(_Lenient):
    """Token accounting reported by the upstream."""

    prompt_tokens: Annotated[int | None, Field(description="Input tokens")] = None
    completion_tokens: Annotated[int | None, Field(description="Output tokens")] = None
    total_tokens: Annotated[int | None, Field(description="Sum of both")] = None


class FunctionCallDelta(_Lenient):
    """Partial function call carried by a tool call fragment."""

    name: str | None = None
    arguments: str | None = None


class ToolCallDelta(_Lenient):
    """One tool call fragment inside a streamed delta."""

    index: int | None = None
    id: Annotated[str | None, Field(description="Call id, present on the first fragment")] = None
    type: str | None = None
    function: FunctionCallDelta | None = None


class ChoiceDelta(_Lenient):
    """Incremental message content for one choice."""

    role: str | None = None
    content: str | None = None
    reasoning: Annotated[
        str | None, Field(description="Reasoning text (OpenRouter style)")
    ] = None
    reasoning_content: Annotated[
        str | None, Field(description="Reasoning text (DeepSeek style)")
    ] = None
    tool_calls: list[ToolCallDelta] | None = None
    usage: CompletionUsage | None = None


class ChunkChoice(_Lenient):
    """A single choice of a streamed completion chunk."""

    index: int = 0
    delta: ChoiceDelta | None = None
    finish_reason: str | None = None


class ChatCompletionChunk(_Lenient):
    """A chat.completion.chunk record as streamed by OpenAI-compatible APIs."""

    id: str | None = None
    object: str | None = None
    created: int | None = None
    model: str | None = None
    choices: list[ChunkChoice] = Field(default_factory=list)
    usage: CompletionUsage | None = None

    @property
    def first_delta(self) -> ChoiceDelta | None:
        if not self.choices:
            return None
        return self.choices[0].delta


def parse_chunk(data: Any) -> ChatCompletionChunk:
    """Validate a decoded JSON document as a completion chunk."""
    return ChatCompletionChunk.model_validate(data)
