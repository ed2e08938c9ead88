"""Tests for the content-block state machine."""

import pytest

from ccrouter.llms.models import anthropic as anthropic_models
from ccrouter.llms.models import openai as openai_models
from ccrouter.llms.streaming.state import (
    InputDelta,
    NoBlock,
    TextBlockState,
    ThinkingBlockState,
    ToolCallFragment,
    ToolUseBlockState,
    TranslatorState,
    delta_from_chunk,
    finalize,
    fold,
)


def dump(events):
    return [event.model_dump(mode="json") for event in events]


def run(state, *deltas):
    emitted = []
    for delta in deltas:
        state, events = fold(state, delta)
        emitted.extend(dump(events))
    return emitted


@pytest.fixture
def state() -> TranslatorState:
    return TranslatorState(thinking_signature="sig")


@pytest.mark.unit
class TestFoldText:
    """Text fragments."""

    def test_first_text_opens_block_at_index_zero(self, state):
        events = run(state, InputDelta(text="Hi"))
        assert events == [
            {
                "type": "content_block_start",
                "index": 0,
                "content_block": {"type": "text", "text": ""},
            },
            {
                "type": "content_block_delta",
                "index": 0,
                "delta": {"type": "text_delta", "text": "Hi"},
            },
        ]
        assert state.block == TextBlockState(index=0)

    def test_consecutive_text_fragments_share_a_block(self, state):
        events = run(state, InputDelta(text="Hi"), InputDelta(text=" there"))
        assert [e["type"] for e in events] == [
            "content_block_start",
            "content_block_delta",
            "content_block_delta",
        ]
        assert {e["index"] for e in events} == {0}

    def test_empty_text_is_ignored(self, state):
        assert run(state, InputDelta(text="")) == []
        assert state.block == NoBlock()


@pytest.mark.unit
class TestFoldReasoning:
    """Reasoning fragments and transitions to and from text."""

    def test_reasoning_opens_thinking_block_with_signature(self, state):
        events = run(state, InputDelta(reasoning="hmm"))
        assert events[0]["content_block"] == {
            "type": "thinking",
            "thinking": "",
            "signature": "sig",
        }
        assert events[1]["delta"] == {"type": "thinking_delta", "thinking": "hmm"}
        assert state.block == ThinkingBlockState(index=0)

    def test_reasoning_then_text_closes_thinking(self, state):
        events = run(
            state,
            InputDelta(reasoning="a"),
            InputDelta(reasoning="b"),
            InputDelta(text="answer"),
        )
        assert [(e["type"], e["index"]) for e in events] == [
            ("content_block_start", 0),
            ("content_block_delta", 0),
            ("content_block_delta", 0),
            ("content_block_stop", 0),
            ("content_block_start", 1),
            ("content_block_delta", 1),
        ]

    def test_text_then_reasoning_closes_text(self, state):
        events = run(state, InputDelta(text="a"), InputDelta(reasoning="b"))
        assert events[2] == {"type": "content_block_stop", "index": 0}
        assert events[3]["content_block"]["type"] == "thinking"
        assert events[3]["index"] == 1


@pytest.mark.unit
class TestFoldToolCalls:
    """Tool call fragments."""

    def test_new_call_opens_tool_use_block(self, state):
        events = run(
            state,
            InputDelta(
                tool_calls=(
                    ToolCallFragment(call_id="call_1", function_name="get_weather"),
                )
            ),
        )
        assert events == [
            {
                "type": "content_block_start",
                "index": 0,
                "content_block": {
                    "type": "tool_use",
                    "id": "call_1",
                    "name": "get_weather",
                    "input": {},
                },
            }
        ]
        assert state.block == ToolUseBlockState(
            index=0, call_id="call_1", function_name="get_weather"
        )

    def test_arguments_are_streamed_immediately(self, state):
        events = run(
            state,
            InputDelta(
                tool_calls=(
                    ToolCallFragment(
                        call_id="call_1", function_name="f", arguments='{"ci'
                    ),
                )
            ),
            InputDelta(tool_calls=(ToolCallFragment(arguments='ty": "Paris"}'),)),
        )
        deltas = [e["delta"] for e in events if e["type"] == "content_block_delta"]
        assert deltas == [
            {"type": "input_json_delta", "partial_json": '{"ci'},
            {"type": "input_json_delta", "partial_json": 'ty": "Paris"}'},
        ]
        assert state.tool_arguments == {"call_1": '{"city": "Paris"}'}

    def test_same_call_id_repeated_is_a_continuation(self, state):
        events = run(
            state,
            InputDelta(tool_calls=(ToolCallFragment(call_id="call_1", function_name="f"),)),
            InputDelta(tool_calls=(ToolCallFragment(call_id="call_1", arguments="{}"),)),
        )
        assert [e["type"] for e in events] == [
            "content_block_start",
            "content_block_delta",
        ]

    @pytest.mark.parametrize(
        "opening",
        [InputDelta(text="hello"), InputDelta(reasoning="thinking")],
        ids=["text", "thinking"],
    )
    def test_new_call_closes_any_open_block(self, state, opening):
        events = run(
            state,
            opening,
            InputDelta(tool_calls=(ToolCallFragment(call_id="call_1", function_name="f"),)),
        )
        assert events[2] == {"type": "content_block_stop", "index": 0}
        assert events[3]["index"] == 1
        assert events[3]["content_block"]["type"] == "tool_use"

    def test_second_call_closes_first_and_evicts_its_arguments(self, state):
        events = run(
            state,
            InputDelta(tool_calls=(ToolCallFragment("call_1", "f", '{"a":1}'),)),
            InputDelta(tool_calls=(ToolCallFragment("call_2", "g", '{"b":2}'),)),
        )
        assert [(e["type"], e["index"]) for e in events] == [
            ("content_block_start", 0),
            ("content_block_delta", 0),
            ("content_block_stop", 0),
            ("content_block_start", 1),
            ("content_block_delta", 1),
        ]
        assert state.tool_arguments == {"call_2": '{"b":2}'}

    def test_several_fragments_in_one_delta(self, state):
        events = run(
            state,
            InputDelta(
                tool_calls=(
                    ToolCallFragment("call_1", "f", "{}"),
                    ToolCallFragment("call_2", "g", "{}"),
                )
            ),
        )
        starts = [e for e in events if e["type"] == "content_block_start"]
        assert [s["content_block"]["id"] for s in starts] == ["call_1", "call_2"]
        assert [s["index"] for s in starts] == [0, 1]

    def test_continuation_without_open_call_is_a_noop(self, state):
        assert run(state, InputDelta(tool_calls=(ToolCallFragment(arguments="{}"),))) == []

    def test_continuation_after_text_interrupts_call_is_a_noop(self, state):
        events = run(
            state,
            InputDelta(tool_calls=(ToolCallFragment("call_1", "f"),)),
            InputDelta(text="oops"),
            InputDelta(tool_calls=(ToolCallFragment(arguments='{"late":true}'),)),
        )
        assert not any(
            e["type"] == "content_block_delta"
            and e["delta"]["type"] == "input_json_delta"
            for e in events
        )

    def test_missing_function_name_defaults_to_empty(self, state):
        events = run(state, InputDelta(tool_calls=(ToolCallFragment(call_id="c"),)))
        assert events[0]["content_block"]["name"] == ""

    def test_tool_calls_take_precedence_over_text(self, state):
        events = run(
            state,
            InputDelta(text="ignored", tool_calls=(ToolCallFragment("call_1", "f"),)),
        )
        assert [e["content_block"]["type"] for e in events] == ["tool_use"]


@pytest.mark.unit
class TestFoldUsage:
    """Usage bookkeeping."""

    def test_usage_is_recorded_without_events(self, state):
        usage = anthropic_models.Usage(input_tokens=10, output_tokens=3)
        assert run(state, InputDelta(usage=usage)) == []
        assert state.usage == usage

    def test_last_usage_wins(self, state):
        run(
            state,
            InputDelta(usage=anthropic_models.Usage(input_tokens=1, output_tokens=1)),
            InputDelta(text="x", usage=anthropic_models.Usage(input_tokens=7, output_tokens=9)),
            InputDelta(text="y"),
        )
        assert state.final_usage() == anthropic_models.Usage(
            input_tokens=7, output_tokens=9
        )

    def test_empty_delta_is_a_noop(self, state):
        assert InputDelta().is_empty
        assert run(state, InputDelta()) == []
        assert state.block == NoBlock()


@pytest.mark.unit
class TestFinalize:
    """Finalization events."""

    def test_without_content(self, state):
        assert dump(finalize(state)) == [
            {
                "type": "message_delta",
                "delta": {"stop_reason": "end_turn", "stop_sequence": None},
                "usage": {"input_tokens": 0, "output_tokens": 0},
            },
            {"type": "message_stop"},
        ]

    def test_open_tool_call_is_closed_and_reported(self, state):
        run(state, InputDelta(tool_calls=(ToolCallFragment("call_1", "f", "{}"),)))
        events = dump(finalize(state))
        assert events[0] == {"type": "content_block_stop", "index": 0}
        assert events[1]["delta"]["stop_reason"] == "tool_use"
        assert state.tool_arguments == {}

    def test_tool_call_followed_by_text_ends_turn(self, state):
        run(
            state,
            InputDelta(tool_calls=(ToolCallFragment("call_1", "f", "{}"),)),
            InputDelta(text="done"),
        )
        events = dump(finalize(state))
        assert events[0] == {"type": "content_block_stop", "index": 1}
        assert events[1]["delta"]["stop_reason"] == "end_turn"


@pytest.mark.unit
class TestDeltaFromChunk:
    """Mapping of chat.completion.chunk records."""

    def test_content(self):
        chunk = openai_models.parse_chunk({"choices": [{"delta": {"content": "Hi"}}]})
        assert delta_from_chunk(chunk) == InputDelta(text="Hi")

    @pytest.mark.parametrize("field", ["reasoning", "reasoning_content"])
    def test_reasoning_fields(self, field):
        chunk = openai_models.parse_chunk({"choices": [{"delta": {field: "hmm"}}]})
        assert delta_from_chunk(chunk).reasoning == "hmm"

    def test_tool_calls(self):
        chunk = openai_models.parse_chunk(
            {
                "choices": [
                    {
                        "delta": {
                            "tool_calls": [
                                {
                                    "index": 0,
                                    "id": "call_1",
                                    "type": "function",
                                    "function": {"name": "f", "arguments": ""},
                                },
                                {"index": 0, "function": {"arguments": "{}"}},
                            ]
                        }
                    }
                ]
            }
        )
        assert delta_from_chunk(chunk).tool_calls == (
            ToolCallFragment(call_id="call_1", function_name="f", arguments=""),
            ToolCallFragment(arguments="{}"),
        )

    def test_usage_only_record(self):
        chunk = openai_models.parse_chunk(
            {"choices": [], "usage": {"prompt_tokens": 100, "completion_tokens": 50}}
        )
        assert delta_from_chunk(chunk) == InputDelta(
            usage=anthropic_models.Usage(input_tokens=100, output_tokens=50)
        )

    def test_usage_inside_delta_wins(self):
        chunk = openai_models.parse_chunk(
            {
                "choices": [
                    {"delta": {"usage": {"prompt_tokens": 2, "completion_tokens": 3}}}
                ],
                "usage": {"prompt_tokens": 1, "completion_tokens": 1},
            }
        )
        assert delta_from_chunk(chunk).usage == anthropic_models.Usage(
            input_tokens=2, output_tokens=3
        )

    def test_null_token_counts_default_to_zero(self):
        chunk = openai_models.parse_chunk(
            {"choices": [], "usage": {"prompt_tokens": None, "completion_tokens": 4}}
        )
        assert delta_from_chunk(chunk).usage == anthropic_models.Usage(
            input_tokens=0, output_tokens=4
        )
