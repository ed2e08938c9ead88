"""Streaming translation from OpenAI chat completions to Anthropic messages."""

from .state import InputDelta, ToolCallFragment, TranslatorState, fold
from .translator import (
    StreamTranslator,
    TranslationStats,
    iter_translate,
    translate,
)


__all__ = [
    "InputDelta",
    "StreamTranslator",
    "ToolCallFragment",
    "TranslationStats",
    "TranslatorState",
    "fold",
    "iter_translate",
    "translate",
]
