"""ccrouter - OpenAI-compatible to Anthropic Messages stream router."""

from ._version import __version__
from .llms.streaming import StreamTranslator, iter_translate, translate


__all__ = ["__version__", "StreamTranslator", "iter_translate", "translate"]
