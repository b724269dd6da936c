"""
LLM-backed providers.

``gemini`` covers the primary summarizer, the ISBN estimation fallback and
video enrichment, ``chat_completions`` serves the OpenAI-compatible Groq and
OpenRouter endpoints, and ``anthropic`` wraps the Messages API.
"""

from .anthropic import AnthropicClient, AnthropicSummaryAdapter
from .chat_completions import ChatCompletionsClient, ChatCompletionsSummaryAdapter, groq_adapter, openrouter_adapter
from .gemini import GeminiClient, GeminiIsbnAdapter, GeminiSummaryAdapter, GeminiVideoAdapter, parse_isbn_answer, parse_video_answer
from .prompts import SummaryRequest, SummaryStyle, isbn_prompt, video_prompt

__all__ = [
    "AnthropicClient",
    "AnthropicSummaryAdapter",
    "ChatCompletionsClient",
    "ChatCompletionsSummaryAdapter",
    "GeminiClient",
    "GeminiIsbnAdapter",
    "GeminiSummaryAdapter",
    "GeminiVideoAdapter",
    "SummaryRequest",
    "SummaryStyle",
    "groq_adapter",
    "isbn_prompt",
    "openrouter_adapter",
    "parse_isbn_answer",
    "parse_video_answer",
    "video_prompt",
]
