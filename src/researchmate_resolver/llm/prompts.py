"""
Prompt templates for the LLM-backed providers.

Summaries come in two styles: ``research`` (2-3 sentences on findings, the
default) and ``document`` (1-2 sentences for scanned or photographed pages).
The ISBN prompt asks the model for a JSON object or the literal ``null``; the
video prompt asks for a publication date estimate and a one-line description.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SummaryStyle(str, Enum):
    RESEARCH = "research"
    DOCUMENT = "document"


_SUMMARY_PROMPTS = {
    SummaryStyle.RESEARCH: (
        "Summarize the following research text in 2-3 concise sentences. "
        "Focus on the key findings and main points:\n\n{text}"
    ),
    SummaryStyle.DOCUMENT: (
        "Summarize the following scanned document in 1-2 concise sentences. "
        "Focus on the main topic and key points:\n\n{text}"
    ),
}

_SYSTEM_PROMPTS = {
    SummaryStyle.RESEARCH: "You are a research assistant. Summarize text concisely in 2-3 sentences.",
    SummaryStyle.DOCUMENT: "You are a research assistant. Summarize scanned documents concisely in 1-2 sentences.",
}

_CHAT_USER_PROMPTS = {
    SummaryStyle.RESEARCH: "Summarize this research text:\n\n{text}",
    SummaryStyle.DOCUMENT: "Summarize this scanned document:\n\n{text}",
}

ISBN_PROMPT = """You are a bibliographic assistant. Look up this book by ISBN: {isbn}

This is a real ISBN for a published book. Use your knowledge to identify:
- The exact title
- All author names (full names, e.g., "Robert C. Martin" not just "Martin")
- Publisher
- Publication year
- Number of pages (if known)

Example: ISBN 9780132350884 is "Clean Code: A Handbook of Agile Software Craftsmanship" by Robert C. Martin.

Respond ONLY with valid JSON (no markdown, no extra text):
{{
  "title": "Full Book Title",
  "authors": ["Full Author Name"],
  "publisher": "Publisher Name",
  "publishYear": "YYYY",
  "pages": 123
}}

If you cannot identify this ISBN, respond with null."""

VIDEO_PROMPT = """I have a YouTube video that I need citation info for.

Title: {title}
Channel: {channel}
URL: {url}

Task:
1. Estimate the likely publication year/date based on the context of this video (is it a famous talk, a new release, etc?).
2. If you can't guess, use "n.d.".
3. If the description is empty, write a brief 1-sentence summary based on the title.

Respond ONLY with JSON:
{{"publishDate": "YYYY-MM-DD", "publishYear": "YYYY", "description": "Summary"}}"""


@dataclass(frozen=True, slots=True)
class SummaryRequest:
    """Query object passed through the ``summarize`` chain."""

    text: str
    style: SummaryStyle = SummaryStyle.RESEARCH

    def prompt(self) -> str:
        """Single-turn prompt used by providers without a system role."""

        return _SUMMARY_PROMPTS[self.style].format(text=self.text)

    def system_prompt(self) -> str:
        return _SYSTEM_PROMPTS[self.style]

    def user_prompt(self) -> str:
        return _CHAT_USER_PROMPTS[self.style].format(text=self.text)


def isbn_prompt(isbn: str) -> str:
    return ISBN_PROMPT.format(isbn=isbn)


def video_prompt(title: str, channel: str, url: str) -> str:
    return VIDEO_PROMPT.format(title=title, channel=channel, url=url)


__all__ = ["ISBN_PROMPT", "SummaryRequest", "SummaryStyle", "VIDEO_PROMPT", "isbn_prompt", "video_prompt"]
