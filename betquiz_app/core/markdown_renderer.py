"""Markdown rendering for question text shown to students.

Teachers write question text in markdown (CSV cells, ZIP uploads). The student
client receives both the raw text and a pre-rendered HTML fragment so it can
display emphasis, code and tables without bundling its own parser. Raw HTML in
the source is escaped rather than passed through.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class QuestionTextRenderer:
    """Converts markdown question text into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return ""
        return self._markdown.render(sanitized)


renderer = QuestionTextRenderer()
