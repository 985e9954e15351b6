"""Presentation-glyph substitution.

Models like to decorate report text with pictographic emoji, which most PDF
fonts cannot draw. Each glyph in a small closed set is replaced by a plain
typographic symbol before the content is embedded in HTML.
"""

from __future__ import annotations

from dataclasses import replace

from prinsight_core.models import ReportContent, ReportSection

# Applied in order. The warning sign carries an emoji variation selector
# (U+FE0F) that must be consumed together with it.
GLYPH_SUBSTITUTIONS: tuple[tuple[str, str], ...] = (
    ("\U0001F4CB", "■"),  # clipboard -> filled square
    ("\U0001F4A1", "★"),  # light bulb -> star
    ("\U0001F4CA", "▲"),  # bar chart -> triangle
    ("⚠️", "⚠"),  # emoji warning -> text warning sign
    ("✅", "✓"),  # check mark button -> check mark
    ("❌", "✗"),  # cross mark -> ballot x
    ("\U0001F50D", "○"),  # magnifying glass -> circle
    ("⭐", "★"),  # star emoji -> star
    ("\U0001F6A8", "!"),  # siren -> exclamation
    ("\U0001F3AF", "→"),  # direct hit -> arrow
)


def replace_glyphs(text: str) -> str:
    for glyph, symbol in GLYPH_SUBSTITUTIONS:
        text = text.replace(glyph, symbol)
    return text


def _replace_all(values: list[str] | None) -> list[str] | None:
    if values is None:
        return None
    return [replace_glyphs(v) for v in values]


def clean_content(content: ReportContent) -> ReportContent:
    """Return a copy of the content with glyphs substituted in every text field."""
    return replace(
        content,
        title=replace_glyphs(content.title),
        summary=replace_glyphs(content.summary),
        sections=[
            ReportSection(
                title=replace_glyphs(section.title),
                content=replace_glyphs(section.content),
                items=_replace_all(section.items),
            )
            for section in content.sections
        ],
        recommendations=_replace_all(content.recommendations),
        test_scenarios=_replace_all(content.test_scenarios),
    )
