"""Markdown, RTF and plain-text recipe documents."""

from __future__ import annotations

from typing import List, Optional

from enplace.export import ExportOptions, Renderer, format_mins, render_recipe
from enplace.models import Recipe

_DOT = "  \u00b7  "


def format_servings(count: int, units: str) -> str:
    """Return e.g. "Makes 4 servings"."""
    return f"Makes {count} {units}"


def _serving_parts(
    timing_summary: str, servings: Optional[int], serving_units: str
) -> List[str]:
    parts = []
    if timing_summary:
        parts.append(timing_summary)
    if servings is not None and servings > 0:
        parts.append(format_servings(servings, serving_units or "servings"))
    return parts


class _BufferedRenderer(Renderer):
    def __init__(self) -> None:
        self._chunks: List[str] = []

    def _write(self, *chunks: str) -> None:
        self._chunks.extend(chunks)

    def result(self) -> str:
        return "".join(self._chunks)


class _MarkdownRenderer(_BufferedRenderer):
    def title(self, name):
        self._write("# ", name, "\n\n")

    def meta(self, timing_summary, prep_mins, cook_mins, servings, serving_units):
        parts = []
        if prep_mins is not None and prep_mins > 0:
            parts.append(f"**Prep:** {format_mins(prep_mins)}")
        if cook_mins is not None and cook_mins > 0:
            parts.append(f"**Cook:** {format_mins(cook_mins)}")
        if servings is not None and servings > 0:
            parts.append(f"**Serves:** {servings} {serving_units or 'servings'}")
        if parts:
            self._write(" | ".join(parts), "\n\n")

    def description(self, text):
        self._write("> ", text, "\n\n")

    def tag_line(self, context_label, joined):
        self._write("> **", context_label, ":** ", joined, "\n")

    def ingredients_header(self):
        self._write("\n## Ingredients\n\n")

    def ingredient_section(self, section):
        self._write("\n### ", section, "\n\n")

    def ingredient(self, display):
        self._write("- ", display, "\n")

    def directions_header(self):
        self._write("\n## Directions\n\n")

    def directions(self, text):
        self._write(text, "\n")

    def source_url(self, url):
        self._write("\n---\n\nSource: ", url, "\n")

    def footer(self, credits, version_text):
        if credits:
            self._write(
                '\n<table width="100%"><tr>',
                "<td><sub>", credits, "</sub></td>",
                '<td align="right"><sub>', version_text, "</sub></td>",
                "</tr></table>\n",
            )
        else:
            self._write('\n<p align="right"><sub>', version_text, "</sub></p>\n")


class _TextRenderer(_BufferedRenderer):
    def title(self, name):
        self._write(name, "\n", "=" * len(name), "\n")

    def meta(self, timing_summary, prep_mins, cook_mins, servings, serving_units):
        parts = _serving_parts(timing_summary, servings, serving_units)
        if parts:
            self._write(_DOT.join(parts), "\n")

    def description(self, text):
        self._write("\n", text, "\n")

    def tag_line(self, context_label, joined):
        self._write(context_label, ": ", joined, "\n")

    def ingredients_header(self):
        self._write("\nINGREDIENTS\n-----------\n")

    def ingredient_section(self, section):
        self._write("\n  ", section, "\n")

    def ingredient(self, display):
        self._write("  ", display, "\n")

    def directions_header(self):
        self._write("\nDIRECTIONS\n----------\n")

    def directions(self, text):
        self._write(text, "\n")

    def source_url(self, url):
        self._write("\nSource: ", url, "\n")

    def footer(self, credits, version_text):
        if credits:
            gap = max(80 - len(credits) - len(version_text), 2)
            self._write("\n", credits, " " * gap, version_text, "\n")
        else:
            self._write(f"\n{version_text:>80}\n")


class _RtfRenderer(_BufferedRenderer):
    def title(self, name):
        # \ansicpg1252 makes readers decode \'XX escapes as cp1252.
        self._write(
            "{\\rtf1\\ansi\\ansicpg1252\\deff0\n",
            "{\\fonttbl{\\f0\\fswiss Helvetica;}}\n",
            # cf1 terracotta, cf2 sage green, cf3 warm gray, cf4 50% gray
            "{\\colortbl;\\red201\\green100\\blue66;\\red124\\green158\\blue110;"
            "\\red142\\green129\\blue120;\\red128\\green128\\blue128;}\n",
            "\\f0\\fs22\n",
            f"{{\\fs36\\b\\cf1 {rtf_encode(name)}\\cf0\\b0\\par}}\n",
            "\\par\n",
        )

    def meta(self, timing_summary, prep_mins, cook_mins, servings, serving_units):
        parts = _serving_parts(timing_summary, servings, serving_units)
        if parts:
            self._write(f"{{\\fs20\\cf3 {rtf_encode(_DOT.join(parts))}\\cf0\\par}}\n")

    def description(self, text):
        self._write(f"{{\\fs22\\i {rtf_encode(text)}\\i0\\par}}\n", "\\par\n")

    def tag_line(self, context_label, joined):
        self._write(
            f"{{\\fs18\\cf3 {rtf_encode(context_label)}: {rtf_encode(joined)}\\cf0\\par}}\n"
        )

    def ingredients_header(self):
        self._write("\\par\n", "{\\fs26\\b\\cf2 Ingredients\\cf0\\b0\\par}\n", "\\par\n")

    def ingredient_section(self, section):
        self._write(f"{{\\fs22\\b {rtf_encode(section)}\\b0\\par}}\n")

    def ingredient(self, display):
        self._write(f"{{\\fs22 - {rtf_encode(display)}\\par}}\n")

    def directions_header(self):
        self._write("\\par\n", "{\\fs26\\b\\cf2 Directions\\cf0\\b0\\par}\n", "\\par\n")

    def directions(self, text):
        self._write(f"{{\\fs22 {rtf_encode(text)}\\par}}\n", "\\par\n")

    def source_url(self, url):
        self._write(f"{{\\fs18\\cf3 Source: {rtf_encode(url)}\\cf0\\par}}\n")

    def footer(self, credits, version_text):
        # A right-aligned tab stop at 9360 twips (6.5in) puts the version
        # flush right while the credits stay flush left.
        if credits:
            self._write(
                f"{{\\pard\\tqr\\tx9360\\fs16\\cf3 {rtf_encode(credits)}"
                f"\\cf4\\tab {rtf_encode(version_text)}\\cf0\\par}}\n"
            )
        else:
            self._write(f"{{\\pard\\qr\\fs16\\cf4 {rtf_encode(version_text)}\\cf0\\par}}\n")
        self._write("}\n")


# Code points that cp1252 places in its 0x80-0x9F range.
_CP1252_SPECIAL = {
    0x20AC: 0x80, 0x201A: 0x82, 0x0192: 0x83, 0x201E: 0x84, 0x2026: 0x85,
    0x2020: 0x86, 0x2021: 0x87, 0x02C6: 0x88, 0x2030: 0x89, 0x0160: 0x8A,
    0x2039: 0x8B, 0x0152: 0x8C, 0x017D: 0x8E, 0x2018: 0x91, 0x2019: 0x92,
    0x201C: 0x93, 0x201D: 0x94, 0x2022: 0x95, 0x2013: 0x96, 0x2014: 0x97,
    0x02DC: 0x98, 0x2122: 0x99, 0x0161: 0x9A, 0x203A: 0x9B, 0x0153: 0x9C,
    0x017E: 0x9E, 0x0178: 0x9F,
}

_RTF_ESCAPES = {"\\": "\\\\", "{": "\\{", "}": "\\}", "\n": "\\par\n", "\r": ""}


def _encode_char(char: str) -> str:
    if char in _RTF_ESCAPES:
        return _RTF_ESCAPES[char]
    code = ord(char)
    if code < 0x20:
        return ""
    if code < 0x80:
        return char
    if 0xA0 <= code <= 0xFF:
        return f"\\'{code:02x}"
    if code in _CP1252_SPECIAL:
        return f"\\'{_CP1252_SPECIAL[code]:02x}"
    if code > 32767:
        code -= 65536
    return f"\\u{code}?"


def rtf_encode(text: str) -> str:
    """Escape ``text`` for an RTF document declared as cp1252."""
    return "".join(_encode_char(char) for char in text)


def to_markdown(recipe: Recipe, options: Optional[ExportOptions] = None) -> str:
    """Render a recipe as Markdown."""
    return render_recipe(recipe, options, _MarkdownRenderer())


def to_rtf(recipe: Recipe, options: Optional[ExportOptions] = None) -> str:
    """Render a recipe as an RTF 1.x document in cp1252."""
    return render_recipe(recipe, options, _RtfRenderer())


def to_text(recipe: Recipe, options: Optional[ExportOptions] = None) -> str:
    """Render a recipe as plain text."""
    return render_recipe(recipe, options, _TextRenderer())