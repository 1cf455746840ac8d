"""
Transcript text normalization.

Everything here is pure and deterministic so it can be tested without a
browser. ``clean_transcript_text`` is idempotent: running it on its own
output returns the same string.
"""

import html
import re
from typing import Iterable, Tuple

# Format-specific markers, each stripped only when present.
PRE_NORMALIZERS = (
    # [Speaker Name]: text
    ("speaker labels", re.compile(r"^[ \t]*\[[^\]\n]{1,80}\]:[ \t]*", re.MULTILINE), ""),
    # ### Chapter 2 ### runs, and the ### lead-in of a heading line
    ("chapter markers", re.compile(r"#{3,}[^#\n]*#{3,}"), ""),
    ("chapter headings", re.compile(r"^[ \t]*#{3,}[ \t]*", re.MULTILINE), ""),
    # 01:23 text / 1:02:03 text
    ("time codes", re.compile(r"^[ \t]*(?:\d{1,2}:)?\d{1,2}:\d{2}[ \t]+", re.MULTILINE), ""),
    # 1. text / 2) text
    ("list numbering", re.compile(r"^[ \t]*\d+[.)][ \t]+", re.MULTILINE), ""),
)

HORIZONTAL_WS = re.compile(r"[ \t\f\v\u00a0\u2000-\u200a\u202f\u205f\u3000]+")
SPACE_AROUND_NEWLINE = re.compile(r" *\n *")
EXCESS_NEWLINES = re.compile(r"\n{3,}")
DASH_MARKERS = re.compile(r"^[-–—]+[ \t]*", re.MULTILINE)

TYPOGRAPHY = {
    "‘": "'",
    "’": "'",
    "‚": "'",
    "‛": "'",
    "“": '"',
    "”": '"',
    "„": '"',
    "‟": '"',
    "…": "...",
}


def _normalize_whitespace(text: str) -> str:
    text = HORIZONTAL_WS.sub(" ", text)
    text = SPACE_AROUND_NEWLINE.sub("\n", text)
    return EXCESS_NEWLINES.sub("\n\n", text)


def _clean_once(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    for _name, pattern, replacement in PRE_NORMALIZERS:
        if pattern.search(text):
            text = pattern.sub(replacement, text)
    text = _normalize_whitespace(text)
    text = DASH_MARKERS.sub("", text)
    text = html.unescape(text)
    for fancy, plain in TYPOGRAPHY.items():
        text = text.replace(fancy, plain)
    # entities such as &nbsp; can reintroduce whitespace runs
    text = _normalize_whitespace(text)
    return text.strip()


def clean_transcript_text(text: str) -> str:
    """Normalize raw transcript text into canonical plain text."""
    if not text:
        return ""
    # nested markers and double-encoded entities peel off one layer per pass
    cleaned = _clean_once(text)
    while cleaned != text:
        text, cleaned = cleaned, _clean_once(cleaned)
    return cleaned


def format_timestamped_lines(pairs: Iterable[Tuple[str, str]]) -> str:
    """Render ``(timestamp, text)`` pairs as ``[timestamp] text`` lines."""
    lines = list()
    for timestamp, text in pairs:
        timestamp = (timestamp or "").strip()
        text = " ".join((text or "").split())
        if not text:
            continue
        lines.append(f"[{timestamp}] {text}" if timestamp else text)
    return "\n".join(lines)
