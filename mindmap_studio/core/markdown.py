"""
Small markdown helpers shared by the structuring and OPML layers.
"""

import re
from typing import Optional

_H1_PATTERN = re.compile(r"^[ \t]*#[ \t]+(.+?)[ \t]*$", re.MULTILINE)
_EMPTY_HEADING_PATTERN = re.compile(r"^#+[ \t]*(?:\n+|$)", re.MULTILINE)

CAPTION_STOPWORDS = {
    "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "from", "in", "is",
    "it", "of", "on", "or", "that", "the", "this", "to", "was", "with",
    "il", "la", "di", "che", "e", "un", "per", "con", "su", "da", "del", "dei", "delle",
}


def extract_h1(markdown: str) -> Optional[str]:
    """Return the text of the first level-1 heading (``# ...``), or None."""
    match = _H1_PATTERN.search(str(markdown or ""))
    return match.group(1).strip() if match else None


def has_heading_markers(text: str) -> bool:
    """True when the text carries any markdown heading marker."""
    return "#" in (text or "")


def clean_markdown(markdown: str) -> str:
    """
    Tidy markdown returned by a structuring model.

    Guarantees a leading H1, drops empty headings, collapses runs of blank
    lines and caps heading depth at four.
    """
    cleaned = markdown.strip()

    if not cleaned.startswith("# "):
        lines = cleaned.split("\n")
        first_line = re.sub(r"^#+\s*", "", lines[0])
        cleaned = f"# {first_line}\n\n" + "\n".join(lines[1:])

    cleaned = _EMPTY_HEADING_PATTERN.sub("", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    cleaned = re.sub(r"#{5,}", "####", cleaned)
    return cleaned.strip()


def generate_caption(markdown: str, fallback: str = "Recording") -> str:
    """
    Build a short lowercase caption for a structured transcript.

    Uses the first four ``##`` sections when present, otherwise the first five
    content words of the text.
    """
    lines = markdown.split("\n")
    title = next((line[2:] for line in lines if line.startswith("# ")), fallback)
    sections = [line[3:] for line in lines if line.startswith("## ")]

    if sections:
        return ", ".join(sections[:4]).lower()

    words = markdown.lower().split()
    keywords = [word for word in words if len(word) > 3 and word not in CAPTION_STOPWORDS][:5]
    return ", ".join(keywords) or title.lower()


def strip_heading_markers(markdown: str) -> str:
    """Drop leading ``#`` runs so heading lines read as plain text."""
    return re.sub(r"^[ \t]*#+[ \t]*", "", markdown, flags=re.MULTILINE)
