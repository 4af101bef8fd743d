"""
Heuristic structuring of unstructured transcripts.

When a transcript carries no markdown headings, this module synthesizes a
title, sections and bullets from its paragraphs and sentences so that every
transcript yields a renderable heading tree. Transcripts whose structured form
would be implausibly short fall back to a statistics-and-chunks dump.
"""

import logging
import re
from datetime import date
from typing import List, Optional

from .config import config
from .markdown import has_heading_markers

logger = logging.getLogger(__name__)

_PARAGRAPH_SPLIT = re.compile(r"\n\n+")
_SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")
_TERMINAL_PUNCTUATION = (".", "!", "?")

SECTION_TITLE_MAX = 100
MIN_SENTENCE_LENGTH = 10
LONG_SENTENCE_LENGTH = 150
CHUNK_LENGTH = 100
MIN_STRUCTURED_LENGTH = 500
MIN_INPUT_FOR_DUMP = 100
WORDS_PER_PART = 50
KEYWORD_MIN_LENGTH = 6
MAX_KEYWORDS = 10


def split_into_chunks(text: str, max_length: int = CHUNK_LENGTH) -> List[str]:
    """
    Word-wrap text into chunks of at most max_length characters.

    A single word longer than max_length is kept whole in its own chunk.
    """
    chunks: List[str] = []
    current = ""
    for word in text.split(" "):
        if current and len(f"{current} {word}") > max_length:
            chunks.append(current.strip())
            current = word
        else:
            current += (" " if current else "") + word
    if current.strip():
        chunks.append(current.strip())
    return chunks


def _is_section_title(paragraph: str) -> bool:
    return len(paragraph) < SECTION_TITLE_MAX and not any(mark in paragraph for mark in _TERMINAL_PUNCTUATION)


class FallbackStructurer:
    """
    Turns raw transcript text into markdown with headings and bullets.

    Args:
        title: H1 emitted at the top of structured output
        recording_title: H1 used by the statistics-and-chunks dump
    """

    def __init__(self, title: Optional[str] = None, recording_title: str = "🎙️ Audio Recording"):
        self.title = title or config.transcript_title
        self.recording_title = recording_title

    def structure(self, raw_text: str) -> str:
        """
        Synthesize heading structure from raw text.

        Returns markdown containing exactly one ``#`` title and at least one
        ``##`` section for any input.
        """
        paragraphs = [p for p in _PARAGRAPH_SPLIT.split(raw_text) if p.strip()]
        if not paragraphs:
            paragraphs = [raw_text]

        lines: List[str] = [f"# {self.title}", ""]
        section_count = 0
        current_section = ""

        for paragraph in paragraphs:
            if _is_section_title(paragraph):
                section_count += 1
                current_section = " ".join(paragraph.split())
                lines.extend([f"## {section_count}. {current_section}".rstrip(), ""])
                continue

            if not current_section:
                section_count += 1
                current_section = f"Section {section_count}"
                lines.extend([f"## {current_section}", ""])

            sentences = _SENTENCE_PATTERN.findall(paragraph) or [paragraph]
            for sentence in sentences:
                text = " ".join(sentence.split())
                if len(text) <= MIN_SENTENCE_LENGTH:
                    continue
                if len(text) <= LONG_SENTENCE_LENGTH:
                    lines.append(f"- {text}")
                else:
                    lines.append("### 📌 Key Point")
                    lines.extend(f"- {chunk}" for chunk in split_into_chunks(text, CHUNK_LENGTH))
            lines.append("")

        markdown = "\n".join(lines) + "\n"
        if len(markdown) < MIN_STRUCTURED_LENGTH and len(raw_text) > MIN_INPUT_FOR_DUMP:
            logger.info("Structured transcript too short (%d chars), using chunked dump", len(markdown))
            return self.enhance(raw_text)
        return markdown

    def enhance(self, raw_text: str, today: Optional[date] = None) -> str:
        """
        Statistics-and-chunks dump for text that does not structure well.

        Emits a summary block, the text in 50-word parts and up to ten
        distinct long words as keywords.
        """
        words = raw_text.split()
        today = today or date.today()

        lines = [
            f"# {self.recording_title}",
            "",
            "## 📊 Summary",
            "",
            f"- **Length**: {len(words)} words",
            f"- **Characters**: {len(raw_text)}",
            f"- **Date**: {today.isoformat()}",
            "",
            "## 📝 Full Content",
            "",
        ]

        for part, start in enumerate(range(0, len(words), WORDS_PER_PART), start=1):
            lines.extend([f"### Part {part}", "- " + " ".join(words[start : start + WORDS_PER_PART]), ""])

        lines.extend(["## 🔍 Analysis", ""])
        keywords = list(dict.fromkeys(word for word in words if len(word) > KEYWORD_MIN_LENGTH))[:MAX_KEYWORDS]
        if keywords:
            lines.append("### Keywords")
            lines.extend(f"- {keyword}" for keyword in keywords)

        return "\n".join(lines) + "\n"

    def ensure_markdown(self, transcript: str) -> str:
        """
        Markdown for the mind-map view.

        Text that already has heading markers is kept, prefixed with the title
        heading when it does not start with one; anything else is structured.
        """
        if has_heading_markers(transcript):
            if not transcript.strip().startswith("#"):
                return f"# {self.title}\n\n{transcript}"
            return transcript
        return self.structure(transcript)
