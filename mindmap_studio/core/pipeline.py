"""
Document pipeline: transcript → structured markdown → outline tree → OPML.

This module orchestrates the structuring and serialization steps. A
DocumentGenerator, when configured, does the heavy lifting remotely and its
output is always treated as untrusted: markdown is cleaned, OPML is
normalised and, if normalisation leaves an empty body, rebuilt locally from
the markdown. Without a generator every step runs locally and
deterministically.
"""

import logging
from typing import Optional, Tuple

from .config import config
from .debug_log import get_debug_logger
from .fallback import FallbackStructurer
from .generator import (
    OPML_SYSTEM_PROMPT,
    STRUCTURE_SYSTEM_PROMPT,
    DocumentGenerator,
    GenerationFailure,
    build_opml_user_prompt,
    build_structure_user_prompt,
)
from .markdown import clean_markdown, extract_h1, generate_caption, has_heading_markers, strip_heading_markers
from .mindmap import render_mindmap_html
from .normalize import XmlNormalizer, has_empty_body, splice_body
from .opml import OutlineTreeRenderer
from .outline import HeadingTreeParser
from .progress import reporter
from .speech import SpeechProcessor
from .timing import timer
from .types import MindmapResult, OutlineNode, Transcript

logger = logging.getLogger(__name__)

MIN_INPUT_CHARS = 3


class InvalidInput(Exception):
    """Raised when input text is missing, empty or too short to process."""

    pass


def validate_input(text: Optional[str], minimum: int = MIN_INPUT_CHARS) -> str:
    """
    Reject missing text or text with fewer than ``minimum`` non-whitespace characters.

    Returns:
        The text, unchanged

    Raises:
        InvalidInput: If the text is unusable
    """
    if text is None or not isinstance(text, str):
        raise InvalidInput("No input text provided")
    if len("".join(text.split())) < minimum:
        raise InvalidInput(f"Input text too short (need at least {minimum} non-whitespace characters)")
    return text


class DocumentPipeline:
    """
    Converts transcripts and markdown into mind-map artifacts.

    Args:
        generator: Optional remote generator; None keeps everything local
        default_title: Title used when markdown has no H1 and none is supplied
        project_root: Root for debug logs
    """

    def __init__(self, generator: Optional[DocumentGenerator] = None, default_title: Optional[str] = None, project_root: str = "."):
        self.generator = generator
        self.default_title = default_title or config.mindmap_title
        self.parser = HeadingTreeParser()
        self.structurer = FallbackStructurer()
        self.renderer = OutlineTreeRenderer()
        self.normalizer = XmlNormalizer(self.default_title)
        self.debug_logger = get_debug_logger(project_root)

    def resolve_title(self, markdown: str, title: Optional[str] = None) -> str:
        """First H1 of the markdown, else the supplied title, else the default."""
        return extract_h1(markdown) or title or self.default_title

    @timer
    def structure_transcript(self, raw_text: str) -> str:
        """
        Turn a raw transcript into structured markdown.

        Raises:
            InvalidInput: If the transcript is unusable
            GenerationFailure: If the configured generator fails
        """
        validate_input(raw_text)
        if self.generator is None:
            return self.structurer.structure(raw_text)

        reporter.step_with_context("Structuring transcript", "with the language model")
        content = self.generator.generate(STRUCTURE_SYSTEM_PROMPT, build_structure_user_prompt(raw_text), purpose="structure")
        return clean_markdown(content)

    def build_tree(self, markdown: str) -> Tuple[OutlineNode, ...]:
        """
        Outline tree for markdown, structuring it first when it has no headings.

        Always returns at least one top-level node for non-blank input.
        """
        source = markdown if has_heading_markers(markdown) else self.structurer.structure(markdown)
        nodes = self.parser.parse(source)
        if not nodes and source.strip():
            logger.info("No outline markers found, structuring heading text as a transcript")
            nodes = self.parser.parse(self.structurer.structure(strip_heading_markers(markdown)))
        return nodes

    @timer
    def document_to_outline(self, markdown: str, title: Optional[str] = None, use_generator: bool = True) -> str:
        """
        Convert markdown into a canonical OPML document.

        Args:
            markdown: Heading-annotated (or plain) text
            title: Fallback title when the markdown has no H1
            use_generator: Set False to force the local path

        Raises:
            InvalidInput: If the markdown is unusable
            GenerationFailure: If the generator fails or returns no OPML
        """
        validate_input(markdown)
        exact_title = self.resolve_title(markdown, title)

        if self.generator is None or not use_generator:
            reporter.step("Rendering outline locally…")
            document = self.renderer.render_document(exact_title, self.build_tree(markdown))
            return self.normalizer.full_normalize(document, exact_title)

        reporter.step_with_context("Converting markdown to OPML", "with the language model")
        raw = self.generator.generate(OPML_SYSTEM_PROMPT, build_opml_user_prompt(markdown, exact_title), purpose="opml")
        if "<opml" not in raw.lower():
            raise GenerationFailure("Invalid generator response: OPML root missing")

        xml = self.normalizer.full_normalize(raw, exact_title)
        if has_empty_body(xml):
            logger.warning("Generated OPML has an empty body, rebuilding outline from markdown")
            fragment = self.renderer.render(self.build_tree(markdown))
            self.debug_logger.log_structural_fallback(exact_title, xml, fragment)
            xml = self.normalizer.full_normalize(splice_body(xml, fragment), exact_title)
        return xml

    def markdown_to_outline(self, markdown: str, title: Optional[str] = None) -> str:
        """Alias of document_to_outline for callers that think in markdown."""
        return self.document_to_outline(markdown, title)

    @timer
    def build_mindmap(self, text: str, with_opml: bool = False, title: Optional[str] = None) -> MindmapResult:
        """
        Build the HTML mind map (and optionally the OPML export) for a
        transcript or structured markdown.
        """
        validate_input(text)
        markdown = self.structurer.ensure_markdown(text)
        page_title = self.resolve_title(markdown, title)

        reporter.step("Rendering mind map page…")
        html = render_mindmap_html(markdown, page_title)
        opml = self.document_to_outline(markdown, page_title) if with_opml else None
        return MindmapResult(markdown=markdown, html=html, opml=opml, caption=generate_caption(markdown))

    def process_audio(self, path: str, speech_processor: Optional[SpeechProcessor] = None, with_opml: bool = True) -> Tuple[Transcript, MindmapResult]:
        """
        Full recording flow: transcribe, structure, build the mind map.

        Raises:
            SpeechError: If transcription fails
            InvalidInput: If the transcript is unusable
            GenerationFailure: If the generator fails
        """
        reporter.step("Transcribing audio…")
        processor = speech_processor or SpeechProcessor()
        transcript = processor.transcribe_audio(path)

        reporter.step("Structuring transcript…")
        markdown = self.structure_transcript(transcript.text)
        return transcript, self.build_mindmap(markdown, with_opml=with_opml)


def structure_transcript(raw_text: str) -> str:
    """Deterministic transcript structuring (no generator)."""
    return DocumentPipeline().structure_transcript(raw_text)


def markdown_to_outline(markdown: str, title: Optional[str] = None) -> str:
    """Deterministic markdown to OPML conversion (no generator)."""
    return DocumentPipeline().document_to_outline(markdown, title)
