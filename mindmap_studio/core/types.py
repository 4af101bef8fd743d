"""
Type definitions for Mindmap Studio.

This module defines the outline tree used to carry a structured transcript
from the heading parser to the OPML renderer, plus the small result records
passed between the speech, pipeline and CLI layers.
"""

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class OutlineNode(BaseModel):
    """
    A single heading or bullet in an outline tree.

    Attributes:
        level: Depth indicator (2 = major heading, 3+ = nested heading,
            leaves sit one level below their parent heading)
        text: Display text, verbatim from the source line
        children: Child nodes in document order
    """

    model_config = ConfigDict(frozen=True)

    level: int = Field(..., ge=0, description="Depth indicator")
    text: str = Field(..., description="Display text, verbatim from source")
    children: Tuple["OutlineNode", ...] = Field(default_factory=tuple, description="Child nodes in document order")

    @property
    def is_leaf(self) -> bool:
        return not self.children


OutlineNode.model_rebuild()


class Document(BaseModel):
    """
    Ephemeral wrapper around a parsed outline.

    The virtual root is implicit: ``nodes`` holds its direct children, which are
    the top-level nodes that receive alternating positions when rendered.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Document title (first H1 or fallback)")
    nodes: Tuple[OutlineNode, ...] = Field(default_factory=tuple, description="Top-level outline nodes")


class Transcript(BaseModel):
    """
    Result of automatic speech recognition.
    """

    text: str = Field(..., description="Transcribed text")
    lang_hint: str = Field(default="auto", description="Detected or hinted language code")


class MindmapResult(BaseModel):
    """
    Everything produced for one mind map: the markdown payload, the HTML page
    that embeds it and, optionally, the OPML export.
    """

    markdown: str = Field(..., description="Structured markdown payload")
    html: str = Field(..., description="Standalone HTML mind-map page")
    opml: Optional[str] = Field(default=None, description="Canonical OPML document")
    caption: str = Field(default="", description="Short caption summarising the sections")
