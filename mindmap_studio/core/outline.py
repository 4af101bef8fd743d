"""
Heading-annotated markdown to outline tree.

The parser recognises ``##``/``###``/``####`` headings and ``-``/``*``/``+``
list items. Any other line (including free text between headings and the
``#`` title) does not create a node.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .markdown import extract_h1
from .types import Document, OutlineNode

_HEADING_PATTERNS = (
    (2, re.compile(r"^\s*##\s+(.+)")),
    (3, re.compile(r"^\s*###\s+(.+)")),
    (4, re.compile(r"^\s*####\s+(.+)")),
)
_LIST_ITEM_PATTERN = re.compile(r"^\s*[-*+]\s+(.+)")

TOP_LEVEL = 2


@dataclass
class _OpenNode:
    """Mutable node used only while a single parse is in progress."""

    level: int
    text: str
    children: List["_OpenNode"] = field(default_factory=list)

    def freeze(self) -> OutlineNode:
        return OutlineNode(level=self.level, text=self.text, children=tuple(child.freeze() for child in self.children))


def _match_heading(line: str) -> Optional[Tuple[int, str]]:
    for level, pattern in _HEADING_PATTERNS:
        match = pattern.match(line)
        if match:
            return level, match.group(1).strip()
    return None


class HeadingTreeParser:
    """
    Builds an outline tree from heading-annotated text.

    A stack of open headings tracks the current nesting. A heading of level L
    closes every open heading of level >= L and becomes a child of whatever is
    left on top; list items attach to the top of the stack as leaves and are
    never pushed.
    """

    def parse(self, text: str) -> Tuple[OutlineNode, ...]:
        """
        Parse text into its top-level outline nodes.

        Never raises: input without any recognised marker yields an empty tuple.
        """
        root = _OpenNode(level=0, text="")
        stack: List[_OpenNode] = [root]

        for line in str(text or "").splitlines():
            heading = _match_heading(line)
            if heading:
                level, title = heading
                if not title:
                    continue
                while len(stack) > 1 and stack[-1].level >= level:
                    stack.pop()
                node = _OpenNode(level=level, text=title)
                stack[-1].children.append(node)
                stack.append(node)
                continue

            item = _LIST_ITEM_PATTERN.match(line)
            if item:
                item_text = item.group(1).strip()
                if item_text:
                    parent = stack[-1]
                    parent.children.append(_OpenNode(level=parent.level + 1, text=item_text))

        return tuple(node.freeze() for node in self._top_level(root.children))

    def parse_document(self, text: str, fallback_title: str) -> Document:
        """Parse text into a Document titled by its first H1, or by fallback_title."""
        return Document(title=extract_h1(text) or fallback_title, nodes=self.parse(text))

    @staticmethod
    def _top_level(candidates: List[_OpenNode]) -> List[_OpenNode]:
        top = [node for node in candidates if node.level == TOP_LEVEL]
        if not top and candidates:
            min_level = min(node.level for node in candidates)
            top = [node for node in candidates if node.level == min_level]
        return top


def parse_outline(text: str) -> Tuple[OutlineNode, ...]:
    """Convenience wrapper around HeadingTreeParser.parse."""
    return HeadingTreeParser().parse(text)
