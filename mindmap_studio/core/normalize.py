"""
Canonicalisation of OPML produced by external generators.

Generator output is untrusted: it may arrive wrapped in code fences, carry
several XML prologs, miss its head or body, spell the title differently from
the H1 it was asked to use, or echo that title as a spurious root outline.
``XmlNormalizer.full_normalize`` runs a fixed sequence of named text stages
that repair all of this. Every stage is a fixpoint on its own output, so the
full sequence is idempotent.
"""

import html
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .config import config
from .opml import XML_PROLOG, xml_text_escape

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```[A-Za-z0-9_+-]*[ \t]*\n?")
_PROLOG = re.compile(r"<\?xml\s[^>]*\?>", re.IGNORECASE)
_OPML_OPEN = re.compile(r"<opml\b[^>]*>", re.IGNORECASE)
_OPML_TAG_NAME = re.compile(r"^<opml\b", re.IGNORECASE)
_OPML_V2 = re.compile(r'<opml\b[^>]*\bversion\s*=\s*"2\.0"[^>]*>', re.IGNORECASE)
_VERSION_ATTR = re.compile(r"""\s+version\s*=\s*("[^"]*"|'[^']*')""", re.IGNORECASE)
_HEAD = re.compile(r"<head(?:\s[^>]*)?>(?:(?!</head>)[\s\S])*?</head>", re.IGNORECASE)
_HEAD_WITH_TITLE = re.compile(
    r"<head(?:\s[^>]*)?>(?:(?!</head>)[\s\S])*?<title(?:\s[^>]*)?>([\s\S]*?)</title>(?:(?!</head>)[\s\S])*?</head>",
    re.IGNORECASE,
)
_HEAD_CLOSE = re.compile(r"</head>", re.IGNORECASE)
_BODY = re.compile(r"<body(?:\s[^>]*)?>([\s\S]*?)</body>", re.IGNORECASE)
_BODY_SELF_CLOSED = re.compile(r"<body(?:\s[^>]*)?/>", re.IGNORECASE)
_EMPTY_BODY = re.compile(r"<body(?:\s[^>]*)?>\s*</body>", re.IGNORECASE)
_OUTLINE_TAG = re.compile(r"<(/?)outline\b([^>]*?)(/?)>", re.IGNORECASE)
_TEXT_ATTR = re.compile(r'(?:^|\s)text\s*=\s*"([^"]*)"', re.IGNORECASE)
_APOSTROPHE_ENTITIES = re.compile(r"&apos;|&#0*39;|&#x0*27;", re.IGNORECASE)


@dataclass
class _Element:
    """Offsets of one top-level ``<outline>`` element inside a fragment."""

    start: int
    open_end: int
    close_start: int = -1
    end: int = -1
    open_tag: str = ""

    @property
    def self_closing(self) -> bool:
        return self.close_start == self.open_end == self.end


def _top_level_elements(fragment: str) -> Optional[List[_Element]]:
    """
    Locate top-level outline elements by tracking tag depth.

    Returns None when the outline tags are unbalanced.
    """
    elements: List[_Element] = []
    depth = 0
    for match in _OUTLINE_TAG.finditer(fragment):
        closing, self_closing = match.group(1), match.group(3)
        if closing:
            depth -= 1
            if depth < 0:
                return None
            if depth == 0:
                elements[-1].close_start = match.start()
                elements[-1].end = match.end()
        elif self_closing:
            if depth == 0:
                elements.append(_Element(match.start(), match.end(), match.end(), match.end(), match.group(0)))
        else:
            if depth == 0:
                elements.append(_Element(match.start(), match.end(), open_tag=match.group(0)))
            depth += 1
    if depth != 0:
        return None
    return elements


def _canonical_title(value: str) -> str:
    """Fold escape variants (entities, typographic apostrophe) into one comparable form."""
    return html.unescape(value).replace("’", "'").strip()


def _split_prolog(xml: str) -> Tuple[str, str]:
    match = _PROLOG.match(xml)
    if match:
        return match.group(0), xml[match.end() :].strip()
    return "", xml.strip()


def _join_prolog(prolog: str, rest: str) -> str:
    return f"{prolog}\n{rest}" if prolog else rest


def _with_version(open_tag: str) -> str:
    # Tag name case is kept so the closing tag still matches.
    stripped = _VERSION_ATTR.sub("", open_tag)
    return _OPML_TAG_NAME.sub(lambda m: f'{m.group(0)} version="2.0"', stripped, count=1)


def has_empty_body(xml: str) -> bool:
    """True when the document has a body with no content at all."""
    return bool(_EMPTY_BODY.search(xml))


def splice_body(xml: str, fragment: str) -> str:
    """Place a rendered outline fragment inside an empty body."""
    return _EMPTY_BODY.sub(lambda _m: f"<body>\n{fragment}\n</body>", xml, count=1)


class XmlNormalizer:
    """
    Brings OPML text into canonical form.

    Stages, in order:
        1. strip_fences_and_dedup_prolog
        2. ensure_minimal_structure
        3. enforce_head_title_exact
        4. remove_duplicated_root_outline
        5. ensure_minimal_structure
    """

    def __init__(self, fallback_title: Optional[str] = None):
        self.fallback_title = fallback_title or config.mindmap_title

    def full_normalize(self, xml: str, exact_title: Optional[str] = None) -> str:
        """
        Run every stage and return the canonical document.

        Non-string input is returned unchanged. Normalisation never invents
        outline content: an empty body stays empty.
        """
        if not isinstance(xml, str):
            return xml

        title = exact_title or self.fallback_title
        stages: List[Tuple[str, Callable[[str], str]]] = [
            ("strip_fences_and_dedup_prolog", self.strip_fences_and_dedup_prolog),
            ("ensure_minimal_structure", lambda text: self.ensure_minimal_structure(text, title)),
            ("enforce_head_title_exact", lambda text: self.enforce_head_title_exact(text, title)),
            ("remove_duplicated_root_outline", self.remove_duplicated_root_outline),
            ("ensure_minimal_structure", lambda text: self.ensure_minimal_structure(text, title)),
        ]
        for name, stage in stages:
            before = xml
            xml = stage(xml)
            if xml != before:
                logger.debug("OPML normalisation stage %s changed the document", name)
        return xml.strip()

    def strip_fences_and_dedup_prolog(self, xml: str) -> str:
        """Remove code-fence markers and keep a single prolog at the very start."""
        xml = _FENCE.sub("", xml).strip()
        prologs = _PROLOG.findall(xml)
        rest = _PROLOG.sub("", xml).strip()
        first = prologs[0] if prologs else XML_PROLOG
        return _join_prolog(first, rest)

    def ensure_minimal_structure(self, xml: str, fallback_title: Optional[str] = None) -> str:
        """Guarantee ``<opml version="2.0">``, a head with a title, and a body."""
        fallback_title = fallback_title or self.fallback_title
        prolog, rest = _split_prolog(xml)

        if not _OPML_OPEN.search(rest):
            if rest and not _BODY.search(rest):
                rest = f"<body>\n{rest}\n</body>"
            rest = f'<opml version="2.0">\n{rest}\n</opml>' if rest else '<opml version="2.0">\n</opml>'
        elif not _OPML_V2.search(rest):
            rest = _OPML_OPEN.sub(lambda m: _with_version(m.group(0)), rest, count=1)

        if not _HEAD_WITH_TITLE.search(rest):
            head = f"<head>\n  <title>{xml_text_escape(fallback_title)}</title>\n</head>"
            if _HEAD.search(rest):
                rest = _HEAD.sub(lambda _m: head, rest, count=1)
            else:
                rest = _OPML_OPEN.sub(lambda m: f"{m.group(0)}\n{head}", rest, count=1)

        rest = _BODY_SELF_CLOSED.sub("<body>\n</body>", rest)
        if not _BODY.search(rest):
            rest = _HEAD_CLOSE.sub(lambda _m: "</head>\n<body>\n</body>", rest, count=1)

        return _join_prolog(prolog, rest)

    def enforce_head_title_exact(self, xml: str, desired_title: str) -> str:
        """
        Force the head title to the desired text.

        Encoded apostrophes in the desired title become literal ``'``; only
        ``&``, ``<`` and ``>`` are escaped.
        """
        exact = _APOSTROPHE_ENTITIES.sub("'", str(desired_title))
        head = f"<head>\n  <title>{xml_text_escape(exact)}</title>\n</head>"
        if _HEAD_WITH_TITLE.search(xml):
            return _HEAD_WITH_TITLE.sub(lambda _m: head, xml, count=1)
        return _OPML_OPEN.sub(lambda m: f"{m.group(0)}\n{head}", xml, count=1)

    def remove_duplicated_root_outline(self, xml: str) -> str:
        """
        Unwrap a sole top-level outline that merely repeats the title.

        Repeats until the body no longer starts with such a wrapper. A wrapper
        without children is kept so that real content is never discarded.
        """
        title_match = _HEAD_WITH_TITLE.search(xml)
        body_match = _BODY.search(xml)
        if not title_match or not body_match:
            return xml

        title = _canonical_title(title_match.group(1))
        inner = body_match.group(1)
        unwrapped = False

        while True:
            children = self._echoed_root_children(inner, title)
            if children is None:
                break
            inner = children
            unwrapped = True

        if not unwrapped:
            return xml

        logger.info("Removed outline wrapper duplicating the title %r", title)
        body = f"<body>\n{inner}\n</body>" if inner else "<body>\n</body>"
        return xml[: body_match.start()] + body + xml[body_match.end() :]

    @staticmethod
    def _echoed_root_children(inner: str, title: str) -> Optional[str]:
        elements = _top_level_elements(inner)
        if not elements or len(elements) != 1:
            return None
        root = elements[0]
        if root.self_closing or inner[: root.start].strip() or inner[root.end :].strip():
            return None

        text_match = _TEXT_ATTR.search(root.open_tag[len("<outline") :])
        if not text_match or _canonical_title(text_match.group(1)) != title:
            return None

        children = inner[root.open_end : root.close_start].strip()
        if not _top_level_elements(children):
            return None
        return children


def full_normalize(xml: str, exact_title: Optional[str] = None) -> str:
    """Convenience wrapper around XmlNormalizer.full_normalize."""
    return XmlNormalizer().full_normalize(xml, exact_title)
