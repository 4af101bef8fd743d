"""
OPML rendering for outline trees.

Top-level nodes carry a ``position`` attribute alternating right/left so that
mind-map tools lay major branches out on both sides of the centre.
"""

from typing import Iterable, List, Optional

from .types import OutlineNode

XML_PROLOG = '<?xml version="1.0" encoding="UTF-8"?>'


def xml_attr_escape(value: str) -> str:
    """Escape text for an XML attribute value (apostrophes are left as-is)."""
    return str(value).replace("&", "&amp;").replace('"', "&quot;").replace("<", "&lt;").replace(">", "&gt;")


def xml_text_escape(value: str) -> str:
    """Escape only what XML text content requires, keeping quotes and apostrophes literal."""
    return str(value).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


class OutlineTreeRenderer:
    """Renders outline nodes to ``<outline>`` elements."""

    def render(self, nodes: Iterable[OutlineNode]) -> str:
        """
        Render top-level nodes (and their descendants) to a newline-joined
        XML fragment.

        A single toggle runs across the whole top-level sequence, starting at
        ``right``.
        """
        side = "left"
        rendered: List[str] = []
        for node in nodes:
            side = "right" if side == "left" else "left"
            rendered.append(self._render_node(node, side))
        return "\n".join(rendered)

    def _render_node(self, node: OutlineNode, position: Optional[str] = None) -> str:
        attrs = f'text="{xml_attr_escape(node.text)}"'
        if position:
            attrs += f' position="{position}"'
        if node.is_leaf:
            return f"<outline {attrs}/>"
        children = "\n".join(self._render_node(child) for child in node.children)
        return f"<outline {attrs}>\n{children}\n</outline>"

    def render_document(self, title: str, nodes: Iterable[OutlineNode]) -> str:
        """Wrap the rendered fragment in a complete OPML 2.0 document."""
        body = self.render(nodes)
        lines = [
            XML_PROLOG,
            '<opml version="2.0">',
            "<head>",
            f"  <title>{xml_text_escape(title)}</title>",
            "</head>",
            "<body>",
        ]
        if body:
            lines.append(body)
        lines.extend(["</body>", "</opml>"])
        return "\n".join(lines)


def render_outline(nodes: Iterable[OutlineNode]) -> str:
    """Convenience wrapper around OutlineTreeRenderer.render."""
    return OutlineTreeRenderer().render(nodes)
