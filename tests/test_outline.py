"""
Tests for heading-annotated markdown parsing and markdown helpers.
"""

import pytest
from pydantic import ValidationError

from mindmap_studio.core.markdown import clean_markdown, extract_h1, generate_caption, has_heading_markers, strip_heading_markers
from mindmap_studio.core.outline import HeadingTreeParser, parse_outline
from mindmap_studio.core.types import OutlineNode

SCENARIO_A = "## Intro\n- point one\n## Details\n### Sub\n- nested point"


def assert_levels_increase(node: OutlineNode) -> None:
    for child in node.children:
        assert child.level > node.level, f"{child.text!r} (level {child.level}) under {node.text!r} (level {node.level})"
        assert_levels_increase(child)


class TestHeadingTreeParser:
    """Test outline tree construction."""

    def test_scenario_two_sections(self):
        """Two ## sections, the second with a nested ### and a leaf."""
        nodes = parse_outline(SCENARIO_A)

        assert [node.text for node in nodes] == ["Intro", "Details"]
        intro, details = nodes
        assert [child.text for child in intro.children] == ["point one"]
        assert intro.children[0].level == 3
        assert intro.children[0].is_leaf

        assert len(details.children) == 1
        sub = details.children[0]
        assert sub.text == "Sub"
        assert sub.level == 3
        assert [leaf.text for leaf in sub.children] == ["nested point"]
        assert sub.children[0].level == 4

    def test_levels_strictly_increase(self):
        """Every child sits deeper than its parent, even with skipped levels."""
        text = "### A\n## B\n#### C\n- x\n## D\n- y\n### E\n- z"
        nodes = parse_outline(text)

        assert [node.text for node in nodes] == ["B", "D"]
        for node in nodes:
            assert_levels_increase(node)

        b, d = nodes
        assert b.children[0].text == "C"
        assert b.children[0].children[0].text == "x"
        assert b.children[0].children[0].level == 5
        assert [child.text for child in d.children] == ["y", "E"]
        assert d.children[1].children[0].text == "z"

    def test_heading_closes_deeper_and_equal_levels(self):
        """A heading pops every open heading at the same or a deeper level."""
        nodes = parse_outline("## A\n### A1\n#### A1a\n### A2\n## B")

        a, b = nodes
        assert [child.text for child in a.children] == ["A1", "A2"]
        assert [child.text for child in a.children[0].children] == ["A1a"]
        assert b.children == ()

    def test_minimum_level_used_without_h2(self):
        """Without ## headings the shallowest level present becomes the top level."""
        nodes = parse_outline("### One\n- a\n### Two\n#### Deep")

        assert [node.text for node in nodes] == ["One", "Two"]
        assert nodes[0].children[0].text == "a"
        assert nodes[1].children[0].text == "Deep"

    def test_free_text_and_title_are_ignored(self):
        """Lines that are neither headings nor list items create no nodes."""
        text = "# Title\nIntro prose.\n## A\nsome prose between\n- b\n\n**bold line**\n---"
        nodes = parse_outline(text)

        assert len(nodes) == 1
        assert nodes[0].text == "A"
        assert [child.text for child in nodes[0].children] == ["b"]

    def test_all_bullet_markers(self):
        """-, * and + all produce leaves."""
        nodes = parse_outline("## List\n- dash\n* star\n+ plus\n  - indented")

        assert [child.text for child in nodes[0].children] == ["dash", "star", "plus", "indented"]
        assert all(child.level == 3 for child in nodes[0].children)

    def test_text_is_verbatim(self):
        """Emoji, punctuation and label: description text survive untouched."""
        nodes = parse_outline("## 🚀 Launch: Q3 & beyond!\n- Roberto's \"quoted\" <idea>")

        assert nodes[0].text == "🚀 Launch: Q3 & beyond!"
        assert nodes[0].children[0].text == "Roberto's \"quoted\" <idea>"

    def test_empty_and_unmarked_input(self):
        """Input without markers yields no nodes and never raises."""
        assert parse_outline("") == ()
        assert parse_outline("just some words") == ()
        assert parse_outline("# Only a title") == ()
        assert parse_outline("##   \n-   ") == ()

    def test_parsing_is_deterministic(self):
        """Parsing the same text twice yields equal trees."""
        assert parse_outline(SCENARIO_A) == parse_outline(SCENARIO_A)

    def test_nodes_are_immutable(self):
        """Parsed nodes cannot be modified."""
        node = parse_outline(SCENARIO_A)[0]
        with pytest.raises(ValidationError):
            node.text = "changed"

    def test_parse_document_title(self):
        """Document title comes from the H1, else the fallback."""
        parser = HeadingTreeParser()

        document = parser.parse_document("# Weekly Sync\n" + SCENARIO_A, "Mind Map")
        assert document.title == "Weekly Sync"
        assert len(document.nodes) == 2

        assert parser.parse_document(SCENARIO_A, "Mind Map").title == "Mind Map"


class TestMarkdownHelpers:
    """Test markdown helper functions."""

    def test_extract_h1(self):
        """The first single-# heading is the title."""
        assert extract_h1("## Not this\n#  Real Title  \n# Second") == "Real Title"
        assert extract_h1("## Only sections\n- a") is None
        assert extract_h1("") is None

    def test_has_heading_markers(self):
        """Any # character counts as markup."""
        assert has_heading_markers("## A")
        assert has_heading_markers("item #3")
        assert not has_heading_markers("plain words")

    def test_clean_markdown_adds_title_and_tidies(self):
        """Generated markdown gets an H1, loses empty headings and extra blank lines."""
        raw = "Title line\n## A\n- b\n\n\n\n## \n"
        assert clean_markdown(raw) == "# Title line\n\n## A\n- b"

    def test_clean_markdown_promotes_existing_heading(self):
        """A leading ## heading is turned into the H1."""
        assert clean_markdown("## Meeting\n### Notes\n- x").startswith("# Meeting\n")

    def test_clean_markdown_caps_depth(self):
        """Headings deeper than #### are capped."""
        assert "\n#### Too deep" in clean_markdown("# T\n###### Too deep")

    def test_strip_heading_markers(self):
        """Heading hashes are removed, text kept."""
        assert strip_heading_markers("# Title\n  ## Section\nbody") == "Title\nSection\nbody"

    def test_generate_caption_from_sections(self):
        """Caption lists the first four sections in lowercase."""
        markdown = "# Talk\n## Budget\n## Hiring\n## Roadmap\n## Risks\n## Extra"
        assert generate_caption(markdown) == "budget, hiring, roadmap, risks"

    def test_generate_caption_from_words(self):
        """Without sections the first content words are used."""
        assert generate_caption("the quarterly budget was approved with changes") == "quarterly, budget, approved, changes"
