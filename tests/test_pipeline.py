"""
Tests for the document pipeline, with a scripted generator in place of the
remote model.
"""

from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from mindmap_studio.core.generator import OPML_SYSTEM_PROMPT, DocumentGenerator, GenerationFailure
from mindmap_studio.core.normalize import full_normalize
from mindmap_studio.core.opml import OutlineTreeRenderer
from mindmap_studio.core.outline import parse_outline
from mindmap_studio.core.pipeline import DocumentPipeline, InvalidInput, markdown_to_outline, structure_transcript, validate_input
from mindmap_studio.core.speech import SpeechProcessor

SCENARIO_A = "## Intro\n- point one\n## Details\n### Sub\n- nested point"
PROLOG = '<?xml version="1.0" encoding="UTF-8"?>'


class FakeGenerator(DocumentGenerator):
    """Returns scripted responses and records every call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def generate(self, system_instructions, user_payload, *, purpose="opml"):
        self.calls.append({"purpose": purpose, "system": system_instructions, "user": user_payload})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class TestValidateInput:
    """Test input validation."""

    def test_rejects_missing_and_short_text(self):
        """None, empty and near-empty text are rejected."""
        for value in (None, "", "   ", " a b \n"):
            with pytest.raises(InvalidInput):
                validate_input(value)

    def test_accepts_three_characters(self):
        """Three non-whitespace characters are enough."""
        assert validate_input(" a b c ") == " a b c "

    def test_pipeline_rejects_before_generating(self):
        """Invalid input never reaches the generator."""
        generator = FakeGenerator()
        pipeline = DocumentPipeline(generator=generator)

        with pytest.raises(InvalidInput):
            pipeline.document_to_outline("  ")
        with pytest.raises(InvalidInput):
            pipeline.structure_transcript("")
        with pytest.raises(InvalidInput):
            pipeline.build_mindmap(None)
        assert generator.calls == []


class TestLocalOutline:
    """Test the deterministic markdown to OPML path."""

    def test_scenario_document(self):
        """Local output equals the rendered document for the parsed tree."""
        xml = DocumentPipeline().document_to_outline("# Weekly Sync\n" + SCENARIO_A)
        expected = OutlineTreeRenderer().render_document("Weekly Sync", parse_outline(SCENARIO_A))

        assert xml == expected
        assert '<outline text="Intro" position="right">' in xml
        assert '<outline text="Details" position="left">' in xml

    def test_title_precedence(self):
        """The H1 wins over the supplied title, which wins over the default."""
        pipeline = DocumentPipeline(default_title="Default")

        assert "<title>From H1</title>" in pipeline.document_to_outline("# From H1\n## A", "Supplied")
        assert "<title>Supplied</title>" in pipeline.document_to_outline("## A", "Supplied")
        assert "<title>Default</title>" in pipeline.document_to_outline("## A")

    def test_plain_text_is_structured(self):
        """Text without headings is structured before parsing."""
        xml = DocumentPipeline(default_title="Talk").document_to_outline(
            "Budget review\n\nWe agreed to reduce travel costs this quarter."
        )

        assert "<title>Talk</title>" in xml
        assert '<outline text="1. Budget review" position="right">' in xml
        assert '<outline text="We agreed to reduce travel costs this quarter."/>' in xml

    def test_title_only_markdown_still_has_content(self):
        """Markdown whose only heading is the title still yields an outline."""
        xml = DocumentPipeline().document_to_outline("# Just a title")

        assert "<title>Just a title</title>" in xml
        assert 'text="1. Just a title"' in xml

    def test_title_echo_removed(self):
        """A ## heading repeating the title is unwrapped."""
        xml = DocumentPipeline().document_to_outline("# Plan\n## Plan\n- ship it\n- test it")

        assert 'text="Plan"' not in xml
        assert '<body>\n<outline text="ship it"/>\n<outline text="test it"/>\n</body>' in xml

    def test_generator_skipped_when_disabled(self):
        """use_generator=False forces the local path."""
        generator = FakeGenerator()
        xml = DocumentPipeline(generator=generator).document_to_outline(SCENARIO_A, "T", use_generator=False)

        assert generator.calls == []
        assert "<title>T</title>" in xml

    def test_module_functions(self):
        """Module-level helpers run without a generator."""
        assert "## 1. Budget review" in structure_transcript("Budget review")
        assert "<title>T</title>" in markdown_to_outline("## A\n- b", "T")


class TestGeneratedOutline:
    """Test the generator-backed markdown to OPML path."""

    def test_generator_output_is_normalized(self):
        """Fenced output with a wrong title and an echoed root is repaired."""
        response = (
            "```xml\n" + PROLOG + "\n" + PROLOG + "\n"
            '<opml version="2.0"><head><title>plan</title></head><body>'
            '<outline text="Plan"><outline text="Goals" position="right"><outline text="ship it"/></outline></outline>'
            "</body></opml>\n```"
        )
        generator = FakeGenerator(response)
        xml = DocumentPipeline(generator=generator).document_to_outline("# Plan\n## Goals\n- ship it")

        assert xml.count("<?xml") == 1
        assert "<title>Plan</title>" in xml
        assert 'text="Plan"' not in xml
        assert '<outline text="Goals" position="right"><outline text="ship it"/></outline>' in xml

    def test_request_contents(self):
        """The generator receives the OPML rules, the exact title and the markdown."""
        generator = FakeGenerator('<opml version="2.0"><body><outline text="a"/></body></opml>')
        DocumentPipeline(generator=generator).document_to_outline("## Goals\n- ship it", "Roberto's Plan")

        call = generator.calls[0]
        assert call["purpose"] == "opml"
        assert call["system"] == OPML_SYSTEM_PROMPT
        assert "Roberto's Plan" in call["user"]
        assert "## Goals\n- ship it" in call["user"]

    def test_empty_body_rebuilt_locally(self):
        """An empty generated body is replaced by the locally rendered outline."""
        response = PROLOG + '<opml version="2.0"><head><title>Plan</title></head><body></body></opml>'
        xml = DocumentPipeline(generator=FakeGenerator(response)).document_to_outline("# Plan\n## Goals\n- ship it")

        assert '<outline text="Goals" position="right">\n<outline text="ship it"/>\n</outline>' in xml
        assert full_normalize(xml, "Plan") == xml

    def test_rebuilt_title_echo_is_unwrapped(self):
        """A rebuilt body whose only section repeats the title is unwrapped, as on the local path."""
        markdown = "# Notes\n## Notes\n- a\n- b"
        response = PROLOG + '<opml version="2.0"><head><title>Notes</title></head><body></body></opml>'
        generated = DocumentPipeline(generator=FakeGenerator(response)).document_to_outline(markdown)
        local = DocumentPipeline().document_to_outline(markdown)

        body = '<body>\n<outline text="a"/>\n<outline text="b"/>\n</body>'
        assert body in generated
        assert body in local
        assert "position=" not in generated
        assert full_normalize(generated, "Notes") == generated

    def test_missing_opml_root_fails(self):
        """A response without an OPML root is a generation failure."""
        generator = FakeGenerator("Sorry, I cannot help with that.")

        with pytest.raises(GenerationFailure, match="OPML root missing"):
            DocumentPipeline(generator=generator).document_to_outline("## Goals")

    def test_generator_failure_propagates(self):
        """Generator errors surface unchanged."""
        generator = FakeGenerator(GenerationFailure("OpenAI error 500: boom", status_code=500))

        with pytest.raises(GenerationFailure) as excinfo:
            DocumentPipeline(generator=generator).document_to_outline("## Goals")
        assert excinfo.value.status_code == 500

    def test_markdown_to_outline_alias(self):
        """markdown_to_outline delegates to document_to_outline."""
        generator = FakeGenerator('<opml version="2.0"><body><outline text="a"/></body></opml>')
        xml = DocumentPipeline(generator=generator).markdown_to_outline("## a", "T")

        assert "<title>T</title>" in xml
        assert len(generator.calls) == 1


class TestStructureTranscript:
    """Test transcript structuring."""

    def test_generator_output_is_cleaned(self):
        """Generated markdown gets an H1 and loses empty headings."""
        generator = FakeGenerator("Title line\n## A\n- b\n\n\n\n## \n")
        markdown = DocumentPipeline(generator=generator).structure_transcript("we talked about a and b")

        assert markdown == "# Title line\n\n## A\n- b"
        assert generator.calls[0]["purpose"] == "structure"
        assert "we talked about a and b" in generator.calls[0]["user"]

    def test_local_structuring(self):
        """Without a generator the heuristic structurer is used."""
        markdown = DocumentPipeline().structure_transcript("Budget review")
        assert "## 1. Budget review" in markdown


class TestBuildMindmap:
    """Test mind-map artifact building."""

    def test_markdown_input(self):
        """Markdown is embedded in the page and exported to OPML."""
        result = DocumentPipeline(default_title="Mind Map").build_mindmap("## Goals\n- ship it", with_opml=True)

        assert result.markdown == "## Goals\n- ship it"
        assert "<title>Mind Map</title>" in result.html
        assert "## Goals\n- ship it" in result.html
        assert '<outline text="Goals" position="right">' in result.opml
        assert result.caption == "goals"

    def test_without_opml(self):
        """OPML is only produced on request."""
        result = DocumentPipeline().build_mindmap("# Retro\n## Wins\n- shipped")

        assert result.opml is None
        assert "<title>Retro</title>" in result.html

    def test_transcript_input_is_structured(self):
        """Plain transcripts are structured before rendering."""
        result = DocumentPipeline().build_mindmap("Budget review\n\nWe agreed to reduce travel costs this quarter.")

        assert "## 1. Budget review" in result.markdown
        assert "budget review" in result.caption


class TestProcessAudio:
    """Test the full recording flow."""

    def test_transcribe_structure_render(self, tmp_path):
        """A recording is transcribed, structured and rendered."""
        audio = tmp_path / "talk.wav"
        audio.write_bytes(b"RIFF fake audio")

        client = Mock()
        client.audio.transcriptions.create.return_value = SimpleNamespace(
            text="Budget review. We agreed to reduce travel costs this quarter.", language="english"
        )
        processor = SpeechProcessor(client=client, language="en")

        transcript, result = DocumentPipeline().process_audio(str(audio), speech_processor=processor)

        assert transcript.lang_hint == "english"
        assert "- We agreed to reduce travel costs this quarter." in result.markdown
        assert "<opml" in result.opml
        assert 'text="Section 1"' in result.opml
