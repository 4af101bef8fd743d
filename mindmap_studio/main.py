"""
Main CLI interface for Mindmap Studio.

This module provides the Typer-based command-line interface with commands for:
- Structuring transcripts into markdown
- Converting markdown to OPML
- Building HTML mind maps
- Processing audio recordings end to end
"""

import sys
from pathlib import Path
from typing import Optional

import pyperclip
import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from .core.config import ConfigError, ensure_project_env, load_project_env
from .core.generator import GenerationFailure, OpenAIGenerator
from .core.pipeline import DocumentPipeline, InvalidInput
from .core.progress import reporter
from .core.speech import SUPPORTED_EXTENSIONS, SpeechError, SpeechProcessor
from .core.types import MindmapResult

app = typer.Typer(
    name="mindmap-studio",
    help="Mindmap Studio CLI - Turn voice recordings and transcripts into mind maps and OPML outlines",
    no_args_is_help=True,
)

console = Console()


def _read_input(text: Optional[str], file: Optional[str]) -> str:
    """Resolve --text/--file into input text, exiting on misuse."""
    if text and file:
        console.print("[bold red]Error:[/bold red] Cannot specify both --text and --file options")
        sys.exit(1)

    if file:
        file_path = Path(file)
        if not file_path.exists():
            console.print(f"[bold red]Error:[/bold red] File not found: {file}")
            sys.exit(1)
        try:
            return file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            console.print(f"[bold red]Error:[/bold red] Failed to read file '{file}': {e}")
            sys.exit(1)

    return text or ""


def _build_pipeline(local: bool) -> DocumentPipeline:
    """Pipeline with the OpenAI generator, or a purely local one."""
    if local:
        return DocumentPipeline()
    load_project_env()
    return DocumentPipeline(generator=OpenAIGenerator())


def _copy_to_clipboard(content: str) -> None:
    try:
        pyperclip.copy(content)
    except Exception:
        # Clipboard is optional (headless machines have none)
        pass


def _write_mindmap_files(result: MindmapResult, output_dir: str) -> Table:
    """Write the mind-map artifacts and return a summary table."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    files = {"mindmap.md": result.markdown, "mindmap.html": result.html}
    if result.opml is not None:
        files["mindmap.opml"] = result.opml

    table = Table(title="Mind map files")
    table.add_column("File", style="cyan")
    table.add_column("Size", style="white")
    for name, content in files.items():
        path = out / name
        path.write_text(content, encoding="utf-8")
        table.add_row(str(path), f"{len(content.encode('utf-8'))} bytes")
    return table


def _fail(label: str, error: Exception) -> None:
    console.print(f"[bold red]{label}:[/bold red] {error}")
    sys.exit(1)


@app.command()
def structure(
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Raw transcript text"),
    file: Optional[str] = typer.Option(None, "--file", help="Path to file containing the transcript"),
    local: bool = typer.Option(False, "--local", help="Use the deterministic structurer instead of the language model"),
    copy: bool = typer.Option(False, "--copy", help="Copy the markdown to the clipboard"),
):
    """
    Structure a raw transcript into heading-annotated markdown.

    Examples:
        mindmap-studio structure --file transcript.txt
        mindmap-studio structure --text "Budget review. We agreed to cut travel costs." --local
    """
    try:
        raw = _read_input(text, file)
        pipeline = _build_pipeline(local)
        with reporter.initialize(console, "Structuring transcript…"):
            markdown = pipeline.structure_transcript(raw)
            reporter.complete_step()
    except InvalidInput as e:
        _fail("No input", e)
    except GenerationFailure as e:
        _fail("Remote generation failed", e)
    except ConfigError as e:
        _fail("Configuration Error", e)
    finally:
        reporter.reset()

    console.print(Syntax(markdown, "markdown", theme="monokai", line_numbers=False))
    if copy:
        _copy_to_clipboard(markdown)


@app.command()
def opml(
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Markdown text"),
    file: Optional[str] = typer.Option(None, "--file", help="Path to markdown file"),
    title: Optional[str] = typer.Option(None, "--title", help="Title used when the markdown has no # heading"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the OPML to this file"),
    local: bool = typer.Option(False, "--local", help="Render the outline locally instead of using the language model"),
    copy: bool = typer.Option(False, "--copy", help="Copy the OPML to the clipboard"),
):
    """
    Convert markdown into an OPML 2.0 outline.

    Examples:
        mindmap-studio opml --file notes.md --output notes.opml
        mindmap-studio opml --file notes.md --local --title "Weekly sync"
    """
    try:
        markdown = _read_input(text, file)
        pipeline = _build_pipeline(local)
        with reporter.initialize(console, "Preparing OPML conversion…"):
            xml = pipeline.document_to_outline(markdown, title)
            reporter.complete_step()
    except InvalidInput as e:
        _fail("No input", e)
    except GenerationFailure as e:
        _fail("Remote generation failed", e)
    except ConfigError as e:
        _fail("Configuration Error", e)
    finally:
        reporter.reset()

    if output:
        Path(output).write_text(xml, encoding="utf-8")
        console.print(f"[bold green]OPML written to {output}[/bold green]")
    else:
        console.print(Syntax(xml, "xml", theme="monokai", line_numbers=False))
    if copy:
        _copy_to_clipboard(xml)


@app.command()
def mindmap(
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Transcript or markdown text"),
    file: Optional[str] = typer.Option(None, "--file", help="Path to transcript or markdown file"),
    output_dir: str = typer.Option("mindmap", "--output-dir", "-o", help="Directory for the generated files"),
    with_opml: bool = typer.Option(True, "--opml/--no-opml", help="Also export an OPML outline"),
    local: bool = typer.Option(False, "--local", help="Keep every step local (no language model)"),
):
    """
    Build an HTML mind map (and OPML outline) from a transcript or markdown.

    Examples:
        mindmap-studio mindmap --file notes.md
        mindmap-studio mindmap --file transcript.txt --local --no-opml
    """
    try:
        content = _read_input(text, file)
        pipeline = _build_pipeline(local)
        with reporter.initialize(console, "Preparing mind map…"):
            result = pipeline.build_mindmap(content, with_opml=with_opml)
            reporter.step("Writing files…")
            table = _write_mindmap_files(result, output_dir)
            reporter.complete_step()
    except InvalidInput as e:
        _fail("No input", e)
    except GenerationFailure as e:
        _fail("Remote generation failed", e)
    except ConfigError as e:
        _fail("Configuration Error", e)
    finally:
        reporter.reset()

    console.print(table)
    if result.caption:
        console.print(f"Caption: {result.caption}", style="dim", markup=False)


@app.command("from-audio")
def from_audio(
    path: str = typer.Argument(..., help="Path to audio file"),
    output_dir: str = typer.Option("mindmap", "--output-dir", "-o", help="Directory for the generated files"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Spoken language code (default: auto-detect)"),
    with_opml: bool = typer.Option(True, "--opml/--no-opml", help="Also export an OPML outline"),
    local: bool = typer.Option(False, "--local", help="Structure and render locally after transcription"),
):
    """
    Transcribe an audio recording with Whisper and turn it into a mind map.

    Examples:
        mindmap-studio from-audio meeting.webm
        mindmap-studio from-audio lecture.m4a --language it --output-dir lecture
    """
    audio_path = Path(path)
    if not audio_path.exists():
        console.print(f"[bold red]Error:[/bold red] Audio file not found: {path}")
        sys.exit(1)

    try:
        load_project_env()
        with reporter.initialize(console, "Checking audio file…"):
            speech_processor = SpeechProcessor(language=language)
            if not speech_processor.validate_audio_format(path):
                console.print(f"[bold red]Error:[/bold red] Unsupported audio format: {audio_path.suffix}")
                console.print(f"Supported formats: {', '.join(sorted(SUPPORTED_EXTENSIONS))}")
                sys.exit(1)

            info = speech_processor.get_audio_info(path)
            console.print(f"[dim]Processing: {info['name']} ({info['size_mb']} MB)[/dim]")

            pipeline = _build_pipeline(local)
            transcript, result = pipeline.process_audio(path, speech_processor=speech_processor, with_opml=with_opml)
            reporter.step("Writing files…")
            table = _write_mindmap_files(result, output_dir)
            reporter.complete_step()
    except InvalidInput as e:
        _fail("No input", e)
    except GenerationFailure as e:
        _fail("Remote generation failed", e)
    except (ConfigError, SpeechError) as e:
        _fail("Error", e)
    finally:
        reporter.reset()

    text = transcript.text
    console.print(f"[dim]Transcript ({len(text.split())} words, language: {transcript.lang_hint}):[/dim]")
    console.print(Panel(text[:200] + "..." if len(text) > 200 else text))
    console.print(table)


@app.command()
def init(
    project_root: str = typer.Option(".", "--project-root", help="Project root where .mindmap_studio/ is created"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing project env file"),
):
    """
    Create a project-scoped .mindmap_studio/.env (copied from ./.env when present).
    """
    env_path = ensure_project_env(project_root, overwrite=force)
    console.print(f"[bold green]Project environment ready:[/bold green] {env_path}")


if __name__ == "__main__":
    app()
