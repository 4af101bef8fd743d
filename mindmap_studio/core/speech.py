"""
Speech-to-text functionality using OpenAI Whisper.

This module provides a wrapper around OpenAI's Whisper ASR API
for converting recorded audio files to raw transcripts.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from .config import config, get_client
from .types import Transcript

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".mp3", ".mp4", ".mpeg", ".mpga", ".m4a", ".wav", ".webm"}
MAX_AUDIO_BYTES = 25 * 1024 * 1024  # Whisper upload limit
MIN_TRANSCRIPT_LENGTH = 10

WHISPER_PROMPT = (
    "Transcribe this audio as accurately as possible. "
    "Keep correct punctuation and complete sentences. "
    "Identify topics, key points and decisions."
)


class SpeechError(Exception):
    """Raised when speech processing fails."""

    pass


class SpeechProcessor:
    """
    Handles speech-to-text conversion using OpenAI Whisper.

    The language defaults to ASR_LANGUAGE; when that is unset Whisper
    auto-detects it.
    """

    def __init__(self, client: Any = None, language: Optional[str] = None):
        self.client = client or get_client()
        self.model = config.asr_model
        self.language = language or config.asr_language

    def transcribe_audio(self, path: str) -> Transcript:
        """
        Transcribe audio file to text using Whisper.

        Args:
            path: Path to the audio file

        Returns:
            Transcript object with text and detected language

        Raises:
            SpeechError: If transcription fails or is too short
            FileNotFoundError: If audio file doesn't exist
        """
        audio_path = Path(path)

        if not audio_path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")

        if not audio_path.is_file():
            raise SpeechError(f"Path is not a file: {path}")

        file_size = audio_path.stat().st_size
        if file_size > MAX_AUDIO_BYTES:
            raise SpeechError(f"Audio file too large: {file_size / 1024 / 1024:.1f}MB (max: 25MB)")

        request = {"model": self.model, "response_format": "verbose_json", "temperature": 0, "prompt": WHISPER_PROMPT}
        if self.language:
            request["language"] = self.language

        try:
            with open(audio_path, "rb") as audio_file:
                response = self.client.audio.transcriptions.create(file=audio_file, **request)
        except Exception as e:
            raise SpeechError(f"Failed to transcribe audio: {e}") from e

        if hasattr(response, "text"):
            text = (response.text or "").strip()
            lang_detected = getattr(response, "language", None) or self.language or "auto"
        else:
            text = str(response).strip()
            lang_detected = self.language or "auto"

        if len(text) < MIN_TRANSCRIPT_LENGTH:
            raise SpeechError("Transcript too short or empty")

        logger.info("Transcribed %s: %d characters (%s)", audio_path.name, len(text), lang_detected)
        return Transcript(text=text, lang_hint=lang_detected)

    def validate_audio_format(self, path: str) -> bool:
        """True when the file extension is one Whisper accepts."""
        return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS

    def get_audio_info(self, path: str) -> dict:
        """Name, size and format support of an audio file, for display before upload."""
        audio_path = Path(path)

        if not audio_path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")

        stat = audio_path.stat()

        return {
            "path": str(audio_path.absolute()),
            "name": audio_path.name,
            "size_bytes": stat.st_size,
            "size_mb": round(stat.st_size / 1024 / 1024, 2),
            "extension": audio_path.suffix.lower(),
            "supported": self.validate_audio_format(path),
        }
