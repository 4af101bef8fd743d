"""
Debug logging module for generator calls and structural fallbacks.

When MS_DEBUG=1, every request sent to a document generator, every raw
response and every structural fallback is written as a JSON record under
{project_root}/.mindmap_studio/debug/session_<timestamp>/.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


def is_debug_enabled() -> bool:
    """
    Check if debug logging is enabled via environment variable.

    Returns:
        True if MS_DEBUG=1 is set
    """
    return os.getenv("MS_DEBUG", "0") == "1"


class DebugLogger:
    """
    Writes generator traffic to per-session JSON files.

    Logs are stored in {project_root}/.mindmap_studio/debug/ with timestamps
    and session identifiers for easy tracking.
    """

    def __init__(self, project_root: str = ".", enabled: Optional[bool] = None):
        """
        Initialize debug logger.

        Args:
            project_root: Project root directory for log storage
            enabled: Override debug enable flag, uses MS_DEBUG env var if None
        """
        self.project_root = project_root
        self.enabled = enabled if enabled is not None else is_debug_enabled()
        self.session_id = datetime.now().strftime("%Y%m%d_%H%M%S")

        if self.enabled:
            self._setup_log_directory()

    def _setup_log_directory(self) -> None:
        """Create debug log directory structure."""
        self.log_dir = Path(self.project_root) / ".mindmap_studio" / "debug"
        self.session_dir = self.log_dir / f"session_{self.session_id}"
        self.session_dir.mkdir(parents=True, exist_ok=True)

    def _write(self, step: str, payload: Dict[str, Any]) -> Optional[Path]:
        if not self.enabled:
            return None

        timestamp = datetime.now().isoformat()
        log_data = {"timestamp": timestamp, "session_id": self.session_id, "step": step}
        log_data.update(payload)

        filename = f"{step}_{timestamp.replace(':', '-').replace('.', '_')}.json"
        log_file = self.session_dir / filename
        with open(log_file, "w", encoding="utf-8") as f:
            json.dump(log_data, f, indent=2, ensure_ascii=False, default=str)
        return log_file

    def log_generation_request(self, purpose: str, system_instructions: str, user_payload: str) -> None:
        """
        Log a request sent to a document generator.

        Args:
            purpose: What the request is for ("opml" or "structure")
            system_instructions: System prompt
            user_payload: User prompt
        """
        self._write(
            f"{purpose}_request",
            {"type": "request", "system": system_instructions, "user": user_payload, "user_length": len(user_payload)},
        )

    def log_generation_response(self, purpose: str, content: str) -> None:
        """
        Log the raw text returned by a document generator.

        Args:
            purpose: What the request was for ("opml" or "structure")
            content: Raw response content
        """
        self._write(f"{purpose}_response", {"type": "response", "content": content, "length": len(content)})

    def log_structural_fallback(self, title: str, normalized_xml: str, fragment: str) -> None:
        """
        Log a generator result whose body was empty after normalisation.

        Args:
            title: Title enforced on the document
            normalized_xml: Generator output after normalisation
            fragment: Locally rendered outline spliced into the body
        """
        self._write(
            "structural_fallback",
            {"type": "fallback", "title": title, "normalized_xml": normalized_xml, "fragment": fragment},
        )


# Global debug logger instance
_debug_logger: Optional[DebugLogger] = None


def get_debug_logger(project_root: str = ".") -> DebugLogger:
    """
    Get or create global debug logger instance.

    Args:
        project_root: Project root directory

    Returns:
        DebugLogger instance
    """
    global _debug_logger
    if _debug_logger is None or _debug_logger.project_root != project_root:
        _debug_logger = DebugLogger(project_root)
    return _debug_logger
