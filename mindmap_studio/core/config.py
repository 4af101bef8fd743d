"""
Configuration management for Mindmap Studio.

Settings are read from environment variables on every access. Values can be
placed in a project-scoped ``.mindmap_studio/.env`` file, which python-dotenv
loads only when a command asks for it; importing this module loads nothing.
"""

import os
import shutil
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from openai import OpenAI


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


@lru_cache(maxsize=32)
def load_config(env_path: Optional[str] = None, override: bool = False) -> None:
    """Load variables from one .env file. Passing no path is a no-op."""
    if env_path:
        load_dotenv(dotenv_path=env_path, override=override)


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes", "on")


class Config:
    """Configuration settings for Mindmap Studio."""

    @property
    def openai_api_key(self) -> str:
        """OpenAI API key; required for every remote call."""
        key = os.getenv("OPENAI_API_KEY")
        if not key:
            raise ConfigError("OPENAI_API_KEY is not set. Export it or add it to .mindmap_studio/.env.")
        return key

    @property
    def llm_model(self) -> str:
        """Chat model for markdown to OPML conversion (default: gpt-4o-mini)."""
        return os.getenv("LLM_MODEL", "gpt-4o-mini")

    @property
    def structure_model(self) -> str:
        """Chat model for transcript structuring (default: same as llm_model)."""
        return os.getenv("STRUCTURE_MODEL", self.llm_model)

    @property
    def is_reasoning_model(self) -> bool:
        """True when the configured models reject temperature/max_tokens."""
        return _env_flag("IS_REASONING_MODEL")

    @property
    def opml_temperature(self) -> float:
        """Temperature for OPML generation (default: 0.0, deterministic)."""
        return _env_float("OPML_TEMPERATURE", 0.0)

    @property
    def structure_temperature(self) -> float:
        """Temperature for transcript structuring (default: 0.3)."""
        return _env_float("MODEL_TEMPERATURE", 0.3)

    @property
    def asr_model(self) -> str:
        """Whisper model name (default: whisper-1)."""
        return os.getenv("ASR_MODEL", "whisper-1")

    @property
    def asr_language(self) -> Optional[str]:
        """Language passed to Whisper; None lets Whisper auto-detect."""
        value = os.getenv("ASR_LANGUAGE", "").strip()
        return value or None

    @property
    def openai_timeout(self) -> int:
        """Per-request timeout in seconds (default: 60)."""
        return int(os.getenv("OPENAI_TIMEOUT", "60"))

    @property
    def max_retries(self) -> int:
        """Retries the OpenAI client performs on transient errors (default: 3)."""
        return int(os.getenv("MAX_RETRIES", "3"))

    @property
    def mindmap_title(self) -> str:
        """Fallback OPML title when the markdown has no H1 (default: Mind Map)."""
        return os.getenv("MINDMAP_TITLE", "Mind Map")

    @property
    def transcript_title(self) -> str:
        """H1 used when structuring a transcript that has none."""
        return os.getenv("TRANSCRIPT_TITLE", "🎙️ Audio Transcript")


# Global config instance
config = Config()

# --- Project-scoped .env files ---

METADATA_DIRNAME = ".mindmap_studio"
DEFAULT_ENV_FILENAME = os.getenv("MS_ENV_FILENAME", ".env")
ENV_FILE_ENV_VARS = ("MS_ENV_FILE", "MINDMAP_STUDIO_ENV_FILE")
PROJECT_ROOT_ENV_VARS = ("MS_PROJECT_ROOT", "MINDMAP_STUDIO_PROJECT_ROOT")

ENV_TEMPLATE = """# Project-scoped environment for mindmap_studio
# Loaded by mindmap-studio commands that call OpenAI.
# OPENAI_API_KEY=your-key-here
LLM_MODEL=gpt-4o-mini
# STRUCTURE_MODEL=gpt-4o-mini
IS_REASONING_MODEL=false
MODEL_TEMPERATURE=0.3
OPML_TEMPERATURE=0.0
ASR_MODEL=whisper-1
# ASR_LANGUAGE=it
MINDMAP_TITLE=Mind Map
OPENAI_TIMEOUT=60
MAX_RETRIES=3
"""


def detect_project_root(start_dir: Optional[str] = None) -> Optional[Path]:
    """Walk up from start_dir (default: CWD) to the first directory holding .mindmap_studio/."""
    start = Path(start_dir) if start_dir else Path.cwd()
    for candidate in (start, *start.parents):
        if (candidate / METADATA_DIRNAME).is_dir():
            return candidate
    return None


def get_project_metadata_dir(project_root: Optional[str] = None) -> Path:
    """The .mindmap_studio directory of project_root, the detected root, or CWD."""
    root = Path(project_root) if project_root else (detect_project_root() or Path.cwd())
    return root / METADATA_DIRNAME


def get_project_env_path(project_root: Optional[str] = None, filename: str = DEFAULT_ENV_FILENAME) -> Path:
    return get_project_metadata_dir(project_root) / filename


def ensure_project_env(
    project_root: Optional[str] = None,
    source_env: Optional[str] = None,
    filename: str = DEFAULT_ENV_FILENAME,
    overwrite: bool = False,
) -> Path:
    """
    Place an env file at .mindmap_studio/<filename> without loading it.

    An existing file is kept unless overwrite is set. Otherwise the first
    existing file among source_env and <project_root>/.env is copied; when
    neither exists, ENV_TEMPLATE is written.

    Returns:
        Path of the project env file
    """
    target = get_project_env_path(project_root, filename)
    if target.exists() and not overwrite:
        return target
    target.parent.mkdir(parents=True, exist_ok=True)

    root = Path(project_root) if project_root else Path.cwd()
    sources = [Path(source_env)] if source_env else []
    sources.append(root / ".env")

    source = next((path for path in sources if path.is_file()), None)
    if source is not None:
        shutil.copyfile(source, target)
    else:
        target.write_text(ENV_TEMPLATE, encoding="utf-8")
    return target


def _configured_project_root() -> Optional[str]:
    for var in PROJECT_ROOT_ENV_VARS:
        value = os.getenv(var)
        if value:
            return value
    detected = detect_project_root()
    return str(detected) if detected else None


def load_project_env(project_root: Optional[str] = None, filename: str = DEFAULT_ENV_FILENAME, override: bool = False) -> Optional[str]:
    """
    Load the env file for the current project, if there is one.

    An existing file named by MS_ENV_FILE (or MINDMAP_STUDIO_ENV_FILE) wins.
    Otherwise <root>/.mindmap_studio/<filename> is used, where root is
    project_root, MS_PROJECT_ROOT, or the directory detected from CWD.

    Returns:
        The path that was loaded, or None
    """
    explicit = next((os.getenv(var) for var in ENV_FILE_ENV_VARS if os.getenv(var)), None)
    if explicit and Path(explicit).is_file():
        load_config(explicit, override=override)
        return explicit

    root = project_root or _configured_project_root()
    if not root:
        return None

    env_path = get_project_env_path(root, filename)
    if not env_path.is_file():
        return None
    load_config(str(env_path), override=override)
    return str(env_path)


@lru_cache(maxsize=1)
def get_client() -> OpenAI:
    """
    Shared OpenAI client configured with timeout and retry settings.

    A missing OPENAI_API_KEY triggers one project env lookup first.

    Raises:
        ConfigError: If no API key can be found or the client cannot be built
    """
    if not os.getenv("OPENAI_API_KEY"):
        loaded = load_project_env()
        if not os.getenv("OPENAI_API_KEY"):
            searched = loaded or f"{METADATA_DIRNAME}/{DEFAULT_ENV_FILENAME}"
            raise ConfigError(
                f"OPENAI_API_KEY not found in the environment or in {searched}. "
                "Export it, point MS_ENV_FILE at an env file, or run `mindmap-studio init`."
            )
    try:
        return OpenAI(api_key=config.openai_api_key, timeout=config.openai_timeout, max_retries=config.max_retries)
    except Exception as e:
        raise ConfigError(f"Failed to create OpenAI client: {e}") from e
