"""
Document generators: remote text generation behind a swappable interface.

The pipeline only needs "text in, text out". ``DocumentGenerator`` captures
that capability; ``OpenAIGenerator`` implements it with chat completions and
the prompt builders here describe the two requests the pipeline makes
(transcript structuring and markdown to OPML conversion).
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .config import config, get_client
from .debug_log import get_debug_logger

logger = logging.getLogger(__name__)


class GenerationFailure(Exception):
    """Raised when a document generator fails or returns unusable content."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DocumentGenerator(ABC):
    """Text-in, text-out generation capability."""

    @abstractmethod
    def generate(self, system_instructions: str, user_payload: str, *, purpose: str = "opml") -> str:
        """
        Return raw generated text.

        Args:
            system_instructions: Rules the generator must follow
            user_payload: The content to transform
            purpose: "opml" or "structure", used for parameter selection and logging

        Raises:
            GenerationFailure: If the generator fails or returns nothing
        """


# --- Prompts ---

STRUCTURE_SYSTEM_PROMPT = """You are an expert at organising content into mind maps.
Turn the transcript into structured markdown suitable for markmap.

RULES:
1. Use # for the main title (exactly one, summarising the content)
2. Use ## for main topics (3-8 logical sections)
3. Use ### for sub-topics when needed
4. Use - for bullet points
5. Use **text** to highlight key concepts
6. Keep hierarchies logical and balanced
7. Avoid empty or overly deep sections (max 4 levels)
8. Every section must carry real content

EXAMPLE:
# Main Title
## Topic 1
- Key point 1
- Key point 2
### Sub-topic
- Important detail
## Topic 2
- Another key point

GOAL: a clear, balanced mind map built from the actual content."""

OPML_SYSTEM_PROMPT = """Act as a Markdown → OPML (v2.0) converter compatible with MindMeister and XMind.

STRICT RULES:
- Output only OPML XML in UTF-8, with no code fences and no extra text.
- A single prolog: <?xml version="1.0" encoding="UTF-8"?>
- <head><title> = the Markdown H1 EXACTLY (do not use &apos;: keep the apostrophe ').
- Do NOT add an <outline text="title"> in <body>: first-level nodes are the Markdown ## headings, with alternating position left/right.
- Deeper levels (###, ####, …) become nested outlines, without position.
- Keep texts IDENTICAL to the Markdown (emoji, punctuation, label: description, letter case) and in the original order."""


def build_structure_user_prompt(raw_text: str) -> str:
    """Create user prompt for transcript structuring requests."""
    return f"Structure this transcript into markdown for a mind map:\n\n{raw_text}"


def build_opml_user_prompt(markdown: str, title: str) -> str:
    """Create user prompt for markdown to OPML requests."""
    return f"""Title to use in <head><title> (EXACTLY as the H1):
{title}

Markdown:
---
{markdown}
---

Generate the corresponding OPML 2.0 (no code fences, no extra text)."""


# --- OpenAI implementation ---


def is_reasoning_model_error(exception: Exception) -> bool:
    """
    Check if the exception says the model rejects temperature/max_tokens.

    Reasoning models answer 400 invalid_request_error with code
    unsupported_value/unsupported_parameter on those params.
    """
    if getattr(exception, "status_code", None) != 400:
        return False

    error_data = getattr(exception, "body", None)
    response = getattr(exception, "response", None)
    if not isinstance(error_data, dict) and callable(getattr(response, "json", None)):
        try:
            error_data = response.json()
        except ValueError:
            error_data = None
    if not isinstance(error_data, dict):
        return False

    error_info = error_data.get("error", error_data)
    if not isinstance(error_info, dict):
        return False

    error_type = str(error_info.get("type") or "").lower()
    error_code = str(error_info.get("code") or "").lower()
    error_param = str(error_info.get("param") or "").lower()
    return (
        error_type == "invalid_request_error"
        and error_code in ("unsupported_value", "unsupported_parameter")
        and error_param in ("temperature", "max_tokens")
    )


def adjust_llm_params_for_reasoning_model(original_params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Adjust request parameters for reasoning model compatibility.

    Drops temperature and renames max_tokens to max_completion_tokens.
    """
    adjusted_params = original_params.copy()
    adjusted_params.pop("temperature", None)
    if "max_tokens" in adjusted_params:
        adjusted_params["max_completion_tokens"] = adjusted_params.pop("max_tokens")

    logger.info(f"Adjusted parameters for reasoning model: {sorted(adjusted_params)}")
    return adjusted_params


def make_llm_request_with_reasoning_fallback(client: Any, original_params: Dict[str, Any]) -> Any:
    """
    Make a chat completion request, retrying once with reasoning model parameters
    if the model rejects the standard ones.
    """
    try:
        return client.chat.completions.create(**original_params)
    except Exception as e:
        if not is_reasoning_model_error(e):
            raise
        logger.info("Detected reasoning model error, adjusting parameters")
        return client.chat.completions.create(**adjust_llm_params_for_reasoning_model(original_params))


class OpenAIGenerator(DocumentGenerator):
    """
    DocumentGenerator backed by OpenAI chat completions.

    The client is created lazily so that constructing a generator never
    requires an API key.
    """

    def __init__(self, client: Any = None, project_root: str = ".", max_tokens: int = 4000):
        self._client = client
        self.project_root = project_root
        self.max_tokens = max_tokens
        self.debug_logger = get_debug_logger(project_root)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_client()
        return self._client

    def _request_params(self, system_instructions: str, user_payload: str, purpose: str) -> Dict[str, Any]:
        model = config.structure_model if purpose == "structure" else config.llm_model
        params: Dict[str, Any] = {
            "model": model,
            "messages": [{"role": "system", "content": system_instructions}, {"role": "user", "content": user_payload}],
        }
        if config.is_reasoning_model:
            params["max_completion_tokens"] = self.max_tokens
        else:
            params["max_tokens"] = self.max_tokens
            params["temperature"] = config.structure_temperature if purpose == "structure" else config.opml_temperature
        return params

    def generate(self, system_instructions: str, user_payload: str, *, purpose: str = "opml") -> str:
        self.debug_logger.log_generation_request(purpose, system_instructions, user_payload)
        params = self._request_params(system_instructions, user_payload, purpose)
        client = self.client

        try:
            response = make_llm_request_with_reasoning_fallback(client, params)
        except Exception as e:
            status_code = getattr(e, "status_code", None)
            prefix = f"OpenAI error {status_code}" if status_code else "OpenAI request failed"
            raise GenerationFailure(f"{prefix}: {e}", status_code=status_code) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise GenerationFailure(f"Empty response from {params['model']} ({purpose})")

        self.debug_logger.log_generation_response(purpose, content)
        return content
