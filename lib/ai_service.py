"""
AI Service - Arsenal Module
Gemini client (OpenAI-compatible endpoint) for lease analysis.
Single attempt per call; failures are typed so the caller can fall back.
"""

import logging
from pathlib import Path
from string import Template
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from lib.errors import (
    ModelMisconfiguredError,
    ModelRefusedError,
    ModelUnavailableError,
)

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_PATH = Path(__file__).resolve().parent.parent / "templates" / "lease_analysis_prompt.txt"

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)
SAFETY_THRESHOLD = "BLOCK_MEDIUM_AND_ABOVE"
SAFETY_SETTINGS: List[Dict[str, str]] = [
    {"category": category, "threshold": SAFETY_THRESHOLD} for category in SAFETY_CATEGORIES
]


def load_prompt_template(path: Path = DEFAULT_PROMPT_PATH) -> Template:
    with open(path, "r", encoding="utf-8") as f:
        return Template(f.read())


class LeaseModelClient:
    """Invokes the external model with fixed, low-variance generation settings."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        model_name: str,
        temperature: float = 0.1,
        max_output_tokens: int = 4096,
        timeout_seconds: float = 60.0,
        prompt_template: Optional[Template] = None,
    ) -> None:
        if max_output_tokens < 1:
            raise ValueError("max_output_tokens must be >= 1")

        self.model_name = model_name
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.prompt_template = prompt_template or load_prompt_template()

        # Missing credentials surface per call so the pipeline can still fall back.
        self.client: Optional[AsyncOpenAI] = None
        if api_key:
            self.client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout_seconds,
                max_retries=0,
            )

    def build_prompt(self, lease_text: str, location: Optional[str]) -> str:
        location_text = location.strip() if isinstance(location, str) and location.strip() else "Not specified"
        return self.prompt_template.safe_substitute(lease_text=lease_text, location=location_text)

    def build_request(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "top_p": 1.0,
            "max_tokens": self.max_output_tokens,
            "extra_body": {"extra_body": {"google": {"safety_settings": SAFETY_SETTINGS}}},
        }

    @staticmethod
    def _extract_text_from_parts(parts: Any) -> str:
        """Extract text from structured content parts returned by some providers."""
        if not isinstance(parts, list):
            return ""

        extracted: List[str] = []
        for part in parts:
            if isinstance(part, str):
                text = part
            elif isinstance(part, dict):
                text = part.get("text")
            else:
                text = getattr(part, "text", None)
            if isinstance(text, str) and text.strip():
                extracted.append(text.strip())

        return "\n".join(extracted)

    def _extract_response_text(self, response: Any) -> str:
        choices = getattr(response, "choices", None)
        if not choices:
            return ""

        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if isinstance(content, str):
            return content.strip()
        if isinstance(content, list):
            return self._extract_text_from_parts(content)
        return ""

    @staticmethod
    def _refusal_reason(response: Any) -> str:
        choices = getattr(response, "choices", None)
        if not choices:
            return "Model returned no candidates"

        finish_reason = getattr(choices[0], "finish_reason", None)
        if finish_reason == "content_filter":
            return "Model response blocked by safety settings"
        if finish_reason == "length":
            return "Model hit max_tokens before yielding visible output"
        return "Model returned no usable text content"

    async def invoke(self, lease_text: str, location: Optional[str]) -> str:
        """
        Run one analysis call.

        Returns:
            Raw reply text (unvalidated)

        Raises:
            ModelMisconfiguredError, ModelUnavailableError, ModelRefusedError
        """
        if self.client is None:
            raise ModelMisconfiguredError("Gemini API key not configured")

        request_params = self.build_request(self.build_prompt(lease_text, location))

        try:
            response = await self.client.chat.completions.create(**request_params)
        except openai.APIStatusError as exc:
            logger.error("Model API error: %s - %s", exc.status_code, exc)
            if exc.status_code == 401:
                raise ModelMisconfiguredError(str(exc), status_code=401) from exc
            raise ModelUnavailableError(
                f"Model API request failed: {exc.status_code}", status_code=exc.status_code
            ) from exc
        except openai.APIError as exc:
            # Connection errors, timeouts and undecodable bodies.
            logger.error("Model API transport error: %s", exc)
            raise ModelUnavailableError(f"Model API unreachable: {exc}") from exc

        choices = getattr(response, "choices", None)
        if choices and getattr(choices[0], "finish_reason", None) == "content_filter":
            raise ModelRefusedError(self._refusal_reason(response))

        response_text = self._extract_response_text(response)
        if not response_text:
            raise ModelRefusedError(self._refusal_reason(response))
        return response_text
