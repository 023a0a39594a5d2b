"""Gemini client wrapper over the OpenAI-compatible endpoint."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import openai
from openai import OpenAI

from ..catalog import Category
from ..errors import AuthError, GenerationError, InvalidCredentialError
from ..prompts import (
    DEFAULT_LANGUAGE,
    PromptRequest,
    build_explanation_request,
    error_fix_system_instruction,
    generation_system_instruction,
    strip_code_fence,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

SCRIPT_TEMPERATURE = 0.2
EXPLANATION_TEMPERATURE = 0.5

INVALID_CREDENTIAL_MARKERS = ("API key not valid", "API_KEY_INVALID")


def _extract_content(resp: Any) -> str:
    """Handle both dict payloads and SDK response objects."""

    def _normalize(content: Any) -> str:
        if content is None:
            return ""
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts: list[str] = []
            for item in content:
                if isinstance(item, dict):
                    text_value = item.get("text")
                else:
                    text_value = getattr(item, "text", None)
                if isinstance(text_value, str):
                    parts.append(text_value)
            return "\n".join(parts)
        return str(content)

    if isinstance(resp, dict):
        choices = resp.get("choices") or []
        if not choices:
            return ""
        return _normalize(choices[0].get("message", {}).get("content"))

    choices = getattr(resp, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return _normalize(getattr(message, "content", None))


def _is_credential_rejection(exc: BaseException) -> bool:
    if isinstance(exc, openai.AuthenticationError):
        return True
    message = str(exc)
    return any(marker in message for marker in INVALID_CREDENTIAL_MARKERS)


class GeminiClient:
    """Single-attempt Gemini calls for script generation, fixing and explanation.

    Each public call sends exactly one request. SDK retries are switched off
    and no local timeout is applied.
    """

    def __init__(
        self,
        model: str | None = None,
        base_url: str | None = None,
        language: str | None = None,
    ):
        self.model = self._clean(model) or DEFAULT_MODEL
        self.base_url = self._clean(base_url) or DEFAULT_BASE_URL
        self.language = self._clean(language) or DEFAULT_LANGUAGE
        self._clients: Dict[str, OpenAI] = {}

    @staticmethod
    def _clean(value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None

    def _get_live_client(self, credential: str) -> OpenAI:
        client = self._clients.get(credential)
        if not client:
            client = OpenAI(
                api_key=credential,
                base_url=self.base_url,
                max_retries=0,
                timeout=None,
            )
            self._clients[credential] = client
        return client

    def _complete(self, request: PromptRequest, credential: str, temperature: float, action: str) -> str:
        key = self._clean(credential)
        if not key:
            raise AuthError("No API key is set. Enter a valid Gemini API key.")

        messages: List[Dict[str, str]] = [
            {"role": "system", "content": request.system_instruction},
            {"role": "user", "content": request.text},
        ]
        try:
            resp = self._get_live_client(key).chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
            )
        except Exception as exc:
            logger.warning("Gemini %s request failed: %s", action, exc)
            if _is_credential_rejection(exc):
                raise InvalidCredentialError(
                    "The configured API key was rejected. Check that it is a valid Gemini API key.",
                    cause=exc,
                ) from exc
            raise GenerationError(f"Failed to generate the {action}: {exc}", cause=exc) from exc

        text = strip_code_fence(_extract_content(resp))
        if not text:
            raise GenerationError(f"The model returned an empty {action}.")
        logger.info("Gemini %s completed (%d chars, model=%s)", action, len(text), self.model)
        return text

    def generate(self, request_text: str, category: Category, credential: str) -> str:
        """Generate a script for an already-built generation request."""
        request = PromptRequest(
            text=request_text,
            system_instruction=generation_system_instruction(category, self.language),
        )
        return self._complete(request, credential, SCRIPT_TEMPERATURE, "script")

    def fix(self, request_text: str, category: Category, credential: str) -> str:
        """Ask for a corrected script given an error-fix transcript request."""
        request = PromptRequest(
            text=request_text,
            system_instruction=error_fix_system_instruction(category, self.language),
        )
        return self._complete(request, credential, SCRIPT_TEMPERATURE, "fixed script")

    def explain(self, script_text: str, category: Category, credential: str) -> str:
        """Produce a beginner-oriented operating manual for ``script_text``."""
        request = build_explanation_request(script_text, category, self.language)
        return self._complete(request, credential, EXPLANATION_TEMPERATURE, "explanation")
