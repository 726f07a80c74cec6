"""
Gemini generateContent client used for invoice/receipt extraction and
insight summarization.

The model is asked for JSON, but replies can still arrive wrapped in code
fences or surrounded by prose, so the outermost balanced {...} span is cut
out before parsing. Anything that does not parse is an AiResponseError.
"""
import base64
import json
import logging
import os
from typing import Any, Dict, Optional

import httpx

from backoffice.config import Settings
from backoffice.core.constants import (
    INSIGHT_ENGINE_PROMPT,
    INVOICE_EXTRACTION_PROMPT,
    RECEIPT_EXTRACTION_PROMPT,
)

log = logging.getLogger(__name__)

RAW_LOG_LIMIT = 2000


class AiServiceError(Exception):
    """Base exception for AI service failures."""

    def __init__(self, message: str, status_code: Optional[int] = None, raw: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.raw = raw


class AiConfigurationError(AiServiceError):
    """API key or prompt template missing."""
    pass


class AiTransportError(AiServiceError):
    """Service unreachable, timed out or answered with an error status."""
    pass


class AiResponseError(AiServiceError):
    """Service answered but the content is not the JSON object we asked for."""
    pass


def extract_json_object(text: str) -> str:
    """Return the outermost balanced {...} span in text."""
    start = text.find("{")
    if start == -1:
        raise AiResponseError("AI response contains no JSON object", raw=text)

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    raise AiResponseError("AI response JSON object is not closed", raw=text)


def parse_json_object(text: str) -> Dict[str, Any]:
    span = extract_json_object(text)
    try:
        data = json.loads(span)
    except json.JSONDecodeError as exc:
        raise AiResponseError(f"AI returned invalid JSON: {exc.msg}", raw=text) from exc
    if not isinstance(data, dict):
        raise AiResponseError("AI returned JSON that is not an object", raw=text)
    return data


class GeminiClient:
    """Async client for Gemini's generateContent endpoint."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = settings
        self._transport = transport

    def _load_prompt(self, name: str) -> str:
        # Read on every call so prompt edits apply without a restart
        path = os.path.join(self._settings.prompts_dir, name)
        try:
            with open(path, encoding="utf-8") as fh:
                return fh.read()
        except OSError as exc:
            log.error("prompt template missing: %s", path)
            raise AiConfigurationError(f"Prompt template '{name}' is not available.") from exc

    async def generate_json(
        self,
        prompt: str,
        *,
        model: str,
        timeout: float,
        content: Optional[bytes] = None,
        mime_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        api_key = self._settings.gemini_api_key
        if not api_key:
            log.error("CRITICAL: GEMINI_API_KEY is not configured")
            raise AiConfigurationError("Gemini API key is not configured.")

        parts = [{"text": prompt}]
        if content is not None:
            parts.append({
                "inline_data": {
                    "mime_type": mime_type or "application/octet-stream",
                    "data": base64.b64encode(content).decode("ascii"),
                }
            })
        body = {
            "contents": [{"parts": parts}],
            "generationConfig": {"response_mime_type": "application/json"},
        }
        url = f"{self._settings.gemini_base_url}/models/{model}:generateContent"

        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=self._transport) as client:
                response = await client.post(url, params={"key": api_key}, json=body)
        except httpx.TimeoutException as exc:
            log.error("gemini timeout after %ss model=%s", timeout, model)
            raise AiTransportError(f"AI service timed out after {timeout:g} seconds.") from exc
        except httpx.HTTPError as exc:
            log.error("gemini transport error model=%s: %s", model, exc)
            raise AiTransportError(f"AI service is unreachable: {exc}") from exc

        if response.status_code >= 400:
            message = "The AI service returned an unknown error."
            try:
                message = response.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                pass
            log.error(
                "gemini API error status=%s body=%s",
                response.status_code, response.text[:RAW_LOG_LIMIT],
            )
            raise AiTransportError(
                f"AI Service Error: {message}", status_code=response.status_code, raw=response.text
            )

        try:
            text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            log.error("gemini unexpected response structure: %s", response.text[:RAW_LOG_LIMIT])
            raise AiResponseError("No valid response from AI model.", raw=response.text) from exc

        try:
            return parse_json_object(text)
        except AiResponseError:
            log.error("gemini returned unparseable JSON: %s", text[:RAW_LOG_LIMIT])
            raise

    async def extract_invoice(self, content: bytes, mime_type: str) -> Dict[str, Any]:
        return await self.generate_json(
            self._load_prompt(INVOICE_EXTRACTION_PROMPT),
            model=self._settings.gemini_model,
            timeout=self._settings.ai_invoice_timeout,
            content=content,
            mime_type=mime_type,
        )

    async def extract_receipt(self, content: bytes, mime_type: str) -> Dict[str, Any]:
        return await self.generate_json(
            self._load_prompt(RECEIPT_EXTRACTION_PROMPT),
            model=self._settings.gemini_lite_model,
            timeout=self._settings.ai_receipt_timeout,
            content=content,
            mime_type=mime_type,
        )

    async def summarize_insight(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        prompt = self._load_prompt(INSIGHT_ENGINE_PROMPT) + "\n" + json.dumps(payload, indent=4, default=str)
        return await self.generate_json(
            prompt,
            model=self._settings.gemini_lite_model,
            timeout=self._settings.ai_insight_timeout,
        )
