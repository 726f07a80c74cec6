import base64
import json

import httpx
import pytest

from backoffice.config import Settings
from backoffice.core.constants import INSIGHT_ENGINE_PROMPT, INVOICE_EXTRACTION_PROMPT
from backoffice.utils.gemini_client import (
    AiConfigurationError,
    AiResponseError,
    AiTransportError,
    GeminiClient,
    extract_json_object,
)


def gemini_reply(text, status_code=200):
    return httpx.Response(
        status_code,
        json={"candidates": [{"content": {"parts": [{"text": text}]}}]},
    )


@pytest.fixture
def settings(tmp_path):
    (tmp_path / INVOICE_EXTRACTION_PROMPT).write_text("Extract the invoice.", encoding="utf-8")
    (tmp_path / INSIGHT_ENGINE_PROMPT).write_text("Summarize:", encoding="utf-8")
    return Settings(
        _env_file=None,
        gemini_api_key="test-key",
        gemini_base_url="https://gemini.test/v1beta/",
        prompts_dir=str(tmp_path),
    )


def client_for(settings, handler):
    return GeminiClient(settings, transport=httpx.MockTransport(handler))


def test_extract_json_object_handles_prose_and_fences():
    assert extract_json_object('```json\n{"a": 1}\n```') == '{"a": 1}'
    text = 'Sure! {"note": "a } in a string", "nested": {"b": [1, 2]}} hope that helps'
    assert json.loads(extract_json_object(text)) == {"note": "a } in a string", "nested": {"b": [1, 2]}}


def test_extract_json_object_errors():
    with pytest.raises(AiResponseError):
        extract_json_object("no json here")
    with pytest.raises(AiResponseError):
        extract_json_object('{"open": true')


@pytest.mark.asyncio
async def test_invoice_extraction_request(settings):
    seen = {}

    def handler(request):
        seen["url"] = request.url
        seen["body"] = json.loads(request.content)
        return gemini_reply('```json\n{"orders": [], "details": {"invoice_number": "A1"}}\n```')

    data = await client_for(settings, handler).extract_invoice(b"%PDF", "application/pdf")

    assert data == {"orders": [], "details": {"invoice_number": "A1"}}
    assert seen["url"].path == f"/v1beta/models/{settings.gemini_model}:generateContent"
    assert seen["url"].params["key"] == "test-key"
    parts = seen["body"]["contents"][0]["parts"]
    assert parts[0] == {"text": "Extract the invoice."}
    assert parts[1]["inline_data"]["mime_type"] == "application/pdf"
    assert base64.b64decode(parts[1]["inline_data"]["data"]) == b"%PDF"
    assert seen["body"]["generationConfig"] == {"response_mime_type": "application/json"}


@pytest.mark.asyncio
async def test_insight_request_embeds_payload(settings):
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return gemini_reply('{"title": "ok"}')

    client = client_for(settings, handler)
    data = await client.summarize_insight({"dataType": "Recipe", "data": {"name": "Latte"}})

    assert data == {"title": "ok"}
    parts = seen["body"]["contents"][0]["parts"]
    assert len(parts) == 1
    assert parts[0]["text"].startswith("Summarize:\n{")
    assert '"name": "Latte"' in parts[0]["text"]


@pytest.mark.asyncio
async def test_missing_api_key(settings):
    client = GeminiClient(settings.model_copy(update={"gemini_api_key": None}))
    with pytest.raises(AiConfigurationError):
        await client.extract_invoice(b"%PDF", "application/pdf")


@pytest.mark.asyncio
async def test_missing_prompt_template(settings):
    client = client_for(settings, lambda request: gemini_reply("{}"))
    with pytest.raises(AiConfigurationError):
        await client.extract_receipt(b"jpg", "image/jpeg")


@pytest.mark.asyncio
async def test_error_status_carries_service_message(settings):
    def handler(request):
        return httpx.Response(429, json={"error": {"message": "Resource has been exhausted"}})

    with pytest.raises(AiTransportError) as excinfo:
        await client_for(settings, handler).extract_invoice(b"%PDF", "application/pdf")
    assert str(excinfo.value) == "AI Service Error: Resource has been exhausted"
    assert excinfo.value.status_code == 429


@pytest.mark.asyncio
async def test_timeout(settings):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(AiTransportError, match="timed out"):
        await client_for(settings, handler).extract_invoice(b"%PDF", "application/pdf")


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [
    httpx.Response(200, json={"candidates": []}),
    gemini_reply("I could not read this document."),
    gemini_reply("[1, 2, 3]"),
])
async def test_unusable_responses(settings, reply):
    with pytest.raises(AiResponseError) as excinfo:
        await client_for(settings, lambda request: reply).extract_invoice(b"%PDF", "application/pdf")
    assert excinfo.value.raw
