import asyncio
import json

import httpx
import pytest

from gmaps_leads.exceptions import ConfigurationError, RateLimitError, UpstreamError
from gmaps_leads.upstream import GeminiClient, extract_text
from gmaps_leads.upstream.prompts import NICHE_SUGGESTIONS_SCHEMA


def gemini_reply(*texts):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": t} for t in texts]}}]}


def test_extract_text_joins_parts():
    assert extract_text(gemini_reply("Here: ", '[{"name": "A"}]')) == 'Here: [{"name": "A"}]'
    assert extract_text({"candidates": []}) == ""


def test_extract_text_raises_on_blocked_prompt():
    with pytest.raises(UpstreamError, match="SAFETY"):
        extract_text({"promptFeedback": {"blockReason": "SAFETY"}})


def test_search_text_sends_maps_tool_and_key():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=gemini_reply('[{"name": "Du Pain"}]'))

    client = GeminiClient(api_key="AIza-test", model="gemini-test", transport=httpx.MockTransport(handler))
    text = asyncio.run(client.search_text("find bakeries"))

    assert text == '[{"name": "Du Pain"}]'
    request = seen[0]
    assert request.url.path.endswith("/models/gemini-test:generateContent")
    assert request.headers["x-goog-api-key"] == "AIza-test"
    body = json.loads(request.content)
    assert body["tools"] == [{"googleMaps": {}}]
    assert body["contents"][0]["parts"][0]["text"] == "find bakeries"
    assert "generationConfig" not in body


def test_generate_with_schema_requests_json():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=gemini_reply('["Bakery"]'))

    client = GeminiClient(api_key="AIza-test", transport=httpx.MockTransport(handler))
    asyncio.run(client.generate("niches", response_schema=NICHE_SUGGESTIONS_SCHEMA))

    config = seen[0]["generationConfig"]
    assert config["responseMimeType"] == "application/json"
    assert config["responseSchema"] == NICHE_SUGGESTIONS_SCHEMA
    assert "tools" not in seen[0]


def test_missing_key_is_a_configuration_error():
    client = GeminiClient(api_key="")
    assert not client.configured
    with pytest.raises(ConfigurationError):
        asyncio.run(client.search_text("anything"))


def test_429_becomes_rate_limit_error():
    def handler(request):
        return httpx.Response(429, json={"error": {"status": "RESOURCE_EXHAUSTED", "message": "Quota exceeded"}})

    client = GeminiClient(api_key="AIza-test", transport=httpx.MockTransport(handler))
    with pytest.raises(RateLimitError) as info:
        asyncio.run(client.search_text("anything"))
    assert info.value.status_code == 429
    assert "RESOURCE_EXHAUSTED" in str(info.value)


def test_other_failures_become_upstream_errors():
    def bad_request(request):
        return httpx.Response(400, json={"error": {"status": "INVALID_ARGUMENT", "message": "bad"}})

    def unreachable(request):
        raise httpx.ConnectError("down")

    with pytest.raises(UpstreamError) as info:
        asyncio.run(GeminiClient(api_key="k", transport=httpx.MockTransport(bad_request)).search_text("x"))
    assert info.value.status_code == 400

    with pytest.raises(UpstreamError) as info:
        asyncio.run(GeminiClient(api_key="k", transport=httpx.MockTransport(unreachable)).search_text("x"))
    assert info.value.status_code == 502
