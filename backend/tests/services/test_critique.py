# tests/services/test_critique.py
import json

import httpx
import pytest

from app.errors import ExternalAdapterError
from app.services.critique import CritiqueService, build_prompt, parse_critique_response

ANALYSIS = {
    "overallAnalysis": {"summary": "Clean layout, weak contrast", "score": 72},
    "coordinateFeedback": [
        {
            "x": 40, "y": 60, "width": 120, "height": 30,
            "category": "contrast", "severity": "high",
            "title": "Low contrast heading", "description": "Heading text blends into the hero",
            "suggestion": "Use a darker shade", "targetRole": "designer"
        },
        {
            "x": 300, "y": 410,
            "category": "navigation", "severity": "low",
            "title": "Hidden menu", "description": "Menu icon is easy to miss",
            "targetRole": "all"
        },
    ]
}


def gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_parse_strips_markdown_fences():
    text = "```json\n" + json.dumps(ANALYSIS) + "\n```"

    analysis = parse_critique_response(text)

    assert analysis["overallAnalysis"]["score"] == 72
    assert len(analysis["coordinateFeedback"]) == 2


@pytest.mark.parametrize("text,message", [
    ("not json", "Failed to parse AI response"),
    (json.dumps({"coordinateFeedback": []}), "Missing overallAnalysis in response"),
    (json.dumps({"overallAnalysis": {}, "coordinateFeedback": {}}), "coordinateFeedback must be an array"),
    (json.dumps({"overallAnalysis": {}, "coordinateFeedback": [{"x": 1, "y": 2}]}),
     "Missing category in feedback item 0"),
])
def test_parse_rejects_malformed_answers(text, message):
    with pytest.raises(ExternalAdapterError) as exc_info:
        parse_critique_response(text)
    assert exc_info.value.message == message


def test_parse_rejects_non_numeric_coordinates():
    bad = dict(ANALYSIS, coordinateFeedback=[dict(ANALYSIS["coordinateFeedback"][0], x="40")])

    with pytest.raises(ExternalAdapterError, match="Invalid coordinates"):
        parse_critique_response(json.dumps(bad))


def test_prompt_is_role_aware():
    prompt = build_prompt(role="pm", focus_areas=["checkout"], project_type="e-commerce")

    assert "e-commerce design" in prompt
    assert "business-friendly" in prompt
    assert "Special attention to: checkout" in prompt


@pytest.mark.asyncio
async def test_analyze_returns_findings():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=gemini_body(json.dumps(ANALYSIS)))

    service = CritiqueService(api_key="test-key", model="gemini-test", transport=httpx.MockTransport(handler))
    result = await service.analyze(b"png-bytes", "image/png", {"role": "developer"})

    assert result.success is True
    assert result.overall_score == 72
    assert result.summary == "Clean layout, weak contrast"
    assert [f.title for f in result.findings] == ["Low contrast heading", "Hidden menu"]
    assert result.findings[1].width is None
    assert result.findings[1].target_role == "all"

    assert seen["url"].endswith("/gemini-test:generateContent")
    assert seen["key"] == "test-key"
    inline = seen["body"]["contents"][0]["parts"][1]["inline_data"]
    assert inline["mime_type"] == "image/png"


@pytest.mark.asyncio
async def test_analyze_without_api_key_falls_back():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    service = CritiqueService(transport=httpx.MockTransport(handler))
    result = await service.analyze(b"png-bytes", "image/png")

    assert result.success is False
    assert result.findings == []
    assert result.error == "GEMINI_API_KEY is not configured"


@pytest.mark.asyncio
async def test_analyze_http_error_falls_back():
    transport = httpx.MockTransport(lambda request: httpx.Response(503, text="overloaded"))
    service = CritiqueService(api_key="test-key", transport=transport)

    result = await service.analyze(b"png-bytes", "image/png")

    assert result.success is False
    assert result.error == "Gemini error (503)"


@pytest.mark.asyncio
async def test_analyze_unparseable_answer_falls_back():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=gemini_body("I cannot help")))
    service = CritiqueService(api_key="test-key", transport=transport)

    result = await service.analyze(b"png-bytes", "image/png")

    assert result.success is False
    assert result.error == "Failed to parse AI response"


@pytest.mark.asyncio
async def test_analyze_connection_error_falls_back():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    service = CritiqueService(api_key="test-key", transport=httpx.MockTransport(handler))
    result = await service.analyze(b"png-bytes", "image/png")

    assert result.success is False
    assert result.error.startswith("Gemini request failed")
