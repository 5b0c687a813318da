"""
Tests for GeminiAnalyzer over httpx.MockTransport: fallback chain, error mapping, model reporting.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from backend_guard.ai_engine.adapter import AnalysisAdapter, AnalysisOptions
from backend_guard.ai_engine.gemini import GeminiAnalyzer, classify_http_failure
from backend_guard.core.exceptions import AnalysisError, AnalysisKind

MODELS = ("model-a", "model-b")
REPLY = {
    "vulnerabilities": [{"type": "tx.origin auth", "severity": "medium", "line": 3, "description": "d"}],
    "riskScore": 8,
    "summary": "ok",
}


def _ok(text: str = json.dumps(REPLY), **extra) -> httpx.Response:
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}], **extra})


def _model_of(request: httpx.Request) -> str:
    return request.url.path.rsplit("/", 1)[-1].split(":")[0]


def _run(handler, options: AnalysisOptions | None = None, models=MODELS):
    seen: list[str] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(_model_of(request))
        return handler(request)

    async def _go():
        client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
        analyzer = GeminiAnalyzer("test-key", models=models, client=client)
        try:
            return await analyzer.analyze("contract A {}", options or AnalysisOptions())
        finally:
            await client.aclose()

    return asyncio.run(_go()), seen


def _run_error(handler, **kwargs) -> tuple[AnalysisError, list[str]]:
    seen: list[str] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(_model_of(request))
        return handler(request)

    async def _go():
        client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
        analyzer = GeminiAnalyzer("test-key", models=MODELS, client=client)
        try:
            await analyzer.analyze("contract A {}", AnalysisOptions(**kwargs))
        finally:
            await client.aclose()

    with pytest.raises(AnalysisError) as exc_info:
        asyncio.run(_go())
    return exc_info.value, seen


def test_is_an_analysis_adapter():
    assert isinstance(GeminiAnalyzer("k"), AnalysisAdapter)


def test_empty_key_rejected():
    with pytest.raises(ValueError):
        GeminiAnalyzer("")


def test_success_on_first_model():
    report, seen = _run(lambda r: _ok())
    assert seen == ["model-a"]
    assert report.model_used == "model-a"
    assert report.findings[0].title == "tx.origin auth"


def test_request_shape():
    """API key goes in a header, prompt in contents, JSON mime type requested."""
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return _ok()

    _run(handler, AnalysisOptions(temperature=0.1, chain_hint="Base"))
    req = captured[0]
    assert req.method == "POST"
    assert req.url.path.endswith("/models/model-a:generateContent")
    assert req.headers["x-goog-api-key"] == "test-key"
    assert "key" not in req.url.params
    body = json.loads(req.content)
    assert "contract A {}" in body["contents"][0]["parts"][0]["text"]
    assert "Target chain: Base" in body["contents"][0]["parts"][0]["text"]
    assert body["generationConfig"]["temperature"] == 0.1
    assert body["generationConfig"]["responseMimeType"] == "application/json"


def test_model_version_reported():
    report, _ = _run(lambda r: _ok(modelVersion="model-a-001"))
    assert report.model_used == "model-a-001"


def test_falls_back_on_provider_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        if _model_of(request) == "model-a":
            return httpx.Response(503, json={"error": {"status": "UNAVAILABLE"}})
        return _ok()

    report, seen = _run(handler)
    assert seen == ["model-a", "model-b"]
    assert report.model_used == "model-b"


def test_falls_back_on_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        if _model_of(request) == "model-a":
            raise httpx.ConnectError("refused", request=request)
        return _ok()

    report, seen = _run(handler)
    assert seen == ["model-a", "model-b"]
    assert report.model_used == "model-b"


def test_preferred_model_first():
    _, seen = _run(lambda r: _ok(), AnalysisOptions(model_preference="model-b"))
    assert seen == ["model-b"]


def test_all_models_fail():
    err, seen = _run_error(lambda r: httpx.Response(500, json={"error": {"status": "INTERNAL"}}))
    assert seen == ["model-a", "model-b"]
    assert err.kind is AnalysisKind.PROVIDER_UNAVAILABLE
    assert err.message.startswith("All models failed")
    assert err.retryable


def test_quota_does_not_fall_back():
    err, seen = _run_error(lambda r: httpx.Response(429, json={"error": {"status": "RESOURCE_EXHAUSTED"}}))
    assert seen == ["model-a"]
    assert err.kind is AnalysisKind.QUOTA_EXCEEDED
    assert not err.retryable


def test_read_timeout_maps_to_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    err, seen = _run_error(handler)
    assert seen == ["model-a"]
    assert err.kind is AnalysisKind.TIMEOUT
    assert err.retryable


def test_blocked_prompt_is_malformed():
    err, _ = _run_error(lambda r: httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}))
    assert err.kind is AnalysisKind.MALFORMED_RESPONSE
    assert "SAFETY" in err.message


def test_unparseable_candidate_is_malformed():
    err, seen = _run_error(lambda r: _ok(text="I could not analyze this contract."))
    assert seen == ["model-a"]
    assert err.kind is AnalysisKind.MALFORMED_RESPONSE


@pytest.mark.parametrize(
    "status,body,kind",
    [
        (429, None, AnalysisKind.QUOTA_EXCEEDED),
        (400, {"error": {"status": "RESOURCE_EXHAUSTED"}}, AnalysisKind.QUOTA_EXCEEDED),
        (504, None, AnalysisKind.TIMEOUT),
        (500, {"error": {"status": "DEADLINE_EXCEEDED"}}, AnalysisKind.TIMEOUT),
        (404, {"error": {"status": "NOT_FOUND"}}, AnalysisKind.PROVIDER_UNAVAILABLE),
        (503, "oops", AnalysisKind.PROVIDER_UNAVAILABLE),
    ],
)
def test_classify_http_failure(status, body, kind):
    err = classify_http_failure(status, body, "m")
    assert err.kind is kind
    assert err.model == "m"


def test_model_version_wins_over_reply_claim():
    """modelVersion from the provider is reported even when the reply JSON names another model."""
    text = json.dumps({**REPLY, "model": "gpt-4-turbo"})
    report, _ = _run(lambda r: _ok(text=text, modelVersion="model-a-001"))
    assert report.model_used == "model-a-001"
