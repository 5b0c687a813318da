"""
Gemini analyzer adapter over the Generative Language REST API (httpx).

- Tries the preferred model, then a fixed fallback chain; moves on to the next
  model only when the provider is unavailable for that model (5xx, 404, transport).
- Timeout and quota failures end the call immediately; retry policy belongs to
  the orchestrator.
- Reports the model that actually answered (response modelVersion when present).
Config: GEMINI_API_KEY, GEMINI_MODELS (comma-separated override of the chain).
"""

from __future__ import annotations

from typing import Any, Sequence

import httpx

from backend_guard.ai_engine.adapter import AnalysisOptions
from backend_guard.ai_engine.parser import build_prompt, parse_analysis
from backend_guard.analysis_engine.models import AuditReport
from backend_guard.core.exceptions import AnalysisError, AnalysisKind
from backend_guard.guard_logging import get_logger

logger = get_logger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL_CHAIN: tuple[str, ...] = (
    "gemini-2.5-flash",
    "gemini-2.5-pro",
    "gemini-2.0-flash",
    "gemini-1.5-flash",
    "gemini-1.5-pro",
)
DEFAULT_HTTP_TIMEOUT_SEC = 60.0
DEFAULT_TOP_P = 0.95
DEFAULT_TOP_K = 40


def _error_status(body: Any) -> str:
    """Google API error status (e.g. RESOURCE_EXHAUSTED) from an error body, or ''."""
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            return str(err.get("status") or "")
    return ""


def classify_http_failure(status_code: int, body: Any, model: str) -> AnalysisError:
    """Map a non-2xx Gemini response to an AnalysisError kind."""
    status = _error_status(body)
    if status_code == 429 or status == "RESOURCE_EXHAUSTED":
        return AnalysisError(
            AnalysisKind.QUOTA_EXCEEDED, f"Gemini quota exceeded for {model}", model=model
        )
    if status_code in (408, 504) or status == "DEADLINE_EXCEEDED":
        return AnalysisError(AnalysisKind.TIMEOUT, f"Gemini timed out for {model}", model=model)
    return AnalysisError(
        AnalysisKind.PROVIDER_UNAVAILABLE,
        f"Gemini returned HTTP {status_code}{' ' + status if status else ''} for {model}",
        model=model,
    )


def candidate_text(body: Any, model: str) -> str:
    """Concatenate the text parts of the first candidate; blocked/empty replies are malformed."""
    if not isinstance(body, dict):
        raise AnalysisError(AnalysisKind.MALFORMED_RESPONSE, "Gemini response is not an object", model=model)
    feedback = body.get("promptFeedback") or {}
    if isinstance(feedback, dict) and feedback.get("blockReason"):
        raise AnalysisError(
            AnalysisKind.MALFORMED_RESPONSE,
            f"Gemini blocked the prompt: {feedback['blockReason']}",
            model=model,
        )
    candidates = body.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        raise AnalysisError(AnalysisKind.MALFORMED_RESPONSE, "Gemini returned no candidates", model=model)
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    if not text.strip():
        raise AnalysisError(AnalysisKind.MALFORMED_RESPONSE, "Gemini returned an empty candidate", model=model)
    return text


class GeminiAnalyzer:
    """AnalysisAdapter backed by Gemini. One instance per configuration; holds its own HTTP client."""

    def __init__(
        self,
        api_key: str,
        *,
        models: Sequence[str] | None = None,
        client: httpx.AsyncClient | None = None,
        base_url: str = GEMINI_API_BASE,
        http_timeout_sec: float = DEFAULT_HTTP_TIMEOUT_SEC,
    ) -> None:
        if not api_key:
            raise ValueError("GEMINI_API_KEY must be set")
        self._api_key = api_key
        self._models: tuple[str, ...] = tuple(models) if models else DEFAULT_MODEL_CHAIN
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=http_timeout_sec)

    @property
    def models(self) -> tuple[str, ...]:
        return self._models

    def model_order(self, preference: str | None) -> list[str]:
        """Preferred model first, then the chain without duplicates."""
        order: list[str] = []
        if preference and preference.strip():
            order.append(preference.strip())
        order.extend(m for m in self._models if m not in order)
        return order

    def _payload(self, code: str, options: AnalysisOptions) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": build_prompt(code, options.chain_hint)}]}],
            "generationConfig": {
                "temperature": options.temperature,
                "topP": DEFAULT_TOP_P,
                "topK": DEFAULT_TOP_K,
                "maxOutputTokens": options.max_output_tokens,
                "responseMimeType": "application/json",
            },
        }

    async def _generate(self, model: str, code: str, options: AnalysisOptions) -> AuditReport:
        url = f"{self._base_url}/models/{model}:generateContent"
        try:
            resp = await self._client.post(
                url,
                json=self._payload(code, options),
                headers={"x-goog-api-key": self._api_key},
            )
        except httpx.TimeoutException as e:
            raise AnalysisError(AnalysisKind.TIMEOUT, f"Gemini request timed out for {model}", model=model) from e
        except httpx.HTTPError as e:
            raise AnalysisError(
                AnalysisKind.PROVIDER_UNAVAILABLE, f"Gemini transport error for {model}: {e}", model=model
            ) from e

        try:
            body = resp.json()
        except ValueError:
            body = None
        if resp.status_code >= 400:
            raise classify_http_failure(resp.status_code, body, model)
        if body is None:
            raise AnalysisError(AnalysisKind.MALFORMED_RESPONSE, "Gemini response is not JSON", model=model)

        text = candidate_text(body, model)
        model_used = str(body.get("modelVersion") or "").strip() or model
        return parse_analysis(text, model_used)

    async def analyze(self, code: str, options: AnalysisOptions) -> AuditReport:
        last_error: AnalysisError | None = None
        for model in self.model_order(options.model_preference):
            logger.info("gemini_model_attempt", model=model, code_length=len(code))
            try:
                report = await self._generate(model, code, options)
            except AnalysisError as e:
                if e.kind is not AnalysisKind.PROVIDER_UNAVAILABLE:
                    raise
                logger.warning("gemini_model_failed", model=model, error=e.message)
                last_error = e
                continue
            logger.info("gemini_model_succeeded", model=report.model_used, findings=len(report.findings))
            return report

        raise AnalysisError(
            AnalysisKind.PROVIDER_UNAVAILABLE,
            f"All models failed. Last error: {last_error.message if last_error else 'no models configured'}",
            model=last_error.model if last_error else None,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
