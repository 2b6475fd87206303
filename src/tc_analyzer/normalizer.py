"""Coerce untrusted LLM output into a canonical :class:`AnalysisResult`.

Nothing in here raises on bad input. Every field has a safe default, and the
risk level is always re-derived from the score.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from .models import (
    CATEGORIES,
    AnalysisResult,
    CategoryAnalysis,
    clamp,
    risk_level_for_score,
    round_half_up,
)

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 5.0
DEFAULT_CONFIDENCE = 0.7
MIN_SUMMARY_LENGTH = 10
MAX_SUMMARY_LENGTH = 500
MIN_KEY_POINT_LENGTH = 5
MAX_KEY_POINTS = 5
MAX_CONCERNS = 3

FALLBACK_SUMMARY = "Analysis completed with limited confidence. Manual review of these terms is recommended."
FALLBACK_KEY_POINT = "No specific key points could be identified; review the full terms before agreeing."
INCOMPLETE_CATEGORY_CONCERN = "Analysis incomplete for this category"
NO_CONCERNS = "No specific concerns identified"

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def parse_llm_json(text: str | None) -> dict | None:
    """Extract a JSON object from an LLM reply.

    Strips markdown code fences and falls back to the outermost ``{...}``
    span. Returns ``None`` when nothing parses to a JSON object.
    """
    if not text:
        return None
    cleaned = text.strip()
    if "```json" in cleaned:
        start = cleaned.find("```json") + 7
        end = cleaned.find("```", start)
        cleaned = cleaned[start:end if end != -1 else None].strip()
    elif cleaned.startswith("```"):
        start = cleaned.find("```") + 3
        end = cleaned.find("```", start)
        cleaned = cleaned[start:end if end != -1 else None].strip()

    match = _JSON_OBJECT_RE.search(cleaned)
    if match:
        cleaned = match.group(0)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def normalize_response(text: str | None) -> AnalysisResult:
    """Parse and normalize one raw LLM reply.

    Unparsable replies produce a low-confidence result flagged ``fallback``,
    scored from a couple of phrases in the reply itself.
    """
    parsed = parse_llm_json(text)
    if parsed is not None:
        return normalize(parsed)

    logger.warning("Unparsable LLM response (%d chars); using defaults", len(text or ""))
    lowered = (text or "").lower()
    score = DEFAULT_SCORE
    if "high risk" in lowered or "concern" in lowered:
        score = 7.0
    elif "low risk" in lowered or "safe" in lowered:
        score = 3.0
    result = normalize({"risk_score": score})
    result.summary = "Analysis completed with limited accuracy due to parsing issues. Manual review recommended."
    result.confidence = 0.3
    result.fallback = True
    return result


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def _score(value: Any) -> float:
    number = _to_float(value)
    if number is None or not 1.0 <= number <= 10.0:
        return DEFAULT_SCORE
    return round_half_up(number)


def _confidence(value: Any) -> float:
    number = _to_float(value)
    if number is None:
        return DEFAULT_CONFIDENCE
    return round_half_up(clamp(number, 0.0, 1.0), 2)


def _summary(value: Any) -> str:
    if not isinstance(value, str) or len(value.strip()) < MIN_SUMMARY_LENGTH:
        return FALLBACK_SUMMARY
    summary = value.strip()
    if len(summary) > MAX_SUMMARY_LENGTH:
        return summary[: MAX_SUMMARY_LENGTH - 3] + "..."
    return summary


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _key_points(value: Any) -> list[str]:
    points = [p for p in _strings(value) if len(p) > MIN_KEY_POINT_LENGTH][:MAX_KEY_POINTS]
    return points or [FALLBACK_KEY_POINT]


def _category(value: Any) -> CategoryAnalysis:
    if not isinstance(value, dict):
        return CategoryAnalysis(score=DEFAULT_SCORE, concerns=[INCOMPLETE_CATEGORY_CONCERN])
    number = _to_float(value.get("score"))
    score = DEFAULT_SCORE if number is None else round_half_up(clamp(number, 1.0, 10.0))
    concerns = value.get("concerns")
    if not isinstance(concerns, list):
        return CategoryAnalysis(score=score, concerns=[NO_CONCERNS])
    return CategoryAnalysis(score=score, concerns=_strings(concerns)[:MAX_CONCERNS])


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize(raw: Any) -> AnalysisResult:
    """Build a canonical result from any parsed LLM payload.

    Args:
        raw: Usually a dict decoded from the model's JSON. Anything else is
            treated as an empty payload.

    Returns:
        A result with every field populated, all four categories present and
        ``risk_level`` matching the score bucket.
    """
    data = raw if isinstance(raw, dict) else {}
    categories_raw = data.get("categories")
    if not isinstance(categories_raw, dict):
        categories_raw = {}

    score = _score(data.get("risk_score"))
    return AnalysisResult(
        risk_score=score,
        risk_level=risk_level_for_score(score),
        summary=_summary(data.get("summary")),
        key_points=_key_points(data.get("key_points")),
        categories={name: _category(categories_raw.get(name)) for name in CATEGORIES},
        confidence=_confidence(data.get("confidence")),
        document_type=_optional_str(data.get("document_type")),
        jurisdiction=_optional_str(data.get("jurisdiction")),
        regulatory_flags=_strings(data.get("regulatory_flags")),
        recommendations=_strings(data.get("recommendations")),
    )
