"""Document analysis entry point.

``TermsAnalyzer`` ties the pieces together: cache lookup, prompt building,
the model call (single or multi-pass), normalization, post-processing and
personalization. Model trouble never escapes: timeouts and upstream errors
degrade to a keyword heuristic flagged ``fallback``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

from .cache import AnalysisCache, MemoryAnalysisCache, fingerprint
from .config import Settings
from .errors import MultiPassIncompleteError, UpstreamError
from .heuristics import heuristic_analysis, heuristic_clause_analysis
from .llm import LlmClient
from .models import AnalysisOptions, AnalysisResult, ComputedProfile, RiskLevel
from .normalizer import normalize_response, parse_llm_json
from .prompts import (
    build_analysis_prompt,
    build_personalization_context,
    build_prompt,
    build_selected_text_prompt,
)
from .schemas import UserPersonalizationProfile
from .synthesizer import MAX_PASSES, MultiPassRunner, ProgressCallback

logger = logging.getLogger(__name__)

ANALYZER_VERSION = "1.0.0"
MIN_TEXT_LENGTH = 50
MAX_TEXT_LENGTH = 50_000
MAX_SELECTED_TEXT_LENGTH = 10_000

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

# Degradation triggers; everything else is a programming error and propagates.
_DEGRADE_ON = (asyncio.TimeoutError, UpstreamError, MultiPassIncompleteError)


# ---------------------------------------------------------------------------
# Post-processing helpers
# ---------------------------------------------------------------------------


def text_complexity(text: str) -> dict[str, Any]:
    words = text.split()
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
    avg = len(words) / len(sentences) if sentences else float(len(words))
    level = "standard"
    if avg > 20 or len(text) > 10_000:
        level = "high"
    elif avg < 10 and len(text) < 2_000:
        level = "low"
    return {
        "level": level,
        "word_count": len(words),
        "sentence_count": len(sentences),
        "avg_words_per_sentence": round(avg),
    }


def key_risk_factors(result: AnalysisResult) -> list[dict[str, Any]]:
    factors = [
        {"category": name, "severity": "high", "score": category.score}
        for name, category in result.categories.items()
        if category.score >= 7
    ]
    if result.risk_score >= 8:
        factors.append({"category": "overall", "severity": "critical", "score": result.risk_score})
    return factors


def general_recommendations(result: AnalysisResult, confidence_threshold: float) -> list[str]:
    recommendations = []
    if result.risk_score >= 7:
        recommendations.append("Consider seeking legal advice before accepting these terms")
    privacy = result.categories.get("privacy")
    if privacy is not None and privacy.score >= 7:
        recommendations.append("Review data collection and sharing practices carefully")
    liability = result.categories.get("liability")
    if liability is not None and liability.score >= 7:
        recommendations.append("Pay special attention to liability and responsibility clauses")
    if result.confidence < confidence_threshold:
        recommendations.append("Manual review recommended due to analysis uncertainty")
    return recommendations or ["Terms appear reasonable but always read carefully"]


def comparative_risk(score: float) -> str:
    if score <= 3:
        return "Much safer than average terms"
    if score <= 5:
        return "Slightly safer than average terms"
    if score <= 7:
        return "Similar to average terms"
    if score <= 8.5:
        return "More concerning than average terms"
    return "Significantly more concerning than average terms"


def prompt_context(profile: UserPersonalizationProfile | None) -> dict[str, Any] | None:
    """Questionnaire details quoted in the prompt beyond the computed profile."""
    if profile is None:
        return None
    return {
        "demographics": profile.demographics.model_dump(mode="json"),
        "special_circumstances": list(profile.contextual_factors.special_circumstances),
    }


def personalize(data: dict[str, Any], computed: ComputedProfile) -> dict[str, Any]:
    """Layer user-specific alerts on top of a finished analysis.

    ``risk_level`` stays the score bucket; the user-adjusted level goes to
    ``personalized_risk_level``.
    """
    thresholds = computed.alert_thresholds
    score = data["risk_score"]
    level = data["risk_level"]
    personalized_level = level
    if level == RiskLevel.MEDIUM.value and score > thresholds.overall + 1:
        personalized_level = RiskLevel.HIGH.value
        data["personalized_escalation"] = True
    elif level == RiskLevel.MEDIUM.value and score < thresholds.overall - 2:
        personalized_level = RiskLevel.LOW.value
        data["personalized_reduction"] = True
    data["personalized_risk_level"] = personalized_level

    recommendations = []
    for name, category in data["categories"].items():
        threshold = thresholds.for_category(name)
        if category["score"] > threshold:
            category["personalized_alert"] = True
            category["exceeds_user_threshold"] = round(category["score"] - threshold, 1)
            recommendations.append(
                {
                    "type": f"{name}_concern",
                    "message": f"{name.capitalize()} terms exceed your comfort level - review recommended",
                    "priority": "high" if category["score"] > threshold + 2 else "medium",
                }
            )
    data["personalized_recommendations"] = recommendations
    data["personalization_metadata"] = {
        "explanation_style": computed.explanation_style.value,
        "risk_tolerance": computed.risk_tolerance.to_dict(),
        "alert_thresholds": thresholds.to_dict(),
        "profile_tags": list(computed.profile_tags),
        "analysis_personalized": True,
        "personalization_version": computed.computation_version,
    }
    return data


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class TermsAnalyzer:
    """Analyze terms-and-conditions text, optionally for a specific user.

    Example::

        analyzer = TermsAnalyzer(FixtureClient())
        result = asyncio.run(analyzer.analyze_document(text))
        print(result["risk_level"], result["summary"])

    Args:
        client: LLM client used for every model call.
        cache: Analysis cache; defaults to an in-memory cache.
        settings: Timeouts, cache TTL and the confidence threshold.
    """

    def __init__(
        self,
        client: LlmClient,
        cache: AnalysisCache | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._client = client
        self.settings = settings or Settings()
        self._cache = cache if cache is not None else MemoryAnalysisCache(default_ttl=self.settings.cache_ttl)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def analyze_document(
        self,
        text: str,
        options: AnalysisOptions | None = None,
        computed_profile: ComputedProfile | None = None,
        profile: UserPersonalizationProfile | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        """Analyze a full document.

        Args:
            text: Document text, 50 to 50,000 characters.
            options: Analysis options (``multi_pass`` selects the pass runner).
            computed_profile: Personalizes the prompt and the result.
            profile: The questionnaire behind ``computed_profile``; adds
                demographic context to the prompt.
            on_progress: Multi-pass progress callback.

        Returns:
            The analysis as a JSON-ready dict.

        Raises:
            ValueError: If the text is missing or outside the length limits.
        """
        if not isinstance(text, str) or not text.strip():
            raise ValueError("Invalid text input for analysis")
        if len(text) < MIN_TEXT_LENGTH:
            raise ValueError("Text too short for meaningful analysis")
        if len(text) > MAX_TEXT_LENGTH:
            raise ValueError("Text too long for analysis")

        options = options or AnalysisOptions()
        key = fingerprint(text, options, computed_profile, prompt_context(profile))
        if options.cache:
            cached = await self._cache.get(key)
            if cached is not None:
                logger.info("Returning cached analysis %s", key[:12])
                cached["cached"] = True
                return cached

        logger.info("Starting analysis (%d chars, multi_pass=%s)", len(text), options.multi_pass)
        # Each pass gets the single-pass budget.
        timeout = self.settings.analysis_timeout * (MAX_PASSES if options.multi_pass else 1)
        try:
            result = await asyncio.wait_for(
                self._run(text, options, computed_profile, profile, on_progress),
                timeout=timeout,
            )
        except _DEGRADE_ON as exc:
            reason = str(exc) or type(exc).__name__
            logger.warning("Analysis degraded to heuristic fallback: %s", reason)
            data = self._post_process(heuristic_analysis(text, reason), text, options)
            data["insights"]["recommendations"] = ["Technical error occurred - seek manual legal review"]
            data["insights"]["comparative_risk"] = "Unable to assess due to technical issues"
            if computed_profile is not None:
                personalize(data, computed_profile)
            data["cached"] = False
            return data

        data = self._post_process(result, text, options)
        if computed_profile is not None:
            personalize(data, computed_profile)
        data["cached"] = False
        if result.fallback:
            logger.warning("Model reply was unusable; result not cached")
        elif options.cache:
            await self._cache.set(key, data, ttl=self.settings.cache_ttl)
        logger.info(
            "Analysis completed: score=%.1f level=%s confidence=%.2f",
            result.risk_score,
            result.risk_level.value,
            result.confidence,
        )
        return data

    async def analyze_selected_text(self, text: str, options: AnalysisOptions | None = None) -> dict[str, Any]:
        """Analyze one selected clause under the shorter clause timeout."""
        if not isinstance(text, str) or not text.strip():
            raise ValueError("Invalid text input for analysis")
        if len(text) > MAX_SELECTED_TEXT_LENGTH:
            raise ValueError("Selected text too long for analysis")

        options = options or AnalysisOptions()
        prompt = build_selected_text_prompt(text, options)
        try:
            reply = await asyncio.wait_for(self._client.generate(prompt), timeout=self.settings.selected_text_timeout)
        except _DEGRADE_ON as exc:
            reason = str(exc) or type(exc).__name__
            logger.warning("Clause analysis degraded to heuristic fallback: %s", reason)
            return heuristic_clause_analysis(text, reason).to_dict()

        result = normalize_response(reply)
        parsed = parse_llm_json(reply) or {}
        implications = parsed.get("legal_implications")
        result.extra.update(
            {
                "clause_type": parsed.get("clause_type") or "general",
                "legal_implications": implications if isinstance(implications, list) else ["Manual review recommended"],
                "user_impact": parsed.get("user_impact") or "moderate",
            }
        )
        if not result.recommendations:
            result.recommendations = ["Review this clause carefully"]
        return result.to_dict()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run(
        self,
        text: str,
        options: AnalysisOptions,
        computed: ComputedProfile | None,
        profile: UserPersonalizationProfile | None,
        on_progress: ProgressCallback | None,
    ) -> AnalysisResult:
        demographics = profile.demographics if profile is not None else None
        if options.multi_pass:
            context = build_personalization_context(computed, demographics) if computed is not None else None
            runner = MultiPassRunner(self._client, pass_timeout=self.settings.analysis_timeout)
            return await runner.run(text, options, personalization=context, on_progress=on_progress)

        if computed is not None:
            prompt = build_prompt(
                text,
                computed,
                demographics,
                options,
                special_circumstances=profile.contextual_factors.special_circumstances if profile else (),
            )
        else:
            prompt = build_analysis_prompt(text, options)
        return normalize_response(await self._client.generate(prompt))

    def _post_process(self, result: AnalysisResult, text: str, options: AnalysisOptions) -> dict[str, Any]:
        data = result.to_dict()
        data.update(
            {
                "word_count": len(text.split()),
                "char_count": len(text),
                "language": options.language,
                "detail_level": options.detail_level,
                "analyzer_version": ANALYZER_VERSION,
                "insights": {
                    "text_complexity": text_complexity(text),
                    "key_risk_factors": key_risk_factors(result),
                    "recommendations": general_recommendations(result, self.settings.confidence_threshold),
                    "comparative_risk": comparative_risk(result.risk_score),
                },
            }
        )
        return data

    def cache_stats(self) -> dict[str, Any]:
        return self._cache.stats()
