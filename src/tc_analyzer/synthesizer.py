"""Multi-pass analysis: run focused passes in sequence and merge them.

Each pass sees the normalized results of the passes before it, so passes
are never run concurrently. The merge keeps the last pass as the base
result and layers recency-weighted category scores plus the union of
everything the passes surfaced on top.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .errors import InsufficientPassesError, MultiPassIncompleteError, UpstreamError
from .llm import LlmClient
from .models import (
    CATEGORIES,
    AggregatedScore,
    AnalysisOptions,
    AnalysisResult,
    ComprehensiveInsights,
    DocumentMetadata,
    MultiPassResult,
    round_half_up,
)
from .normalizer import normalize_response
from .prompts import build_analysis_prompt

logger = logging.getLogger(__name__)

#: Weight of pass ``i`` (0-based) is ``1 + RECENCY_STEP * i``.
RECENCY_STEP = 0.5
MAX_PASSES = 5
MIN_PASSES_BEFORE_STOP = 3
CONFIDENCE_PASS_DIVISOR = 5
CONFIDENCE_CAP = 0.95


def pass_confidence(count: int) -> float:
    return min(count / CONFIDENCE_PASS_DIVISOR, CONFIDENCE_CAP)


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------


def aggregate_scores(passes: Sequence[AnalysisResult]) -> dict[str, AggregatedScore]:
    """Recency-weighted mean score per category.

    Later passes carry more context, so they weigh more. Passes without a
    category are skipped for that category.
    """
    aggregated: dict[str, AggregatedScore] = {}
    for category in CATEGORIES:
        scores = [p.categories[category].score for p in passes if category in p.categories]
        if not scores:
            continue
        weights = [1 + RECENCY_STEP * i for i in range(len(scores))]
        weighted = sum(score * weight for score, weight in zip(scores, weights))
        aggregated[category] = AggregatedScore(
            score=round_half_up(weighted / sum(weights)),
            confidence=pass_confidence(len(scores)),
            passes_contributing=len(scores),
        )
    return aggregated


def _ordered_union(groups) -> list[str]:
    seen: dict[str, None] = {}
    for group in groups:
        for item in group:
            seen.setdefault(item, None)
    return list(seen)


def collect_insights(passes: Sequence[AnalysisResult]) -> ComprehensiveInsights:
    return ComprehensiveInsights(
        key_concerns=_ordered_union(p.key_points for p in passes),
        regulatory_flags=_ordered_union(p.regulatory_flags for p in passes),
        recommendations=_ordered_union(p.recommendations for p in passes),
        jurisdictions=_ordered_union([p.jurisdiction] for p in passes if p.jurisdiction),
    )


def _mode(values: list[str]) -> str:
    # Counter.most_common keeps first-seen order among equal counts.
    if not values:
        return "unknown"
    return Counter(values).most_common(1)[0][0]


def document_metadata(passes: Sequence[AnalysisResult]) -> DocumentMetadata:
    return DocumentMetadata(
        primary_document_type=_mode([p.document_type for p in passes if p.document_type]),
        primary_jurisdiction=_mode([p.jurisdiction for p in passes if p.jurisdiction]),
        confidence=pass_confidence(len(passes)),
    )


def synthesize(passes: Sequence[AnalysisResult]) -> MultiPassResult:
    """Merge completed passes into one result.

    Raises:
        InsufficientPassesError: If ``passes`` is empty.
    """
    if not passes:
        raise InsufficientPassesError("No analysis passes completed")

    base = passes[-1]
    return MultiPassResult(
        risk_score=base.risk_score,
        risk_level=base.risk_level,
        summary=base.summary,
        key_points=list(base.key_points),
        categories=dict(base.categories),
        confidence=base.confidence,
        document_type=base.document_type,
        jurisdiction=base.jurisdiction,
        regulatory_flags=list(base.regulatory_flags),
        recommendations=list(base.recommendations),
        fallback=base.fallback,
        mock=base.mock,
        passes_completed=len(passes),
        aggregated_scores=aggregate_scores(passes),
        comprehensive_insights=collect_insights(passes),
        document_metadata=document_metadata(passes),
    )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PassConfig:
    focus: str
    task: str


PASS_CONFIGS: tuple[PassConfig, ...] = (
    PassConfig("document_classification", "Identify document type, jurisdiction, and key legal frameworks"),
    PassConfig("clause_extraction", "Extract and categorize specific legal clauses"),
    PassConfig("risk_assessment", "Assess user impact and risk implications"),
    PassConfig("contextual_analysis", "Consider jurisdiction-specific and service-type implications"),
    PassConfig("synthesis", "Generate final risk scores and actionable recommendations"),
)


@dataclass
class PassProgress:
    pass_number: int
    max_passes: int
    result: AnalysisResult

    @property
    def progress(self) -> float:
        return self.pass_number / self.max_passes * 100


ProgressCallback = Callable[[PassProgress], None]


class MultiPassRunner:
    """Runs up to five sequential, context-carrying analysis passes.

    A failed pass (upstream error or per-pass timeout) ends the run once at
    least three passes have completed; the completed passes are then
    synthesized. An earlier failure raises :class:`MultiPassIncompleteError`.

    Args:
        client: LLM used for every pass.
        max_passes: Number of passes to attempt.
        min_passes: Completed passes needed before a failure is tolerated.
        pass_timeout: Optional per-pass timeout in seconds.
    """

    def __init__(
        self,
        client: LlmClient,
        max_passes: int = MAX_PASSES,
        min_passes: int = MIN_PASSES_BEFORE_STOP,
        pass_timeout: float | None = None,
    ) -> None:
        self._client = client
        self.max_passes = min(max_passes, len(PASS_CONFIGS))
        self.min_passes = min_passes
        self.pass_timeout = pass_timeout

    async def _call(self, prompt: str) -> str:
        if self.pass_timeout is None:
            return await self._client.generate(prompt)
        return await asyncio.wait_for(self._client.generate(prompt), timeout=self.pass_timeout)

    async def run(
        self,
        text: str,
        options: AnalysisOptions | None = None,
        personalization: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> MultiPassResult:
        """Run the passes and synthesize.

        Args:
            text: Document text.
            options: Analysis options forwarded to every prompt.
            personalization: Optional user-context block added to each prompt.
            on_progress: Called after every completed pass.

        Raises:
            MultiPassIncompleteError: A pass failed before ``min_passes`` completed.
        """
        options = options or AnalysisOptions()
        completed: list[AnalysisResult] = []
        logger.info("Starting multi-pass analysis (%d chars, %d passes)", len(text), self.max_passes)

        for number, config in enumerate(PASS_CONFIGS[: self.max_passes], start=1):
            prompt = build_analysis_prompt(
                text,
                options,
                pass_number=number,
                total_passes=len(PASS_CONFIGS),
                task=config.task,
                previous_passes=completed,
                personalization=personalization,
            )
            try:
                reply = await self._call(prompt)
            except (UpstreamError, asyncio.TimeoutError) as exc:
                logger.warning("Pass %d/%d (%s) failed: %s", number, self.max_passes, config.focus, exc)
                if len(completed) >= self.min_passes:
                    logger.info("Synthesizing from %d completed passes", len(completed))
                    break
                raise MultiPassIncompleteError(
                    f"Pass {number} failed after only {len(completed)} completed passes",
                    passes_completed=len(completed),
                ) from exc

            result = normalize_response(reply)
            completed.append(result)
            logger.debug("Pass %d/%d (%s) scored %.1f", number, self.max_passes, config.focus, result.risk_score)
            if on_progress is not None:
                on_progress(PassProgress(number, self.max_passes, result))

        return synthesize(completed)
