"""Tests for multi-pass synthesis and the pass runner."""

from __future__ import annotations

import asyncio
import json

import pytest

from tc_analyzer.errors import InsufficientPassesError, MultiPassIncompleteError, UpstreamError
from tc_analyzer.llm import FixtureClient
from tc_analyzer.models import AnalysisResult, CategoryAnalysis, RiskLevel, risk_level_for_score
from tc_analyzer.synthesizer import (
    MultiPassRunner,
    aggregate_scores,
    collect_insights,
    document_metadata,
    pass_confidence,
    synthesize,
)


def make_pass(
    score: float = 5.0,
    privacy: float = 5.0,
    key_points=("Standard terms apply",),
    document_type=None,
    jurisdiction=None,
    flags=(),
    recommendations=(),
) -> AnalysisResult:
    return AnalysisResult(
        risk_score=score,
        risk_level=risk_level_for_score(score),
        summary=f"Pass scored {score}",
        key_points=list(key_points),
        categories={
            "privacy": CategoryAnalysis(privacy, ["privacy concern"]),
            "liability": CategoryAnalysis(4.0, []),
            "termination": CategoryAnalysis(4.0, []),
            "payment": CategoryAnalysis(4.0, []),
        },
        confidence=0.8,
        document_type=document_type,
        jurisdiction=jurisdiction,
        regulatory_flags=list(flags),
        recommendations=list(recommendations),
    )


def reply(score: float, **extra) -> str:
    return json.dumps({"risk_score": score, "summary": f"Reply with score {score}", **extra})


class FailingClient:
    """Answers ``succeed`` calls, then raises ``error`` forever."""

    def __init__(self, succeed: int, error: Exception) -> None:
        self.succeed = succeed
        self.error = error
        self.calls = 0

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        if self.calls > self.succeed:
            raise self.error
        return reply(4.0 + self.calls)


class SlowClient:
    def __init__(self, succeed: int) -> None:
        self.succeed = succeed
        self.calls = 0

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        if self.calls > self.succeed:
            await asyncio.sleep(1)
        return reply(5.0)


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------


class TestAggregateScores:
    def test_recency_weighted_mean(self) -> None:
        passes = [make_pass(privacy=6.0), make_pass(privacy=6.0), make_pass(privacy=7.0)]
        aggregated = aggregate_scores(passes)
        # (6*1 + 6*1.5 + 7*2) / 4.5 = 29 / 4.5
        assert aggregated["privacy"].score == 6.4
        assert aggregated["privacy"].passes_contributing == 3
        assert aggregated["privacy"].confidence == pytest.approx(0.6)

    def test_three_pass_privacy_scenario(self) -> None:
        passes = [make_pass(privacy=4.0), make_pass(privacy=6.0), make_pass(privacy=8.0)]
        # 4*1 + 6*1.5 + 8*2 = 29 (not 30), so 29 / 4.5 = 6.44
        assert aggregate_scores(passes)["privacy"].score == 6.4

    def test_missing_category_skipped(self) -> None:
        partial = make_pass(privacy=9.0)
        del partial.categories["payment"]
        aggregated = aggregate_scores([partial, make_pass()])
        assert aggregated["payment"].passes_contributing == 1
        assert aggregated["privacy"].passes_contributing == 2


class TestPassConfidence:
    @pytest.mark.parametrize("count, expected", [(1, 0.2), (3, 0.6), (5, 0.95), (8, 0.95)])
    def test_values(self, count, expected) -> None:
        assert pass_confidence(count) == pytest.approx(expected)


class TestSynthesize:
    def test_empty_raises(self) -> None:
        with pytest.raises(InsufficientPassesError):
            synthesize([])

    def test_single_pass(self) -> None:
        result = synthesize([make_pass(score=6.0)])
        assert result.passes_completed == 1
        assert result.document_metadata.confidence == pytest.approx(0.2)
        assert result.aggregated_scores["privacy"].confidence == pytest.approx(0.2)
        assert result.aggregated_scores["privacy"].score == 5.0
        assert result.aggregated_scores["privacy"].passes_contributing == 1
        assert result.document_metadata.primary_document_type == "unknown"
        assert result.document_metadata.primary_jurisdiction == "unknown"

    def test_last_pass_is_base(self) -> None:
        result = synthesize([make_pass(score=2.0), make_pass(score=8.0)])
        assert result.risk_score == 8.0
        assert result.risk_level == RiskLevel.HIGH
        assert result.summary == "Pass scored 8.0"

    def test_insights_are_ordered_unions(self) -> None:
        passes = [
            make_pass(key_points=["A", "B"], flags=["gdpr"], jurisdiction="US-CA"),
            make_pass(key_points=["B", "C"], flags=["gdpr", "ccpa"], recommendations=["Read it"]),
            make_pass(key_points=["A"], jurisdiction="EU"),
        ]
        insights = collect_insights(passes)
        assert insights.key_concerns == ["A", "B", "C"]
        assert insights.regulatory_flags == ["gdpr", "ccpa"]
        assert insights.recommendations == ["Read it"]
        assert insights.jurisdictions == ["US-CA", "EU"]

    def test_metadata_mode(self) -> None:
        passes = [
            make_pass(document_type="privacy_policy", jurisdiction="EU"),
            make_pass(document_type="terms_of_service", jurisdiction="US"),
            make_pass(document_type="terms_of_service"),
        ]
        metadata = document_metadata(passes)
        assert metadata.primary_document_type == "terms_of_service"
        assert metadata.primary_jurisdiction == "EU"  # tie keeps first seen

    def test_to_dict_flags_multi_pass(self) -> None:
        data = synthesize([make_pass(), make_pass()]).to_dict()
        assert data["multi_pass_analysis"] is True
        assert data["passes_completed"] == 2
        assert set(data["aggregated_scores"]) == {"privacy", "liability", "termination", "payment"}


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class TestMultiPassRunner:
    def test_five_sequential_passes(self, terms_text) -> None:
        client = FixtureClient(responses=[reply(s) for s in (3.0, 4.0, 5.0, 6.0, 7.0)])
        progress = []
        result = asyncio.run(MultiPassRunner(client).run(terms_text, on_progress=progress.append))

        assert client.calls == 5
        assert result.passes_completed == 5
        assert result.risk_score == 7.0
        assert [p.pass_number for p in progress] == [1, 2, 3, 4, 5]
        assert progress[-1].progress == 100.0

    def test_later_prompts_carry_previous_passes(self, terms_text) -> None:
        client = FixtureClient(responses=[reply(4.0)])
        asyncio.run(MultiPassRunner(client).run(terms_text, personalization="--- USER CONTEXT ---"))
        assert "Previous Analysis Context" not in client.prompts[0]
        assert "Previous Analysis Context" in client.prompts[1]
        assert '"pass_1"' in client.prompts[1]
        assert "pass_4" in client.prompts[4]
        assert all("--- USER CONTEXT ---" in prompt for prompt in client.prompts)

    def test_failure_after_min_passes_synthesizes(self, terms_text) -> None:
        client = FailingClient(succeed=3, error=UpstreamError("quota"))
        result = asyncio.run(MultiPassRunner(client).run(terms_text))
        assert result.passes_completed == 3
        assert client.calls == 4
        assert result.risk_score == 7.0

    def test_failure_before_min_passes_raises(self, terms_text) -> None:
        client = FailingClient(succeed=2, error=UpstreamError("quota"))
        with pytest.raises(MultiPassIncompleteError) as exc_info:
            asyncio.run(MultiPassRunner(client).run(terms_text))
        assert exc_info.value.passes_completed == 2

    def test_pass_timeout_counts_as_failure(self, terms_text) -> None:
        client = SlowClient(succeed=3)
        result = asyncio.run(MultiPassRunner(client, pass_timeout=0.05).run(terms_text))
        assert result.passes_completed == 3

    def test_other_errors_propagate(self, terms_text) -> None:
        client = FailingClient(succeed=4, error=KeyError("bug"))
        with pytest.raises(KeyError):
            asyncio.run(MultiPassRunner(client).run(terms_text))
