"""Tests for data models and shared helpers."""

from __future__ import annotations

import pytest

from tc_analyzer.models import (
    AggregatedScore,
    AlertThresholds,
    AnalysisResult,
    CategoryAnalysis,
    ComputedProfile,
    DocumentMetadata,
    MultiPassResult,
    RiskLevel,
    clamp,
    risk_level_for_score,
    round_half_up,
)


class TestHelpers:
    @pytest.mark.parametrize(
        "value, expected",
        [(2.25, 2.3), (2.35, 2.4), (6.45, 6.5), (-1.25, -1.3), (4.0, 4.0)],
    )
    def test_round_half_up(self, value, expected) -> None:
        assert round_half_up(value) == expected

    def test_round_places(self) -> None:
        assert round_half_up(66.665, 2) == 66.67

    @pytest.mark.parametrize(
        "score, level",
        [(1.0, RiskLevel.LOW), (3.5, RiskLevel.LOW), (3.6, RiskLevel.MEDIUM),
         (7.0, RiskLevel.MEDIUM), (7.1, RiskLevel.HIGH), (10.0, RiskLevel.HIGH)],
    )
    def test_risk_level_for_score(self, score, level) -> None:
        assert risk_level_for_score(score) == level

    def test_clamp(self) -> None:
        assert clamp(12.0, 1.0, 10.0) == 10.0
        assert clamp(-3.0, 1.0, 10.0) == 1.0
        assert clamp(5.5, 1.0, 10.0) == 5.5


class TestAlertThresholds:
    def test_unknown_category_uses_overall(self) -> None:
        thresholds = AlertThresholds(privacy=3.0, liability=4.0, termination=5.0, payment=6.0, overall=4.5)
        assert thresholds.for_category("payment") == 6.0
        assert thresholds.for_category("arbitration") == 4.5


class TestComputedProfile:
    def test_dict_round_trip_ignores_timestamp(self, computed) -> None:
        restored = ComputedProfile.from_dict(computed.to_dict())
        assert restored == computed
        restored.computed_at = "2020-01-01T00:00:00+00:00"
        assert restored == computed


class TestAnalysisResult:
    def test_to_dict_merges_extra(self) -> None:
        result = AnalysisResult(
            risk_score=8.0,
            risk_level=RiskLevel.HIGH,
            summary="Risky.",
            categories={"privacy": CategoryAnalysis(8.0, ["Sells data"])},
            extra={"error_type": "timeout"},
        )
        data = result.to_dict()
        assert result.is_high_risk
        assert data["risk_level"] == "high"
        assert data["categories"]["privacy"] == {"score": 8.0, "concerns": ["Sells data"]}
        assert data["error_type"] == "timeout"

    def test_multi_pass_fields(self) -> None:
        result = MultiPassResult(
            risk_score=5.0,
            risk_level=RiskLevel.MEDIUM,
            summary="Synthesized.",
            passes_completed=3,
            aggregated_scores={"privacy": AggregatedScore(5.0, 0.8, 3)},
            document_metadata=DocumentMetadata("privacy_policy", "eu", 0.9),
        )
        data = result.to_dict()
        assert data["multi_pass_analysis"] is True
        assert data["passes_completed"] == 3
        assert data["synthesis_method"] == "weighted_average"
        assert data["aggregated_scores"]["privacy"]["passes_contributing"] == 3
        assert data["document_metadata"]["primary_jurisdiction"] == "eu"
        assert data["comprehensive_insights"]["key_concerns"] == []
