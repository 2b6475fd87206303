"""Turns a questionnaire into personalization parameters.

``compute()`` is a pure function of the questionnaire answers. It never
raises for values outside the scoring tables: those fall back to the
neutral weights in :mod:`tc_analyzer.scoring_tables`. Rejecting unknown
answers is the job of :mod:`tc_analyzer.schemas`, which runs first on every
service path.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from .models import (
    AlertThresholds,
    ComputedProfile,
    ExplanationStyle,
    KnowledgeLevel,
    PrivacyImportance,
    ReadingFrequency,
    RiskTolerance,
    clamp,
    round_half_up,
)
from .scoring_tables import (
    AGE_FACTORS,
    DEFAULT_EXPLANATION_STYLE,
    DEPENDENT_ADJUSTMENTS,
    FINANCIAL_BASE_TOLERANCE,
    FINANCIAL_FACTORS,
    FREQUENCY_ADJUSTMENT_CAP,
    FREQUENCY_ADJUSTMENT_DIVISOR,
    INTERRUPTION_ADJUSTMENTS,
    LEGAL_BASE_TOLERANCE,
    NEUTRAL_AGE,
    NEUTRAL_FINANCIAL,
    NEUTRAL_OCCUPATION,
    NEUTRAL_TOLERANCE,
    OCCUPATION_FACTORS,
    PREFERRED_STYLE_MAP,
    PRIVACY_BASE_TOLERANCE,
    SIMPLE_LANGUAGE_TRIGGERS,
    SPECIAL_CIRCUMSTANCE_FLOOR,
    SPECIAL_CIRCUMSTANCE_PENALTIES,
    STYLE_DESCRIPTIONS,
    TECHNICAL_DETAIL_TRIGGERS,
    TERMINATION_BASE_THRESHOLD,
    lookup,
)
from .schemas import UserPersonalizationProfile

COMPUTATION_VERSION = "1.0"


def compute(
    profile: UserPersonalizationProfile,
    *,
    now: datetime | None = None,
) -> ComputedProfile:
    """Derive risk tolerance, alert thresholds, style and tags.

    Args:
        profile: A questionnaire that has passed schema validation.
        now: Timestamp recorded as ``computed_at`` (defaults to UTC now).

    Returns:
        The computed profile. Two calls over the same answers compare equal.
    """
    tolerance = compute_risk_tolerance(profile)
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    return ComputedProfile(
        risk_tolerance=tolerance,
        alert_thresholds=compute_alert_thresholds(profile, tolerance),
        explanation_style=compute_explanation_style(profile),
        profile_tags=profile_tags(profile),
        computation_version=COMPUTATION_VERSION,
        computed_at=timestamp,
    )


# ---------------------------------------------------------------------------
# Risk tolerance
# ---------------------------------------------------------------------------


def special_circumstance_adjustment(circumstances: Iterable[str]) -> float:
    """Product of the per-circumstance penalties, floored at 0.5."""
    adjustment = 1.0
    for circumstance in circumstances:
        adjustment *= lookup(SPECIAL_CIRCUMSTANCE_PENALTIES, circumstance, 1.0)
    return max(SPECIAL_CIRCUMSTANCE_FLOOR, adjustment)


def compute_risk_tolerance(profile: UserPersonalizationProfile) -> RiskTolerance:
    demographics = profile.demographics
    prefs = profile.risk_preferences
    context = profile.contextual_factors

    base_privacy = lookup(PRIVACY_BASE_TOLERANCE, prefs.privacy.overall_importance, NEUTRAL_TOLERANCE)
    base_financial = lookup(FINANCIAL_BASE_TOLERANCE, prefs.financial.payment_approach, NEUTRAL_TOLERANCE)
    base_legal = lookup(LEGAL_BASE_TOLERANCE, prefs.legal.arbitration_comfort, NEUTRAL_TOLERANCE)

    age = lookup(AGE_FACTORS, demographics.age_range, NEUTRAL_AGE).cautiousness
    occupation = lookup(OCCUPATION_FACTORS, demographics.occupation, NEUTRAL_OCCUPATION).risk_awareness
    financial = lookup(FINANCIAL_FACTORS, prefs.financial.financial_situation, NEUTRAL_FINANCIAL).risk_tolerance
    dependents = lookup(DEPENDENT_ADJUSTMENTS, context.dependent_status, 1.0)
    special = special_circumstance_adjustment(context.special_circumstances)

    privacy_score = round_half_up(clamp(base_privacy * age * dependents * special, 0.0, 10.0))
    financial_score = round_half_up(clamp(base_financial * financial * age * dependents, 0.0, 10.0))
    legal_score = round_half_up(clamp(base_legal * occupation * age * dependents, 0.0, 10.0))
    overall = round_half_up((privacy_score + financial_score + legal_score) / 3)

    return RiskTolerance(
        privacy=privacy_score,
        financial=financial_score,
        legal=legal_score,
        overall=overall,
    )


# ---------------------------------------------------------------------------
# Alert thresholds
# ---------------------------------------------------------------------------


def compute_alert_thresholds(
    profile: UserPersonalizationProfile,
    tolerance: RiskTolerance,
) -> AlertThresholds:
    alerts = profile.contextual_factors.alert_preferences
    timing = lookup(INTERRUPTION_ADJUSTMENTS, alerts.interruption_timing, 1.0)
    frequency = min(FREQUENCY_ADJUSTMENT_CAP, alerts.alert_frequency_limit / FREQUENCY_ADJUSTMENT_DIVISOR)

    def threshold(base: float) -> float:
        return round_half_up(clamp(base * timing * frequency, 1.0, 10.0))

    return AlertThresholds(
        privacy=threshold(10 - tolerance.privacy),
        liability=threshold(10 - tolerance.legal),
        termination=threshold(TERMINATION_BASE_THRESHOLD),
        payment=threshold(10 - tolerance.financial),
        overall=threshold(10 - tolerance.overall),
    )


# ---------------------------------------------------------------------------
# Explanation style
# ---------------------------------------------------------------------------


def compute_explanation_style(profile: UserPersonalizationProfile) -> ExplanationStyle:
    """Pick the explanation style.

    Protective and compliance overrides from the special circumstances always
    beat the style the user asked for.
    """
    circumstances = set(profile.contextual_factors.special_circumstances)
    if circumstances & SIMPLE_LANGUAGE_TRIGGERS:
        return ExplanationStyle.SIMPLE_PROTECTIVE
    if circumstances & TECHNICAL_DETAIL_TRIGGERS:
        return ExplanationStyle.TECHNICAL_EFFICIENT
    preferred = profile.digital_behavior.tech_sophistication.preferred_explanation_style
    return lookup(PREFERRED_STYLE_MAP, preferred, DEFAULT_EXPLANATION_STYLE)


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


def profile_tags(profile: UserPersonalizationProfile) -> list[str]:
    """Flat, ordered prompt tokens. Order is stable; duplicates are kept."""
    demographics = profile.demographics
    behavior = profile.digital_behavior
    prefs = profile.risk_preferences
    context = profile.contextual_factors

    tags = [
        f"age_{demographics.age_range}",
        f"occupation_{demographics.occupation}",
        f"jurisdiction_{demographics.jurisdiction.primary_country}",
        f"tech_{behavior.tech_sophistication.comfort_level}",
        f"reading_{behavior.tech_sophistication.reading_frequency}",
        f"privacy_{prefs.privacy.overall_importance}",
        f"payment_{prefs.financial.payment_approach}",
        f"arbitration_{prefs.legal.arbitration_comfort}",
    ]
    tags.extend(f"usage_{activity}" for activity in behavior.usage_patterns.primary_activities)
    tags.append(f"dependents_{context.dependent_status}")
    tags.extend(f"special_{circumstance}" for circumstance in context.special_circumstances)
    tags.append(f"financial_{prefs.financial.financial_situation}")
    tags.append(f"alerts_{context.alert_preferences.interruption_timing}")
    return tags


# ---------------------------------------------------------------------------
# Dashboard insights
# ---------------------------------------------------------------------------


def _tolerance_level(score: float) -> str:
    if score <= 3:
        return "Low"
    if score <= 7:
        return "Moderate"
    return "High"


def _overall_level(score: float) -> str:
    if score <= 3:
        return "Conservative"
    if score <= 7:
        return "Balanced"
    return "Risk-Tolerant"


def _alert_sensitivity(threshold: float) -> str:
    if threshold <= 3:
        return "High Sensitivity"
    if threshold <= 6:
        return "Moderate Sensitivity"
    return "Low Sensitivity"


def insights(profile: UserPersonalizationProfile, computed: ComputedProfile) -> dict[str, Any]:
    """Human-readable summary of a computed profile for a dashboard view."""
    tolerance = computed.risk_tolerance
    prefs = profile.risk_preferences
    reading = profile.digital_behavior.tech_sophistication.reading_frequency
    importance = prefs.privacy.overall_importance

    recommendations: list[dict[str, str]] = []
    if tolerance.privacy < 3 and importance != PrivacyImportance.EXTREMELY_IMPORTANT:
        recommendations.append(
            {
                "type": "threshold_adjustment",
                "message": "Consider adjusting privacy settings for more relevant alerts",
            }
        )
    if profile.contextual_factors.alert_preferences.alert_frequency_limit > 20:
        recommendations.append(
            {
                "type": "alert_frequency",
                "message": "High alert frequency limit may cause important warnings to be missed",
            }
        )

    strengths: list[str] = []
    if reading != ReadingFrequency.NEVER:
        strengths.append("Actively reviews terms and conditions")
    if importance in (PrivacyImportance.EXTREMELY_IMPORTANT, PrivacyImportance.VERY_IMPORTANT):
        strengths.append("Strong privacy awareness")

    suggestions: list[dict[str, str]] = []
    if reading == ReadingFrequency.NEVER:
        suggestions.append(
            {
                "area": "engagement",
                "suggestion": "Consider reviewing key sections of important terms and conditions",
            }
        )
    if prefs.legal.legal_knowledge.contract_law == KnowledgeLevel.NONE:
        suggestions.append(
            {
                "area": "education",
                "suggestion": "Learn about basic contract law and consumer rights",
            }
        )

    thresholds = computed.alert_thresholds.to_dict()
    style = computed.explanation_style
    return {
        "risk_profile_summary": {
            "privacy": {"level": _tolerance_level(tolerance.privacy), "score": tolerance.privacy},
            "financial": {"level": _tolerance_level(tolerance.financial), "score": tolerance.financial},
            "legal": {"level": _tolerance_level(tolerance.legal), "score": tolerance.legal},
            "overall": {"level": _overall_level(tolerance.overall), "score": tolerance.overall},
        },
        "alert_configuration": {name: _alert_sensitivity(value) for name, value in thresholds.items()},
        "explanation_style": {
            "style": style.value,
            "description": lookup(STYLE_DESCRIPTIONS, style, "Balanced approach"),
        },
        "recommendations": recommendations,
        "profile_strengths": strengths,
        "improvement_suggestions": suggestions,
    }
