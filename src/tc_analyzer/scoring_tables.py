"""Static weight tables behind profile computation.

Every table is a read-only mapping keyed by the questionnaire enums. Because
those enums subclass ``str``, a raw answer string looks up the same entry as
its enum member. Use :func:`lookup` rather than indexing so that a value
outside the table falls back to the documented default instead of raising.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TypeVar

from .models import (
    AgeRange,
    ArbitrationComfort,
    DependentStatus,
    ExplanationStyle,
    FinancialSituation,
    InterruptionTiming,
    Occupation,
    PaymentApproach,
    PreferredStyle,
    PrivacyImportance,
    SpecialCircumstance,
)

T = TypeVar("T")

#: Tolerance used for any preference answer the tables do not know.
NEUTRAL_TOLERANCE = 6.0

#: Termination has no explicit tolerance question; its threshold starts here.
TERMINATION_BASE_THRESHOLD = 7.0

#: Lower bound for the combined special-circumstance multiplier.
SPECIAL_CIRCUMSTANCE_FLOOR = 0.5

#: Upper bound for the alert-frequency adjustment.
FREQUENCY_ADJUSTMENT_CAP = 1.2

#: Alerts-per-day at which the frequency adjustment reaches 1.0.
FREQUENCY_ADJUSTMENT_DIVISOR = 20.0


def lookup(table: Mapping[str, T], key: object, default: T) -> T:
    """Total lookup: return ``table[key]`` or ``default`` for unmapped keys."""
    try:
        return table.get(key, default)  # type: ignore[arg-type]
    except TypeError:  # unhashable garbage
        return default


# ---------------------------------------------------------------------------
# Demographic factors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AgeFactor:
    protection: float
    explanation: str
    cautiousness: float


@dataclass(frozen=True)
class OccupationFactor:
    sophistication: float
    risk_awareness: float
    explanation: str


@dataclass(frozen=True)
class FinancialFactor:
    payment_sensitivity: float
    risk_tolerance: float


NEUTRAL_AGE = AgeFactor(protection=1.0, explanation="balanced", cautiousness=1.0)
NEUTRAL_OCCUPATION = OccupationFactor(sophistication=1.0, risk_awareness=1.0, explanation="balanced")
NEUTRAL_FINANCIAL = FinancialFactor(payment_sensitivity=1.0, risk_tolerance=1.0)

AGE_FACTORS: Mapping[str, AgeFactor] = MappingProxyType(
    {
        AgeRange.UNDER_18: AgeFactor(1.3, "simple", 0.7),
        AgeRange.AGE_18_25: AgeFactor(1.1, "balanced", 0.9),
        AgeRange.AGE_26_40: AgeFactor(1.0, "balanced", 1.0),
        AgeRange.AGE_41_55: AgeFactor(0.9, "detailed", 1.1),
        AgeRange.OVER_55: AgeFactor(1.2, "simple", 0.8),
        AgeRange.PREFER_NOT_TO_SAY: NEUTRAL_AGE,
    }
)

OCCUPATION_FACTORS: Mapping[str, OccupationFactor] = MappingProxyType(
    {
        Occupation.LEGAL_COMPLIANCE: OccupationFactor(1.8, 1.6, "technical"),
        Occupation.HEALTHCARE: OccupationFactor(1.4, 1.5, "detailed"),
        Occupation.FINANCIAL_SERVICES: OccupationFactor(1.5, 1.4, "detailed"),
        Occupation.TECHNOLOGY: OccupationFactor(1.6, 1.3, "technical"),
        Occupation.EDUCATION: OccupationFactor(1.2, 1.1, "balanced"),
        Occupation.CREATIVE_FREELANCER: OccupationFactor(1.0, 1.2, "balanced"),
        Occupation.STUDENT: OccupationFactor(0.8, 0.9, "simple"),
        Occupation.RETIRED: OccupationFactor(0.9, 1.3, "simple"),
        Occupation.BUSINESS_OWNER: OccupationFactor(1.3, 1.4, "detailed"),
        Occupation.GOVERNMENT: OccupationFactor(1.4, 1.5, "detailed"),
        Occupation.NONPROFIT: OccupationFactor(1.1, 1.2, "balanced"),
        Occupation.OTHER: NEUTRAL_OCCUPATION,
        Occupation.PREFER_NOT_TO_SAY: NEUTRAL_OCCUPATION,
    }
)

FINANCIAL_FACTORS: Mapping[str, FinancialFactor] = MappingProxyType(
    {
        FinancialSituation.STUDENT_LIMITED: FinancialFactor(1.5, 0.7),
        FinancialSituation.STABLE_EMPLOYMENT: NEUTRAL_FINANCIAL,
        FinancialSituation.HIGH_INCOME: FinancialFactor(0.7, 1.3),
        FinancialSituation.BUSINESS_OWNER: FinancialFactor(0.9, 1.1),
        FinancialSituation.RETIRED_FIXED: FinancialFactor(1.4, 0.8),
        FinancialSituation.PREFER_NOT_TO_SAY: NEUTRAL_FINANCIAL,
    }
)

# ---------------------------------------------------------------------------
# Explicit preference -> base tolerance (0-10)
# ---------------------------------------------------------------------------

PRIVACY_BASE_TOLERANCE: Mapping[str, float] = MappingProxyType(
    {
        PrivacyImportance.EXTREMELY_IMPORTANT: 2.0,
        PrivacyImportance.VERY_IMPORTANT: 4.0,
        PrivacyImportance.MODERATELY_IMPORTANT: 6.0,
        PrivacyImportance.NOT_VERY_IMPORTANT: 8.0,
    }
)

FINANCIAL_BASE_TOLERANCE: Mapping[str, float] = MappingProxyType(
    {
        PaymentApproach.VERY_CAUTIOUS: 2.0,
        PaymentApproach.CAUTIOUS: 4.0,
        PaymentApproach.MODERATE: 6.0,
        PaymentApproach.RELAXED: 8.0,
    }
)

LEGAL_BASE_TOLERANCE: Mapping[str, float] = MappingProxyType(
    {
        ArbitrationComfort.STRONGLY_PREFER_COURTS: 2.0,
        ArbitrationComfort.PREFER_COURTS: 4.0,
        ArbitrationComfort.NEUTRAL: 6.0,
        ArbitrationComfort.ACCEPTABLE: 8.0,
    }
)

# ---------------------------------------------------------------------------
# Contextual adjustments
# ---------------------------------------------------------------------------

#: More people depending on the user -> lower tolerance.
DEPENDENT_ADJUSTMENTS: Mapping[str, float] = MappingProxyType(
    {
        DependentStatus.JUST_MYSELF: 1.0,
        DependentStatus.SPOUSE_PARTNER: 0.9,
        DependentStatus.CHILDREN_DEPENDENTS: 0.7,
        DependentStatus.EMPLOYEES_TEAM: 0.8,
        DependentStatus.CLIENTS_CUSTOMERS: 0.6,
    }
)

#: Multiplicative penalty per matched circumstance; others contribute 1.0.
SPECIAL_CIRCUMSTANCE_PENALTIES: Mapping[str, float] = MappingProxyType(
    {
        SpecialCircumstance.ELDERLY_OR_VULNERABLE: 0.7,
        SpecialCircumstance.HANDLES_SENSITIVE_DATA: 0.8,
        SpecialCircumstance.REGULATED_INDUSTRY: 0.8,
        SpecialCircumstance.SMALL_BUSINESS_OWNER: 0.9,
    }
)

#: Scales thresholds: above 1.0 means fewer interruptions.
INTERRUPTION_ADJUSTMENTS: Mapping[str, float] = MappingProxyType(
    {
        InterruptionTiming.ONLY_SEVERE: 1.5,
        InterruptionTiming.MODERATE_AND_HIGH: 1.2,
        InterruptionTiming.ANY_CONCERNING: 0.8,
        InterruptionTiming.ONLY_WHEN_COMMITTING: 1.3,
    }
)

# ---------------------------------------------------------------------------
# Explanation style
# ---------------------------------------------------------------------------

#: Circumstances that force plain, protective explanations.
SIMPLE_LANGUAGE_TRIGGERS: frozenset[str] = frozenset(
    {SpecialCircumstance.NON_NATIVE_SPEAKER, SpecialCircumstance.ELDERLY_OR_VULNERABLE}
)

#: Circumstances that force technical explanations.
TECHNICAL_DETAIL_TRIGGERS: frozenset[str] = frozenset(
    {SpecialCircumstance.HANDLES_SENSITIVE_DATA, SpecialCircumstance.REGULATED_INDUSTRY}
)

PREFERRED_STYLE_MAP: Mapping[str, ExplanationStyle] = MappingProxyType(
    {
        PreferredStyle.SIMPLE_LANGUAGE: ExplanationStyle.SIMPLE_PROTECTIVE,
        PreferredStyle.BALANCED_TECHNICAL: ExplanationStyle.BALANCED_EDUCATIONAL,
        PreferredStyle.TECHNICAL_DETAILED: ExplanationStyle.TECHNICAL_EFFICIENT,
        PreferredStyle.BULLET_SUMMARIES: ExplanationStyle.TECHNICAL_EFFICIENT,
        PreferredStyle.COMPREHENSIVE_ANALYSIS: ExplanationStyle.COMPREHENSIVE_CAUTIOUS,
    }
)

DEFAULT_EXPLANATION_STYLE = ExplanationStyle.BALANCED_EDUCATIONAL

STYLE_DESCRIPTIONS: Mapping[str, str] = MappingProxyType(
    {
        ExplanationStyle.SIMPLE_PROTECTIVE: "Simple language with protective guidance",
        ExplanationStyle.BALANCED_EDUCATIONAL: "Balanced approach with educational content",
        ExplanationStyle.TECHNICAL_EFFICIENT: "Technical details for efficient review",
        ExplanationStyle.COMPREHENSIVE_CAUTIOUS: "Comprehensive analysis with cautious approach",
    }
)
