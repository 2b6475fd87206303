"""Data models for personalized terms-and-conditions analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum


class RiskLevel(str, Enum):
    """Score-derived risk buckets."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Category(str, Enum):
    """The fixed analysis categories every result carries."""

    PRIVACY = "privacy"
    LIABILITY = "liability"
    TERMINATION = "termination"
    PAYMENT = "payment"


CATEGORIES: tuple[str, ...] = tuple(c.value for c in Category)


class ExplanationStyle(str, Enum):
    """How explanations are pitched to a given user."""

    SIMPLE_PROTECTIVE = "simple_protective"
    BALANCED_EDUCATIONAL = "balanced_educational"
    TECHNICAL_EFFICIENT = "technical_efficient"
    COMPREHENSIVE_CAUTIOUS = "comprehensive_cautious"


# ---------------------------------------------------------------------------
# Questionnaire answer sets
# ---------------------------------------------------------------------------


class AgeRange(str, Enum):
    UNDER_18 = "under_18"
    AGE_18_25 = "18_25"
    AGE_26_40 = "26_40"
    AGE_41_55 = "41_55"
    OVER_55 = "over_55"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class Occupation(str, Enum):
    LEGAL_COMPLIANCE = "legal_compliance"
    HEALTHCARE = "healthcare"
    FINANCIAL_SERVICES = "financial_services"
    TECHNOLOGY = "technology"
    EDUCATION = "education"
    CREATIVE_FREELANCER = "creative_freelancer"
    STUDENT = "student"
    RETIRED = "retired"
    BUSINESS_OWNER = "business_owner"
    GOVERNMENT = "government"
    NONPROFIT = "nonprofit"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class ReadingFrequency(str, Enum):
    NEVER = "never"
    SKIM_OCCASIONALLY = "skim_occasionally"
    READ_IMPORTANT = "read_important"
    READ_THOROUGHLY = "read_thoroughly"


class ComfortLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class PreferredStyle(str, Enum):
    """The explanation style a user asks for in the questionnaire."""

    SIMPLE_LANGUAGE = "simple_language"
    BALANCED_TECHNICAL = "balanced_technical"
    TECHNICAL_DETAILED = "technical_detailed"
    BULLET_SUMMARIES = "bullet_summaries"
    COMPREHENSIVE_ANALYSIS = "comprehensive_analysis"


class PrimaryActivity(str, Enum):
    SOCIAL_MEDIA = "social_media"
    WORK_PRODUCTIVITY = "work_productivity"
    SHOPPING_FINANCIAL = "shopping_financial"
    RESEARCH_LEARNING = "research_learning"
    CREATIVE_CONTENT = "creative_content"
    GAMING = "gaming"
    DATING_RELATIONSHIPS = "dating_relationships"
    HEALTHCARE_MEDICAL = "healthcare_medical"
    TRAVEL_BOOKING = "travel_booking"
    EDUCATION_COURSES = "education_courses"


class SignupFrequency(str, Enum):
    MULTIPLE_WEEKLY = "multiple_weekly"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    RARELY = "rarely"


class DeviceUsage(str, Enum):
    MOBILE_PRIMARY = "mobile_primary"
    DESKTOP_PRIMARY = "desktop_primary"
    TABLET_PRIMARY = "tablet_primary"
    MIXED_USAGE = "mixed_usage"


class PrivacyImportance(str, Enum):
    EXTREMELY_IMPORTANT = "extremely_important"
    VERY_IMPORTANT = "very_important"
    MODERATELY_IMPORTANT = "moderately_important"
    NOT_VERY_IMPORTANT = "not_very_important"


class SensitiveDataType(str, Enum):
    FINANCIAL_INFORMATION = "financial_information"
    PERSONAL_COMMUNICATIONS = "personal_communications"
    LOCATION_DATA = "location_data"
    BROWSING_HABITS = "browsing_habits"
    PHOTOS_MEDIA = "photos_media"
    PROFESSIONAL_INFORMATION = "professional_information"
    HEALTH_DATA = "health_data"
    SOCIAL_CONNECTIONS = "social_connections"
    BIOMETRIC_DATA = "biometric_data"
    PURCHASE_HISTORY = "purchase_history"


class ProcessingComfort(str, Enum):
    COMFORTABLE = "comfortable"
    CAUTIOUS = "cautious"
    UNCOMFORTABLE = "uncomfortable"


class PaymentApproach(str, Enum):
    VERY_CAUTIOUS = "very_cautious"
    CAUTIOUS = "cautious"
    MODERATE = "moderate"
    RELAXED = "relaxed"


class FeeImpact(str, Enum):
    SIGNIFICANT = "significant"
    MODERATE = "moderate"
    MINIMAL = "minimal"


class FinancialSituation(str, Enum):
    STUDENT_LIMITED = "student_limited"
    STABLE_EMPLOYMENT = "stable_employment"
    HIGH_INCOME = "high_income"
    BUSINESS_OWNER = "business_owner"
    RETIRED_FIXED = "retired_fixed"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class SubscriptionStance(str, Enum):
    AVOID = "avoid"
    CAUTIOUS = "cautious"
    ACCEPTABLE = "acceptable"


class PriceChangeStance(str, Enum):
    STRICT_NOTICE = "strict_notice"
    REASONABLE_NOTICE = "reasonable_notice"
    FLEXIBLE = "flexible"


class ArbitrationComfort(str, Enum):
    STRONGLY_PREFER_COURTS = "strongly_prefer_courts"
    PREFER_COURTS = "prefer_courts"
    NEUTRAL = "neutral"
    ACCEPTABLE = "acceptable"


class LiabilityTolerance(str, Enum):
    WANT_FULL_PROTECTION = "want_full_protection"
    REASONABLE_LIMITATIONS = "reasonable_limitations"
    BUSINESS_STANDARD = "business_standard"
    MINIMAL_CONCERN = "minimal_concern"


class KnowledgeLevel(str, Enum):
    EXPERT = "expert"
    INTERMEDIATE = "intermediate"
    BASIC = "basic"
    NONE = "none"


class PreviousIssues(str, Enum):
    NO_ISSUES = "no_issues"
    MINOR_PROBLEMS = "minor_problems"
    MODERATE_PROBLEMS = "moderate_problems"
    SERIOUS_PROBLEMS = "serious_problems"


class DependentStatus(str, Enum):
    JUST_MYSELF = "just_myself"
    SPOUSE_PARTNER = "spouse_partner"
    CHILDREN_DEPENDENTS = "children_dependents"
    EMPLOYEES_TEAM = "employees_team"
    CLIENTS_CUSTOMERS = "clients_customers"


class SpecialCircumstance(str, Enum):
    SMALL_BUSINESS_OWNER = "small_business_owner"
    CONTENT_CREATOR = "content_creator"
    HANDLES_SENSITIVE_DATA = "handles_sensitive_data"
    FREQUENT_INTERNATIONAL = "frequent_international"
    REGULATED_INDUSTRY = "regulated_industry"
    ACCESSIBILITY_NEEDS = "accessibility_needs"
    NON_NATIVE_SPEAKER = "non_native_speaker"
    ELDERLY_OR_VULNERABLE = "elderly_or_vulnerable"


class DecisionFactor(str, Enum):
    PRIVACY_PROTECTION = "privacy_protection"
    COST_VALUE = "cost_value"
    FEATURES_FUNCTIONALITY = "features_functionality"
    REPUTATION_REVIEWS = "reputation_reviews"
    EASE_OF_USE = "ease_of_use"
    CUSTOMER_SUPPORT = "customer_support"
    TERMS_FAIRNESS = "terms_fairness"
    SECURITY_SAFETY = "security_safety"
    COMPLIANCE_LEGAL = "compliance_legal"


class InterruptionTiming(str, Enum):
    ONLY_SEVERE = "only_severe"
    MODERATE_AND_HIGH = "moderate_and_high"
    ANY_CONCERNING = "any_concerning"
    ONLY_WHEN_COMMITTING = "only_when_committing"


class EducationalContent(str, Enum):
    YES_TEACH_RIGHTS = "yes_teach_rights"
    OCCASIONALLY_IMPORTANT = "occasionally_important"
    JUST_ANALYSIS = "just_analysis"


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------


def round_half_up(value: float, places: int = 1) -> float:
    """Round ``value`` to ``places`` decimals, halves away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def risk_level_for_score(score: float) -> RiskLevel:
    """Bucket a 1-10 risk score: <=3.5 low, <=7.0 medium, otherwise high."""
    if score <= 3.5:
        return RiskLevel.LOW
    if score <= 7.0:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


# ---------------------------------------------------------------------------
# Computed profile
# ---------------------------------------------------------------------------


@dataclass
class RiskTolerance:
    """Per-category tolerance on a 0-10 scale (higher = less protective)."""

    privacy: float
    financial: float
    legal: float
    overall: float

    def to_dict(self) -> dict:
        return {
            "privacy": self.privacy,
            "financial": self.financial,
            "legal": self.legal,
            "overall": self.overall,
        }


@dataclass
class AlertThresholds:
    """Per-category alert thresholds on a 1-10 scale (lower = more alerts)."""

    privacy: float
    liability: float
    termination: float
    payment: float
    overall: float

    def for_category(self, category: str) -> float:
        return getattr(self, category, self.overall)

    def to_dict(self) -> dict:
        return {
            "privacy": self.privacy,
            "liability": self.liability,
            "termination": self.termination,
            "payment": self.payment,
            "overall": self.overall,
        }


@dataclass
class ComputedProfile:
    """Derived personalization parameters for one questionnaire.

    ``computed_at`` is bookkeeping only and does not take part in equality,
    so two computations over the same answers compare equal.
    """

    risk_tolerance: RiskTolerance
    alert_thresholds: AlertThresholds
    explanation_style: ExplanationStyle
    profile_tags: list[str] = field(default_factory=list)
    computation_version: str = "1.0"
    computed_at: str | None = field(default=None, compare=False)

    def to_dict(self) -> dict:
        return {
            "risk_tolerance": self.risk_tolerance.to_dict(),
            "alert_thresholds": self.alert_thresholds.to_dict(),
            "explanation_style": self.explanation_style.value,
            "profile_tags": list(self.profile_tags),
            "computation_version": self.computation_version,
            "computed_at": self.computed_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ComputedProfile":
        return cls(
            risk_tolerance=RiskTolerance(**data["risk_tolerance"]),
            alert_thresholds=AlertThresholds(**data["alert_thresholds"]),
            explanation_style=ExplanationStyle(data["explanation_style"]),
            profile_tags=list(data.get("profile_tags", [])),
            computation_version=data.get("computation_version", "1.0"),
            computed_at=data.get("computed_at"),
        )


# ---------------------------------------------------------------------------
# Analysis results
# ---------------------------------------------------------------------------


@dataclass
class AnalysisOptions:
    """Caller-selected knobs for one analysis request."""

    language: str = "en"
    detail_level: str = "standard"
    categories: tuple[str, ...] = CATEGORIES
    multi_pass: bool = False
    context: str | None = None
    focus_areas: tuple[str, ...] = ()
    cache: bool = True

    def to_dict(self) -> dict:
        return {
            "language": self.language,
            "detail_level": self.detail_level,
            "categories": list(self.categories),
            "multi_pass": self.multi_pass,
            "context": self.context,
            "focus_areas": list(self.focus_areas),
            "cache": self.cache,
        }


@dataclass
class CategoryAnalysis:
    """Score and top concerns for one category."""

    score: float
    concerns: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"score": self.score, "concerns": list(self.concerns)}


@dataclass
class AnalysisResult:
    """Canonical single-pass analysis of one document."""

    risk_score: float
    risk_level: RiskLevel
    summary: str
    key_points: list[str] = field(default_factory=list)
    categories: dict[str, CategoryAnalysis] = field(default_factory=dict)
    confidence: float = 0.7
    document_type: str | None = None
    jurisdiction: str | None = None
    regulatory_flags: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    fallback: bool = False
    mock: bool = False
    extra: dict = field(default_factory=dict)

    @property
    def is_high_risk(self) -> bool:
        return self.risk_level == RiskLevel.HIGH

    def to_dict(self) -> dict:
        data = {
            "risk_score": self.risk_score,
            "risk_level": self.risk_level.value,
            "summary": self.summary,
            "key_points": list(self.key_points),
            "categories": {name: c.to_dict() for name, c in self.categories.items()},
            "confidence": self.confidence,
            "document_type": self.document_type,
            "jurisdiction": self.jurisdiction,
            "regulatory_flags": list(self.regulatory_flags),
            "recommendations": list(self.recommendations),
            "fallback": self.fallback,
            "mock": self.mock,
        }
        data.update(self.extra)
        return data


@dataclass
class AggregatedScore:
    """Recency-weighted category score across passes."""

    score: float
    confidence: float
    passes_contributing: int

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "confidence": self.confidence,
            "passes_contributing": self.passes_contributing,
        }


@dataclass
class ComprehensiveInsights:
    """Ordered, de-duplicated union of what every pass surfaced."""

    key_concerns: list[str] = field(default_factory=list)
    regulatory_flags: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    jurisdictions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "key_concerns": list(self.key_concerns),
            "regulatory_flags": list(self.regulatory_flags),
            "recommendations": list(self.recommendations),
            "jurisdictions": list(self.jurisdictions),
        }


@dataclass
class DocumentMetadata:
    primary_document_type: str = "unknown"
    primary_jurisdiction: str = "unknown"
    confidence: float = 0.0

    def to_dict(self) -> dict:
        return {
            "primary_document_type": self.primary_document_type,
            "primary_jurisdiction": self.primary_jurisdiction,
            "confidence": self.confidence,
        }


@dataclass
class MultiPassResult(AnalysisResult):
    """An analysis synthesized from several sequential LLM passes."""

    passes_completed: int = 0
    aggregated_scores: dict[str, AggregatedScore] = field(default_factory=dict)
    comprehensive_insights: ComprehensiveInsights = field(default_factory=ComprehensiveInsights)
    document_metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    synthesis_method: str = "weighted_average"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            {
                "multi_pass_analysis": True,
                "passes_completed": self.passes_completed,
                "synthesis_method": self.synthesis_method,
                "aggregated_scores": {
                    name: s.to_dict() for name, s in self.aggregated_scores.items()
                },
                "comprehensive_insights": self.comprehensive_insights.to_dict(),
                "document_metadata": self.document_metadata.to_dict(),
            }
        )
        return data
