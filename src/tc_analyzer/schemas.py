"""Pydantic models for the personalization questionnaire.

Incoming payloads use the camelCase keys of the questionnaire
(``userId``, ``demographics.ageRange`` ...). The models expose snake_case
attributes and dump back to camelCase with ``by_alias=True``.

Enum-valued fields are stored as their plain string values so that the
scoring tables and tag builder treat validated input and stored JSON
identically.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import ProfileValidationError
from .models import (
    AgeRange,
    ArbitrationComfort,
    ComfortLevel,
    DecisionFactor,
    DependentStatus,
    DeviceUsage,
    EducationalContent,
    FeeImpact,
    FinancialSituation,
    InterruptionTiming,
    KnowledgeLevel,
    LiabilityTolerance,
    Occupation,
    PaymentApproach,
    PreferredStyle,
    PreviousIssues,
    PriceChangeStance,
    PrimaryActivity,
    PrivacyImportance,
    ProcessingComfort,
    ReadingFrequency,
    SensitiveDataType,
    SignupFrequency,
    SpecialCircumstance,
    SubscriptionStance,
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

SECTIONS = ("demographics", "digitalBehavior", "riskPreferences", "contextualFactors")


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )


def _validate_user_id(value: str) -> str:
    try:
        uuid.UUID(value)
        return value
    except ValueError:
        pass
    if _EMAIL_RE.match(value):
        return value
    raise ValueError("must be a UUID or an e-mail address")


def _country_code(value: str) -> str:
    value = value.strip().upper()
    if len(value) != 2 or not value.isalpha():
        raise ValueError("must be a 2-letter country code")
    return value


# ---------------------------------------------------------------------------
# Demographics
# ---------------------------------------------------------------------------


class Jurisdiction(_Model):
    primary_country: str
    primary_state: str | None = None
    frequent_travel: bool
    is_expatriate: bool
    multiple_jurisdictions: list[str] = Field(default_factory=list)

    @field_validator("primary_country")
    @classmethod
    def _check_country(cls, value: str) -> str:
        return _country_code(value)

    @field_validator("multiple_jurisdictions")
    @classmethod
    def _check_countries(cls, values: list[str]) -> list[str]:
        return [_country_code(v) for v in values]


class Demographics(_Model):
    age_range: AgeRange
    jurisdiction: Jurisdiction
    occupation: Occupation


# ---------------------------------------------------------------------------
# Digital behavior
# ---------------------------------------------------------------------------


class TechSophistication(_Model):
    reading_frequency: ReadingFrequency
    comfort_level: ComfortLevel
    preferred_explanation_style: PreferredStyle


class UsagePatterns(_Model):
    primary_activities: list[PrimaryActivity] = Field(min_length=1, max_length=5)
    signup_frequency: SignupFrequency
    device_usage: DeviceUsage


class DigitalBehavior(_Model):
    tech_sophistication: TechSophistication
    usage_patterns: UsagePatterns


# ---------------------------------------------------------------------------
# Risk preferences
# ---------------------------------------------------------------------------


class SensitiveData(_Model):
    data_type: SensitiveDataType
    priority_level: int = Field(ge=1, le=10)


class DataProcessingComfort(_Model):
    domestic_processing: ProcessingComfort
    international_transfers: ProcessingComfort
    third_party_sharing: ProcessingComfort
    ai_processing: ProcessingComfort
    long_term_storage: ProcessingComfort


class PrivacyPreferences(_Model):
    overall_importance: PrivacyImportance
    sensitive_data_types: list[SensitiveData] = Field(min_length=1, max_length=20)
    data_processing_comfort: DataProcessingComfort


class SubscriptionTolerance(_Model):
    auto_renewal: SubscriptionStance
    free_trial_to_subscription: SubscriptionStance
    price_changes: PriceChangeStance


class FinancialPreferences(_Model):
    payment_approach: PaymentApproach
    fee_impact: FeeImpact
    financial_situation: FinancialSituation
    subscription_tolerance: SubscriptionTolerance


class LegalKnowledge(_Model):
    contract_law: KnowledgeLevel
    privacy_law: KnowledgeLevel
    consumer_rights: KnowledgeLevel


class LegalPreferences(_Model):
    arbitration_comfort: ArbitrationComfort
    liability_tolerance: LiabilityTolerance
    legal_knowledge: LegalKnowledge
    previous_issues: PreviousIssues


class RiskPreferences(_Model):
    privacy: PrivacyPreferences
    financial: FinancialPreferences
    legal: LegalPreferences


# ---------------------------------------------------------------------------
# Contextual factors
# ---------------------------------------------------------------------------


class DecisionPriority(_Model):
    factor: DecisionFactor
    priority: int = Field(ge=1, le=9)


class AlertPreferences(_Model):
    interruption_timing: InterruptionTiming
    educational_content: EducationalContent
    alert_frequency_limit: int = Field(ge=1, le=50)
    learning_mode: bool


class ContextualFactors(_Model):
    dependent_status: DependentStatus
    special_circumstances: list[SpecialCircumstance] = Field(default_factory=list)
    decision_making_priorities: list[DecisionPriority] = Field(min_length=9, max_length=9)
    alert_preferences: AlertPreferences


# ---------------------------------------------------------------------------
# Whole profile
# ---------------------------------------------------------------------------


class UserPersonalizationProfile(_Model):
    """A complete, validated questionnaire result."""

    user_id: str
    version: Literal["1.0"] = "1.0"
    completed_at: datetime
    demographics: Demographics
    digital_behavior: DigitalBehavior
    risk_preferences: RiskPreferences
    contextual_factors: ContextualFactors

    @field_validator("user_id")
    @classmethod
    def _check_user_id(cls, value: str) -> str:
        return _validate_user_id(value)

    def to_document(self) -> dict[str, Any]:
        """Dump to the camelCase JSON shape used for storage."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class QuizUpdate(_Model):
    """A partial update replacing fields of one top-level section."""

    user_id: str
    section: Literal["demographics", "digitalBehavior", "riskPreferences", "contextualFactors"]
    data: dict[str, Any]
    recompute_profile: bool = True

    @field_validator("user_id")
    @classmethod
    def _check_user_id(cls, value: str) -> str:
        return _validate_user_id(value)

    def section_data(self) -> dict[str, Any]:
        """``data`` with snake_case keys renamed to the stored camelCase aliases.

        The stored section is camelCase, so a snake_case key merged as-is
        would sit next to the old camelCase value and lose to it on
        validation.
        """
        model = _SECTION_MODELS[self.section]
        aliases = {name: info.alias or name for name, info in model.model_fields.items()}
        return {aliases.get(key, key): value for key, value in self.data.items()}


_SECTION_MODELS: dict[str, type[_Model]] = {
    "demographics": Demographics,
    "digitalBehavior": DigitalBehavior,
    "riskPreferences": RiskPreferences,
    "contextualFactors": ContextualFactors,
}


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def validate_profile(raw: Any) -> UserPersonalizationProfile:
    """Validate a raw questionnaire payload.

    Raises:
        ProfileValidationError: With one ``FieldError`` per failing field.
    """
    try:
        return UserPersonalizationProfile.model_validate(raw)
    except ValidationError as exc:
        raise ProfileValidationError.from_pydantic(exc) from exc


def validate_update(raw: Any) -> QuizUpdate:
    """Validate a partial-update request envelope."""
    try:
        return QuizUpdate.model_validate(raw)
    except ValidationError as exc:
        raise ProfileValidationError.from_pydantic(exc, prefix="Update validation failed") from exc
