"""
Prompt templates and builders for terms-and-conditions analysis.

Every builder is a pure string assembly. Document text always sits between
``DOCUMENT_START`` and ``DOCUMENT_END`` so replies can be traced back to
their input.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from .models import (
    CATEGORIES,
    AgeRange,
    AnalysisOptions,
    AnalysisResult,
    ComputedProfile,
    ExplanationStyle,
    SpecialCircumstance,
)
from .scoring_tables import lookup

if TYPE_CHECKING:
    from .schemas import Demographics

DOCUMENT_START = "--- TERMS AND CONDITIONS TEXT ---"
DOCUMENT_END = "--- END OF TEXT ---"
SELECTED_START = "--- SELECTED TEXT ---"
SELECTED_END = "--- END OF SELECTED TEXT ---"

MAX_PROMPT_TAGS = 10


# ---------------------------------------------------------------------------
# Template fragments
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StyleTemplate:
    system_prompt: str
    analysis_depth: str
    warning_tone: str
    technical_detail: str


@dataclass(frozen=True)
class OccupationAdaptation:
    focus: str
    terminology: str
    context: str


@dataclass(frozen=True)
class ToleranceBand:
    name: str
    warning_threshold: float
    alert_sensitivity: str
    recommendation_tone: str


STYLE_TEMPLATES: Mapping[str, StyleTemplate] = MappingProxyType(
    {
        ExplanationStyle.SIMPLE_PROTECTIVE: StyleTemplate(
            system_prompt=(
                "You are a protective digital rights advisor helping someone understand terms and "
                "conditions. Use simple, clear language and err on the side of caution. Focus on "
                "protecting the user from potential harm."
            ),
            analysis_depth="comprehensive",
            warning_tone="protective",
            technical_detail="minimal",
        ),
        ExplanationStyle.BALANCED_EDUCATIONAL: StyleTemplate(
            system_prompt=(
                "You are an educational legal technology advisor. Provide balanced analysis with clear "
                "explanations and educational context. Help users understand both risks and standard "
                "practices."
            ),
            analysis_depth="standard",
            warning_tone="informative",
            technical_detail="moderate",
        ),
        ExplanationStyle.TECHNICAL_EFFICIENT: StyleTemplate(
            system_prompt=(
                "You are a legal technology expert providing efficient, technical analysis. Use precise "
                "legal terminology and focus on actionable insights for sophisticated users."
            ),
            analysis_depth="targeted",
            warning_tone="factual",
            technical_detail="high",
        ),
        ExplanationStyle.COMPREHENSIVE_CAUTIOUS: StyleTemplate(
            system_prompt=(
                "You are a comprehensive legal risk analyst. Provide thorough analysis with cautious "
                "interpretation and detailed risk assessment. Leave no stone unturned."
            ),
            analysis_depth="comprehensive",
            warning_tone="cautious",
            technical_detail="high",
        ),
    }
)

DEFAULT_OCCUPATION_ADAPTATION = OccupationAdaptation(
    focus="everyday consumer protection, data rights, fees and cancellation terms",
    terminology="plain language with key legal terms explained",
    context="general consumer",
)

OCCUPATION_ADAPTATIONS: Mapping[str, OccupationAdaptation] = MappingProxyType(
    {
        "legal_compliance": OccupationAdaptation(
            "regulatory compliance, enforceability, legal precedents",
            "legal technical terms acceptable",
            "professional legal analysis",
        ),
        "healthcare": OccupationAdaptation(
            "HIPAA compliance, patient data protection, medical privacy",
            "healthcare-aware language",
            "healthcare professional considerations",
        ),
        "financial_services": OccupationAdaptation(
            "financial regulations, liability exposure, fiduciary responsibility",
            "financial industry terminology",
            "financial professional analysis",
        ),
        "technology": OccupationAdaptation(
            "data processing, API terms, developer rights, platform risks",
            "technical terminology acceptable",
            "technology professional perspective",
        ),
        "education": OccupationAdaptation(
            "educational privacy, student data protection, FERPA compliance",
            "educational context language",
            "educational professional needs",
        ),
        "student": OccupationAdaptation(
            "budget protection, educational resources, simple explanations",
            "accessible, educational language",
            "student learning and protection",
        ),
        "business_owner": OccupationAdaptation(
            "business liability, employee impact, commercial terms",
            "business terminology",
            "business owner responsibility",
        ),
        "retired": OccupationAdaptation(
            "fraud protection, clear explanations, financial safety",
            "clear, non-technical language",
            "retirement security and protection",
        ),
        "other": DEFAULT_OCCUPATION_ADAPTATION,
    }
)

LOW_TOLERANCE = ToleranceBand("low_tolerance", 0.3, "high", "strongly advise caution")
MODERATE_TOLERANCE = ToleranceBand("moderate_tolerance", 0.6, "moderate", "recommend consideration")
HIGH_TOLERANCE = ToleranceBand("high_tolerance", 0.8, "low", "note for awareness")

DEMOGRAPHIC_FRAGMENTS: Mapping[str, str] = MappingProxyType(
    {
        "under_18": (
            "DEMOGRAPHIC CONSIDERATIONS: educational_protective with maximum protection focus. "
            "Consider minor protections and guardian rights."
        ),
        "over_55": (
            "DEMOGRAPHIC CONSIDERATIONS: clear_comprehensive with enhanced protection focus. "
            "Consider elder protection and scam awareness."
        ),
        "non_native_speaker": (
            "DEMOGRAPHIC CONSIDERATIONS: simplified language and consider cross-cultural legal "
            "concepts. Provide enhanced_clarity."
        ),
        "vulnerable_circumstances": (
            "DEMOGRAPHIC CONSIDERATIONS: strong_protective recommendations with maximum protection "
            "focus and enhanced warning sensitivity."
        ),
    }
)

RESPONSE_CONTRACT = """RESPONSE FORMAT (respond ONLY with valid JSON):
{{
  "document_type": "privacy_policy|terms_of_service|user_agreement|eula|cookie_policy",
  "jurisdiction": "US-CA|US-NY|EU-GDPR|other",
  "risk_score": 6.5,
  "risk_level": "low|medium|high",
  "summary": "Plain English summary of the main concerns",
  "key_points": ["Key point 1", "Key point 2", "Key point 3"],
  "categories": {{
{category_lines}
  }},
  "confidence": 0.85,
  "regulatory_flags": ["gdpr_compliant", "ccpa_compliant"],
  "recommendations": ["Recommendation 1", "Recommendation 2"]
}}"""

ANALYSIS_SYSTEM_PROMPT = """You are an expert legal analyst specializing in terms and conditions, privacy policies, and user agreements. You have extensive knowledge of privacy regulations (GDPR, CCPA, PIPEDA), consumer protection laws, and contract law across multiple jurisdictions.

ANALYSIS REQUIREMENTS - PASS {pass_number}/{total_passes}:
Current Focus: {task}

1. Provide a risk score from 1-10 (1=very low risk, 10=extremely high risk)
2. Categorize risk level as "low" (1-3), "medium" (4-7), or "high" (8-10)
3. Generate a clear summary in plain English
4. Identify 3-5 key points users should know
5. Analyze specific categories: {categories}
6. Assess confidence level (0.0-1.0)
7. Provide jurisdiction-specific insights when applicable
8. Include regulatory compliance assessment

{response_contract}

ANALYSIS FOCUS AREAS:
- Data collection practices and consent mechanisms
- Third-party data sharing and processor agreements
- User liability limitations and indemnification clauses
- Service termination conditions and data deletion rights
- Payment terms, auto-renewal, and refund policies
- Dispute resolution mechanisms (arbitration vs litigation)
- Limitation of liability and warranty disclaimers
- Governing law and jurisdiction clauses

SCORING GUIDELINES:
- 1-3 (Low): Standard terms, minimal user risk, clear rights
- 4-7 (Medium): Some concerning clauses, moderate risk, review recommended
- 8-10 (High): Multiple red flags, significant user risk, caution advised

Language: {language}
Detail Level: {detail_level}
Categories: {categories}
"""

SELECTED_TEXT_PROMPT = """You are a legal AI assistant specializing in analyzing specific clauses and text selections from terms and conditions documents.

CONTEXT: {context}

{selected_start}
{text}
{selected_end}

Analyze this selected text focusing on: {focus_areas}.

{response_contract}

Also include "clause_type" (privacy|liability|termination|payment|general), "legal_implications" (list of strings) and "user_impact" (low|moderate|high).

Be precise and focus only on what is explicitly stated or clearly implied in the selected text."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def tolerance_band(overall: float) -> ToleranceBand:
    if overall <= 3:
        return LOW_TOLERANCE
    if overall <= 7:
        return MODERATE_TOLERANCE
    return HIGH_TOLERANCE


def demographic_override(age_range: str | None, special_circumstances: Iterable[str]) -> str | None:
    """Key of the single demographic fragment that applies, if any."""
    circumstances = set(special_circumstances)
    if age_range == AgeRange.UNDER_18:
        return "under_18"
    if age_range == AgeRange.OVER_55:
        return "over_55"
    if SpecialCircumstance.NON_NATIVE_SPEAKER in circumstances:
        return "non_native_speaker"
    if SpecialCircumstance.ELDERLY_OR_VULNERABLE in circumstances:
        return "vulnerable_circumstances"
    return None


def response_contract(categories: Sequence[str] = CATEGORIES) -> str:
    lines = ",\n".join(
        f'    "{name}": {{"score": 5.0, "concerns": ["Specific {name} concern"]}}' for name in categories
    )
    return RESPONSE_CONTRACT.format(category_lines=lines)


def _document_block(text: str) -> str:
    return f"{DOCUMENT_START}\n{text}\n{DOCUMENT_END}"


def _priority_lines(tags: Sequence[str]) -> list[str]:
    tag_set = set(tags)
    lines = []
    if "privacy_extremely_important" in tag_set:
        lines.append("PRIORITY: Detailed privacy analysis with enhanced scrutiny of data sharing clauses")
    if "financial_student_limited" in tag_set or "financial_retired_fixed" in tag_set:
        lines.append("PRIORITY: Enhanced attention to all fees, charges, and payment obligations")
    if "arbitration_strongly_prefer_courts" in tag_set:
        lines.append("PRIORITY: Flag every arbitration clause and class action waiver")
    for tag in tags:
        if tag.startswith("dependents_") and tag != "dependents_just_myself":
            lines.append(f"CONTEXT: Consider impact on {tag[len('dependents_'):]} when assessing risks")
    return lines


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_prompt(
    document_text: str,
    computed: ComputedProfile,
    demographics: Demographics | None = None,
    options: AnalysisOptions | None = None,
    *,
    special_circumstances: Iterable[str] = (),
) -> str:
    """Build the personalized single-pass analysis prompt.

    Fragments are appended in a fixed order: explanation style, occupation
    focus, tolerance band, at most one demographic override, then the tags,
    thresholds and the document itself.

    Args:
        document_text: The terms to analyze.
        computed: The user's computed profile.
        demographics: Questionnaire demographics (occupation, age, country).
        options: Language, detail level and categories.
        special_circumstances: The user's special circumstances.

    Returns:
        The full prompt text.
    """
    options = options or AnalysisOptions()
    style = lookup(STYLE_TEMPLATES, computed.explanation_style, STYLE_TEMPLATES[ExplanationStyle.BALANCED_EDUCATIONAL])
    occupation = demographics.occupation if demographics is not None else "other"
    age_range = demographics.age_range if demographics is not None else None
    country = demographics.jurisdiction.primary_country if demographics is not None else "unspecified"
    adaptation = lookup(OCCUPATION_ADAPTATIONS, occupation, DEFAULT_OCCUPATION_ADAPTATION)
    band = tolerance_band(computed.risk_tolerance.overall)
    override = demographic_override(age_range, special_circumstances)
    tolerance = computed.risk_tolerance
    thresholds = computed.alert_thresholds

    sections = [
        style.system_prompt,
        (
            f"OCCUPATION CONTEXT: You are analyzing for a {adaptation.context} perspective. "
            f"Focus particularly on {adaptation.focus}. Use {adaptation.terminology}."
        ),
        (
            f"RISK APPROACH: Apply {band.alert_sensitivity} sensitivity to risk identification. "
            f"When making recommendations, {band.recommendation_tone}."
        ),
    ]
    if override is not None:
        sections.append(DEMOGRAPHIC_FRAGMENTS[override])
    sections.append(
        f"RESPONSE STYLE: Provide analysis using {style.technical_detail} technical detail with "
        f"{style.warning_tone} tone. Analysis depth should be {style.analysis_depth}."
    )

    requirements = [
        "PERSONALIZED ANALYSIS REQUIREMENTS:",
        f"1. RISK SCORING: Use threshold of {band.warning_threshold} for triggering warnings.",
        f"   - Privacy risks: Alert if score > {thresholds.privacy}",
        f"   - Financial risks: Alert if score > {thresholds.payment}",
        f"   - Legal risks: Alert if score > {thresholds.liability}",
        f"   - Termination risks: Alert if score > {thresholds.termination}",
    ]
    priorities = _priority_lines(computed.profile_tags)
    if priorities:
        requirements.append("2. PRIORITY FOCUS AREAS:")
        requirements.extend(f"   - {line}" for line in priorities)
    requirements.append(
        f"EXPLANATION STYLE: Match the {computed.explanation_style.value} approach with appropriate "
        "detail level and terminology."
    )
    sections.append("\n".join(requirements))

    sections.append(
        "\n".join(
            [
                "USER PROFILE CONTEXT:",
                f"- Profile Tags: {', '.join(computed.profile_tags[:MAX_PROMPT_TAGS])}",
                (
                    f"- Risk Tolerance: Privacy({tolerance.privacy}), Financial({tolerance.financial}), "
                    f"Legal({tolerance.legal}), Overall({tolerance.overall})"
                ),
                (
                    f"- Alert Thresholds: Privacy({thresholds.privacy}), Liability({thresholds.liability}), "
                    f"Termination({thresholds.termination}), Payment({thresholds.payment}), "
                    f"Overall({thresholds.overall})"
                ),
                f"- Jurisdiction: {country}",
                f"- Language: {options.language}",
                f"- Detail Level: {options.detail_level}",
            ]
        )
    )
    sections.append(response_contract(options.categories))
    sections.append(_document_block(document_text))
    sections.append(
        "Provide a risk assessment tailored to this user's profile and apply the warning "
        "thresholds above. Respond with the JSON object only."
    )
    return "\n\n".join(sections)


def build_personalization_context(computed: ComputedProfile, demographics: Demographics | None = None) -> str:
    """User-context block embedded in generic and multi-pass prompts."""
    tolerance = computed.risk_tolerance
    thresholds = computed.alert_thresholds
    lines = [
        "--- USER PERSONALIZATION CONTEXT ---",
        "Risk Tolerance Levels:",
        f"- Privacy: {tolerance.privacy}/10 (higher = more tolerant of privacy risks)",
        f"- Financial: {tolerance.financial}/10 (higher = more tolerant of financial risks)",
        f"- Legal: {tolerance.legal}/10 (higher = more tolerant of legal risks)",
        f"- Overall: {tolerance.overall}/10",
        "",
        "Alert Thresholds (lower = more sensitive to issues):",
        f"- Privacy alerts: {thresholds.privacy}/10",
        f"- Liability alerts: {thresholds.liability}/10",
        f"- Termination alerts: {thresholds.termination}/10",
        f"- Payment alerts: {thresholds.payment}/10",
        "",
        f"Preferred Explanation Style: {computed.explanation_style.value}",
    ]
    if demographics is not None:
        lines.extend(
            [
                "",
                "User Demographics:",
                f"- Age Range: {demographics.age_range}",
                f"- Occupation: {demographics.occupation}",
                f"- Jurisdiction: {demographics.jurisdiction.primary_country}",
            ]
        )
    lines.extend(
        [
            "--- END PERSONALIZATION CONTEXT ---",
            "IMPORTANT: Tailor your analysis to this user's risk tolerance, alert preferences, and "
            "explanation style. Use the alert thresholds to determine what issues should be flagged.",
        ]
    )
    return "\n".join(lines)


def build_analysis_prompt(
    text: str,
    options: AnalysisOptions | None = None,
    pass_number: int = 1,
    total_passes: int = 1,
    task: str = "Assess user impact and risk implications",
    previous_passes: Sequence[AnalysisResult] = (),
    personalization: str | None = None,
) -> str:
    """Generic analysis prompt, optionally one pass of a multi-pass run.

    Args:
        text: Document text.
        options: Analysis options.
        pass_number: 1-based pass index.
        total_passes: Total passes in the run.
        task: What this pass should focus on.
        previous_passes: Normalized results of earlier passes, sent as context.
        personalization: Optional user-context block.
    """
    options = options or AnalysisOptions()
    categories = ", ".join(options.categories)
    parts = [
        ANALYSIS_SYSTEM_PROMPT.format(
            pass_number=pass_number,
            total_passes=total_passes,
            task=task,
            categories=categories,
            response_contract=response_contract(options.categories),
            language=options.language,
            detail_level=options.detail_level,
        )
    ]
    if personalization:
        parts.append(personalization)
    if previous_passes:
        context = {f"pass_{i}": p.to_dict() for i, p in enumerate(previous_passes, start=1)}
        parts.append(f"Previous Analysis Context: {json.dumps(context, sort_keys=True)}")
    parts.append("Now analyze the following terms and conditions:")
    parts.append(_document_block(text))
    parts.append("Provide your analysis in the exact JSON format specified above:")
    return "\n\n".join(parts)


def build_selected_text_prompt(text: str, options: AnalysisOptions | None = None) -> str:
    """Prompt for analyzing a single selected clause."""
    options = options or AnalysisOptions()
    focus = options.focus_areas or ("data_usage", "user_obligations", "service_limitations", "privacy_practices")
    return SELECTED_TEXT_PROMPT.format(
        context=options.context or "Selected text from terms and conditions document",
        selected_start=SELECTED_START,
        text=text,
        selected_end=SELECTED_END,
        focus_areas=", ".join(focus),
        response_contract=response_contract(options.categories),
    )
