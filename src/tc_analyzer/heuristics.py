"""Keyword heuristics used when no model output is available.

``heuristic_analysis`` is the degraded result returned when the model call
times out or fails. ``mock_analysis`` and ``mock_clause_analysis`` are the
deterministic replies of the fixture client used in development and tests.
"""

from __future__ import annotations

import re

from .models import (
    CATEGORIES,
    AnalysisResult,
    CategoryAnalysis,
    clamp,
    risk_level_for_score,
    round_half_up,
)

RISK_KEYWORDS: tuple[str, ...] = (
    "liability",
    "disclaim",
    "terminate",
    "suspend",
    "collect",
    "share",
    "third party",
    "binding arbitration",
    "waive",
    "indemnify",
)

CLAUSE_RISK_KEYWORDS: tuple[str, ...] = RISK_KEYWORDS + ("breach",)

FALLBACK_CONFIDENCE = 0.3
MANUAL_REVIEW_CONCERN = "Analysis incomplete - manual review required"

_PRIVACY_RE = re.compile(r"privacy|data|personal|collect|share|third.party", re.IGNORECASE)
_LIABILITY_RE = re.compile(r"liable|responsible|disclaim|warranty|limitation", re.IGNORECASE)
_PAYMENT_RE = re.compile(r"payment|billing|refund|subscription|fee", re.IGNORECASE)
_TERMINATION_RE = re.compile(r"terminate|suspend|cancel|end|close", re.IGNORECASE)


def find_keywords(text: str, keywords: tuple[str, ...] = RISK_KEYWORDS) -> list[str]:
    lowered = text.lower()
    return [keyword for keyword in keywords if keyword in lowered]


def heuristic_analysis(text: str, reason: str = "") -> AnalysisResult:
    """Keyword-count estimate flagged as a fallback.

    The score starts at 5.0 and rises by 0.5 for each risk keyword found.
    """
    found = find_keywords(text)
    score = round_half_up(clamp(5.0 + 0.5 * len(found), 1.0, 10.0))
    extra = {"error_type": reason} if reason else {}
    return AnalysisResult(
        risk_score=score,
        risk_level=risk_level_for_score(score),
        summary=(
            "Analysis completed with limited accuracy due to technical issues. "
            "Manual review strongly recommended."
        ),
        key_points=[
            "Automated analysis encountered technical difficulties",
            "Manual review of terms and conditions is strongly recommended",
            f"Document contains {len(found)} potential risk keywords",
        ],
        categories={name: CategoryAnalysis(5.0, [MANUAL_REVIEW_CONCERN]) for name in CATEGORIES},
        confidence=FALLBACK_CONFIDENCE,
        fallback=True,
        extra=extra,
    )


# ---------------------------------------------------------------------------
# Clause helpers
# ---------------------------------------------------------------------------


def determine_clause_type(text: str) -> str:
    lowered = text.lower()
    if any(word in lowered for word in ("privacy", "data", "collect")):
        return "privacy"
    if any(word in lowered for word in ("liability", "disclaim", "indemnify")):
        return "liability"
    if any(word in lowered for word in ("terminate", "suspend", "cancel")):
        return "termination"
    if any(word in lowered for word in ("payment", "fee", "charge")):
        return "payment"
    return "general"


def legal_implications(text: str, risk_score: float) -> list[str]:
    lowered = text.lower()
    implications = []
    if "arbitration" in lowered:
        implications.append("May require arbitration instead of court proceedings")
    if "waive" in lowered:
        implications.append("May waive certain legal rights")
    if "liability" in lowered:
        implications.append("May limit legal liability and damages")
    if risk_score >= 7:
        implications.append("High-risk language may have significant legal consequences")
    return implications or ["Standard legal language with typical implications"]


def clause_recommendations(text: str, risk_score: float) -> list[str]:
    lowered = text.lower()
    recommendations = []
    if risk_score >= 7:
        recommendations.append("This clause requires careful review - consider seeking legal advice")
    if "arbitration" in lowered:
        recommendations.append("Understand that disputes may be resolved through arbitration")
    if "terminate" in lowered:
        recommendations.append("Review termination conditions and your rights")
    return recommendations or ["This clause appears reasonable but always read carefully"]


def heuristic_clause_analysis(text: str, reason: str = "") -> AnalysisResult:
    """Fallback for single-clause analysis."""
    result = heuristic_analysis(text, reason)
    result.summary = "Selected text analysis encountered technical difficulties. Manual review strongly recommended."
    result.extra.update(
        {
            "clause_type": determine_clause_type(text),
            "legal_implications": ["Technical error occurred - seek manual legal review"],
            "user_impact": "unknown",
        }
    )
    result.recommendations = ["Technical error occurred - seek manual legal review"]
    return result


# ---------------------------------------------------------------------------
# Fixture replies
# ---------------------------------------------------------------------------


def _mock_summary(level: str, has_privacy: bool, has_liability: bool) -> str:
    if level == "low":
        return (
            "This service appears to have reasonable terms with minimal concerning clauses. "
            "Standard protections are in place for users."
        )
    if level == "high":
        return (
            "This service has multiple concerning clauses including extensive data collection, broad "
            "liability waivers, and restrictive user rights. Careful consideration is recommended."
        )
    if has_privacy and has_liability:
        return (
            "This service has moderate risk with data collection practices and liability limitations "
            "that should be reviewed carefully."
        )
    if has_privacy:
        return "This service collects personal data with some sharing practices that merit attention."
    return "This service has some limitations on provider liability but generally reasonable terms."


def mock_analysis(text: str) -> dict:
    """Deterministic analysis payload shaped like a model reply."""
    has_privacy = bool(_PRIVACY_RE.search(text))
    has_liability = bool(_LIABILITY_RE.search(text))
    has_payment = bool(_PAYMENT_RE.search(text))
    has_termination = bool(_TERMINATION_RE.search(text))

    score = 4.0
    score += 1.5 if has_privacy else 0.0
    score += 1.0 if has_liability else 0.0
    score += 0.5 if has_payment else 0.0
    score += 0.5 if has_termination else 0.0
    score += 0.5 if len(text.split()) > 5000 else 0.0
    score = clamp(score, 1.0, 10.0)
    level = risk_level_for_score(score).value

    key_points = []
    if has_privacy:
        key_points.append("Personal data collection and usage policies identified")
        key_points.append("Third-party data sharing provisions may apply")
    if has_liability:
        key_points.append("Service provider liability limitations present")
    if has_payment:
        key_points.append("Payment and billing terms require attention")
    if has_termination:
        key_points.append("Account termination procedures outlined")
    while len(key_points) < 3:
        key_points.append("Standard terms and conditions apply")

    return {
        "document_type": "terms_of_service",
        "jurisdiction": "US-CA",
        "risk_score": score,
        "risk_level": level,
        "summary": _mock_summary(level, has_privacy, has_liability),
        "key_points": key_points[:5],
        "categories": {
            "privacy": {
                "score": 7.2 if has_privacy else 3.5,
                "concerns": (
                    ["Data collection practices identified", "Third-party sharing possible"]
                    if has_privacy
                    else ["Limited privacy terms detected"]
                ),
            },
            "liability": {
                "score": 6.8 if has_liability else 4.0,
                "concerns": (
                    ["Service provider liability limitations", "User responsibility clauses present"]
                    if has_liability
                    else ["Standard liability terms"]
                ),
            },
            "termination": {
                "score": 5.5 if has_termination else 4.0,
                "concerns": (
                    ["Account termination procedures defined"]
                    if has_termination
                    else ["Standard termination clauses"]
                ),
            },
            "payment": {
                "score": 5.0 if has_payment else 2.0,
                "concerns": (
                    ["Payment terms and billing policies present"]
                    if has_payment
                    else ["No payment terms identified"]
                ),
            },
        },
        "confidence": 0.85,
        "regulatory_flags": ["gdpr_compliant", "ccpa_compliant"] if has_privacy else [],
        "recommendations": [
            "Review data collection practices carefully",
            "Consider liability implications",
            "Check payment terms before subscribing",
        ],
    }


def mock_clause_analysis(text: str) -> dict:
    """Deterministic single-clause payload shaped like a model reply."""
    lowered = text.lower()
    found = find_keywords(text, CLAUSE_RISK_KEYWORDS)
    score = round_half_up(clamp(5.0 + 0.8 * len(found), 1.0, 10.0))
    level = risk_level_for_score(score).value
    attention = {
        "high": "High attention required.",
        "medium": "Moderate attention recommended.",
        "low": "Appears relatively safe.",
    }[level]

    def category(triggers: tuple[str, ...], concern_word: str, concerns: list[str], name: str) -> dict:
        bumped = any(word in lowered for word in triggers)
        return {
            "score": round_half_up(min(10.0, score + 1)) if bumped else score,
            "concerns": concerns if concern_word in lowered else [f"No specific {name} concerns identified"],
        }

    return {
        "risk_score": score,
        "risk_level": level,
        "summary": (
            f"Selected clause analysis: This text contains {len(found)} potential risk indicators. {attention}"
        ),
        "key_points": [
            f"Contains {len(found)} potential risk keywords",
            "High-risk language detected" if level == "high" else "Standard legal language",
            "Manual review recommended for complete understanding",
        ],
        "categories": {
            "privacy": category(
                ("privacy", "data"), "privacy", ["Data collection mentioned", "Privacy implications present"], "privacy"
            ),
            "liability": category(
                ("liability", "disclaim"),
                "liability",
                ["Liability limitations present", "Legal responsibility clauses"],
                "liability",
            ),
            "termination": category(
                ("terminate", "suspend"),
                "terminate",
                ["Termination clauses present", "Account suspension possible"],
                "termination",
            ),
            "payment": category(
                ("payment", "fee"), "payment", ["Payment terms present", "Financial obligations mentioned"], "payment"
            ),
        },
        "confidence": 0.7,
        "clause_type": determine_clause_type(text),
        "legal_implications": legal_implications(text, score),
        "user_impact": level,
        "recommendations": clause_recommendations(text, score),
    }
