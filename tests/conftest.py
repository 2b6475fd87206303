"""Shared test fixtures for tc-analyzer tests."""

from __future__ import annotations

import copy
from pathlib import Path

import pytest

from tc_analyzer.profile import compute
from tc_analyzer.schemas import UserPersonalizationProfile, validate_profile

USER_ID = "3f6c1a52-8d0e-4b8a-9a55-0d7c1f2b9e41"

DECISION_FACTORS = (
    "privacy_protection",
    "cost_value",
    "features_functionality",
    "reputation_reviews",
    "ease_of_use",
    "customer_support",
    "terms_fairness",
    "security_safety",
    "compliance_legal",
)


@pytest.fixture
def questionnaire() -> dict:
    """A complete camelCase questionnaire as the client submits it.

    Technology worker, 26-40, very privacy-conscious and cautious with
    payments, neutral on arbitration, no dependents or special circumstances.
    """
    return {
        "userId": USER_ID,
        "version": "1.0",
        "completedAt": "2026-01-15T10:30:00Z",
        "demographics": {
            "ageRange": "26_40",
            "jurisdiction": {
                "primaryCountry": "us",
                "primaryState": "CA",
                "frequentTravel": False,
                "isExpatriate": False,
                "multipleJurisdictions": [],
            },
            "occupation": "technology",
        },
        "digitalBehavior": {
            "techSophistication": {
                "readingFrequency": "skim_occasionally",
                "comfortLevel": "intermediate",
                "preferredExplanationStyle": "balanced_technical",
            },
            "usagePatterns": {
                "primaryActivities": ["social_media", "shopping_financial"],
                "signupFrequency": "monthly",
                "deviceUsage": "mixed_usage",
            },
        },
        "riskPreferences": {
            "privacy": {
                "overallImportance": "very_important",
                "sensitiveDataTypes": [
                    {"dataType": "financial_information", "priorityLevel": 9},
                    {"dataType": "location_data", "priorityLevel": 6},
                ],
                "dataProcessingComfort": {
                    "domesticProcessing": "comfortable",
                    "internationalTransfers": "cautious",
                    "thirdPartySharing": "uncomfortable",
                    "aiProcessing": "cautious",
                    "longTermStorage": "cautious",
                },
            },
            "financial": {
                "paymentApproach": "cautious",
                "feeImpact": "moderate",
                "financialSituation": "stable_employment",
                "subscriptionTolerance": {
                    "autoRenewal": "cautious",
                    "freeTrialToSubscription": "cautious",
                    "priceChanges": "reasonable_notice",
                },
            },
            "legal": {
                "arbitrationComfort": "neutral",
                "liabilityTolerance": "reasonable_limitations",
                "legalKnowledge": {
                    "contractLaw": "basic",
                    "privacyLaw": "basic",
                    "consumerRights": "intermediate",
                },
                "previousIssues": "no_issues",
            },
        },
        "contextualFactors": {
            "dependentStatus": "just_myself",
            "specialCircumstances": [],
            "decisionMakingPriorities": [
                {"factor": factor, "priority": rank} for rank, factor in enumerate(DECISION_FACTORS, start=1)
            ],
            "alertPreferences": {
                "interruptionTiming": "moderate_and_high",
                "educationalContent": "occasionally_important",
                "alertFrequencyLimit": 10,
                "learningMode": True,
            },
        },
    }


@pytest.fixture
def make_questionnaire(questionnaire: dict):
    """Factory returning a deep copy of the questionnaire with nested overrides.

    Keys are dotted camelCase paths, e.g.
    ``make_questionnaire(**{"riskPreferences.privacy.overallImportance": "not_very_important"})``.
    """

    def factory(**overrides) -> dict:
        data = copy.deepcopy(questionnaire)
        for path, value in overrides.items():
            *parents, leaf = path.split(".")
            node = data
            for key in parents:
                node = node[key]
            node[leaf] = value
        return data

    return factory


@pytest.fixture
def profile(questionnaire: dict) -> UserPersonalizationProfile:
    return validate_profile(questionnaire)


@pytest.fixture
def computed(profile: UserPersonalizationProfile):
    return compute(profile)


@pytest.fixture
def terms_text() -> str:
    """Consumer terms touching every category."""
    return (
        "Terms of Service\n\n"
        "1. PRIVACY. We collect personal data including your location and browsing history, "
        "and we may share this data with third party advertising partners.\n\n"
        "2. LIABILITY. The service is provided as is. We disclaim all warranties and are not "
        "liable for any damages arising from your use of the service.\n\n"
        "3. TERMINATION. We may terminate or suspend your account at any time without notice.\n\n"
        "4. PAYMENT. Subscriptions renew automatically and fees are non-refundable.\n\n"
        "5. DISPUTES. You agree to binding arbitration and waive your right to a class action.\n"
    )


@pytest.fixture
def plain_text() -> str:
    """Long enough to analyze, with no risk keywords at all."""
    return "Welcome to our recipe website. Browse our recipes and enjoy cooking at home with family today."


@pytest.fixture
def terms_file(tmp_path: Path, terms_text: str) -> Path:
    file = tmp_path / "terms.txt"
    file.write_text(terms_text, encoding="utf-8")
    return file
