"""Terms & Conditions Analyzer -- personalized risk analysis of online terms."""

__version__ = "0.1.0"

from .analyzer import TermsAnalyzer
from .cache import MemoryAnalysisCache, PostgresAnalysisCache, fingerprint
from .config import Settings
from .documents import ParsedDocument, load_document
from .errors import (
    InsufficientPassesError,
    MultiPassIncompleteError,
    ProfileNotFoundError,
    ProfileValidationError,
    UpstreamError,
)
from .llm import FixtureClient, GeminiClient, LlmClient, build_llm_client
from .models import (
    AlertThresholds,
    AnalysisOptions,
    AnalysisResult,
    CategoryAnalysis,
    ComputedProfile,
    ExplanationStyle,
    MultiPassResult,
    RiskLevel,
    RiskTolerance,
)
from .normalizer import normalize, normalize_response
from .personalization import PersonalizationService
from .profile import compute as compute_profile
from .prompts import build_analysis_prompt, build_prompt
from .schemas import UserPersonalizationProfile, validate_profile
from .store import InMemoryProfileStore, PostgresProfileStore, StoredProfile
from .synthesizer import MultiPassRunner, synthesize

__all__ = [
    # Core
    "TermsAnalyzer",
    "AnalysisOptions",
    "AnalysisResult",
    "CategoryAnalysis",
    "MultiPassResult",
    "RiskLevel",
    "Settings",
    # Personalization
    "PersonalizationService",
    "UserPersonalizationProfile",
    "ComputedProfile",
    "RiskTolerance",
    "AlertThresholds",
    "ExplanationStyle",
    "compute_profile",
    "validate_profile",
    "build_prompt",
    "build_analysis_prompt",
    # Storage and caching
    "StoredProfile",
    "InMemoryProfileStore",
    "PostgresProfileStore",
    "MemoryAnalysisCache",
    "PostgresAnalysisCache",
    "fingerprint",
    # Model clients
    "LlmClient",
    "GeminiClient",
    "FixtureClient",
    "build_llm_client",
    # Normalization and synthesis
    "normalize",
    "normalize_response",
    "synthesize",
    "MultiPassRunner",
    # Documents
    "ParsedDocument",
    "load_document",
    # Errors
    "ProfileValidationError",
    "ProfileNotFoundError",
    "UpstreamError",
    "InsufficientPassesError",
    "MultiPassIncompleteError",
]
