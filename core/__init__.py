"""Core module - modelli dati ed eccezioni."""
from core.models import (
    Region,
    InsightType,
    ResearchPhase,
    SearchQuery,
    QuerySet,
    SearchResult,
    SearchResponse,
    CacheEntry,
    Insight,
    ErrorRecord,
    AgentMetrics,
    ApplicabilityAnalysis,
    CategorizedResults,
    ResearchSummary,
    ResearchOutcome,
)
from core.exceptions import (
    ResearchError,
    ValidationError,
    ConfigurationError,
    SearchAPIError,
    TransientError,
    AuthError,
    SchemaError,
    LLMError,
)

__all__ = [
    "Region",
    "InsightType",
    "ResearchPhase",
    "SearchQuery",
    "QuerySet",
    "SearchResult",
    "SearchResponse",
    "CacheEntry",
    "Insight",
    "ErrorRecord",
    "AgentMetrics",
    "ApplicabilityAnalysis",
    "CategorizedResults",
    "ResearchSummary",
    "ResearchOutcome",
    "ResearchError",
    "ValidationError",
    "ConfigurationError",
    "SearchAPIError",
    "TransientError",
    "AuthError",
    "SchemaError",
    "LLMError",
]
