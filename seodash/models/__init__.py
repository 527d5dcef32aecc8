"""Pydantic domain models"""

from seodash.models.analysis import (
    KeywordRanking,
    Recommendation,
    SeoAnalysis,
    SeoAnalysisCreate,
    SeoAnalysisUpdate,
    TechnicalSeo,
    TrafficPoint,
)
from seodash.models.content import (
    BULK_STATUSES,
    BulkStatusUpdate,
    ContentStatus,
    ContentType,
    EditorialContent,
    EditorialContentCreate,
    EditorialContentUpdate,
    ImageSource,
)
from seodash.models.prompt import SystemPrompt, SystemPromptCreate, SystemPromptUpdate
from seodash.models.site import AirtableSite, SocialCredentials, Website, WebsiteCreate

__all__ = [
    "AirtableSite",
    "BULK_STATUSES",
    "BulkStatusUpdate",
    "ContentStatus",
    "ContentType",
    "EditorialContent",
    "EditorialContentCreate",
    "EditorialContentUpdate",
    "ImageSource",
    "KeywordRanking",
    "Recommendation",
    "SeoAnalysis",
    "SeoAnalysisCreate",
    "SeoAnalysisUpdate",
    "SocialCredentials",
    "SystemPrompt",
    "SystemPromptCreate",
    "SystemPromptUpdate",
    "TechnicalSeo",
    "TrafficPoint",
    "Website",
    "WebsiteCreate",
]
