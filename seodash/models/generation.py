"""
Request and response bodies for AI generation endpoints
"""
from typing import Any, List, Literal, Optional

from pydantic import Field, field_validator

from seodash.models.base import ApiModel
from seodash.models.content import ContentType


class ArticleGenerationRequest(ApiModel):
    content_type: ContentType
    keywords: List[str] = Field(min_length=1)
    topic: Optional[str] = None
    target_audience: Optional[str] = None
    tone: Optional[str] = None
    existing_content: Optional[str] = None

    @field_validator("keywords", mode="before")
    @classmethod
    def normalize_keywords(cls, value: object) -> List[str]:
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, list):
            return []
        return [str(item).strip() for item in value if str(item or "").strip()]

    @property
    def is_regeneration(self) -> bool:
        return bool(self.existing_content and self.existing_content.strip())


class GeneratedArticle(ApiModel):
    title: str
    content: str
    suggestions: List[str] = Field(default_factory=list)


class ImageGenerationRequest(ApiModel):
    content_text: str = Field(min_length=1)
    content_type: ContentType


class ImageGenerationResponse(ApiModel):
    image_url: str


class KeywordSuggestionRequest(ApiModel):
    topic: str = Field(min_length=1)
    content_type: ContentType


class CalendarGenerationRequest(ApiModel):
    website_id: int
    website_name: str
    website_url: str
    seo_analysis: dict = Field(default_factory=dict)


class SeoAiAnalysisRequest(ApiModel):
    """Body of POST /api/seo-ai-analysis"""

    site_id: int
    seo_data: Any = None


class SeoAiRecommendation(ApiModel):
    priority: Literal["high", "medium", "low"] = "medium"
    category: str = "Général"
    title: str
    description: str = ""
    impact: str = ""
    action_steps: List[str] = Field(default_factory=list)
    estimated_improvement: str = ""


class SeoAiAnalysis(ApiModel):
    """Model-written review of a site's SEO analysis."""

    overall_score: int = Field(0, ge=0, le=100)
    summary: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[SeoAiRecommendation] = Field(default_factory=list)
