"""
SEO analysis models
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from seodash.models.base import ApiModel


class TechnicalSeo(ApiModel):
    mobile_friendly: bool
    https_secure: bool
    xml_sitemap: bool
    robots_txt: bool


class Recommendation(ApiModel):
    id: str
    title: str
    description: str
    priority: Literal["high", "medium", "low"]
    category: str


class KeywordRanking(ApiModel):
    keyword: str
    position: int
    volume: int
    trend: Literal["up", "down", "stable"]


class TrafficPoint(ApiModel):
    date: str
    visitors: int


class SeoAnalysisCreate(ApiModel):
    """Flat analysis shape derived from the workflow payload."""

    overall_score: int = Field(ge=0, le=100)
    organic_traffic: int = 0
    keywords_ranking: int = 0
    backlinks: int = 0
    page_speed: int = Field(0, ge=0, le=100)
    technical_seo: TechnicalSeo
    recommendations: List[Recommendation] = Field(default_factory=list)
    keywords: List[KeywordRanking] = Field(default_factory=list)
    traffic_data: List[TrafficPoint] = Field(default_factory=list)
    raw_webhook_data: Optional[str] = None


class SeoAnalysisUpdate(ApiModel):
    """Partial update for PUT /api/websites/{id}/seo-analysis"""

    overall_score: Optional[int] = Field(None, ge=0, le=100)
    organic_traffic: Optional[int] = None
    keywords_ranking: Optional[int] = None
    backlinks: Optional[int] = None
    page_speed: Optional[int] = Field(None, ge=0, le=100)
    technical_seo: Optional[TechnicalSeo] = None
    recommendations: Optional[List[Recommendation]] = None
    keywords: Optional[List[KeywordRanking]] = None
    traffic_data: Optional[List[TrafficPoint]] = None
    raw_webhook_data: Optional[str] = None


class SeoAnalysis(SeoAnalysisCreate):
    id: int
    website_id: int
    analyzed_at: datetime
