"""
Website models (in-memory store) and Airtable site records
"""
import json
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from seodash.models.base import ApiModel


class WebsiteCreate(ApiModel):
    """Body of POST /api/websites"""

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)

    @field_validator("name", "url", mode="before")
    @classmethod
    def strip_text(cls, value: object) -> str:
        return str(value or "").strip()


class Website(ApiModel):
    id: int
    name: str
    url: str
    created_at: datetime


class AirtableSite(ApiModel):
    """A monitored site as stored in the Airtable sites table."""

    id: int
    record_id: str
    name: str
    url: str
    programme_rs: Optional[str] = None
    seo_analysis: Optional[Any] = None


class SocialProgramUpdate(ApiModel):
    """Body of PUT /api/sites-airtable/{id}/social-program"""

    programme_rs: str

    @field_validator("programme_rs", mode="before")
    @classmethod
    def encode_document(cls, value: object) -> object:
        # The dashboard sends a JSON string; scripts sometimes send the object.
        if isinstance(value, dict):
            return json.dumps(value, ensure_ascii=False)
        return value


class SocialCredentials(ApiModel):
    """Per-platform publishing secrets for one site."""

    access_tokens: Dict[str, str] = Field(default_factory=dict)
