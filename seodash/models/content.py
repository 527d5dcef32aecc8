"""
Editorial calendar content models
"""
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from seodash.models.base import ApiModel


class ContentType(str, Enum):
    NEWSLETTER = "newsletter"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    XTWITTER = "xtwitter"
    YOUTUBE = "youtube"
    FACEBOOK = "facebook"
    BLOG = "blog"
    GOOGLE_MY_BUSINESS = "google-my-business"
    PINTEREST = "pinterest"


class ContentStatus(str, Enum):
    """Values as stored in the Airtable statut column."""

    PENDING = "en attente"
    NEEDS_REVIEW = "à réviser"
    APPROVED = "validé"
    PUBLISHED = "publié"


# Publishing goes through the per-item flow, never through bulk actions.
BULK_STATUSES = frozenset({
    ContentStatus.PENDING.value,
    ContentStatus.NEEDS_REVIEW.value,
    ContentStatus.APPROVED.value,
})


class ImageSource(str, Enum):
    UPLOAD = "upload"
    AI = "ai"


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value.strip() if isinstance(value, str) else value


class EditorialContent(ApiModel):
    """
    One calendar item.

    has_image, image_url and image_source are always computed together by
    the image resolver; image_source is never stored on its own.
    """

    id: str
    id_site: int
    type_content: str
    content_text: str
    has_image: bool = False
    image_url: Optional[str] = None
    image_source: Optional[ImageSource] = None
    statut: str
    date_de_publication: date
    created_at: datetime


class EditorialContentCreate(ApiModel):
    """Body of POST /api/editorial-content"""

    id_site: int = Field(gt=0)
    type_content: ContentType
    content_text: str = Field(min_length=1)
    has_image: bool = False
    image_url: Optional[str] = None
    statut: ContentStatus = ContentStatus.PENDING
    date_de_publication: date

    @field_validator("image_url", mode="before")
    @classmethod
    def normalize_image_url(cls, value: object) -> object:
        return _blank_to_none(value)

    @model_validator(mode="after")
    def check_image(self):
        if self.has_image and not self.image_url:
            raise ValueError("imageUrl is required when hasImage is true")
        if not self.has_image:
            self.image_url = None
        return self


class EditorialContentUpdate(ApiModel):
    """Body of PUT /api/editorial-content/{id}; only sent fields change."""

    id_site: Optional[int] = Field(None, gt=0)
    type_content: Optional[ContentType] = None
    content_text: Optional[str] = Field(None, min_length=1)
    has_image: Optional[bool] = None
    image_url: Optional[str] = None
    statut: Optional[ContentStatus] = None
    date_de_publication: Optional[date] = None

    @field_validator("image_url", mode="before")
    @classmethod
    def normalize_image_url(cls, value: object) -> object:
        return _blank_to_none(value)


class BulkStatusUpdate(ApiModel):
    """Body of PUT /api/editorial-content/bulk-update"""

    ids: List[str] = Field(min_length=1)
    statut: str


class BulkStatusResult(ApiModel):
    updated: int
    message: str
