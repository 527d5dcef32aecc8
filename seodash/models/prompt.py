"""
System prompt models (AI instructions stored as Airtable records)
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from seodash.models.base import ApiModel


class SystemPrompt(ApiModel):
    id: str
    prompt_system: str
    structure_sortie: Optional[str] = None
    nom: Optional[str] = None
    description: Optional[str] = None
    actif: bool = False
    created_at: Optional[datetime] = None


class SystemPromptCreate(ApiModel):
    prompt_system: str = Field(min_length=1)
    structure_sortie: Optional[str] = None
    nom: Optional[str] = None
    description: Optional[str] = None
    actif: bool = False


class SystemPromptUpdate(ApiModel):
    prompt_system: Optional[str] = Field(None, min_length=1)
    structure_sortie: Optional[str] = None
    nom: Optional[str] = None
    description: Optional[str] = None
    actif: Optional[bool] = None
