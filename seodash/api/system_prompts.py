"""
System prompt management (AI instructions stored in Airtable)
"""
from fastapi import APIRouter, Depends
from typing import List, Optional

from seodash.api.deps import get_record_store
from seodash.api.errors import http_error
from seodash.models.prompt import SystemPrompt, SystemPromptCreate, SystemPromptUpdate
from seodash.services.record_store_service import RecordStoreService
from seodash.utils.logger import log

router = APIRouter(prefix="/api/system-prompts", tags=["system-prompts"])


@router.get("", response_model=List[SystemPrompt])
async def list_prompts(record_store: RecordStoreService = Depends(get_record_store)):
    try:
        return await record_store.list_prompts()
    except Exception as e:
        log.error(f"Error fetching system prompts: {str(e)}")
        raise http_error(e, "Failed to fetch system prompts")


@router.get("/active", response_model=Optional[SystemPrompt])
async def get_active_prompt(record_store: RecordStoreService = Depends(get_record_store)):
    """The prompt used for generation, or null when the default applies"""
    try:
        return await record_store.get_active_prompt()
    except Exception as e:
        log.error(f"Error fetching active system prompt: {str(e)}")
        raise http_error(e, "Failed to fetch active system prompt")


@router.post("", response_model=SystemPrompt, status_code=201)
async def create_prompt(data: SystemPromptCreate, record_store: RecordStoreService = Depends(get_record_store)):
    try:
        return await record_store.create_prompt(data)
    except Exception as e:
        log.error(f"Error creating system prompt: {str(e)}")
        raise http_error(e, "Failed to create system prompt")


@router.put("/{prompt_id}", response_model=SystemPrompt)
async def update_prompt(
    prompt_id: str,
    data: SystemPromptUpdate,
    record_store: RecordStoreService = Depends(get_record_store),
):
    try:
        return await record_store.update_prompt(prompt_id, data)
    except Exception as e:
        log.error(f"Error updating system prompt {prompt_id}: {str(e)}")
        raise http_error(e, "Failed to update system prompt")


@router.delete("/{prompt_id}")
async def delete_prompt(prompt_id: str, record_store: RecordStoreService = Depends(get_record_store)):
    try:
        await record_store.delete_prompt(prompt_id)
        return {"message": "System prompt deleted"}
    except Exception as e:
        log.error(f"Error deleting system prompt {prompt_id}: {str(e)}")
        raise http_error(e, "Failed to delete system prompt")
