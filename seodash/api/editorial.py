"""
Editorial calendar endpoints

Backed by Airtable when it is configured, by the in-memory store
otherwise (see deps.get_content_backend).
"""
from datetime import date
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from seodash.api.deps import get_content_backend
from seodash.api.errors import http_error
from seodash.models.content import (
    BulkStatusResult,
    BulkStatusUpdate,
    EditorialContent,
    EditorialContentCreate,
    EditorialContentUpdate,
)
from seodash.utils.logger import log

router = APIRouter(prefix="/api/editorial-content", tags=["editorial"])


@router.get("", response_model=List[EditorialContent])
async def list_content(
    site_id: Optional[int] = Query(None, alias="siteId", description="Only content of this site"),
    backend=Depends(get_content_backend),
):
    """Calendar items, optionally for one site"""
    try:
        return await backend.list_content(site_id=site_id)
    except Exception as e:
        log.error(f"Error fetching editorial content: {str(e)}")
        raise http_error(e, "Failed to fetch editorial content")


@router.get("/date/{day}", response_model=List[EditorialContent])
async def list_content_for_date(
    day: date,
    site_id: Optional[int] = Query(None, alias="siteId"),
    backend=Depends(get_content_backend),
):
    """Calendar items published on one day"""
    try:
        return await backend.list_content(site_id=site_id, start=day, end=day)
    except Exception as e:
        log.error(f"Error fetching editorial content for {day}: {str(e)}")
        raise http_error(e, "Failed to fetch editorial content")


@router.post("", response_model=EditorialContent, status_code=201)
async def create_content(data: EditorialContentCreate, backend=Depends(get_content_backend)):
    try:
        return await backend.create_content(data)
    except Exception as e:
        log.error(f"Error creating editorial content: {str(e)}")
        raise http_error(e, "Failed to create editorial content")


# Declared before /{content_id} so "bulk-update" isn't taken for an id
@router.put("/bulk-update", response_model=BulkStatusResult)
async def bulk_update_status(data: BulkStatusUpdate, backend=Depends(get_content_backend)):
    """
    Set one status on many items.

    Items that fail are skipped; `updated` tells how many went through.
    """
    try:
        updated = await backend.bulk_update_status(data.ids, data.statut)
    except Exception as e:
        log.error(f"Error during bulk status update: {str(e)}")
        raise http_error(e, "Failed to update statuses")

    return BulkStatusResult(
        updated=len(updated),
        message=f"{len(updated)} of {len(data.ids)} items set to '{data.statut}'",
    )


@router.put("/{content_id}", response_model=EditorialContent)
async def update_content(
    content_id: str,
    data: EditorialContentUpdate,
    backend=Depends(get_content_backend),
):
    try:
        return await backend.update_content(content_id, data)
    except Exception as e:
        log.error(f"Error updating editorial content {content_id}: {str(e)}")
        raise http_error(e, "Failed to update editorial content")


@router.delete("/{content_id}")
async def delete_content(content_id: str, backend=Depends(get_content_backend)):
    try:
        await backend.delete_content(content_id)
        return {"message": "Content deleted"}
    except Exception as e:
        log.error(f"Error deleting editorial content {content_id}: {str(e)}")
        raise http_error(e, "Failed to delete editorial content")
