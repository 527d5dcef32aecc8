"""
Editorial calendar generation through the n8n calendar workflow

The workflow writes new items into the content table on its own; the
dashboard triggers it and then polls check-generation-status.
"""
from datetime import datetime, timedelta, timezone
from fastapi import APIRouter, Depends, Query
from typing import Optional

from seodash.api.deps import get_content_backend, get_webhook_service
from seodash.api.errors import http_error
from seodash.models.generation import CalendarGenerationRequest
from seodash.services.webhook_service import WebhookService
from seodash.utils.logger import log

router = APIRouter(prefix="/api", tags=["calendar"])

DEFAULT_STATUS_WINDOW = timedelta(minutes=10)


@router.post("/generate-editorial-calendar")
async def generate_editorial_calendar(
    request: CalendarGenerationRequest,
    webhooks: WebhookService = Depends(get_webhook_service),
):
    started_at = datetime.now(timezone.utc)
    try:
        response = await webhooks.trigger_calendar_generation(
            website_id=request.website_id,
            website_name=request.website_name,
            website_url=request.website_url,
            seo_analysis=request.seo_analysis,
        )
    except Exception as e:
        log.error(f"Error triggering calendar generation for site {request.website_id}: {str(e)}")
        raise http_error(e, "Failed to start editorial calendar generation")

    return {
        "success": True,
        "message": "Editorial calendar generation started",
        "startedAt": started_at.isoformat(),
        "response": response,
    }


@router.get("/check-generation-status/{site_id}")
async def check_generation_status(
    site_id: int,
    since: Optional[datetime] = Query(None, description="Count content created after this instant"),
    backend=Depends(get_content_backend),
):
    """Whether the calendar workflow has written new content yet"""
    if since is None:
        since = datetime.now(timezone.utc) - DEFAULT_STATUS_WINDOW
    elif since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)

    try:
        count = await backend.count_content_created_since(site_id, since)
    except Exception as e:
        log.error(f"Error checking generation status for site {site_id}: {str(e)}")
        raise http_error(e, "Failed to check generation status")

    return {"hasNewContent": count > 0, "newContentCount": count}
