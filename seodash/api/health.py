"""
Health check and status endpoints
"""
from fastapi import APIRouter, Depends
from datetime import datetime, timezone
from seodash.api.deps import get_ai_service, get_webhook_service
from seodash.config import get_settings
from seodash import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__
    }


@router.get("/status")
async def get_status(
    ai_service=Depends(get_ai_service),
    webhook_service=Depends(get_webhook_service),
):
    """Which backends this instance is wired to"""
    settings = get_settings()
    generation = ai_service.is_available()
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "backends": {
            "content_store": "airtable" if settings.airtable_configured else "memory",
            "text_generation": generation["text"],
            "image_generation": generation["images"],
            "seo_webhook": bool(webhook_service.webhook_url),
            "calendar_webhook": bool(webhook_service.calendar_connector.webhook_url),
        },
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
