"""
Website and SEO analysis endpoints (in-memory store)

Creating a website runs a first analysis through the SEO workflow on a
best-effort basis; refreshing replaces the stored analysis.
"""
from fastapi import APIRouter, Depends, HTTPException
from typing import List

from seodash.api.deps import get_storage, get_webhook_service
from seodash.api.errors import http_error
from seodash.exceptions import NotFoundError
from seodash.models.analysis import SeoAnalysis, SeoAnalysisCreate, SeoAnalysisUpdate
from seodash.models.site import Website, WebsiteCreate
from seodash.services.storage import MemoryStorage
from seodash.services.webhook_service import WebhookService
from seodash.utils.logger import log

router = APIRouter(prefix="/api/websites", tags=["websites"])


@router.get("", response_model=List[Website])
async def list_websites(storage: MemoryStorage = Depends(get_storage)):
    """All monitored websites"""
    return storage.list_websites()


@router.get("/{website_id}", response_model=Website)
async def get_website(website_id: int, storage: MemoryStorage = Depends(get_storage)):
    try:
        return storage.get_website(website_id)
    except Exception as e:
        log.error(f"Error fetching website {website_id}: {str(e)}")
        raise http_error(e, "Failed to fetch website")


@router.post("", response_model=Website, status_code=201)
async def create_website(
    data: WebsiteCreate,
    storage: MemoryStorage = Depends(get_storage),
    webhooks: WebhookService = Depends(get_webhook_service),
):
    """
    Add a website and try to fetch its first SEO analysis.

    The website is created even when the analysis can't be fetched.
    """
    website = storage.create_website(data)
    log.info(f"Created website {website.id} ({website.url})")

    try:
        analysis = await webhooks.request_analysis(website.url)
        storage.save_analysis(website.id, analysis)
        log.info(f"Initial SEO analysis stored for website {website.id}")
    except Exception as e:
        log.warning(f"Initial SEO analysis failed for website {website.id}: {str(e)}")

    return website


@router.delete("/{website_id}")
async def delete_website(website_id: int, storage: MemoryStorage = Depends(get_storage)):
    try:
        storage.delete_website(website_id)
        return {"message": "Website deleted"}
    except Exception as e:
        log.error(f"Error deleting website {website_id}: {str(e)}")
        raise http_error(e, "Failed to delete website")


@router.get("/{website_id}/seo-analysis", response_model=SeoAnalysis)
async def get_seo_analysis(website_id: int, storage: MemoryStorage = Depends(get_storage)):
    try:
        storage.get_website(website_id)
        analysis = storage.get_analysis(website_id)
        if analysis is None:
            raise NotFoundError(f"No SEO analysis for website {website_id}")
        return analysis
    except Exception as e:
        log.error(f"Error fetching SEO analysis for website {website_id}: {str(e)}")
        raise http_error(e, "Failed to fetch SEO analysis")


@router.post("/{website_id}/seo-analysis", response_model=SeoAnalysis, status_code=201)
async def create_seo_analysis(
    website_id: int,
    data: SeoAnalysisCreate,
    storage: MemoryStorage = Depends(get_storage),
):
    try:
        return storage.save_analysis(website_id, data)
    except Exception as e:
        log.error(f"Error saving SEO analysis for website {website_id}: {str(e)}")
        raise http_error(e, "Failed to save SEO analysis")


@router.put("/{website_id}/seo-analysis", response_model=SeoAnalysis)
async def update_seo_analysis(
    website_id: int,
    data: SeoAnalysisUpdate,
    storage: MemoryStorage = Depends(get_storage),
):
    try:
        return storage.update_analysis(website_id, data)
    except Exception as e:
        log.error(f"Error updating SEO analysis for website {website_id}: {str(e)}")
        raise http_error(e, "Failed to update SEO analysis")


async def _refresh_analysis(website_id: int, storage: MemoryStorage, webhooks: WebhookService) -> SeoAnalysis:
    try:
        website = storage.get_website(website_id)
        analysis = await webhooks.request_analysis(website.url)
        return storage.save_analysis(website_id, analysis)
    except HTTPException:
        raise
    except Exception as e:
        log.error(f"Error refreshing SEO analysis for website {website_id}: {str(e)}")
        raise http_error(e, "Failed to refresh SEO analysis")


@router.post("/{website_id}/analyze", response_model=SeoAnalysis)
async def analyze_website(
    website_id: int,
    storage: MemoryStorage = Depends(get_storage),
    webhooks: WebhookService = Depends(get_webhook_service),
):
    """Run the SEO workflow now and replace the stored analysis"""
    return await _refresh_analysis(website_id, storage, webhooks)


@router.post("/{website_id}/refresh-analysis", response_model=SeoAnalysis)
async def refresh_analysis(
    website_id: int,
    storage: MemoryStorage = Depends(get_storage),
    webhooks: WebhookService = Depends(get_webhook_service),
):
    """Same as /analyze"""
    return await _refresh_analysis(website_id, storage, webhooks)
