"""
Airtable site endpoints: listing, social publishing settings, analysis
"""
from fastapi import APIRouter, Depends
from typing import List

from seodash.api.deps import get_record_store, get_webhook_service
from seodash.api.errors import http_error
from seodash.models.analysis import SeoAnalysisCreate
from seodash.models.site import AirtableSite, SocialCredentials, SocialProgramUpdate
from seodash.services.record_store_service import RecordStoreService
from seodash.services.webhook_service import WebhookService
from seodash.utils.logger import log

router = APIRouter(prefix="/api/sites-airtable", tags=["sites"])


@router.get("", response_model=List[AirtableSite])
async def list_sites(record_store: RecordStoreService = Depends(get_record_store)):
    """Sites from the Airtable sites table, newest first"""
    try:
        return await record_store.list_sites()
    except Exception as e:
        log.error(f"Error fetching Airtable sites: {str(e)}")
        raise http_error(e, "Failed to fetch sites")


@router.get("/{site_id}/social-program")
async def get_social_program(site_id: int, record_store: RecordStoreService = Depends(get_record_store)):
    try:
        return {"programmeRs": await record_store.get_social_program(site_id)}
    except Exception as e:
        log.error(f"Error fetching social program for site {site_id}: {str(e)}")
        raise http_error(e, "Failed to fetch social program")


@router.put("/{site_id}/social-program")
async def update_social_program(
    site_id: int,
    data: SocialProgramUpdate,
    record_store: RecordStoreService = Depends(get_record_store),
):
    """Replace the per-platform publishing frequency document"""
    try:
        programme = await record_store.update_social_program(site_id, data.programme_rs)
        return {"success": True, "programmeRs": programme}
    except Exception as e:
        log.error(f"Error updating social program for site {site_id}: {str(e)}")
        raise http_error(e, "Failed to update social program")


@router.get("/{site_id}/social-params", response_model=SocialCredentials)
async def get_social_params(site_id: int, record_store: RecordStoreService = Depends(get_record_store)):
    try:
        return SocialCredentials(**await record_store.get_social_credentials(site_id))
    except Exception as e:
        log.error(f"Error fetching social params for site {site_id}: {str(e)}")
        raise http_error(e, "Failed to fetch social parameters")


@router.put("/{site_id}/social-params", response_model=SocialCredentials)
async def update_social_params(
    site_id: int,
    data: SocialCredentials,
    record_store: RecordStoreService = Depends(get_record_store),
):
    try:
        saved = await record_store.update_social_credentials(site_id, data.model_dump())
        return SocialCredentials(**saved)
    except Exception as e:
        log.error(f"Error updating social params for site {site_id}: {str(e)}")
        raise http_error(e, "Failed to update social parameters")


@router.delete("/{site_id}")
async def delete_site(site_id: int, record_store: RecordStoreService = Depends(get_record_store)):
    try:
        await record_store.delete_site(site_id)
        return {"message": "Site deleted"}
    except Exception as e:
        log.error(f"Error deleting site {site_id}: {str(e)}")
        raise http_error(e, "Failed to delete site")


@router.post("/{site_id}/analyze", response_model=SeoAnalysisCreate)
async def analyze_site(
    site_id: int,
    record_store: RecordStoreService = Depends(get_record_store),
    webhooks: WebhookService = Depends(get_webhook_service),
):
    """Run the SEO workflow for an Airtable site and store the result on it"""
    try:
        site = await record_store.get_site(site_id)
        analysis = await webhooks.request_analysis(site.url)
        await record_store.save_site_analysis(site_id, analysis)
        return analysis
    except Exception as e:
        log.error(f"Error analyzing site {site_id}: {str(e)}")
        raise http_error(e, "Failed to analyze site")
