"""
Workflow webhook service - SEO analysis and calendar generation via n8n
"""
import random
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from seodash.config import get_settings
from seodash.connectors.webhook_connector import WebhookConnector
from seodash.models.analysis import SeoAnalysisCreate
from seodash.services.seo_normalizer import normalize_webhook_payload
from seodash.utils.logger import log


class WebhookService:
    """
    Talks to the two n8n workflows: the SEO crawler and the editorial
    calendar generator.
    """

    def __init__(
        self,
        seo_connector: Optional[WebhookConnector] = None,
        calendar_connector: Optional[WebhookConnector] = None,
        rng: Optional[random.Random] = None,
    ):
        settings = get_settings()
        self.seo_connector = seo_connector or WebhookConnector(settings.seo_webhook_url, name="n8n-seo")
        self.calendar_connector = calendar_connector or WebhookConnector(
            settings.calendar_webhook_url, name="n8n-calendar"
        )
        self.rng = rng

    @property
    def webhook_url(self) -> Optional[str]:
        return self.seo_connector.webhook_url

    async def request_analysis(self, website_url: str) -> SeoAnalysisCreate:
        """
        Run the SEO workflow for a site and return the derived analysis.

        Raises WebhookError when the workflow is inactive or broken,
        UpstreamError for anything else.
        """
        log.info(f"Requesting SEO analysis for {website_url}")
        payload = await self.seo_connector.get_json({
            "url": website_url,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        analysis = normalize_webhook_payload(payload, rng=self.rng)
        log.info(f"SEO analysis received for {website_url}: score {analysis.overall_score}")
        return analysis

    async def diagnose(self) -> Dict[str, Any]:
        return await self.seo_connector.diagnose()

    async def trigger_calendar_generation(
        self,
        website_id: int,
        website_name: str,
        website_url: str,
        seo_analysis: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Start the calendar workflow. It writes the generated items straight
        into the content table; callers poll for them afterwards.
        """
        log.info(f"Triggering editorial calendar generation for site {website_id} ({website_url})")
        return await self.calendar_connector.post_json({
            "websiteId": website_id,
            "websiteName": website_name,
            "websiteUrl": website_url,
            "seoAnalysis": seo_analysis or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
