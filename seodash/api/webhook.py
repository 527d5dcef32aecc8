"""
Webhook troubleshooting endpoint
"""
from fastapi import APIRouter, Depends

from seodash.api.deps import get_webhook_service
from seodash.api.errors import http_error
from seodash.services.webhook_service import WebhookService
from seodash.utils.logger import log

router = APIRouter(prefix="/api/webhook", tags=["webhook"])


@router.get("/diagnostic")
async def webhook_diagnostic(webhooks: WebhookService = Depends(get_webhook_service)):
    """
    Call the SEO webhook with both GET and POST and report which verb the
    workflow answers. Operator tool; never modifies anything.
    """
    try:
        report = await webhooks.diagnose()
        log.info(f"Webhook diagnostic: recommendation={report.get('recommendation')}")
        return report
    except Exception as e:
        log.error(f"Error running webhook diagnostic: {str(e)}")
        raise http_error(e, "Webhook diagnostic failed")
