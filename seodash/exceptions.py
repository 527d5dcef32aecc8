"""
Domain errors raised by connectors and services.

Routers translate them to HTTP answers; third-party exceptions never cross
a service boundary unformatted.
"""
from typing import Optional


class SeoDashError(Exception):
    """Base class for every error the API knows how to report."""

    code = "error"

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message)


class NotFoundError(SeoDashError):
    """Requested site, content or prompt does not exist."""

    code = "not_found"


class RecordStoreError(SeoDashError):
    """Airtable call failed (auth, network, quota, malformed request)."""

    code = "record_store_error"


class UpstreamError(SeoDashError):
    """Outbound call failed for a reason we don't classify further."""

    code = "upstream_error"


class WebhookError(SeoDashError):
    """
    The n8n workflow is not in a state to answer.

    kind is one of "not_activated", "test_mode", "misconfigured".
    """

    code = "webhook_error"

    def __init__(self, message: str, kind: str, webhook_url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message, status=status)
        self.kind = kind
        self.webhook_url = webhook_url


class GenerationError(SeoDashError):
    """Text or image generation failed."""

    code = "generation_error"


class InvalidStatusError(SeoDashError):
    """Status value outside the allowed set for the operation."""

    code = "invalid_status"


class UploadRejectedError(SeoDashError):
    """Uploaded file is not an accepted image."""

    code = "upload_rejected"
