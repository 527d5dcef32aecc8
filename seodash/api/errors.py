"""
Translation of domain errors into HTTP answers
"""
from fastapi import HTTPException

from seodash.exceptions import InvalidStatusError, NotFoundError, UploadRejectedError, WebhookError


def http_error(error: Exception, message: str) -> HTTPException:
    """
    Build the HTTPException for an error caught in a route.

    The detail is a dict; main.py returns it as the response body.
    """
    if isinstance(error, HTTPException):
        return error

    detail = {"message": message, "error": getattr(error, "message", None) or str(error)}

    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=detail)
    if isinstance(error, (InvalidStatusError, UploadRejectedError)):
        return HTTPException(status_code=400, detail=detail)
    if isinstance(error, WebhookError):
        detail.update(message=error.message, kind=error.kind, webhookUrl=error.webhook_url)
        return HTTPException(status_code=503, detail=detail)
    return HTTPException(status_code=500, detail=detail)
