"""Outbound connectors for the SEO editorial dashboard"""

from seodash.connectors.base_connector import BaseConnector
from seodash.connectors.airtable_connector import AirtableConnector
from seodash.connectors.webhook_connector import WebhookConnector

__all__ = [
    "BaseConnector",
    "AirtableConnector",
    "WebhookConnector",
]
