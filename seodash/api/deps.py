"""
Dependency providers for the API routers

Each provider is cached so a process shares one instance; tests swap
them through app.dependency_overrides.
"""
from functools import lru_cache

from fastapi import Depends

from seodash.config import get_settings
from seodash.services.ai_content_service import AIContentService
from seodash.services.record_store_service import RecordStoreService
from seodash.services.storage import MemoryStorage
from seodash.services.upload_service import UploadService
from seodash.services.webhook_service import WebhookService


@lru_cache()
def get_storage() -> MemoryStorage:
    return MemoryStorage()


@lru_cache()
def get_record_store() -> RecordStoreService:
    return RecordStoreService()


@lru_cache()
def get_webhook_service() -> WebhookService:
    return WebhookService()


@lru_cache()
def get_ai_service() -> AIContentService:
    record_store = get_record_store() if get_settings().airtable_configured else None
    return AIContentService(record_store=record_store)


@lru_cache()
def get_upload_service() -> UploadService:
    return UploadService()


def get_content_backend(storage: MemoryStorage = Depends(get_storage)):
    """Airtable when configured, otherwise the in-memory store."""
    if get_settings().airtable_configured:
        return get_record_store()
    return storage
