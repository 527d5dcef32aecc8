"""
In-memory storage

Process-local fallback used when Airtable isn't configured (demos, local
development, tests). Nothing is persisted and there is no locking: the
event loop is the only writer.
"""
from datetime import date, datetime, timezone
from itertools import count
from typing import Dict, List, Optional

from seodash.config import get_settings
from seodash.exceptions import InvalidStatusError, NotFoundError
from seodash.models.analysis import SeoAnalysis, SeoAnalysisCreate, SeoAnalysisUpdate
from seodash.models.content import (
    BULK_STATUSES,
    EditorialContent,
    EditorialContentCreate,
    EditorialContentUpdate,
)
from seodash.models.site import Website, WebsiteCreate
from seodash.services.image_resolution import ResolvedImage, image_fields_for, resolve_image
from seodash.utils.logger import log


class MemoryStorage:
    """
    Websites, their current SEO analysis, and editorial content.

    Content methods are coroutines with the same signatures as
    RecordStoreService so the editorial routes can use either backend.
    """

    def __init__(self):
        self.public_base_url = get_settings().public_base_url
        self._websites: Dict[int, Website] = {}
        self._analyses: Dict[int, SeoAnalysis] = {}  # keyed by website id
        self._content: Dict[str, EditorialContent] = {}
        self._website_ids = count(1)
        self._analysis_ids = count(1)
        self._content_ids = count(1)

    # Websites

    def list_websites(self) -> List[Website]:
        return sorted(self._websites.values(), key=lambda w: w.id)

    def get_website(self, website_id: int) -> Website:
        website = self._websites.get(website_id)
        if website is None:
            raise NotFoundError(f"Website {website_id} not found")
        return website

    def create_website(self, data: WebsiteCreate) -> Website:
        website = Website(
            id=next(self._website_ids),
            name=data.name,
            url=data.url,
            created_at=datetime.now(timezone.utc),
        )
        self._websites[website.id] = website
        return website

    def delete_website(self, website_id: int) -> bool:
        if self._websites.pop(website_id, None) is None:
            raise NotFoundError(f"Website {website_id} not found")
        self._analyses.pop(website_id, None)
        return True

    # SEO analyses (one per website)

    def get_analysis(self, website_id: int) -> Optional[SeoAnalysis]:
        return self._analyses.get(website_id)

    def save_analysis(self, website_id: int, data: SeoAnalysisCreate) -> SeoAnalysis:
        """Store an analysis, replacing any previous one for the website."""
        self.get_website(website_id)
        analysis = SeoAnalysis(
            id=next(self._analysis_ids),
            website_id=website_id,
            analyzed_at=datetime.now(timezone.utc),
            **data.model_dump(),
        )
        replaced = self._analyses.get(website_id)
        self._analyses[website_id] = analysis
        if replaced is not None:
            log.debug(f"Replaced analysis {replaced.id} of website {website_id} with {analysis.id}")
        return analysis

    def update_analysis(self, website_id: int, data: SeoAnalysisUpdate) -> SeoAnalysis:
        current = self._analyses.get(website_id)
        if current is None:
            raise NotFoundError(f"No SEO analysis for website {website_id}")
        # Revalidate so nested sections stay models rather than plain dicts.
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        updated = SeoAnalysis.model_validate({**current.model_dump(), **changes})
        self._analyses[website_id] = updated
        return updated

    # Editorial content

    def _resolve(self, has_image: bool, image_url: Optional[str]) -> ResolvedImage:
        # Same column mapping as Airtable so both backends resolve alike
        if not has_image or not image_url:
            return False, None, None
        return resolve_image(image_fields_for(image_url, self.public_base_url))

    async def list_content(
        self,
        site_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[EditorialContent]:
        items = [
            item for item in self._content.values()
            if (site_id is None or item.id_site == site_id)
            and (start is None or item.date_de_publication >= start)
            and (end is None or item.date_de_publication <= end)
        ]
        return sorted(items, key=lambda item: (item.date_de_publication, item.created_at))

    async def get_content(self, content_id: str) -> EditorialContent:
        item = self._content.get(content_id)
        if item is None:
            raise NotFoundError(f"content not found: {content_id}")
        return item

    async def create_content(self, data: EditorialContentCreate) -> EditorialContent:
        has_image, image_url, image_source = self._resolve(data.has_image, data.image_url)
        item = EditorialContent(
            id=str(next(self._content_ids)),
            id_site=data.id_site,
            type_content=data.type_content.value,
            content_text=data.content_text,
            has_image=has_image,
            image_url=image_url,
            image_source=image_source,
            statut=data.statut.value,
            date_de_publication=data.date_de_publication,
            created_at=datetime.now(timezone.utc),
        )
        self._content[item.id] = item
        return item

    async def update_content(self, content_id: str, data: EditorialContentUpdate) -> EditorialContent:
        current = await self.get_content(content_id)
        values = data.model_dump(exclude_unset=True)
        changes = {}

        for key in ("id_site", "content_text", "date_de_publication"):
            if values.get(key) is not None:
                changes[key] = values[key]
        for key in ("type_content", "statut"):
            if values.get(key) is not None:
                changes[key] = values[key].value

        if values.get("has_image") is False:
            changes.update(has_image=False, image_url=None, image_source=None)
        elif "image_url" in values:
            has_image, image_url, image_source = self._resolve(True, values["image_url"])
            changes.update(has_image=has_image, image_url=image_url, image_source=image_source)

        updated = current.model_copy(update=changes)
        self._content[content_id] = updated
        return updated

    async def delete_content(self, content_id: str) -> bool:
        if self._content.pop(content_id, None) is None:
            raise NotFoundError(f"content not found: {content_id}")
        return True

    async def bulk_update_status(self, ids: List[str], status: str) -> List[EditorialContent]:
        if status not in BULK_STATUSES:
            raise InvalidStatusError(
                f"Invalid status '{status}' for bulk update; allowed: {', '.join(sorted(BULK_STATUSES))}"
            )
        updated = []
        for content_id in ids:
            item = self._content.get(content_id)
            if item is None:
                log.warning(f"Bulk status update skipped {content_id}: record not found")
                continue
            item = item.model_copy(update={"statut": status})
            self._content[content_id] = item
            updated.append(item)
        return updated

    async def count_content_created_since(self, site_id: int, since: datetime) -> int:
        items = await self.list_content(site_id=site_id)
        return sum(1 for item in items if item.created_at > since)
