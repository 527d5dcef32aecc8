"""
Record store service

Maps the Airtable base (sites, content, prompts tables) to the application
models. All field-name variance is absorbed here through utils.fields; the
rest of the app only sees pydantic models.
"""
import asyncio
import json
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from seodash.config import get_settings
from seodash.connectors.airtable_connector import AirtableConnector
from seodash.exceptions import InvalidStatusError, NotFoundError, RecordStoreError, SeoDashError
from seodash.models.analysis import SeoAnalysisCreate
from seodash.models.content import (
    BULK_STATUSES,
    ContentStatus,
    EditorialContent,
    EditorialContentCreate,
    EditorialContentUpdate,
)
from seodash.models.prompt import SystemPrompt, SystemPromptCreate, SystemPromptUpdate
from seodash.models.site import AirtableSite
from seodash.services.image_resolution import image_fields_for, resolve_image
from seodash.utils import fields as F
from seodash.utils.logger import log

# Prefixes the analysis workflow puts in front of site names
SITE_NAME_PREFIXES = ("Analyse SEO - ", "Analyse SEO – ", "Analyse SEO : ", "Analyse SEO ")


@dataclass
class UpdateOutcome:
    """Result of one record update inside a bulk operation."""

    record_id: str
    ok: bool
    item: Optional[EditorialContent] = None
    reason: Optional[str] = None


def _parse_created_time(raw: Any) -> datetime:
    if isinstance(raw, str) and raw:
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now(timezone.utc)


def _strip_site_prefix(name: str) -> str:
    for prefix in SITE_NAME_PREFIXES:
        if name.startswith(prefix):
            return name[len(prefix):].strip()
    return name.strip()


def _first(value: Any) -> Any:
    # Lookup and linked-record columns come back as single-item lists
    if isinstance(value, list):
        return value[0] if value else None
    return value


class RecordStoreService:
    """
    Airtable-backed storage for sites, editorial content and system prompts
    """

    def __init__(self, connector: Optional[AirtableConnector] = None):
        settings = get_settings()
        self.connector = connector or AirtableConnector()
        self.sites_table = settings.airtable_sites_table
        self.content_table = settings.airtable_content_table
        self.prompts_table = settings.airtable_prompts_table
        self.public_base_url = settings.public_base_url

    # ------------------------------------------------------------------
    # Sites
    # ------------------------------------------------------------------

    def _record_to_site(self, record: Dict[str, Any]) -> Optional[AirtableSite]:
        fields = record.get("fields", {})
        site_id = F.parse_positive_int(_first(F.pick(fields, F.SITE_ID)))
        if site_id is None:
            log.warning(f"Skipping site record {record.get('id')}: no usable numeric ID")
            return None

        programme = F.pick(fields, F.SITE_SOCIAL_PROGRAM)
        if isinstance(programme, (dict, list)):
            programme = json.dumps(programme, ensure_ascii=False)
        elif programme is not None and not isinstance(programme, str):
            programme = str(programme)

        return AirtableSite(
            id=site_id,
            record_id=record.get("id", ""),
            name=_strip_site_prefix(str(F.pick(fields, F.SITE_NAME, ""))),
            url=str(F.pick(fields, F.SITE_URL, "")),
            programme_rs=programme or None,
            seo_analysis=F.parse_json_field(F.pick(fields, F.SITE_ANALYSIS), label=f"site {site_id} analysis"),
        )

    async def list_sites(self) -> List[AirtableSite]:
        """All sites, newest (highest numeric id) first."""
        records = await self.connector.list_records(self.sites_table)
        sites = []
        for record in records:
            site = self._record_to_site(record)
            if site is not None:
                sites.append(site)
        sites.sort(key=lambda s: s.id, reverse=True)
        log.info(f"Loaded {len(sites)} sites from Airtable ({len(records) - len(sites)} skipped)")
        return sites

    async def _find_site_record(self, site_id: int) -> Dict[str, Any]:
        """
        Locate a site record by numeric id.

        Filters on ID_SITE first; bases that name the column differently
        are matched by scanning with the same field variants list_sites reads.
        """
        formula = f"{{{F.WRITE_NAMES['site_id']}}} = {int(site_id)}"
        try:
            records = await self.connector.list_records(self.sites_table, formula=formula, max_records=1)
        except RecordStoreError as e:
            # 422: the base has no ID_SITE column
            if e.status != 422:
                raise
            records = []
        if records:
            return records[0]

        for record in await self.connector.list_records(self.sites_table):
            if F.parse_positive_int(_first(F.pick(record.get("fields", {}), F.SITE_ID))) == int(site_id):
                return record
        raise NotFoundError(f"site not found: {site_id}")

    async def get_site(self, site_id: int) -> AirtableSite:
        record = await self._find_site_record(site_id)
        site = self._record_to_site(record)
        if site is None:
            raise NotFoundError(f"site not found: {site_id}")
        return site

    async def get_social_program(self, site_id: int) -> Optional[Any]:
        record = await self._find_site_record(site_id)
        raw = F.pick(record.get("fields", {}), F.SITE_SOCIAL_PROGRAM)
        return F.parse_json_field(raw, label=f"site {site_id} social program")

    async def update_social_program(self, site_id: int, document: str) -> Optional[Any]:
        record = await self._find_site_record(site_id)
        await self.connector.update_record(
            self.sites_table,
            record["id"],
            {F.WRITE_NAMES["site_social_program"]: document},
        )
        log.info(f"Updated social program for site {site_id}")
        return F.parse_json_field(document, label=f"site {site_id} social program")

    async def get_social_credentials(self, site_id: int) -> Dict[str, Any]:
        record = await self._find_site_record(site_id)
        raw = F.pick(record.get("fields", {}), F.SITE_SOCIAL_PARAMS)
        credentials = F.parse_json_field(raw, label=f"site {site_id} social params")
        if not isinstance(credentials, dict):
            credentials = {}
        credentials.setdefault("access_tokens", {})
        return credentials

    async def update_social_credentials(self, site_id: int, credentials: Dict[str, Any]) -> Dict[str, Any]:
        record = await self._find_site_record(site_id)
        await self.connector.update_record(
            self.sites_table,
            record["id"],
            {F.WRITE_NAMES["site_social_params"]: json.dumps(credentials, ensure_ascii=False)},
        )
        log.info(f"Updated social credentials for site {site_id} ({len(credentials.get('access_tokens', {}))} platforms)")
        return credentials

    async def delete_site(self, site_id: int) -> bool:
        record = await self._find_site_record(site_id)
        deleted = await self.connector.delete_record(self.sites_table, record["id"])
        log.info(f"Deleted site {site_id} (record {record['id']})")
        return deleted

    async def save_site_analysis(self, site_id: int, analysis: SeoAnalysisCreate) -> AirtableSite:
        """Replace the analysis blob stored on a site record."""
        record = await self._find_site_record(site_id)
        updated = await self.connector.update_record(
            self.sites_table,
            record["id"],
            {F.WRITE_NAMES["site_analysis"]: analysis.model_dump_json(by_alias=True)},
        )
        site = self._record_to_site(updated)
        if site is None:
            raise RecordStoreError(f"Site {site_id} could not be read back after saving its analysis")
        return site

    # ------------------------------------------------------------------
    # Editorial content
    # ------------------------------------------------------------------

    def _record_to_content(self, record: Dict[str, Any]) -> Optional[EditorialContent]:
        fields = record.get("fields", {})
        record_id = record.get("id", "")

        site_id = F.parse_positive_int(_first(F.pick(fields, F.CONTENT_SITE_ID)))
        if site_id is None:
            log.warning(f"Skipping content record {record_id}: no usable site ID")
            return None

        raw_date = F.pick(fields, F.CONTENT_DATE)
        try:
            publication_date = date.fromisoformat(str(raw_date)[:10])
        except ValueError:
            log.warning(f"Skipping content record {record_id}: bad publication date {raw_date!r}")
            return None

        has_image, image_url, image_source = resolve_image(fields)

        return EditorialContent(
            id=record_id,
            id_site=site_id,
            type_content=str(F.pick(fields, F.CONTENT_TYPE, "")),
            content_text=str(F.pick(fields, F.CONTENT_TEXT, "")),
            has_image=has_image,
            image_url=image_url,
            image_source=image_source,
            statut=str(F.pick(fields, F.CONTENT_STATUS, ContentStatus.PENDING.value)),
            date_de_publication=publication_date,
            created_at=_parse_created_time(record.get("createdTime")),
        )

    @staticmethod
    def _content_formula(
        site_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Optional[str]:
        date_field = F.WRITE_NAMES["content_date"]
        clauses = []
        if site_id is not None:
            clauses.append(f"{{{F.WRITE_NAMES['content_site_id']}}} = {int(site_id)}")
        if start is not None:
            clauses.append(f"NOT(IS_BEFORE({{{date_field}}}, '{start.isoformat()}'))")
        if end is not None:
            clauses.append(f"NOT(IS_AFTER({{{date_field}}}, '{end.isoformat()}'))")
        if not clauses:
            return None
        if len(clauses) == 1:
            return clauses[0]
        return f"AND({', '.join(clauses)})"

    async def list_content(
        self,
        site_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[EditorialContent]:
        """
        Content items, optionally for one site and/or a publication date range
        (both bounds inclusive).
        """
        records = await self.connector.list_records(
            self.content_table,
            formula=self._content_formula(site_id, start, end),
            sort=[(F.WRITE_NAMES["content_date"], "asc")],
        )
        items = []
        for record in records:
            item = self._record_to_content(record)
            if item is not None:
                items.append(item)
        log.info(f"Loaded {len(items)} content items from Airtable")
        return items

    async def get_content(self, record_id: str) -> EditorialContent:
        record = await self.connector.get_record(self.content_table, record_id)
        item = self._record_to_content(record)
        if item is None:
            raise NotFoundError(f"content not found: {record_id}")
        return item

    def _content_fields(self, values: Dict[str, Any], creating: bool) -> Dict[str, Any]:
        """Map model field names to Airtable columns for the fields present."""
        names = F.WRITE_NAMES
        out: Dict[str, Any] = {}

        if values.get("id_site") is not None:
            out[names["content_site_id"]] = str(values["id_site"])
        if values.get("type_content") is not None:
            out[names["content_type"]] = getattr(values["type_content"], "value", values["type_content"])
        if values.get("content_text") is not None:
            out[names["content_text"]] = values["content_text"]
        if values.get("statut") is not None:
            out[names["content_status"]] = getattr(values["statut"], "value", values["statut"])
        if values.get("date_de_publication") is not None:
            out[names["content_date"]] = values["date_de_publication"].isoformat()

        if values.get("has_image") is False:
            out.update(image_fields_for(None, self.public_base_url))
        elif "image_url" in values:
            out.update(image_fields_for(values["image_url"], self.public_base_url))

        if creating:
            out = {key: value for key, value in out.items() if value not in (None, [])}
        return out

    async def create_content(self, data: EditorialContentCreate) -> EditorialContent:
        fields = self._content_fields(data.model_dump(), creating=True)
        record = await self.connector.create_record(self.content_table, fields)
        item = self._record_to_content(record)
        if item is None:
            raise RecordStoreError(f"Created content record {record.get('id')} could not be read back")
        log.info(f"Created content {item.id} for site {item.id_site} ({item.type_content})")
        return item

    async def update_content(self, record_id: str, data: EditorialContentUpdate) -> EditorialContent:
        fields = self._content_fields(data.model_dump(exclude_unset=True), creating=False)
        record = await self.connector.update_record(self.content_table, record_id, fields)
        item = self._record_to_content(record)
        if item is None:
            raise RecordStoreError(f"Updated content record {record_id} could not be read back")
        log.info(f"Updated content {record_id} ({', '.join(sorted(fields)) or 'no fields'})")
        return item

    async def delete_content(self, record_id: str) -> bool:
        deleted = await self.connector.delete_record(self.content_table, record_id)
        log.info(f"Deleted content {record_id}")
        return deleted

    async def _update_status(self, record_id: str, status: str) -> UpdateOutcome:
        try:
            record = await self.connector.update_record(
                self.content_table,
                record_id,
                {F.WRITE_NAMES["content_status"]: status},
            )
        except NotFoundError:
            return UpdateOutcome(record_id, ok=False, reason="record not found")
        except SeoDashError as e:
            return UpdateOutcome(record_id, ok=False, reason=e.message)

        item = self._record_to_content(record)
        if item is None:
            return UpdateOutcome(record_id, ok=False, reason="updated record could not be read back")
        return UpdateOutcome(record_id, ok=True, item=item)

    async def bulk_update_status(self, ids: List[str], status: str) -> List[EditorialContent]:
        """
        Set the same status on many content records.

        Updates run concurrently and independently; the items that were
        updated are returned, failures are only logged. Airtable has no
        multi-record transaction so nothing is rolled back.
        """
        if status not in BULK_STATUSES:
            raise InvalidStatusError(
                f"Invalid status '{status}' for bulk update; allowed: {', '.join(sorted(BULK_STATUSES))}"
            )

        outcomes = await asyncio.gather(*(self._update_status(record_id, status) for record_id in ids))

        updated = [outcome.item for outcome in outcomes if outcome.ok]
        for outcome in outcomes:
            if not outcome.ok:
                log.warning(f"Bulk status update skipped {outcome.record_id}: {outcome.reason}")

        if ids and not updated:
            log.error(f"Bulk status update to '{status}' failed for all {len(ids)} records")
        else:
            log.info(f"Bulk status update to '{status}': {len(updated)}/{len(ids)} records updated")
        return updated

    async def count_content_created_since(self, site_id: int, since: datetime) -> int:
        items = await self.list_content(site_id=site_id)
        return sum(1 for item in items if item.created_at > since)

    # ------------------------------------------------------------------
    # System prompts
    # ------------------------------------------------------------------

    @staticmethod
    def _record_to_prompt(record: Dict[str, Any]) -> SystemPrompt:
        fields = record.get("fields", {})
        created = record.get("createdTime")
        return SystemPrompt(
            id=record.get("id", ""),
            prompt_system=str(F.pick(fields, F.PROMPT_TEXT, "")),
            structure_sortie=F.pick(fields, F.PROMPT_STRUCTURE),
            nom=F.pick(fields, F.PROMPT_NAME),
            description=F.pick(fields, F.PROMPT_DESCRIPTION),
            actif=bool(F.pick(fields, F.PROMPT_ACTIVE, False)),
            created_at=_parse_created_time(created) if created else None,
        )

    PROMPT_COLUMNS = (
        ("prompt_system", "prompt_text"),
        ("structure_sortie", "prompt_structure"),
        ("nom", "prompt_name"),
        ("description", "prompt_description"),
        ("actif", "prompt_active"),
    )

    def _prompt_fields(self, values: Dict[str, Any], creating: bool) -> Dict[str, Any]:
        # Writes always use the lowercase French column names
        out = {}
        for attribute, column in self.PROMPT_COLUMNS:
            if attribute not in values:
                continue
            if creating and values[attribute] is None:
                continue
            out[F.WRITE_NAMES[column]] = values[attribute]
        return out

    async def list_prompts(self) -> List[SystemPrompt]:
        records = await self.connector.list_records(self.prompts_table)
        return [self._record_to_prompt(record) for record in records]

    async def get_prompt(self, prompt_id: str) -> SystemPrompt:
        record = await self.connector.get_record(self.prompts_table, prompt_id)
        return self._record_to_prompt(record)

    async def get_active_prompt(self) -> Optional[SystemPrompt]:
        """First prompt flagged active, or None."""
        active = [prompt for prompt in await self.list_prompts() if prompt.actif]
        if not active:
            return None
        if len(active) > 1:
            log.warning(
                f"{len(active)} system prompts are marked active; using {active[0].id} "
                f"({', '.join(prompt.id for prompt in active[1:])} ignored)"
            )
        return active[0]

    async def create_prompt(self, data: SystemPromptCreate) -> SystemPrompt:
        record = await self.connector.create_record(self.prompts_table, self._prompt_fields(data.model_dump(), creating=True))
        prompt = self._record_to_prompt(record)
        log.info(f"Created system prompt {prompt.id} ({prompt.nom or 'unnamed'})")
        return prompt

    async def update_prompt(self, prompt_id: str, data: SystemPromptUpdate) -> SystemPrompt:
        record = await self.connector.update_record(
            self.prompts_table,
            prompt_id,
            self._prompt_fields(data.model_dump(exclude_unset=True), creating=False),
        )
        return self._record_to_prompt(record)

    async def delete_prompt(self, prompt_id: str) -> bool:
        deleted = await self.connector.delete_record(self.prompts_table, prompt_id)
        log.info(f"Deleted system prompt {prompt_id}")
        return deleted
