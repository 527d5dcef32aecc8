"""
Airtable REST connector.

Thin wrapper over the Airtable Web API for one base:
  - GET    /{base}/{table}            list records (paginated via offset)
  - GET    /{base}/{table}/{id}       single record
  - POST   /{base}/{table}            create
  - PATCH  /{base}/{table}/{id}       partial update
  - DELETE /{base}/{table}/{id}       delete

Records come back as {"id": "rec...", "createdTime": "...", "fields": {...}}.
Field names and types are whatever the base owner chose; mapping to the
application model happens in RecordStoreService.
"""
import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import aiohttp

from seodash.config import get_settings
from seodash.connectors.base_connector import BaseConnector
from seodash.exceptions import NotFoundError, RecordStoreError, SeoDashError
from seodash.utils.logger import log
from seodash.utils.retry import retry_async

PAGE_SIZE = 100


class AirtableConnector(BaseConnector):
    """Connector for the Airtable base holding sites, content and prompts"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_id: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        super().__init__("Airtable", timeout_seconds=timeout_seconds)
        settings = get_settings()
        self.api_key = api_key or settings.airtable_api_key
        self.base_id = base_id or settings.airtable_base_id
        self.base_url = (api_url or settings.airtable_api_url).rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def validate_connection(self) -> bool:
        """Read one record from the content table."""
        try:
            records = await self.list_records(get_settings().airtable_content_table, max_records=1)
            log.info(f"Connected to Airtable base {self.base_id} ({len(records)} record sampled)")
            return True
        except SeoDashError as e:
            log.error(f"Airtable connection test failed: {e.message}")
            return False

    def _table_url(self, table: str, record_id: Optional[str] = None) -> str:
        url = f"{self.base_url}/{self.base_id}/{quote(table, safe='')}"
        if record_id:
            url += f"/{quote(record_id, safe='')}"
        return url

    async def _request_once(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not self.api_key or not self.base_id:
            raise RecordStoreError("Airtable is not configured (AIRTABLE_API_KEY / AIRTABLE_BASE_ID missing)")

        status, body = await self._send(method, url, headers=self.headers, params=params, json_body=payload)

        if status == 404:
            raise NotFoundError(f"Airtable resource not found: {url.rsplit('/', 1)[-1]}", status=status)
        if status >= 400:
            raise RecordStoreError(
                f"Airtable {method} failed with {status}: {self._error_message(body)}",
                status=status,
            )
        if not body:
            return {}
        try:
            return json.loads(body)
        except ValueError as e:
            raise RecordStoreError(f"Airtable returned invalid JSON: {e}", status=status)

    @retry_async()
    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        return await self._request_once(method, url, **kwargs)

    async def _call(self, method: str, url: str, idempotent: bool = True, **kwargs) -> Dict[str, Any]:
        """
        Send a request with transport errors turned into RecordStoreError.

        Only idempotent calls are retried; a create whose answer was lost
        may already exist in the base.
        """
        request = self._request if idempotent else self._request_once
        try:
            return await request(method, url, **kwargs)
        except SeoDashError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RecordStoreError(f"Airtable unreachable: {type(e).__name__}: {e}") from e

    @staticmethod
    def _error_message(body: str) -> str:
        try:
            data = json.loads(body)
        except ValueError:
            return body[:200]
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict):
            return error.get("message") or error.get("type") or str(error)
        return str(error or body[:200])

    async def list_records(
        self,
        table: str,
        formula: Optional[str] = None,
        sort: Optional[List[Tuple[str, str]]] = None,
        max_records: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch every record of a table, following pagination.

        Args:
            table: Table name
            formula: Airtable filterByFormula expression
            sort: [(field, "asc"|"desc"), ...]
            max_records: Stop after this many records
        """
        params: Dict[str, Any] = {"pageSize": PAGE_SIZE}
        if formula:
            params["filterByFormula"] = formula
        if max_records:
            params["maxRecords"] = max_records
        for index, (field, direction) in enumerate(sort or []):
            params[f"sort[{index}][field]"] = field
            params[f"sort[{index}][direction]"] = direction

        records: List[Dict[str, Any]] = []
        url = self._table_url(table)
        while True:
            data = await self._call("GET", url, params=params)
            records.extend(data.get("records", []))
            offset = data.get("offset")
            if not offset or (max_records and len(records) >= max_records):
                break
            params = {**params, "offset": offset}

        log.debug(f"Fetched {len(records)} records from Airtable table '{table}'")
        return records

    async def get_record(self, table: str, record_id: str) -> Dict[str, Any]:
        return await self._call("GET", self._table_url(table, record_id))

    async def create_record(self, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call(
            "POST",
            self._table_url(table),
            idempotent=False,
            payload={"fields": fields, "typecast": True},
        )

    async def update_record(self, table: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call(
            "PATCH",
            self._table_url(table, record_id),
            payload={"fields": fields, "typecast": True},
        )

    async def delete_record(self, table: str, record_id: str) -> bool:
        data = await self._call("DELETE", self._table_url(table, record_id))
        return bool(data.get("deleted", True))
