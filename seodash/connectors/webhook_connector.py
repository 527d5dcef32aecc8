"""
n8n workflow webhook connector.

The SEO workflow is triggered with GET ?url=<site>&timestamp=<iso> and
answers with the full crawl report as JSON. n8n answers 404 while a
workflow is inactive (or, for test URLs, until someone clicks "Test
workflow" in the canvas) and 500 when a node in the workflow breaks.
"""
import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

from seodash.connectors.base_connector import BaseConnector
from seodash.exceptions import UpstreamError, WebhookError
from seodash.utils.logger import log

NOT_ACTIVATED_MESSAGE = "n8n webhook not activated"
TEST_MODE_MESSAGE = "n8n webhook in test mode - click 'Test workflow' then retry immediately"
MISCONFIGURED_MESSAGE = "n8n workflow failed - check the workflow configuration"


class WebhookConnector(BaseConnector):
    """Connector for one n8n webhook URL"""

    def __init__(self, webhook_url: Optional[str], name: str = "n8n", timeout_seconds: Optional[float] = None):
        super().__init__(name, timeout_seconds=timeout_seconds)
        self.webhook_url = webhook_url
        self.headers = {"Content-Type": "application/json", "Accept": "application/json"}

    async def validate_connection(self) -> bool:
        result = await self.diagnose()
        return result["get"]["ok"] or result["post"]["ok"]

    def _require_url(self) -> str:
        if not self.webhook_url:
            raise WebhookError(
                f"{self.name} webhook URL is not configured",
                kind="misconfigured",
                webhook_url=None,
            )
        return self.webhook_url

    def classify_failure(self, status: int, body: str) -> Exception:
        """Turn a non-2xx answer into the error the dashboard should show."""
        if status == 404:
            message = NOT_ACTIVATED_MESSAGE
            kind = "not_activated"
            try:
                hint = str(json.loads(body).get("hint", ""))
            except (ValueError, AttributeError):
                hint = ""
            if "test workflow" in hint.lower() or "test mode" in body.lower():
                message = TEST_MODE_MESSAGE
                kind = "test_mode"
            return WebhookError(message, kind=kind, webhook_url=self.webhook_url, status=status)

        if status == 500:
            return WebhookError(MISCONFIGURED_MESSAGE, kind="misconfigured", webhook_url=self.webhook_url, status=status)

        return UpstreamError(f"Webhook request failed: {status} {body[:200]}", status=status)

    async def get_json(self, params: Dict[str, Any]) -> Any:
        """GET the webhook and decode its JSON answer."""
        url = self._require_url()
        try:
            status, body = await self._send("GET", url, headers=self.headers, params=params)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamError(f"Webhook unreachable: {type(e).__name__}: {e}") from e

        if status >= 400:
            log.error(f"Webhook answered {status}: {body[:500]}")
            raise self.classify_failure(status, body)

        try:
            return json.loads(body)
        except ValueError as e:
            raise UpstreamError(f"Webhook returned invalid JSON: {e}", status=status) from e

    async def post_json(self, payload: Dict[str, Any]) -> Any:
        """POST a payload to the webhook; returns decoded JSON or raw text."""
        url = self._require_url()
        try:
            status, body = await self._send("POST", url, headers=self.headers, json_body=payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamError(f"Webhook unreachable: {type(e).__name__}: {e}") from e

        if status >= 400:
            log.error(f"Webhook answered {status}: {body[:500]}")
            raise self.classify_failure(status, body)

        try:
            return json.loads(body) if body else {}
        except ValueError:
            return {"response": body}

    async def diagnose(self) -> Dict[str, Any]:
        """Try both verbs against the webhook and report which one answers."""
        timestamp = datetime.now(timezone.utc).isoformat()
        report: Dict[str, Any] = {"webhookUrl": self.webhook_url}

        for method in ("GET", "POST"):
            entry: Dict[str, Any] = {"ok": False, "status": None, "body": None}
            if self.webhook_url:
                try:
                    if method == "GET":
                        status, body = await self._send(
                            "GET", self.webhook_url, headers=self.headers,
                            params={"test": "true", "timestamp": timestamp},
                        )
                    else:
                        status, body = await self._send(
                            "POST", self.webhook_url, headers=self.headers,
                            json_body={"test": True, "timestamp": timestamp},
                        )
                    entry.update(ok=200 <= status < 300, status=status, body=body[:500])
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    entry["error"] = f"{type(e).__name__}: {e}"
            else:
                entry["error"] = "webhook URL not configured"
            report[method.lower()] = entry

        if report["get"]["ok"]:
            report["recommendation"] = "GET"
        elif report["post"]["ok"]:
            report["recommendation"] = "POST"
        else:
            report["recommendation"] = None
        return report
