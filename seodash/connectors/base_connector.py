"""
Base connector class for outbound HTTP integrations
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import aiohttp

from seodash.config import get_settings
from seodash.utils.logger import log


class BaseConnector(ABC):
    """
    Base class for every external system we call.

    Subclasses build requests and interpret answers; the actual network
    round-trip lives in _send() so tests can replace the transport.
    """

    def __init__(self, name: str, timeout_seconds: Optional[float] = None):
        self.name = name
        self.timeout_seconds = timeout_seconds or get_settings().http_timeout_seconds
        self.request_count = 0
        self.error_count = 0

    @abstractmethod
    async def validate_connection(self) -> bool:
        """Validate connection is working"""
        pass

    async def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> Tuple[int, str]:
        """
        Perform one HTTP request and return (status, body text).

        aiohttp exceptions propagate so the retry layer can classify them.
        """
        self.request_count += 1
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    json=json_body,
                ) as response:
                    body = await response.text()
                    return response.status, body
        except Exception as e:
            self.error_count += 1
            log.error(f"{self.name} {method} {url} failed: {type(e).__name__}: {e}")
            raise

    def get_stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "requests": self.request_count,
            "errors": self.error_count,
        }
