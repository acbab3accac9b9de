"""
Endpoints API client.

Thin async wrapper over the Endpoints HTTP API (endpoints.work).
Every public method returns a result model; network and HTTP failures are
converted to success=False results and never raised to the caller.
Timeouts live on the underlying httpx client.
"""

import httpx
from typing import Any, Dict, Optional

from endpoints_bot.config import get_settings
from endpoints_bot.models import (
    EndpointDataResult,
    EndpointListResult,
    ScanResult,
    StatsResult,
)
from endpoints_bot.telegram_bot.logging_config import bot_logger as logger


class EndpointsAPIError(Exception):
    """Non-2xx response from the Endpoints API."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


def _error_message(error: Exception) -> str:
    return str(error) or error.__class__.__name__


class EndpointsAPIClient:
    """Client for the Endpoints API, authenticated per call with the user's key."""

    def __init__(self, base_url: str = None, timeout: float = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        settings = get_settings() if base_url is None or timeout is None else None
        self.base_url = (base_url or settings.endpoints_api_url).rstrip("/")
        self.client = httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.endpoints_api_timeout,
            transport=transport,
        )

    async def _request(self, api_key: str, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Make an authenticated request. Raises on transport or HTTP errors."""
        headers = {"Authorization": f"Bearer {api_key}", **kwargs.pop("headers", {})}
        response = await self.client.request(
            method, f"{self.base_url}{path}", headers=headers, **kwargs
        )

        if response.is_error:
            raise EndpointsAPIError(
                response.status_code,
                response.text or f"API error: {response.status_code}",
            )

        return response.json()

    async def scan_text(self, api_key: str, prompt: str, text: str) -> ScanResult:
        """Scan text content into the endpoint chosen for the prompt."""
        try:
            result = await self._request(
                api_key, "POST", "/api/scan",
                json={"prompt": prompt, "content": text, "type": "text"},
            )
            return ScanResult(success=True, endpoint=result.get("endpoint"), item=result.get("item"))
        except Exception as e:
            logger.warning(f"scan_text failed: {e}")
            return ScanResult(success=False, error=_error_message(e))

    async def scan_file(
        self,
        api_key: str,
        prompt: str,
        buffer: bytes,
        filename: str,
        mime_type: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> ScanResult:
        """
        Scan an uploaded file.

        Options are sent as extra multipart fields, e.g. {"split_rows": True}
        becomes splitRows=true.
        """
        data = {"prompt": prompt}
        if options and "split_rows" in options:
            data["splitRows"] = "true" if options["split_rows"] else "false"

        try:
            result = await self._request(
                api_key, "POST", "/api/scan",
                data=data,
                files={"file": (filename, buffer, mime_type)},
            )
            return ScanResult(success=True, endpoint=result.get("endpoint"), item=result.get("item"))
        except Exception as e:
            logger.warning(f"scan_file failed for {filename}: {e}")
            return ScanResult(success=False, error=_error_message(e))

    async def list_endpoints(self, api_key: str) -> EndpointListResult:
        """List all endpoints for the key's account."""
        try:
            result = await self._request(api_key, "GET", "/api/endpoints")
            return EndpointListResult(success=True, endpoints=result.get("endpoints") or [])
        except Exception as e:
            logger.warning(f"list_endpoints failed: {e}")
            return EndpointListResult(success=False, error=_error_message(e))

    async def get_endpoint_data(self, api_key: str, path: str) -> EndpointDataResult:
        """Fetch items stored at an endpoint path like /job-tracker/january."""
        api_path = path if path.startswith("/api") else f"/api{path}"
        try:
            result = await self._request(api_key, "GET", api_path)
            return EndpointDataResult(success=True, data=result)
        except Exception as e:
            logger.warning(f"get_endpoint_data failed for {path}: {e}")
            return EndpointDataResult(success=False, error=_error_message(e))

    async def get_usage_stats(self, api_key: str) -> StatsResult:
        """Usage, limits and tier for the key's account."""
        try:
            result = await self._request(api_key, "GET", "/api/user/stats")
            return StatsResult(success=True, usage=result)
        except Exception as e:
            logger.warning(f"get_usage_stats failed: {e}")
            return StatsResult(success=False, error=_error_message(e))

    async def validate_api_key(self, api_key: str) -> bool:
        """A key is valid if it can read the account stats."""
        try:
            await self._request(api_key, "GET", "/api/user/stats")
            return True
        except Exception as e:
            logger.info(f"API key validation failed: {_error_message(e)[:100]}")
            return False

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()


# Global instance
_api_client: Optional[EndpointsAPIClient] = None


def get_api_client() -> EndpointsAPIClient:
    """Get or create the Endpoints API client singleton."""
    global _api_client
    if _api_client is None:
        _api_client = EndpointsAPIClient()
    return _api_client
