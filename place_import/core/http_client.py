"""
Pooled HTTP client for calls to the Google Maps Platform and the auth service.

One ``httpx.AsyncClient`` is shared by every request in the process. Each
call comes back as a plain result dictionary instead of raising, so the
callers decide whether a failure is fatal:

    {"success": bool, "status_code": int | None, "content": ..., "error": str,
     "response_time": float}
"""

import asyncio
import logging
import time
from typing import Optional, Dict, Any
from contextlib import asynccontextmanager
import httpx
from place_import.core.config import get_settings, Settings

logger = logging.getLogger(__name__)

USER_AGENT = "PlaceImport/1.0"


def _decode_body(response: httpx.Response) -> Any:
    """Return parsed JSON for JSON responses, text otherwise."""
    if "application/json" not in response.headers.get("content-type", ""):
        return response.text
    try:
        return response.json()
    except (ValueError, TypeError) as e:
        logger.warning("Response declared JSON but did not parse: %s", e)
        return response.text


class HTTPClientManager:
    """
    Owner of the shared connection pool.

    ``make_request`` never raises for transport problems: timeouts,
    connection errors and non-200 responses all come back with
    ``success`` set to False.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()
        self._stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "average_response_time": 0.0
        }

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            limits=httpx.Limits(
                max_connections=self.settings.HTTP_CONNECTION_POOL_SIZE,
                max_keepalive_connections=self.settings.HTTP_MAX_KEEPALIVE_CONNECTIONS,
                keepalive_expiry=30.0,
            ),
            timeout=httpx.Timeout(
                connect=self.settings.HTTP_CONNECTION_TIMEOUT,
                read=self.settings.HTTP_READ_TIMEOUT,
                write=10.0,
                pool=5.0,
            ),
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    async def get_client(self) -> httpx.AsyncClient:
        """
        Return the pooled client, creating it on first use or after close.
        """
        async with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = self._build_client()
                logger.debug("Created pooled HTTP client")
            return self._client

    async def make_request(
        self,
        url: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        json: Optional[Any] = None,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Perform one request through the pool.

        Args:
            url: Request URL
            method: HTTP method
            params: Query string parameters
            headers: Request headers
            json: JSON request body
            **kwargs: Passed through to ``httpx.AsyncClient.request``

        Returns:
            Dict[str, Any]: The result dictionary described in the module docstring
        """
        client = await self.get_client()
        self._stats["total_requests"] += 1
        started = time.time()

        try:
            response = await client.request(
                method, url, params=params, headers=headers, json=json, **kwargs
            )
        except httpx.RequestError as e:
            # Timeouts and connection failures
            elapsed = self._record(started, ok=False)
            logger.warning("HTTP %s %s failed: %s", method, url.split("?")[0], type(e).__name__)
            return {
                "success": False,
                "status_code": None,
                "error": str(e) or type(e).__name__,
                "response_time": elapsed,
            }

        ok = response.status_code == 200
        elapsed = self._record(started, ok=ok)
        return {
            "success": ok,
            "status_code": response.status_code,
            "content": _decode_body(response),
            "response_time": elapsed,
        }

    def _record(self, started: float, ok: bool) -> float:
        elapsed = time.time() - started
        key = "successful_requests" if ok else "failed_requests"
        self._stats[key] += 1

        count = self._stats["successful_requests"] + self._stats["failed_requests"]
        previous = self._stats["average_response_time"]
        self._stats["average_response_time"] = previous + (elapsed - previous) / count
        return elapsed

    def get_stats(self) -> Dict[str, Any]:
        """Request counters plus whether the pool is open."""
        return {
            **self._stats,
            "client_open": self._client is not None and not self._client.is_closed
        }

    async def close(self):
        """Close the pooled client and release connections."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
                logger.info("Closed HTTP client")


_http_client_manager: Optional[HTTPClientManager] = None


def get_http_client_manager() -> HTTPClientManager:
    """Return the process-wide manager, creating it on first use."""
    global _http_client_manager
    if _http_client_manager is None:
        _http_client_manager = HTTPClientManager()
    return _http_client_manager


def set_http_client_manager(manager: Optional[HTTPClientManager]):
    """Replace the process-wide manager (tests)."""
    global _http_client_manager
    _http_client_manager = manager


@asynccontextmanager
async def lifespan_manager():
    """Yield the shared manager and close its pool on exit."""
    manager = get_http_client_manager()
    try:
        yield manager
    finally:
        await manager.close()
