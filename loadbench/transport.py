"""HTTP transport to the target service.

The engine treats each call as an opaque awaited operation returning status,
timing and body. Transport-level failures are mapped to synthetic status
codes rather than raised, so a failed call is just another outcome.
"""

import time
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import structlog

logger = structlog.get_logger()

# Synthetic status codes for calls that never produced an HTTP response
STATUS_TIMEOUT = 408
STATUS_CONNECT_ERROR = 503
STATUS_TRANSPORT_ERROR = 500


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    duration_ms: float
    body: Any = None


class Transport(Protocol):
    async def get_entity(self, entity_id: int) -> TransportResponse: ...

    async def search(self, term: str) -> TransportResponse: ...

    async def create(self, payload: dict[str, Any]) -> TransportResponse: ...

    async def health(self) -> TransportResponse: ...


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpTransport:
    """httpx-backed transport against the customer API.

    No retries: the underlying ``AsyncHTTPTransport`` is built with
    ``retries=0`` and every failure is surfaced once.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        max_connections: int = 1000,
        health_path: str = "/actuator/health",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.health_path = health_path
        if transport is None:
            transport = httpx.AsyncHTTPTransport(
                retries=0,
                limits=httpx.Limits(
                    max_connections=max_connections,
                    max_keepalive_connections=max(1, max_connections // 2),
                ),
            )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            timeout=httpx.Timeout(timeout_seconds),
        )

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> TransportResponse:
        t0 = time.perf_counter()
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as exc:
            status, body = STATUS_TIMEOUT, None
            logger.debug("transport_timeout", method=method, path=path, error=str(exc))
        except httpx.ConnectError as exc:
            status, body = STATUS_CONNECT_ERROR, None
            logger.debug("transport_connect_error", method=method, path=path, error=str(exc))
        except httpx.HTTPError as exc:
            status, body = STATUS_TRANSPORT_ERROR, None
            logger.warning("transport_error", method=method, path=path, error=str(exc))
        else:
            status, body = response.status_code, _decode_body(response)
        elapsed_ms = (time.perf_counter() - t0) * 1000.0
        return TransportResponse(status_code=status, duration_ms=elapsed_ms, body=body)

    async def get_entity(self, entity_id: int) -> TransportResponse:
        """GET /customers/{id}"""
        return await self._request("GET", f"/customers/{entity_id}")

    async def search(self, term: str) -> TransportResponse:
        """GET /customers?search=term"""
        return await self._request("GET", "/customers", params={"search": term})

    async def create(self, payload: dict[str, Any]) -> TransportResponse:
        """POST /customers"""
        return await self._request("POST", "/customers", json=payload)

    async def health(self) -> TransportResponse:
        return await self._request("GET", self.health_path)
