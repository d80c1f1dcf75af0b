"""Transport collaborator: executes a resolved request over HTTP."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import httpx

from .errors import TransportError

logger = logging.getLogger(__name__)

QUERY_METHODS = ("GET", "DELETE")


@dataclass
class TransportRequest:
    url: str
    method: str
    headers: dict[str, str] = field(default_factory=dict)
    params: Optional[dict[str, Any]] = None
    body: Optional[Any] = None
    timeout: int = 15000  # ms

    def describe(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "method": self.method,
            "headers": dict(self.headers),
            "params": self.params,
            "body": self.body,
            "timeout": self.timeout,
        }


@dataclass
class TransportResponse:
    status: int
    data: Any
    headers: dict[str, str] = field(default_factory=dict)


class Transport(Protocol):
    async def request(self, request: TransportRequest) -> TransportResponse: ...


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpxTransport:
    """Sends requests with ``httpx.AsyncClient``.

    Relative URLs are resolved against ``base_url``. Pass ``client`` to
    reuse a long-lived client, or ``transport`` (e.g. ``httpx.MockTransport``)
    to swap the network layer.
    """

    def __init__(
        self,
        base_url: str = "",
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        default_headers: Optional[dict[str, str]] = None,
    ):
        self.base_url = base_url
        self._client = client
        self._transport = transport
        self.default_headers = default_headers or {"Accept": "application/json"}

    async def request(self, request: TransportRequest) -> TransportResponse:
        if self._client is not None:
            return await self._send(self._client, request)
        async with httpx.AsyncClient(base_url=self.base_url, transport=self._transport) as client:
            return await self._send(client, request)

    async def _send(self, client: httpx.AsyncClient, request: TransportRequest) -> TransportResponse:
        headers = {**self.default_headers, **request.headers}
        # 0 means unbounded; httpx reads 0.0 as an immediate timeout
        timeout = request.timeout / 1000 if request.timeout else None
        kwargs: dict[str, Any] = {"headers": headers, "timeout": timeout}
        if request.params:
            kwargs["params"] = request.params
        if request.body is not None:
            kwargs["json"] = request.body

        try:
            response = await client.request(request.method, request.url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Request to {request.url} timed out after {request.timeout}ms", timeout=True
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {request.url} failed: {e}") from e

        data = _decode(response)
        if response.is_error:
            message = f"{request.method} {request.url} returned {response.status_code}"
            if isinstance(data, dict) and data.get("message"):
                message = f"{message}: {data['message']}"
            raise TransportError(message, status=response.status_code, body=data)

        return TransportResponse(
            status=response.status_code,
            data=data,
            headers=dict(response.headers),
        )
