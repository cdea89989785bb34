"""
Xero Accounting API client — request-scoped, one token set, one tenant.

Stands in for the SDK's per-resource accessors: every call is a single
GET/PUT/POST against ``<api_url>/<Endpoint>`` carrying the bearer token
and the ``Xero-Tenant-Id`` header. There is no retry, refresh or rate
limit handling here; a failed call is an UpstreamApiError.

Xero API docs:
  https://developer.xero.com/documentation/api/accounting/overview
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from xeroshowcase.errors import UpstreamApiError

logger = logging.getLogger("xeroshowcase.connectors.xero")


class XeroApiClient:
    """Authenticated client for one request.

    Usage::

        async with XeroApiClient(token, tenant_id, api_url=..., http=httpx.AsyncClient()) as xero:
            data = await xero.get("Accounts")
            print(len(data["Accounts"]))

    The client owns ``http`` and closes it on exit.
    """

    def __init__(
        self,
        access_token: str,
        tenant_id: str | None,
        *,
        api_url: str,
        http: httpx.AsyncClient,
        connections_url: str = "https://api.xero.com/connections",
    ) -> None:
        self.access_token = access_token
        self.tenant_id = tenant_id
        self.api_url = api_url.rstrip("/")
        self.connections_url = connections_url
        self._http = http

    async def __aenter__(self) -> XeroApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if not self._http.is_closed:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # API helpers
    # ------------------------------------------------------------------

    def _headers(self, accept: str = "application/json") -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": accept,
        }
        if self.tenant_id:
            headers["Xero-Tenant-Id"] = self.tenant_id
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        *,
        endpoint: str,
        accept: str = "application/json",
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        content: bytes | None = None,
        content_type: str | None = None,
    ) -> httpx.Response:
        headers = self._headers(accept)
        if content_type:
            headers["Content-Type"] = content_type
        try:
            resp = await self._http.request(
                method, url, headers=headers, params=params, json=json, content=content
            )
        except httpx.HTTPError as e:
            logger.warning("Xero %s %s failed: %s", method, endpoint, e)
            raise UpstreamApiError(f"Xero API unreachable: {e}", endpoint=endpoint) from e

        if resp.status_code >= 400:
            logger.warning("Xero %s %s returned %d", method, endpoint, resp.status_code)
            raise UpstreamApiError(
                f"Xero API {method} {endpoint} failed with HTTP {resp.status_code}",
                endpoint=endpoint,
                upstream_status=resp.status_code,
                body=resp.text,
            )

        logger.debug("Xero %s %s -> %d", method, endpoint, resp.status_code)
        return resp

    async def _request(self, method: str, url: str, *, endpoint: str, **kwargs: Any) -> Any:
        resp = await self._send(method, url, endpoint=endpoint, **kwargs)
        # Some actions (e.g. emailing an invoice) answer 204 with no body
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamApiError(
                f"Xero API {method} {endpoint} returned a non-JSON body",
                endpoint=endpoint,
                upstream_status=resp.status_code,
                body=resp.text,
            ) from e

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """GET an accounting endpoint, e.g. ``get("Invoices")``."""
        return await self._request("GET", f"{self.api_url}/{endpoint}", endpoint=endpoint, params=params)

    async def get_binary(self, endpoint: str, accept: str = "application/pdf") -> bytes:
        """GET an endpoint in a non-JSON representation, e.g. an invoice as PDF."""
        resp = await self._send("GET", f"{self.api_url}/{endpoint}", endpoint=endpoint, accept=accept)
        return resp.content

    async def put(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        """PUT (create) on an accounting endpoint."""
        return await self._request("PUT", f"{self.api_url}/{endpoint}", endpoint=endpoint, json=body)

    async def post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST (update or create) on an accounting endpoint."""
        return await self._request("POST", f"{self.api_url}/{endpoint}", endpoint=endpoint, json=body)

    async def upload(
        self,
        endpoint: str,
        content: bytes,
        content_type: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """PUT raw file bytes, e.g. ``Invoices/<id>/Attachments/<filename>``."""
        return await self._request(
            "PUT",
            f"{self.api_url}/{endpoint}",
            endpoint=endpoint,
            params=params,
            content=content,
            content_type=content_type,
        )

    async def get_collection(
        self, endpoint: str, key: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """GET an endpoint and return the list stored under ``key``."""
        data = await self.get(endpoint, params=params)
        items = data.get(key)
        if items is None:
            raise UpstreamApiError(
                f"Xero API {endpoint} response has no '{key}' collection",
                endpoint=endpoint,
            )
        return items

    async def get_connections(self) -> list[dict[str, Any]]:
        """List the tenants (organisations) this token was granted."""
        connections = await self._request("GET", self.connections_url, endpoint="connections")
        if not isinstance(connections, list):
            raise UpstreamApiError("Unexpected connections payload", endpoint="connections")
        return connections
