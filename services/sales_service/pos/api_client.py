"""HTTP client the point-of-sale uses to talk to the sales service."""

from typing import Any, Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


class ApiError(Exception):
    """Non-2xx response from the sales service."""

    def __init__(self, status_code: int, body: dict[str, Any]):
        self.status_code = status_code
        self.body = body
        self.message = body.get("message") or f"Request failed ({status_code})"
        super().__init__(self.message)


class SalesApiClient:
    """Thin async wrapper over the sales service endpoints used at checkout.

    Pass ``client`` to reuse an existing ``httpx.AsyncClient`` (tests use one
    bound to the ASGI app); otherwise one is created and owned here.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.SALES_API_URL,
            timeout=timeout or settings.SALES_API_TIMEOUT,
        )
        self._headers = headers

    async def __aenter__(self) -> "SalesApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        response = await self._client.request(
            method, path, headers=self._headers, **kwargs
        )
        try:
            body = response.json()
        except ValueError:
            body = {"success": False, "message": response.text or None}

        if response.is_error:
            logger.info("%s %s -> %s", method, path, response.status_code)
            raise ApiError(response.status_code, body)
        return body

    async def lookup_customer(
        self, *, phone: Optional[str] = None, email: Optional[str] = None
    ) -> dict[str, Any]:
        params = {k: v for k, v in {"phone": phone, "email": email}.items() if v}
        body = await self._request("GET", "/customers/lookup", params=params)
        return body["customer"]

    async def create_customer(self, payload: dict[str, Any]) -> dict[str, Any]:
        body = await self._request("POST", "/customers", json=payload)
        return body["customer"]

    async def get_delivery_settings(self) -> dict[str, Any]:
        body = await self._request("GET", "/settings")
        return body["settings"]

    async def create_sales_order(self, payload: dict[str, Any]) -> dict[str, Any]:
        body = await self._request("POST", "/sales-orders", json=payload)
        return body["order"]
