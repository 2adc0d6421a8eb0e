"""REST adapters for the hosted backend's tables (PostgREST dialect).

``user_carts`` holds ``(user_id, product_id, quantity)`` rows, ``products``
the catalogue and ``orders``/``order_items`` the settled orders. Filters are
expressed as query parameters (``user_id=eq.42``, ``id=in.(1,2)``).
"""

from collections.abc import Iterable

import httpx

from shared.catalogue import ProductCatalog, ProductSnapshot
from shared.logging import get_logger
from shared.persistence import CartRow, CartStorage, StorageError

logger = get_logger(__name__)

REST_PREFIX = "/rest/v1"


class RestClient:
    """Thin async wrapper that turns transport and HTTP failures into StorageError."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        access_token=None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._access_token = access_token
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        token = (self._access_token() if self._access_token else None) or self.api_key
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(self, method: str, table: str, params=None, json=None, headers=None):
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method,
                    f"{REST_PREFIX}/{table}",
                    params=params,
                    json=json,
                    headers=headers,
                )
        except httpx.HTTPError as e:
            logger.warning("Backend request failed", method=method, table=table, error=str(e))
            raise StorageError(f"{method} {table} failed: {e}") from e

        if response.is_error:
            raise StorageError(f"{method} {table} returned HTTP {response.status_code}: {response.text}")
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StorageError(f"{method} {table} returned invalid JSON") from e


def _in_filter(values: Iterable[str]) -> str:
    return "in.(" + ",".join(values) + ")"


class RestCartStorage(CartStorage):
    table = "user_carts"

    def __init__(self, client: RestClient) -> None:
        self.client = client

    async def select_lines(self, user_id: str) -> list[CartRow]:
        rows = await self.client.request(
            "GET",
            self.table,
            params={"select": "product_id,quantity", "user_id": f"eq.{user_id}"},
        )
        return [CartRow(str(row["product_id"]), int(row["quantity"])) for row in rows or []]

    async def select_line(self, user_id: str, product_id: str) -> CartRow | None:
        rows = await self.client.request(
            "GET",
            self.table,
            params={
                "select": "product_id,quantity",
                "user_id": f"eq.{user_id}",
                "product_id": f"eq.{product_id}",
            },
        )
        if not rows:
            return None
        return CartRow(str(rows[0]["product_id"]), int(rows[0]["quantity"]))

    async def upsert(self, user_id: str, product_id: str, quantity: int) -> None:
        await self.client.request(
            "POST",
            self.table,
            params={"on_conflict": "user_id,product_id"},
            json={"user_id": user_id, "product_id": product_id, "quantity": quantity},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def delete(self, user_id: str, product_id: str) -> None:
        await self.client.request(
            "DELETE",
            self.table,
            params={"user_id": f"eq.{user_id}", "product_id": f"eq.{product_id}"},
        )

    async def delete_all(self, user_id: str) -> None:
        await self.client.request("DELETE", self.table, params={"user_id": f"eq.{user_id}"})


class RestProductCatalog(ProductCatalog):
    table = "products"

    def __init__(self, client: RestClient) -> None:
        self.client = client

    async def get_products(self, product_ids: Iterable[str]) -> dict[str, ProductSnapshot]:
        ids = [str(pid) for pid in product_ids]
        if not ids:
            return {}
        rows = await self.client.request(
            "GET",
            self.table,
            params={"select": "*", "id": _in_filter(ids)},
        )
        products = {}
        for row in rows or []:
            snapshot = ProductSnapshot(
                product_id=row["id"],
                name=row.get("name", ""),
                price=str(row.get("price", 0)),
                image_ref=row.get("image_url") or row.get("image"),
            )
            products[snapshot.product_id] = snapshot
        return products
