from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING
from urllib.parse import quote
from uuid import UUID

import httpx
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from app import settings
from app.errors import CatalogUnavailable, NotFound
from app.schemas import ResourceInfo

if TYPE_CHECKING:
    from app.deps import CurrentUser


@lru_cache(maxsize=1)
def _get_catalog_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.catalog_ms_url,
        timeout=httpx.Timeout(5.0),
        follow_redirects=True,
    )


class CatalogClient:
    """
    Thin async wrapper around the catalog service that owns rentable resources.
    Forwards the gateway identity headers so the catalog's auth works normally.
    """

    @property
    def _client(self) -> httpx.AsyncClient:
        return _get_catalog_http_client()

    def _headers(self, user: CurrentUser) -> dict[str, str]:
        return {
            "X-User-Id": str(user.id),
            "X-Username": quote(user.username),
            "X-User-Role": user.role or "",
            "X-User-Scopes": " ".join(user.scopes),
        }

    async def get_resource(self, resource_id: UUID, user: CurrentUser) -> ResourceInfo:
        """Raises NotFound on 404, CatalogUnavailable on any other failure."""
        try:
            resp = await self._client.get(
                f"/resources/{resource_id}", headers=self._headers(user)
            )
        except httpx.RequestError as exc:
            raise CatalogUnavailable(f"catalog unreachable: {exc}") from exc

        if resp.status_code == 404:
            raise NotFound("Resource")
        if resp.status_code >= 400:
            raise CatalogUnavailable(f"catalog returned {resp.status_code}")
        try:
            return ResourceInfo.model_validate(resp.json())
        except (PydanticValidationError, ValueError) as exc:
            raise CatalogUnavailable(f"malformed resource payload: {exc}") from exc

    async def get_by_ids(self, resource_ids: set[UUID], user: CurrentUser) -> list[dict]:
        """Bulk-fetch resources by ID for name enrichment. Fails silently."""
        if not resource_ids:
            return []
        try:
            params = [("ids", str(rid)) for rid in resource_ids]
            resp = await self._client.get(
                "/resources/bulk", params=params, headers=self._headers(user)
            )
            if resp.status_code >= 400 or not resp.content:
                return []
            return resp.json()
        except (httpx.RequestError, ValueError):
            logger.warning("Resource name enrichment skipped", exc_info=True)
            return []


_catalog_client = CatalogClient()


def get_catalog_client() -> CatalogClient:
    return _catalog_client
