from dataclasses import dataclass, field
from functools import lru_cache
from urllib.parse import quote, unquote
from uuid import UUID

import httpx
from fastapi import Depends, Header
from loguru import logger
from pydantic import ValidationError

from app import settings
from app.errors import Forbidden, StoreError, Unauthenticated
from app.schemas import PropertyInfo
from app.scopes import ADMIN_READ_SCOPES, ADMIN_WRITE_SCOPES, Role


@dataclass
class CurrentUser:
    id: UUID
    username: str
    scopes: list[str] = field(default_factory=list)

    @property
    def can_read_all_bookings(self) -> bool:
        return any(s in ADMIN_READ_SCOPES for s in self.scopes)

    @property
    def can_write_all_bookings(self) -> bool:
        return any(s in ADMIN_WRITE_SCOPES for s in self.scopes)

    @property
    def role(self) -> Role:
        if self.can_read_all_bookings or self.can_write_all_bookings:
            return Role.ADMIN
        return Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def get_current_user(
    x_user_id: str | None = Header(default=None),
    x_username: str = Header(default=""),
    x_user_scopes: str = Header(default=""),
) -> CurrentUser:
    """
    Reads the identity headers injected by the gateway after it validated the
    bearer token. The token itself never reaches this service.
    """
    if not x_user_id:
        raise Unauthenticated("Access denied. No identity provided.")
    try:
        user_id = UUID(x_user_id)
    except (ValueError, TypeError):
        raise Unauthenticated("Invalid user identity from gateway") from None

    scopes = x_user_scopes.split(" ") if x_user_scopes else []

    return CurrentUser(id=user_id, username=unquote(x_username), scopes=scopes)


def require_any_scope(*accepted: str):
    """
    Factory that returns a dependency passing when the user holds at least
    one of `accepted`.

    Usage:
        @router.get("/admin-only")
        async def route(user = Depends(require_any_scope("admin:bookings"))):
            ...
    """

    async def _dep(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if not any(s in current_user.scopes for s in accepted):
            raise Forbidden(f"Requires one of scopes: {', '.join(sorted(accepted))}")
        return current_user

    return _dep


# ---------------------------------------------------------------------------
# Pre-built scope dependencies
# ---------------------------------------------------------------------------

can_list_all_bookings = require_any_scope(*ADMIN_READ_SCOPES)


def _forward_headers(user: CurrentUser) -> dict[str, str]:
    return {
        "X-User-Id": str(user.id),
        "X-Username": quote(user.username),
        "X-User-Scopes": " ".join(user.scopes),
    }


# ---------------------------------------------------------------------------
# PropertiesClient — thin async wrapper around properties-ms
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _get_properties_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.properties_ms_url,
        timeout=httpx.Timeout(settings.upstream_timeout),
        follow_redirects=True,
    )


class PropertiesClient:
    """
    Thin async wrapper around the properties-ms API.
    Forwards the caller's identity headers so properties-ms auth works normally.
    """

    @property
    def _client(self) -> httpx.AsyncClient:
        return _get_properties_http_client()

    def _headers(self, user: CurrentUser) -> dict[str, str]:
        return _forward_headers(user)

    async def get_property(
        self, property_id: UUID, user: CurrentUser
    ) -> PropertyInfo | None:
        """Returns the property or None if 404. Raises StoreError on any other failure."""
        try:
            resp = await self._client.get(
                f"/properties/{property_id}", headers=self._headers(user)
            )
        except httpx.RequestError as exc:
            logger.warning("properties-ms unreachable", exc_info=True)
            raise StoreError("properties-ms is unreachable") from exc

        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise StoreError(f"properties-ms returned {resp.status_code}")

        try:
            return PropertyInfo.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("properties-ms sent an unreadable property", exc_info=True)
            raise StoreError("properties-ms returned an invalid property") from exc

    async def get_by_ids(
        self, property_ids: set[UUID], user: CurrentUser
    ) -> list[dict]:
        """Bulk-fetch property summaries by ID for enrichment. Fails silently."""
        if not property_ids:
            return []
        try:
            params = [("ids", str(pid)) for pid in property_ids]
            resp = await self._client.get(
                "/properties/bulk", params=params, headers=self._headers(user)
            )
            if resp.status_code >= 400 or not resp.content:
                return []
            return resp.json()
        except (httpx.RequestError, ValueError):
            return []


_properties_client = PropertiesClient()


def get_properties_client() -> PropertiesClient:
    return _properties_client


# ---------------------------------------------------------------------------
# UsersClient — thin async wrapper around users-ms
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _get_users_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.users_ms_url,
        timeout=httpx.Timeout(settings.upstream_timeout),
        follow_redirects=True,
    )


class UsersClient:
    """
    Thin async wrapper around the users-ms API.
    Forwards the caller's identity headers so users-ms auth works normally.
    """

    @property
    def _client(self) -> httpx.AsyncClient:
        return _get_users_http_client()

    def _headers(self, user: CurrentUser) -> dict[str, str]:
        return _forward_headers(user)

    async def get_by_ids(self, user_ids: set[UUID], user: CurrentUser) -> list[dict]:
        """Bulk-fetch users by ID for name enrichment. Fails silently."""
        if not user_ids:
            return []
        try:
            params = [("ids", str(uid)) for uid in user_ids]
            resp = await self._client.get(
                "/users/bulk", params=params, headers=self._headers(user)
            )
            if resp.status_code >= 400 or not resp.content:
                return []
            return resp.json()
        except (httpx.RequestError, ValueError):
            return []


_users_client = UsersClient()


def get_users_client() -> UsersClient:
    return _users_client


async def close_http_clients() -> None:
    for factory in (_get_properties_http_client, _get_users_http_client):
        if factory.cache_info().currsize:
            await factory().aclose()
            factory.cache_clear()
