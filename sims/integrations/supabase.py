"""
Supabase-backed identity provider and record store.

Talks to the hosted Auth (GoTrue) admin API and PostgREST with the
service-role key, the same calls the hosted bulk-import function makes.
"""

from typing import Any, Dict, Optional
from uuid import UUID

import httpx
from fastapi import status
from fastapi.encoders import jsonable_encoder

from sims.auth.provider import IdentityProvider
from sims.auth.schemas import AuthUser, LoginResponse
from sims.core.config import settings
from sims.core.exceptions import IdentityError, ServiceError, StoreError
from sims.db.store import RecordStore

# PostgREST: return a single object instead of an array (406 when 0 or >1 rows)
PGRST_SINGLE_OBJECT = "application/vnd.pgrst.object+json"


def create_supabase_http_client(
    url: Optional[str] = None,
    service_role_key: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    url = url or settings.supabase_url
    service_role_key = service_role_key or settings.supabase_service_role_key
    if not url or not service_role_key:
        raise ServiceError(
            "Supabase backend requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return httpx.AsyncClient(
        base_url=url.rstrip("/"),
        headers={"apikey": service_role_key},
        timeout=settings.supabase_timeout_seconds,
        transport=transport,
    )


def error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a GoTrue or PostgREST error body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            value = body.get(key)
            if value:
                return str(value)
    return response.text or f"HTTP {response.status_code}"


def _service_headers(service_role_key: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {service_role_key}"}


def _to_auth_user(body: Dict[str, Any]) -> AuthUser:
    return AuthUser(
        id=body["id"],
        email=body.get("email") or "",
        user_metadata=body.get("user_metadata") or {},
    )


class SupabaseIdentityProvider(IdentityProvider):
    def __init__(self, http: httpx.AsyncClient, service_role_key: str) -> None:
        self.http = http
        self.service_role_key = service_role_key

    async def get_user(self, token: str) -> Optional[AuthUser]:
        response = await self.http.get("/auth/v1/user", headers={"Authorization": f"Bearer {token}"})
        if response.status_code != status.HTTP_200_OK:
            return None
        return _to_auth_user(response.json())

    async def create_user(self, email: str, password: str, user_metadata: Dict[str, Any]) -> AuthUser:
        try:
            response = await self.http.post(
                "/auth/v1/admin/users",
                headers=_service_headers(self.service_role_key),
                json={
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": user_metadata,
                },
            )
        except httpx.HTTPError as e:
            raise IdentityError(str(e) or e.__class__.__name__) from e
        if response.is_error:
            raise IdentityError(error_message(response))
        body = response.json()
        # Older GoTrue versions wrap the account in {"user": {...}}
        return _to_auth_user(body.get("user", body))

    async def sign_in(self, email: str, password: str) -> LoginResponse:
        response = await self.http.post(
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.is_error:
            raise IdentityError(error_message(response))
        body = response.json()
        return LoginResponse(
            access_token=body["access_token"],
            token_type=body.get("token_type", "bearer"),
            expires_in=body.get("expires_in", 0),
            user=_to_auth_user(body["user"]),
        )


class SupabaseRecordStore(RecordStore):
    def __init__(self, http: httpx.AsyncClient, service_role_key: str) -> None:
        self.http = http
        self.service_role_key = service_role_key

    async def get_user_role(self, user_id: UUID) -> Optional[str]:
        response = await self.http.get(
            "/rest/v1/user_roles",
            params={"select": "role", "user_id": f"eq.{user_id}"},
            headers={**_service_headers(self.service_role_key), "Accept": PGRST_SINGLE_OBJECT},
        )
        if response.status_code != status.HTTP_200_OK:
            return None
        return response.json().get("role")

    async def insert(self, table: str, values: Dict[str, Any]) -> None:
        try:
            response = await self.http.post(
                f"/rest/v1/{table}",
                headers={**_service_headers(self.service_role_key), "Prefer": "return=minimal"},
                json=jsonable_encoder(values),
            )
        except httpx.HTTPError as e:
            raise StoreError(str(e) or e.__class__.__name__) from e
        if response.is_error:
            raise StoreError(error_message(response))
