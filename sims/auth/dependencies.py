from contextlib import asynccontextmanager
from typing import AsyncGenerator, NamedTuple, Optional

from fastapi import Header, Request

from sims.auth.provider import DatabaseIdentityProvider, IdentityProvider
from sims.core.config import settings
from sims.db.session import get_db
from sims.db.store import DatabaseRecordStore, RecordStore
from sims.integrations.supabase import (
    SupabaseIdentityProvider,
    SupabaseRecordStore,
    create_supabase_http_client,
)


class Backend(NamedTuple):
    identity: IdentityProvider
    store: RecordStore


async def get_backend(request: Request) -> AsyncGenerator[Backend, None]:
    """Identity provider and record store for this request, chosen by BACKEND.

    The database session is opened here instead of through Depends(get_db) so
    that Supabase requests never touch DATABASE_URL. Overrides of get_db
    (tests) are still honoured.
    """
    if settings.backend == "supabase":
        key = settings.supabase_service_role_key or ""
        async with create_supabase_http_client() as http:
            yield Backend(SupabaseIdentityProvider(http, key), SupabaseRecordStore(http, key))
    else:
        open_session = request.app.dependency_overrides.get(get_db, get_db)
        async with asynccontextmanager(open_session)() as db:
            yield Backend(DatabaseIdentityProvider(db), DatabaseRecordStore(db))


def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Raw token from the Authorization header; None when the header is absent."""
    if authorization is None or not authorization.strip():
        return None
    return authorization.replace("Bearer ", "", 1).strip()
