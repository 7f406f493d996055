"""
Bulk import of teacher, student and guardian accounts by an admin.

Rows are processed one at a time, in input order, and every row yields exactly
one ImportResult. A row's three writes (account, role assignment, profile) are
not transactional: when a later write fails the earlier ones stay in place and
the row's error starts with "User created but ..." so the orphaned account can
be traced.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from pydantic import TypeAdapter, ValidationError

from sims.auth.provider import IdentityProvider
from sims.auth.schemas import AuthUser
from sims.core.config import settings
from sims.core.enums import IMPORTABLE_ROLES, AppRole
from sims.core.exceptions import (
    ForbiddenError,
    IdentityError,
    InvalidArgumentError,
    RowValidationError,
    StoreError,
    UnauthenticatedError,
)
from sims.db.store import RecordStore

from .schemas import BulkImportResponse, ImportResult, ImportRow

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("email", "nama", "password", "role")
MISSING_FIELDS_MESSAGE = "Missing required fields (email, nama, password, role)"
UNKNOWN_EMAIL = "unknown"
ROLE_TABLE = "user_roles"

_row_adapter: TypeAdapter = TypeAdapter(ImportRow)


class StudentNumberGenerator:
    """
    Placeholder student numbers of the form NIS-<epoch millis>.

    Values are strictly increasing for one generator, so two students in the
    same batch never share a number. Batches running concurrently can still
    produce the same value; the unique nis column rejects the second one and
    that row reports a profile failure.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0

    def __call__(self) -> str:
        millis = max(int(self._clock() * 1000), self._last + 1)
        self._last = millis
        return f"NIS-{millis}"


async def authorize_admin(
    identity: IdentityProvider,
    store: RecordStore,
    token: Optional[str],
) -> AuthUser:
    """Resolve the caller from the bearer token and require the admin role."""
    if token is None:
        raise UnauthenticatedError("Missing authorization header")
    caller = await identity.get_user(token) if token else None
    if caller is None:
        raise UnauthenticatedError("Invalid token")
    role = await store.get_user_role(caller.id)
    if role != AppRole.ADMIN.value:
        raise ForbiddenError("Only admins can bulk import users")
    return caller


def validate_batch(users: Any) -> List[Any]:
    if not isinstance(users, list) or not users:
        raise InvalidArgumentError("No users provided")
    if len(users) > settings.bulk_import_max_users:
        raise InvalidArgumentError(f"Maximum {settings.bulk_import_max_users} users per batch")
    return users


def parse_import_row(raw: Dict[str, Any]) -> ImportRow:
    """Typed row for the row's role. Raises RowValidationError before anything is written."""
    role = raw.get("role")
    if not isinstance(role, str) or role not in {r.value for r in IMPORTABLE_ROLES}:
        raise RowValidationError(f"Invalid role: {role}")
    try:
        return _row_adapter.validate_python(raw)
    except ValidationError as e:
        first = e.errors()[0]
        field = first["loc"][-1] if first["loc"] else "row"
        raise RowValidationError(f"Invalid row data: {field}: {first['msg']}") from e


def _row_email(raw: Dict[str, Any]) -> str:
    email = raw.get("email")
    return str(email) if email else UNKNOWN_EMAIL


def _failure(email: str, error: str) -> ImportResult:
    return ImportResult(success=False, email=email, error=error)


async def import_row(
    identity: IdentityProvider,
    store: RecordStore,
    raw: Dict[str, Any],
    next_student_number: Callable[[], str],
) -> ImportResult:
    email = _row_email(raw)
    if any(not raw.get(field) for field in REQUIRED_FIELDS):
        return _failure(email, MISSING_FIELDS_MESSAGE)

    try:
        row = parse_import_row(raw)
    except RowValidationError as e:
        return _failure(email, e.message)

    try:
        account = await identity.create_user(row.email, row.password, {"nama": row.nama})
    except IdentityError as e:
        return _failure(email, e.message)

    user_id: UUID = account.id

    # No rollback from here on: the account exists even if the next writes fail
    try:
        await store.insert(ROLE_TABLE, {"user_id": user_id, "role": row.role})
    except StoreError as e:
        return _failure(email, f"User created but role assignment failed: {e.message}")

    try:
        await store.insert(row.role, row.profile_values(user_id, next_student_number))
    except StoreError as e:
        return _failure(email, f"User created but {row.role} record failed: {e.message}")

    return ImportResult(success=True, email=email)


async def process_batch(
    identity: IdentityProvider,
    store: RecordStore,
    users: Any,
    *,
    caller_id: Optional[UUID] = None,
    next_student_number: Optional[Callable[[], str]] = None,
) -> BulkImportResponse:
    """Validate the batch size, then import every row. Row failures are reported, never raised."""
    rows = validate_batch(users)
    if next_student_number is None:
        next_student_number = StudentNumberGenerator()

    logger.info("Bulk import of %d user(s) requested by %s", len(rows), caller_id)

    results: List[ImportResult] = []
    for index, raw in enumerate(rows):
        raw = raw if isinstance(raw, dict) else {}
        try:
            result = await import_row(identity, store, raw, next_student_number)
        except Exception as e:
            logger.exception("Bulk import row %d raised an unexpected error", index)
            result = _failure(_row_email(raw), str(e) or "Unknown error")
        if not result.success:
            logger.warning("Bulk import row %d (%s) failed: %s", index, result.email, result.error)
        results.append(result)

    success_count = sum(1 for r in results if r.success)
    fail_count = len(results) - success_count
    logger.info("Bulk import finished: %d success, %d failed", success_count, fail_count)

    return BulkImportResponse(
        message=f"Import completed: {success_count} success, {fail_count} failed",
        results=results,
    )


async def import_users(
    identity: IdentityProvider,
    store: RecordStore,
    token: Optional[str],
    users: Any,
) -> BulkImportResponse:
    """Guards (token, admin role, batch size) followed by the per-row import."""
    caller = await authorize_admin(identity, store, token)
    return await process_batch(identity, store, users, caller_id=caller.id)
