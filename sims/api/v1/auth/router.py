from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status

from sims.auth.dependencies import Backend, get_backend
from sims.auth.schemas import LoginRequest, LoginResponse
from sims.core.exceptions import IdentityError

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=http_status.HTTP_200_OK,
)
async def login(
    payload: LoginRequest,
    backend: Backend = Depends(get_backend),
) -> LoginResponse:
    """Password sign-in. The returned access_token is the bearer token for the bulk import routes."""
    try:
        return await backend.identity.sign_in(payload.email, payload.password)
    except IdentityError as e:
        raise HTTPException(status_code=http_status.HTTP_401_UNAUTHORIZED, detail=e.message)
