from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.types import Receive, Scope, Send

from sims.api.v1.auth.router import router as auth_router
from sims.api.v1.bulk_import.router import CORS_HEADERS
from sims.api.v1.bulk_import.router import router as bulk_import_router
from sims.core.config import settings
from sims.core.exceptions import ServiceError
from sims.core.logging import configure_logging


class AppCORSMiddleware(CORSMiddleware):
    """CORS for every route; bulk-import preflights go to the router, which answers an empty 200."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] == "http"
            and scope["method"] == "OPTIONS"
            and scope["path"].startswith(bulk_import_router.prefix)
        ):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    # Raised from dependencies (e.g. a misconfigured backend) before a route can map it
    return JSONResponse({"error": exc.message}, status_code=exc.status_code, headers=CORS_HEADERS)


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(title="School Information Backend")

    # CORS: browser calls from the admin frontend
    app.add_middleware(
        AppCORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ServiceError, service_error_handler)

    # Routers
    app.include_router(auth_router)
    app.include_router(bulk_import_router)

    return app


app = create_app()
