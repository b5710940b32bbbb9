"""FastAPI application entrypoint."""

from __future__ import annotations

from datetime import timedelta
import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from coursehub_auth.core.config import Settings, get_settings
from coursehub_auth.core.passwords import PasswordHasher
from coursehub_auth.core.tokens import TokenSigner
from coursehub_auth.errors import ApiError, AuthenticationError, InternalError, ValidationError
from coursehub_auth.repositories.database import Database
from coursehub_auth.routes import auth_router
from coursehub_auth.routes.dependencies import build_identity_verifier
from coursehub_auth.services.auth import LOGIN_FAILED_MESSAGE

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

_OPENAPI_RESPONSE_CODES: dict[str, dict[str, set[str]]] = {
    f"{API_PREFIX}/auth/register": {"post": {"200", "400", "409"}},
    f"{API_PREFIX}/auth/login": {"post": {"200", "401"}},
    f"{API_PREFIX}/auth/federated-login": {"post": {"200", "400", "401", "500"}},
    f"{API_PREFIX}/auth/logout": {"post": {"200"}},
    f"{API_PREFIX}/auth/me": {"get": {"200", "401"}},
    f"{API_PREFIX}/auth/revoke-sessions": {"post": {"200", "401"}},
}

_LOGIN_VALIDATION_PATHS: set[tuple[str, str]] = {
    ("POST", f"{API_PREFIX}/auth/login"),
}

_AUTH_VALIDATION_PATHS: set[tuple[str, str]] = {
    ("POST", f"{API_PREFIX}/auth/register"),
    ("POST", f"{API_PREFIX}/auth/federated-login"),
}


def _apply_contract_response_codes(schema: dict) -> None:
    """Limit documented response codes to the auth contract."""
    for path, methods in _OPENAPI_RESPONSE_CODES.items():
        path_item = schema.get("paths", {}).get(path)
        if not path_item:
            continue

        for method, allowed_codes in methods.items():
            operation = path_item.get(method)
            if not operation:
                continue

            responses = operation.setdefault("responses", {})
            for status_code in list(responses.keys()):
                if status_code not in allowed_codes:
                    responses.pop(status_code, None)

            for status_code in sorted(allowed_codes):
                responses.setdefault(status_code, {"description": "See API contract"})


def _app_relative_path(request: Request) -> str:
    """Full request path below any mount point; independent of how routers record their paths."""
    path = request.url.path
    root_path = request.scope.get("root_path", "")
    if root_path and path.startswith(root_path):
        path = path[len(root_path):]
    return path.rstrip("/") or "/"


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="CourseHub Auth API", version="1.0.0")

    database = Database(settings.database_url)
    database.create_schema()
    app.state.settings = settings
    app.state.database = database
    app.state.token_signer = TokenSigner(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        key_id=settings.jwt_key_id,
        access_ttl=timedelta(seconds=settings.access_token_ttl_seconds),
        refresh_ttl=timedelta(seconds=settings.refresh_token_ttl_seconds),
    )
    app.state.password_hasher = PasswordHasher(
        time_cost=settings.password_hash_time_cost,
        memory_cost=settings.password_hash_memory_cost,
        parallelism=settings.password_hash_parallelism,
    )
    app.state.identity_verifier = build_identity_verifier(settings)

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(SQLAlchemyError)
    async def handle_store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error(
            "store.failed method=%s path=%s error=%s",
            request.method,
            request.url.path,
            type(exc).__name__,
        )
        payload = InternalError().payload
        return JSONResponse(status_code=500, content=payload.model_dump(exclude_none=True))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Login rejects malformed input with the same body as bad credentials.
        route_key = (request.method.upper(), _app_relative_path(request))
        if route_key in _LOGIN_VALIDATION_PATHS:
            payload = AuthenticationError(LOGIN_FAILED_MESSAGE).payload
            return JSONResponse(status_code=401, content=payload.model_dump(exclude_none=True))
        if route_key in _AUTH_VALIDATION_PATHS:
            payload = ValidationError().payload
            return JSONResponse(status_code=400, content=payload.model_dump(exclude_none=True))

        return await request_validation_exception_handler(request, exc)

    app.include_router(auth_router, prefix=API_PREFIX)

    def custom_openapi() -> dict:
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )
        _apply_contract_response_codes(schema)
        app.openapi_schema = schema
        return app.openapi_schema

    app.openapi = custom_openapi

    return app
