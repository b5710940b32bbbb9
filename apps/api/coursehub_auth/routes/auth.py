"""Authentication routes.

Handlers run store I/O, password hashing and provider calls in the worker
thread pool so one slow request never stalls the event loop.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from fastapi.concurrency import run_in_threadpool

from coursehub_auth.domain.context import AuthContext
from coursehub_auth.routes.dependencies import (
    get_auth_service,
    get_authenticated_principal,
    get_request_auth_context,
)
from coursehub_auth.schemas.auth import (
    AuthenticationResponse,
    AuthPrincipal,
    FederatedLoginRequest,
    FederatedLoginResponse,
    LoginRequest,
    RegisterRequest,
    RevokeSessionsResponse,
    UserProfile,
)
from coursehub_auth.schemas.error import ErrorResponse
from coursehub_auth.services.auth import AuthenticationService

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=AuthenticationResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def register(
    payload: RegisterRequest,
    service: Annotated[AuthenticationService, Depends(get_auth_service)],
) -> AuthenticationResponse:
    return await run_in_threadpool(
        lambda: service.register(
            login_id=payload.login_id,
            password=payload.password,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
    )


@router.post(
    "/login",
    response_model=AuthenticationResponse,
    responses={401: {"model": ErrorResponse}},
)
async def login(
    payload: LoginRequest,
    service: Annotated[AuthenticationService, Depends(get_auth_service)],
) -> AuthenticationResponse:
    return await run_in_threadpool(
        lambda: service.authenticate(login_id=payload.login_id, password=payload.password)
    )


@router.post(
    "/federated-login",
    response_model=FederatedLoginResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def federated_login(
    payload: FederatedLoginRequest,
    service: Annotated[AuthenticationService, Depends(get_auth_service)],
) -> FederatedLoginResponse:
    return await run_in_threadpool(lambda: service.federated_login(assertion_token=payload.assertion_token))


@router.post("/logout", status_code=status.HTTP_200_OK, response_class=Response)
async def logout(
    context: Annotated[AuthContext, Depends(get_request_auth_context)],
    service: Annotated[AuthenticationService, Depends(get_auth_service)],
) -> Response:
    service.logout(context)
    return Response(status_code=status.HTTP_200_OK)


@router.get(
    "/me",
    response_model=UserProfile,
    responses={401: {"model": ErrorResponse}},
)
async def me(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[AuthenticationService, Depends(get_auth_service)],
) -> UserProfile:
    return await run_in_threadpool(service.get_profile, principal)


@router.post(
    "/revoke-sessions",
    response_model=RevokeSessionsResponse,
    responses={401: {"model": ErrorResponse}},
)
async def revoke_sessions(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[AuthenticationService, Depends(get_auth_service)],
) -> RevokeSessionsResponse:
    revoked = await run_in_threadpool(service.revoke_sessions, principal)
    return RevokeSessionsResponse(revoked=revoked)
