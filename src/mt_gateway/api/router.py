"""Auth and person API routers.

All endpoints return ApiResponse. request_id is read from request.state
(injected by RequestLogMiddleware).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mt_common.database import get_db_session
from src.mt_common.enums import Permission
from src.mt_common.response import ApiResponse, success_response
from src.mt_gateway.auth.dependencies import (
    Principal,
    get_current_principal,
    get_revocation_registry,
    oauth2_scheme,
    require_permission,
)
from src.mt_gateway.auth.jwt_handler import ACCESS_TTL
from src.mt_gateway.auth.revocation import RevocationRegistry
from src.mt_gateway.user.db_models import PersonModel
from src.mt_gateway.user.schemas import (
    LoginRequest,
    LogoutRequest,
    PersonInfo,
    RefreshRequest,
    RegisterRequest,
    TokenPairResponse,
)
from src.mt_gateway.user.service import PersonService

router = APIRouter(prefix="/auth", tags=["auth"])
persons_router = APIRouter(tags=["persons"])
_service = PersonService()


def _token_pair(person: PersonModel, access: str, refresh: str) -> TokenPairResponse:
    return TokenPairResponse(
        access_token=access,
        refresh_token=refresh,
        token_type="Bearer",
        expires_in=int(ACCESS_TTL.total_seconds()),
        person=PersonInfo.from_model(person),
    )


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    summary="Person registration",
)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    async with db.begin():
        person = await _service.register(
            body.username, body.email, body.password, body.full_name, db
        )
    return success_response(
        PersonInfo.from_model(person), "Person registered successfully", request
    )


@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Login with username or email",
)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    person, access, refresh = await _service.login(body.identifier, body.password, db)
    return success_response(_token_pair(person, access, refresh), "Login successful", request)


@router.post(
    "/refresh",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Rotate refresh token",
)
async def refresh_token(
    request: Request,
    body: RefreshRequest,
    registry: Annotated[RevocationRegistry, Depends(get_revocation_registry)],
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    person, access, refresh = await _service.refresh(body.refresh_token, registry, db)
    return success_response(_token_pair(person, access, refresh), "Token refreshed", request)


@router.post(
    "/logout",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Revoke the bearer token (and optionally a refresh token)",
)
async def logout(
    request: Request,
    token: Annotated[str, Depends(oauth2_scheme)],
    registry: Annotated[RevocationRegistry, Depends(get_revocation_registry)],
    body: LogoutRequest | None = None,
) -> ApiResponse:
    await _service.logout(token, registry, body.refresh_token if body else None)
    return success_response(None, "Logged out", request)


@persons_router.get("/persons/me", response_model=ApiResponse)
async def get_me(
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    person = await _service.get_person(principal.person_id, db)
    return success_response(PersonInfo.from_model(person), request=request)


@persons_router.get("/admin/persons", response_model=ApiResponse)
async def list_persons(
    request: Request,
    _: Annotated[Principal, Depends(require_permission(Permission.PERSONS_READ_ALL))],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    persons = await _service.list_persons(db, limit, offset)
    return success_response([PersonInfo.from_model(p) for p in persons], request=request)
