from typing import Annotated

from fastapi import APIRouter, Depends

from finance_tracker.api.dependencies import CurrentPrincipal, get_auth_service
from finance_tracker.api.schemas import AuthOut, LoginRequest, MeOut, RegisterRequest
from finance_tracker.services.auth import AuthService

router = APIRouter(tags=["auth"])


@router.post("/auth/register", response_model=AuthOut)
async def register(
    req: RegisterRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthOut:
    token, principal = await auth_service.register(req.email, req.password, name=req.name)
    return AuthOut(token=token, user=principal)


@router.post("/auth/login", response_model=AuthOut)
async def login(
    req: LoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthOut:
    token, principal = await auth_service.login(req.email, req.password)
    return AuthOut(token=token, user=principal)


@router.get("/auth/me", response_model=MeOut)
async def me(principal: CurrentPrincipal) -> MeOut:
    return MeOut(user=principal)
