"""Registration and login routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    UserSummary,
)
from errors import AuthError, ConflictError, ValidationError
from services.auth import AuthService, build_default_auth_service

router = APIRouter(tags=["auth"])


def get_auth_service() -> AuthService:
    return build_default_auth_service()


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
    summary="Create a dashboard account.",
)
async def register(
    payload: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    try:
        user = service.register(
            username=payload.username,
            email=payload.email,
            phone_number=payload.phone_number,
            password=payload.password,
            role=payload.role,
        )
    except (ValidationError, ConflictError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return RegisterResponse(
        message="User registered successfully",
        user=UserSummary(username=user.username, email=user.email, role=user.role),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Exchange credentials for a signed session token.",
)
async def login(
    payload: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    try:
        user, token = service.login(payload.username, payload.password)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    return LoginResponse(
        message="Login successful",
        token=token,
        user=UserSummary(username=user.username, email=user.email, role=user.role),
    )
