"""HTTP route definitions for the bin resource and service status."""

from __future__ import annotations

import time
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.schemas import (
    AnalyticsSummary,
    Bin,
    BinCreate,
    BinResponse,
    BinUpdate,
    HealthResponse,
    MessageResponse,
    utcnow,
)
from errors import ConflictError, NotFoundError, ValidationError
from services.bins import BinService, build_default_bin_service

router = APIRouter()

# Efficiency figure shown on the analytics panel until route data exists.
_NOMINAL_EFFICIENCY = 87


def get_bin_service() -> BinService:
    return build_default_bin_service()


@router.get(
    "/bins",
    response_model=list[Bin],
    summary="List every bin ordered by binId.",
)
async def list_bins(service: BinService = Depends(get_bin_service)) -> list[Bin]:
    return service.list_bins()


@router.get(
    "/bins/{bin_id}",
    response_model=Bin,
    summary="Fetch a single bin.",
)
async def get_bin(bin_id: int, service: BinService = Depends(get_bin_service)) -> Bin:
    try:
        return service.get_bin(bin_id)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.post(
    "/bins",
    status_code=status.HTTP_201_CREATED,
    response_model=BinResponse,
    summary="Register a new bin and notify connected dashboards.",
)
async def create_bin(
    payload: BinCreate,
    service: BinService = Depends(get_bin_service),
) -> BinResponse:
    try:
        created = await service.create_bin(
            bin_id=payload.bin_id,
            location=payload.location,
            capacity=payload.capacity,
        )
    except (ValidationError, ConflictError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return BinResponse(message="Bin created successfully", bin=created)


@router.put(
    "/bins/{bin_id}",
    response_model=BinResponse,
    summary="Partially update a bin and notify connected dashboards.",
)
async def update_bin(
    bin_id: int,
    payload: BinUpdate,
    service: BinService = Depends(get_bin_service),
) -> BinResponse:
    try:
        updated = await service.update_bin(bin_id, payload.changes())
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    return BinResponse(message="Bin updated successfully", bin=updated)


@router.delete(
    "/bins/{bin_id}",
    response_model=MessageResponse,
    summary="Remove a bin and notify connected dashboards.",
)
async def delete_bin(
    bin_id: int,
    service: BinService = Depends(get_bin_service),
) -> MessageResponse:
    try:
        await service.delete_bin(bin_id)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    return MessageResponse(message="Bin deleted successfully")


@router.get(
    "/analytics",
    response_model=AnalyticsSummary,
    summary="Approximate fleet summary.",
)
async def analytics(service: BinService = Depends(get_bin_service)) -> AnalyticsSummary:
    bins = service.list_bins()
    total = len(bins)
    average = round(sum(item.fill_level for item in bins) / total) if total else 0
    day_ago = utcnow() - timedelta(days=1)
    collections_today = sum(1 for item in bins if item.last_emptied >= day_ago)
    return AnalyticsSummary(
        total_bins=total,
        average_fill_level=average,
        collections_today=collections_today,
        system_efficiency=_NOMINAL_EFFICIENCY,
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(request: Request) -> HealthResponse:
    started = getattr(request.app.state, "started_at", time.monotonic())
    return HealthResponse(
        status="ok",
        timestamp=utcnow(),
        uptime=round(time.monotonic() - started, 3),
    )


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
