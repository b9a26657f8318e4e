"""
Compilation endpoints: admin management and public listing.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.db.session import get_db
from ewm.schemas.compilation import CompilationDto, NewCompilationDto, UpdateCompilationRequest
from ewm.services import compilation_service
from ewm.services.stats_service import StatsService, get_stats_service

admin_router = APIRouter(prefix="/admin/compilations", tags=["Admin: Compilations"])
public_router = APIRouter(prefix="/compilations", tags=["Public: Compilations"])


@admin_router.post("", response_model=CompilationDto, status_code=status.HTTP_201_CREATED)
async def create_compilation_endpoint(
    data: NewCompilationDto,
    db: AsyncSession = Depends(get_db),
    stats: StatsService = Depends(get_stats_service),
):
    return await compilation_service.create_compilation(db, stats, data)


@admin_router.patch("/{comp_id}", response_model=CompilationDto)
async def update_compilation_endpoint(
    comp_id: int,
    data: UpdateCompilationRequest,
    db: AsyncSession = Depends(get_db),
    stats: StatsService = Depends(get_stats_service),
):
    return await compilation_service.update_compilation(db, stats, comp_id, data)


@admin_router.delete("/{comp_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_compilation_endpoint(comp_id: int, db: AsyncSession = Depends(get_db)):
    await compilation_service.delete_compilation(db, comp_id)


@public_router.get("", response_model=list[CompilationDto])
async def list_compilations_endpoint(
    pinned: Optional[bool] = Query(None),
    from_: int = Query(0, ge=0, alias="from"),
    size: int = Query(10, gt=0),
    db: AsyncSession = Depends(get_db),
    stats: StatsService = Depends(get_stats_service),
):
    return await compilation_service.get_compilations(db, stats, pinned, from_, size)


@public_router.get("/{comp_id}", response_model=CompilationDto)
async def get_compilation_endpoint(
    comp_id: int,
    db: AsyncSession = Depends(get_db),
    stats: StatsService = Depends(get_stats_service),
):
    return await compilation_service.get_compilation(db, stats, comp_id)
