"""
Data source registry (mounted under /api/data-sources).

Records external feed configuration and sync outcomes; no connector runs here.

POST   /                        — register a source
GET    /                        — list sources (filter by active)
GET    /{source_id}             — detail
PATCH  /{source_id}             — update configuration
DELETE /{source_id}             — remove
POST   /{source_id}/sync-result — record a sync outcome
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_current_user_id
from app.models.database_models import DataSource
from app.models.schemas import (
    DataSourceCreateRequest,
    DataSourceResponse,
    DataSourceUpdateRequest,
    SyncResultRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_user_id)])

MAX_CONSECUTIVE_FAILURES = 3


@router.post("", response_model=DataSourceResponse, status_code=status.HTTP_201_CREATED)
async def create_source(
    body: DataSourceCreateRequest,
    db: AsyncSession = Depends(get_db),
) -> DataSourceResponse:
    source = DataSource(consecutive_failures=0, **body.model_dump())
    db.add(source)
    await db.flush()
    logger.info("Registered data source id=%d system=%s", source.id, source.source_system)
    return DataSourceResponse.model_validate(source)


@router.get("", response_model=List[DataSourceResponse])
async def list_sources(
    is_active: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
) -> List[DataSourceResponse]:
    query = select(DataSource)
    if is_active is not None:
        query = query.where(DataSource.is_active == is_active)
    result = await db.execute(query.order_by(DataSource.source_system, DataSource.id))
    return [DataSourceResponse.model_validate(s) for s in result.scalars().all()]


@router.get("/{source_id}", response_model=DataSourceResponse)
async def get_source(source_id: int, db: AsyncSession = Depends(get_db)) -> DataSourceResponse:
    return DataSourceResponse.model_validate(await _get_source(db, source_id))


@router.patch("/{source_id}", response_model=DataSourceResponse)
async def update_source(
    source_id: int,
    body: DataSourceUpdateRequest,
    db: AsyncSession = Depends(get_db),
) -> DataSourceResponse:
    source = await _get_source(db, source_id)
    updates = body.model_dump(exclude_unset=True)
    for field, value in updates.items():
        setattr(source, field, value)
    # Re-activating a source clears its failure streak
    if updates.get("is_active"):
        source.consecutive_failures = 0
    await db.flush()
    await db.refresh(source)
    return DataSourceResponse.model_validate(source)


@router.delete("/{source_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_source(source_id: int, db: AsyncSession = Depends(get_db)) -> None:
    source = await _get_source(db, source_id)
    await db.delete(source)
    await db.flush()
    logger.info("Deleted data source id=%d", source_id)


@router.post("/{source_id}/sync-result", response_model=DataSourceResponse)
async def record_sync_result(
    source_id: int,
    body: SyncResultRequest,
    db: AsyncSession = Depends(get_db),
) -> DataSourceResponse:
    """
    Record the outcome of a sync run.

    Success resets the failure streak; after 3 consecutive failures the
    source is deactivated.
    """
    source = await _get_source(db, source_id)
    now = datetime.now(timezone.utc)

    if body.success:
        source.last_successful_sync = now
        source.consecutive_failures = 0
    else:
        source.last_failed_sync = now
        source.consecutive_failures = (source.consecutive_failures or 0) + 1
        logger.warning(
            "Sync failed for data source id=%d (%d consecutive): %s",
            source.id, source.consecutive_failures, body.message or "no message",
        )
        if source.consecutive_failures >= MAX_CONSECUTIVE_FAILURES and source.is_active:
            source.is_active = False
            logger.error("Data source id=%d deactivated after %d failures", source.id, source.consecutive_failures)

    await db.flush()
    await db.refresh(source)
    return DataSourceResponse.model_validate(source)


async def _get_source(db: AsyncSession, source_id: int) -> DataSource:
    result = await db.execute(select(DataSource).where(DataSource.id == source_id))
    source = result.scalar_one_or_none()
    if source is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Data source {source_id} not found.")
    return source
