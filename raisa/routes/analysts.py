from typing import List

from fastapi import APIRouter, Depends, Query

from raisa.database.repositories import Store
from raisa.schemas.analyst import (
    ActingUser, AdjustmentHistoryEntry, AdjustmentSnapshot, SaveAdjustmentIn,
)
from raisa.services.adjustments import ENTIDADE_ANALISTA, AdjustmentService
from raisa.utils.deps import get_acting_user, get_store

router = APIRouter(prefix="/analistas", tags=["Ajustes de Analistas"])


@router.get("/{analista_id}/ajustes", response_model=AdjustmentSnapshot)
def get_adjustment(analista_id: int, store: Store = Depends(get_store)):
    return AdjustmentService(store).get(analista_id)


@router.put("/{analista_id}/ajustes", response_model=AdjustmentSnapshot)
def save_adjustment(
    analista_id: int,
    payload: SaveAdjustmentIn,
    store: Store = Depends(get_store),
    actor: ActingUser = Depends(get_acting_user),
):
    return AdjustmentService(store).save(
        analista_id, payload.campos, payload.motivo, actor, expected_version=payload.version
    )


@router.post("/{analista_id}/ajustes/reset", response_model=AdjustmentSnapshot)
def reset_adjustment(
    analista_id: int,
    store: Store = Depends(get_store),
    actor: ActingUser = Depends(get_acting_user),
):
    return AdjustmentService(store).reset(analista_id, actor)


@router.get("/{analista_id}/ajustes/historico", response_model=List[AdjustmentHistoryEntry])
def adjustment_history(
    analista_id: int,
    limit: int = Query(default=50, ge=1, le=500),
    store: Store = Depends(get_store),
):
    return AdjustmentService(store).history(ENTIDADE_ANALISTA, analista_id, limit)
