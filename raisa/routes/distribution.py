from fastapi import APIRouter, Depends

from raisa.database.repositories import Store
from raisa.schemas.analyst import ActingUser
from raisa.schemas.scores import DistributionConfigIn, DistributionWeights
from raisa.services.adjustments import AdjustmentService
from raisa.utils.deps import get_acting_user, get_store

router = APIRouter(prefix="/config", tags=["Configuração"])


@router.get("/distribuicao", response_model=DistributionWeights)
def get_distribution_config(store: Store = Depends(get_store)):
    return AdjustmentService(store).distribution_config()


@router.put("/distribuicao", response_model=DistributionWeights)
def update_distribution_config(
    payload: DistributionConfigIn,
    store: Store = Depends(get_store),
    actor: ActingUser = Depends(get_acting_user),
):
    return AdjustmentService(store).update_distribution_config(payload, actor)
