import logging
from typing import List

from fastapi import APIRouter, Depends

from raisa.database.repositories import Store
from raisa.schemas.analyst import ActingUser
from raisa.schemas.scores import (
    AnalystFitScore, DescriptionHistoryOut, PriorityScore, RedistributionOut, VagaAdjustmentIn,
)
from raisa.schemas.vaga import (
    AdvanceIn, AiSuggestionIn, DescriptionDecisionIn, PriorityApprovalIn, RedistributionIn,
    VagaCreate, VagaOut,
)
from raisa.services.adjustments import AdjustmentService
from raisa.services.distribution import DistributionService
from raisa.services.priority import PriorityService
from raisa.services.workflow import WorkflowService
from raisa.utils.deps import get_acting_user, get_enqueuer, get_notifier, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vagas", tags=["Vagas"])


def get_workflow(
    store: Store = Depends(get_store),
    notifier=Depends(get_notifier),
    enqueue=Depends(get_enqueuer),
) -> WorkflowService:
    return WorkflowService(store, notifier=notifier, enqueue_ai_review=enqueue)


# ======================================================
# 📝 Workflow da vaga
# ======================================================
@router.post("/", response_model=VagaOut, status_code=201)
def create_vaga(
    payload: VagaCreate,
    workflow: WorkflowService = Depends(get_workflow),
    actor: ActingUser = Depends(get_acting_user),
):
    return workflow.create_draft(payload, actor)


@router.get("/{vaga_id}", response_model=VagaOut)
def get_vaga(vaga_id: int, workflow: WorkflowService = Depends(get_workflow)):
    return workflow.get(vaga_id)


@router.post("/{vaga_id}/revisao-ia", response_model=VagaOut, status_code=202)
def request_ai_review(
    vaga_id: int,
    workflow: WorkflowService = Depends(get_workflow),
    actor: ActingUser = Depends(get_acting_user),
):
    return workflow.request_ai_review(vaga_id, actor)


@router.post("/{vaga_id}/sugestao-ia", response_model=VagaOut)
def submit_ai_suggestion(
    vaga_id: int,
    payload: AiSuggestionIn,
    workflow: WorkflowService = Depends(get_workflow),
):
    return workflow.submit_ai_suggestion(vaga_id, payload.descricao_melhorada)


@router.post("/{vaga_id}/descricao/aprovacao", response_model=VagaOut)
def approve_description(
    vaga_id: int,
    payload: DescriptionDecisionIn,
    workflow: WorkflowService = Depends(get_workflow),
    actor: ActingUser = Depends(get_acting_user),
):
    return workflow.approve_description(vaga_id, payload.acao, payload.descricao_final, actor)


@router.post("/{vaga_id}/priorizacao", response_model=PriorityScore)
def prioritize(
    vaga_id: int,
    workflow: WorkflowService = Depends(get_workflow),
    actor: ActingUser = Depends(get_acting_user),
):
    return workflow.prioritize(vaga_id, actor)


@router.post("/{vaga_id}/priorizacao/aprovacao", response_model=VagaOut)
def approve_priority(
    vaga_id: int,
    payload: PriorityApprovalIn,
    workflow: WorkflowService = Depends(get_workflow),
    actor: ActingUser = Depends(get_acting_user),
):
    return workflow.approve_priority(vaga_id, actor, payload.analista_id)


@router.post("/{vaga_id}/redistribuicao", response_model=RedistributionOut)
def redistribute(
    vaga_id: int,
    payload: RedistributionIn,
    workflow: WorkflowService = Depends(get_workflow),
    actor: ActingUser = Depends(get_acting_user),
):
    return workflow.redistribute(vaga_id, payload.analista_id, payload.motivo, actor)


@router.post("/{vaga_id}/avancar", response_model=VagaOut)
def advance(
    vaga_id: int,
    payload: AdvanceIn,
    workflow: WorkflowService = Depends(get_workflow),
    actor: ActingUser = Depends(get_acting_user),
):
    return workflow.advance(vaga_id, payload.status, actor)


@router.get("/{vaga_id}/redistribuicoes", response_model=List[RedistributionOut])
def redistribution_history(vaga_id: int, workflow: WorkflowService = Depends(get_workflow)):
    return workflow.redistribution_history(vaga_id)


@router.get("/{vaga_id}/descricoes", response_model=List[DescriptionHistoryOut])
def description_history(vaga_id: int, workflow: WorkflowService = Depends(get_workflow)):
    return workflow.description_history(vaga_id)


# ======================================================
# 📊 Prioridade e recomendação de analistas
# ======================================================
@router.post("/{vaga_id}/prioridade", response_model=PriorityScore)
def compute_priority(vaga_id: int, store: Store = Depends(get_store)):
    return PriorityService(store).compute(vaga_id)


@router.get("/{vaga_id}/prioridade", response_model=PriorityScore)
def current_priority(vaga_id: int, store: Store = Depends(get_store)):
    return PriorityService(store).current(vaga_id)


@router.post("/{vaga_id}/recomendacoes", response_model=List[AnalystFitScore])
def recommend_analysts(vaga_id: int, store: Store = Depends(get_store)):
    return DistributionService(store).recommend(vaga_id)


@router.get("/{vaga_id}/recomendacoes", response_model=List[AnalystFitScore])
def latest_recommendations(vaga_id: int, store: Store = Depends(get_store)):
    return DistributionService(store).latest(vaga_id)


@router.put("/{vaga_id}/ajustes", status_code=204)
def save_vaga_adjustment(
    vaga_id: int,
    payload: VagaAdjustmentIn,
    store: Store = Depends(get_store),
    actor: ActingUser = Depends(get_acting_user),
):
    AdjustmentService(store).save_vaga_adjustment(vaga_id, payload, actor)
