"""
Recomendação de analistas para uma vaga (score de match).

Para cada analista elegível calcula quatro fatores 0-100:

    fit_stack_tecnologica   sobreposição stack do analista x stack da vaga
    fit_cliente             taxa de aprovação com o cliente (ou a geral)
    disponibilidade         1 - carga_atual / capacidade_maxima
    taxa_sucesso_historica  taxa de aprovação geral

    ponderado = Σ(peso × fator) / Σ(pesos)
    score     = clamp(ponderado × multiplicador + bônus + pontos da classe)

Overrides manuais de stack/cliente substituem o fator calculado. Analistas
inativos para distribuição (ou excluídos da vaga) ficam fora da lista.

Desempate: menor carga atual, depois maior taxa de aprovação geral, depois
menor id.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from raisa.config import settings
from raisa.database.repositories import Store
from raisa.errors import NotFoundError
from raisa.schemas.analyst import AdjustmentSnapshot, AnalystSnapshot, PrioridadeDistribuicao
from raisa.schemas.scores import AnalystFitScore, DistributionWeights, PriorityScore
from raisa.schemas.vaga import VagaSnapshot
from raisa.services.priority import ensure_open
from raisa.services.scoring import NEUTRAL_SCORE, clamp
from raisa.utils.helpers import utcnow

logger = logging.getLogger(__name__)

ADEQUACY_TIERS = (
    (85, "Excelente"),
    (65, "Bom"),
    (40, "Regular"),
)
ADEQUACY_LOWEST = "Baixo"

RECOMMENDATION_LABELS = (
    (85, "Altamente Recomendado"),
    (65, "Recomendado"),
    (40, "Adequado"),
)
RECOMMENDATION_LOWEST = "Não Recomendado"

PRIORITY_CLASS_POINTS = {
    PrioridadeDistribuicao.ALTA: 5,
    PrioridadeDistribuicao.NORMAL: 0,
    PrioridadeDistribuicao.BAIXA: -5,
}

DEFAULT_CLOSE_DAYS = 30
# Estimativa = média do analista × (1.5 - score/100): score 100 -> metade, score 0 -> 1.5×
ESTIMATE_SLOWEST_FACTOR = 1.5


def _tier(score: int, tiers, lowest: str) -> str:
    for minimum, label in tiers:
        if score >= minimum:
            return label
    return lowest


def adequacy_tier(score: int) -> str:
    return _tier(score, ADEQUACY_TIERS, ADEQUACY_LOWEST)


def recommendation_label(score: int) -> str:
    return _tier(score, RECOMMENDATION_LABELS, RECOMMENDATION_LOWEST)


def stack_fit(vaga_stack: Iterable[str], analyst_stack: Iterable[str]) -> int:
    required = {s.lower() for s in vaga_stack}
    if not required:
        return NEUTRAL_SCORE
    known = {s.lower() for s in analyst_stack}
    return clamp(100 * len(required & known) / len(required))


def client_fit(analyst: AnalystSnapshot, cliente_id: Optional[int]) -> int:
    history = analyst.historico_aprovacao_cliente.get(cliente_id) if cliente_id is not None else None
    if history is not None:
        return clamp(history.taxa_aprovacao)
    return clamp(analyst.taxa_aprovacao_geral)


def availability(carga_atual: int, capacidade_maxima: int) -> int:
    if capacidade_maxima <= 0:
        return 0
    return clamp(100 * (1 - carga_atual / capacidade_maxima))


def estimated_close_days(score: int, media_dias: Optional[float]) -> int:
    base = media_dias if media_dias and media_dias > 0 else DEFAULT_CLOSE_DAYS
    return max(1, round(base * (ESTIMATE_SLOWEST_FACTOR - score / 100)))


def score_analyst(
    vaga: VagaSnapshot,
    priority: PriorityScore,
    analyst: AnalystSnapshot,
    adjustment: AdjustmentSnapshot,
    weights: DistributionWeights,
    capacidade_default: int,
    now: datetime,
) -> AnalystFitScore:
    stack_calculado = stack_fit(vaga.stack_tecnologica, analyst.stack_experiencia)
    cliente_calculado = client_fit(analyst, vaga.cliente_id)

    fit_stack = (
        clamp(adjustment.fit_stack_override)
        if adjustment.fit_stack_override is not None
        else stack_calculado
    )
    fit_cliente = (
        clamp(adjustment.fit_cliente_override)
        if adjustment.fit_cliente_override is not None
        else cliente_calculado
    )
    capacidade = (
        adjustment.capacidade_maxima_vagas
        if adjustment.capacidade_maxima_vagas is not None
        else capacidade_default
    )
    disponibilidade = availability(analyst.carga_trabalho_atual, capacidade)
    sucesso = clamp(analyst.taxa_aprovacao_geral)

    ponderado = (
        weights.peso_fit_stack * fit_stack
        + weights.peso_fit_cliente * fit_cliente
        + weights.peso_disponibilidade * disponibilidade
        + weights.peso_taxa_sucesso * sucesso
    ) / weights.total
    pontos_classe = PRIORITY_CLASS_POINTS[adjustment.prioridade_distribuicao]
    score = clamp(
        ponderado * adjustment.multiplicador_performance
        + adjustment.bonus_experiencia
        + pontos_classe
    )

    dias = estimated_close_days(score, analyst.tempo_medio_fechamento_dias)
    prazo = "dentro" if dias <= priority.sla_dias else "acima"
    justificativa = (
        f"Stack {fit_stack}%, cliente {fit_cliente}%, disponibilidade {disponibilidade}% "
        f"({analyst.carga_trabalho_atual}/{capacidade} vagas), sucesso {sucesso}%. "
        f"Estimativa de {dias} dias, {prazo} do SLA de {priority.sla_dias} dias "
        f"(prioridade {priority.nivel_prioridade})."
    )

    return AnalystFitScore(
        vaga_id=vaga.id,
        analista_id=analyst.id,
        analista_nome=analyst.nome,
        score_match=score,
        nivel_adequacao=adequacy_tier(score),
        justificativa_match=justificativa,
        fatores_match={
            "fit_stack_tecnologica": fit_stack,
            "fit_cliente": fit_cliente,
            "disponibilidade": disponibilidade,
            "taxa_sucesso_historica": sucesso,
            "ajustes": {
                "fit_stack_calculado": stack_calculado,
                "fit_stack_override": adjustment.fit_stack_override,
                "fit_cliente_calculado": cliente_calculado,
                "fit_cliente_override": adjustment.fit_cliente_override,
                "score_ponderado": round(ponderado, 2),
                "multiplicador_performance": adjustment.multiplicador_performance,
                "bonus_experiencia": adjustment.bonus_experiencia,
                "prioridade_distribuicao": adjustment.prioridade_distribuicao.value,
                "capacidade_maxima_vagas": capacidade,
            },
            "pesos": weights.model_dump(),
        },
        tempo_estimado_fechamento_dias=dias,
        recomendacao=recommendation_label(score),
        calculado_em=now,
    )


def recommend_analysts(
    vaga: VagaSnapshot,
    priority: PriorityScore,
    roster: List[AnalystSnapshot],
    adjustments: Dict[int, AdjustmentSnapshot],
    weights: DistributionWeights,
    now: datetime,
    excluded: Iterable[int] = (),
    capacidade_default: int = settings.CAPACIDADE_MAXIMA_DEFAULT,
) -> List[AnalystFitScore]:
    """Ranking determinístico dos analistas elegíveis (função pura)."""
    excluded_ids = set(excluded or ())
    ranked = []
    for analyst in roster:
        adjustment = adjustments.get(analyst.id) or AdjustmentSnapshot(analista_id=analyst.id)
        if not adjustment.ativo_para_distribuicao or analyst.id in excluded_ids:
            continue
        fit = score_analyst(vaga, priority, analyst, adjustment, weights, capacidade_default, now)
        ranked.append((fit, analyst))

    ranked.sort(
        key=lambda pair: (
            -pair[0].score_match,
            pair[1].carga_trabalho_atual,
            -pair[1].taxa_aprovacao_geral,
            pair[1].id,
        )
    )
    return [fit for fit, _ in ranked]


class DistributionService:
    def __init__(
        self,
        store: Store,
        clock: Callable[[], datetime] = utcnow,
        capacidade_default: int = settings.CAPACIDADE_MAXIMA_DEFAULT,
    ):
        self.store = store
        self.clock = clock
        self.capacidade_default = capacidade_default

    def weights_for(self, vaga) -> DistributionWeights:
        """Pesos customizados da vaga (se os quatro existirem) ou a configuração ativa."""
        custom = (
            vaga.peso_fit_stack_custom,
            vaga.peso_fit_cliente_custom,
            vaga.peso_disponibilidade_custom,
            vaga.peso_taxa_sucesso_custom,
        )
        if all(w is not None for w in custom):
            return DistributionWeights(
                peso_fit_stack=custom[0],
                peso_fit_cliente=custom[1],
                peso_disponibilidade=custom[2],
                peso_taxa_sucesso=custom[3],
            )
        return self.store.distribution_config.active()

    def recommend(self, vaga_id: int) -> List[AnalystFitScore]:
        """Calcula e grava um novo ranking de analistas para a vaga."""
        vaga_row = self.store.vagas.require(vaga_id)
        ensure_open(vaga_row)
        priority = self.store.priorities.latest(vaga_id)
        if priority is None:
            raise NotFoundError(f"Vaga {vaga_id} ainda não tem prioridade calculada")

        vaga = self.store.vagas.snapshot(vaga_row)
        roster = self.store.analysts.roster(self.store.vagas.workload_by_analyst())
        adjustments = self.store.adjustments.snapshots(a.id for a in roster)
        now = self.clock()

        ranking = recommend_analysts(
            vaga,
            priority,
            roster,
            adjustments,
            self.weights_for(vaga_row),
            now,
            excluded=vaga_row.analistas_excluidos or [],
            capacidade_default=self.capacidade_default,
        )
        self.store.fit_scores.append_batch(vaga_id, ranking, now)
        self.store.commit()

        if ranking:
            top = ranking[0]
            logger.info(
                f"🎯 {len(ranking)} analistas ranqueados para vaga {vaga_id}; "
                f"melhor: {top.analista_nome} ({top.score_match}, {top.nivel_adequacao})"
            )
        else:
            logger.warning(f"⚠️ Nenhum analista elegível para a vaga {vaga_id}")
        return ranking

    def latest(self, vaga_id: int) -> List[AnalystFitScore]:
        self.store.vagas.require(vaga_id)
        return self.store.fit_scores.latest_batch(vaga_id)
