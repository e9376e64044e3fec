"""
Calculadora de prioridade de vagas.

Fórmula determinística (a que vale quando não há histórico mais rico):

    score = 50
          + 30 se a vaga é urgente
          + 20 se o cliente é VIP
          + 10 se a vaga está aberta há mais de 15 dias
    score = min(score, 100)

Faixas: >= 80 "Alta" (SLA 7 dias), >= 50 "Média" (SLA 15), abaixo "Baixa"
(SLA 30). Vaga urgente recebe SLA de 7 dias independente do score.

Os sub-fatores de ``raisa.services.scoring`` (urgência, faturamento,
complexidade, tempo em aberto) vão em ``fatores_considerados`` para
transparência; não alteram o número final.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from raisa.database.repositories import Store
from raisa.errors import NotFoundError, RaisaError, StateError
from raisa.schemas.scores import PriorityScore
from raisa.schemas.vaga import ClientSnapshot, VagaSnapshot, VagaStatus
from raisa.services import scoring
from raisa.utils.helpers import days_between, utcnow

logger = logging.getLogger(__name__)

PRIORITY_BASE = 50
URGENT_POINTS = 30
LONG_OPEN_DAYS = 15
LONG_OPEN_POINTS = 10

HIGH_PRIORITY_MIN = 80
MEDIUM_PRIORITY_MIN = 50

NIVEL_ALTA = "Alta"
NIVEL_MEDIA = "Média"
NIVEL_BAIXA = "Baixa"

SLA_DAYS = {
    NIVEL_ALTA: 7,
    NIVEL_MEDIA: 15,
    NIVEL_BAIXA: 30,
}
URGENT_SLA_DAYS = 7


def priority_tier(score: int) -> str:
    if score >= HIGH_PRIORITY_MIN:
        return NIVEL_ALTA
    if score >= MEDIUM_PRIORITY_MIN:
        return NIVEL_MEDIA
    return NIVEL_BAIXA


def sla_days(nivel: str, urgente: bool) -> int:
    if urgente:
        return URGENT_SLA_DAYS
    return SLA_DAYS[nivel]


def compute_priority(
    vaga: VagaSnapshot, client: Optional[ClientSnapshot], now: datetime
) -> PriorityScore:
    """Prioridade de uma vaga a partir dos snapshots (função pura)."""
    dias_aberta = max(0, days_between(vaga.criado_em, now) or 0)
    dias_ate_prazo = days_between(now, vaga.prazo_fechamento)
    vip = bool(client and client.vip)

    raw = PRIORITY_BASE
    motivos = [f"base {PRIORITY_BASE}"]
    if vaga.urgente:
        raw += URGENT_POINTS
        motivos.append(f"+{URGENT_POINTS} vaga urgente")
    boost = scoring.vip_boost(vip)
    if boost:
        raw += boost
        motivos.append(f"+{boost} cliente VIP ({client.nome})")
    if dias_aberta > LONG_OPEN_DAYS:
        raw += LONG_OPEN_POINTS
        motivos.append(f"+{LONG_OPEN_POINTS} aberta há {dias_aberta} dias")

    score = scoring.clamp(raw)
    nivel = priority_tier(score)
    sla = sla_days(nivel, vaga.urgente)

    justificativa = f"Score {score} ({nivel}): " + "; ".join(motivos) + f". SLA sugerido de {sla} dias."
    if raw > score:
        justificativa += f" Soma {raw} limitada a {score}."
    if client is None:
        justificativa += " Cliente não informado: considerado não VIP."

    fatores = {
        "urgencia_prazo": scoring.urgency_score(
            vaga.prazo_fechamento is not None, dias_ate_prazo, vaga.urgente
        ),
        "valor_faturamento": scoring.billing_score(vaga.faturamento_mensal),
        "cliente_vip": vip,
        "tempo_aberto": scoring.time_open_score(dias_aberta),
        "tempo_vaga_aberta": dias_aberta,
        "complexidade_stack": scoring.stack_complexity_score(
            vaga.stack_tecnologica, vaga.senioridade
        ),
        "dias_ate_prazo": dias_ate_prazo,
    }

    return PriorityScore(
        vaga_id=vaga.id,
        score_prioridade=score,
        nivel_prioridade=nivel,
        sla_dias=sla,
        justificativa=justificativa,
        fatores_considerados=fatores,
        calculado_em=now,
    )


def default_priority(vaga_id: int, now: datetime, motivo: str = "") -> PriorityScore:
    """Prioridade de confiança mínima usada quando os dados não puderam ser lidos."""
    justificativa = "Não foi possível carregar os dados da vaga; prioridade padrão aplicada."
    if motivo:
        justificativa += f" ({motivo})"
    return PriorityScore(
        vaga_id=vaga_id,
        score_prioridade=PRIORITY_BASE,
        nivel_prioridade=NIVEL_MEDIA,
        sla_dias=SLA_DAYS[NIVEL_MEDIA],
        justificativa=justificativa,
        fatores_considerados={
            "urgencia_prazo": scoring.NEUTRAL_SCORE,
            "valor_faturamento": scoring.NEUTRAL_SCORE,
            "cliente_vip": False,
            "tempo_aberto": scoring.NEUTRAL_SCORE,
            "tempo_vaga_aberta": 0,
            "complexidade_stack": scoring.NEUTRAL_SCORE,
            "dias_ate_prazo": None,
        },
        calculado_em=now,
    )


def ensure_open(vaga) -> None:
    """Vaga fechada não recebe novos cálculos de prioridade nem de distribuição."""
    if vaga.status_workflow == VagaStatus.CLOSED.value:
        raise StateError(f"Vaga {vaga.id} está fechada; não é possível recalcular")


class PriorityService:
    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def _load(self, vaga_id: int):
        vaga = self.store.vagas.snapshot(self.store.vagas.require(vaga_id))
        client = None
        if vaga.cliente_id is not None:
            client = self.store.clients.get(vaga.cliente_id)
            if client is None:
                raise NotFoundError(f"Cliente {vaga.cliente_id} da vaga {vaga_id} não encontrado")
        else:
            logger.warning(f"⚠️ Vaga {vaga_id} sem cliente vinculado; VIP considerado falso")
        return vaga, client

    def compute(self, vaga_id: int) -> PriorityScore:
        """Calcula e grava (append) uma nova prioridade para a vaga."""
        ensure_open(self.store.vagas.require(vaga_id))
        vaga, client = self._load(vaga_id)
        score = compute_priority(vaga, client, self.clock())
        self.store.priorities.append(score)
        self.store.commit()
        logger.info(
            f"📊 Prioridade calculada para vaga {vaga_id}: "
            f"{score.score_prioridade} ({score.nivel_prioridade}, SLA {score.sla_dias}d)"
        )
        return score

    def latest(self, vaga_id: int) -> Optional[PriorityScore]:
        return self.store.priorities.latest(vaga_id)

    def current(self, vaga_id: int) -> PriorityScore:
        """
        Prioridade para exibição: a última gravada; sem registro, calcula na hora
        sem gravar; se a vaga ou o cliente não puderem ser lidos, devolve a padrão.
        """
        stored = self.store.priorities.latest(vaga_id)
        if stored:
            return stored
        try:
            vaga, client = self._load(vaga_id)
        except RaisaError as e:
            logger.warning(f"⚠️ Prioridade padrão para vaga {vaga_id}: {e.detail}")
            return default_priority(vaga_id, self.clock(), e.detail)
        return compute_priority(vaga, client, self.clock())
