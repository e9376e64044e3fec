"""
Workflow de 10 etapas da vaga.

    draft -> awaiting_ai_review -> awaiting_description_approval
          -> description_approved -> awaiting_priority_approval -> distributed
          -> in_progress -> cvs_sent -> interviews_scheduled -> closed

A única volta permitida é awaiting_description_approval -> draft (descrição
rejeitada). Redistribuição não muda a etapa: troca o analista e grava a
trilha de auditoria na mesma transação.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, FrozenSet, List, Optional

from raisa.database.models import Vaga
from raisa.database.repositories import Store
from raisa.errors import NotFoundError, StateError, ValidationError
from raisa.schemas.analyst import ActingUser
from raisa.schemas.scores import DescriptionHistoryOut, PriorityScore, RedistributionOut
from raisa.schemas.vaga import VagaCreate, VagaOut, VagaStatus, parse_senioridade
from raisa.services.adjustments import require_reason
from raisa.services.distribution import DistributionService
from raisa.services.notifications import (
    EVENTO_DESCRICAO_PRONTA, EVENTO_PRIORIDADE_PRONTA, EVENTO_VAGA_REDISTRIBUIDA,
    PERFIL_GESTAO_RS, safe_notify,
)
from raisa.services.priority import PriorityService
from raisa.utils.helpers import days_between, normalize_stack, utcnow

logger = logging.getLogger(__name__)

S = VagaStatus

TRANSITIONS: Dict[VagaStatus, FrozenSet[VagaStatus]] = {
    S.DRAFT: frozenset({S.AWAITING_AI_REVIEW}),
    S.AWAITING_AI_REVIEW: frozenset({S.AWAITING_DESCRIPTION_APPROVAL}),
    S.AWAITING_DESCRIPTION_APPROVAL: frozenset({S.DESCRIPTION_APPROVED, S.DRAFT}),
    S.DESCRIPTION_APPROVED: frozenset({S.AWAITING_PRIORITY_APPROVAL}),
    S.AWAITING_PRIORITY_APPROVAL: frozenset({S.DISTRIBUTED}),
    S.DISTRIBUTED: frozenset({S.IN_PROGRESS}),
    S.IN_PROGRESS: frozenset({S.CVS_SENT}),
    S.CVS_SENT: frozenset({S.INTERVIEWS_SCHEDULED}),
    S.INTERVIEWS_SCHEDULED: frozenset({S.CLOSED}),
    S.CLOSED: frozenset(),
}

# Etapas avançadas por ações externas (envio de CVs, agendamento de entrevistas)
EXTERNALLY_ADVANCED = frozenset({S.IN_PROGRESS, S.CVS_SENT, S.INTERVIEWS_SCHEDULED, S.CLOSED})

ACAO_APROVADO = "aprovado"
ACAO_EDITADO = "editado_e_aprovado"
ACAO_REJEITADO = "rejeitado"

DECISION_ALIASES = {
    ACAO_APROVADO: ACAO_APROVADO,
    "approved": ACAO_APROVADO,
    ACAO_EDITADO: ACAO_EDITADO,
    "edited_and_approved": ACAO_EDITADO,
    ACAO_REJEITADO: ACAO_REJEITADO,
    "rejected": ACAO_REJEITADO,
}


def can_transition(current: VagaStatus, target: VagaStatus) -> bool:
    return target in TRANSITIONS[current]


def current_status(vaga: Vaga) -> VagaStatus:
    return VagaStatus(vaga.status_workflow)


def ensure_status(vaga: Vaga, *allowed: VagaStatus, action: str) -> VagaStatus:
    status = current_status(vaga)
    if status not in allowed:
        esperadas = ", ".join(s.value for s in allowed)
        raise StateError(
            f"Não é possível {action} a vaga {vaga.id} na etapa '{status.value}' "
            f"(esperado: {esperadas})"
        )
    return status


def move(vaga: Vaga, target: VagaStatus) -> None:
    status = current_status(vaga)
    if not can_transition(status, target):
        raise StateError(
            f"Transição inválida da vaga {vaga.id}: '{status.value}' -> '{target.value}'"
        )
    vaga.status_workflow = target.value
    logger.info(f"🔀 Vaga {vaga.id}: {status.value} -> {target.value}")


class WorkflowService:
    def __init__(
        self,
        store: Store,
        clock: Callable[[], datetime] = utcnow,
        notifier=None,
        enqueue_ai_review: Optional[Callable[[int], object]] = None,
    ):
        self.store = store
        self.clock = clock
        self.notifier = notifier
        self.enqueue_ai_review = enqueue_ai_review

    def _to_out(self, vaga: Vaga) -> VagaOut:
        out = VagaOut.model_validate(vaga)
        fim = vaga.fechado_em or self.clock()
        return out.model_copy(update={"dias_vaga_aberta": max(0, days_between(vaga.criado_em, fim) or 0)})

    def _commit(self) -> None:
        try:
            self.store.commit()
        except Exception as e:
            self.store.rollback()
            logger.error(f"❌ Erro ao gravar vaga: {e}")
            raise

    # ============================================
    # ETAPA 1: CRIAR VAGA (RASCUNHO)
    # ============================================
    def create_draft(self, payload: VagaCreate, actor: ActingUser) -> VagaOut:
        if payload.cliente_id is not None and self.store.clients.get(payload.cliente_id) is None:
            raise NotFoundError(f"Cliente {payload.cliente_id} não encontrado")

        senioridade = parse_senioridade(payload.senioridade)
        vaga = Vaga(
            titulo=payload.titulo,
            descricao=payload.descricao,
            descricao_original=payload.descricao,
            stack_tecnologica=normalize_stack(payload.stack_tecnologica),
            senioridade=senioridade.value if senioridade else payload.senioridade,
            faturamento_mensal=payload.faturamento_mensal,
            cliente_id=payload.cliente_id,
            urgente=payload.urgente,
            prazo_fechamento=payload.prazo_fechamento,
            criado_em=self.clock(),
            status_workflow=S.DRAFT.value,
        )
        self.store.vagas.add(vaga)
        self._commit()
        logger.info(f"📝 Vaga rascunho criada: {vaga.id} por {actor.nome}")
        return self._to_out(vaga)

    def get(self, vaga_id: int) -> VagaOut:
        return self._to_out(self.store.vagas.require(vaga_id))

    # ============================================
    # ETAPA 2: MELHORAR DESCRIÇÃO COM IA
    # ============================================
    def request_ai_review(self, vaga_id: int, actor: ActingUser) -> VagaOut:
        vaga = self.store.vagas.require(vaga_id, for_update=True)
        status = ensure_status(vaga, S.DRAFT, S.AWAITING_AI_REVIEW, action="enviar para revisão da IA")
        if status == S.DRAFT:
            move(vaga, S.AWAITING_AI_REVIEW)
            self._commit()

        if self.enqueue_ai_review is not None:
            self.enqueue_ai_review(vaga_id)
            logger.info(f"🤖 Revisão de descrição da vaga {vaga_id} enfileirada por {actor.nome}")
        return self._to_out(vaga)

    def submit_ai_suggestion(self, vaga_id: int, descricao_melhorada: str) -> VagaOut:
        if not descricao_melhorada or not descricao_melhorada.strip():
            raise ValidationError("A descrição sugerida pela IA está vazia")

        vaga = self.store.vagas.require(vaga_id, for_update=True)
        ensure_status(vaga, S.AWAITING_AI_REVIEW, action="registrar sugestão da IA para")
        vaga.descricao_melhorada = descricao_melhorada.strip()
        move(vaga, S.AWAITING_DESCRIPTION_APPROVAL)
        self._commit()

        safe_notify(
            self.notifier,
            EVENTO_DESCRICAO_PRONTA,
            f"Descrição da vaga '{vaga.titulo}' pronta para aprovação",
            vaga_id=vaga_id,
            perfil_destino=PERFIL_GESTAO_RS,
        )
        return self._to_out(vaga)

    # ============================================
    # ETAPA 3: APROVAR/EDITAR/REJEITAR DESCRIÇÃO
    # ============================================
    def approve_description(
        self,
        vaga_id: int,
        decision: str,
        final_text: Optional[str],
        actor: ActingUser,
    ) -> VagaOut:
        vaga = self.store.vagas.require(vaga_id, for_update=True)
        ensure_status(vaga, S.AWAITING_DESCRIPTION_APPROVAL, action="aprovar a descrição de")

        acao = DECISION_ALIASES.get((decision or "").strip().lower())
        if acao is None:
            raise ValidationError(
                f"Decisão inválida '{decision}'. Use aprovado, editado_e_aprovado ou rejeitado"
            )
        if acao == ACAO_EDITADO and (not final_text or not final_text.strip()):
            raise ValidationError("Descrição editada é obrigatória para 'editado_e_aprovado'")

        now = self.clock()
        if acao == ACAO_REJEITADO:
            canonica = None
            move(vaga, S.DRAFT)
        else:
            if acao == ACAO_EDITADO:
                canonica = final_text.strip()
            else:
                canonica = vaga.descricao_melhorada or vaga.descricao_original or vaga.descricao
            vaga.descricao = canonica
            vaga.descricao_aprovada_em = now
            vaga.descricao_aprovada_por = actor.id
            move(vaga, S.DESCRIPTION_APPROVED)

        self.store.descriptions.append(
            vaga_id=vaga_id,
            descricao_original=vaga.descricao_original,
            descricao_melhorada=vaga.descricao_melhorada,
            acao=acao,
            descricao_final=canonica,
            aprovado_por_usuario_id=actor.id,
            aprovado_por_nome=actor.nome,
            aprovado_em=now,
        )
        self._commit()
        logger.info(f"✅ Descrição da vaga {vaga_id}: {acao} por {actor.nome}")
        return self._to_out(vaga)

    # ============================================
    # ETAPA 4: PRIORIZAR VAGA
    # ============================================
    def prioritize(self, vaga_id: int, actor: ActingUser) -> PriorityScore:
        vaga = self.store.vagas.require(vaga_id)
        ensure_status(vaga, S.DESCRIPTION_APPROVED, action="priorizar")

        score = PriorityService(self.store, self.clock).compute(vaga_id)
        DistributionService(self.store, self.clock).recommend(vaga_id)

        vaga = self.store.vagas.require(vaga_id, for_update=True)
        move(vaga, S.AWAITING_PRIORITY_APPROVAL)
        self._commit()

        safe_notify(
            self.notifier,
            EVENTO_PRIORIDADE_PRONTA,
            f"Priorização da vaga '{vaga.titulo}' pronta para aprovação",
            mensagem=score.justificativa,
            vaga_id=vaga_id,
            perfil_destino=PERFIL_GESTAO_RS,
        )
        logger.info(f"📊 Vaga {vaga_id} priorizada por {actor.nome}")
        return score

    # ============================================
    # ETAPA 5: APROVAR PRIORIZAÇÃO (E DISTRIBUIR)
    # ============================================
    def approve_priority(
        self, vaga_id: int, actor: ActingUser, analista_id: Optional[int] = None
    ) -> VagaOut:
        vaga = self.store.vagas.require(vaga_id, for_update=True)
        ensure_status(vaga, S.AWAITING_PRIORITY_APPROVAL, action="aprovar a priorização de")
        if self.store.priorities.latest(vaga_id) is None:
            raise StateError(f"Vaga {vaga_id} não tem prioridade calculada para aprovar")

        if analista_id is not None:
            analyst = self.store.analysts.require(analista_id)
            vaga.analista_id, vaga.analista_nome = analyst.id, analyst.nome_usuario
        else:
            ranking = self.store.fit_scores.latest_batch(vaga_id)
            if ranking:
                vaga.analista_id, vaga.analista_nome = ranking[0].analista_id, ranking[0].analista_nome

        vaga.prioridade_aprovada_em = self.clock()
        vaga.prioridade_aprovada_por = actor.id
        move(vaga, S.DISTRIBUTED)
        self._commit()
        logger.info(
            f"✅ Priorização da vaga {vaga_id} aprovada por {actor.nome} "
            f"(analista={vaga.analista_nome or 'não atribuído'})"
        )
        return self._to_out(vaga)

    # ============================================
    # REDISTRIBUIR VAGA (MANUAL)
    # ============================================
    def redistribute(
        self, vaga_id: int, new_analyst_id: int, reason: str, actor: ActingUser
    ) -> RedistributionOut:
        motivo = require_reason(reason)
        vaga = self.store.vagas.require(vaga_id, for_update=True)
        ensure_status(vaga, S.DISTRIBUTED, S.IN_PROGRESS, action="redistribuir")
        analyst = self.store.analysts.require(new_analyst_id)
        if vaga.analista_id == analyst.id:
            raise ValidationError(f"{analyst.nome_usuario} já é o analista responsável pela vaga")

        anterior_id, anterior_nome = vaga.analista_id, vaga.analista_nome
        try:
            record = self.store.redistributions.append(
                vaga_id=vaga_id,
                analista_anterior_id=anterior_id,
                analista_anterior_nome=anterior_nome,
                analista_novo_id=analyst.id,
                analista_novo_nome=analyst.nome_usuario,
                motivo=motivo,
                redistribuido_por_usuario_id=actor.id,
                redistribuido_por_nome=actor.nome,
                redistribuido_em=self.clock(),
            )
            vaga.analista_id, vaga.analista_nome = analyst.id, analyst.nome_usuario
            self.store.commit()
        except Exception:
            self.store.rollback()
            logger.error(f"❌ Falha ao redistribuir vaga {vaga_id}; nada foi gravado")
            raise

        logger.info(
            f"🔁 Vaga {vaga_id} redistribuída: {anterior_nome or 'N/A'} -> "
            f"{analyst.nome_usuario} por {actor.nome}"
        )
        safe_notify(
            self.notifier,
            EVENTO_VAGA_REDISTRIBUIDA,
            f"Vaga '{vaga.titulo}' redistribuída para você",
            mensagem=f"Analista anterior: {anterior_nome or 'N/A'}. Motivo: {motivo}",
            vaga_id=vaga_id,
            destinatario_id=analyst.id,
        )
        return RedistributionOut.model_validate(record)

    # ============================================
    # ETAPAS 7-10: AVANÇAR WORKFLOW
    # ============================================
    def advance(self, vaga_id: int, target: VagaStatus, actor: ActingUser) -> VagaOut:
        target = VagaStatus(target)
        if target not in EXTERNALLY_ADVANCED:
            raise StateError(
                f"A etapa '{target.value}' é alcançada pela sua própria ação, não por avanço manual"
            )
        vaga = self.store.vagas.require(vaga_id, for_update=True)
        move(vaga, target)
        if target == S.CLOSED:
            vaga.fechado_em = self.clock()
        self._commit()
        logger.info(f"⏩ Vaga {vaga_id} avançada para {target.value} por {actor.nome}")
        return self._to_out(vaga)

    # ============================================
    # CONSULTAS
    # ============================================
    def redistribution_history(self, vaga_id: int) -> List[RedistributionOut]:
        self.store.vagas.require(vaga_id)
        return self.store.redistributions.list_for_vaga(vaga_id)

    def description_history(self, vaga_id: int) -> List[DescriptionHistoryOut]:
        self.store.vagas.require(vaga_id)
        return self.store.descriptions.list_for_vaga(vaga_id)
