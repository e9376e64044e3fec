"""
Repositórios SQLAlchemy do núcleo de priorização e distribuição.

Cada repositório envolve a mesma ``Session`` e devolve snapshots pydantic
imutáveis para os calculadores. Históricos (ajustes, redistribuições,
descrições) só expõem ``append`` e leitura: não há update nem delete.
"""
import logging
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from raisa.database.models import (
    AdjustmentHistory, AdjustmentImpact, Analyst, AnalystAdjustment, AnalystFitBatch, AnalystFitRecord,
    Client, DescriptionHistory, DistributionConfig, PriorityScoreRecord,
    RedistributionRecord, Vaga,
)
from raisa.errors import NotFoundError
from raisa.schemas.analyst import (
    ADJUSTMENT_DEFAULTS, AdjustmentHistoryEntry, AdjustmentSnapshot, AnalystSnapshot,
    ClientHistory,
)
from raisa.schemas.scores import (
    AnalystFitScore, DescriptionHistoryOut, DistributionWeights, PriorityScore,
    RedistributionOut,
)
from raisa.schemas.vaga import ClientSnapshot, VagaSnapshot, VagaStatus

logger = logging.getLogger(__name__)

ANALYST_USER_TYPE = "Analista de R&S"

# Etapas em que a vaga ocupa a capacidade do analista
WORKLOAD_STATUSES = (
    VagaStatus.DISTRIBUTED.value,
    VagaStatus.IN_PROGRESS.value,
    VagaStatus.CVS_SENT.value,
    VagaStatus.INTERVIEWS_SCHEDULED.value,
)


class VagaRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, vaga_id: int, for_update: bool = False) -> Optional[Vaga]:
        q = self.db.query(Vaga).filter(Vaga.id == vaga_id)
        if for_update:
            q = q.with_for_update()
        return q.first()

    def require(self, vaga_id: int, for_update: bool = False) -> Vaga:
        vaga = self.get(vaga_id, for_update=for_update)
        if not vaga:
            raise NotFoundError(f"Vaga {vaga_id} não encontrada")
        return vaga

    def add(self, vaga: Vaga) -> Vaga:
        self.db.add(vaga)
        self.db.flush()
        return vaga

    @staticmethod
    def snapshot(vaga: Vaga) -> VagaSnapshot:
        return VagaSnapshot(
            id=vaga.id,
            titulo=vaga.titulo,
            descricao=vaga.descricao,
            stack_tecnologica=vaga.stack_tecnologica,
            senioridade=vaga.senioridade,
            faturamento_mensal=vaga.faturamento_mensal,
            cliente_id=vaga.cliente_id,
            urgente=vaga.urgente,
            prazo_fechamento=vaga.prazo_fechamento,
            criado_em=vaga.criado_em,
            status_workflow=vaga.status_workflow,
            analista_id=vaga.analista_id,
            analista_nome=vaga.analista_nome,
        )

    def list_by_status(self, statuses: Iterable[str]) -> List[Vaga]:
        return (
            self.db.query(Vaga)
            .filter(Vaga.status_workflow.in_(list(statuses)))
            .order_by(Vaga.id.asc())
            .all()
        )

    def closed_by_analyst_between(
        self, analista_id: int, start: datetime, end: datetime
    ) -> List[Vaga]:
        return (
            self.db.query(Vaga)
            .filter(
                Vaga.analista_id == analista_id,
                Vaga.status_workflow == VagaStatus.CLOSED.value,
                Vaga.fechado_em.isnot(None),
                Vaga.fechado_em >= start,
                Vaga.fechado_em < end,
            )
            .all()
        )

    def workload_by_analyst(self) -> Dict[int, int]:
        rows = (
            self.db.query(Vaga.analista_id, func.count(Vaga.id))
            .filter(
                Vaga.analista_id.isnot(None),
                Vaga.status_workflow.in_(WORKLOAD_STATUSES),
            )
            .group_by(Vaga.analista_id)
            .all()
        )
        return {analista_id: count for analista_id, count in rows}


class ClientRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, client_id: int) -> Optional[ClientSnapshot]:
        client = self.db.query(Client).filter(Client.id == client_id).first()
        if not client:
            return None
        return ClientSnapshot(id=client.id, nome=client.razao_social_cliente, vip=client.vip)


class AnalystRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, analista_id: int) -> Optional[Analyst]:
        return self.db.query(Analyst).filter(Analyst.id == analista_id).first()

    def require(self, analista_id: int) -> Analyst:
        analyst = self.get(analista_id)
        if not analyst:
            raise NotFoundError(f"Analista {analista_id} não encontrado")
        return analyst

    @staticmethod
    def snapshot(analyst: Analyst, workload: int = 0) -> AnalystSnapshot:
        return AnalystSnapshot(
            id=analyst.id,
            nome=analyst.nome_usuario,
            stack_experiencia=analyst.stack_experiencia,
            carga_trabalho_atual=workload,
            historico_aprovacao_cliente={
                h.cliente_id: ClientHistory(
                    taxa_aprovacao=h.taxa_aprovacao or 0.0,
                    vagas_fechadas=h.vagas_fechadas or 0,
                )
                for h in analyst.historico_clientes
            },
            taxa_aprovacao_geral=analyst.taxa_aprovacao_geral,
            tempo_medio_fechamento_dias=analyst.tempo_medio_fechamento_dias,
        )

    def roster(self, workload: Dict[int, int]) -> List[AnalystSnapshot]:
        """Analistas de R&S ativos, com a carga atual já contada."""
        analysts = (
            self.db.query(Analyst)
            .filter(Analyst.tipo_usuario == ANALYST_USER_TYPE, Analyst.ativo_usuario.is_(True))
            .order_by(Analyst.id.asc())
            .all()
        )
        return [self.snapshot(a, workload.get(a.id, 0)) for a in analysts]


class AdjustmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, analista_id: int) -> Optional[AnalystAdjustment]:
        return (
            self.db.query(AnalystAdjustment)
            .filter(AnalystAdjustment.analista_id == analista_id)
            .first()
        )

    def get_or_create(self, analista_id: int, now: datetime) -> AnalystAdjustment:
        """Ajuste corrente do analista; criado com os valores padrão na primeira leitura."""
        adjustment = self.get(analista_id)
        if adjustment is None:
            adjustment = AnalystAdjustment(analista_id=analista_id, atualizado_em=now, **ADJUSTMENT_DEFAULTS)
            self.db.add(adjustment)
            logger.info(f"🆕 Ajuste padrão criado para analista {analista_id}")
        return adjustment

    def snapshot(self, analista_id: int) -> AdjustmentSnapshot:
        adjustment = self.get(analista_id)
        if adjustment is None:
            return AdjustmentSnapshot(analista_id=analista_id)
        return AdjustmentSnapshot.model_validate(adjustment)

    def snapshots(self, analista_ids: Iterable[int]) -> Dict[int, AdjustmentSnapshot]:
        ids = list(analista_ids)
        rows = (
            self.db.query(AnalystAdjustment)
            .filter(AnalystAdjustment.analista_id.in_(ids))
            .all()
        ) if ids else []
        found = {row.analista_id: AdjustmentSnapshot.model_validate(row) for row in rows}
        return {i: found.get(i) or AdjustmentSnapshot(analista_id=i) for i in ids}


class HistoryRepository:
    """Histórico de ajustes: somente inclusão."""

    def __init__(self, db: Session):
        self.db = db

    def append(self, **fields) -> AdjustmentHistory:
        entry = AdjustmentHistory(**fields)
        self.db.add(entry)
        self.db.flush()
        return entry

    def list(
        self,
        tipo_entidade: Optional[str] = None,
        entidade_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[AdjustmentHistoryEntry]:
        q = self.db.query(AdjustmentHistory)
        if tipo_entidade:
            q = q.filter(AdjustmentHistory.tipo_entidade == tipo_entidade)
        if entidade_id is not None:
            q = q.filter(AdjustmentHistory.entidade_id == entidade_id)
        q = q.order_by(AdjustmentHistory.alterado_em.desc(), AdjustmentHistory.id.desc()).limit(limit)
        return [AdjustmentHistoryEntry.model_validate(row) for row in q.all()]

    def count(self) -> int:
        return self.db.query(func.count(AdjustmentHistory.id)).scalar() or 0

    def pending_impact(self, tipo_entidade: str = "analista") -> List[AdjustmentHistory]:
        return (
            self.db.query(AdjustmentHistory)
            .outerjoin(AdjustmentImpact, AdjustmentImpact.historico_id == AdjustmentHistory.id)
            .filter(
                AdjustmentHistory.tipo_entidade == tipo_entidade,
                AdjustmentImpact.historico_id.is_(None),
            )
            .order_by(AdjustmentHistory.id.asc())
            .all()
        )


class ImpactRepository:
    def __init__(self, db: Session):
        self.db = db

    def save(self, historico_id: int, **fields) -> AdjustmentImpact:
        impact = AdjustmentImpact(historico_id=historico_id, **fields)
        self.db.add(impact)
        self.db.flush()
        return impact


class PriorityRepository:
    def __init__(self, db: Session):
        self.db = db

    def append(self, score: PriorityScore) -> PriorityScoreRecord:
        record = PriorityScoreRecord(**score.model_dump())
        self.db.add(record)
        self.db.flush()
        return record

    def latest(self, vaga_id: int) -> Optional[PriorityScore]:
        record = (
            self.db.query(PriorityScoreRecord)
            .filter(PriorityScoreRecord.vaga_id == vaga_id)
            .order_by(PriorityScoreRecord.calculado_em.desc(), PriorityScoreRecord.id.desc())
            .first()
        )
        return PriorityScore.model_validate(record) if record else None


class FitScoreRepository:
    def __init__(self, db: Session):
        self.db = db

    def append_batch(self, vaga_id: int, scores: List[AnalystFitScore], calculado_em: datetime) -> str:
        """
        Grava um ranking completo sob o mesmo lote; devolve o id do lote.
        Ranking vazio também gera lote, para substituir o anterior.
        """
        lote = str(uuid.uuid4())
        self.db.add(
            AnalystFitBatch(lote=lote, vaga_id=vaga_id, total_analistas=len(scores), calculado_em=calculado_em)
        )
        for posicao, score in enumerate(scores, start=1):
            self.db.add(AnalystFitRecord(lote=lote, posicao=posicao, **score.model_dump()))
        self.db.flush()
        return lote

    def latest_batch(self, vaga_id: int) -> List[AnalystFitScore]:
        newest = (
            self.db.query(AnalystFitBatch)
            .filter(AnalystFitBatch.vaga_id == vaga_id)
            .order_by(AnalystFitBatch.calculado_em.desc(), AnalystFitBatch.id.desc())
            .first()
        )
        if not newest or not newest.total_analistas:
            return []
        rows = (
            self.db.query(AnalystFitRecord)
            .filter(AnalystFitRecord.lote == newest.lote)
            .order_by(AnalystFitRecord.posicao.asc())
            .all()
        )
        return [AnalystFitScore.model_validate(row) for row in rows]


class RedistributionRepository:
    """Trilha de redistribuições: somente inclusão."""

    def __init__(self, db: Session):
        self.db = db

    def append(self, **fields) -> RedistributionRecord:
        record = RedistributionRecord(**fields)
        self.db.add(record)
        self.db.flush()
        return record

    def list_for_vaga(self, vaga_id: int) -> List[RedistributionOut]:
        rows = (
            self.db.query(RedistributionRecord)
            .filter(RedistributionRecord.vaga_id == vaga_id)
            .order_by(RedistributionRecord.redistribuido_em.desc(), RedistributionRecord.id.desc())
            .all()
        )
        return [RedistributionOut.model_validate(row) for row in rows]


class DescriptionHistoryRepository:
    def __init__(self, db: Session):
        self.db = db

    def append(self, **fields) -> DescriptionHistory:
        record = DescriptionHistory(**fields)
        self.db.add(record)
        self.db.flush()
        return record

    def list_for_vaga(self, vaga_id: int) -> List[DescriptionHistoryOut]:
        rows = (
            self.db.query(DescriptionHistory)
            .filter(DescriptionHistory.vaga_id == vaga_id)
            .order_by(DescriptionHistory.aprovado_em.desc(), DescriptionHistory.id.desc())
            .all()
        )
        return [DescriptionHistoryOut.model_validate(row) for row in rows]


class DistributionConfigRepository:
    def __init__(self, db: Session):
        self.db = db

    def active(self) -> DistributionWeights:
        config = (
            self.db.query(DistributionConfig)
            .filter(DistributionConfig.ativa.is_(True))
            .order_by(DistributionConfig.id.desc())
            .first()
        )
        if not config:
            return DistributionWeights()
        return DistributionWeights.model_validate(config)

    def replace(self, weights: DistributionWeights, usuario_id: Optional[int], now: datetime) -> None:
        """Desativa a configuração vigente e grava a nova como ativa."""
        self.db.query(DistributionConfig).filter(DistributionConfig.ativa.is_(True)).update(
            {DistributionConfig.ativa: False}, synchronize_session=False
        )
        self.db.add(
            DistributionConfig(
                nome_config="padrao",
                ativa=True,
                atualizado_em=now,
                atualizado_por=usuario_id,
                **weights.model_dump(),
            )
        )
        self.db.flush()


class Store:
    """
    Unidade de trabalho: todos os repositórios sobre uma mesma sessão.
    Os serviços recebem um Store, nunca um cliente global.
    """

    def __init__(self, db: Session):
        self.db = db
        self.vagas = VagaRepository(db)
        self.clients = ClientRepository(db)
        self.analysts = AnalystRepository(db)
        self.adjustments = AdjustmentRepository(db)
        self.history = HistoryRepository(db)
        self.impacts = ImpactRepository(db)
        self.priorities = PriorityRepository(db)
        self.fit_scores = FitScoreRepository(db)
        self.redistributions = RedistributionRepository(db)
        self.descriptions = DescriptionHistoryRepository(db)
        self.distribution_config = DistributionConfigRepository(db)

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
