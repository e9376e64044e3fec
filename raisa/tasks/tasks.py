import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Optional, Set

from redis import Redis
from rq import Queue
from rq.job import Job

from raisa.config import settings
from raisa.database.connection import SessionLocal
from raisa.database.repositories import Store
from raisa.errors import RaisaError
from raisa.schemas.vaga import VagaStatus
from raisa.services.ai_service import get_ai_client
from raisa.services.impact import ImpactService
from raisa.services.notifications import (
    EVENTO_REPRIORIZACAO, PERFIL_GESTAO_RS, DatabaseNotifier, safe_notify,
)
from raisa.services.priority import PriorityService
from raisa.services.workflow import WorkflowService
from raisa.utils.helpers import utcnow

logger = logging.getLogger(__name__)

QUEUE_NAME = "default"

# Vagas ativas cuja prioridade é recalculada periodicamente
REPRIORITIZE_STATUSES = (VagaStatus.DISTRIBUTED.value, VagaStatus.IN_PROGRESS.value)


# ======================================================
# 🔧 Contexto seguro para abrir/fechar sessão DB
# ======================================================
@contextmanager
def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ [DB ERROR] {e}")
        raise
    finally:
        db.close()


def get_queue(redis_url: Optional[str] = None) -> Queue:
    redis_conn = Redis.from_url(redis_url or settings.REDIS_URL)
    return Queue(QUEUE_NAME, connection=redis_conn)


# ======================================================
# 🤖 Task 1 - Melhorar descrição da vaga com IA
# ======================================================
def improve_description_task(vaga_id: int, ai=None):
    """
    Pede à IA uma versão melhorada da descrição e deixa a vaga aguardando
    aprovação. Em caso de falha a vaga continua em awaiting_ai_review e o
    erro sobe para o rq marcar o job como falho.
    """
    ai = ai or get_ai_client()
    with get_db() as db:
        store = Store(db)
        vaga = store.vagas.get(vaga_id)
        if not vaga:
            logger.warning(f"⚠️ [improve_description_task] Vaga {vaga_id} não encontrada")
            return None
        if vaga.status_workflow != VagaStatus.AWAITING_AI_REVIEW.value:
            logger.warning(
                f"⚠️ [improve_description_task] Vaga {vaga_id} em '{vaga.status_workflow}'; "
                "revisão da IA ignorada"
            )
            return None

        logger.info(f"🤖 [improve_description_task] Iniciando melhoria da descrição da vaga {vaga_id}")
        try:
            melhorada = ai.improve_description(
                vaga.descricao_original or vaga.descricao or "",
                {
                    "titulo": vaga.titulo,
                    "senioridade": vaga.senioridade,
                    "stack_tecnologica": vaga.stack_tecnologica or [],
                },
            )
        except Exception as e:
            logger.error(f"❌ [improve_description_task] IA falhou para vaga {vaga_id}: {e}")
            raise

        workflow = WorkflowService(store, notifier=DatabaseNotifier(SessionLocal))
        workflow.submit_ai_suggestion(vaga_id, melhorada)
        logger.info(f"✅ [improve_description_task] Sugestão registrada para vaga {vaga_id}")
        return vaga_id


def enqueue_ai_review(vaga_id: int, queue: Optional[Queue] = None):
    q = queue or get_queue()
    job = q.enqueue(improve_description_task, vaga_id)
    logger.info(f"✅ [enqueue_ai_review] Revisão enfileirada para vaga {vaga_id} (job={job.id})")
    return job


# ======================================================
# 🔁 Task 2 - Repriorização dinâmica das vagas ativas
# ======================================================
def reprioritize_open_vagas(store: Store, notifier=None, clock=utcnow) -> dict:
    """Recalcula a prioridade das vagas ativas; notifica quando a faixa muda."""
    service = PriorityService(store, clock)
    resumo = {"recalculadas": 0, "alteradas": 0, "falhas": 0}

    for vaga in store.vagas.list_by_status(REPRIORITIZE_STATUSES):
        anterior = store.priorities.latest(vaga.id)
        try:
            nova = service.compute(vaga.id)
        except RaisaError as e:
            store.rollback()
            resumo["falhas"] += 1
            logger.warning(f"⚠️ [repriorizacao] Vaga {vaga.id} ignorada: {e.detail}")
            continue

        resumo["recalculadas"] += 1
        if anterior and anterior.nivel_prioridade != nova.nivel_prioridade:
            resumo["alteradas"] += 1
            safe_notify(
                notifier,
                EVENTO_REPRIORIZACAO,
                f"Prioridade da vaga '{vaga.titulo}' mudou para {nova.nivel_prioridade}",
                mensagem=f"{anterior.nivel_prioridade} -> {nova.nivel_prioridade}. {nova.justificativa}",
                vaga_id=vaga.id,
                destinatario_id=vaga.analista_id,
                perfil_destino=PERFIL_GESTAO_RS,
            )

    logger.info(f"🔁 [repriorizacao] {resumo}")
    return resumo


def reprioritize_open_vagas_task(reschedule: bool = True):
    with get_db() as db:
        resumo = reprioritize_open_vagas(Store(db), DatabaseNotifier(SessionLocal))

    if reschedule:
        get_queue().enqueue_in(
            timedelta(hours=settings.REPRIORIZACAO_INTERVALO_HORAS),
            reprioritize_open_vagas_task,
        )
    return resumo


# ======================================================
# 📈 Task 3 - Medir impacto dos ajustes manuais
# ======================================================
def measure_adjustment_impact_task(reschedule: bool = True):
    with get_db() as db:
        medidos = ImpactService(Store(db)).measure_pending()
    logger.info(f"📈 [impacto] {len(medidos)} ajustes medidos")

    if reschedule:
        get_queue().enqueue_in(timedelta(days=1), measure_adjustment_impact_task)
    return medidos


# ======================================================
# 🚀 Agenda os jobs periódicos
# ======================================================
PERIODIC_JOBS = (reprioritize_open_vagas_task, measure_adjustment_impact_task)


def _func_name(func) -> str:
    return f"{func.__module__}.{func.__qualname__}"


def pending_periodic_jobs(q: Queue) -> Set[str]:
    """Funções periódicas que já têm job na fila, agendado ou em execução."""
    ids = set(q.get_job_ids())
    ids.update(q.scheduled_job_registry.get_job_ids())
    ids.update(q.started_job_registry.get_job_ids())
    if not ids:
        return set()
    jobs = Job.fetch_many(list(ids), connection=q.connection)
    return {job.func_name for job in jobs if job is not None}


def schedule_periodic_jobs(queue: Optional[Queue] = None):
    """
    Inicia a cadeia de cada job periódico (cada execução se reagenda).
    Cadeias já existentes não são duplicadas quando o worker reinicia.
    """
    q = queue or get_queue()
    pendentes = pending_periodic_jobs(q)
    jobs = []
    for func in PERIODIC_JOBS:
        if _func_name(func) in pendentes:
            logger.info(f"⏭️ {func.__name__} já agendado, mantendo a cadeia existente")
            continue
        jobs.append(q.enqueue(func))
    logger.info(f"🗓️ Jobs periódicos agendados: {[j.id for j in jobs]}")
    return jobs
