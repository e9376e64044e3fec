"""
Medição do impacto real dos ajustes manuais.

Para cada ajuste de analista ainda sem impacto compara o tempo médio de
fechamento (criação -> fechamento) das vagas do analista fechadas na janela
anterior e na janela posterior ao ajuste. O resultado vai para
``impacto_ajustes``; a linha do histórico nunca é alterada.
"""
import logging
from datetime import datetime, timedelta
from statistics import mean
from typing import Callable, List, Optional

from raisa.config import settings
from raisa.database.repositories import Store
from raisa.services.adjustments import ENTIDADE_ANALISTA
from raisa.utils.helpers import as_utc, days_between, utcnow

logger = logging.getLogger(__name__)

IMPACTO_POSITIVO = "Positivo"
IMPACTO_NEGATIVO = "Negativo"
IMPACTO_NEUTRO = "Neutro"

# Fechar em até 90% do tempo anterior é melhora; a partir de 110% é piora
POSITIVE_RATIO = 0.9
NEGATIVE_RATIO = 1.1


def classify_impact(media_antes: Optional[float], media_depois: Optional[float]) -> str:
    if not media_antes or media_depois is None:
        return IMPACTO_NEUTRO
    if media_depois <= media_antes * POSITIVE_RATIO:
        return IMPACTO_POSITIVO
    if media_depois >= media_antes * NEGATIVE_RATIO:
        return IMPACTO_NEGATIVO
    return IMPACTO_NEUTRO


def average_close_days(vagas) -> Optional[float]:
    dias = [days_between(v.criado_em, v.fechado_em) for v in vagas]
    dias = [d for d in dias if d is not None]
    return round(mean(dias), 2) if dias else None


class ImpactService:
    def __init__(
        self,
        store: Store,
        clock: Callable[[], datetime] = utcnow,
        janela_dias: int = settings.IMPACTO_JANELA_DIAS,
        min_amostras: int = settings.IMPACTO_MIN_AMOSTRAS,
    ):
        self.store = store
        self.clock = clock
        self.janela = timedelta(days=janela_dias)
        self.min_amostras = min_amostras

    def measure_pending(self) -> List[int]:
        """Mede os ajustes pendentes que já têm amostras suficientes; devolve os ids medidos."""
        now = self.clock()
        medidos = []
        for entry in self.store.history.pending_impact(ENTIDADE_ANALISTA):
            if entry.entidade_id is None:
                continue
            alterado_em = as_utc(entry.alterado_em)
            antes = self.store.vagas.closed_by_analyst_between(
                entry.entidade_id, alterado_em - self.janela, alterado_em
            )
            depois = self.store.vagas.closed_by_analyst_between(
                entry.entidade_id, alterado_em, min(alterado_em + self.janela, now)
            )
            if len(depois) < self.min_amostras:
                logger.debug(
                    f"Ajuste {entry.id}: {len(depois)}/{self.min_amostras} amostras após a mudança"
                )
                continue

            media_antes = average_close_days(antes)
            media_depois = average_close_days(depois)
            impacto = classify_impact(media_antes, media_depois)
            self.store.impacts.save(
                entry.id,
                media_dias_antes=media_antes,
                media_dias_depois=media_depois,
                amostras_antes=len(antes),
                amostras_depois=len(depois),
                impacto=impacto,
                calculado_em=now,
            )
            medidos.append(entry.id)
            logger.info(
                f"📈 Impacto do ajuste {entry.id} (analista {entry.entidade_id}): {impacto} "
                f"({media_antes} -> {media_depois} dias)"
            )

        if medidos:
            self.store.commit()
        return medidos
