"""
Ajustes manuais de distribuição (analista, vaga e pesos globais).

Toda alteração exige motivo e gera exatamente uma entrada no histórico
``historico_ajustes_distribuicao``. O ajuste do analista é versionado:
duas gravações concorrentes não se sobrepõem, a perdedora recebe
``ConflictError`` e deve recarregar o ajuste antes de tentar de novo.
Vale também para a primeira gravação: se duas sessões criam o ajuste
padrão ao mesmo tempo, a chave primária repetida vira ``ConflictError``.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from raisa.database.repositories import Store
from raisa.errors import ConflictError, RaisaError, ValidationError
from raisa.schemas.analyst import (
    ADJUSTMENT_DEFAULTS, ActingUser, AdjustmentFields, AdjustmentHistoryEntry,
    AdjustmentSnapshot,
)
from raisa.schemas.scores import DistributionConfigIn, DistributionWeights, VagaAdjustmentIn
from raisa.utils.helpers import dump_value, utcnow

logger = logging.getLogger(__name__)

ENTIDADE_ANALISTA = "analista"
ENTIDADE_VAGA = "vaga"
ENTIDADE_GLOBAL = "global"

CAMPO_AJUSTE_MANUAL = "ajuste_manual"
CAMPO_RESET = "reset"
CAMPO_AJUSTE_VAGA = "ajuste_distribuicao_vaga"
CAMPO_PESOS = "pesos_distribuicao"

MOTIVO_RESET = "Resetar ajustes para padrão"

NULLABLE_FIELDS = {
    "capacidade_maxima_vagas",
    "fit_stack_override",
    "fit_cliente_override",
    "observacoes_distribuicao",
}

VAGA_WEIGHT_FIELDS = (
    "peso_fit_stack_custom",
    "peso_fit_cliente_custom",
    "peso_disponibilidade_custom",
    "peso_taxa_sucesso_custom",
)


def require_reason(reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        raise ValidationError("O motivo da alteração é obrigatório")
    return reason.strip()


def _describe_pydantic_error(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(p) for p in item["loc"]) or "campos"
        parts.append(f"{field}: {item['msg']}")
    return "; ".join(parts)


def parse_adjustment_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Valida os campos enviados e devolve somente os informados, já normalizados."""
    try:
        parsed = AdjustmentFields.model_validate(fields or {})
    except PydanticValidationError as e:
        raise ValidationError(f"Ajuste inválido: {_describe_pydantic_error(e)}") from e

    values = parsed.model_dump(mode="json", include=parsed.model_fields_set)
    if not values:
        raise ValidationError("Nenhum campo de ajuste informado")
    for name, value in values.items():
        if value is None and name not in NULLABLE_FIELDS:
            raise ValidationError(f"Ajuste inválido: {name} não pode ser nulo")
    return values


class AdjustmentService:
    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    # ============================================
    # AJUSTES POR ANALISTA
    # ============================================
    def get(self, analista_id: int) -> AdjustmentSnapshot:
        self.store.analysts.require(analista_id)
        return self.store.adjustments.snapshot(analista_id)

    def save(
        self,
        analista_id: int,
        fields: Dict[str, Any],
        reason: str,
        actor: ActingUser,
        expected_version: Optional[int] = None,
    ) -> AdjustmentSnapshot:
        """
        Grava os campos alterados e registra uma entrada no histórico.

        Falha com ``ValidationError`` quando o motivo está vazio ou quando
        nenhum campo difere do ajuste atual (não há o que auditar), e com
        ``ConflictError`` quando outra sessão gravou antes.
        """
        motivo = require_reason(reason)
        values = parse_adjustment_fields(fields)
        self.store.analysts.require(analista_id)
        now = self.clock()

        try:
            adjustment = self.store.adjustments.get_or_create(analista_id, now)
            current_version = adjustment.version or 0
            if expected_version is not None and current_version != expected_version:
                raise ConflictError(
                    f"Ajuste do analista {analista_id} foi alterado por outro usuário "
                    f"(versão {current_version}, esperada {expected_version}). Recarregue e tente novamente."
                )

            anterior = {name: getattr(adjustment, name) for name in values}
            alterados = {name: v for name, v in values.items() if anterior[name] != v}
            if not alterados:
                raise ValidationError("Nenhuma alteração em relação ao ajuste atual")

            for name, value in alterados.items():
                setattr(adjustment, name, value)
            adjustment.atualizado_em = now

            self.store.history.append(
                tipo_entidade=ENTIDADE_ANALISTA,
                entidade_id=analista_id,
                campo_alterado=next(iter(alterados)) if len(alterados) == 1 else CAMPO_AJUSTE_MANUAL,
                valor_anterior=dump_value({k: anterior[k] for k in alterados}),
                valor_novo=dump_value(alterados),
                motivo=motivo,
                alterado_por=actor.id,
                alterado_por_nome=actor.nome,
                alterado_em=now,
            )
            self.store.commit()
        except (StaleDataError, IntegrityError) as e:
            self.store.rollback()
            raise ConflictError(
                f"Ajuste do analista {analista_id} foi alterado concorrentemente. Recarregue e tente novamente."
            ) from e
        except RaisaError:
            self.store.rollback()
            raise
        except Exception as e:
            self.store.rollback()
            logger.error(f"❌ Erro ao gravar ajuste: {e}")
            raise

        logger.info(
            f"🎚️ Ajuste do analista {analista_id} salvo por {actor.nome}: {sorted(alterados)}"
        )
        return self.store.adjustments.snapshot(analista_id)

    def reset(self, analista_id: int, actor: ActingUser) -> AdjustmentSnapshot:
        self.store.analysts.require(analista_id)
        now = self.clock()

        try:
            adjustment = self.store.adjustments.get_or_create(analista_id, now)
            anterior = {name: getattr(adjustment, name) for name in ADJUSTMENT_DEFAULTS}
            for name, value in ADJUSTMENT_DEFAULTS.items():
                setattr(adjustment, name, value)
            adjustment.atualizado_em = now

            self.store.history.append(
                tipo_entidade=ENTIDADE_ANALISTA,
                entidade_id=analista_id,
                campo_alterado=CAMPO_RESET,
                valor_anterior=dump_value(anterior),
                valor_novo=dump_value(ADJUSTMENT_DEFAULTS),
                motivo=MOTIVO_RESET,
                alterado_por=actor.id,
                alterado_por_nome=actor.nome,
                alterado_em=now,
            )
            self.store.commit()
        except (StaleDataError, IntegrityError) as e:
            self.store.rollback()
            raise ConflictError(
                f"Ajuste do analista {analista_id} foi alterado concorrentemente. Recarregue e tente novamente."
            ) from e
        except RaisaError:
            self.store.rollback()
            raise
        except Exception as e:
            self.store.rollback()
            logger.error(f"❌ Erro ao gravar ajuste: {e}")
            raise

        logger.info(f"♻️ Ajustes do analista {analista_id} resetados por {actor.nome}")
        return self.store.adjustments.snapshot(analista_id)

    def history(
        self,
        tipo_entidade: Optional[str] = None,
        entidade_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[AdjustmentHistoryEntry]:
        return self.store.history.list(tipo_entidade, entidade_id, limit)

    # ============================================
    # AJUSTES POR VAGA
    # ============================================
    def save_vaga_adjustment(
        self, vaga_id: int, payload: VagaAdjustmentIn, actor: ActingUser
    ) -> None:
        motivo = require_reason(payload.motivo)
        weights = [getattr(payload, name) for name in VAGA_WEIGHT_FIELDS]
        if any(w is not None for w in weights) and not all(w is not None for w in weights):
            raise ValidationError("Informe os quatro pesos customizados ou nenhum")
        if all(w is not None for w in weights):
            try:
                DistributionWeights(
                    peso_fit_stack=weights[0],
                    peso_fit_cliente=weights[1],
                    peso_disponibilidade=weights[2],
                    peso_taxa_sucesso=weights[3],
                )
            except PydanticValidationError as e:
                raise ValidationError(_describe_pydantic_error(e)) from e

        now = self.clock()
        try:
            vaga = self.store.vagas.require(vaga_id, for_update=True)
            campos = list(VAGA_WEIGHT_FIELDS) + ["analistas_excluidos", "observacoes_distribuicao"]
            anterior = {name: getattr(vaga, name) for name in campos}
            novo = payload.model_dump(include=set(campos))
            novo["analistas_excluidos"] = sorted(set(novo["analistas_excluidos"]))
            for name, value in novo.items():
                setattr(vaga, name, value)

            self.store.history.append(
                tipo_entidade=ENTIDADE_VAGA,
                entidade_id=vaga_id,
                campo_alterado=CAMPO_AJUSTE_VAGA,
                valor_anterior=dump_value(anterior),
                valor_novo=dump_value(novo),
                motivo=motivo,
                alterado_por=actor.id,
                alterado_por_nome=actor.nome,
                alterado_em=now,
            )
            self.store.commit()
        except RaisaError:
            self.store.rollback()
            raise
        except Exception as e:
            self.store.rollback()
            logger.error(f"❌ Erro ao gravar ajuste: {e}")
            raise
        logger.info(f"🎚️ Ajustes de distribuição da vaga {vaga_id} salvos por {actor.nome}")

    # ============================================
    # PESOS GLOBAIS
    # ============================================
    def distribution_config(self) -> DistributionWeights:
        return self.store.distribution_config.active()

    def update_distribution_config(
        self, payload: DistributionConfigIn, actor: ActingUser
    ) -> DistributionWeights:
        motivo = require_reason(payload.motivo)
        try:
            weights = DistributionWeights.model_validate(payload.model_dump(exclude={"motivo"}))
        except PydanticValidationError as e:
            raise ValidationError(_describe_pydantic_error(e)) from e

        now = self.clock()
        try:
            anterior = self.store.distribution_config.active()
            self.store.distribution_config.replace(weights, actor.id, now)
            self.store.history.append(
                tipo_entidade=ENTIDADE_GLOBAL,
                entidade_id=None,
                campo_alterado=CAMPO_PESOS,
                valor_anterior=dump_value(anterior.model_dump()),
                valor_novo=dump_value(weights.model_dump()),
                motivo=motivo,
                alterado_por=actor.id,
                alterado_por_nome=actor.nome,
                alterado_em=now,
            )
            self.store.commit()
        except RaisaError:
            self.store.rollback()
            raise
        except Exception as e:
            self.store.rollback()
            logger.error(f"❌ Erro ao gravar ajuste: {e}")
            raise
        logger.info(f"⚙️ Pesos de distribuição atualizados por {actor.nome}: {weights.model_dump()}")
        return weights
