from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from raisa.utils.helpers import normalize_stack


class PrioridadeDistribuicao(str, Enum):
    ALTA = "Alta"
    NORMAL = "Normal"
    BAIXA = "Baixa"


class ActingUser(BaseModel):
    """Usuário que executa a ação (registrado nas trilhas de auditoria)."""

    id: Optional[int] = None
    nome: str = "Sistema"


class ClientHistory(BaseModel):
    taxa_aprovacao: float = 0.0
    vagas_fechadas: int = 0

    model_config = {"frozen": True}


class AnalystSnapshot(BaseModel):
    id: int
    nome: str
    stack_experiencia: List[str] = Field(default_factory=list)
    carga_trabalho_atual: int = 0
    historico_aprovacao_cliente: Dict[int, ClientHistory] = Field(default_factory=dict)
    taxa_aprovacao_geral: float = 0.0
    tempo_medio_fechamento_dias: Optional[float] = None

    model_config = {"frozen": True}

    @field_validator("stack_experiencia", mode="before")
    @classmethod
    def _stack(cls, v):
        return normalize_stack(v)

    @field_validator("taxa_aprovacao_geral", mode="before")
    @classmethod
    def _taxa(cls, v):
        return 0.0 if v is None else v

    @field_validator("carga_trabalho_atual", mode="before")
    @classmethod
    def _carga(cls, v):
        return max(0, int(v or 0))


class AdjustmentSnapshot(BaseModel):
    """Ajuste manual corrente de um analista (valores padrão = sem ajuste)."""

    analista_id: int
    ativo_para_distribuicao: bool = True
    prioridade_distribuicao: PrioridadeDistribuicao = PrioridadeDistribuicao.NORMAL
    capacidade_maxima_vagas: Optional[int] = None
    multiplicador_performance: float = 1.0
    bonus_experiencia: float = 0.0
    fit_stack_override: Optional[float] = None
    fit_cliente_override: Optional[float] = None
    observacoes_distribuicao: Optional[str] = None
    version: int = 0

    model_config = {"frozen": True, "from_attributes": True}


class AdjustmentFields(BaseModel):
    """
    Campos aceitos em "salvar ajuste". Somente os campos enviados são alterados;
    limites seguem as faixas da tela de ajustes.
    """

    ativo_para_distribuicao: Optional[bool] = None
    prioridade_distribuicao: Optional[PrioridadeDistribuicao] = None
    capacidade_maxima_vagas: Optional[int] = Field(default=None, ge=0, le=50)
    multiplicador_performance: Optional[float] = Field(default=None, ge=0.5, le=2.0)
    bonus_experiencia: Optional[float] = Field(default=None, ge=0, le=20)
    fit_stack_override: Optional[float] = Field(default=None, ge=0, le=100)
    fit_cliente_override: Optional[float] = Field(default=None, ge=0, le=100)
    observacoes_distribuicao: Optional[str] = None

    model_config = {"extra": "forbid"}


# Valores de um ajuste recém-criado ou resetado
ADJUSTMENT_DEFAULTS = {
    "ativo_para_distribuicao": True,
    "prioridade_distribuicao": PrioridadeDistribuicao.NORMAL.value,
    "capacidade_maxima_vagas": None,
    "multiplicador_performance": 1.0,
    "bonus_experiencia": 0.0,
    "fit_stack_override": None,
    "fit_cliente_override": None,
    "observacoes_distribuicao": None,
}


class SaveAdjustmentIn(BaseModel):
    campos: Dict[str, object] = Field(default_factory=dict)
    motivo: str = ""
    version: Optional[int] = Field(
        default=None, description="Versão lida pelo cliente; divergência gera 409"
    )


class AdjustmentImpactOut(BaseModel):
    media_dias_antes: Optional[float] = None
    media_dias_depois: Optional[float] = None
    amostras_antes: int = 0
    amostras_depois: int = 0
    impacto: str
    calculado_em: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AdjustmentHistoryEntry(BaseModel):
    id: int
    tipo_entidade: str
    entidade_id: Optional[int] = None
    campo_alterado: str
    valor_anterior: Optional[str] = None
    valor_novo: Optional[str] = None
    motivo: str
    alterado_por: Optional[int] = None
    alterado_por_nome: Optional[str] = None
    alterado_em: datetime
    impacto: Optional[AdjustmentImpactOut] = None

    model_config = {"from_attributes": True, "frozen": True}
