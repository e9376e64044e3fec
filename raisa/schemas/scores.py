from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from raisa.utils.helpers import as_utc


class PriorityScore(BaseModel):
    vaga_id: int
    score_prioridade: int = Field(..., ge=0, le=100)
    nivel_prioridade: str
    sla_dias: int
    justificativa: str
    fatores_considerados: Dict[str, Any] = Field(default_factory=dict)
    calculado_em: datetime

    model_config = {"from_attributes": True, "frozen": True}

    @field_validator("calculado_em", mode="after")
    @classmethod
    def _utc(cls, v):
        return as_utc(v)


class AnalystFitScore(BaseModel):
    vaga_id: int
    analista_id: int
    analista_nome: str
    score_match: int = Field(..., ge=0, le=100)
    nivel_adequacao: str
    justificativa_match: str = ""
    fatores_match: Dict[str, Any] = Field(default_factory=dict)
    tempo_estimado_fechamento_dias: int
    recomendacao: str
    calculado_em: datetime

    model_config = {"from_attributes": True, "frozen": True}

    @field_validator("calculado_em", mode="after")
    @classmethod
    def _utc(cls, v):
        return as_utc(v)


class DistributionWeights(BaseModel):
    """Pesos (em %) dos quatro fatores do match analista x vaga."""

    peso_fit_stack: float = Field(default=40, ge=0, le=100)
    peso_fit_cliente: float = Field(default=30, ge=0, le=100)
    peso_disponibilidade: float = Field(default=20, ge=0, le=100)
    peso_taxa_sucesso: float = Field(default=10, ge=0, le=100)

    model_config = {"frozen": True, "from_attributes": True}

    @model_validator(mode="after")
    def _soma_100(self):
        total = self.total
        if round(total, 6) != 100:
            raise ValueError(f"Soma dos pesos deve ser 100. Atual: {total:g}")
        return self

    @property
    def total(self) -> float:
        return (
            self.peso_fit_stack
            + self.peso_fit_cliente
            + self.peso_disponibilidade
            + self.peso_taxa_sucesso
        )


class VagaAdjustmentIn(BaseModel):
    peso_fit_stack_custom: Optional[float] = Field(default=None, ge=0, le=100)
    peso_fit_cliente_custom: Optional[float] = Field(default=None, ge=0, le=100)
    peso_disponibilidade_custom: Optional[float] = Field(default=None, ge=0, le=100)
    peso_taxa_sucesso_custom: Optional[float] = Field(default=None, ge=0, le=100)
    analistas_excluidos: List[int] = Field(default_factory=list)
    observacoes_distribuicao: Optional[str] = None
    motivo: str = ""


class DistributionConfigIn(BaseModel):
    peso_fit_stack: float
    peso_fit_cliente: float
    peso_disponibilidade: float
    peso_taxa_sucesso: float
    motivo: str = ""


class RedistributionOut(BaseModel):
    id: int
    vaga_id: int
    analista_anterior_id: Optional[int] = None
    analista_anterior_nome: Optional[str] = None
    analista_novo_id: int
    analista_novo_nome: str
    motivo: str
    redistribuido_por_usuario_id: Optional[int] = None
    redistribuido_por_nome: Optional[str] = None
    redistribuido_em: datetime

    model_config = {"from_attributes": True, "frozen": True}


class DescriptionHistoryOut(BaseModel):
    id: int
    vaga_id: int
    descricao_original: Optional[str] = None
    descricao_melhorada: Optional[str] = None
    acao: str
    descricao_final: Optional[str] = None
    aprovado_por_usuario_id: Optional[int] = None
    aprovado_por_nome: Optional[str] = None
    aprovado_em: datetime

    model_config = {"from_attributes": True, "frozen": True}
