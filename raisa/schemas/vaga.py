from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from raisa.utils.helpers import as_utc, normalize_stack


class VagaStatus(str, Enum):
    """Etapas do workflow da vaga, na ordem em que são percorridas."""

    DRAFT = "draft"
    AWAITING_AI_REVIEW = "awaiting_ai_review"
    AWAITING_DESCRIPTION_APPROVAL = "awaiting_description_approval"
    DESCRIPTION_APPROVED = "description_approved"
    AWAITING_PRIORITY_APPROVAL = "awaiting_priority_approval"
    DISTRIBUTED = "distributed"
    IN_PROGRESS = "in_progress"
    CVS_SENT = "cvs_sent"
    INTERVIEWS_SCHEDULED = "interviews_scheduled"
    CLOSED = "closed"


class Senioridade(str, Enum):
    JUNIOR = "Junior"
    PLENO = "Pleno"
    SENIOR = "Senior"
    ESPECIALISTA = "Especialista"


_SENIORIDADE_ALIASES = {
    "junior": Senioridade.JUNIOR,
    "júnior": Senioridade.JUNIOR,
    "jr": Senioridade.JUNIOR,
    "pleno": Senioridade.PLENO,
    "pl": Senioridade.PLENO,
    "senior": Senioridade.SENIOR,
    "sênior": Senioridade.SENIOR,
    "sr": Senioridade.SENIOR,
    "especialista": Senioridade.ESPECIALISTA,
    "specialist": Senioridade.ESPECIALISTA,
}


def parse_senioridade(value) -> Optional[Senioridade]:
    """Converte o texto livre do banco; valores desconhecidos viram None."""
    if value is None or isinstance(value, Senioridade):
        return value
    return _SENIORIDADE_ALIASES.get(str(value).strip().lower())


class ClientSnapshot(BaseModel):
    id: int
    nome: str = "Cliente não informado"
    vip: bool = False

    model_config = {"frozen": True}

    @field_validator("vip", mode="before")
    @classmethod
    def _vip_default(cls, v):
        return bool(v) if v is not None else False


class VagaSnapshot(BaseModel):
    """
    Retrato imutável da vaga usado pelos calculadores.
    Campos opcionais do banco já chegam normalizados aqui.
    """

    id: int
    titulo: str
    descricao: Optional[str] = None
    stack_tecnologica: List[str] = Field(default_factory=list)
    senioridade: Optional[Senioridade] = None
    faturamento_mensal: Optional[float] = None
    cliente_id: Optional[int] = None
    urgente: bool = False
    prazo_fechamento: Optional[datetime] = None
    criado_em: datetime
    status_workflow: VagaStatus = VagaStatus.DRAFT
    analista_id: Optional[int] = None
    analista_nome: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator("stack_tecnologica", mode="before")
    @classmethod
    def _stack(cls, v):
        return normalize_stack(v)

    @field_validator("senioridade", mode="before")
    @classmethod
    def _senioridade(cls, v):
        return parse_senioridade(v)

    @field_validator("urgente", mode="before")
    @classmethod
    def _urgente(cls, v):
        return bool(v) if v is not None else False

    @field_validator("prazo_fechamento", "criado_em", mode="after")
    @classmethod
    def _utc(cls, v):
        return as_utc(v)


# ======================================================
# 📥 Payloads da API
# ======================================================
class VagaCreate(BaseModel):
    titulo: str = Field(..., min_length=2)
    descricao: str = ""
    stack_tecnologica: List[str] = Field(default_factory=list)
    senioridade: Optional[str] = None
    faturamento_mensal: Optional[float] = None
    cliente_id: Optional[int] = None
    urgente: bool = False
    prazo_fechamento: Optional[datetime] = None


class VagaOut(BaseModel):
    id: int
    titulo: str
    descricao: Optional[str] = None
    descricao_original: Optional[str] = None
    descricao_melhorada: Optional[str] = None
    stack_tecnologica: List[str] = Field(default_factory=list)
    senioridade: Optional[str] = None
    faturamento_mensal: Optional[float] = None
    cliente_id: Optional[int] = None
    urgente: bool = False
    prazo_fechamento: Optional[datetime] = None
    criado_em: datetime
    status_workflow: VagaStatus
    analista_id: Optional[int] = None
    analista_nome: Optional[str] = None
    fechado_em: Optional[datetime] = None
    dias_vaga_aberta: Optional[int] = None

    model_config = {"from_attributes": True}


class AiSuggestionIn(BaseModel):
    descricao_melhorada: str = Field(..., min_length=1)


class DescriptionDecisionIn(BaseModel):
    acao: str = Field(..., description="aprovado | editado_e_aprovado | rejeitado")
    descricao_final: Optional[str] = None


class PriorityApprovalIn(BaseModel):
    analista_id: Optional[int] = None


class RedistributionIn(BaseModel):
    analista_id: int
    motivo: str = ""


class AdvanceIn(BaseModel):
    status: VagaStatus
