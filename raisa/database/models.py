from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text,
)
from sqlalchemy.orm import relationship

from raisa.database.connection import Base
from raisa.utils.helpers import utcnow


# ======================================================
# 🏢 Tabela Client (clientes)
# ======================================================
class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    razao_social_cliente = Column(String, nullable=False)
    vip = Column(Boolean, default=False, nullable=False)
    ativo_cliente = Column(Boolean, default=True, nullable=False)

    vagas = relationship("Vaga", back_populates="cliente")


# ======================================================
# 👥 Tabela Analyst (usuários analistas de R&S)
# ======================================================
class Analyst(Base):
    __tablename__ = "app_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nome_usuario = Column(String, nullable=False)
    email_usuario = Column(String, nullable=True)
    tipo_usuario = Column(String, default="Analista de R&S", nullable=False)
    ativo_usuario = Column(Boolean, default=True, nullable=False)
    stack_experiencia = Column(JSON, default=list)
    taxa_aprovacao_geral = Column(Float, nullable=True)           # 0-100
    tempo_medio_fechamento_dias = Column(Float, nullable=True)

    historico_clientes = relationship(
        "AnalystClientStat", back_populates="analista", cascade="all, delete-orphan"
    )
    ajuste = relationship(
        "AnalystAdjustment", back_populates="analista", uselist=False, cascade="all, delete-orphan"
    )


class AnalystClientStat(Base):
    __tablename__ = "analista_historico_cliente"

    analista_id = Column(Integer, ForeignKey("app_users.id", ondelete="CASCADE"), primary_key=True)
    cliente_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), primary_key=True)
    taxa_aprovacao = Column(Float, nullable=False, default=0)
    vagas_fechadas = Column(Integer, nullable=False, default=0)

    analista = relationship("Analyst", back_populates="historico_clientes")


# ======================================================
# 🎚️ Tabela AnalystAdjustment (ajuste manual corrente)
# ======================================================
class AnalystAdjustment(Base):
    __tablename__ = "analista_ajustes"

    analista_id = Column(Integer, ForeignKey("app_users.id", ondelete="CASCADE"), primary_key=True)
    ativo_para_distribuicao = Column(Boolean, default=True, nullable=False)
    prioridade_distribuicao = Column(String, default="Normal", nullable=False)
    capacidade_maxima_vagas = Column(Integer, nullable=True)
    multiplicador_performance = Column(Float, default=1.0, nullable=False)
    bonus_experiencia = Column(Float, default=0.0, nullable=False)
    fit_stack_override = Column(Float, nullable=True)
    fit_cliente_override = Column(Float, nullable=True)
    observacoes_distribuicao = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)
    atualizado_em = Column(DateTime(timezone=True), default=utcnow)

    analista = relationship("Analyst", back_populates="ajuste")

    # Controle otimista: UPDATE ... WHERE version = :anterior
    __mapper_args__ = {"version_id_col": version}


# ======================================================
# 📜 Histórico de ajustes (append-only)
# ======================================================
class AdjustmentHistory(Base):
    __tablename__ = "historico_ajustes_distribuicao"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tipo_entidade = Column(String, nullable=False)          # analista | vaga | global
    entidade_id = Column(Integer, nullable=True)
    campo_alterado = Column(String, nullable=False)
    valor_anterior = Column(Text, nullable=True)
    valor_novo = Column(Text, nullable=True)
    motivo = Column(Text, nullable=False)
    alterado_por = Column(Integer, nullable=True)
    alterado_por_nome = Column(String, nullable=True)
    alterado_em = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    impacto = relationship("AdjustmentImpact", uselist=False, viewonly=True)


class AdjustmentImpact(Base):
    __tablename__ = "impacto_ajustes"

    historico_id = Column(
        Integer, ForeignKey("historico_ajustes_distribuicao.id", ondelete="CASCADE"), primary_key=True
    )
    media_dias_antes = Column(Float, nullable=True)
    media_dias_depois = Column(Float, nullable=True)
    amostras_antes = Column(Integer, nullable=False, default=0)
    amostras_depois = Column(Integer, nullable=False, default=0)
    impacto = Column(String, nullable=False)                # Positivo | Negativo | Neutro
    calculado_em = Column(DateTime(timezone=True), default=utcnow)


# ======================================================
# 💼 Tabela Vaga (requisições)
# ======================================================
class Vaga(Base):
    __tablename__ = "vagas"

    id = Column(Integer, primary_key=True, autoincrement=True)
    titulo = Column(String, nullable=False)
    descricao = Column(Text, nullable=True)
    descricao_original = Column(Text, nullable=True)
    descricao_melhorada = Column(Text, nullable=True)
    stack_tecnologica = Column(JSON, default=list)
    senioridade = Column(String, nullable=True)
    faturamento_mensal = Column(Float, nullable=True)
    cliente_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    urgente = Column(Boolean, default=False, nullable=False)
    prazo_fechamento = Column(DateTime(timezone=True), nullable=True)
    criado_em = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    status_workflow = Column(String, default="draft", nullable=False)

    analista_id = Column(Integer, ForeignKey("app_users.id"), nullable=True)
    analista_nome = Column(String, nullable=True)

    descricao_aprovada_em = Column(DateTime(timezone=True), nullable=True)
    descricao_aprovada_por = Column(Integer, nullable=True)
    prioridade_aprovada_em = Column(DateTime(timezone=True), nullable=True)
    prioridade_aprovada_por = Column(Integer, nullable=True)
    fechado_em = Column(DateTime(timezone=True), nullable=True)

    # Ajustes de distribuição específicos da vaga
    peso_fit_stack_custom = Column(Float, nullable=True)
    peso_fit_cliente_custom = Column(Float, nullable=True)
    peso_disponibilidade_custom = Column(Float, nullable=True)
    peso_taxa_sucesso_custom = Column(Float, nullable=True)
    analistas_excluidos = Column(JSON, default=list)
    observacoes_distribuicao = Column(Text, nullable=True)

    cliente = relationship("Client", back_populates="vagas")


# ======================================================
# 📊 Scores calculados (append-only, o mais recente vale)
# ======================================================
class PriorityScoreRecord(Base):
    __tablename__ = "vaga_priorizacao"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vaga_id = Column(Integer, ForeignKey("vagas.id", ondelete="CASCADE"), nullable=False, index=True)
    score_prioridade = Column(Integer, nullable=False)
    nivel_prioridade = Column(String, nullable=False)
    sla_dias = Column(Integer, nullable=False)
    justificativa = Column(Text, nullable=True)
    fatores_considerados = Column(JSON, default=dict)
    calculado_em = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class AnalystFitBatch(Base):
    """Cabeçalho de cada recálculo; existe mesmo quando o ranking sai vazio."""
    __tablename__ = "vaga_distribuicao_lote"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lote = Column(String, unique=True, nullable=False)
    vaga_id = Column(Integer, ForeignKey("vagas.id", ondelete="CASCADE"), nullable=False, index=True)
    total_analistas = Column(Integer, nullable=False, default=0)
    calculado_em = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class AnalystFitRecord(Base):
    __tablename__ = "vaga_distribuicao"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vaga_id = Column(Integer, ForeignKey("vagas.id", ondelete="CASCADE"), nullable=False, index=True)
    lote = Column(String, ForeignKey("vaga_distribuicao_lote.lote"), nullable=False, index=True)
    posicao = Column(Integer, nullable=False)
    analista_id = Column(Integer, ForeignKey("app_users.id"), nullable=False)
    analista_nome = Column(String, nullable=False)
    score_match = Column(Integer, nullable=False)
    nivel_adequacao = Column(String, nullable=False)
    justificativa_match = Column(Text, nullable=True)
    fatores_match = Column(JSON, default=dict)
    tempo_estimado_fechamento_dias = Column(Integer, nullable=False)
    recomendacao = Column(String, nullable=False)
    calculado_em = Column(DateTime(timezone=True), default=utcnow, nullable=False)


# ======================================================
# 🔁 Históricos do workflow (append-only)
# ======================================================
class RedistributionRecord(Base):
    __tablename__ = "vaga_redistribuicao_historico"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vaga_id = Column(Integer, ForeignKey("vagas.id", ondelete="CASCADE"), nullable=False, index=True)
    analista_anterior_id = Column(Integer, nullable=True)
    analista_anterior_nome = Column(String, nullable=True)
    analista_novo_id = Column(Integer, nullable=False)
    analista_novo_nome = Column(String, nullable=False)
    motivo = Column(Text, nullable=False)
    redistribuido_por_usuario_id = Column(Integer, nullable=True)
    redistribuido_por_nome = Column(String, nullable=True)
    redistribuido_em = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class DescriptionHistory(Base):
    __tablename__ = "vaga_descricao_historico"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vaga_id = Column(Integer, ForeignKey("vagas.id", ondelete="CASCADE"), nullable=False, index=True)
    descricao_original = Column(Text, nullable=True)
    descricao_melhorada = Column(Text, nullable=True)
    acao = Column(String, nullable=False)                   # aprovado | editado_e_aprovado | rejeitado
    descricao_final = Column(Text, nullable=True)
    aprovado_por_usuario_id = Column(Integer, nullable=True)
    aprovado_por_nome = Column(String, nullable=True)
    aprovado_em = Column(DateTime(timezone=True), default=utcnow, nullable=False)


# ======================================================
# ⚙️ Configuração de distribuição e notificações
# ======================================================
class DistributionConfig(Base):
    __tablename__ = "config_distribuicao"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nome_config = Column(String, nullable=False, default="padrao")
    peso_fit_stack = Column(Float, nullable=False)
    peso_fit_cliente = Column(Float, nullable=False)
    peso_disponibilidade = Column(Float, nullable=False)
    peso_taxa_sucesso = Column(Float, nullable=False)
    ativa = Column(Boolean, default=True, nullable=False)
    atualizado_em = Column(DateTime(timezone=True), default=utcnow)
    atualizado_por = Column(Integer, nullable=True)


class Notification(Base):
    __tablename__ = "notificacoes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    evento = Column(String, nullable=False)
    vaga_id = Column(Integer, nullable=True)
    destinatario_id = Column(Integer, nullable=True)
    perfil_destino = Column(String, nullable=True)
    titulo = Column(String, nullable=False)
    mensagem = Column(Text, nullable=True)
    lida = Column(Boolean, default=False, nullable=False)
    criado_em = Column(DateTime(timezone=True), default=utcnow, nullable=False)
