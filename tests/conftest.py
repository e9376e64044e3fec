import os
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

os.environ.setdefault("SUPABASE_DB_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from raisa.database.connection import Base
from raisa.database.models import Analyst, AnalystClientStat, Client, Vaga
from raisa.database.repositories import Store
from raisa.schemas.analyst import ActingUser

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return Store(db)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def actor():
    return ActingUser(id=900, nome="Gestora R&S")


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def make_client(db):
    def _make(nome="Banco XPTO", vip=False):
        client = Client(razao_social_cliente=nome, vip=vip)
        db.add(client)
        db.commit()
        return client

    return _make


@pytest.fixture
def make_analyst(db):
    def _make(nome="Ana", stack=None, taxa=70.0, tempo_medio=20.0, clientes=None, **kwargs):
        analyst = Analyst(
            nome_usuario=nome,
            stack_experiencia=stack if stack is not None else ["Python", "SQL"],
            taxa_aprovacao_geral=taxa,
            tempo_medio_fechamento_dias=tempo_medio,
            **kwargs,
        )
        db.add(analyst)
        db.flush()
        for cliente_id, taxa_cliente in (clientes or {}).items():
            db.add(AnalystClientStat(analista_id=analyst.id, cliente_id=cliente_id, taxa_aprovacao=taxa_cliente))
        db.commit()
        return analyst

    return _make


@pytest.fixture
def make_vaga(db):
    def _make(titulo="Dev Python", dias_aberta=0, status="draft", **kwargs):
        fields = {
            "criado_em": NOW - timedelta(days=dias_aberta),
            "descricao": "Vaga para desenvolvedor backend",
            "descricao_original": "Vaga para desenvolvedor backend",
            "stack_tecnologica": ["Python", "SQL"],
            "senioridade": "Pleno",
        }
        fields.update(kwargs)
        vaga = Vaga(titulo=titulo, status_workflow=status, **fields)
        db.add(vaga)
        db.commit()
        return vaga

    return _make
