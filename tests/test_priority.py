from datetime import timedelta

import pytest

from raisa.database.models import PriorityScoreRecord
from raisa.errors import NotFoundError, StateError
from raisa.schemas.vaga import ClientSnapshot, VagaSnapshot
from raisa.services.distribution import DistributionService
from raisa.services.priority import PriorityService, compute_priority

from conftest import NOW


def _vaga(**kwargs):
    fields = {"id": 1, "titulo": "Dev", "criado_em": NOW}
    fields.update(kwargs)
    return VagaSnapshot(**fields)


def test_urgent_vip_without_billing_is_clamped_to_100():
    score = compute_priority(
        _vaga(urgente=True, faturamento_mensal=None),
        ClientSnapshot(id=1, nome="Cliente VIP", vip=True),
        NOW,
    )
    assert score.score_prioridade == 100
    assert score.nivel_prioridade == "Alta"
    assert score.sla_dias == 7
    assert score.fatores_considerados["valor_faturamento"] == 50


def test_not_urgent_open_20_days_is_medium():
    score = compute_priority(
        _vaga(criado_em=NOW - timedelta(days=20)),
        ClientSnapshot(id=1, vip=False),
        NOW,
    )
    assert score.score_prioridade == 60
    assert score.nivel_prioridade == "Média"
    assert score.sla_dias == 15
    assert score.fatores_considerados["tempo_vaga_aberta"] == 20


def test_urgent_alone_reaches_high_tier():
    score = compute_priority(_vaga(urgente=True), ClientSnapshot(id=1, vip=False), NOW)
    assert score.score_prioridade == 80
    assert score.nivel_prioridade == "Alta"
    assert score.sla_dias == 7


def test_missing_client_counts_as_not_vip():
    score = compute_priority(_vaga(), None, NOW)
    assert score.score_prioridade == 50
    assert score.fatores_considerados["cliente_vip"] is False
    assert "não VIP" in score.justificativa


def test_deadline_factor_uses_frozen_clock():
    score = compute_priority(_vaga(prazo_fechamento=NOW + timedelta(days=5)), None, NOW)
    assert score.fatores_considerados["dias_ate_prazo"] == 5
    assert score.fatores_considerados["urgencia_prazo"] == 90


def test_compute_priority_is_deterministic():
    vaga = _vaga(urgente=True, stack_tecnologica=["Java", "Kafka"], faturamento_mensal=30_000)
    client = ClientSnapshot(id=3, vip=True)
    assert compute_priority(vaga, client, NOW) == compute_priority(vaga, client, NOW)


def test_service_compute_appends_and_latest_returns_newest(store, clock, make_client, make_vaga):
    client = make_client(vip=True)
    vaga = make_vaga(cliente_id=client.id, urgente=True)
    service = PriorityService(store, clock)

    first = service.compute(vaga.id)
    second = service.compute(vaga.id)

    assert first.score_prioridade == 100
    assert service.latest(vaga.id) == second
    assert store.db.query(PriorityScoreRecord).filter_by(vaga_id=vaga.id).count() == 2


def test_service_compute_unknown_vaga_raises(store, clock):
    with pytest.raises(NotFoundError):
        PriorityService(store, clock).compute(404)


def test_service_compute_dangling_client_raises(store, clock, make_vaga):
    vaga = make_vaga(cliente_id=777)
    with pytest.raises(NotFoundError):
        PriorityService(store, clock).compute(vaga.id)


def test_current_falls_back_to_default_for_missing_vaga(store, clock):
    score = PriorityService(store, clock).current(404)
    assert score.score_prioridade == 50
    assert score.nivel_prioridade == "Média"
    assert score.sla_dias == 15
    assert "padrão" in score.justificativa


def test_current_computes_without_persisting(store, clock, make_vaga):
    vaga = make_vaga(dias_aberta=30)
    score = PriorityService(store, clock).current(vaga.id)
    assert score.score_prioridade == 60
    assert store.priorities.latest(vaga.id) is None


def test_closed_vaga_is_not_recalculated(store, clock, db, make_vaga):
    vaga = make_vaga(status="distributed")
    service = PriorityService(store, clock)
    service.compute(vaga.id)
    vaga.status_workflow = "closed"
    db.commit()

    with pytest.raises(StateError):
        service.compute(vaga.id)
    with pytest.raises(StateError):
        DistributionService(store, clock).recommend(vaga.id)
    assert db.query(PriorityScoreRecord).filter_by(vaga_id=vaga.id).count() == 1
    assert service.current(vaga.id).vaga_id == vaga.id
