import pytest

from raisa.database.models import AnalystAdjustment, AnalystFitBatch, AnalystFitRecord
from raisa.errors import NotFoundError
from raisa.schemas.analyst import AdjustmentSnapshot, AnalystSnapshot, ClientHistory
from raisa.schemas.scores import DistributionWeights, PriorityScore
from raisa.schemas.vaga import VagaSnapshot
from raisa.services.adjustments import AdjustmentService
from raisa.services.distribution import (
    DistributionService, availability, estimated_close_days, recommend_analysts, stack_fit,
)
from raisa.services.priority import PriorityService

from conftest import NOW

PRIORITY = PriorityScore(
    vaga_id=1,
    score_prioridade=60,
    nivel_prioridade="Média",
    sla_dias=15,
    justificativa="teste",
    calculado_em=NOW,
)

VAGA = VagaSnapshot(id=1, titulo="Dev Python", stack_tecnologica=["Python", "SQL"], cliente_id=10, criado_em=NOW)


def _analyst(id, stack=("Python", "SQL"), carga=0, taxa=70.0, **kwargs):
    return AnalystSnapshot(
        id=id, nome=f"Analista {id}", stack_experiencia=list(stack),
        carga_trabalho_atual=carga, taxa_aprovacao_geral=taxa, **kwargs
    )


def _rank(roster, adjustments=None, weights=None, **kwargs):
    return recommend_analysts(
        VAGA, PRIORITY, roster, adjustments or {}, weights or DistributionWeights(), NOW,
        capacidade_default=kwargs.pop("capacidade_default", 7), **kwargs
    )


def test_stack_fit_is_case_insensitive_overlap():
    assert stack_fit(["Python", "SQL"], ["python"]) == 50
    assert stack_fit(["Python"], ["PYTHON", "Go"]) == 100
    assert stack_fit([], ["Go"]) == 50


def test_availability_bounds():
    assert availability(0, 7) == 100
    assert availability(5, 5) == 0
    assert availability(9, 5) == 0
    assert availability(1, 0) == 0


def test_estimate_decreases_with_score():
    assert estimated_close_days(90, 20) < estimated_close_days(60, 20) < estimated_close_days(20, 20)
    assert estimated_close_days(100, None) >= 1


def test_client_fit_uses_client_history_before_overall_rate():
    analyst = _analyst(1, taxa=40.0, historico_aprovacao_cliente={10: ClientHistory(taxa_aprovacao=95.0)})
    [fit] = _rank([analyst])
    assert fit.fatores_match["fit_cliente"] == 95
    assert fit.fatores_match["taxa_sucesso_historica"] == 40


@pytest.mark.parametrize("override", [0, 100])
def test_stack_override_replaces_computed_overlap(override):
    adjustments = {1: AdjustmentSnapshot(analista_id=1, fit_stack_override=override)}
    [fit] = _rank([_analyst(1)], adjustments)
    assert fit.fatores_match["fit_stack_tecnologica"] == override
    assert fit.fatores_match["ajustes"]["fit_stack_calculado"] == 100


def test_client_override_replaces_history():
    adjustments = {1: AdjustmentSnapshot(analista_id=1, fit_cliente_override=12)}
    [fit] = _rank([_analyst(1, taxa=90.0)], adjustments)
    assert fit.fatores_match["fit_cliente"] == 12


def test_inactive_analyst_is_excluded_even_if_best():
    adjustments = {1: AdjustmentSnapshot(analista_id=1, ativo_para_distribuicao=False)}
    assert _rank([_analyst(1)], adjustments) == []


def test_excluded_analysts_are_removed():
    ranking = _rank([_analyst(1), _analyst(2)], excluded=[1])
    assert [f.analista_id for f in ranking] == [2]


def test_at_capacity_analyst_scores_availability_zero():
    adjustments = {
        1: AdjustmentSnapshot(analista_id=1, capacidade_maxima_vagas=5),
        2: AdjustmentSnapshot(analista_id=2, capacidade_maxima_vagas=5),
    }
    ranking = _rank([_analyst(1, carga=5), _analyst(2, carga=0)], adjustments)
    by_id = {f.analista_id: f for f in ranking}

    assert by_id[1].fatores_match["disponibilidade"] == 0
    assert by_id[1].fatores_match["fit_stack_tecnologica"] == 100
    assert by_id[1].score_match < by_id[2].score_match
    assert ranking[0].analista_id == 2


def test_multiplier_bonus_and_class_are_applied_and_clamped():
    adjustments = {
        1: AdjustmentSnapshot(
            analista_id=1, multiplicador_performance=2.0, bonus_experiencia=20,
            prioridade_distribuicao="Alta",
        ),
        2: AdjustmentSnapshot(analista_id=2, prioridade_distribuicao="Baixa"),
    }
    by_id = {f.analista_id: f for f in _rank([_analyst(1), _analyst(2)], adjustments)}
    assert by_id[1].score_match == 100
    # 40*100 + 30*70 + 20*100 + 10*70 = 88, classe Baixa -5
    assert by_id[2].score_match == 83


def test_extreme_inputs_stay_in_range():
    roster = [
        _analyst(1, stack=(), carga=50, taxa=0.0),
        _analyst(2, carga=0, taxa=100.0),
        _analyst(3, carga=3, taxa=-20.0),
    ]
    adjustments = {
        1: AdjustmentSnapshot(analista_id=1, capacidade_maxima_vagas=0, multiplicador_performance=0.5),
        2: AdjustmentSnapshot(analista_id=2, multiplicador_performance=2.0, bonus_experiencia=20),
    }
    for fit in _rank(roster, adjustments):
        assert 0 <= fit.score_match <= 100


def test_tie_broken_by_lower_workload():
    weights = DistributionWeights(peso_fit_stack=50, peso_fit_cliente=30, peso_disponibilidade=0, peso_taxa_sucesso=20)
    ranking = _rank([_analyst(1, carga=2), _analyst(2, carga=1)], weights=weights)
    assert ranking[0].score_match == ranking[1].score_match
    assert [f.analista_id for f in ranking] == [2, 1]


def test_tie_broken_by_higher_approval_rate():
    weights = DistributionWeights(peso_fit_stack=70, peso_fit_cliente=30, peso_disponibilidade=0, peso_taxa_sucesso=0)
    adjustments = {
        1: AdjustmentSnapshot(analista_id=1, fit_cliente_override=50),
        2: AdjustmentSnapshot(analista_id=2, fit_cliente_override=50),
    }
    ranking = _rank([_analyst(1, taxa=60.0), _analyst(2, taxa=90.0)], adjustments, weights)
    assert ranking[0].score_match == ranking[1].score_match
    assert [f.analista_id for f in ranking] == [2, 1]


def test_full_tie_broken_by_id_and_repeatable():
    roster = [_analyst(3), _analyst(1), _analyst(2)]
    orders = {tuple(f.analista_id for f in _rank(roster)) for _ in range(5)}
    assert orders == {(1, 2, 3)}


# ======================================================
# Serviço (com banco)
# ======================================================
def test_recommend_requires_priority(store, clock, make_vaga, make_analyst):
    make_analyst()
    vaga = make_vaga()
    with pytest.raises(NotFoundError):
        DistributionService(store, clock).recommend(vaga.id)


def test_recommend_persists_batch_and_latest_keeps_order(store, clock, make_vaga, make_analyst):
    make_analyst("Ana", stack=["Python", "SQL"])
    make_analyst("Bruno", stack=["Java"])
    vaga = make_vaga()
    PriorityService(store, clock).compute(vaga.id)
    service = DistributionService(store, clock)

    ranking = service.recommend(vaga.id)

    assert [f.analista_nome for f in ranking] == ["Ana", "Bruno"]
    assert service.latest(vaga.id) == ranking
    assert store.db.query(AnalystFitRecord).count() == 2


def test_recommend_with_no_eligible_analysts_returns_empty(store, clock, make_vaga, make_analyst, db):
    analyst = make_analyst()
    db.add(AnalystAdjustment(analista_id=analyst.id, ativo_para_distribuicao=False))
    db.commit()
    vaga = make_vaga()
    PriorityService(store, clock).compute(vaga.id)

    assert DistributionService(store, clock).recommend(vaga.id) == []
    assert DistributionService(store, clock).latest(vaga.id) == []


def test_empty_recompute_replaces_previous_ranking(store, clock, actor, make_vaga, make_analyst):
    ana = make_analyst("Ana")
    vaga = make_vaga()
    PriorityService(store, clock).compute(vaga.id)
    service = DistributionService(store, clock)
    assert [f.analista_nome for f in service.recommend(vaga.id)] == ["Ana"]

    AdjustmentService(store, clock).save(ana.id, {"ativo_para_distribuicao": False}, "Licença", actor)

    assert service.recommend(vaga.id) == []
    assert service.latest(vaga.id) == []
    assert store.db.query(AnalystFitBatch).filter_by(vaga_id=vaga.id).count() == 2
    assert store.db.query(AnalystFitRecord).count() == 1


def test_workload_counts_active_vagas(store, clock, make_vaga, make_analyst):
    ana = make_analyst("Ana")
    make_vaga("Outra 1", status="in_progress", analista_id=ana.id)
    make_vaga("Outra 2", status="closed", analista_id=ana.id)
    vaga = make_vaga()
    PriorityService(store, clock).compute(vaga.id)

    [fit] = DistributionService(store, clock, capacidade_default=4).recommend(vaga.id)

    assert fit.fatores_match["disponibilidade"] == 75


def test_vaga_custom_weights_and_exclusions(store, clock, make_vaga, make_analyst):
    ana = make_analyst("Ana")
    make_analyst("Bruno")
    vaga = make_vaga(
        peso_fit_stack_custom=25, peso_fit_cliente_custom=25,
        peso_disponibilidade_custom=25, peso_taxa_sucesso_custom=25,
        analistas_excluidos=[ana.id],
    )
    PriorityService(store, clock).compute(vaga.id)

    ranking = DistributionService(store, clock).recommend(vaga.id)

    assert [f.analista_nome for f in ranking] == ["Bruno"]
    assert ranking[0].fatores_match["pesos"]["peso_fit_stack"] == 25
