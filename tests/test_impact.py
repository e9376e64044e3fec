from datetime import timedelta

import pytest

from raisa.services.impact import ImpactService, classify_impact

from conftest import NOW

CHANGED_AT = NOW - timedelta(days=40)


@pytest.mark.parametrize(
    "antes, depois, esperado",
    [
        (20, 10, "Positivo"),
        (20, 17, "Positivo"),
        (20, 19, "Neutro"),
        (20, 23, "Negativo"),
        (None, 10, "Neutro"),
        (20, None, "Neutro"),
    ],
)
def test_classify_impact(antes, depois, esperado):
    assert classify_impact(antes, depois) == esperado


@pytest.fixture
def scenario(store, make_analyst, make_vaga):
    analyst = make_analyst()
    entry = store.history.append(
        tipo_entidade="analista",
        entidade_id=analyst.id,
        campo_alterado="bonus_experiencia",
        valor_anterior="0",
        valor_novo="10",
        motivo="teste de impacto",
        alterado_em=CHANGED_AT,
    )
    store.commit()

    def close(dias, inicio, n=1):
        for _ in range(n):
            make_vaga(
                status="closed",
                analista_id=analyst.id,
                criado_em=inicio,
                fechado_em=inicio + timedelta(days=dias),
            )

    # duas vagas fechadas em 20 dias antes do ajuste
    close(20, CHANGED_AT - timedelta(days=25), n=2)
    return analyst, entry.id, close


def test_measures_positive_impact(store, clock, scenario):
    analyst, entry_id, close = scenario
    close(10, CHANGED_AT + timedelta(days=1), n=3)

    medidos = ImpactService(store, clock, janela_dias=30, min_amostras=3).measure_pending()

    assert medidos == [entry_id]
    [entry] = store.history.list("analista", analyst.id)
    assert entry.impacto.impacto == "Positivo"
    assert entry.impacto.media_dias_antes == 20
    assert entry.impacto.media_dias_depois == 10
    assert entry.impacto.amostras_depois == 3
    assert entry.valor_novo == "10"


def test_measures_negative_impact(store, clock, scenario):
    analyst, entry_id, close = scenario
    close(28, CHANGED_AT, n=3)

    ImpactService(store, clock, janela_dias=30, min_amostras=3).measure_pending()

    assert store.history.list("analista", analyst.id)[0].impacto.impacto == "Negativo"


def test_waits_for_minimum_samples(store, clock, scenario):
    analyst, entry_id, close = scenario
    close(10, CHANGED_AT + timedelta(days=1), n=2)

    service = ImpactService(store, clock, janela_dias=30, min_amostras=3)
    assert service.measure_pending() == []
    assert store.history.list("analista", analyst.id)[0].impacto is None


def test_measured_entries_are_not_measured_again(store, clock, scenario):
    _, entry_id, close = scenario
    close(10, CHANGED_AT + timedelta(days=1), n=3)
    service = ImpactService(store, clock, janela_dias=30, min_amostras=3)

    assert service.measure_pending() == [entry_id]
    assert service.measure_pending() == []
