from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from raisa.main import app
from raisa.utils.deps import get_enqueuer, get_notifier, get_store

HEADERS = {"X-User-Id": "900", "X-User-Name": "Gestora R&S"}


@pytest.fixture
def enqueue():
    return MagicMock()


@pytest.fixture
def client(store, enqueue):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_notifier] = lambda: MagicMock()
    app.dependency_overrides[get_enqueuer] = lambda: enqueue
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_healthcheck(client):
    assert client.get("/").json() == {"status": "ok", "message": "API rodando!"}


def test_full_workflow_over_http(client, enqueue, make_analyst, make_client):
    analyst = make_analyst("Ana")
    cliente = make_client(vip=True)

    resp = client.post(
        "/vagas/",
        json={"titulo": "Dev Python", "descricao": "Texto", "stack_tecnologica": ["Python"], "cliente_id": cliente.id},
        headers=HEADERS,
    )
    assert resp.status_code == 201
    vaga_id = resp.json()["id"]

    assert client.post(f"/vagas/{vaga_id}/revisao-ia", headers=HEADERS).status_code == 202
    enqueue.assert_called_once_with(vaga_id)

    resp = client.post(f"/vagas/{vaga_id}/sugestao-ia", json={"descricao_melhorada": "Texto IA"})
    assert resp.json()["status_workflow"] == "awaiting_description_approval"

    resp = client.post(f"/vagas/{vaga_id}/descricao/aprovacao", json={"acao": "aprovado"}, headers=HEADERS)
    assert resp.json()["descricao"] == "Texto IA"

    resp = client.post(f"/vagas/{vaga_id}/priorizacao", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json()["score_prioridade"] == 70
    assert resp.json()["nivel_prioridade"] == "Média"

    recomendacoes = client.get(f"/vagas/{vaga_id}/recomendacoes").json()
    assert recomendacoes[0]["analista_id"] == analyst.id

    resp = client.post(f"/vagas/{vaga_id}/priorizacao/aprovacao", json={}, headers=HEADERS)
    assert resp.json()["status_workflow"] == "distributed"
    assert resp.json()["analista_id"] == analyst.id

    resp = client.post(f"/vagas/{vaga_id}/avancar", json={"status": "in_progress"}, headers=HEADERS)
    assert resp.json()["status_workflow"] == "in_progress"

    descricoes = client.get(f"/vagas/{vaga_id}/descricoes").json()
    assert descricoes[0]["aprovado_por_nome"] == "Gestora R&S"


def test_state_error_maps_to_409(client, make_vaga):
    vaga = make_vaga()
    resp = client.post(f"/vagas/{vaga.id}/priorizacao/aprovacao", json={}, headers=HEADERS)
    assert resp.status_code == 409
    assert resp.json()["error"] == "estado_invalido"


def test_not_found_maps_to_404(client):
    resp = client.get("/vagas/12345")
    assert resp.status_code == 404
    assert resp.json()["error"] == "nao_encontrado"


def test_validation_error_maps_to_422(client, make_vaga, make_analyst):
    analyst = make_analyst()
    vaga = make_vaga(status="distributed")
    resp = client.post(
        f"/vagas/{vaga.id}/redistribuicao", json={"analista_id": analyst.id, "motivo": " "}, headers=HEADERS
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "validacao"


def test_redistribution_history_over_http(client, make_vaga, make_analyst):
    ana = make_analyst("Ana")
    bruno = make_analyst("Bruno")
    vaga = make_vaga(status="distributed", analista_id=ana.id, analista_nome="Ana")

    resp = client.post(
        f"/vagas/{vaga.id}/redistribuicao", json={"analista_id": bruno.id, "motivo": "Férias"}, headers=HEADERS
    )
    assert resp.status_code == 200

    [registro] = client.get(f"/vagas/{vaga.id}/redistribuicoes").json()
    assert registro["analista_novo_nome"] == "Bruno"
    assert registro["redistribuido_por_usuario_id"] == 900


def test_adjustment_conflict_maps_to_409(client, make_analyst):
    analyst = make_analyst()
    url = f"/analistas/{analyst.id}/ajustes"

    first = client.put(url, json={"campos": {"bonus_experiencia": 5}, "motivo": "Reforço"}, headers=HEADERS)
    assert first.status_code == 200
    version = first.json()["version"]

    ok = client.put(
        url, json={"campos": {"bonus_experiencia": 6}, "motivo": "Ajuste", "version": version}, headers=HEADERS
    )
    assert ok.status_code == 200

    stale = client.put(
        url, json={"campos": {"bonus_experiencia": 7}, "motivo": "Atrasado", "version": version}, headers=HEADERS
    )
    assert stale.status_code == 409
    assert stale.json()["error"] == "conflito"

    historico = client.get(f"{url}/historico").json()
    assert [h["motivo"] for h in historico] == ["Ajuste", "Reforço"]


def test_adjustment_reset_and_get(client, make_analyst):
    analyst = make_analyst()
    url = f"/analistas/{analyst.id}/ajustes"
    client.put(url, json={"campos": {"ativo_para_distribuicao": False}, "motivo": "Licença"}, headers=HEADERS)
    assert client.get(url).json()["ativo_para_distribuicao"] is False

    resp = client.post(f"{url}/reset", headers=HEADERS)
    assert resp.json()["ativo_para_distribuicao"] is True


def test_distribution_config_over_http(client):
    assert client.get("/config/distribuicao").json()["peso_fit_stack"] == 40

    bad = client.put(
        "/config/distribuicao",
        json={"peso_fit_stack": 10, "peso_fit_cliente": 10, "peso_disponibilidade": 10, "peso_taxa_sucesso": 10,
              "motivo": "teste"},
        headers=HEADERS,
    )
    assert bad.status_code == 422

    ok = client.put(
        "/config/distribuicao",
        json={"peso_fit_stack": 55, "peso_fit_cliente": 15, "peso_disponibilidade": 20, "peso_taxa_sucesso": 10,
              "motivo": "Stack pesa mais"},
        headers=HEADERS,
    )
    assert ok.status_code == 200
    assert client.get("/config/distribuicao").json()["peso_fit_stack"] == 55


def test_vaga_adjustment_endpoint(client, make_vaga):
    vaga = make_vaga()
    resp = client.put(
        f"/vagas/{vaga.id}/ajustes", json={"analistas_excluidos": [2], "motivo": "Conflito de interesse"},
        headers=HEADERS,
    )
    assert resp.status_code == 204


def test_priority_endpoints(client, make_vaga):
    vaga = make_vaga(urgente=True)
    assert client.get(f"/vagas/{vaga.id}/prioridade").json()["score_prioridade"] == 80
    assert client.post(f"/vagas/{vaga.id}/prioridade").json()["nivel_prioridade"] == "Alta"


def test_recommendations_without_priority_is_404(client, make_vaga):
    vaga = make_vaga()
    assert client.post(f"/vagas/{vaga.id}/recomendacoes").status_code == 404


def test_invalid_user_header(client, make_vaga):
    vaga = make_vaga()
    resp = client.post(f"/vagas/{vaga.id}/revisao-ia", headers={"X-User-Id": "abc"})
    assert resp.status_code == 400


def test_recalculation_on_closed_vaga_is_409(client, make_vaga):
    vaga = make_vaga(status="closed")
    assert client.post(f"/vagas/{vaga.id}/prioridade").status_code == 409
    assert client.post(f"/vagas/{vaga.id}/recomendacoes").status_code == 409
