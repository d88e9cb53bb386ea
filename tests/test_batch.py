# tests/test_batch.py
from conftest import VEHICLE


def test_batch_template(client):
    data = client.get("/api/veiculos/batch").json()["data"]
    assert data["limits"]["max_operations"] == 100
    assert [op["action"] for op in data["template"]["operations"]] == ["create", "update", "delete"]


def test_batch_runs_each_operation_independently(client, make_vehicle):
    keep = make_vehicle(valor=30000)
    drop = make_vehicle()
    r = client.post("/api/veiculos/batch", json={"operations": [
        {"action": "create", "data": {**VEHICLE, "placa": "NEW1A23"}},
        {"action": "create", "data": {"marca": "Fiat"}},
        {"action": "update", "id": keep.id, "data": {"valor": 90000}},
        {"action": "update", "id": 9999, "data": {"valor": 90000}},
        {"action": "delete", "id": drop.id},
        {"action": "archive", "id": drop.id},
    ]})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is False
    assert body["summary"] == {"total": 6, "successful": 3, "failed": 3}

    results = body["data"]
    assert [res["success"] for res in results] == [True, False, True, False, True, False]
    assert results[0]["result"]["placa"] == "NEW1A23"
    assert results[1]["error"] == "Validação falhou"
    assert results[2]["result"]["classe_social"] == "A"
    assert results[3]["error"] == "Veículo não encontrado"
    assert results[5]["error"] == "Ação não suportada: archive"

    assert client.get(f"/api/veiculos/{drop.id}").status_code == 404


def test_batch_rejects_bad_types_per_operation(client):
    r = client.post("/api/veiculos/batch", json={"operations": [
        {"action": "create", "data": {**VEHICLE, "ano": "dois mil"}},
    ]})
    result = r.json()["data"][0]
    assert result["success"] is False
    assert result["error"] == "Dados inválidos"
    assert result["details"][0]["field"] == "ano"


def test_batch_limits(client):
    r = client.post("/api/veiculos/batch", json={"operations": []})
    assert r.status_code == 400
    assert r.json()["error"] == "Operações inválidas"

    ops = [{"action": "delete", "id": i} for i in range(1, 102)]
    r = client.post("/api/veiculos/batch", json={"operations": ops})
    assert r.status_code == 400
    assert r.json()["error"] == "Muitas operações"
