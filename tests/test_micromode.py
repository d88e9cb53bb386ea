# tests/test_micromode.py
from datetime import timedelta

from estoque.micromode import days_left
from estoque.models import SistemaLog, Vendedor, VendedorMetrica, Veiculo
from estoque.scheduler import sweep_expired_reservations
from estoque.status import (
    available_actions, calculate_compatible_stats, is_in_process, sort_for_display, to_legacy_status,
)
from estoque.utils import current_period, today, utcnow


def act(client, action, veiculo_id, vendedor_id):
    return client.post("/api/micromode", json={
        "action": action, "veiculo_id": veiculo_id, "vendedor_id": vendedor_id,
    })


def test_status_compatibility():
    assert to_legacy_status("negociando") == "reservado"
    assert to_legacy_status("vendido") == "vendido"
    stats = calculate_compatible_stats(["disponivel", "reservado", "negociando", "vendido"])
    assert stats == {"disponivel": 1, "reservado": 2, "negociando": 1, "vendido": 1, "total": 4}
    assert available_actions("disponivel") == ["reservar", "negociar"]
    assert available_actions("reservado", holder_id=1, vendedor_id=1) == ["negociar", "vender", "liberar"]
    assert available_actions("reservado", holder_id=1, vendedor_id=2) == []
    assert available_actions("negociando", holder_id=3, vendedor_id=3) == ["vender", "cancelar", "liberar"]
    assert is_in_process("negociando") and not is_in_process("vendido")


def test_sort_for_display():
    rows = [
        {"id": 1, "status": "vendido", "valor": 90000},
        {"id": 2, "status": "disponivel", "valor": 30000},
        {"id": 3, "status": "negociando", "valor": 50000},
        {"id": 4, "status": "disponivel", "valor": 70000},
    ]
    assert [r["id"] for r in sort_for_display(rows)] == [4, 2, 3, 1]


def test_days_left():
    now = utcnow()
    assert days_left(now + timedelta(hours=30), now) == 2
    assert days_left(now - timedelta(hours=1), now) == 0
    assert days_left(None, now) is None


def test_reserve_negotiate_sell(client, db, make_vehicle, make_seller):
    veiculo = make_vehicle(valor=95000)
    seller = make_seller()

    r = act(client, "reservar", veiculo.id, seller.id)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Veículo reservado por 3 dias"
    assert body["data"]["status"] == "reservado"
    assert body["data"]["vendedor_id"] == seller.id
    assert body["data"]["data_liberacao_reserva"] is not None

    assert act(client, "negociar", veiculo.id, seller.id).json()["data"]["status"] == "negociando"

    body = act(client, "vender", veiculo.id, seller.id).json()
    assert body["pontos_ganhos"] == 100
    assert body["data"]["status"] == "vendido"
    assert body["data"]["data_venda"] == today().isoformat()
    assert body["data"]["vendedor_venda"] == seller.id

    db.expire_all()
    assert db.get(Vendedor, seller.id).pontuacao == 100
    metrica = db.query(VendedorMetrica).filter_by(vendedor_id=seller.id, periodo=current_period()).one()
    assert (metrica.veiculos_vendidos, metrica.valor_vendas, metrica.pontos_ganhos) == (1, 95000, 100)


def test_release_and_cancel_clear_hold(client, make_vehicle, make_seller):
    veiculo = make_vehicle()
    seller = make_seller()

    act(client, "reservar", veiculo.id, seller.id)
    data = act(client, "liberar", veiculo.id, seller.id).json()["data"]
    assert data["status"] == "disponivel"
    assert data["vendedor_id"] is None
    assert data["data_reserva"] is None
    assert data["data_liberacao_reserva"] is None

    act(client, "negociar", veiculo.id, seller.id)
    data = act(client, "cancelar", veiculo.id, seller.id).json()["data"]
    assert data["status"] == "disponivel"
    assert data["vendedor_id"] is None
    assert data["data_inicio_negociacao"] is None


def test_invalid_transitions(client, make_vehicle, make_seller):
    veiculo = make_vehicle()
    seller = make_seller()

    r = act(client, "vender", veiculo.id, seller.id)
    assert r.status_code == 409
    assert r.json()["details"] == {"status": "disponivel", "permitidos": ["reservado", "negociando"]}

    assert act(client, "cancelar", veiculo.id, seller.id).status_code == 409
    assert act(client, "teleportar", veiculo.id, seller.id).status_code == 400
    assert act(client, "reservar", 9999, seller.id).status_code == 404
    assert act(client, "reservar", veiculo.id, 9999).status_code == 404


def test_kanban_columns(client, make_vehicle, make_seller):
    holder = make_seller("Bruno Lima")
    other = make_seller("Carla Dias")
    gol = make_vehicle(marca="Volkswagen", modelo="Gol", valor=45000)
    make_vehicle(marca="Volkswagen", modelo="Polo", valor=85000)
    make_vehicle(marca="Fiat", modelo="Argo", valor=60000)
    make_vehicle(marca="Fiat", modelo="Uno", valor=25000, status="vendido")
    act(client, "reservar", gol.id, holder.id)

    columns = client.get("/api/micromode", params={"vendedor_id": holder.id}).json()["data"]
    assert [c["marca"] for c in columns] == ["Fiat", "Volkswagen"]
    assert [v["modelo"] for v in columns[0]["veiculos"]] == ["Argo"]
    vw = columns[1]
    assert vw["id"] == "volkswagen"
    assert vw["titulo"] == "VOLKSWAGEN"
    assert [v["modelo"] for v in vw["veiculos"]] == ["Polo", "Gol"]

    reserved = vw["veiculos"][1]
    assert reserved["vendedor_nome"] == "Bruno Lima"
    assert reserved["status_label"] == "Reservado"
    assert reserved["dias_restantes"] == 3
    assert reserved["acoes"] == ["negociar", "vender", "liberar"]

    columns = client.get("/api/micromode", params={"vendedor_id": other.id}).json()["data"]
    assert columns[1]["veiculos"][1]["acoes"] == []
    assert columns[1]["veiculos"][0]["acoes"] == ["reservar", "negociar"]


def test_cleanup_releases_expired_reservations(client, db, make_vehicle, make_seller):
    seller = make_seller()
    expired = make_vehicle()
    valid = make_vehicle()
    act(client, "reservar", expired.id, seller.id)
    act(client, "reservar", valid.id, seller.id)

    db.expire_all()
    db.get(Veiculo, expired.id).data_liberacao_reserva = utcnow() - timedelta(hours=1)
    db.commit()

    stats = client.get("/api/micromode/cleanup").json()["data"]
    assert (stats["reservas_ativas"], stats["reservas_vencidas"], stats["reservas_validas"]) == (2, 1, 1)

    body = client.post("/api/micromode/cleanup").json()
    assert body["data"]["liberadas"] == 1
    assert body["data"]["reservas"][0]["veiculo_id"] == expired.id

    db.expire_all()
    released = db.get(Veiculo, expired.id)
    assert released.status == "disponivel"
    assert released.vendedor_id is None
    assert db.get(Veiculo, valid.id).status == "reservado"
    log = db.query(SistemaLog).one()
    assert log.tipo == "cleanup_reservas"
    assert log.dados["reservas_liberadas"][0]["veiculo_id"] == expired.id

    assert client.post("/api/micromode/cleanup").json()["data"]["liberadas"] == 0


def test_scheduled_sweep_uses_its_own_session(db, make_vehicle, make_seller):
    seller = make_seller()
    obj = make_vehicle()
    obj.status = "reservado"
    obj.vendedor_id = seller.id
    obj.data_liberacao_reserva = utcnow() - timedelta(days=1)
    db.commit()

    released = sweep_expired_reservations()
    assert [r["veiculo_id"] for r in released] == [obj.id]
    db.expire_all()
    assert db.get(Veiculo, obj.id).status == "disponivel"
