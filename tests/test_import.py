# tests/test_import.py
import io
import os

import pandas as pd

from estoque import importer
from estoque.importer import map_row, safe_filename
from estoque.models import FieldMapping, FileUpload, Veiculo

CSV = (
    "marca,modelo,ano,valor,placa,km,cor\n"
    "vw,Gol,2020,45000,abc1234,30000,Branco\n"
    "Toyota,Corolla,2021,95000,DEF1G23,20000,Preto\n"
    "Fiat,Uno,1980,5000,,10,\n"
    ",,,,,,\n"
    "vw,Gol,2020,45000,abc-1234,30000,Branco\n"
)


def upload(client, content=CSV, name="estoque.csv", mime="text/csv", import_type="csv"):
    return client.post(
        "/api/import/upload",
        files={"file": (name, content.encode("utf-8"), mime)},
        data={"import_type": import_type, "source_type": "manual"},
    )


def test_safe_filename_and_mapping():
    name = safe_filename("meu estoque (1).csv")
    assert name.endswith("_meu_estoque__1_.csv")
    assert ":" not in name
    assert map_row({"Marca": "VW", "Preço": "", "Extra": "x"}, {"marca": "Marca", "valor": "Preço", "foo": "Extra"}) == {
        "marca": "VW",
    }


def test_upload_stores_file(client, db):
    r = upload(client)
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["total_rows"] == 5

    obj = db.get(FileUpload, data["upload_id"])
    assert obj.status == "uploaded"
    assert obj.original_name == "estoque.csv"
    assert os.path.exists(obj.file_path)


def test_upload_rejects_unsupported_file(client):
    r = upload(client, name="notas.pdf", mime="application/pdf")
    assert r.status_code == 400
    assert r.json()["error"] == "Tipo de arquivo não suportado"


def test_process_upload(client, db):
    upload_id = upload(client).json()["data"]["upload_id"]

    r = client.post(f"/api/import/process/{upload_id}", json={})
    assert r.status_code == 200
    assert r.json()["data"] == {"processed": 2, "errors": 1, "duplicates": 1, "skipped": 1}

    gol = db.query(Veiculo).filter_by(placa="ABC1234").one()
    assert (gol.marca, gol.classe_social, gol.categoria_id, gol.cor) == ("Volkswagen", "B", 1, "branco")
    assert db.query(Veiculo).filter_by(placa="DEF1G23").one().classe_social == "A"

    body = client.get(f"/api/import/process/{upload_id}").json()["data"]
    assert body["status"] == "completed"
    assert (body["valid_rows"], body["error_rows"]) == (2, 1)
    assert body["stats"] == {"total": 4, "processed": 2, "errors": 1, "duplicates": 1}
    logs = body["logs"]
    assert [log["status"] for log in logs] == ["processed", "processed", "error", "duplicate"]
    assert [log["row_number"] for log in logs] == [1, 2, 3, 5]
    assert logs[0]["veiculo_id"] == gol.id
    assert logs[2]["validation_errors"][0]["code"] == "MIN_VALUE"

    listing = client.get("/api/import/upload").json()
    assert listing["pagination"]["total"] == 1
    assert listing["data"][0]["stats"]["processed"] == 2


def test_process_preview_writes_nothing(client, db):
    upload_id = upload(client).json()["data"]["upload_id"]

    data = client.post(f"/api/import/process/{upload_id}", json={"preview_only": True}).json()["data"]
    assert data["processed"] == 0
    assert [row["status"] for row in data["preview"]] == ["valid", "valid", "error", "duplicate"]
    assert data["preview"][0]["transformed_data"]["marca"] == "Volkswagen"
    assert db.query(Veiculo).count() == 0
    assert db.get(FileUpload, upload_id).status == "uploaded"


def test_process_with_custom_mapping(client, db):
    mapping = FieldMapping(
        nome="Planilha loja",
        field_map={"marca": "Fabricante", "modelo": "Modelo", "ano": "Ano", "valor": "Preco"},
        validation_rules={"valor": {"min": 50000}},
    )
    db.add(mapping)
    db.commit()
    content = "Fabricante,Modelo,Ano,Preco\nHonda,Civic,2022,120000\nFiat,Mobi,2022,40000\n"
    upload_id = upload(client, content=content, name="loja.csv").json()["data"]["upload_id"]

    r = client.post(f"/api/import/process/{upload_id}", json={"mapping_id": mapping.id})
    assert r.json()["data"] == {"processed": 1, "errors": 1, "duplicates": 0, "skipped": 0}
    assert db.query(Veiculo).one().modelo == "Civic"


def test_process_errors(client):
    assert client.post("/api/import/process/9999", json={}).status_code == 404
    upload_id = upload(client).json()["data"]["upload_id"]
    r = client.post(f"/api/import/process/{upload_id}", json={"mapping_id": 9999})
    assert r.status_code == 400
    assert client.get("/api/import/process/9999").status_code == 404


def test_process_excel_upload(client, db):
    buffer = io.BytesIO()
    pd.DataFrame([
        {"marca": "Jeep", "modelo": "Compass", "ano": "2023", "valor": "160000", "placa": "JEP2023"},
    ]).to_excel(buffer, index=False)
    r = client.post(
        "/api/import/upload",
        files={"file": ("estoque.xlsx", buffer.getvalue(),
                        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")},
        data={"import_type": "excel"},
    )
    assert r.status_code == 201
    upload_id = r.json()["data"]["upload_id"]
    assert r.json()["data"]["total_rows"] == 1

    data = client.post(f"/api/import/process/{upload_id}", json={}).json()["data"]
    assert data["processed"] == 1
    assert db.query(Veiculo).one().placa == "JEP2023"


def test_corrupt_workbook_is_rejected_and_not_kept(client, db):
    os.makedirs(importer.UPLOAD_DIR, exist_ok=True)
    before = set(os.listdir(importer.UPLOAD_DIR))
    r = client.post(
        "/api/import/upload",
        files={"file": ("quebrado.xlsx", b"PK\x03\x04garbage",
                        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")},
        data={"import_type": "excel"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Não foi possível ler o arquivo"
    assert set(os.listdir(importer.UPLOAD_DIR)) == before
    assert db.query(FileUpload).count() == 0


def test_process_marks_unreadable_upload_failed(client, db):
    upload_id = upload(client).json()["data"]["upload_id"]
    obj = db.get(FileUpload, upload_id)
    obj.import_type = "excel"
    obj.file_path = obj.file_path[:-4] + ".xlsx"
    db.commit()
    with open(obj.file_path, "wb") as fh:
        fh.write(b"PK\x03\x04garbage")

    r = client.post(f"/api/import/process/{upload_id}", json={})
    assert r.status_code == 400
    db.expire_all()
    assert db.get(FileUpload, upload_id).status == "failed"


def test_upload_over_size_cap(client, db, monkeypatch):
    monkeypatch.setattr(importer, "MAX_UPLOAD_BYTES", 16)
    r = upload(client)
    assert r.status_code == 400
    assert r.json()["error"] == "Arquivo muito grande"
    assert db.query(FileUpload).count() == 0
