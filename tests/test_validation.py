# tests/test_validation.py
import pytest

from estoque.utils import today
from estoque.validation import (
    normalize_brand_name, sanitize_vehicle_data, validate_field, validate_vehicle, vehicle_rules,
)


@pytest.mark.parametrize("raw,expected", [
    ("VW", "Volkswagen"),
    ("mercedes", "Mercedes-Benz"),
    ("chevy", "Chevrolet"),
    ("citroen", "Citroën"),
    ("LANDROVER", "Land Rover"),
    ("great wall", "Great Wall"),
    ("", ""),
    (None, ""),
])
def test_normalize_brand_name(raw, expected):
    assert normalize_brand_name(raw) == expected


def test_sanitize_vehicle_data():
    data = sanitize_vehicle_data({
        "placa": "abc-1d23", "marca": " vw ", "modelo": "  Gol  ", "cor": " Branco ",
        "ano": "2020", "valor": "45000.50", "km": "12000", "categoria_id": "3",
    })
    assert data["placa"] == "ABC1D23"
    assert data["marca"] == "Volkswagen"
    assert data["modelo"] == "Gol"
    assert data["cor"] == "branco"
    assert data["ano"] == 2020
    assert data["valor"] == 45000.5
    assert data["km"] == 12000
    assert data["categoria_id"] == 3


def test_validate_field_codes():
    rules = vehicle_rules()
    assert validate_field("marca", None, rules["marca"])[0]["code"] == "REQUIRED"
    assert validate_field("marca", "X", rules["marca"])[0]["code"] == "MIN_LENGTH"
    assert validate_field("ano", "abc", rules["ano"])[0]["code"] == "INVALID_NUMBER"
    assert validate_field("ano", 1985, rules["ano"])[0]["code"] == "MIN_VALUE"
    assert validate_field("ano", today().year + 2, rules["ano"])[0]["code"] == "MAX_VALUE"
    assert validate_field("placa", "AB12", rules["placa"])[0]["code"] == "PATTERN_MISMATCH"
    assert validate_field("combustivel", "alcool", rules["combustivel"])[0]["code"] == "INVALID_ENUM"
    assert validate_field("observacoes", "x" * 1001, rules["observacoes"])[0]["code"] == "MAX_LENGTH"
    assert validate_field("placa", "ABC1234", rules["placa"]) == []
    assert validate_field("km", None, rules["km"]) == []


def test_validate_vehicle_database_checks(db, make_vehicle):
    make_vehicle(placa="ABC1234", codigo_interno="EST-001")
    data = sanitize_vehicle_data({
        "marca": "Fiat", "modelo": "Argo", "ano": 2021, "valor": 60000,
        "categoria_id": 99, "placa": "abc1234", "codigo_interno": "EST-001",
    })
    result = validate_vehicle(db, data)
    codes = {e["code"] for e in result["errors"]}
    assert not result["valid"]
    assert codes == {"CATEGORY_NOT_FOUND", "DUPLICATE_PLATE", "DUPLICATE_CODE"}


def test_validate_vehicle_excludes_itself(db, make_vehicle):
    obj = make_vehicle(placa="ABC1234")
    result = validate_vehicle(db, {"placa": "ABC1234"}, vehicle_id=obj.id, partial=True)
    assert result["valid"]


def test_validate_vehicle_warnings(db):
    year = today().year
    old = validate_vehicle(db, {"marca": "Ford", "modelo": "Mustang", "ano": year - 25,
                                "valor": 150000, "categoria_id": 6})
    new = validate_vehicle(db, {"marca": "Fiat", "modelo": "Mobi", "ano": year,
                                "valor": 20000, "categoria_id": 1})
    assert old["valid"] and new["valid"]
    assert [w["code"] for w in old["warnings"]] == ["HIGH_VALUE_OLD_CAR"]
    assert [w["code"] for w in new["warnings"]] == ["LOW_VALUE_NEW_CAR"]


def test_partial_validation_skips_missing_required(db):
    assert validate_vehicle(db, {"valor": 50000}, partial=True)["valid"]
    assert not validate_vehicle(db, {"valor": 50000})["valid"]
