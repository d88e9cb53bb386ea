# estoque/validation.py
"""Vehicle input sanitation and validation.

Field rules are plain dicts so that import field mappings can override them
per column. `validate_vehicle` layers the database checks (category exists,
unique plate and internal code) and soft business warnings on top.
"""
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .models import Categoria, FUEL_TYPES, TRANSMISSIONS, VEHICLE_STATUSES, Veiculo
from .utils import today

BRAND_NORMALIZATION_MAP = {
    "VOLKSWAGEN": "Volkswagen",
    "VW": "Volkswagen",
    "VOLKS": "Volkswagen",
    "MERCEDES-BENZ": "Mercedes-Benz",
    "MERCEDES": "Mercedes-Benz",
    "BENZ": "Mercedes-Benz",
    "BMW": "BMW",
    "AUDI": "Audi",
    "TOYOTA": "Toyota",
    "HONDA": "Honda",
    "FORD": "Ford",
    "CHEVROLET": "Chevrolet",
    "CHEVY": "Chevrolet",
    "FIAT": "Fiat",
    "NISSAN": "Nissan",
    "HYUNDAI": "Hyundai",
    "RENAULT": "Renault",
    "PEUGEOT": "Peugeot",
    "CITROEN": "Citroën",
    "CITROËN": "Citroën",
    "PORSCHE": "Porsche",
    "MITSUBISHI": "Mitsubishi",
    "JEEP": "Jeep",
    "LAND ROVER": "Land Rover",
    "LANDROVER": "Land Rover",
    "JAGUAR": "Jaguar",
    "VOLVO": "Volvo",
}

NUMERIC_FIELDS = ("ano", "valor", "km", "portas", "categoria_id")
INTEGER_FIELDS = ("ano", "km", "portas", "categoria_id")


def normalize_brand_name(brand) -> str:
    if not brand:
        return ""
    brand = str(brand).strip()
    known = BRAND_NORMALIZATION_MAP.get(brand.upper())
    if known:
        return known
    return " ".join(word[:1].upper() + word[1:] for word in brand.lower().split(" "))


def normalize_plate(value) -> str:
    return re.sub(r"[^A-Z0-9]", "", str(value).upper())


def vehicle_rules() -> Dict[str, Dict[str, Any]]:
    max_year = today().year + 1
    return {
        "marca": {
            "required": True, "type": "string", "min_length": 2, "max_length": 50,
            "pattern": r"^[a-zA-ZÀ-ÿ0-9\s\-]+$",
            "message": "Marca deve conter apenas letras, números, espaços e hifens",
        },
        "modelo": {
            "required": True, "type": "string", "min_length": 1, "max_length": 100,
            "pattern": r"^[a-zA-ZÀ-ÿ0-9\s\-/.()]+$",
            "message": "Modelo deve conter apenas letras, números, espaços e caracteres especiais básicos",
        },
        "ano": {
            "required": True, "type": "number", "min": 1990, "max": max_year,
            "message": f"Ano deve estar entre 1990 e {max_year}",
        },
        "valor": {
            "required": True, "type": "number", "min": 1000, "max": 10000000,
            "message": "Valor deve estar entre R$ 1.000 e R$ 10.000.000",
        },
        "categoria_id": {
            "required": True, "type": "number", "min": 1,
            "message": "Categoria é obrigatória",
        },
        "km": {
            "required": False, "type": "number", "min": 0, "max": 1000000,
            "message": "Quilometragem deve estar entre 0 e 1.000.000 km",
        },
        "cor": {
            "required": False, "type": "string", "max_length": 30,
            "pattern": r"^[a-zA-ZÀ-ÿ\s\-]+$",
            "message": "Cor deve conter apenas letras, espaços e hifens",
        },
        "combustivel": {
            "required": False, "type": "enum", "enum": list(FUEL_TYPES),
            "message": "Combustível deve ser: flex, gasolina, diesel, elétrico ou híbrido",
        },
        "cambio": {
            "required": False, "type": "enum", "enum": list(TRANSMISSIONS),
            "message": "Câmbio deve ser: manual, automático ou CVT",
        },
        "portas": {
            "required": False, "type": "number", "min": 2, "max": 5,
            "message": "Número de portas deve estar entre 2 e 5",
        },
        "placa": {
            "required": False, "type": "string",
            "pattern": r"^[A-Z]{3}[0-9][A-Z][0-9]{2}$|^[A-Z]{3}[0-9]{4}$",
            "message": "Placa deve seguir o formato ABC1234 ou ABC1D23 (Mercosul)",
        },
        "codigo_interno": {
            "required": False, "type": "string", "max_length": 50,
            "pattern": r"^[a-zA-Z0-9\-_]+$",
            "message": "Código interno deve conter apenas letras, números, hifens e underscores",
        },
        "observacoes": {
            "required": False, "type": "string", "max_length": 1000,
            "message": "Observações não podem exceder 1000 caracteres",
        },
        "status": {
            "required": False, "type": "enum", "enum": list(VEHICLE_STATUSES),
            "message": "Status deve ser: disponível, reservado, negociando ou vendido",
        },
    }


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _error(field, message, code, value):
    return {"field": field, "message": message, "code": code, "value": value}


def validate_field(field: str, value, rule: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Check one value against one rule; returns a list of error dicts."""
    errors = []
    if not rule:
        return errors

    if _is_empty(value):
        if rule.get("required"):
            errors.append(_error(field, f"{field} é obrigatório", "REQUIRED", value))
        return errors

    kind = rule.get("type")
    if kind == "string" and not isinstance(value, str):
        errors.append(_error(field, f"{field} deve ser texto", "INVALID_TYPE", value))
        return errors
    if kind == "number":
        if isinstance(value, bool):
            errors.append(_error(field, f"{field} deve ser um número válido", "INVALID_NUMBER", value))
            return errors
        try:
            number = float(value)
        except (TypeError, ValueError):
            errors.append(_error(field, f"{field} deve ser um número válido", "INVALID_NUMBER", value))
            return errors
        if rule.get("min") is not None and number < rule["min"]:
            errors.append(_error(field, f"{field} deve ser maior ou igual a {rule['min']}", "MIN_VALUE", value))
        if rule.get("max") is not None and number > rule["max"]:
            errors.append(_error(field, f"{field} deve ser menor ou igual a {rule['max']}", "MAX_VALUE", value))
        return errors

    text = str(value)
    if rule.get("min_length") and len(text) < rule["min_length"]:
        errors.append(_error(field, f"{field} deve ter pelo menos {rule['min_length']} caracteres", "MIN_LENGTH", value))
    if rule.get("max_length") and len(text) > rule["max_length"]:
        errors.append(_error(field, f"{field} deve ter no máximo {rule['max_length']} caracteres", "MAX_LENGTH", value))
    if rule.get("pattern") and not re.match(rule["pattern"], text):
        errors.append(_error(field, rule.get("message") or f"{field} não atende ao formato requerido",
                             "PATTERN_MISMATCH", value))
    if rule.get("enum") and value not in rule["enum"]:
        errors.append(_error(field, rule.get("message") or f"{field} deve ser um dos valores: {', '.join(rule['enum'])}",
                             "INVALID_ENUM", value))
    return errors


def sanitize_vehicle_data(data: Dict[str, Any]) -> Dict[str, Any]:
    sanitized = dict(data)

    if sanitized.get("placa"):
        sanitized["placa"] = normalize_plate(sanitized["placa"])
    if sanitized.get("marca"):
        sanitized["marca"] = normalize_brand_name(sanitized["marca"])
    if sanitized.get("modelo"):
        sanitized["modelo"] = str(sanitized["modelo"]).strip()
    if sanitized.get("cor"):
        sanitized["cor"] = str(sanitized["cor"]).strip().lower()
    if isinstance(sanitized.get("codigo_interno"), str):
        sanitized["codigo_interno"] = sanitized["codigo_interno"].strip()

    for field in NUMERIC_FIELDS:
        value = sanitized.get(field)
        if isinstance(value, str) and value.strip():
            try:
                number = float(value.strip().replace(",", "."))
            except ValueError:
                continue
            sanitized[field] = int(number) if field in INTEGER_FIELDS and number.is_integer() else number
    return sanitized


def validate_vehicle(db: Session, data: Dict[str, Any], vehicle_id: Optional[int] = None,
                     partial: bool = False, rules: Optional[Dict[str, Dict[str, Any]]] = None):
    """Validate sanitized vehicle data.

    With `partial=True` only the supplied fields are checked, so an update
    carrying just `valor` does not trip the required-field rules.
    """
    rules = rules or vehicle_rules()
    errors, warnings = [], []

    for field, rule in rules.items():
        if partial and field not in data:
            continue
        errors.extend(validate_field(field, data.get(field), rule))

    categoria_id = data.get("categoria_id")
    if categoria_id and not any(e["field"] == "categoria_id" for e in errors):
        categoria = db.get(Categoria, int(categoria_id))
        if categoria is None:
            errors.append(_error("categoria_id", "Categoria não encontrada", "CATEGORY_NOT_FOUND", categoria_id))
        elif not categoria.ativo:
            warnings.append(_error("categoria_id", "Categoria está inativa", "CATEGORY_INACTIVE", categoria_id))

    placa = data.get("placa")
    if placa:
        q = db.query(Veiculo.id).filter(Veiculo.placa == normalize_plate(placa))
        if vehicle_id is not None:
            q = q.filter(Veiculo.id != vehicle_id)
        if q.first():
            errors.append(_error("placa", "Já existe um veículo com esta placa", "DUPLICATE_PLATE", placa))

    codigo = data.get("codigo_interno")
    if codigo:
        q = db.query(Veiculo.id).filter(Veiculo.codigo_interno == codigo)
        if vehicle_id is not None:
            q = q.filter(Veiculo.id != vehicle_id)
        if q.first():
            errors.append(_error("codigo_interno", "Já existe um veículo com este código interno",
                                 "DUPLICATE_CODE", codigo))

    ano, km, valor = _as_number(data.get("ano")), _as_number(data.get("km")), _as_number(data.get("valor"))
    if ano and km is not None and ano < 2000 and km < 50000:
        warnings.append(_error("km", "Quilometragem muito baixa para a idade do veículo", "SUSPICIOUS_MILEAGE", km))
    if ano and valor:
        idade = today().year - ano
        if idade > 20 and valor > 100000:
            warnings.append(_error("valor", "Valor alto para a idade do veículo", "HIGH_VALUE_OLD_CAR", valor))
        if idade < 2 and valor < 30000:
            warnings.append(_error("valor", "Valor baixo para veículo novo", "LOW_VALUE_NEW_CAR", valor))

    return {"valid": not errors, "errors": errors, "warnings": warnings}


def _as_number(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def has_conflict(errors) -> bool:
    return any(e.get("code") in ("DUPLICATE_PLATE", "DUPLICATE_CODE") for e in errors)
