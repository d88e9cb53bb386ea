# estoque/services.py
"""Vehicle write paths and catalog read models.

Every write (single create/update, batch, CSV import, micromode) goes through
`prepare_vehicle_insert` / `prepare_vehicle_update`, which recompute the price
tier and keep `data_venda` consistent with the status.
"""
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from . import crud, schemas
from .config import BATCH_MAX_OPERATIONS
from .errors import ApiError, BadRequest, Conflict, NotFound
from .models import Categoria, PRICE_TIERS, Veiculo
from .utils import logger, today
from .validation import has_conflict, normalize_brand_name, sanitize_vehicle_data, validate_vehicle

DEFAULT_TIER_THRESHOLDS = (80000.0, 40000.0, 20000.0)

# non-nullable columns with a default: a null in the payload
# means "leave unchanged"
_DEFAULTED_FIELDS = ("status", "km", "combustivel", "cambio", "portas", "vitrine", "data_entrada")

_RESERVATION_FIELDS = ("vendedor_id", "data_reserva", "data_liberacao_reserva", "data_inicio_negociacao")


def tier_thresholds(db: Session):
    config = crud.get_classes_config(db)
    if config is None:
        return DEFAULT_TIER_THRESHOLDS
    return (config.classe_a_min, config.classe_b_min, config.classe_c_min)


def classify_price_tier(valor, thresholds=DEFAULT_TIER_THRESHOLDS) -> str:
    a_min, b_min, c_min = thresholds
    valor = float(valor or 0)
    if valor >= a_min:
        return "A"
    if valor >= b_min:
        return "B"
    if valor >= c_min:
        return "C"
    return "D"


def apply_status_rules(updates: Dict[str, Any], current: Optional[Veiculo] = None) -> Dict[str, Any]:
    """Keep the sale date and seller hold consistent with a status change."""
    status = updates.get("status")
    if status is None:
        return updates
    if status == "vendido":
        if not updates.get("data_venda"):
            updates["data_venda"] = (current.data_venda if current is not None else None) or today()
    else:
        updates["data_venda"] = None
    if status == "disponivel":
        for field in _RESERVATION_FIELDS:
            updates.setdefault(field, None)
    return updates


def _raise_for_validation(result):
    if result["valid"]:
        return
    errors = result["errors"]
    if has_conflict(errors):
        raise Conflict("Registro duplicado", errors)
    raise BadRequest("Validação falhou", errors)


def prepare_vehicle_insert(data: Dict[str, Any], thresholds) -> Dict[str, Any]:
    data = {k: v for k, v in data.items() if not (k in _DEFAULTED_FIELDS and v is None)}
    data["classe_social"] = classify_price_tier(data.get("valor"), thresholds)
    data.setdefault("status", "disponivel")
    data.setdefault("data_entrada", today())
    return apply_status_rules(data)


def prepare_vehicle_update(obj: Veiculo, data: Dict[str, Any], thresholds) -> Dict[str, Any]:
    updates = {k: v for k, v in data.items() if not (k in _DEFAULTED_FIELDS and v is None)}
    updates.pop("id", None)
    if updates.get("valor") is not None:
        updates["classe_social"] = classify_price_tier(updates["valor"], thresholds)
    return apply_status_rules(updates, obj)


def create_vehicle(db: Session, payload: Dict[str, Any], thresholds=None, commit: bool = True):
    sanitized = sanitize_vehicle_data(payload)
    result = validate_vehicle(db, sanitized)
    _raise_for_validation(result)
    data = prepare_vehicle_insert(sanitized, thresholds or tier_thresholds(db))
    obj = crud.create_veiculo(db, data, commit=commit)
    logger.info("Vehicle %s created (%s %s, tier %s)", obj.id, obj.marca, obj.modelo, obj.classe_social)
    return obj, result["warnings"]


def update_vehicle(db: Session, veiculo_id: int, payload: Dict[str, Any], thresholds=None, commit: bool = True):
    obj = db.get(Veiculo, veiculo_id)
    if obj is None:
        raise NotFound("Veículo não encontrado")
    sanitized = sanitize_vehicle_data(payload)
    result = validate_vehicle(db, sanitized, vehicle_id=veiculo_id, partial=True)
    _raise_for_validation(result)
    updates = prepare_vehicle_update(obj, sanitized, thresholds or tier_thresholds(db))
    obj = crud.update_veiculo(db, obj, updates, commit=commit)
    return obj, result["warnings"]


def delete_vehicle(db: Session, veiculo_id: int, commit: bool = True):
    if not crud.delete_veiculo(db, veiculo_id, commit=commit):
        raise NotFound("Veículo não encontrado")
    logger.info("Vehicle %s deleted", veiculo_id)


def run_batch(db: Session, operations: List[schemas.BatchOperation]):
    if not operations:
        raise BadRequest("Operações inválidas",
                         "Lista de operações deve ser fornecida e não pode estar vazia")
    if len(operations) > BATCH_MAX_OPERATIONS:
        raise BadRequest("Muitas operações", f"Máximo de {BATCH_MAX_OPERATIONS} operações por batch")

    thresholds = tier_thresholds(db)
    results, successful, failed = [], 0, 0
    for operation in operations:
        entry = {"success": False, "operation": operation.model_dump()}
        try:
            if operation.action == "create":
                data = schemas.VeiculoCreate.model_validate(operation.data).model_dump(exclude_unset=True)
                obj, _ = create_vehicle(db, data, thresholds)
                entry["result"] = schemas.VeiculoOut.model_validate(obj)
            elif operation.action == "update":
                if not operation.id:
                    raise BadRequest("ID é obrigatório para operações de atualização")
                data = schemas.VeiculoUpdate.model_validate(operation.data).model_dump(exclude_unset=True)
                obj, _ = update_vehicle(db, operation.id, data, thresholds)
                entry["result"] = schemas.VeiculoOut.model_validate(obj)
            elif operation.action == "delete":
                if not operation.id:
                    raise BadRequest("ID é obrigatório para operações de exclusão")
                delete_vehicle(db, operation.id)
                entry["result"] = {"deleted": True}
            else:
                raise BadRequest(f"Ação não suportada: {operation.action}")
            entry["success"] = True
            successful += 1
        except ApiError as e:
            db.rollback()
            entry["error"] = e.error
            if e.details is not None:
                entry["details"] = e.details
            failed += 1
        except ValidationError as e:
            entry["error"] = "Dados inválidos"
            entry["details"] = [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()
            ]
            failed += 1
        results.append(entry)

    logger.info("Batch finished: %d ok, %d failed", successful, failed)
    return {
        "results": results,
        "summary": {"total": len(operations), "successful": successful, "failed": failed},
    }


BATCH_TEMPLATE = {
    "operations": [
        {
            "action": "create",
            "data": {
                "marca": "TOYOTA", "modelo": "Corolla", "ano": 2023, "valor": 85000,
                "categoria_id": 1, "km": 15000, "cor": "branco", "combustivel": "flex",
                "cambio": "automatico", "portas": 4, "observacoes": "Veículo em excelente estado",
            },
        },
        {"action": "update", "id": 123, "data": {"valor": 78000, "status": "reservado"}},
        {"action": "delete", "id": 456},
    ]
}


def main_photo(obj: Veiculo):
    for foto in obj.fotos:
        if foto.tipo == "principal":
            return foto
    return None


def vehicle_list_item(obj: Veiculo) -> Dict[str, Any]:
    foto = main_photo(obj)
    return {
        "id": obj.id,
        "marca": obj.marca,
        "modelo": obj.modelo,
        "ano": obj.ano,
        "valor": obj.valor,
        "classe_social": obj.classe_social,
        "status": obj.status,
        "vitrine": obj.vitrine,
        "dias_estoque": obj.dias_estoque,
        "km": obj.km,
        "cor": obj.cor,
        "combustivel": obj.combustivel,
        "cambio": obj.cambio,
        "placa": obj.placa,
        "categoria_nome": obj.categoria.nome if obj.categoria else None,
        "categoria_slug": obj.categoria.slug if obj.categoria else None,
        "categoria_icone": obj.categoria.icone if obj.categoria else None,
        "foto_principal": foto.url if foto else None,
        "foto_thumb": foto.url_thumb if foto else None,
    }


def vehicle_detail(obj: Veiculo) -> schemas.VeiculoDetalhe:
    detail = schemas.VeiculoDetalhe.model_validate(obj)
    detail.fotos = sorted(detail.fotos, key=lambda f: (f.tipo != "principal", f.ordem))
    return detail


def list_vehicles(db: Session, page: int, limit: int, filters: Dict[str, Any], sort_by: str, sort_order: str):
    res = crud.list_veiculos(db, skip=(page - 1) * limit, limit=limit, filters=filters,
                             sort_by=sort_by, sort_order=sort_order)
    items = [vehicle_list_item(v) for v in res["items"]]
    total = res["total"]
    total_pages = (total + limit - 1) // limit if limit else 0

    count = len(items)
    total_valor = sum(i["valor"] or 0 for i in items)
    return {
        "data": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
        "aggregations": {
            "total_valor": total_valor,
            "media_valor": total_valor / count if count else 0,
            "media_km": sum(i["km"] or 0 for i in items) / count if count else 0,
            "media_dias_estoque": sum(i["dias_estoque"] for i in items) / count if count else 0,
        },
    }


def normalize_stored_brands(db: Session):
    changes = []
    for obj in db.query(Veiculo).order_by(Veiculo.id).all():
        normalized = normalize_brand_name(obj.marca)
        if normalized and normalized != obj.marca:
            changes.append({"id": obj.id, "from": obj.marca, "to": normalized})
            obj.marca = normalized
    db.commit()
    logger.info("Brand normalization updated %d vehicles", len(changes))
    return changes


def build_filters(db: Session) -> Dict[str, Any]:
    """Facet counts over the unsold stock for the catalog filter sidebar."""
    stock = (
        db.query(Veiculo.marca, Veiculo.valor, Veiculo.ano, Veiculo.classe_social, Veiculo.categoria_id)
        .filter(Veiculo.status != "vendido")
        .all()
    )

    marcas: Dict[str, int] = {}
    por_categoria: Dict[int, int] = {}
    por_classe: Dict[str, List[float]] = {tier: [] for tier in PRICE_TIERS}
    for marca, valor, _, classe, categoria_id in stock:
        marcas[marca] = marcas.get(marca, 0) + 1
        por_categoria[categoria_id] = por_categoria.get(categoria_id, 0) + 1
        if classe in por_classe:
            por_classe[classe].append(valor)

    categorias = []
    if por_categoria:
        for cat in db.query(Categoria).filter(Categoria.id.in_(list(por_categoria))).all():
            categorias.append({"id": cat.id, "nome": cat.nome, "slug": cat.slug, "icone": cat.icone,
                               "count": por_categoria[cat.id]})
    categorias.sort(key=lambda c: -c["count"])

    classes = {
        tier: {
            "count": len(values),
            "valor_min": min(values) if values else 0,
            "valor_max": max(values) if values else 0,
            "valor_medio": sum(values) / len(values) if values else 0,
        }
        for tier, values in por_classe.items()
    }

    valores = [row[1] for row in stock]
    anos = [row[2] for row in stock]
    year = today().year
    return {
        "marcas": sorted(({"nome": k, "count": v} for k, v in marcas.items()), key=lambda m: -m["count"]),
        "categorias": categorias,
        "classes": classes,
        "valor_range": {"min": min(valores) if valores else 0, "max": max(valores) if valores else 0},
        "ano_range": {"min": min(anos) if anos else year, "max": max(anos) if anos else year},
    }
