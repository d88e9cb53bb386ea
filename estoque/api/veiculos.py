# estoque/api/veiculos.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import crud, schemas, services
from ..config import BATCH_MAX_OPERATIONS
from ..db import get_db
from ..errors import NotFound

router = APIRouter(prefix="/api", tags=["veiculos"])


@router.get("/veiculos")
def list_veiculos(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    marca: Optional[str] = None,
    categoria: Optional[str] = None,
    classe_social: Optional[str] = None,
    status: Optional[str] = None,
    vitrine: Optional[bool] = None,
    valor_min: Optional[float] = None,
    valor_max: Optional[float] = None,
    search: Optional[str] = None,
    sort_by: str = "valor",
    sort_order: str = "desc",
    db: Session = Depends(get_db),
):
    filters = {
        "marca": marca,
        "categoria": categoria,
        "classe_social": classe_social,
        "status": status,
        "vitrine": vitrine,
        "valor_min": valor_min,
        "valor_max": valor_max,
        "search": search,
    }
    res = services.list_vehicles(db, page, limit, filters, sort_by, sort_order)
    return {
        "success": True,
        **res,
        "filters_applied": {k: v for k, v in filters.items() if v is not None},
    }


@router.post("/veiculos", status_code=201)
def create_veiculo(payload: schemas.VeiculoCreate, db: Session = Depends(get_db)):
    obj, warnings = services.create_vehicle(db, payload.model_dump(exclude_unset=True))
    return {
        "success": True,
        "data": schemas.VeiculoOut.model_validate(obj),
        "warnings": warnings,
        "message": "Veículo criado com sucesso",
    }


# declared before /veiculos/{veiculo_id} so "batch" is not parsed as an id
@router.get("/veiculos/batch")
def batch_template():
    return {
        "success": True,
        "data": {
            "template": services.BATCH_TEMPLATE,
            "limits": {"max_operations": BATCH_MAX_OPERATIONS, "actions": ["create", "update", "delete"]},
        },
    }


@router.post("/veiculos/batch")
def batch(payload: schemas.BatchRequest, db: Session = Depends(get_db)):
    res = services.run_batch(db, payload.operations)
    return {"success": res["summary"]["failed"] == 0, "data": res["results"], "summary": res["summary"]}


@router.get("/veiculos/{veiculo_id}")
def get_veiculo(veiculo_id: int, db: Session = Depends(get_db)):
    obj = crud.get_veiculo(db, veiculo_id)
    if not obj:
        raise NotFound("Veículo não encontrado")
    return {"success": True, "data": services.vehicle_detail(obj)}


@router.put("/veiculos/{veiculo_id}")
def update_veiculo(veiculo_id: int, payload: schemas.VeiculoUpdate, db: Session = Depends(get_db)):
    obj, warnings = services.update_vehicle(db, veiculo_id, payload.model_dump(exclude_unset=True))
    return {
        "success": True,
        "data": schemas.VeiculoOut.model_validate(obj),
        "warnings": warnings,
        "message": "Veículo atualizado com sucesso",
    }


@router.delete("/veiculos/{veiculo_id}")
def delete_veiculo(veiculo_id: int, db: Session = Depends(get_db)):
    services.delete_vehicle(db, veiculo_id)
    return {"success": True, "message": "Veículo excluído com sucesso"}


@router.get("/categorias")
def categorias(db: Session = Depends(get_db)):
    return {
        "success": True,
        "data": [schemas.CategoriaOut.model_validate(c) for c in crud.list_categorias(db)],
    }


@router.get("/filters")
def filters(db: Session = Depends(get_db)):
    return {"success": True, "data": services.build_filters(db)}


@router.post("/admin/normalize-brands")
def normalize_brands(db: Session = Depends(get_db)):
    changes = services.normalize_stored_brands(db)
    return {"success": True, "data": {"updated": len(changes), "changes": changes}}
