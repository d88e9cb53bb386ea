# estoque/api/vendedores.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import crm, schemas
from ..db import get_db

router = APIRouter(prefix="/api/vendedores", tags=["vendedores"])


@router.get("")
def vendedores(db: Session = Depends(get_db)):
    rows = crm.seller_dashboard(db)
    return {"success": True, "data": rows, "meta": {"total": len(rows)}}


@router.post("", status_code=201)
def create_vendedor(payload: schemas.VendedorCreate, db: Session = Depends(get_db)):
    obj = crm.create_seller(db, payload)
    return {"success": True, "data": schemas.VendedorOut.model_validate(obj),
            "message": "Vendedor criado com sucesso"}


@router.put("")
def update_vendedor(payload: schemas.VendedorUpdate, db: Session = Depends(get_db)):
    obj = crm.update_seller(db, payload)
    return {"success": True, "data": schemas.VendedorOut.model_validate(obj),
            "message": "Vendedor atualizado com sucesso"}


@router.delete("")
def delete_vendedor(id: int = Query(...), db: Session = Depends(get_db)):
    released = crm.delete_seller(db, id)
    return {"success": True, "message": "Vendedor excluído com sucesso",
            "data": {"veiculos_liberados": released}}
