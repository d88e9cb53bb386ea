# estoque/api/leads.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import crm, crud, schemas
from ..db import get_db
from ..utils import utcnow

router = APIRouter(prefix="/api/leads", tags=["leads"])


@router.get("")
def leads(overview: bool = False, db: Session = Depends(get_db)):
    rows = crud.list_leads(db)
    now = utcnow()
    if overview:
        return {"success": True, "data": crm.leads_overview(rows, now)}
    return {
        "success": True,
        "data": {
            "resumo": crm.leads_summary(rows, now),
            "leads": [crm.lead_item(lead, now) for lead in rows],
        },
    }


@router.post("", status_code=201)
def create_lead(payload: schemas.LeadCreate, db: Session = Depends(get_db)):
    obj = crm.create_lead(db, payload)
    return {"success": True, "data": schemas.LeadOut.model_validate(obj), "message": "Lead criado com sucesso"}


@router.put("")
def update_lead(payload: schemas.LeadUpdate, db: Session = Depends(get_db)):
    obj = crm.update_lead(db, payload)
    return {"success": True, "data": schemas.LeadOut.model_validate(obj),
            "message": "Lead atualizado com sucesso"}
