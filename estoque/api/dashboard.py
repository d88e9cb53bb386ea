# estoque/api/dashboard.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import dashboard
from ..db import get_db

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("")
def overview(db: Session = Depends(get_db)):
    return {"success": True, "data": dashboard.inventory_dashboard(db)}


@router.get("/micromode-compatible")
def micromode_compatible(db: Session = Depends(get_db)):
    return {"success": True, "data": dashboard.micromode_dashboard(db)}
