# estoque/api/micromode.py
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import micromode, schemas
from ..db import get_db
from ..utils import utcnow

router = APIRouter(prefix="/api/micromode", tags=["micromode"])


@router.post("")
def action(payload: schemas.MicroModeAction, db: Session = Depends(get_db)):
    res = micromode.perform_action(db, payload.action, payload.veiculo_id, payload.vendedor_id)
    return {"success": True, **res}


@router.get("")
def kanban(vendedor_id: Optional[int] = None, db: Session = Depends(get_db)):
    columns = micromode.kanban_columns(db, vendedor_id)
    return {
        "success": True,
        "data": columns,
        "total_veiculos": sum(len(c["veiculos"]) for c in columns),
    }


@router.post("/cleanup")
def cleanup(db: Session = Depends(get_db)):
    released = micromode.release_expired_reservations(db)
    return {
        "success": True,
        "message": f"{len(released)} reservas vencidas foram liberadas",
        "data": {"liberadas": len(released), "reservas": released, "timestamp": utcnow().isoformat()},
    }


@router.get("/cleanup")
def cleanup_stats(db: Session = Depends(get_db)):
    return {"success": True, "data": micromode.reservation_stats(db)}
