# estoque/api/routes.py
from fastapi import APIRouter

from . import dashboard, imports, leads, micromode, vendedores, veiculos

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


for module in (veiculos, micromode, dashboard, vendedores, leads, imports):
    router.include_router(module.router)
