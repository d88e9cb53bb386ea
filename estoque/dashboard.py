# estoque/dashboard.py
"""Inventory dashboard: executive summary plus the brand -> category -> tier
hierarchy of the unsold stock."""
from typing import Any, Dict, Iterable

from sqlalchemy.orm import Session, joinedload

from .models import PRICE_TIERS, Veiculo
from .status import calculate_compatible_stats
from .utils import utcnow


def _empty_classes():
    return {tier: {"quantidade": 0, "valor": 0.0, "percentual": 0.0} for tier in PRICE_TIERS}


def build_hierarchy(veiculos: Iterable[Veiculo]):
    marcas: Dict[str, Dict[str, Any]] = {}
    for v in veiculos:
        marca = marcas.setdefault(v.marca, {
            "marca": v.marca, "total_veiculos": 0, "valor_total": 0.0, "categorias": {},
        })
        valor = v.valor or 0
        marca["total_veiculos"] += 1
        marca["valor_total"] += valor

        categoria = v.categoria
        slug = categoria.slug if categoria else "sem-categoria"
        cat = marca["categorias"].setdefault(slug, {
            "nome": categoria.nome if categoria else "Sem categoria",
            "slug": slug,
            "icone": categoria.icone if categoria else None,
            "total_veiculos": 0,
            "valor_total": 0.0,
            "classes": _empty_classes(),
        })
        cat["total_veiculos"] += 1
        cat["valor_total"] += valor
        tier = cat["classes"].get(v.classe_social)
        if tier is not None:
            tier["quantidade"] += 1
            tier["valor"] += valor

    hierarquia = []
    for marca in marcas.values():
        categorias = sorted(marca["categorias"].values(), key=lambda c: c["nome"])
        for cat in categorias:
            for tier in cat["classes"].values():
                tier["percentual"] = tier["quantidade"] / cat["total_veiculos"] * 100 if cat["total_veiculos"] else 0
        hierarquia.append({**marca, "categorias": categorias})
    hierarquia.sort(key=lambda m: -m["valor_total"])
    return hierarquia


def _summary(stock, por_status):
    total = len(stock)
    valor_total = sum(v.valor or 0 for v in stock)
    return {
        "total_veiculos": total,
        "valor_total": valor_total,
        "valor_medio": valor_total / total if total else 0,
        "ultima_atualizacao": utcnow().isoformat(),
        "por_status": por_status,
    }


def _unsold(db: Session):
    return (
        db.query(Veiculo)
        .options(joinedload(Veiculo.categoria))
        .filter(Veiculo.status != "vendido")
        .order_by(Veiculo.marca.asc())
        .all()
    )


def inventory_dashboard(db: Session) -> Dict[str, Any]:
    """Overview shape: three legacy statuses; negotiating vehicles count as reserved."""
    stock = _unsold(db)
    stats = calculate_compatible_stats(v.status for v in stock)
    por_status = {"disponivel": stats["disponivel"], "reservado": stats["reservado"], "vendido": stats["vendido"]}
    return {"resumo": _summary(stock, por_status), "hierarquia": build_hierarchy(stock)}


def micromode_dashboard(db: Session) -> Dict[str, Any]:
    stock = _unsold(db)
    stats = calculate_compatible_stats(v.status for v in stock)
    legacy = {"disponivel": stats["disponivel"], "reservado": stats["reservado"], "vendido": stats["vendido"]}
    return {
        "resumo": _summary(stock, legacy),
        "hierarquia": build_hierarchy(stock),
        "micromode": {
            "por_status": {
                "disponivel": stats["disponivel"],
                "reservado": stats["reservado"] - stats["negociando"],
                "negociando": stats["negociando"],
                "vendido": stats["vendido"],
            },
            "stats_detalhadas": stats,
        },
    }
