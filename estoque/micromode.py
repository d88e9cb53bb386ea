# estoque/micromode.py
"""Seller-facing reservation / negotiation / sale flow.

Vehicles move disponivel -> reservado -> negociando -> vendido, or back to
disponivel on release, cancel, or when a reservation deadline passes. There is
no claim arbitration between sellers: the last write wins.
"""
import math
from datetime import timedelta
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from . import crud, schemas
from .errors import BadRequest, Conflict, NotFound
from .models import SistemaLog, Veiculo
from .status import ACTION_SOURCES, STATUS_LABELS, available_actions, can_apply
from .utils import logger, today, utcnow

DEFAULT_RESERVATION_DAYS = 3
DEFAULT_POINTS_PER_SALE = 100


def _settings(db: Session):
    config = crud.get_vendedores_config(db)
    days = (config.reserva_veiculo_dias if config else None) or DEFAULT_RESERVATION_DAYS
    points = (config.pontos_por_venda if config else None) or DEFAULT_POINTS_PER_SALE
    return days, points


def perform_action(db: Session, action: str, veiculo_id: int, vendedor_id: int) -> Dict[str, Any]:
    if action not in ACTION_SOURCES:
        raise BadRequest("Ação inválida", f"Ações aceitas: {', '.join(ACTION_SOURCES)}")

    veiculo = db.get(Veiculo, veiculo_id)
    if veiculo is None:
        raise NotFound("Veículo não encontrado")
    vendedor = crud.get_vendedor(db, vendedor_id)
    if vendedor is None:
        raise NotFound("Vendedor não encontrado")
    if not can_apply(action, veiculo.status):
        raise Conflict(
            f"Operação '{action}' não permitida para veículo no status '{veiculo.status}'",
            {"status": veiculo.status, "permitidos": list(ACTION_SOURCES[action])},
        )

    dias_reserva, pontos_por_venda = _settings(db)
    now = utcnow()
    pontos = 0

    if action == "reservar":
        veiculo.status = "reservado"
        veiculo.vendedor_id = vendedor_id
        veiculo.data_reserva = now
        veiculo.data_liberacao_reserva = now + timedelta(days=dias_reserva)
        message = f"Veículo reservado por {dias_reserva} dias"
    elif action == "negociar":
        veiculo.status = "negociando"
        veiculo.vendedor_id = vendedor_id
        veiculo.data_inicio_negociacao = now
        message = "Veículo marcado como negociando"
    elif action == "vender":
        veiculo.status = "vendido"
        veiculo.data_venda = today()
        veiculo.vendedor_venda = vendedor_id
        pontos = pontos_por_venda
        vendedor.pontuacao = (vendedor.pontuacao or 0) + pontos
        metrica = crud.get_or_create_metrica(db, vendedor_id)
        metrica.veiculos_vendidos += 1
        metrica.valor_vendas = (metrica.valor_vendas or 0) + (veiculo.valor or 0)
        metrica.pontos_ganhos += pontos
        message = f"Venda finalizada! +{pontos} pontos"
    elif action == "liberar":
        veiculo.status = "disponivel"
        veiculo.vendedor_id = None
        veiculo.data_reserva = None
        veiculo.data_liberacao_reserva = None
        veiculo.data_inicio_negociacao = None
        message = "Veículo liberado para outros vendedores"
    else:
        veiculo.status = "disponivel"
        veiculo.vendedor_id = None
        veiculo.data_inicio_negociacao = None
        message = "Negociação cancelada"

    db.commit()
    db.refresh(veiculo)
    logger.info("Micromode %s: vehicle %s by seller %s", action, veiculo_id, vendedor_id)
    return {
        "message": message,
        "data": schemas.VeiculoOut.model_validate(veiculo),
        "pontos_ganhos": pontos,
    }


def days_left(deadline, now=None):
    if deadline is None:
        return None
    seconds = (deadline - (now or utcnow())).total_seconds()
    return max(0, math.ceil(seconds / 86400))


def kanban_columns(db: Session, vendedor_id: int = None) -> List[Dict[str, Any]]:
    """Unsold vehicles grouped into one column per brand."""
    veiculos = crud.list_veiculos_by_status(db, ("disponivel", "reservado", "negociando"))
    names = crud.vendedor_names(db, (v.vendedor_id for v in veiculos))
    now = utcnow()

    columns: Dict[str, Dict[str, Any]] = {}
    for v in veiculos:
        column = columns.get(v.marca)
        if column is None:
            column = columns[v.marca] = {
                "id": "-".join(v.marca.lower().split()),
                "titulo": v.marca.upper(),
                "marca": v.marca,
                "icone": (v.categoria.icone if v.categoria else None) or "🚗",
                "veiculos": [],
            }
        column["veiculos"].append({
            "id": v.id,
            "marca": v.marca,
            "modelo": v.modelo,
            "ano": v.ano,
            "valor": v.valor,
            "status": v.status,
            "status_label": STATUS_LABELS.get(v.status, v.status),
            "classe_social": v.classe_social,
            "vendedor_id": v.vendedor_id,
            "data_reserva": v.data_reserva,
            "data_liberacao_reserva": v.data_liberacao_reserva,
            "data_inicio_negociacao": v.data_inicio_negociacao,
            "categoria": v.categoria.nome if v.categoria else None,
            "vendedor_nome": names.get(v.vendedor_id),
            "dias_restantes": days_left(v.data_liberacao_reserva, now) if v.status == "reservado" else None,
            "acoes": available_actions(v.status, v.vendedor_id, vendedor_id),
        })
    return list(columns.values())


def release_expired_reservations(db: Session) -> List[Dict[str, Any]]:
    """Return every reservation past its deadline to the available pool."""
    now = utcnow()
    expired = (
        db.query(Veiculo)
        .filter(Veiculo.status == "reservado", Veiculo.data_liberacao_reserva < now)
        .order_by(Veiculo.id)
        .all()
    )
    if not expired:
        return []

    released = []
    for v in expired:
        released.append({
            "veiculo_id": v.id,
            "veiculo": f"{v.marca} {v.modelo}",
            "vendedor_id": v.vendedor_id,
            "data_vencimento": v.data_liberacao_reserva.isoformat(),
        })
        v.status = "disponivel"
        v.vendedor_id = None
        v.data_reserva = None
        v.data_liberacao_reserva = None

    db.add(SistemaLog(
        tipo="cleanup_reservas",
        descricao=f"{len(released)} reservas vencidas foram liberadas automaticamente",
        dados={"reservas_liberadas": released, "timestamp": now.isoformat()},
    ))
    db.commit()
    logger.info("Released %d expired reservations", len(released))
    return released


def reservation_stats(db: Session) -> Dict[str, Any]:
    now = utcnow()
    soon = now + timedelta(hours=24)
    deadlines = [
        row[0] for row in db.query(Veiculo.data_liberacao_reserva).filter(Veiculo.status == "reservado").all()
    ]
    vencidas = sum(1 for d in deadlines if d is not None and d < now)
    return {
        "reservas_ativas": len(deadlines),
        "reservas_validas": len(deadlines) - vencidas,
        "reservas_vencidas": vencidas,
        "proximas_vencer_24h": sum(1 for d in deadlines if d is not None and now < d < soon),
        "timestamp": now.isoformat(),
    }
