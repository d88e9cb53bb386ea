# estoque/status.py
"""Vehicle status vocabulary shared by the stock screens and the micro-mode
kanban. The stock screens only know three states, so `negociando` is shown
there as `reservado`."""

LEGACY_STATUS = {
    "disponivel": "disponivel",
    "reservado": "reservado",
    "negociando": "reservado",
    "vendido": "vendido",
}

STATUS_LABELS = {
    "disponivel": "Disponível",
    "reservado": "Reservado",
    "negociando": "Negociando",
    "vendido": "Vendido",
}

STATUS_PRIORITY = {"disponivel": 1, "reservado": 2, "negociando": 3, "vendido": 4}

# micromode action -> statuses it may start from
ACTION_SOURCES = {
    "reservar": ("disponivel",),
    "negociar": ("disponivel", "reservado"),
    "vender": ("reservado", "negociando"),
    "liberar": ("reservado", "negociando"),
    "cancelar": ("negociando",),
}


def to_legacy_status(status):
    return LEGACY_STATUS.get(status, status)


def is_in_process(status):
    return status in ("reservado", "negociando")


def status_priority(status):
    return STATUS_PRIORITY.get(status, 999)


def sort_for_display(vehicles):
    """Status priority first, then most expensive first."""
    return sorted(vehicles, key=lambda v: (status_priority(v.get("status")), -(v.get("valor") or 0)))


def calculate_compatible_stats(statuses):
    stats = {"disponivel": 0, "reservado": 0, "negociando": 0, "vendido": 0, "total": 0}
    for status in statuses:
        stats["total"] += 1
        if status == "negociando":
            # counted twice: once for the legacy view, once for micromode
            stats["reservado"] += 1
            stats["negociando"] += 1
        elif status in stats:
            stats[status] += 1
    return stats


def can_apply(action, status):
    return status in ACTION_SOURCES.get(action, ())


def available_actions(status, holder_id=None, vendedor_id=None):
    """Actions a seller may take on a vehicle in `status`.

    Only the seller holding a reserved or negotiating vehicle is offered the
    follow-up actions.
    """
    is_owner = vendedor_id is not None and holder_id == vendedor_id
    if status == "disponivel":
        return ["reservar", "negociar"]
    if status == "reservado" and is_owner:
        return ["negociar", "vender", "liberar"]
    if status == "negociando" and is_owner:
        return ["vender", "cancelar", "liberar"]
    return []
