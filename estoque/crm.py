# estoque/crm.py
"""Sellers, their performance board, and the lead pipeline."""
from datetime import timedelta
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import crud, schemas
from .errors import BadRequest, Conflict, NotFound
from .models import LEAD_STATUSES, SELLER_LEVELS, Lead, Veiculo, Vendedor
from .utils import current_period, logger, relative_time, utcnow

ACTIVE_LEAD_STATUSES = ("novo", "qualificado", "proposta", "negociacao")
PIPELINE_STAGES = (
    ("Novos", "novo"),
    ("Qualificados", "qualificado"),
    ("Propostas", "proposta"),
    ("Negociação", "negociacao"),
    ("Convertidos", "convertido"),
)
FOLLOW_UP_AFTER = timedelta(hours=48)


def _clean(value):
    if value is None:
        return None
    value = value.strip()
    return value or None


# sellers

def seller_dashboard(db: Session) -> List[Dict[str, Any]]:
    """One row per seller with current-month performance and both rankings."""
    periodo = current_period()
    metricas = crud.metricas_for_period(db, periodo)
    leads_ativos = dict(
        db.query(Lead.vendedor_id, func.count(Lead.id))
        .filter(Lead.vendedor_id.isnot(None), Lead.status.in_(ACTIVE_LEAD_STATUSES))
        .group_by(Lead.vendedor_id)
        .all()
    )

    rows = []
    for vendedor in crud.list_vendedores(db):
        m = metricas.get(vendedor.id)
        faturamento = (m.valor_vendas if m else 0) or 0
        recebidos = m.leads_recebidos if m else 0
        convertidos = m.leads_convertidos if m else 0
        row = schemas.VendedorOut.model_validate(vendedor).model_dump()
        row.update({
            "periodo": periodo,
            "vendas_mes_atual": m.veiculos_vendidos if m else 0,
            "faturamento_mes_atual": faturamento,
            "pontos_mes_atual": m.pontos_ganhos if m else 0,
            "meta_atingida_atual": round(faturamento / vendedor.meta_mensal * 100, 1) if vendedor.meta_mensal else 0,
            "taxa_conversao_atual": round(convertidos / recebidos * 100, 1) if recebidos else 0,
            "leads_ativos": leads_ativos.get(vendedor.id, 0),
        })
        rows.append(row)

    for position, row in enumerate(sorted(rows, key=lambda r: (-r["faturamento_mes_atual"], r["id"])), 1):
        row["ranking_mes"] = position
    rows.sort(key=lambda r: (-r["pontuacao"], r["id"]))
    for position, row in enumerate(rows, 1):
        row["ranking_geral"] = position
    return rows


def _check_level(nivel):
    if nivel is not None and nivel not in SELLER_LEVELS:
        raise BadRequest("Nível inválido", f"Níveis aceitos: {', '.join(SELLER_LEVELS)}")


def create_seller(db: Session, payload: schemas.VendedorCreate) -> Vendedor:
    nome, email = _clean(payload.nome), _clean(payload.email)
    if not nome or not email:
        raise BadRequest("Nome e email são obrigatórios")
    _check_level(payload.nivel)
    if crud.get_vendedor_by_email(db, email):
        raise Conflict("Já existe um vendedor com este email", {"field": "email", "value": email})

    vendedor = Vendedor(
        nome=nome,
        email=email,
        telefone=_clean(payload.telefone),
        foto_url=_clean(payload.foto_url),
        nivel=payload.nivel or "iniciante",
        meta_mensal=payload.meta_mensal or 30000,
        comissao_percentual=payload.comissao_percentual or 2.5,
        especialidades=payload.especialidades or [],
    )
    db.add(vendedor)
    db.commit()
    db.refresh(vendedor)
    logger.info("Seller %s created", vendedor.id)
    return vendedor


def update_seller(db: Session, payload: schemas.VendedorUpdate) -> Vendedor:
    if not payload.id:
        raise BadRequest("ID do vendedor é obrigatório para edição")
    vendedor = crud.get_vendedor(db, payload.id)
    if vendedor is None:
        raise NotFound("Vendedor não encontrado")

    updates = payload.model_dump(exclude_unset=True, exclude={"id"})
    for field in ("nome", "email", "telefone", "foto_url"):
        if field in updates:
            updates[field] = _clean(updates[field])
    if "nome" in updates and not updates["nome"]:
        raise BadRequest("Nome e email são obrigatórios")
    if "email" in updates:
        if not updates["email"]:
            raise BadRequest("Nome e email são obrigatórios")
        clash = crud.get_vendedor_by_email(db, updates["email"])
        if clash is not None and clash.id != vendedor.id:
            raise Conflict("Já existe um vendedor com este email", {"field": "email", "value": updates["email"]})
    _check_level(updates.get("nivel"))
    if updates.get("status") is not None and updates["status"] not in ("ativo", "inativo"):
        raise BadRequest("Status inválido", "Status aceitos: ativo, inativo")

    for k, v in updates.items():
        if v is None and k not in ("telefone", "foto_url"):
            continue
        setattr(vendedor, k, v)
    db.commit()
    db.refresh(vendedor)
    return vendedor


def delete_seller(db: Session, vendedor_id: int):
    vendedor = crud.get_vendedor(db, vendedor_id)
    if vendedor is None:
        raise NotFound("Vendedor não encontrado")

    held = (
        db.query(Veiculo)
        .filter(Veiculo.vendedor_id == vendedor_id, Veiculo.status.in_(("reservado", "negociando")))
        .all()
    )
    for v in held:
        v.status = "disponivel"
        v.data_reserva = None
        v.data_liberacao_reserva = None
        v.data_inicio_negociacao = None
    db.query(Veiculo).filter(Veiculo.vendedor_id == vendedor_id).update(
        {Veiculo.vendedor_id: None}, synchronize_session=False)
    db.query(Veiculo).filter(Veiculo.vendedor_venda == vendedor_id).update(
        {Veiculo.vendedor_venda: None}, synchronize_session=False)
    db.query(Lead).filter(Lead.vendedor_id == vendedor_id).update(
        {Lead.vendedor_id: None}, synchronize_session=False)
    db.delete(vendedor)
    db.commit()
    logger.info("Seller %s deleted, %d vehicles released", vendedor_id, len(held))
    return len(held)


# leads

def lead_item(lead: Lead, now=None) -> Dict[str, Any]:
    return {
        "id": lead.id,
        "nome": lead.nome,
        "telefone": lead.telefone,
        "email": lead.email,
        "status": lead.status,
        "origem": lead.origem or "whatsapp",
        "interesse": {
            "veiculo": lead.veiculo_interesse,
            "categoria": lead.categoria_interesse,
            "valor_max": lead.valor_maximo,
        },
        "score": lead.score if lead.score is not None else 50,
        "ultima_interacao": relative_time(lead.atualizado_em, now),
        "data_criacao": lead.criado_em,
        "vendedor_id": lead.vendedor_id,
        "vendedor_responsavel": lead.vendedor.nome if lead.vendedor else None,
        "observacoes": lead.observacoes,
        "tags": lead.tags or [],
    }


def _converted_this_month(lead, now):
    return (
        lead.status == "convertido"
        and lead.atualizado_em is not None
        and (lead.atualizado_em.year, lead.atualizado_em.month) == (now.year, now.month)
    )


def leads_summary(leads: List[Lead], now=None) -> Dict[str, Any]:
    now = now or utcnow()
    total = len(leads)
    conversoes_mes = sum(1 for l in leads if _converted_this_month(l, now))
    return {
        "total_leads": total,
        "leads_ativos": sum(1 for l in leads if l.status in ACTIVE_LEAD_STATUSES),
        "conversoes_mes": conversoes_mes,
        "leads_novos_hoje": sum(1 for l in leads if l.criado_em and l.criado_em.date() == now.date()),
        "taxa_conversao": round(conversoes_mes / (total or 1) * 100),
    }


def leads_overview(leads: List[Lead], now=None) -> Dict[str, Any]:
    now = now or utcnow()
    resumo = leads_summary(leads, now)

    origens: Dict[str, Dict[str, Any]] = {}
    for lead in leads:
        origem = origens.setdefault(lead.origem or "whatsapp", {"nome": lead.origem or "whatsapp", "leads": 0, "conversoes": 0})
        origem["leads"] += 1
        if lead.status == "convertido":
            origem["conversoes"] += 1
    for origem in origens.values():
        origem["taxa_conversao"] = round(origem["conversoes"] / origem["leads"] * 100) if origem["leads"] else 0

    pipeline = [
        {"etapa": etapa, "status": status, "ordem": ordem, "quantidade": sum(1 for l in leads if l.status == status)}
        for ordem, (etapa, status) in enumerate(PIPELINE_STAGES, 1)
    ]
    alertas = [
        {"lead_id": l.id, "nome": l.nome, "mensagem": f"Follow-up pendente há {relative_time(l.atualizado_em, now)}"}
        for l in leads
        if l.status == "qualificado" and l.atualizado_em and now - l.atualizado_em > FOLLOW_UP_AFTER
    ]
    return {
        "resumo": {
            "total_leads": resumo["total_leads"],
            "leads_hoje": resumo["leads_novos_hoje"],
            "conversoes_total": sum(1 for l in leads if l.status == "convertido"),
            "conversoes_mes": resumo["conversoes_mes"],
            "taxa_conversao": resumo["taxa_conversao"],
            "follow_ups_pendentes": sum(1 for l in leads if l.status == "qualificado"),
        },
        "origens": sorted(origens.values(), key=lambda o: -o["leads"]),
        "pipeline": pipeline,
        "alertas": alertas,
    }


def _check_seller(db, vendedor_id):
    if vendedor_id is not None and crud.get_vendedor(db, vendedor_id) is None:
        raise NotFound("Vendedor não encontrado")


def create_lead(db: Session, payload: schemas.LeadCreate) -> Lead:
    nome, telefone = _clean(payload.nome), _clean(payload.telefone)
    if not nome or not telefone:
        raise BadRequest("Nome e telefone são obrigatórios")
    _check_seller(db, payload.vendedor_id)

    lead = Lead(
        nome=nome,
        telefone=telefone,
        email=_clean(payload.email),
        origem=payload.origem or "whatsapp",
        status="novo",
        veiculo_interesse=_clean(payload.veiculo_interesse),
        categoria_interesse=_clean(payload.categoria_interesse),
        valor_maximo=payload.valor_maximo,
        observacoes=_clean(payload.observacoes),
        vendedor_id=payload.vendedor_id,
        score=50,
        tags=payload.tags or [],
    )
    db.add(lead)
    if lead.vendedor_id:
        crud.get_or_create_metrica(db, lead.vendedor_id).leads_recebidos += 1
    db.commit()
    db.refresh(lead)
    return lead


def update_lead(db: Session, payload: schemas.LeadUpdate) -> Lead:
    if not payload.id:
        raise BadRequest("ID do lead é obrigatório para edição")
    nome, telefone = _clean(payload.nome), _clean(payload.telefone)
    if not nome or not telefone:
        raise BadRequest("Nome e telefone são obrigatórios")
    if payload.status is not None and payload.status not in LEAD_STATUSES:
        raise BadRequest("Status inválido", f"Status aceitos: {', '.join(LEAD_STATUSES)}")
    lead = crud.get_lead(db, payload.id)
    if lead is None:
        raise NotFound("Lead não encontrado")
    _check_seller(db, payload.vendedor_id)

    previous_status = lead.status
    lead.nome = nome
    lead.telefone = telefone
    lead.email = _clean(payload.email)
    lead.veiculo_interesse = _clean(payload.veiculo_interesse)
    lead.categoria_interesse = _clean(payload.categoria_interesse)
    lead.valor_maximo = payload.valor_maximo
    lead.observacoes = _clean(payload.observacoes)
    lead.vendedor_id = payload.vendedor_id
    if "origem" in payload.model_fields_set and payload.origem:
        lead.origem = payload.origem
    if payload.status is not None:
        lead.status = payload.status
    if payload.score is not None:
        lead.score = payload.score
    if payload.tags is not None:
        lead.tags = payload.tags
    lead.atualizado_em = utcnow()

    if lead.status == "convertido" and previous_status != "convertido" and lead.vendedor_id:
        crud.get_or_create_metrica(db, lead.vendedor_id).leads_convertidos += 1
    db.commit()
    db.refresh(lead)
    return lead
