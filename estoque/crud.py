# estoque/crud.py
"""Database accessors for vehicles, categories, sellers, leads and uploads.

Thin query helpers: they read and write rows and leave business rules
(price tier, sale date, status transitions) to `estoque.services`.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session, joinedload

from .models import (
    Categoria, ClassesConfig, FieldMapping, FileUpload, ImportLog, Lead,
    Veiculo, VendedoresConfig, Vendedor, VendedorMetrica,
)
from .utils import current_period

SORTABLE_FIELDS = ("valor", "marca", "modelo", "ano", "km", "criado_em", "data_entrada")


# configuration rows

def get_classes_config(db: Session) -> Optional[ClassesConfig]:
    return db.query(ClassesConfig).order_by(ClassesConfig.id).first()

def get_vendedores_config(db: Session) -> Optional[VendedoresConfig]:
    return db.query(VendedoresConfig).order_by(VendedoresConfig.id).first()

def get_field_mapping(db: Session, mapping_id: int) -> Optional[FieldMapping]:
    return db.get(FieldMapping, mapping_id)


# categories

def list_categorias(db: Session) -> List[Categoria]:
    return db.query(Categoria).order_by(Categoria.nome.asc()).all()

def get_default_categoria(db: Session) -> Optional[Categoria]:
    return (
        db.query(Categoria)
        .filter(Categoria.ativo == True)  # noqa: E712
        .order_by(Categoria.ordem.asc(), Categoria.id.asc())
        .first()
    )


# vehicles

def get_veiculo(db: Session, veiculo_id: int) -> Optional[Veiculo]:
    return (
        db.query(Veiculo)
        .options(joinedload(Veiculo.categoria), joinedload(Veiculo.fotos))
        .filter(Veiculo.id == veiculo_id)
        .first()
    )

def list_veiculos(db: Session, skip: int = 0, limit: int = 10, filters: Dict = None,
                  sort_by: str = "valor", sort_order: str = "desc"):
    q = db.query(Veiculo).join(Categoria).options(joinedload(Veiculo.categoria), joinedload(Veiculo.fotos))
    filters = filters or {}
    conds = []
    if filters.get("marca"):
        conds.append(Veiculo.marca.ilike(f"%{filters['marca']}%"))
    if filters.get("categoria"):
        conds.append(Categoria.slug == filters["categoria"])
    if filters.get("classe_social"):
        conds.append(Veiculo.classe_social == filters["classe_social"])
    if filters.get("status"):
        conds.append(Veiculo.status == filters["status"])
    else:
        # sold vehicles are hidden unless explicitly requested
        conds.append(Veiculo.status != "vendido")
    if filters.get("vitrine") is not None:
        conds.append(Veiculo.vitrine == filters["vitrine"])
    if filters.get("valor_min") is not None:
        conds.append(Veiculo.valor >= filters["valor_min"])
    if filters.get("valor_max") is not None:
        conds.append(Veiculo.valor <= filters["valor_max"])
    if filters.get("search"):
        term = f"%{filters['search']}%"
        conds.append(or_(Veiculo.marca.ilike(term), Veiculo.modelo.ilike(term), Veiculo.placa.ilike(term)))
    if conds:
        q = q.filter(and_(*conds))

    total = q.count()
    column = getattr(Veiculo, sort_by if sort_by in SORTABLE_FIELDS else "valor")
    q = q.order_by(column.asc() if sort_order == "asc" else column.desc(), Veiculo.id.asc())
    items = q.offset(skip).limit(limit).all()
    return {"total": total, "items": items}

def list_veiculos_by_status(db: Session, statuses) -> List[Veiculo]:
    return (
        db.query(Veiculo)
        .options(joinedload(Veiculo.categoria))
        .filter(Veiculo.status.in_(list(statuses)))
        .order_by(Veiculo.marca.asc(), Veiculo.valor.desc())
        .all()
    )

def find_duplicate_veiculo(db: Session, placa=None, marca=None, modelo=None, ano=None) -> Optional[int]:
    if placa:
        hit = db.query(Veiculo.id).filter(Veiculo.placa == placa).first()
        if hit:
            return hit[0]
    if marca and modelo and ano:
        hit = (
            db.query(Veiculo.id)
            .filter(Veiculo.marca == marca, Veiculo.modelo == modelo, Veiculo.ano == ano)
            .first()
        )
        if hit:
            return hit[0]
    return None

def create_veiculo(db: Session, data: Dict[str, Any], commit: bool = True) -> Veiculo:
    obj = Veiculo(**data)
    db.add(obj)
    if commit:
        db.commit()
        db.refresh(obj)
    else:
        db.flush()
    return obj

def update_veiculo(db: Session, obj: Veiculo, updates: Dict[str, Any], commit: bool = True) -> Veiculo:
    for k, v in updates.items():
        setattr(obj, k, v)
    if commit:
        db.commit()
        db.refresh(obj)
    else:
        db.flush()
    return obj

def delete_veiculo(db: Session, veiculo_id: int, commit: bool = True) -> bool:
    obj = db.get(Veiculo, veiculo_id)
    if not obj:
        return False
    db.delete(obj)
    if commit:
        db.commit()
    else:
        db.flush()
    return True


# sellers

def get_vendedor(db: Session, vendedor_id: int) -> Optional[Vendedor]:
    return db.get(Vendedor, vendedor_id)

def get_vendedor_by_email(db: Session, email: str) -> Optional[Vendedor]:
    return db.query(Vendedor).filter(func.lower(Vendedor.email) == email.lower()).first()

def list_vendedores(db: Session) -> List[Vendedor]:
    return db.query(Vendedor).order_by(Vendedor.id.asc()).all()

def vendedor_names(db: Session, ids) -> Dict[int, str]:
    ids = {i for i in ids if i}
    if not ids:
        return {}
    return dict(db.query(Vendedor.id, Vendedor.nome).filter(Vendedor.id.in_(ids)).all())

def get_or_create_metrica(db: Session, vendedor_id: int, periodo: str = None) -> VendedorMetrica:
    periodo = periodo or current_period()
    metrica = (
        db.query(VendedorMetrica)
        .filter(VendedorMetrica.vendedor_id == vendedor_id, VendedorMetrica.periodo == periodo)
        .first()
    )
    if metrica is None:
        metrica = VendedorMetrica(
            vendedor_id=vendedor_id, periodo=periodo, veiculos_vendidos=0, valor_vendas=0,
            pontos_ganhos=0, leads_recebidos=0, leads_convertidos=0,
        )
        db.add(metrica)
        db.flush()
    return metrica

def metricas_for_period(db: Session, periodo: str) -> Dict[int, VendedorMetrica]:
    rows = db.query(VendedorMetrica).filter(VendedorMetrica.periodo == periodo).all()
    return {m.vendedor_id: m for m in rows}


# leads

def get_lead(db: Session, lead_id: int) -> Optional[Lead]:
    return db.query(Lead).options(joinedload(Lead.vendedor)).filter(Lead.id == lead_id).first()

def list_leads(db: Session) -> List[Lead]:
    return (
        db.query(Lead)
        .options(joinedload(Lead.vendedor))
        .order_by(Lead.criado_em.desc(), Lead.id.desc())
        .all()
    )


# uploads

def get_upload(db: Session, upload_id: int) -> Optional[FileUpload]:
    return db.get(FileUpload, upload_id)

def list_uploads(db: Session, skip: int = 0, limit: int = 10, status: str = None, import_type: str = None):
    q = db.query(FileUpload)
    if status:
        q = q.filter(FileUpload.status == status)
    if import_type:
        q = q.filter(FileUpload.import_type == import_type)
    total = q.count()
    items = q.order_by(FileUpload.created_at.desc(), FileUpload.id.desc()).offset(skip).limit(limit).all()
    return {"total": total, "items": items}

def upload_log_stats(db: Session, upload_id: int) -> Dict[str, int]:
    rows = (
        db.query(ImportLog.status, func.count(ImportLog.id))
        .filter(ImportLog.file_upload_id == upload_id)
        .group_by(ImportLog.status)
        .all()
    )
    counts = dict(rows)
    return {
        "total": sum(counts.values()),
        "processed": counts.get("processed", 0),
        "errors": counts.get("error", 0),
        "duplicates": counts.get("duplicate", 0),
    }
