# estoque/seed.py
"""Reference rows every installation needs: tier thresholds, seller settings,
the vehicle categories and the default import mapping."""
from sqlalchemy.orm import Session

from .importer import DEFAULT_FIELD_MAP
from .models import Categoria, ClassesConfig, FieldMapping, VendedoresConfig
from .utils import logger

CATEGORIAS = [
    {"nome": "Hatch", "slug": "hatch", "icone": "🚗", "ordem": 1},
    {"nome": "Sedan", "slug": "sedan", "icone": "🚙", "ordem": 2},
    {"nome": "SUV", "slug": "suv", "icone": "🚐", "ordem": 3},
    {"nome": "Picape", "slug": "picape", "icone": "🛻", "ordem": 4},
    {"nome": "Utilitário", "slug": "utilitario", "icone": "🚚", "ordem": 5},
    {"nome": "Esportivo", "slug": "esportivo", "icone": "🏎️", "ordem": 6},
    {"nome": "Conversível", "slug": "conversivel", "icone": "🏁", "ordem": 7},
]


def seed_defaults(db: Session):
    """Insert whatever reference rows are missing; existing rows are left alone."""
    created = []
    if db.query(ClassesConfig).first() is None:
        db.add(ClassesConfig(classe_a_min=80000, classe_b_min=40000, classe_c_min=20000, classe_d_max=19999))
        created.append("classes_config")
    if db.query(VendedoresConfig).first() is None:
        db.add(VendedoresConfig(reserva_veiculo_dias=3, pontos_por_venda=100))
        created.append("vendedores_config")

    existing = {slug for (slug,) in db.query(Categoria.slug).all()}
    for categoria in CATEGORIAS:
        if categoria["slug"] not in existing:
            db.add(Categoria(ativo=True, **categoria))
            created.append(f"categoria:{categoria['slug']}")

    if db.query(FieldMapping).first() is None:
        db.add(FieldMapping(nome="Padrão", field_map=dict(DEFAULT_FIELD_MAP),
                            validation_rules={}))
        created.append("field_mapping")

    db.commit()
    if created:
        logger.info("Seeded defaults: %s", ", ".join(created))
    return created
