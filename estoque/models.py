# estoque/models.py
"""SQLAlchemy ORM models for the dealership inventory.

Vehicles, their categories and photos, sellers with their monthly metrics,
leads, and the bookkeeping tables behind CSV imports.
"""
from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, JSON, Numeric,
    String, Text, UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from .db import Base
from .utils import today, utcnow

JSONType = JSON().with_variant(JSONB, "postgresql")
Money = Numeric(14, 2, asdecimal=False)

VEHICLE_STATUSES = ("disponivel", "reservado", "negociando", "vendido")
PRICE_TIERS = ("A", "B", "C", "D")
FUEL_TYPES = ("flex", "gasolina", "diesel", "eletrico", "hibrido")
TRANSMISSIONS = ("manual", "automatico", "cvt")
LEAD_STATUSES = ("novo", "qualificado", "proposta", "negociacao", "convertido", "perdido")
SELLER_LEVELS = ("iniciante", "intermediario", "avancado", "expert")


class ClassesConfig(Base):
    __tablename__ = "classes_config"
    id = Column(Integer, primary_key=True)
    classe_a_min = Column(Money, nullable=False, default=80000)
    classe_b_min = Column(Money, nullable=False, default=40000)
    classe_c_min = Column(Money, nullable=False, default=20000)
    classe_d_max = Column(Money, nullable=False, default=19999)
    atualizado_em = Column(DateTime, default=utcnow, onupdate=utcnow)


class Categoria(Base):
    __tablename__ = "categorias"
    id = Column(Integer, primary_key=True, index=True)
    nome = Column(Text, nullable=False)
    slug = Column(String(80), nullable=False, unique=True)
    icone = Column(Text)
    ordem = Column(Integer, nullable=False, default=0)
    ativo = Column(Boolean, nullable=False, default=True)

    veiculos = relationship("Veiculo", back_populates="categoria")


class Veiculo(Base):
    __tablename__ = "veiculos"
    id = Column(Integer, primary_key=True, index=True)
    marca = Column(String(50), nullable=False, index=True)
    modelo = Column(String(100), nullable=False)
    ano = Column(Integer, nullable=False)
    valor = Column(Money, nullable=False)
    categoria_id = Column(Integer, ForeignKey("categorias.id"), nullable=False)
    classe_social = Column(String(1), nullable=False, default="D")
    km = Column(Integer, nullable=False, default=0)
    cor = Column(String(30))
    combustivel = Column(String(20), nullable=False, default="flex")
    cambio = Column(String(20), nullable=False, default="manual")
    portas = Column(Integer, nullable=False, default=4)
    placa = Column(String(7), unique=True)
    status = Column(String(20), nullable=False, default="disponivel", index=True)
    codigo_interno = Column(String(50), unique=True)
    observacoes = Column(Text)
    vitrine = Column(Boolean, nullable=False, default=False)
    data_entrada = Column(Date, nullable=False, default=today)
    data_venda = Column(Date)
    vendedor_id = Column(Integer, ForeignKey("vendedores.id", ondelete="SET NULL"))
    vendedor_venda = Column(Integer, ForeignKey("vendedores.id", ondelete="SET NULL"))
    data_reserva = Column(DateTime)
    data_liberacao_reserva = Column(DateTime)
    data_inicio_negociacao = Column(DateTime)
    criado_em = Column(DateTime, default=utcnow)
    atualizado_em = Column(DateTime, default=utcnow, onupdate=utcnow)

    categoria = relationship("Categoria", back_populates="veiculos")
    fotos = relationship(
        "VeiculoFoto", back_populates="veiculo",
        cascade="all, delete-orphan",
    )
    vendedor = relationship("Vendedor", foreign_keys=[vendedor_id])

    @property
    def dias_estoque(self):
        if self.data_entrada is None:
            return 0
        end = self.data_venda or today()
        return max((end - self.data_entrada).days, 0)


Index("idx_veiculos_valor", Veiculo.valor)
Index("idx_veiculos_status_reserva", Veiculo.status, Veiculo.data_liberacao_reserva)


class VeiculoFoto(Base):
    __tablename__ = "veiculo_fotos"
    id = Column(Integer, primary_key=True)
    veiculo_id = Column(Integer, ForeignKey("veiculos.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(Text, nullable=False)
    tipo = Column(String(20), nullable=False, default="galeria")
    ordem = Column(Integer, nullable=False, default=0)
    url_thumb = Column(Text)
    url_medium = Column(Text)
    criado_em = Column(DateTime, default=utcnow)

    veiculo = relationship("Veiculo", back_populates="fotos")


class Vendedor(Base):
    __tablename__ = "vendedores"
    id = Column(Integer, primary_key=True, index=True)
    nome = Column(Text, nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    telefone = Column(String(30))
    foto_url = Column(Text)
    nivel = Column(String(20), nullable=False, default="iniciante")
    meta_mensal = Column(Money, nullable=False, default=30000)
    comissao_percentual = Column(Numeric(5, 2, asdecimal=False), nullable=False, default=2.5)
    especialidades = Column(JSONType, nullable=False, default=list)
    pontuacao = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="ativo")
    data_contratacao = Column(Date, default=today)
    criado_em = Column(DateTime, default=utcnow)
    atualizado_em = Column(DateTime, default=utcnow, onupdate=utcnow)

    metricas = relationship("VendedorMetrica", back_populates="vendedor", cascade="all, delete-orphan")


class VendedoresConfig(Base):
    __tablename__ = "vendedores_config"
    id = Column(Integer, primary_key=True)
    reserva_veiculo_dias = Column(Integer, nullable=False, default=3)
    pontos_por_venda = Column(Integer, nullable=False, default=100)


class VendedorMetrica(Base):
    __tablename__ = "vendedor_metricas"
    __table_args__ = (UniqueConstraint("vendedor_id", "periodo", name="uq_metrica_periodo"),)
    id = Column(Integer, primary_key=True)
    vendedor_id = Column(Integer, ForeignKey("vendedores.id", ondelete="CASCADE"), nullable=False)
    periodo = Column(String(7), nullable=False)
    veiculos_vendidos = Column(Integer, nullable=False, default=0)
    valor_vendas = Column(Money, nullable=False, default=0)
    pontos_ganhos = Column(Integer, nullable=False, default=0)
    leads_recebidos = Column(Integer, nullable=False, default=0)
    leads_convertidos = Column(Integer, nullable=False, default=0)

    vendedor = relationship("Vendedor", back_populates="metricas")


class Lead(Base):
    __tablename__ = "leads"
    id = Column(Integer, primary_key=True, index=True)
    nome = Column(Text, nullable=False)
    telefone = Column(String(30), nullable=False)
    email = Column(String(255))
    origem = Column(String(30), nullable=False, default="whatsapp")
    status = Column(String(20), nullable=False, default="novo", index=True)
    veiculo_interesse = Column(Text)
    categoria_interesse = Column(Text)
    valor_maximo = Column(Money)
    observacoes = Column(Text)
    vendedor_id = Column(Integer, ForeignKey("vendedores.id", ondelete="SET NULL"))
    score = Column(Integer, default=50)
    tags = Column(JSONType, nullable=False, default=list)
    criado_em = Column(DateTime, default=utcnow)
    atualizado_em = Column(DateTime, default=utcnow, onupdate=utcnow)

    vendedor = relationship("Vendedor")


class FieldMapping(Base):
    __tablename__ = "field_mappings"
    id = Column(Integer, primary_key=True)
    nome = Column(Text, nullable=False)
    field_map = Column(JSONType, nullable=False, default=dict)
    validation_rules = Column(JSONType, nullable=False, default=dict)


class FileUpload(Base):
    __tablename__ = "file_uploads"
    id = Column(Integer, primary_key=True, index=True)
    filename = Column(Text, nullable=False)
    original_name = Column(Text, nullable=False)
    mime_type = Column(Text)
    file_size = Column(Integer, nullable=False, default=0)
    file_path = Column(Text, nullable=False)
    import_type = Column(String(10), nullable=False, default="csv")
    source_type = Column(String(30), nullable=False, default="manual")
    total_rows = Column(Integer, default=0)
    valid_rows = Column(Integer, default=0)
    error_rows = Column(Integer, default=0)
    status = Column(String(20), nullable=False, default="uploaded")
    uploaded_by = Column(Text, default="system")
    created_at = Column(DateTime, default=utcnow)
    processed_at = Column(DateTime)

    logs = relationship("ImportLog", back_populates="upload", cascade="all, delete-orphan",
                        order_by="ImportLog.row_number")


class ImportLog(Base):
    __tablename__ = "import_logs"
    id = Column(Integer, primary_key=True)
    file_upload_id = Column(Integer, ForeignKey("file_uploads.id", ondelete="CASCADE"), nullable=False, index=True)
    row_number = Column(Integer, nullable=False)
    source_data = Column(JSONType)
    processed_data = Column(JSONType)
    validation_errors = Column(JSONType, default=list)
    status = Column(String(20), nullable=False)
    error_message = Column(Text)
    veiculo_id = Column(Integer, ForeignKey("veiculos.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=utcnow)

    upload = relationship("FileUpload", back_populates="logs")


class SistemaLog(Base):
    __tablename__ = "sistema_logs"
    id = Column(Integer, primary_key=True)
    tipo = Column(String(50), nullable=False)
    descricao = Column(Text)
    dados = Column(JSONType)
    criado_em = Column(DateTime, default=utcnow)
