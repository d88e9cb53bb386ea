# estoque/schemas.py
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Vehicle payloads keep every field optional: required fields and ranges are
# checked by estoque.validation so errors carry their field codes.

class VeiculoBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    marca: Optional[str] = None
    modelo: Optional[str] = None
    ano: Optional[int] = None
    valor: Optional[float] = None
    categoria_id: Optional[int] = None
    km: Optional[int] = None
    cor: Optional[str] = None
    combustivel: Optional[str] = None
    cambio: Optional[str] = None
    portas: Optional[int] = None
    placa: Optional[str] = None
    codigo_interno: Optional[str] = None
    observacoes: Optional[str] = None
    vitrine: Optional[bool] = None

class VeiculoCreate(VeiculoBase):
    status: Optional[str] = None
    data_entrada: Optional[date] = None

class VeiculoUpdate(VeiculoBase):
    status: Optional[str] = None
    data_venda: Optional[date] = None

class CategoriaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    nome: str
    slug: str
    icone: Optional[str] = None

class FotoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    tipo: str
    ordem: int
    url_thumb: Optional[str] = None
    url_medium: Optional[str] = None

class VeiculoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    marca: str
    modelo: str
    ano: int
    valor: float
    categoria_id: int
    classe_social: str
    km: Optional[int] = None
    cor: Optional[str] = None
    combustivel: Optional[str] = None
    cambio: Optional[str] = None
    portas: Optional[int] = None
    placa: Optional[str] = None
    status: str
    codigo_interno: Optional[str] = None
    observacoes: Optional[str] = None
    vitrine: bool = False
    data_entrada: Optional[date] = None
    data_venda: Optional[date] = None
    dias_estoque: int = 0
    vendedor_id: Optional[int] = None
    vendedor_venda: Optional[int] = None
    data_reserva: Optional[datetime] = None
    data_liberacao_reserva: Optional[datetime] = None
    data_inicio_negociacao: Optional[datetime] = None
    criado_em: Optional[datetime] = None
    atualizado_em: Optional[datetime] = None

class VeiculoDetalhe(VeiculoOut):
    categoria: Optional[CategoriaOut] = None
    fotos: List[FotoOut] = []

class BatchOperation(BaseModel):
    action: str
    id: Optional[int] = None
    data: Dict[str, Any] = Field(default_factory=dict)

class BatchRequest(BaseModel):
    operations: List[BatchOperation]


class MicroModeAction(BaseModel):
    action: str
    veiculo_id: int
    vendedor_id: int


class VendedorCreate(BaseModel):
    nome: Optional[str] = None
    email: Optional[str] = None
    telefone: Optional[str] = None
    foto_url: Optional[str] = None
    nivel: Optional[str] = None
    meta_mensal: Optional[float] = None
    comissao_percentual: Optional[float] = None
    especialidades: Optional[List[str]] = None

class VendedorUpdate(VendedorCreate):
    id: Optional[int] = None
    status: Optional[str] = None
    pontuacao: Optional[int] = None

class VendedorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    nome: str
    email: str
    telefone: Optional[str] = None
    foto_url: Optional[str] = None
    nivel: str
    meta_mensal: float
    comissao_percentual: float
    especialidades: List[str] = []
    pontuacao: int = 0
    status: str
    data_contratacao: Optional[date] = None
    criado_em: Optional[datetime] = None
    atualizado_em: Optional[datetime] = None


class LeadCreate(BaseModel):
    nome: Optional[str] = None
    telefone: Optional[str] = None
    email: Optional[str] = None
    origem: str = "whatsapp"
    veiculo_interesse: Optional[str] = None
    categoria_interesse: Optional[str] = None
    valor_maximo: Optional[float] = None
    observacoes: Optional[str] = None
    vendedor_id: Optional[int] = None
    tags: Optional[List[str]] = None

class LeadUpdate(LeadCreate):
    id: Optional[int] = None
    status: Optional[str] = None
    score: Optional[int] = None

class LeadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    nome: str
    telefone: str
    email: Optional[str] = None
    origem: str
    status: str
    veiculo_interesse: Optional[str] = None
    categoria_interesse: Optional[str] = None
    valor_maximo: Optional[float] = None
    observacoes: Optional[str] = None
    vendedor_id: Optional[int] = None
    score: Optional[int] = None
    tags: List[str] = []
    criado_em: Optional[datetime] = None
    atualizado_em: Optional[datetime] = None


class ProcessRequest(BaseModel):
    preview_only: bool = False
    mapping_id: Optional[int] = None

class FileUploadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    filename: str
    original_name: str
    mime_type: Optional[str] = None
    file_size: int
    import_type: str
    source_type: str
    total_rows: Optional[int] = None
    valid_rows: Optional[int] = None
    error_rows: Optional[int] = None
    status: str
    uploaded_by: Optional[str] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None

class ImportLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    row_number: int
    source_data: Optional[Dict[str, Any]] = None
    processed_data: Optional[Dict[str, Any]] = None
    validation_errors: Optional[List[Dict[str, Any]]] = None
    status: str
    error_message: Optional[str] = None
    veiculo_id: Optional[int] = None
