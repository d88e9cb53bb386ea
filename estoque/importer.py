# estoque/importer.py
"""Spreadsheet ingestion: store an uploaded CSV/Excel file, then turn its rows
into vehicles.

Every processed row leaves an ImportLog entry with status `processed`,
`error` or `duplicate`, so an upload can be audited row by row afterwards.
"""
import os
import re
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from . import crud
from .config import MAX_UPLOAD_MB, UPLOAD_DIR
from .errors import BadRequest, NotFound
from .models import FileUpload, ImportLog
from .services import prepare_vehicle_insert, tier_thresholds
from .utils import logger, utcnow
from .validation import sanitize_vehicle_data, validate_vehicle, vehicle_rules

ALLOWED_MIME_TYPES = {
    "csv": ("text/csv", "application/csv", "text/plain"),
    "excel": (
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.oasis.opendocument.spreadsheet",
    ),
}
ALLOWED_EXTENSIONS = (".csv", ".xls", ".xlsx", ".ods")
IMPORTABLE_FIELDS = tuple(vehicle_rules())
DEFAULT_MAPPING_ID = 1
DEFAULT_FIELD_MAP = {field: field for field in IMPORTABLE_FIELDS}
PREVIEW_ROWS = 10
MAX_UPLOAD_BYTES = MAX_UPLOAD_MB * 1024 * 1024


def safe_filename(original_name: str, now=None) -> str:
    stamp = re.sub(r"[:.]", "-", (now or utcnow()).isoformat())
    return f"{stamp}_{re.sub(r'[^a-zA-Z0-9.-]', '_', original_name)}"


def read_rows(file_path: str, import_type: str = "csv") -> pd.DataFrame:
    """Load every cell as text; blank cells stay empty strings.

    Any parser failure (corrupt zip, unknown workbook, bad encoding) surfaces
    as a BadRequest.
    """
    extension = os.path.splitext(file_path)[1].lower()
    try:
        if extension in (".xls", ".xlsx", ".ods") or (extension != ".csv" and import_type == "excel"):
            df = pd.read_excel(file_path, dtype=str, keep_default_na=False)
        else:
            df = pd.read_csv(file_path, dtype=str, keep_default_na=False, skip_blank_lines=True)
    except Exception as e:
        logger.warning("Could not read %s: %s", file_path, e)
        raise BadRequest("Não foi possível ler o arquivo", str(e)) from e
    df.columns = [str(c).strip() for c in df.columns]
    return df


def count_rows(file_path: str, import_type: str = "csv") -> int:
    return len(read_rows(file_path, import_type))


def upload_too_large() -> BadRequest:
    return BadRequest("Arquivo muito grande", f"Tamanho máximo permitido: {MAX_UPLOAD_MB}MB")


def save_upload(db: Session, original_name: str, content: bytes, mime_type: Optional[str] = None,
                import_type: str = "csv", source_type: str = "manual") -> FileUpload:
    if not original_name:
        raise BadRequest("Arquivo não fornecido")
    import_type = import_type or "csv"
    if import_type not in ALLOWED_MIME_TYPES:
        raise BadRequest("Tipo de importação inválido", f"Tipos aceitos: {', '.join(ALLOWED_MIME_TYPES)}")

    accepted = ALLOWED_MIME_TYPES[import_type]
    extension = os.path.splitext(original_name)[1].lower()
    if mime_type not in accepted and extension not in ALLOWED_EXTENSIONS:
        raise BadRequest("Tipo de arquivo não suportado", f"Tipos aceitos: {', '.join(accepted)}")
    if len(content) > MAX_UPLOAD_BYTES:
        raise upload_too_large()

    os.makedirs(UPLOAD_DIR, exist_ok=True)
    filename = safe_filename(original_name)
    file_path = os.path.join(UPLOAD_DIR, filename)
    with open(file_path, "wb") as fh:
        fh.write(content)
    try:
        total_rows = count_rows(file_path, import_type)
    except BadRequest:
        os.remove(file_path)
        raise

    upload = FileUpload(
        filename=filename,
        original_name=original_name,
        mime_type=mime_type,
        file_size=len(content),
        file_path=file_path,
        import_type=import_type,
        source_type=source_type or "manual",
        total_rows=total_rows,
        status="uploaded",
        uploaded_by="system",
    )
    db.add(upload)
    db.commit()
    db.refresh(upload)
    logger.info("Upload %s stored at %s (%d rows)", upload.id, file_path, upload.total_rows)
    return upload


def map_row(source: Dict[str, str], field_map: Optional[Dict[str, str]]) -> Dict[str, Any]:
    """Pick vehicle fields out of a raw row. Empty cells are dropped."""
    field_map = field_map or DEFAULT_FIELD_MAP
    mapped = {}
    for target, column in field_map.items():
        if target not in IMPORTABLE_FIELDS:
            continue
        value = source.get(column)
        if value not in (None, ""):
            mapped[target] = value
    return mapped


def rules_for(mapping) -> Dict[str, Dict[str, Any]]:
    rules = vehicle_rules()
    for field, override in ((mapping.validation_rules if mapping else None) or {}).items():
        rules[field] = {**rules.get(field, {}), **override}
    return rules


def _source_rows(df: pd.DataFrame) -> List[Dict[str, str]]:
    return [
        {str(k): str(v).strip() for k, v in record.items()}
        for record in df.to_dict(orient="records")
    ]


def _mark_failed(db: Session, upload: FileUpload):
    db.rollback()
    upload.status = "failed"
    db.commit()


def process_upload(db: Session, upload_id: int, preview_only: bool = False,
                   mapping_id: Optional[int] = None) -> Dict[str, Any]:
    upload = crud.get_upload(db, upload_id)
    if upload is None:
        raise NotFound("Upload não encontrado")
    mapping = crud.get_field_mapping(db, mapping_id or DEFAULT_MAPPING_ID)
    if mapping is None and mapping_id:
        raise BadRequest("Mapeamento de campos não encontrado")
    field_map = mapping.field_map if mapping else None
    rules = rules_for(mapping)

    if not preview_only:
        upload.status = "processing"
        db.commit()

    try:
        df = read_rows(upload.file_path, upload.import_type)
    except BadRequest:
        logger.warning("Upload %s could not be read", upload_id)
        if not preview_only:
            _mark_failed(db, upload)
        raise

    try:
        result = _process_rows(db, upload, _source_rows(df), field_map, rules, preview_only)
    except Exception:
        logger.exception("Import of upload %s failed", upload_id)
        if not preview_only:
            _mark_failed(db, upload)
        raise
    return result


def _process_rows(db, upload, rows, field_map, rules, preview_only):
    default_categoria = crud.get_default_categoria(db)
    thresholds = tier_thresholds(db)
    counts = {"processed": 0, "errors": 0, "duplicates": 0, "skipped": 0}
    preview = []
    preview_plates = set()

    for row_number, source in enumerate(rows, 1):
        if not any(source.values()):
            counts["skipped"] += 1
            continue

        mapped = map_row(source, field_map)
        if not mapped.get("categoria_id") and default_categoria is not None:
            mapped["categoria_id"] = default_categoria.id
        data = sanitize_vehicle_data(mapped)
        validation = validate_vehicle(db, data, rules=rules)
        # a repeated plate is reported as a duplicate, not as a row error
        errors = [e for e in validation["errors"] if e["code"] != "DUPLICATE_PLATE"]
        duplicate_of = None
        if not errors:
            duplicate_of = crud.find_duplicate_veiculo(
                db, placa=data.get("placa"), marca=data.get("marca"),
                modelo=data.get("modelo"), ano=data.get("ano"),
            )

        if preview_only:
            placa = data.get("placa")
            # rows not yet written still clash with plates seen earlier in the file
            repeated = bool(placa) and placa in preview_plates
            status = "error" if errors else "duplicate" if duplicate_of or repeated else "valid"
            if status == "valid" and placa:
                preview_plates.add(placa)
            preview.append({
                "row_number": row_number,
                "original_data": source,
                "transformed_data": data,
                "validation_errors": errors,
                "warnings": validation["warnings"],
                "status": status,
            })
            if len(preview) >= PREVIEW_ROWS:
                break
            continue

        log = ImportLog(
            file_upload_id=upload.id,
            row_number=row_number,
            source_data=source,
            processed_data=data,
            validation_errors=errors,
        )
        if errors:
            log.status = "error"
            log.error_message = "Erros de validação: " + ", ".join(e["message"] for e in errors)
            counts["errors"] += 1
        elif duplicate_of:
            log.status = "duplicate"
            log.error_message = f"Veículo já cadastrado (id {duplicate_of})"
            counts["duplicates"] += 1
        else:
            obj = crud.create_veiculo(db, prepare_vehicle_insert(data, thresholds), commit=False)
            log.status = "processed"
            log.veiculo_id = obj.id
            counts["processed"] += 1
        db.add(log)

    if preview_only:
        return {**counts, "preview": preview}

    upload.status = "completed"
    upload.processed_at = utcnow()
    upload.total_rows = len(rows)
    upload.valid_rows = counts["processed"]
    upload.error_rows = counts["errors"]
    db.commit()
    logger.info("Upload %s imported: %s", upload.id, counts)
    return counts
