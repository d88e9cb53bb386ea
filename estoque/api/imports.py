# estoque/api/imports.py
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from .. import crud, importer, schemas
from ..db import get_db
from ..errors import NotFound

router = APIRouter(prefix="/api/import", tags=["import"])

UPLOAD_CHUNK_BYTES = 1024 * 1024


@router.post("/upload", status_code=201)
async def upload(
    file: UploadFile = File(...),
    import_type: str = Form("csv"),
    source_type: str = Form("manual"),
    db: Session = Depends(get_db),
):
    if file.size is not None and file.size > importer.MAX_UPLOAD_BYTES:
        raise importer.upload_too_large()
    chunks, size = [], 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        size += len(chunk)
        if size > importer.MAX_UPLOAD_BYTES:
            raise importer.upload_too_large()
        chunks.append(chunk)
    content = b"".join(chunks)
    obj = importer.save_upload(db, file.filename, content, file.content_type, import_type, source_type)
    return {
        "success": True,
        "data": {
            "upload_id": obj.id,
            "filename": obj.filename,
            "file_size": obj.file_size,
            "total_rows": obj.total_rows,
        },
    }


@router.get("/upload")
def uploads(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = None,
    import_type: Optional[str] = None,
    db: Session = Depends(get_db),
):
    res = crud.list_uploads(db, skip=(page - 1) * limit, limit=limit, status=status, import_type=import_type)
    total = res["total"]
    total_pages = (total + limit - 1) // limit
    data = [
        {**schemas.FileUploadOut.model_validate(u).model_dump(), "stats": crud.upload_log_stats(db, u.id)}
        for u in res["items"]
    ]
    return {
        "success": True,
        "data": data,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page * limit < total,
            "has_prev": page > 1,
        },
    }


@router.post("/process/{upload_id}")
def process(upload_id: int, payload: Optional[schemas.ProcessRequest] = None, db: Session = Depends(get_db)):
    payload = payload or schemas.ProcessRequest()
    res = importer.process_upload(db, upload_id, preview_only=payload.preview_only, mapping_id=payload.mapping_id)
    return {"success": True, "data": res}


@router.get("/process/{upload_id}")
def process_status(upload_id: int, db: Session = Depends(get_db)):
    obj = crud.get_upload(db, upload_id)
    if obj is None:
        raise NotFound("Upload não encontrado")
    return {
        "success": True,
        "data": {
            **schemas.FileUploadOut.model_validate(obj).model_dump(),
            "stats": crud.upload_log_stats(db, obj.id),
            "logs": [schemas.ImportLogOut.model_validate(log) for log in obj.logs],
        },
    }
