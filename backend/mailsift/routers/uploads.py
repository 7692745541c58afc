# backend/mailsift/routers/uploads.py
from typing import List, Optional

from fastapi import (
    APIRouter,
    UploadFile,
    File,
    Form,
    Depends,
    Path,
    Request,
)
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..errors import NotFound
from ..models import Upload
from ..schemas import MessageResponse, UploadCsvRequest, UploadOut, UploadResponse
from ..services.dispatch import Dispatcher
from ..services.ingestion import decode_base64_content, ingest_upload
from ..services.orchestrator import start_validation
from ..services.reporter import list_uploads

router = APIRouter()


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


# ---------------------------------------------------
# Upload (JSON body, base64 content)
# ---------------------------------------------------
@router.post("", response_model=UploadResponse)
async def upload_csv(
    body: UploadCsvRequest,
    db: AsyncSession = Depends(get_db),
):
    content = decode_base64_content(body.content)
    result = await ingest_upload(db, body.filename, content, body.email_column)
    return UploadResponse(**result.__dict__)


# ---------------------------------------------------
# Upload (multipart form)
# ---------------------------------------------------
@router.post("/file", response_model=UploadResponse)
async def upload_csv_file(
    file: UploadFile = File(...),
    email_column: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
):
    content = await file.read()
    result = await ingest_upload(db, file.filename or "upload.csv", content, email_column or None)
    return UploadResponse(**result.__dict__)


@router.get("", response_model=List[UploadOut])
async def get_uploads(db: AsyncSession = Depends(get_db)):
    return [UploadOut.model_validate(u) for u in await list_uploads(db)]


# ---------------------------------------------------
# Status Route
# ---------------------------------------------------
@router.get("/{upload_id}", response_model=UploadOut)
async def get_upload_status(
    upload_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
):
    upload = await db.get(Upload, upload_id)
    if not upload:
        raise NotFound(f"Upload with id {upload_id} not found")
    return UploadOut.model_validate(upload)


@router.post("/{upload_id}/validate", response_model=MessageResponse)
async def validate_emails(
    upload_id: int = Path(...),
    db: AsyncSession = Depends(get_db),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    return await start_validation(db, upload_id, dispatcher)
