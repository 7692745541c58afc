# backend/mailsift/routers/results.py
import base64
import re
from urllib.parse import quote

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..schemas import DownloadCsvResponse, EmailRecordOut, UploadOut, ValidationResultsResponse
from ..services.reporter import build_download, get_results

router = APIRouter()

_NON_HEADER_SAFE = re.compile(r'[^\x20-\x7e]|["\\]')


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback name and the RFC 5987 UTF-8 form."""
    fallback = _NON_HEADER_SAFE.sub("_", filename) or "download.csv"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.get("/{upload_id}", response_model=ValidationResultsResponse)
async def get_upload_results(
    upload_id: int,
    db: AsyncSession = Depends(get_db),
):
    out = await get_results(db, upload_id)
    return ValidationResultsResponse(
        upload=UploadOut.model_validate(out["upload"]),
        records=[EmailRecordOut.model_validate(r) for r in out["records"]],
        summary=out["summary"],
    )


@router.get("/{upload_id}/download", response_model=DownloadCsvResponse)
async def download_validated_csv(
    upload_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await build_download(db, upload_id)


@router.get("/{upload_id}/download.csv", response_model=None)
async def download_validated_csv_file(
    upload_id: int,
    db: AsyncSession = Depends(get_db),
):
    out = await build_download(db, upload_id)
    return Response(
        base64.b64decode(out["content"]),
        media_type=out["mime_type"],
        headers={"Content-Disposition": content_disposition(out["filename"])},
    )
