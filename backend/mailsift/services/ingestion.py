# backend/mailsift/services/ingestion.py
import base64
import binascii
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..errors import MalformedInput
from ..models import EmailRecord, Upload, UploadStatus
from .columns import resolve_email_column
from .csv_codec import ParsedCsv, decode_upload
from .storage import save_upload_bytes, stored_name_for

logger = logging.getLogger("mailsift.ingestion")


@dataclass
class IngestResult:
    upload_id: int
    filename: str
    total_rows: int
    email_column: Optional[str]
    detected_columns: List[str]


def decode_base64_content(content: str) -> bytes:
    # line-wrapped (MIME) base64 is accepted
    compact = "".join(content.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedInput(f"Upload content is not valid base64: {e}") from e


def build_record_rows(parsed: ParsedCsv, email_index: int) -> List[dict]:
    """One insert mapping per data row; the email column is kept out of additional_data."""
    rows = []
    for row_number, values in enumerate(parsed.rows, start=1):
        extra = {
            header: values[i]
            for i, header in enumerate(parsed.headers)
            if i != email_index
        }
        rows.append({
            "row_number": row_number,
            "email": values[email_index].strip(),
            "additional_data": json.dumps(extra),
        })
    return rows


async def ingest_upload(
    db: AsyncSession,
    filename: str,
    content: bytes,
    email_column: Optional[str] = None,
    upload_dir: Optional[str] = None,
) -> IngestResult:
    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(content) > max_bytes:
        raise MalformedInput(f"Upload exceeds {settings.MAX_UPLOAD_SIZE_MB} MB limit")

    parsed = decode_upload(filename, content)
    column = resolve_email_column(parsed.headers, email_column)
    record_rows = build_record_rows(parsed, column.index)

    stored_name = stored_name_for(filename)
    stored_path = save_upload_bytes(stored_name, content, upload_dir)

    try:
        upload = Upload(
            filename=stored_name,
            original_filename=filename,
            file_size=len(content),
            total_rows=len(record_rows),
            email_column=column.name,
            status=UploadStatus.uploaded,
        )
        db.add(upload)
        await db.flush()

        if record_rows:
            await db.execute(
                insert(EmailRecord),
                [dict(r, upload_id=upload.id) for r in record_rows],
            )
        await db.commit()
    except Exception:
        await db.rollback()
        Path(stored_path).unlink(missing_ok=True)
        raise

    logger.info(
        "Ingested upload=%s file=%s rows=%d email_column=%s",
        upload.id, filename, len(record_rows), column.name,
    )

    return IngestResult(
        upload_id=upload.id,
        filename=filename,
        total_rows=len(record_rows),
        email_column=column.name,
        detected_columns=list(parsed.headers),
    )
