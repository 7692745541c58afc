# backend/mailsift/services/reporter.py
import base64
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NoRecords, NotFound
from ..models import EmailRecord, Upload, ValidationStatus
from .csv_codec import encode_csv

logger = logging.getLogger("mailsift.reporter")

VALIDATION_COLUMNS = ["validation_status", "validation_result", "validated_at"]
CSV_MIME_TYPE = "text/csv"

_CSV_SUFFIX = re.compile(r"\.csv$", re.IGNORECASE)


async def _get_upload(db: AsyncSession, upload_id: int) -> Upload:
    upload = await db.get(Upload, upload_id)
    if upload is None:
        raise NotFound(f"Upload with id {upload_id} not found")
    return upload


async def _get_records(db: AsyncSession, upload_id: int) -> List[EmailRecord]:
    q = await db.execute(
        select(EmailRecord)
        .where(EmailRecord.upload_id == upload_id)
        .order_by(EmailRecord.row_number)
    )
    return list(q.scalars().all())


def summarize(records: List[EmailRecord]) -> Dict[str, int]:
    summary = {"total": len(records), "validated": 0}
    summary.update({status.value: 0 for status in ValidationStatus})
    for r in records:
        if r.validation_status is None:
            continue
        summary["validated"] += 1
        summary[ValidationStatus(r.validation_status).value] += 1
    return summary


async def list_uploads(db: AsyncSession) -> List[Upload]:
    q = await db.execute(select(Upload).order_by(Upload.created_at.desc(), Upload.id.desc()))
    return list(q.scalars().all())


async def get_results(db: AsyncSession, upload_id: int) -> Dict[str, Any]:
    upload = await _get_upload(db, upload_id)
    records = await _get_records(db, upload_id)
    return {"upload": upload, "records": records, "summary": summarize(records)}


def parse_additional_data(record: EmailRecord) -> Dict[str, Any]:
    """Malformed additional_data degrades to an empty mapping instead of failing the export."""
    if not record.additional_data:
        return {}
    try:
        data = json.loads(record.additional_data)
    except (TypeError, ValueError) as e:
        logger.warning("Bad additional_data on record=%s: %s", record.id, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("additional_data on record=%s is not an object", record.id)
        return {}
    return data


def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def download_filename(original: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S")
    base = _CSV_SUFFIX.sub("", original)
    return f"{base}_validated_{stamp}.csv"


def render_csv(upload: Upload, records: List[EmailRecord]) -> str:
    email_column = upload.email_column or "email"

    columns = list(parse_additional_data(records[0]).keys())
    if email_column not in columns:
        columns.append(email_column)

    rows = []
    for record in records:
        extra = parse_additional_data(record)
        row = [
            record.email if column == email_column else extra.get(column)
            for column in columns
        ]
        status = record.validation_status
        row.append(ValidationStatus(status).value if status else None)
        row.append(record.validation_result)
        row.append(_iso(record.validated_at))
        rows.append(row)

    return encode_csv(columns + VALIDATION_COLUMNS, rows)


async def build_download(db: AsyncSession, upload_id: int) -> Dict[str, str]:
    upload = await _get_upload(db, upload_id)
    records = await _get_records(db, upload_id)
    if not records:
        raise NoRecords(f"No email records found for upload {upload_id}")

    csv_text = render_csv(upload, records)
    return {
        "filename": download_filename(upload.original_filename),
        "content": base64.b64encode(csv_text.encode("utf-8")).decode("ascii"),
        "mime_type": CSV_MIME_TYPE,
    }
