# backend/mailsift/services/orchestrator.py
"""
Validation lifecycle for an upload:

    uploaded -> processing -> completed | failed

``start_validation`` runs inside the request: it flips the upload to
processing with one conditional UPDATE (so concurrent starts cannot both
win) and hands the upload id to a dispatcher. ``run_validation`` is the
background phase; it verifies every record that has no status yet and
finishes the upload as completed, or failed on any error.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import (
    AlreadyCompleted,
    AlreadyProcessing,
    InvalidStateTransition,
    NotFound,
    UnrecoverableState,
)
from ..models import EmailRecord, Upload, UploadStatus, ValidationStatus
from .verifier import Verdict, Verifier

logger = logging.getLogger("mailsift.orchestrator")

GUARD_ERRORS = {
    UploadStatus.processing: (AlreadyProcessing, "Upload is already being processed"),
    UploadStatus.completed: (AlreadyCompleted, "Upload has already been validated"),
    UploadStatus.failed: (UnrecoverableState, "Upload is in failed state and cannot be processed"),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _guard_error(upload_id: int, status: UploadStatus) -> InvalidStateTransition:
    exc_cls, message = GUARD_ERRORS.get(
        status, (InvalidStateTransition, f"Upload is in unexpected state '{status}'")
    )
    return exc_cls(f"{message} (upload {upload_id})")


async def _load_upload(db: AsyncSession, upload_id: int) -> Upload:
    upload = await db.get(Upload, upload_id, populate_existing=True)
    if upload is None:
        raise NotFound(f"Upload with id {upload_id} not found")
    return upload


async def _set_upload_status(db: AsyncSession, upload_id: int, status: UploadStatus, completed_at=None):
    await db.execute(
        update(Upload)
        .where(Upload.id == upload_id)
        .values(status=status, completed_at=completed_at)
    )


async def start_validation(db: AsyncSession, upload_id: int, dispatcher) -> Dict[str, str]:
    upload = await _load_upload(db, upload_id)
    if upload.status != UploadStatus.uploaded:
        raise _guard_error(upload_id, upload.status)

    # check-and-set; only one concurrent caller sees rowcount == 1
    res = await db.execute(
        update(Upload)
        .where(Upload.id == upload_id, Upload.status == UploadStatus.uploaded)
        .values(status=UploadStatus.processing)
    )
    if res.rowcount != 1:
        await db.rollback()
        upload = await _load_upload(db, upload_id)
        raise _guard_error(upload_id, upload.status)

    q = await db.execute(
        select(func.count()).select_from(EmailRecord).where(EmailRecord.upload_id == upload_id)
    )
    record_count = q.scalar_one() or 0

    if record_count == 0:
        await _set_upload_status(db, upload_id, UploadStatus.completed, completed_at=utcnow())
        await db.commit()
        logger.info("Upload=%s has no records, marked completed", upload_id)
        return {
            "message": f"No email records found for upload {upload_id}. Upload marked as completed."
        }

    await db.commit()

    try:
        await dispatcher.dispatch(upload_id)
    except Exception:
        logger.exception("Failed to dispatch validation for upload=%s", upload_id)
        await _set_upload_status(db, upload_id, UploadStatus.failed, completed_at=utcnow())
        await db.commit()
        raise

    logger.info("Validation started upload=%s records=%d", upload_id, record_count)
    return {
        "message": f"Email validation started for upload {upload_id}. This process will run in the background."
    }


def _normalize(email: str) -> str:
    return (email or "").strip().lower()


async def _record_verdict(db: AsyncSession, record_id: int, verdict: Verdict):
    # status, payload and timestamp are written together or not at all
    await db.execute(
        update(EmailRecord)
        .where(EmailRecord.id == record_id)
        .values(
            validation_status=verdict.status,
            validation_result=json.dumps(verdict.payload),
            validated_at=utcnow(),
        )
    )
    await db.commit()


async def run_validation(
    session_factory: Callable[[], AsyncSession],
    verifier: Verifier,
    upload_id: int,
    mark_duplicates: bool = False,
) -> Optional[UploadStatus]:
    """
    Background phase. Never raises: any failure is logged and turns the
    upload into ``failed``. Returns the terminal status it wrote.
    """
    async with session_factory() as db:
        try:
            q = await db.execute(
                select(EmailRecord.id, EmailRecord.row_number, EmailRecord.email)
                .where(EmailRecord.upload_id == upload_id)
                .where(EmailRecord.validation_status.is_(None))
                .order_by(EmailRecord.row_number)
            )
            pending = q.all()
            logger.info("Validation phase START upload=%s pending=%d", upload_id, len(pending))

            seen: Dict[str, int] = {}
            if mark_duplicates:
                q_done = await db.execute(
                    select(EmailRecord.row_number, EmailRecord.email)
                    .where(EmailRecord.upload_id == upload_id)
                    .where(EmailRecord.validation_status.is_not(None))
                )
                for row_number, email in q_done.all():
                    seen.setdefault(_normalize(email), row_number)

            for i, (record_id, row_number, email) in enumerate(pending, start=1):
                key = _normalize(email)
                if mark_duplicates and key in seen:
                    verdict = Verdict(
                        status=ValidationStatus.duplicate,
                        payload={"status": "duplicate", "duplicate_of_row": seen[key]},
                    )
                else:
                    verdict = await verifier.verify(email)
                    seen.setdefault(key, row_number)

                await _record_verdict(db, record_id, verdict)
                logger.debug(
                    "upload=%s row=%d status=%s (%d/%d)",
                    upload_id, row_number, verdict.status.value, i, len(pending),
                )

            await _set_upload_status(db, upload_id, UploadStatus.completed, completed_at=utcnow())
            await db.commit()
            logger.info("Validation phase END upload=%s status=completed", upload_id)
            return UploadStatus.completed

        except Exception:
            logger.exception("Validation failed for upload=%s", upload_id)
            try:
                await db.rollback()
                await _set_upload_status(db, upload_id, UploadStatus.failed, completed_at=utcnow())
                await db.commit()
            except Exception:
                logger.exception("Could not mark upload=%s as failed", upload_id)
                return None
            return UploadStatus.failed
