# backend/mailsift/worker.py
"""
Redis consumer for DISPATCH_MODE=redis.

The API pushes {"upload_id": n} onto QUEUE_KEY after flipping the upload to
processing; this process pops the jobs and runs the validation phase.

    python -m mailsift.worker
"""
import asyncio
import json
import logging
import signal
from typing import Optional

import redis.asyncio as redis

from mailsift.config import settings
from mailsift.db import dispose_engine, get_session_maker, wait_for_db
from mailsift.models import Upload, UploadStatus
from mailsift.services.orchestrator import run_validation
from mailsift.services.verifier import Verifier, build_verifier

LOG = logging.getLogger("mailsift.worker")


# -------------------------------------------------------------------
# safe_blpop shutdown-safe version
# -------------------------------------------------------------------
async def safe_blpop(r, key, timeout):
    try:
        return await r.blpop(key, timeout=timeout)
    except asyncio.CancelledError:
        return None
    except redis.RedisError as e:
        LOG.error("Redis BLPOP failed: %s, retrying", e)
        await asyncio.sleep(0.2)
        return None


async def handle_job(raw, session_factory, verifier: Verifier, mark_duplicates: bool = False) -> Optional[UploadStatus]:
    try:
        payload = json.loads(raw)
    except ValueError:
        LOG.exception("Invalid JSON payload popped: %s", raw)
        return None

    upload_id = payload.get("upload_id") if isinstance(payload, dict) else None
    if not isinstance(upload_id, int):
        LOG.warning("Invalid payload: %s", payload)
        return None

    async with session_factory() as db:
        upload = await db.get(Upload, upload_id)
        if upload is None:
            LOG.error("Upload not found: %s", upload_id)
            return None
        if upload.status != UploadStatus.processing:
            LOG.warning("Skipping upload=%s in status %s", upload_id, upload.status)
            return None

    return await run_validation(session_factory, verifier, upload_id, mark_duplicates=mark_duplicates)


# -------------------------------------------------------------------
# Worker loop
# -------------------------------------------------------------------
async def worker_loop(r=None, session_factory=None, verifier: Optional[Verifier] = None,
                      stop: Optional[asyncio.Event] = None):
    r = r or redis.from_url(settings.REDIS_URL, decode_responses=True)
    session_factory = session_factory or get_session_maker()
    verifier = verifier or build_verifier(settings)
    stop = stop or asyncio.Event()
    LOG.info("Worker connected to Redis: %s queue=%s", settings.REDIS_URL, settings.QUEUE_KEY)

    try:
        while not stop.is_set():
            res = await safe_blpop(r, settings.QUEUE_KEY, 5)
            if not res:
                continue

            _, raw = res
            status = await handle_job(raw, session_factory, verifier, settings.MARK_DUPLICATES)
            LOG.info("Job done payload=%s status=%s", raw, status.value if status else None)
    finally:
        await r.aclose()
        await verifier.aclose()
        LOG.info("Worker shutdown")


async def run():
    await wait_for_db()
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)
    try:
        await worker_loop(stop=stop)
    finally:
        await dispose_engine()


def main():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    LOG.info("Starting mailsift worker")
    asyncio.run(run())


if __name__ == "__main__":
    main()
