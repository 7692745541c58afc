# backend/mailsift/services/dispatch.py
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict

import redis.asyncio as redis

from .orchestrator import run_validation
from .verifier import Verifier, build_verifier

logger = logging.getLogger("mailsift.dispatch")


class Dispatcher(ABC):
    """Schedules the background validation phase for an upload."""

    @abstractmethod
    async def dispatch(self, upload_id: int) -> None:
        raise NotImplementedError

    async def drain(self) -> None:
        return None

    async def aclose(self) -> None:
        return None


class LocalDispatcher(Dispatcher):
    """
    Runs each validation as an asyncio task in the current process.

    Tasks are kept (keyed by upload id) until they finish, so they are not
    garbage collected mid-run and shutdown can wait for them.
    """

    def __init__(self, session_factory: Callable, verifier: Verifier, mark_duplicates: bool = False):
        self.session_factory = session_factory
        self.verifier = verifier
        self.mark_duplicates = mark_duplicates
        self._tasks: Dict[int, asyncio.Task] = {}

    async def dispatch(self, upload_id: int) -> None:
        running = self._tasks.get(upload_id)
        if running is not None and not running.done():
            logger.warning("Validation already running for upload=%s", upload_id)
            return

        task = asyncio.create_task(
            run_validation(
                self.session_factory,
                self.verifier,
                upload_id,
                mark_duplicates=self.mark_duplicates,
            ),
            name=f"validate-upload-{upload_id}",
        )
        self._tasks[upload_id] = task
        task.add_done_callback(lambda t, uid=upload_id: self._forget(uid, t))

    def _forget(self, upload_id: int, task: asyncio.Task) -> None:
        if self._tasks.get(upload_id) is task:
            del self._tasks[upload_id]

    def pending(self) -> int:
        return len(self._tasks)

    async def wait(self, upload_id: int):
        task = self._tasks.get(upload_id)
        if task is None:
            return None
        return await task

    async def drain(self) -> None:
        if self._tasks:
            logger.info("Waiting for %d running validation(s)", len(self._tasks))
            await asyncio.gather(*list(self._tasks.values()))

    async def aclose(self) -> None:
        await self.drain()
        await self.verifier.aclose()


class RedisDispatcher(Dispatcher):
    """Pushes validation jobs onto a Redis list consumed by mailsift.worker."""

    def __init__(self, redis_url: str, queue_key: str, client=None):
        self.queue_key = queue_key
        self._redis = client or redis.from_url(redis_url, decode_responses=True)

    async def dispatch(self, upload_id: int) -> None:
        await self._redis.rpush(self.queue_key, json.dumps({"upload_id": upload_id}))
        logger.info("Queued validation upload=%s queue=%s", upload_id, self.queue_key)

    async def aclose(self) -> None:
        await self._redis.aclose()


def build_dispatcher(settings, session_factory: Callable) -> Dispatcher:
    mode = settings.DISPATCH_MODE.lower()
    if mode == "local":
        return LocalDispatcher(
            session_factory,
            build_verifier(settings),
            mark_duplicates=settings.MARK_DUPLICATES,
        )
    if mode == "redis":
        return RedisDispatcher(settings.REDIS_URL, settings.QUEUE_KEY)
    raise ValueError(f"Unknown DISPATCH_MODE: {settings.DISPATCH_MODE}")
