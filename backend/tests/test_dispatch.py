"""Tests for validation job dispatchers."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from mailsift.config import Settings
from mailsift.models import Upload, UploadStatus
from mailsift.services.dispatch import LocalDispatcher, RedisDispatcher, build_dispatcher
from mailsift.services.verifier import SimulatedVerifier


class TestLocalDispatcher:
    """Tests for in-process dispatch."""

    async def test_runs_validation_in_background(self, session_factory, make_upload):
        """dispatch() returns immediately; the task completes the upload."""
        upload_id = await make_upload(["a@b.com", "c@d.com"], status=UploadStatus.processing)
        dispatcher = LocalDispatcher(session_factory, SimulatedVerifier(delay=0))

        await dispatcher.dispatch(upload_id)
        assert dispatcher.pending() == 1

        assert await dispatcher.wait(upload_id) == UploadStatus.completed
        await asyncio.sleep(0)
        assert dispatcher.pending() == 0

        async with session_factory() as s:
            assert (await s.get(Upload, upload_id)).status == UploadStatus.completed

    async def test_second_dispatch_while_running_is_ignored(self, session_factory, make_upload):
        """Only one background task per upload."""
        upload_id = await make_upload(["a@b.com"], status=UploadStatus.processing)
        dispatcher = LocalDispatcher(session_factory, SimulatedVerifier(delay=0.05))

        await dispatcher.dispatch(upload_id)
        await dispatcher.dispatch(upload_id)
        assert dispatcher.pending() == 1
        await dispatcher.drain()

    async def test_aclose_waits_for_running_tasks(self, session_factory, make_upload):
        """Shutdown drains outstanding validations instead of cancelling them."""
        upload_id = await make_upload(["a@b.com"], status=UploadStatus.processing)
        dispatcher = LocalDispatcher(session_factory, SimulatedVerifier(delay=0.01))
        await dispatcher.dispatch(upload_id)

        await dispatcher.aclose()

        async with session_factory() as s:
            assert (await s.get(Upload, upload_id)).status == UploadStatus.completed

    async def test_wait_unknown_upload(self, session_factory):
        dispatcher = LocalDispatcher(session_factory, SimulatedVerifier(delay=0))
        assert await dispatcher.wait(42) is None


class TestRedisDispatcher:
    """Tests for queue-based dispatch."""

    async def test_pushes_job(self):
        client = AsyncMock()
        dispatcher = RedisDispatcher("redis://unused", "mailsift:validations", client=client)

        await dispatcher.dispatch(7)
        client.rpush.assert_awaited_once_with("mailsift:validations", json.dumps({"upload_id": 7}))

        await dispatcher.aclose()
        client.aclose.assert_awaited_once()


class TestBuildDispatcher:
    """Tests for build_dispatcher."""

    def test_local(self, session_factory):
        dispatcher = build_dispatcher(Settings(DISPATCH_MODE="local", MARK_DUPLICATES=True), session_factory)
        assert isinstance(dispatcher, LocalDispatcher)
        assert dispatcher.mark_duplicates is True

    async def test_redis(self, session_factory):
        dispatcher = build_dispatcher(
            Settings(DISPATCH_MODE="redis", REDIS_URL="redis://localhost:6379/0", QUEUE_KEY="q"),
            session_factory,
        )
        assert isinstance(dispatcher, RedisDispatcher)
        assert dispatcher.queue_key == "q"
        await dispatcher.aclose()

    def test_unknown(self, session_factory):
        with pytest.raises(ValueError, match="DISPATCH_MODE"):
            build_dispatcher(Settings(DISPATCH_MODE="carrier-pigeon"), session_factory)
