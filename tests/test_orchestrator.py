from __future__ import annotations

import asyncio

from conftest import FakeBackend, FakeRemoteError, RecordingSleep, make_payload
from prisma_render.core.errors import AuthorizationError
from prisma_render.core.retry import RetryPolicy
from prisma_render.core.state import SessionContext
from prisma_render.generation.client_gemini import EMPTY_VIDEO_MESSAGE, VideoStatus
from prisma_render.generation.orchestrator import GenerationOrchestrator


def make_orchestrator(backend, store, context=None, **kwargs):
    kwargs.setdefault("sleep", RecordingSleep())
    kwargs.setdefault("retry_policy", RetryPolicy(max_retries=3, base_delay=0.01))
    kwargs.setdefault("poll_interval", 10)
    return GenerationOrchestrator(backend, context or SessionContext(), store=store, session_id="s1", **kwargs)


def test_image_job_completes(backend, store):
    async def scenario():
        orchestrator = make_orchestrator(backend, store)
        job_id = orchestrator.submit("prompt", make_payload(), "image", "16:9", thumbnail="data:x")

        pending = orchestrator.get(job_id)
        assert pending.status == "pending"
        assert orchestrator.history[0].id == job_id
        assert orchestrator.context.active_job_id == job_id
        assert orchestrator.context.is_busy

        return orchestrator, await orchestrator.wait(job_id)

    orchestrator, job = asyncio.run(scenario())
    assert job.status == "completed"
    assert job.result_url.startswith("file://")
    assert job.thumbnail == "data:x"
    assert store.load(job.result_url) == backend.result.data
    assert not orchestrator.context.is_busy
    assert orchestrator.context.error_message is None


def test_backoff_hides_transient_failures(store):
    backend = FakeBackend(image_errors=[FakeRemoteError(503), FakeRemoteError(503)])

    async def scenario():
        orchestrator = make_orchestrator(backend, store)
        job_id = orchestrator.submit("prompt", make_payload(), "image", "1:1")
        return orchestrator, await orchestrator.wait(job_id)

    orchestrator, job = asyncio.run(scenario())
    assert job.status == "completed"
    assert backend.count("generate_image") == 3
    assert orchestrator.context.error_message is None


def test_failure_of_active_job_surfaces_error(store):
    backend = FakeBackend(image_errors=[FakeRemoteError(400, "INVALID_ARGUMENT: bad prompt")])

    async def scenario():
        orchestrator = make_orchestrator(backend, store)
        job_id = orchestrator.submit("prompt", make_payload(), "image", "1:1")
        return orchestrator, await orchestrator.wait(job_id)

    orchestrator, job = asyncio.run(scenario())
    assert job.status == "failed"
    assert "bad prompt" in job.error
    assert orchestrator.context.error_message == job.error
    assert orchestrator.context.has_valid_credential
    assert backend.count("generate_image") == 1


def test_stale_failure_never_raises_global_error(store):
    backend = FakeBackend(image_errors=[FakeRemoteError(500, "internal")])

    async def scenario():
        backend.gate = asyncio.Event()
        orchestrator = make_orchestrator(backend, store)
        first = orchestrator.submit("first", make_payload(), "image", "1:1")
        # The caller would normally refuse this while busy; the orchestrator does not.
        second = orchestrator.submit("second", make_payload(), "image", "1:1")
        assert orchestrator.context.active_job_id == second

        backend.gate.set()
        await orchestrator.wait(first)
        await orchestrator.wait(second)
        return orchestrator, first, second

    orchestrator, first, second = asyncio.run(scenario())
    assert orchestrator.get(first).status == "failed"
    assert orchestrator.get(second).status == "completed"
    assert orchestrator.context.active_job_id == second
    assert orchestrator.context.error_message is None
    assert [job.id for job in orchestrator.history] == [second, first]


def test_authorization_failure_flips_credential(store):
    backend = FakeBackend(image_errors=[FakeRemoteError(403, "PERMISSION_DENIED")])

    async def scenario():
        orchestrator = make_orchestrator(backend, store)
        job_id = orchestrator.submit("prompt", make_payload(), "image", "1:1")
        return orchestrator, await orchestrator.wait(job_id)

    orchestrator, job = asyncio.run(scenario())
    assert job.status == "failed"
    assert job.error == "Permission Denied. Please select a valid API Key."
    assert not orchestrator.context.has_valid_credential

    orchestrator.context.authorize()
    assert orchestrator.context.has_valid_credential
    assert orchestrator.context.error_message is None


def test_invalid_argument_mentioning_photo_size_keeps_credential(store):
    backend = FakeBackend(image_errors=[FakeRemoteError(400, "INVALID_ARGUMENT: input image 4032x3024 exceeds limit")])

    async def scenario():
        orchestrator = make_orchestrator(backend, store)
        job_id = orchestrator.submit("prompt", make_payload(), "image", "4:3")
        return orchestrator, await orchestrator.wait(job_id)

    orchestrator, job = asyncio.run(scenario())
    assert job.status == "failed"
    assert job.error == "400 INVALID_ARGUMENT: input image 4032x3024 exceeds limit"
    assert orchestrator.context.has_valid_credential
    assert backend.count("generate_image") == 1


def test_missing_key_message(store):
    backend = FakeBackend(image_errors=[AuthorizationError("API_KEY environment variable is not set")])

    async def scenario():
        orchestrator = make_orchestrator(backend, store)
        job_id = orchestrator.submit("prompt", make_payload(), "image", "1:1")
        return await orchestrator.wait(job_id)

    job = asyncio.run(scenario())
    assert "API Key missing" in job.error


class TestVideoJobs:

    def test_polls_until_done_then_downloads(self, store):
        backend = FakeBackend(
            video_statuses=[
                VideoStatus(done=False, handle="op-2"),
                FakeRemoteError(503),
                VideoStatus(done=False, handle="op-3"),
                VideoStatus(done=True, handle="op-3", result_ref="https://example.test/v.mp4"),
            ],
            asset=b"mp4-bytes",
        )
        sleep = RecordingSleep()

        async def scenario():
            orchestrator = make_orchestrator(backend, store, sleep=sleep)
            job_id = orchestrator.submit("prompt", make_payload(), "video", "16:9")
            return await orchestrator.wait(job_id)

        job = asyncio.run(scenario())
        assert job.status == "completed"
        assert job.kind == "video"
        assert job.result_url.endswith(".mp4")
        assert store.load(job.result_url) == b"mp4-bytes"
        assert backend.count("poll_video") == 4
        assert ("download_asset", "https://example.test/v.mp4") in backend.calls
        assert sleep.delays.count(10) == 3

    def test_inline_video_bytes_skip_download(self, store):
        backend = FakeBackend(video_statuses=[VideoStatus(done=True, inline_data=b"inline")])

        async def scenario():
            orchestrator = make_orchestrator(backend, store)
            job_id = orchestrator.submit("prompt", make_payload(), "video", "9:16")
            return await orchestrator.wait(job_id)

        job = asyncio.run(scenario())
        assert job.status == "completed"
        assert store.load(job.result_url) == b"inline"
        assert backend.count("download_asset") == 0

    def test_empty_video_result(self, store):
        backend = FakeBackend(video_statuses=[VideoStatus(done=True)])

        async def scenario():
            orchestrator = make_orchestrator(backend, store)
            job_id = orchestrator.submit("prompt", make_payload(), "video", "16:9")
            return await orchestrator.wait(job_id)

        job = asyncio.run(scenario())
        assert job.status == "failed"
        assert job.error == EMPTY_VIDEO_MESSAGE

    def test_remote_error_payload(self, store):
        backend = FakeBackend(video_statuses=[VideoStatus(done=True, error="quota exceeded for project")])

        async def scenario():
            orchestrator = make_orchestrator(backend, store)
            job_id = orchestrator.submit("prompt", make_payload(), "video", "16:9")
            return await orchestrator.wait(job_id)

        job = asyncio.run(scenario())
        assert job.status == "failed"
        assert job.error == "Video generation failed: quota exceeded for project"

    def test_poll_timeout(self, store):
        backend = FakeBackend(video_statuses=[VideoStatus(done=False, handle="op")])
        ticks = iter(range(0, 10000, 10))

        async def scenario():
            orchestrator = make_orchestrator(
                backend, store, max_wait_time=30, clock=lambda: next(ticks),
            )
            job_id = orchestrator.submit("prompt", make_payload(), "video", "16:9")
            return await orchestrator.wait(job_id)

        job = asyncio.run(scenario())
        assert job.status == "failed"
        assert "Timeout" in job.error


class TestHistoryCommands:

    def test_select_shows_failure_without_rerun(self, store):
        backend = FakeBackend(image_errors=[FakeRemoteError(500, "boom")])

        async def scenario():
            orchestrator = make_orchestrator(backend, store)
            failed = orchestrator.submit("a", make_payload(), "image", "1:1")
            await orchestrator.wait(failed)
            done = orchestrator.submit("b", make_payload(), "image", "1:1")
            await orchestrator.wait(done)
            return orchestrator, failed, done

        orchestrator, failed, done = asyncio.run(scenario())
        assert orchestrator.context.error_message is None

        orchestrator.select(failed)
        assert orchestrator.context.active_job_id == failed
        assert orchestrator.context.error_message == "500 boom"
        assert backend.count("generate_image") == 2

        orchestrator.select(done)
        assert orchestrator.context.error_message is None

    def test_delete_active_clears_view(self, backend, store):
        async def scenario():
            orchestrator = make_orchestrator(backend, store)
            job_id = orchestrator.submit("a", make_payload(), "image", "1:1")
            await orchestrator.wait(job_id)
            return orchestrator, job_id

        orchestrator, job_id = asyncio.run(scenario())
        orchestrator.delete(job_id)
        assert orchestrator.history == []
        assert orchestrator.context.active_job_id is None
        assert orchestrator.active_job is None

    def test_delete_pending_cancels_task(self, store):
        backend = FakeBackend()

        async def scenario():
            backend.gate = asyncio.Event()
            orchestrator = make_orchestrator(backend, store)
            job_id = orchestrator.submit("a", make_payload(), "image", "1:1")
            await asyncio.sleep(0)
            orchestrator.delete(job_id)
            await asyncio.sleep(0)
            return orchestrator

        orchestrator = asyncio.run(scenario())
        assert orchestrator.history == []
        assert not orchestrator.context.is_busy
        assert orchestrator.in_flight() == []

    def test_shutdown_cancels_in_flight(self, store):
        backend = FakeBackend()

        async def scenario():
            backend.gate = asyncio.Event()
            orchestrator = make_orchestrator(backend, store)
            job_id = orchestrator.submit("a", make_payload(), "image", "1:1")
            await asyncio.sleep(0)
            await orchestrator.shutdown()
            return orchestrator, job_id

        orchestrator, job_id = asyncio.run(scenario())
        assert orchestrator.get(job_id).status == "pending"
        assert not orchestrator.context.is_busy
