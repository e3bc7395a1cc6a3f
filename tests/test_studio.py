from __future__ import annotations

import asyncio
import threading

import pytest

from conftest import FakeBackend, RecordingSleep, make_image_bytes, make_payload
from prisma_render.core.errors import BusyError, CredentialRequiredError, ImageDecodeError, InputError
from prisma_render.scene.models import Coord
from prisma_render.storage.asset_store import LocalAssetStore
from prisma_render.studio import RenderStudio


@pytest.fixture
def studio(backend, store):
    return RenderStudio(backend=backend, store=store, session_id="studio-test", sleep=RecordingSleep())


def test_generate_requires_image(studio):
    with pytest.raises(InputError):
        studio.generate()
    assert studio.orchestrator.history == []


def test_generate_rejected_while_busy(studio):
    studio.set_image(make_image_bytes())
    studio.context.is_busy = True
    with pytest.raises(BusyError):
        studio.generate()


def test_generate_rejected_without_credential(studio):
    studio.set_image(make_image_bytes())
    studio.context.has_valid_credential = False
    with pytest.raises(CredentialRequiredError):
        studio.generate()
    studio.authorize()
    assert studio.context.has_valid_credential


def test_corrupt_upload_is_rejected(studio):
    with pytest.raises(ImageDecodeError):
        studio.set_image(b"definitely not an image")
    assert studio.source_image is None


def test_image_generation_sends_guides_and_references(studio, backend):
    studio.set_image(make_image_bytes(400, 300))
    studio.editor.arm_drawing_tool("lighting", "LED Strip")
    studio.editor.commit_line(Coord(x=10, y=50), Coord(x=90, y=50))
    tree = studio.editor.add_point_element("plant", "Tree")
    reference = make_payload(16, 16)
    studio.editor.set_reference_image(tree.id, reference)

    async def scenario():
        job_id = studio.generate()
        return await studio.orchestrator.wait(job_id)

    job = asyncio.run(scenario())
    assert job.status == "completed"
    assert job.thumbnail.startswith("data:image/png;base64,")

    _, prompt, image, aspect_ratio, references = backend.calls[0]
    assert "reference image #1" in prompt
    assert "DO NOT ADD any other LED strips" in prompt
    assert image.data != studio.source_image.data
    assert aspect_ratio == "4:3"
    assert references == [reference]


def test_video_generation_uses_video_aspect(studio, backend):
    studio.set_image(make_image_bytes(300, 400))
    studio.update_settings(mode="video", video_duration="3")

    async def scenario():
        job_id = studio.generate()
        return await studio.orchestrator.wait(job_id)

    job = asyncio.run(scenario())
    assert job.kind == "video"
    assert job.status == "completed"
    _, prompt, _, aspect_ratio = backend.calls[0]
    assert aspect_ratio == "9:16"
    assert "approximately 3 seconds" in prompt


def test_replacing_image_resets_scene_and_history(studio):
    studio.set_image(make_image_bytes())
    studio.editor.add_point_element("plant", "Tree")

    studio.set_image(make_image_bytes(), keep_elements=True)
    assert len(studio.editor.elements) == 1

    studio.set_image(make_image_bytes())
    assert studio.editor.elements == ()
    assert not studio.editor.history.can_undo

    studio.clear_image()
    assert studio.source_image is None


def test_use_result_as_input(studio, backend):
    studio.set_image(make_image_bytes(64, 48))
    studio.editor.add_point_element("plant", "Tree")

    async def scenario():
        job_id = studio.generate()
        await studio.orchestrator.wait(job_id)
        return await studio.use_result_as_input(job_id, mode="video")

    payload = asyncio.run(scenario())

    assert payload.data == backend.result.data
    assert (payload.width, payload.height) == (32, 32)
    assert studio.editor.elements == ()
    assert studio.settings.mode == "video"
    assert len(studio.orchestrator.history) == 1


def test_failed_job_cannot_be_used_as_input(store):
    backend = FakeBackend(image_errors=[ValueError("nope")])
    studio = RenderStudio(backend=backend, store=store, sleep=RecordingSleep())
    studio.set_image(make_image_bytes())

    async def scenario():
        job_id = studio.generate()
        await studio.orchestrator.wait(job_id)
        await studio.use_result_as_input(job_id)

    with pytest.raises(InputError):
        asyncio.run(scenario())


def test_result_is_loaded_off_the_event_loop(backend, tmp_path):
    load_threads = []

    class ThreadRecordingStore(LocalAssetStore):
        def load(self, uri):
            load_threads.append(threading.get_ident())
            return super().load(uri)

    studio = RenderStudio(backend=backend, store=ThreadRecordingStore(str(tmp_path)), sleep=RecordingSleep())
    studio.set_image(make_image_bytes())

    async def scenario():
        job_id = studio.generate()
        await studio.orchestrator.wait(job_id)
        await studio.use_result_as_input(job_id)
        return threading.get_ident()

    loop_thread = asyncio.run(scenario())
    assert len(load_threads) == 1
    assert load_threads[0] != loop_thread


def test_aspect_ratio_validation(studio):
    studio.set_aspect_ratio("1:1")
    assert studio.aspect_ratio == "1:1"
    with pytest.raises(ValueError):
        studio.set_aspect_ratio("2:1")
