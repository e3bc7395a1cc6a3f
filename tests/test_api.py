from __future__ import annotations

import base64
import time

import pytest
from fastapi.testclient import TestClient

from conftest import FakeBackend, RecordingSleep, make_image_bytes
from prisma_render.api import main
from prisma_render.scene.models import Coord
from prisma_render.studio import RenderStudio


@pytest.fixture
def client(monkeypatch, store):
    backend = FakeBackend()
    monkeypatch.setattr(main, "sessions", {})
    monkeypatch.setattr(
        main,
        "create_studio",
        lambda session_id: RenderStudio(backend=backend, store=store, session_id=session_id, sleep=RecordingSleep()),
    )
    with TestClient(main.app) as test_client:
        yield test_client


def new_session(client, with_image=True):
    session_id = client.post("/sessions", json={}).json()["session_id"]
    if with_image:
        res = client.put(
            f"/sessions/{session_id}/image",
            files={"file": ("scene.png", make_image_bytes(200, 100), "image/png")},
        )
        assert res.status_code == 200
    return session_id


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


def test_unknown_session_is_404(client):
    assert client.get("/sessions/missing/scene").status_code == 404


def test_scene_editing_flow(client):
    sid = new_session(client)

    scene = client.post(f"/sessions/{sid}/elements", json={"kind": "lighting", "label": "Sconce"}).json()
    (lamp,) = scene["elements"]
    assert lamp["anchor"] == {"x": 50.0, "y": 50.0}
    assert lamp["color_temperature"] == 3000
    assert scene["selected_id"] == lamp["id"]

    scene = client.patch(
        f"/sessions/{sid}/elements/{lamp['id']}", json={"label": "lamp", "color_temperature": 4000}
    ).json()
    assert scene["elements"][0]["label"] == "lamp"

    scene = client.post(f"/sessions/{sid}/elements/{lamp['id']}/duplicate").json()
    assert scene["elements"][1]["anchor"] == {"x": 52.0, "y": 52.0}

    scene = client.post(f"/sessions/{sid}/undo").json()
    assert len(scene["elements"]) == 1
    assert scene["can_redo"]

    scene = client.delete(f"/sessions/{sid}/elements/{lamp['id']}").json()
    assert scene["elements"] == []

    assert client.delete(f"/sessions/{sid}/elements/nope").status_code == 404


def test_invalid_attribute_edit_is_400(client):
    sid = new_session(client)
    tree = client.post(f"/sessions/{sid}/elements", json={"kind": "plant", "label": "Tree"}).json()["elements"][0]
    res = client.patch(f"/sessions/{sid}/elements/{tree['id']}", json={"pose": "sitting"})
    assert res.status_code == 400


def test_rejected_move_keeps_redo(client):
    sid = new_session(client)
    editor = main.sessions[sid].editor
    editor.arm_drawing_tool("lighting", "LED Strip", mode="freehand")
    path = editor.commit_path([Coord(x=10, y=10), Coord(x=30, y=30)])

    client.post(f"/sessions/{sid}/elements", json={"kind": "plant", "label": "Tree"})
    scene = client.post(f"/sessions/{sid}/undo").json()
    assert scene["can_redo"]

    res = client.patch(f"/sessions/{sid}/elements/{path.id}", json={"x": 50, "y": 50})
    assert res.status_code == 200
    assert res.json()["can_redo"]
    assert res.json()["elements"][0]["anchor"] == {"x": 10.0, "y": 10.0}

    scene = client.post(f"/sessions/{sid}/redo").json()
    assert [el["label"] for el in scene["elements"]] == ["LED Strip", "Tree"]


def test_invalid_edit_applies_nothing(client):
    sid = new_session(client)
    tree = client.post(f"/sessions/{sid}/elements", json={"kind": "plant", "label": "Tree"}).json()["elements"][0]
    data_url = "data:image/png;base64," + base64.b64encode(make_image_bytes(8, 8)).decode()

    res = client.patch(
        f"/sessions/{sid}/elements/{tree['id']}",
        json={"reference_image": data_url, "label": "Oak", "x": 20, "y": 20, "pose": "sitting"},
    )
    assert res.status_code == 400

    scene = client.get(f"/sessions/{sid}/scene").json()
    (unchanged,) = scene["elements"]
    assert unchanged["label"] == "Tree"
    assert unchanged["anchor"] == {"x": 50.0, "y": 50.0}
    assert not unchanged["has_reference_image"]
    assert not scene["can_redo"]
    assert len(main.sessions[sid].editor.history) == 1


def test_reference_image_upload(client):
    sid = new_session(client)
    tree = client.post(f"/sessions/{sid}/elements", json={"kind": "plant", "label": "Tree"}).json()["elements"][0]

    data_url = "data:image/png;base64," + base64.b64encode(make_image_bytes(8, 8)).decode()
    scene = client.patch(f"/sessions/{sid}/elements/{tree['id']}", json={"reference_image": data_url}).json()
    assert scene["elements"][0]["has_reference_image"]

    bad = "data:image/png;base64," + base64.b64encode(b"garbage").decode()
    res = client.patch(f"/sessions/{sid}/elements/{tree['id']}", json={"reference_image": bad})
    assert res.status_code == 422


def test_pointer_drawing_and_keys(client):
    sid = new_session(client)
    client.put(f"/sessions/{sid}/viewport", json={"container_width": 200, "container_height": 100})

    scene = client.post(f"/sessions/{sid}/elements", json={"kind": "lighting", "label": "LED Strip"}).json()
    assert scene["drawing_tool"]["label"] == "LED Strip"

    client.post(f"/sessions/{sid}/pointer", json={"type": "down", "x": 20, "y": 50})
    client.post(f"/sessions/{sid}/pointer", json={"type": "move", "x": 100, "y": 50})
    scene = client.post(f"/sessions/{sid}/pointer", json={"type": "up", "x": 180, "y": 50}).json()

    (strip,) = scene["elements"]
    assert strip["shape"] == "segment"
    assert strip["end"] == {"x": 90.0, "y": 50.0}
    assert strip["install_side"] == "front"
    assert scene["interaction_state"] == "idle"

    res = client.post(f"/sessions/{sid}/keys", json={"key": "z", "ctrl": True}).json()
    assert res["action"] == "undo"
    assert res["scene"]["elements"] == []


def test_settings_preview_prompt(client):
    sid = new_session(client)
    res = client.put(f"/sessions/{sid}/settings", json={"mood": "Dusk", "aspect_ratio": "1:1"})
    body = res.json()
    assert res.status_code == 200
    assert body["aspect_ratio"] == "1:1"
    assert "Atmosphere: Dusk" in body["prompt"]

    assert client.put(f"/sessions/{sid}/settings", json={"aspect_ratio": "5:4"}).status_code == 400


def test_generate_without_image_is_400(client):
    sid = new_session(client, with_image=False)
    res = client.post(f"/sessions/{sid}/generate")
    assert res.status_code == 400
    assert res.json()["details"] == "InputError"


def test_generate_without_credential_is_401(client):
    sid = new_session(client)
    main.sessions[sid].context.has_valid_credential = False
    assert client.post(f"/sessions/{sid}/generate").status_code == 401

    history = client.post(f"/sessions/{sid}/authorize").json()
    assert history["has_valid_credential"]


def test_generate_returns_pending_job(client):
    sid = new_session(client)
    res = client.post(f"/sessions/{sid}/generate")
    assert res.status_code == 202
    job = res.json()
    assert job["status"] == "pending"
    assert job["kind"] == "image"

    history = client.get(f"/sessions/{sid}/history").json()
    assert history["jobs"][0]["id"] == job["id"]
    assert history["active_job_id"] == job["id"]

    assert client.post(f"/sessions/{sid}/history/unknown/select").status_code == 404
    history = client.delete(f"/sessions/{sid}/history/{job['id']}").json()
    assert history["jobs"] == []
    assert history["active_job_id"] is None


def test_corrupt_upload_is_422(client):
    sid = new_session(client, with_image=False)
    res = client.put(
        f"/sessions/{sid}/image",
        files={"file": ("scene.png", b"not an image", "image/png")},
    )
    assert res.status_code == 422


def test_catalog(client):
    body = client.get("/catalog").json()
    assert "LED Strip" in body["elements"]["lighting"]
    assert body["aspect_ratios"][0] == "Original"
    assert "Starry Night" in body["moods"]


def wait_for_job(client, sid, job_id):
    for _ in range(200):
        job = next(j for j in client.get(f"/sessions/{sid}/history").json()["jobs"] if j["id"] == job_id)
        if job["status"] != "pending":
            return job
        time.sleep(0.01)
    raise AssertionError(f"job {job_id} never finished")


def test_result_asset_and_use_as_input(client):
    sid = new_session(client)
    job_id = client.post(f"/sessions/{sid}/generate").json()["id"]
    assert wait_for_job(client, sid, job_id)["status"] == "completed"

    res = client.get(f"/sessions/{sid}/history/{job_id}/asset")
    assert res.status_code == 200
    assert res.headers["content-type"] == "image/png"
    assert res.content.startswith(b"\x89PNG")

    scene = client.post(f"/sessions/{sid}/history/{job_id}/use-as-input", json={"mode": "video"}).json()
    assert (scene["image_width"], scene["image_height"]) == (32, 32)
    assert len(client.get(f"/sessions/{sid}/history").json()["jobs"]) == 1
