from fastapi.testclient import TestClient

from edutube.main import app

client = TestClient(app)


def test_register_and_fetch_video():
    r = client.post("/videos", json={"id": "vid-reg", "title": "Thermodynamics 101", "duration_sec": 600})
    assert r.status_code == 200
    assert r.json()["status"] == "uploaded"

    g = client.get("/videos/vid-reg")
    assert g.status_code == 200
    body = g.json()
    assert body["ok"] is True
    assert body["title"] == "Thermodynamics 101"
    assert body["duration_sec"] == 600


def test_unknown_video_is_404():
    assert client.get("/videos/nope").status_code == 404


def test_invalid_status_is_400():
    r = client.post("/videos", json={"id": "vid-bad", "status": "exploded"})
    assert r.status_code == 400


def test_index_webhook_marks_ready_and_validates_segments():
    client.post("/videos", json={"id": "vid-hook", "title": "Hooked"})

    r = client.post(
        "/webhooks/video-index",
        json={
            "video_id": "vid-hook",
            "task_id": "task-hook",
            "status": "ready",
            "duration_sec": 120,
            "segments": [
                {"start_offset_sec": 0, "end_offset_sec": 6},
                {"start_offset_sec": 110, "end_offset_sec": 130},
                {"start_offset_sec": -3, "end_offset_sec": 4},
            ],
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ready"
    assert body["segments_received"] == 3
    assert body["segments_accepted"] == 3
    # clamping adjustments are reported even for accepted segments
    assert len(body["segment_errors"]) == 2

    video = client.get("/videos/vid-hook").json()
    assert video["task_id"] == "task-hook"
    assert video["status"] == "ready"


def test_webhook_for_unknown_video_is_404():
    r = client.post("/webhooks/video-index", json={"video_id": "ghost", "status": "ready"})
    assert r.status_code == 404
