"""Tests for the HTTP API."""

from fastapi.testclient import TestClient

from inspection_camera.api.app import create_app
from tests.conftest import FailingExportSink, jpeg_bytes, make_frame

IDENTIFICATION = {"asset_id": "EQ-9942", "client_name": "Acme Corp"}


def _client(container) -> TestClient:  # type: ignore[no-untyped-def]
    return TestClient(create_app(container))


def _capture_batch(client: TestClient, count: int = 3) -> dict:
    response = client.post("/session", json={"identification": IDENTIFICATION})
    assert response.status_code == 200
    for _ in range(count):
        response = client.post("/session/captures", content=jpeg_bytes(make_frame()))
        assert response.status_code == 200
    assert client.post("/session/review").json()["state"] == "REVIEW"
    response = client.post("/session/finalize", json={})
    assert response.status_code == 200
    return response.json()


def test_health(container) -> None:
    response = _client(container).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_begin_requires_identification_in_upfront_mode(container) -> None:
    client = _client(container)

    response = client.post("/session", json={})

    assert response.status_code == 422
    assert response.json()["missing"] == ["asset_id", "client_name"]
    assert client.get("/session").json()["state"] == "SETUP"


def test_capture_outside_capturing_is_conflict(container) -> None:
    response = _client(container).post(
        "/session/captures", content=jpeg_bytes(make_frame())
    )

    assert response.status_code == 409
    assert response.json()["error"] == "InvalidTransition"


def test_upload_rejects_non_image_body(container) -> None:
    client = _client(container)
    client.post("/session", json={"identification": IDENTIFICATION})

    response = client.post("/session/captures", content=b"not a jpeg")

    assert response.status_code == 422
    assert client.get("/session").json()["artifacts"] == []


def test_upload_rejects_truncated_jpeg(container) -> None:
    client = _client(container)
    client.post("/session", json={"identification": IDENTIFICATION})
    data = jpeg_bytes(make_frame(640, 480))

    response = client.post("/session/captures", content=data[: len(data) // 2])

    assert response.status_code == 422
    assert response.json()["error"] == "InvalidImage"
    assert client.get("/session").json()["artifacts"] == []


def test_location_push_is_used_for_next_capture(container) -> None:
    client = _client(container)
    client.post("/session", json={"identification": IDENTIFICATION})

    pushed = client.post(
        "/session/location", json={"latitude": -3.73, "longitude": -38.52}
    )
    captured = client.post("/session/captures", content=jpeg_bytes(make_frame()))

    assert pushed.json()["gps"] == "LAT: -3.730000 | LON: -38.520000"
    assert captured.json()["latitude"] == -3.73
    assert captured.json()["asset_id"] is None


def test_location_error_is_stamped_verbatim(container) -> None:
    client = _client(container)

    response = client.post(
        "/session/location", json={"error_reason": "Permissão de localização negada"}
    )

    assert response.json()["gps"] == "Permissão de localização negada"


def test_partial_location_is_rejected(container) -> None:
    response = _client(container).post("/session/location", json={"latitude": -3.73})

    assert response.status_code == 422


def test_pull_capture_uses_frame_source(container) -> None:
    client = _client(container)
    client.post("/session", json={"identification": IDENTIFICATION})

    response = client.post("/session/captures/pull")

    assert response.status_code == 200
    assert container.session.frame_source.pulls == 1


def test_delete_capture_and_preview(container) -> None:
    client = _client(container)
    client.post("/session", json={"identification": IDENTIFICATION})
    first = client.post("/session/captures", content=jpeg_bytes(make_frame())).json()
    second = client.post("/session/captures", content=jpeg_bytes(make_frame())).json()

    preview = client.get(f"/session/captures/{second['id']}/image")
    deleted = client.delete(f"/session/captures/{first['id']}")
    missing = client.delete(f"/session/captures/{first['id']}")

    assert preview.status_code == 200
    assert preview.headers["content-type"] == "image/jpeg"
    assert preview.content[:2] == b"\xff\xd8"
    assert [item["id"] for item in deleted.json()["artifacts"]] == [second["id"]]
    assert missing.status_code == 404


def test_review_with_empty_buffer_stays_capturing(container) -> None:
    client = _client(container)
    client.post("/session", json={"identification": IDENTIFICATION})

    response = client.post("/session/review")

    assert response.json()["state"] == "CAPTURING"


def test_finalize_archives_and_exports_batch(container) -> None:
    client = _client(container)

    batch = _capture_batch(client)

    assert batch["artifact_count"] == 3
    assert batch["filenames"] == [
        "EQ-9942_acme_corp_1.jpg",
        "EQ-9942_acme_corp_2.jpg",
        "EQ-9942_acme_corp_3.jpg",
    ]
    assert client.get("/session").json() == {
        "state": "SETUP",
        "mode": "upfront",
        "asset_id": None,
        "client_name": None,
        "artifacts": [],
    }
    delivered = container.export_queue.sink.delivered
    assert [filename for filename, _ in delivered] == batch["filenames"]
    assert all(artifact.asset_id == "EQ-9942" for _, artifact in delivered)


def test_batches_listing_download_and_removal(container) -> None:
    client = _client(container)
    batch = _capture_batch(client, count=2)

    listing = client.get("/batches").json()
    download = client.get(f"/batches/{batch['id']}/artifacts/1")
    out_of_range = client.get(f"/batches/{batch['id']}/artifacts/3")

    assert [entry["id"] for entry in listing] == [batch["id"]]
    assert download.status_code == 200
    assert download.headers["content-type"] == "image/jpeg"
    assert "EQ-9942_acme_corp_1.jpg" in download.headers["content-disposition"]
    assert out_of_range.status_code == 404

    assert client.delete(f"/batches/{batch['id']}").status_code == 200
    assert client.delete(f"/batches/{batch['id']}").status_code == 200
    assert client.get("/batches").json() == []


def test_export_endpoint_redelivers_batch(container) -> None:
    client = _client(container)
    batch = _capture_batch(client, count=2)
    container.export_queue.sink.delivered.clear()

    response = client.post(f"/batches/{batch['id']}/export")

    assert response.status_code == 200
    assert response.json()["filenames"] == batch["filenames"]
    assert len(container.export_queue.sink.delivered) == 2


def test_export_unknown_batch_is_not_found(container) -> None:
    response = _client(container).post(
        "/batches/00000000-0000-0000-0000-000000000000/export"
    )

    assert response.status_code == 404


def test_discard_returns_to_setup(container) -> None:
    client = _client(container)
    client.post("/session", json={"identification": IDENTIFICATION})
    client.post("/session/captures", content=jpeg_bytes(make_frame()))

    response = client.post("/session/discard")

    assert response.json()["state"] == "SETUP"
    assert response.json()["artifacts"] == []
    assert client.get("/batches").json() == []


def test_finalize_outside_review_is_conflict(container) -> None:
    response = _client(container).post("/session/finalize", json={})

    assert response.status_code == 409


def test_export_failure_after_finalize_reports_archived_batch(container) -> None:
    container.export_queue.sink = FailingExportSink()
    client = _client(container)
    client.post("/session", json={"identification": IDENTIFICATION})
    client.post("/session/captures", content=jpeg_bytes(make_frame()))
    client.post("/session/review")

    response = client.post("/session/finalize", json={})

    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "ExportFailed"
    assert body["exported"] == []
    assert [entry["id"] for entry in client.get("/batches").json()] == [
        body["batch_id"]
    ]
    assert client.get("/session").json()["state"] == "SETUP"
