"""
Tests for crop upload and review endpoints.
"""
from pathlib import Path
from unittest.mock import patch

from crop_review.config import settings


def _upload(client, data, crop_type="thumbnail", filename="cat.jpg", content_type="image/jpeg", **fields):
    form = {"cropType": crop_type} if crop_type is not None else {}
    form.update(fields)
    return client.post(
        "/upload",
        files={"image": (filename, data, content_type)},
        data=form,
    )


def test_upload_success(client, sample_image_jpeg):
    response = _upload(client, sample_image_jpeg)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["cropId"]
    assert data["message"] == "Image cropped successfully and pending approval"


def test_thumbnail_approve_delete_scenario(client, sample_image_jpeg):
    """Upload -> pending -> approved -> deleted."""
    crop_id = _upload(client, sample_image_jpeg, "thumbnail").json()["cropId"]

    pending = client.get("/api/pending").json()
    assert [item["id"] for item in pending] == [crop_id]
    item = pending[0]
    assert item["dimensions"] == {"width": 150, "height": 150}
    assert item["originalDimensions"] == {"width": 640, "height": 480}
    assert item["cropType"] == "thumbnail"
    assert item["originalName"] == "cat.jpg"
    assert item["croppedPath"] == f"cropped/cropped-{crop_id}.jpg"
    assert "createdAt" in item
    assert client.get("/api/approved").json() == []

    response = client.post(f"/api/approve/{crop_id}")
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Crop approved successfully"}

    assert client.get("/api/pending").json() == []
    approved = client.get("/api/approved").json()
    assert [item["id"] for item in approved] == [crop_id]
    assert approved[0]["approvedAt"]

    response = client.delete(f"/api/delete/{crop_id}")
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert client.get("/api/approved").json() == []

    response = client.delete(f"/api/delete/{crop_id}")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_custom_zero_width_is_invalid_and_creates_nothing(client, sample_image_jpeg, storage_dirs):
    upload_dir, cropped_dir = storage_dirs

    response = _upload(client, sample_image_jpeg, "custom", customWidth="0", customHeight="100")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_CROP_SPEC"
    assert client.get("/api/pending").json() == []
    assert list(upload_dir.iterdir()) == []
    assert list(cropped_dir.iterdir()) == []


def test_custom_dimensions_applied(client, sample_image_png):
    response = _upload(
        client, sample_image_png, "custom", filename="tall.png", content_type="image/png",
        customWidth="120", customHeight="80",
    )
    assert response.status_code == 200

    item = client.get("/api/pending").json()[0]
    assert item["dimensions"] == {"width": 120, "height": 80}
    assert item["originalDimensions"] == {"width": 300, "height": 900}


def test_custom_missing_dimensions(client, sample_image_jpeg):
    response = _upload(client, sample_image_jpeg, "custom", customWidth="100")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_CROP_SPEC"


def test_unknown_crop_type(client, sample_image_jpeg):
    response = _upload(client, sample_image_jpeg, "poster")

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Invalid crop type"


def test_missing_crop_type(client, sample_image_jpeg):
    response = _upload(client, sample_image_jpeg, crop_type=None)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_CROP_SPEC"


def test_missing_file(client):
    response = client.post("/upload", data={"cropType": "thumbnail"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INPUT"


def test_invalid_mime_type(client):
    response = _upload(client, b"fake pdf content", filename="document.pdf", content_type="application/pdf")

    assert response.status_code == 415
    assert response.json()["error"]["code"] == "UNSUPPORTED_MEDIA_TYPE"


def test_file_too_large(client, sample_image_jpeg, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_BYTES", 100)

    response = _upload(client, sample_image_jpeg)

    assert response.status_code == 413
    assert response.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"


def test_corrupt_image_is_decode_failure(client, storage_dirs):
    upload_dir, cropped_dir = storage_dirs

    response = _upload(client, b"\xff\xd8 not really a jpeg")

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "DECODE_FAILURE"
    assert client.get("/api/pending").json() == []
    assert list(upload_dir.iterdir()) == []


def test_reject_removes_job(client, sample_image_jpeg, storage_dirs):
    upload_dir, cropped_dir = storage_dirs
    crop_id = _upload(client, sample_image_jpeg).json()["cropId"]

    response = client.post(f"/api/reject/{crop_id}")
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Crop rejected and files cleaned up"}

    assert client.get("/api/pending").json() == []
    assert list(upload_dir.iterdir()) == []
    assert list(cropped_dir.iterdir()) == []
    assert client.post(f"/api/approve/{crop_id}").status_code == 404
    assert client.post(f"/api/reject/{crop_id}").status_code == 404


def test_reject_never_issued_id(client):
    response = client.post("/api/reject/never-issued")

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "NOT_FOUND"
    assert error["details"]["cropId"] == "never-issued"


def test_delete_pending_crop_is_not_found(client, sample_image_jpeg):
    crop_id = _upload(client, sample_image_jpeg).json()["cropId"]

    response = client.delete(f"/api/delete/{crop_id}")

    assert response.status_code == 404
    assert [item["id"] for item in client.get("/api/pending").json()] == [crop_id]


def test_approve_cleanup_failure_reports_committed_transition(client, sample_image_jpeg, storage_dirs):
    upload_dir, _ = storage_dirs
    crop_id = _upload(client, sample_image_jpeg).json()["cropId"]
    for path in upload_dir.iterdir():
        path.unlink()

    response = client.post(f"/api/approve/{crop_id}")

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "CLEANUP_FAILURE"
    assert error["details"]["transitionCommitted"] is True
    assert [item["id"] for item in client.get("/api/approved").json()] == [crop_id]
    # Duplicate action is distinguishable from a transient failure
    assert client.post(f"/api/approve/{crop_id}").status_code == 404


def test_get_crop_detail(client, sample_image_jpeg):
    crop_id = _upload(client, sample_image_jpeg, "product").json()["cropId"]

    detail = client.get(f"/api/crops/{crop_id}").json()
    assert detail["state"] == "pending"
    assert detail["approvedAt"] is None
    assert detail["dimensions"] == {"width": 800, "height": 600}

    client.post(f"/api/approve/{crop_id}")
    detail = client.get(f"/api/crops/{crop_id}").json()
    assert detail["state"] == "approved"
    assert detail["approvedAt"]

    assert client.get("/api/crops/unknown").status_code == 404


def test_download_cropped_image(client, sample_image_jpeg):
    crop_id = _upload(client, sample_image_jpeg, "square").json()["cropId"]
    cropped_path = client.get("/api/pending").json()[0]["croppedPath"]

    response = client.get(f"/{cropped_path}")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert response.content[:2] == b"\xff\xd8"

    client.post(f"/api/reject/{crop_id}")
    assert client.get(f"/{cropped_path}").status_code == 404


def test_rejected_crop_not_served_when_file_removal_fails(client, sample_image_jpeg, storage_dirs):
    _, cropped_dir = storage_dirs
    crop_id = _upload(client, sample_image_jpeg, "square").json()["cropId"]
    cropped_path = client.get("/api/pending").json()[0]["croppedPath"]
    derived_file = cropped_dir / f"cropped-{crop_id}.jpg"
    original_unlink = Path.unlink

    def failing_unlink(self, *args, **kwargs):
        if self.name == derived_file.name:
            raise PermissionError("read-only")
        return original_unlink(self, *args, **kwargs)

    with patch.object(Path, "unlink", failing_unlink):
        response = client.post(f"/api/reject/{crop_id}")

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "CLEANUP_FAILURE"
    assert derived_file.is_file()
    assert client.get(f"/{cropped_path}").status_code == 404


def test_partial_file_not_served(client, sample_image_jpeg, storage_dirs):
    _, cropped_dir = storage_dirs
    crop_id = _upload(client, sample_image_jpeg, "square").json()["cropId"]
    (cropped_dir / f"cropped-{crop_id}.jpg.part").write_bytes(b"partial")

    assert client.get(f"/cropped/cropped-{crop_id}.jpg.part").status_code == 404


def test_list_presets(client):
    response = client.get("/api/presets")

    assert response.status_code == 200
    presets = {p["cropType"]: p for p in response.json()}
    assert presets["thumbnail"] == {"cropType": "thumbnail", "width": 150, "height": 150, "fit": "cover"}
    assert presets["product"]["fit"] == "bounded"


def test_derived_file_location(client, sample_image_jpeg, storage_dirs):
    _, cropped_dir = storage_dirs
    crop_id = _upload(client, sample_image_jpeg).json()["cropId"]

    assert Path(cropped_dir / f"cropped-{crop_id}.jpg").is_file()
