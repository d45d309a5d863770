"""업로드 → 상태 폴링 → 결과 조회 API 테스트."""

import io
import threading

import pytest
from PIL import Image

from conftest import GENERATED_PNG, FakeGenerator, stored_ids, success_result
from core.exceptions import QueueUnavailable
from service.generation_client import GenerationResult
from utility.poller import fetch_image, wait_for_terminal_status


def _wait(client, image_id: str) -> dict:
    return wait_for_terminal_status(client, image_id, interval=0.05, timeout=5)


def _upload(client, files, **data):
    data.setdefault("colorHex", "#87CEEB")
    return client.post("/", data=data, files=files)


class TestUploadFlow:
    @pytest.fixture()
    def gate(self):
        return threading.Event()

    @pytest.fixture()
    def generator(self, gate):
        return FakeGenerator(result=success_result(), gate=gate)

    def test_pending_then_completed(self, client, upload_files, gate, generator):
        """업로드 직후 pending → 생성 완료 후 completed → 결과 바이트 조회."""
        resp = _upload(client, upload_files())
        assert resp.status_code == 200
        image_id = resp.json()["response"]["imageId"]

        status = client.get(f"/api/image/{image_id}/status")
        assert status.status_code == 200
        assert status.json() == {"status": "pending"}

        gate.set()
        assert _wait(client, image_id) == {"status": "completed"}

        content, content_type = fetch_image(client, image_id)
        assert content == GENERATED_PNG
        assert content_type == "image/png"

        resp = client.get(f"/api/image/{image_id}")
        assert resp.headers["cache-control"] == "public, max-age=31536000"

        prompt, image, mask = generator.calls[0]
        assert "#87CEEB" in prompt
        assert image[2] == "image/png"
        assert mask is None

    def test_mask_reaches_generator(self, client, upload_files, gate, generator):
        files = upload_files()
        files["mask"] = ("mask.png", io.BytesIO(upload_files()["image"][1].getvalue()), "image/png")

        image_id = _upload(client, files).json()["response"]["imageId"]
        gate.set()
        _wait(client, image_id)

        assert generator.calls[0][2] is not None

    def test_image_not_ready_while_pending(self, client, upload_files, gate):
        image_id = _upload(client, upload_files()).json()["response"]["imageId"]

        resp = client.get(f"/api/image/{image_id}")
        assert resp.status_code == 404
        gate.set()


class TestGenerationFailures:
    def test_provider_error_is_reported_verbatim(self, client, upload_files, generator):
        message = "Your request was rejected as a result of our safety system."
        generator.result = GenerationResult(error=message)

        image_id = _upload(client, upload_files()).json()["response"]["imageId"]

        assert _wait(client, image_id) == {
            "status": "error",
            "errorMessage": message,
            "errorKind": "provider",
        }
        assert client.get(f"/api/image/{image_id}").status_code == 404

    def test_missing_credential(self, client, upload_files, generator):
        generator.result = None

        image_id = _upload(client, upload_files()).json()["response"]["imageId"]

        assert _wait(client, image_id)["errorKind"] == "configuration"


class TestUploadValidation:
    def test_missing_image(self, client):
        resp = client.post("/", data={"colorHex": "#87CEEB"})
        assert resp.status_code == 400
        assert resp.json()["error_code"] == "IMAGE_REQUIRED"

    def test_unsupported_media_type(self, client):
        files = {"image": ("notes.txt", io.BytesIO(b"hello"), "text/plain")}

        resp = _upload(client, files)
        assert resp.status_code == 415
        assert resp.json()["error_code"] == "UNSUPPORTED_MEDIA_TYPE"

    def test_missing_prompt_and_color(self, client, upload_files):
        resp = client.post("/", files=upload_files())
        assert resp.status_code == 400
        assert resp.json()["error_code"] == "PROMPT_REQUIRED"

    def test_invalid_color(self, client, upload_files):
        resp = _upload(client, upload_files(), colorHex="blue")
        assert resp.status_code == 400
        assert resp.json()["error_code"] == "INVALID_COLOR"

    def test_free_prompt_without_color(self, client, upload_files, generator):
        resp = client.post("/", data={"prompt": "make the walls sage green"}, files=upload_files())

        image_id = resp.json()["response"]["imageId"]
        _wait(client, image_id)
        assert generator.calls[0][0] == "make the walls sage green"

    def test_queue_unavailable_leaves_no_records(self, client, app_store, upload_files, monkeypatch):
        """큐에 넣지 못한 업로드는 503이고 pending 레코드도 남지 않는다."""

        def _reject(job):
            raise QueueUnavailable

        monkeypatch.setattr(client.app.state.queue, "submit", _reject)

        resp = _upload(client, upload_files())
        assert resp.status_code == 503
        assert resp.json()["error_code"] == "QUEUE_UNAVAILABLE"
        assert stored_ids(app_store) == []


class TestLookups:
    def test_status_unknown_image(self, client):
        resp = client.get("/api/image/does-not-exist/status")
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "IMAGE_NOT_FOUND"

    def test_image_unknown_is_plain_text(self, client):
        resp = client.get("/api/image/does-not-exist")
        assert resp.status_code == 404
        assert resp.text == "Image not found"

    def test_original_is_normalized(self, client, upload_files):
        image_id = _upload(client, upload_files(width=400, height=300)).json()["response"]["imageId"]

        resp = client.get(f"/api/image/{image_id}/original")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        with Image.open(io.BytesIO(resp.content)) as img:
            assert img.size == (1024, 1024)

    def test_compare(self, client, upload_files):
        image_id = _upload(client, upload_files()).json()["response"]["imageId"]
        _wait(client, image_id)

        resp = client.get(f"/api/image/{image_id}/compare", params={"position": 30})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"

        resp = client.get(
            f"/api/image/{image_id}/compare",
            params={"pointerX": 300, "containerWidth": 400},
        )
        assert resp.status_code == 200

    def test_compare_unknown_image(self, client):
        resp = client.get("/api/image/nope/compare")
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "IMAGE_NOT_FOUND"

    def test_delete(self, client, upload_files):
        image_id = _upload(client, upload_files()).json()["response"]["imageId"]
        _wait(client, image_id)

        resp = client.delete(f"/api/image/{image_id}")
        assert resp.status_code == 200
        assert resp.json() == {"deleted": 2}

        assert client.get(f"/api/image/{image_id}/status").status_code == 404
        assert client.delete(f"/api/image/{image_id}").status_code == 404


class TestInternalRecords:
    """{id}:original 형제 레코드는 공개 경로로 노출되지 않는다."""

    @pytest.fixture()
    def sibling(self, client, upload_files):
        image_id = _upload(client, upload_files()).json()["response"]["imageId"]
        _wait(client, image_id)
        return f"{image_id}:original"

    def test_status(self, client, sibling):
        resp = client.get(f"/api/image/{sibling}/status")
        assert resp.status_code == 404
        assert resp.json()["error_code"] == "IMAGE_NOT_FOUND"

    def test_image(self, client, sibling):
        resp = client.get(f"/api/image/{sibling}")
        assert resp.status_code == 404
        assert resp.text == "Image not found"

    def test_original_and_compare(self, client, sibling):
        assert client.get(f"/api/image/{sibling}/original").status_code == 404
        assert client.get(f"/api/image/{sibling}/compare").status_code == 404

    def test_delete(self, client, sibling, app_store):
        assert client.delete(f"/api/image/{sibling}").status_code == 404
        assert app_store.get(sibling) is not None


class TestPagesAndHealth:
    def test_index_page(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "text/html" in resp.headers["content-type"]

    def test_colors(self, client):
        resp = client.get("/api/colors")
        assert resp.status_code == 200
        assert {"name": "Sage", "hex": "#BCB88A"} in resp.json()

    def test_client_config(self, client):
        resp = client.get("/api/client-config")
        assert resp.status_code == 200
        assert resp.json() == {"pollIntervalMs": 2000}

    def test_page_script_registers_window_listeners_once(self, client):
        """제출할 때마다 resize/beforeunload 리스너가 쌓이지 않도록 한 곳에서만 붙인다."""
        script = client.get("/static/app.js").text

        assert script.count('window.addEventListener("resize"') == 1
        assert script.count('window.addEventListener("beforeunload"') == 1
        assert script.count("createFlipper(document") == 1

    def test_health_reports_queue(self, client, upload_files):
        image_id = _upload(client, upload_files()).json()["response"]["imageId"]
        _wait(client, image_id)

        data = client.get("/health").json()
        assert data["status"] == "ok"
        assert data["store"] == "sqlite"
        assert data["queue"]["workers"] == 1
        # 상태가 저장된 직후에는 아직 in_flight로 잡혀 있을 수 있다
        assert data["queue"]["processed"] + data["queue"]["in_flight"] >= 1
