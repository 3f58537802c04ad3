"""Integration tests for the operations REST API."""

import time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from apps.api.main import create_app
from core.application.interfaces import ChannelResult
from core.data.repositories import SqlAlchemyOperationRepository
from core.domain.enums import ChannelKind
from core.infrastructure.adapters.channels import MockChannelExecutor
from core.settings.modules.app_settings import AppSettings, ChannelsSettings
from core.settings.modules.channels_settings import PdfSettings, SmsSettings, SmtpSettings, WhatsAppSettings
from core.settings.modules.database_settings import DatabaseSettings
from core.settings.modules.engine_settings import EngineSettings
from orchestration import ExecutorRegistry


@pytest.fixture
def api_settings(db_url, tmp_path) -> AppSettings:
    return AppSettings(
        database=DatabaseSettings(url=db_url),
        engine=EngineSettings(
            max_attempts=3,
            backoff_seconds=0.0,
            max_backoff_seconds=0.0,
            recovery_interval_seconds=0.05,
        ),
        channels=ChannelsSettings(
            smtp=SmtpSettings(),
            whatsapp=WhatsAppSettings(),
            sms=SmsSettings(),
            pdf=PdfSettings(output_dir=str(tmp_path / "pdf")),
        ),
    )


@pytest.fixture
def registry() -> ExecutorRegistry:
    return ExecutorRegistry(
        [
            MockChannelExecutor(ChannelKind.EMAIL),
            MockChannelExecutor(ChannelKind.WHATSAPP),
            MockChannelExecutor(
                ChannelKind.SMS,
                [ChannelResult.failure("gateway 502"), ChannelResult.failure("gateway 502")],
            ),
            MockChannelExecutor.failing(ChannelKind.PDF, "renderer crashed"),
        ]
    )


@pytest.fixture
def test_client(api_settings, registry):
    """FastAPI test client; the context manager runs the lifespan."""
    with TestClient(create_app(api_settings, registry)) as client:
        yield client


def _wait_for_terminal(client: TestClient, operation_id: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        body = client.get(f"/api/v1/operations/{operation_id}").json()
        if body["status"] in ("done", "failed") or time.monotonic() > deadline:
            return body
        time.sleep(0.02)


def test_health(test_client):
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_sync_operation_returns_terminal_status(test_client):
    response = test_client.post(
        "/api/v1/operations",
        json={"operation_type": "send_email", "metadata": {"subject": "hi"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "done"
    assert body["error_message"] is None

    detail = test_client.get(f"/api/v1/operations/{body['id']}").json()
    assert detail["channels"][0]["channel"] == "email"
    assert detail["channels"][0]["attempts"] == 1
    assert detail["metadata"] == {"subject": "hi"}


def test_sync_failure_reports_error_message(test_client):
    response = test_client.post(
        "/api/v1/operations",
        json={"operation_type": "generate_pdf", "channels": [], "is_async": False},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "failed"
    assert body["error_message"] == "pdf: renderer crashed"


def test_async_operation_accepted_then_completes(test_client):
    response = test_client.post(
        "/api/v1/operations",
        json={
            "operation_type": "send_notification",
            "channels": ["email", "sms"],
            "is_async": True,
        },
    )

    assert response.status_code == 201
    assert response.json()["status"] == "pending"

    detail = _wait_for_terminal(test_client, response.json()["id"])
    assert detail["status"] == "done"
    sms = next(ch for ch in detail["channels"] if ch["channel"] == "sms")
    assert sms["attempts"] == 3


def test_invalid_requests_return_400(test_client):
    duplicate = test_client.post(
        "/api/v1/operations",
        json={"operation_type": "send_notification", "channels": ["email", "email"]},
    )
    unknown_type = test_client.post("/api/v1/operations", json={"operation_type": "fax"})
    bad_metadata = test_client.post(
        "/api/v1/operations", json={"operation_type": "send_email", "metadata": [1, 2]}
    )

    assert duplicate.status_code == 400
    assert "Duplicate channel" in duplicate.json()["detail"]
    assert unknown_type.status_code == 400
    assert bad_metadata.status_code == 400
    assert test_client.get("/api/v1/operations").json()["total"] == 0


def test_unknown_operation_returns_404(test_client):
    response = test_client.get("/api/v1/operations/does-not-exist")
    assert response.status_code == 404
    assert "not found" in response.json()["detail"]


def test_list_operations_paginates(test_client):
    ids = []
    for _ in range(25):
        ids.append(
            test_client.post("/api/v1/operations", json={"operation_type": "send_email"}).json()["id"]
        )

    pages = [
        test_client.get("/api/v1/operations", params={"page": page, "page_size": 10}).json()
        for page in (1, 2, 3)
    ]

    assert [len(p["items"]) for p in pages] == [10, 10, 5]
    assert all(p["total"] == 25 and p["pages"] == 3 for p in pages)
    listed = [item["id"] for p in pages for item in p["items"]]
    assert sorted(listed) == sorted(ids)
    assert all(item["channels"] == [] for p in pages for item in p["items"])


def test_list_operations_filters(test_client):
    test_client.post("/api/v1/operations", json={"operation_type": "send_email"})
    test_client.post("/api/v1/operations", json={"operation_type": "generate_pdf"})

    failed = test_client.get("/api/v1/operations", params={"status": "failed"}).json()
    emails = test_client.get("/api/v1/operations", params={"operation_type": "send_email"}).json()
    bad = test_client.get("/api/v1/operations", params={"page": 0})

    assert failed["total"] == 1
    assert failed["items"][0]["operation_type"] == "generate_pdf"
    assert emails["total"] == 1
    assert bad.status_code == 400


def test_pdf_download_returns_rendered_document(api_settings, tmp_path):
    registry = ExecutorRegistry([MockChannelExecutor(kind) for kind in ChannelKind])
    with TestClient(create_app(api_settings, registry)) as client:
        operation_id = client.post(
            "/api/v1/operations", json={"operation_type": "generate_pdf"}
        ).json()["id"]
        missing = client.get(f"/api/v1/operations/{operation_id}/pdf")

        output_dir = tmp_path / "pdf"
        output_dir.mkdir(parents=True, exist_ok=True)
        (output_dir / f"{operation_id}.pdf").write_bytes(b"%PDF-1.4 rendered")
        response = client.get(f"/api/v1/operations/{operation_id}/pdf")

    assert missing.status_code == 404
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content == b"%PDF-1.4 rendered"


def test_pdf_download_of_failed_render_returns_409(test_client):
    operation_id = test_client.post(
        "/api/v1/operations", json={"operation_type": "generate_pdf"}
    ).json()["id"]

    response = test_client.get(f"/api/v1/operations/{operation_id}/pdf")

    assert response.status_code == 409
    assert "failed" in response.json()["detail"]


def test_pdf_download_without_pdf_channel_returns_404(test_client):
    operation_id = test_client.post(
        "/api/v1/operations", json={"operation_type": "send_email"}
    ).json()["id"]

    assert test_client.get(f"/api/v1/operations/{operation_id}/pdf").status_code == 404
    assert test_client.get("/api/v1/operations/does-not-exist/pdf").status_code == 404


def test_store_unavailable_returns_503(test_client, monkeypatch):
    async def store_down(self, operation):
        raise OperationalError("INSERT INTO operations", {}, Exception("database is locked"))

    monkeypatch.setattr(SqlAlchemyOperationRepository, "create", store_down)

    response = test_client.post("/api/v1/operations", json={"operation_type": "send_email"})

    assert response.status_code == 503
    assert response.json() == {"detail": "Store unavailable, retry later"}
