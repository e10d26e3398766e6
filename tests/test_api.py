"""
HTTP tests for the inventory API
Runs the FastAPI app against a temporary SQLite database and upload folder
"""
import asyncio
import io

import pytest
from fastapi import UploadFile
from fastapi.testclient import TestClient

from inventory.domain.files import MAX_FILE_SIZE
from inventory.domain.models import SignatureDocument, SignatureStatus
from inventory.infrastructure.storage import LocalBlobStorage
from routes.attachment_routes import read_upload
from routes.dependencies import get_signature_provider, get_storage
from server import app


class StubSignatureProvider:
    def __init__(self):
        self.status = SignatureStatus(signed=False)

    async def create_document(self, title, pdf_bytes, signers):
        return SignatureDocument(id="doc-1")

    async def get_status(self, document_id):
        return self.status

    async def cancel_document(self, document_id, reason):
        return None


@pytest.fixture
def provider():
    return StubSignatureProvider()


@pytest.fixture
def client(tmp_path, monkeypatch, provider):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path}/inventory.db")
    storage = LocalBlobStorage(str(tmp_path / "uploads"), "http://testserver/files")
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_signature_provider] = lambda: provider
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


NOTEBOOK = {
    "description": "Notebook X",
    "brand": "Dell",
    "model": "Latitude 5420",
    "location": "TI",
    "responsible": "Ana",
    "acquisition_date": "2024-01-10",
    "value": 4500,
}


def create_notebook(client, **overrides):
    response = client.post("/api/equipment", json={**NOTEBOOK, **overrides}, headers={"X-User-Name": "Carlos"})
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_create_generates_sequential_asset_numbers(client):
    assert client.get("/api/equipment/next-asset-number").json() == {"asset_number": "TOP-0001"}

    first = create_notebook(client)
    second = create_notebook(client, description="Notebook Y")

    assert first["asset_number"] == "TOP-0001"
    assert second["asset_number"] == "TOP-0002"
    assert first["status"] == "active"
    assert first["warnings"] == []


def test_duplicate_asset_number_is_a_conflict(client):
    create_notebook(client, asset_number="TOP-0042")

    response = client.post("/api/equipment", json={**NOTEBOOK, "asset_number": "TOP-0042"})

    assert response.status_code == 409


def test_validation_errors_list_every_field(client):
    response = client.post("/api/equipment", json={**NOTEBOOK, "description": " ", "value": -1})

    assert response.status_code == 400
    errors = response.json()["detail"]["errors"]
    assert {"description", "value"} <= set(errors)


def test_update_and_history(client):
    item = create_notebook(client)

    response = client.put(
        f"/api/equipment/{item['id']}",
        json={"location": "Financeiro", "responsible": "Bruno"},
        headers={"X-User-Name": "Carlos"},
    )
    history = client.get(f"/api/equipment/{item['id']}/history").json()

    assert response.status_code == 200
    assert response.json()["location"] == "Financeiro"
    edited = {entry["field"] for entry in history if entry["change_type"] == "edited"}
    assert edited == {"location", "responsible"}
    assert all(entry["user"] == "Carlos" for entry in history)


def test_empty_update_is_rejected(client):
    item = create_notebook(client)

    assert client.put(f"/api/equipment/{item['id']}", json={}).status_code == 400


def test_transfer_and_delete(client):
    item = create_notebook(client)

    transfer = client.post(
        f"/api/equipment/{item['id']}/transfer",
        json={"new_location": "Almoxarifado", "transfer_date": "2024-02-01"},
    )
    same = client.post(f"/api/equipment/{item['id']}/transfer", json={"new_location": "Almoxarifado"})
    deleted = client.delete(f"/api/equipment/{item['id']}")

    assert transfer.status_code == 200
    assert transfer.json()["location"] == "Almoxarifado"
    assert same.status_code == 400
    assert deleted.status_code == 200
    assert client.get(f"/api/equipment/{item['id']}").status_code == 404
    assert client.get("/api/equipment/next-asset-number").json()["asset_number"] == "TOP-0002"


def test_list_filters_and_stats(client):
    create_notebook(client)
    create_notebook(client, description="Monitor 24", status="maintenance", maintenance_description="Tela")

    maintenance = client.get("/api/equipment", params={"status": "maintenance"}).json()
    search = client.get("/api/equipment", params={"search": "monitor"}).json()
    stats = client.get("/api/equipment/stats").json()

    assert [item["description"] for item in maintenance] == ["Monitor 24"]
    assert [item["description"] for item in search] == ["Monitor 24"]
    assert stats["total"] == 2
    assert stats["maintenance"] == 1


def test_attachment_upload_list_and_remove(client):
    item = create_notebook(client)

    upload = client.post(
        f"/api/equipment/{item['id']}/attachments",
        files={"file": ("nota_fiscal.pdf", b"%PDF-1.4", "application/pdf")},
    )
    listed = client.get(f"/api/equipment/{item['id']}/attachments").json()
    removed = client.delete(f"/api/attachments/{upload.json()['id']}")

    assert upload.status_code == 200
    assert listed[0]["name"] == "nota_fiscal.pdf"
    assert removed.status_code == 200
    assert client.get(f"/api/equipment/{item['id']}/attachments").json() == []


def test_executable_upload_is_rejected(client):
    item = create_notebook(client)

    response = client.post(
        f"/api/equipment/{item['id']}/attachments",
        files={"file": ("setup.exe", b"MZ", "application/octet-stream")},
    )

    assert response.status_code == 400


def test_oversized_upload_is_rejected_before_storing(client, tmp_path):
    item = create_notebook(client)

    response = client.post(
        f"/api/equipment/{item['id']}/attachments",
        files={"file": ("backup.zip", b"0" * (MAX_FILE_SIZE + 1), "application/zip")},
    )

    assert response.status_code == 413
    assert client.get(f"/api/equipment/{item['id']}/attachments").json() == []
    assert not (tmp_path / "uploads" / "attachments").exists()


def test_read_upload_stops_after_the_limit():
    upload = UploadFile(io.BytesIO(b"x" * 50), filename="grande.bin")

    content, size = asyncio.run(read_upload(upload, limit=10))

    assert content == b""
    assert 10 < size <= 50


def test_read_upload_keeps_files_within_the_limit():
    upload = UploadFile(io.BytesIO(b"abc"), filename="nota.txt")

    assert asyncio.run(read_upload(upload, limit=10)) == (b"abc", 3)


def test_purchase_lifecycle_and_conversion(client):
    created = client.post(
        "/api/purchases",
        json={
            "description": "Notebook Lenovo T14",
            "urgency": "high",
            "requested_by": "Marina",
            "request_date": "2024-01-05",
            "estimated_quantity": 2,
            "estimated_unit_value": 5200,
            "category": "computer",
            "brand": "Lenovo",
            "model": "T14",
            "location": "Financeiro",
        },
    ).json()
    approved = client.post(f"/api/purchases/{created['id']}/approve", headers={"X-User-Name": "Gestor"})
    converted = client.post(
        f"/api/purchases/{created['id']}/convert",
        json={"responsible": "Bruno", "acquisition_date": "2024-02-10"},
    )
    again = client.post(
        f"/api/purchases/{created['id']}/convert",
        json={"responsible": "Bruno", "acquisition_date": "2024-02-10"},
    )

    assert created["estimated_total_value"] == 10400
    assert approved.json()["status"] == "approved"
    assert converted.status_code == 200, converted.text
    body = converted.json()
    assert body["purchase"]["status"] == "acquired"
    assert body["equipment"]["asset_number"] == "TOP-0001"
    assert body["equipment"]["location"] == "Financeiro"
    assert again.status_code == 400
    assert client.get("/api/purchases/stats").json()["acquired"] == 1


def test_purchase_update_with_null_category_is_rejected(client):
    created = client.post(
        "/api/purchases",
        json={
            "description": "Monitor 24",
            "urgency": "low",
            "requested_by": "Marina",
            "request_date": "2024-01-05",
            "estimated_quantity": 1,
            "estimated_unit_value": 900,
            "category": "peripheral",
        },
    ).json()

    response = client.put(f"/api/purchases/{created['id']}", json={"category": None})

    assert response.status_code == 400
    assert "category" in response.json()["detail"]["errors"]
    assert client.get(f"/api/purchases/{created['id']}").json()["category"] == "peripheral"


def test_responsibility_term_flow(client, provider):
    item = create_notebook(client)

    term = client.post(
        "/api/terms",
        json={
            "equipment_id": item["id"],
            "responsible_person": "Ana Souza",
            "responsible_email": "ana@empresa.com.br",
            "responsible_department": "Financeiro",
            "term_date": "2024-03-01",
        },
    )
    assert term.status_code == 200, term.text
    term_id = term.json()["id"]
    assert term.json()["status"] == "draft"

    sent = client.post(f"/api/terms/{term_id}/send")
    assert sent.json()["status"] == "sent"

    provider.status = SignatureStatus(signed=True, signed_document_url="http://sign.test/doc-1.pdf")
    refreshed = client.post(f"/api/terms/{term_id}/refresh")
    assert refreshed.json()["status"] == "signed"
    assert client.post(f"/api/terms/{term_id}/cancel").status_code == 400

    history = client.get(f"/api/history/responsibility_term/{term_id}").json()
    assert len(history) == 3
    recent = client.get("/api/history/recent", params={"limit": 5}).json()
    assert len(recent) == 5
