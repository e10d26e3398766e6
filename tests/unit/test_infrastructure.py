import base64
import json
from datetime import date, datetime

import httpx
import pytest

from fakes import NOW, run
from inventory.domain.errors import NotFoundError, PersistenceError, SignatureServiceError
from inventory.domain.models import (
    Equipment,
    EquipmentStatus,
    ResponsibilityTerm,
    Signer,
    TermStatus,
)
from inventory.infrastructure.signature_client import AssinafySignatureClient, digits_only
from inventory.infrastructure.storage import LocalBlobStorage
from inventory.infrastructure.term_pdf import ReportlabTermRenderer, format_brl, long_date


def client_with(handler, organization_id=""):
    return AssinafySignatureClient(
        "https://api.assinafy.test/v1/",
        "secret",
        organization_id=organization_id,
        transport=httpx.MockTransport(handler),
    )


def test_create_document_posts_base64_pdf_and_signers():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "doc-9", "signers": [{"id": "s-1"}]})

    client = client_with(handler, organization_id="org-1")
    signer = Signer(name="Ana", email="ana@empresa.com.br", cpf="123.456.789-00", phone="(21) 9999-0000")

    document = run(client.create_document("Termo - Ana", b"%PDF-1.4", [signer]))

    assert document.id == "doc-9"
    assert document.signer_ids == ["s-1"]
    assert seen["url"] == "https://api.assinafy.test/v1/documents"
    assert seen["headers"]["authorization"] == "Bearer secret"
    assert seen["headers"]["x-organization-id"] == "org-1"
    body = seen["body"]
    assert base64.b64decode(body["file"]) == b"%PDF-1.4"
    assert body["signers"][0]["cpf"] == "12345678900"
    assert body["signers"][0]["phone"] == "2199990000"


def test_get_status_signed_when_every_signer_signed():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "status": "pending",
                "signers": [
                    {"signed_at": "2024-03-01T12:00:00Z"},
                    {"signed_at": "2024-03-01T15:30:00-03:00"},
                ],
                "signed_document_url": "https://sign.test/doc.pdf",
            },
        )

    status = run(client_with(handler).get_status("doc-9"))

    assert status.signed
    assert status.signed_at == datetime(2024, 3, 1, 18, 30)
    assert status.signed_document_url == "https://sign.test/doc.pdf"


def test_get_status_pending_while_a_signer_is_missing():
    def handler(request):
        return httpx.Response(200, json={"status": "pending", "signers": [{"signed_at": None}]})

    assert not run(client_with(handler).get_status("doc-9")).signed


def test_api_errors_raise_signature_service_error():
    def handler(request):
        return httpx.Response(401, json={"message": "unauthorized"})

    with pytest.raises(SignatureServiceError):
        run(client_with(handler).cancel_document("doc-9", "motivo"))


def test_transport_failures_raise_signature_service_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SignatureServiceError):
        run(client_with(handler).get_status("doc-9"))


def test_digits_only():
    assert digits_only("123.456.789-00") == "12345678900"
    assert digits_only("") == ""


def test_local_storage_roundtrip(tmp_path):
    storage = LocalBlobStorage(str(tmp_path), "http://localhost:8000/files/")

    url = run(storage.store("attachments/eq-1_1_nota.pdf", b"abc", "application/pdf"))

    assert url == "http://localhost:8000/files/attachments/eq-1_1_nota.pdf"
    assert run(storage.read("attachments/eq-1_1_nota.pdf")) == b"abc"
    run(storage.delete("attachments/eq-1_1_nota.pdf"))
    with pytest.raises(NotFoundError):
        run(storage.read("attachments/eq-1_1_nota.pdf"))
    run(storage.delete("attachments/eq-1_1_nota.pdf"))


def test_local_storage_rejects_paths_outside_root(tmp_path):
    storage = LocalBlobStorage(str(tmp_path / "files"), "http://localhost:8000/files")

    with pytest.raises(PersistenceError):
        run(storage.store("../escape.txt", b"x", "text/plain"))


def test_brazilian_formatting_helpers():
    assert format_brl(4500) == "R$ 4.500,00"
    assert format_brl(1234567.891) == "R$ 1.234.567,89"
    assert long_date(date(2024, 3, 1)) == "1 de março de 2024"


def test_term_renderer_produces_pdf():
    equipment = Equipment(
        id="eq-1",
        asset_number="TOP-0001",
        description="Notebook X",
        brand="Dell",
        model="5420",
        location="TI",
        responsible="Ana",
        acquisition_date=date(2024, 1, 10),
        value=4500.0,
        status=EquipmentStatus.ACTIVE,
        specs="16GB RAM",
        created_at=NOW,
        updated_at=NOW,
    )
    term = ResponsibilityTerm(
        id="term-1",
        equipment_id="eq-1",
        responsible_person="Ana Souza",
        responsible_email="ana@empresa.com.br",
        responsible_phone="(21) 99999-0000",
        responsible_department="Financeiro",
        term_date=date(2024, 3, 1),
        observations="Entregue com carregador. " * 40,
        status=TermStatus.DRAFT,
        created_at=NOW,
        updated_at=NOW,
    )

    pdf = ReportlabTermRenderer().render(equipment, term)

    assert pdf.startswith(b"%PDF")
