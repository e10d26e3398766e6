from datetime import date, datetime

import pytest

from fakes import (
    FakeAttachmentRepository,
    FakeBlobStorage,
    FakeEquipmentRepository,
    FakeHistoryRepository,
    FakeSignatureProvider,
    FakeTermRenderer,
    FakeTermRepository,
    SequentialIds,
    fixed_clock,
    run,
)
from inventory.application.attachment_use_cases import UploadAttachmentUseCase
from inventory.application.equipment_use_cases import CreateEquipmentCommand, CreateEquipmentUseCase
from inventory.application.history import HistoryRecorder
from inventory.application.term_use_cases import (
    CancelTermUseCase,
    CreateTermCommand,
    CreateTermUseCase,
    ListTermsUseCase,
    RefreshTermStatusUseCase,
    SendTermForSignatureUseCase,
)
from inventory.domain.errors import NotFoundError, ValidationError
from inventory.domain.models import (
    ChangeType,
    EntityType,
    SignatureStatus,
    Signer,
    TermStatus,
)


class Env:
    def __init__(self) -> None:
        self.equipment = FakeEquipmentRepository()
        self.attachments = FakeAttachmentRepository()
        self.terms = FakeTermRepository()
        self.storage = FakeBlobStorage()
        self.provider = FakeSignatureProvider()
        self.history_repo = FakeHistoryRepository()
        self.recorder = HistoryRecorder(self.history_repo, SequentialIds("h"), fixed_clock)
        ids = SequentialIds("id")
        uploads = UploadAttachmentUseCase(
            self.equipment, self.attachments, self.storage, self.recorder, ids, fixed_clock
        )
        self.create_use_case = CreateTermUseCase(
            equipment=self.equipment,
            terms=self.terms,
            uploads=uploads,
            renderer=FakeTermRenderer(),
            history=self.recorder,
            id_generator=ids,
            clock=fixed_clock,
        )
        self.item = run(
            CreateEquipmentUseCase(self.equipment, self.recorder, ids, fixed_clock).insert(
                CreateEquipmentCommand(
                    description="Notebook X",
                    brand="Dell",
                    model="5420",
                    location="TI",
                    responsible="Ana",
                    acquisition_date=date(2024, 1, 10),
                    value=4500,
                )
            )
        )

    def create(self, **overrides):
        fields = dict(
            equipment_id=self.item.id,
            responsible_person="Ana Souza",
            responsible_email="ana@empresa.com.br",
            responsible_department="Financeiro",
            term_date=date(2024, 3, 1),
            responsible_phone="(21) 99999-0000",
        )
        fields.update(overrides)
        return run(self.create_use_case.execute(CreateTermCommand(**fields), "Carlos"))

    def send(self, term_id, signer=None):
        use_case = SendTermForSignatureUseCase(
            self.terms, self.storage, self.provider, self.recorder, fixed_clock
        )
        return run(use_case.execute(term_id, "Carlos", signer))

    def refresh(self, term_id):
        use_case = RefreshTermStatusUseCase(self.terms, self.provider, self.recorder, fixed_clock)
        return run(use_case.execute(term_id, "Carlos"))

    def cancel(self, term_id):
        use_case = CancelTermUseCase(self.terms, self.provider, self.recorder, fixed_clock)
        return run(use_case.execute(term_id, "Carlos"))


def test_create_renders_pdf_attaches_it_and_saves_draft():
    env = Env()

    result = env.create()

    term = result.term
    assert term.status == TermStatus.DRAFT
    assert term.pdf_path in env.storage.blobs
    assert env.storage.blobs[term.pdf_path].startswith(b"%PDF")
    assert term.pdf_url.endswith(term.pdf_path)
    assert [a.file_path for a in env.attachments.rows.values()] == [term.pdf_path]
    changes = {(e.entity_type, e.change_type) for e in env.history_repo.entries}
    assert (EntityType.EQUIPMENT, ChangeType.ATTACHED_FILE) in changes
    assert (EntityType.RESPONSIBILITY_TERM, ChangeType.CREATED) in changes


def test_create_validates_contact_fields():
    env = Env()

    with pytest.raises(ValidationError) as excinfo:
        env.create(responsible_email="ana-empresa", responsible_department=" ")

    assert set(excinfo.value.errors) == {"responsible_email", "responsible_department"}
    assert env.storage.blobs == {}


def test_create_for_missing_equipment_fails():
    env = Env()

    with pytest.raises(NotFoundError):
        env.create(equipment_id="missing")


def test_send_for_signature_uses_stored_pdf():
    env = Env()
    term = env.create().term

    result = env.send(term.id)

    assert result.term.status == TermStatus.SENT
    assert result.term.signature_document_id == "doc-1"
    title, pdf_bytes, signers = env.provider.documents[0]
    assert pdf_bytes == env.storage.blobs[term.pdf_path]
    assert signers[0].email == "ana@empresa.com.br"
    assert "Ana Souza" in title


def test_send_with_explicit_signer():
    env = Env()
    term = env.create().term

    env.send(term.id, Signer(name="Ana Souza", email="ana@pessoal.com", cpf="123.456.789-00"))

    assert env.provider.documents[0][2][0].cpf == "123.456.789-00"


def test_only_drafts_are_sent():
    env = Env()
    term = env.create().term
    env.send(term.id)

    with pytest.raises(ValidationError):
        env.send(term.id)


def test_refresh_keeps_sent_until_signed():
    env = Env()
    term = env.create().term
    env.send(term.id)

    assert env.refresh(term.id).term.status == TermStatus.SENT

    signed_at = datetime(2024, 3, 1, 15, 0)
    env.provider.status = SignatureStatus(
        signed=True, signed_at=signed_at, signed_document_url="https://sign.test/doc-1.pdf"
    )
    result = env.refresh(term.id)

    assert result.term.status == TermStatus.SIGNED
    assert result.term.signed_at == signed_at
    assert result.term.signed_document_url == "https://sign.test/doc-1.pdf"


def test_refresh_of_signed_term_is_idempotent():
    env = Env()
    term = env.create().term
    env.send(term.id)
    env.provider.status = SignatureStatus(signed=True)
    first = env.refresh(term.id).term
    calls = env.provider.status_calls
    entries = len(env.history_repo.entries)

    second = env.refresh(term.id).term

    assert second == first
    assert env.provider.status_calls == calls
    assert len(env.history_repo.entries) == entries


def test_refresh_requires_sent_term():
    env = Env()
    term = env.create().term

    with pytest.raises(ValidationError):
        env.refresh(term.id)


def test_cancel_sent_term_cancels_provider_document():
    env = Env()
    term = env.create().term
    env.send(term.id)

    result = env.cancel(term.id)

    assert result.term.status == TermStatus.CANCELLED
    assert env.provider.cancelled == [("doc-1", "Cancelado pelo usuário")]


def test_signed_term_cannot_be_cancelled():
    env = Env()
    term = env.create().term
    env.send(term.id)
    env.provider.status = SignatureStatus(signed=True)
    env.refresh(term.id)

    with pytest.raises(ValidationError):
        env.cancel(term.id)


def test_list_terms_for_equipment():
    env = Env()
    env.create()
    env.create(responsible_person="Bruno Lima", responsible_email="bruno@empresa.com.br")

    terms = run(ListTermsUseCase(env.equipment, env.terms).execute(env.item.id))

    assert len(terms) == 2
