from datetime import date

import pytest

from fakes import (
    FakeAttachmentRepository,
    FakeBlobStorage,
    FakeEquipmentRepository,
    FakeHistoryRepository,
    SequentialIds,
    fixed_clock,
    run,
)
from inventory.application.attachment_use_cases import (
    ListAttachmentsUseCase,
    RemoveAttachmentUseCase,
    UploadAttachmentUseCase,
    UploadedFile,
)
from inventory.application.equipment_use_cases import CreateEquipmentCommand, CreateEquipmentUseCase
from inventory.application.history import HistoryRecorder
from inventory.domain.errors import (
    FileTooLargeError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from inventory.domain.files import MAX_FILE_SIZE, AttachmentCategory
from inventory.domain.models import ChangeType


class Env:
    def __init__(self) -> None:
        self.equipment = FakeEquipmentRepository()
        self.attachments = FakeAttachmentRepository()
        self.storage = FakeBlobStorage()
        self.history_repo = FakeHistoryRepository()
        self.recorder = HistoryRecorder(self.history_repo, SequentialIds("h"), fixed_clock)
        self.upload = UploadAttachmentUseCase(
            equipment=self.equipment,
            attachments=self.attachments,
            storage=self.storage,
            history=self.recorder,
            id_generator=SequentialIds("att"),
            clock=fixed_clock,
        )
        self.item = run(
            CreateEquipmentUseCase(self.equipment, self.recorder, SequentialIds("eq"), fixed_clock).insert(
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

    def send(self, name="nota_fiscal.pdf", content=b"%PDF-1.4", content_type="application/pdf", size=None):
        return run(
            self.upload.execute(self.item.id, UploadedFile(name, content_type, content, size), "Carlos")
        )


def test_upload_stores_blob_metadata_and_entry():
    env = Env()

    result = env.send()

    attachment = result.attachment
    assert attachment.file_path.startswith(f"attachments/{env.item.id}_")
    assert attachment.file_path.endswith("_nota_fiscal.pdf")
    assert env.storage.blobs[attachment.file_path] == b"%PDF-1.4"
    assert env.attachments.rows[attachment.id] == attachment
    assert attachment.url == f"https://files.test/{attachment.file_path}"
    assert result.category == AttachmentCategory.INVOICE
    entry = env.history_repo.of_type(ChangeType.ATTACHED_FILE)[0]
    assert (entry.equipment_id, entry.new_value) == (env.item.id, "nota_fiscal.pdf")


def test_upload_of_exactly_ten_mebibytes_is_accepted():
    env = Env()

    result = env.send(name="manual.pdf", content=b"x", size=MAX_FILE_SIZE)

    assert result.attachment.size == 10_485_760


def test_upload_one_byte_over_the_limit_is_rejected():
    env = Env()

    with pytest.raises(FileTooLargeError) as excinfo:
        env.send(content=b"x", size=MAX_FILE_SIZE + 1)

    assert excinfo.value.size == 10_485_761
    assert env.storage.blobs == {}
    assert env.attachments.rows == {}


def test_empty_and_executable_files_are_rejected():
    env = Env()

    with pytest.raises(ValidationError):
        env.send(content=b"")
    with pytest.raises(ValidationError):
        env.send(name="setup.exe", content=b"MZ")

    assert env.storage.blobs == {}


def test_upload_to_missing_equipment_fails():
    env = Env()

    with pytest.raises(NotFoundError):
        run(env.upload.execute("missing", UploadedFile("a.pdf", "application/pdf", b"1"), "Carlos"))


def test_metadata_failure_discards_stored_blob():
    env = Env()
    env.attachments.fail_insert = True

    with pytest.raises(PersistenceError):
        env.send()

    assert env.storage.blobs == {}
    assert env.history_repo.of_type(ChangeType.ATTACHED_FILE) == []


def test_remove_deletes_metadata_blob_and_records_entry():
    env = Env()
    attachment = env.send().attachment
    use_case = RemoveAttachmentUseCase(env.attachments, env.storage, env.recorder)

    warning = run(use_case.execute(attachment.id, "Carlos"))

    assert warning is None
    assert env.attachments.rows == {}
    assert env.storage.blobs == {}
    entry = env.history_repo.of_type(ChangeType.REMOVED_FILE)[0]
    assert entry.old_value == "nota_fiscal.pdf"


def test_remove_survives_blob_delete_failure(caplog):
    env = Env()
    attachment = env.send().attachment
    env.storage.fail_delete = True
    use_case = RemoveAttachmentUseCase(env.attachments, env.storage, env.recorder)

    run(use_case.execute(attachment.id, "Carlos"))

    assert env.attachments.rows == {}
    assert len(env.history_repo.of_type(ChangeType.REMOVED_FILE)) == 1
    assert any(record.levelname == "WARNING" for record in caplog.records)


def test_remove_missing_attachment_fails():
    env = Env()

    with pytest.raises(NotFoundError):
        run(RemoveAttachmentUseCase(env.attachments, env.storage, env.recorder).execute("nope", "Carlos"))


def test_list_resolves_urls_and_categories():
    env = Env()
    env.send(name="Manual Dell.pdf")
    use_case = ListAttachmentsUseCase(env.equipment, env.attachments, env.storage)

    results = run(use_case.execute(env.item.id))

    assert len(results) == 1
    assert results[0].category == AttachmentCategory.MANUAL
    assert results[0].attachment.url.startswith("https://files.test/attachments/")
