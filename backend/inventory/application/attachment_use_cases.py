import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

from inventory.application.history import AuditWarning, HistoryRecorder
from inventory.application.ports import (
    AttachmentRepository,
    BlobStorage,
    Clock,
    EquipmentRepository,
    IdGenerator,
)
from inventory.domain.errors import (
    DomainError,
    FileTooLargeError,
    NotFoundError,
    ValidationError,
)
from inventory.domain.files import (
    MAX_FILE_SIZE,
    AttachmentCategory,
    dangerous_extension,
    format_file_size,
    infer_category,
)
from inventory.domain.models import Attachment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    name: str
    content_type: str
    content: bytes
    size: Optional[int] = None

    @property
    def byte_size(self) -> int:
        return self.size if self.size is not None else len(self.content)


@dataclass(frozen=True)
class AttachmentResult:
    attachment: Attachment
    category: AttachmentCategory
    warnings: Sequence[AuditWarning] = field(default_factory=list)


def storage_path(equipment_id: str, file_name: str, millis: int) -> str:
    safe_name = file_name.replace("/", "_").replace("\\", "_")
    return f"attachments/{equipment_id}_{millis}_{safe_name}"


def check_file(file: UploadedFile, limit: int = MAX_FILE_SIZE) -> None:
    """Reject empty, oversized and executable uploads."""
    name = (file.name or "").strip()
    if not name:
        raise ValidationError({"file": "Nenhum arquivo selecionado"})
    size = file.byte_size
    if size > limit:
        raise FileTooLargeError(
            f"Arquivo muito grande ({format_file_size(size)}). Tamanho máximo: {format_file_size(limit)}",
            size=size,
            limit=limit,
        )
    if size <= 0:
        raise ValidationError({"file": "O arquivo está vazio"})
    extension = dangerous_extension(name)
    if extension:
        raise ValidationError(
            {"file": f"Tipo de arquivo {extension} não permitido por segurança"}
        )


class UploadAttachmentUseCase:
    def __init__(
        self,
        equipment: EquipmentRepository,
        attachments: AttachmentRepository,
        storage: BlobStorage,
        history: HistoryRecorder,
        id_generator: IdGenerator,
        clock: Clock,
    ) -> None:
        self._equipment = equipment
        self._attachments = attachments
        self._storage = storage
        self._history = history
        self._id_generator = id_generator
        self._clock = clock

    async def store(self, equipment_id: str, file: UploadedFile, actor: str) -> Attachment:
        """Store bytes and metadata without writing an audit entry."""
        check_file(file)
        if await self._equipment.get(equipment_id) is None:
            raise NotFoundError("Equipamento não encontrado")

        now = self._clock()
        path = storage_path(equipment_id, file.name.strip(), int(now.timestamp() * 1000))
        url = await self._storage.store(path, file.content, file.content_type)

        attachment = Attachment(
            id=self._id_generator(),
            equipment_id=equipment_id,
            name=file.name.strip(),
            size=file.byte_size,
            type=file.content_type,
            file_path=path,
            uploaded_by=actor,
            uploaded_at=now,
            url=url,
        )
        try:
            saved = await self._attachments.insert(attachment)
        except DomainError:
            await self._discard_blob(path)
            raise
        return replace(saved, url=saved.url or url)

    async def execute(self, equipment_id: str, file: UploadedFile, actor: str) -> AttachmentResult:
        attachment = await self.store(equipment_id, file, actor)
        logger.info(f"File {attachment.name} attached to {equipment_id} by {actor}")
        warning = await self._history.append_best_effort(
            [self._history.attachment_entry(attachment, actor, added=True)]
        )
        return AttachmentResult(
            attachment,
            infer_category(attachment.name, attachment.type),
            [warning] if warning else [],
        )

    async def _discard_blob(self, path: str) -> None:
        try:
            await self._storage.delete(path)
        except DomainError as exc:
            logger.warning(f"Could not discard orphaned blob {path}: {exc.message}")


class RemoveAttachmentUseCase:
    def __init__(
        self,
        attachments: AttachmentRepository,
        storage: BlobStorage,
        history: HistoryRecorder,
    ) -> None:
        self._attachments = attachments
        self._storage = storage
        self._history = history

    async def execute(self, attachment_id: str, actor: str) -> Optional[AuditWarning]:
        attachment = await self._attachments.get(attachment_id)
        if attachment is None:
            raise NotFoundError("Anexo não encontrado")

        await self._attachments.delete(attachment.id)
        try:
            await self._storage.delete(attachment.file_path)
        except DomainError as exc:
            # Metadata is authoritative; the orphaned blob is a cleanup task.
            logger.warning(
                f"Attachment {attachment.id} removed but blob {attachment.file_path} remains: {exc.message}"
            )

        logger.info(f"File {attachment.name} removed from {attachment.equipment_id} by {actor}")
        return await self._history.append_best_effort(
            [self._history.attachment_entry(attachment, actor, added=False)]
        )


class ListAttachmentsUseCase:
    def __init__(
        self,
        equipment: EquipmentRepository,
        attachments: AttachmentRepository,
        storage: BlobStorage,
    ) -> None:
        self._equipment = equipment
        self._attachments = attachments
        self._storage = storage

    async def execute(self, equipment_id: str) -> Sequence[AttachmentResult]:
        if await self._equipment.get(equipment_id) is None:
            raise NotFoundError("Equipamento não encontrado")
        attachments = await self._attachments.list_for_equipment(equipment_id)
        return [
            AttachmentResult(
                replace(item, url=self._storage.resolve_url(item.file_path)),
                infer_category(item.name, item.type),
            )
            for item in attachments
        ]
