import logging
import re
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional, Sequence

from inventory.application.attachment_use_cases import UploadAttachmentUseCase, UploadedFile
from inventory.application.history import AuditWarning, HistoryRecorder
from inventory.application.ports import (
    BlobStorage,
    Clock,
    EquipmentRepository,
    IdGenerator,
    SignatureProvider,
    TermDocumentRenderer,
    TermRepository,
)
from inventory.domain.errors import NotFoundError, ValidationError
from inventory.domain.models import (
    ChangeType,
    EntityType,
    ResponsibilityTerm,
    Signer,
    TermStatus,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class CreateTermCommand:
    equipment_id: str
    responsible_person: str
    responsible_email: str
    responsible_department: str
    term_date: date
    responsible_phone: str = ""
    observations: Optional[str] = None


@dataclass(frozen=True)
class TermResult:
    term: ResponsibilityTerm
    warnings: Sequence[AuditWarning] = field(default_factory=list)


async def load_term(repository: TermRepository, term_id: str) -> ResponsibilityTerm:
    term = await repository.get(term_id)
    if term is None:
        raise NotFoundError("Termo de responsabilidade não encontrado")
    return term


class _TermStatusChange:
    """Shared persistence + audit step for term status transitions."""

    def __init__(self, terms: TermRepository, history: HistoryRecorder, clock: Clock) -> None:
        self._terms = terms
        self._history = history
        self._clock = clock

    async def _transition(
        self, current: ResponsibilityTerm, actor: str, **changes
    ) -> TermResult:
        saved = await self._terms.update(replace(current, updated_at=self._clock(), **changes))
        warning = await self._history.append_best_effort(
            [
                self._history.event_entry(
                    EntityType.RESPONSIBILITY_TERM,
                    saved.id,
                    actor,
                    ChangeType.STATUS_CHANGED,
                    field="status",
                    old_value=current.status.value,
                    new_value=saved.status.value,
                    equipment_id=saved.equipment_id,
                )
            ]
        )
        return TermResult(saved, [warning] if warning else [])


class CreateTermUseCase:
    def __init__(
        self,
        equipment: EquipmentRepository,
        terms: TermRepository,
        uploads: UploadAttachmentUseCase,
        renderer: TermDocumentRenderer,
        history: HistoryRecorder,
        id_generator: IdGenerator,
        clock: Clock,
    ) -> None:
        self._equipment = equipment
        self._terms = terms
        self._uploads = uploads
        self._renderer = renderer
        self._history = history
        self._id_generator = id_generator
        self._clock = clock

    async def execute(self, command: CreateTermCommand, actor: str) -> TermResult:
        errors = {}
        if not (command.responsible_person or "").strip():
            errors["responsible_person"] = "Nome do responsável é obrigatório"
        if not EMAIL_PATTERN.match((command.responsible_email or "").strip()):
            errors["responsible_email"] = "E-mail inválido"
        if not (command.responsible_department or "").strip():
            errors["responsible_department"] = "Departamento é obrigatório"
        if command.term_date is None:
            errors["term_date"] = "Data do termo é obrigatória"
        if errors:
            raise ValidationError(errors)

        equipment = await self._equipment.get(command.equipment_id)
        if equipment is None:
            raise NotFoundError("Equipamento não encontrado")

        now = self._clock()
        term = ResponsibilityTerm(
            id=self._id_generator(),
            equipment_id=equipment.id,
            responsible_person=command.responsible_person.strip(),
            responsible_email=command.responsible_email.strip(),
            responsible_phone=(command.responsible_phone or "").strip(),
            responsible_department=command.responsible_department.strip(),
            term_date=command.term_date,
            observations=(command.observations or "").strip() or None,
            status=TermStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )

        pdf_bytes = self._renderer.render(equipment, term)
        file_name = f"termo_{equipment.asset_number}_{int(now.timestamp() * 1000)}.pdf"
        attachment = await self._uploads.store(
            equipment.id, UploadedFile(file_name, "application/pdf", pdf_bytes), actor
        )

        saved = await self._terms.insert(
            replace(term, pdf_path=attachment.file_path, pdf_url=attachment.url)
        )
        logger.info(f"Responsibility term {saved.id} created for {equipment.asset_number}")
        warning = await self._history.append_best_effort(
            [
                self._history.attachment_entry(attachment, actor, added=True),
                self._history.event_entry(
                    EntityType.RESPONSIBILITY_TERM,
                    saved.id,
                    actor,
                    ChangeType.CREATED,
                    field="responsibility_term",
                    old_value="",
                    new_value=saved.responsible_person,
                    equipment_id=equipment.id,
                ),
            ]
        )
        return TermResult(saved, [warning] if warning else [])


class SendTermForSignatureUseCase(_TermStatusChange):
    def __init__(
        self,
        terms: TermRepository,
        storage: BlobStorage,
        provider: SignatureProvider,
        history: HistoryRecorder,
        clock: Clock,
    ) -> None:
        super().__init__(terms, history, clock)
        self._storage = storage
        self._provider = provider

    async def execute(
        self, term_id: str, actor: str, signer: Optional[Signer] = None
    ) -> TermResult:
        term = await load_term(self._terms, term_id)
        if term.status != TermStatus.DRAFT:
            raise ValidationError({"status": "Somente termos em rascunho podem ser enviados"})
        if not term.pdf_path:
            raise ValidationError({"pdf": "Termo sem documento PDF"})

        signer = signer or Signer(
            name=term.responsible_person,
            email=term.responsible_email,
            phone=term.responsible_phone,
        )
        pdf_bytes = await self._storage.read(term.pdf_path)
        document = await self._provider.create_document(
            f"Termo de Responsabilidade - {term.responsible_person}", pdf_bytes, [signer]
        )
        logger.info(f"Term {term.id} sent for signature as document {document.id}")
        return await self._transition(
            term, actor, status=TermStatus.SENT, signature_document_id=document.id
        )


class RefreshTermStatusUseCase(_TermStatusChange):
    """Polls the signature provider; safe to call repeatedly."""

    def __init__(
        self,
        terms: TermRepository,
        provider: SignatureProvider,
        history: HistoryRecorder,
        clock: Clock,
    ) -> None:
        super().__init__(terms, history, clock)
        self._provider = provider

    async def execute(self, term_id: str, actor: str) -> TermResult:
        term = await load_term(self._terms, term_id)
        if term.status == TermStatus.SIGNED:
            return TermResult(term)
        if term.status != TermStatus.SENT or not term.signature_document_id:
            raise ValidationError({"status": "Termo não foi enviado para assinatura"})

        status = await self._provider.get_status(term.signature_document_id)
        if not status.signed:
            return TermResult(term)
        return await self._transition(
            term,
            actor,
            status=TermStatus.SIGNED,
            signed_at=status.signed_at or self._clock(),
            signed_document_url=status.signed_document_url,
        )


class CancelTermUseCase(_TermStatusChange):
    def __init__(
        self,
        terms: TermRepository,
        provider: SignatureProvider,
        history: HistoryRecorder,
        clock: Clock,
    ) -> None:
        super().__init__(terms, history, clock)
        self._provider = provider

    async def execute(self, term_id: str, actor: str, reason: Optional[str] = None) -> TermResult:
        term = await load_term(self._terms, term_id)
        if term.status == TermStatus.SIGNED:
            raise ValidationError({"status": "Termo assinado não pode ser cancelado"})
        if term.status == TermStatus.CANCELLED:
            return TermResult(term)
        if term.status == TermStatus.SENT and term.signature_document_id:
            await self._provider.cancel_document(
                term.signature_document_id, reason or "Cancelado pelo usuário"
            )
        return await self._transition(term, actor, status=TermStatus.CANCELLED)


class ListTermsUseCase:
    def __init__(self, equipment: EquipmentRepository, terms: TermRepository) -> None:
        self._equipment = equipment
        self._terms = terms

    async def execute(self, equipment_id: str) -> Sequence[ResponsibilityTerm]:
        if await self._equipment.get(equipment_id) is None:
            raise NotFoundError("Equipamento não encontrado")
        return await self._terms.list_for_equipment(equipment_id)
