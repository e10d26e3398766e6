from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence

from inventory.domain.models import (
    Attachment,
    Equipment,
    EquipmentFilters,
    EquipmentStats,
    HistoryEntry,
    PurchaseRequest,
    PurchaseStats,
    PurchaseStatus,
    ResponsibilityTerm,
    SignatureDocument,
    SignatureStatus,
    Signer,
)

IdGenerator = Callable[[], str]
Clock = Callable[[], datetime]


class EquipmentRepository(Protocol):
    """Equipment persistence. ``insert`` raises DuplicateKeyError on a taken asset number."""

    async def insert(self, equipment: Equipment) -> Equipment:
        ...

    async def update(self, equipment: Equipment) -> Equipment:
        ...

    async def get(self, equipment_id: str) -> Optional[Equipment]:
        ...

    async def list(self, filters: EquipmentFilters) -> Sequence[Equipment]:
        ...

    async def max_asset_sequence(self) -> int:
        ...

    async def soft_delete(self, equipment_id: str, deleted_at: datetime) -> None:
        ...

    async def purge(self, equipment_id: str) -> None:
        ...

    async def stats(self) -> EquipmentStats:
        ...


class HistoryRepository(Protocol):
    async def append(self, entries: Sequence[HistoryEntry]) -> None:
        ...

    async def list_for_equipment(self, equipment_id: str) -> Sequence[HistoryEntry]:
        ...

    async def list_for_entity(self, entity_type: str, entity_id: str) -> Sequence[HistoryEntry]:
        ...

    async def recent(self, limit: int) -> Sequence[HistoryEntry]:
        ...


class AttachmentRepository(Protocol):
    async def insert(self, attachment: Attachment) -> Attachment:
        ...

    async def get(self, attachment_id: str) -> Optional[Attachment]:
        ...

    async def list_for_equipment(self, equipment_id: str) -> Sequence[Attachment]:
        ...

    async def delete(self, attachment_id: str) -> None:
        ...


class PurchaseRepository(Protocol):
    async def insert(self, purchase: PurchaseRequest) -> PurchaseRequest:
        ...

    async def update(self, purchase: PurchaseRequest) -> PurchaseRequest:
        ...

    async def get(self, purchase_id: str) -> Optional[PurchaseRequest]:
        ...

    async def list(self, status: Optional[PurchaseStatus] = None) -> Sequence[PurchaseRequest]:
        ...

    async def mark_acquired(
        self,
        purchase_id: str,
        updated_at: datetime,
        approved_by: Optional[str] = None,
        approval_date: Optional[datetime] = None,
        from_statuses: Sequence[PurchaseStatus] = (PurchaseStatus.PENDING, PurchaseStatus.APPROVED),
    ) -> PurchaseRequest:
        """Conditional update; StatusConflictError when the row left ``from_statuses``."""
        ...

    async def delete(self, purchase_id: str) -> None:
        ...

    async def stats(self) -> PurchaseStats:
        ...


class TermRepository(Protocol):
    async def insert(self, term: ResponsibilityTerm) -> ResponsibilityTerm:
        ...

    async def update(self, term: ResponsibilityTerm) -> ResponsibilityTerm:
        ...

    async def get(self, term_id: str) -> Optional[ResponsibilityTerm]:
        ...

    async def list_for_equipment(self, equipment_id: str) -> Sequence[ResponsibilityTerm]:
        ...


class BlobStorage(Protocol):
    async def store(self, path: str, content: bytes, content_type: str) -> str:
        ...

    async def read(self, path: str) -> bytes:
        ...

    async def delete(self, path: str) -> None:
        ...

    def resolve_url(self, path: str) -> str:
        ...


class SignatureProvider(Protocol):
    async def create_document(
        self, title: str, pdf_bytes: bytes, signers: Sequence[Signer]
    ) -> SignatureDocument:
        ...

    async def get_status(self, document_id: str) -> SignatureStatus:
        ...

    async def cancel_document(self, document_id: str, reason: str) -> None:
        ...


class TermDocumentRenderer(Protocol):
    def render(self, equipment: Equipment, term: ResponsibilityTerm) -> bytes:
        ...
