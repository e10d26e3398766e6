import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import delete, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inventory.domain.errors import (
    DuplicateKeyError,
    NotFoundError,
    PersistenceError,
    StatusConflictError,
)
from inventory.domain.models import (
    Attachment,
    ChangeType,
    EntityType,
    Equipment,
    EquipmentFilters,
    EquipmentStats,
    EquipmentStatus,
    HistoryEntry,
    PurchaseCategory,
    PurchaseRequest,
    PurchaseStats,
    PurchaseStatus,
    PurchaseUrgency,
    ResponsibilityTerm,
    TermStatus,
)
from inventory.domain.validation import parse_asset_sequence
from database import (
    AttachmentRow,
    EquipmentRow,
    HistoryEntryRow,
    PurchaseRequestRow,
    ResponsibilityTermRow,
)

logger = logging.getLogger(__name__)


class _SqlAlchemyRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _execute(self, statement):
        try:
            return await self._session.execute(statement)
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Database query failed: {exc}")
            raise PersistenceError("Banco de dados indisponível, tente novamente")

    async def _commit(self) -> None:
        try:
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise DuplicateKeyError("Registro duplicado", key=str(exc.orig))
        except (SQLAlchemyError, OSError) as exc:
            await self._session.rollback()
            logger.error(f"Database write failed: {exc}")
            raise PersistenceError("Falha ao gravar no banco de dados, tente novamente")

    async def _row(self, model, row_id: str):
        result = await self._execute(select(model).where(model.id == row_id))
        return result.scalar_one_or_none()


# ==================== EQUIPMENT ====================

def _to_equipment(row: EquipmentRow) -> Equipment:
    return Equipment(
        id=row.id,
        asset_number=row.asset_number,
        description=row.description,
        brand=row.brand,
        model=row.model,
        specs=row.specs,
        status=EquipmentStatus(row.status),
        location=row.location,
        responsible=row.responsible,
        acquisition_date=row.acquisition_date,
        invoice_date=row.invoice_date,
        value=row.value,
        maintenance_description=row.maintenance_description,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )


def _apply_equipment(row: EquipmentRow, equipment: Equipment) -> None:
    row.asset_number = equipment.asset_number
    row.asset_sequence = parse_asset_sequence(equipment.asset_number)
    row.description = equipment.description
    row.brand = equipment.brand
    row.model = equipment.model
    row.specs = equipment.specs
    row.status = EquipmentStatus(equipment.status).value
    row.location = equipment.location
    row.responsible = equipment.responsible
    row.acquisition_date = equipment.acquisition_date
    row.invoice_date = equipment.invoice_date
    row.value = equipment.value
    row.maintenance_description = equipment.maintenance_description
    row.updated_at = equipment.updated_at


class SqlAlchemyEquipmentRepository(_SqlAlchemyRepository):
    async def insert(self, equipment: Equipment) -> Equipment:
        row = EquipmentRow(id=equipment.id, created_at=equipment.created_at)
        _apply_equipment(row, equipment)
        self._session.add(row)
        await self._commit()
        return _to_equipment(row)

    async def update(self, equipment: Equipment) -> Equipment:
        row = await self._live_row(equipment.id)
        _apply_equipment(row, equipment)
        await self._commit()
        return _to_equipment(row)

    async def get(self, equipment_id: str) -> Optional[Equipment]:
        row = await self._row(EquipmentRow, equipment_id)
        if row is None or row.deleted_at is not None:
            return None
        return _to_equipment(row)

    async def list(self, filters: EquipmentFilters) -> Sequence[Equipment]:
        query = select(EquipmentRow).where(EquipmentRow.deleted_at.is_(None))

        if filters.status:
            query = query.where(EquipmentRow.status == EquipmentStatus(filters.status).value)
        if filters.location:
            query = query.where(EquipmentRow.location == filters.location)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.where(
                or_(
                    EquipmentRow.asset_number.ilike(pattern),
                    EquipmentRow.description.ilike(pattern),
                    EquipmentRow.brand.ilike(pattern),
                    EquipmentRow.model.ilike(pattern),
                    EquipmentRow.responsible.ilike(pattern),
                )
            )

        query = query.order_by(desc(EquipmentRow.created_at))
        query = query.limit(filters.limit).offset(filters.offset)

        result = await self._execute(query)
        return [_to_equipment(row) for row in result.scalars().all()]

    async def max_asset_sequence(self) -> int:
        # Soft-deleted rows keep their numbers reserved.
        result = await self._execute(select(func.max(EquipmentRow.asset_sequence)))
        return result.scalar() or 0

    async def soft_delete(self, equipment_id: str, deleted_at: datetime) -> None:
        row = await self._live_row(equipment_id)
        row.deleted_at = deleted_at
        await self._commit()

    async def purge(self, equipment_id: str) -> None:
        await self._execute(delete(EquipmentRow).where(EquipmentRow.id == equipment_id))
        await self._commit()

    async def stats(self) -> EquipmentStats:
        result = await self._execute(
            select(EquipmentRow.status, func.count(), func.coalesce(func.sum(EquipmentRow.value), 0))
            .where(EquipmentRow.deleted_at.is_(None))
            .group_by(EquipmentRow.status)
        )
        counts = {}
        total_value = 0.0
        for status, count, value in result.all():
            counts[status] = count
            total_value += float(value or 0)
        return EquipmentStats(
            total=sum(counts.values()),
            active=counts.get(EquipmentStatus.ACTIVE.value, 0),
            maintenance=counts.get(EquipmentStatus.MAINTENANCE.value, 0),
            retired=counts.get(EquipmentStatus.RETIRED.value, 0),
            total_value=total_value,
        )

    async def _live_row(self, equipment_id: str) -> EquipmentRow:
        row = await self._row(EquipmentRow, equipment_id)
        if row is None or row.deleted_at is not None:
            raise NotFoundError("Equipamento não encontrado")
        return row


# ==================== HISTORY ====================

def _to_history(row: HistoryEntryRow) -> HistoryEntry:
    return HistoryEntry(
        id=row.id,
        equipment_id=row.equipment_id,
        entity_type=EntityType(row.entity_type),
        entity_id=row.entity_id,
        user=row.user_name,
        change_type=ChangeType(row.change_type),
        field=row.field,
        old_value=row.old_value,
        new_value=row.new_value,
        notes=row.notes,
        timestamp=row.timestamp,
    )


class SqlAlchemyHistoryRepository(_SqlAlchemyRepository):
    async def append(self, entries: Sequence[HistoryEntry]) -> None:
        self._session.add_all(
            [
                HistoryEntryRow(
                    id=entry.id,
                    equipment_id=entry.equipment_id,
                    entity_type=entry.entity_type.value,
                    entity_id=entry.entity_id,
                    user_name=entry.user,
                    change_type=entry.change_type.value,
                    field=entry.field,
                    old_value=entry.old_value,
                    new_value=entry.new_value,
                    notes=entry.notes,
                    timestamp=entry.timestamp,
                )
                for entry in entries
            ]
        )
        await self._commit()

    async def list_for_equipment(self, equipment_id: str) -> Sequence[HistoryEntry]:
        result = await self._execute(
            select(HistoryEntryRow)
            .where(HistoryEntryRow.equipment_id == equipment_id)
            .order_by(desc(HistoryEntryRow.timestamp))
        )
        return [_to_history(row) for row in result.scalars().all()]

    async def list_for_entity(self, entity_type: str, entity_id: str) -> Sequence[HistoryEntry]:
        result = await self._execute(
            select(HistoryEntryRow)
            .where(
                HistoryEntryRow.entity_type == entity_type,
                HistoryEntryRow.entity_id == entity_id,
            )
            .order_by(desc(HistoryEntryRow.timestamp))
        )
        return [_to_history(row) for row in result.scalars().all()]

    async def recent(self, limit: int) -> Sequence[HistoryEntry]:
        result = await self._execute(
            select(HistoryEntryRow).order_by(desc(HistoryEntryRow.timestamp)).limit(limit)
        )
        return [_to_history(row) for row in result.scalars().all()]


# ==================== ATTACHMENTS ====================

def _to_attachment(row: AttachmentRow) -> Attachment:
    return Attachment(
        id=row.id,
        equipment_id=row.equipment_id,
        name=row.name,
        size=row.size,
        type=row.type,
        file_path=row.file_path,
        uploaded_by=row.uploaded_by,
        uploaded_at=row.uploaded_at,
    )


class SqlAlchemyAttachmentRepository(_SqlAlchemyRepository):
    async def insert(self, attachment: Attachment) -> Attachment:
        row = AttachmentRow(
            id=attachment.id,
            equipment_id=attachment.equipment_id,
            name=attachment.name,
            size=attachment.size,
            type=attachment.type,
            file_path=attachment.file_path,
            uploaded_by=attachment.uploaded_by,
            uploaded_at=attachment.uploaded_at,
        )
        self._session.add(row)
        await self._commit()
        return _to_attachment(row)

    async def get(self, attachment_id: str) -> Optional[Attachment]:
        row = await self._row(AttachmentRow, attachment_id)
        return _to_attachment(row) if row else None

    async def list_for_equipment(self, equipment_id: str) -> Sequence[Attachment]:
        result = await self._execute(
            select(AttachmentRow)
            .where(AttachmentRow.equipment_id == equipment_id)
            .order_by(desc(AttachmentRow.uploaded_at))
        )
        return [_to_attachment(row) for row in result.scalars().all()]

    async def delete(self, attachment_id: str) -> None:
        await self._execute(delete(AttachmentRow).where(AttachmentRow.id == attachment_id))
        await self._commit()


# ==================== PURCHASES ====================

def _to_purchase(row: PurchaseRequestRow) -> PurchaseRequest:
    return PurchaseRequest(
        id=row.id,
        description=row.description,
        category=PurchaseCategory(row.category),
        estimated_quantity=row.estimated_quantity,
        estimated_unit_value=row.estimated_unit_value,
        estimated_total_value=row.estimated_total_value,
        urgency=PurchaseUrgency(row.urgency),
        status=PurchaseStatus(row.status),
        requested_by=row.requested_by,
        request_date=row.request_date,
        expected_date=row.expected_date,
        supplier=row.supplier,
        observations=row.observations,
        brand=row.brand,
        model=row.model,
        specifications=row.specifications,
        location=row.location,
        approved_by=row.approved_by,
        approval_date=row.approval_date,
        rejection_reason=row.rejection_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


_PURCHASE_COLUMNS = (
    "description", "estimated_quantity", "estimated_unit_value", "estimated_total_value",
    "requested_by", "request_date", "expected_date", "supplier", "observations", "brand",
    "model", "specifications", "location", "approved_by", "approval_date",
    "rejection_reason", "updated_at",
)


def _apply_purchase(row: PurchaseRequestRow, purchase: PurchaseRequest) -> None:
    for name in _PURCHASE_COLUMNS:
        setattr(row, name, getattr(purchase, name))
    row.category = PurchaseCategory(purchase.category).value
    row.urgency = PurchaseUrgency(purchase.urgency).value
    row.status = PurchaseStatus(purchase.status).value


class SqlAlchemyPurchaseRepository(_SqlAlchemyRepository):
    async def insert(self, purchase: PurchaseRequest) -> PurchaseRequest:
        row = PurchaseRequestRow(id=purchase.id, created_at=purchase.created_at)
        _apply_purchase(row, purchase)
        self._session.add(row)
        await self._commit()
        return _to_purchase(row)

    async def update(self, purchase: PurchaseRequest) -> PurchaseRequest:
        row = await self._existing(purchase.id)
        _apply_purchase(row, purchase)
        await self._commit()
        return _to_purchase(row)

    async def get(self, purchase_id: str) -> Optional[PurchaseRequest]:
        row = await self._row(PurchaseRequestRow, purchase_id)
        return _to_purchase(row) if row else None

    async def list(self, status: Optional[PurchaseStatus] = None) -> Sequence[PurchaseRequest]:
        query = select(PurchaseRequestRow)
        if status:
            query = query.where(PurchaseRequestRow.status == PurchaseStatus(status).value)
        result = await self._execute(query.order_by(desc(PurchaseRequestRow.created_at)))
        return [_to_purchase(row) for row in result.scalars().all()]

    async def mark_acquired(
        self,
        purchase_id: str,
        updated_at: datetime,
        approved_by: Optional[str] = None,
        approval_date: Optional[datetime] = None,
        from_statuses: Sequence[PurchaseStatus] = (PurchaseStatus.PENDING, PurchaseStatus.APPROVED),
    ) -> PurchaseRequest:
        values = {"status": PurchaseStatus.ACQUIRED.value, "updated_at": updated_at}
        if approved_by:
            values["approved_by"] = approved_by
        if approval_date:
            values["approval_date"] = approval_date
        # Single guarded UPDATE: two converters racing on one purchase cannot both win.
        result = await self._execute(
            update(PurchaseRequestRow)
            .where(
                PurchaseRequestRow.id == purchase_id,
                PurchaseRequestRow.status.in_([PurchaseStatus(s).value for s in from_statuses]),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self._commit()

        row = (
            await self._execute(
                select(PurchaseRequestRow)
                .where(PurchaseRequestRow.id == purchase_id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError("Solicitação de compra não encontrada")
        if result.rowcount == 0:
            raise StatusConflictError(
                f"Solicitação com status {row.status} não pode ser convertida", status=row.status
            )
        return _to_purchase(row)

    async def delete(self, purchase_id: str) -> None:
        await self._execute(delete(PurchaseRequestRow).where(PurchaseRequestRow.id == purchase_id))
        await self._commit()

    async def stats(self) -> PurchaseStats:
        result = await self._execute(
            select(PurchaseRequestRow.status, func.count()).group_by(PurchaseRequestRow.status)
        )
        counts = dict(result.all())
        return PurchaseStats(
            total=sum(counts.values()),
            pending=counts.get(PurchaseStatus.PENDING.value, 0),
            approved=counts.get(PurchaseStatus.APPROVED.value, 0),
            rejected=counts.get(PurchaseStatus.REJECTED.value, 0),
            acquired=counts.get(PurchaseStatus.ACQUIRED.value, 0),
        )

    async def _existing(self, purchase_id: str) -> PurchaseRequestRow:
        row = await self._row(PurchaseRequestRow, purchase_id)
        if row is None:
            raise NotFoundError("Solicitação de compra não encontrada")
        return row


# ==================== RESPONSIBILITY TERMS ====================

def _to_term(row: ResponsibilityTermRow) -> ResponsibilityTerm:
    return ResponsibilityTerm(
        id=row.id,
        equipment_id=row.equipment_id,
        responsible_person=row.responsible_person,
        responsible_email=row.responsible_email,
        responsible_phone=row.responsible_phone,
        responsible_department=row.responsible_department,
        term_date=row.term_date,
        observations=row.observations,
        pdf_path=row.pdf_path,
        pdf_url=row.pdf_url,
        status=TermStatus(row.status),
        signature_document_id=row.signature_document_id,
        signed_at=row.signed_at,
        signed_document_url=row.signed_document_url,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


_TERM_COLUMNS = (
    "responsible_person", "responsible_email", "responsible_phone", "responsible_department",
    "term_date", "observations", "pdf_path", "pdf_url", "signature_document_id",
    "signed_at", "signed_document_url", "updated_at",
)


class SqlAlchemyTermRepository(_SqlAlchemyRepository):
    async def insert(self, term: ResponsibilityTerm) -> ResponsibilityTerm:
        row = ResponsibilityTermRow(
            id=term.id,
            equipment_id=term.equipment_id,
            status=TermStatus(term.status).value,
            created_at=term.created_at,
        )
        for name in _TERM_COLUMNS:
            setattr(row, name, getattr(term, name))
        self._session.add(row)
        await self._commit()
        return _to_term(row)

    async def update(self, term: ResponsibilityTerm) -> ResponsibilityTerm:
        row = await self._row(ResponsibilityTermRow, term.id)
        if row is None:
            raise NotFoundError("Termo de responsabilidade não encontrado")
        for name in _TERM_COLUMNS:
            setattr(row, name, getattr(term, name))
        row.status = TermStatus(term.status).value
        await self._commit()
        return _to_term(row)

    async def get(self, term_id: str) -> Optional[ResponsibilityTerm]:
        row = await self._row(ResponsibilityTermRow, term_id)
        return _to_term(row) if row else None

    async def list_for_equipment(self, equipment_id: str) -> Sequence[ResponsibilityTerm]:
        result = await self._execute(
            select(ResponsibilityTermRow)
            .where(ResponsibilityTermRow.equipment_id == equipment_id)
            .order_by(desc(ResponsibilityTermRow.created_at))
        )
        return [_to_term(row) for row in result.scalars().all()]
