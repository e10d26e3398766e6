"""
Audit trail recorder.

Turns equipment snapshots and discrete events (transfer, attachment add/remove,
creation, deletion) into HistoryEntry rows and appends them through the
HistoryRepository. Each ``record_*`` call writes its entries in one
``append`` call so a caller never observes a partial batch.
"""
import enum
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, List, Optional, Sequence

from inventory.application.ports import Clock, HistoryRepository, IdGenerator
from inventory.domain.errors import PersistenceError, ValidationError
from inventory.domain.models import (
    Attachment,
    ChangeType,
    EntityType,
    Equipment,
    HistoryEntry,
)
from inventory.domain.validation import same_location

logger = logging.getLogger(__name__)

# Attributes compared by record_field_changes, in display order.
TRACKED_FIELDS = (
    "asset_number",
    "description",
    "brand",
    "model",
    "specs",
    "status",
    "location",
    "responsible",
    "acquisition_date",
    "invoice_date",
    "value",
    "maintenance_description",
)


@dataclass(frozen=True)
class AuditWarning:
    """A primary write succeeded but its audit entries could not be stored."""

    message: str
    entries: Sequence[HistoryEntry] = field(default_factory=list)
    error: Optional[str] = None


def stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class HistoryRecorder:
    def __init__(
        self,
        repository: HistoryRepository,
        id_generator: IdGenerator,
        clock: Clock,
        max_attempts: int = 3,
    ) -> None:
        self._repository = repository
        self._id_generator = id_generator
        self._clock = clock
        self._max_attempts = max(1, max_attempts)

    # ---- entry builders (no I/O) ----

    def _entry(
        self,
        entity_type: EntityType,
        entity_id: str,
        actor: str,
        change_type: ChangeType,
        field: Optional[str] = None,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        notes: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> HistoryEntry:
        return HistoryEntry(
            id=self._id_generator(),
            equipment_id=entity_id if entity_type == EntityType.EQUIPMENT else None,
            entity_type=entity_type,
            entity_id=entity_id,
            user=actor,
            change_type=change_type,
            field=field,
            old_value=old_value,
            new_value=new_value,
            notes=notes,
            timestamp=timestamp or self._clock(),
        )

    def field_change_entries(
        self, equipment_id: str, before: Equipment, after: Equipment, actor: str
    ) -> List[HistoryEntry]:
        timestamp = self._clock()
        entries = []
        for name in TRACKED_FIELDS:
            old_value = stringify(getattr(before, name))
            new_value = stringify(getattr(after, name))
            if old_value == new_value:
                continue
            change_type = ChangeType.STATUS_CHANGED if name == "status" else ChangeType.EDITED
            entries.append(
                self._entry(
                    EntityType.EQUIPMENT,
                    equipment_id,
                    actor,
                    change_type,
                    field=name,
                    old_value=old_value,
                    new_value=new_value,
                    timestamp=timestamp,
                )
            )
        return entries

    def transfer_entry(
        self,
        equipment: Equipment,
        to_location: str,
        actor: str,
        transfer_date: date,
        observations: Optional[str] = None,
        from_location: Optional[str] = None,
    ) -> HistoryEntry:
        from_location = equipment.location if from_location is None else from_location
        errors = {}
        if same_location(from_location, to_location):
            errors["location"] = "A nova localização deve ser diferente da atual"
        if transfer_date < equipment.acquisition_date:
            errors["transfer_date"] = "Data da transferência não pode ser anterior à aquisição"
        elif transfer_date > self._clock().date():
            errors["transfer_date"] = "Data da transferência não pode ser futura"
        if errors:
            raise ValidationError(errors)

        notes = f"Data da transferência: {transfer_date.isoformat()}"
        if observations:
            notes = f"{notes}. {observations}"
        return self._entry(
            EntityType.EQUIPMENT,
            equipment.id,
            actor,
            ChangeType.TRANSFERRED,
            field="location",
            old_value=from_location,
            new_value=to_location,
            notes=notes,
        )

    def creation_entry(
        self, equipment: Equipment, actor: str, source: Optional[str] = None
    ) -> HistoryEntry:
        return self._entry(
            EntityType.EQUIPMENT,
            equipment.id,
            actor,
            ChangeType.CREATED,
            field="equipment" if source else None,
            new_value=source or equipment.asset_number,
        )

    def deletion_entry(self, equipment: Equipment, actor: str) -> HistoryEntry:
        return self._entry(
            EntityType.EQUIPMENT,
            equipment.id,
            actor,
            ChangeType.DELETED,
            field="equipment",
            old_value=f"{equipment.asset_number} - {equipment.description}",
            new_value="",
        )

    def maintenance_entry(self, equipment: Equipment, description: str, actor: str) -> HistoryEntry:
        return self._entry(
            EntityType.EQUIPMENT,
            equipment.id,
            actor,
            ChangeType.MAINTENANCE,
            field="maintenance_description",
            old_value=equipment.maintenance_description or "",
            new_value=description,
        )

    def attachment_entry(self, attachment: Attachment, actor: str, added: bool) -> HistoryEntry:
        if added:
            return self._entry(
                EntityType.EQUIPMENT,
                attachment.equipment_id,
                actor,
                ChangeType.ATTACHED_FILE,
                field="file",
                old_value="",
                new_value=attachment.name,
            )
        return self._entry(
            EntityType.EQUIPMENT,
            attachment.equipment_id,
            actor,
            ChangeType.REMOVED_FILE,
            field="file",
            old_value=attachment.name,
            new_value="",
        )

    def event_entry(
        self,
        entity_type: EntityType,
        entity_id: str,
        actor: str,
        change_type: ChangeType,
        field: Optional[str] = None,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        equipment_id: Optional[str] = None,
    ) -> HistoryEntry:
        entry = self._entry(
            entity_type, entity_id, actor, change_type, field, old_value, new_value
        )
        if equipment_id and entry.equipment_id is None:
            # Terms belong to an equipment; keep them on its timeline.
            entry = replace(entry, equipment_id=equipment_id)
        return entry

    # ---- recording (persists) ----

    async def append(self, entries: Sequence[HistoryEntry]) -> None:
        if entries:
            await self._repository.append(list(entries))

    async def record_field_changes(
        self, equipment_id: str, before: Equipment, after: Equipment, actor: str
    ) -> List[HistoryEntry]:
        entries = self.field_change_entries(equipment_id, before, after, actor)
        await self.append(entries)
        return entries

    async def record_transfer(
        self,
        equipment: Equipment,
        to_location: str,
        actor: str,
        transfer_date: date,
        observations: Optional[str] = None,
    ) -> HistoryEntry:
        entry = self.transfer_entry(equipment, to_location, actor, transfer_date, observations)
        await self.append([entry])
        return entry

    async def record_creation(
        self, equipment: Equipment, actor: str, source: Optional[str] = None
    ) -> HistoryEntry:
        entry = self.creation_entry(equipment, actor, source)
        await self.append([entry])
        return entry

    async def record_deletion(self, equipment: Equipment, actor: str) -> HistoryEntry:
        entry = self.deletion_entry(equipment, actor)
        await self.append([entry])
        return entry

    async def record_attachment_added(self, attachment: Attachment, actor: str) -> HistoryEntry:
        entry = self.attachment_entry(attachment, actor, added=True)
        await self.append([entry])
        return entry

    async def record_attachment_removed(self, attachment: Attachment, actor: str) -> HistoryEntry:
        entry = self.attachment_entry(attachment, actor, added=False)
        await self.append([entry])
        return entry

    async def record_maintenance(
        self, equipment: Equipment, description: str, actor: str
    ) -> HistoryEntry:
        entry = self.maintenance_entry(equipment, description, actor)
        await self.append([entry])
        return entry

    async def record_purchase_event(
        self, purchase_id: str, actor: str, change_type: ChangeType, **values
    ) -> HistoryEntry:
        entry = self.event_entry(EntityType.PURCHASE, purchase_id, actor, change_type, **values)
        await self.append([entry])
        return entry

    async def record_term_event(
        self, term_id: str, equipment_id: str, actor: str, change_type: ChangeType, **values
    ) -> HistoryEntry:
        entry = self.event_entry(
            EntityType.RESPONSIBILITY_TERM,
            term_id,
            actor,
            change_type,
            equipment_id=equipment_id,
            **values,
        )
        await self.append([entry])
        return entry

    async def append_best_effort(self, entries: Sequence[HistoryEntry]) -> Optional[AuditWarning]:
        """
        Append entries after a primary write already succeeded.

        Retries transient failures; when every attempt fails the entries are
        logged and handed back in an AuditWarning so the caller can alert or
        resubmit them through ``append``.
        """
        if not entries:
            return None
        last_error = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                await self.append(entries)
                return None
            except PersistenceError as exc:
                last_error = exc
                logger.warning(
                    f"Audit append failed (attempt {attempt}/{self._max_attempts}): {exc.message}"
                )
        pending = [(e.change_type.value, e.field, e.old_value, e.new_value) for e in entries]
        logger.error(f"Audit entries not recorded for {entries[0].entity_id}: {pending}")
        return AuditWarning(
            message="Alteração salva, mas o histórico não pôde ser registrado",
            entries=list(entries),
            error=last_error.message if last_error else None,
        )

    async def history_for(self, equipment_id: str) -> Sequence[HistoryEntry]:
        entries = await self._repository.list_for_equipment(equipment_id)
        return sorted(entries, key=lambda entry: entry.timestamp, reverse=True)

    async def recent(self, limit: int = 10) -> Sequence[HistoryEntry]:
        return await self._repository.recent(max(1, limit))

    async def entity_history(self, entity_type: EntityType, entity_id: str) -> Sequence[HistoryEntry]:
        entries = await self._repository.list_for_entity(EntityType(entity_type).value, entity_id)
        return sorted(entries, key=lambda entry: entry.timestamp, reverse=True)
