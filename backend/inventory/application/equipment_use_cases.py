import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from typing import Any, List, Mapping, Optional, Sequence

from inventory.application.history import TRACKED_FIELDS, AuditWarning, HistoryRecorder
from inventory.application.ports import Clock, EquipmentRepository, IdGenerator
from inventory.domain.errors import (
    DuplicateAssetNumberError,
    DuplicateKeyError,
    NotFoundError,
    ValidationError,
)
from inventory.domain.models import (
    Equipment,
    EquipmentFilters,
    EquipmentStats,
    EquipmentStatus,
    HistoryEntry,
)
from inventory.domain.validation import (
    format_asset_number,
    is_valid_asset_number,
    validate_equipment,
    validate_transfer,
)

logger = logging.getLogger(__name__)

MAX_ASSET_NUMBER_ATTEMPTS = 5
MAX_ASSET_SEQUENCE = 9999

EDITABLE_FIELDS = tuple(name for name in TRACKED_FIELDS if name != "asset_number")


@dataclass(frozen=True)
class CreateEquipmentCommand:
    description: str
    brand: str
    model: str
    location: str
    responsible: str
    acquisition_date: Optional[date]
    value: float
    specs: Optional[str] = None
    status: EquipmentStatus = EquipmentStatus.ACTIVE
    invoice_date: Optional[date] = None
    maintenance_description: Optional[str] = None
    asset_number: Optional[str] = None


@dataclass(frozen=True)
class UpdateEquipmentCommand:
    equipment_id: str
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class TransferEquipmentCommand:
    equipment_id: str
    new_location: str
    transfer_date: Optional[date]
    responsible_person: Optional[str] = None
    observations: Optional[str] = None


@dataclass(frozen=True)
class ListEquipmentQuery:
    status: Optional[EquipmentStatus] = None
    location: Optional[str] = None
    search: Optional[str] = None
    limit: int = 100
    offset: int = 0


@dataclass(frozen=True)
class EquipmentResult:
    equipment: Equipment
    warnings: Sequence[AuditWarning] = field(default_factory=list)


def _clean(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def normalize_equipment(equipment: Equipment) -> Equipment:
    """Trim text fields and clear the maintenance note outside maintenance."""
    status = EquipmentStatus(equipment.status)
    maintenance_description = _clean(equipment.maintenance_description) or None
    if status != EquipmentStatus.MAINTENANCE:
        maintenance_description = None
    return replace(
        equipment,
        description=_clean(equipment.description),
        brand=_clean(equipment.brand),
        model=_clean(equipment.model),
        specs=_clean(equipment.specs) or None,
        location=_clean(equipment.location),
        responsible=_clean(equipment.responsible),
        status=status,
        maintenance_description=maintenance_description,
    )


def _validated(equipment: Equipment, today: date) -> Equipment:
    validate_equipment(asdict(equipment), today).raise_if_invalid()
    return replace(
        equipment,
        value=float(equipment.value),
        acquisition_date=_as_date(equipment.acquisition_date),
        invoice_date=_as_date(equipment.invoice_date),
    )


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value


def _warnings(*candidates: Optional[AuditWarning]) -> List[AuditWarning]:
    return [warning for warning in candidates if warning is not None]


async def _load(repository: EquipmentRepository, equipment_id: str) -> Equipment:
    equipment = await repository.get(equipment_id)
    if equipment is None:
        raise NotFoundError("Equipamento não encontrado")
    return equipment


class CreateEquipmentUseCase:
    def __init__(
        self,
        repository: EquipmentRepository,
        history: HistoryRecorder,
        id_generator: IdGenerator,
        clock: Clock,
        max_attempts: int = MAX_ASSET_NUMBER_ATTEMPTS,
    ) -> None:
        self._repository = repository
        self._history = history
        self._id_generator = id_generator
        self._clock = clock
        self._max_attempts = max_attempts

    def build(self, command: CreateEquipmentCommand) -> Equipment:
        """Validate a creation command into an unsaved Equipment without an asset number."""
        now = self._clock()
        status = command.status or EquipmentStatus.ACTIVE
        try:
            status = EquipmentStatus(status)
        except ValueError:
            raise ValidationError({"status": "Status inválido"})

        fields = {
            "description": command.description,
            "brand": command.brand,
            "model": command.model,
            "specs": command.specs,
            "status": status,
            "location": command.location,
            "responsible": command.responsible,
            "acquisition_date": command.acquisition_date,
            "invoice_date": command.invoice_date,
            "value": command.value,
            "maintenance_description": command.maintenance_description,
            "asset_number": command.asset_number,
        }
        validate_equipment(fields, now.date()).raise_if_invalid()

        return normalize_equipment(
            Equipment(
                id=self._id_generator(),
                asset_number=command.asset_number or "",
                description=command.description,
                brand=command.brand,
                model=command.model,
                specs=command.specs,
                status=status,
                location=command.location,
                responsible=command.responsible,
                acquisition_date=_as_date(command.acquisition_date),
                invoice_date=_as_date(command.invoice_date),
                value=float(command.value),
                maintenance_description=command.maintenance_description,
                created_at=now,
                updated_at=now,
            )
        )

    async def insert(self, command: CreateEquipmentCommand) -> Equipment:
        """Persist a new equipment row, claiming an asset number. No audit entry."""
        equipment = self.build(command)

        if command.asset_number:
            try:
                return await self._repository.insert(equipment)
            except DuplicateKeyError:
                raise DuplicateAssetNumberError(
                    f"Número de patrimônio {command.asset_number} já está em uso",
                    asset_number=command.asset_number,
                )

        candidate_sequence = 0
        candidate = None
        for attempt in range(1, self._max_attempts + 1):
            # Re-read on every attempt: a concurrent writer may have claimed several numbers.
            highest = await self._repository.max_asset_sequence()
            candidate_sequence = max(highest + 1, candidate_sequence + 1)
            if candidate_sequence > MAX_ASSET_SEQUENCE:
                raise DuplicateAssetNumberError("Sequência de números de patrimônio esgotada")
            candidate = format_asset_number(candidate_sequence)
            try:
                return await self._repository.insert(replace(equipment, asset_number=candidate))
            except DuplicateKeyError:
                logger.info(
                    f"Asset number {candidate} taken (attempt {attempt}/{self._max_attempts}), retrying"
                )

        raise DuplicateAssetNumberError(
            "Não foi possível gerar um número de patrimônio único, tente novamente",
            asset_number=candidate,
        )

    async def execute(self, command: CreateEquipmentCommand, actor: str) -> EquipmentResult:
        equipment = await self.insert(command)
        logger.info(f"Equipment {equipment.asset_number} created by {actor}")
        warning = await self._history.append_best_effort(
            [self._history.creation_entry(equipment, actor)]
        )
        return EquipmentResult(equipment, _warnings(warning))


class UpdateEquipmentUseCase:
    def __init__(
        self,
        repository: EquipmentRepository,
        history: HistoryRecorder,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._history = history
        self._clock = clock

    async def execute(self, command: UpdateEquipmentCommand, actor: str) -> EquipmentResult:
        current = await _load(self._repository, command.equipment_id)

        changes = dict(command.changes)
        errors = {}
        if "asset_number" in changes:
            if changes.pop("asset_number") != current.asset_number:
                errors["asset_number"] = (
                    "Número de patrimônio só pode ser alterado pela reatribuição"
                )
        for name in changes:
            if name not in EDITABLE_FIELDS:
                errors[name] = "Campo não pode ser alterado"
        if "status" in changes:
            try:
                changes["status"] = EquipmentStatus(changes["status"])
            except ValueError:
                errors["status"] = "Status inválido"
        if errors:
            raise ValidationError(errors)

        now = self._clock()
        merged = _validated(normalize_equipment(replace(current, **changes)), now.date())

        entries = self._history.field_change_entries(current.id, current, merged, actor)
        if not entries:
            return EquipmentResult(current)

        saved = await self._repository.update(replace(merged, updated_at=now))
        logger.info(
            f"Equipment {saved.asset_number} updated by {actor}: {[e.field for e in entries]}"
        )
        warning = await self._history.append_best_effort(entries)
        return EquipmentResult(saved, _warnings(warning))


class ReassignAssetNumberUseCase:
    """The one path allowed to change an existing asset number."""

    def __init__(
        self,
        repository: EquipmentRepository,
        history: HistoryRecorder,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._history = history
        self._clock = clock

    async def execute(self, equipment_id: str, asset_number: str, actor: str) -> EquipmentResult:
        asset_number = (asset_number or "").strip()
        if not is_valid_asset_number(asset_number):
            raise ValidationError({"asset_number": "Formato inválido. Use TOP-0000"})

        current = await _load(self._repository, equipment_id)
        if asset_number == current.asset_number:
            return EquipmentResult(current)

        updated = replace(current, asset_number=asset_number, updated_at=self._clock())
        try:
            saved = await self._repository.update(updated)
        except DuplicateKeyError:
            raise DuplicateAssetNumberError(
                f"Número de patrimônio {asset_number} já está em uso",
                asset_number=asset_number,
            )
        entries = self._history.field_change_entries(current.id, current, saved, actor)
        warning = await self._history.append_best_effort(entries)
        return EquipmentResult(saved, _warnings(warning))


class TransferEquipmentUseCase:
    def __init__(
        self,
        repository: EquipmentRepository,
        history: HistoryRecorder,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._history = history
        self._clock = clock

    async def execute(self, command: TransferEquipmentCommand, actor: str) -> EquipmentResult:
        current = await _load(self._repository, command.equipment_id)
        now = self._clock()
        validate_transfer(
            current, command.new_location, command.transfer_date, now.date()
        ).raise_if_invalid()

        location = command.new_location.strip()
        responsible = current.responsible
        notes = [command.observations.strip()] if command.observations else []
        if command.responsible_person and command.responsible_person.strip():
            responsible = command.responsible_person.strip()
            if responsible != current.responsible:
                notes.append(f"Responsável: {current.responsible} -> {responsible}")

        entry = self._history.transfer_entry(
            current,
            location,
            actor,
            command.transfer_date,
            observations=". ".join(notes) or None,
        )
        saved = await self._repository.update(
            replace(current, location=location, responsible=responsible, updated_at=now)
        )
        logger.info(
            f"Equipment {saved.asset_number} transferred {current.location} -> {location} by {actor}"
        )
        warning = await self._history.append_best_effort([entry])
        return EquipmentResult(saved, _warnings(warning))


class RegisterMaintenanceUseCase:
    def __init__(
        self,
        repository: EquipmentRepository,
        history: HistoryRecorder,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._history = history
        self._clock = clock

    async def execute(self, equipment_id: str, description: str, actor: str) -> EquipmentResult:
        description = (description or "").strip()
        if not description:
            raise ValidationError(
                {"maintenance_description": "Descrição da manutenção é obrigatória"}
            )

        current = await _load(self._repository, equipment_id)
        entry = self._history.maintenance_entry(current, description, actor)
        saved = await self._repository.update(
            replace(
                current,
                status=EquipmentStatus.MAINTENANCE,
                maintenance_description=description,
                updated_at=self._clock(),
            )
        )
        warning = await self._history.append_best_effort([entry])
        return EquipmentResult(saved, _warnings(warning))


class DeleteEquipmentUseCase:
    def __init__(
        self,
        repository: EquipmentRepository,
        history: HistoryRecorder,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._history = history
        self._clock = clock

    async def execute(self, equipment_id: str, actor: str) -> None:
        current = await _load(self._repository, equipment_id)
        # The deletion entry is the only remaining trace, so it must land first.
        await self._history.record_deletion(current, actor)
        await self._repository.soft_delete(current.id, self._clock())
        logger.info(f"Equipment {current.asset_number} deleted by {actor}")


class GetEquipmentUseCase:
    def __init__(self, repository: EquipmentRepository) -> None:
        self._repository = repository

    async def execute(self, equipment_id: str) -> Equipment:
        return await _load(self._repository, equipment_id)


class ListEquipmentUseCase:
    def __init__(self, repository: EquipmentRepository, max_limit: int = 500) -> None:
        self._repository = repository
        self._max_limit = max_limit

    async def execute(self, query: ListEquipmentQuery) -> Sequence[Equipment]:
        filters = EquipmentFilters(
            status=query.status,
            location=query.location,
            search=(query.search or "").strip() or None,
            limit=max(1, min(query.limit, self._max_limit)),
            offset=max(0, query.offset),
        )
        return await self._repository.list(filters)


class EquipmentStatsUseCase:
    def __init__(self, repository: EquipmentRepository) -> None:
        self._repository = repository

    async def execute(self) -> EquipmentStats:
        return await self._repository.stats()


class NextAssetNumberUseCase:
    """Preview of the number ``create`` would try first; not a reservation."""

    def __init__(self, repository: EquipmentRepository) -> None:
        self._repository = repository

    async def execute(self) -> str:
        return format_asset_number(await self._repository.max_asset_sequence() + 1)


class EquipmentHistoryUseCase:
    def __init__(self, repository: EquipmentRepository, history: HistoryRecorder) -> None:
        self._repository = repository
        self._history = history

    async def execute(self, equipment_id: str) -> Sequence[HistoryEntry]:
        await _load(self._repository, equipment_id)
        return await self._history.history_for(equipment_id)
