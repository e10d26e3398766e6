import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from typing import Any, Mapping, Optional, Sequence

from inventory.application.history import AuditWarning, HistoryRecorder, stringify
from inventory.application.ports import Clock, IdGenerator, PurchaseRepository
from inventory.domain.errors import NotFoundError, ValidationError
from inventory.domain.models import (
    ChangeType,
    EntityType,
    PurchaseCategory,
    PurchaseRequest,
    PurchaseStats,
    PurchaseStatus,
    PurchaseUrgency,
)
from inventory.domain.validation import validate_purchase

logger = logging.getLogger(__name__)

EDITABLE_PURCHASE_FIELDS = (
    "description",
    "category",
    "estimated_quantity",
    "estimated_unit_value",
    "urgency",
    "expected_date",
    "supplier",
    "observations",
    "brand",
    "model",
    "specifications",
    "location",
)

# Editable fields a stored purchase can never clear.
REQUIRED_PURCHASE_FIELDS = ("description", "category", "estimated_quantity", "estimated_unit_value", "urgency")


@dataclass(frozen=True)
class CreatePurchaseCommand:
    description: str
    urgency: PurchaseUrgency
    requested_by: str
    request_date: date
    estimated_quantity: int = 1
    estimated_unit_value: float = 0.0
    category: PurchaseCategory = PurchaseCategory.OTHER
    expected_date: Optional[date] = None
    supplier: Optional[str] = None
    observations: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    specifications: Optional[str] = None
    location: Optional[str] = None


@dataclass(frozen=True)
class UpdatePurchaseCommand:
    purchase_id: str
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class PurchaseResult:
    purchase: PurchaseRequest
    warnings: Sequence[AuditWarning] = field(default_factory=list)


def total_value(quantity: int, unit_value: float) -> float:
    return round(quantity * unit_value, 2)


async def load_purchase(repository: PurchaseRepository, purchase_id: str) -> PurchaseRequest:
    purchase = await repository.get(purchase_id)
    if purchase is None:
        raise NotFoundError("Solicitação de compra não encontrada")
    return purchase


def _ensure_status(purchase: PurchaseRequest, *allowed: PurchaseStatus) -> None:
    if purchase.status not in allowed:
        raise ValidationError(
            {"status": f"Operação não permitida para solicitação com status {purchase.status.value}"}
        )


def _text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class CreatePurchaseUseCase:
    def __init__(
        self,
        repository: PurchaseRepository,
        history: HistoryRecorder,
        id_generator: IdGenerator,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._history = history
        self._id_generator = id_generator
        self._clock = clock

    async def execute(self, command: CreatePurchaseCommand, actor: str) -> PurchaseResult:
        now = self._clock()
        validate_purchase(asdict(command), now.date(), creating=True).raise_if_invalid()

        purchase = PurchaseRequest(
            id=self._id_generator(),
            description=command.description.strip(),
            category=PurchaseCategory(command.category or PurchaseCategory.OTHER),
            estimated_quantity=command.estimated_quantity,
            estimated_unit_value=float(command.estimated_unit_value),
            estimated_total_value=total_value(
                command.estimated_quantity, float(command.estimated_unit_value)
            ),
            urgency=PurchaseUrgency(command.urgency),
            status=PurchaseStatus.PENDING,
            requested_by=command.requested_by.strip(),
            request_date=command.request_date,
            expected_date=command.expected_date,
            supplier=_text(command.supplier),
            observations=_text(command.observations),
            brand=_text(command.brand),
            model=_text(command.model),
            specifications=_text(command.specifications),
            location=_text(command.location),
            created_at=now,
            updated_at=now,
        )
        saved = await self._repository.insert(purchase)
        warning = await self._history.append_best_effort(
            [
                self._history.event_entry(
                    EntityType.PURCHASE,
                    saved.id,
                    actor,
                    ChangeType.CREATED,
                    new_value=saved.description,
                )
            ]
        )
        return PurchaseResult(saved, [warning] if warning else [])


class UpdatePurchaseUseCase:
    def __init__(
        self,
        repository: PurchaseRepository,
        history: HistoryRecorder,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._history = history
        self._clock = clock

    async def execute(self, command: UpdatePurchaseCommand, actor: str) -> PurchaseResult:
        current = await load_purchase(self._repository, command.purchase_id)
        if current.status == PurchaseStatus.ACQUIRED:
            raise ValidationError({"status": "Solicitação já adquirida não pode ser alterada"})

        unknown = [name for name in command.changes if name not in EDITABLE_PURCHASE_FIELDS]
        if unknown:
            raise ValidationError({name: "Campo não pode ser alterado" for name in unknown})
        cleared = [
            name for name in REQUIRED_PURCHASE_FIELDS if name in command.changes and command.changes[name] is None
        ]
        if cleared:
            raise ValidationError({name: "Campo obrigatório não pode ser removido" for name in cleared})

        now = self._clock()
        merged = {**asdict(current), **command.changes}
        # Only a newly chosen expected date has to lie in the future.
        creating = "expected_date" in command.changes and (
            command.changes["expected_date"] != current.expected_date
        )
        validate_purchase(merged, now.date(), creating=creating).raise_if_invalid()

        quantity = merged["estimated_quantity"]
        unit_value = float(merged["estimated_unit_value"])
        updated = replace(
            current,
            **{
                name: _text(value) if isinstance(value, str) else value
                for name, value in command.changes.items()
            },
        )
        updated = replace(
            updated,
            category=PurchaseCategory(updated.category),
            urgency=PurchaseUrgency(updated.urgency),
            estimated_unit_value=unit_value,
            estimated_total_value=total_value(quantity, unit_value),
        )

        entries = []
        for name in EDITABLE_PURCHASE_FIELDS + ("estimated_total_value",):
            old_value = stringify(getattr(current, name))
            new_value = stringify(getattr(updated, name))
            if old_value != new_value:
                entries.append(
                    self._history.event_entry(
                        EntityType.PURCHASE,
                        current.id,
                        actor,
                        ChangeType.EDITED,
                        field=name,
                        old_value=old_value,
                        new_value=new_value,
                    )
                )
        if not entries:
            return PurchaseResult(current)

        saved = await self._repository.update(replace(updated, updated_at=now))
        warning = await self._history.append_best_effort(entries)
        return PurchaseResult(saved, [warning] if warning else [])


class ApprovePurchaseUseCase:
    def __init__(
        self,
        repository: PurchaseRepository,
        history: HistoryRecorder,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._history = history
        self._clock = clock

    async def execute(self, purchase_id: str, actor: str) -> PurchaseResult:
        current = await load_purchase(self._repository, purchase_id)
        _ensure_status(current, PurchaseStatus.PENDING)

        now = self._clock()
        saved = await self._repository.update(
            replace(
                current,
                status=PurchaseStatus.APPROVED,
                approved_by=actor,
                approval_date=now,
                updated_at=now,
            )
        )
        warning = await self._history.append_best_effort(
            [
                self._history.event_entry(
                    EntityType.PURCHASE,
                    saved.id,
                    actor,
                    ChangeType.STATUS_CHANGED,
                    field="status",
                    old_value=current.status.value,
                    new_value=saved.status.value,
                )
            ]
        )
        return PurchaseResult(saved, [warning] if warning else [])


class RejectPurchaseUseCase:
    def __init__(
        self,
        repository: PurchaseRepository,
        history: HistoryRecorder,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._history = history
        self._clock = clock

    async def execute(self, purchase_id: str, reason: str, actor: str) -> PurchaseResult:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError({"rejection_reason": "Motivo da rejeição é obrigatório"})

        current = await load_purchase(self._repository, purchase_id)
        _ensure_status(current, PurchaseStatus.PENDING)

        now = self._clock()
        saved = await self._repository.update(
            replace(
                current,
                status=PurchaseStatus.REJECTED,
                rejection_reason=reason,
                approved_by=actor,
                approval_date=now,
                updated_at=now,
            )
        )
        warning = await self._history.append_best_effort(
            [
                self._history.event_entry(
                    EntityType.PURCHASE,
                    saved.id,
                    actor,
                    ChangeType.STATUS_CHANGED,
                    field="status",
                    old_value=current.status.value,
                    new_value=saved.status.value,
                )
            ]
        )
        return PurchaseResult(saved, [warning] if warning else [])


class DeletePurchaseUseCase:
    def __init__(self, repository: PurchaseRepository, history: HistoryRecorder) -> None:
        self._repository = repository
        self._history = history

    async def execute(self, purchase_id: str, actor: str) -> Optional[AuditWarning]:
        current = await load_purchase(self._repository, purchase_id)
        if current.status == PurchaseStatus.ACQUIRED:
            raise ValidationError({"status": "Solicitação já adquirida não pode ser excluída"})

        await self._repository.delete(current.id)
        logger.info(f"Purchase request {current.id} deleted by {actor}")
        return await self._history.append_best_effort(
            [
                self._history.event_entry(
                    EntityType.PURCHASE,
                    current.id,
                    actor,
                    ChangeType.DELETED,
                    old_value=current.description,
                )
            ]
        )


class GetPurchaseUseCase:
    def __init__(self, repository: PurchaseRepository) -> None:
        self._repository = repository

    async def execute(self, purchase_id: str) -> PurchaseRequest:
        return await load_purchase(self._repository, purchase_id)


class ListPurchasesUseCase:
    def __init__(self, repository: PurchaseRepository) -> None:
        self._repository = repository

    async def execute(self, status: Optional[PurchaseStatus] = None) -> Sequence[PurchaseRequest]:
        return await self._repository.list(status)


class PurchaseStatsUseCase:
    def __init__(self, repository: PurchaseRepository) -> None:
        self._repository = repository

    async def execute(self) -> PurchaseStats:
        return await self._repository.stats()
