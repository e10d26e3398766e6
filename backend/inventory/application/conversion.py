"""
Purchase request -> equipment conversion.

From the caller's point of view this is all-or-nothing: either a new
equipment exists and the purchase is ``acquired``, or neither change is
visible. Audit entries are only written once both rows are in place.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence

from inventory.application.equipment_use_cases import (
    CreateEquipmentCommand,
    CreateEquipmentUseCase,
)
from inventory.application.history import AuditWarning, HistoryRecorder
from inventory.application.ports import Clock, EquipmentRepository, PurchaseRepository
from inventory.application.purchase_use_cases import load_purchase
from inventory.domain.errors import (
    ConversionError,
    DomainError,
    PersistenceError,
    StatusConflictError,
    ValidationError,
)
from inventory.domain.models import (
    ChangeType,
    EntityType,
    Equipment,
    EquipmentStatus,
    PurchaseRequest,
    PurchaseStatus,
)

logger = logging.getLogger(__name__)

CONVERTIBLE_STATUSES = (PurchaseStatus.PENDING, PurchaseStatus.APPROVED)


@dataclass(frozen=True)
class ConvertPurchaseCommand:
    """Operator-supplied equipment fields; unset ones default from the purchase."""

    purchase_id: str
    responsible: str
    acquisition_date: date
    asset_number: Optional[str] = None
    value: Optional[float] = None
    description: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    specs: Optional[str] = None
    location: Optional[str] = None
    invoice_date: Optional[date] = None
    approved_by: Optional[str] = None
    approval_date: Optional[datetime] = None
    status: EquipmentStatus = EquipmentStatus.ACTIVE
    maintenance_description: Optional[str] = None


@dataclass(frozen=True)
class ConversionResult:
    equipment: Equipment
    purchase: PurchaseRequest
    warnings: Sequence[AuditWarning] = field(default_factory=list)


def equipment_command_for(
    purchase: PurchaseRequest, command: ConvertPurchaseCommand
) -> CreateEquipmentCommand:
    value = command.value if command.value is not None else purchase.estimated_unit_value
    return CreateEquipmentCommand(
        asset_number=command.asset_number,
        description=command.description or purchase.description,
        brand=command.brand or purchase.brand or "",
        model=command.model or purchase.model or "",
        specs=command.specs or purchase.specifications,
        location=command.location or purchase.location or "",
        responsible=command.responsible,
        acquisition_date=command.acquisition_date,
        invoice_date=command.invoice_date,
        value=value,
        status=command.status,
        maintenance_description=command.maintenance_description,
    )


class ConvertPurchaseUseCase:
    def __init__(
        self,
        purchases: PurchaseRepository,
        equipment: EquipmentRepository,
        create_equipment: CreateEquipmentUseCase,
        history: HistoryRecorder,
        clock: Clock,
        max_attempts: int = 3,
    ) -> None:
        self._purchases = purchases
        self._equipment = equipment
        self._create_equipment = create_equipment
        self._history = history
        self._clock = clock
        self._max_attempts = max(1, max_attempts)

    async def execute(self, command: ConvertPurchaseCommand, actor: str) -> ConversionResult:
        purchase = await load_purchase(self._purchases, command.purchase_id)
        if purchase.status not in CONVERTIBLE_STATUSES:
            raise ValidationError(
                {"status": f"Solicitação com status {purchase.status.value} não pode ser convertida"}
            )

        # Step 1: validation and duplicate asset numbers surface unchanged.
        try:
            equipment = await self._create_equipment.insert(equipment_command_for(purchase, command))
        except PersistenceError as exc:
            raise ConversionError(
                f"Falha ao criar o equipamento: {exc.message}", step="create_equipment"
            )

        # Step 2: any failure here (store down, purchase deleted or already
        # converted by someone else) removes the equipment created above.
        try:
            acquired = await self._mark_acquired(purchase, command)
        except DomainError as exc:
            await self._compensate(equipment)
            raise ConversionError(
                f"Falha ao marcar a solicitação como adquirida: {exc.message}",
                step="mark_acquired",
            )

        logger.info(
            f"Purchase {purchase.id} converted into equipment {equipment.asset_number} by {actor}"
        )

        # Step 3: both rows exist; the audit trail is best effort from here on.
        warning = await self._history.append_best_effort(
            [
                self._history.creation_entry(
                    equipment, actor, source=f"Solicitação de compra {purchase.id}"
                ),
                self._history.event_entry(
                    EntityType.PURCHASE,
                    purchase.id,
                    actor,
                    ChangeType.STATUS_CHANGED,
                    field="status",
                    old_value=purchase.status.value,
                    new_value=PurchaseStatus.ACQUIRED.value,
                ),
            ]
        )
        return ConversionResult(equipment, acquired, [warning] if warning else [])

    async def _mark_acquired(
        self, purchase: PurchaseRequest, command: ConvertPurchaseCommand
    ) -> PurchaseRequest:
        # One stamp for every attempt, so a retry can recognise its own earlier commit.
        stamp = self._clock()
        last_error = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                return await self._purchases.mark_acquired(
                    purchase.id,
                    updated_at=stamp,
                    approved_by=command.approved_by,
                    approval_date=command.approval_date,
                    from_statuses=CONVERTIBLE_STATUSES,
                )
            except StatusConflictError:
                if last_error is None:
                    raise
                current = await self._purchases.get(purchase.id)
                if (
                    current is not None
                    and current.status == PurchaseStatus.ACQUIRED
                    and current.updated_at == stamp
                ):
                    return current
                raise
            except PersistenceError as exc:
                last_error = exc
                logger.warning(
                    f"Marking purchase {purchase.id} acquired failed "
                    f"(attempt {attempt}/{self._max_attempts}): {exc.message}"
                )
        raise last_error

    async def _compensate(self, equipment: Equipment) -> None:
        try:
            await self._equipment.purge(equipment.id)
        except PersistenceError as exc:
            logger.critical(
                f"Conversion rollback failed; equipment {equipment.asset_number} "
                f"({equipment.id}) exists without an acquired purchase: {exc.message}"
            )
            raise ConversionError(
                "Falha ao desfazer a criação do equipamento", step="rollback"
            )
