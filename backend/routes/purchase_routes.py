"""
Purchase Request Routes
Planned acquisitions and their conversion into inventory
"""
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from inventory.application.conversion import ConvertPurchaseCommand, ConvertPurchaseUseCase
from inventory.application.equipment_use_cases import CreateEquipmentUseCase
from inventory.application.purchase_use_cases import (
    ApprovePurchaseUseCase,
    CreatePurchaseCommand,
    CreatePurchaseUseCase,
    DeletePurchaseUseCase,
    GetPurchaseUseCase,
    ListPurchasesUseCase,
    PurchaseStatsUseCase,
    RejectPurchaseUseCase,
    UpdatePurchaseCommand,
    UpdatePurchaseUseCase,
)
from inventory.domain.errors import DomainError
from inventory.domain.models import (
    EquipmentStatus,
    PurchaseCategory,
    PurchaseStatus,
    PurchaseUrgency,
)
from inventory.presentation.response_mapper import (
    equipment_to_response,
    purchase_stats_to_response,
    purchase_to_response,
    warnings_to_response,
)
from routes.dependencies import Inventory, get_actor, get_inventory, to_http_exception

purchase_router = APIRouter(prefix="/api/purchases", tags=["Purchase Requests"])


# ==================== PYDANTIC MODELS ====================

class PurchaseCreate(BaseModel):
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


class PurchaseUpdate(BaseModel):
    description: Optional[str] = None
    category: Optional[PurchaseCategory] = None
    estimated_quantity: Optional[int] = None
    estimated_unit_value: Optional[float] = None
    urgency: Optional[PurchaseUrgency] = None
    expected_date: Optional[date] = None
    supplier: Optional[str] = None
    observations: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    specifications: Optional[str] = None
    location: Optional[str] = None


class RejectPurchaseData(BaseModel):
    reason: str


class ConvertPurchaseData(BaseModel):
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


def _with_warnings(result) -> dict:
    response = purchase_to_response(result.purchase)
    response["warnings"] = warnings_to_response(result.warnings)
    return response


# ==================== PURCHASE ROUTES ====================

@purchase_router.post("")
async def create_purchase(
    data: PurchaseCreate,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
):
    use_case = CreatePurchaseUseCase(
        repository=inventory.purchases,
        history=inventory.history,
        id_generator=inventory.id_generator,
        clock=inventory.clock,
    )
    try:
        result = await use_case.execute(CreatePurchaseCommand(**data.model_dump()), actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)


@purchase_router.get("")
async def list_purchases(
    status: Optional[PurchaseStatus] = None,
    inventory: Inventory = Depends(get_inventory),
):
    try:
        purchases = await ListPurchasesUseCase(inventory.purchases).execute(status)
    except DomainError as exc:
        raise to_http_exception(exc)
    return [purchase_to_response(purchase) for purchase in purchases]


@purchase_router.get("/stats")
async def purchase_stats(inventory: Inventory = Depends(get_inventory)):
    try:
        stats = await PurchaseStatsUseCase(inventory.purchases).execute()
    except DomainError as exc:
        raise to_http_exception(exc)
    return purchase_stats_to_response(stats)


@purchase_router.get("/{purchase_id}")
async def get_purchase(purchase_id: str, inventory: Inventory = Depends(get_inventory)):
    try:
        purchase = await GetPurchaseUseCase(inventory.purchases).execute(purchase_id)
    except DomainError as exc:
        raise to_http_exception(exc)
    return purchase_to_response(purchase)


@purchase_router.put("/{purchase_id}")
async def update_purchase(
    purchase_id: str,
    data: PurchaseUpdate,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
):
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nenhuma alteração informada")

    use_case = UpdatePurchaseUseCase(inventory.purchases, inventory.history, inventory.clock)
    try:
        result = await use_case.execute(UpdatePurchaseCommand(purchase_id, changes), actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)


@purchase_router.post("/{purchase_id}/approve")
async def approve_purchase(
    purchase_id: str,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
):
    use_case = ApprovePurchaseUseCase(inventory.purchases, inventory.history, inventory.clock)
    try:
        result = await use_case.execute(purchase_id, actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)


@purchase_router.post("/{purchase_id}/reject")
async def reject_purchase(
    purchase_id: str,
    data: RejectPurchaseData,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
):
    use_case = RejectPurchaseUseCase(inventory.purchases, inventory.history, inventory.clock)
    try:
        result = await use_case.execute(purchase_id, data.reason, actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)


@purchase_router.delete("/{purchase_id}")
async def delete_purchase(
    purchase_id: str,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
):
    try:
        warning = await DeletePurchaseUseCase(inventory.purchases, inventory.history).execute(
            purchase_id, actor
        )
    except DomainError as exc:
        raise to_http_exception(exc)
    return {
        "message": "Solicitação excluída com sucesso",
        "warnings": warnings_to_response([warning] if warning else []),
    }


@purchase_router.post("/{purchase_id}/convert")
async def convert_purchase(
    purchase_id: str,
    data: ConvertPurchaseData,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
):
    """Turn a purchase request into an inventory item; all-or-nothing"""
    create_equipment = CreateEquipmentUseCase(
        repository=inventory.equipment,
        history=inventory.history,
        id_generator=inventory.id_generator,
        clock=inventory.clock,
    )
    use_case = ConvertPurchaseUseCase(
        purchases=inventory.purchases,
        equipment=inventory.equipment,
        create_equipment=create_equipment,
        history=inventory.history,
        clock=inventory.clock,
    )
    try:
        result = await use_case.execute(
            ConvertPurchaseCommand(purchase_id=purchase_id, **data.model_dump()), actor
        )
    except DomainError as exc:
        raise to_http_exception(exc)
    return {
        "equipment": equipment_to_response(result.equipment),
        "purchase": purchase_to_response(result.purchase),
        "warnings": warnings_to_response(result.warnings),
    }
