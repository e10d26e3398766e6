"""
Equipment Routes
Register, edit, transfer, maintain and retire inventory items
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from inventory.application.equipment_use_cases import (
    CreateEquipmentCommand,
    CreateEquipmentUseCase,
    DeleteEquipmentUseCase,
    EquipmentHistoryUseCase,
    EquipmentStatsUseCase,
    GetEquipmentUseCase,
    ListEquipmentQuery,
    ListEquipmentUseCase,
    NextAssetNumberUseCase,
    ReassignAssetNumberUseCase,
    RegisterMaintenanceUseCase,
    TransferEquipmentCommand,
    TransferEquipmentUseCase,
    UpdateEquipmentCommand,
    UpdateEquipmentUseCase,
)
from inventory.domain.errors import DomainError
from inventory.domain.models import EquipmentStatus
from inventory.presentation.response_mapper import (
    equipment_stats_to_response,
    equipment_to_response,
    history_entry_to_response,
    warnings_to_response,
)
from routes.dependencies import Inventory, get_actor, get_inventory, to_http_exception

equipment_router = APIRouter(prefix="/api/equipment", tags=["Equipment"])


# ==================== PYDANTIC MODELS ====================

class EquipmentCreate(BaseModel):
    description: str
    brand: str
    model: str
    location: str
    responsible: str
    value: float
    acquisition_date: Optional[date] = None
    specs: Optional[str] = None
    status: EquipmentStatus = EquipmentStatus.ACTIVE
    invoice_date: Optional[date] = None
    maintenance_description: Optional[str] = None
    asset_number: Optional[str] = None


class EquipmentUpdate(BaseModel):
    asset_number: Optional[str] = None
    description: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    specs: Optional[str] = None
    status: Optional[EquipmentStatus] = None
    location: Optional[str] = None
    responsible: Optional[str] = None
    acquisition_date: Optional[date] = None
    invoice_date: Optional[date] = None
    value: Optional[float] = None
    maintenance_description: Optional[str] = None


class AssetNumberData(BaseModel):
    asset_number: str


class TransferData(BaseModel):
    new_location: str
    transfer_date: Optional[date] = None
    responsible_person: Optional[str] = None
    observations: Optional[str] = None


class MaintenanceData(BaseModel):
    description: str


def _with_warnings(result) -> dict:
    response = equipment_to_response(result.equipment)
    response["warnings"] = warnings_to_response(result.warnings)
    return response


# ==================== EQUIPMENT ROUTES ====================

@equipment_router.post("")
async def create_equipment(
    data: EquipmentCreate,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
):
    """Register equipment; the asset number is generated when omitted"""
    use_case = CreateEquipmentUseCase(
        repository=inventory.equipment,
        history=inventory.history,
        id_generator=inventory.id_generator,
        clock=inventory.clock,
    )
    try:
        result = await use_case.execute(CreateEquipmentCommand(**data.model_dump()), actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)


@equipment_router.get("")
async def list_equipment(
    status: Optional[EquipmentStatus] = None,
    location: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    inventory: Inventory = Depends(get_inventory),
):
    query = ListEquipmentQuery(
        status=status, location=location, search=search, limit=limit, offset=offset
    )
    try:
        items = await ListEquipmentUseCase(inventory.equipment).execute(query)
    except DomainError as exc:
        raise to_http_exception(exc)
    return [equipment_to_response(item) for item in items]


@equipment_router.get("/stats")
async def equipment_stats(inventory: Inventory = Depends(get_inventory)):
    try:
        stats = await EquipmentStatsUseCase(inventory.equipment).execute()
    except DomainError as exc:
        raise to_http_exception(exc)
    return equipment_stats_to_response(stats)


@equipment_router.get("/next-asset-number")
async def next_asset_number(inventory: Inventory = Depends(get_inventory)):
    """Preview only - the number is claimed when the equipment is created"""
    try:
        asset_number = await NextAssetNumberUseCase(inventory.equipment).execute()
    except DomainError as exc:
        raise to_http_exception(exc)
    return {"asset_number": asset_number}


@equipment_router.get("/{equipment_id}")
async def get_equipment(equipment_id: str, inventory: Inventory = Depends(get_inventory)):
    try:
        equipment = await GetEquipmentUseCase(inventory.equipment).execute(equipment_id)
    except DomainError as exc:
        raise to_http_exception(exc)
    return equipment_to_response(equipment)


@equipment_router.put("/{equipment_id}")
async def update_equipment(
    equipment_id: str,
    data: EquipmentUpdate,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
):
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nenhuma alteração informada")

    use_case = UpdateEquipmentUseCase(inventory.equipment, inventory.history, inventory.clock)
    try:
        result = await use_case.execute(UpdateEquipmentCommand(equipment_id, changes), actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)


@equipment_router.put("/{equipment_id}/asset-number")
async def reassign_asset_number(
    equipment_id: str,
    data: AssetNumberData,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
):
    use_case = ReassignAssetNumberUseCase(inventory.equipment, inventory.history, inventory.clock)
    try:
        result = await use_case.execute(equipment_id, data.asset_number, actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)


@equipment_router.post("/{equipment_id}/transfer")
async def transfer_equipment(
    equipment_id: str,
    data: TransferData,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
):
    use_case = TransferEquipmentUseCase(inventory.equipment, inventory.history, inventory.clock)
    command = TransferEquipmentCommand(
        equipment_id=equipment_id,
        new_location=data.new_location,
        transfer_date=data.transfer_date,
        responsible_person=data.responsible_person,
        observations=data.observations,
    )
    try:
        result = await use_case.execute(command, actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)


@equipment_router.post("/{equipment_id}/maintenance")
async def register_maintenance(
    equipment_id: str,
    data: MaintenanceData,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
):
    use_case = RegisterMaintenanceUseCase(inventory.equipment, inventory.history, inventory.clock)
    try:
        result = await use_case.execute(equipment_id, data.description, actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)


@equipment_router.delete("/{equipment_id}")
async def delete_equipment(
    equipment_id: str,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
):
    use_case = DeleteEquipmentUseCase(inventory.equipment, inventory.history, inventory.clock)
    try:
        await use_case.execute(equipment_id, actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return {"message": "Equipamento excluído com sucesso"}


@equipment_router.get("/{equipment_id}/history")
async def equipment_history(equipment_id: str, inventory: Inventory = Depends(get_inventory)):
    use_case = EquipmentHistoryUseCase(inventory.equipment, inventory.history)
    try:
        entries = await use_case.execute(equipment_id)
    except DomainError as exc:
        raise to_http_exception(exc)
    return [history_entry_to_response(entry) for entry in entries]
