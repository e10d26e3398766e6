"""
History Routes
Read-only views over the audit trail
"""
from fastapi import APIRouter, Depends

from inventory.domain.errors import DomainError
from inventory.domain.models import EntityType
from inventory.presentation.response_mapper import history_entry_to_response
from routes.dependencies import Inventory, get_inventory, to_http_exception

history_router = APIRouter(prefix="/api/history", tags=["History"])


@history_router.get("/recent")
async def recent_history(limit: int = 10, inventory: Inventory = Depends(get_inventory)):
    """Latest entries across every entity, for the dashboard"""
    try:
        entries = await inventory.history.recent(min(limit, 100))
    except DomainError as exc:
        raise to_http_exception(exc)
    return [history_entry_to_response(entry) for entry in entries]


@history_router.get("/{entity_type}/{entity_id}")
async def entity_history(
    entity_type: EntityType,
    entity_id: str,
    inventory: Inventory = Depends(get_inventory),
):
    try:
        entries = await inventory.history.entity_history(entity_type, entity_id)
    except DomainError as exc:
        raise to_http_exception(exc)
    return [history_entry_to_response(entry) for entry in entries]
