from typing import Any, Dict, Optional, Sequence

from inventory.application.attachment_use_cases import AttachmentResult
from inventory.application.history import AuditWarning
from inventory.domain.files import format_file_size
from inventory.domain.models import (
    Equipment,
    EquipmentStats,
    HistoryEntry,
    PurchaseRequest,
    PurchaseStats,
    ResponsibilityTerm,
)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def equipment_to_response(equipment: Equipment) -> Dict[str, Any]:
    return {
        "id": equipment.id,
        "asset_number": equipment.asset_number,
        "description": equipment.description,
        "brand": equipment.brand,
        "model": equipment.model,
        "specs": equipment.specs,
        "status": equipment.status.value,
        "location": equipment.location,
        "responsible": equipment.responsible,
        "acquisition_date": _iso(equipment.acquisition_date),
        "invoice_date": _iso(equipment.invoice_date),
        "value": equipment.value,
        "maintenance_description": equipment.maintenance_description,
        "created_at": _iso(equipment.created_at),
        "updated_at": _iso(equipment.updated_at),
    }


def history_entry_to_response(entry: HistoryEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "equipment_id": entry.equipment_id,
        "entity_type": entry.entity_type.value,
        "entity_id": entry.entity_id,
        "user": entry.user,
        "change_type": entry.change_type.value,
        "field": entry.field,
        "old_value": entry.old_value,
        "new_value": entry.new_value,
        "notes": entry.notes,
        "timestamp": _iso(entry.timestamp),
    }


def attachment_to_response(result: AttachmentResult) -> Dict[str, Any]:
    attachment = result.attachment
    return {
        "id": attachment.id,
        "equipment_id": attachment.equipment_id,
        "name": attachment.name,
        "size": attachment.size,
        "size_label": format_file_size(attachment.size),
        "type": attachment.type,
        "category": result.category.value,
        "url": attachment.url,
        "uploaded_by": attachment.uploaded_by,
        "uploaded_at": _iso(attachment.uploaded_at),
    }


def purchase_to_response(purchase: PurchaseRequest) -> Dict[str, Any]:
    return {
        "id": purchase.id,
        "description": purchase.description,
        "category": purchase.category.value,
        "estimated_quantity": purchase.estimated_quantity,
        "estimated_unit_value": purchase.estimated_unit_value,
        "estimated_total_value": purchase.estimated_total_value,
        "urgency": purchase.urgency.value,
        "status": purchase.status.value,
        "requested_by": purchase.requested_by,
        "request_date": _iso(purchase.request_date),
        "expected_date": _iso(purchase.expected_date),
        "supplier": purchase.supplier,
        "observations": purchase.observations,
        "brand": purchase.brand,
        "model": purchase.model,
        "specifications": purchase.specifications,
        "location": purchase.location,
        "approved_by": purchase.approved_by,
        "approval_date": _iso(purchase.approval_date),
        "rejection_reason": purchase.rejection_reason,
        "created_at": _iso(purchase.created_at),
        "updated_at": _iso(purchase.updated_at),
    }


def term_to_response(term: ResponsibilityTerm) -> Dict[str, Any]:
    return {
        "id": term.id,
        "equipment_id": term.equipment_id,
        "responsible_person": term.responsible_person,
        "responsible_email": term.responsible_email,
        "responsible_phone": term.responsible_phone,
        "responsible_department": term.responsible_department,
        "term_date": _iso(term.term_date),
        "observations": term.observations,
        "status": term.status.value,
        "pdf_url": term.pdf_url,
        "signature_document_id": term.signature_document_id,
        "signed_at": _iso(term.signed_at),
        "signed_document_url": term.signed_document_url,
        "created_at": _iso(term.created_at),
        "updated_at": _iso(term.updated_at),
    }


def warnings_to_response(warnings: Sequence[AuditWarning]) -> list:
    return [{"message": warning.message, "error": warning.error} for warning in warnings]


def equipment_stats_to_response(stats: EquipmentStats) -> Dict[str, Any]:
    return {
        "total": stats.total,
        "active": stats.active,
        "maintenance": stats.maintenance,
        "retired": stats.retired,
        "total_value": stats.total_value,
    }


def purchase_stats_to_response(stats: PurchaseStats) -> Dict[str, Any]:
    return {
        "total": stats.total,
        "pending": stats.pending,
        "approved": stats.approved,
        "rejected": stats.rejected,
        "acquired": stats.acquired,
    }
