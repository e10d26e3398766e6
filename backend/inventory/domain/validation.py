"""
Field-level validators for equipment, transfers and purchase requests.
Pure functions: callers pass ``today`` so results never depend on the wall clock.
"""
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Mapping, Optional

from inventory.domain.errors import ValidationError
from inventory.domain.models import (
    Equipment,
    EquipmentStatus,
    PurchaseCategory,
    PurchaseUrgency,
)

ASSET_PREFIX = "TOP-"
ASSET_NUMBER_PATTERN = re.compile(r"^TOP-\d{4}$")
MIN_LOCATION_LENGTH = 3

REQUIRED_EQUIPMENT_FIELDS = {
    "description": "Descrição é obrigatória",
    "brand": "Marca é obrigatória",
    "model": "Modelo é obrigatório",
    "location": "Localização é obrigatória",
    "responsible": "Responsável é obrigatório",
    "acquisition_date": "Data de aquisição é obrigatória",
}


@dataclass(frozen=True)
class ValidationResult:
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def raise_if_invalid(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        return None


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def is_valid_asset_number(asset_number: Optional[str]) -> bool:
    return bool(asset_number) and bool(ASSET_NUMBER_PATTERN.match(asset_number))


def parse_asset_sequence(asset_number: Optional[str]) -> Optional[int]:
    """Return the numeric suffix of a ``TOP-`` asset number, or None."""
    if not asset_number or not asset_number.startswith(ASSET_PREFIX):
        return None
    suffix = asset_number[len(ASSET_PREFIX):]
    if not suffix.isdigit():
        return None
    return int(suffix)


def format_asset_number(sequence: int) -> str:
    return f"{ASSET_PREFIX}{sequence:04d}"


def validate_equipment(fields: Mapping[str, Any], today: date) -> ValidationResult:
    errors: Dict[str, str] = {}

    for name, message in REQUIRED_EQUIPMENT_FIELDS.items():
        if _is_blank(fields.get(name)):
            errors[name] = message

    asset_number = fields.get("asset_number")
    if asset_number is not None and not is_valid_asset_number(asset_number):
        errors["asset_number"] = "Formato inválido. Use TOP-0000"

    status = fields.get("status") or EquipmentStatus.ACTIVE
    try:
        status = EquipmentStatus(status)
    except ValueError:
        errors["status"] = "Status inválido"
        status = None

    value = _as_number(fields.get("value"))
    if value is None or value <= 0:
        errors["value"] = "Valor deve ser maior que zero"

    if "acquisition_date" not in errors:
        acquisition_date = _as_date(fields.get("acquisition_date"))
        if acquisition_date is None:
            errors["acquisition_date"] = "Data de aquisição inválida"
        elif acquisition_date > today:
            errors["acquisition_date"] = "Data de aquisição não pode ser futura"

    invoice_date = fields.get("invoice_date")
    if invoice_date is not None and _as_date(invoice_date) is None:
        errors["invoice_date"] = "Data da nota fiscal inválida"

    if status == EquipmentStatus.MAINTENANCE and _is_blank(fields.get("maintenance_description")):
        errors["maintenance_description"] = (
            'Descrição da manutenção é obrigatória quando o status é "Em Manutenção"'
        )

    return ValidationResult(errors)


def same_location(first: Optional[str], second: Optional[str]) -> bool:
    return (first or "").strip().casefold() == (second or "").strip().casefold()


def validate_transfer(
    current: Equipment,
    new_location: Optional[str],
    transfer_date: Optional[date],
    today: date,
) -> ValidationResult:
    errors: Dict[str, str] = {}
    location = (new_location or "").strip()

    if not location:
        errors["location"] = "Nova localização é obrigatória"
    elif len(location) < MIN_LOCATION_LENGTH:
        errors["location"] = "Localização deve ter pelo menos 3 caracteres"
    elif same_location(location, current.location):
        errors["location"] = "A nova localização deve ser diferente da atual"

    if transfer_date is None:
        errors["transfer_date"] = "Data da transferência é obrigatória"
    elif transfer_date > today:
        errors["transfer_date"] = "Data da transferência não pode ser futura"
    elif transfer_date < current.acquisition_date:
        errors["transfer_date"] = "Data da transferência não pode ser anterior à aquisição"

    return ValidationResult(errors)


def validate_purchase(fields: Mapping[str, Any], today: date, creating: bool) -> ValidationResult:
    errors: Dict[str, str] = {}

    if _is_blank(fields.get("description")):
        errors["description"] = "Descrição é obrigatória"
    if _is_blank(fields.get("requested_by")):
        errors["requested_by"] = "Solicitante é obrigatório"

    quantity = fields.get("estimated_quantity")
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        errors["estimated_quantity"] = "Quantidade deve ser maior que zero"

    unit_value = _as_number(fields.get("estimated_unit_value"))
    if unit_value is None or unit_value < 0:
        errors["estimated_unit_value"] = "Valor unitário não pode ser negativo"

    try:
        PurchaseUrgency(fields.get("urgency"))
    except ValueError:
        errors["urgency"] = "Urgência inválida"

    try:
        PurchaseCategory(fields.get("category") or PurchaseCategory.OTHER)
    except ValueError:
        errors["category"] = "Categoria inválida"

    request_date = _as_date(fields.get("request_date"))
    if request_date is None:
        errors["request_date"] = "Data da solicitação é obrigatória"

    expected_date = fields.get("expected_date")
    if expected_date is not None:
        parsed = _as_date(expected_date)
        if parsed is None:
            errors["expected_date"] = "Data prevista inválida"
        elif creating and parsed < today:
            errors["expected_date"] = "Data prevista não pode estar no passado"

    return ValidationResult(errors)
