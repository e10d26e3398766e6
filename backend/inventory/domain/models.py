import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence


class EquipmentStatus(str, enum.Enum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"


class ChangeType(str, enum.Enum):
    CREATED = "created"
    EDITED = "edited"
    DELETED = "deleted"
    MAINTENANCE = "maintenance"
    STATUS_CHANGED = "status-changed"
    ATTACHED_FILE = "attached-file"
    REMOVED_FILE = "removed-file"
    TRANSFERRED = "transferred"


class EntityType(str, enum.Enum):
    EQUIPMENT = "equipment"
    PURCHASE = "purchase"
    RESPONSIBILITY_TERM = "responsibility_term"


class PurchaseUrgency(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class PurchaseStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACQUIRED = "acquired"


class PurchaseCategory(str, enum.Enum):
    COMPUTER = "computer"
    PERIPHERAL = "peripheral"
    NETWORK = "network"
    FURNITURE = "furniture"
    SOFTWARE = "software"
    OTHER = "other"


class TermStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    SIGNED = "signed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Equipment:
    id: str
    asset_number: str
    description: str
    brand: str
    model: str
    status: EquipmentStatus
    location: str
    responsible: str
    acquisition_date: date
    value: float
    created_at: datetime
    updated_at: datetime
    specs: Optional[str] = None
    invoice_date: Optional[date] = None
    maintenance_description: Optional[str] = None
    deleted_at: Optional[datetime] = None


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    equipment_id: Optional[str]
    entity_type: EntityType
    entity_id: str
    user: str
    change_type: ChangeType
    timestamp: datetime
    field: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Attachment:
    id: str
    equipment_id: str
    name: str
    size: int
    type: str
    file_path: str
    uploaded_by: str
    uploaded_at: datetime
    url: Optional[str] = None


@dataclass(frozen=True)
class PurchaseRequest:
    id: str
    description: str
    category: PurchaseCategory
    estimated_quantity: int
    estimated_unit_value: float
    estimated_total_value: float
    urgency: PurchaseUrgency
    status: PurchaseStatus
    requested_by: str
    request_date: date
    created_at: datetime
    updated_at: datetime
    expected_date: Optional[date] = None
    supplier: Optional[str] = None
    observations: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    specifications: Optional[str] = None
    location: Optional[str] = None
    approved_by: Optional[str] = None
    approval_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None


@dataclass(frozen=True)
class ResponsibilityTerm:
    id: str
    equipment_id: str
    responsible_person: str
    responsible_email: str
    responsible_phone: str
    responsible_department: str
    term_date: date
    status: TermStatus
    created_at: datetime
    updated_at: datetime
    observations: Optional[str] = None
    pdf_path: Optional[str] = None
    pdf_url: Optional[str] = None
    signature_document_id: Optional[str] = None
    signed_at: Optional[datetime] = None
    signed_document_url: Optional[str] = None


@dataclass(frozen=True)
class EquipmentFilters:
    status: Optional[EquipmentStatus] = None
    location: Optional[str] = None
    search: Optional[str] = None
    limit: int = 100
    offset: int = 0


@dataclass(frozen=True)
class EquipmentStats:
    total: int
    active: int
    maintenance: int
    retired: int
    total_value: float


@dataclass(frozen=True)
class PurchaseStats:
    total: int
    pending: int
    approved: int
    rejected: int
    acquired: int


@dataclass(frozen=True)
class Signer:
    name: str
    email: str
    cpf: str = ""
    phone: str = ""


@dataclass(frozen=True)
class SignatureDocument:
    id: str
    document_url: Optional[str] = None
    signer_ids: Sequence[str] = field(default_factory=list)


@dataclass(frozen=True)
class SignatureStatus:
    signed: bool
    signed_at: Optional[datetime] = None
    signed_document_url: Optional[str] = None
