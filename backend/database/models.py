"""
Database Models - SQLAlchemy ORM
Tables for the equipment inventory
"""
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
import uuid as uuid_lib

from .connection import Base


# ==================== EQUIPMENT MODEL ====================

class EquipmentRow(Base):
    """Equipment table - one physical IT asset per row"""
    __tablename__ = "equipments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid_lib.uuid4()))
    asset_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    asset_sequence: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    brand: Mapped[str] = mapped_column(String(255), nullable=False)
    model: Mapped[str] = mapped_column(String(255), nullable=False)
    specs: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    responsible: Mapped[str] = mapped_column(String(255), nullable=False)
    acquisition_date: Mapped[date] = mapped_column(Date, nullable=False)
    invoice_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    maintenance_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    __table_args__ = (
        Index('idx_equipments_status_created_at', 'status', 'created_at'),
    )


# ==================== HISTORY MODEL ====================

class HistoryEntryRow(Base):
    """History entries - append-only audit trail"""
    __tablename__ = "history_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid_lib.uuid4()))
    equipment_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("equipments.id"), nullable=True, index=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    change_type: Mapped[str] = mapped_column(String(30), nullable=False)
    field: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    old_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index('idx_history_entity', 'entity_type', 'entity_id'),
        Index('idx_history_equipment_timestamp', 'equipment_id', 'timestamp'),
    )


# ==================== ATTACHMENT MODEL ====================

class AttachmentRow(Base):
    """Attachments - file metadata; bytes live in blob storage"""
    __tablename__ = "attachments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid_lib.uuid4()))
    equipment_id: Mapped[str] = mapped_column(String(36), ForeignKey("equipments.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(512), nullable=False)
    uploaded_by: Mapped[str] = mapped_column(String(255), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


# ==================== PURCHASE REQUEST MODEL ====================

class PurchaseRequestRow(Base):
    """Purchase requests - pending acquisitions"""
    __tablename__ = "equipment_purchases"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid_lib.uuid4()))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="other")
    estimated_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    estimated_unit_value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    estimated_total_value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    urgency: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    requested_by: Mapped[str] = mapped_column(String(255), nullable=False)
    request_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    supplier: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    brand: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    specifications: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    approved_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    approval_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# ==================== RESPONSIBILITY TERM MODEL ====================

class ResponsibilityTermRow(Base):
    """Responsibility terms - custody documents sent for e-signature"""
    __tablename__ = "responsibility_terms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid_lib.uuid4()))
    equipment_id: Mapped[str] = mapped_column(String(36), ForeignKey("equipments.id"), nullable=False, index=True)
    responsible_person: Mapped[str] = mapped_column(String(255), nullable=False)
    responsible_email: Mapped[str] = mapped_column(String(255), nullable=False)
    responsible_phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    responsible_department: Mapped[str] = mapped_column(String(255), nullable=False)
    term_date: Mapped[date] = mapped_column(Date, nullable=False)
    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pdf_path: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    pdf_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    signature_document_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    signed_document_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
