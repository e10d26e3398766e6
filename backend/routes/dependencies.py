"""
Shared wiring for the inventory routers
Repositories per request session, collaborators from settings, error translation
"""
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_session, inventory_settings
from inventory.application.history import HistoryRecorder
from inventory.application.ports import (
    BlobStorage,
    Clock,
    IdGenerator,
    SignatureProvider,
    TermDocumentRenderer,
)
from inventory.domain.errors import (
    ConversionError,
    DomainError,
    DuplicateAssetNumberError,
    DuplicateKeyError,
    FileTooLargeError,
    NotFoundError,
    PersistenceError,
    SignatureServiceError,
    StatusConflictError,
    ValidationError,
)
from inventory.infrastructure.signature_client import AssinafySignatureClient
from inventory.infrastructure.sqlalchemy_repository import (
    SqlAlchemyAttachmentRepository,
    SqlAlchemyEquipmentRepository,
    SqlAlchemyHistoryRepository,
    SqlAlchemyPurchaseRepository,
    SqlAlchemyTermRepository,
)
from inventory.infrastructure.storage import LocalBlobStorage
from inventory.infrastructure.term_pdf import ReportlabTermRenderer


def new_id() -> str:
    return str(uuid.uuid4())


def get_clock() -> Clock:
    return datetime.utcnow


def get_actor(x_user_name: Optional[str] = Header(None)) -> str:
    """Display name of the operator; falls back to the configured default."""
    return (x_user_name or "").strip() or inventory_settings.default_actor


def get_storage() -> BlobStorage:
    return LocalBlobStorage(inventory_settings.storage_root, inventory_settings.public_base_url)


def get_signature_provider() -> SignatureProvider:
    return AssinafySignatureClient(
        api_url=inventory_settings.signature_api_url,
        api_key=inventory_settings.signature_api_key,
        organization_id=inventory_settings.signature_org_id,
        timeout=inventory_settings.signature_timeout,
    )


def get_term_renderer() -> TermDocumentRenderer:
    return ReportlabTermRenderer()


@dataclass
class Inventory:
    equipment: SqlAlchemyEquipmentRepository
    history_repository: SqlAlchemyHistoryRepository
    attachments: SqlAlchemyAttachmentRepository
    purchases: SqlAlchemyPurchaseRepository
    terms: SqlAlchemyTermRepository
    history: HistoryRecorder
    id_generator: IdGenerator
    clock: Clock


def get_inventory(
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> Inventory:
    history_repository = SqlAlchemyHistoryRepository(session)
    return Inventory(
        equipment=SqlAlchemyEquipmentRepository(session),
        history_repository=history_repository,
        attachments=SqlAlchemyAttachmentRepository(session),
        purchases=SqlAlchemyPurchaseRepository(session),
        terms=SqlAlchemyTermRepository(session),
        history=HistoryRecorder(history_repository, new_id, clock),
        id_generator=new_id,
        clock=clock,
    )


def to_http_exception(exc: DomainError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail={"message": exc.message, "errors": exc.errors})
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, (DuplicateAssetNumberError, DuplicateKeyError, StatusConflictError)):
        return HTTPException(status_code=409, detail=exc.message)
    if isinstance(exc, FileTooLargeError):
        return HTTPException(status_code=413, detail=exc.message)
    if isinstance(exc, PersistenceError):
        return HTTPException(status_code=503, detail=exc.message)
    if isinstance(exc, ConversionError):
        return HTTPException(status_code=500, detail={"message": exc.message, "step": exc.step})
    if isinstance(exc, SignatureServiceError):
        return HTTPException(status_code=502, detail=exc.message)
    return HTTPException(status_code=400, detail=exc.message)
