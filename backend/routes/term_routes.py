"""
Responsibility Term Routes
Custody terms rendered as PDF and sent for electronic signature
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from inventory.application.attachment_use_cases import UploadAttachmentUseCase
from inventory.application.ports import BlobStorage, SignatureProvider, TermDocumentRenderer
from inventory.application.term_use_cases import (
    CancelTermUseCase,
    CreateTermCommand,
    CreateTermUseCase,
    ListTermsUseCase,
    RefreshTermStatusUseCase,
    SendTermForSignatureUseCase,
    load_term,
)
from inventory.domain.errors import DomainError
from inventory.domain.models import Signer
from inventory.presentation.response_mapper import term_to_response, warnings_to_response
from routes.dependencies import (
    Inventory,
    get_actor,
    get_inventory,
    get_signature_provider,
    get_storage,
    get_term_renderer,
    to_http_exception,
)

term_router = APIRouter(prefix="/api/terms", tags=["Responsibility Terms"])


# ==================== PYDANTIC MODELS ====================

class TermCreate(BaseModel):
    equipment_id: str
    responsible_person: str
    responsible_email: str
    responsible_department: str
    term_date: date
    responsible_phone: str = ""
    observations: Optional[str] = None


class SignerData(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    cpf: str = ""
    phone: str = ""


class CancelTermData(BaseModel):
    reason: Optional[str] = None


def _with_warnings(result) -> dict:
    response = term_to_response(result.term)
    response["warnings"] = warnings_to_response(result.warnings)
    return response


# ==================== TERM ROUTES ====================

@term_router.post("")
async def create_term(
    data: TermCreate,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
    storage: BlobStorage = Depends(get_storage),
    renderer: TermDocumentRenderer = Depends(get_term_renderer),
):
    """Render the term PDF, attach it to the equipment and save it as draft"""
    uploads = UploadAttachmentUseCase(
        equipment=inventory.equipment,
        attachments=inventory.attachments,
        storage=storage,
        history=inventory.history,
        id_generator=inventory.id_generator,
        clock=inventory.clock,
    )
    use_case = CreateTermUseCase(
        equipment=inventory.equipment,
        terms=inventory.terms,
        uploads=uploads,
        renderer=renderer,
        history=inventory.history,
        id_generator=inventory.id_generator,
        clock=inventory.clock,
    )
    try:
        result = await use_case.execute(CreateTermCommand(**data.model_dump()), actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)


@term_router.get("")
async def list_terms(equipment_id: str, inventory: Inventory = Depends(get_inventory)):
    try:
        terms = await ListTermsUseCase(inventory.equipment, inventory.terms).execute(equipment_id)
    except DomainError as exc:
        raise to_http_exception(exc)
    return [term_to_response(term) for term in terms]


@term_router.get("/{term_id}")
async def get_term(term_id: str, inventory: Inventory = Depends(get_inventory)):
    try:
        term = await load_term(inventory.terms, term_id)
    except DomainError as exc:
        raise to_http_exception(exc)
    return term_to_response(term)


@term_router.post("/{term_id}/send")
async def send_term_for_signature(
    term_id: str,
    data: Optional[SignerData] = None,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
    storage: BlobStorage = Depends(get_storage),
    provider: SignatureProvider = Depends(get_signature_provider),
):
    use_case = SendTermForSignatureUseCase(
        terms=inventory.terms,
        storage=storage,
        provider=provider,
        history=inventory.history,
        clock=inventory.clock,
    )
    try:
        signer = None
        if data and (data.name or data.email or data.cpf or data.phone):
            term = await load_term(inventory.terms, term_id)
            signer = Signer(
                name=data.name or term.responsible_person,
                email=data.email or term.responsible_email,
                cpf=data.cpf,
                phone=data.phone or term.responsible_phone,
            )
        result = await use_case.execute(term_id, actor, signer)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)


@term_router.post("/{term_id}/refresh")
async def refresh_term_status(
    term_id: str,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
    provider: SignatureProvider = Depends(get_signature_provider),
):
    """Poll the signature provider; repeated calls are harmless"""
    use_case = RefreshTermStatusUseCase(inventory.terms, provider, inventory.history, inventory.clock)
    try:
        result = await use_case.execute(term_id, actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)


@term_router.post("/{term_id}/cancel")
async def cancel_term(
    term_id: str,
    data: Optional[CancelTermData] = None,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
    provider: SignatureProvider = Depends(get_signature_provider),
):
    use_case = CancelTermUseCase(inventory.terms, provider, inventory.history, inventory.clock)
    try:
        result = await use_case.execute(term_id, actor, data.reason if data else None)
    except DomainError as exc:
        raise to_http_exception(exc)
    return _with_warnings(result)
