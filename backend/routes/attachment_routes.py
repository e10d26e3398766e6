"""
Attachment Routes
Invoices, manuals and other files kept against an equipment
"""
from fastapi import APIRouter, Depends, File, UploadFile

from inventory.application.attachment_use_cases import (
    ListAttachmentsUseCase,
    RemoveAttachmentUseCase,
    UploadAttachmentUseCase,
    UploadedFile,
)
from inventory.application.ports import BlobStorage
from inventory.domain.errors import DomainError
from inventory.domain.files import MAX_FILE_SIZE
from inventory.presentation.response_mapper import attachment_to_response, warnings_to_response
from routes.dependencies import (
    Inventory,
    get_actor,
    get_inventory,
    get_storage,
    to_http_exception,
)

attachment_router = APIRouter(prefix="/api", tags=["Attachments"])

CHUNK_SIZE = 1024 * 1024


async def read_upload(file: UploadFile, limit: int = MAX_FILE_SIZE):
    """Read at most limit + 1 bytes; returns (content, size) with size past the limit when too big."""
    if file.size is not None and file.size > limit:
        return b"", file.size
    chunks = []
    total = 0
    while total <= limit:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
        total += len(chunk)
    if total > limit:
        return b"", total
    return b"".join(chunks), total


@attachment_router.post("/equipment/{equipment_id}/attachments")
async def upload_attachment(
    equipment_id: str,
    file: UploadFile = File(...),
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
    storage: BlobStorage = Depends(get_storage),
):
    content, size = await read_upload(file)
    use_case = UploadAttachmentUseCase(
        equipment=inventory.equipment,
        attachments=inventory.attachments,
        storage=storage,
        history=inventory.history,
        id_generator=inventory.id_generator,
        clock=inventory.clock,
    )
    uploaded = UploadedFile(
        name=file.filename or "",
        content_type=file.content_type or "application/octet-stream",
        content=content,
        size=size,
    )
    try:
        result = await use_case.execute(equipment_id, uploaded, actor)
    except DomainError as exc:
        raise to_http_exception(exc)

    response = attachment_to_response(result)
    response["warnings"] = warnings_to_response(result.warnings)
    return response


@attachment_router.get("/equipment/{equipment_id}/attachments")
async def list_attachments(
    equipment_id: str,
    inventory: Inventory = Depends(get_inventory),
    storage: BlobStorage = Depends(get_storage),
):
    use_case = ListAttachmentsUseCase(inventory.equipment, inventory.attachments, storage)
    try:
        results = await use_case.execute(equipment_id)
    except DomainError as exc:
        raise to_http_exception(exc)
    return [attachment_to_response(result) for result in results]


@attachment_router.delete("/attachments/{attachment_id}")
async def remove_attachment(
    attachment_id: str,
    actor: str = Depends(get_actor),
    inventory: Inventory = Depends(get_inventory),
    storage: BlobStorage = Depends(get_storage),
):
    use_case = RemoveAttachmentUseCase(inventory.attachments, storage, inventory.history)
    try:
        warning = await use_case.execute(attachment_id, actor)
    except DomainError as exc:
        raise to_http_exception(exc)
    return {
        "message": "Arquivo removido com sucesso",
        "warnings": warnings_to_response([warning] if warning else []),
    }
