import base64
import logging
import re
from datetime import datetime, timezone
from typing import Optional, Sequence

import httpx

from inventory.domain.errors import SignatureServiceError
from inventory.domain.models import SignatureDocument, SignatureStatus, Signer

logger = logging.getLogger(__name__)


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    # Stored columns are naive UTC.
    if parsed.tzinfo:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class AssinafySignatureClient:
    """Talks to the Assinafy REST API; one short-lived httpx client per call."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        organization_id: str = "",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        if organization_id:
            self._headers["X-Organization-Id"] = organization_id
        self._timeout = timeout
        self._transport = transport

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> dict:
        url = f"{self._api_url}{path}"
        try:
            async with httpx.AsyncClient(
                headers=self._headers, timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(method, url, json=payload)
        except httpx.HTTPError as exc:
            logger.error(f"Assinafy request {method} {path} failed: {exc}")
            raise SignatureServiceError("Serviço de assinatura indisponível")

        if response.status_code >= 400:
            logger.error(f"Assinafy API error: {response.status_code} - {response.text}")
            raise SignatureServiceError(
                f"Erro no serviço de assinatura ({response.status_code})"
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise SignatureServiceError("Resposta inválida do serviço de assinatura")

    async def create_document(
        self, title: str, pdf_bytes: bytes, signers: Sequence[Signer]
    ) -> SignatureDocument:
        data = await self._request(
            "POST",
            "/documents",
            {
                "name": title,
                "file": base64.b64encode(pdf_bytes).decode("ascii"),
                "file_type": "pdf",
                "signers": [
                    {
                        "name": signer.name,
                        "email": signer.email,
                        "cpf": digits_only(signer.cpf),
                        "phone": digits_only(signer.phone),
                        "sign_type": "sign",
                    }
                    for signer in signers
                ],
                "auto_send": True,
                "signature_mode": "electronic",
                "lang": "pt-BR",
            },
        )
        if not data.get("id"):
            raise SignatureServiceError("Resposta inválida do serviço de assinatura")
        logger.info(f"Assinafy document created: {data['id']}")
        return SignatureDocument(
            id=str(data["id"]),
            document_url=data.get("document_url"),
            signer_ids=[str(s.get("id")) for s in data.get("signers", []) if s.get("id")],
        )

    async def get_status(self, document_id: str) -> SignatureStatus:
        data = await self._request("GET", f"/documents/{document_id}")
        signers = data.get("signers") or []
        signed_times = [_parse_timestamp(s.get("signed_at")) for s in signers]
        signed = data.get("status") == "signed" or (
            bool(signers) and all(signed_times)
        )
        signed_at = max((t for t in signed_times if t), default=None)
        return SignatureStatus(
            signed=signed,
            signed_at=signed_at,
            signed_document_url=data.get("signed_document_url"),
        )

    async def cancel_document(self, document_id: str, reason: str) -> None:
        await self._request("POST", f"/documents/{document_id}/cancel", {"reason": reason})
        logger.info(f"Assinafy document {document_id} cancelled")
