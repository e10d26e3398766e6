import enum
import os
from typing import Optional

MAX_FILE_SIZE = 10 * 1024 * 1024

DANGEROUS_EXTENSIONS = (
    ".exe", ".bat", ".cmd", ".com", ".scr", ".msi", ".vbs", ".js",
    ".jar", ".ps1", ".sh", ".php", ".dll",
)


class AttachmentCategory(str, enum.Enum):
    INVOICE = "invoice"
    PURCHASE_ORDER = "purchase_order"
    MANUAL = "manual"
    OTHER = "other"


# Checked in order; the first matching keyword wins.
CATEGORY_KEYWORDS = (
    (AttachmentCategory.INVOICE, ("nota fiscal", "nota_fiscal", "notafiscal", "nfe", "nf e", "danfe", "invoice", "fatura")),
    (AttachmentCategory.PURCHASE_ORDER, ("pedido", "ordem de compra", "ordem_compra", "purchase order", "purchase_order", "orcamento", "orçamento")),
    (AttachmentCategory.MANUAL, ("manual", "guia", "guide", "instru")),
)

XML_MIME_TYPES = ("application/xml", "text/xml")


def file_extension(name: str) -> str:
    return os.path.splitext(name)[1].lower()


def dangerous_extension(name: str) -> Optional[str]:
    extension = file_extension(name)
    return extension if extension in DANGEROUS_EXTENSIONS else None


def infer_category(name: str, content_type: Optional[str]) -> AttachmentCategory:
    """Guess a display category from the file name and MIME type."""
    lowered = name.lower().replace("-", " ") if name else ""
    normalized = lowered.replace(" ", "_")
    for category, keywords in CATEGORY_KEYWORDS:
        for keyword in keywords:
            if keyword in lowered or keyword.replace(" ", "_") in normalized:
                return category
    # Electronic invoices are exchanged as XML.
    if (content_type or "").lower() in XML_MIME_TYPES:
        return AttachmentCategory.INVOICE
    return AttachmentCategory.OTHER


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    units = ("Bytes", "KB", "MB", "GB")
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[index]}"
