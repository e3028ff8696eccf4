"""JSON persistence for estimates, plain and embedded in exported PDFs.

Exported PDFs carry a recovery copy of the document after their own
``%%EOF`` so the file can be imported back for editing:

    \\n%---INVOICE_DATA_START---%\\n<percent-encoded JSON>\\n%---INVOICE_DATA_END---%

PDF readers ignore trailing bytes, and percent-encoding keeps the payload
plain ASCII no matter what the document text contains.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from urllib.parse import quote, unquote

from quotebot.estimate.editor import coerce_font, coerce_template
from quotebot.estimate.models import (
    DEFAULT_TITLE,
    EstimateDocument,
    LineItem,
    PaymentInfo,
    Recipient,
    Sender,
)
from quotebot.estimate.money import coerce_amount, coerce_rate

logger = logging.getLogger(__name__)

DATA_START_MARKER = "%---INVOICE_DATA_START---%"
DATA_END_MARKER = "%---INVOICE_DATA_END---%"

# Same unescaped set as JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"
_MALFORMED_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")

SUPPORTED_IMPORT_EXTENSIONS = (".json", ".pdf")


class EstimateImportError(Exception):
    """Base for import failures. ``user_message`` is shown in the chat."""
    user_message = "파일을 불러오지 못했습니다."


class InvalidJsonError(EstimateImportError):
    user_message = "올바른 JSON 파일이 아닙니다."


class NoEmbeddedDataError(EstimateImportError):
    user_message = "이 PDF에는 견적서 데이터가 포함되어 있지 않습니다. 견적서메이커에서 내보낸 PDF만 불러올 수 있습니다."


class CorruptEmbeddedDataError(EstimateImportError):
    user_message = "PDF에 포함된 견적서 데이터가 손상되었습니다."


class UnsupportedFormatError(EstimateImportError):
    user_message = "지원하지 않는 파일 형식입니다. .json 또는 .pdf 파일을 보내주세요."


# --- Dict mapping ---


def document_to_dict(doc: EstimateDocument) -> dict:
    return {
        "title": doc.title,
        "fileName": doc.file_name,
        "fontFamily": doc.font_family,
        "logoDataUrl": doc.logo_data_url,
        "estimateNumber": doc.estimate_number,
        "issueDate": doc.issue_date,
        "dueDate": doc.due_date,
        "sender": {
            "name": doc.sender.name,
            "address": doc.sender.address,
            "email": doc.sender.email,
            "phone": doc.sender.phone,
            "businessNumber": doc.sender.business_number,
        },
        "recipient": {
            "name": doc.recipient.name,
            "address": doc.recipient.address,
            "email": doc.recipient.email,
            "phone": doc.recipient.phone,
        },
        "paymentInfo": {
            "bankName": doc.payment_info.bank_name,
            "accountNumber": doc.payment_info.account_number,
            "accountHolder": doc.payment_info.account_holder,
        },
        "items": [
            {
                "id": item.id,
                "description": item.description,
                "quantity": item.quantity,
                "unitPrice": item.unit_price,
                "total": item.total,
            }
            for item in doc.items
        ],
        "notes": doc.notes,
        "terms": doc.terms,
        "taxRate": doc.tax_rate,
        "discountRate": doc.discount_rate,
        "savePath": doc.save_path,
        "designTemplate": doc.design_template,
    }


def _text(data: dict, key: str, default: str = "") -> str:
    value = data.get(key)
    return default if value is None else str(value)


def _optional_text(data: dict, key: str) -> str | None:
    value = data.get(key)
    return None if value is None else str(value)


def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be an object")
    return value


def _item_from_dict(raw: dict, index: int) -> LineItem:
    if not isinstance(raw, dict):
        raise ValueError(f"items[{index}] must be an object")
    quantity = coerce_amount(raw.get("quantity"))
    unit_price = coerce_amount(raw.get("unitPrice"))
    return LineItem(
        id=_text(raw, "id") or str(index + 1),
        description=_text(raw, "description"),
        quantity=quantity,
        unit_price=unit_price,
        total=quantity * unit_price,
    )


def document_from_dict(data: dict) -> EstimateDocument:
    """Build a document from its JSON form.

    Missing keys take the model defaults, numbers are coerced. Raises
    ValueError when the structure itself is wrong.
    """
    if not isinstance(data, dict):
        raise ValueError("Estimate data must be a JSON object")

    sender = _section(data, "sender")
    recipient = _section(data, "recipient")
    payment = _section(data, "paymentInfo")
    raw_items = data.get("items") or []
    if not isinstance(raw_items, list):
        raise ValueError("'items' must be a list")

    return EstimateDocument(
        title=_text(data, "title", DEFAULT_TITLE),
        file_name=_text(data, "fileName"),
        font_family=coerce_font(data.get("fontFamily")),
        logo_data_url=_optional_text(data, "logoDataUrl"),
        estimate_number=_text(data, "estimateNumber"),
        issue_date=_text(data, "issueDate"),
        due_date=_text(data, "dueDate"),
        sender=Sender(
            name=_text(sender, "name"),
            address=_text(sender, "address"),
            email=_text(sender, "email"),
            phone=_text(sender, "phone"),
            business_number=_text(sender, "businessNumber"),
        ),
        recipient=Recipient(
            name=_text(recipient, "name"),
            address=_text(recipient, "address"),
            email=_text(recipient, "email"),
            phone=_text(recipient, "phone"),
        ),
        payment_info=PaymentInfo(
            bank_name=_text(payment, "bankName"),
            account_number=_text(payment, "accountNumber"),
            account_holder=_text(payment, "accountHolder"),
        ),
        items=tuple(_item_from_dict(raw, i) for i, raw in enumerate(raw_items)),
        notes=_text(data, "notes"),
        terms=_text(data, "terms"),
        tax_rate=coerce_rate(data.get("taxRate", 0.1), 1.0),
        discount_rate=coerce_rate(data.get("discountRate", 0), 100.0),
        save_path=_optional_text(data, "savePath"),
        design_template=coerce_template(data.get("designTemplate", 1)),
    )


# --- Plain JSON ---


def to_json(doc: EstimateDocument, indent: int | None = 2) -> str:
    return json.dumps(document_to_dict(doc), ensure_ascii=False, indent=indent)


def import_from_json(text: str) -> EstimateDocument:
    try:
        data = json.loads(text)
        return document_from_dict(data)
    except (json.JSONDecodeError, ValueError, TypeError) as e:
        raise InvalidJsonError(str(e)) from e


# --- Embedded recovery block ---


def build_data_block(doc: EstimateDocument) -> bytes:
    encoded = quote(to_json(doc, indent=None), safe=_URI_COMPONENT_SAFE)
    return f"\n{DATA_START_MARKER}\n{encoded}\n{DATA_END_MARKER}".encode("ascii")


def embed_in_pdf(pdf_bytes: bytes, doc: EstimateDocument) -> bytes:
    """Append the recovery block after the complete PDF bytes."""
    return bytes(pdf_bytes) + build_data_block(doc)


def extract_embedded_json(data: bytes) -> str:
    """Return the decoded JSON text embedded in an exported file."""
    text = bytes(data).decode("utf-8", errors="replace")
    # The block is always appended last; document text may repeat the marker earlier
    start = text.rfind(DATA_START_MARKER)
    end = text.find(DATA_END_MARKER, start + len(DATA_START_MARKER)) if start >= 0 else -1
    if start < 0 or end < 0:
        raise NoEmbeddedDataError("Embedded data markers not found")

    payload = text[start + len(DATA_START_MARKER):end].strip()
    if _MALFORMED_ESCAPE_RE.search(payload):
        raise CorruptEmbeddedDataError("Malformed percent-encoding in embedded data")
    try:
        return unquote(payload, errors="strict")
    except UnicodeDecodeError as e:
        raise CorruptEmbeddedDataError(f"Embedded data is not valid UTF-8: {e}") from e


def import_from_pdf(data: bytes) -> EstimateDocument:
    json_text = extract_embedded_json(data)
    try:
        return document_from_dict(json.loads(json_text))
    except (json.JSONDecodeError, ValueError, TypeError) as e:
        raise CorruptEmbeddedDataError(str(e)) from e


def import_file(filename: str, data: bytes) -> EstimateDocument:
    """Import by extension: .json or .pdf."""
    ext = Path(filename or "").suffix.lower()
    if ext == ".json":
        try:
            text = bytes(data).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise InvalidJsonError(str(e)) from e
        doc = import_from_json(text)
    elif ext == ".pdf":
        doc = import_from_pdf(data)
    else:
        raise UnsupportedFormatError(f"Unsupported import extension: {ext or '(none)'}")
    logger.info(f"Imported estimate {doc.estimate_number} from {filename} ({len(doc.items)} items)")
    return doc
