"""Pure update operations on EstimateDocument snapshots.

Every function takes the previous snapshot and returns a new one; nothing
here touches storage or global state.
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import date, datetime, timedelta

from quotebot.estimate.models import (
    DEFAULT_DESIGN_TEMPLATE,
    DEFAULT_FONT,
    DESIGN_TEMPLATES,
    FONT_FAMILIES,
    SAMPLE_ITEMS,
    SAMPLE_PAYMENT,
    SAMPLE_RECIPIENT,
    SAMPLE_SENDER,
    SAMPLE_TERMS,
    EstimateDocument,
    LineItem,
    new_item_id,
)
from quotebot.estimate.money import coerce_amount, coerce_rate
from quotebot.estimate.naming import generate_estimate_number

DEFAULT_VALIDITY_DAYS = 7

NOTES_GENERIC = "본 견적서의 유효기간은 별도 협의에 따릅니다."
NOTES_ISSUE_DAY_ONLY = "본 견적서는 발행일 당일에만 유효합니다."
NOTES_WEEKS = "본 견적서는 {n}주간 유효합니다."
NOTES_DAYS = "본 견적서는 {n}일간 유효합니다."

TEXT_FIELDS = ("title", "file_name", "estimate_number", "notes", "terms")
OPTIONAL_FIELDS = ("logo_data_url", "save_path")
DATE_FIELDS = ("issue_date", "due_date")
EDITABLE_FIELDS = TEXT_FIELDS + OPTIONAL_FIELDS + DATE_FIELDS + (
    "font_family", "tax_rate", "discount_rate", "design_template",
)
PARTY_FIELDS = {
    "sender": ("name", "address", "email", "phone", "business_number"),
    "recipient": ("name", "address", "email", "phone"),
    "payment_info": ("bank_name", "account_number", "account_holder"),
}
ITEM_FIELDS = ("description", "quantity", "unit_price")


def _parse_day(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        return None


def compute_validity_notes(issue_date, due_date) -> str:
    """Validity sentence for the span between issue and due date."""
    issued = _parse_day(issue_date)
    due = _parse_day(due_date)
    if issued is None or due is None:
        return NOTES_GENERIC
    diff_days = math.ceil((due - issued).total_seconds() / 86400)
    if diff_days <= 0:
        return NOTES_ISSUE_DAY_ONLY
    if diff_days % 7 == 0:
        return NOTES_WEEKS.format(n=diff_days // 7)
    return NOTES_DAYS.format(n=diff_days)


def coerce_template(value) -> int:
    try:
        template = int(str(value).strip())
    except (TypeError, ValueError):
        return DEFAULT_DESIGN_TEMPLATE
    return template if template in DESIGN_TEMPLATES else DEFAULT_DESIGN_TEMPLATE


def coerce_font(value) -> str:
    font = str(value or "").strip().lower()
    return font if font in FONT_FAMILIES else DEFAULT_FONT


def default_document(sequence: int | None, today: date | None = None,
                     design_template: int = DEFAULT_DESIGN_TEMPLATE) -> EstimateDocument:
    """Fresh document seeded with sample parties and items."""
    today = today or date.today()
    issue = today.isoformat()
    due = (today + timedelta(days=DEFAULT_VALIDITY_DAYS)).isoformat()
    items = tuple(
        LineItem(id=str(i), description=desc, quantity=qty, unit_price=price, total=qty * price)
        for i, (desc, qty, price) in enumerate(SAMPLE_ITEMS, 1)
    )
    return EstimateDocument(
        estimate_number=generate_estimate_number(sequence, year=today.year),
        issue_date=issue,
        due_date=due,
        sender=SAMPLE_SENDER,
        recipient=SAMPLE_RECIPIENT,
        payment_info=SAMPLE_PAYMENT,
        items=items,
        notes=compute_validity_notes(issue, due),
        terms=SAMPLE_TERMS,
        design_template=coerce_template(design_template),
    )


def with_field(doc: EstimateDocument, field: str, value) -> EstimateDocument:
    """Update one top-level field; date edits refresh the validity notes."""
    if field not in EDITABLE_FIELDS:
        raise ValueError(f"Unknown or non-editable field: {field}")

    if field in TEXT_FIELDS:
        value = "" if value is None else str(value)
    elif field in OPTIONAL_FIELDS:
        value = str(value).strip() if value else None
    elif field in DATE_FIELDS:
        value = "" if value is None else str(value).strip()
    elif field == "font_family":
        value = coerce_font(value)
    elif field == "tax_rate":
        value = coerce_rate(value, 1.0)
    elif field == "discount_rate":
        value = coerce_rate(value, 100.0)
    elif field == "design_template":
        value = coerce_template(value)

    updated = replace(doc, **{field: value})
    if field in DATE_FIELDS:
        updated = replace(updated, notes=compute_validity_notes(updated.issue_date, updated.due_date))
    return updated


def with_party_field(doc: EstimateDocument, party: str, field: str, value) -> EstimateDocument:
    """Update a sender/recipient/payment_info field."""
    if field not in PARTY_FIELDS.get(party, ()):
        raise ValueError(f"Unknown field: {party}.{field}")
    current = getattr(doc, party)
    return replace(doc, **{party: replace(current, **{field: "" if value is None else str(value)})})


def with_item(doc: EstimateDocument, item_id: str, field: str, value) -> EstimateDocument:
    """Update one line item; quantity/unit_price edits recompute its total."""
    if field not in ITEM_FIELDS:
        raise ValueError(f"Line item field is not editable: {field}")

    def _update(item: LineItem) -> LineItem:
        if item.id != item_id:
            return item
        if field == "description":
            return replace(item, description="" if value is None else str(value))
        updated = replace(item, **{field: coerce_amount(value)})
        return replace(updated, total=updated.quantity * updated.unit_price)

    return replace(doc, items=tuple(_update(item) for item in doc.items))


def add_item(doc: EstimateDocument) -> EstimateDocument:
    existing = {item.id for item in doc.items}
    item_id = new_item_id()
    while item_id in existing:
        item_id = new_item_id()
    return replace(doc, items=doc.items + (LineItem(id=item_id, quantity=1, unit_price=0, total=0),))


def remove_item(doc: EstimateDocument, item_id: str) -> EstimateDocument:
    return replace(doc, items=tuple(item for item in doc.items if item.id != item_id))
