from dataclasses import replace
from datetime import date

import pytest

from quotebot.estimate import editor
from quotebot.estimate.editor import (
    NOTES_GENERIC,
    NOTES_ISSUE_DAY_ONLY,
    add_item,
    compute_validity_notes,
    default_document,
    remove_item,
    with_field,
    with_item,
    with_party_field,
)


def test_default_document(doc):
    assert doc.estimate_number == "INV-2025-001"
    assert doc.issue_date == "2025-03-01"
    assert doc.due_date == "2025-03-08"
    assert doc.notes == "본 견적서는 1주간 유효합니다."
    assert [item.total for item in doc.items] == [1500000, 2000000, 1000000]
    assert doc.tax_rate == 0.1
    assert doc.discount_rate == 0
    assert doc.logo_data_url is None
    assert doc.design_template == 1


def test_default_document_uses_preferred_template():
    assert default_document(4, date(2025, 1, 1), design_template=3).design_template == 3
    assert default_document(4, date(2025, 1, 1), design_template=9).design_template == 1


def test_validity_notes():
    assert compute_validity_notes("2025-01-01", "2025-01-15") == "본 견적서는 2주간 유효합니다."
    assert compute_validity_notes("2025-01-01", "2025-01-01") == NOTES_ISSUE_DAY_ONLY
    assert compute_validity_notes("2025-01-10", "2025-01-01") == NOTES_ISSUE_DAY_ONLY
    assert compute_validity_notes("2025-01-01", "2025-01-11") == "본 견적서는 10일간 유효합니다."
    assert compute_validity_notes("", "2025-01-11") == NOTES_GENERIC
    assert compute_validity_notes("2025-01-01", None) == NOTES_GENERIC
    assert compute_validity_notes("soon", "2025-01-11") == NOTES_GENERIC


def test_validity_notes_rounds_partial_days_up():
    assert compute_validity_notes("2025-01-01T12:00", "2025-01-08T00:00") == "본 견적서는 1주간 유효합니다."
    assert compute_validity_notes("2025-01-01T00:00", "2025-01-01T01:00") == "본 견적서는 1일간 유효합니다."


def test_date_edits_recompute_notes(doc):
    updated = with_field(doc, "due_date", "2025-03-15")
    assert updated.notes == "본 견적서는 2주간 유효합니다."
    updated = with_field(updated, "issue_date", "2025-03-15")
    assert updated.notes == NOTES_ISSUE_DAY_ONLY


def test_with_field_returns_new_snapshot(doc):
    updated = with_field(doc, "title", "Invoice")
    assert updated.title == "Invoice"
    assert doc.title == "견적서"
    assert updated.items is doc.items


def test_with_field_coerces_values(doc):
    assert with_field(doc, "tax_rate", "0.08").tax_rate == 0.08
    assert with_field(doc, "tax_rate", 5).tax_rate == 1.0
    assert with_field(doc, "discount_rate", "x").discount_rate == 0.0
    assert with_field(doc, "discount_rate", "15").discount_rate == 15.0
    assert with_field(doc, "font_family", "SERIF").font_family == "serif"
    assert with_field(doc, "font_family", "comic").font_family == "system"
    assert with_field(doc, "design_template", "4").design_template == 4
    assert with_field(doc, "design_template", "7").design_template == 1
    assert with_field(doc, "save_path", "").save_path is None
    assert with_field(doc, "save_path", "/tmp/out").save_path == "/tmp/out"


def test_with_field_rejects_unknown_fields(doc):
    with pytest.raises(ValueError):
        with_field(doc, "items", ())
    with pytest.raises(ValueError):
        with_field(doc, "total", 1)


def test_with_party_field(doc):
    updated = with_party_field(doc, "recipient", "name", "테스트 회사")
    assert updated.recipient.name == "테스트 회사"
    assert updated.recipient.email == doc.recipient.email
    assert with_party_field(doc, "payment_info", "bank_name", "KB").payment_info.bank_name == "KB"
    with pytest.raises(ValueError):
        with_party_field(doc, "recipient", "business_number", "1")


@pytest.mark.parametrize("quantity,price", [(0, 0), (1, 0), (3, 1500), (12, 99999), (1000, 1)])
def test_with_item_recomputes_total(doc, quantity, price):
    target = doc.items[1].id
    updated = with_item(doc, target, "quantity", quantity)
    updated = with_item(updated, target, "unit_price", price)
    assert updated.item(target).total == quantity * price
    assert updated.items[0] == doc.items[0]
    assert updated.items[2] == doc.items[2]


def test_with_item_coerces_bad_numbers(doc):
    target = doc.items[0].id
    updated = with_item(doc, target, "quantity", "-4")
    assert updated.item(target).quantity == 0
    assert updated.item(target).total == 0
    updated = with_item(doc, target, "unit_price", "abc")
    assert updated.item(target).total == 0
    updated = with_item(doc, target, "quantity", "1e999999999")
    assert updated.item(target).quantity == 0
    assert updated.item(target).total == 0


def test_description_edit_leaves_total(doc):
    target = doc.items[0].id
    updated = with_item(doc, target, "description", "디자인 시안")
    assert updated.item(target).description == "디자인 시안"
    assert updated.item(target).total == doc.items[0].total


def test_total_is_not_editable(doc):
    with pytest.raises(ValueError):
        with_item(doc, doc.items[0].id, "total", 1)


def test_add_item_appends_blank_row(doc):
    updated = add_item(doc)
    new = updated.items[-1]
    assert len(updated.items) == len(doc.items) + 1
    assert (new.description, new.quantity, new.unit_price, new.total) == ("", 1, 0, 0)
    assert new.id not in {item.id for item in doc.items}
    again = add_item(updated)
    assert len({item.id for item in again.items}) == len(again.items)


def test_remove_item(doc):
    target = doc.items[1].id
    updated = remove_item(doc, target)
    assert [item.id for item in updated.items] == [doc.items[0].id, doc.items[2].id]
    assert remove_item(doc, "missing") == doc


def test_editable_fields_cover_document_scalars(doc):
    for field in editor.EDITABLE_FIELDS:
        assert hasattr(doc, field)
    assert replace(doc) == doc
