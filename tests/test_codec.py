import json
from dataclasses import replace

import pytest

from quotebot.estimate.codec import (
    DATA_END_MARKER,
    DATA_START_MARKER,
    CorruptEmbeddedDataError,
    InvalidJsonError,
    NoEmbeddedDataError,
    UnsupportedFormatError,
    build_data_block,
    document_from_dict,
    document_to_dict,
    embed_in_pdf,
    extract_embedded_json,
    import_file,
    import_from_json,
    import_from_pdf,
    to_json,
)
from quotebot.estimate.editor import with_field
from quotebot.estimate.models import LineItem

FAKE_PDF = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< >>\n%%EOF"


def _pdf_with_payload(payload: str) -> bytes:
    return FAKE_PDF + f"\n{DATA_START_MARKER}\n{payload}\n{DATA_END_MARKER}".encode("ascii")


def test_json_round_trip(doc):
    assert import_from_json(to_json(doc)) == doc


def test_json_uses_camel_case_keys(doc):
    data = json.loads(to_json(doc))
    assert data["estimateNumber"] == "INV-2025-001"
    assert data["sender"]["businessNumber"] == doc.sender.business_number
    assert data["paymentInfo"]["accountHolder"] == doc.payment_info.account_holder
    assert data["items"][0]["unitPrice"] == 1500000
    assert data["logoDataUrl"] is None
    assert data["savePath"] is None
    assert data["designTemplate"] == 1


def test_round_trip_edge_documents(doc):
    empty = replace(doc, items=())
    assert import_from_json(to_json(empty)) == empty

    odd_text = "따옴표 \" 백슬래시 \\ 퍼센트 % 100% 탭\t줄\n바꿈 \x01 이모지 👩‍💻"
    strange = replace(
        with_field(doc, "title", odd_text * 50),
        logo_data_url="data:image/png;base64,iVBORw0KGgo=",
        save_path="C:\\Users\\me\\견적",
        discount_rate=12.5,
        design_template=3,
        font_family="mono",
    )
    assert import_from_json(to_json(strange)) == strange
    assert import_from_pdf(embed_in_pdf(FAKE_PDF, strange)) == strange


def test_embed_keeps_pdf_prefix_intact(doc):
    combined = embed_in_pdf(FAKE_PDF, doc)
    assert combined.startswith(FAKE_PDF)
    assert combined[len(FAKE_PDF):] == build_data_block(doc)
    assert import_from_pdf(combined) == doc


def test_data_block_is_plain_ascii(doc):
    block = build_data_block(doc)
    block.decode("ascii")
    assert block.startswith(b"\n" + DATA_START_MARKER.encode())
    assert block.endswith(DATA_END_MARKER.encode())


def test_extract_returns_json_text(doc):
    text = extract_embedded_json(embed_in_pdf(FAKE_PDF, doc))
    assert json.loads(text) == document_to_dict(doc)


def test_pdf_without_markers():
    with pytest.raises(NoEmbeddedDataError):
        import_from_pdf(FAKE_PDF)
    with pytest.raises(NoEmbeddedDataError):
        import_from_pdf(FAKE_PDF + f"\n{DATA_START_MARKER}\n%7B%7D".encode())


@pytest.mark.parametrize("payload", ["%7B%ZZ", "%7B%FF%7D", "not%20json", "%5B1%2C2%5D", "%7B%22items%22%3A5%7D"])
def test_corrupt_embedded_payload(payload):
    with pytest.raises(CorruptEmbeddedDataError):
        import_from_pdf(_pdf_with_payload(payload))


def test_corrupt_and_missing_are_distinct_errors():
    assert not issubclass(CorruptEmbeddedDataError, NoEmbeddedDataError)
    assert not issubclass(NoEmbeddedDataError, CorruptEmbeddedDataError)
    assert CorruptEmbeddedDataError.user_message != NoEmbeddedDataError.user_message


def test_import_file_dispatches_on_extension(doc):
    assert import_file("estimate.json", to_json(doc).encode("utf-8")) == doc
    assert import_file("ESTIMATE.JSON", to_json(doc).encode("utf-8-sig")) == doc
    assert import_file("export.PDF", embed_in_pdf(FAKE_PDF, doc)) == doc


@pytest.mark.parametrize("name", ["estimate.txt", "estimate.png", "estimate", ""])
def test_import_file_rejects_other_extensions(doc, name):
    with pytest.raises(UnsupportedFormatError):
        import_file(name, to_json(doc).encode("utf-8"))


@pytest.mark.parametrize("text", ["", "{", "[]", "42", '{"sender": "nobody"}', '{"items": "abc"}'])
def test_invalid_json(text):
    with pytest.raises(InvalidJsonError):
        import_from_json(text)


def test_json_file_with_bad_encoding():
    with pytest.raises(InvalidJsonError):
        import_file("estimate.json", b"\xff\xfe{")


def test_missing_keys_take_defaults():
    doc = import_from_json("{}")
    assert doc.title == "견적서"
    assert doc.items == ()
    assert doc.tax_rate == 0.1
    assert doc.discount_rate == 0
    assert doc.font_family == "system"
    assert doc.design_template == 1
    assert doc.logo_data_url is None
    assert doc.sender.name == ""


def test_item_totals_are_recomputed():
    data = {"items": [{"id": "a", "description": "x", "quantity": 3, "unitPrice": 200, "total": 1}]}
    doc = document_from_dict(data)
    assert doc.items == (LineItem(id="a", description="x", quantity=3, unit_price=200, total=600),)


def test_out_of_range_values_are_coerced():
    doc = document_from_dict({
        "taxRate": 3,
        "discountRate": -5,
        "fontFamily": "fancy",
        "designTemplate": 99,
        "items": [{"quantity": "2", "unitPrice": "1,000"}, {"quantity": "1e999999999", "unitPrice": 5}],
    })
    assert doc.tax_rate == 1.0
    assert doc.discount_rate == 0.0
    assert doc.font_family == "system"
    assert doc.design_template == 1
    assert doc.items[0].id == "1"
    assert doc.items[0].total == 2000
    assert doc.items[1].quantity == 0
    assert doc.items[1].total == 0


def test_marker_text_inside_pdf_body_is_ignored(doc):
    titled = with_field(doc, "title", DATA_START_MARKER)
    body = FAKE_PDF.replace(b"<< /Type /Catalog >>", f"<< /Title ({DATA_START_MARKER}) >>".encode())
    assert import_from_pdf(embed_in_pdf(body, titled)) == titled
