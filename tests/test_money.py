from dataclasses import replace

from quotebot.estimate.models import LineItem
from quotebot.estimate.money import (
    coerce_amount,
    coerce_rate,
    discount,
    format_currency,
    format_rate,
    parse_currency,
    subtotal,
    summarize,
    tax,
    total,
)


def _items(*pairs):
    return tuple(LineItem(id=str(i), quantity=q, unit_price=p, total=q * p) for i, (q, p) in enumerate(pairs))


def test_subtotal_sums_quantity_times_price():
    items = _items((2, 1500), (3, 700), (0, 99999))
    assert subtotal(items) == 2 * 1500 + 3 * 700
    assert subtotal(()) == 0


def test_discount_rounds_half_up():
    assert discount(1000, 12.5) == 125
    assert discount(5, 50) == 3      # 2.5 -> 3
    assert discount(15, 10) == 2     # 1.5 -> 2
    assert discount(0, 100) == 0


def test_tax_uses_fractional_rate():
    assert tax(4500000, 0.1) == 450000
    assert tax(45, 0.1) == 5         # 4.5 -> 5
    assert tax(33, 0.1) == 3
    assert total(4500000, 450000) == 4950000


def test_discount_never_exceeds_subtotal():
    for sub in (0, 1, 7, 999, 123456789):
        for rate in (0, 0.5, 33.3, 50, 99.99, 100):
            amount = discount(sub, rate)
            assert amount <= sub
            assert sub - amount >= 0


def test_summarize_default_document(doc):
    s = summarize(doc)
    assert s.subtotal == 4500000
    assert s.discount_amount == 0
    assert s.discounted_subtotal == 4500000
    assert s.tax == 450000
    assert s.total == 4950000


def test_summarize_applies_discount_before_tax(doc):
    s = summarize(replace(doc, discount_rate=10.0))
    assert s.discount_amount == 450000
    assert s.discounted_subtotal == 4050000
    assert s.tax == 405000
    assert s.total == 4455000


def test_summary_follows_item_edits(doc):
    edited = replace(doc, items=doc.items[:1])
    assert summarize(edited).subtotal == 1500000


def test_format_currency_is_invertible():
    for amount in (0, 7, 1000, 4950000, 1234567890):
        text = format_currency(amount)
        assert text.startswith("₩")
        assert parse_currency(text) == amount
    assert format_currency(4950000) == "₩4,950,000"


def test_format_rate():
    assert format_rate(0.1) == "10"
    assert format_rate(0.075) == "7.5"
    assert format_rate(0) == "0"


def test_coerce_amount_never_fails():
    assert coerce_amount("12") == 12
    assert coerce_amount("12.9") == 12
    assert coerce_amount("1,000") == 1000
    assert coerce_amount(-5) == 0
    assert coerce_amount("-3") == 0
    assert coerce_amount("abc") == 0
    assert coerce_amount(None) == 0
    assert coerce_amount("nan") == 0
    assert coerce_amount("1e999999999") == 0
    assert coerce_amount("-1e999999999") == 0
    assert coerce_amount(10 ** 20) == 0
    assert coerce_amount("999999999999999") == 999999999999999
    assert coerce_amount("1e15") == 0


def test_coerce_rate_clamps():
    assert coerce_rate("10", 100.0) == 10.0
    assert coerce_rate("10%", 100.0) == 10.0
    assert coerce_rate(150, 100.0) == 100.0
    assert coerce_rate(-1, 1.0) == 0.0
    assert coerce_rate("x", 1.0) == 0.0
