"""Data models for estimate documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal
import uuid

FontFamily = Literal["system", "serif", "mono", "rounded"]

FONT_FAMILIES: tuple[str, ...] = ("system", "serif", "mono", "rounded")
DESIGN_TEMPLATES: tuple[int, ...] = (1, 2, 3, 4)

DEFAULT_TITLE = "견적서"
DEFAULT_FONT: FontFamily = "system"
DEFAULT_TAX_RATE = 0.1
DEFAULT_DISCOUNT_RATE = 0.0
DEFAULT_DESIGN_TEMPLATE = 1


def new_item_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class LineItem:
    id: str
    description: str = ""
    quantity: int = 1
    unit_price: int = 0
    total: int = 0       # always quantity * unit_price


@dataclass(frozen=True)
class Sender:
    name: str = ""
    address: str = ""
    email: str = ""
    phone: str = ""
    business_number: str = ""


@dataclass(frozen=True)
class Recipient:
    name: str = ""
    address: str = ""
    email: str = ""
    phone: str = ""


@dataclass(frozen=True)
class PaymentInfo:
    bank_name: str = ""
    account_number: str = ""
    account_holder: str = ""


@dataclass(frozen=True)
class EstimateDocument:
    """One estimate/invoice snapshot.

    Totals are deliberately absent: see ``money.summarize``.
    """
    estimate_number: str
    issue_date: str          # YYYY-MM-DD
    due_date: str            # YYYY-MM-DD
    title: str = DEFAULT_TITLE
    file_name: str = ""
    font_family: str = DEFAULT_FONT
    logo_data_url: str | None = None
    sender: Sender = field(default_factory=Sender)
    recipient: Recipient = field(default_factory=Recipient)
    payment_info: PaymentInfo = field(default_factory=PaymentInfo)
    items: tuple[LineItem, ...] = ()
    notes: str = ""
    terms: str = ""
    tax_rate: float = DEFAULT_TAX_RATE          # fraction, 0.1 == 10%
    discount_rate: float = DEFAULT_DISCOUNT_RATE  # percentage, 0-100
    save_path: str | None = None
    design_template: int = DEFAULT_DESIGN_TEMPLATE

    def item(self, item_id: str) -> LineItem | None:
        for it in self.items:
            if it.id == item_id:
                return it
        return None


SAMPLE_SENDER = Sender(
    name="견적서메이커",
    address="서울특별시 강남구 테헤란로 123",
    email="contact@quote-maker.cx",
    phone="02-1234-5678",
    business_number="123-45-67890",
)

SAMPLE_RECIPIENT = Recipient(
    name="스타트업 주식회사",
    address="서울특별시 중구, 110022",
    email="ceo@startup-kr.com",
    phone="010-9876-5432",
)

SAMPLE_PAYMENT = PaymentInfo(
    bank_name="00은행",
    account_number="1234-56-7890",
    account_holder="홍길동",
)

SAMPLE_ITEMS = (
    ("웹사이트 UI/UX 디자인", 1, 1500000),
    ("프론트엔드 개발 (React)", 1, 2000000),
    ("백엔드 API 연동", 1, 1000000),
)

SAMPLE_TERMS = "착수금 50%, 잔금 50% (완료 후 7일 이내 지급)"
