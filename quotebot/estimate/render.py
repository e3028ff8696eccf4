"""Render estimates to PDF (reportlab) and PNG (Pillow).

Design templates only change presentation: colours, header band and
table rules. Both renderers lay out the same sections in the same order.
"""

from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass
from xml.sax.saxutils import escape

import config
from quotebot.estimate.models import EstimateDocument
from quotebot.estimate.money import EstimateSummary, format_currency, format_rate, summarize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateStyle:
    name: str
    accent: str
    header_fill: str | None   # band behind the title block
    header_text: str
    table_header_fill: str
    grid: bool
    zebra: bool


TEMPLATE_STYLES = {
    1: TemplateStyle("Classic", "#2563EB", None, "#111827", "#FFFFFF", False, False),
    2: TemplateStyle("Modern", "#4472C4", "#4472C4", "#FFFFFF", "#4472C4", True, True),
    3: TemplateStyle("Minimal", "#374151", None, "#111827", "#FFFFFF", False, False),
    4: TemplateStyle("Bold", "#B91C1C", "#111827", "#FFFFFF", "#111827", True, False),
}

# (regular, bold) base fonts per font family
BASE_FONTS = {
    "system": ("Helvetica", "Helvetica-Bold"),
    "serif": ("Times-Roman", "Times-Bold"),
    "mono": ("Courier", "Courier-Bold"),
    "rounded": ("Helvetica", "Helvetica-Bold"),
}

CUSTOM_FONT_NAME = "QuoteFont"
_custom_font_registered = False


def template_style(template: int) -> TemplateStyle:
    return TEMPLATE_STYLES.get(template, TEMPLATE_STYLES[1])


def summary_rows(doc: EstimateDocument, summary: EstimateSummary | None = None) -> list[tuple[str, str]]:
    """Label/value rows of the totals box."""
    s = summary or summarize(doc)
    rows = [("소계", format_currency(s.subtotal))]
    if s.discount_amount:
        rows.append((f"할인 ({format_rate(doc.discount_rate / 100)}%)", f"-{format_currency(s.discount_amount)}"))
    rows.append((f"부가세 ({format_rate(doc.tax_rate)}%)", format_currency(s.tax)))
    rows.append(("총계", format_currency(s.total)))
    return rows


def decode_data_url(data_url: str | None) -> bytes | None:
    """data:image/png;base64,... -> raw bytes."""
    if not data_url or "," not in data_url:
        return None
    header, payload = data_url.split(",", 1)
    if ";base64" not in header:
        return None
    try:
        return base64.b64decode(payload)
    except ValueError:
        logger.warning("Logo data URL is not valid base64")
        return None


def _pdf_fonts(font_family: str) -> tuple[str, str]:
    global _custom_font_registered
    if config.PDF_FONT_PATH:
        if not _custom_font_registered:
            from reportlab.pdfbase import pdfmetrics
            from reportlab.pdfbase.ttfonts import TTFont
            pdfmetrics.registerFont(TTFont(CUSTOM_FONT_NAME, config.PDF_FONT_PATH))
            _custom_font_registered = True
        return CUSTOM_FONT_NAME, CUSTOM_FONT_NAME
    return BASE_FONTS.get(font_family, BASE_FONTS["system"])


def render_pdf(doc: EstimateDocument) -> bytes:
    """Render the estimate as an A4 PDF."""
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
    from reportlab.lib.units import mm
    from reportlab.lib.utils import ImageReader
    from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, Image

    style = template_style(doc.design_template)
    regular, bold = _pdf_fonts(doc.font_family)
    summary = summarize(doc)

    buffer = io.BytesIO()
    pdf = SimpleDocTemplate(
        buffer, pagesize=A4,
        leftMargin=18 * mm, rightMargin=18 * mm,
        topMargin=18 * mm, bottomMargin=18 * mm,
        pageCompression=1,
    )
    width = A4[0] - 36 * mm

    styles = getSampleStyleSheet()
    body = ParagraphStyle("Body", parent=styles["Normal"], fontName=regular, fontSize=9, leading=12)
    muted = ParagraphStyle("Muted", parent=body, textColor=colors.HexColor("#6B7280"), fontSize=8)
    title_style = ParagraphStyle(
        "EstimateTitle", parent=styles["Title"], fontName=bold, fontSize=22, alignment=0,
        textColor=colors.HexColor(style.header_text), spaceAfter=4,
    )
    heading = ParagraphStyle("Heading", parent=body, fontName=bold, fontSize=9,
                             textColor=colors.HexColor(style.accent))

    def p(text, st=body):
        return Paragraph(escape(text or "").replace("\n", "<br/>"), st)

    elements = []

    # Title block
    title_cells = []
    logo_bytes = decode_data_url(doc.logo_data_url)
    if logo_bytes:
        try:
            img_w, img_h = ImageReader(io.BytesIO(logo_bytes)).getSize()
            height = 12 * mm
            title_cells.append(Image(io.BytesIO(logo_bytes), width=height * img_w / img_h, height=height, hAlign="LEFT"))
        except Exception as e:
            logger.warning(f"Skipping unreadable logo: {e}")
    title_cells.append(Paragraph(escape(doc.title or "견적서"), title_style))
    title_cells.append(p(f"NO. {doc.estimate_number}", ParagraphStyle("No", parent=body, textColor=colors.HexColor(style.header_text))))

    sender_lines = [doc.sender.name, doc.sender.address, doc.sender.email, doc.sender.phone]
    sender_text = "\n".join(line for line in sender_lines if line)
    if doc.sender.business_number:
        sender_text += f"\n등록번호: {doc.sender.business_number}"
    header = Table(
        [[title_cells, p(sender_text, ParagraphStyle("Sender", parent=body, alignment=2,
                                                     textColor=colors.HexColor(style.header_text)))]],
        colWidths=[width * 0.6, width * 0.4],
    )
    header_cmds = [("VALIGN", (0, 0), (-1, -1), "TOP")]
    if style.header_fill:
        header_cmds += [
            ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor(style.header_fill)),
            ("TOPPADDING", (0, 0), (-1, -1), 8),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
        ]
    header.setStyle(TableStyle(header_cmds))
    elements.append(header)
    elements.append(Spacer(1, 8 * mm))

    # Bill-to and dates
    recipient_lines = [doc.recipient.address, doc.recipient.email, doc.recipient.phone]
    info = Table([
        [p("청구/수신 (BILL TO)", muted), p("발행일 (DATE)", muted), p("만료일 (DUE DATE)", muted)],
        [
            [p(doc.recipient.name, ParagraphStyle("RecName", parent=body, fontName=bold, fontSize=11)),
             p("\n".join(line for line in recipient_lines if line))],
            p(doc.issue_date),
            p(doc.due_date),
        ],
    ], colWidths=[width * 0.5, width * 0.25, width * 0.25])
    info.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    elements.append(info)
    elements.append(Spacer(1, 6 * mm))

    # Line items
    head_color = colors.white if style.table_header_fill != "#FFFFFF" else colors.HexColor("#111827")
    item_head = ParagraphStyle("ItemHead", parent=body, fontName=bold, textColor=head_color)
    item_data = [[p("품목", item_head), p("수량", item_head), p("단가", item_head), p("합계", item_head)]]
    for item in doc.items:
        item_data.append([p(item.description), str(item.quantity),
                          format_currency(item.unit_price), format_currency(item.total)])
    items_table = Table(item_data, colWidths=[width * 0.46, width * 0.12, width * 0.21, width * 0.21], repeatRows=1)
    cmds = [
        ("FONTNAME", (0, 1), (-1, -1), regular),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (1, 0), (1, -1), "CENTER"),
        ("ALIGN", (2, 0), (3, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(style.table_header_fill)),
        ("LINEBELOW", (0, 0), (-1, 0), 1.2, colors.HexColor("#111827")),
    ]
    if style.grid:
        cmds.append(("GRID", (0, 0), (-1, -1), 0.5, colors.grey))
    else:
        cmds.append(("LINEBELOW", (0, 1), (-1, -1), 0.3, colors.HexColor("#E5E7EB")))
    if style.zebra:
        cmds.append(("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F2F2F2")]))
    items_table.setStyle(TableStyle(cmds))
    elements.append(items_table)
    elements.append(Spacer(1, 5 * mm))

    # Totals
    rows = summary_rows(doc, summary)
    totals = Table(rows, colWidths=[width * 0.2, width * 0.2], hAlign="RIGHT")
    totals.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, -1), regular),
        ("FONTNAME", (0, -1), (-1, -1), bold),
        ("FONTSIZE", (0, 0), (-1, -2), 9),
        ("FONTSIZE", (0, -1), (-1, -1), 12),
        ("TEXTCOLOR", (0, -1), (-1, -1), colors.HexColor(style.accent)),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("LINEABOVE", (0, -1), (-1, -1), 1.2, colors.HexColor("#111827")),
    ]))
    elements.append(totals)
    elements.append(Spacer(1, 8 * mm))

    # Payment, notes, terms
    payment = doc.payment_info
    sections = [
        ("계좌 정보 (PAYMENT INFO)",
         f"{payment.bank_name} | {payment.account_number}\n예금주: {payment.account_holder}"),
        ("비고 (NOTES)", doc.notes),
        ("이용 약관 (TERMS & CONDITIONS)", doc.terms),
    ]
    for label, text in sections:
        elements.append(p(label, heading))
        elements.append(p(text))
        elements.append(Spacer(1, 4 * mm))

    pdf.build(elements)
    data = buffer.getvalue()
    logger.info(f"Rendered PDF for {doc.estimate_number} ({len(data)} bytes, template {style.name})")
    return data


# --- PNG preview ---

PNG_WIDTH = 1240
PNG_MARGIN = 80


def _png_font(size: int):
    from PIL import ImageFont
    if config.PDF_FONT_PATH:
        return ImageFont.truetype(config.PDF_FONT_PATH, size)
    return ImageFont.load_default(size=size)


def render_png(doc: EstimateDocument) -> bytes:
    """Render the estimate as a PNG image of the preview page."""
    from PIL import Image, ImageDraw

    style = template_style(doc.design_template)
    summary = summarize(doc)
    fonts = {size: _png_font(size) for size in (18, 20, 22, 26, 48)}

    text_lines = len((doc.notes or "").splitlines()) + len((doc.terms or "").splitlines())
    height = 1200 + 44 * len(doc.items) + 28 * text_lines
    image = Image.new("RGB", (PNG_WIDTH, height), "white")
    draw = ImageDraw.Draw(image)
    right = PNG_WIDTH - PNG_MARGIN

    def text(x, y, value, size=22, fill="#111827", align="left"):
        font = fonts[size]
        value = value or ""
        if align == "right":
            x -= draw.textlength(value, font=font)
        elif align == "center":
            x -= draw.textlength(value, font=font) / 2
        draw.text((x, y), value, font=font, fill=fill)

    y = PNG_MARGIN
    if style.header_fill:
        draw.rectangle([0, 0, PNG_WIDTH, 240], fill=style.header_fill)
    logo_bytes = decode_data_url(doc.logo_data_url)
    if logo_bytes:
        try:
            logo = Image.open(io.BytesIO(logo_bytes)).convert("RGBA")
            logo.thumbnail((200, 60))
            image.paste(logo, (PNG_MARGIN, y - 50), logo)
        except Exception as e:
            logger.warning(f"Skipping unreadable logo: {e}")
    text(PNG_MARGIN, y + 20, doc.title or "견적서", 48, style.header_text)
    text(PNG_MARGIN, y + 90, f"NO. {doc.estimate_number}", 22, style.header_text)
    sender_y = y + 10
    for line in (doc.sender.name, doc.sender.address, doc.sender.email, doc.sender.phone,
                 f"등록번호: {doc.sender.business_number}" if doc.sender.business_number else ""):
        if line:
            text(right, sender_y, line, 18, style.header_text, align="right")
            sender_y += 28
    if not style.header_fill:
        draw.line([PNG_MARGIN, 220, right, 220], fill=style.accent, width=3)

    y = 280
    text(PNG_MARGIN, y, "청구/수신 (BILL TO)", 18, "#6B7280")
    text(700, y, "발행일 (DATE)", 18, "#6B7280")
    text(950, y, "만료일 (DUE DATE)", 18, "#6B7280")
    text(PNG_MARGIN, y + 30, doc.recipient.name, 26)
    text(700, y + 30, doc.issue_date)
    text(950, y + 30, doc.due_date)
    line_y = y + 68
    for line in (doc.recipient.address, doc.recipient.email, doc.recipient.phone):
        if line:
            text(PNG_MARGIN, line_y, line, 18, "#4B5563")
            line_y += 26

    # Items table
    y = line_y + 40
    head_fill = style.table_header_fill
    head_text = "#FFFFFF" if head_fill != "#FFFFFF" else "#111827"
    draw.rectangle([PNG_MARGIN, y, right, y + 44], fill=head_fill)
    columns = ((PNG_MARGIN + 10, "품목", "left"), (700, "수량", "center"),
               (930, "단가", "right"), (right - 10, "합계", "right"))
    for x, label, align in columns:
        text(x, y + 10, label, 22, head_text, align)
    draw.line([PNG_MARGIN, y + 44, right, y + 44], fill="#111827", width=2)
    y += 44
    for i, item in enumerate(doc.items):
        if style.zebra and i % 2:
            draw.rectangle([PNG_MARGIN, y, right, y + 44], fill="#F2F2F2")
        text(PNG_MARGIN + 10, y + 10, item.description)
        text(700, y + 10, str(item.quantity), align="center")
        text(930, y + 10, format_currency(item.unit_price), align="right")
        text(right - 10, y + 10, format_currency(item.total), align="right")
        y += 44
        draw.line([PNG_MARGIN, y, right, y], fill="#9CA3AF" if style.grid else "#E5E7EB", width=1)

    # Totals
    y += 30
    rows = summary_rows(doc, summary)
    for label, value in rows[:-1]:
        text(800, y, label, 22, "#4B5563")
        text(right, y, value, 22, align="right")
        y += 36
    draw.line([800, y, right, y], fill="#111827", width=2)
    label, value = rows[-1]
    text(800, y + 12, label, 26, style.accent)
    text(right, y + 12, value, 26, style.accent, align="right")
    y += 80

    payment = doc.payment_info
    for label, lines in (
        ("계좌 정보 (PAYMENT INFO)", [f"{payment.bank_name} | {payment.account_number}",
                                     f"예금주: {payment.account_holder}"]),
        ("비고 (NOTES)", (doc.notes or "").splitlines()),
        ("이용 약관 (TERMS & CONDITIONS)", (doc.terms or "").splitlines()),
    ):
        text(PNG_MARGIN, y, label, 18, style.accent)
        y += 30
        for line in lines:
            text(PNG_MARGIN, y, line, 20)
            y += 28
        y += 20

    out = io.BytesIO()
    image.crop((0, 0, PNG_WIDTH, min(y + PNG_MARGIN, height))).save(out, format="PNG")
    data = out.getvalue()
    logger.info(f"Rendered PNG for {doc.estimate_number} ({len(data)} bytes, template {style.name})")
    return data
