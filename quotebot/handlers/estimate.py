"""Telegram handlers for editing, importing and exporting estimates."""

from __future__ import annotations

import base64
import io
import logging

from dateutil import parser as date_parser
from telegram import Update
from telegram.ext import ContextTypes

import config
from quotebot.estimate import editor
from quotebot.estimate.codec import (
    SUPPORTED_IMPORT_EXTENSIONS,
    EstimateImportError,
    UnsupportedFormatError,
    import_file,
)
from quotebot.estimate.exporter import EXPORT_FORMATS, ExportBusyError, exporter
from quotebot.estimate.models import FONT_FAMILIES, EstimateDocument
from quotebot.estimate.money import coerce_rate, format_currency
from quotebot.estimate.render import summary_rows, template_style
from quotebot.estimate.session import get_session
from quotebot.services.save_endpoint import FolderPickCancelled, SaveEndpointError, save_endpoint

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "견적서메이커 명령어\n\n"
    "/show - 현재 견적서 미리보기\n"
    "/set <필드> <값> - title, file_name, estimate_number, issue_date, due_date, notes, terms\n"
    "/sender <필드> <값> - name, address, email, phone, business_number\n"
    "/recipient <필드> <값> - name, address, email, phone\n"
    "/payment <필드> <값> - bank_name, account_number, account_holder\n"
    "/item_add - 항목 추가\n"
    "/item <id> <필드> <값> - description, quantity, unit_price\n"
    "/item_remove <id> - 항목 삭제\n"
    "/tax <%> - 부가세율\n"
    "/discount <%> - 할인율\n"
    "/template <1-4> - 디자인 템플릿\n"
    "/font <system|serif|mono|rounded> - 폰트\n"
    "/savepath <경로|pick|clear> - 저장 폴더\n"
    "/logo_clear - 로고 제거\n"
    "/new - 새 견적서\n"
    "/save - 저장\n"
    "/export <pdf|png|json> - 내보내기\n\n"
    ".json 또는 .pdf 파일을 보내면 견적서를 불러옵니다. 사진을 보내면 로고로 설정됩니다."
)

SET_FIELDS = ("title", "file_name", "estimate_number", "issue_date", "due_date", "notes", "terms")


def is_authorized(user_id: int) -> bool:
    if not config.ALLOWED_USER_IDS:
        return True
    return user_id in config.ALLOWED_USER_IDS


def normalize_date(value: str) -> str:
    """Accept loose date input ('2025/3/1', 'March 1 2025') and store ISO."""
    return date_parser.parse(value, yearfirst=True).date().isoformat()


def format_preview(doc: EstimateDocument) -> str:
    lines = [
        f"{doc.title or '견적서'}  NO. {doc.estimate_number}",
        f"발행일 {doc.issue_date or '-'} / 만료일 {doc.due_date or '-'}",
        f"공급자: {doc.sender.name}  ->  수신자: {doc.recipient.name}",
        "",
    ]
    if doc.items:
        for item in doc.items:
            lines.append(
                f"[{item.id}] {item.description or '(품목명 없음)'}  "
                f"{item.quantity} x {format_currency(item.unit_price)} = {format_currency(item.total)}"
            )
    else:
        lines.append("(항목 없음)")
    lines.append("")
    for label, value in summary_rows(doc):
        lines.append(f"{label}: {value}")
    lines.append("")
    lines.append(f"비고: {doc.notes}")
    lines.append(f"템플릿 {doc.design_template} ({template_style(doc.design_template).name}), 폰트 {doc.font_family}")
    if doc.save_path:
        lines.append(f"저장 폴더: {doc.save_path}")
    return "\n".join(lines)


async def _reply_preview(update: Update, doc: EstimateDocument, prefix: str = ""):
    text = format_preview(doc)
    await update.message.reply_text(f"{prefix}\n\n{text}" if prefix else text)


# --- Commands ---


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start and /help."""
    if not is_authorized(update.effective_user.id):
        await update.message.reply_text("접근 권한이 없습니다.")
        return
    await update.message.reply_text(HELP_TEXT)


async def cmd_show(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_authorized(update.effective_user.id):
        return
    await _reply_preview(update, get_session().document)


async def cmd_set(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /set <field> <value>."""
    if not is_authorized(update.effective_user.id):
        return
    args = context.args or []
    if not args or args[0] not in SET_FIELDS:
        await update.message.reply_text("사용법: /set <필드> <값>\n필드: " + ", ".join(SET_FIELDS))
        return

    field, value = args[0], " ".join(args[1:])
    if field in editor.DATE_FIELDS and value:
        try:
            value = normalize_date(value)
        except (ValueError, OverflowError):
            await update.message.reply_text(f"날짜를 이해하지 못했습니다: {value}")
            return

    doc = get_session().update(editor.with_field, field, value)
    await _reply_preview(update, doc)


async def _party_command(update: Update, context: ContextTypes.DEFAULT_TYPE, party: str):
    if not is_authorized(update.effective_user.id):
        return
    args = context.args or []
    fields = editor.PARTY_FIELDS[party]
    if not args or args[0] not in fields:
        await update.message.reply_text(f"사용법: /{party.split('_')[0]} <필드> <값>\n필드: " + ", ".join(fields))
        return
    doc = get_session().update(editor.with_party_field, party, args[0], " ".join(args[1:]))
    await _reply_preview(update, doc)


async def cmd_sender(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _party_command(update, context, "sender")


async def cmd_recipient(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _party_command(update, context, "recipient")


async def cmd_payment(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _party_command(update, context, "payment_info")


async def cmd_item_add(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_authorized(update.effective_user.id):
        return
    doc = get_session().update(editor.add_item)
    new_id = doc.items[-1].id
    await _reply_preview(update, doc, f"항목이 추가되었습니다. /item {new_id} description <품목명>")


async def cmd_item(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /item <id> <field> <value>."""
    if not is_authorized(update.effective_user.id):
        return
    args = context.args or []
    if len(args) < 2 or args[1] not in editor.ITEM_FIELDS:
        await update.message.reply_text("사용법: /item <id> <description|quantity|unit_price> <값>")
        return

    session = get_session()
    item_id = args[0]
    if session.document.item(item_id) is None:
        await update.message.reply_text(f"항목을 찾을 수 없습니다: {item_id}")
        return
    doc = session.update(editor.with_item, item_id, args[1], " ".join(args[2:]))
    await _reply_preview(update, doc)


async def cmd_item_remove(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_authorized(update.effective_user.id):
        return
    if not context.args:
        await update.message.reply_text("사용법: /item_remove <id>")
        return
    doc = get_session().update(editor.remove_item, context.args[0])
    await _reply_preview(update, doc)


async def cmd_tax(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /tax <percent>; stored as a fraction."""
    if not is_authorized(update.effective_user.id):
        return
    percent = coerce_rate(context.args[0] if context.args else 0, 100.0)
    doc = get_session().update(editor.with_field, "tax_rate", percent / 100)
    await _reply_preview(update, doc)


async def cmd_discount(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_authorized(update.effective_user.id):
        return
    doc = get_session().update(editor.with_field, "discount_rate", context.args[0] if context.args else 0)
    await _reply_preview(update, doc)


async def cmd_template(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_authorized(update.effective_user.id):
        return
    if not context.args:
        await update.message.reply_text("사용법: /template <1-4>")
        return
    doc = get_session().set_template(context.args[0])
    await update.message.reply_text(
        f"템플릿 {doc.design_template} ({template_style(doc.design_template).name}) 적용. 새 견적서에도 사용됩니다."
    )


async def cmd_font(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_authorized(update.effective_user.id):
        return
    if not context.args:
        await update.message.reply_text("사용법: /font <" + "|".join(FONT_FAMILIES) + ">")
        return
    doc = get_session().update(editor.with_field, "font_family", context.args[0])
    await update.message.reply_text(f"폰트: {doc.font_family}")


async def cmd_logo_clear(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_authorized(update.effective_user.id):
        return
    get_session().update(editor.with_field, "logo_data_url", None)
    await update.message.reply_text("로고가 제거되었습니다.")


async def cmd_new(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_authorized(update.effective_user.id):
        return
    doc = get_session().new_document()
    await _reply_preview(update, doc, "새 견적서를 시작합니다.")


async def cmd_save(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_authorized(update.effective_user.id):
        return
    get_session().save()
    await update.message.reply_text("저장되었습니다!")


async def cmd_savepath(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /savepath <path>|pick|clear."""
    if not is_authorized(update.effective_user.id):
        return
    session = get_session()
    arg = " ".join(context.args or []).strip()

    if not arg:
        current = session.document.save_path or "(없음 - 채팅으로 전송)"
        await update.message.reply_text(f"저장 폴더: {current}\n사용법: /savepath <경로|pick|clear>")
        return
    if arg == "clear":
        session.update(editor.with_field, "save_path", None)
        await update.message.reply_text("저장 폴더가 해제되었습니다.")
        return
    if arg == "pick":
        try:
            arg = await save_endpoint.pick_folder()
        except FolderPickCancelled:
            return
        except SaveEndpointError as e:
            await update.message.reply_text(f"폴더 선택 실패: {e}")
            return

    doc = session.update(editor.with_field, "save_path", arg)
    await update.message.reply_text(f"저장 폴더: {doc.save_path}")


async def cmd_export(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /export <pdf|png|json>."""
    if not is_authorized(update.effective_user.id):
        return
    fmt = (context.args[0].lower() if context.args else "pdf").lstrip(".")
    if fmt not in EXPORT_FORMATS:
        await update.message.reply_text("사용법: /export <pdf|png|json>")
        return

    doc = get_session().document
    try:
        result = await exporter.export(doc, fmt)
    except ExportBusyError:
        await update.message.reply_text("이미 내보내기가 진행 중입니다. 잠시 후 다시 시도해주세요.")
        return
    except SaveEndpointError as e:
        await update.message.reply_text(f"저장 실패: {e}")
        return
    except Exception as e:
        logger.error(f"Export error: {e}", exc_info=True)
        await update.message.reply_text(f"내보내기 오류: {str(e)}")
        return

    if result.saved_path:
        await update.message.reply_text(f"저장되었습니다: {result.saved_path}")
        return
    await update.effective_chat.send_document(
        document=io.BytesIO(result.content), filename=result.file_name,
        caption=f"{doc.title or '견적서'} {doc.estimate_number}",
    )


# --- Uploads ---


async def handle_document_upload(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Import an estimate from an uploaded .json or exported .pdf."""
    if not is_authorized(update.effective_user.id):
        await update.message.reply_text("접근 권한이 없습니다.")
        return

    document = update.message.document
    filename = document.file_name or ""
    if not filename.lower().endswith(SUPPORTED_IMPORT_EXTENSIONS):
        await update.message.reply_text(UnsupportedFormatError.user_message)
        return

    try:
        file = await context.bot.get_file(document.file_id)
        data = bytes(await file.download_as_bytearray())
        doc = import_file(filename, data)
    except EstimateImportError as e:
        logger.warning(f"Import of {filename} failed: {type(e).__name__}: {e}")
        await update.message.reply_text(e.user_message)
        return
    except Exception as e:
        logger.error(f"Error importing {filename}: {e}", exc_info=True)
        await update.message.reply_text(f"파일을 불러오는 중 오류가 발생했습니다: {str(e)}")
        return

    get_session().replace(doc)
    await _reply_preview(update, doc, "견적서를 불러왔습니다.")


async def handle_logo_photo(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Use an uploaded photo as the document logo."""
    if not is_authorized(update.effective_user.id):
        return

    photo = update.message.photo[-1]  # highest resolution
    try:
        file = await context.bot.get_file(photo.file_id)
        data = bytes(await file.download_as_bytearray())
    except Exception as e:
        logger.error(f"Error downloading logo: {e}", exc_info=True)
        await update.message.reply_text(f"로고를 받지 못했습니다: {str(e)}")
        return

    data_url = "data:image/jpeg;base64," + base64.b64encode(data).decode("ascii")
    get_session().update(editor.with_field, "logo_data_url", data_url)
    await update.message.reply_text("로고가 설정되었습니다.")
