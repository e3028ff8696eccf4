"""Main entry point for the Quote Maker bot."""
# Import encoding fix FIRST: Korean document text must never crash logging on ASCII consoles
from quotebot import encoding_fix
encoding_fix.disable_httpx_logging()
encoding_fix.configure_safe_logging()

import logging
from telegram.ext import Application, CommandHandler, MessageHandler, filters
import config
from quotebot.handlers.estimate import (
    cmd_start,
    cmd_show,
    cmd_set,
    cmd_sender,
    cmd_recipient,
    cmd_payment,
    cmd_item_add,
    cmd_item,
    cmd_item_remove,
    cmd_tax,
    cmd_discount,
    cmd_template,
    cmd_font,
    cmd_logo_clear,
    cmd_new,
    cmd_save,
    cmd_savepath,
    cmd_export,
    handle_document_upload,
    handle_logo_photo,
)
from quotebot.estimate import storage
from quotebot.estimate.session import get_session

# Root handler comes from encoding_fix; basicConfig would be a no-op here
logging.getLogger().setLevel(logging.INFO)
logger = logging.getLogger(__name__)


def main():
    """Start the bot."""
    if not config.TELEGRAM_BOT_TOKEN:
        logger.error("TELEGRAM_BOT_TOKEN not set. Please check your .env file.")
        return

    logger.info("Starting Quote Maker bot...")

    storage.initialize()
    session = get_session()
    logger.info(f"Current estimate: {session.document.estimate_number}")

    if not config.ALLOWED_USER_IDS:
        logger.warning("=" * 60)
        logger.warning("SECURITY WARNING: ALLOWED_USER_IDS is not set!")
        logger.warning("Anyone can edit and export your estimates.")
        logger.warning("Add your Telegram user ID to .env: ALLOWED_USER_IDS=123456789")
        logger.warning("=" * 60)

    if not config.PDF_FONT_PATH:
        logger.warning("PDF_FONT_PATH not set - Korean text will not render in PDF/PNG exports")

    application = Application.builder().token(config.TELEGRAM_BOT_TOKEN).build()

    application.add_handler(CommandHandler("start", cmd_start))
    application.add_handler(CommandHandler("help", cmd_start))
    application.add_handler(CommandHandler("show", cmd_show))
    application.add_handler(CommandHandler("set", cmd_set))
    application.add_handler(CommandHandler("sender", cmd_sender))
    application.add_handler(CommandHandler("recipient", cmd_recipient))
    application.add_handler(CommandHandler("payment", cmd_payment))
    application.add_handler(CommandHandler("item_add", cmd_item_add))
    application.add_handler(CommandHandler("item", cmd_item))
    application.add_handler(CommandHandler("item_remove", cmd_item_remove))
    application.add_handler(CommandHandler("tax", cmd_tax))
    application.add_handler(CommandHandler("discount", cmd_discount))
    application.add_handler(CommandHandler("template", cmd_template))
    application.add_handler(CommandHandler("font", cmd_font))
    application.add_handler(CommandHandler("logo_clear", cmd_logo_clear))
    application.add_handler(CommandHandler("new", cmd_new))
    application.add_handler(CommandHandler("save", cmd_save))
    application.add_handler(CommandHandler("savepath", cmd_savepath))
    application.add_handler(CommandHandler("export", cmd_export))

    # Uploaded files are imports, photos become the logo
    application.add_handler(MessageHandler(filters.Document.ALL, handle_document_upload))
    application.add_handler(MessageHandler(filters.PHOTO, handle_logo_photo))

    logger.info("Bot is ready! Starting polling...")
    application.run_polling(allowed_updates=["message"])


if __name__ == "__main__":
    main()
