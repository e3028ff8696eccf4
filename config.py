"""Configuration management for the Quote Maker bot."""
import os
from dotenv import load_dotenv

load_dotenv()


def clean_env_value(value):
    """Clean environment variable value - strip whitespace AND quotes.

    Hosting dashboards sometimes add quotes around values.
    This function removes them so tokens and paths work correctly.
    """
    if not value:
        return ""
    # Strip whitespace first
    value = value.strip()
    # Strip surrounding quotes (single or double)
    if len(value) >= 2:
        if (value.startswith('"') and value.endswith('"')) or \
           (value.startswith("'") and value.endswith("'")):
            value = value[1:-1]
        # Also handle case where only leading quote exists (partial corruption)
        elif value.startswith('"') or value.startswith("'"):
            value = value[1:]
        elif value.endswith('"') or value.endswith("'"):
            value = value[:-1]
    return value.strip()


def _int_env(name, default):
    raw = clean_env_value(os.getenv(name))
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


# Telegram Bot Token (get from @BotFather)
TELEGRAM_BOT_TOKEN = clean_env_value(os.getenv("TELEGRAM_BOT_TOKEN"))

# Your Telegram user ID (only listed users can edit estimates)
ALLOWED_USER_IDS = [int(id.strip()) for id in os.getenv("ALLOWED_USER_IDS", "").split(",") if id.strip()]

# Where the SQLite state file and local exports live
DATA_DIR = clean_env_value(os.getenv("DATA_DIR")) or "./data"

# Local save endpoint (desktop companion). Empty = send exports to the chat only.
SAVE_ENDPOINT_URL = clean_env_value(os.getenv("SAVE_ENDPOINT_URL")).rstrip("/")

# TTF font with Hangul glyphs (e.g. NanumGothic.ttf). Base PDF fonts cannot draw Korean text.
PDF_FONT_PATH = clean_env_value(os.getenv("PDF_FONT_PATH"))

# Template used for new documents when the user has no saved preference (1-4)
DEFAULT_DESIGN_TEMPLATE = _int_env("DEFAULT_DESIGN_TEMPLATE", 1)
