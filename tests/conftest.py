import os
from datetime import date

import pytest

os.environ.setdefault("TELEGRAM_BOT_TOKEN", "")
os.environ.setdefault("SAVE_ENDPOINT_URL", "")
os.environ.setdefault("PDF_FONT_PATH", "")

from quotebot.estimate import storage  # noqa: E402
from quotebot.estimate.editor import default_document  # noqa: E402
from quotebot.estimate import session as session_module  # noqa: E402

TODAY = date(2025, 3, 1)


@pytest.fixture()
def state_dir(tmp_path, monkeypatch):
    """Point the SQLite state file at a fresh temporary DATA_DIR."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    storage.close()
    session_module.reset_session()
    yield tmp_path
    storage.close()
    session_module.reset_session()


@pytest.fixture()
def doc():
    return default_document(1, TODAY)
