"""
ENCODING FIX - IMPORT BEFORE ANY MODULE THAT LOGS

Estimate data is Korean text. Containers often start Python with an ASCII
stdout, which turns any log line mentioning a title or party name into a
UnicodeEncodeError. This module forces UTF-8 output and installs a log
handler that can never raise on encoding.
"""
import sys
import os

os.environ.setdefault('PYTHONIOENCODING', 'utf-8')


def _safe_reconfigure():
    """Reconfigure stdout/stderr to UTF-8, replacing what still cannot be written."""
    for stream in (sys.stdout, sys.stderr):
        if hasattr(stream, 'reconfigure'):
            try:
                stream.reconfigure(encoding='utf-8', errors='replace')
            except (ValueError, OSError):
                pass


# Apply fix immediately when module is imported
_safe_reconfigure()


def disable_httpx_logging():
    """Silence per-request httpx/httpcore logs (the bot token is part of every URL)."""
    import logging

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def configure_safe_logging():
    """Configure logging to never raise UnicodeEncodeError."""
    import logging

    class SafeStreamHandler(logging.StreamHandler):
        """A StreamHandler that degrades unencodable characters instead of failing."""
        def emit(self, record):
            try:
                msg = self.format(record)
                encoding = getattr(self.stream, 'encoding', None) or 'utf-8'
                safe_msg = msg.encode(encoding, errors='replace').decode(encoding)
                self.stream.write(safe_msg + self.terminator)
                self.flush()
            except Exception:
                self.handleError(record)

    root = logging.getLogger()
    for handler in root.handlers[:]:
        if isinstance(handler, logging.StreamHandler):
            root.removeHandler(handler)

    safe_handler = SafeStreamHandler(sys.stdout)
    safe_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))
    root.addHandler(safe_handler)
