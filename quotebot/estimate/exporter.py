"""Export pipeline: render, embed the recovery block, save.

One export runs at a time. A second request while one is pending is
rejected rather than queued, and a started export is never cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date

from quotebot.estimate.codec import embed_in_pdf, to_json
from quotebot.estimate.models import EstimateDocument
from quotebot.estimate.naming import resolve_export_file_name
from quotebot.estimate.render import render_pdf, render_png
from quotebot.services.save_endpoint import SaveEndpointClient, save_endpoint

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("pdf", "png", "json")


class ExportBusyError(Exception):
    """Another export is still running."""


@dataclass
class ExportResult:
    format: str
    file_name: str
    content: bytes
    saved_path: str | None = None


def join_save_path(folder: str, file_name: str) -> str:
    """Join using the folder's own separator (the companion may run on Windows)."""
    if folder.endswith(("/", "\\")):
        return folder + file_name
    sep = "\\" if "\\" in folder and "/" not in folder else "/"
    return f"{folder}{sep}{file_name}"


class EstimateExporter:
    def __init__(self, endpoint: SaveEndpointClient | None = None):
        self.endpoint = endpoint or save_endpoint
        self.busy = False

    async def export(self, doc: EstimateDocument, fmt: str, today: date | None = None) -> ExportResult:
        fmt = (fmt or "").lower().lstrip(".")
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {fmt}")
        if self.busy:
            raise ExportBusyError("An export is already in progress")

        self.busy = True
        try:
            file_name = resolve_export_file_name(doc, fmt, today=today)
            content = await self._render(doc, fmt)

            saved_path = None
            if fmt != "json" and doc.save_path and self.endpoint.enabled:
                saved_path = await self.endpoint.save_to_path(join_save_path(doc.save_path, file_name), content, fmt)

            logger.info(f"Exported {doc.estimate_number} as {file_name} ({len(content)} bytes)")
            return ExportResult(format=fmt, file_name=file_name, content=content, saved_path=saved_path)
        finally:
            self.busy = False

    async def _render(self, doc: EstimateDocument, fmt: str) -> bytes:
        if fmt == "json":
            return to_json(doc).encode("utf-8")
        if fmt == "png":
            return await asyncio.to_thread(render_png, doc)
        pdf_bytes = await asyncio.to_thread(render_pdf, doc)
        return embed_in_pdf(pdf_bytes, doc)


exporter = EstimateExporter()
