"""The user's editing session: current document, sequence and template preference.

State is read from storage once at startup. The document is written back
on explicit saves, the sequence only when a new document is started, the
template preference whenever the user picks a template.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable

import config
from quotebot.estimate import storage
from quotebot.estimate.codec import EstimateImportError, import_from_json, to_json
from quotebot.estimate.editor import coerce_template, default_document, with_field
from quotebot.estimate.models import EstimateDocument
from quotebot.estimate.sequence import (
    SequenceState,
    advance,
    next_sequence,
    state_from_json,
    state_to_json,
)

logger = logging.getLogger(__name__)


class EstimateSession:
    def __init__(self, document: EstimateDocument, sequence_state: SequenceState | None,
                 preferred_template: int):
        self._document = document
        self.sequence_state = sequence_state
        self.preferred_template = preferred_template

    @classmethod
    def load(cls, today: date | None = None) -> "EstimateSession":
        today = today or date.today()
        sequence_state = state_from_json(storage.get_value(storage.SEQUENCE_KEY))
        raw_template = storage.get_value(storage.TEMPLATE_KEY)
        preferred = coerce_template(raw_template if raw_template else config.DEFAULT_DESIGN_TEMPLATE)

        document = None
        saved = storage.get_value(storage.ESTIMATE_KEY)
        if saved:
            try:
                document = import_from_json(saved)
                logger.info(f"Restored estimate {document.estimate_number} from storage")
            except EstimateImportError as e:
                logger.warning(f"Saved estimate is unreadable, starting fresh: {e}")
        if document is None:
            document = default_document(next_sequence(sequence_state, today.year), today, preferred)
        return cls(document, sequence_state, preferred)

    @property
    def document(self) -> EstimateDocument:
        return self._document

    def update(self, transition: Callable[..., EstimateDocument], *args) -> EstimateDocument:
        """Apply a pure transition to the current snapshot and keep the result."""
        self._document = transition(self._document, *args)
        return self._document

    def replace(self, document: EstimateDocument) -> EstimateDocument:
        self._document = document
        return document

    def save(self):
        storage.set_value(storage.ESTIMATE_KEY, to_json(self._document, indent=None))
        logger.info(f"Saved estimate {self._document.estimate_number}")

    def current_sequence(self, today: date | None = None) -> int:
        return next_sequence(self.sequence_state, (today or date.today()).year)

    def new_document(self, today: date | None = None) -> EstimateDocument:
        """Advance the sequence and start from defaults."""
        today = today or date.today()
        self.sequence_state = advance(self.sequence_state, today.year)
        storage.set_value(storage.SEQUENCE_KEY, state_to_json(self.sequence_state))
        self._document = default_document(self.sequence_state.last_sequence, today, self.preferred_template)
        self.save()
        return self._document

    def set_template(self, template) -> EstimateDocument:
        """Apply a design template and remember it for future documents."""
        self._document = with_field(self._document, "design_template", template)
        self.preferred_template = self._document.design_template
        storage.set_value(storage.TEMPLATE_KEY, str(self.preferred_template))
        return self._document


_session: EstimateSession | None = None


def get_session() -> EstimateSession:
    global _session
    if _session is None:
        _session = EstimateSession.load()
    return _session


def reset_session():
    global _session
    _session = None
