"""Yearly document sequence used to build estimate numbers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SequenceState:
    year: int
    last_sequence: int


def next_sequence(state: SequenceState | None, current_year: int) -> int:
    """Sequence of the current document.

    Same year -> the last issued sequence; rollover or no prior state -> 1.
    The value only moves forward through ``advance``.
    """
    if state is not None and state.year == current_year:
        return state.last_sequence
    return 1


def advance(state: SequenceState | None, current_year: int) -> SequenceState:
    """State to persist when the user starts a new document."""
    # After a rollover 001 belongs to the startup default, so the first new document is 002
    new_state = SequenceState(year=current_year, last_sequence=next_sequence(state, current_year) + 1)
    logger.info(f"Sequence advanced to {new_state.year}/{new_state.last_sequence:03d}")
    return new_state


def state_to_json(state: SequenceState) -> str:
    return json.dumps({"year": state.year, "lastSeq": state.last_sequence})


def state_from_json(raw: str | None) -> SequenceState | None:
    """Parse persisted {year, lastSeq}; unreadable state counts as none."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
        return SequenceState(year=int(data["year"]), last_sequence=int(data["lastSeq"]))
    except (json.JSONDecodeError, KeyError, TypeError, ValueError):
        logger.warning("Ignoring unreadable sequence state")
        return None
