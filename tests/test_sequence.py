from quotebot.estimate.sequence import (
    SequenceState,
    advance,
    next_sequence,
    state_from_json,
    state_to_json,
)


def test_next_sequence_same_year_returns_last():
    assert next_sequence(SequenceState(year=2025, last_sequence=9), 2025) == 9


def test_next_sequence_resets_on_year_rollover():
    assert next_sequence(SequenceState(year=2024, last_sequence=9), 2025) == 1


def test_next_sequence_without_state():
    assert next_sequence(None, 2025) == 1


def test_advance_moves_forward_within_year():
    state = advance(SequenceState(year=2025, last_sequence=9), 2025)
    assert state == SequenceState(year=2025, last_sequence=10)
    assert next_sequence(state, 2025) == 10


def test_advance_after_rollover_skips_startup_number():
    state = advance(SequenceState(year=2024, last_sequence=57), 2025)
    assert state == SequenceState(year=2025, last_sequence=2)


def test_state_json_uses_last_seq_key():
    raw = state_to_json(SequenceState(year=2025, last_sequence=3))
    assert '"lastSeq": 3' in raw
    assert state_from_json(raw) == SequenceState(year=2025, last_sequence=3)


def test_unreadable_state_counts_as_none():
    assert state_from_json(None) is None
    assert state_from_json("") is None
    assert state_from_json("{not json") is None
    assert state_from_json('{"year": 2025}') is None
