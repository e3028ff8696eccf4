from datetime import date

from quotebot.estimate import storage
from quotebot.estimate.codec import import_from_json
from quotebot.estimate.editor import with_field
from quotebot.estimate.sequence import SequenceState, state_from_json, state_to_json
from quotebot.estimate.session import EstimateSession, get_session

from conftest import TODAY


def test_fresh_state_starts_at_first_sequence(state_dir):
    session = EstimateSession.load(TODAY)
    assert session.document.estimate_number == "INV-2025-001"
    assert session.sequence_state is None
    assert session.preferred_template == 1
    assert (state_dir / storage.DB_FILENAME).exists()


def test_new_document_advances_and_persists_sequence(state_dir):
    session = EstimateSession.load(TODAY)
    doc = session.new_document(TODAY)
    assert doc.estimate_number == "INV-2025-002"
    assert state_from_json(storage.get_value(storage.SEQUENCE_KEY)) == SequenceState(2025, 2)

    storage.delete_value(storage.ESTIMATE_KEY)
    reloaded = EstimateSession.load(TODAY)
    assert reloaded.document.estimate_number == "INV-2025-002"
    assert reloaded.new_document(TODAY).estimate_number == "INV-2025-003"


def test_sequence_rolls_over_with_the_year(state_dir):
    storage.set_value(storage.SEQUENCE_KEY, state_to_json(SequenceState(2024, 57)))
    session = EstimateSession.load(TODAY)
    assert session.document.estimate_number == "INV-2025-001"
    assert session.new_document(TODAY).estimate_number == "INV-2025-002"


def test_saved_document_is_restored(state_dir):
    session = EstimateSession.load(TODAY)
    session.update(with_field, "title", "Acme 견적")
    session.save()

    restored = EstimateSession.load(date(2025, 6, 1))
    assert restored.document == session.document
    assert restored.document.title == "Acme 견적"


def test_unsaved_edits_are_not_persisted(state_dir):
    session = EstimateSession.load(TODAY)
    session.update(with_field, "title", "draft")
    assert storage.get_value(storage.ESTIMATE_KEY) is None


def test_corrupt_saved_document_falls_back_to_default(state_dir):
    storage.set_value(storage.ESTIMATE_KEY, "{broken")
    session = EstimateSession.load(TODAY)
    assert session.document.estimate_number == "INV-2025-001"
    assert session.document.title == "견적서"


def test_template_preference_persists(state_dir):
    session = EstimateSession.load(TODAY)
    assert session.set_template(3).design_template == 3
    assert storage.get_value(storage.TEMPLATE_KEY) == "3"

    reloaded = EstimateSession.load(TODAY)
    assert reloaded.preferred_template == 3
    assert reloaded.new_document(TODAY).design_template == 3


def test_replace_swaps_in_imported_document(state_dir):
    session = EstimateSession.load(TODAY)
    imported = import_from_json('{"estimateNumber": "INV-2024-042", "title": "가져옴"}')
    session.replace(imported)
    assert session.document is imported
    session.save()
    assert EstimateSession.load(TODAY).document.estimate_number == "INV-2024-042"


def test_get_session_is_shared(state_dir):
    assert get_session() is get_session()
