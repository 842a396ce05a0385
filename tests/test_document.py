from __future__ import annotations

import json

import pytest

from claritymap.journal.document import (
    JournalDocument,
    UnsupportedExportFormat,
    default_document,
    validate_document_structure,
)
from claritymap.journal.sections import ANCHOR_FIELDS, STEP_SEQUENCE, Step
from claritymap.storage.store import DOCUMENT_SLOT


def _without_last_modified(data: dict) -> dict:
    copy = json.loads(json.dumps(data))
    copy["metadata"].pop("lastModified", None)
    return copy


def test_default_document_has_every_step_section() -> None:
    document = default_document()
    assert validate_document_structure(document)
    for step in STEP_SEQUENCE:
        assert step.value in document
    assert document["focus"]["lifeAreas"] == []
    assert document["goals"]["realityCheck"] is False
    assert document["roadmap"]["milestone1"] == ""
    assert document["metadata"]["currentSection"] == "welcome"


def test_partial_stored_document_is_completed_on_load(store, clock) -> None:
    store.set(
        DOCUMENT_SLOT,
        {
            "metadata": {"created": "2024-01-01T00:00:00+00:00"},
            "focus": {"wantMore": "calm mornings"},
            "influences": {},
            "connections": {},
        },
    )

    document = JournalDocument(store, timer_factory=clock)

    defaults = default_document()
    for section, fields in defaults.items():
        assert section in document.data
        for field_id in fields:
            assert field_id in document.data[section]
    assert document.get_field("focus", "wantMore") == "calm mornings"
    assert document.data["metadata"]["created"] == "2024-01-01T00:00:00+00:00"


def test_malformed_stored_document_falls_back_to_defaults(store, clock) -> None:
    store.set(DOCUMENT_SLOT, {"focus": {"wantMore": "x"}})
    document = JournalDocument(store, timer_factory=clock)
    assert document.get_field("focus", "wantMore") == ""


def test_non_mapping_sections_in_stored_document_heal_on_load(store, clock) -> None:
    store.set(
        DOCUMENT_SLOT,
        {"metadata": None, "focus": "broken", "influences": {"energyGivers": "sun"}, "connections": {}},
    )

    document = JournalDocument(store, timer_factory=clock)

    assert document.data["metadata"]["currentSection"] == "welcome"
    assert document.data["metadata"]["lastModified"]
    assert document.get_field("focus", "wantMore") == ""
    assert document.get_field("influences", "energyGivers") == "sun"


def test_merge_import_with_scalar_metadata_does_not_raise(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    payload = json.dumps(
        {"metadata": "v1", "focus": {"lifeChallenge": "noise"}, "influences": [], "connections": {}}
    )

    result = document.import_data(payload, merge=True)

    assert result
    assert isinstance(document.data["metadata"], dict)
    assert document.get_field("focus", "lifeChallenge") == "noise"
    assert isinstance(document.get_section("influences"), dict)


@pytest.mark.parametrize("value", ["text", True, False, ["family", "career"]])
def test_save_field_then_get_field(store, clock, value) -> None:
    document = JournalDocument(store, timer_factory=clock)
    document.save_field(Step.FOCUS, "someField", value)
    assert document.get_field(Step.FOCUS, "someField") == value


def test_edits_are_coalesced_into_one_write(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    document.save_field("focus", "wantMore", "a")
    document.save_field("focus", "wantMore", "ab")
    document.save_field("focus", "wantMore", "abc")

    assert store.get(DOCUMENT_SLOT) is None
    assert len(clock.live) == 1
    assert clock.live[0].delay == 2.0
    assert clock.fire_all() == 1
    assert store.get(DOCUMENT_SLOT)["focus"]["wantMore"] == "abc"
    assert not document.save_pending


def test_force_save_writes_immediately_and_cancels_pending(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    document.save_field("focus", "wantMore", "now")

    assert document.force_save()
    assert store.get(DOCUMENT_SLOT)["focus"]["wantMore"] == "now"
    assert clock.live == []
    assert document.last_saved is not None


def test_autosave_disabled_skips_timer_writes(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    document.set_autosave(False)
    document.save_field("focus", "wantMore", "later")
    clock.fire_all()
    assert store.get(DOCUMENT_SLOT) is None


def test_save_section_merges_with_existing_values(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    document.save_field("influences", "energyGivers", "walks")
    document.save_section("influences", {"energyDrainers": "email"})
    section = document.get_section("influences")
    assert section["energyGivers"] == "walks"
    assert section["energyDrainers"] == "email"


def test_json_export_import_roundtrip(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    document.save_field("focus", "wantMore", "space to think")
    document.save_field("focus", "lifeAreas", ["time", "energy"])
    document.save_field("goals", "realityCheck", True)
    exported = document.export_data("json")
    before = _without_last_modified(document.data)

    document.clear_all_data()
    result = document.import_data(exported, merge=False)

    assert result
    assert _without_last_modified(document.data) == before
    assert store.get(DOCUMENT_SLOT)["focus"]["wantMore"] == "space to think"


def test_import_rejects_bad_payloads_and_keeps_state(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    document.save_field("focus", "wantMore", "keep me")

    bad_json = document.import_data("{not json")
    assert not bad_json
    assert bad_json.reason.startswith("Invalid JSON")

    bad_shape = document.import_data(json.dumps({"metadata": {}}))
    assert not bad_shape
    assert bad_shape.reason == "Invalid data structure"

    assert document.get_field("focus", "wantMore") == "keep me"


def test_import_with_merge_fills_missing_fields(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    payload = {"metadata": {}, "focus": {"wantMore": "joy"}, "influences": {}, "connections": {}}
    assert document.import_data(payload, merge=True)
    assert document.get_field("focus", "wantMore") == "joy"
    assert document.get_field("commitment", "commitmentText") == ""


def test_text_export_lists_answered_fields(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    document.save_field("focus", "wantMore", "more rest")
    document.save_field("focus", "lifeAreas", ["health", "time"])
    document.save_field("patterns", "keyLearning", "I overcommit")

    text = document.export_data("text")

    assert text.startswith("CLARITY MAP JOURNAL\n")
    assert "=== FOCUS AREA ===" in text
    assert "Want More: more rest" in text
    assert "Life Areas: health, time" in text
    assert "=== PATTERNS ===" in text
    assert "Key Learning: I overcommit" in text
    assert "Energy Givers" not in text


def test_unknown_export_format_raises(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    with pytest.raises(UnsupportedExportFormat):
        document.export_data("pdf")


def test_completion_percentage_grows_to_one_hundred(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    assert document.get_completion_percentage() == 0

    previous = 0
    for step, field_id in ANCHOR_FIELDS:
        document.save_field(step, field_id, "answered")
        current = document.get_completion_percentage()
        assert current >= previous
        previous = current
    assert previous == 100


def test_auto_population_reads_earlier_answers(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    document.save_field("focus", "wantMore", "I want to feel less rushed")
    document.save_field("connections", "energyGiver1", "music")
    document.save_field("connections", "energyGiver2", "friends")
    document.save_field("connections", "energyDrainer1", "commute")
    document.save_field("connections", "strongestPattern", "saying yes")
    document.save_field("mapping", "leveragePoint", "mornings")
    document.save_field("goals", "goalStatement", "protect mornings")

    assert document.get_auto_population_data("connections") == {"focusAreaRepeat": "I want to feel less rushed"}
    assert document.get_auto_population_data("mapping") == {
        "mapFocus": "I want to feel less rushed",
        "mapEnergyGivers": "music, friends",
        "mapEnergyDrainers": "commute",
        "mapPattern": "saying yes",
    }
    assert document.get_auto_population_data("goals") == {"leveragePointGoal": "mornings"}
    assert document.get_auto_population_data("roadmap") == {"roadmapGoal": "protect mornings"}
    assert document.get_auto_population_data("welcome") == {}


def test_clear_all_data_removes_slot(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    document.save_field("focus", "wantMore", "x")
    document.force_save()

    assert document.clear_all_data()
    assert store.get(DOCUMENT_SLOT) is None
    assert document.get_field("focus", "wantMore") == ""
    assert document.has_unsaved_changes()


def test_data_summary_reports_state(store, clock) -> None:
    document = JournalDocument(store, timer_factory=clock)
    document.save_current_section("influences")
    summary = document.get_data_summary()
    assert summary["currentSection"] == "influences"
    assert summary["completion"] == 0
    assert summary["lastSaved"] is None
    assert summary["hasUnsavedChanges"] is True
