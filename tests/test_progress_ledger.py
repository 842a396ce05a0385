from __future__ import annotations

import pytest

from claritymap.journal.progress import ProgressLedger, progress_bucket
from claritymap.journal.sections import Step
from claritymap.storage.store import PROGRESS_SLOT


def test_fresh_ledger_only_unlocks_first_two_steps(store) -> None:
    ledger = ProgressLedger(store)

    assert ledger.current_index == 0
    assert ledger.visited == set()
    assert ledger.can_navigate_to(Step.WELCOME)
    assert ledger.can_navigate_to(Step.FOCUS)
    assert not ledger.can_navigate_to(Step.INFLUENCES)
    assert not ledger.can_navigate_to(Step.COMMITMENT)

    ledger.record_visit(Step.FOCUS)
    assert ledger.can_navigate_to(Step.INFLUENCES)
    assert not ledger.can_navigate_to(Step.CONNECTIONS)


def test_visited_steps_stay_reachable_after_going_back(store) -> None:
    ledger = ProgressLedger(store)
    for step in (Step.FOCUS, Step.INFLUENCES, Step.CONNECTIONS):
        ledger.record_visit(step)
    ledger.record_visit(Step.WELCOME)

    assert ledger.can_navigate_to(Step.CONNECTIONS)
    assert not ledger.can_navigate_to(Step.PATTERNS)


def test_advance_and_retreat_stop_at_the_edges(store) -> None:
    ledger = ProgressLedger(store)
    assert ledger.retreat() is None
    assert ledger.advance() is Step.FOCUS
    assert ledger.current_step is Step.FOCUS

    for _ in range(20):
        ledger.advance()
    assert ledger.current_step is Step.COMMITMENT
    assert ledger.advance() is None
    assert ledger.retreat() is Step.ROADMAP


def test_required_field_tracking_drives_completion(store) -> None:
    ledger = ProgressLedger(store)

    assert ledger.track_field_edit(Step.FOCUS, "wantMore", True)
    assert ledger.overall_completion == round(1 / 8 * 100)
    assert ledger.step_progress(Step.FOCUS).percentage == 100

    assert ledger.track_field_edit(Step.INFLUENCES, "energyGivers", True)
    assert ledger.step_progress(Step.INFLUENCES).percentage == 50
    assert ledger.section_progress[Step.INFLUENCES] == 50

    assert not ledger.track_field_edit(Step.FOCUS, "lifeChallenge", True)
    assert ledger.overall_completion == round(2 / 8 * 100)

    ledger.track_field_edit(Step.FOCUS, "wantMore", False)
    assert ledger.overall_completion == round(1 / 8 * 100)


def test_visual_progress_follows_position(store) -> None:
    ledger = ProgressLedger(store)
    assert ledger.visual_progress == pytest.approx(100 / 9)
    ledger.record_visit(Step.COMMITMENT)
    assert ledger.visual_progress == 100


def test_state_survives_reload(store) -> None:
    ledger = ProgressLedger(store)
    ledger.record_visit(Step.FOCUS)
    ledger.record_visit(Step.INFLUENCES)
    ledger.track_field_edit(Step.INFLUENCES, "energyDrainers", True)

    stored = store.get(PROGRESS_SLOT)
    assert stored["currentSectionIndex"] == 2
    assert "influences.energyDrainers" in stored["completedSections"]
    assert "focus" in stored["completedSections"]

    reloaded = ProgressLedger(store)
    assert reloaded.current_step is Step.INFLUENCES
    assert reloaded.visited == {"focus", "influences"}
    assert reloaded.field_completion == {"influences.energyDrainers"}


def test_malformed_slot_resets_to_defaults(store) -> None:
    store.set(PROGRESS_SLOT, {"currentSectionIndex": "not a number", "completedSections": 7})
    ledger = ProgressLedger(store)
    assert ledger.current_index == 0
    assert ledger.visited == set()

    store.set(PROGRESS_SLOT, {"currentSectionIndex": 42, "completedSections": []})
    assert ProgressLedger(store).current_index == 0


def test_reset_clears_everything_and_notifies(store) -> None:
    ledger = ProgressLedger(store)
    calls = []
    ledger.add_reset_listener(lambda: calls.append("reset"))
    ledger.record_visit(Step.GOALS)
    ledger.track_field_edit(Step.GOALS, "goalStatement", True)

    ledger.reset()

    assert calls == ["reset"]
    assert ledger.current_index == 0
    assert ledger.visited == set()
    assert ledger.overall_completion == 0
    assert store.get(PROGRESS_SLOT)["completedSections"] == []


def test_completion_summary_and_bar(store) -> None:
    ledger = ProgressLedger(store)
    ledger.record_visit(Step.FOCUS)
    ledger.track_field_edit(Step.FOCUS, "wantMore", True)

    summary = ledger.completion_summary()
    sections = {entry.step: entry for entry in summary["sections"]}
    assert summary["currentSection"] == "focus"
    assert summary["visitedSections"] == ["focus"]
    assert sections[Step.WELCOME].percentage == 100
    assert sections[Step.FOCUS].completed == 1
    assert sections[Step.INFLUENCES].total == 2

    bar = ledger.render_progress_bar(width=9)
    assert bar.startswith("[##.......]")
    assert "step 2/9" in bar


def test_progress_buckets() -> None:
    assert progress_bucket(0) == 0
    assert progress_bucket(24) == 0
    assert progress_bucket(50) == 50
    assert progress_bucket(99) == 75
    assert progress_bucket(100) == 100
