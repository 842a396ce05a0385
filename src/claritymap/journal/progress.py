"""Navigation and field-completion ledger, persisted in its own slot."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set

from pydantic import ValidationError

from ..storage.schema import ProgressSnapshot, utc_now_iso
from ..storage.store import PROGRESS_SLOT, SlotStore
from .sections import REQUIRED_FIELDS, STEP_SEQUENCE, Step, required_fields_for

LOGGER = logging.getLogger(__name__)

PROGRESS_BUCKETS = (100, 75, 50, 25, 0)


@dataclass(slots=True)
class StepProgress:
    """Required-field completion for a single step."""

    step: Step
    total: int
    completed: int
    percentage: int


def progress_bucket(percentage: float) -> int:
    """Snap a percentage down to the nearest indicator bucket (0/25/50/75/100)."""
    for bucket in PROGRESS_BUCKETS:
        if percentage >= bucket:
            return bucket
    return 0


def _field_key(step: Step, field_id: str) -> str:
    return f"{step.value}.{field_id}"


class ProgressLedger:
    """Tracks visited steps and filled required fields for the progress indicator."""

    def __init__(self, store: SlotStore, *, slot: str = PROGRESS_SLOT) -> None:
        self._store = store
        self._slot = slot
        self.steps: List[Step] = list(STEP_SEQUENCE)
        self.current_index = 0
        self.visited: Set[str] = set()
        self.field_completion: Set[str] = set()
        self.overall_completion = 0
        self.visual_progress = 0.0
        self.section_progress: Dict[Step, int] = {}
        self._reset_listeners: List[Callable[[], None]] = []
        self.load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def load(self) -> None:
        raw = self._store.get(self._slot)
        if raw is None:
            self._recompute()
            return
        try:
            snapshot = ProgressSnapshot.model_validate(raw)
        except ValidationError as error:
            LOGGER.warning("Ignoring malformed progress slot: %s", error.errors()[:1])
            self._recompute()
            return

        index = snapshot.current_section_index
        self.current_index = index if index < len(self.steps) else 0
        for entry in snapshot.completed_sections:
            if "." in entry:
                self.field_completion.add(entry)
            elif Step.parse(entry) is not None:
                self.visited.add(entry)
        self._recompute()

    def save(self) -> bool:
        snapshot = ProgressSnapshot(
            currentSectionIndex=self.current_index,
            completedSections=sorted(self.visited) + sorted(self.field_completion),
            timestamp=utc_now_iso(),
        )
        return self._store.set(self._slot, snapshot.to_slot())

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------
    @property
    def current_step(self) -> Step:
        return self.steps[self.current_index]

    def record_visit(self, step: Step | str) -> bool:
        parsed = Step.parse(step)
        if parsed is None:
            LOGGER.warning("Ignoring visit to unknown step %r", step)
            return False
        self.current_index = self.steps.index(parsed)
        self.visited.add(parsed.value)
        self._recompute()
        self.save()
        return True

    def track_field_edit(self, step: Step | str, field_id: str, is_non_empty: bool) -> bool:
        """Record whether a required field is filled; other fields are ignored."""
        parsed = Step.parse(step)
        if parsed is None or field_id not in required_fields_for(parsed):
            return False
        key = _field_key(parsed, field_id)
        if is_non_empty:
            self.field_completion.add(key)
        else:
            self.field_completion.discard(key)
        self._recompute()
        self.save()
        return True

    def advance(self) -> Optional[Step]:
        if self.current_index >= len(self.steps) - 1:
            return None
        target = self.steps[self.current_index + 1]
        self.record_visit(target)
        return target

    def retreat(self) -> Optional[Step]:
        if self.current_index <= 0:
            return None
        target = self.steps[self.current_index - 1]
        self.record_visit(target)
        return target

    def can_navigate_to(self, step: Step | str) -> bool:
        parsed = Step.parse(step)
        if parsed is None:
            return False
        target_index = self.steps.index(parsed)
        return target_index <= self.current_index + 1 or parsed.value in self.visited

    def reset(self) -> None:
        self.current_index = 0
        self.visited.clear()
        self.field_completion.clear()
        self._recompute()
        self.save()
        for callback in list(self._reset_listeners):
            callback()

    def add_reset_listener(self, callback: Callable[[], None]) -> None:
        self._reset_listeners.append(callback)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    def _recompute(self) -> None:
        total_required = sum(len(fields) for fields in REQUIRED_FIELDS.values())
        completed = sum(
            1
            for step, fields in REQUIRED_FIELDS.items()
            for field_id in fields
            if _field_key(step, field_id) in self.field_completion
        )
        self.overall_completion = round(completed / total_required * 100) if total_required else 0
        self.visual_progress = (self.current_index + 1) / len(self.steps) * 100
        self.section_progress = {step: self.step_progress(step).percentage for step in self.steps}

    def step_progress(self, step: Step) -> StepProgress:
        fields = required_fields_for(step)
        completed = sum(1 for field_id in fields if _field_key(step, field_id) in self.field_completion)
        percentage = round(completed / len(fields) * 100) if fields else 100
        return StepProgress(step=step, total=len(fields), completed=completed, percentage=percentage)

    def completion_summary(self) -> Dict[str, object]:
        return {
            "overall": self.overall_completion,
            "sections": [self.step_progress(step) for step in self.steps],
            "visitedSections": [step.value for step in self.steps if step.value in self.visited],
            "currentSection": self.current_step.value,
        }

    def render_progress_bar(self, width: int = 30) -> str:
        filled = int(round(self.visual_progress / 100 * width))
        bar = "#" * filled + "." * (width - filled)
        return (
            f"[{bar}] step {self.current_index + 1}/{len(self.steps)}"
            f" | {self.overall_completion}% of key answers"
        )


__all__ = ["PROGRESS_BUCKETS", "ProgressLedger", "StepProgress", "progress_bucket"]
