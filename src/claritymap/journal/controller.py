"""Step controller: moves between journal steps and keeps views and storage in sync."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..diagram.layout import DiagramData, RelationshipDiagram
from ..diagram.surface import MAPPING_SURFACE_ID, SurfaceRegistry
from ..insights.requestor import InsightRequestor
from ..storage.schema import utc_now
from ..utils.text import is_filled
from .document import JournalDocument
from .progress import ProgressLedger, progress_bucket
from .sections import (
    NAV_LABELS,
    PATTERN_CARDS,
    PLEDGE_NAME_PLACEHOLDER,
    PLEDGE_TEMPLATE,
    REQUIRED_FIELDS,
    STEP_SEQUENCE,
    FieldKind,
    FieldSpec,
    Step,
    StepTemplate,
    build_template,
)

LOGGER = logging.getLogger(__name__)

StepListener = Callable[[Step, datetime], None]

_TRUTHY = {"1", "true", "yes", "on", "y", "checked"}


def coerce_value(spec: FieldSpec, value: Any) -> Any:
    """Normalise raw input to the shape stored for ``spec``."""
    if spec.kind is FieldKind.CHECKBOX_GROUP:
        if isinstance(value, (list, tuple, set)):
            return [str(item) for item in value]
        if isinstance(value, str) and value.strip():
            return [item.strip() for item in value.split(",") if item.strip()]
        return []
    if spec.kind is FieldKind.CHECKBOX:
        if isinstance(value, str):
            return value.strip().lower() in _TRUTHY
        return bool(value)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def pledge_text(name: Any) -> str:
    cleaned = name.strip() if isinstance(name, str) else ""
    return PLEDGE_TEMPLATE.format(name=cleaned or PLEDGE_NAME_PLACEHOLDER)


@dataclass(slots=True)
class StepView:
    """Rendered state of one step: input values, display-only text and visibility."""

    template: StepTemplate
    values: Dict[str, Any] = field(default_factory=dict)
    displays: Dict[str, str] = field(default_factory=dict)
    visible: bool = False
    pledge: str = ""

    @property
    def step(self) -> Step:
        return self.template.step

    def capture(self) -> Dict[str, Any]:
        captured: Dict[str, Any] = {}
        for spec in self.template.fields:
            if spec.captured:
                captured[spec.id] = coerce_value(spec, self.values.get(spec.id, spec.empty_value()))
        return captured


@dataclass(slots=True)
class NavEntry:
    step: Step
    label: str
    active: bool
    visited: bool
    locked: bool
    progress: int


class StepController:
    """Coordinates the document, progress ledger, diagram and insight requestor."""

    def __init__(
        self,
        document: JournalDocument,
        ledger: ProgressLedger,
        diagram: RelationshipDiagram,
        insights: InsightRequestor,
        *,
        surfaces: Optional[SurfaceRegistry] = None,
        surface_size: Tuple[float, float] = (600.0, 400.0),
    ) -> None:
        self.document = document
        self.ledger = ledger
        self.diagram = diagram
        self.insights = insights
        self.steps: List[Step] = list(STEP_SEQUENCE)
        self.current_step: Optional[Step] = None
        self.nav_entries: List[NavEntry] = []
        self._surfaces = surfaces
        self._surface_size = surface_size
        self._views: Dict[Step, StepView] = {}
        self._listeners: List[StepListener] = []

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    @property
    def current_view(self) -> Optional[StepView]:
        if self.current_step is None:
            return None
        return self._views.get(self.current_step)

    def view(self, step: Step | str) -> Optional[StepView]:
        parsed = Step.parse(step)
        return self._views.get(parsed) if parsed is not None else None

    def _view_for(self, step: Step) -> StepView:
        view = self._views.get(step)
        if view is None:
            view = StepView(template=build_template(step))
            self._views[step] = view
            if step is Step.MAPPING and self._surfaces is not None:
                width, height = self._surface_size
                self._surfaces.register(MAPPING_SURFACE_ID, width, height)
            LOGGER.debug("Built view for step %s", step.value)
        return view

    # ------------------------------------------------------------------
    # Step transitions
    # ------------------------------------------------------------------
    def start(self) -> bool:
        """Show the step the journal was last left on."""
        step = Step.parse(self.document.get_current_section()) or Step.WELCOME
        return self.show_step(step)

    def show_step(self, step: Step | str) -> bool:
        target = Step.parse(step)
        if target is None:
            LOGGER.warning("Section %r not found", step)
            return False

        previous = self.current_view
        if previous is not None:
            captured = previous.capture()
            if captured:
                self.document.save_section(previous.step, captured)
            previous.visible = False

        view = self._view_for(target)
        view.visible = True
        self.current_step = target
        self.document.save_current_section(target)
        self.ledger.record_visit(target)
        self.nav_entries = self.navigation()
        self._restore(view)
        self._enter(view)

        timestamp = utc_now()
        for callback in list(self._listeners):
            callback(target, timestamp)
        return True

    def _restore(self, view: StepView) -> None:
        saved = self.document.get_section(view.step)
        defaults = self.document.get_auto_population_data(view.step)
        for spec in view.template.fields:
            if not spec.captured:
                continue
            value = saved.get(spec.id)
            # Read-only mirrors always follow the answer they copy.
            stale = spec.readonly and is_filled(defaults.get(spec.id))
            if (stale or not is_filled(value)) and spec.id in defaults:
                value = defaults[spec.id]
            view.values[spec.id] = coerce_value(spec, value if value is not None else spec.empty_value())

    def _enter(self, view: StepView) -> None:
        if view.step is Step.MAPPING:
            defaults = self.document.get_auto_population_data(Step.MAPPING)
            for spec in view.template.fields:
                if not spec.captured:
                    view.displays[spec.id] = str(defaults.get(spec.id) or "")
        elif view.step is Step.COMMITMENT:
            if not is_filled(view.values.get("signatureDate")):
                view.values["signatureDate"] = date.today().isoformat()
            view.pledge = pledge_text(view.values.get("yourName"))

    def next(self) -> Optional[Step]:
        self._sync_ledger()
        target = self.ledger.advance()
        if target is not None:
            self.show_step(target)
        return target

    def previous(self) -> Optional[Step]:
        self._sync_ledger()
        target = self.ledger.retreat()
        if target is not None:
            self.show_step(target)
        return target

    def go_to(self, step: Step | str) -> bool:
        target = Step.parse(step)
        if target is None:
            LOGGER.warning("Section %r not found", step)
            return False
        if not self.ledger.can_navigate_to(target):
            LOGGER.info("Step %s is locked until the previous step is visited", target.value)
            return False
        return self.show_step(target)

    def _sync_ledger(self) -> None:
        if self.current_step is not None and self.ledger.current_step is not self.current_step:
            self.ledger.record_visit(self.current_step)

    def navigation(self) -> List[NavEntry]:
        entries = []
        for step in self.steps:
            entries.append(
                NavEntry(
                    step=step,
                    label=NAV_LABELS[step],
                    active=step is self.current_step,
                    visited=step.value in self.ledger.visited,
                    locked=not self.ledger.can_navigate_to(step),
                    progress=progress_bucket(self.ledger.step_progress(step).percentage),
                )
            )
        return entries

    def add_step_listener(self, callback: StepListener) -> None:
        self._listeners.append(callback)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def edit_field(self, field_id: str, value: Any) -> bool:
        view = self.current_view
        if view is None:
            LOGGER.warning("No step is shown; ignoring edit of %s", field_id)
            return False
        spec = view.template.get(field_id)
        if spec is None or not spec.captured or spec.readonly:
            LOGGER.warning("Field %s is not editable on step %s", field_id, view.step.value)
            return False

        coerced = coerce_value(spec, value)
        view.values[field_id] = coerced
        self.document.save_field(view.step, field_id, coerced)
        self.ledger.track_field_edit(view.step, field_id, is_filled(coerced))
        if view.step is Step.COMMITMENT and field_id == "yourName":
            view.pledge = pledge_text(coerced)
        return True

    def toggle_option(self, field_id: str, option: str, checked: bool = True) -> bool:
        view = self.current_view
        spec = view.template.get(field_id) if view is not None else None
        if view is None or spec is None or spec.kind is not FieldKind.CHECKBOX_GROUP:
            LOGGER.warning("Field %s is not a checkbox group", field_id)
            return False
        if option not in spec.option_values:
            LOGGER.warning("Unknown option %r for %s", option, field_id)
            return False
        selected = set(coerce_value(spec, view.values.get(field_id)))
        if checked:
            selected.add(option)
        else:
            selected.discard(option)
        ordered = [value for value in spec.option_values if value in selected]
        return self.edit_field(field_id, ordered)

    def select_pattern(self, pattern_id: str) -> bool:
        if pattern_id not in {value for value, _ in PATTERN_CARDS}:
            LOGGER.warning("Unknown pattern %r", pattern_id)
            return False
        self.document.save_field(Step.PATTERNS, "selectedPattern", pattern_id)
        view = self._views.get(Step.PATTERNS)
        if view is not None:
            view.values["selectedPattern"] = pattern_id
        return True

    def save_current_step(self) -> bool:
        view = self.current_view
        if view is None:
            return False
        captured = view.capture()
        if captured:
            self.document.save_section(view.step, captured)
        self.document.save_current_section(view.step)
        return True

    def close(self) -> bool:
        self.save_current_step()
        saved = self.document.force_save()
        return self.ledger.save() and saved

    # ------------------------------------------------------------------
    # Diagram and insights
    # ------------------------------------------------------------------
    def mapping_values(self) -> Dict[str, Any]:
        defaults = self.document.get_auto_population_data(Step.MAPPING)
        view = self._views.get(Step.MAPPING)
        if view is not None and view.visible:
            values: Dict[str, Any] = {**view.values, **view.displays}
        else:
            values = dict(self.document.get_section(Step.MAPPING))
        for key, value in defaults.items():
            if not is_filled(values.get(key)):
                values[key] = value
        return values

    def generate_map(self) -> bool:
        """Draw the relationship diagram; ``False`` means the text fallback was used."""
        self._view_for(Step.MAPPING)
        return self.diagram.generate(DiagramData.from_mapping(self.mapping_values()))

    def uncover_hidden_patterns(self) -> str:
        self.save_current_step()
        return self.insights.request_influence_insight(self.document.get_section(Step.INFLUENCES))

    def summarize_reflection(self) -> str:
        self.save_current_step()
        return self.insights.request_journey_summary(self.document.data)

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------
    def _drop_views(self) -> None:
        self.diagram.clear()
        self._views.clear()
        if self._surfaces is not None:
            self._surfaces.unregister(MAPPING_SURFACE_ID)
        self.current_step = None

    def reload(self) -> bool:
        """Discard cached views after the document was replaced and resume its step."""
        self._drop_views()
        for step, fields in REQUIRED_FIELDS.items():
            for field_id in fields:
                self.ledger.track_field_edit(step, field_id, is_filled(self.document.get_field(step, field_id)))
        return self.start()

    def reset_journal(self) -> bool:
        self.document.clear_all_data()
        self.ledger.reset()
        self._drop_views()
        return self.show_step(Step.WELCOME)


def view_rows(view: StepView) -> List[Tuple[FieldSpec, Any]]:
    """Pair every field of ``view`` with the value currently shown for it."""
    rows = []
    for spec in view.template.fields:
        if spec.captured:
            rows.append((spec, view.values.get(spec.id, spec.empty_value())))
        else:
            rows.append((spec, view.displays.get(spec.id, "")))
    return rows


__all__ = [
    "NavEntry",
    "StepController",
    "StepListener",
    "StepView",
    "coerce_value",
    "pledge_text",
    "view_rows",
]
