"""Canonical record of every journal answer plus its metadata."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from ..storage.debounce import DEFAULT_DELAY_SECONDS, DebouncedWriter, TimerFactory
from ..storage.schema import JournalMetadata, utc_now, utc_now_iso
from ..storage.store import DOCUMENT_SLOT, SlotStore
from ..utils.text import format_field_label
from .sections import ANCHOR_FIELDS, EXPORT_SECTIONS, STEP_SEQUENCE, Step, default_section

LOGGER = logging.getLogger(__name__)

REQUIRED_TOP_LEVEL_KEYS = ("metadata", "focus", "influences", "connections")
EXPORT_FORMATS = ("json", "text")


class UnsupportedExportFormat(ValueError):
    """Raised when ``export_data`` is asked for a format it cannot produce."""


@dataclass(slots=True)
class ImportResult:
    """Outcome of ``JournalDocument.import_data``; truthy on success."""

    ok: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.ok


def default_document() -> Dict[str, Any]:
    """Build a fresh document with every section and field present."""
    document: Dict[str, Any] = {"metadata": JournalMetadata().to_document()}
    for step in STEP_SEQUENCE:
        document[step.value] = default_section(step)
    return document


def validate_document_structure(data: Any) -> bool:
    """Minimal shape check applied to stored and imported documents."""
    if not isinstance(data, Mapping):
        return False
    return all(key in data for key in REQUIRED_TOP_LEVEL_KEYS)


def _merge_into(target: Dict[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, Mapping):
            existing = target.get(key)
            if not isinstance(existing, dict):
                existing = {}
                target[key] = existing
            _merge_into(existing, value)
        elif isinstance(target.get(key), dict):
            LOGGER.warning("Ignoring non-mapping value stored for %s", key)
        else:
            target[key] = copy.deepcopy(value)


def merge_with_defaults(stored: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep-merge ``stored`` onto the default structure so new fields always appear."""
    merged = default_document()
    _merge_into(merged, stored)
    merged["metadata"]["lastModified"] = utc_now_iso()
    return merged


def _display_date(value: Any) -> str:
    if not isinstance(value, str) or not value:
        return ""
    try:
        return datetime.fromisoformat(value).date().isoformat()
    except ValueError:
        return value


class JournalDocument:
    """Owns the in-memory journal and the storage slot that backs it."""

    def __init__(
        self,
        store: SlotStore,
        *,
        slot: str = DOCUMENT_SLOT,
        autosave_delay: float = DEFAULT_DELAY_SECONDS,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self._store = store
        self._slot = slot
        self.autosave_enabled = True
        self.last_saved: Optional[datetime] = None
        self._writer = DebouncedWriter(self._autosave, delay=autosave_delay, timer_factory=timer_factory)
        self.data: Dict[str, Any] = self.load()

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------
    def load(self) -> Dict[str, Any]:
        stored = self._store.get(self._slot)
        if stored is None:
            return default_document()
        if not validate_document_structure(stored):
            LOGGER.warning("Stored journal failed the shape check; starting from defaults")
            return default_document()
        return merge_with_defaults(stored)

    def persist(self) -> bool:
        """Write the document to its slot immediately."""
        success = self._store.set(self._slot, self.data)
        if success:
            self.last_saved = utc_now()
        else:
            LOGGER.warning("Journal was not persisted this cycle")
        return success

    def _autosave(self) -> bool:
        if not self.autosave_enabled:
            return False
        return self.persist()

    def set_autosave(self, enabled: bool) -> None:
        self.autosave_enabled = enabled

    def force_save(self) -> bool:
        """Flush any pending debounced write unconditionally."""
        self._writer.cancel()
        return self.persist()

    @property
    def save_pending(self) -> bool:
        return self._writer.pending

    def _touch(self) -> None:
        self._metadata()["lastModified"] = utc_now_iso()
        self._writer.schedule()

    def _metadata(self) -> Dict[str, Any]:
        metadata = self.data.get("metadata")
        if not isinstance(metadata, dict):
            metadata = JournalMetadata().to_document()
            self.data["metadata"] = metadata
        return metadata

    # ------------------------------------------------------------------
    # Field and section access
    # ------------------------------------------------------------------
    def get_field(self, section: Step | str, field_id: str, default: Any = "") -> Any:
        section_data = self.data.get(_key(section))
        if isinstance(section_data, Mapping) and field_id in section_data:
            return section_data[field_id]
        return default

    def save_field(self, section: Step | str, field_id: str, value: Any) -> bool:
        key = _key(section)
        section_data = self.data.get(key)
        if not isinstance(section_data, dict):
            section_data = {}
            self.data[key] = section_data
        section_data[field_id] = value
        self._touch()
        return True

    def get_section(self, section: Step | str) -> Dict[str, Any]:
        section_data = self.data.get(_key(section))
        if isinstance(section_data, dict):
            return section_data
        return {}

    def save_section(self, section: Step | str, values: Mapping[str, Any]) -> bool:
        key = _key(section)
        existing = self.data.get(key)
        merged = dict(existing) if isinstance(existing, Mapping) else {}
        merged.update(values)
        self.data[key] = merged
        self._touch()
        return True

    def save_current_section(self, step: Step | str) -> None:
        self._metadata()["currentSection"] = _key(step)
        self._writer.schedule()

    def get_current_section(self) -> str:
        return self._metadata().get("currentSection") or Step.WELCOME.value

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------
    def export_data(self, format: str = "json") -> str:
        if format == "json":
            return json.dumps(self.data, indent=2)
        if format == "text":
            return self.generate_text_summary()
        raise UnsupportedExportFormat(f"Unsupported export format: {format}")

    def generate_text_summary(self) -> str:
        metadata = self._metadata()
        lines = [
            "CLARITY MAP JOURNAL",
            f"Created: {_display_date(metadata.get('created'))}",
            f"Last Modified: {_display_date(metadata.get('lastModified'))}",
            "",
        ]
        for step, title in EXPORT_SECTIONS:
            lines.append(f"=== {title.upper()} ===")
            for field_id, value in self.get_section(step).items():
                if isinstance(value, str) and value.strip():
                    lines.append(f"{format_field_label(field_id)}: {value.strip()}")
                elif isinstance(value, list) and value:
                    joined = ", ".join(str(item) for item in value)
                    lines.append(f"{format_field_label(field_id)}: {joined}")
            lines.append("")
        return "\n".join(lines) + "\n"

    def import_data(self, payload: str | Mapping[str, Any], merge: bool = False) -> ImportResult:
        if isinstance(payload, (str, bytes)):
            try:
                imported = json.loads(payload)
            except json.JSONDecodeError as error:
                LOGGER.error("Error importing data: %s", error)
                return ImportResult(False, f"Invalid JSON: {error.msg}")
        else:
            imported = payload

        if not validate_document_structure(imported):
            LOGGER.error("Error importing data: invalid data structure")
            return ImportResult(False, "Invalid data structure")

        previous = self.data
        try:
            if merge:
                self.data = merge_with_defaults(imported)
            else:
                self.data = copy.deepcopy(dict(imported))
                self._metadata()["lastModified"] = utc_now_iso()
        except (TypeError, ValueError) as error:
            self.data = previous
            LOGGER.error("Error importing data: %s", error)
            return ImportResult(False, f"Could not import data: {error}")

        self._writer.cancel()
        if not self.persist():
            return ImportResult(True, "Imported, but the journal could not be saved")
        return ImportResult(True)

    def clear_all_data(self) -> bool:
        self._writer.cancel()
        self.data = default_document()
        self.last_saved = None
        return self._store.remove(self._slot)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    def get_completion_percentage(self) -> int:
        completed = 0
        for step, field_id in ANCHOR_FIELDS:
            value = self.get_field(step, field_id)
            if isinstance(value, str) and value.strip():
                completed += 1
        return round(completed / len(ANCHOR_FIELDS) * 100)

    def get_auto_population_data(self, target: Step | str) -> Dict[str, Any]:
        """Defaults for ``target`` derived from answers given in earlier steps."""
        step = Step.parse(target)
        if step is Step.CONNECTIONS:
            return {"focusAreaRepeat": self.get_field(Step.FOCUS, "wantMore")}
        if step is Step.MAPPING:
            return {
                "mapFocus": self.get_field(Step.FOCUS, "wantMore"),
                "mapEnergyGivers": self._joined(Step.CONNECTIONS, "energyGiver1", "energyGiver2"),
                "mapEnergyDrainers": self._joined(Step.CONNECTIONS, "energyDrainer1", "energyDrainer2"),
                "mapPattern": self.get_field(Step.CONNECTIONS, "strongestPattern"),
            }
        if step is Step.GOALS:
            return {"leveragePointGoal": self.get_field(Step.MAPPING, "leveragePoint")}
        if step is Step.ROADMAP:
            return {"roadmapGoal": self.get_field(Step.GOALS, "goalStatement")}
        return {}

    def _joined(self, section: Step, *field_ids: str) -> str:
        values = [self.get_field(section, field_id) for field_id in field_ids]
        return ", ".join(str(value) for value in values if value)

    def has_unsaved_changes(self) -> bool:
        if self.last_saved is None:
            return True
        try:
            modified = datetime.fromisoformat(self._metadata().get("lastModified", ""))
        except (TypeError, ValueError):
            return True
        if modified.tzinfo is None:
            modified = modified.replace(tzinfo=timezone.utc)
        return modified > self.last_saved

    def get_data_summary(self) -> Dict[str, Any]:
        metadata = self._metadata()
        return {
            "created": metadata.get("created"),
            "lastModified": metadata.get("lastModified"),
            "currentSection": self.get_current_section(),
            "completion": self.get_completion_percentage(),
            "lastSaved": self.last_saved.isoformat() if self.last_saved else None,
            "hasUnsavedChanges": self.has_unsaved_changes(),
        }


def _key(section: Step | str) -> str:
    if isinstance(section, Step):
        return section.value
    return str(section)


__all__ = [
    "EXPORT_FORMATS",
    "ImportResult",
    "JournalDocument",
    "UnsupportedExportFormat",
    "default_document",
    "merge_with_defaults",
    "validate_document_structure",
]
