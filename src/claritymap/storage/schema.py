"""Typed records persisted in the Clarity Map slot store."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field

DOCUMENT_VERSION = "1.0"


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return utc_now().isoformat()


class RecordModel(BaseModel):
    """Base Pydantic model for persisted slot payloads."""

    model_config = ConfigDict(extra="ignore", frozen=False, populate_by_name=True)


class JournalMetadata(RecordModel):
    """Bookkeeping stored under ``metadata`` in the journal document."""

    created: str = Field(default_factory=utc_now_iso)
    last_modified: str = Field(default_factory=utc_now_iso, alias="lastModified")
    version: str = DOCUMENT_VERSION
    current_section: str = Field(default="welcome", alias="currentSection")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class ProgressSnapshot(RecordModel):
    """Persisted form of the progress ledger."""

    current_section_index: int = Field(default=0, ge=0, alias="currentSectionIndex")
    completed_sections: List[str] = Field(default_factory=list, alias="completedSections")
    timestamp: str = Field(default_factory=utc_now_iso)

    def to_slot(self) -> dict:
        return self.model_dump(by_alias=True)


__all__ = [
    "DOCUMENT_VERSION",
    "JournalMetadata",
    "ProgressSnapshot",
    "RecordModel",
    "utc_now",
    "utc_now_iso",
]
