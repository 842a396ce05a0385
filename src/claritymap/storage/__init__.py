"""Local persistence for journal answers, progress and the insight credential."""

from .debounce import DebouncedWriter
from .schema import JournalMetadata, ProgressSnapshot, utc_now, utc_now_iso
from .store import CREDENTIAL_SLOT, DOCUMENT_SLOT, PROGRESS_SLOT, SlotStore

__all__ = [
    "CREDENTIAL_SLOT",
    "DOCUMENT_SLOT",
    "DebouncedWriter",
    "JournalMetadata",
    "PROGRESS_SLOT",
    "ProgressSnapshot",
    "SlotStore",
    "utc_now",
    "utc_now_iso",
]
