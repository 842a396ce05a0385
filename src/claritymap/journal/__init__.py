"""Journal steps, the document model, progress tracking and the step controller."""

from .controller import NavEntry, StepController, StepView
from .document import ImportResult, JournalDocument, UnsupportedExportFormat
from .progress import ProgressLedger, StepProgress
from .sections import STEP_SEQUENCE, FieldKind, FieldSpec, Step, StepTemplate, build_template

__all__ = [
    "FieldKind",
    "FieldSpec",
    "ImportResult",
    "JournalDocument",
    "NavEntry",
    "ProgressLedger",
    "STEP_SEQUENCE",
    "Step",
    "StepController",
    "StepProgress",
    "StepTemplate",
    "StepView",
    "UnsupportedExportFormat",
    "build_template",
]
