"""Optional AI reflection insights."""

from .client import (
    GeminiClient,
    InsightClientError,
    InsightResponseFormatError,
    InsightTransportError,
)
from .prompts import FALLBACK_MESSAGES
from .requestor import InsightRequestor

__all__ = [
    "FALLBACK_MESSAGES",
    "GeminiClient",
    "InsightClientError",
    "InsightRequestor",
    "InsightResponseFormatError",
    "InsightTransportError",
]
