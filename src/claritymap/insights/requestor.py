"""Credential-gated reflection insights with canned fallbacks."""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

from ..storage.store import CREDENTIAL_SLOT, SlotStore
from .client import GeminiClient, InsightClientError
from .prompts import (
    fallback_message,
    format_insight_response,
    format_summary_response,
    render_influence_prompt,
    render_summary_prompt,
)

LOGGER = logging.getLogger(__name__)

API_KEY_ENV = "CLARITYMAP_API_KEY"


class InsightRequestor:
    """Turns journal answers into coaching text; never raises to the caller."""

    def __init__(
        self,
        store: SlotStore,
        *,
        client: Optional[GeminiClient] = None,
        slot: str = CREDENTIAL_SLOT,
    ) -> None:
        self._store = store
        self._slot = slot
        self._client = client or GeminiClient()
        self.api_key: Optional[str] = self._load_credential()

    def _load_credential(self) -> Optional[str]:
        stored = self._store.get(self._slot)
        if isinstance(stored, str) and stored.strip():
            return stored.strip()
        env_value = os.getenv(API_KEY_ENV, "").strip()
        return env_value or None

    def is_available(self) -> bool:
        return bool(self.api_key)

    def set_credential(self, value: str) -> bool:
        """Store ``value`` as the credential; blank input is rejected without changes."""
        trimmed = (value or "").strip()
        if not trimmed:
            return False
        self.api_key = trimmed
        if not self._store.set(self._slot, trimmed):
            LOGGER.warning("Credential kept in memory only; storage write failed")
        return True

    def clear_credential(self) -> bool:
        self.api_key = None
        return self._store.remove(self._slot)

    def request_influence_insight(self, influences: Mapping[str, Any]) -> str:
        if not self.is_available():
            return fallback_message("insights")
        try:
            text = self._client.generate(render_influence_prompt(influences), api_key=self.api_key or "")
        except InsightClientError as error:
            LOGGER.error("Error getting AI insights: %s", error)
            return fallback_message("insights_error")
        return format_insight_response(text)

    def request_journey_summary(self, document: Mapping[str, Any]) -> str:
        if not self.is_available():
            return fallback_message("reflection")
        try:
            text = self._client.generate(render_summary_prompt(document), api_key=self.api_key or "")
        except InsightClientError as error:
            LOGGER.error("Error getting AI reflection: %s", error)
            return fallback_message("reflection_error")
        return format_summary_response(text)


__all__ = ["API_KEY_ENV", "InsightRequestor"]
