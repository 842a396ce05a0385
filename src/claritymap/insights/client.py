"""Gemini ``generateContent`` client used for reflection insights."""

from __future__ import annotations

import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_TIMEOUT = 30.0

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_MODEL",
    "GenerationConfig",
    "GeminiClient",
    "InsightClientError",
    "InsightResponseFormatError",
    "InsightTransportError",
    "Transport",
]


class InsightClientError(RuntimeError):
    """Base error raised for text-generation client failures."""


class InsightTransportError(InsightClientError):
    """Raised when the endpoint cannot be reached or answers with an error status."""


class InsightResponseFormatError(InsightClientError):
    """Raised when the response body does not carry generated text."""


# Receives the full URL (credential included) and the JSON payload; returns the raw body.
Transport = Callable[[str, Dict[str, Any]], str]


@dataclass(slots=True, frozen=True)
class GenerationConfig:
    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 1024

    def to_payload(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


class GeminiClient:
    """Single round trip to ``models/<model>:generateContent``; no retries."""

    def __init__(
        self,
        *,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        transport: Optional[Transport] = None,
        timeout: float = DEFAULT_TIMEOUT,
        generation: GenerationConfig = GenerationConfig(),
    ) -> None:
        self._model = model
        self._base_url = base_url.rstrip("/")
        timeout_override = os.getenv("CLARITYMAP_INSIGHT_TIMEOUT")
        if timeout_override:
            try:
                parsed = float(timeout_override)
                if parsed > 0:
                    timeout = parsed
            except ValueError:
                pass
        self._timeout = timeout
        self._generation = generation
        self._transport = transport or self._http_transport

    @property
    def model(self) -> str:
        return self._model

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/{self._model}:generateContent"

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": self._generation.to_payload(),
        }

    def generate(self, prompt: str, *, api_key: str) -> str:
        """Send ``prompt`` and return the first candidate's text."""
        url = f"{self.endpoint}?{urllib.parse.urlencode({'key': api_key})}"
        payload = self.build_payload(prompt)
        try:
            raw_response = self._transport(url, payload)
        except InsightClientError:
            raise
        except Exception as error:
            raise InsightTransportError(f"Transport rejected the request: {error}") from error
        return self._extract_text(raw_response)

    def _http_transport(self, url: str, payload: Dict[str, Any]) -> str:
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(
            url,
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
                status = getattr(response, "status", 200)
        except TimeoutError as error:  # pragma: no cover - network-dependent
            raise InsightTransportError("Insight request timed out.") from error
        except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
            raise InsightTransportError(f"API request failed with status {error.code}{_error_detail(error)}") from error
        except urllib.error.URLError as error:  # pragma: no cover - network-dependent
            raise InsightTransportError(f"Failed to reach insight endpoint: {error.reason}") from error

        if status >= 400:
            raise InsightTransportError(f"Unexpected HTTP status {status}")
        return raw.decode("utf-8")

    @staticmethod
    def _extract_text(raw_response: str) -> str:
        if not raw_response:
            raise InsightResponseFormatError("Insight endpoint returned an empty body.")
        try:
            data = json.loads(raw_response)
        except json.JSONDecodeError as error:
            raise InsightResponseFormatError("Insight endpoint returned invalid JSON.") from error

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as error:
            raise InsightResponseFormatError(
                "Unexpected API response format or no candidates returned."
            ) from error
        if not isinstance(text, str) or not text.strip():
            raise InsightResponseFormatError("Insight response did not contain text.")
        return text


def _error_detail(error: urllib.error.HTTPError) -> str:  # pragma: no cover - network-dependent
    try:
        body = json.loads(error.read().decode("utf-8", errors="ignore"))
    except (ValueError, OSError):
        return f": {error.reason}"
    message = body.get("error", {}).get("message") if isinstance(body, dict) else None
    return f": {message}" if message else ""
