from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from claritymap.diagram import RelationshipDiagram, SurfaceRegistry  # noqa: E402
from claritymap.insights import GeminiClient, InsightRequestor  # noqa: E402
from claritymap.journal import JournalDocument, ProgressLedger, StepController  # noqa: E402
from claritymap.storage import SlotStore  # noqa: E402


@dataclass(slots=True)
class ManualTimer:
    """Timer stand-in that only fires when the test says so."""

    delay: float
    callback: Callable[[], None]
    started: bool = False
    cancelled: bool = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True


@dataclass(slots=True)
class ManualClock:
    timers: List[ManualTimer] = field(default_factory=list)

    def __call__(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def live(self) -> List[ManualTimer]:
        return [timer for timer in self.timers if timer.started and not timer.cancelled]

    def fire_all(self) -> int:
        """Run every started, uncancelled timer once; returns how many ran."""
        fired = 0
        for timer in self.live:
            timer.cancelled = True
            timer.callback()
            fired += 1
        return fired


@dataclass(slots=True)
class FakeTransport:
    """Records insight requests and replays a canned response body."""

    body: str = ""
    error: Exception | None = None
    calls: List[Tuple[str, Dict[str, Any]]] = field(default_factory=list)

    def __call__(self, url: str, payload: Dict[str, Any]) -> str:
        self.calls.append((url, payload))
        if self.error is not None:
            raise self.error
        return self.body

    def reply_with(self, text: str) -> None:
        self.body = json.dumps({"candidates": [{"content": {"parts": [{"text": text}]}}]})


@dataclass(slots=True)
class Journal:
    store: SlotStore
    clock: ManualClock
    transport: FakeTransport
    surfaces: SurfaceRegistry
    controller: StepController

    @property
    def document(self) -> JournalDocument:
        return self.controller.document

    @property
    def ledger(self) -> ProgressLedger:
        return self.controller.ledger

    @property
    def diagram(self) -> RelationshipDiagram:
        return self.controller.diagram


@pytest.fixture()
def store(tmp_path):
    with SlotStore(tmp_path / "claritymap.sqlite") as slot_store:
        yield slot_store


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def journal(store, clock, transport, monkeypatch) -> Journal:
    """Controller wired to a temp store, a manual clock and a fake network."""
    monkeypatch.delenv("CLARITYMAP_API_KEY", raising=False)
    surfaces = SurfaceRegistry(min_width=320, min_height=240)
    controller = StepController(
        JournalDocument(store, timer_factory=clock),
        ProgressLedger(store),
        RelationshipDiagram(surfaces),
        InsightRequestor(store, client=GeminiClient(transport=transport)),
        surfaces=surfaces,
        surface_size=(600, 400),
    )
    return Journal(store=store, clock=clock, transport=transport, surfaces=surfaces, controller=controller)
