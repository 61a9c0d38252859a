from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Callable, Optional

import pytest

from command_pipeline import CommandPipeline
from errors import PARSE_HINT, DownstreamError, InputError, ParseError, SessionError
from models import AddResult, ErrorCategory, ParsedCommand, ReportLevel, SessionState
from speech_session import SpeechSession


class FakeCapability:
    def __init__(self) -> None:
        self.on_final_result: Optional[Callable[[str], None]] = None
        self.on_interim_result: Optional[Callable[[str], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None
        self.on_end: Optional[Callable[[], None]] = None
        self.calls: list[str] = []

    def start(self) -> None:
        self.calls.append("start")

    def stop(self) -> None:
        self.calls.append("stop")

    def abort(self) -> None:
        self.calls.append("abort")


class FakeStore:
    def __init__(self, result: Optional[AddResult] = None, exc: Optional[Exception] = None) -> None:
        self.result = result or AddResult(success=True, reason="ok", record_id="r1")
        self.exc = exc
        self.calls: list[tuple[str, Decimal]] = []
        self.gate: Optional[asyncio.Event] = None

    async def add_record(self, description: str, amount: Decimal) -> AddResult:
        self.calls.append((description, amount))
        if self.gate is not None:
            await self.gate.wait()
        if self.exc is not None:
            raise self.exc
        return self.result


class ListSink:
    def __init__(self) -> None:
        self.reports: list[tuple[ReportLevel, str]] = []

    def report(self, level: ReportLevel, message: str) -> None:
        self.reports.append((level, message))

    @property
    def levels(self) -> list[ReportLevel]:
        return [level for level, _ in self.reports]


def _make_pipeline(
    store: Optional[FakeStore] = None,
    supported: bool = True,
) -> tuple[CommandPipeline, FakeCapability, FakeStore, ListSink]:
    capability = FakeCapability()
    store = store or FakeStore()
    sink = ListSink()
    session = SpeechSession(capability_factory=(lambda config: capability) if supported else None)
    return CommandPipeline(session, store, sink), capability, store, sink


@pytest.mark.asyncio
async def test_successful_utterance_is_added() -> None:
    pipeline, _, store, sink = _make_pipeline()

    command = await pipeline.process("Spent $10.50 on coffee")

    assert command == ParsedCommand(amount=Decimal("10.50"), description="coffee")
    assert store.calls == [("coffee", Decimal("10.50"))]
    assert sink.levels == [ReportLevel.INFO, ReportLevel.INFO, ReportLevel.SUCCESS]
    assert "$10.50" in sink.reports[-1][1]
    assert pipeline.busy is False
    assert pipeline.last_error is None


@pytest.mark.asyncio
async def test_parse_failure_is_a_warning() -> None:
    pipeline, _, store, sink = _make_pipeline()

    assert await pipeline.process("hello there") is None

    assert store.calls == []
    assert sink.reports[-1] == (ReportLevel.WARNING, PARSE_HINT)
    assert isinstance(pipeline.last_error, ParseError)
    assert pipeline.busy is False


@pytest.mark.asyncio
async def test_empty_utterance_is_a_warning() -> None:
    pipeline, _, _, sink = _make_pipeline()

    assert await pipeline.process("  ") is None

    assert sink.reports[-1][0] == ReportLevel.WARNING
    assert isinstance(pipeline.last_error, InputError)


@pytest.mark.asyncio
async def test_rejected_add_is_a_downstream_error() -> None:
    store = FakeStore(result=AddResult(success=False, reason="quota exceeded"))
    pipeline, _, _, sink = _make_pipeline(store)

    assert await pipeline.process("$4 bagel") is None

    assert sink.reports[-1] == (ReportLevel.ERROR, "Error adding expense: quota exceeded")
    assert isinstance(pipeline.last_error, DownstreamError)


@pytest.mark.asyncio
async def test_raising_add_is_a_downstream_error_and_not_retried() -> None:
    store = FakeStore(exc=OSError("disk full"))
    pipeline, _, _, sink = _make_pipeline(store)

    assert await pipeline.process("$4 bagel") is None

    assert len(store.calls) == 1
    assert sink.reports[-1] == (ReportLevel.ERROR, "Error adding expense: disk full")
    assert pipeline.busy is False


@pytest.mark.asyncio
async def test_overlapping_utterances_are_dropped() -> None:
    store = FakeStore()
    store.gate = asyncio.Event()
    pipeline, _, _, _ = _make_pipeline(store)

    first = pipeline.submit("$3 tea")
    assert first is not None
    await asyncio.sleep(0)
    assert pipeline.busy is True
    assert pipeline.state == SessionState.PROCESSING

    assert pipeline.submit("$9 lunch") is None
    assert await pipeline.process("$9 lunch") is None

    store.gate.set()
    command = await first

    assert command is not None and command.description == "tea"
    assert store.calls == [("tea", Decimal("3"))]
    assert pipeline.busy is False


@pytest.mark.asyncio
async def test_session_transcript_flows_into_store() -> None:
    pipeline, capability, store, _ = _make_pipeline()

    pipeline.start_capture()
    assert pipeline.state == SessionState.LISTENING
    assert capability.on_final_result is not None
    capability.on_final_result("Log 15 euro taxi")
    assert capability.on_end is not None
    capability.on_end()

    for _ in range(5):
        await asyncio.sleep(0)
    assert store.calls == [("taxi", Decimal("15"))]
    assert pipeline.state == SessionState.IDLE


@pytest.mark.asyncio
async def test_session_error_is_reported() -> None:
    pipeline, capability, _, sink = _make_pipeline()

    pipeline.start_capture()
    assert capability.on_error is not None
    capability.on_error("not-allowed")

    assert sink.reports[-1][0] == ReportLevel.ERROR
    assert "Microphone access denied" in sink.reports[-1][1]
    assert isinstance(pipeline.last_error, SessionError)
    assert pipeline.state == SessionState.IDLE


def test_unsupported_capability_is_reported_not_raised() -> None:
    pipeline, _, _, sink = _make_pipeline(supported=False)

    pipeline.start_capture()

    assert sink.reports == [(ReportLevel.ERROR, "Speech recognition is not available on this system.")]
    assert isinstance(pipeline.last_error, SessionError)
    assert pipeline.last_error.category == ErrorCategory.UNSUPPORTED_CAPABILITY


def test_toggle_starts_then_stops() -> None:
    pipeline, capability, _, _ = _make_pipeline()

    pipeline.toggle_capture()
    pipeline.toggle_capture()

    assert capability.calls == ["start", "stop"]


@pytest.mark.asyncio
async def test_toggle_is_ignored_while_processing() -> None:
    store = FakeStore()
    store.gate = asyncio.Event()
    pipeline, capability, _, _ = _make_pipeline(store)

    task = pipeline.submit("$3 tea")
    pipeline.toggle_capture()
    assert capability.calls == []

    store.gate.set()
    assert task is not None
    await task


def test_dispose_aborts_capture() -> None:
    pipeline, capability, _, _ = _make_pipeline()
    pipeline.start_capture()

    pipeline.dispose()

    assert capability.calls == ["start", "abort"]
    assert pipeline.state == SessionState.IDLE


def test_submit_without_running_loop_leaves_pipeline_idle() -> None:
    pipeline, capability, store, _ = _make_pipeline()
    pipeline.start_capture()
    assert capability.on_final_result is not None

    with pytest.raises(RuntimeError):
        capability.on_final_result("spent $5 on tea")

    assert pipeline.busy is False
    assert store.calls == []
    pipeline.toggle_capture()
    assert capability.calls == ["start", "stop"]


@pytest.mark.asyncio
async def test_submitted_task_is_held_until_done() -> None:
    store = FakeStore()
    store.gate = asyncio.Event()
    pipeline, _, _, _ = _make_pipeline(store)

    task = pipeline.submit("$3 tea")
    assert task is not None
    assert task in pipeline._tasks

    store.gate.set()
    await task
    await asyncio.sleep(0)
    assert pipeline._tasks == set()
