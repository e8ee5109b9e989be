"""Tests for the progress sink wrappers."""

from __future__ import annotations

from uuid import uuid4

from codehealth.progress import NullProgressSink, SafeProgressSink
from tests._fixtures.doubles import ExplodingProgressSink, RecordingProgressSink


def test_safe_sink_keeps_percent_monotonic_and_clamped() -> None:
    recorder = RecordingProgressSink()
    sink = SafeProgressSink(recorder)
    repository_id = uuid4()

    sink.started(repository_id, uuid4())
    for percent in (10, 40, 25, 150, 90):
        sink.progress(repository_id, "step", percent)
    sink.completed(repository_id, uuid4())

    assert recorder.percents == [10, 40, 40, 100, 100]
    assert recorder.kinds[0] == "started"
    assert recorder.kinds[-1] == "completed"


def test_safe_sink_resets_on_new_run() -> None:
    recorder = RecordingProgressSink()
    sink = SafeProgressSink(recorder)
    repository_id = uuid4()

    sink.started(repository_id, uuid4())
    sink.progress(repository_id, "late", 80)
    sink.started(repository_id, uuid4())
    sink.progress(repository_id, "early", 10)

    assert recorder.percents == [80, 10]


def test_safe_sink_swallows_sink_failures() -> None:
    sink = SafeProgressSink(ExplodingProgressSink())
    repository_id = uuid4()

    sink.started(repository_id, uuid4())
    sink.progress(repository_id, "step", 50)
    sink.error(repository_id, "boom")
    sink.completed(repository_id, uuid4())


def test_null_sink_accepts_everything() -> None:
    sink = NullProgressSink()
    repository_id = uuid4()

    assert sink.started(repository_id, uuid4()) is None
    assert sink.progress(repository_id, "step", 50) is None
    assert sink.error(repository_id, "boom") is None
    assert sink.completed(repository_id, uuid4()) is None
