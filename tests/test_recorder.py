from __future__ import annotations

import sys

import pytest

from netrand.engine import TimingResult
from netrand.errors import RecorderError
from netrand.recorder import RunRecorder, default_database_path, open_database


def _result(batch_size: int = 3, concurrent_total: int = 120, sequential_total: int = 300) -> TimingResult:
    return TimingResult(
        batch_size=batch_size,
        concurrent_durations=(40, 20, 60),
        concurrent_total_ms=concurrent_total,
        sequential_durations=(90, 100, 110),
        sequential_total_ms=sequential_total,
    )


@pytest.fixture
def recorder(tmp_path):
    recorder = RunRecorder(open_database(tmp_path / "nested" / "runs.db"))
    yield recorder
    recorder.close()


def test_open_database_creates_schema(tmp_path):
    connection = open_database(tmp_path / "a" / "b" / "netrand.db")
    tables = {
        row[0] for row in connection.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    }
    connection.close()

    assert {"runs", "sequential_timings", "concurrent_timings"} <= tables
    assert (tmp_path / "a" / "b" / "netrand.db").exists()


def test_record_assigns_increasing_run_ids(recorder):
    first = recorder.record(_result())
    second = recorder.record(_result(batch_size=4))

    assert second == first + 1


def test_record_persists_summary_and_ratio(recorder):
    run_id = recorder.record(_result())

    runs = recorder.load_runs()

    assert list(runs["run_id"]) == [run_id]
    row = runs.iloc[0]
    assert row["batch_size"] == 3
    assert row["concurrent_total_ms"] == 120
    assert row["sequential_total_ms"] == 300
    assert row["ratio"] == pytest.approx(0.4)
    assert row["time"]


def test_record_persists_indexed_series(recorder):
    run_id = recorder.record(_result())

    concurrent = recorder.load_timings("concurrent")
    sequential = recorder.load_timings("sequential")

    assert list(concurrent["run_id"]) == [run_id] * 3
    assert list(concurrent["position"]) == [0, 1, 2]
    assert list(concurrent["timing_ms"]) == [40, 20, 60]
    assert list(sequential["position"]) == [0, 1, 2]
    assert list(sequential["timing_ms"]) == [90, 100, 110]


def test_zero_sequential_total_stores_null_ratio(recorder):
    recorder.record(_result(sequential_total=0))

    runs = recorder.load_runs()

    assert runs["ratio"].isna().all()


def test_failed_record_rolls_back_whole_run(recorder):
    broken = TimingResult(
        batch_size=2,
        concurrent_durations=(10, object()),
        concurrent_total_ms=20,
        sequential_durations=(10, 10),
        sequential_total_ms=20,
    )

    with pytest.raises(RecorderError):
        recorder.record(broken)

    assert recorder.load_runs().empty
    assert recorder.load_timings("concurrent").empty


def test_unknown_timing_kind(recorder):
    with pytest.raises(ValueError):
        recorder.load_timings("parallel")


def test_default_database_path_in_working_directory(monkeypatch, tmp_path):
    monkeypatch.delattr(sys, "frozen", raising=False)
    monkeypatch.chdir(tmp_path)

    assert default_database_path() == tmp_path.resolve() / "netrand.db"


def test_default_database_path_beside_frozen_executable(monkeypatch, tmp_path):
    executable = tmp_path / "bin" / "netrand"
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "executable", str(executable))

    assert default_database_path() == executable.resolve().parent / "netrand.db"
