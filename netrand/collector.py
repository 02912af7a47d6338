from __future__ import annotations

import threading
from dataclasses import dataclass

import pandas as pd

from .engine import TimingResult

RUN_COLUMNS = [
    "run_id",
    "batch_size",
    "trials",
    "concurrent_total_ms",
    "sequential_total_ms",
    "ratio",
]
TIMING_COLUMNS = ["run_id", "batch_size", "mode", "position", "timing_ms"]


@dataclass
class RecordedRun:
    run_id: int
    result: TimingResult


class SweepCollector:
    """Accumulates recorded runs during a sweep and exposes them as dataframes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._runs: list[RecordedRun] = []

    def add(self, run_id: int, result: TimingResult) -> None:
        with self._lock:
            self._runs.append(RecordedRun(run_id=run_id, result=result))

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)

    def runs_dataframe(self) -> pd.DataFrame:
        with self._lock:
            runs = list(self._runs)

        if not runs:
            return pd.DataFrame(columns=RUN_COLUMNS)

        return pd.DataFrame(
            [
                {
                    "run_id": run.run_id,
                    "batch_size": run.result.batch_size,
                    "trials": run.result.trials,
                    "concurrent_total_ms": run.result.concurrent_total_ms,
                    "sequential_total_ms": run.result.sequential_total_ms,
                    "ratio": run.result.ratio,
                }
                for run in runs
            ],
            columns=RUN_COLUMNS,
        )

    def timings_dataframe(self) -> pd.DataFrame:
        """Long-form frame with one row per measured request."""
        with self._lock:
            runs = list(self._runs)

        rows = []
        for run in runs:
            for mode, durations in (
                ("concurrent", run.result.concurrent_durations),
                ("sequential", run.result.sequential_durations),
            ):
                rows.extend(
                    {
                        "run_id": run.run_id,
                        "batch_size": run.result.batch_size,
                        "mode": mode,
                        "position": position,
                        "timing_ms": timing,
                    }
                    for position, timing in enumerate(durations)
                )
        return pd.DataFrame(rows, columns=TIMING_COLUMNS)

    def ratio_summary(self) -> dict[int, float]:
        """Mean concurrent/sequential ratio per batch size, skipping undefined ratios."""
        df = self.runs_dataframe()
        if df.empty:
            return {}
        ratios = df.dropna(subset=["ratio"])
        means = ratios.groupby("batch_size")["ratio"].mean()
        return {int(batch_size): float(value) for batch_size, value in means.items()}
