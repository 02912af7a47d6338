from __future__ import annotations

import pandas as pd

from netrand.charts import LATENCY_CHART_FILENAME, RATIO_CHART_FILENAME, render_sweep_charts
from netrand.collector import RUN_COLUMNS, TIMING_COLUMNS, SweepCollector
from netrand.engine import TimingResult


def _collector() -> SweepCollector:
    collector = SweepCollector()
    run_id = 1
    for batch_size in (1, 2, 3):
        for concurrent_total in (90, 70):
            collector.add(
                run_id,
                TimingResult(
                    batch_size=batch_size,
                    concurrent_durations=(20, 35, 30),
                    concurrent_total_ms=concurrent_total // batch_size,
                    sequential_durations=(30, 30, 31),
                    sequential_total_ms=95,
                ),
            )
            run_id += 1
    return collector


def test_render_sweep_charts_writes_both_charts(tmp_path):
    collector = _collector()

    written = render_sweep_charts(
        collector.runs_dataframe(), collector.timings_dataframe(), tmp_path / "charts"
    )

    assert written == [
        tmp_path / "charts" / RATIO_CHART_FILENAME,
        tmp_path / "charts" / LATENCY_CHART_FILENAME,
    ]
    assert all(path.stat().st_size > 0 for path in written)


def test_empty_frames_render_nothing(tmp_path):
    written = render_sweep_charts(
        pd.DataFrame(columns=RUN_COLUMNS), pd.DataFrame(columns=TIMING_COLUMNS), tmp_path
    )

    assert written == []
    assert list(tmp_path.iterdir()) == []
