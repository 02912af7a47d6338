from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from dataclasses import dataclass
from pathlib import Path

from .charts import render_sweep_charts
from .collector import SweepCollector
from .config import (
    DEFAULT_MAX_BATCH_SIZE,
    DEFAULT_MIN_BATCH_SIZE,
    DEFAULT_REPEATS,
    DEFAULT_TRIALS,
    DEFAULT_URL,
    SweepPlan,
    batch_size_range,
)
from .engine import TimingEngine
from .errors import InvalidConfigurationError, RecorderError, RequestFailedError
from .recorder import RunRecorder, default_database_path, open_database
from .transport import HttpTransport

LOGGER = logging.getLogger("netrand.sweep")


@dataclass
class SweepStatistics:
    completed: int
    skipped: int
    started_at: float
    finished_at: float

    @property
    def duration_s(self) -> float:
        return max(self.finished_at - self.started_at, 0.0)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Time sequential vs batch-concurrent HTTP GETs across batch sizes"
    )
    parser.add_argument("--url", default=os.environ.get("NETRAND_URL", DEFAULT_URL))
    parser.add_argument(
        "--trials",
        default=os.environ.get("NETRAND_TRIALS", str(DEFAULT_TRIALS)),
        help="Requests per phase in every run",
    )
    parser.add_argument(
        "--min-batch-size",
        default=os.environ.get("NETRAND_MIN_BATCH_SIZE", str(DEFAULT_MIN_BATCH_SIZE)),
    )
    parser.add_argument(
        "--max-batch-size",
        default=os.environ.get("NETRAND_MAX_BATCH_SIZE", str(DEFAULT_MAX_BATCH_SIZE)),
    )
    parser.add_argument(
        "--repeats",
        default=os.environ.get("NETRAND_REPEATS", str(DEFAULT_REPEATS)),
        help="Runs per batch size",
    )
    parser.add_argument(
        "--timeout",
        default=os.environ.get("NETRAND_TIMEOUT_SECONDS"),
        help="Optional per-request timeout in seconds (no timeout by default)",
    )
    parser.add_argument(
        "--db-path",
        default=os.environ.get("NETRAND_DB_PATH"),
        help="SQLite database file (defaults to netrand.db in the working directory)",
    )
    parser.add_argument(
        "--output-dir",
        default=os.environ.get("NETRAND_OUTPUT_DIR", "netrand-output"),
        help="Directory to store sweep artefacts (charts and CSV files)",
    )
    parser.add_argument(
        "--skip-failed-runs",
        action="store_true",
        help="Log and skip runs whose requests fail instead of aborting the sweep",
    )
    parser.add_argument(
        "--no-charts",
        action="store_true",
        help="Only write CSV files and the manifest",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the planned runs without executing them",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("NETRAND_LOG_LEVEL", "INFO"),
        help="Logging level",
    )
    return parser.parse_args(argv)


def build_plan(args: argparse.Namespace) -> SweepPlan:
    timeout = _parse_number(args.timeout, float, "timeout") if args.timeout else None
    return SweepPlan(
        url=args.url,
        trials=_parse_number(args.trials, int, "trials"),
        batch_sizes=batch_size_range(
            _parse_number(args.min_batch_size, int, "min batch size"),
            _parse_number(args.max_batch_size, int, "max batch size"),
        ),
        repeats=_parse_number(args.repeats, int, "repeats"),
        timeout_s=timeout,
    )


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def run_sweep(
    plan: SweepPlan,
    engine: TimingEngine,
    recorder: RunRecorder,
    collector: SweepCollector,
    skip_failed_runs: bool = False,
) -> SweepStatistics:
    """Run every case in ``plan`` and persist each completed result.

    A failed request aborts the sweep by propagating ``RequestFailedError``
    unless ``skip_failed_runs`` is set; runs recorded before the failure stay
    persisted either way.
    """
    completed = 0
    skipped = 0
    started_at = time.time()
    total = len(plan)

    for index, case in enumerate(plan.cases(), start=1):
        LOGGER.info(
            "Running %s (%d/%d, trials=%d)",
            case.name,
            index,
            total,
            plan.trials,
        )
        try:
            result = engine.run(case.batch_size)
        except RequestFailedError as exc:
            if not skip_failed_runs:
                raise
            LOGGER.error("Skipping %s: %s", case.name, exc)
            skipped += 1
            continue

        run_id = recorder.record(result)
        collector.add(run_id, result)
        completed += 1
        ratio = "n/a" if result.ratio is None else f"{result.ratio:.3f}"
        LOGGER.info(
            "  Run %d: concurrent %d ms, sequential %d ms, ratio %s",
            run_id,
            result.concurrent_total_ms,
            result.sequential_total_ms,
            ratio,
        )

    return SweepStatistics(
        completed=completed,
        skipped=skipped,
        started_at=started_at,
        finished_at=time.time(),
    )


def write_artefacts(
    plan: SweepPlan,
    collector: SweepCollector,
    stats: SweepStatistics,
    db_path: Path,
    output_dir: Path,
    charts: bool = True,
) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    files: list[str] = []

    runs_df = collector.runs_dataframe()
    runs_path = output_dir / "runs.csv"
    runs_df.to_csv(runs_path, index=False)
    files.append(str(runs_path))

    timings_df = collector.timings_dataframe()
    for mode in ("sequential", "concurrent"):
        mode_path = output_dir / f"{mode}_timings.csv"
        timings_df[timings_df["mode"] == mode].to_csv(mode_path, index=False)
        files.append(str(mode_path))
    LOGGER.info("Saved %d runs and %d timings to %s", len(runs_df), len(timings_df), output_dir)

    if charts:
        files.extend(str(path) for path in render_sweep_charts(runs_df, timings_df, output_dir))

    manifest = {
        "url": plan.url,
        "trials": plan.trials,
        "batch_sizes": list(plan.batch_sizes),
        "repeats": plan.repeats,
        "completed_runs": stats.completed,
        "skipped_runs": stats.skipped,
        "duration_s": round(stats.duration_s, 3),
        "database": str(db_path),
        "files": files,
        "mean_ratio_by_batch_size": {
            str(batch_size): ratio for batch_size, ratio in collector.ratio_summary().items()
        },
    }
    manifest_path = output_dir / "sweep_manifest.json"
    with open(manifest_path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2)
    LOGGER.info("Sweep manifest written to %s", manifest_path)
    return manifest_path


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        plan = build_plan(args)
    except InvalidConfigurationError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2

    db_path = Path(args.db_path) if args.db_path else default_database_path()
    output_dir = Path(args.output_dir)

    LOGGER.info("Target URL: %s", plan.url)
    LOGGER.info("Run database: %s", db_path)
    LOGGER.info("Sweep output directory: %s", output_dir)

    if args.dry_run:
        _print_plan(plan)
        return 0

    try:
        recorder = RunRecorder(open_database(db_path))
    except RecorderError:
        LOGGER.exception("failed to initialise run database")
        return 1

    engine = TimingEngine(plan.url, plan.trials, transport=HttpTransport(timeout=plan.timeout_s))
    collector = SweepCollector()

    try:
        stats = run_sweep(plan, engine, recorder, collector, skip_failed_runs=args.skip_failed_runs)
    except RequestFailedError as exc:
        LOGGER.error("Sweep aborted after %d recorded runs: %s", len(collector), exc)
        return 1
    except RecorderError:
        LOGGER.exception("Sweep aborted while persisting a run")
        return 1
    finally:
        recorder.close()

    LOGGER.info(
        "Sweep finished: %d runs recorded, %d skipped in %.1f s",
        stats.completed,
        stats.skipped,
        stats.duration_s,
    )
    write_artefacts(plan, collector, stats, db_path, output_dir, charts=not args.no_charts)
    return 0


def _parse_number(value: str | int | float, kind: type, label: str) -> int | float:
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise InvalidConfigurationError(f"invalid {label} value {value!r}") from None


def _print_plan(plan: SweepPlan) -> None:
    print(f"Sweep: {plan.url} ({len(plan)} runs, {plan.trials} requests per phase)")
    timeout = f"{plan.timeout_s}s" if plan.timeout_s else "none"
    for batch_size in plan.batch_sizes:
        print(f"  - batch size {batch_size}: runs={plan.repeats} timeout={timeout}")


if __name__ == "__main__":
    sys.exit(main())
