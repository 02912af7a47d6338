from __future__ import annotations

import logging
import sqlite3
import sys
from pathlib import Path

import pandas as pd

from .engine import TimingResult
from .errors import RecorderError

LOGGER = logging.getLogger("netrand.recorder")

DEFAULT_DB_NAME = "netrand.db"

#      __________________________runs____________________
#     |                                                  |
# concurrent_timings(fk: run)               sequential_timings(fk: run)
SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS runs (
        run_id INTEGER NOT NULL PRIMARY KEY,
        time TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        waitgroup_size INTEGER,
        concurrent_total_ms INTEGER,
        sequential_total_ms INTEGER,
        concurrent_sequential_ratio REAL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sequential_timings (
        run INTEGER,
        call_number INTEGER,
        timing_ms INTEGER,
        FOREIGN KEY(run) REFERENCES runs(run_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS concurrent_timings (
        run INTEGER,
        channel_position INTEGER,
        timing_ms INTEGER,
        FOREIGN KEY(run) REFERENCES runs(run_id)
    )
    """,
)

_TIMING_TABLES = {
    "sequential": ("sequential_timings", "call_number"),
    "concurrent": ("concurrent_timings", "channel_position"),
}


def default_database_path() -> Path:
    """Place the database beside the frozen executable, or in the working directory."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent / DEFAULT_DB_NAME
    return Path.cwd() / DEFAULT_DB_NAME


def open_database(path: Path | str) -> sqlite3.Connection:
    db_path = Path(path)
    if str(db_path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        connection = sqlite3.connect(str(db_path))
        connection.execute("PRAGMA foreign_keys = ON")
        with connection:
            for statement in SCHEMA:
                connection.execute(statement)
    except sqlite3.Error as exc:
        raise RecorderError(f"failed to open database {db_path}: {exc}") from exc
    LOGGER.debug("Opened run database at %s", db_path)
    return connection


class RunRecorder:
    """Persist completed timing results as a run row plus both raw series."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def record(self, result: TimingResult) -> int:
        """Store ``result`` atomically and return the generated run id."""
        try:
            with self._connection:
                cursor = self._connection.execute(
                    """
                    INSERT INTO runs(
                        waitgroup_size,
                        sequential_total_ms,
                        concurrent_total_ms,
                        concurrent_sequential_ratio)
                    VALUES(?, ?, ?, ?)
                    """,
                    (
                        result.batch_size,
                        result.sequential_total_ms,
                        result.concurrent_total_ms,
                        result.ratio,
                    ),
                )
                run_id = cursor.lastrowid
                self._connection.executemany(
                    "INSERT INTO concurrent_timings(run, channel_position, timing_ms) VALUES(?, ?, ?)",
                    [
                        (run_id, position, timing)
                        for position, timing in enumerate(result.concurrent_durations)
                    ],
                )
                self._connection.executemany(
                    "INSERT INTO sequential_timings(run, call_number, timing_ms) VALUES(?, ?, ?)",
                    [
                        (run_id, position, timing)
                        for position, timing in enumerate(result.sequential_durations)
                    ],
                )
        except sqlite3.Error as exc:
            raise RecorderError(f"failed to persist run for batch size {result.batch_size}: {exc}") from exc

        LOGGER.debug("Persisted run %d (batch size %d)", run_id, result.batch_size)
        return run_id

    def load_runs(self) -> pd.DataFrame:
        return pd.read_sql_query(
            "SELECT run_id, time, waitgroup_size AS batch_size, concurrent_total_ms, "
            "sequential_total_ms, concurrent_sequential_ratio AS ratio "
            "FROM runs ORDER BY run_id",
            self._connection,
        )

    def load_timings(self, kind: str) -> pd.DataFrame:
        try:
            table, position_column = _TIMING_TABLES[kind]
        except KeyError:
            raise ValueError(f"Unknown timing kind: {kind}") from None
        return pd.read_sql_query(
            f"SELECT run AS run_id, {position_column} AS position, timing_ms "
            f"FROM {table} ORDER BY run, {position_column}",
            self._connection,
        )

    def close(self) -> None:
        self._connection.close()


__all__ = [
    "DEFAULT_DB_NAME",
    "RunRecorder",
    "default_database_path",
    "open_database",
]
