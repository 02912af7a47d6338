from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable

from .errors import InvalidConfigurationError
from .transport import HttpTransport, Transport

LOGGER = logging.getLogger("netrand.engine")

# Monotonic clock in integer nanoseconds.
Clock = Callable[[], int]

_NS_PER_MS = 1_000_000


@dataclass(frozen=True)
class PhaseTiming:
    durations_ms: tuple[int, ...]
    total_ms: int


@dataclass(frozen=True)
class TimingResult:
    """Outcome of one engine invocation for a single batch size.

    ``concurrent_durations`` are in completion order, ``sequential_durations``
    in issuance order. Both hold exactly ``trials`` entries.
    """

    batch_size: int
    concurrent_durations: tuple[int, ...]
    concurrent_total_ms: int
    sequential_durations: tuple[int, ...]
    sequential_total_ms: int

    @property
    def trials(self) -> int:
        return len(self.sequential_durations)

    @property
    def ratio(self) -> float | None:
        if self.sequential_total_ms == 0:
            return None
        return self.concurrent_total_ms / self.sequential_total_ms


def time_sequential(
    url: str,
    trials: int,
    transport: Transport,
    clock: Clock = time.perf_counter_ns,
) -> PhaseTiming:
    """Issue ``trials`` GETs one after another on the calling thread."""
    _validate_trials(trials)

    started = clock()
    durations = [_timed_get(transport, url, clock) for _ in range(trials)]
    return PhaseTiming(durations_ms=tuple(durations), total_ms=_elapsed_ms(started, clock()))


def time_concurrent(
    url: str,
    trials: int,
    batch_size: int,
    transport: Transport,
    clock: Clock = time.perf_counter_ns,
) -> PhaseTiming:
    """Issue ``trials`` GETs on worker threads, pulsing a barrier every ``batch_size`` launches.

    After launching the worker for index ``i`` the launcher waits for every
    unfinished worker whenever ``i % batch_size == 0``. Index 0 always hits the
    barrier, so the first request runs on its own before the rest are released.
    Durations are drained from the completion queue in completion order.

    The first worker failure is re-raised on the launching thread as soon as it
    is seen: before the next launch, or by waking a barrier early. Workers still
    in flight are abandoned; they are daemon threads and no result is returned.
    """
    _validate_trials(trials)
    _validate_batch_size(batch_size)

    completions: queue.Queue[int] = queue.Queue(maxsize=trials)
    outstanding = _Outstanding()

    def worker() -> None:
        try:
            duration = _timed_get(transport, url, clock)
        except Exception as exc:  # noqa: BLE001
            outstanding.finished(failure=exc)
            return
        completions.put_nowait(duration)
        outstanding.finished()

    started = clock()
    for index in range(trials):
        outstanding.raise_if_failed()
        outstanding.launched()
        thread = threading.Thread(target=worker, name=f"netrand-get-{index}", daemon=True)
        thread.start()
        if index % batch_size == 0:
            outstanding.wait_idle()

    outstanding.wait_idle()

    durations = [completions.get_nowait() for _ in range(trials)]
    return PhaseTiming(durations_ms=tuple(durations), total_ms=_elapsed_ms(started, clock()))


class _Outstanding:
    """Counts launched and finished workers and keeps the first failure."""

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._launched = 0
        self._finished = 0
        self._failure: Exception | None = None

    def launched(self) -> None:
        with self._condition:
            self._launched += 1

    def finished(self, failure: Exception | None = None) -> None:
        with self._condition:
            self._finished += 1
            if failure is not None and self._failure is None:
                self._failure = failure
            self._condition.notify_all()

    def raise_if_failed(self) -> None:
        with self._condition:
            failure = self._failure
        if failure is not None:
            raise failure

    def wait_idle(self) -> None:
        """Block until every launched worker has finished or one has failed."""
        with self._condition:
            self._condition.wait_for(
                lambda: self._failure is not None or self._finished == self._launched
            )
        self.raise_if_failed()


class TimingEngine:
    """Times the same target concurrently and sequentially for one batch size per run."""

    def __init__(
        self,
        url: str,
        trials: int,
        transport: Transport | None = None,
        clock: Clock | None = None,
    ) -> None:
        if not isinstance(url, str) or not url.strip():
            raise InvalidConfigurationError("url must be a non-empty string")
        _validate_trials(trials)

        self._url = url
        self._trials = trials
        self._transport = transport if transport is not None else HttpTransport()
        self._clock = clock or time.perf_counter_ns

    @property
    def url(self) -> str:
        return self._url

    @property
    def trials(self) -> int:
        return self._trials

    def run(self, batch_size: int) -> TimingResult:
        _validate_batch_size(batch_size)

        concurrent = time_concurrent(
            self._url, self._trials, batch_size, self._transport, self._clock
        )
        LOGGER.debug(
            "Concurrent phase for batch size %d finished in %d ms",
            batch_size,
            concurrent.total_ms,
        )
        sequential = time_sequential(self._url, self._trials, self._transport, self._clock)
        LOGGER.debug(
            "Sequential phase for batch size %d finished in %d ms",
            batch_size,
            sequential.total_ms,
        )

        return TimingResult(
            batch_size=batch_size,
            concurrent_durations=concurrent.durations_ms,
            concurrent_total_ms=concurrent.total_ms,
            sequential_durations=sequential.durations_ms,
            sequential_total_ms=sequential.total_ms,
        )


def run_timing(
    url: str,
    trials: int,
    batch_size: int,
    transport: Transport | None = None,
    clock: Clock | None = None,
) -> TimingResult:
    return TimingEngine(url, trials, transport=transport, clock=clock).run(batch_size)


def _timed_get(transport: Transport, url: str, clock: Clock) -> int:
    start = clock()
    transport.get(url)
    return _elapsed_ms(start, clock())


def _elapsed_ms(start_ns: int, end_ns: int) -> int:
    return max(end_ns - start_ns, 0) // _NS_PER_MS


def _validate_trials(trials: int) -> None:
    if isinstance(trials, bool) or not isinstance(trials, int) or trials <= 0:
        raise InvalidConfigurationError(f"trials must be a positive integer, got {trials!r}")


def _validate_batch_size(batch_size: int) -> None:
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
        raise InvalidConfigurationError(
            f"batch_size must be a positive integer, got {batch_size!r}"
        )


__all__ = [
    "Clock",
    "PhaseTiming",
    "TimingResult",
    "TimingEngine",
    "run_timing",
    "time_concurrent",
    "time_sequential",
]
