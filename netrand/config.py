from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

from .errors import InvalidConfigurationError

DEFAULT_URL = "https://unpkg.com/react-dom@18/umd/react-dom.production.min.js"
DEFAULT_TRIALS = 100
DEFAULT_MIN_BATCH_SIZE = 1
DEFAULT_MAX_BATCH_SIZE = 32
DEFAULT_REPEATS = 10


@dataclass(frozen=True)
class SweepCase:
    """Single engine invocation within a sweep."""

    batch_size: int
    repeat: int

    @property
    def name(self) -> str:
        return f"batch-{self.batch_size}-run-{self.repeat}"


@dataclass(frozen=True)
class SweepPlan:
    """Batch sizes to sweep and how many times each one is timed."""

    url: str
    trials: int
    batch_sizes: Sequence[int]
    repeats: int
    timeout_s: float | None = None

    def __post_init__(self) -> None:
        if not self.url:
            raise InvalidConfigurationError("url must not be empty")
        if self.trials <= 0:
            raise InvalidConfigurationError("trials must be > 0")
        if self.repeats <= 0:
            raise InvalidConfigurationError("repeats must be > 0")
        if not self.batch_sizes:
            raise InvalidConfigurationError("at least one batch size is required")
        if any(size <= 0 for size in self.batch_sizes):
            raise InvalidConfigurationError("batch sizes must be > 0")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise InvalidConfigurationError("timeout must be > 0 when set")
        object.__setattr__(self, "batch_sizes", tuple(self.batch_sizes))

    def cases(self) -> Iterator[SweepCase]:
        for batch_size in self.batch_sizes:
            for repeat in range(1, self.repeats + 1):
                yield SweepCase(batch_size=batch_size, repeat=repeat)

    def __len__(self) -> int:
        return len(self.batch_sizes) * self.repeats


def batch_size_range(minimum: int, maximum: int) -> tuple[int, ...]:
    if minimum <= 0 or maximum < minimum:
        raise InvalidConfigurationError(
            f"invalid batch size range {minimum}..{maximum}"
        )
    return tuple(range(minimum, maximum + 1))


def default_sweep_plan(url: str = DEFAULT_URL) -> SweepPlan:
    """Return the default sweep: batch sizes 1 to 32, ten runs each, 100 trials per run."""

    return SweepPlan(
        url=url,
        trials=DEFAULT_TRIALS,
        batch_sizes=batch_size_range(DEFAULT_MIN_BATCH_SIZE, DEFAULT_MAX_BATCH_SIZE),
        repeats=DEFAULT_REPEATS,
    )
