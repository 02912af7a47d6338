"""
Latency benchmarking harness for repeated HTTP GET requests.

This package times a fixed number of requests sequentially and in pulsed,
bounded-size concurrent batches, persists every run to SQLite, and renders
charts comparing the two strategies across a sweep of batch sizes.
"""

from .engine import TimingEngine, TimingResult, run_timing
from .main import main

__all__ = ["TimingEngine", "TimingResult", "main", "run_timing"]
