"""Process-local metrics registry used by request hooks and domain services."""
from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterator, Optional, Tuple

from apothecary.config import Config

MetricKey = Tuple[str, Tuple[Tuple[str, str], ...]]


def _labels_tuple(labels: Optional[Dict[str, Any]]) -> Tuple[Tuple[str, str], ...]:
    if not labels:
        return ()
    return tuple(sorted((key, str(value)) for key, value in labels.items()))


@dataclass
class Histogram:
    count: int = 0
    total: float = 0.0
    min_value: float = field(default=float("inf"))
    max_value: float = field(default=float("-inf"))

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.min_value = min(self.min_value, value)
        self.max_value = max(self.max_value, value)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg": self.total / self.count if self.count else 0.0,
            "min": self.min_value if self.count else None,
            "max": self.max_value if self.count else None,
        }


_lock = threading.Lock()
_counters: Dict[MetricKey, float] = defaultdict(float)
_gauges: Dict[MetricKey, float] = {}
_histograms: Dict[MetricKey, Histogram] = {}
_events: Deque[Dict[str, Any]] = deque(maxlen=Config.MAX_RECORDED_EVENTS)


def increment_counter(name: str, amount: float = 1.0, labels: Optional[Dict[str, Any]] = None) -> None:
    if not Config.OBSERVABILITY_ENABLED:
        return
    with _lock:
        _counters[(name, _labels_tuple(labels))] += amount


def set_gauge(name: str, value: float, labels: Optional[Dict[str, Any]] = None) -> None:
    if not Config.OBSERVABILITY_ENABLED:
        return
    with _lock:
        _gauges[(name, _labels_tuple(labels))] = value


def observe_latency(name: str, value: float, labels: Optional[Dict[str, Any]] = None) -> None:
    if not Config.OBSERVABILITY_ENABLED:
        return
    with _lock:
        _histograms.setdefault((name, _labels_tuple(labels)), Histogram()).observe(value)


@contextmanager
def timed(name: str, labels: Optional[Dict[str, Any]] = None) -> Iterator[None]:
    """Observe the wall-clock duration of the wrapped block in milliseconds."""
    started = time.perf_counter()
    try:
        yield
    finally:
        observe_latency(name, (time.perf_counter() - started) * 1000, labels)


def record_event(name: str, payload: Dict[str, Any]) -> None:
    if not Config.OBSERVABILITY_ENABLED:
        return
    with _lock:
        _events.append({"name": name, "timestamp": time.time(), "payload": payload})


def _group(series: Dict[MetricKey, Any], render) -> Dict[str, list]:
    grouped: Dict[str, list] = defaultdict(list)
    for (name, labels), value in series.items():
        grouped[name].append({"labels": dict(labels), **render(value)})
    return dict(grouped)


def get_metrics_snapshot() -> Dict[str, Any]:
    with _lock:
        return {
            "counters": _group(_counters, lambda value: {"value": value}),
            "gauges": _group(_gauges, lambda value: {"value": value}),
            "histograms": _group(_histograms, lambda hist: {"stats": hist.snapshot()}),
            "events": list(_events),
        }


def counter_total(name: str) -> float:
    """Sum a counter across every label set."""
    with _lock:
        return sum(value for (metric, _), value in _counters.items() if metric == name)


def reset_metrics() -> None:
    """Testing helper."""
    with _lock:
        _counters.clear()
        _gauges.clear()
        _histograms.clear()
        _events.clear()
