from collections import deque
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Lock
from time import perf_counter
from typing import Any, Deque, Dict, Iterator


class _TimerStat:
    __slots__ = ("count", "sum_ms", "min_ms", "max_ms")

    def __init__(self, first_ms: float):
        self.count = 1
        self.sum_ms = first_ms
        self.min_ms = first_ms
        self.max_ms = first_ms

    def add(self, value_ms: float) -> None:
        self.count += 1
        self.sum_ms += value_ms
        self.min_ms = min(self.min_ms, value_ms)
        self.max_ms = max(self.max_ms, value_ms)

    def summary(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg_ms": self.sum_ms / self.count,
            "min_ms": self.min_ms,
            "max_ms": self.max_ms,
        }


class InMemoryObservability:
    """Process-local counters, latency timers and recent pipeline traces."""

    def __init__(self, max_traces: int = 200):
        self._lock = Lock()
        self._counters: Dict[str, int] = {}
        self._timers: Dict[str, _TimerStat] = {}
        self._traces: Deque[Dict[str, Any]] = deque(maxlen=max_traces)

    def incr(self, name: str, value: int = 1) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + int(value)

    def observe_ms(self, name: str, value_ms: float) -> None:
        val = float(value_ms)
        with self._lock:
            stat = self._timers.get(name)
            if stat is None:
                self._timers[name] = _TimerStat(val)
            else:
                stat.add(val)

    @contextmanager
    def timed(self, name: str) -> Iterator[None]:
        started = perf_counter()
        try:
            yield
        finally:
            self.observe_ms(name, (perf_counter() - started) * 1000.0)

    def add_trace(self, event: Dict[str, Any]) -> None:
        payload = dict(event or {})
        payload.setdefault("ts", datetime.now(timezone.utc).isoformat())
        with self._lock:
            self._traces.append(payload)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "generated_at": datetime.now(timezone.utc).isoformat(),
                "counters": dict(self._counters),
                "timers": {name: stat.summary() for name, stat in self._timers.items()},
                "recent_traces": list(self._traces),
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timers.clear()
            self._traces.clear()


observability = InMemoryObservability()
