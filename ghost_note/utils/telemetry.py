"""Structured telemetry for analysis runs.

A :class:`StructuredTelemetry` collector records one trace per poem analysis:
per-stage timings, the weighted progress timeline reported to the host, the
detected form, counters such as cache hits, and free-form annotations.
Listeners receive every event; :class:`TelemetryLogger` forwards them to the
project logger.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from copy import deepcopy
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .observability import get_logger

TelemetryListener = Callable[[str, Dict[str, Any]], None]


class StructuredTelemetry:
    """Collector for stage timings, counters and trace metadata."""

    def __init__(
        self,
        time_fn: Optional[Callable[[], float]] = None,
        *,
        max_events: int = 256,
        listeners: Optional[Iterable[TelemetryListener]] = None,
    ) -> None:
        self._time_fn = time_fn or time.perf_counter
        self._max_events = max(1, int(max_events))
        self._lock = threading.RLock()
        self._trace_id = 0
        self._latest: Dict[str, Any] = {}
        self._listeners: List[TelemetryListener] = list(listeners or [])
        self._clear()

    def _clear(self) -> None:
        self._stages: Dict[str, Dict[str, float]] = {}
        self._stage_order: List[str] = []
        self._counters: Dict[str, float] = {}
        self._events: List[Dict[str, Any]] = []
        self._annotations: Dict[str, Any] = {}
        self._progress: List[Dict[str, Any]] = []
        self._form: Dict[str, Any] = {}
        self._trace_name: Optional[str] = None

    def _snapshot_locked(self) -> Dict[str, Any]:
        return {
            "trace_id": self._trace_id,
            "name": self._trace_name,
            "timings": {key: dict(self._stages[key]) for key in self._stage_order},
            "counters": dict(self._counters),
            "events": [dict(event) for event in self._events],
            "metadata": dict(self._annotations),
            "progress": [dict(step) for step in self._progress],
            "form": deepcopy(self._form),
        }

    def _emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            listeners: Tuple[TelemetryListener, ...] = tuple(self._listeners)
        for listener in listeners:
            try:
                listener(event_type, dict(payload))
            except Exception:
                # A faulty listener never interrupts an analysis run.
                continue

    def now(self) -> float:
        return float(self._time_fn())

    def start_trace(self, name: str) -> int:
        """Discard the previous run's data and open a new trace."""

        with self._lock:
            self._trace_id += 1
            self._clear()
            self._trace_name = name
            self._annotations["trace_name"] = name
            self._annotations["start_time"] = self.now()
            self._latest = deepcopy(self._snapshot_locked())
            trace_id = self._trace_id

        self._emit("trace_started", {"trace_id": trace_id, "name": name})
        return trace_id

    def record_timing(
        self,
        name: str,
        duration: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Fold ``duration`` seconds into the timing bucket for ``name``."""

        duration = max(0.0, float(duration))
        extra = dict(metadata) if metadata else {}
        with self._lock:
            bucket = self._stages.get(name)
            if bucket is None:
                bucket = {"count": 0, "total": 0.0, "min": duration, "max": duration}
                self._stages[name] = bucket
                self._stage_order.append(name)
            bucket["count"] += 1
            bucket["total"] += duration
            bucket["min"] = min(bucket["min"], duration)
            bucket["max"] = max(bucket["max"], duration)
            bucket["avg"] = bucket["total"] / bucket["count"]

            event: Dict[str, Any] = {"name": name, "duration": duration}
            if extra:
                event["metadata"] = extra
            self._events.append(event)
            del self._events[: -self._max_events]
            self._latest = deepcopy(self._snapshot_locked())

        self._emit("timing", {"name": name, "duration": duration, "metadata": extra})

    @contextmanager
    def timer(
        self,
        name: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Iterator[Dict[str, Any]]:
        """Time the enclosed block; callers may add keys to the yielded dict."""

        payload: Dict[str, Any] = dict(metadata) if metadata else {}
        start = self.now()
        self._emit("timer_started", {"name": name, "metadata": dict(payload)})
        try:
            yield payload
        finally:
            self.record_timing(name, self.now() - start, payload)

    def increment(self, name: str, amount: float = 1.0) -> None:
        value = float(amount)
        with self._lock:
            current = self._counters.get(name, 0.0) + value
            self._counters[name] = current
            self._latest = deepcopy(self._snapshot_locked())

        self._emit("counter", {"name": name, "delta": value, "value": current})

    def annotate(self, key: str, value: Any) -> None:
        """Attach metadata to the current trace."""

        with self._lock:
            self._annotations[key] = value
            self._latest = deepcopy(self._snapshot_locked())

        self._emit("metadata", {"key": key, "value": value})

    def record_progress(self, stage: str, percent: int) -> None:
        """Append a progress step; ``cached`` or ``complete`` closes the timeline."""

        step = {"stage": stage, "percent": int(percent), "at": self.now()}
        with self._lock:
            self._progress.append(step)
            self._latest = deepcopy(self._snapshot_locked())

        self._emit("progress", dict(step))

    def record_form(
        self,
        form_type: str,
        confidence: float,
        alternatives: Optional[Iterable[Tuple[str, float]]] = None,
    ) -> None:
        """Remember the detected poem form and its ranked alternatives."""

        form = {
            "form_type": form_type,
            "confidence": round(float(confidence), 4),
            "alternatives": [
                {"form_type": name, "confidence": round(float(score), 4)}
                for name, score in (alternatives or ())
            ],
        }
        with self._lock:
            self._form = form
            self._latest = deepcopy(self._snapshot_locked())

        self._emit("form_detected", deepcopy(form))

    def progress_timeline(self) -> List[Tuple[str, int]]:
        with self._lock:
            return [(step["stage"], step["percent"]) for step in self._progress]

    def stage_durations(self) -> Dict[str, float]:
        """Total seconds spent per stage, in the order stages first ran."""

        with self._lock:
            return {key: self._stages[key]["total"] for key in self._stage_order}

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            current = self._snapshot_locked()
            self._latest = deepcopy(current)
            return current

    def latest_snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return deepcopy(self._latest) if self._latest else {}

    def add_listener(self, listener: TelemetryListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: TelemetryListener) -> None:
        with self._lock:
            self._listeners = [entry for entry in self._listeners if entry is not listener]


class TelemetryLogger:
    """Listener that writes telemetry events to the project logger."""

    def __init__(
        self,
        *,
        logger: Optional[logging.LoggerAdapter] = None,
        level: int = logging.INFO,
        level_map: Optional[Dict[str, int]] = None,
    ) -> None:
        self._logger = logger or get_logger(__name__).bind(component="telemetry")
        self._default_level = level
        self._level_map = dict(level_map or {})

    def __call__(self, event_type: str, payload: Dict[str, Any]) -> None:
        level = self._level_map.get(event_type, self._default_level)
        if not self._logger.isEnabledFor(level):
            return

        context = {"telemetry.event": event_type}
        context.update({str(key): value for key, value in payload.items()})
        label = (
            payload.get("name")
            or payload.get("key")
            or payload.get("stage")
            or payload.get("form_type")
            or payload.get("trace_id")
            or "event"
        )
        try:
            self._logger.log(level, f"Telemetry {event_type}: {label}", context=context)
        except Exception:
            return


__all__ = ["StructuredTelemetry", "TelemetryLogger", "TelemetryListener"]
