"""Logging, metric and tracing helpers shared by the analysis pipeline.

Metrics live under the ``ghost_note`` Prometheus namespace and spans are
emitted by the ``ghost_note.pipeline`` tracer. Both libraries are optional;
without them every handle returned here is inert.
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Type, TypeVar


try:  # pragma: no cover - optional dependency
    from prometheus_client import Counter as _PromCounter
    from prometheus_client import Histogram as _PromHistogram
except Exception:  # pragma: no cover - Prometheus not installed
    _PromCounter = None
    _PromHistogram = None

try:  # pragma: no cover - optional dependency
    from opentelemetry import trace as _otel_trace
except Exception:  # pragma: no cover - OpenTelemetry not installed
    _otel_trace = None


METRIC_NAMESPACE = "ghost_note"
TRACER_NAME = "ghost_note.pipeline"
# Stages run in microseconds to tens of milliseconds on typical poems.
STAGE_BUCKETS = (0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 1.0)

_NULL_LOGGER_NAME = "ghost_note.null"


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Appends bound and per-call ``context`` to the message as JSON."""

    def bind(self, **context: Any) -> "StructuredLoggerAdapter":
        merged = dict(self.extra or {})
        merged.update(context)
        return StructuredLoggerAdapter(self.logger, merged)

    def process(self, msg: str, kwargs: Dict[str, Any]):
        context: Dict[str, Any] = dict(self.extra or {})
        extra_context = kwargs.pop("context", None)
        if isinstance(extra_context, dict):
            context.update(extra_context)
        if not context:
            return msg, kwargs
        try:
            rendered = json.dumps(context, sort_keys=True, default=str)
        except TypeError:
            rendered = json.dumps({str(k): str(v) for k, v in context.items()}, sort_keys=True)
        return f"{msg} | {rendered}", kwargs


def get_logger(name: str, **context: Any) -> StructuredLoggerAdapter:
    return StructuredLoggerAdapter(logging.getLogger(name), context)


def null_logger() -> StructuredLoggerAdapter:
    """Return a logger that discards every record.

    Pipeline components default to it so embedding hosts see no output until
    they inject a logger of their own.
    """

    base_logger = logging.getLogger(_NULL_LOGGER_NAME)
    if not any(isinstance(h, logging.NullHandler) for h in base_logger.handlers):
        base_logger.addHandler(logging.NullHandler())
    base_logger.propagate = False
    return StructuredLoggerAdapter(base_logger, {})


class _MetricHandle:
    """Holds an optional Prometheus collector; every call is a no-op without one."""

    def __init__(self, impl: Any = None) -> None:
        self._impl = impl

    def labels(self, **labels: Any):
        factory = getattr(self._impl, "labels", None)
        if factory is None:
            return type(self)()
        try:
            return type(self)(factory(**labels))
        except Exception:  # pragma: no cover - label mismatch
            return type(self)()

    def _call(self, method: str, *args: Any) -> None:
        if self._impl is None:
            return
        try:
            getattr(self._impl, method)(*args)
        except Exception:  # pragma: no cover - backend failure
            return


class CounterHandle(_MetricHandle):
    def inc(self, amount: float = 1.0) -> None:
        self._call("inc", amount)


class HistogramHandle(_MetricHandle):
    def observe(self, value: float) -> None:
        self._call("observe", value)

    @contextmanager
    def time(self) -> Iterator[None]:
        started = time.perf_counter()
        try:
            yield
        finally:
            self.observe(time.perf_counter() - started)


_H = TypeVar("_H", bound=_MetricHandle)


def _existing_collector(full_name: str) -> Any:
    try:  # pragma: no cover - only executed when the metric pre-exists
        from prometheus_client import REGISTRY

        collectors = REGISTRY._names_to_collectors  # type: ignore[attr-defined]
    except Exception:  # pragma: no cover - registry internals changed
        return None
    return collectors.get(full_name) or collectors.get(f"{full_name}_total")


def _build_metric(
    factory: Optional[Callable[..., Any]],
    handle_cls: Type[_H],
    name: str,
    documentation: str,
    label_names: Optional[Iterable[str]],
    **options: Any,
) -> _H:
    if factory is None:
        return handle_cls()
    try:
        impl = factory(
            name,
            documentation,
            labelnames=tuple(label_names or ()),
            namespace=METRIC_NAMESPACE,
            **options,
        )
    except ValueError:
        # Analyzers are created per host request; the collector outlives them.
        full_name = f"{METRIC_NAMESPACE}_{name}"
        if full_name.endswith("_total"):
            full_name = full_name[: -len("_total")]
        impl = _existing_collector(full_name)
    except Exception:  # pragma: no cover - backend failure
        impl = None
    return handle_cls(impl)


def create_counter(
    name: str,
    documentation: str,
    label_names: Optional[Iterable[str]] = None,
) -> CounterHandle:
    """Counter ``ghost_note_<name>``, shared across analyzer instances."""

    return _build_metric(_PromCounter, CounterHandle, name, documentation, label_names)


def create_histogram(
    name: str,
    documentation: str,
    label_names: Optional[Iterable[str]] = None,
    buckets: Iterable[float] = STAGE_BUCKETS,
) -> HistogramHandle:
    """Histogram ``ghost_note_<name>`` using stage-duration buckets by default."""

    return _build_metric(
        _PromHistogram,
        HistogramHandle,
        name,
        documentation,
        label_names,
        buckets=tuple(buckets),
    )


@contextmanager
def start_span(name: str, attributes: Optional[Dict[str, Any]] = None):
    """Yield an active span, or ``None`` when tracing is unavailable."""

    if _otel_trace is None:
        yield None
        return

    tracer = _otel_trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(name) as span:  # type: ignore[attr-defined]
        add_span_attributes(span, attributes or {})
        yield span


def add_span_attributes(span: Any, attributes: Dict[str, Any]) -> None:
    if span is None:
        return
    for key, value in attributes.items():
        if not isinstance(key, str) or value is None:
            continue
        try:
            span.set_attribute(key, value)
        except Exception:  # pragma: no cover - unsupported attribute type
            continue


def record_exception(span: Any, error: BaseException) -> None:
    if span is None:
        return
    try:  # pragma: no cover - exporter specific
        span.record_exception(error)
        span.set_attribute("error", True)
        span.set_attribute("error.type", type(error).__name__)
    except Exception:
        return


__all__ = [
    "METRIC_NAMESPACE",
    "STAGE_BUCKETS",
    "TRACER_NAME",
    "StructuredLoggerAdapter",
    "get_logger",
    "null_logger",
    "CounterHandle",
    "HistogramHandle",
    "create_counter",
    "create_histogram",
    "start_span",
    "add_span_attributes",
    "record_exception",
]
