"""
Metrics Collector: Prometheus-Compatible In-Process Metrics

Provides thread-safe metrics for the betting core:
- Counters for session and stake traffic
- Gauges for store sizes
- Latency histograms for sweep passes

Collectors are constructed explicitly and injected into the stores;
there is no process-global registry.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Sequence

_INF = float("inf")


@dataclass(frozen=True)
class MetricLabels:
    """Immutable label set for metric dimensions."""
    labels: tuple[tuple[str, str], ...]

    @classmethod
    def from_dict(cls, d: dict[str, str]) -> MetricLabels:
        return cls(labels=tuple(sorted(d.items())))

    def to_dict(self) -> dict[str, str]:
        return dict(self.labels)


class _LabeledMetric:
    """Naming, label keys and one value per label set."""

    __slots__ = ("_name", "_help", "_label_names", "_lock", "_values")

    kind = "untyped"

    def __init__(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
    ) -> None:
        self._name = name
        self._help = help_text
        self._label_names = tuple(label_names)
        self._lock = threading.Lock()
        self._values: dict[MetricLabels, float] = {}

    def _key(self, labels: dict[str, str]) -> MetricLabels:
        return MetricLabels.from_dict(
            {name: str(labels.get(name, "")) for name in self._label_names}
        )

    def _add(self, amount: float, labels: dict[str, str]) -> None:
        key = self._key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + amount

    def get(self, **labels: str) -> float:
        """Current value for one label set (0 if never recorded)."""
        key = self._key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def collect(self) -> Iterator[tuple[dict[str, str], float]]:
        """Iterate all label combinations."""
        with self._lock:
            snapshot = list(self._values.items())
        for key, value in snapshot:
            yield (key.to_dict(), value)

    @property
    def name(self) -> str:
        return self._name

    @property
    def help_text(self) -> str:
        return self._help


class Counter(_LabeledMetric):
    """
    Monotonically increasing counter metric.

    Usage:
        lookups = Counter("session_lookups_total", ["outcome"])
        lookups.inc(outcome="hit")
    """

    __slots__ = ()

    kind = "counter"

    def inc(self, value: float = 1.0, **labels: str) -> None:
        if value < 0:
            raise ValueError("Counter can only increase")
        self._add(value, labels)


class Gauge(_LabeledMetric):
    """
    Gauge metric that can go up and down.

    Usage:
        live = Gauge("sessions_live")
        live.set(store.session_count)
    """

    __slots__ = ()

    kind = "gauge"

    def set(self, value: float, **labels: str) -> None:
        key = self._key(labels)
        with self._lock:
            self._values[key] = value

    def inc(self, value: float = 1.0, **labels: str) -> None:
        self._add(value, labels)

    def dec(self, value: float = 1.0, **labels: str) -> None:
        self._add(-value, labels)


@dataclass
class _Series:
    """Cumulative bucket counts, sum and count for one label set."""
    bucket_counts: list[int]
    total: float = 0.0
    count: int = 0


class Histogram(_LabeledMetric):
    """
    Histogram with configurable upper bounds; +Inf is always present.

    Usage:
        duration = Histogram("sweep_duration_seconds")

        with duration.time():
            store.sweep_next_shard()
    """

    __slots__ = ("_bounds", "_series")

    kind = "histogram"

    DEFAULT_BUCKETS = (0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0)

    def __init__(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
        buckets: Optional[Sequence[float]] = None,
    ) -> None:
        super().__init__(name, label_names, help_text)
        bounds = sorted(set(buckets or self.DEFAULT_BUCKETS) - {_INF})
        self._bounds: tuple[float, ...] = (*bounds, _INF)
        self._series: dict[MetricLabels, _Series] = {}

    def observe(self, value: float, **labels: str) -> None:
        key = self._key(labels)
        with self._lock:
            series = self._series.get(key)
            if series is None:
                series = self._series[key] = _Series([0] * len(self._bounds))
            for i, bound in enumerate(self._bounds):
                if value <= bound:
                    series.bucket_counts[i] += 1
            series.total += value
            series.count += 1

    def time(self, **labels: str) -> HistogramTimer:
        """Context manager observing the elapsed wall time of its block."""
        return HistogramTimer(self, labels)

    def count(self, **labels: str) -> int:
        key = self._key(labels)
        with self._lock:
            series = self._series.get(key)
            return series.count if series else 0

    def collect(self) -> Iterator[dict[str, Any]]:  # type: ignore[override]
        with self._lock:
            snapshot = [
                {
                    "labels": key.to_dict(),
                    "buckets": list(zip(self._bounds, series.bucket_counts)),
                    "sum": series.total,
                    "count": series.count,
                }
                for key, series in self._series.items()
            ]
        yield from snapshot


class HistogramTimer:
    """Times a block into a histogram."""

    __slots__ = ("_histogram", "_labels", "_start")

    def __init__(self, histogram: Histogram, labels: dict[str, str]) -> None:
        self._histogram = histogram
        self._labels = labels
        self._start = 0.0

    def __enter__(self) -> HistogramTimer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self._histogram.observe(time.perf_counter() - self._start, **self._labels)


class MetricsCollector:
    """
    Registry for the metrics of one service instance.

    Names are unique across kinds; asking for an existing name returns the
    registered metric.

    Usage:
        collector = MetricsCollector()

        created = collector.counter("sessions_created_total")
        created.inc()

        # Export to Prometheus
        output = collector.export_prometheus()
    """

    __slots__ = ("_metrics", "_lock")

    def __init__(self) -> None:
        self._metrics: dict[str, _LabeledMetric] = {}
        self._lock = threading.Lock()

    def counter(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
    ) -> Counter:
        return self._register(Counter, name, label_names, help_text)

    def gauge(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
    ) -> Gauge:
        return self._register(Gauge, name, label_names, help_text)

    def histogram(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
        buckets: Optional[Sequence[float]] = None,
    ) -> Histogram:
        return self._register(Histogram, name, label_names, help_text, buckets)

    def _register(self, cls: type, name: str, *args: Any) -> Any:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = self._metrics[name] = cls(name, *args)
            elif not isinstance(metric, cls):
                raise ValueError(f"metric {name!r} is already registered as a {metric.kind}")
            return metric

    def export_prometheus(self) -> str:
        """Render every metric in the Prometheus text exposition format."""
        with self._lock:
            metrics = list(self._metrics.values())

        lines: list[str] = []
        for metric in metrics:
            if metric.help_text:
                lines.append(f"# HELP {metric.name} {metric.help_text}")
            lines.append(f"# TYPE {metric.name} {metric.kind}")

            if isinstance(metric, Histogram):
                lines.extend(self._histogram_lines(metric))
                continue
            for labels, value in metric.collect():
                lines.append(f"{metric.name}{self._format_labels(labels)} {value}")

        return "\n".join(lines)

    def _histogram_lines(self, histogram: Histogram) -> Iterator[str]:
        name = histogram.name
        for data in histogram.collect():
            labels = data["labels"]
            for bound, count in data["buckets"]:
                le = "+Inf" if bound == _INF else str(bound)
                yield f"{name}_bucket{self._format_labels({**labels, 'le': le})} {count}"
            yield f"{name}_sum{self._format_labels(labels)} {data['sum']}"
            yield f"{name}_count{self._format_labels(labels)} {data['count']}"

    @staticmethod
    def _format_labels(labels: dict[str, str]) -> str:
        if not labels:
            return ""
        return "{" + ",".join(f'{k}="{v}"' for k, v in sorted(labels.items())) + "}"

# =============================================================================
# STORE METRIC BUNDLES
# =============================================================================
class SessionMetrics:
    """Named metrics recorded by the session store and sweeper."""

    __slots__ = ("created", "refreshed", "expired", "lookups", "sweep_duration")

    def __init__(self, collector: MetricsCollector) -> None:
        self.created = collector.counter(
            "stakemesh_sessions_created_total",
            help_text="Sessions allocated",
        )
        self.refreshed = collector.counter(
            "stakemesh_sessions_refreshed_total",
            help_text="Idle clock resets on live sessions",
        )
        self.expired = collector.counter(
            "stakemesh_sessions_expired_total", ["path"],
            help_text="Expired sessions removed, by removal path",
        )
        self.lookups = collector.counter(
            "stakemesh_token_lookups_total", ["outcome"],
            help_text="Token validations, by outcome",
        )
        self.sweep_duration = collector.histogram(
            "stakemesh_sweep_duration_seconds",
            help_text="Duration of one shard sweep pass",
        )


class LeaderboardMetrics:
    """Named metrics recorded by the leaderboard store."""

    __slots__ = ("stakes", "ranking_updates", "offers")

    def __init__(self, collector: MetricsCollector) -> None:
        self.stakes = collector.counter(
            "stakemesh_stakes_submitted_total",
            help_text="Stakes submitted",
        )
        self.ranking_updates = collector.counter(
            "stakemesh_ranking_updates_total",
            help_text="Stakes that raised a personal maximum",
        )
        self.offers = collector.gauge(
            "stakemesh_offers",
            help_text="Offers with at least one stake",
        )
