"""
In-process metrics in Prometheus text format
Counters for entitlement events plus request timing histograms
"""
import time
from typing import Dict, Optional
from collections import defaultdict
from threading import Lock

# Samples kept per histogram series
HISTOGRAM_WINDOW = 1000


def _label_key(labels: Optional[Dict[str, str]]) -> tuple:
    return tuple(sorted((labels or {}).items()))


def _render_labels(label_tuple: tuple, extra: str = "") -> str:
    parts = [f'{k}="{v}"' for k, v in label_tuple]
    if extra:
        parts.append(extra)
    return "{" + ",".join(parts) + "}" if parts else ""


class MetricsCollector:
    """
    Thread-safe metrics collector for Prometheus format
    Uses in-memory storage, one instance per worker process
    """

    def __init__(self):
        self._lock = Lock()
        self._counters: Dict[str, Dict[tuple, float]] = defaultdict(lambda: defaultdict(float))
        self._histograms: Dict[str, Dict[tuple, list]] = defaultdict(lambda: defaultdict(list))

    def increment_counter(self, name: str, value: float = 1.0, labels: Optional[Dict[str, str]] = None):
        """
        Increment a counter metric

        Args:
            name: Metric name (e.g., "free_selections_total")
            value: Increment value (default: 1.0)
            labels: Optional labels dict (e.g., {"result": "limit_reached"})
        """
        with self._lock:
            self._counters[name][_label_key(labels)] += value

    def record_histogram(self, name: str, value: float, labels: Optional[Dict[str, str]] = None):
        """Record a histogram sample, keeping the most recent HISTOGRAM_WINDOW values"""
        with self._lock:
            series = self._histograms[name][_label_key(labels)]
            series.append(value)
            if len(series) > HISTOGRAM_WINDOW:
                del series[: len(series) - HISTOGRAM_WINDOW]

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        with self._lock:
            return self._counters.get(name, {}).get(_label_key(labels), 0.0)

    def get_histogram_stats(self, name: str, labels: Optional[Dict[str, str]] = None) -> Dict[str, float]:
        """
        Get histogram statistics (count, sum, min, max, avg)
        """
        with self._lock:
            values = list(self._histograms.get(name, {}).get(_label_key(labels), []))
        if not values:
            return {"count": 0, "sum": 0, "min": 0, "max": 0, "avg": 0}
        return {
            "count": len(values),
            "sum": sum(values),
            "min": min(values),
            "max": max(values),
            "avg": sum(values) / len(values),
        }

    def reset(self):
        with self._lock:
            self._counters.clear()
            self._histograms.clear()

    def format_prometheus(self) -> str:
        """
        Format metrics in Prometheus text format

        Histograms are exported as summaries with p50/p95/p99 quantiles.
        """
        lines = []
        with self._lock:
            for name, series in sorted(self._counters.items()):
                for label_tuple, value in sorted(series.items()):
                    lines.append(f"{name}{_render_labels(label_tuple)} {value}")

            for name, series in sorted(self._histograms.items()):
                for label_tuple, values in sorted(series.items()):
                    if not values:
                        continue
                    ordered = sorted(values)
                    last = len(ordered) - 1
                    lines.append(f"{name}_count{_render_labels(label_tuple)} {len(ordered)}")
                    lines.append(f"{name}_sum{_render_labels(label_tuple)} {sum(ordered)}")
                    for q in ("0.5", "0.95", "0.99"):
                        sample = ordered[min(int(len(ordered) * float(q)), last)]
                        quantile = 'quantile="' + q + '"'
                        lines.append(f"{name}{_render_labels(label_tuple, quantile)} {sample}")

        return "\n".join(lines) + "\n"


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Get global metrics collector instance"""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


def increment_counter(name: str, value: float = 1.0, labels: Optional[Dict[str, str]] = None):
    """Convenience function to increment counter"""
    get_metrics_collector().increment_counter(name, value, labels)


def record_histogram(name: str, value: float, labels: Optional[Dict[str, str]] = None):
    """Convenience function to record histogram"""
    get_metrics_collector().record_histogram(name, value, labels)


class RequestTimer:
    """Context manager for timing a block into a histogram"""

    def __init__(self, metric_name: str, labels: Optional[Dict[str, str]] = None):
        self.metric_name = metric_name
        self.labels = labels or {}
        self.start_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            record_histogram(self.metric_name, time.perf_counter() - self.start_time, self.labels)
