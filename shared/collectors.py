"""
Registry and default runtime collectors for observable services.
"""

import asyncio
from typing import Dict, Iterable, List, Optional

from prometheus_client import CollectorRegistry, Gauge, GCCollector, PlatformCollector, ProcessCollector
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from shared.logging import get_logger


class LabelledRegistry(CollectorRegistry):
    """Collector registry that stamps default labels on every sample.

    A label set by the metric itself wins over a default label with the same
    name.
    """

    def __init__(self, default_labels: Optional[Dict[str, str]] = None, auto_describe: bool = False):
        super().__init__(auto_describe=auto_describe)
        self.default_labels: Dict[str, str] = dict(default_labels or {})

    def set_default_labels(self, labels: Dict[str, str]) -> None:
        """Replace the labels applied to every exposed series."""
        self.default_labels = dict(labels)

    def collect(self) -> Iterable[Metric]:
        for metric in super().collect():
            if self.default_labels:
                metric.samples = [
                    sample._replace(labels={**self.default_labels, **sample.labels})
                    for sample in metric.samples
                ]
            yield metric


class PrefixedCollector(Collector):
    """Expose another collector's families under a name prefix."""

    def __init__(self, collector: Collector, prefix: str):
        self.collector = collector
        self.prefix = prefix

    def collect(self) -> Iterable[Metric]:
        for metric in self.collector.collect():
            if not self.prefix:
                yield metric
                continue
            # some collectors hand out the same family objects on every call
            family = Metric(f"{self.prefix}{metric.name}", metric.documentation, metric.type, metric.unit)
            family.samples = [
                sample._replace(name=f"{self.prefix}{sample.name}")
                for sample in metric.samples
            ]
            yield family

    def describe(self) -> Iterable[Metric]:
        """Reserve the prefixed family names in the registry."""
        return list(self.collect())


class RuntimeMetricsCollector:
    """Default process metrics: CPU, memory, descriptors, GC, event-loop lag.

    Process, platform and GC figures are read on every scrape. Event-loop lag
    is sampled by a background task between ``start()`` and ``stop()``.
    """

    def __init__(self, registry: CollectorRegistry, prefix: str = "", interval_seconds: float = 10.0):
        self.registry = registry
        self.prefix = prefix
        self.interval_seconds = interval_seconds
        self.logger = get_logger("metrics.runtime")

        self.collectors: List[PrefixedCollector] = [
            PrefixedCollector(ProcessCollector(registry=None), prefix),
            PrefixedCollector(PlatformCollector(registry=None), prefix),
            # GCCollector registers unconditionally, give it a registry of its own
            PrefixedCollector(GCCollector(registry=CollectorRegistry()), prefix),
        ]
        for collector in self.collectors:
            registry.register(collector)

        self.event_loop_lag = Gauge(
            f"{prefix}eventloop_lag_seconds",
            "Lag of the event loop in seconds",
            registry=registry,
        )

        self.sampling_task: Optional[asyncio.Task] = None
        self.running = False

    async def start(self):
        """Start sampling event-loop lag."""
        if self.running:
            return
        self.running = True
        self.sampling_task = asyncio.create_task(self._sample_event_loop())
        self.logger.debug("Runtime metrics collector started", interval_seconds=self.interval_seconds)

    async def stop(self):
        """Stop the sampling task and wait for it to finish."""
        if not self.running:
            return
        self.running = False
        if self.sampling_task:
            self.sampling_task.cancel()
            try:
                await self.sampling_task
            except asyncio.CancelledError:
                pass
            self.sampling_task = None

        self.logger.debug("Runtime metrics collector stopped")

    async def _sample_event_loop(self):
        loop = asyncio.get_running_loop()
        while self.running:
            started = loop.time()
            await asyncio.sleep(self.interval_seconds)
            lag = loop.time() - started - self.interval_seconds
            self.event_loop_lag.set(max(lag, 0.0))
