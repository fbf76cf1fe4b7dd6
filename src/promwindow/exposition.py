"""
Prometheus exposition of collector observers via prometheus_client.

Observers are converted into prometheus_client metric families so the text
format is produced by the client library rather than by hand.

Example:
    registry = CollectorRegistry()
    registry.register(ExpositionCollector(hub))
    text = generate_latest(registry).decode()

    # or, for a one-off render
    text = render(collector_a, collector_b)
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import Metric

from .definitions import MetricKind
from .observers import Observer


class ObserverSource(Protocol):
    """Anything whose metrics() yields populated observers (collectors, hubs)."""

    def metrics(self) -> list[Observer]: ...


def to_metric_family(observer: Observer) -> Metric:
    """
    Convert a populated observer into a prometheus_client metric family.

    Counters follow prometheus_client naming: the family drops a trailing
    "_total" and its samples carry it.
    """
    name = observer.name
    kind = MetricKind(observer.kind)

    if kind == MetricKind.COUNTER:
        if name.endswith("_total"):
            name = name[: -len("_total")]
        family = Metric(name, observer.description, "counter")
        for sample in observer.samples():
            family.add_sample(f"{name}_total", sample.labels, sample.value)
        return family

    family = Metric(name, observer.description, kind.value)
    for sample in observer.samples():
        family.add_sample(sample.name, sample.labels, sample.value)
    return family


class ExpositionCollector:
    """
    prometheus_client custom collector over one or more observer sources.

    Each scrape calls metrics() on every source, so values always reflect the
    records retained at scrape time.
    """

    def __init__(self, *sources: ObserverSource) -> None:
        self._sources = sources

    def collect(self) -> Iterator[Metric]:
        for source in self._sources:
            for observer in source.metrics():
                yield to_metric_family(observer)


def render(*sources: ObserverSource) -> str:
    """Render Prometheus text for the given sources on a private registry."""
    registry = CollectorRegistry()
    registry.register(ExpositionCollector(*sources))
    return generate_latest(registry).decode("utf-8")


def exposition_lines(text: str) -> list[str]:
    """Sample lines of rendered exposition text, without comments or blanks."""
    return [line for line in text.splitlines() if line and not line.startswith("#")]

