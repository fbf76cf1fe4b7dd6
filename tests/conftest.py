"""Shared pytest fixtures for promwindow tests."""

from __future__ import annotations

import logging

import pytest

from promwindow import Collector, reset_defaults, reset_settings
from promwindow.logging import ROOT_LOGGER


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from PROMWINDOW_* variables, process-wide defaults and logger setup."""
    for var in ("PROMWINDOW_METRIC_MAX_AGE", "PROMWINDOW_DEFAULT_FREQUENCY", "PROMWINDOW_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    reset_settings()
    reset_defaults()
    root_logger = logging.getLogger(ROOT_LOGGER)
    handlers, level = list(root_logger.handlers), root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    reset_settings()
    reset_defaults()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def collector_class() -> type[Collector]:
    """Collector type 'foo' with every metric kind, default and custom options."""

    class FooCollector(Collector, collector_type="foo"):
        pass

    FooCollector.define_metric("c1", "counter", "c1 counter")
    FooCollector.define_metric("g1", "gauge", "g1 gauge")
    FooCollector.define_metric("h1", "histogram", "h1 histogram")
    FooCollector.define_metric("h2", "histogram", "h2 histogram", buckets=[0.1, 1, 100])
    FooCollector.define_metric("s1", "summary", "s1 summary")
    FooCollector.define_metric("s2", "summary", "s2 summary", quantiles=[0.99, 0.1, 0.01])
    return FooCollector


@pytest.fixture
def populated(collector_class: type[Collector]) -> Collector:
    """A 'foo' collector fed with four records across label-sets a=1 and a=2."""
    collector = collector_class()
    collector.collect({"c1": 1, "type": "foo"})
    collector.collect(
        {"c1": 1, "g1": 2, "h1": 3, "s1": 4, "s2": 5, "type": "foo", "labels": {"a": "1"}}
    )
    collector.collect(
        {"c1": 2, "g1": 3, "h1": 4, "s1": 5, "s2": 6, "type": "foo", "labels": {"a": "2"}}
    )
    collector.collect(
        {"c1": 3, "g1": 1, "h1": 101, "s1": 1, "s2": 0.5, "type": "foo", "labels": {"a": "2"}}
    )
    return collector
