"""
In-process routing of observation records to collectors.

A CollectorHub holds one collector per collector type and routes each record
by its "type" key. A LocalClient stands in for the wire transport: it
serializes every record to JSON and back before handing it to the hub, so
producers see the same key and value normalization a remote transport applies.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from typing import Any, Protocol

from .collector import Collector
from .errors import DuplicateCollectorError
from .observers import Observer

logger = logging.getLogger(__name__)


class MetricsClient(Protocol):
    """Transport used by processors to ship observation records."""

    def send_json(self, metric: Mapping[str, Any]) -> None: ...


class CollectorHub:
    """
    Registry of collectors keyed by collector type.

    Export isolates collector types: a type whose metrics() fails is logged
    and skipped, the others still export.

    Example:
        hub = CollectorHub()
        hub.register(DatabaseCollector())
        hub.process({"type": "db", "queries": 1})
        observers = hub.metrics()
    """

    def __init__(self, collectors: list[Collector] | None = None) -> None:
        self._collectors: dict[str, Collector] = {}
        self._lock = threading.Lock()
        for collector in collectors or []:
            self.register(collector)

    def register(self, collector: Collector) -> Collector:
        """
        Register a collector under its collector type.

        Raises:
            DuplicateCollectorError: If the type already has a collector
        """
        collector_type = collector.collector_type
        assert collector_type is not None
        with self._lock:
            if collector_type in self._collectors:
                raise DuplicateCollectorError(collector_type)
            self._collectors[collector_type] = collector
        logger.info(f"Registered collector {type(collector).__name__} for type '{collector_type}'")
        return collector

    def unregister(self, collector_type: str) -> Collector | None:
        with self._lock:
            return self._collectors.pop(collector_type, None)

    def get(self, collector_type: str) -> Collector | None:
        with self._lock:
            return self._collectors.get(collector_type)

    @property
    def collector_types(self) -> list[str]:
        with self._lock:
            return list(self._collectors)

    def process(self, record: Mapping[str, Any]) -> bool:
        """
        Route a record to the collector for its type.

        Returns:
            True if a collector accepted the record, False if it was dropped
        """
        collector_type = record.get("type")
        collector = self.get(collector_type) if isinstance(collector_type, str) else None
        if collector is None:
            logger.warning(f"No collector for metric type {collector_type!r}, dropping record")
            return False
        collector.collect(record)
        return True

    def metrics(self) -> list[Observer]:
        """Observers of every registered type, in registration order."""
        with self._lock:
            collectors = list(self._collectors.values())

        observers: list[Observer] = []
        for collector in collectors:
            try:
                observers.extend(collector.metrics())
            except Exception:
                logger.exception(f"Failed to export metrics for type '{collector.collector_type}'")
        return observers


class LocalClient:
    """
    Client that delivers records to an in-process hub.

    Records are JSON round-tripped: keys become strings and values must be
    JSON serializable, as they would be on the wire.
    """

    def __init__(self, hub: CollectorHub, custom_labels: Mapping[str, str] | None = None) -> None:
        """
        Initialize the client.

        Args:
            hub: Destination hub
            custom_labels: Labels added to every record as custom_labels
        """
        self.hub = hub
        self.custom_labels = dict(custom_labels or {})

    def send_json(self, metric: Mapping[str, Any]) -> None:
        """
        Serialize and deliver one record.

        Raises:
            TypeError: If the record is not JSON serializable
        """
        payload = json.dumps(self._with_custom_labels(metric))
        self.send(payload)

    def send(self, payload: str) -> None:
        """Deliver an already serialized record."""
        self.hub.process(json.loads(payload))

    def _with_custom_labels(self, metric: Mapping[str, Any]) -> Mapping[str, Any]:
        if not self.custom_labels:
            return metric
        return {**metric, "custom_labels": {**self.custom_labels, **(metric.get("custom_labels") or {})}}


# =============================================================================
# Process-wide defaults
# =============================================================================

_hub: CollectorHub | None = None
_client: LocalClient | None = None


def get_default_hub() -> CollectorHub:
    """
    Get the global collector hub.

    Creates one if it doesn't exist.
    """
    global _hub
    if _hub is None:
        _hub = CollectorHub()
    return _hub


def get_default_client() -> LocalClient:
    """Get the global client, delivering to the global hub."""
    global _client
    if _client is None:
        _client = LocalClient(get_default_hub())
    return _client


def reset_defaults() -> None:
    """Drop the global hub and client."""
    global _hub, _client
    _hub = None
    _client = None
