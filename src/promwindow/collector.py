"""
Aggregation engine: buffers observation records and replays them into observers.

Example:
    class DatabaseCollector(Collector, collector_type="db"):
        pass

    DatabaseCollector.define_metric("queries", "counter", "Queries executed")
    DatabaseCollector.define_metric("pool_size", "gauge", "Open connections")
    DatabaseCollector.define_metric(
        "latency", "histogram", "Query latency", buckets=[0.1, 1, 10]
    )

    collector = DatabaseCollector()
    collector.collect({"queries": 3, "pool_size": 5, "labels": {"db": "main"}})
    for observer in collector.metrics():
        print(observer.name, observer.series())
"""

from __future__ import annotations

import logging
import threading
from typing import Any, ClassVar

from .buffer import Clock, ObservationBuffer, Record
from .config import get_settings
from .definitions import MetricDefinition, MetricKind
from .errors import DuplicateMetricError, MetricDefinitionError
from .observers import Observer, build_observer

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def merge_labels(record: Record) -> dict[str, Any]:
    """Collector-assigned labels first, caller-assigned custom labels win on conflict."""
    labels: dict[str, Any] = {}
    if record.get("labels"):
        labels.update(record["labels"])
    if record.get("custom_labels"):
        labels.update(record["custom_labels"])
    return labels


class Collector:
    """
    Base class for collector types.

    Subclasses declare a collector type and its metrics; every instance owns a
    buffer of observation records and builds a fresh observer set per export.

    Thread-safe: collect() and metrics() are serialized by an instance lock, and
    each caller of metrics() gets observers no other export touches.
    """

    collector_type: ClassVar[str | None] = None
    metric_max_age: ClassVar[float | None] = None
    _definitions: ClassVar[dict[str, MetricDefinition]] = {}

    def __init_subclass__(
        cls,
        collector_type: str | None = None,
        metric_max_age: float | None = _UNSET,
        **kwargs: Any,
    ) -> None:
        super().__init_subclass__(**kwargs)

        # Type, definitions and max age are per type, never inherited
        if collector_type is not None:
            cls.collector_type = collector_type
        elif "collector_type" not in cls.__dict__:
            cls.collector_type = None

        if metric_max_age is not _UNSET:
            cls.metric_max_age = metric_max_age
        elif "metric_max_age" not in cls.__dict__:
            cls.metric_max_age = get_settings().metric_max_age

        cls._definitions = {}

    # =========================================================================
    # Definitions
    # =========================================================================

    @classmethod
    def define_metric(
        cls,
        name: str,
        kind: MetricKind | str | type[Observer],
        description: str = "",
        **options: Any,
    ) -> MetricDefinition:
        """
        Register a metric for this collector type.

        Must be called before instances are created; existing instances keep
        the observers they were built with.

        Args:
            name: Key of the metric in observation records
            kind: counter, gauge, histogram, summary, or an Observer subclass
            description: Help text for the exported series
            **options: buckets (histogram) or quantiles (summary)

        Returns:
            The registered definition

        Raises:
            InvalidKindError: If kind is not recognized
            DuplicateMetricError: If name is already defined for this type
            MetricDefinitionError: If options are invalid or the type has no name
        """
        if cls.collector_type is None:
            raise MetricDefinitionError(
                f"{cls.__name__} must set collector_type before defining metrics"
            )
        if name in cls._definitions:
            raise DuplicateMetricError(cls.collector_type, name)

        observer_class = None
        if isinstance(kind, type) and issubclass(kind, Observer):
            observer_class, kind = kind, kind.kind

        definition = MetricDefinition.create(
            cls.collector_type,
            name,
            kind,
            description,
            observer_class=observer_class,
            **options,
        )
        cls._definitions[name] = definition
        logger.debug(f"Defined {definition.kind} {definition.metric_name}")
        return definition

    @classmethod
    def definitions(cls) -> list[MetricDefinition]:
        """Definitions of this collector type, in registration order."""
        return list(cls._definitions.values())

    # =========================================================================
    # Instance
    # =========================================================================

    def __init__(self, clock: Clock | None = None) -> None:
        """
        Initialize a collector instance.

        Args:
            clock: Monotonic clock used for eviction (default time.monotonic)

        Raises:
            NotImplementedError: If the class does not declare a collector type
        """
        if self.collector_type is None:
            raise NotImplementedError(
                f"{type(self).__name__} is abstract: set collector_type on a subclass"
            )

        # Max age comes from the class on each collect
        self._buffer = ObservationBuffer() if clock is None else ObservationBuffer(clock=clock)
        self._metric_definitions = dict(self._definitions)
        self._observers = self._build_observers()
        self._lock = threading.Lock()

    def _build_observers(self) -> dict[str, Observer]:
        return {
            name: build_observer(definition)
            for name, definition in self._metric_definitions.items()
        }

    @property
    def observers(self) -> list[Observer]:
        """Observers of the latest export, in registration order."""
        return list(self._observers.values())

    def collect(self, record: Record) -> None:
        """Buffer one observation record, evicting stale records first."""
        with self._lock:
            self._buffer.append(record, max_age=type(self).metric_max_age)

    def metrics(self) -> list[Observer]:
        """
        Recompute all observers from the retained records.

        Every export replays into a fresh observer set owned by the caller, so
        a later export never resets observers an earlier caller is still reading.

        Returns:
            Populated observers in registration order, or an empty list when
            nothing is buffered
        """
        with self._lock:
            if not self._buffer:
                return []

            observers = self._build_observers()
            for record in self._buffer:
                self._replay(record, observers)

            logger.debug(
                f"Replayed {len(self._buffer)} records into "
                f"{len(observers)} {self.collector_type} observers"
            )
            self._observers = observers
            return list(observers.values())

    def _replay(self, record: Record, observers: dict[str, Observer]) -> None:
        """Feed one record to every observer whose metric it carries (lock held)."""
        labels = merge_labels(record)
        for name, observer in observers.items():
            value = record.get(name)
            if value is not None:
                observer.observe(value, labels)

    def reset(self) -> None:
        """Drop all buffered records and observer state."""
        with self._lock:
            self._buffer.clear()
            self._observers = self._build_observers()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(collector_type={self.collector_type!r})"
