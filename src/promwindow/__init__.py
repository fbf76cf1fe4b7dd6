"""
promwindow: windowed Prometheus metric aggregation.

Collectors buffer observation records for a bounded time window and, on each
export, replay them into counter, gauge, histogram and summary observers.
Processors produce records, hubs route them, and the exposition module renders
Prometheus text through prometheus_client.
"""

__version__ = "0.1.0"

from .buffer import ObservationBuffer
from .collector import Collector, merge_labels
from .config import Settings, get_settings, reset_settings
from .definitions import DEFAULT_BUCKETS, DEFAULT_QUANTILES, MetricDefinition, MetricKind
from .errors import (
    DuplicateCollectorError,
    DuplicateMetricError,
    InvalidKindError,
    MetricDefinitionError,
    PromWindowError,
)
from .exposition import ExpositionCollector, render, to_metric_family
from .hub import CollectorHub, LocalClient, get_default_client, get_default_hub, reset_defaults
from .observers import (
    CounterObserver,
    GaugeObserver,
    HistogramObserver,
    Observer,
    SummaryObserver,
)
from .processors import CallbackEvent, OnDemandProcessor, ThreadedProcessor

__all__ = [
    "__version__",
    # Core
    "Collector",
    "ObservationBuffer",
    "merge_labels",
    # Definitions
    "DEFAULT_BUCKETS",
    "DEFAULT_QUANTILES",
    "MetricDefinition",
    "MetricKind",
    # Observers
    "Observer",
    "CounterObserver",
    "GaugeObserver",
    "HistogramObserver",
    "SummaryObserver",
    # Exposition
    "ExpositionCollector",
    "render",
    "to_metric_family",
    # Routing
    "CollectorHub",
    "LocalClient",
    "get_default_client",
    "get_default_hub",
    "reset_defaults",
    # Processors
    "CallbackEvent",
    "OnDemandProcessor",
    "ThreadedProcessor",
    # Config
    "Settings",
    "get_settings",
    "reset_settings",
    # Errors
    "PromWindowError",
    "MetricDefinitionError",
    "InvalidKindError",
    "DuplicateMetricError",
    "DuplicateCollectorError",
]
