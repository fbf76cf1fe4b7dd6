"""
Error types for promwindow metric definitions, collectors and hubs.
"""

from __future__ import annotations


class PromWindowError(Exception):
    """Base exception for all promwindow errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MetricDefinitionError(PromWindowError):
    """
    Raised when a metric definition cannot be registered.

    Examples:
    - Histogram buckets not in ascending order
    - Summary quantile outside [0, 1]
    - Option not understood by the metric kind
    """

    pass


class InvalidKindError(MetricDefinitionError, ValueError):
    """Raised when a metric definition names an unrecognized kind."""

    def __init__(self, kind: object):
        self.kind = kind
        super().__init__(f"invalid metric type {kind!r}")


class DuplicateMetricError(MetricDefinitionError):
    """Raised when a metric name is defined twice on one collector type."""

    def __init__(self, collector_type: str, name: str):
        self.collector_type = collector_type
        self.name = name
        super().__init__(f"metric {name!r} already defined for collector type {collector_type!r}")


class DuplicateCollectorError(PromWindowError):
    """Raised when two collectors for the same type are registered on one hub."""

    def __init__(self, collector_type: str):
        self.collector_type = collector_type
        super().__init__(f"collector for type {collector_type!r} already registered")
