"""
Metric definitions for collector types.

A collector type declares its metrics once, at setup time. Each declaration is
stored as a frozen MetricDefinition and used to build fresh observers for every
collector instance.
"""

from __future__ import annotations

import math
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import InvalidKindError, MetricDefinitionError


class MetricKind(StrEnum):
    """Kinds of metrics a collector can export."""

    COUNTER = "counter"  # Accumulated sum
    GAUGE = "gauge"  # Last observed value
    HISTOGRAM = "histogram"  # Cumulative buckets with sum and count
    SUMMARY = "summary"  # Quantiles with sum and count


DEFAULT_BUCKETS: tuple[float, ...] = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5.0, 10.0)
DEFAULT_QUANTILES: tuple[float, ...] = (0.99, 0.9, 0.5, 0.1, 0.01)


def resolve_kind(kind: MetricKind | str) -> MetricKind:
    """
    Resolve a kind given as enum member or string.

    Raises:
        InvalidKindError: If the kind is not one of the four recognized kinds
    """
    if isinstance(kind, MetricKind):
        return kind
    if isinstance(kind, str):
        try:
            return MetricKind(kind.lower())
        except ValueError:
            pass
    raise InvalidKindError(kind)


class MetricDefinition(BaseModel):
    """
    Declaration of a single metric on a collector type.

    Examples:
        - MetricDefinition(name="queries", metric_name="db_queries", kind="counter")
        - MetricDefinition(name="latency", metric_name="db_latency", kind="histogram",
                           buckets=(0.1, 1, 10))
    """

    name: str = Field(description="Metric name as it appears in observation records")
    metric_name: str = Field(description="Exported series name, '<collector_type>_<name>'")
    kind: MetricKind
    description: str = ""
    buckets: tuple[float, ...] | None = None  # for histogram
    quantiles: tuple[float, ...] | None = None  # for summary
    observer_class: Any = Field(default=None, exclude=True)  # custom Observer subclass

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("buckets")
    @classmethod
    def validate_buckets(cls, v: tuple[float, ...] | None) -> tuple[float, ...] | None:
        """Buckets must be finite and strictly ascending."""
        if v is None:
            return v
        if not v:
            raise ValueError("buckets must not be empty")
        if any(math.isnan(b) or math.isinf(b) for b in v):
            raise ValueError("buckets must be finite, +Inf is implicit")
        if any(a >= b for a, b in zip(v, v[1:])):
            raise ValueError(f"buckets must be strictly ascending, got {list(v)}")
        return v

    @field_validator("quantiles")
    @classmethod
    def validate_quantiles(cls, v: tuple[float, ...] | None) -> tuple[float, ...] | None:
        """Quantiles must lie in [0, 1]."""
        if v is None:
            return v
        if not v:
            raise ValueError("quantiles must not be empty")
        for q in v:
            if not 0 <= q <= 1:
                raise ValueError(f"quantile {q} is outside [0, 1]")
        return v

    @model_validator(mode="after")
    def validate_options_for_kind(self) -> MetricDefinition:
        """Reject options that the kind does not understand."""
        if self.buckets is not None and self.kind != MetricKind.HISTOGRAM:
            raise ValueError(f"buckets are only valid for histograms, not {self.kind}")
        if self.quantiles is not None and self.kind != MetricKind.SUMMARY:
            raise ValueError(f"quantiles are only valid for summaries, not {self.kind}")
        return self

    @classmethod
    def create(
        cls,
        collector_type: str,
        name: str,
        kind: MetricKind | str,
        description: str = "",
        observer_class: Any = None,
        **options: Any,
    ) -> MetricDefinition:
        """
        Build a definition, translating validation failures.

        Raises:
            InvalidKindError: If the kind is not recognized
            MetricDefinitionError: If the options are invalid for the kind
        """
        resolved = resolve_kind(kind)
        try:
            return cls(
                name=name,
                metric_name=f"{collector_type}_{name}",
                kind=resolved,
                description=description,
                observer_class=observer_class,
                **options,
            )
        except ValidationError as e:
            raise MetricDefinitionError(f"invalid definition for metric {name!r}: {e}") from e
