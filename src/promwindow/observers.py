"""
Per-kind observers that turn observation values into exportable series.

Each observer accumulates label-grouped state between resets:

- CounterObserver: running sum per label-set
- GaugeObserver: last value per label-set
- HistogramObserver: cumulative bucket counts, sum and count per label-set
- SummaryObserver: sorted samples, sum and count per label-set

Label-sets are order-independent; series are emitted in first-seen order with
labels sorted by key.
"""

from __future__ import annotations

import bisect
import math
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, ClassVar, NamedTuple

from prometheus_client.utils import floatToGoString

from .definitions import DEFAULT_BUCKETS, DEFAULT_QUANTILES, MetricDefinition, MetricKind

LabelSet = tuple[tuple[str, str], ...]


def to_label_set(labels: Mapping[str, Any] | None) -> LabelSet:
    """Normalize a label mapping into a hashable, key-sorted label-set."""
    if not labels:
        return ()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


# =============================================================================
# Series Points
# =============================================================================


class ExpositionSample(NamedTuple):
    """One exposition line: series name, labels and value."""

    name: str
    labels: dict[str, str]
    value: float


@dataclass(frozen=True)
class ValuePoint:
    """Counter or gauge value for one label-set."""

    labels: dict[str, str]
    value: float


@dataclass(frozen=True)
class HistogramPoint:
    """Cumulative buckets for one label-set; the last bucket is +Inf."""

    labels: dict[str, str]
    buckets: list[tuple[float, int]]
    sum: float
    count: int


@dataclass(frozen=True)
class SummaryPoint:
    """Computed quantiles for one label-set, in configured order."""

    labels: dict[str, str]
    quantiles: list[tuple[float, float]]
    sum: float
    count: int


# =============================================================================
# Observers
# =============================================================================


class Observer(ABC):
    """
    Base class for metric observers.

    Subclasses set `kind` and implement reset/observe/series.
    """

    kind: ClassVar[MetricKind]

    def __init__(self, name: str, description: str = "") -> None:
        self.name = name
        self.description = description

    @abstractmethod
    def reset(self) -> None:
        """Drop all accumulated state."""

    @abstractmethod
    def observe(self, value: float, labels: Mapping[str, Any] | None = None) -> None:
        """Fold one value into the accumulator for the label-set."""

    @abstractmethod
    def series(self) -> list[Any]:
        """One point per label-set seen since the last reset."""

    @abstractmethod
    def samples(self) -> list[ExpositionSample]:
        """Flatten series into exposition samples."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class _ValueObserver(Observer):
    """Shared storage for observers holding one number per label-set."""

    def __init__(self, name: str, description: str = "") -> None:
        super().__init__(name, description)
        self._values: dict[LabelSet, float] = {}

    def reset(self) -> None:
        self._values.clear()

    def series(self) -> list[ValuePoint]:
        return [ValuePoint(labels=dict(key), value=value) for key, value in self._values.items()]

    def samples(self) -> list[ExpositionSample]:
        return [ExpositionSample(self.name, p.labels, p.value) for p in self.series()]


class CounterObserver(_ValueObserver):
    """Sums every observed value, negative and fractional deltas included."""

    kind = MetricKind.COUNTER

    def observe(self, value: float, labels: Mapping[str, Any] | None = None) -> None:
        key = to_label_set(labels)
        self._values[key] = self._values.get(key, 0) + value


class GaugeObserver(_ValueObserver):
    """Keeps the last observed value."""

    kind = MetricKind.GAUGE

    def observe(self, value: float, labels: Mapping[str, Any] | None = None) -> None:
        self._values[to_label_set(labels)] = value


@dataclass
class _HistogramState:
    counts: list[int]
    sum: float = 0.0
    count: int = 0


class HistogramObserver(Observer):
    """
    Cumulative histogram.

    Every bucket whose upper bound is >= the value is incremented (NaN matches
    no finite bound); the implicit +Inf bucket always equals the count.
    """

    kind = MetricKind.HISTOGRAM

    def __init__(
        self,
        name: str,
        description: str = "",
        buckets: Sequence[float] | None = None,
    ) -> None:
        super().__init__(name, description)
        self.buckets: tuple[float, ...] = tuple(buckets) if buckets else DEFAULT_BUCKETS
        self._states: dict[LabelSet, _HistogramState] = {}

    def reset(self) -> None:
        self._states.clear()

    def observe(self, value: float, labels: Mapping[str, Any] | None = None) -> None:
        key = to_label_set(labels)
        state = self._states.get(key)
        if state is None:
            state = self._states[key] = _HistogramState(counts=[0] * len(self.buckets))

        # Buckets are ascending, so every bound from the first match onward counts.
        # NaN lands only in +Inf.
        if not math.isnan(value):
            first = bisect.bisect_left(self.buckets, value)
            for i in range(first, len(self.buckets)):
                state.counts[i] += 1
        state.sum += value
        state.count += 1

    def series(self) -> list[HistogramPoint]:
        return [
            HistogramPoint(
                labels=dict(key),
                buckets=[*zip(self.buckets, state.counts), (math.inf, state.count)],
                sum=state.sum,
                count=state.count,
            )
            for key, state in self._states.items()
        ]

    def samples(self) -> list[ExpositionSample]:
        out: list[ExpositionSample] = []
        for point in self.series():
            for le, count in point.buckets:
                labels = {**point.labels, "le": floatToGoString(le)}
                out.append(ExpositionSample(f"{self.name}_bucket", labels, count))
            out.append(ExpositionSample(f"{self.name}_count", point.labels, point.count))
            out.append(ExpositionSample(f"{self.name}_sum", point.labels, point.sum))
        return out


@dataclass
class _SummaryState:
    values: list[float] = field(default_factory=list)  # kept sorted
    sum: float = 0.0


class SummaryObserver(Observer):
    """
    Summary with exact nearest-rank quantiles.

    Quantile q over n sorted samples is the sample at 1-based rank ceil(q * n),
    clamped to [1, n].
    """

    kind = MetricKind.SUMMARY

    def __init__(
        self,
        name: str,
        description: str = "",
        quantiles: Sequence[float] | None = None,
    ) -> None:
        super().__init__(name, description)
        self.quantiles: tuple[float, ...] = tuple(quantiles) if quantiles else DEFAULT_QUANTILES
        self._states: dict[LabelSet, _SummaryState] = {}

    def reset(self) -> None:
        self._states.clear()

    def observe(self, value: float, labels: Mapping[str, Any] | None = None) -> None:
        key = to_label_set(labels)
        state = self._states.get(key)
        if state is None:
            state = self._states[key] = _SummaryState()
        bisect.insort(state.values, value)
        state.sum += value

    def _quantile(self, values: list[float], q: float) -> float:
        n = len(values)
        rank = min(max(math.ceil(q * n), 1), n)
        return float(values[rank - 1])

    def series(self) -> list[SummaryPoint]:
        return [
            SummaryPoint(
                labels=dict(key),
                quantiles=[(q, self._quantile(state.values, q)) for q in self.quantiles],
                sum=state.sum,
                count=len(state.values),
            )
            for key, state in self._states.items()
        ]

    def samples(self) -> list[ExpositionSample]:
        out: list[ExpositionSample] = []
        for point in self.series():
            for q, value in point.quantiles:
                labels = {**point.labels, "quantile": floatToGoString(q)}
                out.append(ExpositionSample(self.name, labels, value))
            out.append(ExpositionSample(f"{self.name}_count", point.labels, point.count))
            out.append(ExpositionSample(f"{self.name}_sum", point.labels, point.sum))
        return out


# =============================================================================
# Construction
# =============================================================================


def build_observer(definition: MetricDefinition) -> Observer:
    """Create a fresh observer for a metric definition."""
    name, desc = definition.metric_name, definition.description

    if definition.observer_class is not None:
        options: dict[str, Any] = {}
        if definition.buckets is not None:
            options["buckets"] = definition.buckets
        if definition.quantiles is not None:
            options["quantiles"] = definition.quantiles
        observer: Observer = definition.observer_class(name, desc, **options)
        return observer

    match definition.kind:
        case MetricKind.COUNTER:
            return CounterObserver(name, desc)
        case MetricKind.GAUGE:
            return GaugeObserver(name, desc)
        case MetricKind.HISTOGRAM:
            return HistogramObserver(name, desc, buckets=definition.buckets)
        case MetricKind.SUMMARY:
            return SummaryObserver(name, desc, quantiles=definition.quantiles)
