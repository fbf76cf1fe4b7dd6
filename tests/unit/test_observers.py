"""
Unit tests for per-kind observers.
"""

import math

import pytest

from promwindow import (
    DEFAULT_BUCKETS,
    CounterObserver,
    GaugeObserver,
    HistogramObserver,
    MetricDefinition,
    SummaryObserver,
)
from promwindow.observers import ExpositionSample, build_observer, to_label_set


class TestLabelSet:
    """Test label-set normalization."""

    def test_order_independent(self):
        assert to_label_set({"a": "1", "b": "2"}) == to_label_set({"b": "2", "a": "1"})

    def test_values_stringified(self):
        assert to_label_set({"a": 1}) == (("a", "1"),)

    def test_empty(self):
        assert to_label_set(None) == ()
        assert to_label_set({}) == ()


class TestCounterObserver:
    """Test counter accumulation."""

    def test_sums_per_label_set(self):
        c = CounterObserver("foo_c1")
        c.observe(1, {"a": "2"})
        c.observe(3, {"a": "2"})
        c.observe(1, {"a": "1"})
        values = {tuple(p.labels.items()): p.value for p in c.series()}
        assert values == {(("a", "2"),): 4, (("a", "1"),): 1}

    def test_negative_and_fractional_deltas(self):
        c = CounterObserver("foo_c1")
        c.observe(2.5)
        c.observe(-1)
        assert c.series()[0].value == 1.5

    def test_reset(self):
        c = CounterObserver("foo_c1")
        c.observe(1)
        c.reset()
        assert c.series() == []


class TestGaugeObserver:
    """Test gauge last-value semantics."""

    def test_last_value_wins(self):
        g = GaugeObserver("foo_g1")
        g.observe(3, {"a": "2"})
        g.observe(1, {"a": "2"})
        assert [(p.labels, p.value) for p in g.series()] == [({"a": "2"}, 1)]

    def test_samples(self):
        g = GaugeObserver("foo_g1")
        g.observe(5, {"b": "x", "a": "y"})
        assert g.samples() == [ExpositionSample("foo_g1", {"a": "y", "b": "x"}, 5)]

    def test_labels_sorted_by_key(self):
        g = GaugeObserver("foo_g1")
        g.observe(5, {"b": "x", "a": "y"})
        assert list(g.series()[0].labels) == ["a", "b"]


class TestHistogramObserver:
    """Test cumulative bucket assignment."""

    def test_default_buckets(self):
        h = HistogramObserver("foo_h1")
        assert h.buckets == DEFAULT_BUCKETS

    def test_cumulative_counts(self):
        """Values [3, 4, 101] over default buckets."""
        h = HistogramObserver("foo_h1")
        for v in (3, 4, 101):
            h.observe(v)

        point = h.series()[0]
        buckets = dict(point.buckets)
        assert point.count == 3
        assert point.sum == 108
        assert buckets[2.5] == 0
        assert buckets[5.0] == 2
        assert buckets[10.0] == 2
        assert buckets[math.inf] == 3
        assert all(buckets[b] == 0 for b in DEFAULT_BUCKETS if b < 2.5)

    def test_boundary_is_inclusive(self):
        h = HistogramObserver("foo_h2", buckets=[0.1, 1, 100])
        h.observe(1)
        assert dict(h.series()[0].buckets) == {0.1: 0, 1: 1, 100: 1, math.inf: 1}

    def test_nan_counted_only_in_inf(self):
        h = HistogramObserver("foo_h2", buckets=[0.1, 1, 100])
        h.observe(float("nan"))
        h.observe(0.5)
        point = h.series()[0]
        assert dict(point.buckets) == {0.1: 0, 1: 1, 100: 1, math.inf: 2}
        assert point.count == 2
        assert math.isnan(point.sum)

    def test_inf_bucket_is_last(self):
        h = HistogramObserver("foo_h2", buckets=[1, 2])
        h.observe(0.5)
        assert h.series()[0].buckets[-1] == (math.inf, 1)

    def test_samples_suffixes(self):
        h = HistogramObserver("foo_h2", buckets=[1])
        h.observe(0.5, {"a": "1"})
        assert h.samples() == [
            ExpositionSample("foo_h2_bucket", {"a": "1", "le": "1.0"}, 1),
            ExpositionSample("foo_h2_bucket", {"a": "1", "le": "+Inf"}, 1),
            ExpositionSample("foo_h2_count", {"a": "1"}, 1),
            ExpositionSample("foo_h2_sum", {"a": "1"}, 0.5),
        ]

    def test_label_sets_are_separate(self):
        h = HistogramObserver("foo_h1")
        h.observe(3, {"a": "1"})
        h.observe(4, {"a": "2"})
        h.observe(101, {"a": "2"})
        by_label = {p.labels["a"]: p for p in h.series()}
        assert by_label["1"].count == 1
        assert by_label["1"].sum == 3.0
        assert by_label["2"].count == 2
        assert by_label["2"].sum == 105.0


class TestSummaryObserver:
    """Test nearest-rank quantiles."""

    def test_two_label_sets(self):
        s = SummaryObserver("foo_s", quantiles=[0.99, 0.5, 0.01])
        s.observe(4, {"a": "A"})
        s.observe(5, {"a": "B"})
        s.observe(1, {"a": "B"})

        by_label = {p.labels["a"]: p for p in s.series()}
        a, b = by_label["A"], by_label["B"]

        assert a.quantiles == [(0.99, 4.0), (0.5, 4.0), (0.01, 4.0)]
        assert a.count == 1
        assert a.sum == 4.0

        assert b.quantiles == [(0.99, 5.0), (0.5, 1.0), (0.01, 1.0)]
        assert b.count == 2
        assert b.sum == 6.0

    def test_single_sample_all_quantiles_equal(self):
        s = SummaryObserver("foo_s")
        s.observe(7)
        assert {v for _, v in s.series()[0].quantiles} == {7.0}

    def test_zero_quantile_clamped_to_min(self):
        s = SummaryObserver("foo_s", quantiles=[0, 1])
        for v in (3, 1, 2):
            s.observe(v)
        assert s.series()[0].quantiles == [(0, 1.0), (1, 3.0)]

    def test_hundred_samples(self):
        s = SummaryObserver("foo_s", quantiles=[0.5, 0.9, 0.99])
        for v in range(100, 0, -1):
            s.observe(v)
        assert s.series()[0].quantiles == [(0.5, 50.0), (0.9, 90.0), (0.99, 99.0)]

    def test_samples_suffixes(self):
        s = SummaryObserver("foo_s", quantiles=[0.5])
        s.observe(2)
        assert s.samples() == [
            ExpositionSample("foo_s", {"quantile": "0.5"}, 2.0),
            ExpositionSample("foo_s_count", {}, 1),
            ExpositionSample("foo_s_sum", {}, 2.0),
        ]


class TestBuildObserver:
    """Test dispatch from definition kind to observer class."""

    @pytest.mark.parametrize(
        "kind,cls",
        [
            ("counter", CounterObserver),
            ("gauge", GaugeObserver),
            ("histogram", HistogramObserver),
            ("summary", SummaryObserver),
        ],
    )
    def test_kind_dispatch(self, kind, cls):
        observer = build_observer(MetricDefinition.create("foo", "m", kind, "desc"))
        assert type(observer) is cls
        assert observer.name == "foo_m"
        assert observer.description == "desc"

    def test_options_forwarded(self):
        definition = MetricDefinition.create("foo", "h", "histogram", buckets=[1, 2])
        observer = build_observer(definition)
        assert observer.buckets == (1.0, 2.0)

    def test_fresh_instances(self):
        definition = MetricDefinition.create("foo", "g", "gauge")
        assert build_observer(definition) is not build_observer(definition)
