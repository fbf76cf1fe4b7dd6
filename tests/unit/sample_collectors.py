"""Collector classes loaded by the CLI tests as 'sample_collectors:Class'."""

from promwindow import Collector


class RequestCollector(Collector, collector_type="web"):
    pass


RequestCollector.define_metric("requests", "counter", "Requests served")
RequestCollector.define_metric("latency", "histogram", "Request latency", buckets=[0.1, 1, 10])


class QueueCollector(Collector, collector_type="queue"):
    pass


QueueCollector.define_metric("depth", "gauge", "Queue depth")
QueueCollector.define_metric("wait", "summary", "Queue wait", quantiles=[0.5, 0.9])


NOT_A_COLLECTOR = object()
