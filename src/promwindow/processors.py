"""
Producer-side processors that build observation records and send them.

- ThreadedProcessor: background thread calling collect() every N seconds
- OnDemandProcessor: formats and sends one record per process() call

Both never raise from a collection cycle: failures are logged, the
on_exception callbacks run, and the threaded loop keeps going.

Example:
    class PoolProcessor(ThreadedProcessor, collector_type="db"):
        def collect(self) -> list[dict[str, Any]]:
            return [self.format_metric({"pool_size": pool.size()})]

    @PoolProcessor.before_thread_start
    def release_connection(processor: PoolProcessor) -> None:
        pool.release()

    processor = PoolProcessor(labels={"host": "db-1"})
    processor.start(frequency=15)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any, ClassVar

from .config import get_settings
from .hub import MetricsClient, get_default_client

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]


class CallbackEvent(StrEnum):
    """Lifecycle events processors run callbacks for."""

    BEFORE_THREAD_START = "before_thread_start"
    AFTER_THREAD_START = "after_thread_start"
    ON_EXCEPTION = "on_exception"


class BaseProcessor:
    """
    Shared configuration, callbacks and formatting for processors.

    Callbacks are registered per class, run in registration order with the
    processor instance as first argument, and are inherited by subclasses.
    """

    collector_type: ClassVar[str | None] = None
    _callbacks: ClassVar[dict[CallbackEvent, list[Callback]]] = {event: [] for event in CallbackEvent}

    def __init_subclass__(cls, collector_type: str | None = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if collector_type is not None:
            cls.collector_type = collector_type
        cls._callbacks = {event: list(cls._callbacks.get(event, [])) for event in CallbackEvent}

    def __init__(
        self,
        labels: Mapping[str, str] | None = None,
        client: MetricsClient | None = None,
    ) -> None:
        """
        Initialize the processor.

        Args:
            labels: Labels merged into every formatted record
            client: Transport for records (default: the global LocalClient)
        """
        self.labels = dict(labels or {})
        self._client = client

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def client(self) -> MetricsClient:
        if self._client is None:
            self._client = get_default_client()
        return self._client

    # =========================================================================
    # Callbacks
    # =========================================================================

    @classmethod
    def define_callback(cls, event: CallbackEvent | str, callback: Callback) -> Callback:
        """
        Register a callback for a lifecycle event.

        Raises:
            ValueError: If the event is unknown
        """
        try:
            event = CallbackEvent(event)
        except ValueError:
            raise ValueError(f"Unknown callback event {event!r}") from None
        cls._callbacks[event].append(callback)
        return callback

    @classmethod
    def before_thread_start(cls, callback: Callback) -> Callback:
        return cls.define_callback(CallbackEvent.BEFORE_THREAD_START, callback)

    @classmethod
    def after_thread_start(cls, callback: Callback) -> Callback:
        return cls.define_callback(CallbackEvent.AFTER_THREAD_START, callback)

    @classmethod
    def on_exception(cls, callback: Callback) -> Callback:
        return cls.define_callback(CallbackEvent.ON_EXCEPTION, callback)

    def run_callbacks(self, event: CallbackEvent, *args: Any) -> None:
        for callback in self._callbacks[event]:
            callback(self, *args)

    # =========================================================================
    # Helpers
    # =========================================================================

    def format_metric(self, metric: Mapping[str, Any]) -> dict[str, Any]:
        """
        Return a copy of the record with type set and processor labels merged.

        Labels given on the record win over processor labels.
        """
        formatted = dict(metric)
        formatted["type"] = self.collector_type
        formatted["labels"] = {**self.labels, **(metric.get("labels") or {})}
        return formatted

    def _log_extra(self) -> dict[str, Any]:
        return {"component": self.name}

    def _handle_exception(self, exc: Exception) -> None:
        """Log a failed collection cycle and run on_exception callbacks."""
        logger.error(
            f"{self.name} failed to collect stats: <{type(exc).__name__}> {exc}",
            exc_info=exc,
            extra=self._log_extra(),
        )
        try:
            self.run_callbacks(CallbackEvent.ON_EXCEPTION, exc)
        except Exception:
            logger.exception(f"{self.name} on_exception callback failed", extra=self._log_extra())


class ThreadedProcessor(BaseProcessor):
    """
    Processor that collects and sends records on a background thread.

    Subclasses implement collect() returning a list of records.
    """

    default_frequency: ClassVar[float] = 30.0

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "default_frequency" not in cls.__dict__:
            cls.default_frequency = get_settings().default_frequency

    def __init__(
        self,
        labels: Mapping[str, str] | None = None,
        client: MetricsClient | None = None,
    ) -> None:
        super().__init__(labels, client)
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def collect(self) -> list[Mapping[str, Any]]:
        """Override with the collection of records for one cycle."""
        raise NotImplementedError

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, frequency: float | None = None) -> None:
        """
        Start (or restart) the collection thread.

        Args:
            frequency: Seconds between cycles (default: class default_frequency)
        """
        self.stop()
        interval = self.default_frequency if frequency is None else frequency

        self.run_callbacks(CallbackEvent.BEFORE_THREAD_START)
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(interval, self._stop_event),
            name=self.name,
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the collection thread to exit and wait for it."""
        if self._thread is None:
            return
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._thread = None

    def _run(self, interval: float, stop_event: threading.Event) -> None:
        """Thread body: callbacks, then collect until stopped."""
        try:
            self.run_callbacks(CallbackEvent.AFTER_THREAD_START)
            logger.info("started", extra=self._log_extra())
            while not stop_event.is_set():
                self.run_once()
                stop_event.wait(interval)
        except Exception:
            logger.exception(f"{self.name} thread crashed", extra=self._log_extra())
        finally:
            logger.info("thread exited", extra=self._log_extra())

    def run_once(self) -> None:
        """Run one collection cycle; never raises."""
        try:
            logger.info("Collecting metrics...", extra=self._log_extra())
            for metric in self.collect():
                self.client.send_json(metric)
            logger.info("Metrics collected.", extra=self._log_extra())
        except Exception as e:
            self._handle_exception(e)


class OnDemandProcessor(BaseProcessor):
    """
    Processor that sends one record per call.

    Subclasses implement collect(*args, **kwargs) returning a record.
    """

    def collect(self, *args: Any, **kwargs: Any) -> Mapping[str, Any]:
        """Override with building a record from the call arguments."""
        raise NotImplementedError

    def process(self, *args: Any, **kwargs: Any) -> bool:
        """
        Build and send one record; never raises.

        Returns:
            True if the record was sent, False if collection failed
        """
        try:
            logger.info("Collecting metrics...", extra=self._log_extra())
            self.client.send_json(self.collect(*args, **kwargs))
            logger.info("Metrics collected.", extra=self._log_extra())
            return True
        except Exception as e:
            self._handle_exception(e)
            return False
