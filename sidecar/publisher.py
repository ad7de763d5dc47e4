"""
Telemetry publisher - timer-driven batch shipping from a watched directory.

Every flush_interval seconds the publisher collects all record files from
the watched directory, joins them into one newline-delimited batch and POSTs
it to the collection endpoint. Files are deleted only after the endpoint
accepts the batch; on failure they stay on disk and the next tick retries
them. There is no backoff: the tick interval is the retry interval.

Usage:
    from sidecar import Publisher, PublisherConfig

    publisher = Publisher.from_config(
        PublisherConfig(directory="/var/spool/telemetry", endpoint="http://collector/ingest")
    )
    publisher.start()          # Background thread
    ...
    publisher.shutdown()       # Signal, final flush, wait for exit

Lifecycle:
    IDLE -> FLUSHING -> IDLE on every tick
    SHUTTING_DOWN -> STOPPED once shutdown is signaled

A flush in progress when shutdown is signaled runs to completion; one final
flush then drains whatever accumulated before the loop returns.
"""

import atexit
import logging
import math
import threading
import time
from enum import Enum

from .batch import build_batch
from .config import DEFAULT_FLUSH_INTERVAL, PublisherConfig
from .delivery import DeliveryOutcome, HttpDeliveryClient
from .errors import SourceError
from .source import DirectorySource

logger = logging.getLogger(__name__)


class PublisherState(Enum):
    """Publisher lifecycle states."""

    IDLE = "idle"  # Waiting for the next tick
    FLUSHING = "flushing"  # Collect, deliver, clean up
    SHUTTING_DOWN = "shutting_down"  # Final drain in progress
    STOPPED = "stopped"  # Run loop has returned


class Publisher:
    """
    Ships record files from a DirectorySource through a delivery client.

    Flush cycles are strictly sequential: collection for the next cycle never
    starts before the previous cycle's deletions are applied.
    """

    def __init__(
        self,
        source: DirectorySource,
        delivery: HttpDeliveryClient,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
    ):
        """
        Initialize the Publisher.

        Args:
            source: Record source for the watched directory
            delivery: Client with send(payload) -> Delivered | Failed
            flush_interval: Seconds between flush cycles
        """
        if not math.isfinite(flush_interval) or flush_interval <= 0:
            raise ValueError(
                f"flush_interval must be a positive finite number, got {flush_interval}"
            )

        self.source = source
        self.delivery = delivery
        self.flush_interval = flush_interval
        self.shutdown_reason: BaseException | None = None

        self._state = PublisherState.IDLE
        self._flush_lock = threading.Lock()
        self._shutdown = threading.Event()
        self._stopped = threading.Event()
        self._started = False
        self._loop_claimed = threading.Lock()  # Held for the life of the one run loop
        self._thread: threading.Thread | None = None
        self._owns_delivery = False

    @classmethod
    def from_config(cls, config: PublisherConfig, client=None) -> "Publisher":
        """
        Build a publisher and its collaborators from configuration.

        Args:
            config: Publisher settings
            client: Optional httpx.Client for transport customisation
        """
        publisher = cls(
            source=DirectorySource(config.directory),
            delivery=HttpDeliveryClient(config.endpoint, client=client, timeout=config.timeout),
            flush_interval=config.flush_interval,
        )
        publisher._owns_delivery = True
        return publisher

    @property
    def state(self) -> PublisherState:
        """Current lifecycle state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """True while the run loop has started and not yet returned."""
        return self._started and not self._stopped.is_set()

    def start(self) -> threading.Thread:
        """
        Validate the watched directory and run the loop on a background thread.

        Raises:
            SourceError: the watched directory is missing (fatal startup error).
            RuntimeError: the publisher was already started.
        """
        if not self._loop_claimed.acquire(blocking=False):
            raise RuntimeError("Publisher already started")

        try:
            self.source.validate()
        except SourceError:
            self._loop_claimed.release()
            raise

        self._started = True
        # Drain on interpreter exit if the caller never shuts down
        atexit.register(self.shutdown)

        self._thread = threading.Thread(target=self._loop, name="sidecar-publisher", daemon=True)
        self._thread.start()
        return self._thread

    def run(self):
        """
        Blocking run loop. Returns only after shutdown is signaled and the
        final flush has completed.

        Raises:
            RuntimeError: the loop already ran or is running on this publisher.
        """
        if not self._loop_claimed.acquire(blocking=False):
            raise RuntimeError("Publisher already started")
        self._started = True
        self._loop()

    def _loop(self):
        logger.info(
            f"Publisher started: directory={self.source.directory}, "
            f"interval={self.flush_interval}s"
        )

        try:
            next_tick = time.monotonic() + self.flush_interval
            while not self._shutdown.wait(max(0.0, next_tick - time.monotonic())):
                self._flush_logged()
                next_tick = self._schedule_after(next_tick)

            with self._flush_lock:
                self._state = PublisherState.SHUTTING_DOWN
            logger.info("Publisher shutting down, running final flush")
            self._flush_logged()
        finally:
            with self._flush_lock:
                self._state = PublisherState.STOPPED
            self.close()
            atexit.unregister(self.shutdown)
            self._stopped.set()
            logger.info("Publisher stopped")

    def _schedule_after(self, previous_tick: float) -> float:
        """Next tick on the fixed grid, skipping ticks a slow cycle overran."""
        next_tick = previous_tick + self.flush_interval
        now = time.monotonic()
        if next_tick <= now:
            missed = int((now - next_tick) // self.flush_interval) + 1
            logger.debug(f"Flush overran the interval, skipping {missed} tick(s)")
            next_tick += missed * self.flush_interval
        return next_tick

    def _flush_logged(self):
        """Run a flush cycle; unexpected errors are logged and never end the loop."""
        try:
            self.flush()
        except Exception as e:
            logger.error(f"Unexpected error during flush cycle: {e}", exc_info=True)

    def flush(self) -> DeliveryOutcome | None:
        """
        Run one flush cycle: collect, join, deliver, then discard or retain.

        Returns:
            The delivery outcome, or None when nothing was sent. A stopped
            publisher has released its delivery client and sends nothing.
        """
        with self._flush_lock:
            if self._state == PublisherState.STOPPED:
                logger.warning("Publisher is stopped, flush skipped")
                return None
            entered = self._state == PublisherState.IDLE
            if entered:
                self._state = PublisherState.FLUSHING
            try:
                return self._flush_cycle()
            finally:
                if entered:
                    self._state = PublisherState.IDLE

    def _flush_cycle(self) -> DeliveryOutcome | None:
        try:
            records = self.source.collect()
        except SourceError as e:
            logger.error(f"Skipping flush cycle: {e}")
            return None

        if not records:
            logger.debug("No records to publish")
            return None

        batch = build_batch(records)

        if batch.is_empty:
            # Only empty files: nothing to send, nothing to lose
            removed = self.source.discard(list(batch.identifiers))
            logger.info(f"Removed {removed} empty record file(s)")
            return None

        outcome = self.delivery.send(batch.payload)

        if outcome.ok:
            removed = self.source.discard(list(batch.identifiers))
            logger.info(
                f"Published batch of {len(batch)} file(s), {len(batch.payload)} bytes; "
                f"removed {removed}"
            )
        else:
            logger.warning(
                f"Failed to publish batch of {len(batch)} file(s), "
                f"retrying next cycle: {outcome.reason}"
            )

        return outcome

    def stop(
        self, reason: BaseException | None = None, timeout: float | None = None
    ) -> bool | None:
        """
        Signal the run loop to drain and exit.

        Args:
            reason: Optional error that triggered termination. It is recorded
                in shutdown_reason and logged, never raised.
            timeout: If given, wait up to this many seconds for the loop to exit.

        Returns:
            None without a timeout, otherwise the result of wait(timeout).
        """
        if reason is not None and self.shutdown_reason is None:
            self.shutdown_reason = reason
            logger.info(f"Publisher shutdown requested: {reason!r}")
        self._shutdown.set()
        if timeout is not None:
            return self.wait(timeout)
        return None

    def wait(self, timeout: float | None = None) -> bool:
        """
        Wait for the run loop to return.

        Returns:
            True if the loop has exited (or never started), False on timeout.
        """
        if not self._started:
            return True
        return self._stopped.wait(timeout)

    def shutdown(self, reason: BaseException | None = None, timeout: float | None = None) -> bool:
        """Signal shutdown and wait for the final flush to finish."""
        self.stop(reason)
        return self.wait(timeout)

    def close(self):
        """Close the delivery client if from_config() created it."""
        if self._owns_delivery:
            self.delivery.close()
