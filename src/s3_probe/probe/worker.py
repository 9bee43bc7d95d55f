"""Probe worker: bucket preparation, scheduling loop and checks for one target."""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Sequence

from ..builders.storage import create_storage_client
from ..config import ProbeConfig
from ..constants import (
    EVENT_PREPARATION_FAILED,
    EVENT_PROBE_CREATED,
    EVENT_PROBE_PREPARED,
    EVENT_PROBE_STARTED,
    EVENT_PROBE_TERMINATED,
    GATEWAY_ITEM_SIZE,
    OP_GATEWAY_GET_OBJECT,
    OP_GATEWAY_PUT_OBJECT,
    OP_GATEWAY_REMOVE_OBJECT,
    OP_GET_OBJECT,
    OP_LIST_BUCKETS,
    OP_PUT_OBJECT,
    OP_REMOVE_OBJECT,
    READ_CHUNK_SIZE,
)
from ..logging import log_probe_event
from ..metrics import ProbeMetrics
from ..models import Target
from ..services.s3.base import StorageClient, StorageError
from ..tracing import trace_span
from ..utils.errors import sanitize_exception
from ..utils.objects import random_hex, random_object
from .preparation import (
    PreparationError,
    ReplicaEndpoint,
    prepare_durability_bucket,
    prepare_gateway_buckets,
    prepare_latency_bucket,
)
from .trigger import PeriodicTrigger

logger = logging.getLogger(__name__)

Spawner = Callable[[Callable[[], Any], str], None]


class WorkerState(str, Enum):
    CREATED = "created"
    PREPARING = "preparing"
    READY = "ready"
    PREPARATION_FAILED = "preparation_failed"
    RUNNING = "running"
    STOPPED = "stopped"


def drain(body: Any) -> int:
    """Read a stream to its end, close it and return the number of bytes read."""
    total = 0
    try:
        while True:
            chunk = body.read(READ_CHUNK_SIZE)
            if not chunk:
                return total
            total += len(chunk)
    finally:
        body.close()


def spawn_thread(task: Callable[[], Any], name: str) -> None:
    """Run a task on a daemon thread nobody joins."""
    threading.Thread(target=task, name=name, daemon=True).start()


class ProbeWorker:
    """Runs scheduled checks against one target.

    Checks launched by the scheduling loop are detached: the loop never waits
    for them, so several checks of the same kind may overlap on a slow
    endpoint, and stopping the loop does not cancel checks in flight.
    """

    def __init__(
        self,
        target: Target,
        storage_client: StorageClient,
        metrics: ProbeMetrics,
        replicas: Sequence[ReplicaEndpoint] = (),
        latency_bucket_name: str = "monitoring-latency",
        durability_bucket_name: str = "monitoring-durability",
        gateway_bucket_name: str = "monitoring-gateway",
        probe_rate_per_min: int = 120,
        durability_probe_rate_per_min: int = 1,
        latency_item_size: int = 1024 * 10,
        durability_item_size: int = 1024 * 10,
        durability_item_total: int = 100_000,
        latency_timeout: float = 30.0,
        durability_timeout: float = 60.0,
        seed_retry_delay: float = 5.0,
        spawn: Spawner = spawn_thread,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.target = target
        self.storage_client = storage_client
        self.metrics = metrics
        self.replicas = list(replicas)
        self.latency_bucket_name = latency_bucket_name
        self.durability_bucket_name = durability_bucket_name
        self.gateway_bucket_name = gateway_bucket_name
        self.probe_rate_per_min = probe_rate_per_min
        self.durability_probe_rate_per_min = durability_probe_rate_per_min
        self.latency_item_size = latency_item_size
        self.durability_item_size = durability_item_size
        self.durability_item_total = durability_item_total
        self.latency_timeout = latency_timeout
        self.durability_timeout = durability_timeout
        self.seed_retry_delay = seed_retry_delay
        self._spawn = spawn
        self._sleep = sleep
        self.state = WorkerState.CREATED

    @classmethod
    def from_target(
        cls,
        target: Target,
        config: ProbeConfig,
        metrics: ProbeMetrics,
        client_factory: Callable[[str, ProbeConfig], StorageClient] = create_storage_client,
    ) -> ProbeWorker:
        """Build a worker and its storage clients for a discovered target."""
        storage_client = client_factory(target.resolved_address, config)
        replicas = [
            ReplicaEndpoint(address=address, client=client_factory(address, config))
            for address in target.replica_addresses
        ]
        worker = cls(
            target=target,
            storage_client=storage_client,
            metrics=metrics,
            replicas=replicas,
            latency_bucket_name=config.latency_bucket_name,
            durability_bucket_name=config.durability_bucket_name,
            gateway_bucket_name=config.gateway_bucket_name,
            probe_rate_per_min=config.probe_rate_per_min,
            durability_probe_rate_per_min=config.durability_probe_rate_per_min,
            latency_item_size=config.latency_item_size,
            durability_item_size=config.durability_item_size,
            durability_item_total=config.durability_item_total,
            latency_timeout=config.latency_timeout,
            durability_timeout=config.durability_timeout,
            seed_retry_delay=config.seed_retry_delay,
        )
        log_probe_event(
            logger,
            target.name,
            EVENT_PROBE_CREATED,
            f"Probe created for: {target.resolved_address}",
            role=target.role.value,
            replicas=list(target.replica_addresses),
        )
        return worker

    @property
    def name(self) -> str:
        return self.target.name

    # ------------------------------------------------------------------ #
    # Preparation
    # ------------------------------------------------------------------ #

    def prepare(self) -> None:
        """Create the buckets the checks need.

        Raises:
            PreparationError: If any bucket cannot be prepared
        """
        self.state = WorkerState.PREPARING
        try:
            if self.target.is_gateway:
                prepare_gateway_buckets(
                    self.replicas,
                    self.gateway_bucket_name,
                    self.name,
                    self.metrics,
                    timeout=self.latency_timeout,
                )
            else:
                prepare_latency_bucket(
                    self.storage_client,
                    self.latency_bucket_name,
                    self.name,
                    self.metrics,
                    timeout=self.latency_timeout,
                )
                prepare_durability_bucket(
                    self.storage_client,
                    self.durability_bucket_name,
                    self.name,
                    self.metrics,
                    item_total=self.durability_item_total,
                    item_size=self.durability_item_size,
                    timeout=self.durability_timeout,
                    retry_delay=self.seed_retry_delay,
                    sleep=self._sleep,
                )
        except (PreparationError, StorageError) as e:
            self.state = WorkerState.PREPARATION_FAILED
            log_probe_event(
                logger,
                self.name,
                EVENT_PREPARATION_FAILED,
                f"Cannot prepare buckets: {sanitize_exception(e)}",
                level=logging.ERROR,
            )
            if isinstance(e, PreparationError):
                raise
            raise PreparationError(f"Cannot prepare buckets for {self.name}: {sanitize_exception(e)}") from e

        self.state = WorkerState.READY
        log_probe_event(logger, self.name, EVENT_PROBE_PREPARED, "Buckets ready")

    # ------------------------------------------------------------------ #
    # Scheduling
    # ------------------------------------------------------------------ #

    def start_probing(self, stop_event: threading.Event) -> None:
        """Tick the check and durability triggers until ``stop_event`` is set."""
        self.state = WorkerState.RUNNING
        log_probe_event(
            logger,
            self.name,
            EVENT_PROBE_STARTED,
            "Starting probing",
            probe_rate=self.probe_rate_per_min,
            durability_probe_rate=self.durability_probe_rate_per_min,
        )

        now = time.monotonic()
        check_trigger = PeriodicTrigger(self.probe_rate_per_min, now)
        durability_trigger = PeriodicTrigger(self.durability_probe_rate_per_min, now)

        while True:
            now = time.monotonic()
            waits = [
                wait
                for wait in (check_trigger.seconds_until(now), durability_trigger.seconds_until(now))
                if wait is not None
            ]
            if stop_event.wait(min(waits) if waits else None):
                break

            now = time.monotonic()
            if check_trigger.fire_if_due(now):
                if self.target.is_gateway:
                    self._launch(self.perform_gateway_check, "gateway")
                else:
                    self._launch(self.perform_latency_check, "latency")
            if durability_trigger.fire_if_due(now) and not self.target.is_gateway:
                self._launch(self.perform_durability_check, "durability")

        self.state = WorkerState.STOPPED
        log_probe_event(logger, self.name, EVENT_PROBE_TERMINATED, f"Terminating probe on {self.name}")

    def _launch(self, check: Callable[[], bool], kind: str) -> None:
        def run() -> None:
            try:
                check()
            except Exception:
                logger.exception(f"Unexpected error in {kind} check on {self.name}")

        self._spawn(run, f"{kind}-check-{self.name}")

    # ------------------------------------------------------------------ #
    # Checks
    # ------------------------------------------------------------------ #

    def _measure_operation(
        self, operation: str, run: Callable[[float], Any], timeout: float
    ) -> bool:
        """Time one operation and record its outcome; a result past the timeout is a failure."""
        start = time.perf_counter()
        error: Exception | None = None
        try:
            with trace_span(f"s3.{operation}", {"s3.operation": operation, "s3.target": self.name}):
                run(timeout)
        except StorageError as e:
            error = e
        except Exception:
            self.metrics.observe_operation(operation, self.name, time.perf_counter() - start, False)
            raise
        duration = time.perf_counter() - start
        if error is None and duration > timeout:
            error = StorageError(f"{operation} took {duration:.3f}s, over its {timeout:g}s timeout")

        self.metrics.observe_operation(operation, self.name, duration, error is None)
        if error is not None:
            logger.error(f"Error while executing {operation} on {self.name}: {sanitize_exception(error)}")
            return False
        return True

    def perform_latency_check(self) -> bool:
        """List buckets, then put, get and remove a fresh object; stop at the first failure."""
        client = self.storage_client
        bucket = self.latency_bucket_name
        object_name = random_hex()

        if not self._measure_operation(
            OP_LIST_BUCKETS, lambda t: client.list_buckets(timeout=t), self.latency_timeout
        ):
            return False

        data = random_object(self.latency_item_size)
        if not self._measure_operation(
            OP_PUT_OBJECT, lambda t: client.put_object(bucket, object_name, data, timeout=t), self.latency_timeout
        ):
            return False

        if not self._measure_operation(
            OP_GET_OBJECT, lambda t: drain(client.get_object(bucket, object_name, timeout=t)), self.latency_timeout
        ):
            return False

        return self._measure_operation(
            OP_REMOVE_OBJECT, lambda t: client.remove_object(bucket, object_name, timeout=t), self.latency_timeout
        )

    def perform_durability_check(self) -> bool:
        """Count the durability corpus and publish expected and found item gauges."""
        deadline = time.monotonic() + self.durability_timeout
        count = 0
        for listed in self.storage_client.list_objects(
            self.durability_bucket_name, timeout=self.durability_timeout
        ):
            if listed.error is not None:
                logger.error(f"Durability listing failed on {self.name}: {sanitize_exception(listed.error)}")
                return False
            if time.monotonic() > deadline:
                logger.error(
                    f"Durability listing on {self.name} exceeded its {self.durability_timeout:g}s timeout"
                )
                return False
            count += 1

        self.metrics.durability_items_expected.labels(target=self.name).set(self.durability_item_total)
        self.metrics.durability_items_found.labels(target=self.name).set(count)
        return True

    def perform_gateway_check(self) -> bool:
        """Write one object through the gateway, then read and remove it on every replica.

        A failing replica does not stop the others from being checked.
        """
        bucket = self.gateway_bucket_name
        object_name = random_hex()
        data = random_object(GATEWAY_ITEM_SIZE)

        if not self._measure_operation(
            OP_GATEWAY_PUT_OBJECT,
            lambda t: self.storage_client.put_object(bucket, object_name, data, timeout=t),
            self.latency_timeout,
        ):
            return False

        all_ok = True
        for replica in self.replicas:
            read_ok = self._gateway_operation(
                OP_GATEWAY_GET_OBJECT,
                replica,
                lambda: drain(replica.client.get_object(bucket, object_name, timeout=self.latency_timeout)),
            )
            remove_ok = self._gateway_operation(
                OP_GATEWAY_REMOVE_OBJECT,
                replica,
                lambda: replica.client.remove_object(bucket, object_name, timeout=self.latency_timeout),
            )
            all_ok = all_ok and read_ok and remove_ok
        return all_ok

    def _gateway_operation(self, operation: str, replica: ReplicaEndpoint, run: Callable[[], Any]) -> bool:
        """Run one step against a replica; a result past the check timeout is a failure."""
        timeout = self.latency_timeout
        start = time.perf_counter()
        error: Exception | None = None
        try:
            with trace_span(
                f"s3.{operation}",
                {"s3.operation": operation, "s3.target": self.name, "s3.destination": replica.address},
            ):
                run()
        except StorageError as e:
            error = e
        except Exception:
            self.metrics.observe_gateway_operation(operation, self.name, replica.address, False)
            raise
        duration = time.perf_counter() - start
        if error is None and duration > timeout:
            error = StorageError(f"{operation} took {duration:.3f}s, over its {timeout:g}s timeout")

        self.metrics.observe_gateway_operation(operation, self.name, replica.address, error is None)
        if error is not None:
            logger.error(
                f"Error while executing {operation} on {self.name} via {replica.address}: "
                f"{sanitize_exception(error)}"
            )
            return False
        return True
