"""Watcher: keeps one running probe worker per discovered S3 endpoint."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Sequence

from .config import ProbeConfig
from .constants import DISCOVERY_NO_TARGET, EVENT_DISCOVERY_COMPLETED, EVENT_DISCOVERY_FAILED
from .logging import log_probe_event
from .metrics import ProbeMetrics
from .models import Target, TargetRole
from .probe.preparation import PreparationError
from .probe.worker import ProbeWorker
from .services.consul.base import RegistryError, ServiceRegistry
from .utils.errors import sanitize_exception

logger = logging.getLogger(__name__)

WorkerFactory = Callable[[Target], ProbeWorker]


@dataclass
class WatchedTarget:
    """A running worker, the target it was built from and its stop signal."""

    target: Target
    worker: ProbeWorker
    stop_event: threading.Event
    thread: threading.Thread


def get_target_diff(main: Sequence[Target], other: Sequence[Target]) -> list[Target]:
    """Return the targets of ``other`` that are missing from ``main`` or differ from their namesake."""
    index = {target.name: target for target in main}
    return [target for target in other if index.get(target.name) != target]


def get_targets_to_modify(
    candidates: Sequence[Target], watched: Sequence[Target]
) -> tuple[list[Target], list[Target]]:
    """Compare discovered targets with watched ones.

    A target whose configuration changed shows up in both lists, so its
    worker is restarted rather than updated in place.

    Returns:
        Targets to add and targets to remove
    """
    return get_target_diff(watched, candidates), get_target_diff(candidates, watched)


class Watcher:
    """Polls the registry and starts or stops probe workers to match it.

    ``watched_targets`` is only ever mutated by the reconciliation loop;
    workers report through metrics alone.
    """

    def __init__(
        self,
        registry: ServiceRegistry,
        config: ProbeConfig,
        metrics: ProbeMetrics,
        worker_factory: WorkerFactory | None = None,
    ) -> None:
        self.registry = registry
        self.config = config
        self.metrics = metrics
        self.worker_factory = worker_factory or self._default_worker_factory
        self.watched_targets: dict[str, WatchedTarget] = {}
        self._shutdown = threading.Event()

    def _default_worker_factory(self, target: Target) -> ProbeWorker:
        return ProbeWorker.from_target(target, self.config, self.metrics)

    def watch_pools(self, interval: float) -> None:
        """Reconcile every ``interval`` seconds until ``stop()`` is called."""
        while not self._shutdown.is_set():
            logger.info(f"Discovering S3 endpoints (interval: {interval:g}s)")
            self.reconcile_once()
            self._shutdown.wait(interval)
        self.flush_old_probes([watched.target for watched in list(self.watched_targets.values())])

    def stop(self) -> None:
        """End ``watch_pools`` after the current cycle; running workers are stopped on the way out."""
        self._shutdown.set()

    def reconcile_once(self) -> tuple[list[Target], list[Target]]:
        """Run one discovery cycle.

        Returns:
            Targets whose workers were started and targets whose workers were stopped
        """
        candidates = self.get_targets()
        targets_to_add, targets_to_remove = get_targets_to_modify(candidates, self.get_watched_targets())
        self.flush_old_probes(targets_to_remove)
        started = self.create_new_probes(targets_to_add)
        log_probe_event(
            logger,
            DISCOVERY_NO_TARGET,
            EVENT_DISCOVERY_COMPLETED,
            "Discovery cycle completed",
            discovered=len(candidates),
            started=[target.name for target in started],
            removed=[target.name for target in targets_to_remove],
            watched=sorted(self.watched_targets),
        )
        return started, targets_to_remove

    def get_targets(self) -> list[Target]:
        """Fetch every matching target from the registry.

        A registry failure yields no targets at all; a service that cannot be
        resolved is skipped. Both are counted as discovery errors.
        """
        try:
            services = self.registry.list_matching_services()
        except RegistryError as e:
            self.metrics.discovery_error_total.labels(target=DISCOVERY_NO_TARGET).inc()
            log_probe_event(
                logger,
                DISCOVERY_NO_TARGET,
                EVENT_DISCOVERY_FAILED,
                f"Fail to query all registered services: {sanitize_exception(e)}",
                level=logging.ERROR,
            )
            return []

        targets = []
        for name, is_gateway in services.items():
            try:
                address, replicas = self.registry.resolve_endpoint(name, is_gateway)
            except RegistryError as e:
                self.metrics.discovery_error_total.labels(target=name).inc()
                log_probe_event(
                    logger,
                    name,
                    EVENT_DISCOVERY_FAILED,
                    f"Resolving service endpoints failed: {sanitize_exception(e)}",
                    level=logging.ERROR,
                )
                continue
            targets.append(
                Target(
                    name=name,
                    resolved_address=address,
                    role=TargetRole.GATEWAY if is_gateway else TargetRole.SIMPLE,
                    replica_addresses=tuple(replicas),
                )
            )
        return targets

    def get_watched_targets(self) -> list[Target]:
        return [watched.target for watched in self.watched_targets.values()]

    def flush_old_probes(self, targets_to_remove: Sequence[Target]) -> None:
        """Stop the workers of removed targets and wait for their scheduling loops to exit."""
        for target in targets_to_remove:
            watched = self.watched_targets.pop(target.name, None)
            if watched is None:
                continue
            logger.info(f"Removing old probe for: {target.name}")
            watched.stop_event.set()
            watched.thread.join()

    def create_new_probes(self, targets_to_add: Sequence[Target]) -> list[Target]:
        """Build, prepare and launch a worker for each target.

        Preparation runs here, synchronously; a target whose worker cannot be
        built or prepared is left out and retried next cycle.

        Returns:
            Targets whose workers are now running
        """
        started = []
        for target in targets_to_add:
            logger.info(f"Creating new probe for: {target.name}, gateway: {target.is_gateway}")
            try:
                worker = self.worker_factory(target)
            except Exception as e:
                self.metrics.preparation_error_total.labels(target=target.name).inc()
                logger.error(f"Error while creating probe for {target.name}: {sanitize_exception(e)}")
                continue

            try:
                worker.prepare()
            except PreparationError as e:
                self.metrics.preparation_error_total.labels(target=target.name).inc()
                logger.error(f"Error while preparing probe for {target.name}: {sanitize_exception(e)}")
                continue

            stop_event = threading.Event()
            thread = threading.Thread(
                target=worker.start_probing,
                args=(stop_event,),
                name=f"probe-{target.name}",
                daemon=True,
            )
            self.watched_targets[target.name] = WatchedTarget(
                target=target, worker=worker, stop_event=stop_event, thread=thread
            )
            thread.start()
            started.append(target)
        return started
