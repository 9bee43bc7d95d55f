"""Probe workers: per-target bucket preparation and scheduled checks."""

from .preparation import PreparationError, ReplicaEndpoint
from .trigger import PeriodicTrigger, interval_from_rate
from .worker import ProbeWorker, WorkerState, drain, spawn_thread

__all__ = [
    "PeriodicTrigger",
    "PreparationError",
    "ProbeWorker",
    "ReplicaEndpoint",
    "WorkerState",
    "drain",
    "interval_from_rate",
    "spawn_thread",
]
