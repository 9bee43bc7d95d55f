"""Bucket preparation run before a probe worker starts ticking."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Sequence

from ..constants import BUCKET_EXPIRY_DAYS, DURABILITY_ITEM_PREFIX, SEED_PROGRESS_EVERY
from ..metrics import ProbeMetrics
from ..services.s3.base import StorageClient, StorageError
from ..utils.errors import sanitize_exception
from ..utils.objects import random_object

logger = logging.getLogger(__name__)


class PreparationError(Exception):
    """A probe worker could not prepare its buckets."""


@dataclass(frozen=True)
class ReplicaEndpoint:
    """A gateway replica destination and the client talking to it."""

    address: str
    client: StorageClient


def durability_item_name(index: int) -> str:
    return f"{DURABILITY_ITEM_PREFIX}{index}"


def create_expiring_bucket(client: StorageClient, bucket: str, timeout: float | None) -> None:
    """Create a bucket whose objects expire after a day.

    A failure to attach the expiry rule is only logged; the bucket stays usable.
    """
    client.make_bucket(bucket, timeout=timeout)
    try:
        client.set_bucket_expiry(bucket, BUCKET_EXPIRY_DAYS, timeout=timeout)
    except StorageError as e:
        logger.warning(f"Failed to set expiry on bucket {bucket}: {sanitize_exception(e)}. Objects will not self-clean.")


def prepare_latency_bucket(
    client: StorageClient,
    bucket: str,
    target: str,
    metrics: ProbeMetrics,
    timeout: float | None = None,
) -> None:
    """Ensure the latency bucket exists, creating it with an expiry rule if absent.

    Raises:
        StorageError: If the bucket cannot be checked or created
    """
    logger.info(f"Checking if latency bucket is present on {target}")
    if client.bucket_exists(bucket, timeout=timeout):
        return

    logger.info(f"Preparing latency bucket on {target}")
    metrics.bucket_created_total.labels(target=target).inc()
    create_expiring_bucket(client, bucket, timeout)


def seed_durability_bucket(
    client: StorageClient,
    bucket: str,
    target: str,
    item_total: int,
    item_size: int,
    timeout: float | None = None,
    retry_delay: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Write the durability corpus, retrying every item until it is stored.

    There is no retry limit: an endpoint refusing writes blocks here until it
    recovers.
    """
    data = random_object(item_size)
    for index in range(item_total):
        object_name = durability_item_name(index)
        while True:
            try:
                client.put_object(bucket, object_name, data, timeout=timeout)
                break
            except StorageError as e:
                logger.warning(
                    f"Error (item: {index}): {sanitize_exception(e)}, retrying in ({retry_delay:g}s)"
                )
                sleep(retry_delay)
        if index % SEED_PROGRESS_EVERY == 0:
            logger.info(f"{target}> {index} objects written ({int(index / item_total * 100)}%)")
    logger.info(f"{target}> {item_total} objects written (100%)")


def prepare_durability_bucket(
    client: StorageClient,
    bucket: str,
    target: str,
    metrics: ProbeMetrics,
    item_total: int,
    item_size: int,
    timeout: float | None = None,
    retry_delay: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Ensure the durability bucket exists; seed it only when it is created.

    An existing bucket is accepted as is, whatever it holds: the corpus is
    written once per bucket lifetime.

    Raises:
        StorageError: If the bucket cannot be checked or created
    """
    logger.info(f"Checking if durability bucket is present on {target}")
    if client.bucket_exists(bucket, timeout=timeout):
        return

    logger.info(f"Preparing durability bucket on {target}")
    client.make_bucket(bucket, timeout=timeout)
    metrics.bucket_created_total.labels(target=target).inc()
    seed_durability_bucket(
        client,
        bucket,
        target,
        item_total=item_total,
        item_size=item_size,
        timeout=timeout,
        retry_delay=retry_delay,
        sleep=sleep,
    )


def prepare_gateway_buckets(
    replicas: Sequence[ReplicaEndpoint],
    bucket: str,
    target: str,
    metrics: ProbeMetrics,
    timeout: float | None = None,
) -> None:
    """Ensure the shared gateway bucket exists on every replica.

    Every replica is attempted even after a failure; the first failure is
    raised once all of them were processed.

    Raises:
        PreparationError: If there are no replicas
        StorageError: The first failure met on any replica
    """
    logger.info(f"Checking if gateway buckets are present on {target}")
    if not replicas:
        raise PreparationError(f"Couldn't find any gateway destinations for {target}")

    first_error: StorageError | None = None
    for replica in replicas:
        try:
            if replica.client.bucket_exists(bucket, timeout=timeout):
                continue
            logger.info(f"Preparing gateway bucket on {replica.address}")
            metrics.gateway_bucket_created_total.labels(target=target, destination=replica.address).inc()
            create_expiring_bucket(replica.client, bucket, timeout)
        except StorageError as e:
            logger.error(f"Cannot prepare gateway bucket on {replica.address}: {sanitize_exception(e)}")
            if first_error is None:
                first_error = e

    if first_error is not None:
        raise first_error
