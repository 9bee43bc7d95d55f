"""Prometheus metrics for the S3 probe."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Summary

LATENCY_BUCKETS = [
    0.001, 0.0025, 0.005, 0.010, 0.015, 0.020, 0.025, 0.030, 0.040, 0.050,
    0.060, 0.075, 0.100, 0.250, 0.500, 1.0, 2.5, 5.0, 10.0,
]


class ProbeMetrics:
    """Every series the watcher and probe workers record.

    One instance is created per process and handed to the watcher, which
    shares it with every worker it starts. Series live on the injected
    registry rather than the prometheus_client default one.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        # Endpoint request metrics
        self.requests_total = Counter(
            "s3_probe_requests_total",
            "Total number of requests on S3 endpoint",
            ["operation", "target"],
            registry=self.registry,
        )
        self.requests_success_total = Counter(
            "s3_probe_requests_success_total",
            "Total number of successful requests on S3 endpoint",
            ["operation", "target"],
            registry=self.registry,
        )
        self.latency_seconds = Summary(
            "s3_probe_latency_seconds",
            "Latency for operation on the S3 endpoint",
            ["operation", "target"],
            registry=self.registry,
        )
        self.latency_histogram_seconds = Histogram(
            "s3_probe_latency_histogram_seconds",
            "Latency for operation on the S3 endpoint",
            ["operation", "target"],
            buckets=LATENCY_BUCKETS,
            registry=self.registry,
        )

        # Gateway fan-out metrics
        self.gateway_requests_total = Counter(
            "s3_probe_gateway_requests_total",
            "Total number of gateway requests on S3 endpoint",
            ["operation", "target", "destination"],
            registry=self.registry,
        )
        self.gateway_requests_success_total = Counter(
            "s3_probe_gateway_requests_success_total",
            "Total number of successful gateway requests on S3 endpoint",
            ["operation", "target", "destination"],
            registry=self.registry,
        )

        # Bucket preparation metrics
        self.bucket_created_total = Counter(
            "s3_probe_bucket_created_total",
            "Total number of monitoring buckets created",
            ["target"],
            registry=self.registry,
        )
        self.gateway_bucket_created_total = Counter(
            "s3_probe_gateway_bucket_created_total",
            "Total number of monitoring gateway buckets created",
            ["target", "destination"],
            registry=self.registry,
        )
        self.preparation_error_total = Counter(
            "s3_probe_preparation_error_total",
            "Total number of failed probe preparations",
            ["target"],
            registry=self.registry,
        )

        # Durability metrics
        self.durability_items_expected = Gauge(
            "s3_probe_durability_items_expected",
            "Number of items that should be present on the endpoint",
            ["target"],
            registry=self.registry,
        )
        self.durability_items_found = Gauge(
            "s3_probe_durability_items_found",
            "Number of items that are present on the endpoint",
            ["target"],
            registry=self.registry,
        )

        # Discovery metrics
        self.discovery_error_total = Counter(
            "s3_probe_discovery_error_total",
            "Total number of service discovery errors",
            ["target"],
            registry=self.registry,
        )

    def observe_operation(self, operation: str, target: str, duration: float, success: bool) -> None:
        """Record one timed operation against a target's primary endpoint."""
        self.requests_total.labels(operation=operation, target=target).inc()
        self.latency_seconds.labels(operation=operation, target=target).observe(duration)
        self.latency_histogram_seconds.labels(operation=operation, target=target).observe(duration)
        if success:
            self.requests_success_total.labels(operation=operation, target=target).inc()

    def observe_gateway_operation(
        self, operation: str, target: str, destination: str, success: bool
    ) -> None:
        """Record one gateway fan-out operation against a replica destination."""
        self.gateway_requests_total.labels(
            operation=operation, target=target, destination=destination
        ).inc()
        if success:
            self.gateway_requests_success_total.labels(
                operation=operation, target=target, destination=destination
            ).inc()
