"""External services used by the probe."""
