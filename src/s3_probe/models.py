"""Models shared by discovery and the probe workers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TargetRole(str, Enum):
    """How a discovered endpoint is probed."""

    SIMPLE = "simple"
    GATEWAY = "gateway"


@dataclass(frozen=True)
class Target:
    """One discovered S3 endpoint.

    Equality covers every field, so a target whose address, role or
    replica list changed compares unequal to its previous version even
    though ``name`` is unchanged.
    """

    name: str
    resolved_address: str
    role: TargetRole = TargetRole.SIMPLE
    replica_addresses: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_gateway(self) -> bool:
        return self.role is TargetRole.GATEWAY
