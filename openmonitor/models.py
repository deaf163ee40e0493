"""
Design (models.py)
- Purpose: Define simple, typed data structures for domain entities (directory entries, targets).
- Inputs: Field values.
- Outputs: Dataclass instances.
- Side effects: None.
- Thread-safety: Records are frozen; WatchRepo protects the mutable per-run state.
"""

import enum
from dataclasses import dataclass
from ipaddress import IPv4Address
from typing import Dict


@dataclass(frozen=True)
class DirectoryEntry:
    """
    Design (DirectoryEntry)
    - Purpose: One row of the server directory.
    - Fields:
        name: server name as listed upstream (directory key).
        address: IPv4 host as raw text; validated when resolved.
        port: TCP port (0..65535).
    """
    name: str
    address: str
    port: int


# name -> entry; read-only once built
Directory = Dict[str, DirectoryEntry]


@dataclass(frozen=True)
class ResolvedTarget:
    name: str
    address: IPv4Address
    port: int

    @property
    def endpoint(self) -> str:
        return f"{self.address}:{self.port}"


class TargetState(enum.Enum):
    PENDING = "pending"
    PROBING = "probing"
    NOTIFIED = "notified"
