"""
Value types returned by the secret store client.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    path: str
    is_folder: bool


@dataclass(frozen=True)
class SecretMetadata:
    created_time: str | None = None
    deletion_time: str | None = None
    destroyed: bool = False
    version: int | None = None

    @classmethod
    def from_response(cls, raw: dict[str, Any] | None) -> "SecretMetadata | None":
        """Build from the metadata block of a KV v2 read response."""
        if not raw:
            return None
        return cls(
            created_time=raw.get("created_time") or None,
            deletion_time=raw.get("deletion_time") or None,
            destroyed=bool(raw.get("destroyed", False)),
            version=raw.get("version"),
        )


@dataclass(frozen=True)
class SecretValue:
    """
    A secret as read from the store.

    data is a read-only view; use to_dict() for a mutable copy.
    """

    path: str
    data: MappingProxyType
    metadata: SecretMetadata | None = None

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


@dataclass(frozen=True)
class ConnectionStatus:
    ok: bool
    error: str | None = field(default=None)
