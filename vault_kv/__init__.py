__version__ = "0.1.0"

# Public API exports
from . import paths
from .cache import CacheEntry, TTLCache
from .client import SecretStoreClient
from .config import (
    AppConfig,
    CacheConfig,
    ConnectionConfig,
    LogConfig,
    SearchConfig,
    VaultConfig,
    load_config,
)
from .errors import (
    NotFoundError,
    PermissionDeniedError,
    ProtocolError,
    SecretStoreError,
    TransportError,
    ValidationError,
)
from .models import ConnectionStatus, DirectoryEntry, SecretMetadata, SecretValue
from .search import CancellationToken, SearchEngine
from .transport import RequestsTransport, Response, Transport

__all__ = [
    "__version__",
    # Configuration
    "AppConfig",
    "VaultConfig",
    "CacheConfig",
    "ConnectionConfig",
    "SearchConfig",
    "LogConfig",
    "load_config",
    # Client
    "SecretStoreClient",
    "Transport",
    "RequestsTransport",
    "Response",
    # Values
    "DirectoryEntry",
    "SecretValue",
    "SecretMetadata",
    "ConnectionStatus",
    # Cache and paths
    "CacheEntry",
    "TTLCache",
    "paths",
    # Search
    "SearchEngine",
    "CancellationToken",
    # Errors
    "SecretStoreError",
    "TransportError",
    "ProtocolError",
    "NotFoundError",
    "PermissionDeniedError",
    "ValidationError",
]
