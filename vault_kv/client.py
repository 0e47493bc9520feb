"""
Client for a HashiCorp Vault KV v2 secrets engine.

Translates path-based operations (list/read/write/delete/search) into
KV v2 API calls and caches listings and secret values with independent
TTLs. Every write or delete invalidates the cached value of the secret
itself and the cached listing of its parent folder; a namespace switch
clears both caches.
"""

import copy
import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import replace
from types import MappingProxyType
from typing import Any

from . import paths
from .cache import TTLCache
from .config import AppConfig, CacheConfig, ConnectionConfig, SearchConfig, VaultConfig
from .errors import (
    NotFoundError,
    ProtocolError,
    SecretStoreError,
    TransportError,
    ValidationError,
    error_for_status,
)
from .models import ConnectionStatus, DirectoryEntry, SecretMetadata, SecretValue
from .search import CancellationToken, SearchEngine
from .transport import RequestsTransport, Response, Transport

logger = logging.getLogger(__name__)

LIST_KIND = "list"
SECRET_KIND = "secret"

HEALTH_URL = f"{paths.API_PREFIX}/sys/health"
MOUNTS_URL = f"{paths.API_PREFIX}/sys/mounts"

TOKEN_HEADER = "X-Vault-Token"
NAMESPACE_HEADER = "X-Vault-Namespace"
METHOD_OVERRIDE_HEADER = "X-HTTP-Method-Override"

# "generic" is the legacy type name of KV version 1 mounts
KV_MOUNT_TYPES = ("kv", "generic")


def _coerce_payload(data: Any) -> dict[str, Any]:
    """Validate secret data, parsing it first when given as a JSON string."""
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise ValidationError(f"Secret data is not valid JSON: {e}") from e

    if not isinstance(data, Mapping):
        raise ValidationError("Secret data must be a JSON object")
    if not all(isinstance(key, str) for key in data):
        raise ValidationError("Secret data keys must be strings")

    try:
        json.dumps(data)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Secret data is not JSON-serializable: {e}") from e

    return dict(data)


def _copy_secret(secret: SecretValue) -> SecretValue:
    return replace(secret, data=MappingProxyType(copy.deepcopy(dict(secret.data))))


def _malformed(url: str, response: Response, detail: str) -> ProtocolError:
    return ProtocolError(f"Malformed response from {url}: {detail}", response.status)


class SecretStoreClient:
    """
    High-level client for one Vault server, with listing and value caches.

    The base URL and token are fixed at construction; the namespace can be
    changed with set_namespace(). Caches can be injected so callers control
    sharing; by default every client owns its own pair.
    """

    def __init__(
        self,
        vault_config: VaultConfig,
        transport: Transport,
        cache_config: CacheConfig | None = None,
        conn_config: ConnectionConfig | None = None,
        search_config: SearchConfig | None = None,
        list_cache: TTLCache | None = None,
        secret_cache: TTLCache | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.vault_config = vault_config
        self.cache_config = cache_config or CacheConfig()
        self.conn_config = conn_config or ConnectionConfig()
        self.search_config = search_config or SearchConfig()
        self.base_url = vault_config.url.rstrip("/")
        self.mount = vault_config.mount
        self._token = vault_config.token
        self._namespace = vault_config.namespace or None
        self._transport = transport

        max_entries = self.cache_config.max_entries or None
        if list_cache is None:
            list_cache = TTLCache(
                self.cache_config.list_ttl_seconds, max_entries, timer=timer, name="list-cache"
            )
        if secret_cache is None:
            secret_cache = TTLCache(
                self.cache_config.secret_ttl_seconds, max_entries, timer=timer, name="secret-cache"
            )
        self.list_cache = list_cache
        self.secret_cache = secret_cache

        logger.debug(
            "SecretStoreClient created for %s (mount=%s, namespace=%s, cache=%s)",
            self.base_url,
            self.mount,
            self._namespace,
            "on" if self.cache_config.enabled else "off",
        )

    @classmethod
    def from_config(
        cls, config: AppConfig, transport: Transport | None = None
    ) -> "SecretStoreClient":
        """Build a client (and a RequestsTransport unless one is given) from AppConfig."""
        if transport is None:
            transport = RequestsTransport(config.connection)
        return cls(
            config.vault,
            transport,
            cache_config=config.cache,
            conn_config=config.connection,
            search_config=config.search,
        )

    @property
    def namespace(self) -> str | None:
        return self._namespace

    def set_namespace(self, namespace: str | None) -> None:
        """
        Switch the namespace used by every later call.

        Both caches are cleared; entries cached for the old namespace are
        never served for the new one.
        """
        self._namespace = namespace or None
        self.clear_cache()
        logger.info("Namespace set to %s", self._namespace or "root")

    def clear_cache(self) -> None:
        self.list_cache.clear()
        self.secret_cache.clear()

    def _headers(self, namespace: str | None) -> dict[str, str]:
        headers = {
            TOKEN_HEADER: self._token,
            "Content-Type": "application/json",
        }
        if namespace:
            headers[NAMESPACE_HEADER] = namespace
        return headers

    def _request(
        self,
        method: str,
        url: str,
        namespace: str | None,
        body: Any = None,
        extra_headers: dict[str, str] | None = None,
    ) -> Response:
        """
        Send one request and normalize failures.

        Raises:
            TransportError: If no response was received.
            ProtocolError: (or a subclass) for any non-2xx status.
        """
        headers = self._headers(namespace)
        if extra_headers:
            headers.update(extra_headers)

        try:
            response = self._transport.send(method, self.base_url + url, headers, body)
        except SecretStoreError:
            raise
        except Exception as e:
            # Foreign transports: surface as one error type
            raise TransportError(str(e)) from e

        if not response.ok:
            raise error_for_status(response.status, response.body)
        return response

    def _relative(self, path: str) -> str:
        return paths.canonical(path, self.mount)

    def _url(self, build: Callable[[str, str], str], relative: str) -> str:
        return build(paths.qualify(relative, self.mount), self.mount)

    def _require_secret_path(self, path: str) -> str:
        relative = self._relative(path)
        if not relative:
            raise ValidationError(f"A secret path is required, got {path!r}")
        return relative

    def _invalidate_after_mutation(self, relative: str, namespace: str | None) -> None:
        self.secret_cache.invalidate(paths.cache_key(SECRET_KIND, relative, namespace))
        self.list_cache.invalidate(
            paths.cache_key(LIST_KIND, paths.parent_of(relative), namespace)
        )

    def test_connection(self) -> ConnectionStatus:
        """
        Check the server's health endpoint.

        Never raises for connection or server failures; the outcome is
        reported in the returned status.
        """
        try:
            self._request("GET", HEALTH_URL, self._namespace)
        except SecretStoreError as e:
            logger.warning("Connection test against %s failed: %s", self.base_url, e.message)
            return ConnectionStatus(ok=False, error=e.message)
        logger.info("Connection to %s OK", self.base_url)
        return ConnectionStatus(ok=True)

    def list_secrets(self, path: str = "") -> list[DirectoryEntry]:
        """
        List the children of a folder.

        Args:
            path: Folder path, with or without the mount prefix. Defaults
                to the mount root.

        Returns:
            DirectoryEntry list with mount-qualified paths. A folder that
            does not exist yields [].

        Raises:
            TransportError, ProtocolError: For failures other than 404,
                and ProtocolError for a success status with a malformed body.
        """
        namespace = self._namespace
        relative = self._relative(path)
        key = paths.cache_key(LIST_KIND, relative, namespace)

        if self.cache_config.enabled:
            cached = self.list_cache.get(key)
            if cached is not None:
                return list(cached)

        url = self._url(paths.build_list_url, relative)
        if self.conn_config.method_override:
            method, extra = "POST", {METHOD_OVERRIDE_HEADER: "LIST"}
        else:
            method, extra = "LIST", None

        logger.debug("Listing secrets at %s", url)
        try:
            response = self._request(method, url, namespace, extra_headers=extra)
        except NotFoundError:
            logger.debug("Nothing listed at %s", url)
            return []

        body = {} if response.body is None else response.body
        if not isinstance(body, dict):
            raise _malformed(url, response, "body is not a JSON object")
        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise _malformed(url, response, "'data' is not an object")
        keys = data.get("keys") or []
        if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
            raise _malformed(url, response, "'keys' is not a list of strings")

        folder = paths.qualify(relative, self.mount)
        entries = [
            DirectoryEntry(
                name=key.rstrip(paths.SEPARATOR),
                path=paths.join(folder, key),
                is_folder=key.endswith(paths.SEPARATOR),
            )
            for key in keys
        ]
        logger.debug("Listed %d entries at %s", len(entries), url)

        if self.cache_config.enabled:
            self.list_cache.set(key, entries)
        return list(entries)

    def read_secret(self, path: str) -> SecretValue:
        """
        Read the current version of a secret.

        Args:
            path: Secret path, with or without the mount prefix.

        Returns:
            SecretValue with data and metadata. The returned object is a
            copy; changing it never affects the cache.

        Raises:
            ValidationError: If path is empty.
            NotFoundError: If the secret does not exist.
            TransportError, ProtocolError: For other failures, including a
                malformed success body.
        """
        namespace = self._namespace
        relative = self._require_secret_path(path)
        key = paths.cache_key(SECRET_KIND, relative, namespace)

        if self.cache_config.enabled:
            cached = self.secret_cache.get(key)
            if cached is not None:
                return _copy_secret(cached)

        url = self._url(paths.build_data_url, relative)
        logger.debug("Reading secret from %s", url)
        response = self._request("GET", url, namespace)

        envelope = response.body.get("data") if isinstance(response.body, dict) else None
        if not isinstance(envelope, dict):
            raise _malformed(url, response, "missing 'data' envelope")
        # data is null for a deleted version
        data = envelope.get("data") or {}
        metadata = envelope.get("metadata") or None
        if not isinstance(data, dict):
            raise _malformed(url, response, "secret data is not an object")
        if metadata is not None and not isinstance(metadata, dict):
            raise _malformed(url, response, "'metadata' is not an object")

        secret = SecretValue(
            path=paths.qualify(relative, self.mount),
            data=MappingProxyType(copy.deepcopy(data)),
            metadata=SecretMetadata.from_response(metadata),
        )

        if self.cache_config.enabled:
            self.secret_cache.set(key, secret)
        return _copy_secret(secret)

    def write_secret(self, path: str, data: Mapping[str, Any] | str) -> SecretMetadata | None:
        """
        Write a new version of a secret.

        Args:
            path: Secret path, with or without the mount prefix.
            data: Key/value mapping, or a JSON object serialized as a string.

        Returns:
            Metadata of the new version when the server reports it.

        Raises:
            ValidationError: If path is empty or data is not a JSON object.
            TransportError, ProtocolError: If the write fails.
        """
        namespace = self._namespace
        relative = self._require_secret_path(path)
        payload = _coerce_payload(data)

        url = self._url(paths.build_data_url, relative)
        logger.debug("Writing secret to %s (%d keys)", url, len(payload))
        response = self._request("POST", url, namespace, body={"data": payload})

        self._invalidate_after_mutation(relative, namespace)

        written = response.body.get("data") if isinstance(response.body, dict) else None
        if isinstance(written, dict):
            return SecretMetadata.from_response(written)
        return None

    def delete_secret(self, path: str) -> None:
        """
        Delete a secret with all of its versions and metadata.

        Raises:
            ValidationError: If path is empty.
            TransportError, ProtocolError: If the delete fails.
        """
        namespace = self._namespace
        relative = self._require_secret_path(path)

        url = self._url(paths.build_metadata_url, relative)
        logger.debug("Deleting secret at %s", url)
        self._request("DELETE", url, namespace)

        self._invalidate_after_mutation(relative, namespace)

    def list_mounts(self) -> list[str]:
        """
        List the key-value mounts visible to the token.

        Mounts are kept when their type is kv (either version); entries
        without a type are kept when the name mentions secret or kv.
        """
        response = self._request("GET", MOUNTS_URL, self._namespace)
        body = response.body if isinstance(response.body, dict) else {}
        mounts = body.get("data") if isinstance(body.get("data"), dict) else body

        names = []
        for name, info in mounts.items():
            if not isinstance(info, dict):
                continue
            mount_type = info.get("type")
            if mount_type is not None:
                if mount_type not in KV_MOUNT_TYPES:
                    continue
            elif "secret" not in name and "kv" not in name:
                continue
            names.append(name.rstrip(paths.SEPARATOR))

        return sorted(names)

    def search_secrets(
        self,
        query: str,
        base_path: str = "",
        cancel_token: CancellationToken | None = None,
        max_results: int | None = None,
        max_depth: int | None = None,
    ) -> list[DirectoryEntry]:
        """Search by name or content under base_path. See SearchEngine.search."""
        engine = SearchEngine(self, max_workers=self.search_config.max_workers)
        return engine.search(
            query,
            base_path=base_path,
            cancel_token=cancel_token,
            max_results=self.search_config.max_results if max_results is None else max_results,
            max_depth=self.search_config.max_depth if max_depth is None else max_depth,
        )
