"""
Path helpers for the KV v2 secrets engine.

Pure string transforms mapping logical secret paths to API URLs and
cache keys. No I/O and no state: the same input always yields the same
output.
"""

import re

SEPARATOR = "/"
API_PREFIX = "/v1"
DEFAULT_MOUNT = "secret"
ROOT_NAMESPACE = "root"

_REPEATED_SEPARATORS = re.compile(r"/{2,}")


def normalize(path: str) -> str:
    """Collapse repeated separators and strip a trailing separator."""
    path = _REPEATED_SEPARATORS.sub(SEPARATOR, path)
    if path.endswith(SEPARATOR):
        path = path[:-1]
    return path


def join(*segments: str) -> str:
    """Join non-empty segments with the separator and normalize the result."""
    return normalize(SEPARATOR.join(s for s in segments if s))


def strip_mount_prefix(path: str, mount: str = DEFAULT_MOUNT) -> str:
    """
    Remove a leading mount segment from a path.

    "secret/app/db" -> "app/db", "secret" -> "". Leading separators are
    dropped as well. Every leading mount segment is removed so that a
    second call never changes the result.

    Args:
        path: Path that may start with the mount name.
        mount: Mount name to strip.

    Returns:
        The path relative to the mount.
    """
    stripped = path.lstrip(SEPARATOR)
    if not mount:
        return stripped
    while stripped == mount or stripped.startswith(mount + SEPARATOR):
        stripped = stripped[len(mount) :].lstrip(SEPARATOR)
    return stripped


def canonical(path: str, mount: str = DEFAULT_MOUNT) -> str:
    """
    Canonical form of a secret path: normalized, relative to the mount,
    without leading or trailing separators.

    "secret/app/db", "/app//db/" and "app/db" all map to "app/db".
    Exactly one leading mount segment is removed, so "secret/secret/token"
    is the secret "secret/token" inside the mount and qualify() output
    always maps back to the same location.
    """
    relative = normalize(path).lstrip(SEPARATOR)
    if mount and (relative == mount or relative.startswith(mount + SEPARATOR)):
        relative = relative[len(mount) :].lstrip(SEPARATOR)
    return relative


def qualify(path: str, mount: str = DEFAULT_MOUNT) -> str:
    """Mount-qualified form of a path relative to the mount: "app/db" -> "secret/app/db"."""
    return join(mount, path)


def _build_url(segment: str, path: str, mount: str) -> str:
    relative = canonical(path, mount)
    url = f"{API_PREFIX}/{mount}/{segment}"
    if relative:
        url = f"{url}/{relative}"
    return url


def build_data_url(path: str, mount: str = DEFAULT_MOUNT) -> str:
    """URL for reading and writing secret data: /v1/<mount>/data/<path>."""
    return _build_url("data", path, mount)


def build_metadata_url(path: str, mount: str = DEFAULT_MOUNT) -> str:
    """URL for metadata operations (delete of all versions): /v1/<mount>/metadata/<path>."""
    return _build_url("metadata", path, mount)


def build_list_url(path: str, mount: str = DEFAULT_MOUNT) -> str:
    """
    URL for listing a folder.

    Listing uses the metadata URL family; the LIST verb is what
    distinguishes it from a metadata read.
    """
    return _build_url("metadata", path, mount)


def parent_of(path: str) -> str:
    """
    Drop the last segment of a path.

    Args:
        path: A secret path such as "app/db/password".

    Returns:
        The parent path ("app/db"), or "" for top-level paths and the root.
    """
    normalized = normalize(path)
    if SEPARATOR not in normalized:
        return ""
    return normalized.rsplit(SEPARATOR, 1)[0]


def cache_key(kind: str, path: str, namespace: str | None = None) -> str:
    """Composite cache key: kind:path:namespace (or "root" without a namespace)."""
    return f"{kind}:{path}:{namespace or ROOT_NAMESPACE}"
