"""
Shared pytest fixtures for vault-kv tests.
"""

import copy
import threading
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from vault_kv.client import SecretStoreClient
from vault_kv.config import (
    AppConfig,
    CacheConfig,
    ConnectionConfig,
    LogConfig,
    SearchConfig,
    VaultConfig,
)
from vault_kv.transport import Response, Transport

BASE_URL = "http://vault.test:8200"


class FakeClock:
    """Manually advanced clock, used as the cache timer."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeVaultServer:
    """
    In-memory KV v2 server answering transport calls.

    secrets maps relative paths ("app/db") to their data dicts. Paths in
    fail_paths answer 500 for every operation.
    """

    def __init__(self, secrets: dict[str, dict] | None = None, mount: str = "secret"):
        self.mount = mount
        self.secrets = copy.deepcopy(secrets or {})
        self.versions: dict[str, int] = {path: 1 for path in self.secrets}
        self.fail_paths: set[str] = set()
        self.healthy = True
        self.calls: list[tuple[str, str, dict, object]] = []
        self._lock = threading.Lock()

    def send(self, method, url, headers, body=None) -> Response:
        with self._lock:
            self.calls.append((method, url, dict(headers), body))

        assert url.startswith(BASE_URL + "/v1/"), url
        path = url[len(BASE_URL + "/v1/") :]

        if path == "sys/health":
            if not self.healthy:
                return Response(503, {"errors": ["Vault is sealed"]})
            return Response(200, {"initialized": True, "sealed": False})

        if path == "sys/mounts":
            return Response(
                200,
                {
                    "data": {
                        f"{self.mount}/": {"type": "kv", "options": {"version": "2"}},
                        "sys/": {"type": "system"},
                        "cubbyhole/": {"type": "cubbyhole"},
                    }
                },
            )

        parts = path.split("/", 2)
        mount, family = parts[0], parts[1]
        relative = parts[2] if len(parts) > 2 else ""
        if mount != self.mount:
            return Response(404, {"errors": [f"no handler for route '{path}'"]})
        if relative in self.fail_paths:
            return Response(500, {"errors": ["internal error", f"failed at {relative}"]})

        verb = method
        if method == "POST" and "X-HTTP-Method-Override" in headers:
            verb = headers["X-HTTP-Method-Override"]

        if family == "metadata" and verb == "LIST":
            return self._list(relative)
        if family == "data" and verb == "GET":
            if relative not in self.secrets:
                return Response(404, {"errors": []})
            return Response(
                200,
                {
                    "data": {
                        "data": copy.deepcopy(self.secrets[relative]),
                        "metadata": {
                            "created_time": "2024-01-15T10:30:00Z",
                            "deletion_time": "",
                            "destroyed": False,
                            "version": self.versions[relative],
                        },
                    }
                },
            )
        if family == "data" and verb == "POST":
            self.secrets[relative] = copy.deepcopy(body["data"])
            self.versions[relative] = self.versions.get(relative, 0) + 1
            return Response(
                200,
                {"data": {"created_time": "2024-01-16T08:00:00Z", "version": self.versions[relative]}},
            )
        if family == "metadata" and verb == "DELETE":
            self.secrets.pop(relative, None)
            self.versions.pop(relative, None)
            return Response(204, None)

        return Response(405, {"errors": ["unsupported operation"]})

    def _list(self, relative: str) -> Response:
        prefix = relative + "/" if relative else ""
        keys = set()
        for path in self.secrets:
            if not path.startswith(prefix):
                continue
            rest = path[len(prefix) :]
            if "/" in rest:
                keys.add(rest.split("/", 1)[0] + "/")
            else:
                keys.add(rest)
        if not keys:
            return Response(404, {"errors": []})
        return Response(200, {"data": {"keys": sorted(keys)}})

    def calls_for(self, method: str) -> list[str]:
        """URLs of recorded calls with the given method."""
        with self._lock:
            return [url for m, url, _, _ in self.calls if m == method]


@pytest.fixture
def tmp_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a temporary INI configuration file for config tests.

    Returns:
        Path to the temporary config file.
    """
    config_content = """[vault]
url = https://vault.example.com:8200/
token = hvs.testtoken
namespace = team-a
mount = kv

[cache]
enabled = false
list_ttl_seconds = 60
secret_ttl_seconds = 30
max_entries = 500

[connection]
timeout_seconds = 45
retry_attempts = 5
retry_delay_seconds = 2
verify_tls = false
method_override = yes

[search]
max_results = 50
max_depth = 4
max_workers = 2

[logging]
level = DEBUG
file = test.log
console = false
"""
    config_path = tmp_path / "test_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def minimal_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a minimal INI configuration file with only required fields.

    Returns:
        Path to the temporary config file.
    """
    config_content = """[vault]
url = http://127.0.0.1:8200
token = root
"""
    config_path = tmp_path / "minimal_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def vault_config() -> VaultConfig:
    """Creates a standard VaultConfig for testing."""
    return VaultConfig(url=BASE_URL, token="hvs.testtoken", namespace=None, mount="secret")


@pytest.fixture
def conn_config() -> ConnectionConfig:
    """Creates a standard ConnectionConfig for testing."""
    return ConnectionConfig(
        timeout_seconds=30,
        retry_attempts=3,
        retry_delay_seconds=0,  # No delay in tests
    )


@pytest.fixture
def cache_config() -> CacheConfig:
    """Creates a standard CacheConfig for testing."""
    return CacheConfig(enabled=True, list_ttl_seconds=300, secret_ttl_seconds=120)


@pytest.fixture
def search_config() -> SearchConfig:
    return SearchConfig(max_results=100, max_depth=10, max_workers=4)


@pytest.fixture
def app_config(
    vault_config: VaultConfig,
    conn_config: ConnectionConfig,
    cache_config: CacheConfig,
    search_config: SearchConfig,
) -> AppConfig:
    """Creates a complete AppConfig for testing."""
    return AppConfig(
        vault=vault_config,
        cache=cache_config,
        connection=conn_config,
        search=search_config,
        logging=LogConfig(level="DEBUG", file="", console=False),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_server() -> FakeVaultServer:
    """A server holding a small secret tree."""
    return FakeVaultServer(
        {
            "app/db": {"password": "x"},
            "app/notes": {"text": "contains token"},
            "app/api/stripe": {"key": "sk_live_123"},
            "infra/dns": {"provider": "route53"},
        }
    )


@pytest.fixture
def mock_transport(fake_server: FakeVaultServer) -> MagicMock:
    """
    Creates a mocked Transport forwarding to the fake server.

    Returns:
        MagicMock with send() wired to FakeVaultServer.send.
    """
    mock = MagicMock(spec=Transport)
    mock.send.side_effect = fake_server.send
    return mock


@pytest.fixture
def client(
    vault_config: VaultConfig,
    mock_transport: MagicMock,
    cache_config: CacheConfig,
    conn_config: ConnectionConfig,
    search_config: SearchConfig,
    clock: FakeClock,
) -> SecretStoreClient:
    """Creates a SecretStoreClient talking to the fake server."""
    return SecretStoreClient(
        vault_config,
        mock_transport,
        cache_config=cache_config,
        conn_config=conn_config,
        search_config=search_config,
        timer=clock,
    )
