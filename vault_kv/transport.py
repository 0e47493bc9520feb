"""
HTTP transport used by SecretStoreClient.

Defines the Transport protocol the client talks to, and a requests-based
implementation with retry on connection-level failures. Tests and
embedding applications can pass any object with a matching send().
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import requests

from .config import ConnectionConfig
from .errors import TransportError

logger = logging.getLogger(__name__)


@dataclass
class Response:
    status: int
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@runtime_checkable
class Transport(Protocol):
    """Protocol for sending one request to the secret store.

    Implementations return a Response for every answer the server gives,
    including error statuses, and raise TransportError when no answer
    was received at all.
    """

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any = None,
    ) -> Response:
        """Send a request.

        Args:
            method: HTTP verb, including non-standard ones such as LIST.
            url: Absolute URL.
            headers: Request headers (token and namespace included).
            body: JSON-serializable payload, or None.

        Returns:
            The server's response.

        Raises:
            TransportError: If no response was received.
        """
        ...


class RequestsTransport:
    """
    Transport backed by a requests.Session, with retry logic for
    connection failures. Error statuses are returned, never retried.
    """

    def __init__(self, conn_config: ConnectionConfig, session: requests.Session | None = None):
        self.conn_config = conn_config
        self._session = session or requests.Session()

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any = None,
    ) -> Response:
        attempts = max(1, self.conn_config.retry_attempts)
        last_exception: Exception | None = None

        for attempt in range(attempts):
            try:
                logger.debug("%s %s", method, url)
                resp = self._session.request(
                    method,
                    url,
                    headers=headers,
                    json=body,
                    timeout=self.conn_config.timeout_seconds,
                    verify=self.conn_config.verify_tls,
                )
                return Response(
                    status=resp.status_code,
                    body=self._parse_body(resp),
                    headers=dict(resp.headers),
                )
            except (requests.ConnectionError, requests.Timeout) as e:
                last_exception = e
                logger.warning(
                    "%s %s failed (attempt %d/%d): %s",
                    method,
                    url,
                    attempt + 1,
                    attempts,
                    e,
                )
                if attempt < attempts - 1:
                    time.sleep(self.conn_config.retry_delay_seconds)
            except requests.RequestException as e:
                logger.error("%s %s failed: %s", method, url, e)
                raise TransportError(f"{method} {url} failed: {e}") from e

        logger.error("%s %s failed after %d attempts", method, url, attempts)
        raise TransportError(f"{method} {url} failed: {last_exception}") from last_exception

    def close(self) -> None:
        self._session.close()

    @staticmethod
    def _parse_body(resp: requests.Response) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text
