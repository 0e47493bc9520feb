"""
Unit tests for vault_kv.transport module.

Tests cover:
- RequestsTransport passes method, headers, JSON body, timeout and TLS flag
- Response body parsing (JSON, text, empty)
- Error statuses are returned, not raised
- Retry logic on connection failures
- Transport protocol conformance
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from vault_kv.config import ConnectionConfig
from vault_kv.errors import TransportError
from vault_kv.transport import RequestsTransport, Response, Transport

URL = "http://vault.test:8200/v1/secret/data/app/db"


@pytest.fixture
def mock_session():
    """Creates a mocked requests.Session."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def transport(conn_config, mock_session):
    return RequestsTransport(conn_config, session=mock_session)


def _http_response(status=200, json_body=None, text=""):
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    resp.headers = {"Content-Type": "application/json"}
    if json_body is not None:
        resp.content = b"{...}"
        resp.json.return_value = json_body
    elif text:
        resp.content = text.encode()
        resp.text = text
        resp.json.side_effect = ValueError("not json")
    else:
        resp.content = b""
    return resp


class TestResponse:
    """Tests for the Response dataclass."""

    @pytest.mark.parametrize("status, ok", [(200, True), (204, True), (404, False), (500, False)])
    def test_ok(self, status, ok):
        assert Response(status).ok is ok


class TestRequestsTransportSend:
    """Tests for RequestsTransport.send."""

    def test_passes_request_details(self, transport, mock_session, conn_config):
        mock_session.request.return_value = _http_response(200, {"data": {}})
        headers = {"X-Vault-Token": "hvs.x"}

        transport.send("POST", URL, headers, {"data": {"a": 1}})

        mock_session.request.assert_called_once_with(
            "POST",
            URL,
            headers=headers,
            json={"data": {"a": 1}},
            timeout=conn_config.timeout_seconds,
            verify=True,
        )

    def test_custom_verb(self, transport, mock_session):
        mock_session.request.return_value = _http_response(200, {"data": {"keys": []}})

        transport.send("LIST", URL, {})

        assert mock_session.request.call_args[0][0] == "LIST"

    def test_parses_json_body(self, transport, mock_session):
        mock_session.request.return_value = _http_response(200, {"data": {"data": {"a": 1}}})

        response = transport.send("GET", URL, {})

        assert response.status == 200
        assert response.body == {"data": {"data": {"a": 1}}}

    def test_text_body(self, transport, mock_session):
        mock_session.request.return_value = _http_response(502, text="Bad Gateway")

        response = transport.send("GET", URL, {})

        assert response.body == "Bad Gateway"

    def test_empty_body(self, transport, mock_session):
        mock_session.request.return_value = _http_response(204)

        response = transport.send("DELETE", URL, {})

        assert response.status == 204
        assert response.body is None

    def test_error_status_returned_not_raised(self, transport, mock_session):
        mock_session.request.return_value = _http_response(404, {"errors": []})

        response = transport.send("GET", URL, {})

        assert response.ok is False
        assert mock_session.request.call_count == 1

    def test_tls_verification_flag(self, mock_session):
        transport = RequestsTransport(ConnectionConfig(verify_tls=False), session=mock_session)
        mock_session.request.return_value = _http_response(200, {})

        transport.send("GET", URL, {})

        assert mock_session.request.call_args[1]["verify"] is False


class TestRequestsTransportRetry:
    """Tests for retry behavior."""

    def test_retries_connection_errors_then_succeeds(self, transport, mock_session):
        mock_session.request.side_effect = [
            requests.ConnectionError("refused"),
            requests.Timeout("slow"),
            _http_response(200, {"ok": True}),
        ]

        response = transport.send("GET", URL, {})

        assert response.body == {"ok": True}
        assert mock_session.request.call_count == 3

    def test_raises_transport_error_after_all_attempts(self, transport, mock_session):
        mock_session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(TransportError) as exc_info:
            transport.send("GET", URL, {})

        assert mock_session.request.call_count == 3
        assert "refused" in exc_info.value.message
        assert isinstance(exc_info.value, ConnectionError)

    def test_waits_between_attempts(self, mock_session):
        transport = RequestsTransport(
            ConnectionConfig(retry_attempts=2, retry_delay_seconds=5), session=mock_session
        )
        mock_session.request.side_effect = requests.ConnectionError("refused")

        with patch("vault_kv.transport.time.sleep") as mock_sleep:
            with pytest.raises(TransportError):
                transport.send("GET", URL, {})

        mock_sleep.assert_called_once_with(5)

    def test_other_request_errors_not_retried(self, transport, mock_session):
        mock_session.request.side_effect = requests.exceptions.InvalidURL("bad url")

        with pytest.raises(TransportError):
            transport.send("GET", "not a url", {})

        assert mock_session.request.call_count == 1

    def test_zero_attempts_still_tries_once(self, mock_session):
        transport = RequestsTransport(ConnectionConfig(retry_attempts=0), session=mock_session)
        mock_session.request.return_value = _http_response(200, {})

        transport.send("GET", URL, {})

        assert mock_session.request.call_count == 1


class TestTransportProtocol:
    """Verify that RequestsTransport satisfies the Transport protocol."""

    def test_runtime_checkable(self, conn_config):
        assert isinstance(RequestsTransport(conn_config), Transport)

    def test_close_closes_session(self, transport, mock_session):
        transport.close()

        mock_session.close.assert_called_once()
