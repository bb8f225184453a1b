"""Tests for shared HTTP helpers."""

import time
from unittest.mock import MagicMock

import pytest
import requests
import urllib3

from common.http_client import build_session, is_timeout, iter_body, open_stream, with_authorization
from constants import Constants
from gateway.errors import NetworkError, RegistryHTTPError, RequestTimeout


class TestWithAuthorization:
    """Bearer header construction."""

    def test_returns_new_mapping(self):
        """Input headers are not mutated."""
        base = {"Accept": "application/json"}
        result = with_authorization(base, "s3cr3t")
        assert result == {"Accept": "application/json", "Authorization": "Bearer s3cr3t"}
        assert base == {"Accept": "application/json"}
        assert result is not base

    def test_none_headers(self):
        """Missing headers start from an empty mapping."""
        assert with_authorization(None, "t") == {"Authorization": "Bearer t"}


def test_build_session_sets_user_agent():
    """Sessions identify the client."""
    session = build_session()
    try:
        assert session.headers["User-Agent"] == Constants.USER_AGENT
    finally:
        session.close()


class TestOpenStream:
    """Transport error mapping."""

    def _session(self, **get_kwargs):
        session = MagicMock(spec=requests.Session)
        session.get = MagicMock(**get_kwargs)
        return session

    def test_success_returns_streamed_response(self):
        """2xx responses are returned open, request is streamed with timeout."""
        response = MagicMock()
        response.status_code = 200
        session = self._session(return_value=response)

        result = open_stream(session, "https://r.example/pkg", headers={"A": "b"}, timeout=4, context="metadata")

        assert result is response
        session.get.assert_called_once_with("https://r.example/pkg", headers={"A": "b"}, timeout=4, stream=True)
        response.close.assert_not_called()

    def test_non_2xx_raises_and_closes(self):
        """Error statuses close the response and carry the code."""
        response = MagicMock()
        response.status_code = 404
        session = self._session(return_value=response)

        with pytest.raises(RegistryHTTPError) as excinfo:
            open_stream(session, "https://r.example/missing", headers={}, timeout=4, context="metadata")

        assert excinfo.value.status_code == 404
        assert isinstance(excinfo.value, NetworkError)
        response.close.assert_called_once()

    def test_timeout_wrapped(self):
        """Timeouts surface as RequestTimeout with the cause attached."""
        cause = requests.Timeout("read timed out")
        session = self._session(side_effect=cause)

        with pytest.raises(RequestTimeout) as excinfo:
            open_stream(session, "https://r.example/pkg", headers={}, timeout=1, context="metadata")

        assert excinfo.value.cause is cause
        assert excinfo.value.__cause__ is cause
        assert "timed out" in str(excinfo.value)

    def test_connection_error_wrapped(self):
        """Connection failures surface as NetworkError."""
        cause = requests.ConnectionError("refused")
        session = self._session(side_effect=cause)

        with pytest.raises(NetworkError) as excinfo:
            open_stream(session, "https://r.example/pkg", headers={}, timeout=1, context="artifact")

        assert excinfo.value.cause is cause
        assert excinfo.value.url == "https://r.example/pkg"


def read_timeout():
    """Read timeout as requests re-raises it from inside iter_content."""
    return requests.ConnectionError(urllib3.exceptions.ReadTimeoutError(None, None, "read timed out"))


@pytest.mark.parametrize(
    "exc, expected",
    [
        (requests.Timeout("slow"), True),
        (urllib3.exceptions.ReadTimeoutError(None, None, "read timed out"), True),
        (read_timeout(), True),
        (requests.ConnectionError("refused"), False),
        (requests.exceptions.ChunkedEncodingError("cut"), False),
    ],
)
def test_is_timeout(exc, expected):
    """Timeouts are recognized whichever layer raised them."""
    assert is_timeout(exc) is expected


def failing_chunks(exc, *chunks):
    """Generator that yields ``chunks`` and then raises ``exc``."""
    yield from chunks
    raise exc


class FakeRaw:
    """urllib3 response stand-in exposing read1."""

    def __init__(self, chunks):
        self._chunks = list(chunks)
        self.calls = []

    def read1(self, amt=None, decode_content=None):
        self.calls.append((amt, decode_content))
        return self._chunks.pop(0) if self._chunks else b""


class TestIterBody:
    """Deadline-bounded body iteration."""

    def test_prefers_read1(self):
        """Single-read chunks are used when the transport offers them."""
        res = MagicMock()
        res.raw = FakeRaw([b"ab", b"cd"])

        chunks = list(iter_body(res, url="https://r.example/a.tgz", deadline=time.monotonic() + 5, context="artifact"))

        assert chunks == [b"ab", b"cd"]
        assert res.raw.calls[0] == (Constants.DOWNLOAD_CHUNK_SIZE, True)
        res.iter_content.assert_not_called()

    def test_falls_back_to_iter_content(self):
        """Responses without read1 are iterated with iter_content."""
        res = MagicMock(spec=["iter_content"])
        res.iter_content.return_value = iter([b"x", b"", b"y"])

        chunks = list(iter_body(res, url="https://r.example/a", deadline=time.monotonic() + 5, context="metadata"))

        assert chunks == [b"x", b"y"]
        res.iter_content.assert_called_once_with(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE)

    def test_exhausted_budget(self):
        """A chunk arriving after the deadline ends the read."""
        res = MagicMock()
        res.raw = FakeRaw([b"late"])

        with pytest.raises(RequestTimeout) as excinfo:
            list(iter_body(res, url="https://r.example/a", deadline=time.monotonic() - 1, context="artifact"))

        assert isinstance(excinfo.value, NetworkError)
        assert excinfo.value.url == "https://r.example/a"

    def test_read_timeout_mapped(self):
        """A socket read timeout mid-body is a RequestTimeout."""
        cause = read_timeout()
        res = MagicMock(spec=["iter_content"])
        res.iter_content.return_value = failing_chunks(cause, b"partial")

        with pytest.raises(RequestTimeout) as excinfo:
            list(iter_body(res, url="https://r.example/a", deadline=time.monotonic() + 5, context="artifact"))

        assert excinfo.value.cause is cause

    def test_other_read_errors_propagate(self):
        """Non-timeout failures are left for the caller to map."""
        res = MagicMock(spec=["iter_content"])
        res.iter_content.return_value = failing_chunks(requests.exceptions.ChunkedEncodingError("cut"))

        with pytest.raises(requests.exceptions.ChunkedEncodingError):
            list(iter_body(res, url="https://r.example/a", deadline=time.monotonic() + 5, context="artifact"))
