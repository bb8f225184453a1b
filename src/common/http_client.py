"""Shared HTTP helpers used by the registry gateway.

Encapsulates request construction and transport error mapping so the
gateway never deals with raw ``requests`` exceptions. Transport failures
are wrapped in ``NetworkError`` and propagated; nothing here exits the
process or retries.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Iterator, Mapping, Optional, Dict

import requests
import urllib3

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from gateway.errors import NetworkError, RegistryHTTPError, RequestTimeout

logger = logging.getLogger(__name__)


def build_session() -> requests.Session:
    """Create the transport session owned by a gateway instance."""
    session = requests.Session()
    session.headers.update({"User-Agent": Constants.USER_AGENT})
    return session


def with_authorization(headers: Optional[Mapping[str, str]], credential: str) -> Dict[str, str]:
    """Return a copy of ``headers`` carrying a bearer Authorization header.

    The input mapping is left untouched.
    """
    result = dict(headers or {})
    result["Authorization"] = f"Bearer {credential}"
    return result


def open_stream(
    session: requests.Session,
    url: str,
    *,
    headers: Mapping[str, str],
    timeout: float,
    context: str,
) -> requests.Response:
    """Perform a streamed GET and return the open response.

    The caller owns the response and must close it. Non-2xx responses are
    closed here and reported as ``RegistryHTTPError``.

    Args:
        session: Transport session to send the request on.
        url: Fully qualified target URL.
        headers: Request headers, already authenticated.
        timeout: Per-request timeout in seconds.
        context: Human-readable source tag for logs (e.g., "metadata", "artifact").
    """
    safe_target = safe_url(url)
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context,
                ),
            )
        try:
            res = session.get(url, headers=dict(headers), timeout=timeout, stream=True)
        except requests.Timeout as exc:
            logger.error(
                "%s request timed out after %s seconds",
                context,
                timeout,
                extra=extra_context(event="http_error", outcome="timeout", target=safe_target),
            )
            raise RequestTimeout(
                f"{context} request to {safe_target} timed out after {timeout} seconds",
                url=url,
                cause=exc,
            ) from exc
        except requests.RequestException as exc:  # includes ConnectionError
            logger.error(
                "%s connection error: %s",
                context,
                exc,
                extra=extra_context(event="http_error", outcome="exception", target=safe_target),
            )
            raise NetworkError(
                f"{context} request to {safe_target} failed: {exc}",
                url=url,
                cause=exc,
            ) from exc

    if not 200 <= res.status_code < 300:
        logger.warning(
            "HTTP non-2xx received",
            extra=extra_context(
                event="http_response",
                outcome="non_2xx",
                status_code=res.status_code,
                duration_ms=t.duration_ms(),
                target=safe_target,
                context=context,
            ),
        )
        res.close()
        raise RegistryHTTPError(res.status_code, safe_target)

    if is_debug_enabled(logger):
        logger.debug(
            "HTTP response ok",
            extra=extra_context(
                event="http_response",
                component="http_client",
                action="GET",
                outcome="success",
                status_code=res.status_code,
                duration_ms=t.duration_ms(),
                target=safe_target,
                context=context,
            ),
        )
    return res


def is_timeout(exc: BaseException) -> bool:
    """True for read/connect timeouts, including ones requests re-wraps as ConnectionError."""
    if isinstance(exc, (requests.Timeout, urllib3.exceptions.TimeoutError)):
        return True
    if isinstance(exc, requests.ConnectionError):
        return any(isinstance(arg, urllib3.exceptions.TimeoutError) for arg in exc.args)
    return False


def _read1_chunks(read1: Callable[..., bytes], chunk_size: int) -> Iterator[bytes]:
    while True:
        chunk = read1(chunk_size, decode_content=True)
        if not chunk:
            return
        yield chunk


def iter_body(
    res: requests.Response,
    *,
    url: str,
    deadline: float,
    context: str,
    chunk_size: int = Constants.DOWNLOAD_CHUNK_SIZE,
) -> Iterator[bytes]:
    """Yield the response body chunk by chunk within a monotonic ``deadline``.

    ``read1`` returns after a single socket read, so a server trickling bytes
    cannot hold one chunk open past the deadline; transports without it fall
    back to ``iter_content``. Timeouts and an exhausted budget raise
    ``RequestTimeout``; other read failures propagate for the caller to map.
    """
    read1 = getattr(getattr(res, "raw", None), "read1", None)
    chunks = _read1_chunks(read1, chunk_size) if callable(read1) else res.iter_content(chunk_size=chunk_size)
    safe_target = safe_url(url)
    try:
        for chunk in chunks:
            if time.monotonic() > deadline:
                raise RequestTimeout(f"{context} request to {safe_target} exceeded its time budget", url=url)
            if chunk:
                yield chunk
        if time.monotonic() > deadline:
            raise RequestTimeout(f"{context} request to {safe_target} exceeded its time budget", url=url)
    except (requests.RequestException, urllib3.exceptions.HTTPError) as exc:
        if not is_timeout(exc):
            raise
        logger.error(
            "%s read timed out",
            context,
            extra=extra_context(event="http_error", outcome="timeout", target=safe_target),
        )
        raise RequestTimeout(f"{context} request to {safe_target} timed out: {exc}", url=url, cause=exc) from exc
