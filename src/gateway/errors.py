"""Exception hierarchy for package resolution and retrieval.

Every per-request failure derives from :class:`GatewayError` so callers can
decide in one place whether to abort or retry. :class:`ConfigError` stands
apart: it signals a broken deployment and is raised only at construction.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence


class ConfigError(Exception):
    """Gateway configuration is missing or unusable."""


class GatewayError(Exception):
    """Base class for failures while resolving or fetching a package."""


class ResolutionError(GatewayError):
    """Base class for version resolution failures."""


class MalformedVersion(ResolutionError):
    """A published version key is not valid semantic version text."""

    def __init__(self, version: str, reason: Optional[str] = None):
        self.version = version
        self.reason = reason
        message = f"Invalid published version '{version}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MalformedConstraint(ResolutionError):
    """The requested version constraint cannot be compiled."""

    def __init__(self, constraint: str, reason: Optional[str] = None):
        self.constraint = constraint
        self.reason = reason
        message = f"Invalid version constraint '{constraint}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NoMatchingVersion(ResolutionError):
    """No published version satisfies the requested constraint."""

    def __init__(self, constraint: str, versions: Iterable[str]):
        self.constraint = constraint
        self.versions: Sequence[str] = list(versions)
        considered = ", ".join(self.versions) if self.versions else "<none>"
        super().__init__(
            f"Unable to find acceptable version for provided: {constraint} "
            f"(considered: {considered})"
        )


class NetworkError(GatewayError):
    """Transport failure talking to the registry or artifact host."""

    def __init__(self, message: str, url: Optional[str] = None, cause: Optional[BaseException] = None):
        self.url = url
        self.cause = cause
        super().__init__(message)


class RequestTimeout(NetworkError):
    """The per-request time budget ran out before the exchange completed."""


class RegistryHTTPError(NetworkError):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code} from {url}", url=url)


class ResponseReadError(GatewayError):
    """The response body could not be read in full."""


class DecodeError(GatewayError):
    """The metadata body is not a well-formed package document."""


class TempStorageError(GatewayError):
    """A temporary file for the artifact could not be created."""


class StreamCopyError(GatewayError):
    """Copying the artifact body into local storage was interrupted."""
