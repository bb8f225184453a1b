"""npm registry gateway: metadata lookup, version resolution and tarball download."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
import urllib.parse
from typing import IO, Iterable, Optional

import requests
import urllib3

from constants import Constants
from common.http_client import build_session, iter_body, open_stream, with_authorization
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from versioning.models import PackageMetadata, Resolution
from versioning.resolver import resolve as resolve_version
from .config import GatewayConfig, load_gateway_config
from .errors import DecodeError, NetworkError, ResponseReadError, StreamCopyError, TempStorageError

logger = logging.getLogger(__name__)

# Abbreviated install document; resolution only reads versions.*.dist.tarball,
# which it carries. Registries without it fall back to the full document.
METADATA_ACCEPT = "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8, */*"
ARTIFACT_ACCEPT = "application/octet-stream, */*"


class NpmGateway:
    """Resolve a package version against an npm registry and download its tarball.

    The configuration and transport session are fixed at construction. Each
    call is independent: nothing is cached and nothing is retried.
    """

    def __init__(
        self,
        config: GatewayConfig,
        session: Optional[requests.Session] = None,
        temp_dir: Optional[str] = None,
    ):
        """Initialize the gateway.

        Args:
            config: Registry location, credential and per-request timeout.
            session: Transport session to use; one is created (and owned) if omitted.
            temp_dir: Directory for downloaded artifacts; the system default if omitted.
        """
        self._config = config
        self._owns_session = session is None
        self._session = session if session is not None else build_session()
        self._temp_dir = temp_dir

    @classmethod
    def from_config_file(cls, path: str, **kwargs) -> "NpmGateway":
        """Build a gateway from the ``npm_gateway`` section of a YAML file."""
        return cls(load_gateway_config(path), **kwargs)

    @property
    def config(self) -> GatewayConfig:
        """Settings this gateway was built with."""
        return self._config

    def close(self) -> None:
        """Release the transport session if this gateway created it."""
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "NpmGateway":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def package_url(self, name: str) -> str:
        """Metadata URL for ``name``; the scope separator is percent-encoded."""
        return f"{self._config.registry_url}/{urllib.parse.quote(name, safe='@')}"

    def _headers(self, accept: str):
        return with_authorization({"Accept": accept}, self._config.authorization)

    def fetch_metadata(self, name: str) -> PackageMetadata:
        """Fetch the full version listing for ``name``.

        Raises:
            NetworkError: Transport failure, non-2xx response, or the time budget ran out.
            ResponseReadError: The body could not be read in full.
            DecodeError: The body is not a package document.
        """
        url = self.package_url(name)
        logger.debug("Fetching metadata for package: %s", name)
        deadline = time.monotonic() + self._config.timeout
        res = open_stream(
            self._session,
            url,
            headers=self._headers(METADATA_ACCEPT),
            timeout=self._config.timeout,
            context="metadata",
        )
        try:
            body = b"".join(iter_body(res, url=url, deadline=deadline, context="metadata"))
        except (requests.RequestException, urllib3.exceptions.HTTPError) as exc:
            logger.error(
                "Failed reading metadata response",
                extra=extra_context(event="http_error", outcome="read_error", target=safe_url(url)),
            )
            raise ResponseReadError(f"Failed reading metadata for '{name}': {exc}") from exc
        finally:
            res.close()

        try:
            document = json.loads(body)
        except ValueError as exc:
            logger.error(
                "Couldn't decode metadata JSON",
                extra=extra_context(event="parse", outcome="json_decode_error", target=safe_url(url)),
            )
            raise DecodeError(f"Metadata for '{name}' is not valid JSON: {exc}") from exc

        metadata = PackageMetadata.from_document(name, document)
        if is_debug_enabled(logger):
            logger.debug(
                "Parsed package metadata",
                extra=extra_context(
                    event="parse",
                    component="gateway",
                    outcome="success",
                    package=name,
                    version_count=len(metadata.versions),
                ),
            )
        return metadata

    def fetch_artifact(self, url: str) -> IO[bytes]:
        """Stream the tarball at ``url`` into a new ``.tar`` temporary file.

        The returned handle is open for reading and writing and positioned at
        the start. The caller owns it and the file behind it.

        Raises:
            NetworkError: Transport failure, non-2xx response, or the time budget ran out.
            TempStorageError: The temporary file could not be created.
            StreamCopyError: The body could not be copied in full.
        """
        safe_target = safe_url(url)
        deadline = time.monotonic() + self._config.timeout
        res = open_stream(
            self._session,
            url,
            headers=self._headers(ARTIFACT_ACCEPT),
            timeout=self._config.timeout,
            context="artifact",
        )
        try:
            try:
                handle = tempfile.NamedTemporaryFile(
                    mode="w+b",
                    suffix=Constants.ARTIFACT_SUFFIX,
                    dir=self._temp_dir,
                    delete=False,
                )
            except OSError as exc:
                logger.error(
                    "Unable to create temporary file: %s",
                    exc,
                    extra=extra_context(event="storage_error", target=safe_target),
                )
                raise TempStorageError(f"Unable to create temporary file: {exc}") from exc

            with Timer() as t:
                try:
                    size = _copy_stream(iter_body(res, url=url, deadline=deadline, context="artifact"), handle)
                except NetworkError:
                    _discard(handle)
                    raise
                except (requests.RequestException, urllib3.exceptions.HTTPError, OSError) as exc:
                    logger.error(
                        "Artifact download interrupted: %s",
                        exc,
                        extra=extra_context(event="stream_error", target=safe_target, path=handle.name),
                    )
                    _discard(handle)
                    raise StreamCopyError(f"Download of {safe_target} interrupted: {exc}") from exc
        finally:
            res.close()

        logger.info(
            "Downloaded %s (%d bytes) to %s",
            safe_target,
            size,
            handle.name,
            extra=extra_context(event="download", outcome="success", size=size, duration_ms=t.duration_ms()),
        )
        return handle

    def resolve(self, name: str, constraint: str) -> Resolution:
        """Fetch metadata for ``name`` and pick the best match for ``~> constraint``."""
        metadata = self.fetch_metadata(name)
        resolution = resolve_version(metadata, constraint)
        logger.info(
            "Resolved %s %s to %s",
            name,
            constraint,
            resolution.version,
            extra=extra_context(
                event="resolve",
                outcome="success",
                package=name,
                candidate_count=resolution.candidate_count,
            ),
        )
        return resolution

    def download_package(self, name: str, constraint: str) -> IO[bytes]:
        """Resolve ``name`` against ``~> constraint`` and download its tarball.

        Any failure propagates unchanged; no handle is returned on failure.
        """
        logger.debug("Downloading package %s %s", name, constraint)
        resolution = self.resolve(name, constraint)
        return self.fetch_artifact(resolution.tarball)


def _copy_stream(chunks: Iterable[bytes], handle: IO[bytes]) -> int:
    """Copy body chunks to ``handle`` and rewind it."""
    size = 0
    for chunk in chunks:
        handle.write(chunk)
        size += len(chunk)
    handle.flush()
    handle.seek(0)
    return size


def _discard(handle: IO[bytes]) -> None:
    """Close and remove a partially written artifact."""
    handle.close()
    try:
        os.unlink(handle.name)
    except OSError:
        logger.warning("Could not remove partial download %s", handle.name)
