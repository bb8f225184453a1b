"""Data models for package metadata and version resolution."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from gateway.errors import DecodeError


@dataclass(frozen=True)
class VersionDescriptor:
    """Registry record for one published version."""
    tarball: str


@dataclass(frozen=True)
class PackageMetadata:
    """Every published version of a package and its artifact location."""
    name: str
    versions: Dict[str, VersionDescriptor] = field(default_factory=dict)

    @classmethod
    def from_document(cls, name: str, document: Any) -> "PackageMetadata":
        """Build metadata from a decoded registry document.

        Expects ``{"versions": {"<version>": {"dist": {"tarball": "<url>"}}}}``.
        A document without ``versions`` describes a package with nothing
        published.

        Raises:
            DecodeError: The document does not have the expected shape.
        """
        if not isinstance(document, Mapping):
            raise DecodeError(f"Metadata for '{name}' is not a JSON object")

        raw_versions = document.get("versions")
        if raw_versions is None:
            return cls(name=name, versions={})
        if not isinstance(raw_versions, Mapping):
            raise DecodeError(f"Metadata for '{name}' has a non-object 'versions' field")

        versions: Dict[str, VersionDescriptor] = {}
        for key, info in raw_versions.items():
            dist = info.get("dist") if isinstance(info, Mapping) else None
            tarball = dist.get("tarball") if isinstance(dist, Mapping) else None
            if not isinstance(tarball, str) or not tarball:
                raise DecodeError(f"Version '{key}' of '{name}' has no dist.tarball")
            versions[key] = VersionDescriptor(tarball=tarball)
        return cls(name=name, versions=versions)


@dataclass(frozen=True)
class Resolution:
    """Resolution outcome: the chosen version and where to download it."""
    requested: str
    version: str
    tarball: str
    candidate_count: int
