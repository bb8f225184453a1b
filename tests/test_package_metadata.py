"""Tests for building PackageMetadata from registry documents."""

import pytest

from gateway.errors import DecodeError
from versioning.models import PackageMetadata, VersionDescriptor


def test_from_document_extracts_tarballs():
    """Each version maps to its dist.tarball."""
    document = {
        "name": "left-pad",
        "dist-tags": {"latest": "1.3.0"},
        "versions": {
            "1.0.0": {"dist": {"tarball": "https://r.example/left-pad-1.0.0.tgz", "shasum": "abc"}},
            "1.3.0": {"dist": {"tarball": "https://r.example/left-pad-1.3.0.tgz"}},
        },
    }
    metadata = PackageMetadata.from_document("left-pad", document)
    assert metadata.name == "left-pad"
    assert metadata.versions == {
        "1.0.0": VersionDescriptor(tarball="https://r.example/left-pad-1.0.0.tgz"),
        "1.3.0": VersionDescriptor(tarball="https://r.example/left-pad-1.3.0.tgz"),
    }


def test_missing_versions_is_empty():
    """Unpublished packages have no versions key."""
    metadata = PackageMetadata.from_document("gone", {"name": "gone", "time": {"unpublished": {}}})
    assert metadata.versions == {}


@pytest.mark.parametrize(
    "document",
    [
        ["not", "an", "object"],
        "text",
        {"versions": ["1.0.0"]},
        {"versions": {"1.0.0": "https://r.example/x.tgz"}},
        {"versions": {"1.0.0": {"dist": {}}}},
        {"versions": {"1.0.0": {"dist": {"tarball": ""}}}},
        {"versions": {"1.0.0": {"dist": {"tarball": 42}}}},
    ],
)
def test_wrong_shapes_raise_decode_error(document):
    """Anything other than versions -> dist -> tarball is rejected."""
    with pytest.raises(DecodeError):
        PackageMetadata.from_document("pkg", document)
