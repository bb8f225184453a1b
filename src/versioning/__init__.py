"""Version parsing and pessimistic constraint resolution."""

from .constraint import PessimisticConstraint
from .models import PackageMetadata, Resolution, VersionDescriptor
from .resolver import resolve, resolve_tarball

__all__ = [
    "PessimisticConstraint",
    "PackageMetadata",
    "Resolution",
    "VersionDescriptor",
    "resolve",
    "resolve_tarball",
]
