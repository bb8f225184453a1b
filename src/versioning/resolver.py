"""Select the best published version for a pessimistic constraint."""

import logging
from typing import Iterable, List, Tuple

import semantic_version

from common.logging_utils import extra_context, is_debug_enabled
from gateway.errors import MalformedVersion, NoMatchingVersion
from .constraint import PessimisticConstraint
from .models import PackageMetadata, Resolution

logger = logging.getLogger(__name__)

# (parsed, raw) pairs; raw keys are kept so the descriptor lookup is exact.
Candidate = Tuple[semantic_version.Version, str]


def parse_versions(keys: Iterable[str]) -> List[Candidate]:
    """Parse every version key.

    Raises:
        MalformedVersion: on the first key that is not strict semver.
    """
    parsed: List[Candidate] = []
    for raw in keys:
        try:
            parsed.append((semantic_version.Version(raw), raw))
        except (ValueError, TypeError) as exc:
            raise MalformedVersion(str(raw), str(exc)) from exc
    return parsed


def sort_descending(candidates: Iterable[Candidate]) -> List[Candidate]:
    """Newest first under semantic version precedence."""
    return sorted(candidates, key=lambda c: c[0], reverse=True)


def resolve(metadata: PackageMetadata, constraint: str) -> Resolution:
    """Pick the highest published version satisfying ``~> constraint``.

    Args:
        metadata: Every published version of the package.
        constraint: Caller-supplied version, read as a pessimistic bound.

    Returns:
        Resolution naming the chosen version and its tarball URL.

    Raises:
        MalformedVersion: A published version key is not valid semver.
        MalformedConstraint: ``constraint`` cannot be compiled.
        NoMatchingVersion: Nothing published satisfies the constraint.
    """
    ordered = sort_descending(parse_versions(metadata.versions.keys()))
    spec = PessimisticConstraint.parse(constraint)

    if is_debug_enabled(logger):
        logger.debug(
            "Resolving version",
            extra=extra_context(
                event="resolve",
                component="resolver",
                package=metadata.name,
                constraint=constraint,
                spec=str(spec.spec),
                candidate_count=len(ordered),
            ),
        )

    for version, raw in ordered:
        if spec.match(version):
            return Resolution(
                requested=constraint,
                version=raw,
                tarball=metadata.versions[raw].tarball,
                candidate_count=len(ordered),
            )

    considered = [raw for _, raw in ordered]
    logger.error(
        "unable to find acceptable version",
        extra=extra_context(
            event="resolve",
            outcome="no_match",
            package=metadata.name,
            constraint=constraint,
            versions=considered,
        ),
    )
    raise NoMatchingVersion(constraint, considered)


def resolve_tarball(metadata: PackageMetadata, constraint: str) -> str:
    """Artifact location of the best match for ``constraint``."""
    return resolve(metadata, constraint).tarball
