"""Pessimistic ("~>") version constraints.

``~> V`` accepts any version >= V reachable by incrementing only the
rightmost component written in V:

    ~> 1.2.3   >=1.2.3, <1.3.0
    ~> 1.2     >=1.2.0, <2.0.0
    ~> 1       >=1.0.0

Pre-release versions only match when the constraint names a pre-release
of the same major.minor.patch.
"""

import re
from typing import Optional

import semantic_version

from constants import Constants
from gateway.errors import MalformedConstraint

_NUM = r"(0|[1-9]\d*)"
_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_CONSTRAINT_RE = re.compile(
    rf"^v?{_NUM}(?:\.{_NUM})?(?:\.{_NUM})?(?:-({_IDENT}))?(?:\+({_IDENT}))?$"
)


class PessimisticConstraint:
    """Compiled ``~>`` constraint backed by a semantic_version range."""

    def __init__(self, raw: str, lower: semantic_version.Version,
                 upper: Optional[semantic_version.Version], precision: int):
        self.raw = raw
        self.lower = lower
        self.upper = upper
        self.precision = precision
        clauses = [f">={lower}"]
        if upper is not None:
            clauses.append(f"<{upper}")
        self.spec = semantic_version.SimpleSpec(",".join(clauses))

    @classmethod
    def parse(cls, text: str) -> "PessimisticConstraint":
        """Compile ``text`` (``"1.2"``, ``"v1.2.3"`` or ``"~> 1.2"``).

        Raises:
            MalformedConstraint: ``text`` is not a version with 1 to 3 components.
        """
        if not isinstance(text, str):
            raise MalformedConstraint(repr(text), "constraint must be a string")
        body = text.strip()
        if body.startswith(Constants.PESSIMISTIC_OPERATOR):
            body = body[len(Constants.PESSIMISTIC_OPERATOR):].strip()
        if not body:
            raise MalformedConstraint(text, "empty constraint")

        m = _CONSTRAINT_RE.match(body)
        if not m:
            raise MalformedConstraint(text, "expected MAJOR[.MINOR[.PATCH]][-PRERELEASE][+BUILD]")

        major, minor, patch, prerelease = m.group(1), m.group(2), m.group(3), m.group(4)
        precision = 1 + (minor is not None) + (patch is not None)

        # Build metadata has no precedence and is dropped from the bound.
        lower = semantic_version.Version(
            major=int(major),
            minor=int(minor or 0),
            patch=int(patch or 0),
            prerelease=tuple(prerelease.split(".")) if prerelease else (),
        )
        if precision == 3:
            upper = semantic_version.Version(major=lower.major, minor=lower.minor + 1, patch=0)
        elif precision == 2:
            upper = semantic_version.Version(major=lower.major + 1, minor=0, patch=0)
        else:
            upper = None
        return cls(text, lower, upper, precision)

    def match(self, version: semantic_version.Version) -> bool:
        """Return True when ``version`` satisfies the constraint."""
        if version.prerelease:
            if not self.lower.prerelease:
                return False
            if (version.major, version.minor, version.patch) != (
                self.lower.major, self.lower.minor, self.lower.patch
            ):
                return False
            return version >= self.lower
        return self.spec.match(version)

    def __contains__(self, version: semantic_version.Version) -> bool:
        return self.match(version)

    def __str__(self) -> str:
        return f"{Constants.PESSIMISTIC_OPERATOR} {self.lower}"

    def __repr__(self) -> str:
        return f"PessimisticConstraint({self.raw!r}, spec={str(self.spec)!r})"
