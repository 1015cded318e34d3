"""RubyGems version ordering and requirement matching.

Only what is needed to match a lock file entry against a declaration:
versions compare the way `Gem::Version#<=>` does and requirements
support the `=`, `!=`, `>`, `<`, `>=`, `<=` and `~>` operators.
"""

import re
from functools import total_ordering
from typing import Union

_SEGMENT_RE = re.compile(r"[0-9]+|[a-z]+", re.IGNORECASE)
_VERSION_RE = re.compile(r"^\s*[0-9]+(?:\.[0-9a-zA-Z]+)*(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?\s*$")
_CONSTRAINT_RE = re.compile(r"^\s*(=|!=|>=|<=|>|<|~>)?\s*(\S+)\s*$")

Segment = Union[int, str]


def _drop_trailing_zeros(segments: list[Segment]) -> list[Segment]:
    while segments and segments[-1] == 0:
        segments = segments[:-1]
    return segments


@total_ordering
class GemVersion:
    """A RubyGems version such as `1.2.3`, `2.0.0.rc1` or `1.0.0-beta`."""

    def __init__(self, version: str) -> None:
        version = str(version).strip()
        if not version:
            version = "0"
        if not _VERSION_RE.match(version):
            raise ValueError(f"Malformed version number string {version}")
        self.version = version.replace("-", ".pre.")
        self.segments: list[Segment] = [
            int(s) if s.isdigit() else s.lower() for s in _SEGMENT_RE.findall(self.version)
        ]

    @property
    def prerelease(self) -> bool:
        return any(isinstance(s, str) for s in self.segments)

    def release(self) -> "GemVersion":
        """Return this version without any prerelease segments."""
        if not self.prerelease:
            return self
        numeric = []
        for segment in self.segments:
            if isinstance(segment, str):
                break
            numeric.append(str(segment))
        return GemVersion(".".join(numeric) or "0")

    def bump(self) -> "GemVersion":
        """Return the upper bound used by the pessimistic operator."""
        segments = []
        for segment in self.segments:
            if isinstance(segment, str):
                break
            segments.append(segment)
        if len(segments) > 1:
            segments.pop()
        segments[-1] = int(segments[-1]) + 1
        return GemVersion(".".join(str(s) for s in segments))

    def canonical_segments(self) -> list[Segment]:
        # Trailing zeros are insignificant on both sides of the first letter
        index = next((i for i, s in enumerate(self.segments) if isinstance(s, str)), len(self.segments))
        release, pre = self.segments[:index], self.segments[index:]
        return _drop_trailing_zeros(list(release)) + _drop_trailing_zeros(list(pre))

    def _compare(self, other: "GemVersion") -> int:
        lhs_segments = self.canonical_segments()
        rhs_segments = other.canonical_segments()
        for i in range(max(len(lhs_segments), len(rhs_segments))):
            lhs = lhs_segments[i] if i < len(lhs_segments) else 0
            rhs = rhs_segments[i] if i < len(rhs_segments) else 0
            if lhs == rhs:
                continue
            if isinstance(lhs, str) and isinstance(rhs, int):
                return -1
            if isinstance(lhs, int) and isinstance(rhs, str):
                return 1
            return -1 if lhs < rhs else 1  # type: ignore[operator]
        return 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GemVersion):
            return NotImplemented
        return self._compare(other) == 0

    def __lt__(self, other: "GemVersion") -> bool:
        return self._compare(other) < 0

    def __hash__(self) -> int:
        return hash(tuple(self.canonical_segments()))

    def __str__(self) -> str:
        return self.version

    def __repr__(self) -> str:
        return f"GemVersion({self.version!r})"


_OPERATORS = {
    "=": lambda v, r: v == r,
    "!=": lambda v, r: v != r,
    ">": lambda v, r: v > r,
    "<": lambda v, r: v < r,
    ">=": lambda v, r: v >= r,
    "<=": lambda v, r: v <= r,
    "~>": lambda v, r: v >= r and v.release() < r.bump(),
}


class GemRequirement:
    """A set of version constraints, all of which must hold."""

    def __init__(self, constraints: list[tuple[str, GemVersion]]) -> None:
        self.constraints = constraints or [(">=", GemVersion("0"))]

    @classmethod
    def parse(cls, requirement: str | None) -> "GemRequirement":
        """Parse a requirement string like `~> 1.2, >= 1.2.3`."""
        constraints: list[tuple[str, GemVersion]] = []
        for part in (requirement or "").split(","):
            if not part.strip():
                continue
            match = _CONSTRAINT_RE.match(part)
            if not match:
                raise ValueError(f"Illformed requirement {requirement!r}")
            operator = match.group(1) or "="
            constraints.append((operator, GemVersion(match.group(2))))
        return cls(constraints)

    def satisfied_by(self, version: GemVersion | str) -> bool:
        if not isinstance(version, GemVersion):
            version = GemVersion(version)
        return all(_OPERATORS[op](version, required) for op, required in self.constraints)

    def __str__(self) -> str:
        return ", ".join(f"{op} {version}" for op, version in self.constraints)

    def __repr__(self) -> str:
        return f"GemRequirement({str(self)!r})"
