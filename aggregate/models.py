"""
Request-scoped data model shared by the feed client, the aggregator and the
renderer.

Every object here is created fresh for one aggregation and thrown away once
the response is written. Nothing is cached between requests.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from aggregate.errors import AggregationError


def normalize_key(key: str) -> str:
    """Canonicalise a course key: ' CS313 ' → 'cs313'."""
    return key.strip().lower()


def normalize_keys(keys: Iterable[str]) -> list[str]:
    """
    Lower-case and sort requested keys.

    Nothing is dropped: duplicates and blanks each get their own record.
    Blank path segments are filtered earlier, by split_keys.
    """
    return sorted(normalize_key(k) for k in keys)


def split_keys(raw: str) -> list[str]:
    """Split a comma-separated request segment like 'CS304,cs311' into keys."""
    return [part for part in raw.split(",") if part.strip()]


@dataclass(frozen=True)
class Assignment:
    name: str
    comment: str = ""
    due: str = ""
    late: str = ""


FeedSnapshot = Mapping[str, Sequence[Assignment]]


@dataclass
class SourceResult:
    """What one adapter call produced for one key."""

    key: str
    content: str = ""
    error: AggregationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class CourseRecord:
    """One merged course, the unit handed to the renderer."""

    key: str
    source_url: str = ""
    content: str = ""
    assignments: list[Assignment] = field(default_factory=list)
    errors: list[AggregationError] = field(default_factory=list)

    def add_error(self, error: AggregationError) -> None:
        self.errors.append(error)

    @property
    def error_messages(self) -> list[str]:
        return [str(e) for e in self.errors]
