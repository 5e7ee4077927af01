"""
Assignment feed client.

The feed is one shared document mapping course keys to their assignments and
deadlines. It is fetched once per aggregation, independent of which courses
were requested. Courses in the feed that nobody asked for are ignored.

Two payload formats are understood:

  json  {"cs313": [{"name": "A1", "comment": "", "due": "2016-10-01", "late": ""}, ...], ...}
  csv   header row course,name,comment,due,late; one assignment per row
        (the shape of a published spreadsheet export)

Row / list order is preserved per course.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import requests

from aggregate.errors import FeedFetchError
from aggregate.models import Assignment, FeedSnapshot, normalize_key

log = logging.getLogger(__name__)

CSV_COLUMNS = ("course", "name", "comment", "due", "late")


class Feed(Protocol):
    def fetch(self) -> FeedSnapshot: ...


def _assignment(entry: Mapping[str, Any]) -> Assignment:
    return Assignment(
        name=str(entry.get("name") or ""),
        comment=str(entry.get("comment") or ""),
        due=str(entry.get("due") or ""),
        late=str(entry.get("late") or ""),
    )


def parse_json_feed(text: str) -> dict[str, list[Assignment]]:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise FeedFetchError(f"feed is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise FeedFetchError(f"feed must be a JSON object, got {type(data).__name__}")

    snapshot: dict[str, list[Assignment]] = {}
    for course, entries in data.items():
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise FeedFetchError(f"feed entry for {course!r} must be a list of objects")
        snapshot.setdefault(normalize_key(str(course)), []).extend(_assignment(e) for e in entries)
    return snapshot


def parse_csv_feed(text: str) -> dict[str, list[Assignment]]:
    reader = csv.DictReader(io.StringIO(text))
    header = [h.strip().lower() for h in (reader.fieldnames or [])]
    missing = [c for c in ("course", "name") if c not in header]
    if missing:
        raise FeedFetchError(f"feed CSV is missing column(s): {', '.join(missing)}")
    reader.fieldnames = header

    snapshot: dict[str, list[Assignment]] = {}
    for row in reader:
        course = normalize_key(row.get("course") or "")
        if not course:
            continue
        snapshot.setdefault(course, []).append(_assignment(row))
    return snapshot


PARSERS = {"json": parse_json_feed, "csv": parse_csv_feed}


class FeedClient:
    """Fetches the assignment feed over HTTP. One GET per fetch(), no retries."""

    def __init__(
        self,
        url: str,
        format: str = "json",
        timeout: float = 15.0,
        session: requests.Session | None = None,
    ):
        if format not in PARSERS:
            raise ValueError(f"unknown feed format {format!r}")
        self.url = url
        self.format = format
        self.timeout = timeout
        self.session = session

    def fetch(self) -> dict[str, list[Assignment]]:
        session = self.session or requests.Session()
        try:
            resp = session.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise FeedFetchError(f"could not fetch assignment feed {self.url}: {exc}") from exc
        finally:
            if self.session is None:
                session.close()

        snapshot = PARSERS[self.format](resp.text)
        log.info("Feed: %d courses, %d assignments.", len(snapshot), sum(len(v) for v in snapshot.values()))
        return snapshot


class StaticFeed:
    """An in-memory feed, used in tests. Without a feed URL the service runs with feed=None instead."""

    def __init__(self, snapshot: Mapping[str, Sequence[Assignment]] | None = None):
        self._snapshot = {normalize_key(k): list(v) for k, v in (snapshot or {}).items()}

    def fetch(self) -> dict[str, list[Assignment]]:
        return {k: list(v) for k, v in self._snapshot.items()}
