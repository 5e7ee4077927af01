"""
Concurrent fetch-and-merge engine.

For one request:

    feed task    ──────────────── resolves once ────────────┐
    course task  adapter → sanitize ── await feed ── merge ─┤── gather → records (sorted by key)
    course task  (no adapter) ──────── await feed ── merge ─┘

  - one asyncio task fetches the assignment feed; it starts before any course
    task and is awaited by every one of them, so no course ever sees a
    half-built snapshot
  - one task per requested key runs that key's adapter (blocking adapters in a
    worker thread), then waits on the feed task and copies its assignments
  - gather() returns results in submission order, and submission order is the
    sorted key order, so output never depends on which fetch finished first

Adapter and feed failures are recorded on the affected records and never abort
the request. Nothing is retried.

Public API:
    Aggregator(registry, feed, sanitizer=sanitize)   feed=None: no assignment feed
    await Aggregator.aggregate(keys) → list[CourseRecord]
    Aggregator.aggregate_sync(keys)  → list[CourseRecord]
    build_aggregator(config)         → Aggregator wired with the real sources
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from aggregate.config import Config
from aggregate.errors import (
    AdapterFetchError,
    AdapterProtocolError,
    FeedEntryMissingError,
    FeedFetchError,
)
from aggregate.feed import Feed, FeedClient
from aggregate.models import CourseRecord, FeedSnapshot, SourceResult, normalize_keys
from aggregate.sanitize import sanitize
from sources.base import Source
from sources.registry import default_registry

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedResolution:
    """The settled feed: a read-only snapshot, plus the error if the fetch failed."""

    snapshot: FeedSnapshot = field(default_factory=lambda: MappingProxyType({}))
    error: FeedFetchError | None = None


async def _call(fn: Callable[[], Any]) -> Any:
    if inspect.iscoroutinefunction(fn):
        return await fn()
    result = await asyncio.to_thread(fn)
    # partials of async functions and objects with an async __call__
    if inspect.isawaitable(result):
        result = await result
    return result


class Aggregator:
    def __init__(
        self,
        registry: Mapping[str, Source],
        feed: Feed | None,
        sanitizer: Callable[[str], str] = sanitize,
    ):
        self.registry = registry
        self.feed = feed
        self.sanitizer = sanitizer

    async def aggregate(self, keys: Iterable[str]) -> list[CourseRecord]:
        """Build one CourseRecord per requested key, sorted by normalized key."""
        t0 = time.perf_counter()
        normalized = normalize_keys(keys)

        feed_task = asyncio.create_task(self._resolve_feed())
        course_tasks = [asyncio.create_task(self._build_record(key, feed_task)) for key in normalized]
        records = list(await asyncio.gather(*course_tasks))
        # Settles the feed task even when no keys were requested.
        await feed_task

        failed = sum(1 for r in records if r.errors)
        log.info(
            "aggregate keys=%s  records=%d  with_errors=%d  %.2fs",
            ",".join(normalized), len(records), failed, time.perf_counter() - t0,
        )
        return records

    def aggregate_sync(self, keys: Iterable[str]) -> list[CourseRecord]:
        """Run aggregate() on a fresh event loop (scripts, tests)."""
        return asyncio.run(self.aggregate(keys))

    # -----------------------------------------------------------------------
    # Tasks
    # -----------------------------------------------------------------------

    async def _resolve_feed(self) -> FeedResolution:
        if self.feed is None:
            return FeedResolution()
        try:
            snapshot = await _call(self.feed.fetch)
        except FeedFetchError as exc:
            log.warning("Assignment feed unavailable: %s", exc)
            return FeedResolution(error=exc)
        except Exception as exc:
            log.exception("Assignment feed failed unexpectedly")
            error = FeedFetchError(f"assignment feed failed: {type(exc).__name__}: {exc}")
            error.__cause__ = exc
            return FeedResolution(error=error)
        return FeedResolution(snapshot=MappingProxyType(dict(snapshot)))

    async def _build_record(self, key: str, feed_task: asyncio.Task[FeedResolution]) -> CourseRecord:
        record = CourseRecord(key=key)

        try:
            source = self.registry[key]
        except KeyError:
            log.debug("%s: no adapter registered, feed only", key)
            source = None

        if source is not None:
            record.source_url = source.url
            result = await self._run_adapter(key, source)
            if result.ok:
                record.content = result.content
            else:
                record.add_error(result.error)

        feed = await feed_task

        if feed.error is not None:
            record.add_error(feed.error)
        elif key in feed.snapshot:
            record.assignments = list(feed.snapshot[key])
        elif self.feed is not None:
            record.add_error(FeedEntryMissingError(f"no assignments listed for {key} in the feed", key=key))
        return record

    async def _run_adapter(self, key: str, source: Source) -> SourceResult:
        try:
            content = self.sanitizer(await _call(source.fetch) or "")
        except (AdapterFetchError, AdapterProtocolError) as exc:
            error = exc
        except Exception as exc:
            error = AdapterFetchError(f"{type(exc).__name__}: {exc}", key=key)
            error.__cause__ = exc
        else:
            return SourceResult(key=key, content=content)

        if error.key is None:
            error.key = key
        log.warning("%s: adapter failed: %s", key, error)
        return SourceResult(key=key, error=error)


def build_aggregator(config: Config) -> Aggregator:
    """Wire the production registry and feed described by config."""
    feed: Feed | None = None
    if config.feed_url:
        feed = FeedClient(config.feed_url, format=config.feed_format, timeout=config.request_timeout)
    else:
        log.info("No CLASSLISTS_FEED_URL configured; courses will have no assignments.")
    return Aggregator(default_registry(config), feed)
