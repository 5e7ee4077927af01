"""
The course registry the service runs with.

Keys are course codes as used in request paths (/cs304,cs313). The URL next to
each adapter is the human-facing course page linked from the rendered heading,
which is not always the page the adapter scrapes.
"""

from __future__ import annotations

from aggregate.config import Config
from sources.base import Registry, Source
from sources.blackboard import CS322_PAGE, CS322_URL, blackboard_adapter
from sources.piazza import CS313_PAGE, CS313_URL, piazza_adapter
from sources.static_pages import CS304_PAGE, CS304_URL, CS311_PAGE, CS311_URL, CS340_URL, table_adapter


def default_registry(config: Config) -> Registry:
    timeout = config.request_timeout
    return Registry([
        Source("cs304", CS304_PAGE, table_adapter(CS304_URL, "table", timeout=timeout)),
        Source("cs311", CS311_PAGE, table_adapter(CS311_URL, "table[rules]", timeout=timeout)),
        Source("cs313", CS313_PAGE, piazza_adapter(config.piazza, CS313_URL, timeout=timeout)),
        Source("cs322", CS322_PAGE, blackboard_adapter(config.cwl, CS322_URL, timeout=timeout)),
        Source("cs340", CS340_URL, table_adapter(CS340_URL, "table", timeout=timeout)),
    ])
