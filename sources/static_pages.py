"""
Adapters for course pages that are plain server-rendered HTML.

Each of these pages keeps its schedule in a <table>; the adapter grabs the
first table matching a CSS selector, makes its links absolute and returns the
table's outer HTML. No login, no JS.

Course pages (2016W1):
    cs304  http://www.ugrad.cs.ubc.ca/~cs304/2016W1/schedule.html       first <table>
    cs311  https://www.ugrad.cs.ubc.ca/~cs311/2016W1/_homework.php      <table rules=…>
    cs340  https://www.cs.ubc.ca/~schmidtm/Courses/340-F16/             first <table>
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import requests

from sources.base import get_page, make_absolute, new_session, select_one

log = logging.getLogger(__name__)

CS304_URL = "http://www.ugrad.cs.ubc.ca/~cs304/2016W1/schedule.html"
CS304_PAGE = "http://www.ugrad.cs.ubc.ca/~cs304/2016W1/"

CS311_URL = "https://www.ugrad.cs.ubc.ca/~cs311/2016W1/_homework.php"
CS311_PAGE = "http://www.ugrad.cs.ubc.ca/~cs311/2016W1/"

CS340_URL = "https://www.cs.ubc.ca/~schmidtm/Courses/340-F16/"


def fetch_table(
    url: str,
    selector: str = "table",
    timeout: float = 15.0,
    session: requests.Session | None = None,
) -> str:
    """Fetch url and return the first element matching selector, links made absolute."""
    own_session = session is None
    session = session or new_session()
    try:
        soup, final_url = get_page(session, url, timeout=timeout)
        table = select_one(soup, selector, url)
        make_absolute(table, final_url)
        return str(table)
    finally:
        if own_session:
            session.close()


def table_adapter(
    url: str,
    selector: str = "table",
    timeout: float = 15.0,
    session_factory: Callable[[], requests.Session] = new_session,
) -> Callable[[], str]:
    """Bind fetch_table to one page so it fits the zero-argument adapter contract."""

    def fetch() -> str:
        with session_factory() as session:
            return fetch_table(url, selector, timeout=timeout, session=session)

    fetch.__name__ = f"fetch_table[{selector}]"
    return fetch
