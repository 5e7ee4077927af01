"""
Piazza "resources" adapter (cs313).

Piazza renders the course resources page client-side from a JSON array inlined
in a <script> tag:

    this.resource_data        = [{"content": "https://…", "subject": "Reading Sep 8",
                                  "created": "2016-09-06T20:32:57Z", "id": "isrxno834nx6x2",
                                  "config": {"resource_type": "link", "section": "general",
                                             "date": ""}}, …];

Steps:
    1. GET the login page and submit form#login-form (email, password)
    2. GET the course resources page with the now-authenticated session
    3. cut the JSON out of the script tag and keep the "homework" section
    4. render the entries as an Assignment / Out / Due table

A missing marker is an AdapterProtocolError, never an empty table, so a
Piazza markup change shows up as an error instead of as "no homework".
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from html import escape
from typing import Any

import requests
from bs4 import BeautifulSoup

from aggregate.config import Credentials
from aggregate.errors import AdapterFetchError, AdapterProtocolError
from sources.base import get_page, new_session, submit_form

log = logging.getLogger(__name__)

LOGIN_URL = "https://piazza.com/account/login"
CS313_URL = "https://piazza.com/ubc.ca/winterterm12016/cpsc313/resources"
CS313_PAGE = "https://piazza.com/class/isrvn2xyq3t69a"

RESOURCE_MARKER = "this.resource_data        = "
HOMEWORK_SECTION = "homework"


def extract_resource_data(page: BeautifulSoup, url: str = CS313_URL) -> list[dict[str, Any]]:
    """Return the parsed resource_data array embedded in page."""
    for script in page.find_all("script"):
        text = script.string or ""
        _, marker, rest = text.partition(RESOURCE_MARKER)
        if not marker:
            continue
        body = rest.split(";\n", 1)[0].strip().rstrip(";")
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise AdapterFetchError(f"resource_data on {url} is not valid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise AdapterFetchError(f"resource_data on {url} is a {type(data).__name__}, expected a list")
        return data
    raise AdapterProtocolError(f"no resource_data marker in any <script> on {url}")


def render_homework(resources: list[dict[str, Any]]) -> str:
    rows = []
    for resource in resources:
        config = resource.get("config") or {}
        if config.get("section") != HOMEWORK_SECTION:
            continue
        rows.append(
            "<tr>\n"
            f'<td><a href="{escape(str(resource.get("content", "")))}">{escape(str(resource.get("subject", "")))}</a></td>\n'
            f"<td>{escape(str(resource.get('created', '')))}</td>\n"
            f"<td>{escape(str(config.get('date', '')))}</td>\n"
            "</tr>"
        )
    return (
        "<table>\n<thead>\n<tr>\n<th>Assignment</th>\n<th>Out</th>\n<th>Due</th>\n</tr>\n</thead>\n<tbody>\n"
        + "\n".join(rows)
        + "\n</tbody></table>"
    )


def fetch_resources(
    credentials: Credentials,
    url: str = CS313_URL,
    timeout: float = 15.0,
    session: requests.Session | None = None,
) -> str:
    if not credentials:
        raise AdapterProtocolError("Piazza credentials are not configured (PIAZZA_USER / PIAZZA_PASS)")

    own_session = session is None
    session = session or new_session()
    try:
        login_page, login_url = get_page(session, LOGIN_URL, timeout=timeout)
        submit_form(
            session,
            login_page,
            login_url,
            selector="form#login-form",
            fields={"email": credentials.user, "password": credentials.password},
            timeout=timeout,
        )
        log.debug("Piazza: logged in as %s", credentials.user)

        page, final_url = get_page(session, url, timeout=timeout)
        return render_homework(extract_resource_data(page, final_url))
    finally:
        if own_session:
            session.close()


def piazza_adapter(
    credentials: Credentials,
    url: str = CS313_URL,
    timeout: float = 15.0,
    session_factory: Callable[[], requests.Session] = new_session,
) -> Callable[[], str]:
    def fetch() -> str:
        with session_factory() as session:
            return fetch_resources(credentials, url, timeout=timeout, session=session)

    return fetch
