"""
Blackboard Connect adapter (cs322).

Connect sits behind UBC's CWL single sign-on, which takes a few hops before
the course content is reachable:

    1. GET the course content page          → stub page with a single link
    2. follow that link                     → page whose <noscript> holds the IdP URL
    3. follow the <noscript> href           → CWL login form
    4. submit username/password             → SAML relay form (auto-posted by JS)
    5. submit the relay form                → Connect sets its session cookie
    6. GET the course content page again    → ul#content_listContainer

The CWL form has shipped both "username"/"password" and
"j_username"/"j_password" field names; either is accepted. Any other missing
link, form or field stops the protocol with an AdapterProtocolError.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from aggregate.config import Credentials
from aggregate.errors import AdapterProtocolError
from sources.base import get_page, make_absolute, new_session, select_one, submit_form

log = logging.getLogger(__name__)

CS322_URL = (
    "https://connect.ubc.ca/webapps/blackboard/content/listContent.jsp"
    "?course_id=_82806_1&content_id=_3510707_1"
)
CS322_PAGE = (
    "https://connect.ubc.ca/webapps/blackboard/execute/content/blankPage"
    "?cmd=view&content_id=_3755785_1&course_id=_82806_1"
)

CONTENT_SELECTOR = "ul#content_listContainer"

_NOSCRIPT_HREF = re.compile(r'href="([^"]+)"')


def first_link(page: BeautifulSoup, url: str) -> str:
    a = page.find("a", href=True)
    if a is None:
        raise AdapterProtocolError(f"no redirect link on {url}")
    return urljoin(url, a["href"])


def noscript_link(page: BeautifulSoup, url: str) -> str:
    """The IdP hop hides its target inside <noscript> markup meant for browsers without JS."""
    for noscript in page.find_all("noscript"):
        match = _NOSCRIPT_HREF.search(noscript.decode_contents())
        if match:
            return urljoin(url, match.group(1).replace("&amp;", "&"))
    raise AdapterProtocolError(f"no <noscript> redirect link on {url}")


def fetch_content_list(
    credentials: Credentials,
    url: str = CS322_URL,
    timeout: float = 15.0,
    session: requests.Session | None = None,
) -> str:
    if not credentials:
        raise AdapterProtocolError("CWL credentials are not configured (CWL_USER / CWL_PASS)")

    own_session = session is None
    session = session or new_session()
    try:
        page, page_url = get_page(session, url, timeout=timeout)
        page, page_url = get_page(session, first_link(page, page_url), timeout=timeout)
        page, page_url = get_page(session, noscript_link(page, page_url), timeout=timeout)
        log.debug("Connect: at login page %s", page_url)

        page, page_url = submit_form(
            session,
            page,
            page_url,
            fields={
                ("username", "j_username"): credentials.user,
                ("password", "j_password"): credentials.password,
            },
            timeout=timeout,
        )
        page, page_url = submit_form(session, page, page_url, timeout=timeout)
        log.debug("Connect: SAML relay submitted, now at %s", page_url)

        page, page_url = get_page(session, url, timeout=timeout)
        content = select_one(page, CONTENT_SELECTOR, page_url)
        for img in content.find_all("img"):
            img.decompose()
        make_absolute(content, page_url)
        return str(content)
    finally:
        if own_session:
            session.close()


def blackboard_adapter(
    credentials: Credentials,
    url: str = CS322_URL,
    timeout: float = 15.0,
    session_factory: Callable[[], requests.Session] = new_session,
) -> Callable[[], str]:
    def fetch() -> str:
        with session_factory() as session:
            return fetch_content_list(credentials, url, timeout=timeout, session=session)

    return fetch
