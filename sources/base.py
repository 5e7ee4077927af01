"""
Source adapter contract and the scraping helpers shared by adapters.

An adapter is any zero-argument callable that returns a raw HTML fragment for
one course, or raises. It is registered together with the course key and the
canonical course page URL shown next to the content:

    registry = Registry([Source("cs340", "https://…/340-F16/", fetch_cs340)])

Adapters share nothing with each other: every fetch opens its own
requests.Session, so a login in one adapter can never leak into or block
another.

Adapters signal failures with:
    AdapterFetchError     network / HTTP / parse failure
    AdapterProtocolError  an expected form, field, marker or link is missing
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Awaitable, Union
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup, Tag

from aggregate.errors import AdapterFetchError, AdapterProtocolError, UnregisteredKeyError
from aggregate.models import normalize_key

log = logging.getLogger(__name__)

USER_AGENT = "ClassLists/1.0 (+course assignment aggregator)"

FetchFn = Callable[[], Union[str, Awaitable[str]]]

# Layout attributes that fight with our stylesheet.
LAYOUT_ATTRS = ("border", "cellspacing", "cellpadding", "width", "rules")


@dataclass(frozen=True)
class Source:
    key: str
    url: str
    fetch: FetchFn

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", normalize_key(self.key))


class Registry(Mapping[str, Source]):
    """Course key → Source. Keys are normalized on the way in and on lookup."""

    def __init__(self, sources: Iterable[Source] = ()):
        self._sources: dict[str, Source] = {}
        for source in sources:
            self.register(source)

    def register(self, source: Source) -> None:
        if source.key in self._sources:
            raise ValueError(f"adapter already registered for {source.key!r}")
        self._sources[source.key] = source

    def __getitem__(self, key: str) -> Source:
        try:
            return self._sources[normalize_key(key)]
        except KeyError:
            raise UnregisteredKeyError(f"no adapter registered for {key!r}", key=key) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------

def new_session() -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = USER_AGENT
    return session


def get_page(session: requests.Session, url: str, timeout: float = 15.0) -> tuple[BeautifulSoup, str]:
    """GET url and parse it. Returns (soup, final_url) so relative links resolve after redirects."""
    try:
        resp = session.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise AdapterFetchError(f"GET {url} failed: {exc}") from exc
    return BeautifulSoup(resp.text, "html.parser"), resp.url or url


def select_one(soup: BeautifulSoup | Tag, selector: str, url: str) -> Tag:
    """Like soup.select_one, but a missing element is a protocol error."""
    found = soup.select_one(selector)
    if found is None:
        raise AdapterProtocolError(f"no element matching {selector!r} on {url}")
    return found


# ---------------------------------------------------------------------------
# Fragment clean-up
# ---------------------------------------------------------------------------

def make_absolute(fragment: Tag, base_url: str) -> Tag:
    """
    Resolve every <a href> in fragment against base_url and strip legacy
    table layout attributes from the fragment and any nested tables.
    """
    links = fragment.find_all("a", href=True)
    if fragment.name == "a" and fragment.get("href"):
        links.insert(0, fragment)
    for a in links:
        try:
            a["href"] = urljoin(base_url, a["href"].strip())
        except ValueError as exc:
            log.warning("Could not resolve href %r against %s: %s", a["href"], base_url, exc)

    tables = fragment.find_all("table")
    for tag in [fragment, *tables]:
        for attr in LAYOUT_ATTRS:
            if attr in tag.attrs:
                del tag[attr]
    return fragment


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------

def _form_values(form: Tag) -> dict[str, str]:
    """Default submission values: every named input that a browser would send."""
    values: dict[str, str] = {}
    for field in form.find_all(["input", "textarea", "select"]):
        name = field.get("name")
        if not name:
            continue
        if field.name == "input":
            kind = (field.get("type") or "text").lower()
            if kind in ("submit", "button", "image", "reset", "file"):
                continue
            if kind in ("checkbox", "radio") and not field.has_attr("checked"):
                continue
            values[name] = field.get("value", "on" if kind in ("checkbox", "radio") else "")
        elif field.name == "textarea":
            values[name] = field.get_text()
        else:
            option = field.find("option", selected=True) or field.find("option")
            values[name] = option.get("value", option.get_text()) if option else ""
    return values


def submit_form(
    session: requests.Session,
    page: BeautifulSoup,
    page_url: str,
    selector: str = "form",
    fields: Mapping[Union[str, tuple[str, ...]], Any] | None = None,
    timeout: float = 15.0,
) -> tuple[BeautifulSoup, str]:
    """
    Fill in and submit the form matching selector on page.

    fields maps a value to a field name, or to a tuple of alternative names
    that are tried in order (login forms rename "username" to "j_username"
    between deployments). A field that matches none of its names raises
    AdapterProtocolError instead of submitting an incomplete form.
    """
    form = select_one(page, selector, page_url)
    values = _form_values(form)
    present = {f.get("name") for f in form.find_all(["input", "textarea", "select"]) if f.get("name")}

    for names, value in (fields or {}).items():
        candidates = (names,) if isinstance(names, str) else tuple(names)
        name = next((n for n in candidates if n in present), None)
        if name is None:
            raise AdapterProtocolError(
                f"form {selector!r} on {page_url} has no field named {' or '.join(candidates)}"
            )
        values[name] = value

    action = urljoin(page_url, form.get("action") or page_url)
    method = (form.get("method") or "get").lower()
    log.debug("Submitting %s %s (%d fields)", method.upper(), action, len(values))
    try:
        if method == "post":
            resp = session.post(action, data=values, timeout=timeout)
        else:
            resp = session.get(action, params=values, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise AdapterFetchError(f"submitting form to {action} failed: {exc}") from exc
    return BeautifulSoup(resp.text, "html.parser"), resp.url or action
