import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from aggregate.errors import FeedFetchError
from aggregate.models import Assignment


class FakeTransport(BaseAdapter):
    """
    Serves canned pages to a requests.Session.

    pages maps "METHOD url" (or just "url" for GET) to a body string, a
    (status, body) tuple, or a list of those served in order (the last one
    repeats). Every PreparedRequest is kept in .requests for assertions.
    """

    def __init__(self, pages):
        super().__init__()
        self.pages = dict(pages)
        self.requests = []

    def _lookup(self, request):
        for key in (f"{request.method} {request.url}", request.url):
            if key in self.pages:
                entry = self.pages[key]
                if isinstance(entry, list):
                    return entry.pop(0) if len(entry) > 1 else entry[0]
                return entry
        return 404, f"no fake page for {request.method} {request.url}"

    def send(self, request, **kwargs):
        self.requests.append(request)
        entry = self._lookup(request)
        status, body = entry if isinstance(entry, tuple) else (200, entry)

        resp = requests.Response()
        resp.status_code = status
        resp._content = body.encode("utf-8")
        resp.encoding = "utf-8"
        resp.headers = CaseInsensitiveDict({"Content-Type": "text/html; charset=utf-8"})
        resp.url = request.url
        resp.request = request
        resp.reason = "OK" if status < 400 else "Error"
        return resp

    def close(self):
        pass


@pytest.fixture
def fake_session():
    """Factory: fake_session(pages) → (session_factory, transport)."""

    def make(pages):
        transport = FakeTransport(pages)

        def session_factory():
            session = requests.Session()
            session.mount("http://", transport)
            session.mount("https://", transport)
            return session

        return session_factory, transport

    return make


class CountingFeed:
    """A feed that returns a fixed snapshot and counts how often it was fetched."""

    def __init__(self, snapshot=None, error=None):
        self.snapshot = snapshot or {}
        self.error = error
        self.calls = 0

    def fetch(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.snapshot


@pytest.fixture
def feed_snapshot():
    return {
        "cs1": [Assignment("A1", "", "2020-01-01", "")],
        "cs2": [],
    }


@pytest.fixture
def failing_feed():
    return CountingFeed(error=FeedFetchError("feed host unreachable"))


@pytest.fixture
def make_feed():
    """CountingFeed(snapshot=None, error=None)."""
    return CountingFeed
