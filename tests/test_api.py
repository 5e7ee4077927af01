import pytest
from fastapi.testclient import TestClient

from aggregate.aggregator import Aggregator
from aggregate.config import Config
from aggregate.errors import AdapterFetchError
from aggregate.feed import StaticFeed
from aggregate.models import Assignment
from app.app import create_app
from sources.base import Registry, Source


def _broken():
    raise AdapterFetchError("GET https://www.cs.example.edu/~cs311/ failed: 503")


@pytest.fixture
def client():
    """App wired with in-memory sources and feed; no network."""
    registry = Registry([
        Source("cs304", "https://www.cs.example.edu/~cs304/", lambda: "<table><tr><td>Lab 1</td></tr></table>"),
        Source("cs311", "https://www.cs.example.edu/~cs311/", _broken),
    ])
    feed = StaticFeed({
        "cs304": [Assignment("Project", "milestone 1", "2016-10-01", "")],
        "cs311": [Assignment("HW1", "", "2016-09-23", "<late>")],
        "cs999": [Assignment("Feed only")],
    })
    config = Config(default_courses=("cs311", "cs304"))
    return TestClient(create_app(config, aggregator=Aggregator(registry, feed)))


class TestHtmlPages:
    """HTML rendering of aggregated courses."""

    def test_index_renders_default_courses_sorted(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        body = response.text
        assert "<h1>Class Lists</h1>" in body
        assert body.index("<h2>cs304") < body.index("<h2>cs311")

    def test_course_page_link_and_content(self, client):
        body = client.get("/cs304").text
        assert '<a href="https://www.cs.example.edu/~cs304/">Course Page</a>' in body
        assert "<td>Lab 1</td>" in body
        assert "<td>Project</td>" in body

    def test_errors_shown_per_course(self, client):
        body = client.get("/CS311,cs304").text
        assert '<p class="error">Error: GET https://www.cs.example.edu/~cs311/ failed: 503</p>' in body
        assert "<td>Lab 1</td>" in body

    def test_feed_text_escaped(self, client):
        body = client.get("/cs311").text
        assert "&lt;late&gt;" in body
        assert "<late>" not in body

    def test_feed_only_course(self, client):
        body = client.get("/cs999").text
        assert "<h2>cs999</h2>" in body
        assert "<td>Feed only</td>" in body
        assert "Error:" not in body

    def test_blank_course_list_rejected(self, client):
        response = client.get("/,")
        assert response.status_code == 400

    def test_favicon_does_not_aggregate(self, client):
        assert client.get("/favicon.ico").status_code == 204


class TestJsonApi:
    """GET /api/courses/{courses}."""

    def test_records_and_errors(self, client):
        response = client.get("/api/courses/cs311,CS304,cs999")
        assert response.status_code == 200
        courses = response.json()["courses"]

        assert [c["key"] for c in courses] == ["cs304", "cs311", "cs999"]

        cs304, cs311, cs999 = courses
        assert cs304["content"] == "<table><tr><td>Lab 1</td></tr></table>"
        assert cs304["errors"] == []
        assert cs304["assignments"] == [
            {"name": "Project", "comment": "milestone 1", "due": "2016-10-01", "late": ""}
        ]

        assert cs311["content"] == ""
        assert cs311["errors"][0]["kind"] == "AdapterFetchError"
        assert cs311["assignments"][0]["name"] == "HW1"

        assert cs999["source_url"] == ""
        assert cs999["errors"] == []

    def test_duplicates_kept(self, client):
        courses = client.get("/api/courses/cs304,cs304").json()["courses"]
        assert [c["key"] for c in courses] == ["cs304", "cs304"]

    def test_missing_feed_entry_reported(self, client):
        (course,) = client.get("/api/courses/cs000").json()["courses"]
        assert [e["kind"] for e in course["errors"]] == ["FeedEntryMissingError"]
