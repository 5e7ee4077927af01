"""
HTML rendering for aggregated course records.

One page: the Solarized-dark chrome, an <h1>, then per course an <h2> with a
link to the course page, one "Error:" paragraph per recorded error, the
sanitized scraped content and (when the feed had any) an assignments table.

Scraped content has already been sanitized by the aggregator; everything else
(keys, URLs, feed text, error messages) is escaped here.
"""

from __future__ import annotations

from collections.abc import Iterable
from html import escape

from aggregate.models import Assignment, CourseRecord

STYLESHEET = """<!doctype html>
<meta charset="utf-8">
<title>Class Lists</title>
<link href="https://fonts.googleapis.com/css?family=Roboto|Roboto+Mono" rel="stylesheet">
<style>
html, body { background-color: #002b36; color: #93a1a1; font-family: "Roboto", sans-serif; }
th, table, td {
  text-align: left;
  border: 1px solid #93a1a1;
  border-collapse: collapse;
  padding: 5px;
}
table { width: 100% !important; }
table table { background: #073642; }
th, caption { background: #002b36; }
b, i, u, strong { color: #859900; }
a { color: #2aa198; }
a:link { color: #268bd2; }
a:visited { color: #6c71c4; }
a:hover { color: #b58900; background-color: #073642; }
h1, h2, h3, h4, h5, h6 {
  background-color: #073642;
  border-radius: 5px;
  font-family: "Roboto Mono", monospace;
}
h1, h2 { color: #859900; }
h3, h4 { color: #b58900; }
h2 small a { font-size: 0.6em; }
p.error { color: #dc322f; }
img, svg { opacity: .75; }
.reading  { color: #088A29; }
.homework { color: #FF6600; }
.project  { color: #3333FF; }
.special  { color: #CC0033; }
.tutorial { color: #990099; }
.peerwise { color: #E67E22; }
</style>
"""


def render_assignments(assignments: Iterable[Assignment]) -> str:
    rows = [
        "<tr>"
        f"<td>{escape(a.name)}</td>"
        f"<td>{escape(a.comment)}</td>"
        f"<td>{escape(a.due)}</td>"
        f"<td>{escape(a.late)}</td>"
        "</tr>"
        for a in assignments
    ]
    if not rows:
        return ""
    return (
        '<table class="assignments">'
        "<thead><tr><th>Assignment</th><th>Comment</th><th>Due</th><th>Late</th></tr></thead>"
        "<tbody>" + "".join(rows) + "</tbody></table>"
    )


def render_record(record: CourseRecord) -> str:
    """One course as an HTML fragment."""
    parts = [f"<h2>{escape(record.key)}"]
    if record.source_url:
        parts.append(f' <small><a href="{escape(record.source_url)}">Course Page</a></small>')
    parts.append("</h2>")

    for error in record.errors:
        parts.append(f'<p class="error">Error: {escape(str(error))}</p>')

    parts.append(record.content)
    parts.append(render_assignments(record.assignments))
    return "".join(parts)


def render_page(records: Iterable[CourseRecord], title: str = "Class Lists") -> str:
    body = "".join(render_record(r) for r in records)
    return f"{STYLESHEET}<h1>{escape(title)}</h1>{body}"
