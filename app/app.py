"""
FastAPI application: the Class Lists web service.

Run as a script:
    python app/app.py

Or as a module:
    uvicorn app.app:app --port 8080

Configuration comes from the environment / .env (see aggregate/config.py).

Endpoints:
    GET /                      HTML page for the configured default courses
    GET /{courses}             HTML page for a comma-separated course list, e.g. /cs304,CS313
    GET /api/courses/{courses} the same records as JSON

Every request runs one aggregation: all course adapters and the assignment feed
are fetched concurrently, nothing is cached between requests. Failures are
shown per course and never fail the request.

Logs each aggregation and wall-clock response time to stdout and logs/app.log
(rotating, 5 MB max, 3 backups).
"""

import asyncio
import logging
import logging.handlers
import sys
import time
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

# Ensure project root is on sys.path when running as a script (python app/app.py)
sys.path.insert(0, str(Path(__file__).parent.parent))

from aggregate.aggregator import Aggregator, build_aggregator
from aggregate.config import Config
from aggregate.models import CourseRecord, split_keys
from app.render import render_page

log = logging.getLogger("api")

_LOGGING_READY = False


def _setup_logging(log_dir: Path) -> None:
    global _LOGGING_READY
    if _LOGGING_READY:
        return

    fmt = logging.Formatter("%(asctime)s  %(levelname)s  %(message)s")

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(stream)

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        # Rotate at 5 MB, keep 3 backups
        rotating = logging.handlers.RotatingFileHandler(
            log_dir / "app.log", maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
    except OSError as exc:
        log.warning("File logging disabled, cannot write to %s: %s", log_dir, exc)
    else:
        rotating.setFormatter(fmt)
        root.addHandler(rotating)

    _LOGGING_READY = True


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

class AssignmentOut(BaseModel):
    name: str
    comment: str
    due: str
    late: str


class ErrorOut(BaseModel):
    kind: str
    message: str


class CourseOut(BaseModel):
    key: str
    source_url: str
    content: str
    assignments: list[AssignmentOut]
    errors: list[ErrorOut]


class CoursesResponse(BaseModel):
    courses: list[CourseOut]


def _course_out(record: CourseRecord) -> CourseOut:
    return CourseOut(
        key=record.key,
        source_url=record.source_url,
        content=record.content,
        assignments=[
            AssignmentOut(name=a.name, comment=a.comment, due=a.due, late=a.late)
            for a in record.assignments
        ],
        errors=[ErrorOut(kind=e.kind, message=str(e)) for e in record.errors],
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def _requested_keys(courses: str) -> list[str]:
    keys = split_keys(courses)
    if not keys:
        raise HTTPException(status_code=400, detail="No course keys given.")
    return keys


def create_app(config: Config | None = None, aggregator: Aggregator | None = None) -> FastAPI:
    """Build the app. Tests pass a Config and an Aggregator wired with fakes."""
    config = config or Config.from_env()
    aggregator = aggregator or build_aggregator(config)

    app = FastAPI(title="Class Lists")
    app.state.config = config
    app.state.aggregator = aggregator

    async def _aggregate(request: Request, keys: list[str]) -> list[CourseRecord]:
        t0 = time.perf_counter()
        records = await request.app.state.aggregator.aggregate(keys)
        elapsed = time.perf_counter() - t0
        log.info("%s  courses=%s  records=%d  %.2fs", request.url.path, ",".join(keys), len(records), elapsed)
        return records

    @app.get("/favicon.ico", include_in_schema=False)
    def favicon() -> Response:
        return Response(status_code=204)

    @app.get("/api/courses/{courses}", response_model=CoursesResponse)
    async def courses_json(courses: str, request: Request) -> CoursesResponse:
        records = await _aggregate(request, _requested_keys(courses))
        return CoursesResponse(courses=[_course_out(r) for r in records])

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        records = await _aggregate(request, list(request.app.state.config.default_courses))
        return HTMLResponse(render_page(records))

    @app.get("/{courses}", response_class=HTMLResponse)
    async def courses_page(courses: str, request: Request) -> HTMLResponse:
        records = await _aggregate(request, _requested_keys(courses))
        return HTMLResponse(render_page(records))

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _launch_server(app: FastAPI, config: Config) -> None:
    server_config = uvicorn.Config(app, host=config.host, port=config.port, reload=False)
    server = uvicorn.Server(server_config)

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        uvicorn.run(app, host=config.host, port=config.port, reload=False)
        return

    log.warning(
        "Detected an existing asyncio event loop; serving with create_task() instead of asyncio.run()."
    )
    asyncio.create_task(server.serve())


_config = Config.from_env()
_setup_logging(_config.log_dir)
app = create_app(_config)


if __name__ == "__main__":
    log.info("=== Class Lists — listening on http://%s:%d ===", _config.host, _config.port)
    _launch_server(app, _config)
