"""
Service configuration.

Credentials, the listening port and the feed location live in one frozen
Config object that is built once at startup and passed to whatever needs it.
Values come from the environment, with a local .env file loaded first:

    CLASSLISTS_HOST             listen address            (default 0.0.0.0)
    CLASSLISTS_PORT             listen port               (default 80)
    CLASSLISTS_DEFAULT_COURSES  courses shown on /        (default cs304,cs311,cs313,cs340)
    CLASSLISTS_FEED_URL         assignment feed URL       (optional)
    CLASSLISTS_FEED_FORMAT      "json" or "csv"           (default json)
    CLASSLISTS_REQUEST_TIMEOUT  per-request timeout, secs (default 15)
    CLASSLISTS_LOG_DIR          rotating log directory    (default logs)
    PIAZZA_USER / PIAZZA_PASS   Piazza login
    CWL_USER / CWL_PASS         UBC CWL login (Blackboard Connect)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_COURSES = ("cs304", "cs311", "cs313", "cs340")
FEED_FORMATS = ("json", "csv")


@dataclass(frozen=True)
class Credentials:
    user: str = ""
    password: str = ""

    def __bool__(self) -> bool:
        return bool(self.user and self.password)


@dataclass(frozen=True)
class Config:
    host: str = "0.0.0.0"
    port: int = 80
    default_courses: tuple[str, ...] = DEFAULT_COURSES
    feed_url: str | None = None
    feed_format: str = "json"
    request_timeout: float = 15.0
    log_dir: Path = Path("logs")
    piazza: Credentials = Credentials()
    cwl: Credentials = Credentials()

    def __post_init__(self) -> None:
        if self.feed_format not in FEED_FORMATS:
            raise ValueError(f"feed_format must be one of {FEED_FORMATS}, got {self.feed_format!r}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, dotenv: bool = True) -> Config:
        """Build a Config from environment variables (and .env, unless disabled)."""
        if dotenv:
            load_dotenv()
        env = os.environ if environ is None else environ

        courses = env.get("CLASSLISTS_DEFAULT_COURSES")
        default_courses = (
            tuple(c.strip().lower() for c in courses.split(",") if c.strip())
            if courses
            else DEFAULT_COURSES
        )

        return cls(
            host=env.get("CLASSLISTS_HOST", "0.0.0.0"),
            port=int(env.get("CLASSLISTS_PORT", "80")),
            default_courses=default_courses,
            feed_url=env.get("CLASSLISTS_FEED_URL") or None,
            feed_format=env.get("CLASSLISTS_FEED_FORMAT", "json").strip().lower(),
            request_timeout=float(env.get("CLASSLISTS_REQUEST_TIMEOUT", "15")),
            log_dir=Path(env.get("CLASSLISTS_LOG_DIR", "logs")),
            piazza=Credentials(env.get("PIAZZA_USER", ""), env.get("PIAZZA_PASS", "")),
            cwl=Credentials(env.get("CWL_USER", ""), env.get("CWL_PASS", "")),
        )
