"""Request-thread enrichment.

Some application servers name their request threads
``ajp|025902.625|cid=<client>|rid=<request>|oip=<ip>|<url>``. For such threads
we attach a ``RequestInfo`` with the request start time resolved against the
dump date and an age relative to the newest request in the dump.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta

from jstack_report.config import ReportSettings
from jstack_report.models import Dump, RequestInfo, Thread

logger = logging.getLogger(__name__)

REQUEST_PREFIXES: frozenset[str] = frozenset({"ajp", "http"})
NAME_PART_PATTERN: re.Pattern[str] = re.compile(r"([^=]+)=([^=]+)")


def display_duration(seconds: int) -> str:
    """Format seconds as e.g. ``1h2m05s``; zero hours and minutes are left out."""
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    parts = [f"{hours}h" if hours else "", f"{minutes}m" if minutes else "", f"{secs:02d}s"]
    return "".join(parts)


def thread_date(
    dump_date: datetime | None, time_str: str | None, fluff_seconds: int = 5
) -> datetime | None:
    """Resolve an ``HHmmss.SSS`` time from a thread name to a full datetime.

    The name carries no date, so the dump date is used; times later than the dump
    itself (plus a little slack) must have started the day before.
    """
    if dump_date is None or not time_str:
        return None
    try:
        time_of_day = datetime.strptime(time_str, "%H%M%S.%f").time()
    except ValueError:
        logger.debug("Ignoring unparseable request time %r", time_str)
        return None

    date = datetime.combine(dump_date.date(), time_of_day)
    if date > dump_date + timedelta(seconds=fluff_seconds):
        return date - timedelta(days=1)
    return date


def _name_part(parts: list[str], token: str) -> str | None:
    for part in parts:
        match = NAME_PART_PATTERN.search(part)
        if match and match.group(1) == token:
            return match.group(2)
    return None


def parse_thread_name(name: str) -> dict[str, str | None] | None:
    """Split a ``|`` separated request thread name; None for ordinary names."""
    parts = name.split("|")
    if len(parts) < 2:
        return None
    return {
        "pre": parts[0],
        "time": parts[1],
        "cid": _name_part(parts, "cid"),
        "rid": _name_part(parts, "rid"),
        "oip": _name_part(parts, "oip"),
        "url": parts[-1],
    }


def decorate_request_thread(
    thread: Thread, dump_date: datetime | None, settings: ReportSettings
) -> Thread:
    parsed = parse_thread_name(thread.name)
    if parsed is None or parsed["pre"] not in REQUEST_PREFIXES:
        return thread

    time_str = parsed["time"] or ""
    thread.request = RequestInfo(
        time=time_str,
        date=thread_date(dump_date, time_str, settings.date_roll_fluff_seconds),
        cid=parsed["cid"],
        rid=parsed["rid"],
        oip=parsed["oip"],
        url=parsed["url"],
    )
    return thread


def request_date(thread: Thread) -> datetime | None:
    return thread.request.date if thread.request else None


def decorate_request_threads(dump: Dump, settings: ReportSettings | None = None) -> Dump:
    """Attach request info to request threads and age them against the newest one."""
    settings = settings or ReportSettings()
    for thread in dump.threads:
        decorate_request_thread(thread, dump.date, settings)

    dates = [date for thread in dump.threads if (date := request_date(thread)) is not None]
    if not dates:
        return dump

    newest = max(dates)
    for thread in dump.threads:
        date = request_date(thread)
        if thread.request is None or date is None:
            continue
        age = int((newest - date).total_seconds())
        thread.request.age_seconds = age
        thread.request.display_age = display_duration(age)

    logger.debug("Aged %d request threads against %s", len(dates), newest)
    return dump


def request_threads_by_age(dump: Dump) -> list[Thread]:
    """Request threads with a resolvable date, oldest request first."""
    dated = [thread for thread in dump.threads if request_date(thread) is not None]
    return sorted(dated, key=lambda thread: request_date(thread))  # type: ignore[arg-type, return-value]
