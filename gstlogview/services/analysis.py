import re
from collections import Counter
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Sequence, Tuple

from gstlogview.config import DEFAULT_PAGE_SIZE, INTERVAL_REGEX, MAX_PAGE_SIZE
from gstlogview.errors import InvalidInterval
from gstlogview.services.log_parser import Entry

INTERVAL = re.compile(INTERVAL_REGEX)

# microseconds per interval unit
INTERVAL_UNITS = {
    "us": 1,
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
}


# ------------------------------------------------------------------
# Pagination
# ------------------------------------------------------------------
@dataclass
class Page:
    entries: List[Entry]
    total: int
    page: int
    per_page: int
    total_pages: int


def paginate(entries: Sequence[Entry], page: int = 1, per_page: Optional[int] = None) -> Page:
    """
    Slice one 1-based page out of `entries`.
    page is clamped to >= 1, per_page to [1, MAX_PAGE_SIZE] (default DEFAULT_PAGE_SIZE).
    A page past the end is empty but still reports total/total_pages.
    """
    page = max(1, page)
    per_page = DEFAULT_PAGE_SIZE if per_page is None else min(max(1, per_page), MAX_PAGE_SIZE)
    total = len(entries)
    total_pages = (total + per_page - 1) // per_page
    start = (page - 1) * per_page
    end = min(total, start + per_page)
    return Page(
        entries=list(entries[start:end]) if start < total else [],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=total_pages,
    )


# ------------------------------------------------------------------
# Timeline
# ------------------------------------------------------------------
@dataclass
class Timeline:
    buckets: List[Tuple[int, int]]  # (bucket_start, count), ascending
    min_timestamp: int
    max_timestamp: int
    interval: int  # in `unit`
    unit: str  # "ms" or "us"


class Interval(NamedTuple):
    us: int  # width in microseconds
    unit: str  # suffix as written: us, ms, s or m


def parse_interval(text: str) -> Interval:
    """Parse '<n>(us|ms|s|m)'. Zero-width intervals are rejected."""
    m = INTERVAL.fullmatch(text or "")
    if not m:
        raise InvalidInterval(text)
    value = int(m.group(1)) * INTERVAL_UNITS[m.group(2)]
    if value <= 0:
        raise InvalidInterval(text)
    return Interval(us=value, unit=m.group(2))


def build_timeline(entries: Sequence[Entry], interval: Interval, use_microseconds: bool = False) -> Timeline:
    """
    Count entries per fixed-width bucket anchored at the earliest timestamp.

    Buckets are reported in microseconds when the interval was written in `us`
    or `use_microseconds` is set, otherwise in milliseconds. Empty buckets are
    omitted.
    """
    if interval.us <= 0:
        raise ValueError("interval must be positive")
    use_us = use_microseconds or interval.unit == "us"
    width = interval.us if use_us else interval.us // 1_000
    unit = "us" if use_us else "ms"

    if not entries:
        return Timeline(buckets=[], min_timestamp=0, max_timestamp=0, interval=width, unit=unit)

    stamps = [e.timestamp_in(use_us) for e in entries]
    lo, hi = min(stamps), max(stamps)
    counts = Counter(lo + ((ts - lo) // width) * width for ts in stamps)
    return Timeline(
        buckets=sorted(counts.items()),
        min_timestamp=lo,
        max_timestamp=hi,
        interval=width,
        unit=unit,
    )


# ------------------------------------------------------------------
# Filter options
# ------------------------------------------------------------------
@dataclass
class FilterOptions:
    categories: List[str] = field(default_factory=list)
    levels: List[str] = field(default_factory=list)
    pids: List[int] = field(default_factory=list)
    threads: List[str] = field(default_factory=list)
    objects: List[str] = field(default_factory=list)


def filter_options(entries: Sequence[Entry]) -> FilterOptions:
    """Distinct values present in the session, for populating filter pickers."""
    categories, levels, pids, threads, objects = set(), set(), set(), set(), set()
    for e in entries:
        categories.add(e.category)
        levels.add(e.level.value)
        pids.add(e.pid)
        threads.add(e.thread)
        if e.object is not None:
            objects.add(e.object)
    return FilterOptions(
        categories=sorted(categories),
        levels=sorted(levels),
        pids=sorted(pids),
        threads=sorted(threads),
        objects=sorted(objects),
    )
