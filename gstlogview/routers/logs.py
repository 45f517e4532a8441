import logging
import time
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from gstlogview.config import DEFAULT_INTERVAL, DEFAULT_PAGE_SIZE
from gstlogview.models import FilterOptionsOut, LogPage, TimelineOut
from gstlogview.services import analysis
from gstlogview.services.filters import FilterSpec, filter_entries
from gstlogview.services.formatter import format_entry
from gstlogview.services.log_parser import U32_MAX
from gstlogview.store import sessions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["logs"])


def filter_spec(
    level: Optional[str] = Query(None, description="Level name, e.g. DEBUG"),
    categories: List[str] = Query([], description="Repeatable; any of these categories"),
    message_regex: Optional[str] = Query(None),
    function_regex: Optional[str] = Query(None),
    pid: Optional[int] = Query(None, ge=0, le=U32_MAX),
    thread: Optional[str] = Query(None),
    object_: Optional[str] = Query(None, alias="object"),
    min_timestamp: Optional[int] = Query(None, ge=0, description="Inclusive, in ms (or us)"),
    max_timestamp: Optional[int] = Query(None, ge=0, description="Inclusive, in ms (or us)"),
    use_microseconds: bool = Query(False, description="Timestamp bounds are in microseconds"),
) -> FilterSpec:
    return FilterSpec(
        level=level,
        categories=categories,
        message_regex=message_regex,
        function_regex=function_regex,
        pid=pid,
        thread=thread,
        object=object_,
        min_timestamp=min_timestamp,
        max_timestamp=max_timestamp,
        use_microseconds=use_microseconds,
    )


@router.get("/logs", response_model=LogPage)
def get_logs(
    session_id: str = Query(...),
    page: int = Query(1, description="1-based; values below 1 are treated as 1"),
    per_page: int = Query(DEFAULT_PAGE_SIZE, description="Capped at 1000"),
    spec: FilterSpec = Depends(filter_spec),
):
    """
    Filtered, paginated entries of one session. Example:
      /api/logs?session_id=...&level=DEBUG&categories=videodecoder&categories=GST_PADS&page=2
    """
    entries = sessions.get_store().get(session_id)
    start = time.perf_counter()
    matched, warnings = filter_entries(entries, spec)
    result = analysis.paginate(matched, page, per_page)
    logger.debug(
        "Session %s: %d/%d entries matched in %.3fs, page %d/%d",
        session_id, result.total, len(entries), time.perf_counter() - start,
        result.page, result.total_pages,
    )
    return {
        "entries": [format_entry(e) for e in result.entries],
        "total": result.total,
        "page": result.page,
        "total_pages": result.total_pages,
        "warnings": warnings,
    }


@router.get("/timeline", response_model=TimelineOut)
def get_timeline(
    session_id: str = Query(...),
    interval: str = Query(DEFAULT_INTERVAL, description="Bucket width: <n>us, <n>ms, <n>s or <n>m"),
    spec: FilterSpec = Depends(filter_spec),
):
    """Per-bucket entry counts for the filtered entries of one session."""
    # reject a bad interval before touching the session
    width = analysis.parse_interval(interval)
    entries = sessions.get_store().get(session_id)
    matched, warnings = filter_entries(entries, spec)
    timeline = analysis.build_timeline(matched, width, spec.use_microseconds)
    return {
        "buckets": [{"timestamp": ts, "count": n} for ts, n in timeline.buckets],
        "min_timestamp": timeline.min_timestamp,
        "max_timestamp": timeline.max_timestamp,
        "interval": timeline.interval,
        "unit": timeline.unit,
        "warnings": warnings,
    }


@router.get("/filter-options", response_model=FilterOptionsOut)
def get_filter_options(session_id: str = Query(...)):
    entries = sessions.get_store().get(session_id)
    opts = analysis.filter_options(entries)
    if not entries:
        logger.warning("Session %s has no entries; filter options are empty", session_id)
    return asdict(opts)
