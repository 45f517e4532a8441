from pydantic import BaseModel, Field
from typing import Optional, Dict, List


class EntryOut(BaseModel):
    timestamp: str = Field(..., description="Clock time as printed by gst, H:MM:SS.nnnnnnnnn")
    timestamp_ns: int
    pid: int
    thread: str
    level: str
    category: str
    file: str
    line: int
    function: str
    object: Optional[str] = None
    message: str


class LogPage(BaseModel):
    entries: List[EntryOut]
    total: int
    page: int
    total_pages: int
    warnings: List[str] = []


class TimelineBucket(BaseModel):
    timestamp: int
    count: int


class TimelineOut(BaseModel):
    buckets: List[TimelineBucket]
    min_timestamp: int
    max_timestamp: int
    interval: int
    unit: str
    warnings: List[str] = []


class FilterOptionsOut(BaseModel):
    categories: List[str]
    levels: List[str]
    pids: List[int]
    threads: List[str]
    objects: List[str]


class UploadOut(BaseModel):
    session_id: str
    state: str


class IngestStatsOut(BaseModel):
    lines: int = 0
    parsed: int = 0
    dropped: int = 0
    failures: Dict[str, int] = {}
    elapsed: float = 0.0


class SessionStatusOut(BaseModel):
    session_id: str
    state: str
    entries: int
    stats: Optional[IngestStatsOut] = None
    error: Optional[str] = None
    warning: Optional[str] = None
