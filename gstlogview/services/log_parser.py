"""Tokenizer for GStreamer debug log lines.

A line looks like::

    0:00:00.123456789  1234   0x55d5c3a1b6e0 DEBUG  videodecoder gstvideodecoder.c:1200:gst_video_decoder_finish_frame:<dec0> some message

Fields are space separated with variable padding. The location field is
``file:line:function:<object>``; the object segment may be empty but its
colon is always present.
"""
import enum
import re
from dataclasses import dataclass
from typing import Iterator, Optional

from gstlogview.config import ANSI_ESCAPE_REGEX

ANSI = re.compile(ANSI_ESCAPE_REGEX)

U32_MAX = 2**32 - 1
NS_PER_US = 1_000
NS_PER_MS = 1_000_000
NS_PER_SECOND = 1_000_000_000


class Level(enum.Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    FIXME = "FIXME"
    INFO = "INFO"
    DEBUG = "DEBUG"
    LOG = "LOG"
    TRACE = "TRACE"
    MEMDUMP = "MEMDUMP"


# Symbols as printed by the framework. WARN is what gst prints for warnings.
LEVEL_SYMBOLS = {
    "ERROR": Level.ERROR,
    "WARN": Level.WARNING,
    "WARNING": Level.WARNING,
    "FIXME": Level.FIXME,
    "INFO": Level.INFO,
    "DEBUG": Level.DEBUG,
    "LOG": Level.LOG,
    "TRACE": Level.TRACE,
    "MEMDUMP": Level.MEMDUMP,
}


# -------------------------------- failures ------------------------------------

class ParseError(ValueError):
    kind = "parse_error"


class InvalidTimestamp(ParseError):
    kind = "invalid_timestamp"

    def __init__(self, raw: str, subfield: str):
        super().__init__(f"invalid timestamp {raw!r} ({subfield})")
        self.raw = raw
        self.subfield = subfield


class InvalidPid(ParseError):
    kind = "invalid_pid"

    def __init__(self, raw: str):
        super().__init__(f"invalid pid {raw!r}")
        self.raw = raw


class InvalidDebugLevel(ParseError):
    kind = "invalid_debug_level"

    def __init__(self, name: str):
        super().__init__(f"invalid debug level {name!r}")
        self.name = name


class InvalidLineNumber(ParseError):
    kind = "invalid_line_number"

    def __init__(self, raw: str):
        super().__init__(f"invalid line number {raw!r}")
        self.raw = raw


class MissingToken(ParseError):
    kind = "missing_token"

    def __init__(self, which: str):
        super().__init__(f"missing {which}")
        self.which = which


class MissingLocation(ParseError):
    kind = "missing_location"

    def __init__(self, raw: str):
        super().__init__(f"location {raw!r} has no object segment")
        self.raw = raw


# --------------------------------- entry --------------------------------------

@dataclass(frozen=True)
class Entry:
    timestamp: int  # nanoseconds
    pid: int
    thread: str
    level: Level
    category: str
    file: str
    line: int
    function: str
    message: str
    object: Optional[str] = None

    @property
    def timestamp_ms(self) -> int:
        return self.timestamp // NS_PER_MS

    @property
    def timestamp_us(self) -> int:
        return self.timestamp // NS_PER_US

    def timestamp_in(self, use_microseconds: bool) -> int:
        return self.timestamp_us if use_microseconds else self.timestamp_ms

    @property
    def ts(self) -> str:
        return format_clock_time(self.timestamp)


def format_clock_time(ns: int) -> str:
    """Render nanoseconds the way gst prints them: H:MM:SS.nnnnnnnnn"""
    seconds, frac = divmod(ns, NS_PER_SECOND)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}.{frac:09d}"


# -------------------------------- helpers -------------------------------------

def _uint(token: str) -> Optional[int]:
    # int() would also take signs, underscores and non-ASCII digits
    if not token or not token.isascii() or not token.isdigit():
        return None
    return int(token)


def parse_timestamp(raw: str) -> int:
    """Parse H:MM:SS.fffffffff into nanoseconds."""
    parts = raw.split(":", 2)
    hours = _uint(parts[0])
    if hours is None:
        raise InvalidTimestamp(raw, "hours")
    minutes = _uint(parts[1]) if len(parts) > 1 else None
    if minutes is None:
        raise InvalidTimestamp(raw, "minutes")
    if len(parts) < 3:
        raise InvalidTimestamp(raw, "seconds")
    sec_str, dot, sub_str = parts[2].partition(".")
    seconds = _uint(sec_str)
    if seconds is None:
        raise InvalidTimestamp(raw, "seconds")
    subsecond = _uint(sub_str) if dot else None
    if subsecond is None:
        raise InvalidTimestamp(raw, "subseconds")
    return (hours * 3600 + minutes * 60 + seconds) * NS_PER_SECOND + subsecond


def _tokens(line: str) -> Iterator[str]:
    return (t for t in line.split(" ") if t)


# --------------------------------- parser -------------------------------------

def parse_line(line: str) -> Entry:
    """Tokenize one raw line into an Entry. Raises a ParseError subclass."""
    line = ANSI.sub("", line).rstrip("\r\n")
    it = _tokens(line)

    raw_ts = next(it, None)
    if raw_ts is None:
        raise MissingToken("timestamp")
    timestamp = parse_timestamp(raw_ts)

    raw_pid = next(it, None)
    if raw_pid is None:
        raise MissingToken("pid")
    pid = _uint(raw_pid)
    if pid is None or pid > U32_MAX:
        raise InvalidPid(raw_pid)

    thread = next(it, None)
    if thread is None:
        raise MissingToken("thread")

    raw_level = next(it, None)
    if raw_level is None:
        raise MissingToken("level")
    level = LEVEL_SYMBOLS.get(raw_level)
    if level is None:
        raise InvalidDebugLevel(raw_level)

    category = next(it, None)
    if category is None:
        raise MissingToken("category")

    location = next(it, None)
    if location is None:
        raise MissingToken("location")
    loc = location.split(":", 3)
    if len(loc) < 2:
        raise MissingToken("line")
    line_no = _uint(loc[1])
    if line_no is None or line_no > U32_MAX:
        raise InvalidLineNumber(loc[1])
    if len(loc) < 3:
        raise MissingToken("function")
    if len(loc) < 4:
        raise MissingLocation(location)
    file, _, function, obj = loc

    if obj.startswith("<") and obj.endswith(">"):
        obj = obj[1:-1]

    return Entry(
        timestamp=timestamp,
        pid=pid,
        thread=thread,
        level=level,
        category=category,
        file=file,
        line=line_no,
        function=function,
        message=" ".join(it),
        object=obj or None,
    )
