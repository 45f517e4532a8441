import io
import logging
import threading
import time
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Iterator, Optional, Union

from gstlogview.services.log_parser import Entry, ParseError, parse_line
from gstlogview.errors import SessionExists
from gstlogview.store.sessions import SessionStore, get_store

logger = logging.getLogger(__name__)


@dataclass
class IngestStats:
    lines: int = 0
    parsed: int = 0
    dropped: int = 0
    failures: Counter = field(default_factory=Counter)
    elapsed: float = 0.0

    def as_dict(self) -> Dict[str, object]:
        return {
            "lines": self.lines,
            "parsed": self.parsed,
            "dropped": self.dropped,
            "failures": dict(self.failures),
            "elapsed": round(self.elapsed, 6),
        }


def parse_stream(stream: BinaryIO, stats: Optional[IngestStats] = None) -> Iterator[Entry]:
    """
    Yield an Entry per parsable line, in input order.

    Lines that fail to parse are dropped; when `stats` is given the drop is
    counted per failure kind. One pass only: call again to re-read.
    """
    text = io.TextIOWrapper(stream, encoding="utf-8", errors="replace", newline=None)
    try:
        for line in text:
            if stats is not None:
                stats.lines += 1
            try:
                entry = parse_line(line)
            except ParseError as e:
                if stats is not None:
                    stats.dropped += 1
                    stats.failures[e.kind] += 1
                continue
            if stats is not None:
                stats.parsed += 1
            yield entry
    finally:
        # don't close the caller's stream with the wrapper
        text.detach()


def parse_bytes(data: Union[bytes, bytearray], stats: Optional[IngestStats] = None) -> Iterator[Entry]:
    return parse_stream(io.BytesIO(data), stats)


# ------------------------------------------------------------------
# Background ingestion
# ------------------------------------------------------------------
_executor: Optional[ThreadPoolExecutor] = None
_tasks: Dict[str, Future] = {}
_tasks_lock = threading.Lock()


def init(workers: int = 2) -> None:
    global _executor
    shutdown()
    _executor = ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="gstlog-parse")


def shutdown(wait: bool = True) -> None:
    global _executor
    if _executor is not None:
        _executor.shutdown(wait=wait)
        _executor = None
    with _tasks_lock:
        _tasks.clear()


def ingest(session_id: str, data: bytes, store: Optional[SessionStore] = None) -> IngestStats:
    """Parse `data` fully, then install the result under `session_id`."""
    store = store or get_store()
    stats = IngestStats()
    logger.info("Parsing %d bytes for session %s", len(data), session_id)
    start = time.perf_counter()
    try:
        entries = list(parse_bytes(data, stats))
        stats.elapsed = time.perf_counter() - start
        store.put(session_id, entries, stats.as_dict())
    except SessionExists:
        # already installed; the first result stands
        logger.warning("Session %s is already ready; discarding duplicate parse", session_id)
        raise
    except Exception as e:
        logger.exception("Ingestion failed for session %s", session_id)
        store.fail(session_id, str(e))
        raise

    logger.info(
        "Parsed %d entries for session %s in %.3fs (%d of %d lines dropped)",
        stats.parsed, session_id, stats.elapsed, stats.dropped, stats.lines,
    )
    if stats.dropped:
        logger.warning("Session %s: dropped lines by kind: %s", session_id, dict(stats.failures))
    if not stats.parsed:
        logger.warning("No entries were parsed for session %s; the file may be empty or not a gst debug log", session_id)
    return stats


def submit(session_id: str, data: bytes, store: Optional[SessionStore] = None) -> Future:
    """Run ingest() on the parse pool. The returned future is also kept for wait()."""
    if _executor is None:
        init()
    fut = _executor.submit(ingest, session_id, data, store)
    with _tasks_lock:
        _tasks[session_id] = fut
    fut.add_done_callback(lambda _f: _forget(session_id))
    return fut


def _forget(session_id: str) -> None:
    with _tasks_lock:
        _tasks.pop(session_id, None)


def wait(session_id: str, timeout: Optional[float] = None) -> bool:
    """Block until the session's parse task finishes. False if none is in flight."""
    with _tasks_lock:
        fut = _tasks.get(session_id)
    if fut is None:
        return False
    # ingest() already recorded failures on the session
    fut.exception(timeout=timeout)
    return True


def pending() -> int:
    with _tasks_lock:
        return len(_tasks)
