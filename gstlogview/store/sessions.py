# gstlogview/store/sessions.py
import enum
import logging
import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from gstlogview.errors import SessionExists, SessionFailed, SessionNotFound, SessionPending
from gstlogview.services.log_parser import Entry

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass
class SessionRecord:
    session_id: str
    created_at: float
    state: SessionState = SessionState.PENDING
    entries: Tuple[Entry, ...] = ()
    stats: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    last_access: float = 0.0


class SessionStore:
    """
    Parsed sessions keyed by id, bounded by count (LRU) and age (TTL).

    The lock only guards the mapping itself. Entry tuples are immutable and
    handed out by reference, so queries run without holding it.
    """

    def __init__(self, max_sessions: int = 64, ttl: float = 0.0, clock=time.monotonic):
        self._sessions: "OrderedDict[str, SessionRecord]" = OrderedDict()
        self._lock = threading.Lock()
        self._max_sessions = max(1, max_sessions)
        self._ttl = ttl
        self._clock = clock

    # ------------------------------ eviction -----------------------------------

    def _expired(self, rec: SessionRecord, now: float) -> bool:
        return self._ttl > 0 and now - rec.created_at > self._ttl

    def _evict(self, now: float) -> List[str]:
        evicted = [sid for sid, rec in self._sessions.items() if self._expired(rec, now)]
        for sid in evicted:
            del self._sessions[sid]
        while len(self._sessions) > self._max_sessions:
            sid, _ = self._sessions.popitem(last=False)
            evicted.append(sid)
        return evicted

    def _lookup(self, session_id: str, now: float) -> SessionRecord:
        rec = self._sessions.get(session_id)
        if rec is None:
            raise SessionNotFound(session_id)
        if self._expired(rec, now):
            del self._sessions[session_id]
            logger.info("Session %s expired", session_id)
            raise SessionNotFound(session_id)
        return rec

    # ------------------------------ lifecycle ----------------------------------

    def create(self) -> str:
        """Register a PENDING session with a fresh id and return the id."""
        sid = str(uuid.uuid4())
        now = self._clock()
        with self._lock:
            self._sessions[sid] = SessionRecord(session_id=sid, created_at=now, last_access=now)
            evicted = self._evict(now)
            total = len(self._sessions)
        if evicted:
            logger.info("Evicted %d session(s): %s", len(evicted), ", ".join(evicted))
        logger.debug("Created session %s (%d in store)", sid, total)
        return sid

    def put(self, session_id: str, entries: Iterable[Entry], stats: Optional[Dict[str, Any]] = None) -> int:
        """Install parsed entries in one bulk write; returns the entry count."""
        frozen = tuple(entries)
        now = self._clock()
        with self._lock:
            rec = self._sessions.get(session_id)
            if rec is None:
                # evicted while parsing, or never created via create()
                rec = SessionRecord(session_id=session_id, created_at=now)
                self._sessions[session_id] = rec
            elif rec.state is SessionState.READY:
                raise SessionExists(session_id)
            rec.entries = frozen
            rec.stats = dict(stats or {})
            rec.state = SessionState.READY
            rec.error = None
            rec.last_access = now
            self._sessions.move_to_end(session_id)
            evicted = self._evict(now)
        if evicted:
            logger.info("Evicted %d session(s): %s", len(evicted), ", ".join(evicted))
        return len(frozen)

    def fail(self, session_id: str, error: str) -> None:
        with self._lock:
            rec = self._sessions.get(session_id)
            if rec is None or rec.state is SessionState.READY:
                return
            rec.state = SessionState.FAILED
            rec.error = error
            rec.entries = ()

    # ------------------------------- queries -----------------------------------

    def get(self, session_id: str) -> Tuple[Entry, ...]:
        """Return the session's entries. Raises unless the session is READY."""
        now = self._clock()
        with self._lock:
            rec = self._lookup(session_id, now)
            if rec.state is SessionState.PENDING:
                raise SessionPending(session_id)
            if rec.state is SessionState.FAILED:
                raise SessionFailed(session_id, rec.error or "")
            rec.last_access = now
            self._sessions.move_to_end(session_id)
            return rec.entries

    def status(self, session_id: str) -> SessionRecord:
        with self._lock:
            return self._lookup(session_id, self._clock())

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


# ---------------------------- module-level store -------------------------------

_store: Optional[SessionStore] = None


def init(max_sessions: int = 64, ttl: float = 0.0) -> SessionStore:
    """(Re)create the process-wide store."""
    global _store
    _store = SessionStore(max_sessions=max_sessions, ttl=ttl)
    logger.info("Session store ready (max_sessions=%d, ttl=%ss)", max_sessions, ttl or "off")
    return _store


def get_store() -> SessionStore:
    if _store is None:
        return init()
    return _store
