"""Conjunctive filter over parsed entries. Absent criteria always pass."""
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

from gstlogview.services.log_parser import Entry

logger = logging.getLogger(__name__)

Predicate = Callable[[Entry], bool]


@dataclass
class FilterSpec:
    level: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    message_regex: Optional[str] = None
    function_regex: Optional[str] = None
    pid: Optional[int] = None
    thread: Optional[str] = None
    object: Optional[str] = None
    min_timestamp: Optional[int] = None
    max_timestamp: Optional[int] = None
    use_microseconds: bool = False


def _compile(name: str, pattern: str, warnings: List[str]) -> Optional[re.Pattern]:
    try:
        return re.compile(pattern)
    except re.error as e:
        warnings.append(f"{name}: invalid pattern {pattern!r} ({e}); criterion not applied")
        logger.warning("Invalid %s %r: %s", name, pattern, e)
        return None


class EntryFilter:
    """Callable predicate built once per query. Patterns are compiled here, not per entry."""

    def __init__(self, spec: FilterSpec):
        self.spec = spec
        self.warnings: List[str] = []
        self._predicates: List[Predicate] = []
        self._build()

    def _build(self) -> None:
        spec = self.spec
        add = self._predicates.append

        if spec.level is not None:
            level = spec.level
            add(lambda e: e.level.value == level)

        if spec.categories:
            accepted = frozenset(c.strip() for c in spec.categories)
            add(lambda e: e.category.strip() in accepted)

        if spec.message_regex is not None:
            rx = _compile("message_regex", spec.message_regex, self.warnings)
            if rx is not None:
                add(lambda e, rx=rx: rx.search(e.message) is not None)

        if spec.pid is not None:
            pid = spec.pid
            add(lambda e: e.pid == pid)

        if spec.thread is not None:
            thread = spec.thread
            add(lambda e: e.thread == thread)

        if spec.object is not None:
            obj = spec.object
            # entries without an object never match
            add(lambda e: e.object is not None and e.object == obj)

        if spec.function_regex is not None:
            rx = _compile("function_regex", spec.function_regex, self.warnings)
            if rx is not None:
                add(lambda e, rx=rx: rx.search(e.function) is not None)

        if spec.min_timestamp is not None or spec.max_timestamp is not None:
            lo, hi, us = spec.min_timestamp, spec.max_timestamp, spec.use_microseconds

            def in_range(e: Entry) -> bool:
                ts = e.timestamp_in(us)
                if lo is not None and ts < lo:
                    return False
                if hi is not None and ts > hi:
                    return False
                return True

            add(in_range)

    @property
    def is_noop(self) -> bool:
        return not self._predicates

    def __call__(self, entry: Entry) -> bool:
        return all(p(entry) for p in self._predicates)


def build_filter(spec: FilterSpec) -> EntryFilter:
    return EntryFilter(spec)


def filter_entries(entries: Iterable[Entry], spec: FilterSpec) -> Tuple[List[Entry], List[str]]:
    """Return (matching entries in input order, warnings about dropped criteria)."""
    predicate = build_filter(spec)
    if predicate.is_noop:
        return list(entries), predicate.warnings
    return [e for e in entries if predicate(e)], predicate.warnings
