from typing import Any, Dict

from gstlogview.services.log_parser import Entry


def format_entry(entry: Entry) -> Dict[str, Any]:
    """JSON-ready view of an Entry. object is None when the line had none."""
    return {
        "timestamp": entry.ts,
        "timestamp_ns": entry.timestamp,
        "pid": entry.pid,
        "thread": entry.thread,
        "level": entry.level.value,
        "category": entry.category,
        "file": entry.file,
        "line": entry.line,
        "function": entry.function,
        "object": entry.object,
        "message": entry.message,
    }
