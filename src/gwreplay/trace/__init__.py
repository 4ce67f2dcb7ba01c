from __future__ import annotations

from gwreplay.trace.loader import decode_lines, load_trace, reschedule, rewrite_url
from gwreplay.trace.records import ACCEPT_HEADERS, TraceRecord, accept_header, decode_record

__all__ = [
    "ACCEPT_HEADERS",
    "TraceRecord",
    "accept_header",
    "decode_lines",
    "decode_record",
    "load_trace",
    "reschedule",
    "rewrite_url",
]
