"""
=============================================================================
ACCESS LOG
=============================================================================

One structured entry per served request, on its own logger so it can be
routed or silenced independently of the server's diagnostic logging:

    logging.getLogger("picohttp.access").setLevel(logging.WARNING)

Two formats:

    text   127.0.0.1 - - [18/Oct/2026:12:00:00 +0000] "GET /hello" 200 40 0.52ms
    json   {"conn_id": "1a2b3c4d", "method": "GET", "path": "/hello", ...}

A status of "-" means the handler returned without writing a response.

=============================================================================
"""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional


logger = logging.getLogger("picohttp.access")


@dataclass
class RequestLog:
    """Structured log entry for one request."""

    conn_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: Optional[int]
    bytes_sent: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        status = self.status_code if self.status_code is not None else "-"
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {status} '
            f'{self.bytes_sent} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Formats and emits RequestLog entries.

    Successful requests are logged at INFO, error statuses (4xx) at WARNING.

    Args:
        log_format: "text" or "json".
    """

    def __init__(self, log_format: str = "text"):
        self.log_format = log_format

    def log(
        self,
        conn_id: str,
        method: str,
        path: str,
        client_ip: str,
        user_agent: str,
        status_code: Optional[int],
        bytes_sent: int,
        duration_ms: float,
    ) -> RequestLog:
        entry = RequestLog(
            conn_id=conn_id,
            method=method,
            path=path,
            client_ip=client_ip,
            user_agent=user_agent,
            status_code=status_code,
            bytes_sent=bytes_sent,
            duration_ms=duration_ms,
            timestamp=_format_timestamp(datetime.now(timezone.utc)),
        )

        level = logging.INFO
        if status_code is not None and status_code >= 400:
            level = logging.WARNING

        if self.log_format == "json":
            logger.log(level, json.dumps(entry.to_dict()))
        else:
            logger.log(level, entry.to_text())

        return entry


def _format_timestamp(dt: datetime) -> str:
    # Apache common log format: 18/Oct/2026:12:00:00 +0000
    return dt.strftime("%d/%b/%Y:%H:%M:%S %z")
