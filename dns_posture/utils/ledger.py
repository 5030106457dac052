from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class QueryLedgerEntry:
    timestamp: str
    server: str
    query_name: str
    record_type: str
    status: str
    flags: list[str] = field(default_factory=list)
    error: str | None = None
    authenticated: bool = False
    duration_ms: int = 0


@dataclass
class QueryLedger:
    entries: list[QueryLedgerEntry] = field(default_factory=list)

    def add(self, **kwargs: Any) -> None:
        self.entries.append(QueryLedgerEntry(timestamp=datetime.now(timezone.utc).isoformat(), **kwargs))

    def to_dict(self) -> dict[str, Any]:
        return {"entries": [asdict(entry) for entry in self.entries], "totals": self.totals()}

    def totals(self) -> dict[str, Any]:
        by_status = defaultdict(int)
        by_server = defaultdict(int)
        duration_ms = 0
        for entry in self.entries:
            by_status[entry.status] += 1
            by_server[entry.server] += 1
            duration_ms += entry.duration_ms
        return {
            "by_status": dict(by_status),
            "by_server": dict(by_server),
            "duration_ms": duration_ms,
            "total_queries": len(self.entries),
        }
