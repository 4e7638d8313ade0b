from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def audit_record(event: Any) -> dict[str, Any]:
    """Turn a mapping or an event dataclass (with an ``event_name``) into a JSON-ready dict."""
    if is_dataclass(event) and not isinstance(event, type):
        record: dict[str, Any] = {"event": event.event_name}
        record.update(asdict(event))
        return record
    if isinstance(event, dict):
        return dict(event)
    raise TypeError(f"cannot audit {type(event).__name__}")


class AuditLog:
    """Append-only JSON-lines log; every row carries the bound session context and a UTC ts."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.context: dict[str, Any] = {}

    def bind(self, **context: Any) -> None:
        self.context = dict(context)

    def write(self, event: Any) -> dict[str, Any]:
        record = audit_record(event)
        for key, value in self.context.items():
            record.setdefault(key, value)
        record["ts"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
        return record
