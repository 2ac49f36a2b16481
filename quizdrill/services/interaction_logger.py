"""Append-only JSONL log of practice and auth events.

One file per UTC day under settings.log_dir. Events are free-form dicts;
None fields are dropped so lines stay short.
"""

import json
import os
from datetime import datetime, timezone
from pathlib import Path

from quizdrill.config import settings

SESSION_START = "session_start"
SESSION_SUBMIT = "session_submit"
RATE_LIMITED = "rate_limited"


def log_path_for(ts: datetime) -> Path:
    return settings.log_dir / f"events_{ts.strftime('%Y-%m-%d')}.jsonl"


def log_interaction(event: str, user_id: str | None = None, topic: str | None = None, **fields) -> None:
    if os.environ.get("TESTING") == "1":
        return

    ts = datetime.now(timezone.utc)
    entry = {"ts": ts.isoformat(), "event": event, "user_id": user_id, "topic": topic, **fields}
    line = json.dumps({k: v for k, v in entry.items() if v is not None}, ensure_ascii=False)

    path = log_path_for(ts)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(line + "\n")
