"""Structured JSONL audit logger for goal writes."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class AuditLogger:
    """Writes goal write events as JSON lines.

    Writes that belong to one engine call share a ``correlation_id`` so a
    history entry can be matched with the goal update it accompanied.
    """

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("ge.audit")

    def log(
        self,
        action: str,
        user_id: str,
        goal_id: str,
        correlation_id: str,
        outcome: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Append one JSONL audit event."""
        event = {
            "timestamp": datetime.now(UTC).isoformat(),
            "action": action,
            "user_id": user_id,
            "goal_id": goal_id,
            "correlation_id": correlation_id,
            "outcome": outcome,
            "details": details or {},
        }
        line = json.dumps(event, ensure_ascii=True, default=str)
        with self.log_path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")
        self.logger.info(line)

    def read(self, correlation_id: str | None = None) -> list[dict[str, Any]]:
        """Load events, optionally only those of one correlation id."""
        if not self.log_path.exists():
            return []
        events = []
        with self.log_path.open("r", encoding="utf-8") as fh:
            for line in fh:
                if not line.strip():
                    continue
                event = json.loads(line)
                if correlation_id is None or event.get("correlation_id") == correlation_id:
                    events.append(event)
        return events
