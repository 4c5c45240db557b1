"""Event recording for operations and diagnostics.

Every event goes to the standard logger. When an EventStore is attached, the event
is also persisted so the diagnostics page can list recent activity.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.models import EventEntry

log = logging.getLogger("vmfit.events")

_LEVELS = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class EventRecorder:
    def __init__(self, store=None):
        self.store = store

    async def record(self, event: str, metadata: Optional[Dict[str, Any]] = None,
                     severity: str = "info") -> None:
        metadata = dict(metadata or {})
        level = _LEVELS.get(severity)
        if level is None:
            log.warning("Unknown severity %r for event %r, using 'info'.", severity, event)
            severity, level = "info", logging.INFO
        log.log(level, "[%s] %s %s", severity.upper(), event, metadata)

        if self.store is None:
            return
        entry = EventEntry(
            message=event,
            level=severity,
            timestamp=datetime.now(timezone.utc),
            metadata=metadata,
        )
        try:
            await self.store.add(entry)
        except Exception as e:
            # Never fail the caller because the sink is down.
            log.warning("Event store write failed (%s): %s", event, e)

    async def recent(self, limit: int = 15) -> List[EventEntry]:
        if self.store is None:
            return []
        try:
            return await self.store.recent(limit)
        except Exception as e:
            log.warning("Event store read failed: %s", e)
            return []
