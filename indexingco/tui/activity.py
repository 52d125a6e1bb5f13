"""Activity log records shown in the dashboard's Activity tab."""

import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

ACTIVITY_LIMIT = 500


class ActivityStatus:
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    PENDING = "pending"


class ActivitySource:
    SYSTEM = "system"
    COMMAND = "command"


@dataclass(frozen=True)
class ActivityEntry:
    id: str
    timestamp: float
    source: str
    title: str
    status: str
    message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = field(default=None, compare=False)


def new_activity_entry(
    source: str,
    title: str,
    status: str,
    message: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    now: Optional[float] = None,
) -> ActivityEntry:
    timestamp = time.time() if now is None else now
    return ActivityEntry(
        id=f"{int(timestamp * 1000)}-{secrets.token_hex(3)}",
        timestamp=timestamp,
        source=source,
        title=title,
        status=status,
        message=message or None,
        metadata=metadata or None,
    )


def prepend_activity(items: Sequence[ActivityEntry], entry: ActivityEntry) -> Tuple[ActivityEntry, ...]:
    """Newest first, capped at ``ACTIVITY_LIMIT``."""
    return (entry, *items[: ACTIVITY_LIMIT - 1])
