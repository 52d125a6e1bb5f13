"""Countdown ticks and the guarded refresh-all coordinator."""

import asyncio
import time
from typing import Any, Callable, Dict, Optional

from indexingco.logging import get_logger, log_extra
from indexingco.tui.activity import ActivitySource, ActivityStatus, new_activity_entry
from indexingco.tui.state import (
    Action,
    AppendActivity,
    AppState,
    RESOURCE_TABS,
    SetMessage,
    SetRefreshCountdown,
    SetTabError,
    SetTabLoading,
    Tab,
    TickRefresh,
    UpdateTabItems,
)

log = get_logger(__name__)

SYNC_LABELS = {
    Tab.PIPELINES: ("pipelines", "Pipeline"),
    Tab.FILTERS: ("filters", "Filter"),
    Tab.TRANSFORMATIONS: ("transformations", "Transformation"),
}


class RefreshScheduler:
    """
    Drives the refresh countdown and fetches resource tabs.

    ``refresh_all`` collapses overlapping triggers: while one refresh is in
    flight, further calls return immediately. The three tab fetches run
    concurrently; each one settles into exactly one state transition
    (items or error) plus one activity entry.
    """

    def __init__(
        self,
        resources: Any,
        dispatch: Callable[[Action], AppState],
        get_state: Callable[[], AppState],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.resources = resources
        self.dispatch = dispatch
        self.get_state = get_state
        self.clock = clock
        self.refreshing = False
        self._fetchers: Dict[str, Callable[[], Any]] = {
            Tab.PIPELINES: lambda: self.resources.list_pipelines(),
            Tab.FILTERS: lambda: self.resources.list_filters(),
            Tab.TRANSFORMATIONS: lambda: self.resources.list_transformations(),
        }

    def tick(self) -> bool:
        """Advance the countdown; True when it has reached zero and a refresh should start."""
        state = self.dispatch(TickRefresh())
        return state.refresh_countdown == 0 and not self.refreshing

    async def refresh_all(self) -> bool:
        if self.refreshing:
            log.debug("refresh_skipped", extra=log_extra(command="refresh"))
            return False
        self.refreshing = True
        try:
            self.dispatch(SetMessage(None))
            await asyncio.gather(*(self.fetch(tab) for tab in RESOURCE_TABS))
        finally:
            self.refreshing = False
            self.dispatch(SetRefreshCountdown(self.get_state().refresh_interval))
        return True

    async def fetch(self, tab: str) -> None:
        plural, singular = SYNC_LABELS[tab]
        self.dispatch(SetTabLoading(tab, True))
        try:
            result = await asyncio.to_thread(self._fetchers[tab])
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            log.error(
                "refresh_failed",
                extra=log_extra(command="refresh", tab=tab, error=message, error_type=exc.__class__.__name__),
            )
            self.dispatch(SetTabError(tab, message))
            self._record(f"{singular} sync failed", ActivityStatus.ERROR, message)
            return
        items = tuple(result.items)
        self.dispatch(UpdateTabItems(tab, items, self.clock()))
        log.debug("refresh_complete", extra=log_extra(command="refresh", tab=tab, count=len(items)))
        self._record(f"Synced {plural}", ActivityStatus.SUCCESS, metadata={"count": len(items)})

    def _record(
        self,
        title: str,
        status: str,
        message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        entry = new_activity_entry(ActivitySource.SYSTEM, title, status, message, metadata, now=self.clock())
        self.dispatch(AppendActivity(entry))
