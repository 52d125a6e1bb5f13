"""
Dashboard controller: the single owner of ``AppState``.

Keystrokes, timer ticks and fetch completions all arrive here and are turned
into reducer actions. The controller is the only place where the dashboard
talks to the network; every failure of such a call is caught where the call
is issued and becomes a banner, a tab error or an activity entry.
"""

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional, Set

from indexingco.config import LOG_LEVELS, THEMES
from indexingco.domain import Pipeline
from indexingco.logging import get_logger, log_extra, set_package_level
from indexingco.tui import workflow
from indexingco.tui.activity import ActivitySource, ActivityStatus, new_activity_entry
from indexingco.tui.commands import (
    Command,
    FilterCommand,
    HelpCommand,
    LogsCommand,
    QuitCommand,
    RefreshCommand,
    SetCommand,
    UnknownCommand,
    ViewCommand,
    parse_command,
)
from indexingco.tui.dispatcher import (
    BeginWorkflow,
    CHORD_TIMEOUT_SECONDS,
    ExecuteCommand,
    KeyPress,
    Quit,
    RefreshAll,
    SubmitWorkflow,
    interpret_key,
    switch_tab,
)
from indexingco.tui.scheduler import RefreshScheduler
from indexingco.tui.state import (
    Action,
    AdvanceAction,
    AppendActivity,
    AppState,
    CloseCommandLine,
    Message,
    OpenCommandLine,
    PushCommandHistory,
    SetCommandHint,
    SetKeyBuffer,
    SetLogLevel,
    SetMessage,
    SetRefreshInterval,
    SetSearchQuery,
    SetTheme,
    TABS,
    Tab,
    ToggleHelp,
    initial_state,
    reduce,
)

log = get_logger(__name__)

Listener = Callable[[AppState], None]
Scheduler = Callable[[float, Callable[[], None]], Any]


def _call_later(delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class DashboardController:
    def __init__(
        self,
        resources: Any,
        state: Optional[AppState] = None,
        *,
        schedule: Scheduler = _call_later,
        on_quit: Optional[Callable[[], None]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.resources = resources
        self.state = state or initial_state()
        self.schedule = schedule
        self.on_quit = on_quit
        self.clock = clock
        self.busy = False
        self.quit_requested = False
        self.scheduler = RefreshScheduler(resources, self.dispatch, lambda: self.state, clock)
        self._listeners: List[Listener] = []
        self._chord_timer: Any = None
        self._tasks: Set["asyncio.Task[Any]"] = set()

    # ------------------------------------------------------------------ state

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def dispatch(self, action: Action) -> AppState:
        self.state = reduce(self.state, action)
        for listener in self._listeners:
            listener(self.state)
        return self.state

    def post_info(self, text: str) -> None:
        self.dispatch(SetMessage(Message.info(text)))

    def post_error(self, text: str) -> None:
        self.dispatch(SetMessage(Message.error(text)))

    def record(
        self,
        title: str,
        status: str,
        message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        entry = new_activity_entry(ActivitySource.COMMAND, title, status, message, metadata, now=self.clock())
        self.dispatch(AppendActivity(entry))

    # ------------------------------------------------------------------ tasks

    def spawn(self, coro: Any) -> "asyncio.Task[Any]":
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every background task spawned so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ------------------------------------------------------------------ input

    def handle_key(self, press: KeyPress) -> None:
        for event in interpret_key(self.state, press):
            if isinstance(event, Action):
                self.dispatch(event)
            elif isinstance(event, RefreshAll):
                self.spawn(self.refresh_all())
            elif isinstance(event, Quit):
                self.quit()
            elif isinstance(event, BeginWorkflow):
                self.begin_workflow(event.kind)
            elif isinstance(event, SubmitWorkflow):
                result = self.step_workflow(event.text)
                if result is not None:
                    self.spawn(self.run_workflow(result))
            elif isinstance(event, ExecuteCommand):
                self.execute_command(event.text)
        self._arm_chord_timer()

    def _arm_chord_timer(self) -> None:
        if self._chord_timer is not None:
            self._chord_timer.cancel()
            self._chord_timer = None
        if self.state.key_buffer:
            self._chord_timer = self.schedule(CHORD_TIMEOUT_SECONDS, self._expire_chord)

    def _expire_chord(self) -> None:
        self._chord_timer = None
        if self.state.key_buffer:
            self.dispatch(SetKeyBuffer(""))

    def quit(self) -> None:
        self.quit_requested = True
        if self.on_quit is not None:
            self.on_quit()

    # ---------------------------------------------------------------- refresh

    def tick(self) -> None:
        if self.scheduler.tick():
            self.spawn(self.refresh_all())

    async def refresh_all(self) -> bool:
        return await self.scheduler.refresh_all()

    # --------------------------------------------------------------- workflow

    def begin_workflow(self, kind: str) -> None:
        pipeline = self.state.selected_item if self.state.active_tab == Tab.PIPELINES else None
        if not isinstance(pipeline, Pipeline):
            self.post_error("Select a pipeline first")
            return
        context, hint = workflow.begin(kind, pipeline)
        self.dispatch(OpenCommandLine(hint=hint, action=context))

    def step_workflow(self, text: str) -> Optional[workflow.Execute]:
        """
        Apply one submission to the active workflow against the current state.

        Re-prompts and stage advances are dispatched here, before the next
        keystroke is read. An ``Execute`` is returned with ``busy`` already set;
        the caller must hand it to ``run_workflow``.
        """
        context = self.state.action
        if context is None:
            return None
        if self.busy:
            log.debug("workflow_busy", extra=log_extra(command=context.kind, item=context.pipeline.name))
            return None
        result = workflow.submit(context, text)
        if isinstance(result, workflow.Reprompt):
            self.dispatch(SetCommandHint(result.hint))
            return None
        if isinstance(result, workflow.Advance):
            self.dispatch(AdvanceAction(result.context, result.hint))
            return None
        self.busy = True
        return result

    async def submit_workflow(self, text: str) -> None:
        result = self.step_workflow(text)
        if result is not None:
            await self.run_workflow(result)

    async def run_workflow(self, result: workflow.Execute) -> None:
        context = result.context
        try:
            await self._execute(result)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            log.error(
                "workflow_failed",
                extra=log_extra(
                    command=context.kind,
                    resource="pipeline",
                    item=context.pipeline.name,
                    error=message,
                    error_type=exc.__class__.__name__,
                ),
            )
            self.dispatch(CloseCommandLine())
            self.post_error(message)
            self.record(
                "Action failed",
                ActivityStatus.ERROR,
                message,
                metadata={"action": context.kind, "pipeline": context.pipeline.name},
            )
        finally:
            self.busy = False

    async def _execute(self, result: workflow.Execute) -> None:
        context, request = result.context, result.request
        name = context.pipeline.name

        if context.kind == workflow.ActionKind.BACKFILL:
            self.post_info("Backfilling pipeline…")
            await asyncio.to_thread(self.resources.backfill_pipeline, name, request)
            self.record(f"Backfill {name}", ActivityStatus.SUCCESS, metadata=request.to_payload())
            log.info("pipeline_backfilled", extra=log_extra(command=context.kind, item=name))
            await self.scheduler.fetch(Tab.PIPELINES)
            self.dispatch(CloseCommandLine())
            self.post_info("Backfill triggered")
        elif context.kind == workflow.ActionKind.DELETE:
            self.post_info("Deleting pipeline…")
            await asyncio.to_thread(self.resources.delete_pipeline, name)
            self.record(f"Deleted {name}", ActivityStatus.SUCCESS)
            log.info("pipeline_deleted", extra=log_extra(command=context.kind, item=name))
            await self.scheduler.fetch(Tab.PIPELINES)
            self.dispatch(CloseCommandLine())
            self.post_info("Pipeline deleted")
        elif context.kind == workflow.ActionKind.TEST:
            self.post_info("Testing pipeline…")
            response = await asyncio.to_thread(self.resources.test_pipeline, name, request)
            self.record(
                f"Test {name}",
                ActivityStatus.SUCCESS,
                metadata={"request": request.to_payload(), "response": response},
            )
            log.info("pipeline_tested", extra=log_extra(command=context.kind, item=name))
            self.dispatch(CloseCommandLine())
            self.post_info("Pipeline test completed")

    # --------------------------------------------------------------- commands

    def execute_command(self, text: str) -> None:
        raw = text.strip()
        try:
            if raw:
                self.dispatch(PushCommandHistory(raw))
                self._run_command(parse_command(raw))
        finally:
            self.dispatch(CloseCommandLine())

    def _run_command(self, command: Command) -> None:
        log.debug("command_executed", extra=log_extra(command=command.__class__.__name__))
        if isinstance(command, RefreshCommand):
            self.spawn(self.refresh_all())
        elif isinstance(command, SetCommand):
            self._apply_setting(command.key, command.value)
        elif isinstance(command, HelpCommand):
            self.dispatch(ToggleHelp(True))
        elif isinstance(command, LogsCommand):
            self._switch_tab(Tab.ACTIVITY)
        elif isinstance(command, FilterCommand):
            if self._check_tab(command.tab):
                self._switch_tab(command.tab)
                self.dispatch(SetSearchQuery(command.tab, command.query))
        elif isinstance(command, ViewCommand):
            if self._check_tab(command.tab):
                self._switch_tab(command.tab)
        elif isinstance(command, QuitCommand):
            self.quit()
        elif isinstance(command, UnknownCommand):
            self.post_error(f"Unknown command: {command.text}")

    def _check_tab(self, tab: str) -> bool:
        if tab in TABS:
            return True
        self.post_error(f"Unknown tab: {tab or '<none>'}")
        return False

    def _switch_tab(self, tab: str) -> None:
        for action in switch_tab(tab):
            self.dispatch(action)

    def _apply_setting(self, key: str, value: str) -> None:
        if key == "refresh":
            try:
                interval = int(value)
            except ValueError:
                interval = 0
            if interval <= 0:
                self.post_error("Refresh must be > 0")
                return
            self.dispatch(SetRefreshInterval(interval))
            self.post_info(f"Refresh interval set to {interval}s")
        elif key == "theme":
            if value not in THEMES:
                self.post_error(f"Theme must be one of {', '.join(THEMES)}")
                return
            self.dispatch(SetTheme(value))
            self.post_info(f"Theme set to {value}")
        elif key == "log-level":
            level = value.lower()
            if level not in LOG_LEVELS:
                self.post_error(f"Log level must be one of {', '.join(LOG_LEVELS)}")
                return
            self.dispatch(SetLogLevel(level))
            set_package_level(level)
            self.post_info(f"Log level set to {level}")
        elif key == "api-key":
            if not value:
                self.post_error("API key required")
                return
            self.resources.api_key = value
            log.info("api_key_updated", extra=log_extra(command="set"))
            self.post_info("API key updated")
        else:
            self.post_error(f"Unknown setting {key or '<none>'}")
