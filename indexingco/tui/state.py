"""
Dashboard state and the reducer that advances it.

Every change to the dashboard goes through ``reduce(state, action)``. The
function is pure: it never performs I/O, never reads the clock and returns a
new ``AppState`` (the previous value is left untouched). Per-tab changes are
funnelled through ``_update_tab`` which re-clamps the selection cursor and the
current search match after every edit.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from indexingco.tui.activity import ActivityEntry, prepend_activity
from indexingco.tui.workflow import ActionContext

COMMAND_HISTORY_LIMIT = 100


class InputMode:
    NORMAL = "NORMAL"
    SEARCH = "SEARCH"
    COMMAND = "COMMAND"


class Tab:
    PIPELINES = "pipelines"
    FILTERS = "filters"
    TRANSFORMATIONS = "transformations"
    ACTIVITY = "activity"


TABS = (Tab.PIPELINES, Tab.FILTERS, Tab.TRANSFORMATIONS, Tab.ACTIVITY)
RESOURCE_TABS = (Tab.PIPELINES, Tab.FILTERS, Tab.TRANSFORMATIONS)


class ViewMode:
    TABLE = "table"
    JSON = "json"


class DetailMode:
    HIDDEN = "hidden"
    SPLIT = "split"
    MODAL = "modal"


class FocusArea:
    SIDEBAR = "sidebar"
    CONTENT = "content"
    DETAIL = "detail"


FOCUS_ORDER = (FocusArea.SIDEBAR, FocusArea.CONTENT, FocusArea.DETAIL)


@dataclass(frozen=True)
class Message:
    kind: str  # "info" | "error"
    text: str

    @classmethod
    def info(cls, text: str) -> "Message":
        return cls("info", text)

    @classmethod
    def error(cls, text: str) -> "Message":
        return cls("error", text)


@dataclass(frozen=True)
class Bookmark:
    tab: str
    index: int


@dataclass(frozen=True)
class TabState:
    items: Tuple[Any, ...] = ()
    is_loading: bool = True
    error: Optional[str] = None
    selected_index: int = 0
    search_query: str = ""
    search_matches: Tuple[int, ...] = ()
    current_match: int = 0
    last_updated: Optional[float] = None


@dataclass(frozen=True)
class AppState:
    mode: str = InputMode.NORMAL
    active_tab: str = Tab.PIPELINES
    view_mode: str = ViewMode.TABLE
    detail_mode: str = DetailMode.SPLIT
    refresh_interval: int = 5
    refresh_countdown: int = 5
    focus: str = FocusArea.CONTENT
    theme: str = "dark"
    log_level: str = "info"
    command_input: str = ""
    command_history: Tuple[str, ...] = ()
    command_cursor: int = -1
    command_hint: Optional[str] = None
    action: Optional[ActionContext] = None
    message: Optional[Message] = None
    show_help: bool = False
    key_buffer: str = ""
    bookmarks: Dict[str, Bookmark] = field(default_factory=dict)
    tab_states: Dict[str, TabState] = field(default_factory=dict)

    def tab(self, name: Optional[str] = None) -> TabState:
        return self.tab_states[name or self.active_tab]

    @property
    def selected_item(self) -> Any:
        current = self.tab()
        if not current.items:
            return None
        return current.items[current.selected_index]


def initial_state(refresh_interval: int = 5, theme: str = "dark", log_level: str = "info") -> AppState:
    tab_states = {tab: TabState() for tab in RESOURCE_TABS}
    tab_states[Tab.ACTIVITY] = TabState(is_loading=False)
    return AppState(
        refresh_interval=refresh_interval,
        refresh_countdown=refresh_interval,
        theme=theme,
        log_level=log_level,
        tab_states=tab_states,
    )


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class Action:
    """Marker base for reducer inputs."""


@dataclass(frozen=True)
class SetMode(Action):
    mode: str


@dataclass(frozen=True)
class SetActiveTab(Action):
    tab: str


@dataclass(frozen=True)
class SetViewMode(Action):
    view: str


@dataclass(frozen=True)
class SetDetailMode(Action):
    detail_mode: str


@dataclass(frozen=True)
class SetRefreshInterval(Action):
    interval: int


@dataclass(frozen=True)
class SetRefreshCountdown(Action):
    countdown: int


@dataclass(frozen=True)
class TickRefresh(Action):
    pass


@dataclass(frozen=True)
class SetFocus(Action):
    focus: str


@dataclass(frozen=True)
class SetTheme(Action):
    theme: str


@dataclass(frozen=True)
class SetLogLevel(Action):
    log_level: str


@dataclass(frozen=True)
class SetCommandInput(Action):
    value: str


@dataclass(frozen=True)
class PushCommandHistory(Action):
    command: str


@dataclass(frozen=True)
class SetCommandCursor(Action):
    cursor: int


@dataclass(frozen=True)
class SetCommandHint(Action):
    hint: Optional[str]


@dataclass(frozen=True)
class OpenCommandLine(Action):
    """Enter COMMAND mode, optionally bound to a guided action."""

    prefill: str = ""
    hint: Optional[str] = None
    action: Optional[ActionContext] = None


@dataclass(frozen=True)
class AdvanceAction(Action):
    """Move the guided action to its next stage and clear the input buffer."""

    action: ActionContext
    hint: Optional[str]


@dataclass(frozen=True)
class CloseCommandLine(Action):
    """Leave COMMAND mode, dropping the buffer, hint and any guided action."""


@dataclass(frozen=True)
class SetMessage(Action):
    message: Optional[Message]


@dataclass(frozen=True)
class ToggleHelp(Action):
    value: Optional[bool] = None


@dataclass(frozen=True)
class SetKeyBuffer(Action):
    value: str


@dataclass(frozen=True)
class UpdateTabItems(Action):
    tab: str
    items: Tuple[Any, ...]
    timestamp: float


@dataclass(frozen=True)
class SetTabLoading(Action):
    tab: str
    is_loading: bool


@dataclass(frozen=True)
class SetTabError(Action):
    tab: str
    error: Optional[str]


@dataclass(frozen=True)
class MoveSelection(Action):
    tab: str
    delta: int


@dataclass(frozen=True)
class SetSelection(Action):
    tab: str
    index: int


@dataclass(frozen=True)
class SetSearchQuery(Action):
    tab: str
    query: str


@dataclass(frozen=True)
class SetCurrentMatch(Action):
    tab: str
    current: int


@dataclass(frozen=True)
class CycleSearchMatch(Action):
    tab: str
    direction: int


@dataclass(frozen=True)
class ClearSearch(Action):
    tab: str


@dataclass(frozen=True)
class AddBookmark(Action):
    key: str
    tab: str
    index: int


@dataclass(frozen=True)
class RemoveBookmark(Action):
    key: str


@dataclass(frozen=True)
class JumpToBookmark(Action):
    key: str


@dataclass(frozen=True)
class AppendActivity(Action):
    entry: ActivityEntry


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def serialize_item(item: Any) -> str:
    """Flatten an item into the lower-cased text that search runs against."""
    if item is None:
        return ""
    if isinstance(item, str):
        return item.lower()
    if isinstance(item, bool):
        return "true" if item else "false"
    if isinstance(item, float) and item.is_integer():
        return str(int(item))
    if isinstance(item, (int, float)):
        return str(item).lower()
    if isinstance(item, (list, tuple)):
        return " ".join(serialize_item(entry) for entry in item)
    if isinstance(item, dict):
        return " ".join(f"{str(key).lower()}:{serialize_item(value)}" for key, value in item.items())
    if dataclasses.is_dataclass(item) and not isinstance(item, type):
        # Unset optional fields are left out, like absent keys in a payload.
        # Keys are written the way the API spells them, lower-cased: created_at -> createdat.
        parts = []
        for fld in dataclasses.fields(item):
            value = getattr(item, fld.name)
            if value is None:
                continue
            parts.append(f"{fld.name.replace('_', '').lower()}:{serialize_item(value)}")
        return " ".join(parts)
    return ""


def compute_search_matches(items: Sequence[Any], query: str) -> Tuple[int, ...]:
    if not query:
        return ()
    needle = query.lower()
    return tuple(index for index, item in enumerate(items) if needle in serialize_item(item))


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------


def clamp_index(index: int, size: int) -> int:
    if size <= 0 or index < 0:
        return 0
    if index >= size:
        return size - 1
    return index


def _normalize(tab_state: TabState) -> TabState:
    selected = clamp_index(tab_state.selected_index, len(tab_state.items))
    current = clamp_index(tab_state.current_match, len(tab_state.search_matches))
    if selected == tab_state.selected_index and current == tab_state.current_match:
        return tab_state
    return dataclasses.replace(tab_state, selected_index=selected, current_match=current)


def _update_tab(state: AppState, tab: str, updater: Callable[[TabState], TabState]) -> AppState:
    tab_states = dict(state.tab_states)
    tab_states[tab] = _normalize(updater(state.tab_states[tab]))
    return dataclasses.replace(state, tab_states=tab_states)


def _replace_tab(**changes: Any) -> Callable[[TabState], TabState]:
    return lambda previous: dataclasses.replace(previous, **changes)


def _update_items(previous: TabState, items: Tuple[Any, ...], timestamp: float) -> TabState:
    matches = compute_search_matches(items, previous.search_query) if previous.search_query else ()
    return dataclasses.replace(
        previous,
        items=items,
        is_loading=False,
        error=None,
        last_updated=timestamp,
        selected_index=clamp_index(previous.selected_index, len(items)),
        search_matches=matches,
    )


def _set_search(previous: TabState, query: str) -> TabState:
    matches = compute_search_matches(previous.items, query)
    selected = matches[0] if matches else previous.selected_index
    return dataclasses.replace(
        previous,
        search_query=query,
        search_matches=matches,
        current_match=0,
        selected_index=selected,
    )


def _cycle_match(previous: TabState, direction: int) -> TabState:
    matches = previous.search_matches
    if not matches:
        return previous
    current = (previous.current_match + direction) % len(matches)
    return dataclasses.replace(previous, current_match=current, selected_index=matches[current])


def _append_activity(previous: TabState, entry: ActivityEntry) -> TabState:
    return dataclasses.replace(
        previous,
        items=prepend_activity(previous.items, entry),
        last_updated=entry.timestamp,
        is_loading=False,
    )


def _jump_to_bookmark(state: AppState, key: str) -> AppState:
    mark = state.bookmarks.get(key)
    if mark is None:
        return dataclasses.replace(state, message=Message.error(f"No mark for '{key}'"))
    moved = dataclasses.replace(state, active_tab=mark.tab, focus=FocusArea.CONTENT)
    return _update_tab(moved, mark.tab, _replace_tab(selected_index=mark.index))


def reduce(state: AppState, action: Action) -> AppState:
    replace = dataclasses.replace

    if isinstance(action, SetMode):
        return replace(state, mode=action.mode)
    if isinstance(action, SetActiveTab):
        return replace(state, active_tab=action.tab)
    if isinstance(action, SetViewMode):
        return replace(state, view_mode=action.view)
    if isinstance(action, SetDetailMode):
        return replace(state, detail_mode=action.detail_mode)
    if isinstance(action, SetRefreshInterval):
        return replace(state, refresh_interval=action.interval, refresh_countdown=action.interval)
    if isinstance(action, SetRefreshCountdown):
        return replace(state, refresh_countdown=max(0, action.countdown))
    if isinstance(action, TickRefresh):
        return replace(state, refresh_countdown=max(0, state.refresh_countdown - 1))
    if isinstance(action, SetFocus):
        return replace(state, focus=action.focus)
    if isinstance(action, SetTheme):
        return replace(state, theme=action.theme)
    if isinstance(action, SetLogLevel):
        return replace(state, log_level=action.log_level)

    if isinstance(action, SetCommandInput):
        return replace(state, command_input=action.value)
    if isinstance(action, PushCommandHistory):
        history = (action.command, *state.command_history)[:COMMAND_HISTORY_LIMIT]
        return replace(state, command_history=history, command_cursor=-1)
    if isinstance(action, SetCommandCursor):
        return replace(state, command_cursor=action.cursor)
    if isinstance(action, SetCommandHint):
        return replace(state, command_hint=action.hint)
    if isinstance(action, OpenCommandLine):
        return replace(
            state,
            mode=InputMode.COMMAND,
            command_input=action.prefill,
            command_hint=action.hint,
            command_cursor=-1,
            action=action.action,
        )
    if isinstance(action, AdvanceAction):
        return replace(state, action=action.action, command_hint=action.hint, command_input="")
    if isinstance(action, CloseCommandLine):
        return replace(
            state,
            mode=InputMode.NORMAL,
            command_input="",
            command_hint=None,
            command_cursor=-1,
            action=None,
        )

    if isinstance(action, SetMessage):
        return replace(state, message=action.message)
    if isinstance(action, ToggleHelp):
        value = (not state.show_help) if action.value is None else action.value
        return replace(state, show_help=value)
    if isinstance(action, SetKeyBuffer):
        return replace(state, key_buffer=action.value)

    if isinstance(action, UpdateTabItems):
        return _update_tab(state, action.tab, lambda prev: _update_items(prev, tuple(action.items), action.timestamp))
    if isinstance(action, SetTabLoading):
        return _update_tab(state, action.tab, _replace_tab(is_loading=action.is_loading))
    if isinstance(action, SetTabError):
        return _update_tab(state, action.tab, _replace_tab(is_loading=False, error=action.error))
    if isinstance(action, MoveSelection):
        return _update_tab(
            state,
            action.tab,
            lambda prev: replace(prev, selected_index=clamp_index(prev.selected_index + action.delta, len(prev.items))),
        )
    if isinstance(action, SetSelection):
        return _update_tab(state, action.tab, _replace_tab(selected_index=action.index))
    if isinstance(action, SetSearchQuery):
        return _update_tab(state, action.tab, lambda prev: _set_search(prev, action.query))
    if isinstance(action, SetCurrentMatch):
        return _update_tab(state, action.tab, _replace_tab(current_match=action.current))
    if isinstance(action, CycleSearchMatch):
        return _update_tab(state, action.tab, lambda prev: _cycle_match(prev, action.direction))
    if isinstance(action, ClearSearch):
        return _update_tab(state, action.tab, _replace_tab(search_query="", search_matches=(), current_match=0))

    if isinstance(action, AddBookmark):
        bookmarks = dict(state.bookmarks)
        bookmarks[action.key] = Bookmark(action.tab, action.index)
        return replace(state, bookmarks=bookmarks)
    if isinstance(action, RemoveBookmark):
        bookmarks = {key: mark for key, mark in state.bookmarks.items() if key != action.key}
        return replace(state, bookmarks=bookmarks)
    if isinstance(action, JumpToBookmark):
        return _jump_to_bookmark(state, action.key)

    if isinstance(action, AppendActivity):
        return _update_tab(state, Tab.ACTIVITY, lambda prev: _append_activity(prev, action.entry))

    return state
