"""
Keystroke interpretation.

``interpret_key`` turns one keystroke into the list of events it causes,
given the current state. Events are either reducer actions (applied in
order by the controller) or intents for work the reducer cannot do itself:
network refreshes, guided action submissions, command execution and quit.
The dispatcher never mutates state.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Union

from indexingco.tui.state import (
    Action,
    AddBookmark,
    AppState,
    ClearSearch,
    CloseCommandLine,
    CycleSearchMatch,
    DetailMode,
    FOCUS_ORDER,
    FocusArea,
    InputMode,
    JumpToBookmark,
    Message,
    MoveSelection,
    OpenCommandLine,
    SetActiveTab,
    SetCommandCursor,
    SetCommandInput,
    SetDetailMode,
    SetFocus,
    SetKeyBuffer,
    SetMessage,
    SetMode,
    SetSearchQuery,
    SetSelection,
    SetViewMode,
    TABS,
    Tab,
    ToggleHelp,
    ViewMode,
)
from indexingco.tui.workflow import ActionKind

PAGE_SIZE = 10
CHORD_TIMEOUT_SECONDS = 0.6

CHORD_GOTO = "g"
CHORD_MARK = "m"
CHORD_JUMP = "'"

GOTO_TABS = {"p": Tab.PIPELINES, "f": Tab.FILTERS, "t": Tab.TRANSFORMATIONS, "a": Tab.ACTIVITY}
PIPELINE_ACTIONS = {"b": ActionKind.BACKFILL, "t": ActionKind.TEST, "D": ActionKind.DELETE}

_MARK_KEY = re.compile(r"^[a-z0-9]$", re.IGNORECASE)


@dataclass(frozen=True)
class KeyPress:
    """A keystroke as reported by the terminal: key name plus printable character."""

    key: str
    character: Optional[str] = None

    @property
    def char(self) -> Optional[str]:
        ch = self.character
        if ch and len(ch) == 1 and ch.isprintable():
            return ch
        return None


@dataclass(frozen=True)
class RefreshAll:
    pass


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class BeginWorkflow:
    kind: str


@dataclass(frozen=True)
class SubmitWorkflow:
    text: str


@dataclass(frozen=True)
class ExecuteCommand:
    text: str


Intent = Union[RefreshAll, Quit, BeginWorkflow, SubmitWorkflow, ExecuteCommand]
Event = Union[Action, Intent]


def switch_tab(tab: str) -> List[Event]:
    return [SetActiveTab(tab), SetFocus(FocusArea.CONTENT)]


def interpret_key(state: AppState, press: KeyPress) -> List[Event]:
    if press.key == "ctrl+c":
        return [Quit()]
    if state.show_help and press.key == "escape":
        return [ToggleHelp(False)]
    if state.detail_mode == DetailMode.MODAL and press.key == "escape":
        return [SetDetailMode(DetailMode.SPLIT)]
    if state.mode == InputMode.COMMAND:
        return _command_mode(state, press)
    if state.mode == InputMode.SEARCH:
        return _search_mode(state, press)
    return _normal_mode(state, press)


def _edit_buffer(value: str, press: KeyPress) -> Optional[str]:
    if press.key == "backspace":
        return value[:-1]
    if press.char is not None:
        return value + press.char
    return None


def _command_mode(state: AppState, press: KeyPress) -> List[Event]:
    if press.key == "enter":
        if state.action is not None:
            return [SubmitWorkflow(state.command_input)]
        return [ExecuteCommand(state.command_input)]
    if press.key == "escape":
        return [CloseCommandLine()]
    if state.action is None and press.key in ("up", "down"):
        return _browse_history(state, press.key == "up")
    edited = _edit_buffer(state.command_input, press)
    if edited is None or edited == state.command_input:
        return []
    return [SetCommandInput(edited)]


def _browse_history(state: AppState, older: bool) -> List[Event]:
    history = state.command_history
    if older:
        cursor = min(len(history) - 1, state.command_cursor + 1)
        if cursor < 0:
            return []
        return [SetCommandCursor(cursor), SetCommandInput(history[cursor])]
    cursor = max(-1, state.command_cursor - 1)
    return [SetCommandCursor(cursor), SetCommandInput(history[cursor] if cursor >= 0 else "")]


def _search_mode(state: AppState, press: KeyPress) -> List[Event]:
    tab = state.active_tab
    if press.key == "enter":
        return [SetMode(InputMode.NORMAL)]
    if press.key == "escape":
        return [ClearSearch(tab), SetMode(InputMode.NORMAL)]
    query = state.tab(tab).search_query
    edited = _edit_buffer(query, press)
    if edited is None or edited == query:
        return []
    return [SetSearchQuery(tab, edited)]


def _resolve_chord(state: AppState, press: KeyPress) -> List[Event]:
    pending = state.key_buffer
    ch = press.char
    events: List[Event] = [SetKeyBuffer("")]
    tab = state.active_tab
    if pending == CHORD_GOTO:
        if ch == "g":
            events.append(SetSelection(tab, 0))
        elif ch in GOTO_TABS:
            events.extend(switch_tab(GOTO_TABS[ch]))
    elif pending == CHORD_MARK:
        if ch and _MARK_KEY.match(ch):
            events.append(AddBookmark(ch, tab, state.tab(tab).selected_index))
            events.append(SetMessage(Message.info(f"Saved mark '{ch}'")))
    elif pending == CHORD_JUMP:
        if ch and _MARK_KEY.match(ch):
            events.append(JumpToBookmark(ch))
    return events


def _cycle_focus(state: AppState, direction: int) -> List[Event]:
    index = FOCUS_ORDER.index(state.focus)
    return [SetFocus(FOCUS_ORDER[(index + direction) % len(FOCUS_ORDER)])]


def _normal_mode(state: AppState, press: KeyPress) -> List[Event]:
    ch = press.char
    tab = state.active_tab

    if ch == "q":
        return [SetKeyBuffer(""), Quit()] if state.key_buffer else [Quit()]
    if state.key_buffer:
        return _resolve_chord(state, press)

    if press.key == "tab":
        return _cycle_focus(state, 1)
    if press.key == "shift+tab":
        return _cycle_focus(state, -1)

    if ch == "K":
        return [OpenCommandLine(prefill="set api-key ", hint="enter API key and press enter")]
    if ch == ":":
        return [OpenCommandLine()]
    if ch == "/":
        return [SetMode(InputMode.SEARCH), ClearSearch(tab)]
    if ch == "?":
        return [ToggleHelp(True)]
    if ch == "r":
        return [RefreshAll()]
    if ch == "v":
        view = ViewMode.JSON if state.view_mode == ViewMode.TABLE else ViewMode.TABLE
        return [SetViewMode(view)]
    if ch == "d" and state.focus != FocusArea.SIDEBAR:
        detail = DetailMode.SPLIT if state.detail_mode == DetailMode.HIDDEN else DetailMode.HIDDEN
        return [SetDetailMode(detail)]
    if tab == Tab.PIPELINES and ch in PIPELINE_ACTIONS:
        return [BeginWorkflow(PIPELINE_ACTIONS[ch])]

    if ch in (CHORD_GOTO, CHORD_MARK, CHORD_JUMP):
        return [SetKeyBuffer(ch)]
    if ch == "G":
        return [SetSelection(tab, len(state.tab(tab).items) - 1)]
    if ch == "n":
        return [CycleSearchMatch(tab, 1)]
    if ch == "N":
        return [CycleSearchMatch(tab, -1)]

    down = ch == "j" or press.key == "down"
    up = ch == "k" or press.key == "up"

    if state.focus == FocusArea.SIDEBAR:
        if down or up:
            index = TABS.index(tab)
            step = 1 if down else -1
            return [SetActiveTab(TABS[(index + step) % len(TABS)])]
        return []

    if state.focus == FocusArea.CONTENT:
        if down:
            return [MoveSelection(tab, 1)]
        if up:
            return [MoveSelection(tab, -1)]
        if press.key in ("pagedown", "ctrl+f"):
            return [MoveSelection(tab, PAGE_SIZE)]
        if press.key in ("pageup", "ctrl+b"):
            return [MoveSelection(tab, -PAGE_SIZE)]
        if press.key == "enter":
            return [SetDetailMode(DetailMode.MODAL)]
    return []
