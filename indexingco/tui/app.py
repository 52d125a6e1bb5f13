"""
Textual front end for the dashboard.

The widgets here hold no state of their own. Every keystroke is forwarded to
the ``DashboardController`` and every widget is re-rendered from the
resulting ``AppState`` after each transition.
"""

import dataclasses
import json
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from rich.console import Group, RenderableType
from rich.json import JSON
from rich.table import Table
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Static

from indexingco.config import Config, mask_api_key
from indexingco.logging import get_logger, log_extra
from indexingco.tui.activity import ActivityEntry
from indexingco.tui.controller import DashboardController
from indexingco.tui.dispatcher import KeyPress
from indexingco.tui.state import (
    AppState,
    DetailMode,
    FocusArea,
    InputMode,
    RESOURCE_TABS,
    TABS,
    Tab,
    TabState,
    ViewMode,
    initial_state,
)
from indexingco.tui.theme import palette

log = get_logger(__name__)

VISIBLE_ROWS = 30

HELP_TEXT = (
    "Navigation\n"
    "  tab / shift+tab   cycle focus (sidebar, content, detail)\n"
    "  j k / arrows      move selection, or switch tab from the sidebar\n"
    "  ctrl+f ctrl+b     page down / up\n"
    "  gg G              first / last row\n"
    "  gp gf gt ga       jump to pipelines / filters / transformations / activity\n"
    "  enter             open detail      esc  close detail or help\n"
    "  v                 table / json     d    toggle detail pane\n"
    "Search and marks\n"
    "  /                 search           n N  next / previous match\n"
    "  m<key>            save mark        '<key>  jump to mark\n"
    "Pipelines\n"
    "  b                 backfill         t    test         D  delete\n"
    "Commands\n"
    "  :refresh  :set refresh|theme|log-level|api-key <value>  :help  :logs\n"
    "  :filter <tab> <query>  :view <tab>  :quit\n"
    "  r refresh   K set API key   ? help   q quit"
)

COLUMNS: Dict[str, Tuple[str, ...]] = {
    Tab.PIPELINES: ("Name", "Status", "Transformation", "Filter", "Networks"),
    Tab.FILTERS: ("Name", "Values", "Count"),
    Tab.TRANSFORMATIONS: ("Name", "Status", "Version", "Language"),
    Tab.ACTIVITY: ("Time", "Source", "Title", "Status", "Message"),
}


def format_ts(ts: Optional[float]) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts).strftime("%H:%M:%S")


def item_payload(item: Any) -> Any:
    raw = getattr(item, "raw", None)
    if raw is not None:
        return raw
    if dataclasses.is_dataclass(item) and not isinstance(item, type):
        return dataclasses.asdict(item)
    return item


def row_cells(tab: str, item: Any) -> List[str]:
    if tab == Tab.PIPELINES:
        return [
            item.name,
            item.status or "-",
            item.transformation or "-",
            item.filter or "-",
            ", ".join(item.networks) or "-",
        ]
    if tab == Tab.FILTERS:
        preview = ", ".join(item.values[:3])
        if len(item.values) > 3:
            preview += ", …"
        return [item.name, preview or "-", str(len(item.values))]
    if tab == Tab.TRANSFORMATIONS:
        return [item.name, item.status or "-", item.version or "-", item.language or "-"]
    if isinstance(item, ActivityEntry):
        return [format_ts(item.timestamp), item.source, item.title, item.status, item.message or ""]
    return [str(item)]


def visible_window(selected: int, size: int, height: int = VISIBLE_ROWS) -> Tuple[int, int]:
    """Slice bounds that keep ``selected`` on screen."""
    if size <= height:
        return 0, size
    start = max(0, min(selected - height // 2, size - height))
    return start, start + height


def render_header(state: AppState, api_key: Optional[str]) -> RenderableType:
    colors = palette(state.theme)
    counts = " ".join(f"{tab} {len(state.tab(tab).items)}" for tab in RESOURCE_TABS)
    text = Text()
    text.append(" Indexing Co ", style=f"bold {colors['accent']}")
    text.append(f"key {mask_api_key(api_key)}  ", style=colors["muted"])
    text.append(f"refresh in {state.refresh_countdown}s  ", style=colors["text"])
    text.append(counts, style=colors["muted"])
    return text


def render_message(state: AppState) -> RenderableType:
    if state.message is None:
        return Text("")
    colors = palette(state.theme)
    style = colors["error"] if state.message.kind == "error" else colors["success"]
    return Text(state.message.text, style=style)


def render_sidebar(state: AppState) -> RenderableType:
    colors = palette(state.theme)
    text = Text()
    for tab in TABS:
        tab_state = state.tab(tab)
        marker = "›" if tab == state.active_tab else " "
        label = f"{marker} {tab} ({len(tab_state.items)})"
        if tab_state.is_loading:
            label += " …"
        elif tab_state.error:
            label += " !"
        style = f"bold {colors['accent']}" if tab == state.active_tab else colors["text"]
        text.append(label + "\n", style=style)
    if state.focus == FocusArea.SIDEBAR:
        text.append("\n[focus]", style=colors["muted"])
    return text


def _render_table(state: AppState, tab: str, tab_state: TabState) -> RenderableType:
    colors = palette(state.theme)
    table = Table(expand=True, header_style=f"bold {colors['accent']}", show_edge=False)
    for column in COLUMNS[tab]:
        table.add_column(column, overflow="ellipsis", no_wrap=True)
    matches = set(tab_state.search_matches)
    start, end = visible_window(tab_state.selected_index, len(tab_state.items))
    for index in range(start, end):
        item = tab_state.items[index]
        style = None
        if index == tab_state.selected_index:
            style = "reverse"
        elif index in matches:
            style = colors["warning"]
        elif isinstance(item, ActivityEntry) and item.status == "error":
            style = colors["error"]
        table.add_row(*row_cells(tab, item), style=style)
    return table


def render_content(state: AppState) -> RenderableType:
    colors = palette(state.theme)
    tab = state.active_tab
    tab_state = state.tab(tab)
    parts: List[RenderableType] = []
    status = f"{tab} • updated {format_ts(tab_state.last_updated)}"
    if tab_state.search_query:
        status += f" • /{tab_state.search_query} ({len(tab_state.search_matches)} matches)"
    parts.append(Text(status, style=colors["muted"]))
    if tab_state.error:
        parts.append(Text(f"Error: {tab_state.error}", style=colors["error"]))
    if tab_state.is_loading and not tab_state.items:
        parts.append(Text("Loading…", style=colors["muted"]))
    elif not tab_state.items:
        parts.append(Text("No items", style=colors["muted"]))
    elif state.view_mode == ViewMode.JSON:
        payload = [item_payload(item) for item in tab_state.items]
        parts.append(JSON(json.dumps(payload, default=str)))
    else:
        parts.append(_render_table(state, tab, tab_state))
    return Group(*parts)


def render_detail(state: AppState) -> RenderableType:
    item = state.selected_item
    if item is None:
        return Text("Nothing selected", style=palette(state.theme)["muted"])
    return JSON(json.dumps(item_payload(item), default=str))


def render_command_bar(state: AppState) -> RenderableType:
    colors = palette(state.theme)
    if state.mode == InputMode.SEARCH:
        return Text(f"/{state.tab().search_query}", style=colors["accent"])
    if state.mode == InputMode.COMMAND:
        text = Text(f":{state.command_input}", style=colors["accent"])
        if state.command_hint:
            text.append(f"   {state.command_hint}", style=colors["muted"])
        return text
    return Text("")


def render_footer(state: AppState) -> RenderableType:
    colors = palette(state.theme)
    text = Text(f" {state.mode} ", style=f"reverse {colors['accent']}")
    text.append(f" focus {state.focus} • view {state.view_mode} • theme {state.theme}", style=colors["muted"])
    if state.key_buffer:
        text.append(f" • {state.key_buffer}…", style=colors["warning"])
    text.append("  ? help  q quit", style=colors["muted"])
    return text


class IndexingcoDashboard(App):
    CSS = """
    Screen { layout: vertical; }
    #header, #message, #command, #footer { height: 1; padding: 0 1; }
    #body { height: 1fr; }
    #sidebar { width: 26; padding: 0 1; border-right: solid $surface-darken-2; }
    #content { width: 1fr; padding: 0 1; }
    #detail { width: 40%; padding: 0 1; border-left: solid $surface-darken-2; }
    #detail.modal { width: 1fr; border-left: none; }
    #help { height: auto; padding: 1 2; border: tall $primary 30%; }
    """

    BINDINGS = [
        Binding("tab", "forward_key('tab')", "Next focus", show=False, priority=True),
        Binding("shift+tab", "forward_key('shift+tab')", "Previous focus", show=False, priority=True),
        Binding("ctrl+c", "forward_key('ctrl+c')", "Quit", show=False, priority=True),
    ]
    TITLE = "Indexing Co"

    def __init__(self, resources: Any, config: Config) -> None:
        super().__init__()
        self.resources = resources
        state = initial_state(config.refresh_interval, config.theme, config.log_level)
        self.controller = DashboardController(resources, state, on_quit=self.exit)

    def compose(self) -> ComposeResult:
        yield Static("", id="header")
        yield Static("", id="message")
        with Horizontal(id="body"):
            yield Static("", id="sidebar")
            yield Static("", id="content")
            yield Static("", id="detail")
        yield Static(HELP_TEXT, id="help")
        yield Static("", id="command")
        yield Static("", id="footer")

    async def on_mount(self) -> None:
        self.controller.subscribe(self.render_state)
        self.render_state(self.controller.state)
        self.set_interval(1.0, self.controller.tick)
        self.controller.spawn(self.controller.refresh_all())
        log.info("tui_start", extra=log_extra(command="tui"))

    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        self.controller.handle_key(KeyPress(event.key, event.character))

    def action_forward_key(self, key: str) -> None:
        self.controller.handle_key(KeyPress(key))

    def _static(self, widget_id: str) -> Static:
        return self.query_one(f"#{widget_id}", Static)

    def render_state(self, state: AppState) -> None:
        self._static("header").update(render_header(state, self.resources.api_key))
        self._static("message").update(render_message(state))
        self._static("command").update(render_command_bar(state))
        self._static("footer").update(render_footer(state))

        sidebar = self._static("sidebar")
        content = self._static("content")
        detail = self._static("detail")
        modal = state.detail_mode == DetailMode.MODAL
        sidebar.display = not modal
        content.display = not modal
        detail.display = state.detail_mode != DetailMode.HIDDEN
        detail.set_class(modal, "modal")
        sidebar.update(render_sidebar(state))
        content.update(render_content(state))
        if detail.display:
            detail.update(render_detail(state))
        self._static("help").display = state.show_help


def run_tui(config: Config, resources: Any) -> None:
    if not sys.stdin.isatty() or not sys.stdout.isatty():  # pragma: no cover - runtime guard
        print("The dashboard requires a TTY. Run it from an interactive terminal or use the CLI subcommands.", file=sys.stderr)
        raise SystemExit(1)
    app = IndexingcoDashboard(resources, config)
    app.run()


__all__ = ["IndexingcoDashboard", "run_tui", "render_content", "row_cells", "visible_window"]
