import logging

import pytest

from indexingco.cli.client import APIClientError
from indexingco.domain import PipelineBackfillRequest, PipelineTestRequest
from indexingco.tui import workflow
from indexingco.tui.activity import ActivityStatus
from indexingco.tui.controller import DashboardController
from indexingco.tui.dispatcher import KeyPress
from indexingco.tui.state import (
    FocusArea,
    InputMode,
    Message,
    SetCommandInput,
    Tab,
    UpdateTabItems,
    initial_state,
)

ENTER = KeyPress("enter", "\r")


def char(ch: str) -> KeyPress:
    return KeyPress(ch, ch)


@pytest.fixture
def controller(resources, schedule) -> DashboardController:
    quits = []
    ctl = DashboardController(resources, initial_state(refresh_interval=3), schedule=schedule, on_quit=lambda: quits.append(True))
    ctl.dispatch(UpdateTabItems(Tab.PIPELINES, resources.pipelines, 1.0))
    ctl.quits = quits  # type: ignore[attr-defined]
    return ctl


def activity_titles(ctl: DashboardController):
    return [entry.title for entry in ctl.state.tab(Tab.ACTIVITY).items]


# ----------------------------------------------------------------------- keys


def test_listeners_see_every_transition(controller: DashboardController) -> None:
    seen = []
    controller.subscribe(lambda state: seen.append(state.tab().selected_index))
    controller.handle_key(char("j"))
    controller.handle_key(char("j"))
    assert seen == [1, 2]


def test_chord_timer_expires_pending_prefix(controller: DashboardController, schedule) -> None:
    controller.handle_key(char("g"))
    assert controller.state.key_buffer == "g"
    (timer,) = schedule.timers
    assert timer.delay == pytest.approx(0.6)

    timer.fire()
    assert controller.state.key_buffer == ""
    controller.handle_key(char("g"))
    assert controller.state.key_buffer == "g"


def test_completed_chord_cancels_timer(controller: DashboardController, schedule) -> None:
    controller.handle_key(char("G"))
    assert controller.state.tab().selected_index == 2
    controller.handle_key(char("g"))
    controller.handle_key(char("g"))
    assert controller.state.tab().selected_index == 0
    assert controller.state.key_buffer == ""
    assert schedule.timers[0].cancelled is True


def test_quit_with_pending_mark_prefix(controller: DashboardController, schedule) -> None:
    controller.handle_key(char("m"))
    controller.handle_key(char("q"))
    assert controller.quits == [True]  # type: ignore[attr-defined]
    assert controller.state.key_buffer == ""
    assert controller.state.bookmarks == {}
    assert schedule.timers[0].cancelled is True


def test_bookmark_round_trip_through_keys(controller: DashboardController) -> None:
    controller.handle_key(char("j"))
    for ch in "ma":
        controller.handle_key(char(ch))
    assert controller.state.message == Message.info("Saved mark 'a'")
    for ch in "gf":
        controller.handle_key(char(ch))
    assert controller.state.active_tab == Tab.FILTERS
    for ch in "'a":
        controller.handle_key(char(ch))
    assert controller.state.active_tab == Tab.PIPELINES
    assert controller.state.tab().selected_index == 1


def test_quit_key_calls_back(controller: DashboardController) -> None:
    controller.handle_key(KeyPress("ctrl+c"))
    assert controller.quit_requested is True
    assert controller.quits == [True]  # type: ignore[attr-defined]


# ------------------------------------------------------------------- workflow


def test_workflow_requires_a_pipeline(resources, schedule) -> None:
    ctl = DashboardController(resources, initial_state(), schedule=schedule)
    ctl.handle_key(char("b"))
    assert ctl.state.message == Message.error("Select a pipeline first")
    assert ctl.state.mode == InputMode.NORMAL


def test_begin_workflow_opens_command_line(controller: DashboardController) -> None:
    controller.handle_key(char("j"))
    controller.handle_key(char("D"))
    state = controller.state
    assert state.mode == InputMode.COMMAND
    assert state.action.kind == workflow.ActionKind.DELETE
    assert state.action.pipeline.name == "beta"
    assert state.command_hint == workflow.CONFIRM_HINT


@pytest.mark.asyncio
async def test_backfill_flow(controller: DashboardController, resources) -> None:
    controller.begin_workflow(workflow.ActionKind.BACKFILL)
    await controller.submit_workflow("")
    assert controller.state.command_hint == "network is required"

    await controller.submit_workflow("base")
    assert controller.state.action.stage == workflow.Stage.VALUE
    assert controller.state.command_input == ""

    await controller.submit_workflow("0xabc")
    assert resources.calls.count(
        ("backfill_pipeline", "alpha", PipelineBackfillRequest(network="base", value="0xabc"))
    ) == 1
    assert resources.count("list_pipelines") == 1
    assert controller.state.mode == InputMode.NORMAL
    assert controller.state.action is None
    assert controller.state.message == Message.info("Backfill triggered")
    assert activity_titles(controller)[:2] == ["Synced pipelines", "Backfill alpha"]
    backfill = controller.state.tab(Tab.ACTIVITY).items[1]
    assert backfill.metadata == {"network": "base", "value": "0xabc"}
    assert controller.busy is False


@pytest.mark.asyncio
async def test_delete_flow_reprompts_until_yes(controller: DashboardController, resources) -> None:
    controller.begin_workflow(workflow.ActionKind.DELETE)
    await controller.submit_workflow("nope")
    assert controller.state.command_hint == "type 'yes' to confirm"
    assert resources.count("delete_pipeline") == 0

    await controller.submit_workflow("YES")
    assert resources.calls.count(("delete_pipeline", "alpha")) == 1
    assert controller.state.message == Message.info("Pipeline deleted")
    assert "Deleted alpha" in activity_titles(controller)


@pytest.mark.asyncio
async def test_test_flow_records_request_and_response(controller: DashboardController, resources) -> None:
    controller.begin_workflow(workflow.ActionKind.TEST)
    await controller.submit_workflow("base")
    await controller.submit_workflow("latest")
    assert controller.state.command_hint == "prefix with beat: or hash:"
    await controller.submit_workflow("beat:99")

    assert resources.calls == [("test_pipeline", "alpha", PipelineTestRequest(network="base", beat="99"))]
    entry = controller.state.tab(Tab.ACTIVITY).items[0]
    assert entry.title == "Test alpha"
    assert entry.metadata == {"request": {"network": "base", "beat": "99"}, "response": {"result": "ok"}}
    assert controller.state.message == Message.info("Pipeline test completed")


@pytest.mark.asyncio
async def test_failed_action_is_reported(controller: DashboardController, resources) -> None:
    resources.failures["delete_pipeline"] = APIClientError("500 Internal Server Error: boom")
    controller.begin_workflow(workflow.ActionKind.DELETE)
    await controller.submit_workflow("yes")

    state = controller.state
    assert state.mode == InputMode.NORMAL
    assert state.action is None
    assert state.message == Message.error("500 Internal Server Error: boom")
    entry = state.tab(Tab.ACTIVITY).items[0]
    assert (entry.title, entry.status) == ("Action failed", ActivityStatus.ERROR)
    assert resources.count("list_pipelines") == 0
    assert controller.busy is False


@pytest.mark.asyncio
async def test_double_enter_issues_one_mutation(controller: DashboardController, resources) -> None:
    controller.begin_workflow(workflow.ActionKind.DELETE)
    controller.dispatch(SetCommandInput("yes"))
    controller.handle_key(ENTER)
    controller.handle_key(ENTER)
    await controller.drain()
    assert resources.count("delete_pipeline") == 1


@pytest.mark.asyncio
async def test_double_enter_at_network_stage_only_advances(controller: DashboardController, resources) -> None:
    controller.begin_workflow(workflow.ActionKind.BACKFILL)
    controller.dispatch(SetCommandInput("base"))
    controller.handle_key(ENTER)
    controller.handle_key(ENTER)
    await controller.drain()

    assert resources.count("backfill_pipeline") == 0
    state = controller.state
    assert state.action.stage == workflow.Stage.VALUE
    assert state.action.network == "base"
    assert state.command_hint == "value is required"

    controller.dispatch(SetCommandInput("0xabc"))
    controller.handle_key(ENTER)
    await controller.drain()
    assert resources.calls.count(
        ("backfill_pipeline", "alpha", PipelineBackfillRequest(network="base", value="0xabc"))
    ) == 1
    assert resources.count("backfill_pipeline") == 1


@pytest.mark.asyncio
async def test_submission_ignored_while_busy(controller: DashboardController, resources) -> None:
    controller.begin_workflow(workflow.ActionKind.DELETE)
    controller.busy = True
    await controller.submit_workflow("yes")
    assert resources.calls == []
    assert controller.state.action is not None


@pytest.mark.asyncio
async def test_escape_aborts_workflow_without_calls(controller: DashboardController, resources) -> None:
    controller.begin_workflow(workflow.ActionKind.BACKFILL)
    await controller.submit_workflow("base")
    controller.handle_key(KeyPress("escape", "\x1b"))
    await controller.drain()
    assert controller.state.mode == InputMode.NORMAL
    assert controller.state.action is None
    assert resources.calls == []


# ------------------------------------------------------------------- commands


def test_set_refresh(controller: DashboardController) -> None:
    controller.execute_command("set refresh 10")
    state = controller.state
    assert (state.refresh_interval, state.refresh_countdown) == (10, 10)
    assert state.mode == InputMode.NORMAL
    assert state.command_history[0] == "set refresh 10"


@pytest.mark.parametrize("value", ["0", "-2", "soon", ""])
def test_set_refresh_rejects_non_positive(controller: DashboardController, value: str) -> None:
    controller.execute_command(f"set refresh {value}")
    assert controller.state.message == Message.error("Refresh must be > 0")
    assert controller.state.refresh_interval == 3


def test_set_theme(controller: DashboardController) -> None:
    controller.execute_command("set theme mono")
    assert controller.state.theme == "mono"
    controller.execute_command("set theme neon")
    assert controller.state.theme == "mono"
    assert controller.state.message.kind == "error"


def test_set_log_level_adjusts_package_logger(controller: DashboardController) -> None:
    logger = logging.getLogger("indexingco")
    previous = logger.level
    try:
        controller.execute_command("set log-level DEBUG")
        assert controller.state.log_level == "debug"
        assert logger.level == logging.DEBUG
        controller.execute_command("set log-level loud")
        assert controller.state.log_level == "debug"
        assert controller.state.message.kind == "error"
    finally:
        logger.setLevel(previous)


def test_set_api_key_updates_client(controller: DashboardController, resources) -> None:
    controller.handle_key(char("K"))
    assert controller.state.command_input == "set api-key "
    for ch in "new key":
        controller.handle_key(char(ch))
    controller.handle_key(ENTER)
    assert resources.api_key == "new key"
    assert controller.state.message == Message.info("API key updated")
    assert controller.state.mode == InputMode.NORMAL


def test_unknown_setting_and_command(controller: DashboardController) -> None:
    controller.execute_command("set colour red")
    assert controller.state.message == Message.error("Unknown setting colour")
    controller.execute_command("deploy")
    assert controller.state.message == Message.error("Unknown command: deploy")
    assert controller.state.mode == InputMode.NORMAL


def test_view_filter_and_logs_commands(controller: DashboardController) -> None:
    controller.dispatch(UpdateTabItems(Tab.FILTERS, (), 1.0))
    controller.execute_command("view filters")
    assert controller.state.active_tab == Tab.FILTERS
    assert controller.state.focus == FocusArea.CONTENT

    controller.execute_command("filter pipelines gamma")
    assert controller.state.active_tab == Tab.PIPELINES
    assert controller.state.tab().search_query == "gamma"
    assert controller.state.tab().selected_index == 2

    controller.execute_command("logs")
    assert controller.state.active_tab == Tab.ACTIVITY

    controller.execute_command("view nowhere")
    assert controller.state.message == Message.error("Unknown tab: nowhere")
    assert controller.state.active_tab == Tab.ACTIVITY


def test_help_and_quit_commands(controller: DashboardController) -> None:
    controller.execute_command("help")
    assert controller.state.show_help is True
    controller.execute_command("q")
    assert controller.quit_requested is True


def test_empty_command_just_closes(controller: DashboardController) -> None:
    controller.handle_key(char(":"))
    controller.handle_key(ENTER)
    assert controller.state.mode == InputMode.NORMAL
    assert controller.state.command_history == ()
    assert controller.state.message is None


@pytest.mark.asyncio
async def test_refresh_command_fetches_everything(controller: DashboardController, resources) -> None:
    controller.execute_command("refresh")
    await controller.drain()
    assert resources.count("list_pipelines") == 1
    assert resources.count("list_filters") == 1
    assert resources.count("list_transformations") == 1


@pytest.mark.asyncio
async def test_tick_to_zero_triggers_refresh(controller: DashboardController, resources) -> None:
    controller.tick()
    controller.tick()
    await controller.drain()
    assert resources.calls == []
    controller.tick()
    await controller.drain()
    assert resources.count("list_pipelines") == 1
    assert controller.state.refresh_countdown == 3
