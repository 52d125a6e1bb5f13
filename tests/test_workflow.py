import pytest

from indexingco.domain import Pipeline, PipelineBackfillRequest, PipelineTestRequest
from indexingco.tui import workflow
from indexingco.tui.workflow import ActionKind, Advance, Execute, Reprompt, Stage


@pytest.fixture
def pipeline() -> Pipeline:
    return Pipeline.from_payload({"name": "alpha"})


def test_backfill_walks_network_then_value(pipeline: Pipeline) -> None:
    context, hint = workflow.begin(ActionKind.BACKFILL, pipeline)
    assert context.stage == Stage.NETWORK
    assert hint == workflow.NETWORK_HINT

    assert workflow.submit(context, "   ") == Reprompt("network is required")

    step = workflow.submit(context, " base ")
    assert isinstance(step, Advance)
    assert step.context.stage == Stage.VALUE
    assert step.context.network == "base"
    assert step.hint == workflow.VALUE_HINT

    assert workflow.submit(step.context, "") == Reprompt("value is required")
    done = workflow.submit(step.context, "0xabc")
    assert isinstance(done, Execute)
    assert done.request == PipelineBackfillRequest(network="base", value="0xabc")
    assert done.context.pipeline is pipeline


@pytest.mark.parametrize("answer", ["no", "y", "", "yes please"])
def test_delete_rejects_anything_but_yes(pipeline: Pipeline, answer: str) -> None:
    context, hint = workflow.begin(ActionKind.DELETE, pipeline)
    assert context.stage == Stage.CONFIRM
    assert hint == workflow.CONFIRM_HINT
    assert workflow.submit(context, answer) == Reprompt("type 'yes' to confirm")


@pytest.mark.parametrize("answer", ["yes", "YES", " Yes "])
def test_delete_confirms_case_insensitively(pipeline: Pipeline, answer: str) -> None:
    context, _ = workflow.begin(ActionKind.DELETE, pipeline)
    assert workflow.submit(context, answer) == Execute(context, None)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("beat:123", PipelineTestRequest(network="base", beat="123")),
        ("hash:0xdead", PipelineTestRequest(network="base", hash="0xdead")),
        ("0xBEEF", PipelineTestRequest(network="base", hash="0xBEEF")),
        ("42", PipelineTestRequest(network="base", beat="42")),
    ],
)
def test_test_target_parsing(pipeline: Pipeline, text: str, expected: PipelineTestRequest) -> None:
    context, _ = workflow.begin(ActionKind.TEST, pipeline)
    step = workflow.submit(context, "base")
    assert isinstance(step, Advance)
    assert step.context.stage == Stage.TARGET
    assert step.hint == workflow.TARGET_HINT
    done = workflow.submit(step.context, text)
    assert isinstance(done, Execute)
    assert done.request == expected


@pytest.mark.parametrize(
    "text,hint",
    [
        ("latest", "prefix with beat: or hash:"),
        ("beat:", "beat value required"),
        ("hash:  ", "hash value required"),
    ],
)
def test_test_target_reprompts(text: str, hint: str) -> None:
    assert workflow.parse_test_target("base", text) == Reprompt(hint)


def test_unknown_kind_is_rejected(pipeline: Pipeline) -> None:
    with pytest.raises(ValueError):
        workflow.begin("pipeline-pause", pipeline)
