"""
Guided multi-step actions on the selected pipeline.

A guided action runs inside COMMAND mode. Each submission of the command
buffer is fed to ``submit`` together with the current ``ActionContext``; the
result tells the caller to re-prompt, advance to the next stage, or execute
the mutating call. Nothing here performs I/O so every branch can be driven
from tests without a terminal or a network.
"""

import re
from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from indexingco.domain import Pipeline, PipelineBackfillRequest, PipelineTestRequest


class ActionKind:
    BACKFILL = "pipeline-backfill"
    DELETE = "pipeline-delete"
    TEST = "pipeline-test"


class Stage:
    NETWORK = "network"
    VALUE = "value"
    TARGET = "target"
    CONFIRM = "confirm"


NETWORK_HINT = "network (e.g. base)"
VALUE_HINT = "value (address or hash)"
TARGET_HINT = "beat:<n> or hash:<value>"
CONFIRM_HINT = "type 'yes' to delete"

_HEX_PREFIX = re.compile(r"^0x", re.IGNORECASE)
_DIGITS = re.compile(r"^\d+$")


@dataclass(frozen=True)
class ActionContext:
    kind: str
    pipeline: Pipeline
    stage: str
    network: Optional[str] = None


@dataclass(frozen=True)
class Reprompt:
    """Input rejected; stay on the current stage and show ``hint``."""

    hint: str


@dataclass(frozen=True)
class Advance:
    context: ActionContext
    hint: str


@dataclass(frozen=True)
class Execute:
    """All inputs collected; ``request`` is None for deletes."""

    context: ActionContext
    request: Union[PipelineBackfillRequest, PipelineTestRequest, None]


StepResult = Union[Reprompt, Advance, Execute]


def begin(kind: str, pipeline: Pipeline) -> Tuple[ActionContext, str]:
    if kind == ActionKind.BACKFILL:
        return ActionContext(kind, pipeline, Stage.NETWORK), NETWORK_HINT
    if kind == ActionKind.TEST:
        return ActionContext(kind, pipeline, Stage.NETWORK), NETWORK_HINT
    if kind == ActionKind.DELETE:
        return ActionContext(kind, pipeline, Stage.CONFIRM), CONFIRM_HINT
    raise ValueError(f"Unknown action kind: {kind}")


def parse_test_target(network: str, text: str) -> Union[PipelineTestRequest, Reprompt]:
    """Explicit ``beat:``/``hash:`` prefixes win; otherwise 0x-values are hashes and digits are beats."""
    if text.startswith("beat:"):
        beat = text[len("beat:"):].strip()
        if not beat:
            return Reprompt("beat value required")
        return PipelineTestRequest(network=network, beat=beat)
    if text.startswith("hash:"):
        value = text[len("hash:"):].strip()
        if not value:
            return Reprompt("hash value required")
        return PipelineTestRequest(network=network, hash=value)
    if _HEX_PREFIX.match(text):
        return PipelineTestRequest(network=network, hash=text)
    if _DIGITS.match(text):
        return PipelineTestRequest(network=network, beat=text)
    return Reprompt("prefix with beat: or hash:")


def submit(context: ActionContext, raw_input: str) -> StepResult:
    text = raw_input.strip()

    if context.kind == ActionKind.DELETE:
        if text.lower() != "yes":
            return Reprompt("type 'yes' to confirm")
        return Execute(context, None)

    if context.stage == Stage.NETWORK:
        if not text:
            return Reprompt("network is required")
        next_stage = Stage.VALUE if context.kind == ActionKind.BACKFILL else Stage.TARGET
        hint = VALUE_HINT if context.kind == ActionKind.BACKFILL else TARGET_HINT
        return Advance(replace(context, stage=next_stage, network=text), hint)

    if not context.network:
        return Reprompt("network missing")

    if context.kind == ActionKind.BACKFILL:
        if not text:
            return Reprompt("value is required")
        return Execute(context, PipelineBackfillRequest(network=context.network, value=text))

    if context.kind == ActionKind.TEST:
        parsed = parse_test_target(context.network, text)
        if isinstance(parsed, Reprompt):
            return parsed
        return Execute(context, parsed)

    raise ValueError(f"Unknown action kind: {context.kind}")
