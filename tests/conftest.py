import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple

import pytest

# Ensure repository root is on sys.path so the in-tree package imports cleanly.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from indexingco.domain import Filter, Pipeline, ResourceList, Transformation  # noqa: E402


class FakeResources:
    """In-memory stand-in for ``ResourceClient`` that records every call."""

    def __init__(self) -> None:
        self.api_key = "key-1234567890"
        self.calls: List[Tuple[Any, ...]] = []
        self.failures: Dict[str, Exception] = {}
        self.pipelines = (
            Pipeline.from_payload({"name": "alpha", "status": "active", "networks": ["base"]}),
            Pipeline.from_payload({"name": "beta", "status": "paused", "networks": ["eth"]}),
            Pipeline.from_payload({"name": "gamma", "status": "active", "networks": []}),
        )
        self.filters = (Filter.from_payload({"name": "wallets", "values": ["0xabc", "0xdef"]}),)
        self.transformations = (Transformation.from_payload({"name": "erc20", "language": "js"}),)
        self.test_response: Any = {"result": "ok"}

    def _call(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def list_pipelines(self) -> ResourceList:
        self._call("list_pipelines")
        return ResourceList(items=self.pipelines, raw=[p.raw for p in self.pipelines])

    def list_filters(self) -> ResourceList:
        self._call("list_filters")
        return ResourceList(items=self.filters, raw=[f.raw for f in self.filters])

    def list_transformations(self) -> ResourceList:
        self._call("list_transformations")
        return ResourceList(items=self.transformations, raw=[t.raw for t in self.transformations])

    def backfill_pipeline(self, name: str, request: Any) -> Any:
        self._call("backfill_pipeline", name, request)
        return {"queued": True}

    def delete_pipeline(self, name: str) -> Any:
        self._call("delete_pipeline", name)
        return None

    def test_pipeline(self, name: str, request: Any) -> Any:
        self._call("test_pipeline", name, request)
        return self.test_response


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.callback()


class FakeSchedule:
    """Records timers instead of arming them on an event loop."""

    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer


@pytest.fixture
def resources() -> FakeResources:
    return FakeResources()


@pytest.fixture
def schedule() -> FakeSchedule:
    return FakeSchedule()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in (
        "API_KEY_INDEXINGCO",
        "INDEXINGCO_BASE_URL",
        "INDEXINGCO_REFRESH_INTERVAL",
        "INDEXINGCO_THEME",
        "INDEXINGCO_LOG_LEVEL",
        "INDEXINGCO_LOG_JSON",
        "INDEXINGCO_LOG_FILE",
        "INDEXINGCO_TIMEOUT_SECONDS",
        "CLI_DEV",
    ):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch
