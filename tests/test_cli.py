import contextlib
import io
import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

import httpx
import pytest

from indexingco.cli.main import print_table, run_cli


class FakeAPI:
    """Minimal in-memory rendition of the pipeline API for CLI tests."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.pipelines: List[Dict[str, Any]] = [
            {"name": "alpha", "status": "active", "transformation": "erc20", "filter": "wallets", "networks": ["base"]},
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("X-API-KEY") != "test-key":
            return httpx.Response(401, json={"error": "invalid api key"})
        path = request.url.path
        if request.method == "GET" and path == "/dw/pipelines":
            return httpx.Response(200, json={"pipelines": self.pipelines})
        if request.method == "GET" and path == "/dw/filters":
            return httpx.Response(200, json=[{"name": "wallets", "values": ["0x1", "0x2"]}])
        if request.method == "GET" and path == "/dw/transformations":
            return httpx.Response(200, json={"transformations": [{"name": "erc20", "status": "ok", "version": "2", "language": "js"}]})
        if request.method == "DELETE" and path == "/dw/pipelines/ghost":
            return httpx.Response(404, json={"detail": "pipeline not found"})
        return httpx.Response(200, json={"ok": True})

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def api(clean_env: pytest.MonkeyPatch) -> FakeAPI:
    clean_env.setenv("API_KEY_INDEXINGCO", "test-key")
    clean_env.setenv("INDEXINGCO_BASE_URL", "https://api.example.test/dw/")
    return FakeAPI()


def run_cmd(argv: List[str], api: FakeAPI) -> Tuple[int, str, str]:
    out, err = io.StringIO(), io.StringIO()
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        code = run_cli(argv, transport=httpx.MockTransport(api))
    return code, out.getvalue(), err.getvalue()


def test_pipelines_list_table(api: FakeAPI) -> None:
    code, out, _ = run_cmd(["pipelines", "list"], api)
    assert code == 0
    header, rule, row = out.splitlines()
    assert header.split() == ["Name", "Status", "Transformation", "Filter", "Networks"]
    assert set(rule.replace(" ", "")) == {"-"}
    assert row.split() == ["alpha", "active", "erc20", "wallets", "base"]


def test_pipelines_list_json_prints_raw_body(api: FakeAPI) -> None:
    code, out, _ = run_cmd(["--json", "pipelines", "list"], api)
    assert code == 0
    assert json.loads(out) == {"pipelines": api.pipelines}


def test_empty_listing(api: FakeAPI) -> None:
    api.pipelines = []
    code, out, _ = run_cmd(["pipelines", "list"], api)
    assert code == 0
    assert out.strip() == "No pipelines."


def test_filters_and_transformations_list(api: FakeAPI) -> None:
    code, out, _ = run_cmd(["filters", "list"], api)
    assert code == 0
    assert "0x1, 0x2" in out
    assert out.splitlines()[-1].split()[-1] == "2"

    code, out, _ = run_cmd(["transformations", "list"], api)
    assert code == 0
    assert out.splitlines()[-1].split() == ["erc20", "ok", "2", "js"]


def test_pipelines_create_with_auth_header(api: FakeAPI) -> None:
    argv = [
        "pipelines", "create",
        "--name", "alpha",
        "--transformation", "erc20",
        "--filter", "wallets",
        "--filter-keys", "contract_address",
        "--filter-keys", "from",
        "--networks", "base",
        "--webhook-url", "https://hooks.example.test/in",
        "--auth-header", "X-Token",
        "--auth-value", "s3cret",
    ]
    code, out, _ = run_cmd(argv, api)
    assert code == 0
    assert "Created pipeline alpha." in out
    payload = json.loads(api.last.content)
    assert payload["filterKeys"] == ["contract_address", "from"]
    assert payload["delivery"] == {
        "adapter": "HTTP",
        "connection": {"host": "https://hooks.example.test/in", "headers": {"X-Token": "s3cret"}},
    }


def test_pipelines_create_without_complete_auth_omits_headers(api: FakeAPI) -> None:
    argv = [
        "pipelines", "create", "--name", "alpha", "--transformation", "erc20", "--filter", "wallets",
        "--webhook-url", "https://hooks.example.test/in", "--auth-header", "X-Token",
    ]
    code, _, _ = run_cmd(argv, api)
    assert code == 0
    assert json.loads(api.last.content)["delivery"]["connection"] == {"host": "https://hooks.example.test/in"}


def test_pipelines_backfill(api: FakeAPI) -> None:
    argv = ["pipelines", "backfill", "alpha", "--network", "base", "--value", "0xabc", "--beats", "5", "--beats", "6"]
    code, out, _ = run_cmd(argv, api)
    assert code == 0
    assert "Backfill triggered for alpha on base." in out
    assert api.last.url.path == "/dw/pipelines/alpha/backfill"
    assert json.loads(api.last.content) == {"network": "base", "value": "0xabc", "beats": [5, 6]}


def test_pipelines_test_by_hash(api: FakeAPI) -> None:
    code, out, _ = run_cmd(["pipelines", "test", "alpha", "base", "--hash", "0xfeed"], api)
    assert code == 0
    assert api.last.url.path == "/dw/pipelines/alpha/test/base/0xfeed"
    assert json.loads(out) == {"ok": True}


def test_pipelines_test_requires_target(api: FakeAPI) -> None:
    code, _, err = run_cmd(["pipelines", "test", "alpha", "base"], api)
    assert code == 1
    assert "Either beat or hash" in err
    assert api.requests == []


def test_api_error_is_reported(api: FakeAPI) -> None:
    code, _, err = run_cmd(["pipelines", "delete", "ghost"], api)
    assert code == 1
    assert "404 Not Found: pipeline not found" in err


def test_filters_create_and_remove(api: FakeAPI) -> None:
    code, out, _ = run_cmd(["filters", "create", "wallets", "--values", "0x1", "--values", "0x2"], api)
    assert code == 0
    assert "2 value(s)" in out
    assert json.loads(api.last.content) == {"values": ["0x1", "0x2"]}

    code, _, _ = run_cmd(["filters", "remove", "wallets", "--values", "0x1"], api)
    assert code == 0
    assert api.last.method == "DELETE"


def test_transformations_create_and_test_read_files(api: FakeAPI, tmp_path: Path) -> None:
    source = tmp_path / "erc20.js"
    source.write_text("function main(block) { return [] }", encoding="utf-8")

    code, _, _ = run_cmd(["transformations", "create", "erc20", str(source)], api)
    assert code == 0
    assert api.last.url.path == "/dw/transformations/erc20"
    assert json.loads(api.last.content) == {"code": "function main(block) { return [] }"}

    code, _, _ = run_cmd(["transformations", "test", str(source), "--network", "base", "--beat", "100"], api)
    assert code == 0
    assert dict(api.last.url.params) == {"network": "base", "beat": "100"}


def test_missing_source_file(api: FakeAPI, tmp_path: Path) -> None:
    code, _, err = run_cmd(["transformations", "create", "erc20", str(tmp_path / "missing.js")], api)
    assert code == 1
    assert "missing.js" in err


def test_missing_api_key_is_a_config_error(api: FakeAPI, clean_env: pytest.MonkeyPatch) -> None:
    clean_env.delenv("API_KEY_INDEXINGCO")
    code, _, err = run_cmd(["pipelines", "list"], api)
    assert code == 2
    assert "Missing API key" in err
    assert api.requests == []


def test_api_key_flag_overrides_environment(api: FakeAPI, clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("API_KEY_INDEXINGCO", "stale")
    code, _, _ = run_cmd(["--api-key", "test-key", "filters", "list"], api)
    assert code == 0
    assert api.last.headers["X-API-KEY"] == "test-key"


def test_invalid_environment_is_a_config_error(api: FakeAPI, clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("INDEXINGCO_REFRESH_INTERVAL", "often")
    code, _, err = run_cmd(["pipelines", "list"], api)
    assert code == 2
    assert "Invalid numeric setting" in err


def test_subcommand_is_required(api: FakeAPI) -> None:
    with pytest.raises(SystemExit) as excinfo:
        run_cmd(["pipelines"], api)
    assert excinfo.value.code == 2


def test_print_table_pads_columns(capsys: pytest.CaptureFixture) -> None:
    print_table(["Name", "Count"], [{"Name": "a-long-name", "Count": 3}])
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "Name         Count"
    assert lines[2] == "a-long-name  3    "
