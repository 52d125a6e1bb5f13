#!/usr/bin/env python3
import argparse
import json
import os
import sys
from typing import Any, Dict, Iterable, List, Optional

from indexingco.cli.client import APIClient
from indexingco.config import Config, LOG_LEVELS, THEMES, load_config, resolve_api_key
from indexingco.domain import (
    FilterMutationRequest,
    PipelineBackfillRequest,
    PipelineCreateRequest,
    PipelineTestRequest,
    TransformationTestRequest,
)
from indexingco.errors import ConfigError, IndexingcoError
from indexingco.logging import EXIT_CONFIG_ERROR, EXIT_OK, EXIT_RUNTIME_ERROR, get_logger, init_cli_logging, log_extra
from indexingco.services import ResourceClient

log = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="indexingco",
        description="Manage Indexing Co pipelines, filters and transformations, or launch the dashboard.",
    )
    parser.add_argument("--api-key", default=None, help="API key (or API_KEY_INDEXINGCO)")
    parser.add_argument("--base-url", default=None, help="API base URL (or INDEXINGCO_BASE_URL)")
    parser.add_argument("--json", dest="as_json", action="store_true", help="Print raw JSON responses.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Pipelines
    pipelines = subparsers.add_parser("pipelines", help="Pipeline commands")
    pipe_sub = pipelines.add_subparsers(dest="action", required=True)
    pipe_sub.add_parser("list", help="List pipelines")

    pipe_create = pipe_sub.add_parser("create", help="Create a pipeline delivering to a webhook")
    pipe_create.add_argument("--name", required=True)
    pipe_create.add_argument("--transformation", required=True)
    pipe_create.add_argument("--filter", required=True)
    pipe_create.add_argument("--filter-keys", action="append", default=[], help="Filter key (repeatable)")
    pipe_create.add_argument("--networks", action="append", default=[], help="Network (repeatable)")
    pipe_create.add_argument("--webhook-url", required=True)
    pipe_create.add_argument("--auth-header", default=None, help="Header name sent with deliveries")
    pipe_create.add_argument("--auth-value", default=None, help="Header value sent with deliveries")

    pipe_backfill = pipe_sub.add_parser("backfill", help="Backfill a pipeline")
    pipe_backfill.add_argument("name")
    pipe_backfill.add_argument("--network", required=True)
    pipe_backfill.add_argument("--value", required=True, help="Address or hash to backfill")
    pipe_backfill.add_argument("--beat-start", type=int, default=None)
    pipe_backfill.add_argument("--beat-end", type=int, default=None)
    pipe_backfill.add_argument("--beats", type=int, action="append", default=[], help="Beat (repeatable)")

    pipe_test = pipe_sub.add_parser("test", help="Test a pipeline against a beat or hash")
    pipe_test.add_argument("name")
    pipe_test.add_argument("network")
    pipe_target = pipe_test.add_mutually_exclusive_group()
    pipe_target.add_argument("--beat", default=None)
    pipe_target.add_argument("--hash", default=None)

    pipe_delete = pipe_sub.add_parser("delete", help="Delete a pipeline")
    pipe_delete.add_argument("name")

    # Filters
    filters = subparsers.add_parser("filters", help="Filter commands")
    filt_sub = filters.add_subparsers(dest="action", required=True)
    filt_sub.add_parser("list", help="List filters")
    for action, help_text in (("create", "Create a filter or add values"), ("remove", "Remove values from a filter")):
        f = filt_sub.add_parser(action, help=help_text)
        f.add_argument("name")
        f.add_argument("--values", action="append", required=True, help="Value (repeatable)")

    # Transformations
    transformations = subparsers.add_parser("transformations", help="Transformation commands")
    tr_sub = transformations.add_subparsers(dest="action", required=True)
    tr_sub.add_parser("list", help="List transformations")

    tr_create = tr_sub.add_parser("create", help="Create a transformation from a source file")
    tr_create.add_argument("name")
    tr_create.add_argument("file")

    tr_test = tr_sub.add_parser("test", help="Run a transformation source file against a beat or hash")
    tr_test.add_argument("file")
    tr_test.add_argument("--network", required=True)
    tr_target = tr_test.add_mutually_exclusive_group()
    tr_target.add_argument("--beat", default=None)
    tr_target.add_argument("--hash", default=None)

    # Dashboard
    tui = subparsers.add_parser("tui", help="Launch the interactive dashboard")
    tui.add_argument("--refresh", type=int, default=None, help="Refresh interval in seconds (min 1)")
    tui.add_argument("--theme", default=None, choices=THEMES)
    tui.add_argument("--log-level", default=None, type=str.lower, choices=LOG_LEVELS)

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def print_table(headers: List[str], rows: Iterable[Dict[str, Any]]) -> None:
    """Left-aligned columns separated by two spaces, with a dashed rule under the header."""
    cells = [[str(row.get(key, "")) for key in headers] for row in rows]
    widths = [max([len(title)] + [len(line[col]) for line in cells]) for col, title in enumerate(headers)]
    for line in [headers, ["-" * width for width in widths], *cells]:
        print("  ".join(text.ljust(width) for text, width in zip(line, widths)))


def read_source(path: str) -> str:
    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def build_client(config: Config, *, transport: Optional[Any]) -> ResourceClient:
    api = APIClient(
        base_url=config.base_url,
        api_key=resolve_api_key(config),
        transport=transport,
        timeout=config.timeout_seconds,
    )
    return ResourceClient(api)


def _report(args: argparse.Namespace, response: Any, message: str) -> None:
    if args.as_json:
        print_json(response)
    else:
        print(message)


def handle_pipelines(client: ResourceClient, args: argparse.Namespace) -> None:
    if args.action == "list":
        listing = client.list_pipelines()
        if args.as_json:
            print_json(listing.raw)
            return
        if not listing.items:
            print("No pipelines.")
            return
        rows = [
            {
                "Name": p.name,
                "Status": p.status or "-",
                "Transformation": p.transformation or "-",
                "Filter": p.filter or "-",
                "Networks": ", ".join(p.networks) or "-",
            }
            for p in listing.items
        ]
        print_table(["Name", "Status", "Transformation", "Filter", "Networks"], rows)
    elif args.action == "create":
        headers: Dict[str, str] = {}
        if args.auth_header and args.auth_value:
            headers[args.auth_header] = args.auth_value
        request = PipelineCreateRequest(
            name=args.name,
            transformation=args.transformation,
            filter=args.filter,
            webhook_url=args.webhook_url,
            filter_keys=tuple(args.filter_keys),
            networks=tuple(args.networks),
            headers=headers,
        )
        resp = client.create_pipeline(request)
        _report(args, resp, f"Created pipeline {args.name}.")
    elif args.action == "backfill":
        request = PipelineBackfillRequest(
            network=args.network,
            value=args.value,
            beat_start=args.beat_start,
            beat_end=args.beat_end,
            beats=tuple(args.beats),
        )
        resp = client.backfill_pipeline(args.name, request)
        _report(args, resp, f"Backfill triggered for {args.name} on {args.network}.")
    elif args.action == "test":
        request = PipelineTestRequest(network=args.network, beat=args.beat, hash=args.hash)
        print_json(client.test_pipeline(args.name, request))
    elif args.action == "delete":
        resp = client.delete_pipeline(args.name)
        _report(args, resp, f"Deleted pipeline {args.name}.")


def handle_filters(client: ResourceClient, args: argparse.Namespace) -> None:
    if args.action == "list":
        listing = client.list_filters()
        if args.as_json:
            print_json(listing.raw)
            return
        if not listing.items:
            print("No filters.")
            return
        rows = [
            {"Name": f.name, "Values": ", ".join(f.values) or "-", "Count": len(f.values)}
            for f in listing.items
        ]
        print_table(["Name", "Values", "Count"], rows)
    elif args.action == "create":
        resp = client.create_filter(FilterMutationRequest(args.name, tuple(args.values)))
        _report(args, resp, f"Filter {args.name} updated with {len(args.values)} value(s).")
    elif args.action == "remove":
        resp = client.remove_filter_values(FilterMutationRequest(args.name, tuple(args.values)))
        _report(args, resp, f"Removed {len(args.values)} value(s) from filter {args.name}.")


def handle_transformations(client: ResourceClient, args: argparse.Namespace) -> None:
    if args.action == "list":
        listing = client.list_transformations()
        if args.as_json:
            print_json(listing.raw)
            return
        if not listing.items:
            print("No transformations.")
            return
        rows = [
            {
                "Name": t.name,
                "Status": t.status or "-",
                "Version": t.version or "-",
                "Language": t.language or "-",
            }
            for t in listing.items
        ]
        print_table(["Name", "Status", "Version", "Language"], rows)
    elif args.action == "create":
        resp = client.create_transformation(args.name, read_source(args.file))
        _report(args, resp, f"Created transformation {args.name}.")
    elif args.action == "test":
        request = TransformationTestRequest(
            network=args.network,
            code=read_source(args.file),
            beat=args.beat,
            hash=args.hash,
        )
        print_json(client.test_transformation(request))


def handle_tui(config: Config, args: argparse.Namespace, *, transport: Optional[Any]) -> None:
    from indexingco.tui.app import run_tui

    refresh = max(1, args.refresh) if args.refresh is not None else None
    config = config.with_overrides(refresh_interval=refresh, theme=args.theme, log_level=args.log_level)
    init_cli_logging(config.log_level, json_output=config.log_json, log_file=config.log_file)
    client = build_client(config, transport=transport)
    log.info("tui_launch", extra=log_extra(command="tui"))
    run_tui(config, client)


def _dev_mode() -> bool:
    return os.environ.get("CLI_DEV", "").lower() == "true"


def run_cli(argv: Optional[List[str]] = None, *, transport: Optional[Any] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config().with_overrides(api_key=args.api_key, base_url=args.base_url)
        if args.command == "tui":
            handle_tui(config, args, transport=transport)
            return EXIT_OK
        init_cli_logging(config.log_level, json_output=config.log_json, log_file=config.log_file)
        client = build_client(config, transport=transport)
        if args.command == "pipelines":
            handle_pipelines(client, args)
        elif args.command == "filters":
            handle_filters(client, args)
        elif args.command == "transformations":
            handle_transformations(client, args)
        else:  # pragma: no cover - argparse rejects unknown commands
            print("Unknown command", file=sys.stderr)
            return EXIT_RUNTIME_ERROR
    except ConfigError as exc:
        if _dev_mode():
            log.exception("cli_config_error", extra=log_extra(command=args.command, **exc.log_fields()))
        print(str(exc), file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except (IndexingcoError, OSError) as exc:
        if _dev_mode():
            fields = exc.log_fields() if isinstance(exc, IndexingcoError) else {"error": str(exc)}
            log.exception("cli_failed", extra=log_extra(command=args.command, **fields))
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    return EXIT_OK


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
