from typing import Any
from urllib.parse import quote

from indexingco.cli.client import APIClient
from indexingco.domain import (
    COLLECTION_KEYS,
    Pipeline,
    PipelineBackfillRequest,
    PipelineCreateRequest,
    PipelineTestRequest,
    ResourceKind,
    ResourceList,
    parse_collection,
)
from indexingco.logging import get_logger, log_extra

log = get_logger("indexingco.services.pipelines")


def _pipeline_path(name: str) -> str:
    return f"/pipelines/{quote(name, safe='')}"


def list_pipelines(client: APIClient) -> ResourceList:
    payload = client.get("/pipelines")
    collection = parse_collection(payload, COLLECTION_KEYS[ResourceKind.PIPELINES])
    items = tuple(Pipeline.from_payload(entry) for entry in collection.entries)
    log.debug("pipelines_listed", extra=log_extra(resource=ResourceKind.PIPELINES, count=len(items)))
    return ResourceList(items=items, raw=payload)


def create_pipeline(client: APIClient, request: PipelineCreateRequest) -> Any:
    return client.post("/pipelines", request.to_payload())


def delete_pipeline(client: APIClient, name: str) -> Any:
    return client.delete(_pipeline_path(name))


def test_pipeline(client: APIClient, name: str, request: PipelineTestRequest) -> Any:
    """POST /pipelines/{name}/test/{network}/{beat|hash}; beat wins when both are set."""
    target = request.target()
    path = f"{_pipeline_path(name)}/test/{quote(request.network, safe='')}/{quote(target, safe='')}"
    return client.post(path)


def backfill_pipeline(client: APIClient, name: str, request: PipelineBackfillRequest) -> Any:
    return client.post(f"{_pipeline_path(name)}/backfill", request.to_payload())
