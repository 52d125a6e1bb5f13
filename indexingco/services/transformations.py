from typing import Any
from urllib.parse import quote

from indexingco.cli.client import APIClient
from indexingco.domain import (
    COLLECTION_KEYS,
    ResourceKind,
    ResourceList,
    Transformation,
    TransformationTestRequest,
    parse_collection,
)


def list_transformations(client: APIClient) -> ResourceList:
    payload = client.get("/transformations")
    collection = parse_collection(payload, COLLECTION_KEYS[ResourceKind.TRANSFORMATIONS])
    return ResourceList(items=tuple(Transformation.from_payload(entry) for entry in collection.entries), raw=payload)


def test_transformation(client: APIClient, request: TransformationTestRequest) -> Any:
    return client.post("/transformations/test", {"code": request.code}, params=request.params())


def create_transformation(client: APIClient, name: str, code: str) -> Any:
    return client.post(f"/transformations/{quote(name, safe='')}", {"code": code})
