from typing import Any
from urllib.parse import quote

from indexingco.cli.client import APIClient
from indexingco.domain import COLLECTION_KEYS, Filter, FilterMutationRequest, ResourceKind, ResourceList, parse_collection


def list_filters(client: APIClient) -> ResourceList:
    payload = client.get("/filters")
    collection = parse_collection(payload, COLLECTION_KEYS[ResourceKind.FILTERS])
    return ResourceList(items=tuple(Filter.from_payload(entry) for entry in collection.entries), raw=payload)


def create_filter(client: APIClient, request: FilterMutationRequest) -> Any:
    return client.post(f"/filters/{quote(request.name, safe='')}", {"values": list(request.values)})


def remove_filter_values(client: APIClient, request: FilterMutationRequest) -> Any:
    return client.delete(f"/filters/{quote(request.name, safe='')}", {"values": list(request.values)})
