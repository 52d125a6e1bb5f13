from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from indexingco.errors import ValidationError


class ResourceKind:
    PIPELINES = "pipelines"
    FILTERS = "filters"
    TRANSFORMATIONS = "transformations"


RESOURCE_KINDS = (ResourceKind.PIPELINES, ResourceKind.FILTERS, ResourceKind.TRANSFORMATIONS)

# Keys probed, in order, when the API wraps a collection in an object.
COLLECTION_KEYS: Dict[str, Tuple[str, ...]] = {
    ResourceKind.PIPELINES: ("pipelines", "items", "data", "results"),
    ResourceKind.FILTERS: ("filters", "items", "data", "results"),
    ResourceKind.TRANSFORMATIONS: ("transformations", "items", "data"),
}


@dataclass(frozen=True)
class RawCollection:
    """Response body that is a bare JSON array."""

    entries: Tuple[Any, ...]


@dataclass(frozen=True)
class NamedCollection:
    """Response body that wraps the array under ``key``."""

    key: str
    entries: Tuple[Any, ...]


Collection = Union[RawCollection, NamedCollection]


def parse_collection(payload: Any, keys: Sequence[str]) -> Collection:
    if isinstance(payload, list):
        return RawCollection(tuple(payload))
    if isinstance(payload, dict):
        for key in keys:
            candidate = payload.get(key)
            if candidate is None:
                continue
            if isinstance(candidate, list):
                return NamedCollection(key, tuple(candidate))
            break
    return RawCollection(())


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _as_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _as_str_list(value: Any) -> Optional[List[str]]:
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    return None


def _first_str(entity: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = _as_str(entity.get(key))
        if value:
            return value
    return None


def _require_record(entity: Any, label: str) -> Tuple[Dict[str, Any], str]:
    if not isinstance(entity, dict):
        raise ValidationError(f"{label} payload is not an object")
    name = _as_str(entity.get("name")) or _as_str(entity.get("id"))
    if not name:
        raise ValidationError(f"{label} payload missing name")
    return entity, name


@dataclass(frozen=True)
class Pipeline:
    name: str
    raw: Dict[str, Any] = field(repr=False)
    id: Optional[str] = None
    status: Optional[str] = None
    filter: Optional[str] = None
    transformation: Optional[str] = None
    networks: Tuple[str, ...] = ()
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    summary: Optional[str] = None
    paused: Optional[bool] = None

    @classmethod
    def from_payload(cls, entity: Any) -> "Pipeline":
        record, name = _require_record(entity, "Pipeline")
        paused = _as_bool(record.get("paused"))
        if paused is None:
            paused = _as_bool(record.get("isPaused"))
        return cls(
            name=name,
            raw=record,
            id=_as_str(record.get("id")),
            status=_first_str(record, "status", "state", "pipelineStatus"),
            filter=_first_str(record, "filter", "filterName"),
            transformation=_first_str(record, "transformation", "transformationName"),
            networks=tuple(_as_str_list(record.get("networks")) or ()),
            created_at=_first_str(record, "createdAt", "created_at"),
            updated_at=_first_str(record, "updatedAt", "updated_at"),
            summary=_first_str(record, "summary", "description"),
            paused=paused,
        )


@dataclass(frozen=True)
class Filter:
    name: str
    raw: Dict[str, Any] = field(repr=False)
    values: Tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, entity: Any) -> "Filter":
        record, name = _require_record(entity, "Filter")
        return cls(name=name, raw=record, values=tuple(_as_str_list(record.get("values")) or ()))


@dataclass(frozen=True)
class Transformation:
    name: str
    raw: Dict[str, Any] = field(repr=False)
    status: Optional[str] = None
    version: Optional[str] = None
    language: Optional[str] = None
    checksum: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_payload(cls, entity: Any) -> "Transformation":
        record, name = _require_record(entity, "Transformation")
        return cls(
            name=name,
            raw=record,
            status=_first_str(record, "status", "state"),
            version=_as_str(record.get("version")),
            language=_first_str(record, "language", "lang"),
            checksum=_as_str(record.get("checksum")),
            created_at=_first_str(record, "createdAt", "created_at"),
            updated_at=_first_str(record, "updatedAt", "updated_at"),
        )


ResourceItem = Union[Pipeline, Filter, Transformation]


@dataclass(frozen=True)
class ResourceList:
    """Normalized items plus the untouched response body."""

    items: Tuple[Any, ...]
    raw: Any


@dataclass(frozen=True)
class PipelineBackfillRequest:
    network: str
    value: str
    beat_start: Optional[int] = None
    beat_end: Optional[int] = None
    beats: Tuple[int, ...] = ()

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"network": self.network, "value": self.value}
        if self.beat_start is not None:
            payload["beatStart"] = self.beat_start
        if self.beat_end is not None:
            payload["beatEnd"] = self.beat_end
        if self.beats:
            payload["beats"] = list(self.beats)
        return payload


@dataclass(frozen=True)
class PipelineTestRequest:
    network: str
    beat: Optional[str] = None
    hash: Optional[str] = None

    def target(self) -> str:
        if self.beat:
            return self.beat
        if self.hash:
            return self.hash
        raise ValidationError("Either beat or hash must be provided to test a pipeline")

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"network": self.network}
        if self.beat:
            payload["beat"] = self.beat
        if self.hash:
            payload["hash"] = self.hash
        return payload


@dataclass(frozen=True)
class PipelineCreateRequest:
    name: str
    transformation: str
    filter: str
    webhook_url: str
    filter_keys: Tuple[str, ...] = ()
    networks: Tuple[str, ...] = ()
    headers: Dict[str, str] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        connection: Dict[str, Any] = {"host": self.webhook_url}
        if self.headers:
            connection["headers"] = dict(self.headers)
        return {
            "name": self.name,
            "transformation": self.transformation,
            "filter": self.filter,
            "filterKeys": list(self.filter_keys),
            "networks": list(self.networks),
            "delivery": {"adapter": "HTTP", "connection": connection},
        }


@dataclass(frozen=True)
class FilterMutationRequest:
    name: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class TransformationTestRequest:
    network: str
    code: str
    beat: Optional[str] = None
    hash: Optional[str] = None

    def params(self) -> Dict[str, str]:
        if not self.beat and not self.hash:
            raise ValidationError("Either beat or hash must be provided to test a transformation")
        params = {"network": self.network}
        if self.beat:
            params["beat"] = self.beat
        if self.hash:
            params["hash"] = self.hash
        return params
