"""Resource Client: typed wrappers over the pipeline, filter and transformation endpoints."""

from dataclasses import dataclass
from typing import Any, Optional

from indexingco.cli.client import APIClient
from indexingco.domain import (
    FilterMutationRequest,
    PipelineBackfillRequest,
    PipelineCreateRequest,
    PipelineTestRequest,
    ResourceList,
    TransformationTestRequest,
)
from indexingco.services import filters, pipelines, transformations


@dataclass
class ResourceClient:
    """Facade bundling the per-resource calls around one ``APIClient``."""

    api: APIClient

    @property
    def api_key(self) -> Optional[str]:
        return self.api.api_key

    @api_key.setter
    def api_key(self, value: Optional[str]) -> None:
        self.api.api_key = value

    def list_pipelines(self) -> ResourceList:
        return pipelines.list_pipelines(self.api)

    def create_pipeline(self, request: PipelineCreateRequest) -> Any:
        return pipelines.create_pipeline(self.api, request)

    def backfill_pipeline(self, name: str, request: PipelineBackfillRequest) -> Any:
        return pipelines.backfill_pipeline(self.api, name, request)

    def test_pipeline(self, name: str, request: PipelineTestRequest) -> Any:
        return pipelines.test_pipeline(self.api, name, request)

    def delete_pipeline(self, name: str) -> Any:
        return pipelines.delete_pipeline(self.api, name)

    def list_filters(self) -> ResourceList:
        return filters.list_filters(self.api)

    def create_filter(self, request: FilterMutationRequest) -> Any:
        return filters.create_filter(self.api, request)

    def remove_filter_values(self, request: FilterMutationRequest) -> Any:
        return filters.remove_filter_values(self.api, request)

    def list_transformations(self) -> ResourceList:
        return transformations.list_transformations(self.api)

    def create_transformation(self, name: str, code: str) -> Any:
        return transformations.create_transformation(self.api, name, code)

    def test_transformation(self, request: TransformationTestRequest) -> Any:
        return transformations.test_transformation(self.api, request)


__all__ = ["ResourceClient", "filters", "pipelines", "transformations"]
