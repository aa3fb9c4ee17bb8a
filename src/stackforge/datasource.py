"""Main StackdriverDatasource interface for stackforge."""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

import httpx

from stackforge.compiler.interpolation import interpolate_group_bys, interpolate_props
from stackforge.compiler.normalizer import migrate_query, should_run_query
from stackforge.compiler.query_builder import QueryBuilder
from stackforge.constants import ANNOTATION_REF_ID, UNIT_MAPPINGS
from stackforge.errors import DEFAULT_ERROR_MESSAGE, ApiError
from stackforge.executor.api_client import ApiClient, last_segment
from stackforge.metric_find_query import MetricFindQuery
from stackforge.models.query import DataQueryRequest, Query, QueryType, TimeRange
from stackforge.models.result import (
    Annotation,
    DataQueryResponse,
    FindQueryResult,
    MetricDescriptor,
    SelectableValue,
    TestResult,
    TimeSeries,
)
from stackforge.models.settings import DatasourceSettings
from stackforge.project import ProjectResolver
from stackforge.templating.resolver import Resolver, TemplateResolver

logger = logging.getLogger(__name__)


def _to_selectable(item: Mapping[str, Any]) -> SelectableValue:
    resource_id = last_segment(item["name"])
    return SelectableValue(value=resource_id, label=resource_id)


def _to_metric_descriptor(item: Mapping[str, Any]) -> MetricDescriptor:
    # compute.googleapis.com/instance/cpu -> compute.googleapis.com -> compute
    service = item["type"].split("/")[0]
    return MetricDescriptor.model_validate(
        {
            **item,
            "service": service,
            "serviceShortName": service.split(".")[0],
            "displayName": item.get("displayName") or item["type"],
        }
    )


def _parse_time(value: Any) -> int | None:
    """Epoch ms from an RFC 3339 timestamp, None if it doesn't parse."""
    try:
        return int(datetime.fromisoformat(str(value)).timestamp() * 1000)
    except ValueError:
        return None


class StackdriverDatasource:
    """Query adapter for the Cloud Monitoring (Stackdriver) api.

    the flow for time series is always the same: make sure the default project
    is known, normalize and filter targets, interpolate, post one batch, then
    flatten the per-query results into a list of series.
    """

    def __init__(
        self,
        settings: DatasourceSettings,
        resolver: Resolver | None = None,
        time_range: Callable[[], TimeRange] = TimeRange.last,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the datasource.

        Args:
            settings: Datasource instance settings.
            resolver: Template resolver, defaults to one with no variables.
            time_range: Provides the current dashboard time range for lookups.
            transport: Optional httpx transport, mainly for tests.
        """
        self.settings = settings
        self.id = settings.id
        self.resolver = resolver or TemplateResolver()
        self.time_range = time_range
        self.api = ApiClient(
            settings.monitoring_base_url,
            settings.resolved_query_url,
            headers=settings.headers,
            transport=transport,
        )
        self.builder = QueryBuilder(self.resolver, self.id)
        self.projects = ProjectResolver(settings, self.api, self.builder)

    @property
    def authentication_type(self) -> str:
        return self.settings.authentication_type

    @property
    def variables(self) -> list[str]:
        return getattr(self.resolver, "variable_names", [])

    def get_default_project(self) -> str:
        return self.projects.get_default_project()

    async def ensure_default_project(self) -> None:
        await self.projects.ensure_default_project()

    # --- time series ---

    async def query(self, request: DataQueryRequest) -> DataQueryResponse:
        """Run a batch and flatten the results into named series."""
        data = await self.get_time_series(request)
        results = data.get("results")
        if not results:
            return DataQueryResponse(data=[])

        unit = self.resolve_panel_unit_from_targets(request.targets)
        series_list = []
        for query_result in results.values():
            # no series just means no data for that query
            if not query_result.get("series"):
                continue
            for series in query_result["series"]:
                series_list.append(
                    TimeSeries(
                        target=series.get("name"),
                        datapoints=series.get("points") or [],
                        ref_id=query_result.get("refId"),
                        meta=query_result.get("meta"),
                        unit=unit,
                    )
                )
        return DataQueryResponse(data=series_list)

    async def build_batch(self, request: DataQueryRequest) -> dict[str, Any] | None:
        """The batch body that get_time_series would post, None when nothing would run."""
        await self.ensure_default_project()
        default_project = self.get_default_project()

        queries = []
        for target in request.targets:
            query = migrate_query(target)
            if not should_run_query(query):
                logger.debug("Skipping target %s", query.ref_id)
                continue
            queries.append(
                self.builder.time_series_query(
                    query, default_project, request.scoped_vars, request.interval_ms
                )
            )

        if not queries:
            return None
        return self.builder.batch(queries, request.range)

    async def get_time_series(self, request: DataQueryRequest) -> dict[str, Any]:
        """Post all runnable targets as one batch and return the raw result map.

        nothing is sent when no target survives filtering.
        """
        body = await self.build_batch(request)
        if body is None:
            return {"results": {}}

        response = await self.api.post(body)
        return response["data"] or {}

    def resolve_panel_unit_from_targets(self, targets: list[Query | dict[str, Any]]) -> str | None:
        """Display unit shared by every target, or None.

        one unit only makes sense when all targets agree on it.
        """
        units = [migrate_query(t).metric_query.unit for t in targets]
        if units and all(u == units[0] for u in units):
            return UNIT_MAPPINGS.get(units[0]) if units[0] else None
        return None

    # --- annotations ---

    async def annotation_query(self, options: Mapping[str, Any]) -> list[Annotation]:
        """Annotation events for one annotation definition.

        options is {"annotation": {"target": {...}}, "range": TimeRange, "scopedVars": {...}}.
        """
        await self.ensure_default_project()
        target = options["annotation"].get("target") or {}
        query = self.builder.annotation_query(
            target, self.get_default_project(), options.get("scopedVars") or {}
        )

        response = await self.api.post(self.builder.batch([query], options["range"]))

        results = (response["data"] or {}).get("results") or {}
        tables = (results.get(ANNOTATION_REF_ID) or {}).get("tables") or []
        rows = (tables[0].get("rows") or []) if tables else []
        return [
            Annotation(time=_parse_time(row[0]), title=row[1], text=row[3], tags=[])
            for row in rows
        ]

    # --- lookups ---

    async def metric_find_query(self, query: Mapping[str, Any]) -> list[FindQueryResult]:
        await self.ensure_default_project()
        return await MetricFindQuery(self).execute(query)

    async def get_labels(
        self, metric_type: str, ref_id: str, project_name: str, group_bys: list[str] | None = None
    ) -> dict[str, list[str]]:
        """Label keys and values seen for a metric over the current time range."""
        request = DataQueryRequest(
            targets=[
                Query.model_validate(
                    {
                        "refId": ref_id,
                        "queryType": QueryType.METRICS,
                        "metricQuery": {
                            "projectName": self.resolver.replace(project_name),
                            "metricType": self.resolver.replace(metric_type),
                            "groupBys": interpolate_group_bys(self.resolver, group_bys or [], {}),
                            "crossSeriesReducer": "REDUCE_NONE",
                            "view": "HEADERS",
                        },
                    }
                )
            ],
            range=self.time_range(),
        )
        response = await self.get_time_series(request)
        result = (response.get("results") or {}).get(ref_id)
        if not result:
            return {}
        return (result.get("meta") or {}).get("labels") or {}

    async def get_metric_types(self, project_name: str) -> list[MetricDescriptor]:
        if not project_name:
            return []
        return await self.api.get(
            f"{self.resolver.replace(project_name)}/metricDescriptors",
            response_map=_to_metric_descriptor,
        )

    async def get_slo_services(self, project_name: str) -> list[SelectableValue]:
        project = self.resolver.replace(project_name)
        return await self.api.get(f"{project}/services", response_map=_to_selectable)

    async def get_service_level_objectives(
        self, project_name: str, service_id: str
    ) -> list[SelectableValue]:
        props = interpolate_props(self.resolver, {"projectName": project_name, "serviceId": service_id})
        return await self.api.get(
            f"{props['projectName']}/services/{props['serviceId']}/serviceLevelObjectives",
            response_map=_to_selectable,
        )

    async def get_projects(self) -> list[SelectableValue]:
        return await self.api.get(
            "projects",
            response_map=lambda p: SelectableValue(value=p["projectId"], label=p["name"]),
            base_url=self.settings.resource_manager_base_url,
        )

    # --- health check ---

    async def test_datasource(self) -> TestResult:
        """Check the api is reachable. Never raises."""
        try:
            await self.ensure_default_project()
            await self.api.get(f"{self.get_default_project()}/metricDescriptors", use_cache=False)
        except ApiError as e:
            message = f"Stackdriver: {e.status_text or DEFAULT_ERROR_MESSAGE}"
            if e.error.get("code"):
                message += f": {e.error['code']}. {e.error.get('message')}"
            return TestResult(status="error", message=message)
        except Exception as e:
            logger.exception("Datasource test failed")
            return TestResult(status="error", message=str(e) or DEFAULT_ERROR_MESSAGE)

        return TestResult(status="success", message="Successfully queried the Stackdriver API.")

    async def close(self) -> None:
        await self.api.close()

    async def __aenter__(self) -> "StackdriverDatasource":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
