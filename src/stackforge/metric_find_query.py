"""Template variable queries.

a variable query asks for one kind of list (projects, services, label
values...) so dashboards can offer it as a dropdown. every handler funnels
through the datasource lookups and returns FindQueryResult entries.
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from stackforge.constants import (
    ALIGNMENT_PERIODS,
    SLO_SELECTORS,
    get_aggregation_options_by_metric,
    get_alignment_options_by_metric,
)
from stackforge.errors import StackforgeError
from stackforge.models.result import FindQueryResult, MetricDescriptor

if TYPE_CHECKING:
    from stackforge.datasource import StackdriverDatasource

logger = logging.getLogger(__name__)


class MetricFindQueryTypes:
    PROJECTS = "projects"
    SERVICES = "services"
    METRIC_TYPES = "metricTypes"
    LABEL_KEYS = "labelKeys"
    LABEL_VALUES = "labelValues"
    RESOURCE_TYPES = "resourceTypes"
    AGGREGATIONS = "aggregations"
    ALIGNERS = "aligners"
    ALIGNMENT_PERIODS = "alignmentPeriods"
    SELECTORS = "selectors"
    SLO_SERVICES = "sloServices"
    SLO = "slo"


def to_find_query_result(item: Any) -> FindQueryResult:
    """Strings become their own text and value, dicts/models use label (or text)."""
    if isinstance(item, str):
        return FindQueryResult(text=item, value=item)
    if not isinstance(item, Mapping):
        item = item.model_dump()
    return FindQueryResult(text=item.get("label") or item.get("text") or "", value=item.get("value"))


class MetricFindQuery:
    """Runs one variable query against a datasource.

    lookup failures, and entries missing a field we map, are logged and
    produce an empty list.
    """

    def __init__(self, datasource: "StackdriverDatasource") -> None:
        self.datasource = datasource
        self.handlers = {
            MetricFindQueryTypes.PROJECTS: self.handle_projects_query,
            MetricFindQueryTypes.SERVICES: self.handle_service_query,
            MetricFindQueryTypes.METRIC_TYPES: self.handle_metric_types_query,
            MetricFindQueryTypes.LABEL_KEYS: self.handle_label_keys_query,
            MetricFindQueryTypes.LABEL_VALUES: self.handle_label_values_query,
            MetricFindQueryTypes.RESOURCE_TYPES: self.handle_resource_type_query,
            MetricFindQueryTypes.AGGREGATIONS: self.handle_aggregation_query,
            MetricFindQueryTypes.ALIGNERS: self.handle_aligners_query,
            MetricFindQueryTypes.ALIGNMENT_PERIODS: self.handle_alignment_period_query,
            MetricFindQueryTypes.SELECTORS: self.handle_selector_query,
            MetricFindQueryTypes.SLO_SERVICES: self.handle_slo_services_query,
            MetricFindQueryTypes.SLO: self.handle_slo_query,
        }

    async def execute(self, query: Mapping[str, Any]) -> list[FindQueryResult]:
        query = dict(query)
        if not query.get("projectName"):
            query["projectName"] = self.datasource.get_default_project()

        handler = self.handlers.get(query.get("selectedQueryType"))
        if handler is None:
            return []
        try:
            return await handler(query)
        except (StackforgeError, KeyError) as e:
            logger.error("Variable query %s failed: %s", query.get("selectedQueryType"), e)
            return []

    async def handle_projects_query(self, query: dict[str, Any]) -> list[FindQueryResult]:
        projects = await self.datasource.get_projects()
        return [FindQueryResult(text=p.label, value=p.value) for p in projects]

    async def handle_service_query(self, query: dict[str, Any]) -> list[FindQueryResult]:
        descriptors = await self.datasource.get_metric_types(query["projectName"])
        services: dict[str, MetricDescriptor] = {}
        for descriptor in descriptors:
            services.setdefault(descriptor.service, descriptor)
        return [
            FindQueryResult(text=d.service_short_name, value=d.service) for d in services.values()
        ]

    async def handle_metric_types_query(self, query: dict[str, Any]) -> list[FindQueryResult]:
        if not query.get("selectedService"):
            return []
        descriptors = await self.datasource.get_metric_types(query["projectName"])
        service = self.datasource.resolver.replace(query["selectedService"])
        return [
            FindQueryResult(text=d.display_name, value=d.type)
            for d in descriptors
            if d.service == service
        ]

    async def handle_label_keys_query(self, query: dict[str, Any]) -> list[FindQueryResult]:
        if not query.get("selectedMetricType"):
            return []
        labels = await self.datasource.get_labels(
            query["selectedMetricType"], "handleLabelKeysQuery", query["projectName"]
        )
        return [to_find_query_result(key) for key in labels]

    async def handle_label_values_query(self, query: dict[str, Any]) -> list[FindQueryResult]:
        if not query.get("selectedMetricType"):
            return []
        label_key = query.get("labelKey") or ""
        labels = await self.datasource.get_labels(
            query["selectedMetricType"], "handleLabelValuesQuery", query["projectName"], [label_key]
        )
        values = labels.get(self.datasource.resolver.replace(label_key)) or []
        return [to_find_query_result(v) for v in values]

    async def handle_resource_type_query(self, query: dict[str, Any]) -> list[FindQueryResult]:
        if not query.get("selectedMetricType"):
            return []
        labels = await self.datasource.get_labels(
            query["selectedMetricType"], "handleResourceTypeQueryQueryType", query["projectName"]
        )
        return [to_find_query_result(v) for v in labels.get("resource.type") or []]

    async def handle_aligners_query(self, query: dict[str, Any]) -> list[FindQueryResult]:
        descriptor = await self._find_descriptor(query)
        if descriptor is None:
            return []
        options = get_alignment_options_by_metric(descriptor.value_type, descriptor.metric_kind)
        return [to_find_query_result(o) for o in options]

    async def handle_aggregation_query(self, query: dict[str, Any]) -> list[FindQueryResult]:
        descriptor = await self._find_descriptor(query)
        if descriptor is None:
            return []
        options = get_aggregation_options_by_metric(descriptor.value_type, descriptor.metric_kind)
        return [to_find_query_result(o) for o in options]

    async def handle_alignment_period_query(self, query: dict[str, Any]) -> list[FindQueryResult]:
        return [to_find_query_result(p) for p in ALIGNMENT_PERIODS]

    async def handle_selector_query(self, query: dict[str, Any]) -> list[FindQueryResult]:
        return [to_find_query_result(s) for s in SLO_SELECTORS]

    async def handle_slo_services_query(self, query: dict[str, Any]) -> list[FindQueryResult]:
        services = await self.datasource.get_slo_services(query["projectName"])
        return [to_find_query_result(s) for s in services]

    async def handle_slo_query(self, query: dict[str, Any]) -> list[FindQueryResult]:
        slos = await self.datasource.get_service_level_objectives(
            query["projectName"], query.get("selectedSLOService") or ""
        )
        return [to_find_query_result(s) for s in slos]

    async def _find_descriptor(self, query: dict[str, Any]) -> MetricDescriptor | None:
        if not query.get("selectedMetricType"):
            return None
        descriptors = await self.datasource.get_metric_types(query["projectName"])
        metric_type = self.datasource.resolver.replace(query["selectedMetricType"])
        return next((d for d in descriptors if d.type == metric_type), None)
