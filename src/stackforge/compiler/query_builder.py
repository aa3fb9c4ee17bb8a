"""Builds the wire payloads posted to the query endpoint.

the endpoint takes a batch {from, to, queries} and interprets each query by
its type. time series queries always carry both metricQuery and sloQuery -
queryType says which one counts, the other is ignored on the other side.
"""

from collections.abc import Mapping
from typing import Any

from stackforge.compiler.interpolation import (
    interpolate_filters,
    interpolate_group_bys,
    interpolate_props,
)
from stackforge.constants import (
    ANNOTATION_REF_ID,
    GCE_DEFAULT_PROJECT_REF_ID,
    TIME_SERIES_QUERY_TYPE,
)
from stackforge.models.query import Query, TimeRange
from stackforge.templating.resolver import Resolver


class QueryBuilder:
    """Turns normalized queries into wire payloads.

    holds no state beyond the resolver and the datasource id, the default
    project is passed in per call since it can change after gce discovery.
    """

    def __init__(self, resolver: Resolver, datasource_id: int = 0) -> None:
        self.resolver = resolver
        self.datasource_id = datasource_id

    def time_series_query(
        self,
        query: Query,
        default_project: str,
        scoped_vars: Mapping[str, Any] | None = None,
        interval_ms: int | None = None,
    ) -> dict[str, Any]:
        scoped_vars = scoped_vars or {}
        metric_query = query.metric_query
        fields = metric_query.model_dump(by_alias=True, exclude_none=True)
        slo_fields = query.slo_query.model_dump(by_alias=True, exclude_none=True) if query.slo_query else {}

        return {
            "datasourceId": self.datasource_id,
            "refId": query.ref_id,
            "queryType": query.query_type.value,
            "intervalMs": interval_ms,
            "type": TIME_SERIES_QUERY_TYPE,
            "metricQuery": {
                **interpolate_props(self.resolver, fields, scoped_vars),
                # the query's own project wins, interpolated without panel scope
                "projectName": self.resolver.replace(metric_query.project_name or default_project),
                "filters": interpolate_filters(self.resolver, metric_query.filters, scoped_vars),
                "groupBys": interpolate_group_bys(self.resolver, metric_query.group_bys, scoped_vars),
                "view": metric_query.view or "FULL",
            },
            "sloQuery": interpolate_props(self.resolver, slo_fields, scoped_vars),
        }

    def annotation_query(
        self, target: Mapping[str, Any], default_project: str, scoped_vars: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """Fixed-shape query for annotation events - no aggregation at all."""
        scoped_vars = scoped_vars or {}
        replace = self.resolver.replace
        return {
            "refId": ANNOTATION_REF_ID,
            "type": ANNOTATION_REF_ID,
            "datasourceId": self.datasource_id,
            "view": "FULL",
            "crossSeriesReducer": "REDUCE_NONE",
            "perSeriesAligner": "ALIGN_NONE",
            "metricType": replace(target.get("metricType"), scoped_vars),
            "title": replace(target.get("title"), scoped_vars),
            "text": replace(target.get("text"), scoped_vars),
            "tags": replace(target.get("tags"), scoped_vars),
            "projectName": replace(target.get("projectName") or default_project, scoped_vars),
            "filters": interpolate_filters(self.resolver, target.get("filters") or [], scoped_vars),
        }

    def gce_default_project_query(self) -> dict[str, Any]:
        """Sentinel query asking the backend which project the gce instance runs in."""
        return {
            "refId": GCE_DEFAULT_PROJECT_REF_ID,
            "type": GCE_DEFAULT_PROJECT_REF_ID,
            "datasourceId": self.datasource_id,
        }

    @staticmethod
    def batch(queries: list[dict[str, Any]], time_range: TimeRange | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"queries": queries}
        if time_range is not None:
            body = {"from": time_range.from_ms(), "to": time_range.to_ms(), **body}
        return body
