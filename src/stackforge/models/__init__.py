"""Pydantic models for stackforge."""

from stackforge.models.query import (
    DataQueryRequest,
    Filter,
    MetricsQuery,
    Query,
    QueryType,
    SLOQuery,
    TimeRange,
)
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

__all__ = [
    "Annotation",
    "DataQueryRequest",
    "DataQueryResponse",
    "DatasourceSettings",
    "Filter",
    "FindQueryResult",
    "MetricDescriptor",
    "MetricsQuery",
    "Query",
    "QueryType",
    "SLOQuery",
    "SelectableValue",
    "TestResult",
    "TimeRange",
    "TimeSeries",
]
