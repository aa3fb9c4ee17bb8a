"""Pydantic models for panel query descriptors.

these mirror the json the dashboard layer sends us - camelCase on the wire,
snake_case in python. aliases keep both sides happy.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QueryType(str, Enum):
    """Which payload of a query is active.

    the provider-side interpreter looks at this to decide whether to read
    metricQuery or sloQuery - both are always sent.
    """

    METRICS = "metrics"
    SLO = "slo"


class MetricsQuery(BaseModel):
    """A raw metrics query as built by the query editor.

    filters and group_bys are raw tokens, not resolved yet. filters are flat
    (key, operator, value, condition) quadruples - see Filter for the structured form.
    """

    # legacy targets carry arbitrary extra fields, keep them around for the wire
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    project_name: str | None = Field(default=None, alias="projectName")
    metric_type: str | None = Field(default=None, alias="metricType")
    filters: list[str] = Field(default_factory=list)
    group_bys: list[str] = Field(default_factory=list, alias="groupBys")
    cross_series_reducer: str | None = Field(default=None, alias="crossSeriesReducer")
    per_series_aligner: str | None = Field(default=None, alias="perSeriesAligner")
    view: str | None = None  # FULL or HEADERS
    alignment_period: str | None = Field(default=None, alias="alignmentPeriod")
    unit: str | None = None
    alias_by: str | None = Field(default=None, alias="aliasBy")
    metric_kind: str | None = Field(default=None, alias="metricKind")
    value_type: str | None = Field(default=None, alias="valueType")

    @field_validator("filters", "group_bys", mode="before")
    @classmethod
    def _null_tokens_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class SLOQuery(BaseModel):
    """A service level objective query."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    project_name: str | None = Field(default=None, alias="projectName")
    service_id: str | None = Field(default=None, alias="serviceId")
    slo_id: str | None = Field(default=None, alias="sloId")
    selector_name: str | None = Field(default=None, alias="selectorName")
    alias_by: str | None = Field(default=None, alias="aliasBy")
    alignment_period: str | None = Field(default=None, alias="alignmentPeriod")
    per_series_aligner: str | None = Field(default=None, alias="perSeriesAligner")


class Query(BaseModel):
    """One target in a request batch, identified by ref_id."""

    model_config = ConfigDict(populate_by_name=True)

    ref_id: str = Field(alias="refId")
    hide: bool | None = None
    query_type: QueryType = Field(default=QueryType.METRICS, alias="queryType")
    metric_query: MetricsQuery = Field(default_factory=MetricsQuery, alias="metricQuery")
    slo_query: SLOQuery | None = Field(default=None, alias="sloQuery")

    @field_validator("metric_query", mode="before")
    @classmethod
    def _null_metric_query(cls, v: Any) -> Any:
        return {} if v is None else v


class Filter(BaseModel):
    """A single structured filter.

    on the wire filters travel as a flat token list, four tokens per filter
    (the last filter usually has no condition). we only use the flat form at
    the boundary.
    """

    key: str | None = None
    operator: str | None = None
    value: str | None = None
    condition: str | None = None  # AND / OR connective to the next filter

    @classmethod
    def from_tokens(cls, tokens: list[str]) -> list["Filter"]:
        """Chunk a flat token list into filters, four tokens at a time."""
        filters = []
        for i in range(0, len(tokens), 4):
            chunk = list(tokens[i : i + 4])
            chunk += [None] * (4 - len(chunk))
            key, operator, value, condition = chunk
            filters.append(cls(key=key, operator=operator, value=value, condition=condition))
        return filters

    def to_tokens(self) -> list[str]:
        tokens = [self.key, self.operator, self.value]
        if self.condition:
            tokens.append(self.condition)
        return tokens


class TimeRange(BaseModel):
    """Absolute time range of a request."""

    model_config = ConfigDict(populate_by_name=True)

    from_: datetime = Field(alias="from")
    to: datetime

    @classmethod
    def last(cls, hours: float = 6) -> "TimeRange":
        """Range ending now - six hours matches the usual dashboard default."""
        now = datetime.now(timezone.utc)
        return cls(from_=now - timedelta(hours=hours), to=now)

    def from_ms(self) -> str:
        return str(int(self.from_.timestamp() * 1000))

    def to_ms(self) -> str:
        return str(int(self.to.timestamp() * 1000))


# dicts first so raw legacy targets are never coerced into Query models
Target = Annotated[dict[str, Any] | Query, Field(union_mode="left_to_right")]


class DataQueryRequest(BaseModel):
    """A batch of targets sharing one time range.

    targets may be Query models or raw dicts - raw dicts are how legacy
    flat-shaped targets come in, the normalizer sorts them out.
    """

    model_config = ConfigDict(populate_by_name=True)

    targets: list[Target]
    range: TimeRange = Field(default_factory=TimeRange.last)
    scoped_vars: dict[str, Any] = Field(default_factory=dict, alias="scopedVars")
    interval_ms: int | None = Field(default=None, alias="intervalMs")
