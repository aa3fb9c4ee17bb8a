"""Pydantic models for reshaped results and lookup entries."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_serializer


class TimeSeries(BaseModel):
    """One named series, flattened out of the provider's per-query results.

    ref_id and meta come from the owning query result, not the series itself.
    unit is left unset unless every target in the batch agreed on one, and an
    unset unit is left out of dumps entirely.
    """

    model_config = ConfigDict(populate_by_name=True)

    target: str | None = None
    datapoints: list[Any] = Field(default_factory=list)
    ref_id: str | None = Field(default=None, alias="refId")
    meta: dict[str, Any] | None = None
    unit: str | None = None

    @model_serializer(mode="wrap")
    def _drop_unset_unit(self, handler: Any) -> dict[str, Any]:
        data = handler(self)
        if self.unit is None:
            data.pop("unit", None)
        return data


class DataQueryResponse(BaseModel):
    data: list[TimeSeries] = Field(default_factory=list)


class Annotation(BaseModel):
    """An annotation event built from one row of an annotation table."""

    time: int | None  # epoch ms, None if the timestamp couldn't be parsed
    title: str | None = None
    text: str | None = None
    tags: list[str] = Field(default_factory=list)


class SelectableValue(BaseModel):
    value: str
    label: str


class MetricDescriptor(BaseModel):
    """A metric descriptor from the monitoring api.

    service and service_short_name are derived from the metric type -
    "compute.googleapis.com/instance/cpu" gives "compute.googleapis.com" and "compute".
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    display_name: str | None = Field(default=None, alias="displayName")
    service: str | None = None
    service_short_name: str | None = Field(default=None, alias="serviceShortName")
    metric_kind: str | None = Field(default=None, alias="metricKind")
    value_type: str | None = Field(default=None, alias="valueType")
    unit: str | None = None
    description: str | None = None
    labels: list[dict[str, Any]] = Field(default_factory=list)


class FindQueryResult(BaseModel):
    """An entry of a template variable query."""

    text: str
    value: str | None = None
    expandable: bool = True


class TestResult(BaseModel):
    # keep pytest from trying to collect this
    __test__ = False

    status: Literal["success", "error"]
    message: str
