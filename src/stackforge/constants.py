"""Static lookup tables for the monitoring api.

aligner and reducer availability depends on the metric's value type and kind -
the api rejects e.g. ALIGN_RATE on a gauge, so we only offer what will work.
"""

from typing import Any

ANNOTATION_REF_ID = "annotationQuery"
GCE_DEFAULT_PROJECT_REF_ID = "getGCEDefaultProject"
TIME_SERIES_QUERY_TYPE = "timeSeriesQuery"


class MetricKind:
    METRIC_KIND_UNSPECIFIED = "METRIC_KIND_UNSPECIFIED"
    GAUGE = "GAUGE"
    DELTA = "DELTA"
    CUMULATIVE = "CUMULATIVE"


class ValueTypes:
    VALUE_TYPE_UNSPECIFIED = "VALUE_TYPE_UNSPECIFIED"
    BOOL = "BOOL"
    INT64 = "INT64"
    DOUBLE = "DOUBLE"
    STRING = "STRING"
    DISTRIBUTION = "DISTRIBUTION"
    MONEY = "MONEY"


# provider unit -> display unit
UNIT_MAPPINGS = {
    "bit": "bits",
    "By": "bytes",
    "s": "s",
    "min": "m",
    "h": "h",
    "d": "d",
    "us": "µs",
    "ms": "ms",
    "ns": "ns",
    "percent": "percent",
    "MiBy": "mbytes",
    "By/s": "Bps",
    "GBy": "decgbytes",
}

_NUMERIC = [ValueTypes.INT64, ValueTypes.DOUBLE, ValueTypes.MONEY]
_GAUGE_DELTA = [MetricKind.GAUGE, MetricKind.DELTA]

ALIGN_OPTIONS: list[dict[str, Any]] = [
    {
        "text": "delta",
        "value": "ALIGN_DELTA",
        "valueTypes": [*_NUMERIC, ValueTypes.DISTRIBUTION],
        "metricKinds": [MetricKind.CUMULATIVE, MetricKind.DELTA],
    },
    {
        "text": "rate",
        "value": "ALIGN_RATE",
        "valueTypes": _NUMERIC,
        "metricKinds": [MetricKind.CUMULATIVE, MetricKind.DELTA],
    },
    {
        "text": "interpolate",
        "value": "ALIGN_INTERPOLATE",
        "valueTypes": _NUMERIC,
        "metricKinds": [MetricKind.GAUGE],
    },
    {
        "text": "next older",
        "value": "ALIGN_NEXT_OLDER",
        "valueTypes": [
            *_NUMERIC,
            ValueTypes.DISTRIBUTION,
            ValueTypes.STRING,
            ValueTypes.VALUE_TYPE_UNSPECIFIED,
            ValueTypes.BOOL,
        ],
        "metricKinds": [MetricKind.GAUGE],
    },
    {"text": "min", "value": "ALIGN_MIN", "valueTypes": _NUMERIC, "metricKinds": _GAUGE_DELTA},
    {"text": "max", "value": "ALIGN_MAX", "valueTypes": _NUMERIC, "metricKinds": _GAUGE_DELTA},
    {"text": "mean", "value": "ALIGN_MEAN", "valueTypes": _NUMERIC, "metricKinds": _GAUGE_DELTA},
    {
        "text": "count",
        "value": "ALIGN_COUNT",
        "valueTypes": [*_NUMERIC, ValueTypes.BOOL],
        "metricKinds": _GAUGE_DELTA,
    },
    {
        "text": "sum",
        "value": "ALIGN_SUM",
        "valueTypes": [*_NUMERIC, ValueTypes.DISTRIBUTION],
        "metricKinds": _GAUGE_DELTA,
    },
    {"text": "stddev", "value": "ALIGN_STDDEV", "valueTypes": _NUMERIC, "metricKinds": _GAUGE_DELTA},
    {
        "text": "count true",
        "value": "ALIGN_COUNT_TRUE",
        "valueTypes": [ValueTypes.BOOL],
        "metricKinds": [MetricKind.GAUGE],
    },
    {
        "text": "count false",
        "value": "ALIGN_COUNT_FALSE",
        "valueTypes": [ValueTypes.BOOL],
        "metricKinds": [MetricKind.GAUGE],
    },
    {
        "text": "fraction true",
        "value": "ALIGN_FRACTION_TRUE",
        "valueTypes": [ValueTypes.BOOL],
        "metricKinds": [MetricKind.GAUGE],
    },
    *[
        {
            "text": f"{p}th percentile",
            "value": f"ALIGN_PERCENTILE_{p}",
            "valueTypes": [ValueTypes.DISTRIBUTION],
            "metricKinds": _GAUGE_DELTA,
        }
        for p in ("99", "95", "50", "05")
    ],
    {
        "text": "percent change",
        "value": "ALIGN_PERCENT_CHANGE",
        "valueTypes": _NUMERIC,
        "metricKinds": _GAUGE_DELTA,
    },
]

AGGREGATION_OPTIONS: list[dict[str, Any]] = [
    {
        "text": "none",
        "value": "REDUCE_NONE",
        "valueTypes": [*_NUMERIC, ValueTypes.DISTRIBUTION, ValueTypes.BOOL, ValueTypes.STRING],
        "metricKinds": _GAUGE_DELTA,
    },
    {
        "text": "mean",
        "value": "REDUCE_MEAN",
        "valueTypes": [*_NUMERIC, ValueTypes.DISTRIBUTION],
        "metricKinds": _GAUGE_DELTA,
    },
    {"text": "min", "value": "REDUCE_MIN", "valueTypes": _NUMERIC, "metricKinds": _GAUGE_DELTA},
    {"text": "max", "value": "REDUCE_MAX", "valueTypes": _NUMERIC, "metricKinds": _GAUGE_DELTA},
    {
        "text": "sum",
        "value": "REDUCE_SUM",
        "valueTypes": [*_NUMERIC, ValueTypes.DISTRIBUTION],
        "metricKinds": _GAUGE_DELTA,
    },
    {
        "text": "std. dev.",
        "value": "REDUCE_STDDEV",
        "valueTypes": [*_NUMERIC, ValueTypes.DISTRIBUTION],
        "metricKinds": _GAUGE_DELTA,
    },
    {
        "text": "count",
        "value": "REDUCE_COUNT",
        "valueTypes": [*_NUMERIC, ValueTypes.BOOL, ValueTypes.STRING, ValueTypes.DISTRIBUTION],
        "metricKinds": _GAUGE_DELTA,
    },
    {
        "text": "count true",
        "value": "REDUCE_COUNT_TRUE",
        "valueTypes": [ValueTypes.BOOL],
        "metricKinds": _GAUGE_DELTA,
    },
    {
        "text": "count false",
        "value": "REDUCE_COUNT_FALSE",
        "valueTypes": [ValueTypes.BOOL],
        "metricKinds": _GAUGE_DELTA,
    },
    *[
        {
            "text": f"{p}th percentile",
            "value": f"REDUCE_PERCENTILE_{p}",
            "valueTypes": [*_NUMERIC, ValueTypes.DISTRIBUTION],
            "metricKinds": _GAUGE_DELTA,
        }
        for p in ("99", "95", "50", "05")
    ],
]

ALIGNMENT_PERIODS = [
    {"text": "grafana auto", "value": "grafana-auto"},
    {"text": "stackdriver auto", "value": "stackdriver-auto"},
    {"text": "1m", "value": "+60s"},
    {"text": "2m", "value": "+120s"},
    {"text": "5m", "value": "+300s"},
    {"text": "30m", "value": "+1800s"},
    {"text": "1h", "value": "+3600s"},
    {"text": "3h", "value": "+10800s"},
    {"text": "6h", "value": "+21600s"},
    {"text": "1d", "value": "+86400s"},
    {"text": "3d", "value": "+259200s"},
    {"text": "1w", "value": "+604800s"},
]

SLO_SELECTORS = [
    {"label": "SLI Value", "value": "select_slo_health"},
    {"label": "SLO Compliance", "value": "select_slo_compliance"},
    {"label": "SLO Error Budget Remaining", "value": "select_slo_budget_fraction"},
]


def get_alignment_options_by_metric(
    metric_value_type: str | None, metric_kind: str | None
) -> list[dict[str, Any]]:
    """Aligners that the api accepts for a metric of this value type and kind."""
    if not metric_value_type:
        return []
    return [
        option
        for option in ALIGN_OPTIONS
        if metric_value_type in option["valueTypes"] and metric_kind in option["metricKinds"]
    ]


def get_aggregation_options_by_metric(
    value_type: str | None, metric_kind: str | None
) -> list[dict[str, Any]]:
    """Cross-series reducers that the api accepts for this value type and kind."""
    if not metric_kind:
        return []
    return [
        option
        for option in AGGREGATION_OPTIONS
        if value_type in option["valueTypes"] and metric_kind in option["metricKinds"]
    ]
