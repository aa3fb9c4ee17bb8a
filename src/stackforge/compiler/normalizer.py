"""Query normalization - legacy migration and the run filter.

older dashboards stored metrics targets flat, with metricType, filters etc.
sitting directly on the target. the current shape nests them under
metricQuery. we migrate on the fly instead of asking people to re-save.
"""

import logging
from collections.abc import Mapping
from typing import Any

from stackforge.models.query import MetricsQuery, Query, QueryType

logger = logging.getLogger(__name__)

# target-level keys that never belong in the nested metrics payload
_TARGET_KEYS = {"hide", "refId", "datasource", "key", "queryType", "maxLines", "metric"}


def migrate_query(query: Query | Mapping[str, Any]) -> Query:
    """Bring a target into the current nested shape.

    already-normalized Query models come back unchanged, so this is safe to
    call twice. never raises on odd legacy input - whatever scalar fields are
    there get carried into the metrics payload as-is.
    """
    if isinstance(query, Query):
        return query

    if "metricQuery" in query or "metric_query" in query:
        return Query.model_validate(dict(query))

    rest = {k: v for k, v in query.items() if k not in _TARGET_KEYS and v is not None}
    rest["view"] = rest.get("view") or "FULL"
    logger.debug("Migrating legacy target %s", query.get("refId"))

    return Query(
        ref_id=query.get("refId", ""),
        hide=query.get("hide"),
        query_type=QueryType.METRICS,
        metric_query=MetricsQuery.model_validate(rest),
    )


def should_run_query(query: Query) -> bool:
    """Decide whether a target is complete enough to send.

    hidden targets never run. slo targets need the whole selector chain,
    metrics targets just need a metric type.
    """
    if query.hide:
        return False

    if query.query_type == QueryType.SLO:
        slo = query.slo_query
        if slo is None:
            return False
        return bool(slo.selector_name and slo.service_id and slo.slo_id and slo.project_name)

    return bool(query.metric_query.metric_type)
