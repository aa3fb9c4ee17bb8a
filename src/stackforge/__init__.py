"""stackforge - panel query adapter for the Cloud Monitoring (Stackdriver) api."""

from stackforge.datasource import StackdriverDatasource
from stackforge.errors import ApiError, ConfigError, StackforgeError
from stackforge.models import DataQueryRequest, DatasourceSettings, Query, TimeRange
from stackforge.templating.resolver import TemplateResolver

__all__ = [
    "ApiError",
    "ConfigError",
    "DataQueryRequest",
    "DatasourceSettings",
    "Query",
    "StackdriverDatasource",
    "StackforgeError",
    "TemplateResolver",
    "TimeRange",
]
