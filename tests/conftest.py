"""Pytest fixtures for stackforge tests."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from stackforge.datasource import StackdriverDatasource
from stackforge.models.settings import DatasourceSettings
from stackforge.templating.resolver import TemplateResolver

PROXY_URL = "http://grafana.test/api/datasources/proxy/1"


class FakeMonitoringApi:
    """Stands in for the api proxy and the query endpoint.

    query_response is returned for time series posts, get_responses maps a
    url path suffix to the json body of a GET. every request is recorded.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.query_response: Any = {"results": {}}
        self.query_status = 200
        self.gce_project = "gce-project"
        self.gce_status = 200
        self.get_responses: dict[str, Any] = {}
        self.get_status = 200

    @property
    def posts(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]

    @property
    def gets(self) -> list[str]:
        return [r.url.path for r in self.requests if r.method == "GET"]

    @property
    def gce_lookups(self) -> int:
        return sum(1 for body in self.posts if body["queries"][0].get("type") == "getGCEDefaultProject")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.method == "POST":
            body = json.loads(request.content)
            if body["queries"][0].get("type") == "getGCEDefaultProject":
                if self.gce_status != 200:
                    return httpx.Response(
                        self.gce_status,
                        json={"error": {"code": self.gce_status, "message": "metadata unavailable"}},
                    )
                return httpx.Response(
                    200,
                    json={"results": {"getGCEDefaultProject": {"meta": {"defaultProject": self.gce_project}}}},
                )
            return httpx.Response(self.query_status, json=self.query_response)

        if self.get_status != 200:
            return httpx.Response(
                self.get_status,
                json={"error": {"code": self.get_status, "message": "The caller does not have permission"}},
            )
        for suffix, body in self.get_responses.items():
            if request.url.path.endswith(suffix):
                return httpx.Response(200, json=body)
        return httpx.Response(200, json={})


@pytest.fixture
def fake_api() -> FakeMonitoringApi:
    return FakeMonitoringApi()


@pytest.fixture
def settings() -> DatasourceSettings:
    return DatasourceSettings(url=PROXY_URL, id=7, default_project="my-project")


@pytest.fixture
def gce_settings() -> DatasourceSettings:
    return DatasourceSettings(url=PROXY_URL, id=7, authentication_type="gce")


@pytest.fixture
def variables() -> dict[str, str | list[str]]:
    return {
        "project": "var-project",
        "metric": "compute.googleapis.com/instance/cpu/utilization",
        "zone": ["us-east1", "us-west1"],
        "instance": "web-1",
        "group": "resource.label.zone",
    }


@pytest.fixture
def make_datasource(
    fake_api: FakeMonitoringApi, settings: DatasourceSettings, variables: dict
) -> Callable[..., StackdriverDatasource]:
    """Factory for datasources wired to the fake api."""

    def _make(
        ds_settings: DatasourceSettings | None = None, ds_variables: dict | None = None
    ) -> StackdriverDatasource:
        return StackdriverDatasource(
            ds_settings or settings,
            TemplateResolver(variables if ds_variables is None else ds_variables),
            transport=httpx.MockTransport(fake_api.handler),
        )

    return _make


@pytest.fixture
def sample_config_yaml() -> str:
    """Sample config content for testing."""
    return f"""
datasource:
  url: {PROXY_URL}
  authenticationType: jwt
  defaultProject: my-project

variables:
  zone: [us-east1, us-west1]

panels:
  - title: cpu
    intervalMs: 60000
    targets:
      - refId: A
        metricQuery:
          metricType: compute.googleapis.com/instance/cpu/utilization
          filters: [resource.label.zone, "=~", $zone]
          groupBys: [resource.label.zone]
          unit: percent
      - refId: B
        hide: true
        metricQuery:
          metricType: compute.googleapis.com/instance/cpu/usage_time

  - title: legacy
    targets:
      - refId: A
        metricType: compute.googleapis.com/instance/uptime
        crossSeriesReducer: REDUCE_MEAN
"""


@pytest.fixture
def config_file(tmp_path: Path, sample_config_yaml: str) -> Path:
    path = tmp_path / "stackforge.yaml"
    path.write_text(sample_config_yaml)
    return path
