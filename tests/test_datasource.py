"""Integration tests for StackdriverDatasource against a fake api."""

import asyncio
from datetime import datetime, timezone

import pytest

from stackforge.models.query import DataQueryRequest, Query, TimeRange

TIME_RANGE = TimeRange(
    from_=datetime(2024, 1, 1, tzinfo=timezone.utc),
    to=datetime(2024, 1, 1, 6, tzinfo=timezone.utc),
)


def metrics_target(ref_id: str, unit: str | None = None, **extra) -> Query:
    return Query.model_validate(
        {
            "refId": ref_id,
            "metricQuery": {"metricType": "compute.googleapis.com/instance/cpu/utilization", "unit": unit},
            **extra,
        }
    )


def request_for(*targets, **kwargs) -> DataQueryRequest:
    return DataQueryRequest(targets=list(targets), range=TIME_RANGE, **kwargs)


class TestGetTimeSeries:
    def test_no_runnable_targets_no_call(self, make_datasource, fake_api):
        """Nothing is posted when every target is hidden or incomplete."""
        datasource = make_datasource()
        request = request_for(
            metrics_target("A", hide=True),
            Query.model_validate({"refId": "B", "metricQuery": {}}),
        )

        result = asyncio.run(datasource.get_time_series(request))

        assert result == {"results": {}}
        assert fake_api.requests == []

    def test_single_batch(self, make_datasource, fake_api):
        """All runnable targets go out in one post with the time range."""
        datasource = make_datasource()
        request = request_for(
            metrics_target("A"),
            metrics_target("B", hide=True),
            {"refId": "C", "metricType": "compute.googleapis.com/instance/uptime"},
            interval_ms=30000,
        )

        asyncio.run(datasource.get_time_series(request))

        assert len(fake_api.posts) == 1
        body = fake_api.posts[0]
        assert body["from"] == "1704067200000"
        assert body["to"] == "1704088800000"
        assert [q["refId"] for q in body["queries"]] == ["A", "C"]
        assert body["queries"][1]["metricQuery"]["view"] == "FULL"
        assert body["queries"][0]["intervalMs"] == 30000
        assert body["queries"][0]["metricQuery"]["projectName"] == "my-project"

    def test_gce_project_resolved_before_dispatch(self, make_datasource, gce_settings, fake_api):
        """Queries carry the discovered project, discovery happens first."""
        datasource = make_datasource(gce_settings)
        asyncio.run(datasource.get_time_series(request_for(metrics_target("A"))))

        assert fake_api.gce_lookups == 1
        assert fake_api.posts[0]["queries"][0]["type"] == "getGCEDefaultProject"
        assert fake_api.posts[1]["queries"][0]["metricQuery"]["projectName"] == "gce-project"

    def test_scoped_vars_applied(self, make_datasource, fake_api):
        datasource = make_datasource()
        target = Query.model_validate(
            {"refId": "A", "metricQuery": {"metricType": "a/b", "aliasBy": "$instance"}}
        )
        request = request_for(target, scoped_vars={"instance": {"text": "x", "value": "web-7"}})

        asyncio.run(datasource.get_time_series(request))
        assert fake_api.posts[0]["queries"][0]["metricQuery"]["aliasBy"] == "web-7"


class TestQuery:
    def test_no_results(self, make_datasource, fake_api):
        fake_api.query_response = {}
        response = asyncio.run(make_datasource().query(request_for(metrics_target("A"))))
        assert response.data == []

    def test_result_without_series_skipped(self, make_datasource, fake_api):
        """A result with no series contributes nothing and isn't an error."""
        fake_api.query_response = {"results": {"A": {"refId": "A", "meta": {}}}}
        response = asyncio.run(make_datasource().query(request_for(metrics_target("A"))))
        assert response.data == []

    def test_series_flattened_with_owner_ref_and_meta(self, make_datasource, fake_api):
        """Each series becomes a row carrying its result's refId and meta."""
        meta = {"alignmentPeriod": "+60s"}
        fake_api.query_response = {
            "results": {
                "A": {
                    "refId": "A",
                    "meta": meta,
                    "series": [
                        {"name": "cpu web-1", "points": [[0.5, 1704067200000]]},
                        {"name": "cpu web-2", "points": [[0.7, 1704067200000]]},
                    ],
                },
                "B": {"refId": "B"},
            }
        }
        request = request_for(metrics_target("A"), metrics_target("B"))
        response = asyncio.run(make_datasource().query(request))

        assert [s.target for s in response.data] == ["cpu web-1", "cpu web-2"]
        assert all(s.ref_id == "A" for s in response.data)
        assert all(s.meta == meta for s in response.data)
        assert response.data[1].datapoints == [[0.7, 1704067200000]]

    def test_shared_unit_attached(self, make_datasource, fake_api):
        """Targets agreeing on a unit get the mapped display unit."""
        fake_api.query_response = {
            "results": {"A": {"refId": "A", "series": [{"name": "a", "points": []}]}}
        }
        request = request_for(metrics_target("A", unit="By"), metrics_target("B", unit="By"))
        response = asyncio.run(make_datasource().query(request))

        assert response.data[0].unit == "bytes"

    def test_mixed_units_omitted(self, make_datasource, fake_api):
        """Differing units mean no unit field at all."""
        fake_api.query_response = {
            "results": {
                "A": {"refId": "A", "series": [{"name": "a", "points": []}]},
                "B": {"refId": "B", "series": [{"name": "b", "points": []}]},
            }
        }
        request = request_for(metrics_target("A", unit="By"), metrics_target("B", unit="s"))
        response = asyncio.run(make_datasource().query(request))

        assert len(response.data) == 2
        assert all("unit" not in s.model_dump(by_alias=True) for s in response.data)

    def test_null_tokens_do_not_break_batch(self, make_datasource, fake_api):
        """A nested target with null filters and groupBys still queries."""
        fake_api.query_response = {
            "results": {"A": {"refId": "A", "series": [{"name": "a", "points": []}]}}
        }
        target = {"refId": "A", "metricQuery": {"metricType": "a/b", "filters": None, "groupBys": None}}
        response = asyncio.run(make_datasource().query(request_for(target)))

        assert [s.target for s in response.data] == ["a"]
        sent = fake_api.posts[0]["queries"][0]["metricQuery"]
        assert sent["filters"] == []
        assert sent["groupBys"] == []

    def test_unmapped_unit_omitted(self, make_datasource):
        datasource = make_datasource()
        targets = [metrics_target("A", unit="furlongs"), metrics_target("B", unit="furlongs")]
        assert datasource.resolve_panel_unit_from_targets(targets) is None

    def test_legacy_target_unit(self, make_datasource):
        datasource = make_datasource()
        targets = [{"refId": "A", "metricType": "a/b", "unit": "percent"}]
        assert datasource.resolve_panel_unit_from_targets(targets) == "percent"

    def test_transport_error_propagates(self, make_datasource, fake_api):
        from stackforge.errors import ApiError

        fake_api.query_status = 400
        fake_api.query_response = {"error": {"code": 400, "message": "bad filter"}}
        with pytest.raises(ApiError, match="bad filter"):
            asyncio.run(make_datasource().query(request_for(metrics_target("A"))))


class TestAnnotationQuery:
    def test_rows_to_annotations(self, make_datasource, fake_api):
        fake_api.query_response = {
            "results": {
                "annotationQuery": {
                    "tables": [
                        {
                            "rows": [
                                ["2024-01-01T00:00:00Z", "deploy", "ignored", "v1.2 rolled out"],
                                ["2024-01-01T01:00:00Z", "rollback", "ignored", "v1.1"],
                            ]
                        }
                    ]
                }
            }
        }
        options = {
            "annotation": {"target": {"metricType": "$metric", "title": "t", "text": "x"}},
            "range": TIME_RANGE,
        }

        annotations = asyncio.run(make_datasource().annotation_query(options))

        assert annotations[0].time == 1704067200000
        assert annotations[0].title == "deploy"
        assert annotations[0].text == "v1.2 rolled out"
        assert annotations[0].tags == []
        assert annotations[1].title == "rollback"

        query = fake_api.posts[0]["queries"][0]
        assert query["type"] == "annotationQuery"
        assert query["metricType"] == "compute.googleapis.com/instance/cpu/utilization"
        assert query["projectName"] == "my-project"


class TestLookups:
    def test_get_metric_types(self, make_datasource, fake_api):
        """Descriptors gain service, short service name and a display name."""
        fake_api.get_responses["/metricDescriptors"] = {
            "metricDescriptors": [
                {"type": "compute.googleapis.com/instance/cpu/utilization", "displayName": "CPU"},
                {"type": "logging.googleapis.com/log_entry_count"},
            ]
        }
        descriptors = asyncio.run(make_datasource().get_metric_types("$project"))

        assert fake_api.gets == ["/api/datasources/proxy/1/stackdriver/v3/projects/var-project/metricDescriptors"]
        assert descriptors[0].service == "compute.googleapis.com"
        assert descriptors[0].service_short_name == "compute"
        assert descriptors[0].display_name == "CPU"
        assert descriptors[1].display_name == "logging.googleapis.com/log_entry_count"

    def test_get_metric_types_without_project(self, make_datasource, fake_api):
        assert asyncio.run(make_datasource().get_metric_types("")) == []
        assert fake_api.requests == []

    def test_get_slo_services(self, make_datasource, fake_api):
        fake_api.get_responses["/services"] = {
            "services": [{"name": "projects/123/services/checkout"}]
        }
        services = asyncio.run(make_datasource().get_slo_services("my-project"))
        assert [(s.value, s.label) for s in services] == [("checkout", "checkout")]

    def test_get_service_level_objectives(self, make_datasource, fake_api):
        fake_api.get_responses["/serviceLevelObjectives"] = {
            "serviceLevelObjectives": [{"name": "projects/123/services/checkout/serviceLevelObjectives/avail"}]
        }
        slos = asyncio.run(make_datasource().get_service_level_objectives("$project", "checkout"))

        assert fake_api.gets[0].endswith("/var-project/services/checkout/serviceLevelObjectives")
        assert [s.value for s in slos] == ["avail"]

    def test_get_projects(self, make_datasource, fake_api):
        fake_api.get_responses["/projects"] = {
            "projects": [{"projectId": "p-1", "name": "Project One"}]
        }
        projects = asyncio.run(make_datasource().get_projects())

        assert fake_api.gets == ["/api/datasources/proxy/1/cloudresourcemanager/v1/projects"]
        assert [(p.value, p.label) for p in projects] == [("p-1", "Project One")]

    def test_get_labels(self, make_datasource, fake_api):
        labels = {"resource.type": ["gce_instance"], "metric.label.instance_name": ["web-1"]}
        fake_api.query_response = {"results": {"labels": {"refId": "labels", "meta": {"labels": labels}}}}

        result = asyncio.run(make_datasource().get_labels("$metric", "labels", "p", ["$zone"]))

        assert result == labels
        metric_query = fake_api.posts[0]["queries"][0]["metricQuery"]
        assert metric_query["view"] == "HEADERS"
        assert metric_query["crossSeriesReducer"] == "REDUCE_NONE"
        assert metric_query["groupBys"] == ["us-east1", "us-west1"]

    def test_get_labels_missing_result(self, make_datasource):
        assert asyncio.run(make_datasource().get_labels("a/b", "x", "p")) == {}

    def test_variables(self, make_datasource):
        assert "$project" in make_datasource().variables


class TestTestDatasource:
    def test_success(self, make_datasource, fake_api):
        result = asyncio.run(make_datasource().test_datasource())
        assert result.status == "success"
        assert fake_api.gets[0].endswith("/my-project/metricDescriptors")

    def test_transport_failure_reported(self, make_datasource, fake_api):
        """A failing api is reported, never raised."""
        fake_api.get_status = 403
        result = asyncio.run(make_datasource().test_datasource())

        assert result.status == "error"
        assert result.message == "Stackdriver: Forbidden: 403. The caller does not have permission"

    def test_gce_discovery_failure_reported(self, make_datasource, gce_settings, fake_api):
        fake_api.gce_status = 500
        result = asyncio.run(make_datasource(gce_settings).test_datasource())
        assert result.status == "error"
        assert result.message.startswith("Stackdriver: ")

    def test_unexpected_error_reported(self, make_datasource, monkeypatch):
        datasource = make_datasource()

        async def boom(*args, **kwargs):
            raise RuntimeError("kaboom")

        monkeypatch.setattr(datasource.api, "get", boom)
        result = asyncio.run(datasource.test_datasource())
        assert result.status == "error"
        assert result.message == "kaboom"
