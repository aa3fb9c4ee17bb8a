"""Basic usage example for stackforge."""

import asyncio
import sys
from pathlib import Path

# Add parent to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from stackforge import DataQueryRequest, DatasourceSettings, StackdriverDatasource, TemplateResolver


async def main():
    """Demonstrate stackforge capabilities against a datasource proxy."""
    settings = DatasourceSettings(
        url="http://localhost:3000/api/datasources/proxy/1",
        default_project="my-project",
    )
    resolver = TemplateResolver({"zone": ["us-east1-b", "us-west1-a"]})

    async with StackdriverDatasource(settings, resolver) as datasource:
        print("=" * 60)
        print("stackforge Demo")
        print("=" * 60)

        # 1. Health check
        print("\n1. Datasource test:")
        result = await datasource.test_datasource()
        print(f"   {result.status}: {result.message}")

        # 2. Metric types
        print("\n2. Compute metric types:")
        descriptors = await datasource.get_metric_types("my-project")
        for d in [d for d in descriptors if d.service_short_name == "compute"][:5]:
            print(f"   {d.type} ({d.metric_kind}, {d.value_type})")

        # 3. Request body for a panel with a multi-value variable
        request = DataQueryRequest(
            targets=[
                {
                    "refId": "A",
                    "metricQuery": {
                        "metricType": "compute.googleapis.com/instance/cpu/utilization",
                        "filters": ["resource.label.zone", "=~", "$zone"],
                        "groupBys": ["resource.label.zone"],
                        "crossSeriesReducer": "REDUCE_MEAN",
                        "perSeriesAligner": "ALIGN_MEAN",
                        "unit": "percent",
                    },
                },
                # legacy flat target, migrated on the fly
                {"refId": "B", "metricType": "compute.googleapis.com/instance/uptime"},
            ],
            interval_ms=60000,
        )
        print("\n3. Request body:")
        body = await datasource.build_batch(request)
        for q in body["queries"]:
            print(f"   {q['refId']}: {q['metricQuery']['filters']} by {q['metricQuery']['groupBys']}")

        # 4. Query
        print("\n4. Series:")
        response = await datasource.query(request)
        for series in response.data:
            print(f"   [{series.ref_id}] {series.target}: {len(series.datapoints)} points {series.unit or ''}")

        # 5. Template variable query
        print("\n5. Alignment periods:")
        periods = await datasource.metric_find_query({"selectedQueryType": "alignmentPeriods"})
        print("   " + ", ".join(p.text for p in periods))

    print("\n" + "=" * 60)
    print("Demo complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
