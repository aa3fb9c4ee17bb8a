"""CLI for stackforge."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from stackforge.datasource import StackdriverDatasource
from stackforge.models.query import DataQueryRequest, TimeRange
from stackforge.parser.loader import ConfigRegistry, load_config
from stackforge.templating.resolver import TemplateResolver

app = typer.Typer(
    name="sf",
    help="stackforge - Cloud Monitoring query adapter CLI",
    no_args_is_help=True,
)
console = Console()

ConfigOption = Annotated[
    Path, typer.Option("--config", "-c", help="Config file or directory")
]
DEFAULT_CONFIG = Path("./stackforge.yaml")


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def get_config(config_path: Path) -> ConfigRegistry:
    try:
        return load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        raise typer.Exit(1)


def get_datasource(config: ConfigRegistry) -> StackdriverDatasource:
    try:
        settings = config.get_datasource()
    except Exception as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        raise typer.Exit(1)
    return StackdriverDatasource(settings, TemplateResolver(config.variables))


def get_request(config: ConfigRegistry, panel_title: str, hours: float) -> DataQueryRequest:
    try:
        panel = config.get_panel(panel_title)
    except KeyError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    return DataQueryRequest(
        targets=panel.targets,
        range=TimeRange.last(hours),
        scoped_vars=panel.scoped_vars,
        interval_ms=panel.interval_ms,
    )


def run(datasource: StackdriverDatasource, coro_fn) -> Any:
    """Run one datasource call and close the client afterwards."""

    async def _run() -> Any:
        async with datasource:
            return await coro_fn(datasource)

    return asyncio.run(_run())


@app.command()
def test(config_path: ConfigOption = DEFAULT_CONFIG) -> None:
    """Check that the monitoring api is reachable."""
    datasource = get_datasource(get_config(config_path))
    result = run(datasource, lambda ds: ds.test_datasource())

    if result.status == "success":
        console.print(f"[green]{result.message}[/green]")
    else:
        console.print(f"[red]{result.message}[/red]")
        raise typer.Exit(1)


@app.command()
def query(
    panel: Annotated[str, typer.Argument(help="Panel title")],
    config_path: ConfigOption = DEFAULT_CONFIG,
    hours: Annotated[float, typer.Option("--hours", "-t", help="Query the last N hours")] = 6,
    show_request: Annotated[
        bool, typer.Option("--request", "-r", help="Show the request body")
    ] = False,
    output: Annotated[str, typer.Option("--output", "-o", help="Output format: table, json")] = "table",
) -> None:
    """Query all targets of a panel."""
    config = get_config(config_path)
    datasource = get_datasource(config)
    request = get_request(config, panel, hours)

    async def _query(ds: StackdriverDatasource) -> tuple[dict[str, Any] | None, Any]:
        body = await ds.build_batch(request) if show_request else None
        return body, await ds.query(request)

    try:
        body, response = run(datasource, _query)
    except Exception as e:
        console.print(f"[red]Query error: {e}[/red]")
        raise typer.Exit(1)

    if show_request:
        _print_json(body)
        console.print()
    _output_series(response.data, output)


@app.command("show-request")
def show_request(
    panel: Annotated[str, typer.Argument(help="Panel title")],
    config_path: ConfigOption = DEFAULT_CONFIG,
    hours: Annotated[float, typer.Option("--hours", "-t", help="Query the last N hours")] = 6,
) -> None:
    """Show the request body for a panel without sending it."""
    config = get_config(config_path)
    datasource = get_datasource(config)
    request = get_request(config, panel, hours)

    try:
        body = run(datasource, lambda ds: ds.build_batch(request))
    except Exception as e:
        console.print(f"[red]Error building request: {e}[/red]")
        raise typer.Exit(1)

    if body is None:
        console.print("[yellow]No runnable targets[/yellow]")
        return
    _print_json(body)


@app.command()
def projects(config_path: ConfigOption = DEFAULT_CONFIG) -> None:
    """List the projects the datasource can see."""
    datasource = get_datasource(get_config(config_path))
    try:
        items = run(datasource, lambda ds: ds.get_projects())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Projects")
    table.add_column("Project ID", style="cyan")
    table.add_column("Name")
    for item in items:
        table.add_row(item.value, item.label)
    console.print(table)


@app.command("metric-types")
def metric_types(
    project: Annotated[str, typer.Option("--project", "-p", help="Project name")],
    config_path: ConfigOption = DEFAULT_CONFIG,
) -> None:
    """List metric descriptors of a project."""
    datasource = get_datasource(get_config(config_path))
    try:
        descriptors = run(datasource, lambda ds: ds.get_metric_types(project))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not descriptors:
        console.print("[yellow]No metric types found[/yellow]")
        return

    table = Table(title=f"Metric types ({project})")
    table.add_column("Type", style="cyan")
    table.add_column("Service", style="green")
    table.add_column("Kind", style="yellow")
    table.add_column("Value type")
    table.add_column("Unit")
    for d in descriptors:
        table.add_row(d.type, d.service_short_name, d.metric_kind or "-", d.value_type or "-", d.unit or "-")
    console.print(table)


@app.command()
def find(
    query_type: Annotated[
        str, typer.Argument(help="projects, services, metricTypes, labelKeys, labelValues, ...")
    ],
    config_path: ConfigOption = DEFAULT_CONFIG,
    project: Annotated[str | None, typer.Option("--project", "-p")] = None,
    service: Annotated[str | None, typer.Option("--service")] = None,
    metric_type: Annotated[str | None, typer.Option("--metric-type", "-m")] = None,
    label_key: Annotated[str | None, typer.Option("--label-key", "-l")] = None,
    slo_service: Annotated[str | None, typer.Option("--slo-service")] = None,
) -> None:
    """Run a template variable query."""
    datasource = get_datasource(get_config(config_path))
    variable_query = {
        "selectedQueryType": query_type,
        "projectName": project,
        "selectedService": service,
        "selectedMetricType": metric_type,
        "labelKey": label_key,
        "selectedSLOService": slo_service,
    }
    results = run(datasource, lambda ds: ds.metric_find_query(variable_query))

    if not results:
        console.print("[yellow]No results[/yellow]")
        return

    table = Table(title=f"{query_type} ({len(results)})")
    table.add_column("Text", style="cyan")
    table.add_column("Value")
    for r in results:
        table.add_row(r.text, r.value or "-")
    console.print(table)


def _print_json(data: Any) -> None:
    syntax = Syntax(json.dumps(data, indent=2, default=str), "json", theme="monokai")
    console.print(syntax)


def _output_series(series: list, output_format: str) -> None:
    """Output reshaped series in the specified format."""
    if output_format == "json":
        payload = [s.model_dump(by_alias=True, exclude_none=True) for s in series]
        console.print_json(data=payload, default=str)
        return

    if not series:
        console.print("[yellow]No data[/yellow]")
        return

    table = Table(title=f"Series ({len(series)})")
    table.add_column("Ref", style="cyan")
    table.add_column("Target", style="green")
    table.add_column("Points")
    table.add_column("Last value")
    table.add_column("Unit")
    for s in series:
        last = str(s.datapoints[-1][0]) if s.datapoints else "-"
        table.add_row(s.ref_id or "-", s.target or "-", str(len(s.datapoints)), last, s.unit or "-")
    console.print(table)


if __name__ == "__main__":
    app()
