# -*- coding: utf-8 -*-
"""
Carbonytics CLI
====================

Command line front end for the emission calculation engine.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from carbonytics import __version__
from carbonytics.calculation.catalog import InMemoryCatalog
from carbonytics.calculation.config import get_config
from carbonytics.calculation.engine import CalculationEngine, create_engine
from carbonytics.calculation.factor_selector import FactorSelector
from carbonytics.calculation.models import CalculationInput, CalculationResult, CalculationSummary
from carbonytics.calculation.unit_converter import UnitConverter
from carbonytics.exceptions import CarbonyticsException

app = typer.Typer(
    name="carbonytics",
    help="Carbonytics: GHG emission calculations",
    no_args_is_help=True,
    add_completion=False,
)
console = Console()


def _build_engine(catalog_path: Optional[Path], offline: bool) -> CalculationEngine:
    catalog = InMemoryCatalog.from_yaml(catalog_path) if catalog_path else None
    if offline:
        return CalculationEngine(catalog or InMemoryCatalog.default(), distance_lookup=None)
    return create_engine(catalog=catalog)


def _parse_metadata(pairs: List[str]) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise typer.BadParameter(f"expected key=value, got '{pair}'", param_hint="--meta")
        key, value = pair.split("=", 1)
        metadata[key.strip()] = value.strip()
    return metadata


def _load_inputs(path: Path) -> List[Dict[str, Any]]:
    with open(path, encoding="utf-8") as f:
        if path.suffix == ".json":
            data = json.load(f)
        elif path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            console.print(f"[red]Unsupported input format: {path.suffix}[/red]")
            console.print("[yellow]Use .json or .yaml files[/yellow]")
            raise typer.Exit(1)
    if isinstance(data, dict):
        data = data.get("inputs", [])
    return list(data or [])


def _print_result(result: CalculationResult) -> None:
    table = Table(title="Emission Calculation", box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Category", f"{result.category.name} (scope {result.category.scope})")
    table.add_row("Activity", f"{result.calculation.value:g} {result.calculation.unit}")
    table.add_row(
        "Factor",
        f"{result.factor.name}: {result.factor.value} {result.factor.unit} "
        f"({result.factor.source}, {result.factor.region.value}, {result.factor.year})",
    )
    table.add_row("Emissions", f"[bold green]{result.emissions} kg CO2e[/bold green]")
    table.add_row("Quality", f"{result.quality.rating.value} ({result.quality.confidence}%)")
    console.print(table)

    for note in result.quality.notes:
        console.print(f"  [blue]-[/blue] {note}")
    for warning in result.warnings:
        console.print(f"[yellow]⚠ {warning}[/yellow]")


def _print_summary(summary: CalculationSummary) -> None:
    table = Table(title="Summary", box=box.SIMPLE)
    table.add_column("Breakdown", style="cyan")
    table.add_column("kg CO2e", justify="right")
    for scope, total in sorted(summary.scope_breakdown.items()):
        table.add_row(f"Scope {scope}", str(total))
    for name, total in summary.category_breakdown.items():
        table.add_row(name, str(total))
    table.add_row("[bold]Total[/bold]", f"[bold]{summary.total_emissions}[/bold]")
    console.print(table)

    quality = summary.quality_assessment
    console.print(
        f"Average confidence {quality.average_confidence}% "
        f"(high {quality.high_quality_count}, medium {quality.medium_quality_count}, "
        f"low {quality.low_quality_count})"
    )


@app.command()
def version():
    """Show Carbonytics version"""
    console.print(f"[bold green]Carbonytics v{__version__}[/bold green]")


@app.command()
def calculate(
    category_id: str = typer.Argument(..., help="Emission category id"),
    value: float = typer.Argument(..., help="Activity quantity"),
    unit: str = typer.Argument(..., help="Activity unit, e.g. kWh"),
    factor_id: Optional[str] = typer.Option(None, "--factor-id", "-f", help="Use this emission factor"),
    meta: List[str] = typer.Option([], "--meta", "-m", help="Metadata as key=value (repeatable)"),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help="Catalog YAML file"),
    offline: bool = typer.Option(False, "--offline", help="Do not call the distance API"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Calculate emissions for one activity"""
    try:
        engine = _build_engine(catalog, offline)
        result = engine.calculate(CalculationInput(
            category_id=category_id,
            value=value,
            unit=unit,
            factor_id=factor_id,
            metadata=_parse_metadata(meta),
        ))
    except CarbonyticsException as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    if as_json:
        console.print_json(data=result.to_dict())
    else:
        _print_result(result)


@app.command()
def travel(
    origin: str = typer.Argument(..., help="Origin airport code, e.g. CAI"),
    destination: str = typer.Argument(..., help="Destination airport code, e.g. DXB"),
    travel_class: str = typer.Option("Economy", "--class", help="Economy, Business or First"),
    round_trip: bool = typer.Option(False, "--round-trip", "-r", help="Count the return leg"),
    mode: str = typer.Option("Flight", "--mode", help="Travel mode"),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help="Catalog YAML file"),
    offline: bool = typer.Option(False, "--offline", help="Use the static distance table only"),
):
    """Calculate emissions for a business trip"""
    try:
        engine = _build_engine(catalog, offline)
        result = engine.calculate_business_travel(origin, destination, travel_class, round_trip, mode)
    except CarbonyticsException as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    _print_result(result)


@app.command()
def batch(
    input_file: Path = typer.Argument(..., help="JSON or YAML list of calculation inputs"),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help="Catalog YAML file"),
    offline: bool = typer.Option(False, "--offline", help="Do not call the distance API"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write results as JSON"),
):
    """Calculate a batch of activities and summarize them"""
    if not input_file.exists():
        console.print(f"[red]Input file not found: {input_file}[/red]")
        raise typer.Exit(1)

    inputs = _load_inputs(input_file)
    try:
        engine = _build_engine(catalog, offline)
    except CarbonyticsException as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    results = engine.calculate_batch(inputs)
    summary = engine.summarize(results)

    console.print(f"[green]✓[/green] {len(results)}/{len(inputs)} calculations succeeded")
    _print_summary(summary)

    if output:
        payload = {
            "results": [r.to_dict() for r in results],
            "summary": summary.to_dict(),
        }
        output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        console.print(f"[green]✓[/green] Results written to {output}")


@app.command()
def factors(
    category_id: str = typer.Argument(..., help="Emission category id"),
    catalog: Optional[Path] = typer.Option(None, "--catalog", "-c", help="Catalog YAML file"),
    as_json: bool = typer.Option(False, "--json", help="Print the factors as JSON"),
):
    """List a category's active emission factors in selection order"""
    try:
        source = InMemoryCatalog.from_yaml(catalog) if catalog else InMemoryCatalog.default()
    except CarbonyticsException as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    category = source.find_category_by_id(category_id)
    if category is None:
        console.print(f"[red]Error: Unknown emission category {category_id}[/red]")
        raise typer.Exit(1)

    selector = FactorSelector(source, region_priority=get_config().region_priority)
    rows = selector.ranked_factors(category)
    if not rows:
        console.print(f"[yellow]No emission factors for category {category_id}[/yellow]")
        raise typer.Exit(1)

    if as_json:
        console.print_json(data=[f.to_summary().model_dump(mode="json") for f in rows])
        return

    table = Table(title=f"Emission factors: {category_id}", box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("ID", style="cyan", no_wrap=True)
    for column in ("Factor", "Unit", "Region", "Year", "Source", "Quality"):
        table.add_column(column)
    for rank, f in enumerate(rows, start=1):
        table.add_row(
            str(rank), f.id, str(f.factor), f.unit, f.region.value, str(f.year),
            f.source, f.quality_rating.value,
        )
    console.print(table)


@app.command()
def units(
    from_unit: Optional[str] = typer.Argument(None, help="Only show conversions from this unit"),
):
    """List global unit conversions"""
    supported = UnitConverter().list_supported_conversions()
    if from_unit:
        if from_unit not in supported:
            console.print(f"[yellow]No conversions from {from_unit}[/yellow]")
            raise typer.Exit(1)
        supported = {from_unit: supported[from_unit]}

    table = Table(box=box.SIMPLE)
    table.add_column("From", style="cyan")
    table.add_column("To")
    for source, targets in supported.items():
        table.add_row(source, ", ".join(targets))
    console.print(table)


@app.callback()
def _root(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override the configured log level"),
):
    """
    Carbonytics - GHG emission calculation engine
    """
    level = (log_level or get_config().log_level).upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


if __name__ == "__main__":
    app()
