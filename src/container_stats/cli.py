"""CLI for container-stats.

Provides a command-line interface using Typer for:
- Polling continuously and emitting metrics
- Running a single round and showing the results
- Generating a sample configuration
"""

from __future__ import annotations

import json
import threading
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from container_stats.core.config import apply_overrides, load_config
from container_stats.core.schemas import MetricName, PollerConfig
from container_stats.monitoring.base import ERROR
from container_stats.monitoring.poller import RoundReport, StatsPoller
from container_stats.monitoring.sinks import LineSink, LoggingSink, MemorySink, MetricSink
from container_stats.utils.logging import get_logger, setup_logging

app = typer.Typer(
    name="container-stats",
    help="Docker container stats poller",
    add_completion=False,
)

console = Console()
# Status output for `run` goes to stderr, stdout carries the metric lines
err_console = Console(stderr=True)

logger = get_logger(__name__)

OUTPUT_FORMATS = ("text", "json", "log")


@app.command()
def run(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to poller configuration file (YAML/JSON)"
    ),
    host: str | None = typer.Option(None, "--host", help="Docker Engine API host"),
    port: int | None = typer.Option(None, "--port", "-p", help="Docker Engine API port"),
    container: list[str] | None = typer.Option(
        None, "--container", "-n", help="Only poll this container (repeatable)"
    ),
    interval: float | None = typer.Option(
        None, "--interval", "-i", help="Seconds between polls (overrides config)"
    ),
    source: str | None = typer.Option(None, "--source", "-s", help="Base source label"),
    output: str = typer.Option("text", "--output", "-o", help="Output format: text, json, log"),
    rounds: int | None = typer.Option(None, "--rounds", help="Stop after this many polls"),
    log_level: str = typer.Option("INFO", "--log-level", "-l", help="Logging level"),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to file in addition to console"
    ),
    json_logs: bool = typer.Option(
        False, "--json-logs", help="Output logs in JSON format (for programmatic parsing)"
    ),
) -> None:
    """Poll container stats on a fixed interval and emit metrics."""
    setup_logging(
        level=log_level, log_file=log_file, json_format=json_logs, rich_console=not json_logs
    )

    if output not in OUTPUT_FORMATS:
        err_console.print(f"[bold red]Unknown output format: {output}[/]")
        raise typer.Exit(1)

    poller_config = _build_config(config, host, port, container, interval, source)
    _show_config_summary(poller_config)

    stop_event = threading.Event()
    with StatsPoller(poller_config, sink=_make_sink(output)) as poller:
        try:
            handled = poller.run(stop_event, max_rounds=rounds)
        except KeyboardInterrupt:
            stop_event.set()
            logger.warning("Interrupted, stopping")
            return

    err_console.print(f"[bold green]Stopped after {handled} polls[/]")


@app.command()
def once(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to poller configuration file (YAML/JSON)"
    ),
    host: str | None = typer.Option(None, "--host", help="Docker Engine API host"),
    port: int | None = typer.Option(None, "--port", "-p", help="Docker Engine API port"),
    container: list[str] | None = typer.Option(
        None, "--container", "-n", help="Only poll this container (repeatable)"
    ),
    source: str | None = typer.Option(None, "--source", "-s", help="Base source label"),
    timeout: float | None = typer.Option(
        None, "--timeout", "-t", help="Seconds to wait for stats responses"
    ),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
    log_level: str = typer.Option("WARNING", "--log-level", "-l", help="Logging level"),
) -> None:
    """Run a single polling round and show the results."""
    setup_logging(level=log_level)

    poller_config = _build_config(config, host, port, container, None, source)
    sink = MemorySink()
    with StatsPoller(poller_config, sink=sink) as poller:
        report = poller.poll_once(timeout=timeout)

    for event in sink.events:
        style = "bold red" if event.level == ERROR else "yellow"
        console.print(f"[{style}]{event.level}: {escape(event.message)}[/]")

    if report.discovery_failed:
        raise typer.Exit(1)

    if output_format == "json":
        data = {
            "round_id": report.round_id,
            "dispatched": report.dispatched,
            "processed": report.processed,
            "failed": report.failed,
            "aggregate_emitted": report.aggregate_emitted,
            "metrics": [
                {"metric": m.name.value, "value": m.value, "source": m.source}
                for m in sink.metrics
            ],
        }
        console.print(json.dumps(data, indent=2, default=str), markup=False, highlight=False)
    else:
        _show_round_table(sink, report)


@app.command()
def init_config(
    output: Path = typer.Option(
        Path("container-stats.yaml"), "--output", "-o", help="Output configuration file"
    ),
) -> None:
    """Generate a sample configuration file."""
    sample_config = """\
# container-stats configuration

# Docker Engine API (unauthenticated TCP socket)
host: 127.0.0.1
port: 2375
# base_url: unix:///var/run/docker.sock   # overrides host/port

# Only poll these containers (omit to poll every running container)
# containers:
#   - web
#   - db

# Base source label; per-container metrics use <source>.<container name>
# source: my-host

poll_interval_seconds: 5
request_timeout_seconds: 30
max_workers: 8
api_version: auto

# drop: a failed container counts as processed with zero contribution
# stall: a failed container stays pending and the round emits no aggregate
failure_policy: drop

# abandon: a poll while the previous round is pending abandons that round
# skip: the poll is skipped and the previous round keeps draining
overlap_policy: abandon
"""
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(sample_config)
    console.print(f"[bold green]Sample configuration written to {output}[/]")


def _build_config(
    config_path: Path | None,
    host: str | None,
    port: int | None,
    containers: list[str] | None,
    interval: float | None,
    source: str | None,
) -> PollerConfig:
    """Load the config file (if any) and apply command-line overrides."""
    try:
        base = load_config(config_path) if config_path is not None else PollerConfig()
        return apply_overrides(
            base,
            host=host,
            port=port,
            containers=containers or None,
            poll_interval_seconds=interval,
            source=source,
        )
    except (FileNotFoundError, ValueError, ValidationError) as e:
        err_console.print(f"[bold red]Error loading config: {escape(str(e))}[/]")
        raise typer.Exit(1) from e


def _make_sink(output: str) -> MetricSink:
    if output == "log":
        return LoggingSink()
    return LineSink(json_format=output == "json")


def _show_config_summary(config: PollerConfig) -> None:
    """Display a summary of the poller configuration."""
    table = Table(title="Poller Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("API", config.api_url)
    table.add_row("Containers", ", ".join(config.containers) if config.containers else "all")
    table.add_row("Source", config.source)
    table.add_row("Interval", f"{config.poll_interval_seconds}s")
    table.add_row("Failure Policy", config.failure_policy.value)
    table.add_row("Overlap Policy", config.overlap_policy.value)

    err_console.print(table)


def _show_round_table(sink: MemorySink, report: RoundReport) -> None:
    """Display per-container metrics and the round totals."""
    columns = [
        ("CPU", MetricName.TOTAL_CPU_USAGE),
        ("Memory", MetricName.MEMORY_USAGE_BYTES),
        ("Mem %", MetricName.MEMORY_USAGE_PERCENT),
        ("Rx Bytes", MetricName.NETWORK_RX_BYTES),
        ("Tx Bytes", MetricName.NETWORK_TX_BYTES),
        ("Blk Read", MetricName.BLOCK_IO_READ_BYTES),
        ("Blk Write", MetricName.BLOCK_IO_WRITE_BYTES),
    ]

    table = Table(title=f"Round {report.round_id}")
    table.add_column("Source", style="cyan")
    for header, _ in columns:
        table.add_column(header, justify="right")

    rows: dict[str, dict[MetricName, float]] = {}
    for sample in sink.per_container():
        rows.setdefault(sample.source or "", {})[sample.name] = sample.value
    for source, values in rows.items():
        table.add_row(source, *(_format_value(values.get(metric)) for _, metric in columns))

    totals = {sample.name: sample.value for sample in sink.aggregates()}
    if totals:
        table.add_row(
            "[bold]TOTAL[/]", *(_format_value(totals.get(metric)) for _, metric in columns)
        )

    console.print(table)
    if report.failed:
        console.print(f"[bold yellow]Failed: {', '.join(report.failed)}[/]")
    if not report.dispatched:
        console.print("[bold yellow]No containers polled[/]")


def _format_value(value: float | None) -> str:
    if value is None:
        return "-"
    if isinstance(value, float) and not value.is_integer():
        return f"{value:.4f}"
    return f"{int(value):,}"


if __name__ == "__main__":
    app()
