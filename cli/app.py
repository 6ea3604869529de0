from __future__ import annotations

from enum import Enum
from typing import Optional

import typer

from cli.render import render_summary
from logging_config import configure_logging
from services.processor import build_default_processor
from storage.devices_file import InputUnavailableError


class FoldLocking(str, Enum):
    entry = "entry"
    table = "table"


app = typer.Typer(
    help="Monthly min/max/mean statistics for IoT device sensor readings.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging(log_level.upper() if log_level else None)


@app.command("run")
def run_command(
    input_path: Optional[str] = typer.Option(
        None,
        "--input",
        "-i",
        help="Pipe-delimited devices file (defaults to SENSOR_STATS_INPUT_PATH env or devices.csv).",
    ),
    output_path: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Report destination (defaults to SENSOR_STATS_OUTPUT_PATH env or sensor_stats.csv).",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-w",
        min=1,
        help="Worker threads (defaults to SENSOR_STATS_WORKER_COUNT env or the CPU count).",
    ),
    fold_locking: Optional[FoldLocking] = typer.Option(
        None,
        "--fold-locking",
        help="Lock folds per accumulator (entry) or on the whole table (table).",
    ),
) -> None:
    """Aggregate the devices file and write the statistics table."""
    processor = build_default_processor(
        input_path=input_path,
        output_path=output_path,
        workers=workers,
        fold_locking=fold_locking.value if fold_locking else None,
    )
    try:
        summary = processor.run()
    except InputUnavailableError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    render_summary(summary)
