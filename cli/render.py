from __future__ import annotations

from typing import Any, Iterable

import typer

from models.summary import RunStatus, RunSummary


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_summary(summary: RunSummary) -> None:
    if summary.status is RunStatus.empty:
        typer.echo("No records found after March 2024.")
    else:
        typer.secho(f"Results written to {summary.output_path}", fg=typer.colors.GREEN)

    typer.echo()
    echo_heading("Run Summary")
    echo_key_values(
        [
            ("status", summary.status.value),
            ("input_path", summary.input_path),
            ("output_path", summary.output_path),
            ("processing_ms", summary.processing_ms),
        ]
    )

    typer.echo()
    echo_heading("Counts")
    echo_key_values(
        [
            ("total_rows", summary.total_rows),
            ("excluded_rows", summary.excluded_rows),
            ("skipped_rows", summary.skipped_rows),
            ("record_count", summary.record_count),
            ("worker_count", summary.worker_count),
            ("group_count", summary.group_count),
            ("row_count", summary.row_count),
        ]
    )
