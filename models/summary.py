"""Pydantic schema describing the outcome of one run."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class RunStatus(str, Enum):
    """Terminal states of a run."""

    processed = "processed"
    empty = "empty"


class RunSummary(BaseModel):
    """Counters and timings reported after a run completes."""

    status: RunStatus
    input_path: str
    output_path: Optional[str] = Field(
        default=None, description="Report location; unset when nothing was written."
    )
    total_rows: int = Field(0, ge=0)
    excluded_rows: int = Field(0, ge=0, description="Rows dated before the cutoff.")
    skipped_rows: int = Field(0, ge=0, description="Rows that could not be decoded.")
    record_count: int = Field(0, ge=0)
    worker_count: int = Field(0, ge=0)
    group_count: int = Field(0, ge=0)
    row_count: int = Field(0, ge=0)
    processing_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds from start to finish."
    )
