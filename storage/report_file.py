from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, Optional

from services.report import ReportRow
from settings import get_settings

REPORT_HEADER = (
    "device",
    "ano-mes",
    "sensor",
    "valor_maximo",
    "valor_medio",
    "valor_minimo",
)


def format_row(row: ReportRow) -> list[str]:
    return [
        row.device,
        row.period,
        row.sensor,
        f"{row.maximum:.2f}",
        f"{row.mean:.2f}",
        f"{row.minimum:.2f}",
    ]


class ReportFile:
    """Semicolon-delimited statistics table."""

    def __init__(self, path: Path, encoding: str = "utf-8") -> None:
        self.path = path
        self.encoding = encoding

    def write(self, rows: Iterable[ReportRow]) -> int:
        """Write the header and every row, returning the number of data rows."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        written = 0
        with self.path.open("w", encoding=self.encoding, newline="") as handle:
            writer = csv.writer(
                handle, delimiter=";", lineterminator="\n", quoting=csv.QUOTE_MINIMAL
            )
            writer.writerow(REPORT_HEADER)
            for row in rows:
                writer.writerow(format_row(row))
                written += 1
        return written


def build_report_file(path: Optional[str] = None) -> ReportFile:
    target = get_settings().output_path if path is None else path
    return ReportFile(Path(target))
