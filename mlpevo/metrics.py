"""Utilities for recording per-generation evolution metrics to disk."""

from __future__ import annotations

import csv
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import IO, Any


@dataclass(frozen=True, slots=True)
class MetricsRow:
    """Row of aggregate statistics produced for each saved generation."""

    generation: int
    population_size: int
    best_fitness: float
    mean_fitness: float
    median_fitness: float
    worst_fitness: float


class MetricsWriter:
    """CSV-backed writer that appends metrics rows incrementally."""

    _fieldnames = [item.name for item in fields(MetricsRow)]

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        exists = self._path.exists()
        mode = "a" if exists else "w"
        self._handle: IO[str] = self._path.open(mode, encoding="utf-8", newline="")
        self._writer = csv.DictWriter(self._handle, fieldnames=self._fieldnames)
        if not exists:
            self._writer.writeheader()
            self._handle.flush()

    def __enter__(self) -> MetricsWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    def append(self, row: MetricsRow) -> None:
        """Append a metrics row and flush to disk."""
        self._writer.writerow(asdict(row))
        self._handle.flush()

    def close(self) -> None:
        """Release the underlying file handle if still open."""
        if not self._handle.closed:
            self._handle.close()

    @property
    def path(self) -> Path:
        """Return the destination path for the CSV file."""
        return self._path


def read_metrics(path: Path) -> list[MetricsRow]:
    """Load every row previously written by :class:`MetricsWriter`."""
    with Path(path).open(encoding="utf-8", newline="") as handle:
        return [
            MetricsRow(
                generation=int(record["generation"]),
                population_size=int(record["population_size"]),
                best_fitness=float(record["best_fitness"]),
                mean_fitness=float(record["mean_fitness"]),
                median_fitness=float(record["median_fitness"]),
                worst_fitness=float(record["worst_fitness"]),
            )
            for record in csv.DictReader(handle)
        ]


__all__ = ["MetricsRow", "MetricsWriter", "read_metrics"]
