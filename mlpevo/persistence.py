"""Checkpoints and the storages that save and restore them."""

from __future__ import annotations

import math
import pickle
import statistics
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import CheckpointError
from .genome import Genome
from .metrics import MetricsRow, MetricsWriter
from .population import Individual, Population

GENERATION_FILE = "generation.pkl"
EVOLUTION_FILE = "evolution.csv"


@dataclass(frozen=True, slots=True)
class Checkpoint:
    """Snapshot of one evaluated generation, in population order."""

    generation: int
    population: tuple[tuple[float, ...], ...]
    fitness: tuple[float, ...]

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "population",
            tuple(tuple(float(value) for value in dna) for dna in self.population),
        )
        object.__setattr__(
            self, "fitness", tuple(float(value) for value in self.fitness)
        )
        if self.generation < 0:
            msg = "generation must be >= 0."
            raise CheckpointError(msg)
        if len(self.population) != len(self.fitness):
            msg = (
                f"Checkpoint holds {len(self.population)} genomes but "
                f"{len(self.fitness)} fitness values."
            )
            raise CheckpointError(msg)

    @classmethod
    def from_population(cls, population: Population) -> Checkpoint:
        return cls(
            generation=population.generation,
            population=tuple(genome.dna for genome in population.genomes()),
            fitness=population.fitnesses(),
        )

    def __len__(self) -> int:
        return len(self.fitness)

    def genomes(self) -> tuple[Genome, ...]:
        return tuple(Genome(dna) for dna in self.population)

    def individuals(self) -> list[Individual]:
        """Individuals carrying their saved fitness."""
        return [
            Individual.restored(Genome(dna), fitness)
            for dna, fitness in zip(self.population, self.fitness)
        ]

    def best_fitness(self) -> float:
        return max(self.fitness, default=float("-inf"))

    def worst_fitness(self) -> float:
        return min(self.fitness, default=float("inf"))

    def mean_fitness(self) -> float:
        if not self.fitness:
            return float("nan")
        return sum(self.fitness) / len(self.fitness)

    def median_fitness(self) -> float:
        finite = [value for value in self.fitness if not math.isnan(value)]
        if not finite:
            return float("nan")
        return float(statistics.median(finite))

    def best_genome(self) -> Genome | None:
        if not self.fitness:
            return None
        index = max(range(len(self.fitness)), key=self.fitness.__getitem__)
        return Genome(self.population[index])

    def metrics_row(self) -> MetricsRow:
        return MetricsRow(
            generation=self.generation,
            population_size=len(self),
            best_fitness=self.best_fitness(),
            mean_fitness=self.mean_fitness(),
            median_fitness=self.median_fitness(),
            worst_fitness=self.worst_fitness(),
        )


class Storage:
    """Load/save contract used by the evolution driver."""

    def load(self) -> Checkpoint | None:
        raise NotImplementedError

    def save(self, checkpoint: Checkpoint) -> None:
        raise NotImplementedError


class MemoryStorage(Storage):
    """Keeps every saved checkpoint in memory; the latest one is loaded."""

    def __init__(self, initial: Checkpoint | None = None) -> None:
        self._lock = threading.Lock()
        self.history: list[Checkpoint] = [] if initial is None else [initial]
        self.save_count = 0

    def load(self) -> Checkpoint | None:
        with self._lock:
            return self.history[-1] if self.history else None

    def save(self, checkpoint: Checkpoint) -> None:
        if not isinstance(checkpoint, Checkpoint):
            msg = f"Expected a Checkpoint, got {type(checkpoint).__name__}."
            raise CheckpointError(msg)
        with self._lock:
            self.history.append(checkpoint)
            self.save_count += 1


def save_checkpoint(path: Path, checkpoint: Checkpoint) -> None:
    """Persist a checkpoint to disk."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("wb") as handle:
        pickle.dump(checkpoint, handle, protocol=pickle.HIGHEST_PROTOCOL)


def load_checkpoint(path: Path) -> Checkpoint:
    """Load a previously saved checkpoint."""
    source = Path(path)
    try:
        with source.open("rb") as handle:
            data: Any = pickle.load(handle)
    except (pickle.UnpicklingError, EOFError, AttributeError) as error:
        msg = f"Unreadable checkpoint payload in {source}"
        raise CheckpointError(msg) from error
    if not isinstance(data, Checkpoint):
        msg = f"Invalid checkpoint payload in {source}"
        raise CheckpointError(msg)
    return data


class FileStorage(Storage):
    """Directory-backed storage.

    The latest generation is pickled to ``generation.pkl`` and one metrics row
    per save is appended to ``evolution.csv``.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def generation_path(self) -> Path:
        return self._directory / GENERATION_FILE

    @property
    def evolution_path(self) -> Path:
        return self._directory / EVOLUTION_FILE

    def load(self) -> Checkpoint | None:
        if not self.generation_path.exists():
            return None
        return load_checkpoint(self.generation_path)

    def save(self, checkpoint: Checkpoint) -> None:
        save_checkpoint(self.generation_path, checkpoint)
        with MetricsWriter(self.evolution_path) as writer:
            writer.append(checkpoint.metrics_row())


__all__ = [
    "Checkpoint",
    "EVOLUTION_FILE",
    "FileStorage",
    "GENERATION_FILE",
    "MemoryStorage",
    "Storage",
    "load_checkpoint",
    "save_checkpoint",
]
