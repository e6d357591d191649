"""Individuals and fixed-size populations of unique genomes."""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from random import Random

from .errors import ShapeMismatchError, StateError
from .genes import DEFAULT_RANGES, GeneRanges
from .genome import Genome, random_genome

# Share of every seeded population that is always drawn at random.
RANDOM_FILL_FRACTION = 0.30


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, eq=False)
class Individual:
    """A genome together with the outcome of its evaluation.

    The outcome is written once: either :meth:`record_success` or
    :meth:`record_failure`, never both and never twice.
    """

    genome: Genome
    fitness: float = float("-inf")
    start: datetime | None = None
    end: datetime | None = None
    error: BaseException | None = None
    _recorded: bool = field(default=False, repr=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Individual):
            return NotImplemented
        return self.genome == other.genome

    def __hash__(self) -> int:
        return hash(self.genome)

    @classmethod
    def restored(cls, genome: Genome, fitness: float) -> Individual:
        """An individual whose fitness was recorded by an earlier run."""
        individual = cls(genome, fitness=float(fitness))
        individual._recorded = True
        return individual

    @property
    def evaluated(self) -> bool:
        return self._recorded

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def duration(self) -> float | None:
        """Seconds spent in evaluation, when both timestamps are known."""
        if self.start is None or self.end is None:
            return None
        return (self.end - self.start).total_seconds()

    def mark_started(self, when: datetime | None = None) -> None:
        if self.start is not None:
            msg = "Evaluation start was already recorded."
            raise StateError(msg)
        self.start = when or _now()

    def record_success(self, fitness: float, when: datetime | None = None) -> None:
        self._record(when)
        self.fitness = float(fitness)

    def record_failure(self, error: BaseException, when: datetime | None = None) -> None:
        self._record(when)
        self.error = error

    def _record(self, when: datetime | None) -> None:
        if self._recorded:
            msg = "Evaluation outcome was already recorded."
            raise StateError(msg)
        self._recorded = True
        self.end = when or _now()


@dataclass(frozen=True, slots=True)
class PopulationConfig:
    """Shape and size constraints shared by every generation."""

    inputs: int
    outputs: int
    size: int = 50
    ranges: GeneRanges = DEFAULT_RANGES

    def __post_init__(self) -> None:
        if self.inputs <= 0:
            msg = "inputs must be positive."
            raise ValueError(msg)
        if self.outputs <= 0:
            msg = "outputs must be positive."
            raise ValueError(msg)
        if self.size <= 0:
            msg = "size must be positive."
            raise ValueError(msg)


def _random_individual(config: PopulationConfig, rng: Random) -> Individual:
    return Individual(random_genome(config.inputs, config.outputs, rng, config.ranges))


def check_shape(genome: Genome, config: PopulationConfig) -> None:
    """Raise :class:`ShapeMismatchError` unless ``genome`` fits ``config``."""
    sizes = genome.layer_sizes()
    if not sizes:
        msg = "Genome has no layers."
        raise ShapeMismatchError(msg)
    if sizes[0] != config.inputs:
        msg = f"Genome expects {sizes[0]} inputs, configured for {config.inputs}."
        raise ShapeMismatchError(msg)
    if sizes[-1] != config.outputs:
        msg = f"Genome produces {sizes[-1]} outputs, configured for {config.outputs}."
        raise ShapeMismatchError(msg)


def _deduplicate(
    individuals: list[Individual], config: PopulationConfig, rng: Random
) -> None:
    seen: set[Genome] = set()
    for position, individual in enumerate(individuals):
        while individual.genome in seen:
            individual = _random_individual(config, rng)
        seen.add(individual.genome)
        individuals[position] = individual


@dataclass(frozen=True, slots=True)
class Population:
    """One generation's individuals, pairwise distinct by genome."""

    generation: int
    individuals: tuple[Individual, ...]

    def __post_init__(self) -> None:
        if self.generation < 0:
            msg = "generation must be >= 0."
            raise ValueError(msg)
        object.__setattr__(self, "individuals", tuple(self.individuals))

    def __len__(self) -> int:
        return len(self.individuals)

    def __iter__(self) -> Iterator[Individual]:
        return iter(self.individuals)

    def __getitem__(self, index: int) -> Individual:
        return self.individuals[index]

    @classmethod
    def build(
        cls,
        generation: int,
        config: PopulationConfig,
        rng: Random,
        seeds: Sequence[Individual | Genome] | None = None,
    ) -> Population:
        """Assemble a generation from optional seeds plus random genomes.

        Every seed is shape checked. At least ``RANDOM_FILL_FRACTION`` of the
        population is random and only the first seeds that fit are kept, so
        the result always holds exactly ``config.size`` individuals.
        """
        if not seeds:
            individuals = [_random_individual(config, rng) for _ in range(config.size)]
        else:
            genomes = [
                seed.genome if isinstance(seed, Individual) else seed for seed in seeds
            ]
            for genome in genomes:
                check_shape(genome, config)
            fill = max(
                config.size - len(genomes), int(config.size * RANDOM_FILL_FRACTION)
            )
            individuals = [Individual(genome) for genome in genomes[: config.size - fill]]
            while len(individuals) < config.size:
                individuals.append(_random_individual(config, rng))
        _deduplicate(individuals, config, rng)
        return cls(generation, tuple(individuals))

    @classmethod
    def restore(
        cls,
        generation: int,
        individuals: Sequence[Individual],
        config: PopulationConfig,
        rng: Random,
    ) -> Population:
        """Rebuild a saved generation, keeping its individuals and fitness."""
        restored = list(individuals)
        for individual in restored:
            check_shape(individual.genome, config)
        _deduplicate(restored, config, rng)
        return cls(generation, tuple(restored))

    def genomes(self) -> tuple[Genome, ...]:
        return tuple(individual.genome for individual in self.individuals)

    def fitnesses(self) -> tuple[float, ...]:
        return tuple(individual.fitness for individual in self.individuals)

    def failures(self) -> tuple[BaseException, ...]:
        return tuple(
            individual.error
            for individual in self.individuals
            if individual.error is not None
        )

    def best(self) -> Individual:
        if not self.individuals:
            msg = "Population is empty."
            raise ValueError(msg)
        return max(self.individuals, key=lambda individual: individual.fitness)

    def worst(self) -> Individual:
        if not self.individuals:
            msg = "Population is empty."
            raise ValueError(msg)
        return min(self.individuals, key=lambda individual: individual.fitness)

    def mean_fitness(self) -> float:
        """Mean over finite fitness values; ``-inf`` if none is finite."""
        finite = [value for value in self.fitnesses() if math.isfinite(value)]
        if not finite:
            return float("-inf")
        return sum(finite) / len(finite)


__all__ = [
    "Individual",
    "Population",
    "PopulationConfig",
    "RANDOM_FILL_FRACTION",
    "check_shape",
]
