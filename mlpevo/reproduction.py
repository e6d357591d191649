"""Breeding of the next generation's seeds from a scored population."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from random import Random

from .genes import DEFAULT_RANGES, GeneRanges
from .genome import Genome
from .operators import DEFAULT_MUTATION_PROBABILITY, crossover, mutate
from .population import Individual
from .selection import EliteSelection, StochasticUniversalSampling


@dataclass(frozen=True, slots=True)
class ReproductionConfig:
    """Proportions used when breeding seeds for the next generation.

    All fractions apply to the selection size, ``int(size * selection_fraction)``.
    """

    selection_fraction: float = 0.7
    elite_fraction: float = 0.05
    min_elites: int = 2
    sampled_fraction: float = 0.2
    min_sampled: int = 4
    crossover_fraction: float = 0.2
    min_crossovers: int = 4
    mutation_probability: float = DEFAULT_MUTATION_PROBABILITY

    def __post_init__(self) -> None:
        if not 0.0 < self.selection_fraction <= 1.0:
            msg = "selection_fraction must be in (0, 1]."
            raise ValueError(msg)
        for name in ("elite_fraction", "sampled_fraction", "crossover_fraction"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                msg = f"{name} must be in [0, 1]."
                raise ValueError(msg)
        for name in ("min_elites", "min_sampled", "min_crossovers"):
            if getattr(self, name) < 0:
                msg = f"{name} must be >= 0."
                raise ValueError(msg)
        if not 0.0 <= self.mutation_probability <= 1.0:
            msg = "mutation_probability must be in [0, 1]."
            raise ValueError(msg)


def selection_size(size: int, config: ReproductionConfig) -> int:
    return int(size * config.selection_fraction)


def breed_next_generation(
    individuals: Sequence[Individual],
    size: int,
    rng: Random,
    config: ReproductionConfig | None = None,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> list[Genome]:
    """Return seed genomes for the generation following ``individuals``.

    Seeds are, in order: elites, stochastic universal samples, crossover
    children of those parents, two mutants of each of the first two parents,
    then mutants of random seeds until the selection size is reached.
    """
    config = config or ReproductionConfig()
    if not individuals:
        msg = "Cannot breed from an empty population."
        raise ValueError(msg)
    target = selection_size(size, config)
    available = len(individuals)

    elite_count = int(min(max(config.min_elites, target * config.elite_fraction), available))
    sampled_count = int(
        min(max(config.min_sampled, target * config.sampled_fraction), available)
    )
    parents = EliteSelection().select(elite_count, individuals, rng)
    parents += StochasticUniversalSampling().select(sampled_count, individuals, rng)
    seeds = [parent.genome for parent in parents]

    crossovers = int(max(config.min_crossovers, target * config.crossover_fraction))
    for _ in range(crossovers):
        dad = rng.choice(parents)
        mom = rng.choice(parents)
        seeds.append(crossover(dad.genome, mom.genome, rng, ranges))

    first = seeds[0]
    second = seeds[1] if len(seeds) > 1 else seeds[0]
    for parent in (first, first, second, second):
        seeds.append(mutate(parent, rng, config.mutation_probability, ranges))

    while len(seeds) < target:
        parent = rng.choice(seeds)
        seeds.append(mutate(parent, rng, config.mutation_probability, ranges))

    return seeds


__all__ = [
    "ReproductionConfig",
    "breed_next_generation",
    "selection_size",
]
