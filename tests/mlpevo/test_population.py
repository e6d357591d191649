from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from random import Random

import pytest
from mlpevo.errors import ShapeMismatchError, StateError
from mlpevo.genome import Genome, random_genome
from mlpevo.population import (
    Individual,
    Population,
    PopulationConfig,
    check_shape,
)


def test_random_population_has_exact_size_and_unique_genomes() -> None:
    config = PopulationConfig(inputs=2, outputs=1, size=12)
    population = Population.build(0, config, Random(0))

    assert len(population) == 12
    assert len(set(population.genomes())) == 12
    for genome in population.genomes():
        check_shape(genome, config)
    assert all(individual.fitness == float("-inf") for individual in population)


def test_seeds_lead_and_random_fill_follows() -> None:
    config = PopulationConfig(inputs=2, outputs=1, size=10)
    rng = Random(1)
    seeds = [random_genome(2, 1, rng) for _ in range(3)]

    population = Population.build(4, config, rng, seeds)
    assert population.generation == 4
    assert len(population) == 10
    assert population.genomes()[:3] == tuple(seeds)


def test_excess_seeds_are_truncated() -> None:
    config = PopulationConfig(inputs=2, outputs=1, size=10)
    rng = Random(2)
    seeds = [random_genome(2, 1, rng) for _ in range(12)]

    population = Population.build(1, config, rng, seeds)
    assert len(population) == 10
    # At least 30% of the population stays random.
    assert population.genomes()[:7] == tuple(seeds[:7])
    assert not set(population.genomes()[7:]) & set(seeds)


def test_duplicate_seeds_are_replaced() -> None:
    config = PopulationConfig(inputs=2, outputs=1, size=6)
    rng = Random(3)
    seed = random_genome(2, 1, rng)

    population = Population.build(0, config, rng, [seed, seed, Individual(seed)])
    assert len(population) == 6
    assert len(set(population.genomes())) == 6
    assert population.genomes()[0] == seed


def test_seed_with_wrong_shape_is_rejected() -> None:
    config = PopulationConfig(inputs=2, outputs=1, size=6)
    rng = Random(4)
    with pytest.raises(ShapeMismatchError):
        Population.build(0, config, rng, [random_genome(3, 1, rng)])
    with pytest.raises(ShapeMismatchError):
        Population.build(0, config, rng, [random_genome(2, 2, rng)])
    with pytest.raises(ShapeMismatchError):
        check_shape(Genome(()), config)

    # Only seven of these fit in a population of ten; the surplus is checked too.
    large = PopulationConfig(inputs=2, outputs=1, size=10)
    seeds = [random_genome(2, 1, rng) for _ in range(7)]
    with pytest.raises(ShapeMismatchError):
        Population.build(0, large, rng, [*seeds, random_genome(3, 1, rng)])


def test_restore_keeps_individuals_and_fitness() -> None:
    config = PopulationConfig(inputs=2, outputs=1, size=10)
    rng = Random(5)
    individuals = [
        Individual(random_genome(2, 1, rng), fitness=float(index))
        for index in range(4)
    ]

    population = Population.restore(3, individuals, config, rng)
    assert population.generation == 3
    assert len(population) == 4
    assert population.fitnesses() == (0.0, 1.0, 2.0, 3.0)
    assert population.best().fitness == 3.0
    assert population.worst().fitness == 0.0
    assert population.mean_fitness() == pytest.approx(1.5)


def test_mean_fitness_skips_non_finite_values() -> None:
    population = Population(
        0,
        (
            Individual(Genome((1.0,)), fitness=2.0),
            Individual(Genome((2.0,)), fitness=float("-inf")),
            Individual(Genome((3.0,)), fitness=4.0),
        ),
    )
    assert population.mean_fitness() == pytest.approx(3.0)
    empty = Population(0, (Individual(Genome((1.0,))),))
    assert math.isinf(empty.mean_fitness())


def test_population_config_validation() -> None:
    with pytest.raises(ValueError):
        PopulationConfig(inputs=0, outputs=1)
    with pytest.raises(ValueError):
        PopulationConfig(inputs=1, outputs=1, size=0)
    with pytest.raises(ValueError):
        Population(-1, ())


def test_individual_outcome_is_written_once() -> None:
    individual = Individual(Genome((1.0, 2.0)))
    started = datetime(2024, 1, 1, tzinfo=timezone.utc)
    individual.mark_started(started)
    individual.record_success(2.5, started + timedelta(seconds=3))

    assert individual.evaluated
    assert not individual.failed
    assert individual.fitness == 2.5
    assert individual.duration == pytest.approx(3.0)
    with pytest.raises(StateError):
        individual.record_success(1.0)
    with pytest.raises(StateError):
        individual.record_failure(RuntimeError("late"))
    with pytest.raises(StateError):
        individual.mark_started()


def test_individual_failure_and_identity() -> None:
    individual = Individual(Genome((1.0, 2.0)))
    error = RuntimeError("boom")
    individual.record_failure(error)

    assert individual.failed
    assert individual.error is error
    assert individual.fitness == float("-inf")
    assert individual.duration is None
    assert individual == Individual(Genome([1, 2]), fitness=3.0)
    assert hash(individual) == hash(Genome((1.0, 2.0)))
    assert Population(0, (individual,)).failures() == (error,)


def test_restored_individual_keeps_its_outcome() -> None:
    individual = Individual.restored(Genome((1.0, 2.0)), 4)
    assert individual.evaluated
    assert individual.fitness == 4.0
    with pytest.raises(StateError):
        individual.record_success(5.0)
    with pytest.raises(StateError):
        individual.record_failure(RuntimeError("late"))
    assert individual.fitness == 4.0
    assert not individual.failed
