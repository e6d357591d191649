from __future__ import annotations

import pickle
from pathlib import Path
from random import Random

import pytest
from mlpevo.errors import CheckpointError, StateError
from mlpevo.genome import random_genome
from mlpevo.metrics import MetricsRow, MetricsWriter, read_metrics
from mlpevo.persistence import (
    EVOLUTION_FILE,
    GENERATION_FILE,
    Checkpoint,
    FileStorage,
    MemoryStorage,
    load_checkpoint,
    save_checkpoint,
)
from mlpevo.population import Population, PopulationConfig


def sample_checkpoint(generation: int = 2, count: int = 3) -> Checkpoint:
    rng = Random(generation)
    return Checkpoint(
        generation=generation,
        population=[random_genome(2, 1, rng).dna for _ in range(count)],
        fitness=[float(index) for index in range(count)],
    )


def test_checkpoint_requires_matching_lengths() -> None:
    with pytest.raises(CheckpointError):
        Checkpoint(generation=0, population=[(1.0, 1.0)], fitness=[])
    with pytest.raises(CheckpointError):
        Checkpoint(generation=-1, population=[], fitness=[])


def test_checkpoint_summaries() -> None:
    checkpoint = Checkpoint(
        generation=5,
        population=[(1.0, 2.0), (3.0, 4.0), (5.0, 6.0)],
        fitness=[1.0, 4.0, 2.0],
    )
    assert len(checkpoint) == 3
    assert checkpoint.best_fitness() == 4.0
    assert checkpoint.worst_fitness() == 1.0
    assert checkpoint.mean_fitness() == pytest.approx(7.0 / 3.0)
    assert checkpoint.median_fitness() == 2.0
    assert checkpoint.best_genome().dna == (3.0, 4.0)
    assert checkpoint.metrics_row() == MetricsRow(
        generation=5,
        population_size=3,
        best_fitness=4.0,
        mean_fitness=7.0 / 3.0,
        median_fitness=2.0,
        worst_fitness=1.0,
    )


def test_checkpoint_from_population_keeps_order() -> None:
    config = PopulationConfig(inputs=2, outputs=1, size=4)
    population = Population.build(7, config, Random(0))
    for index, individual in enumerate(population):
        individual.record_success(10.0 - index)

    checkpoint = Checkpoint.from_population(population)
    assert checkpoint.generation == 7
    assert checkpoint.genomes() == population.genomes()
    assert checkpoint.fitness == (10.0, 9.0, 8.0, 7.0)
    restored = checkpoint.individuals()
    assert [individual.fitness for individual in restored] == [10.0, 9.0, 8.0, 7.0]
    assert all(individual.evaluated for individual in restored)
    with pytest.raises(StateError):
        restored[0].record_success(99.0)
    assert restored[0].fitness == 10.0


def test_empty_checkpoint_has_no_best_genome() -> None:
    checkpoint = Checkpoint(generation=0, population=[], fitness=[])
    assert checkpoint.best_genome() is None
    assert checkpoint.best_fitness() == float("-inf")


def test_memory_storage_returns_latest() -> None:
    storage = MemoryStorage()
    assert storage.load() is None

    first, second = sample_checkpoint(1), sample_checkpoint(2)
    storage.save(first)
    storage.save(second)
    assert storage.load() == second
    assert storage.save_count == 2
    assert storage.history == [first, second]

    seeded = MemoryStorage(first)
    assert seeded.load() == first
    assert seeded.save_count == 0
    with pytest.raises(CheckpointError):
        seeded.save("not a checkpoint")  # type: ignore[arg-type]


def test_save_and_load_checkpoint(tmp_path: Path) -> None:
    checkpoint = sample_checkpoint()
    target = tmp_path / "nested" / "checkpoint.pkl"
    save_checkpoint(target, checkpoint)
    assert load_checkpoint(target) == checkpoint


def test_load_checkpoint_rejects_other_payloads(tmp_path: Path) -> None:
    target = tmp_path / "bad.pkl"
    target.write_bytes(pickle.dumps({"generation": 1}))
    with pytest.raises(CheckpointError):
        load_checkpoint(target)

    target.write_bytes(b"")
    with pytest.raises(CheckpointError):
        load_checkpoint(target)


def test_file_storage_round_trip(tmp_path: Path) -> None:
    storage = FileStorage(tmp_path / "run")
    assert storage.load() is None

    storage.save(sample_checkpoint(0))
    storage.save(sample_checkpoint(1, count=4))

    assert (tmp_path / "run" / GENERATION_FILE).exists()
    loaded = storage.load()
    assert loaded is not None
    assert loaded.generation == 1
    assert len(loaded) == 4

    rows = read_metrics(tmp_path / "run" / EVOLUTION_FILE)
    assert [row.generation for row in rows] == [0, 1]
    assert [row.population_size for row in rows] == [3, 4]
    assert rows[1].best_fitness == 3.0


def test_metrics_writer_appends_to_existing_file(tmp_path: Path) -> None:
    path = tmp_path / "metrics.csv"
    row = MetricsRow(
        generation=0,
        population_size=2,
        best_fitness=1.0,
        mean_fitness=0.5,
        median_fitness=0.5,
        worst_fitness=0.0,
    )
    with MetricsWriter(path) as writer:
        writer.append(row)
    with MetricsWriter(path) as writer:
        writer.append(row)

    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert lines[0].startswith("generation,population_size")
    assert len(lines) == 3
    assert read_metrics(path) == [row, row]
