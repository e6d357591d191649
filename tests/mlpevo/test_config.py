from __future__ import annotations

from pathlib import Path

import pytest
from mlpevo.config import (
    EvolutionConfig,
    RunConfig,
    evolution_config_from_mapping,
    load_evolution_config,
    load_run_config,
)


def test_load_evolution_config(tmp_path: Path) -> None:
    config_path = tmp_path / "evolution.yml"
    config_path.write_text(
        """
input_names: [distance, speed]
output_names: [jump]
population_size: 8
mutation_probability: 0.25
seed: 3
max_generations: 4
bias_min: -1.0
weight_min: -1.0
""",
        encoding="utf-8",
    )
    config = load_evolution_config(config_path)

    assert config.input_names == ("distance", "speed")
    assert config.output_names == ("jump",)
    assert config.inputs == 2
    assert config.outputs == 1
    assert config.population_size == 8
    assert config.seed == 3
    assert config.max_generations == 4
    assert config.crossover_probability == pytest.approx(0.7)

    population = config.population_config()
    assert population.size == 8
    assert population.ranges.bias_min == -1.0
    assert population.ranges.weight_max == 1.0
    assert config.reproduction_config().mutation_probability == pytest.approx(0.25)


def test_defaults_from_minimal_mapping() -> None:
    config = evolution_config_from_mapping(
        {"input_names": ["a"], "output_names": ["b", "c"]}
    )
    assert config.population_size == 50
    assert config.mutation_probability == pytest.approx(0.1)
    assert config.seed is None
    assert config.max_generations is None
    assert config.learning_rate == pytest.approx(0.03)


@pytest.mark.parametrize(
    "overrides",
    [
        {"input_names": ()},
        {"output_names": ("y", "y")},
        {"population_size": 0},
        {"mutation_probability": 1.5},
        {"crossover_probability": -0.1},
        {"max_generations": 0},
        {"learning_rate": 0.0},
        {"bias_min": 2.0},
    ],
)
def test_invalid_evolution_config(overrides: dict[str, object]) -> None:
    values: dict[str, object] = {"input_names": ("a",), "output_names": ("y",)}
    values.update(overrides)
    with pytest.raises(ValueError):
        EvolutionConfig(**values)  # type: ignore[arg-type]


def test_names_must_be_lists(tmp_path: Path) -> None:
    config_path = tmp_path / "evolution.yml"
    config_path.write_text("input_names: a\noutput_names: [b]\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_evolution_config(config_path)

    config_path.write_text("- not\n- a mapping\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_evolution_config(config_path)


def test_load_run_config_resolves_relative_paths(tmp_path: Path) -> None:
    run_path = tmp_path / "configs" / "run.yml"
    run_path.parent.mkdir()
    run_path.write_text(
        """
evolution_config: xor.yml
fitness: mlpevo.tasks:xor_fitness
storage_dir: ../runs/xor
workers: 2
resume: false
""",
        encoding="utf-8",
    )
    run = load_run_config(run_path)

    assert run.evolution_config == (tmp_path / "configs" / "xor.yml").resolve()
    assert run.storage_dir == (tmp_path / "runs" / "xor").resolve()
    assert run.fitness == "mlpevo.tasks:xor_fitness"
    assert run.workers == 2
    assert run.event_log is None
    assert run.resume is False


def test_run_config_requires_core_keys(tmp_path: Path) -> None:
    run_path = tmp_path / "run.yml"
    run_path.write_text("fitness: mlpevo.tasks:xor_fitness\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_run_config(run_path)


def test_run_config_validation() -> None:
    with pytest.raises(ValueError):
        RunConfig(Path("e.yml"), "no_colon", Path("runs"))
    with pytest.raises(ValueError):
        RunConfig(Path("e.yml"), "pkg.mod:fn", Path("runs"), workers=0)
