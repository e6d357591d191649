"""Configuration loading utilities for evolution runs."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .genes import GeneRanges
from .network import DEFAULT_LEARNING_RATE
from .operators import DEFAULT_MUTATION_PROBABILITY
from .population import PopulationConfig
from .reproduction import ReproductionConfig


@dataclass(slots=True)
class EvolutionConfig:
    input_names: tuple[str, ...]
    output_names: tuple[str, ...]
    population_size: int = 50
    # Advisory only: crossover is always applied when breeding.
    crossover_probability: float = 0.7
    mutation_probability: float = DEFAULT_MUTATION_PROBABILITY
    seed: int | None = None
    max_generations: int | None = None
    learning_rate: float = DEFAULT_LEARNING_RATE
    bias_min: float = 0.01
    bias_max: float = 1.0
    weight_min: float = 0.0
    weight_max: float = 1.0

    def __post_init__(self) -> None:
        self.input_names = tuple(str(name) for name in self.input_names)
        self.output_names = tuple(str(name) for name in self.output_names)
        if not self.input_names:
            msg = "input_names must not be empty."
            raise ValueError(msg)
        if not self.output_names:
            msg = "output_names must not be empty."
            raise ValueError(msg)
        if len(set(self.input_names)) != len(self.input_names):
            msg = "input_names must be unique."
            raise ValueError(msg)
        if len(set(self.output_names)) != len(self.output_names):
            msg = "output_names must be unique."
            raise ValueError(msg)
        if self.population_size <= 0:
            msg = "population_size must be positive."
            raise ValueError(msg)
        if not 0.0 <= self.crossover_probability <= 1.0:
            msg = "crossover_probability must be in [0, 1]."
            raise ValueError(msg)
        if not 0.0 <= self.mutation_probability <= 1.0:
            msg = "mutation_probability must be in [0, 1]."
            raise ValueError(msg)
        if self.max_generations is not None and self.max_generations <= 0:
            msg = "max_generations must be positive when provided."
            raise ValueError(msg)
        if self.learning_rate <= 0.0:
            msg = "learning_rate must be positive."
            raise ValueError(msg)
        self.gene_ranges()

    @property
    def inputs(self) -> int:
        return len(self.input_names)

    @property
    def outputs(self) -> int:
        return len(self.output_names)

    def gene_ranges(self) -> GeneRanges:
        return GeneRanges(
            bias_min=self.bias_min,
            bias_max=self.bias_max,
            weight_min=self.weight_min,
            weight_max=self.weight_max,
        )

    def population_config(self) -> PopulationConfig:
        return PopulationConfig(
            inputs=self.inputs,
            outputs=self.outputs,
            size=self.population_size,
            ranges=self.gene_ranges(),
        )

    def reproduction_config(self) -> ReproductionConfig:
        return ReproductionConfig(mutation_probability=self.mutation_probability)


@dataclass(slots=True)
class RunConfig:
    evolution_config: Path
    fitness: str
    storage_dir: Path
    workers: int | None = None
    event_log: Path | None = None
    resume: bool = True

    def __post_init__(self) -> None:
        module, _, attribute = self.fitness.partition(":")
        if not module or not attribute:
            msg = "fitness must look like 'package.module:function'."
            raise ValueError(msg)
        if self.workers is not None and self.workers <= 0:
            msg = "workers must be positive when provided."
            raise ValueError(msg)

    def resolve(self, base_path: Path) -> RunConfig:
        return RunConfig(
            evolution_config=(base_path / self.evolution_config).resolve(),
            fitness=self.fitness,
            storage_dir=(base_path / self.storage_dir).resolve(),
            workers=self.workers,
            event_log=(base_path / self.event_log).resolve() if self.event_log else None,
            resume=self.resume,
        )


def _load_yaml(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, Mapping):
        msg = f"Expected mapping in YAML file: {path}"
        raise ValueError(msg)
    return data


def _names(data: Mapping[str, Any], key: str) -> tuple[str, ...]:
    value = data.get(key)
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        msg = f"'{key}' must be a list of names"
        raise ValueError(msg)
    return tuple(str(name) for name in value)


def evolution_config_from_mapping(data: Mapping[str, Any]) -> EvolutionConfig:
    return EvolutionConfig(
        input_names=_names(data, "input_names"),
        output_names=_names(data, "output_names"),
        population_size=int(data.get("population_size", 50)),
        crossover_probability=float(data.get("crossover_probability", 0.7)),
        mutation_probability=float(
            data.get("mutation_probability", DEFAULT_MUTATION_PROBABILITY)
        ),
        seed=(int(data["seed"]) if data.get("seed") is not None else None),
        max_generations=(
            int(data["max_generations"])
            if data.get("max_generations") is not None
            else None
        ),
        learning_rate=float(data.get("learning_rate", DEFAULT_LEARNING_RATE)),
        bias_min=float(data.get("bias_min", 0.01)),
        bias_max=float(data.get("bias_max", 1.0)),
        weight_min=float(data.get("weight_min", 0.0)),
        weight_max=float(data.get("weight_max", 1.0)),
    )


def load_evolution_config(path: Path) -> EvolutionConfig:
    return evolution_config_from_mapping(_load_yaml(Path(path)))


def load_run_config(path: Path) -> RunConfig:
    path = Path(path)
    data = _load_yaml(path)
    evolution_path = data.get("evolution_config")
    fitness = data.get("fitness")
    storage_dir = data.get("storage_dir")
    if evolution_path is None or fitness is None or storage_dir is None:
        msg = "run.yml must specify 'evolution_config', 'fitness' and 'storage_dir'"
        raise ValueError(msg)
    run = RunConfig(
        evolution_config=Path(evolution_path),
        fitness=str(fitness),
        storage_dir=Path(storage_dir),
        workers=(int(data["workers"]) if data.get("workers") is not None else None),
        event_log=(Path(data["event_log"]) if data.get("event_log") else None),
        resume=bool(data.get("resume", True)),
    )
    return run.resolve(path.parent)


__all__ = [
    "EvolutionConfig",
    "RunConfig",
    "evolution_config_from_mapping",
    "load_evolution_config",
    "load_run_config",
]
