"""Run orchestration used by the ``mlpevo run`` command."""

from __future__ import annotations

import importlib
from dataclasses import asdict, dataclass
from pathlib import Path

import yaml

from .config import EvolutionConfig, RunConfig
from .driver import EvolutionDriver
from .evaluator import FitnessFunction
from .persistence import EVOLUTION_FILE, GENERATION_FILE, Checkpoint, FileStorage
from .population import Population
from .reporters import EventLogger


@dataclass(frozen=True, slots=True)
class RunArtifacts:
    """Resolved file locations used for a run."""

    root: Path
    checkpoint: Path
    metrics: Path
    events: Path
    config: Path


def build_artifacts(run_config: RunConfig) -> RunArtifacts:
    root = run_config.storage_dir
    return RunArtifacts(
        root=root,
        checkpoint=root / GENERATION_FILE,
        metrics=root / EVOLUTION_FILE,
        events=run_config.event_log or root / "events.log",
        config=root / "config.yml",
    )


def resolve_fitness(path: str) -> FitnessFunction:
    """Import ``package.module:function`` and return the callable."""
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        msg = f"Invalid fitness reference {path!r}; expected 'module:function'."
        raise ValueError(msg)
    module = importlib.import_module(module_name)
    target: object = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as error:
            msg = f"{module_name!r} has no attribute {attribute!r}"
            raise ValueError(msg) from error
    if not callable(target):
        msg = f"Fitness reference {path!r} is not callable."
        raise TypeError(msg)
    return target


def _run_snapshot(run_config: RunConfig) -> dict[str, object]:
    return {
        "evolution_config": str(run_config.evolution_config),
        "fitness": run_config.fitness,
        "storage_dir": str(run_config.storage_dir),
        "workers": run_config.workers,
        "event_log": str(run_config.event_log) if run_config.event_log else None,
        "resume": run_config.resume,
    }


def _write_config_snapshot(
    artifacts: RunArtifacts,
    run_config: RunConfig,
    evolution_config: EvolutionConfig,
) -> None:
    if artifacts.config.exists():
        return
    evolution = asdict(evolution_config)
    evolution["input_names"] = list(evolution_config.input_names)
    evolution["output_names"] = list(evolution_config.output_names)
    snapshot = {"run": _run_snapshot(run_config), "evolution": evolution}
    artifacts.root.mkdir(parents=True, exist_ok=True)
    with artifacts.config.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(snapshot, handle, sort_keys=True)


def _print_progress(population: Population) -> None:
    best = population.best()
    print(
        f"Generation {population.generation}: best fitness {best.fitness:.4f} "
        f"mean {population.mean_fitness():.4f}"
    )


def run_evolution(
    run_config: RunConfig, evolution_config: EvolutionConfig
) -> Checkpoint | None:
    """Run the driver until it stops and return the last saved checkpoint."""
    fitness = resolve_fitness(run_config.fitness)
    artifacts = build_artifacts(run_config)
    storage = FileStorage(artifacts.root)
    _write_config_snapshot(artifacts, run_config, evolution_config)

    with EventLogger(artifacts.events) as logger:
        driver = EvolutionDriver(
            fitness,
            storage,
            evolution_config,
            logger=logger,
            workers=run_config.workers,
            on_generation=_print_progress,
        )
        try:
            if run_config.resume and driver.load():
                print(f"[run] resuming from checkpoint: {artifacts.checkpoint}")
                logger.log(f"Run resumed at {artifacts.root}")
            else:
                print(f"[run] storage directory: {artifacts.root}")
                logger.log(f"Run started at {artifacts.root}")
            driver.start()
            try:
                driver.wait()
            except KeyboardInterrupt:
                print("[run] stopping after the current generation...")
                logger.log("Interrupted; stopping after the current generation.")
                driver.stop()
                driver.wait()
        finally:
            driver.shutdown(wait=False)
        logger.log("Run finished.")

    return storage.load()


__all__ = ["RunArtifacts", "build_artifacts", "resolve_fitness", "run_evolution"]
