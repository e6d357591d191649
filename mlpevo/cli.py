"""Command-line interface for evolution runs."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import EvolutionConfig, RunConfig, load_evolution_config, load_run_config
from .errors import CheckpointError, GenerationError
from .genome import describe_genome
from .persistence import GENERATION_FILE, load_checkpoint
from .training import resolve_fitness, run_evolution


def _load_bundle(config_path: Path) -> tuple[RunConfig, EvolutionConfig]:
    run_config = load_run_config(config_path)
    evolution_config = load_evolution_config(run_config.evolution_config)
    return run_config, evolution_config


def _cmd_run(args: argparse.Namespace) -> int:
    config_path = Path(args.config)
    run_config, evolution_config = _load_bundle(config_path)
    resolve_fitness(run_config.fitness)

    if args.dry_run:
        print("[run] configuration validated")
        print(f"  evolution_config: {run_config.evolution_config}")
        print(f"  fitness: {run_config.fitness}")
        print(f"  storage_dir: {run_config.storage_dir}")
        print(f"  inputs: {', '.join(evolution_config.input_names)}")
        print(f"  outputs: {', '.join(evolution_config.output_names)}")
        print(f"  population_size: {evolution_config.population_size}")
        print(f"  max_generations: {evolution_config.max_generations}")
        print(f"  workers: {run_config.workers or 'auto'}")
        return 0

    try:
        checkpoint = run_evolution(run_config, evolution_config)
    except GenerationError as error:
        print(f"[run] {error}", file=sys.stderr)
        return 1
    if checkpoint is not None:
        print(
            f"[run] last saved generation {checkpoint.generation}: "
            f"best fitness {checkpoint.best_fitness():.6f}"
        )
    return 0


def _cmd_inspect(args: argparse.Namespace) -> int:
    target = Path(args.checkpoint)
    if target.is_dir():
        target = target / GENERATION_FILE
    if not target.exists():
        print(f"Checkpoint file not found: {target}", file=sys.stderr)
        return 1
    try:
        checkpoint = load_checkpoint(target)
    except CheckpointError as error:
        print(str(error), file=sys.stderr)
        return 1

    print(f"[inspect] {target}")
    print(f"  generation: {checkpoint.generation}")
    print(f"  individuals: {len(checkpoint)}")
    print(f"  best_fitness: {checkpoint.best_fitness():.6f}")
    print(f"  mean_fitness: {checkpoint.mean_fitness():.6f}")
    print(f"  worst_fitness: {checkpoint.worst_fitness():.6f}")
    best = checkpoint.best_genome()
    if best is not None:
        sizes = " -> ".join(str(size) for size in best.layer_sizes())
        print(f"  best_topology: {sizes}")
        if args.genome:
            print(describe_genome(best))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mlpevo",
        description="Evolve MLP topologies and weights with a genetic algorithm",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser(
        "run",
        help="Run evolution using a YAML configuration bundle",
    )
    run.add_argument(
        "--config",
        required=True,
        help="Path to run configuration YAML",
    )
    run.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration without evolving",
    )
    run.set_defaults(func=_cmd_run)

    inspect = subparsers.add_parser(
        "inspect",
        help="Summarise a saved generation",
    )
    inspect.add_argument(
        "checkpoint",
        help="Storage directory or checkpoint file",
    )
    inspect.add_argument(
        "--genome",
        action="store_true",
        help="Also dump every field of the best genome",
    )
    inspect.set_defaults(func=_cmd_inspect)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    result = args.func(args)
    return int(result)


if __name__ == "__main__":  # pragma: no cover - entry point
    raise SystemExit(main())
