"""Genetic evolution of multi-layer perceptron topologies and weights."""

from __future__ import annotations

from .config import (
    EvolutionConfig,
    RunConfig,
    load_evolution_config,
    load_run_config,
)
from .driver import DriverState, EvolutionDriver
from .editors import add_layer, change_layer_size, remove_layer, update_next_layer
from .errors import (
    CheckpointError,
    ConvergenceError,
    EvaluationError,
    GenerationError,
    GenomeRepairWarning,
    MalformedGenomeError,
    SelectionError,
    ShapeMismatchError,
    StateError,
    StructuralEditError,
    UnsupportedCrossoverError,
)
from .evaluator import FitnessEvaluator, FitnessFunction
from .genes import DEFAULT_RANGES, GeneRanges, LayerGene, NeuronGene, TransferType
from .genome import (
    Genome,
    NeuronSlot,
    count_layers,
    decode_layers,
    describe_genome,
    encode_layers,
    extract_layers,
    for_each_neuron,
    iter_neurons,
    layer_sizes,
    random_genome,
)
from .metrics import MetricsRow, MetricsWriter
from .network import TRANSFERS, FeedForwardNetwork, Transfer
from .operators import (
    CrossoverStrategy,
    crossover,
    crossover_with,
    mutate,
    repair_seams,
    single_point,
    two_point,
)
from .persistence import (
    Checkpoint,
    FileStorage,
    MemoryStorage,
    Storage,
    load_checkpoint,
    save_checkpoint,
)
from .population import Individual, Population, PopulationConfig
from .reporters import EventLogger
from .reproduction import ReproductionConfig, breed_next_generation
from .selection import (
    EliteSelection,
    RouletteWheelSelection,
    Selection,
    StochasticUniversalSampling,
)

__all__ = [
    "TransferType",
    "GeneRanges",
    "DEFAULT_RANGES",
    "NeuronGene",
    "LayerGene",
    "Genome",
    "NeuronSlot",
    "extract_layers",
    "count_layers",
    "layer_sizes",
    "iter_neurons",
    "for_each_neuron",
    "decode_layers",
    "encode_layers",
    "random_genome",
    "describe_genome",
    "change_layer_size",
    "add_layer",
    "remove_layer",
    "update_next_layer",
    "CrossoverStrategy",
    "crossover",
    "crossover_with",
    "single_point",
    "two_point",
    "repair_seams",
    "mutate",
    "Selection",
    "EliteSelection",
    "RouletteWheelSelection",
    "StochasticUniversalSampling",
    "Individual",
    "Population",
    "PopulationConfig",
    "ReproductionConfig",
    "breed_next_generation",
    "FeedForwardNetwork",
    "Transfer",
    "TRANSFERS",
    "FitnessEvaluator",
    "FitnessFunction",
    "Checkpoint",
    "Storage",
    "MemoryStorage",
    "FileStorage",
    "save_checkpoint",
    "load_checkpoint",
    "MetricsRow",
    "MetricsWriter",
    "EventLogger",
    "EvolutionConfig",
    "RunConfig",
    "load_evolution_config",
    "load_run_config",
    "DriverState",
    "EvolutionDriver",
    "CheckpointError",
    "ConvergenceError",
    "EvaluationError",
    "GenerationError",
    "GenomeRepairWarning",
    "MalformedGenomeError",
    "SelectionError",
    "ShapeMismatchError",
    "StateError",
    "StructuralEditError",
    "UnsupportedCrossoverError",
]
