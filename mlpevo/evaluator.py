"""Evaluation of single individuals against a user supplied fitness function."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence

from .errors import EvaluationError
from .genome import Genome
from .network import DEFAULT_LEARNING_RATE, FeedForwardNetwork
from .population import Individual

FitnessFunction = Callable[[FeedForwardNetwork], float]


class FitnessEvaluator:
    """Decode an individual's genome, score it and record the outcome.

    Any exception raised while building or scoring the network is recorded as
    the individual's error; it never propagates to the caller.
    """

    def __init__(
        self,
        fitness: FitnessFunction,
        *,
        input_names: Sequence[str] = (),
        output_names: Sequence[str] = (),
        learning_rate: float = DEFAULT_LEARNING_RATE,
    ) -> None:
        if not callable(fitness):
            msg = "fitness must be callable."
            raise TypeError(msg)
        self.fitness = fitness
        self.input_names = tuple(input_names)
        self.output_names = tuple(output_names)
        self.learning_rate = learning_rate

    def build_network(self, genome: Genome) -> FeedForwardNetwork:
        return FeedForwardNetwork.from_genome(
            genome,
            input_names=self.input_names,
            output_names=self.output_names,
            learning_rate=self.learning_rate,
        )

    def __call__(self, individual: Individual) -> Individual:
        try:
            network = self.build_network(individual.genome)
            individual.mark_started()
            value = float(self.fitness(network))
            if not math.isfinite(value):
                msg = f"Fitness function returned a non-finite value: {value!r}"
                raise EvaluationError(msg)
        except Exception as error:
            if individual.start is None:
                individual.mark_started()
            individual.record_failure(error)
        else:
            individual.record_success(value)
        return individual

    def evaluate_genome(self, genome: Genome) -> Individual:
        """Score a standalone genome outside of any generation."""
        return self(Individual(genome))


__all__ = ["FitnessEvaluator", "FitnessFunction"]
