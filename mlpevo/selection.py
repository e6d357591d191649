"""Selection strategies over a scored set of individuals."""

from __future__ import annotations

import bisect
import math
from collections.abc import Callable, Sequence
from random import Random

from .errors import SelectionError
from .population import Individual


def _rank(individual: Individual) -> float:
    fitness = individual.fitness
    return float("-inf") if math.isnan(fitness) else fitness


def _weight(individual: Individual) -> float:
    fitness = individual.fitness
    if not math.isfinite(fitness) or fitness < 0.0:
        return 0.0
    return fitness


class Selection:
    """Base class: choose ``n`` individuals from a scored pool."""

    name = "selection"

    def select(
        self,
        n: int,
        individuals: Sequence[Individual],
        rng: Random,
    ) -> list[Individual]:
        pool = list(individuals)
        if n < 0:
            msg = f"Cannot select a negative number of individuals ({n})."
            raise SelectionError(msg)
        if n > len(pool):
            msg = f"Cannot select {n} individuals from a pool of {len(pool)}."
            raise SelectionError(msg)
        if n == 0:
            return []
        return self._select(n, pool, rng)

    def _select(
        self, n: int, pool: list[Individual], rng: Random
    ) -> list[Individual]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class EliteSelection(Selection):
    """Truncation selection: the ``n`` highest fitness values, ties kept in order."""

    name = "elite"

    def _select(
        self, n: int, pool: list[Individual], rng: Random
    ) -> list[Individual]:
        return sorted(pool, key=_rank, reverse=True)[:n]


class RouletteWheelSelection(Selection):
    """Fitness proportional sampling with one pointer per draw.

    Non-finite and negative fitness values weigh nothing; when every weight
    is zero the wheel is uniform.
    """

    name = "roulette"

    @staticmethod
    def cumulative(pool: Sequence[Individual]) -> list[float]:
        weights = [_weight(individual) for individual in pool]
        total = sum(weights)
        if total <= 0.0:
            weights = [1.0] * len(pool)
            total = float(len(pool))
        wheel: list[float] = []
        running = 0.0
        for weight in weights:
            running += weight / total
            wheel.append(running)
        return wheel

    @staticmethod
    def spin(
        n: int,
        pool: Sequence[Individual],
        wheel: Sequence[float],
        pointer: Callable[[], float],
    ) -> list[Individual]:
        selected = []
        last = len(pool) - 1
        for _ in range(n):
            index = min(bisect.bisect_left(wheel, pointer()), last)
            selected.append(pool[index])
        return selected

    def _select(
        self, n: int, pool: list[Individual], rng: Random
    ) -> list[Individual]:
        wheel = self.cumulative(pool)
        # Pointers in (0, 1] so zero weight slots at the front are never hit.
        return self.spin(n, pool, wheel, lambda: 1.0 - rng.random())


class StochasticUniversalSampling(RouletteWheelSelection):
    """Roulette wheel with ``n`` evenly spaced pointers from one random start."""

    name = "sus"

    def _select(
        self, n: int, pool: list[Individual], rng: Random
    ) -> list[Individual]:
        wheel = self.cumulative(pool)
        step = 1.0 / n
        position = rng.random()

        def pointer() -> float:
            nonlocal position
            if position > 1.0:
                position -= 1.0
            current = position
            position += step
            return current

        return self.spin(n, pool, wheel, pointer)


__all__ = [
    "EliteSelection",
    "RouletteWheelSelection",
    "Selection",
    "StochasticUniversalSampling",
]
