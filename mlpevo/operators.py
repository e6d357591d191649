"""Crossover and mutation operators for flat MLP genomes."""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from random import Random

from .editors import add_layer, change_layer_size, remove_layer, update_next_layer
from .errors import UnsupportedCrossoverError
from .genes import DEFAULT_RANGES, GeneRanges
from .genome import Genome, NeuronSlot, RawLayer, count_layers, flatten

DEFAULT_MUTATION_PROBABILITY = 0.1


class CrossoverStrategy(Enum):
    SINGLE_POINT = "single_point"
    TWO_POINT = "two_point"


def repair_seams(
    layers: Sequence[RawLayer],
    inputs: int,
    rng: Random,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> list[RawLayer]:
    """Rewire every layer whose ``PREV`` disagrees with its predecessor's size.

    The first layer is checked against ``inputs``.
    """
    repaired: list[RawLayer] = []
    expected = inputs
    for layer in layers:
        if int(layer[1]) != expected:
            layer = update_next_layer(layer, expected, rng, ranges)
        repaired.append(layer)
        expected = int(layer[0])
    return repaired


def _splice(
    layers: Sequence[RawLayer],
    inputs: int,
    rng: Random,
    ranges: GeneRanges,
) -> Genome:
    return Genome(flatten(repair_seams(layers, inputs, rng, ranges)))


def single_point(
    dad: Genome,
    mom: Genome,
    rng: Random,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> Genome:
    """Shorter parent's head followed by the longer parent's tail."""
    dad_layers = dad.extract_layers()
    mom_layers = mom.extract_layers()
    shorter, longer = (
        (dad_layers, mom_layers)
        if len(dad_layers) <= len(mom_layers)
        else (mom_layers, dad_layers)
    )
    total = len(shorter)
    cut = int(rng.uniform(total * 0.3, total * 0.7))
    if cut == total:
        cut = total // 2

    child = [*shorter[:cut], *longer[cut:]]
    return _splice(child, dad.input_size, rng, ranges)


def two_point(
    dad: Genome,
    mom: Genome,
    rng: Random,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> Genome:
    """Outer parent's head and tail around a window of the inner parent."""
    if rng.random() < 0.5:
        outer, inner = dad.extract_layers(), mom.extract_layers()
    else:
        outer, inner = mom.extract_layers(), dad.extract_layers()

    total = len(outer)
    first = max(int(rng.uniform(total * 0.2, total * 0.5)), 1)
    second = min(int(rng.uniform(total * 0.5, total * 0.8)), total - 1)
    # Single layer parents would otherwise repeat the head in the tail.
    first = min(first, second)

    span = len(inner)
    start = int(rng.uniform(0, span * 0.4))
    end = int(rng.uniform(span * 0.6, span))

    child = [*outer[:first], *inner[start:end], *outer[second:]]
    return _splice(child, dad.input_size, rng, ranges)


def crossover_with(
    strategy: CrossoverStrategy,
    dad: Genome,
    mom: Genome,
    rng: Random,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> Genome:
    if strategy is CrossoverStrategy.SINGLE_POINT:
        return single_point(dad, mom, rng, ranges)
    if strategy is CrossoverStrategy.TWO_POINT:
        return two_point(dad, mom, rng, ranges)
    msg = f"Unsupported crossover strategy: {strategy!r}"
    raise UnsupportedCrossoverError(msg)


def crossover(
    dad: Genome,
    mom: Genome,
    rng: Random,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> Genome:
    """Combine two parents with a uniformly chosen strategy."""
    strategy = rng.choice(tuple(CrossoverStrategy))
    return crossover_with(strategy, dad, mom, rng, ranges)


def _jitter(value: float, rng: Random, probability: float) -> float:
    if rng.random() < probability:
        return rng.uniform(value * 0.6, value * 1.4)
    if rng.random() < probability:
        return rng.uniform(value * 0.85, value * 1.15)
    return value


def mutate(
    parent: Genome,
    rng: Random,
    probability: float = DEFAULT_MUTATION_PROBABILITY,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> Genome:
    """Return a mutated copy of ``parent``.

    Three passes run in order: bias and weight jitter, hidden layer resizing,
    then at most one layer insertion with any number of removals. Transfer
    types and the output layer size are never changed.
    """
    if not 0.0 <= probability <= 1.0:
        msg = "probability must be in [0, 1]."
        raise ValueError(msg)

    def jitter_neuron(slot: NeuronSlot) -> bool:
        slot.bias = _jitter(slot.bias, rng, probability)
        slot.weights = [_jitter(weight, rng, probability) for weight in slot.weights]
        return True

    dna = parent.for_each_neuron(jitter_neuron).dna

    sizes = count_layers(dna)
    for layer_index, size in enumerate(sizes[:-1]):
        if rng.random() >= probability:
            continue
        new_size = rng.randint(size // 2, size + size // 2)
        dna = change_layer_size(dna, layer_index, new_size, rng, ranges)

    sizes = count_layers(dna)
    current = 1
    for _position in range(1, len(sizes) - 1):
        if rng.random() < probability:
            live = count_layers(dna)
            low = min(live[current], live[current + 1]) // 2
            high = max(live[current], live[current + 1])
            size = max(1, rng.randint(low, high + high // 2))
            dna = add_layer(dna, current, size, rng, ranges)
            break
        if rng.random() < probability:
            if len(count_layers(dna)) - 1 < 2:
                current += 1
                continue
            dna = remove_layer(dna, current, rng, ranges)
            continue
        current += 1

    return Genome(dna)


__all__ = [
    "CrossoverStrategy",
    "DEFAULT_MUTATION_PROBABILITY",
    "crossover",
    "crossover_with",
    "mutate",
    "repair_seams",
    "single_point",
    "two_point",
]
