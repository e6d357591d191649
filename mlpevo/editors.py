"""Structural editors that resize, insert and remove genome layers.

Every editor keeps the encoding consistent by cascading the change into the
layer that follows the edited one (see :func:`update_next_layer`).
"""

from __future__ import annotations

from collections.abc import Sequence
from random import Random

from .errors import StructuralEditError
from .genes import DEFAULT_RANGES, LAYER_FIELDS, NEURON_FIELDS, GeneRanges
from .genome import Dna, RawLayer, extract_layers, flatten


def _check_index(layers: Sequence[RawLayer], index: int) -> None:
    if not 0 <= index < len(layers):
        msg = f"Layer index {index} is out of range for {len(layers)} layers."
        raise StructuralEditError(msg)


def update_next_layer(
    raw_layer: Sequence[float],
    new_prev: int,
    rng: Random,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> RawLayer:
    """Adapt every neuron of ``raw_layer`` to a predecessor of ``new_prev`` neurons.

    Types and biases are kept. Weights are appended (freshly drawn) or dropped
    from the tail, and the ``PREV`` header is rewritten.
    """
    if new_prev < 0:
        msg = f"Input count must be >= 0, got {new_prev}."
        raise StructuralEditError(msg)
    size = int(raw_layer[0])
    old_prev = int(raw_layer[1])
    stride = NEURON_FIELDS + old_prev

    values = [float(size), float(new_prev)]
    for neuron_index in range(size):
        offset = LAYER_FIELDS + neuron_index * stride
        neuron = [float(value) for value in raw_layer[offset : offset + stride]]
        if new_prev > old_prev:
            neuron.extend(ranges.random_weights(new_prev - old_prev, rng))
        else:
            del neuron[NEURON_FIELDS + new_prev :]
        values.extend(neuron)
    return tuple(values)


def _resize(
    raw_layer: Sequence[float],
    new_size: int,
    rng: Random,
    ranges: GeneRanges,
) -> RawLayer:
    size = int(raw_layer[0])
    prev_size = int(raw_layer[1])
    stride = NEURON_FIELDS + prev_size
    if new_size < size:
        kept = raw_layer[LAYER_FIELDS : LAYER_FIELDS + new_size * stride]
        return (float(new_size), float(prev_size), *kept)
    values = [float(new_size), *raw_layer[1:]]
    for _ in range(new_size - size):
        values.extend(ranges.random_neuron(prev_size, rng))
    return tuple(values)


def _random_layer(
    size: int, prev_size: int, rng: Random, ranges: GeneRanges
) -> RawLayer:
    values = [float(size), float(prev_size)]
    for _ in range(size):
        values.extend(ranges.random_neuron(prev_size, rng))
    return tuple(values)


def change_layer_size(
    dna: Sequence[float],
    layer_index: int,
    new_size: int,
    rng: Random,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> Dna:
    """Return a copy of ``dna`` whose layer ``layer_index`` has ``new_size`` neurons.

    A size of zero, the output layer and an unchanged size leave the genome
    untouched. The following layer's weight counts are adjusted to match.
    """
    layers = extract_layers(dna)
    _check_index(layers, layer_index)
    if new_size < 0:
        msg = f"Layer size must be >= 0, got {new_size}."
        raise StructuralEditError(msg)
    if new_size == 0 or layer_index == len(layers) - 1:
        return tuple(float(value) for value in dna)
    if new_size == int(layers[layer_index][0]):
        return tuple(float(value) for value in dna)

    edited = list(layers)
    edited[layer_index] = _resize(layers[layer_index], new_size, rng, ranges)
    edited[layer_index + 1] = update_next_layer(
        layers[layer_index + 1], new_size, rng, ranges
    )
    return flatten(edited)


def add_layer(
    dna: Sequence[float],
    index: int,
    size: int,
    rng: Random,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> Dna:
    """Insert a random layer of ``size`` neurons right after layer ``index``."""
    if size <= 0:
        msg = f"A new layer needs at least one neuron, got {size}."
        raise StructuralEditError(msg)
    layers = extract_layers(dna)
    _check_index(layers, index)
    if index == len(layers) - 1:
        msg = "Cannot insert a layer after the output layer."
        raise StructuralEditError(msg)

    inserted = _random_layer(size, int(layers[index][0]), rng, ranges)
    successor = update_next_layer(layers[index + 1], size, rng, ranges)
    edited = [*layers[: index + 1], inserted, successor, *layers[index + 2 :]]
    return flatten(edited)


def remove_layer(
    dna: Sequence[float],
    index: int,
    rng: Random,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> Dna:
    """Delete layer ``index`` and rewire its successor to the new predecessor."""
    layers = extract_layers(dna)
    _check_index(layers, index)
    if index == 0:
        msg = "The first layer cannot be removed."
        raise StructuralEditError(msg)
    if index == len(layers) - 1:
        msg = "The output layer cannot be removed."
        raise StructuralEditError(msg)

    successor = update_next_layer(
        layers[index + 1], int(layers[index - 1][0]), rng, ranges
    )
    edited = [*layers[:index], successor, *layers[index + 2 :]]
    return flatten(edited)


__all__ = [
    "add_layer",
    "change_layer_size",
    "remove_layer",
    "update_next_layer",
]
