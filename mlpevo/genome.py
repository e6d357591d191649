"""Flat genome encoding of an MLP and the transcoders that read and write it.

A genome is a sequence of floats holding every layer back to back::

    [SIZE, PREV, (TYPE, BIAS, WEIGHT * PREV) * SIZE] * layers

There is no input layer entry: the first layer's ``PREV`` is the input count.
Layer boundaries are computed from the headers, never stored.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from random import Random

from .errors import GenomeRepairWarning, MalformedGenomeError
from .genes import (
    DEFAULT_RANGES,
    LAYER_FIELDS,
    NEURON_FIELDS,
    GeneRanges,
    LayerGene,
    NeuronGene,
    TransferType,
)

Dna = tuple[float, ...]
RawLayer = tuple[float, ...]


@dataclass(slots=True)
class NeuronSlot:
    """Mutable snapshot of one neuron handed to traversal visitors."""

    layer: int
    layer_size: int
    index: int
    type: float
    bias: float
    weights: list[float] = field(default_factory=list)


NeuronVisitor = Callable[[NeuronSlot], "bool | None"]


def layer_length(size: int, prev_size: int) -> int:
    """Number of values occupied by a layer with the given header."""
    return LAYER_FIELDS + size * (NEURON_FIELDS + prev_size)


def _read_header(dna: Sequence[float], position: int) -> tuple[int, int]:
    if position + LAYER_FIELDS > len(dna):
        msg = f"Truncated layer header at index {position}."
        raise MalformedGenomeError(msg)
    try:
        size = int(dna[position])
        prev_size = int(dna[position + 1])
    except (TypeError, ValueError, OverflowError) as error:
        msg = f"Invalid layer header at index {position}."
        raise MalformedGenomeError(msg) from error
    if size < 1:
        msg = f"Layer at index {position} must have at least one neuron, got {size}."
        raise MalformedGenomeError(msg)
    if prev_size < 0:
        msg = f"Layer at index {position} has a negative input count ({prev_size})."
        raise MalformedGenomeError(msg)
    return size, prev_size


def _scan(dna: Sequence[float]) -> Iterator[tuple[int, int, int, int]]:
    """Yield ``(position, size, prev_size, length)`` for every layer.

    Every layer after the first must take the previous layer's size as input.
    """
    position = 0
    total = len(dna)
    previous: int | None = None
    while position < total:
        size, prev_size = _read_header(dna, position)
        if previous is not None and prev_size != previous:
            msg = (
                f"Layer at index {position} expects {prev_size} inputs but the "
                f"previous layer has {previous} neurons."
            )
            raise MalformedGenomeError(msg)
        length = layer_length(size, prev_size)
        if position + length > total:
            msg = (
                f"Layer at index {position} needs {length} values but only "
                f"{total - position} remain."
            )
            raise MalformedGenomeError(msg)
        yield position, size, prev_size, length
        previous = size
        position += length


def extract_layers(dna: Sequence[float]) -> list[RawLayer]:
    """Split a genome into its contiguous raw layer slices."""
    return [
        tuple(float(value) for value in dna[position : position + length])
        for position, _size, _prev, length in _scan(dna)
    ]


def count_layers(dna: Sequence[float]) -> list[int]:
    """Return the neuron count of every layer (input excluded)."""
    return [size for _position, size, _prev, _length in _scan(dna)]


def layer_sizes(dna: Sequence[float]) -> list[int]:
    """Return ``[inputs, size_0, ..., size_n]`` for a genome."""
    sizes: list[int] = []
    for position, size, prev_size, _length in _scan(dna):
        if position == 0:
            sizes.append(prev_size)
        sizes.append(size)
    return sizes


def flatten(layers: Sequence[Sequence[float]]) -> Dna:
    """Concatenate raw layer slices back into a flat genome."""
    return tuple(float(value) for layer in layers for value in layer)


def _walk(
    layers: Sequence[Sequence[float]],
    start_layer: int,
    start_neuron: int,
) -> Iterator[tuple[int, int, NeuronSlot]]:
    for layer_index, layer in enumerate(layers):
        if layer_index < start_layer:
            continue
        size = int(layer[0])
        prev_size = int(layer[1])
        stride = NEURON_FIELDS + prev_size
        for neuron_index in range(size):
            if layer_index == start_layer and neuron_index < start_neuron:
                continue
            offset = LAYER_FIELDS + neuron_index * stride
            slot = NeuronSlot(
                layer=layer_index,
                layer_size=size,
                index=neuron_index,
                type=layer[offset],
                bias=layer[offset + 1],
                weights=list(layer[offset + 2 : offset + 2 + prev_size]),
            )
            yield layer_index, offset, slot


def iter_neurons(
    dna: Sequence[float],
    start_layer: int = 0,
    start_neuron: int = 0,
) -> Iterator[NeuronSlot]:
    """Lazily yield a snapshot of every neuron from the given start point."""
    layers = extract_layers(dna)
    for _layer_index, _offset, slot in _walk(layers, start_layer, start_neuron):
        yield slot


def for_each_neuron(
    dna: Sequence[float],
    visitor: NeuronVisitor,
    start_layer: int = 0,
    start_neuron: int = 0,
) -> Dna:
    """Visit neurons in order and return a rewritten copy of the genome.

    The visitor may change ``type``, ``bias`` and ``weights`` of the slot it
    receives; returning ``False`` stops the traversal after that neuron.
    Unknown type ids are written back as sigmoid. Only the overlapping prefix
    of ``weights`` is written back, so layer shapes never change here.
    """
    layers = [list(layer) for layer in extract_layers(dna)]
    for layer_index, offset, slot in _walk(layers, start_layer, start_neuron):
        keep_going = visitor(slot)

        layer = layers[layer_index]
        member = TransferType.from_id(slot.type)
        layer[offset] = float(TransferType.SIGMOID if member is None else member)
        layer[offset + 1] = float(slot.bias)
        prev_size = int(layer[1])
        for position, weight in enumerate(slot.weights[:prev_size]):
            layer[offset + 2 + position] = float(weight)

        if keep_going is False:
            break
    return flatten(layers)


def decode_layers(dna: Sequence[float]) -> list[LayerGene]:
    """Decode a genome into transcoded layers."""
    decoded: list[LayerGene] = []
    for layer in extract_layers(dna):
        size = int(layer[0])
        prev_size = int(layer[1])
        stride = NEURON_FIELDS + prev_size
        neurons = []
        for neuron_index in range(size):
            offset = LAYER_FIELDS + neuron_index * stride
            neurons.append(
                NeuronGene(
                    type=TransferType.coerce(layer[offset]),
                    bias=layer[offset + 1],
                    weights=layer[offset + 2 : offset + 2 + prev_size],
                )
            )
        decoded.append(LayerGene(neurons=tuple(neurons)))
    return decoded


def _fit_weights(weights: list[float], expected: int) -> list[float]:
    fitted = list(weights)
    filler = fitted[-1] if fitted else 0.0
    while len(fitted) < expected:
        fitted.append(filler)
    del fitted[expected:]
    return fitted


def encode_layers(layers: Sequence[LayerGene]) -> Dna:
    """Encode transcoded layers into a flat genome.

    The first layer's input count is taken from its first neuron; every later
    layer uses the size of the layer before it. Neurons whose weight count
    disagrees are padded by repeating their last weight or truncated from the
    end, and a :class:`GenomeRepairWarning` is emitted.
    """
    dna: list[float] = []
    previous: LayerGene | None = None
    for layer_index, layer in enumerate(layers):
        if not layer.neurons:
            msg = f"Layer {layer_index} has no neurons."
            raise MalformedGenomeError(msg)
        prev_size = layer.prev_size if previous is None else previous.size
        dna.append(float(layer.size))
        dna.append(float(prev_size))
        for neuron_index, neuron in enumerate(layer.neurons):
            weights = list(neuron.weights)
            if len(weights) != prev_size:
                warnings.warn(
                    f"Inconsistent genome: neuron {neuron_index} of layer "
                    f"{layer_index} has {len(weights)} weights, expected {prev_size}.",
                    GenomeRepairWarning,
                    stacklevel=2,
                )
                weights = _fit_weights(weights, prev_size)
            dna.append(float(neuron.type.value))
            dna.append(neuron.bias)
            dna.extend(weights)
        previous = layer
    return tuple(dna)


def random_dna(
    inputs: int,
    outputs: int,
    rng: Random,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> Dna:
    """Draw a genome with one to three hidden layers and the output layer."""
    if inputs <= 0 or outputs <= 0:
        msg = "inputs and outputs must be positive."
        raise ValueError(msg)
    hidden = rng.randint(1, 3)
    low, high = min(inputs, outputs), max(inputs, outputs) + 1
    sizes = [rng.randint(low, high) for _ in range(hidden)]
    sizes.append(outputs)

    dna: list[float] = []
    prev_size = inputs
    for size in sizes:
        dna.append(float(size))
        dna.append(float(prev_size))
        for _ in range(size):
            dna.extend(ranges.random_neuron(prev_size, rng))
        prev_size = size
    return tuple(dna)


@dataclass(frozen=True, slots=True)
class Genome:
    """Immutable flat encoding of an MLP's topology and parameters."""

    dna: Dna

    def __post_init__(self) -> None:
        object.__setattr__(self, "dna", tuple(float(value) for value in self.dna))

    def __len__(self) -> int:
        return len(self.dna)

    @classmethod
    def random(
        cls,
        inputs: int,
        outputs: int,
        rng: Random,
        ranges: GeneRanges = DEFAULT_RANGES,
    ) -> Genome:
        """Create a random genome for the given input and output counts."""
        return cls(random_dna(inputs, outputs, rng, ranges))

    @classmethod
    def from_layers(cls, layers: Sequence[LayerGene]) -> Genome:
        return cls(encode_layers(layers))

    def layers(self) -> list[LayerGene]:
        return decode_layers(self.dna)

    def extract_layers(self) -> list[RawLayer]:
        return extract_layers(self.dna)

    def count_layers(self) -> list[int]:
        return count_layers(self.dna)

    def layer_sizes(self) -> list[int]:
        return layer_sizes(self.dna)

    @property
    def input_size(self) -> int:
        sizes = self.layer_sizes()
        return sizes[0] if sizes else 0

    @property
    def output_size(self) -> int:
        sizes = self.layer_sizes()
        return sizes[-1] if sizes else 0

    def for_each_neuron(
        self,
        visitor: NeuronVisitor,
        start_layer: int = 0,
        start_neuron: int = 0,
    ) -> Genome:
        """Return a new genome rewritten by ``visitor``."""
        return Genome(for_each_neuron(self.dna, visitor, start_layer, start_neuron))


def random_genome(
    inputs: int,
    outputs: int,
    rng: Random,
    ranges: GeneRanges = DEFAULT_RANGES,
) -> Genome:
    return Genome(random_dna(inputs, outputs, rng, ranges))


def describe_genome(genome: Genome | Sequence[float]) -> str:
    """Render every header and neuron field with its flat index."""
    dna = genome.dna if isinstance(genome, Genome) else tuple(genome)
    lines: list[str] = []
    cursor = 0
    for slot in iter_neurons(dna):
        if slot.index == 0:
            if slot.layer > 0:
                lines.append("." * 33)
                lines.append("")
            lines.append(f".. layer {slot.layer + 1:03d} " + "." * 20)
            lines.append(f" [{cursor:04d}]  <SIZE: {slot.layer_size}>")
            lines.append(f" [{cursor + 1:04d}]  <PREV: {len(slot.weights)}>")
            cursor += LAYER_FIELDS
        lines.append(f"           .......... neuron {slot.index + 1:03d}")
        type_name = TransferType.coerce(slot.type).name
        lines.append(f" [{cursor:04d}]    <TYPE  : {int(slot.type)} {type_name}>")
        lines.append(f" [{cursor + 1:04d}]    <BIAS  : {slot.bias:.10f}>")
        cursor += NEURON_FIELDS
        for weight in slot.weights:
            lines.append(f" [{cursor:04d}]    <WEIGHT: {weight:.10f}>")
            cursor += 1
    lines.append("." * 33)
    return "\n".join(lines)


__all__ = [
    "Dna",
    "Genome",
    "NeuronSlot",
    "NeuronVisitor",
    "RawLayer",
    "count_layers",
    "decode_layers",
    "describe_genome",
    "encode_layers",
    "extract_layers",
    "flatten",
    "for_each_neuron",
    "iter_neurons",
    "layer_length",
    "layer_sizes",
    "random_dna",
    "random_genome",
]
