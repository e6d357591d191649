"""Gene primitives (transfer types, neurons and layers) for MLP genomes."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from random import Random

# Fields preceding the neurons of a layer: <SIZE>, <PREV>.
LAYER_FIELDS = 2

# Fields preceding the weights of a neuron: <TYPE>, <BIAS>.
NEURON_FIELDS = 2


class TransferType(int, Enum):
    """Transfer function identifiers as stored in the genome."""

    IDENTITY = 1
    BENT_IDENTITY = 2
    SIGMOID = 3
    TANH = 4
    ARCTAN = 5
    SOFTSIGN = 6
    ISRU = 7
    RELU = 8
    LRELU = 9
    SOFTPLUS = 10
    GAUSSIAN = 11

    @classmethod
    def from_id(cls, value: float) -> TransferType | None:
        """Return the member for a stored id, or ``None`` when unknown.

        Stored ids are floats; they are truncated to an integer first.
        """
        try:
            return cls(int(value))
        except (TypeError, ValueError, OverflowError):
            return None

    @classmethod
    def coerce(cls, value: TransferType | str | float) -> TransferType:
        """Coerce an id, a name or a member, defaulting to sigmoid."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                return cls.SIGMOID
        member = cls.from_id(value)
        return cls.SIGMOID if member is None else member

    @classmethod
    def random(cls, rng: Random) -> TransferType:
        """Draw a transfer type uniformly."""
        return rng.choice(tuple(cls))


@dataclass(frozen=True, slots=True)
class GeneRanges:
    """Ranges used whenever fresh neuron values are drawn."""

    bias_min: float = 0.01
    bias_max: float = 1.0
    weight_min: float = 0.0
    weight_max: float = 1.0

    def __post_init__(self) -> None:
        if self.bias_min > self.bias_max:
            msg = "bias_min must be <= bias_max."
            raise ValueError(msg)
        if self.weight_min > self.weight_max:
            msg = "weight_min must be <= weight_max."
            raise ValueError(msg)

    def random_bias(self, rng: Random) -> float:
        return rng.uniform(self.bias_min, self.bias_max)

    def random_weight(self, rng: Random) -> float:
        return rng.uniform(self.weight_min, self.weight_max)

    def random_weights(self, count: int, rng: Random) -> list[float]:
        return [self.random_weight(rng) for _ in range(count)]

    def random_neuron(self, prev_size: int, rng: Random) -> list[float]:
        """Return flat ``[type, bias, weight...]`` values for a new neuron."""
        values = [float(TransferType.random(rng)), self.random_bias(rng)]
        values.extend(self.random_weights(prev_size, rng))
        return values


DEFAULT_RANGES = GeneRanges()


@dataclass(frozen=True, slots=True)
class NeuronGene:
    """Transcoded neuron: transfer type, bias and input weights."""

    type: TransferType
    bias: float
    weights: tuple[float, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", TransferType.coerce(self.type))
        object.__setattr__(self, "bias", float(self.bias))
        object.__setattr__(
            self, "weights", tuple(float(weight) for weight in self.weights)
        )

    @property
    def prev_size(self) -> int:
        return len(self.weights)

    def copy(
        self,
        *,
        type: TransferType | None = None,
        bias: float | None = None,
        weights: Iterable[float] | None = None,
    ) -> NeuronGene:
        """Return a copy of the neuron with optional overrides."""
        return NeuronGene(
            type=self.type if type is None else type,
            bias=self.bias if bias is None else bias,
            weights=self.weights if weights is None else tuple(weights),
        )

    def to_values(self) -> list[float]:
        return [float(self.type.value), self.bias, *self.weights]


@dataclass(frozen=True, slots=True)
class LayerGene:
    """Transcoded layer: an ordered group of neurons sharing their inputs."""

    neurons: tuple[NeuronGene, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "neurons", tuple(self.neurons))

    @property
    def size(self) -> int:
        return len(self.neurons)

    @property
    def prev_size(self) -> int:
        """Weight count of the first neuron (0 for an empty layer)."""
        if not self.neurons:
            return 0
        return self.neurons[0].prev_size


__all__ = [
    "DEFAULT_RANGES",
    "GeneRanges",
    "LAYER_FIELDS",
    "LayerGene",
    "NEURON_FIELDS",
    "NeuronGene",
    "TransferType",
]
