"""Feed-forward multi-layer perceptron decoded from MLP genomes."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import ConvergenceError, ShapeMismatchError
from .genes import LayerGene, NeuronGene, TransferType

if TYPE_CHECKING:
    from .genome import Genome

ActivationFunction = Callable[[float], float]
# Derivatives receive the neuron's output and its raw activation.
DerivativeFunction = Callable[[float, float], float]

DEFAULT_LEARNING_RATE = 0.03


def _sigmoid(x: float) -> float:
    if x >= 0:
        z = math.exp(-x)
        return 1.0 / (1.0 + z)
    z = math.exp(x)
    return z / (1.0 + z)


def _softplus(x: float) -> float:
    if x > 0:
        return x + math.log1p(math.exp(-x))
    return math.log1p(math.exp(x))


def _isru(x: float) -> float:
    return x / math.sqrt(1.0 + x * x)


@dataclass(frozen=True, slots=True)
class Transfer:
    """A transfer function paired with its derivative."""

    type: TransferType
    function: ActivationFunction
    derivative: DerivativeFunction

    def __call__(self, x: float) -> float:
        return self.function(x)


TRANSFERS: dict[TransferType, Transfer] = {
    transfer.type: transfer
    for transfer in (
        Transfer(TransferType.IDENTITY, lambda x: x, lambda out, x: 1.0),
        Transfer(
            TransferType.BENT_IDENTITY,
            lambda x: (math.sqrt(x * x + 1.0) - 1.0) / 2.0 + x,
            lambda out, x: x / (2.0 * math.sqrt(x * x + 1.0)) + 1.0,
        ),
        Transfer(TransferType.SIGMOID, _sigmoid, lambda out, x: out * (1.0 - out)),
        Transfer(TransferType.TANH, math.tanh, lambda out, x: 1.0 - out * out),
        Transfer(TransferType.ARCTAN, math.atan, lambda out, x: 1.0 / (x * x + 1.0)),
        Transfer(
            TransferType.SOFTSIGN,
            lambda x: x / (1.0 + abs(x)),
            lambda out, x: 1.0 / (1.0 + abs(out)) ** 2,
        ),
        Transfer(
            TransferType.ISRU,
            _isru,
            lambda out, x: (1.0 / math.sqrt(1.0 + x * x)) ** 3,
        ),
        Transfer(
            TransferType.RELU,
            lambda x: 0.0 if x < 0 else x,
            lambda out, x: 0.0 if x < 0 else 1.0,
        ),
        Transfer(
            TransferType.LRELU,
            lambda x: 0.2 * x if x < 0 else x,
            lambda out, x: 0.01 if x < 0 else 1.0,
        ),
        Transfer(TransferType.SOFTPLUS, _softplus, lambda out, x: _sigmoid(x)),
        Transfer(
            TransferType.GAUSSIAN,
            lambda x: math.exp(-(x * x)),
            lambda out, x: -2.0 * x * out,
        ),
    )
}


@dataclass(slots=True)
class Neuron:
    """Runtime neuron holding the state of the last forward and backward pass."""

    transfer: TransferType
    bias: float
    weights: list[float]
    output: float = 0.0
    activation: float = 0.0
    delta: float = 0.0

    def activate(self, inputs: Sequence[float]) -> float:
        total = self.bias
        for weight, value in zip(self.weights, inputs):
            total += weight * value
        self.activation = total
        self.output = TRANSFERS[self.transfer](total)
        return self.output

    def gradient(self, error: float) -> None:
        derivative = TRANSFERS[self.transfer].derivative
        self.delta = error * derivative(self.output, self.activation)

    def clear(self) -> None:
        self.output = 0.0
        self.activation = 0.0
        self.delta = 0.0


def _default_names(prefix: str, count: int) -> tuple[str, ...]:
    return tuple(f"{prefix}{index}" for index in range(count))


@dataclass(slots=True)
class FeedForwardNetwork:
    """Executable MLP: hidden and output layers of fully connected neurons."""

    layers: list[list[Neuron]]
    input_names: tuple[str, ...] = ()
    output_names: tuple[str, ...] = ()
    learning_rate: float = DEFAULT_LEARNING_RATE
    _last_inputs: list[float] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if not self.layers or any(not layer for layer in self.layers):
            msg = "A network needs at least one non-empty layer."
            raise ValueError(msg)
        if not self.input_names:
            self.input_names = _default_names("in", self.input_size)
        if not self.output_names:
            self.output_names = _default_names("out", self.output_size)
        self.input_names = tuple(self.input_names)
        self.output_names = tuple(self.output_names)
        if len(self.input_names) != self.input_size:
            msg = (
                f"Network expects {self.input_size} inputs, "
                f"got {len(self.input_names)} input names."
            )
            raise ShapeMismatchError(msg)
        if len(self.output_names) != self.output_size:
            msg = (
                f"Network produces {self.output_size} outputs, "
                f"got {len(self.output_names)} output names."
            )
            raise ShapeMismatchError(msg)

    @classmethod
    def from_layers(
        cls,
        layers: Sequence[LayerGene],
        *,
        input_names: Sequence[str] = (),
        output_names: Sequence[str] = (),
        learning_rate: float = DEFAULT_LEARNING_RATE,
    ) -> FeedForwardNetwork:
        runtime = [
            [
                Neuron(neuron.type, neuron.bias, list(neuron.weights))
                for neuron in layer.neurons
            ]
            for layer in layers
        ]
        return cls(
            runtime,
            input_names=tuple(input_names),
            output_names=tuple(output_names),
            learning_rate=learning_rate,
        )

    @classmethod
    def from_genome(
        cls,
        genome: Genome,
        *,
        input_names: Sequence[str] = (),
        output_names: Sequence[str] = (),
        learning_rate: float = DEFAULT_LEARNING_RATE,
    ) -> FeedForwardNetwork:
        """Decode ``genome`` and build a network from its layers."""
        return cls.from_layers(
            genome.layers(),
            input_names=input_names,
            output_names=output_names,
            learning_rate=learning_rate,
        )

    @property
    def input_size(self) -> int:
        return len(self.layers[0][0].weights)

    @property
    def output_size(self) -> int:
        return len(self.layers[-1])

    def _coerce_inputs(self, inputs: Sequence[float] | Mapping[str, float]) -> list[float]:
        if isinstance(inputs, Mapping):
            try:
                return [float(inputs[name]) for name in self.input_names]
            except KeyError as error:
                msg = f"Missing value for input {error.args[0]!r}."
                raise KeyError(msg) from error
        if len(inputs) != self.input_size:
            msg = f"Expected {self.input_size} inputs but received {len(inputs)}."
            raise ValueError(msg)
        return [float(value) for value in inputs]

    def activate(self, inputs: Sequence[float] | Mapping[str, float]) -> list[float]:
        """Run a forward pass and return the output layer values.

        ``inputs`` is either a sequence in input order or a mapping keyed by
        input name.
        """
        values = self._coerce_inputs(inputs)
        self._last_inputs = values
        for layer in self.layers:
            values = [neuron.activate(values) for neuron in layer]
        return values

    def activate_named(self, inputs: Sequence[float] | Mapping[str, float]) -> dict[str, float]:
        outputs = self.activate(inputs)
        return dict(zip(self.output_names, outputs))

    def layer_outputs(self) -> list[list[float]]:
        """Outputs of every layer from the last forward pass."""
        return [[neuron.output for neuron in layer] for layer in self.layers]

    def backpropagate(self, expected: Sequence[float]) -> None:
        """Compute every neuron's delta against ``expected`` outputs."""
        if len(expected) != self.output_size:
            msg = f"Expected {self.output_size} targets but received {len(expected)}."
            raise ValueError(msg)
        for index in reversed(range(len(self.layers))):
            layer = self.layers[index]
            if index == len(self.layers) - 1:
                for neuron, target in zip(layer, expected):
                    neuron.gradient(target - neuron.output)
                continue
            following = self.layers[index + 1]
            for position, neuron in enumerate(layer):
                error = sum(item.delta * item.weights[position] for item in following)
                neuron.gradient(error)

    def update_weights(self, inputs: Sequence[float] | None = None) -> None:
        """Apply the deltas of the last backward pass to weights and biases."""
        values = self._last_inputs if inputs is None else self._coerce_inputs(inputs)
        for layer in self.layers:
            for neuron in layer:
                step = self.learning_rate * neuron.delta
                for position, value in enumerate(values):
                    neuron.weights[position] += step * value
                neuron.bias += step
            values = [neuron.output for neuron in layer]

    def train(
        self,
        dataset: Sequence[Sequence[float]],
        expected: Sequence[Sequence[float]],
        *,
        max_error: float,
        epochs: int,
    ) -> int:
        """Stochastic gradient descent until the summed squared error is small enough.

        Returns the epoch at which ``max_error`` was reached and raises
        :class:`ConvergenceError` when it never is.
        """
        if len(dataset) != len(expected):
            msg = "dataset and expected must have the same length."
            raise ValueError(msg)
        total_error = math.inf
        for epoch in range(epochs):
            total_error = 0.0
            for row, targets in zip(dataset, expected):
                outputs = self.activate(row)
                total_error += sum(
                    (target - output) ** 2 for target, output in zip(targets, outputs)
                )
                self.backpropagate(targets)
                self.update_weights()
            if total_error <= max_error:
                return epoch
        msg = f"No convergence after {epochs} epochs (error {total_error:.5f})."
        raise ConvergenceError(msg)

    def clear(self) -> None:
        for layer in self.layers:
            for neuron in layer:
                neuron.clear()

    def to_layers(self) -> list[LayerGene]:
        """Snapshot the current parameters as transcoded layers."""
        return [
            LayerGene(
                neurons=tuple(
                    NeuronGene(neuron.transfer, neuron.bias, tuple(neuron.weights))
                    for neuron in layer
                )
            )
            for layer in self.layers
        ]


__all__ = [
    "ActivationFunction",
    "DEFAULT_LEARNING_RATE",
    "DerivativeFunction",
    "FeedForwardNetwork",
    "Neuron",
    "TRANSFERS",
    "Transfer",
]
