"""Ready-made fitness functions used by the sample configuration and tests."""

from __future__ import annotations

from .network import FeedForwardNetwork

XOR_INPUTS: tuple[tuple[float, float], ...] = (
    (0.0, 0.0),
    (0.0, 1.0),
    (1.0, 0.0),
    (1.0, 1.0),
)
XOR_TARGETS: tuple[float, ...] = (0.0, 1.0, 1.0, 0.0)


def xor_error(network: FeedForwardNetwork) -> float:
    """Summed squared error of the first output over the XOR truth table."""
    total = 0.0
    for row, target in zip(XOR_INPUTS, XOR_TARGETS):
        output = network.activate(row)[0]
        total += (target - output) ** 2
    return total


def xor_fitness(network: FeedForwardNetwork) -> float:
    """Higher is better; a perfect network scores 4.0."""
    return float(len(XOR_INPUTS)) - xor_error(network)


__all__ = ["XOR_INPUTS", "XOR_TARGETS", "xor_error", "xor_fitness"]
