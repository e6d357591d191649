"""Exception types raised by the genome engine and the evolution driver."""

from __future__ import annotations

from collections.abc import Sequence


class MalformedGenomeError(ValueError):
    """A genome header describes data that is not present or not valid."""


class ShapeMismatchError(ValueError):
    """A genome's input or output size disagrees with the configured counts."""


class StructuralEditError(ValueError):
    """A resize, insertion or removal targets a protected or missing layer."""


class UnsupportedCrossoverError(ValueError):
    """The requested crossover strategy has no implementation."""


class SelectionError(ValueError):
    """A selection strategy was asked for more individuals than available."""


class CheckpointError(ValueError):
    """A checkpoint payload is inconsistent or unreadable."""


class EvaluationError(RuntimeError):
    """The fitness function produced an unusable result."""


class ConvergenceError(RuntimeError):
    """Training ran out of epochs before reaching the target error."""


class GenomeRepairWarning(UserWarning):
    """A layer list was padded or truncated while being encoded."""


class StateError(RuntimeError):
    """The driver's current state does not allow the requested transition."""


class GenerationError(RuntimeError):
    """One or more individuals failed evaluation during a generation."""

    def __init__(
        self,
        message: str,
        failures: Sequence[BaseException],
        *,
        generation: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.failures = tuple(failures)
        self.generation = generation

    def __str__(self) -> str:
        lines = [f"{self.message}: there were {len(self.failures)} errors:"]
        for position, error in enumerate(self.failures, start=1):
            name = f"{type(error).__module__}.{type(error).__qualname__}"
            lines.append(f"  {position:2d}. {name} : {error}")
        return "\n".join(lines)


__all__ = [
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
