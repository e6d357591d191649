from __future__ import annotations

from random import Random

import pytest
from mlpevo.genes import (
    DEFAULT_RANGES,
    GeneRanges,
    LayerGene,
    NeuronGene,
    TransferType,
)


def test_transfer_ids_cover_eleven_functions() -> None:
    assert [member.value for member in TransferType] == list(range(1, 12))
    assert TransferType.SIGMOID == 3


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (3.0, TransferType.SIGMOID),
        (4.9, TransferType.TANH),
        (11, TransferType.GAUSSIAN),
        (0.0, None),
        (12.0, None),
        (float("nan"), None),
        (float("inf"), None),
    ],
)
def test_from_id_truncates_and_rejects_unknown(value, expected) -> None:
    assert TransferType.from_id(value) is expected


def test_coerce_defaults_to_sigmoid() -> None:
    assert TransferType.coerce(42.0) is TransferType.SIGMOID
    assert TransferType.coerce("relu") is TransferType.RELU
    assert TransferType.coerce("unknown") is TransferType.SIGMOID
    assert TransferType.coerce(TransferType.ISRU) is TransferType.ISRU


def test_gene_ranges_validation() -> None:
    with pytest.raises(ValueError):
        GeneRanges(bias_min=2.0, bias_max=1.0)
    with pytest.raises(ValueError):
        GeneRanges(weight_min=1.0, weight_max=0.0)


def test_random_neuron_respects_ranges() -> None:
    rng = Random(3)
    ranges = GeneRanges(bias_min=0.2, bias_max=0.3, weight_min=-1.0, weight_max=-0.5)
    for _ in range(50):
        values = ranges.random_neuron(4, rng)
        assert len(values) == 6
        assert TransferType.from_id(values[0]) is not None
        assert 0.2 <= values[1] <= 0.3
        assert all(-1.0 <= weight <= -0.5 for weight in values[2:])


def test_default_ranges() -> None:
    assert DEFAULT_RANGES.bias_min == pytest.approx(0.01)
    assert DEFAULT_RANGES.bias_max == pytest.approx(1.0)
    assert DEFAULT_RANGES.weight_min == pytest.approx(0.0)
    assert DEFAULT_RANGES.weight_max == pytest.approx(1.0)


def test_neuron_gene_coerces_fields() -> None:
    neuron = NeuronGene(type=4.0, bias=1, weights=[1, 2])
    assert neuron.type is TransferType.TANH
    assert neuron.bias == 1.0
    assert neuron.weights == (1.0, 2.0)
    assert neuron.prev_size == 2
    assert neuron.to_values() == [4.0, 1.0, 1.0, 2.0]

    copy = neuron.copy(bias=0.5)
    assert copy.bias == 0.5
    assert copy.weights == neuron.weights


def test_layer_gene_sizes() -> None:
    neurons = (
        NeuronGene(TransferType.RELU, 0.1, (0.1, 0.2, 0.3)),
        NeuronGene(TransferType.RELU, 0.2, (0.4, 0.5, 0.6)),
    )
    layer = LayerGene(neurons=neurons)
    assert layer.size == 2
    assert layer.prev_size == 3
    assert LayerGene(neurons=()).prev_size == 0
