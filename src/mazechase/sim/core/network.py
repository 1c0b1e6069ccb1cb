from __future__ import annotations

from typing import List, Sequence

import numpy as np

from ...rng import DeterministicRng


class NetworkShapeError(RuntimeError):
    """Raised when data handed to a network does not match its fixed topology."""


class NeuralNetwork:
    """Two-layer feed-forward controller: ReLU hidden layer, linear output.

    ``w1`` maps inputs to hidden units (He-scaled uniform init), ``w2`` maps
    hidden units to outputs (Xavier-scaled uniform init). Biases start at zero.
    """

    def __init__(self, input_size: int, hidden_size: int, output_size: int, rng: DeterministicRng):
        self.input_size = input_size
        self.hidden_size = hidden_size
        self.output_size = output_size
        he_scale = np.sqrt(2.0 / input_size)
        xavier_scale = np.sqrt(1.0 / hidden_size)
        self.w1 = rng.uniform_array(-1.0, 1.0, (input_size, hidden_size)) * he_scale
        self.b1 = np.zeros(hidden_size)
        self.w2 = rng.uniform_array(-1.0, 1.0, (hidden_size, output_size)) * xavier_scale
        self.b2 = np.zeros(output_size)

    @property
    def shape(self) -> tuple[int, int, int]:
        return (self.input_size, self.hidden_size, self.output_size)

    def _parameters(self) -> List[np.ndarray]:
        return [self.w1, self.b1, self.w2, self.b2]

    def forward(self, inputs: Sequence[float]) -> List[float]:
        if len(inputs) != self.input_size:
            raise NetworkShapeError(f"Input size must be {self.input_size}, got {len(inputs)}")
        x = np.asarray(inputs, dtype=np.float64)
        hidden = np.maximum(0.0, x @ self.w1 + self.b1)
        return (hidden @ self.w2 + self.b2).tolist()

    def mutate(self, rate: float, strength: float, rng: DeterministicRng) -> None:
        for param in self._parameters():
            mask = rng.uniform_array(0.0, 1.0, param.shape) < rate
            if not mask.any():
                continue
            noise = rng.uniform_array(-strength, strength, param.shape)
            param[mask] += noise[mask]

    @classmethod
    def _empty(cls, input_size: int, hidden_size: int, output_size: int) -> "NeuralNetwork":
        network = cls.__new__(cls)
        network.input_size = input_size
        network.hidden_size = hidden_size
        network.output_size = output_size
        return network

    @classmethod
    def from_payload(
        cls,
        input_size: int,
        hidden_size: int,
        output_size: int,
        weights: Sequence[Sequence[Sequence[float]]],
        biases: Sequence[Sequence[float]],
    ) -> "NeuralNetwork":
        network = cls._empty(input_size, hidden_size, output_size)
        network.load_payload(weights, biases)
        return network

    def clone(self) -> "NeuralNetwork":
        copy = self._empty(self.input_size, self.hidden_size, self.output_size)
        copy.w1 = self.w1.copy()
        copy.b1 = self.b1.copy()
        copy.w2 = self.w2.copy()
        copy.b2 = self.b2.copy()
        return copy

    def to_payload(self) -> dict[str, list]:
        return {
            "weights": [self.w1.tolist(), self.w2.tolist()],
            "biases": [self.b1.tolist(), self.b2.tolist()],
        }

    def load_payload(self, weights: Sequence[Sequence[Sequence[float]]], biases: Sequence[Sequence[float]]) -> None:
        if len(weights) != 2 or len(biases) != 2:
            raise NetworkShapeError("Expected two weight layers and two bias layers")
        try:
            w1 = np.asarray(weights[0], dtype=np.float64)
            w2 = np.asarray(weights[1], dtype=np.float64)
            b1 = np.asarray(biases[0], dtype=np.float64)
            b2 = np.asarray(biases[1], dtype=np.float64)
        except ValueError as exc:
            raise NetworkShapeError(f"Ragged network payload: {exc}") from exc
        expected = {
            "weights[0]": (w1.shape, (self.input_size, self.hidden_size)),
            "weights[1]": (w2.shape, (self.hidden_size, self.output_size)),
            "biases[0]": (b1.shape, (self.hidden_size,)),
            "biases[1]": (b2.shape, (self.output_size,)),
        }
        for name, (actual, wanted) in expected.items():
            if actual != wanted:
                raise NetworkShapeError(f"{name} has shape {actual}, expected {wanted}")
        self.w1, self.w2, self.b1, self.b2 = w1, w2, b1, b2

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NeuralNetwork):
            return NotImplemented
        return self.shape == other.shape and all(
            np.array_equal(mine, theirs) for mine, theirs in zip(self._parameters(), other._parameters())
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"NeuralNetwork(input_size={self.input_size}, hidden_size={self.hidden_size}, output_size={self.output_size})"
