"""
Compact feed-forward autoencoder for keystroke anomaly detection.

Architecture: input -> hidden (ReLU) -> bottleneck (ReLU) -> output (sigmoid).
Weights use the scale ``sqrt(2 / fan_in)`` drawn uniformly from
``[-scale, scale]``; biases start uniformly in ``[-0.05, 0.05]``.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from ..models.profile_models import AutoencoderWeights

logger = logging.getLogger(__name__)

SIGMOID_CLAMP = 500.0
BIAS_INIT_RANGE = 0.05


class AutoencoderState(str, Enum):
    """Lifecycle of an autoencoder instance."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    TRAINED = "trained"


@dataclass
class ForwardPass:
    """Activations of every layer for one input."""

    hidden: np.ndarray
    bottleneck: np.ndarray
    output: np.ndarray


def relu(x: np.ndarray) -> np.ndarray:
    return np.maximum(0.0, x)


def sigmoid(x: np.ndarray) -> np.ndarray:
    # Clamp input to prevent numerical overflow
    return 1.0 / (1.0 + np.exp(-np.clip(x, -SIGMOID_CLAMP, SIGMOID_CLAMP)))


def reconstruction_error(original: Sequence[float], reconstructed: Sequence[float]) -> float:
    """Mean squared difference between an input and its reconstruction."""
    original = np.asarray(original, dtype=np.float64)
    reconstructed = np.asarray(reconstructed, dtype=np.float64)
    return float(np.mean((original - reconstructed) ** 2))


class Autoencoder:
    """Three-layer autoencoder trained with online (per-sample) gradient updates."""

    def __init__(self,
                 input_size: int,
                 hidden_size: int = 16,
                 bottleneck_size: int = 8,
                 rng: Optional[np.random.Generator] = None,
                 initialize: bool = True):
        """
        Create an autoencoder.

        Args:
            input_size: Number of input (and output) features
            hidden_size: Width of the first hidden layer
            bottleneck_size: Width of the compressed representation
            rng: Random source for weight initialization
            initialize: Draw random weights immediately. Set False when weights
                will be loaded from a serialized model.
        """
        for name, value in (("input_size", input_size), ("hidden_size", hidden_size),
                            ("bottleneck_size", bottleneck_size)):
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        self.input_size = int(input_size)
        self.hidden_size = int(hidden_size)
        self.bottleneck_size = int(bottleneck_size)
        self.rng = rng if rng is not None else np.random.default_rng()

        self.weights1: Optional[np.ndarray] = None
        self.weights2: Optional[np.ndarray] = None
        self.weights3: Optional[np.ndarray] = None
        self.biases1: Optional[np.ndarray] = None
        self.biases2: Optional[np.ndarray] = None
        self.biases3: Optional[np.ndarray] = None
        self.state = AutoencoderState.UNINITIALIZED

        if initialize:
            self.initialize()

    def _init_matrix(self, fan_in: int, fan_out: int) -> np.ndarray:
        scale = np.sqrt(2.0 / fan_in)
        return self.rng.uniform(-1.0, 1.0, size=(fan_in, fan_out)) * scale

    def _init_biases(self, size: int) -> np.ndarray:
        return self.rng.uniform(-BIAS_INIT_RANGE, BIAS_INIT_RANGE, size=size)

    def initialize(self) -> None:
        """Draw fresh random weights and biases."""
        self.weights1 = self._init_matrix(self.input_size, self.hidden_size)
        self.weights2 = self._init_matrix(self.hidden_size, self.bottleneck_size)
        self.weights3 = self._init_matrix(self.bottleneck_size, self.input_size)
        self.biases1 = self._init_biases(self.hidden_size)
        self.biases2 = self._init_biases(self.bottleneck_size)
        self.biases3 = self._init_biases(self.input_size)
        self.state = AutoencoderState.INITIALIZED

    def _check_ready(self, values: np.ndarray) -> None:
        if self.state == AutoencoderState.UNINITIALIZED:
            raise RuntimeError("Autoencoder weights are not initialized")
        if values.shape != (self.input_size,):
            raise ValueError(f"Expected input of {self.input_size} features, got shape {values.shape}")

    def forward(self, inputs: Sequence[float]) -> ForwardPass:
        """Run the network and return the activations of every layer."""
        x = np.asarray(inputs, dtype=np.float64)
        self._check_ready(x)

        hidden = relu(x @ self.weights1 + self.biases1)
        bottleneck = relu(hidden @ self.weights2 + self.biases2)
        output = sigmoid(bottleneck @ self.weights3 + self.biases3)
        return ForwardPass(hidden=hidden, bottleneck=bottleneck, output=output)

    def predict(self, inputs: Sequence[float]) -> np.ndarray:
        """Reconstruct the input. Does not modify the network."""
        return self.forward(inputs).output

    def _backpropagate(self, target: np.ndarray, activations: ForwardPass, learning_rate: float) -> None:
        # All layer gradients are computed from the pre-update weights.
        output = activations.output
        output_grad = (target - output) * output * (1.0 - output)
        bottleneck_grad = (self.weights3 @ output_grad) * (activations.bottleneck > 0)
        hidden_grad = (self.weights2 @ bottleneck_grad) * (activations.hidden > 0)

        self.weights3 += learning_rate * np.outer(activations.bottleneck, output_grad)
        self.biases3 += learning_rate * output_grad
        self.weights2 += learning_rate * np.outer(activations.hidden, bottleneck_grad)
        self.biases2 += learning_rate * bottleneck_grad
        self.weights1 += learning_rate * np.outer(target, hidden_grad)
        self.biases1 += learning_rate * hidden_grad

    def train_epoch(self, samples: Sequence[Sequence[float]], learning_rate: float = 0.01) -> float:
        """
        Train one pass over the samples in the given order.

        Weights are updated after every sample, so the sample order affects
        the result.

        Returns:
            Average reconstruction MSE over the epoch (measured before each update)
        """
        if len(samples) == 0:
            raise ValueError("Cannot train on an empty sample set")

        total_loss = 0.0
        for sample in samples:
            target = np.asarray(sample, dtype=np.float64)
            activations = self.forward(target)
            total_loss += reconstruction_error(target, activations.output)
            self._backpropagate(target, activations, learning_rate)

        self.state = AutoencoderState.TRAINED
        return total_loss / len(samples)

    def train(self, samples: Sequence[Sequence[float]], epochs: int = 200, learning_rate: float = 0.01) -> List[float]:
        """
        Train for a fixed number of epochs.

        Returns:
            One average loss value per epoch
        """
        if epochs <= 0:
            raise ValueError(f"epochs must be positive, got {epochs}")

        loss_history = []
        for epoch in range(epochs):
            loss = self.train_epoch(samples, learning_rate)
            loss_history.append(loss)
            if epoch % 20 == 0:
                logger.debug(f"Epoch {epoch}: Average Loss = {loss:.6f}")

        logger.debug(f"Training finished after {epochs} epochs, final loss {loss_history[-1]:.6f}")
        return loss_history

    def serialize(self) -> Dict[str, Any]:
        """Return all dimensions, weights and biases as JSON-compatible values."""
        if self.state == AutoencoderState.UNINITIALIZED:
            raise RuntimeError("Cannot serialize an uninitialized autoencoder")

        return {
            "inputSize": self.input_size,
            "hiddenSize": self.hidden_size,
            "bottleneckSize": self.bottleneck_size,
            "weights1": self.weights1.tolist(),
            "weights2": self.weights2.tolist(),
            "weights3": self.weights3.tolist(),
            "biases1": self.biases1.tolist(),
            "biases2": self.biases2.tolist(),
            "biases3": self.biases3.tolist(),
        }

    @classmethod
    def deserialize(cls, data: Union[Dict[str, Any], AutoencoderWeights]) -> "Autoencoder":
        """Restore a trained autoencoder from serialized weights."""
        weights = data if isinstance(data, AutoencoderWeights) else AutoencoderWeights.model_validate(data)

        autoencoder = cls(
            weights.inputSize,
            weights.hiddenSize,
            weights.bottleneckSize,
            initialize=False,
        )
        autoencoder.weights1 = np.asarray(weights.weights1, dtype=np.float64)
        autoencoder.weights2 = np.asarray(weights.weights2, dtype=np.float64)
        autoencoder.weights3 = np.asarray(weights.weights3, dtype=np.float64)
        autoencoder.biases1 = np.asarray(weights.biases1, dtype=np.float64)
        autoencoder.biases2 = np.asarray(weights.biases2, dtype=np.float64)
        autoencoder.biases3 = np.asarray(weights.biases3, dtype=np.float64)
        autoencoder.state = AutoencoderState.TRAINED
        return autoencoder
