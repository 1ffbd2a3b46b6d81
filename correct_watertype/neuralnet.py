"""
Forward evaluation of pretrained feed-forward neural networks.

The atmospheric correction uses four networks per pixel: the atmosphere
net, the inverse AOT/Angstrom net, the autoassociative net and the optional
normalization net. All are fully connected with a logistic activation on
every non-input plane and per-channel min/max scaling of inputs and outputs.

Network definition format
-------------------------
The ``.net`` text files consist of:

1. a free-text header, ended by the first line starting with ``#``
2. the number of inputs followed by one ``min max`` line per input
3. the number of outputs followed by one ``min max`` line per output
4. a line starting with ``$``
5. ``#planes=N s0 s1 ... sN-1`` giving the plane sizes
6. for every plane ``i = 1..N-1`` a ``bias i n`` line followed by ``n``
   values
7. for every plane ``i = 0..N-2`` a ``wgt i n m`` line followed by ``n * m``
   values of the (n, m) weight matrix in row-major order, where ``n`` is the
   size of plane ``i + 1`` and ``m`` the size of plane ``i``

References
----------
.. [1] Schiller, H. and Doerffer, R. (1999). Neural network for emulation of
       an inverse model: operational derivation of Case II water properties
       from MERIS data. Int. J. Remote Sensing, 20:1735-1746.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Tuple

import numpy as np
from smart_open import open as smart_open

from correct_watertype.exceptions import ConfigurationError, DimensionMismatchError

logger = logging.getLogger(__name__)


def sigmoid(x: np.ndarray) -> np.ndarray:
    """Logistic activation."""
    return 1.0 / (1.0 + np.exp(-x))


def _frozen(values) -> np.ndarray:
    a = np.array(values, dtype=np.float64)
    a.setflags(write=False)
    return a


@dataclass(frozen=True)
class NeuralNetModel:
    """
    Immutable feed-forward network.

    Attributes
    ----------
    sizes : tuple of int
        Number of neurons per plane, input plane first.
    weights : tuple of ndarray
        ``weights[i]`` has shape (sizes[i + 1], sizes[i]).
    biases : tuple of ndarray
        ``biases[i]`` has shape (sizes[i + 1],).
    input_min, input_max : ndarray
        Scaling bounds of the inputs (the trained input range).
    output_min, output_max : ndarray
        Scaling bounds of the outputs.
    name : str
        Source of the definition, used in log messages.
    """

    sizes: Tuple[int, ...]
    weights: Tuple[np.ndarray, ...]
    biases: Tuple[np.ndarray, ...]
    input_min: np.ndarray
    input_max: np.ndarray
    output_min: np.ndarray
    output_max: np.ndarray
    name: str = ""

    def __post_init__(self):
        sizes = tuple(int(s) for s in self.sizes)
        if len(sizes) < 2:
            raise ConfigurationError("A network needs at least two planes", {"sizes": sizes})
        weights = tuple(_frozen(w) for w in self.weights)
        biases = tuple(_frozen(b) for b in self.biases)
        if len(weights) != len(sizes) - 1 or len(biases) != len(sizes) - 1:
            raise ConfigurationError(
                "Number of weight matrices and bias vectors must match the planes",
                {"planes": len(sizes), "weights": len(weights), "biases": len(biases)},
            )
        for i, (w, b) in enumerate(zip(weights, biases)):
            if w.shape != (sizes[i + 1], sizes[i]) or b.shape != (sizes[i + 1],):
                raise ConfigurationError(
                    "Weight or bias shape does not match the plane sizes",
                    {"plane": i + 1, "weights": w.shape, "bias": b.shape},
                )
        bounds = {}
        for attr, n in (("input_min", sizes[0]), ("input_max", sizes[0]),
                        ("output_min", sizes[-1]), ("output_max", sizes[-1])):
            value = _frozen(getattr(self, attr))
            if value.shape != (n,):
                raise ConfigurationError(
                    f"{attr} must have {n} values", {"shape": value.shape}
                )
            bounds[attr] = value
        object.__setattr__(self, "sizes", sizes)
        object.__setattr__(self, "weights", weights)
        object.__setattr__(self, "biases", biases)
        for attr, value in bounds.items():
            object.__setattr__(self, attr, value)

    @property
    def input_count(self) -> int:
        return self.sizes[0]

    @property
    def output_count(self) -> int:
        return self.sizes[-1]

    def evaluate(self, inputs) -> np.ndarray:
        """
        Forward pass.

        Parameters
        ----------
        inputs : array_like
            One value per network input. Values outside the trained range
            are not clamped.

        Returns
        -------
        ndarray
            One value per network output.

        Raises
        ------
        DimensionMismatchError
            If the number of inputs is wrong.
        """
        x = np.asarray(inputs, dtype=np.float64)
        if x.ndim != 1 or x.size != self.input_count:
            raise DimensionMismatchError(self.input_count, x.size, f"neural net '{self.name}' input")

        a = (x - self.input_min) / (self.input_max - self.input_min)
        for w, b in zip(self.weights, self.biases):
            a = sigmoid(w @ a + b)
        return a * (self.output_max - self.output_min) + self.output_min

    __call__ = evaluate

    def inputs_out_of_range(self, inputs, start: int = 0, stop: int = None) -> bool:
        """
        True if any of ``inputs[start:stop]`` lies outside the trained range.

        NaN inputs count as out of range.
        """
        x = np.asarray(inputs, dtype=np.float64)[start:stop]
        lo = self.input_min[start:stop]
        hi = self.input_max[start:stop]
        return not bool(np.all((x >= lo) & (x <= hi)))

    @classmethod
    def from_text(cls, text: str, name: str = "") -> "NeuralNetModel":
        """Parse a network definition (see module docstring)."""
        return _parse_definition(text.splitlines(), name)

    @classmethod
    def from_file(cls, path: str) -> "NeuralNetModel":
        """
        Read a network definition from a local path or a URL.

        Raises
        ------
        ConfigurationError
            If the file cannot be read or parsed.
        """
        try:
            with smart_open(path, "r") as f:
                lines = f.read().splitlines()
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                "Could not read neural net", {"path": path, "error": str(e)}
            ) from e
        model = _parse_definition(lines, name=path)
        logger.info("Loaded neural net %s with planes %s", path, model.sizes)
        return model


class _Tokens:
    """Whitespace separated tokens of a sequence of lines."""

    def __init__(self, lines: List[str], name: str):
        self._tokens: Iterator[str] = (tok for line in lines for tok in line.split())
        self.name = name

    def next(self, what: str) -> str:
        try:
            return next(self._tokens)
        except StopIteration:
            raise ConfigurationError(
                f"Unexpected end of neural net definition, expected {what}",
                {"net": self.name},
            ) from None

    def number(self, what: str, kind=float):
        token = self.next(what)
        try:
            return kind(token)
        except ValueError:
            raise ConfigurationError(
                f"Invalid {what} in neural net definition: '{token}'",
                {"net": self.name},
            ) from None

    def numbers(self, count: int, what: str) -> np.ndarray:
        return np.array([self.number(what) for _ in range(count)])

    def keyword(self, expected: str):
        token = self.next(expected)
        if token != expected:
            raise ConfigurationError(
                f"Expected '{expected}' in neural net definition, got '{token}'",
                {"net": self.name},
            )


def _parse_definition(lines: List[str], name: str) -> NeuralNetModel:
    # skip the free-text header
    start = next((i for i, line in enumerate(lines) if line.startswith("#")), None)
    if start is None:
        raise ConfigurationError("Neural net definition has no '#' header end", {"net": name})
    end = next((i for i in range(start + 1, len(lines)) if lines[i].startswith("$")), None)
    if end is None:
        raise ConfigurationError("Neural net definition has no '$' line", {"net": name})

    tokens = _Tokens(lines[start + 1:end], name)
    n_in = tokens.number("input count", int)
    in_bounds = tokens.numbers(2 * n_in, "input bound").reshape(n_in, 2)
    n_out = tokens.number("output count", int)
    out_bounds = tokens.numbers(2 * n_out, "output bound").reshape(n_out, 2)

    planes_line = next(
        (i for i in range(end + 1, len(lines)) if lines[i].startswith("#planes=")), None
    )
    if planes_line is None:
        raise ConfigurationError("Neural net definition has no '#planes=' line", {"net": name})
    plane_tokens = lines[planes_line][len("#planes="):].split()
    tokens = _Tokens(plane_tokens, name)
    n_planes = tokens.number("plane count", int)
    sizes = [tokens.number("plane size", int) for _ in range(n_planes)]
    if sizes[0] != n_in or sizes[-1] != n_out:
        raise ConfigurationError(
            "Plane sizes do not match the number of inputs/outputs",
            {"net": name, "sizes": sizes, "inputs": n_in, "outputs": n_out},
        )

    tokens = _Tokens(lines[planes_line + 1:], name)
    biases = []
    for plane in range(1, n_planes):
        tokens.keyword("bias")
        index = tokens.number("bias plane", int)
        n = tokens.number("bias size", int)
        if index != plane or n != sizes[plane]:
            raise ConfigurationError(
                "Bias header does not match the planes",
                {"net": name, "plane": plane, "header": (index, n)},
            )
        biases.append(tokens.numbers(n, "bias"))
    weights = []
    for plane in range(n_planes - 1):
        tokens.keyword("wgt")
        index = tokens.number("weight plane", int)
        n = tokens.number("weight rows", int)
        m = tokens.number("weight columns", int)
        if index != plane or (n, m) != (sizes[plane + 1], sizes[plane]):
            raise ConfigurationError(
                "Weight header does not match the planes",
                {"net": name, "plane": plane, "header": (index, n, m)},
            )
        weights.append(tokens.numbers(n * m, "weight").reshape(n, m))

    return NeuralNetModel(
        sizes=tuple(sizes),
        weights=tuple(weights),
        biases=tuple(biases),
        input_min=in_bounds[:, 0],
        input_max=in_bounds[:, 1],
        output_min=out_bounds[:, 0],
        output_max=out_bounds[:, 1],
        name=name,
    )


# =============================================================================
# Input/output converters of the nets
# =============================================================================

def multiply_pi(values) -> np.ndarray:
    return np.asarray(values, dtype=np.float64) * np.pi


def divide_pi(values) -> np.ndarray:
    return np.asarray(values, dtype=np.float64) / np.pi


def log(values) -> np.ndarray:
    return np.log(np.asarray(values, dtype=np.float64))


def exp(values) -> np.ndarray:
    return np.exp(np.asarray(values, dtype=np.float64))


def log_multiply_pi(values) -> np.ndarray:
    """log(x * pi), radiance reflectance -> log irradiance reflectance."""
    return np.log(np.asarray(values, dtype=np.float64) * np.pi)


def exp_divide_pi(values) -> np.ndarray:
    """exp(x) / pi, log irradiance reflectance -> radiance reflectance."""
    return np.exp(np.asarray(values, dtype=np.float64) - np.log(np.pi))
